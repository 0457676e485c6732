"""Model defaults and numerical constants for two-reef harvest modeling.

This module centralizes the reference scenario values and solver settings
used throughout ReefHarvest, so that configuration, validation and the
optimizer agree on the same numbers.
"""

# ============================================================================
# REFERENCE SCENARIO (BIOLOGY)
# ============================================================================

DEFAULT_INITIAL_STOCK = 1000.0  # Opening stock, shared by both reefs
DEFAULT_CARRYING_CAPACITY = 2000.0  # K in the logistic growth term
DEFAULT_GROWTH_RATE = 0.1  # Intrinsic growth rate r (per period)
DEFAULT_MIGRATION_CONSTANT = 0.0  # z, fraction of the gap to K closed per period

# ============================================================================
# REFERENCE SCENARIO (FISHERY / ECONOMICS)
# ============================================================================

DEFAULT_HARVEST_CONSTANT = 0.05  # Catchability q
DEFAULT_EFFORT_CAP = 15.0  # Joint effort allowed per period
DEFAULT_PERIODS = 24
DEFAULT_DISCOUNT_RATE = 0.95  # Per-period discount factor rho
DEFAULT_UTILITY_SCALING = 1.0  # a in ln(a * harvest)

NUM_REEFS = 2

# ============================================================================
# OPTIMIZATION PARAMETERS
# ============================================================================

DEFAULT_RELATIVE_TOLERANCE = 1e-8  # Relative step size between iterates
DEFAULT_MAX_EVALUATIONS = 20000  # Objective evaluation budget
DEFAULT_CONSTRAINT_TOLERANCE = 1e-6  # Accepted per-period cap overshoot
DEFAULT_INITIAL_EFFORT = 1.0  # Starting value of every decision variable
DEFAULT_METHOD = "auglag"

# Augmented Lagrangian outer loop
AUGLAG_INITIAL_PENALTY = 10.0
AUGLAG_PENALTY_GROWTH = 10.0
AUGLAG_MAX_PENALTY = 1e8
AUGLAG_VIOLATION_DECREASE = 0.25  # Required shrink factor before keeping the penalty
AUGLAG_MAX_OUTER_ITERATIONS = 50

# ============================================================================
# NUMERICAL THRESHOLDS
# ============================================================================

EPSILON = 1e-10  # Small value for floating point comparisons
PENALTY_VALUE = 1e10  # Objective value per period with undefined utility

# ============================================================================
# SWEEP DEFAULTS
# ============================================================================

DEFAULT_SWEEP_SEED = 42
DEFAULT_SWEEP_WORKERS = 1
