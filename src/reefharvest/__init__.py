"""
ReefHarvest - effort optimization for two linked fish stocks

Simulates logistic growth, migration and harvest on two reefs and finds the
per-period effort that maximizes discounted log utility of total harvest
under a joint effort cap.
"""

__version__ = "0.1.0"
__author__ = "ReefHarvest Development Team"

# Core imports
from reefharvest.core.params import (
    ConfigurationError,
    HarvestParams,
    OptimizerSettings,
    create_harvest_params,
    create_optimizer_settings,
    read_harvest_params,
    write_harvest_params,
    check_harvest_params,
)
from reefharvest.core.simulation import SimulationRecord, simulate
from reefharvest.core.optimization import OptimizationResult, optimize
from reefharvest.core.sweep import (
    ParameterDraws,
    SweepResult,
    draw_parameters,
    mean_record,
    run_sweep,
)

__all__ = [
    # Version
    "__version__",
    "__author__",
    # Parameters
    "ConfigurationError",
    "HarvestParams",
    "OptimizerSettings",
    "create_harvest_params",
    "create_optimizer_settings",
    "read_harvest_params",
    "write_harvest_params",
    "check_harvest_params",
    # Simulation and optimization
    "SimulationRecord",
    "simulate",
    "OptimizationResult",
    "optimize",
    # Sweeps
    "ParameterDraws",
    "SweepResult",
    "draw_parameters",
    "mean_record",
    "run_sweep",
]
