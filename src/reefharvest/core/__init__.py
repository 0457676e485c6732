"""
Core module for ReefHarvest.

Contains the two-reef simulator, the constrained effort optimizer and
parameter sweeps.
"""

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
from reefharvest.core.simulation import PeriodRecord, SimulationRecord, simulate
from reefharvest.core.optimization import (
    MINIMIZERS,
    OptimizationResult,
    constraint,
    objective,
    optimize,
    register_minimizer,
    split_effort,
)
from reefharvest.core.sweep import (
    ParameterDraws,
    SweepResult,
    draw_parameters,
    mean_record,
    repeat_parameters,
    run_sweep,
)

__all__ = [
    # Parameters
    "ConfigurationError",
    "HarvestParams",
    "OptimizerSettings",
    "create_harvest_params",
    "create_optimizer_settings",
    "read_harvest_params",
    "write_harvest_params",
    "check_harvest_params",
    # Simulation
    "PeriodRecord",
    "SimulationRecord",
    "simulate",
    # Optimization
    "MINIMIZERS",
    "OptimizationResult",
    "constraint",
    "objective",
    "optimize",
    "register_minimizer",
    "split_effort",
    # Sweeps
    "ParameterDraws",
    "SweepResult",
    "draw_parameters",
    "mean_record",
    "repeat_parameters",
    "run_sweep",
]
