"""
Parameter data structures for ReefHarvest.

This module contains the HarvestParams and OptimizerSettings classes and
functions for creating, reading, writing, and validating the parameter
table of a two-reef harvest model.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd

from reefharvest.core import constants as C


class ConfigurationError(ValueError):
    """Raised when a model or optimizer configuration is invalid."""


@dataclass(frozen=True)
class HarvestParams:
    """Biological and economic parameters of one model run.

    The same value is passed by reference to the simulator, the objective
    and the constraint, so a run never depends on positional argument order.

    Attributes
    ----------
    initial_stock : float
        Opening stock of each reef in period 1 (both reefs start equal).
    carrying_capacity : float
        Carrying capacity K of the logistic growth term.
    growth_rate : float
        Intrinsic growth rate r.
    effort_cap : float
        Maximum joint effort (reef 1 + reef 2) in any period. Also the upper
        bound of each individual effort value.
    harvest_constant : float
        Catchability coefficient q.
    migration_constant : float
        Migration rate z; each period a reef gains z * (K - stock).
    periods : int
        Number of periods T.
    discount_rate : float
        Per-period discount factor rho applied as rho**(t-1).
    utility_scaling_constant : float
        Scaling constant a inside the log utility ln(a * harvest).

    Examples
    --------
    >>> params = create_harvest_params(periods=12, migration_constant=0.02)
    >>> params.effort_cap
    15.0
    """

    initial_stock: float = C.DEFAULT_INITIAL_STOCK
    carrying_capacity: float = C.DEFAULT_CARRYING_CAPACITY
    growth_rate: float = C.DEFAULT_GROWTH_RATE
    effort_cap: float = C.DEFAULT_EFFORT_CAP
    harvest_constant: float = C.DEFAULT_HARVEST_CONSTANT
    migration_constant: float = C.DEFAULT_MIGRATION_CONSTANT
    periods: int = C.DEFAULT_PERIODS
    discount_rate: float = C.DEFAULT_DISCOUNT_RATE
    utility_scaling_constant: float = C.DEFAULT_UTILITY_SCALING

    @property
    def n_variables(self) -> int:
        """Length of the flat effort vector seen by the optimizer."""
        return C.NUM_REEFS * self.periods

    def __repr__(self) -> str:
        return (
            f"HarvestParams(\n"
            f"  stock0={self.initial_stock}, K={self.carrying_capacity}, "
            f"r={self.growth_rate}, z={self.migration_constant}\n"
            f"  q={self.harvest_constant}, cap={self.effort_cap}, "
            f"rho={self.discount_rate}, a={self.utility_scaling_constant}\n"
            f"  periods={self.periods}\n"
            f")"
        )


@dataclass(frozen=True)
class OptimizerSettings:
    """Tuning options for the constrained effort search.

    Attributes
    ----------
    relative_tolerance : float
        Stop once the relative change of the effort vector between
        iterations falls below this value.
    max_evaluations : int
        Budget of objective evaluations. Exhausting it ends the search
        with a non-converged status.
    method : str
        Name of a registered minimizer ('auglag', 'cobyla', 'slsqp').
    constraint_tolerance : float
        Largest per-period cap overshoot still counted as feasible.
    initial_effort : float
        Starting value for every per-period, per-reef effort.
    """

    relative_tolerance: float = C.DEFAULT_RELATIVE_TOLERANCE
    max_evaluations: int = C.DEFAULT_MAX_EVALUATIONS
    method: str = C.DEFAULT_METHOD
    constraint_tolerance: float = C.DEFAULT_CONSTRAINT_TOLERANCE
    initial_effort: float = C.DEFAULT_INITIAL_EFFORT


MODEL_PARAMETERS = tuple(f.name for f in fields(HarvestParams))
OPTIMIZER_PARAMETERS = tuple(f.name for f in fields(OptimizerSettings))

_INTEGER_PARAMETERS = {"periods", "max_evaluations"}
_STRING_PARAMETERS = {"method"}


def _coerce(name: str, value):
    """Convert a raw table value to the type expected for ``name``."""
    if name in _STRING_PARAMETERS:
        return str(value).strip()
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Parameter '{name}' must be numeric, got {value!r}"
        ) from e
    if name in _INTEGER_PARAMETERS:
        if not number.is_integer():
            raise ConfigurationError(
                f"Parameter '{name}' must be an integer, got {value!r}"
            )
        return int(number)
    return number


def create_harvest_params(**overrides) -> HarvestParams:
    """Create HarvestParams from the reference defaults.

    Parameters
    ----------
    **overrides
        Any HarvestParams field, e.g. ``periods=12``.

    Returns
    -------
    HarvestParams
        Parameter object; not yet validated (see check_harvest_params).

    Raises
    ------
    ConfigurationError
        If an override names an unknown parameter or is not numeric.
    """
    unknown = set(overrides) - set(MODEL_PARAMETERS)
    if unknown:
        raise ConfigurationError(f"Unknown model parameters: {sorted(unknown)}")
    values = {name: _coerce(name, value) for name, value in overrides.items()}
    return HarvestParams(**values)


def create_optimizer_settings(**overrides) -> OptimizerSettings:
    """Create OptimizerSettings from the defaults plus overrides."""
    unknown = set(overrides) - set(OPTIMIZER_PARAMETERS)
    if unknown:
        raise ConfigurationError(f"Unknown optimizer settings: {sorted(unknown)}")
    values = {name: _coerce(name, value) for name, value in overrides.items()}
    return OptimizerSettings(**values)


def read_harvest_params(
    param_file: Union[str, Path],
) -> Tuple[HarvestParams, OptimizerSettings]:
    """Read model and optimizer parameters from a CSV table.

    The table has two columns, ``parameter`` and ``value``. Parameters not
    listed keep their defaults.

    Parameters
    ----------
    param_file : str or Path
        Path to the CSV parameter table.

    Returns
    -------
    tuple of (HarvestParams, OptimizerSettings)
        Parameter objects populated from the file.

    Raises
    ------
    ConfigurationError
        If the table is malformed or names an unknown parameter.
    """
    table = pd.read_csv(param_file, dtype=str, skipinitialspace=True)
    table.columns = [str(c).strip().lower() for c in table.columns]
    if not {"parameter", "value"}.issubset(table.columns):
        raise ConfigurationError(
            f"{param_file}: parameter table needs 'parameter' and 'value' columns"
        )

    table = table.dropna(subset=["parameter"])
    names = table["parameter"].str.strip()
    duplicated = names[names.duplicated()].tolist()
    if duplicated:
        raise ConfigurationError(f"{param_file}: duplicated parameters {duplicated}")

    model_values: Dict[str, object] = {}
    optimizer_values: Dict[str, object] = {}
    for name, value in zip(names, table["value"]):
        if name in MODEL_PARAMETERS:
            model_values[name] = value
        elif name in OPTIMIZER_PARAMETERS:
            optimizer_values[name] = value
        else:
            raise ConfigurationError(f"{param_file}: unknown parameter '{name}'")

    return (
        create_harvest_params(**model_values),
        create_optimizer_settings(**optimizer_values),
    )


def write_harvest_params(
    params: HarvestParams,
    path: Union[str, Path],
    settings: Optional[OptimizerSettings] = None,
) -> None:
    """Write parameters to a two-column CSV table.

    Parameters
    ----------
    params : HarvestParams
        Model parameters to write.
    path : str or Path
        Output CSV file.
    settings : OptimizerSettings, optional
        Optimizer settings appended after the model parameters.
    """
    rows = list(asdict(params).items())
    if settings is not None:
        rows += list(asdict(settings).items())
    table = pd.DataFrame(rows, columns=["parameter", "value"])
    table.to_csv(Path(path), index=False)


def check_harvest_params(
    params: HarvestParams,
    settings: Optional[OptimizerSettings] = None,
) -> bool:
    """Validate a run configuration before any simulation or search.

    Hard errors raise immediately. Settings that are legal but likely
    unintended are reported with ``warnings.warn``.

    Parameters
    ----------
    params : HarvestParams
        Model parameters to validate.
    settings : OptimizerSettings, optional
        Optimizer settings to validate alongside.

    Returns
    -------
    bool
        True if no warnings were issued.

    Raises
    ------
    ConfigurationError
        For non-finite values, non-positive carrying capacity or periods,
        or an empty effort range (cap below the zero lower bound).
    """
    for name in MODEL_PARAMETERS:
        value = getattr(params, name)
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
            raise ConfigurationError(f"Parameter '{name}' must be a number, got {value!r}")
        if not math.isfinite(value):
            raise ConfigurationError(f"Parameter '{name}' must be finite, got {value}")

    if params.carrying_capacity <= 0:
        raise ConfigurationError(
            f"carrying_capacity must be positive, got {params.carrying_capacity}"
        )
    if int(params.periods) != params.periods or params.periods < 1:
        raise ConfigurationError(
            f"periods must be a positive integer, got {params.periods}"
        )
    if params.effort_cap < 0:
        raise ConfigurationError(
            f"Effort bounds are empty: lower bound 0 exceeds effort_cap "
            f"{params.effort_cap}"
        )

    n_warnings = 0
    if params.harvest_constant <= 0:
        warnings.warn(
            f"harvest_constant is {params.harvest_constant}; harvest can never "
            f"be positive and every candidate will be penalized"
        )
        n_warnings += 1
    if params.utility_scaling_constant <= 0:
        warnings.warn(
            f"utility_scaling_constant is {params.utility_scaling_constant}; "
            f"ln(a * harvest) is undefined for every positive harvest"
        )
        n_warnings += 1
    if params.initial_stock <= 0:
        warnings.warn(f"initial_stock is {params.initial_stock}; no harvest is possible")
        n_warnings += 1
    if params.harvest_constant * params.effort_cap > 1:
        warnings.warn(
            f"harvest_constant * effort_cap = "
            f"{params.harvest_constant * params.effort_cap:.3f} > 1; a single "
            f"period can remove more than the standing stock"
        )
        n_warnings += 1

    if settings is not None:
        n_warnings += _check_optimizer_settings(settings, params)

    return n_warnings == 0


def _check_optimizer_settings(settings: OptimizerSettings, params: HarvestParams) -> int:
    """Validate optimizer settings; returns the number of warnings issued."""
    # Local import: optimization imports this module
    from reefharvest.core.optimization import MINIMIZERS

    if not (settings.relative_tolerance > 0 and math.isfinite(settings.relative_tolerance)):
        raise ConfigurationError(
            f"relative_tolerance must be positive, got {settings.relative_tolerance}"
        )
    budget = settings.max_evaluations
    if not math.isfinite(budget) or int(budget) != budget or budget < 1:
        raise ConfigurationError(
            f"max_evaluations must be a positive integer, got {settings.max_evaluations}"
        )
    if not settings.constraint_tolerance >= 0:
        raise ConfigurationError(
            f"constraint_tolerance must be non-negative, got {settings.constraint_tolerance}"
        )
    if settings.method not in MINIMIZERS:
        raise ConfigurationError(
            f"Unknown method: {settings.method}. Choose from {sorted(MINIMIZERS)}"
        )
    if not math.isfinite(settings.initial_effort):
        raise ConfigurationError(
            f"initial_effort must be finite, got {settings.initial_effort}"
        )

    n_warnings = 0
    if not 0 <= settings.initial_effort <= params.effort_cap:
        warnings.warn(
            f"initial_effort {settings.initial_effort} lies outside "
            f"[0, {params.effort_cap}] and will be clipped"
        )
        n_warnings += 1
    return n_warnings


def with_overrides(params: HarvestParams, **overrides) -> HarvestParams:
    """Return a copy of ``params`` with some fields replaced."""
    unknown = set(overrides) - set(MODEL_PARAMETERS)
    if unknown:
        raise ConfigurationError(f"Unknown model parameters: {sorted(unknown)}")
    values = {name: _coerce(name, value) for name, value in overrides.items()}
    return replace(params, **values)
