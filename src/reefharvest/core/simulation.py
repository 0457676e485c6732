"""
Two-reef stock simulation.

Discrete-time population dynamics for two fish stocks under fixed effort
trajectories: logistic growth, migration toward carrying capacity and
catchability-proportional harvest. Each period's growth, migration and
harvest depend only on that period's opening stock; the next opening stock
depends only on the previous period's quantities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from reefharvest.core.constants import NUM_REEFS
from reefharvest.core.params import ConfigurationError, HarvestParams

ArrayLike = Union[Sequence[float], np.ndarray]

RECORD_FIELDS = (
    "stock",
    "growth",
    "migration",
    "harvest",
    "effort",
    "harvest_total",
    "utility",
)


class PeriodRecord(NamedTuple):
    """Quantities of a single period. Pairs are (reef 1, reef 2)."""

    period: int
    stock: Tuple[float, float]
    growth: Tuple[float, float]
    migration: Tuple[float, float]
    harvest: Tuple[float, float]
    effort: Tuple[float, float]
    harvest_total: float
    utility: float


@dataclass(frozen=True)
class SimulationRecord:
    """Per-period output of one simulation run.

    All arrays are read-only and owned by the record. Reef-level arrays have
    shape (periods, 2) with column 0 for reef 1 and column 1 for reef 2.

    Attributes
    ----------
    stock : np.ndarray
        Opening stock of each period.
    growth : np.ndarray
        Logistic growth realized during the period.
    migration : np.ndarray
        Migration gain during the period (negative above carrying capacity).
    harvest : np.ndarray
        Harvest taken during the period.
    effort : np.ndarray
        Effort applied during the period.
    harvest_total : np.ndarray
        Harvest summed over both reefs, shape (periods,).
    utility : np.ndarray
        Discounted log utility of total harvest, shape (periods,). Non-finite
        where the scaled total harvest is not positive.
    """

    stock: np.ndarray
    growth: np.ndarray
    migration: np.ndarray
    harvest: np.ndarray
    effort: np.ndarray
    harvest_total: np.ndarray
    utility: np.ndarray

    def __post_init__(self):
        for name in RECORD_FIELDS:
            arr = np.array(getattr(self, name), dtype=float)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def periods(self) -> int:
        return len(self.harvest_total)

    @property
    def total_utility(self) -> float:
        """Sum of discounted utility over all periods."""
        return float(np.sum(self.utility))

    def __len__(self) -> int:
        return self.periods

    def period(self, t: int) -> PeriodRecord:
        """Return the record of period ``t`` (1-based, as in the model)."""
        if not 1 <= t <= self.periods:
            raise IndexError(f"Period {t} out of range [1, {self.periods}]")
        i = t - 1
        return PeriodRecord(
            period=t,
            stock=tuple(self.stock[i]),
            growth=tuple(self.growth[i]),
            migration=tuple(self.migration[i]),
            harvest=tuple(self.harvest[i]),
            effort=tuple(self.effort[i]),
            harvest_total=float(self.harvest_total[i]),
            utility=float(self.utility[i]),
        )

    def __iter__(self) -> Iterator[PeriodRecord]:
        for t in range(1, self.periods + 1):
            yield self.period(t)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per period, reef-level columns suffixed with _1 and _2."""
        data = {"period": np.arange(1, self.periods + 1)}
        for name in ("stock", "growth", "migration", "harvest", "effort"):
            values = getattr(self, name)
            for reef in range(NUM_REEFS):
                data[f"{name}_{reef + 1}"] = values[:, reef]
        data["harvest_total"] = self.harvest_total
        data["utility"] = self.utility
        return pd.DataFrame(data)


def _as_effort(effort: ArrayLike, periods: int, label: str) -> np.ndarray:
    arr = np.array(effort, dtype=float).reshape(-1)
    if arr.shape[0] != periods:
        raise ValueError(
            f"{label} has {arr.shape[0]} values but the model has {periods} periods"
        )
    return arr


def _step(params: HarvestParams, stock: np.ndarray, effort: np.ndarray):
    """Growth, migration and harvest of one period from its opening stock."""
    growth = params.growth_rate * stock * (1.0 - stock / params.carrying_capacity)
    migration = params.migration_constant * (params.carrying_capacity - stock)
    harvest = params.harvest_constant * effort * stock
    return growth, migration, harvest


def simulate(
    effort1: ArrayLike,
    effort2: ArrayLike,
    params: HarvestParams,
) -> SimulationRecord:
    """Run the two-reef model under fixed effort trajectories.

    Parameters
    ----------
    effort1 : array-like
        Effort on reef 1 for each period, length ``params.periods``.
    effort2 : array-like
        Effort on reef 2 for each period, length ``params.periods``.
    params : HarvestParams
        Model parameters.

    Returns
    -------
    SimulationRecord
        Stock, growth, migration, harvest and utility for every period.

    Raises
    ------
    ConfigurationError
        If carrying capacity is not positive or a parameter is not finite.
    ValueError
        If an effort trajectory has the wrong length.

    Notes
    -----
    Stock is not clamped at zero. Where ``a * harvest_total`` is not positive
    the utility entry is ``-inf`` or ``nan``; callers decide how to treat it.
    """
    if not params.carrying_capacity > 0:
        raise ConfigurationError(
            f"carrying_capacity must be positive, got {params.carrying_capacity}"
        )
    if not all(np.isfinite(getattr(params, name)) for name in (
        "initial_stock", "carrying_capacity", "growth_rate", "harvest_constant",
        "migration_constant", "discount_rate", "utility_scaling_constant",
    )):
        raise ConfigurationError(f"All parameters must be finite: {params!r}")

    periods = int(params.periods)
    if periods < 1:
        raise ConfigurationError(f"periods must be a positive integer, got {params.periods}")
    efforts = np.column_stack([
        _as_effort(effort1, periods, "effort1"),
        _as_effort(effort2, periods, "effort2"),
    ])

    # Each row: (effort, stock, growth, migration, harvest) of one period
    rows = []
    stock = np.full(NUM_REEFS, float(params.initial_stock))
    for t in range(periods):
        if rows:
            _, prev_stock, prev_growth, prev_migration, prev_harvest = rows[-1]
            stock = prev_stock + prev_growth + prev_migration - prev_harvest
        growth, migration, harvest = _step(params, stock, efforts[t])
        rows.append((efforts[t], stock, growth, migration, harvest))

    effort, stock, growth, migration, harvest = (np.array(col) for col in zip(*rows))

    harvest_total = harvest.sum(axis=1)
    discount = params.discount_rate ** np.arange(periods)
    with np.errstate(divide="ignore", invalid="ignore"):
        utility = discount * np.log(params.utility_scaling_constant * harvest_total)

    return SimulationRecord(
        stock=stock,
        growth=growth,
        migration=migration,
        harvest=harvest,
        effort=effort,
        harvest_total=harvest_total,
        utility=utility,
    )
