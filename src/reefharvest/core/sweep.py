"""Parameter-uncertainty sweeps.

A sweep repeats the full optimize-then-simulate pipeline once per random
draw of the uncertain parameters and summarizes the resulting simulation
records by their elementwise mean.

Draws are made up front from a ``numpy.random.SeedSequence`` with one child
stream per parameter, so the drawn values, and therefore every trial's
result, do not depend on how many workers run the trials or in which order
they finish.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from reefharvest.core import constants as C
from reefharvest.core.optimization import OptimizationResult, optimize
from reefharvest.core.params import (
    MODEL_PARAMETERS,
    ConfigurationError,
    HarvestParams,
    OptimizerSettings,
    check_harvest_params,
)
from reefharvest.core.simulation import RECORD_FIELDS, SimulationRecord
from reefharvest.logger import get_logger

logger = get_logger(__name__)

# (mean, sd) for a normal draw, or callable(rng, n) -> array of n values
Distribution = Union[Tuple[float, float], Callable[[np.random.Generator, int], np.ndarray]]

# Periods set the problem size and cannot vary between trials
DRAWABLE_PARAMETERS = tuple(name for name in MODEL_PARAMETERS if name != "periods")


@dataclass(frozen=True)
class ParameterDraws:
    """Per-trial parameter values for a sweep.

    Attributes
    ----------
    base : HarvestParams
        Values used for every parameter that is not drawn.
    values : dict
        Parameter name -> array of one value per trial.
    n_trials : int
        Number of trials N.
    """
    base: HarvestParams
    values: Dict[str, np.ndarray]
    n_trials: int

    def __post_init__(self):
        if self.n_trials < 1:
            raise ConfigurationError(f"n_trials must be at least 1, got {self.n_trials}")
        frozen = {}
        for name, draws in self.values.items():
            if name not in DRAWABLE_PARAMETERS:
                raise ConfigurationError(
                    f"Cannot draw '{name}'. Choose from {list(DRAWABLE_PARAMETERS)}"
                )
            arr = np.array(draws, dtype=float).reshape(-1)
            if arr.shape[0] != self.n_trials:
                raise ConfigurationError(
                    f"'{name}' has {arr.shape[0]} draws but the sweep has "
                    f"{self.n_trials} trials"
                )
            arr.setflags(write=False)
            frozen[name] = arr
        object.__setattr__(self, "values", frozen)

    def trial_params(self, trial: int) -> HarvestParams:
        """HarvestParams of one trial (0-based)."""
        if not 0 <= trial < self.n_trials:
            raise IndexError(f"Trial {trial} out of range [0, {self.n_trials})")
        overrides = {name: float(arr[trial]) for name, arr in self.values.items()}
        return replace(self.base, **overrides)


@dataclass
class SweepResult:
    """Results of a parameter sweep.

    Attributes
    ----------
    draws : ParameterDraws
        The parameter values of every trial
    trials : list
        (OptimizationResult, SimulationRecord) per trial, in trial order
    mean_record : SimulationRecord
        Elementwise mean of the trial records
    """
    draws: ParameterDraws
    trials: List[Tuple[OptimizationResult, SimulationRecord]] = field(default_factory=list)
    mean_record: Optional[SimulationRecord] = None

    @property
    def n_converged(self) -> int:
        return sum(1 for result, _ in self.trials if result.converged)

    @property
    def records(self) -> List[SimulationRecord]:
        return [record for _, record in self.trials]


def draw_parameters(
    base: HarvestParams,
    distributions: Mapping[str, Distribution],
    n_trials: int,
    seed: int = C.DEFAULT_SWEEP_SEED,
) -> ParameterDraws:
    """Draw per-trial values for the uncertain parameters.

    Parameters
    ----------
    base : HarvestParams
        Values for every parameter that is not drawn.
    distributions : mapping
        Parameter name -> ``(mean, sd)`` for a normal draw, or a callable
        ``(rng, n) -> array`` returning ``n`` values.
    n_trials : int
        Number of trials N.
    seed : int
        Master seed.

    Returns
    -------
    ParameterDraws
        N values per drawn parameter.

    Examples
    --------
    >>> draws = draw_parameters(
    ...     create_harvest_params(),
    ...     {'growth_rate': (0.1, 0.01), 'carrying_capacity': (2000, 100)},
    ...     n_trials=20,
    ... )
    """
    unknown = set(distributions) - set(DRAWABLE_PARAMETERS)
    if unknown:
        raise ConfigurationError(
            f"Cannot draw {sorted(unknown)}. Choose from {list(DRAWABLE_PARAMETERS)}"
        )
    values = {}
    for name in sorted(distributions):
        # Keyed by parameter, not by position among the drawn parameters
        child = np.random.SeedSequence(
            seed, spawn_key=(DRAWABLE_PARAMETERS.index(name),)
        )
        rng = np.random.Generator(np.random.PCG64(child))
        dist = distributions[name]
        if callable(dist):
            values[name] = np.asarray(dist(rng, n_trials), dtype=float)
        else:
            mean, sd = dist
            if sd < 0:
                raise ConfigurationError(f"Standard deviation of '{name}' is negative: {sd}")
            values[name] = rng.normal(mean, sd, size=n_trials)
    return ParameterDraws(base=base, values=values, n_trials=n_trials)


def repeat_parameters(base: HarvestParams, n_trials: int) -> ParameterDraws:
    """Degenerate draws: every trial uses ``base``."""
    return ParameterDraws(base=base, values={}, n_trials=n_trials)


def mean_record(records: Sequence[SimulationRecord]) -> SimulationRecord:
    """Elementwise mean of simulation records, period by period.

    The fold accumulates deviations from the first record and divides once
    at the end, so N identical records average to exactly that record, even
    where a field holds ``-inf`` (undefined utility).

    Parameters
    ----------
    records : sequence of SimulationRecord
        Records of equal length.

    Returns
    -------
    SimulationRecord
        Record whose every field is the mean over ``records``.
    """
    if not records:
        raise ValueError("Cannot average an empty sequence of records")
    first = records[0]
    for record in records[1:]:
        if record.periods != first.periods:
            raise ValueError(
                f"Records differ in length: {first.periods} vs {record.periods}"
            )

    def deviation(record, name):
        value, base = getattr(record, name), getattr(first, name)
        # Equal entries contribute nothing, including matching infinities
        return np.where(value == base, 0.0, value - base)

    def accumulate(totals, record):
        return {name: totals[name] + deviation(record, name) for name in RECORD_FIELDS}

    zeros = {name: np.zeros_like(getattr(first, name)) for name in RECORD_FIELDS}
    with np.errstate(invalid="ignore", over="ignore"):
        totals = reduce(accumulate, records[1:], zeros)
        means = {
            name: getattr(first, name) + totals[name] / len(records)
            for name in RECORD_FIELDS
        }
    return SimulationRecord(**means)


def _run_trial(
    draws: ParameterDraws,
    trial: int,
    settings: Optional[OptimizerSettings],
) -> Tuple[OptimizationResult, SimulationRecord]:
    params = draws.trial_params(trial)
    result, record = optimize(params, settings)
    logger.info(
        "Trial %d/%d finished: utility %.6g (%s)",
        trial + 1, draws.n_trials, result.total_utility,
        "converged" if result.converged else "not converged",
    )
    return result, record


def run_sweep(
    draws: ParameterDraws,
    settings: Optional[OptimizerSettings] = None,
    n_workers: int = C.DEFAULT_SWEEP_WORKERS,
) -> SweepResult:
    """Optimize and simulate every trial, then average the records.

    Trials are independent: each starts from the same initial guess and no
    state is shared between them.

    Parameters
    ----------
    draws : ParameterDraws
        Per-trial parameter values.
    settings : OptimizerSettings, optional
        Solver settings shared by all trials.
    n_workers : int
        Number of worker threads. 1 runs the trials sequentially.

    Returns
    -------
    SweepResult
        Per-trial results in trial order plus the mean record.

    Raises
    ------
    ConfigurationError
        If any trial's parameters are invalid. All trials are checked before
        the first optimization starts.
    """
    if n_workers < 1:
        raise ConfigurationError(f"n_workers must be at least 1, got {n_workers}")
    settings = settings if settings is not None else OptimizerSettings()
    for trial in range(draws.n_trials):
        try:
            check_harvest_params(draws.trial_params(trial), settings)
        except ConfigurationError as e:
            raise ConfigurationError(f"Trial {trial}: {e}") from e

    logger.info("Running sweep of %d trials on %d worker(s)", draws.n_trials, n_workers)
    if n_workers == 1:
        trials = [_run_trial(draws, i, settings) for i in range(draws.n_trials)]
    else:
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            trials = list(pool.map(
                lambda i: _run_trial(draws, i, settings), range(draws.n_trials)
            ))

    return SweepResult(
        draws=draws,
        trials=trials,
        mean_record=mean_record([record for _, record in trials]),
    )
