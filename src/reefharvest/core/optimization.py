"""Constrained effort optimization for the two-reef model.

This module wraps the simulator in an objective function and searches for
the per-period, per-reef effort trajectories that maximize total discounted
utility, subject to box bounds on every effort value and a per-period cap on
joint effort.

The minimizer is pluggable. Strategies are registered by name in
``MINIMIZERS``; each receives an :class:`EffortProblem` and returns a
:class:`MinimizerOutcome`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from scipy.optimize import minimize

from reefharvest.core import constants as C
from reefharvest.core.params import (
    ConfigurationError,
    HarvestParams,
    OptimizerSettings,
    check_harvest_params,
)
from reefharvest.core.simulation import SimulationRecord, simulate
from reefharvest.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OptimizationResult:
    """Results from a constrained effort search.

    Attributes
    ----------
    x : np.ndarray
        Optimal flat effort vector (reef 1 periods, then reef 2 periods)
    effort1 : np.ndarray
        Optimal effort on reef 1
    effort2 : np.ndarray
        Optimal effort on reef 2
    objective_value : float
        Negative total discounted utility at ``x`` (lower is better)
    converged : bool
        False if the search stopped on its evaluation budget
    status : int
        Solver status code
    message : str
        Solver message
    n_evaluations : int
        Number of objective evaluations
    max_violation : float
        Largest per-period constraint value reported by the solver, before
        projection onto the feasible set
    method : str
        Name of the minimizer used
    optimization_time : float
        Total optimization time in seconds
    convergence : list
        Best objective value after each evaluation
    """
    x: np.ndarray
    effort1: np.ndarray
    effort2: np.ndarray
    objective_value: float
    converged: bool
    status: int
    message: str
    n_evaluations: int
    max_violation: float
    method: str
    optimization_time: float
    convergence: List[float] = field(default_factory=list)

    @property
    def total_utility(self) -> float:
        return -self.objective_value


@dataclass
class EffortProblem:
    """A bounded, inequality-constrained minimization over flat effort."""
    objective: Callable[[np.ndarray], float]
    constraint: Callable[[np.ndarray], np.ndarray]
    x0: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    settings: OptimizerSettings


@dataclass
class MinimizerOutcome:
    """What a minimizer strategy reports back to the driver."""
    x: np.ndarray
    converged: bool
    status: int
    message: str
    n_evaluations: int


MinimizerFn = Callable[[EffortProblem], MinimizerOutcome]

MINIMIZERS: Dict[str, MinimizerFn] = {}


def register_minimizer(name: str):
    """Decorator registering a minimizer strategy under ``name``."""
    def decorator(func: MinimizerFn) -> MinimizerFn:
        MINIMIZERS[name] = func
        return func
    return decorator


# =============================================================================
# OBJECTIVE AND CONSTRAINT
# =============================================================================

def split_effort(flat_effort: np.ndarray, periods: int) -> Tuple[np.ndarray, np.ndarray]:
    """Split a flat effort vector into reef 1 and reef 2 trajectories.

    Parameters
    ----------
    flat_effort : np.ndarray
        Vector of length ``2 * periods``
    periods : int
        Number of periods

    Returns
    -------
    tuple of np.ndarray
        (effort1, effort2), each of length ``periods``
    """
    flat = np.asarray(flat_effort, dtype=float).reshape(-1)
    if flat.shape[0] != C.NUM_REEFS * periods:
        raise ValueError(
            f"Flat effort has {flat.shape[0]} values, expected {C.NUM_REEFS * periods}"
        )
    return flat[:periods].copy(), flat[periods:].copy()


def objective(flat_effort: np.ndarray, params: HarvestParams) -> float:
    """Negative total discounted utility of an effort vector.

    Periods whose scaled total harvest is not positive have no defined
    utility. Such candidates get a large finite penalty, proportional to the
    number of undefined periods, so a search can move away from them.

    Parameters
    ----------
    flat_effort : np.ndarray
        Flat effort vector (reef 1 periods, then reef 2 periods)
    params : HarvestParams
        Model parameters

    Returns
    -------
    float
        Value to minimize
    """
    effort1, effort2 = split_effort(flat_effort, int(params.periods))
    record = simulate(effort1, effort2, params)

    scaled = params.utility_scaling_constant * record.harvest_total
    n_undefined = int(np.count_nonzero(~(scaled > 0)))
    if n_undefined:
        logger.debug("Undefined utility in %d of %d periods; penalizing",
                     n_undefined, record.periods)
        return C.PENALTY_VALUE * n_undefined

    total = float(np.sum(record.utility))
    if not np.isfinite(total):
        logger.debug("Non-finite total utility %s; penalizing", total)
        return C.PENALTY_VALUE
    return -total


def constraint(flat_effort: np.ndarray, params: HarvestParams) -> np.ndarray:
    """Per-period joint effort in excess of the cap.

    Returns ``effort1[t] + effort2[t] - effort_cap`` for each period; a
    vector is feasible when every entry is <= 0.
    """
    effort1, effort2 = split_effort(flat_effort, int(params.periods))
    return effort1 + effort2 - params.effort_cap


def project_feasible(
    flat_effort: np.ndarray,
    params: HarvestParams,
    tolerance: float = 0.0,
) -> np.ndarray:
    """Clip to the effort bounds and scale down periods over the cap.

    A period whose joint effort exceeds the cap by more than ``tolerance``
    has both efforts scaled by the same factor so that their sum equals the
    cap.
    """
    periods = int(params.periods)
    x = np.clip(np.asarray(flat_effort, dtype=float), 0.0, params.effort_cap)
    effort1, effort2 = split_effort(x, periods)
    joint = effort1 + effort2
    over = joint - params.effort_cap > tolerance
    if np.any(over):
        scale = params.effort_cap / joint[over]
        effort1[over] *= scale
        effort2[over] *= scale
    return np.concatenate([effort1, effort2])


class _TrackedObjective:
    """Counts objective evaluations and keeps the running best value."""

    def __init__(self, params: HarvestParams):
        self.params = params
        self.n_calls = 0
        self.best = np.inf
        self.convergence: List[float] = []

    def __call__(self, x: np.ndarray) -> float:
        value = objective(x, self.params)
        self.n_calls += 1
        self.best = min(self.best, value)
        self.convergence.append(self.best)
        return value


# =============================================================================
# MINIMIZER STRATEGIES
# =============================================================================

def _relative_step(x_new: np.ndarray, x_old: np.ndarray) -> float:
    return float(np.linalg.norm(x_new - x_old) / max(np.linalg.norm(x_old), C.EPSILON))


@register_minimizer("auglag")
def _minimize_auglag(problem: EffortProblem) -> MinimizerOutcome:
    """Augmented Lagrangian outer loop around bounded Nelder-Mead.

    Inequality constraints g(x) <= 0 enter through the
    Powell-Hestenes-Rockafellar term

        (||max(0, lam + mu * g(x))||^2 - ||lam||^2) / (2 * mu)

    After each inner solve the multipliers are updated to
    ``max(0, lam + mu * g)`` and the penalty weight ``mu`` grows whenever the
    largest violation fails to shrink by ``AUGLAG_VIOLATION_DECREASE``.
    """
    settings = problem.settings
    budget = int(settings.max_evaluations)
    bounds = list(zip(problem.lower, problem.upper))
    scale = max(float(np.max(problem.upper)), 1.0)
    n = len(problem.x0)

    x = problem.x0.copy()
    g = problem.constraint(x)
    lam = np.zeros_like(g)
    mu = C.AUGLAG_INITIAL_PENALTY
    previous_violation = np.inf
    evaluations = 0
    converged = False
    status = 1
    message = "Maximum number of outer iterations reached"

    for outer in range(1, C.AUGLAG_MAX_OUTER_ITERATIONS + 1):
        remaining = budget - evaluations
        if remaining <= 0:
            status = 2
            message = "Maximum number of objective evaluations reached"
            break

        def lagrangian(z, lam=lam, mu=mu):
            shifted = np.maximum(0.0, lam + mu * problem.constraint(z))
            return problem.objective(z) + (shifted @ shifted - lam @ lam) / (2.0 * mu)

        inner_budget = max(remaining // 2, min(remaining, 50 * n))
        inner = minimize(
            lagrangian,
            x,
            method="Nelder-Mead",
            bounds=bounds,
            options={
                "maxfev": inner_budget,
                "xatol": settings.relative_tolerance * scale,
                "fatol": settings.relative_tolerance,
                "adaptive": n > 2,
            },
        )
        evaluations += int(inner.nfev)

        x_new = np.clip(inner.x, problem.lower, problem.upper)
        g = problem.constraint(x_new)
        violation = max(float(np.max(g)), 0.0)
        step = _relative_step(x_new, x)
        x = x_new

        logger.debug(
            "auglag outer %d: f=%.6g violation=%.3g step=%.3g mu=%.3g evals=%d",
            outer, inner.fun, violation, step, mu, evaluations,
        )

        if violation <= settings.constraint_tolerance and step <= settings.relative_tolerance:
            converged = True
            status = 0
            message = "Relative step and constraint tolerances satisfied"
            break

        lam = np.maximum(0.0, lam + mu * g)
        if violation > C.AUGLAG_VIOLATION_DECREASE * previous_violation:
            mu = min(mu * C.AUGLAG_PENALTY_GROWTH, C.AUGLAG_MAX_PENALTY)
        previous_violation = violation

    return MinimizerOutcome(
        x=x,
        converged=converged,
        status=status,
        message=message,
        n_evaluations=evaluations,
    )


@register_minimizer("cobyla")
def _minimize_cobyla(problem: EffortProblem) -> MinimizerOutcome:
    """scipy COBYLA: derivative-free linear approximations with bounds."""
    settings = problem.settings
    scale = max(float(np.max(problem.upper)), 1.0)
    result = minimize(
        problem.objective,
        problem.x0,
        method="COBYLA",
        bounds=list(zip(problem.lower, problem.upper)),
        # scipy expects fun(x) >= 0 for inequalities
        constraints=[{"type": "ineq", "fun": lambda z: -problem.constraint(z)}],
        options={
            "maxiter": int(settings.max_evaluations),
            "tol": settings.relative_tolerance * scale,
            "catol": settings.constraint_tolerance,
        },
    )
    return MinimizerOutcome(
        x=np.asarray(result.x, dtype=float),
        converged=bool(result.success),
        status=int(result.status),
        message=str(result.message),
        n_evaluations=int(result.nfev),
    )


@register_minimizer("slsqp")
def _minimize_slsqp(problem: EffortProblem) -> MinimizerOutcome:
    """scipy SLSQP with finite-difference gradients."""
    settings = problem.settings
    n = len(problem.x0)
    result = minimize(
        problem.objective,
        problem.x0,
        method="SLSQP",
        bounds=list(zip(problem.lower, problem.upper)),
        constraints=[{"type": "ineq", "fun": lambda z: -problem.constraint(z)}],
        options={
            # Each iteration costs about n + 1 evaluations
            "maxiter": max(1, int(settings.max_evaluations) // (n + 1)),
            "ftol": settings.relative_tolerance,
        },
    )
    return MinimizerOutcome(
        x=np.asarray(result.x, dtype=float),
        converged=bool(result.success),
        status=int(result.status),
        message=str(result.message),
        n_evaluations=int(result.nfev),
    )


# =============================================================================
# DRIVER
# =============================================================================

def build_problem(
    params: HarvestParams,
    settings: OptimizerSettings,
    tracked: Optional[Callable[[np.ndarray], float]] = None,
) -> EffortProblem:
    """Assemble the bounded, constrained problem for ``params``."""
    n = params.n_variables
    lower = np.zeros(n)
    upper = np.full(n, float(params.effort_cap))
    if np.any(lower > upper):
        raise ConfigurationError(
            f"Effort bounds are empty: [0, {params.effort_cap}]"
        )
    x0 = np.clip(np.full(n, float(settings.initial_effort)), lower, upper)
    return EffortProblem(
        objective=tracked if tracked is not None else (lambda x: objective(x, params)),
        constraint=lambda x: constraint(x, params),
        x0=x0,
        lower=lower,
        upper=upper,
        settings=settings,
    )


def optimize(
    params: HarvestParams,
    settings: Optional[OptimizerSettings] = None,
) -> Tuple[OptimizationResult, SimulationRecord]:
    """Find effort trajectories maximizing total discounted utility.

    Parameters
    ----------
    params : HarvestParams
        Model parameters
    settings : OptimizerSettings, optional
        Solver settings (defaults: auglag, relative tolerance 1e-8,
        20000 evaluations)

    Returns
    -------
    tuple of (OptimizationResult, SimulationRecord)
        The optimum and the full simulation at the optimum

    Raises
    ------
    ConfigurationError
        If the parameters or settings are invalid. Raised before any
        objective evaluation.
    """
    if settings is None:
        settings = OptimizerSettings()
    check_harvest_params(params, settings)
    minimizer = MINIMIZERS[settings.method]

    tracked = _TrackedObjective(params)
    problem = build_problem(params, settings, tracked)

    logger.info(
        "Optimizing %d effort values over %d periods with %s (budget %d evaluations)",
        params.n_variables, params.periods, settings.method, settings.max_evaluations,
    )
    start_time = time.time()
    outcome = minimizer(problem)
    optimization_time = time.time() - start_time

    max_violation = float(np.max(constraint(outcome.x, params)))
    x = project_feasible(outcome.x, params, settings.constraint_tolerance)
    effort1, effort2 = split_effort(x, int(params.periods))
    value = objective(x, params)

    if not outcome.converged:
        logger.warning(
            "%s did not converge after %d evaluations: %s",
            settings.method, outcome.n_evaluations, outcome.message,
        )
    logger.info(
        "Optimization finished in %.2f s: total utility %.6g, max violation %.3g",
        optimization_time, -value, max_violation,
    )

    result = OptimizationResult(
        x=x,
        effort1=effort1,
        effort2=effort2,
        objective_value=value,
        converged=outcome.converged,
        status=outcome.status,
        message=outcome.message,
        n_evaluations=outcome.n_evaluations,
        max_violation=max_violation,
        method=settings.method,
        optimization_time=optimization_time,
        convergence=tracked.convergence,
    )
    record = simulate(effort1, effort2, params)
    return result, record
