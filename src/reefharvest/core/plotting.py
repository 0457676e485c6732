"""
Plotting module for ReefHarvest.

Time-series charts of simulation records and optimizer convergence using
matplotlib. Every function returns the Figure it drew on and accepts an
optional Axes so charts can be composed.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

from reefharvest.core import constants as C
from reefharvest.core.optimization import OptimizationResult
from reefharvest.core.simulation import SimulationRecord

REEF_LABELS = ('Reef 1', 'Reef 2')
REEF_COLORS = ('#1D3557', '#E63946')
TOTAL_COLOR = '#2A9D8F'


def _figure_and_axes(ax: Optional[plt.Axes], figsize: Tuple[int, int]):
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure
    return fig, ax


def _plot_reefs(
    ax: plt.Axes,
    values: np.ndarray,
    ylabel: str,
    title: str,
    legend_loc: str,
    drawstyle: str = 'default',
) -> None:
    periods = np.arange(1, values.shape[0] + 1)
    for reef, (label, color) in enumerate(zip(REEF_LABELS, REEF_COLORS)):
        ax.plot(periods, values[:, reef], label=label, color=color,
                linewidth=1.5, drawstyle=drawstyle)
    ax.set_xlabel('Period', fontsize=11)
    ax.set_ylabel(ylabel, fontsize=11)
    ax.set_title(title, fontsize=12)
    ax.legend(loc=legend_loc, fontsize=9)
    ax.grid(True, alpha=0.3)


def plot_stock(
    record: SimulationRecord,
    relative: bool = False,
    carrying_capacity: Optional[float] = None,
    title: str = "Stock",
    figsize: Tuple[int, int] = (10, 5),
    legend_loc: str = 'best',
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """Plot the opening stock of both reefs.

    Parameters
    ----------
    record : SimulationRecord
        Simulation results
    relative : bool
        If True, plot relative to the initial stock
    carrying_capacity : float, optional
        Draw a reference line at K (ignored when ``relative``)
    title : str
        Plot title
    figsize : tuple
        Figure size
    legend_loc : str
        Legend location
    ax : Axes, optional
        Matplotlib axes

    Returns
    -------
    matplotlib.Figure
    """
    fig, ax = _figure_and_axes(ax, figsize)

    stock = np.asarray(record.stock, dtype=float)
    if relative:
        initial = np.where(stock[0] != 0, stock[0], 1.0)
        stock = stock / initial
    ylabel = 'Relative Stock (S/S₀)' if relative else 'Stock'
    _plot_reefs(ax, stock, ylabel, title, legend_loc)

    if relative:
        ax.axhline(y=1, color='k', linestyle='--', alpha=0.5)
    elif carrying_capacity is not None:
        ax.axhline(y=carrying_capacity, color='k', linestyle='--', alpha=0.5,
                   label='Carrying capacity')
        ax.legend(loc=legend_loc, fontsize=9)

    plt.tight_layout()
    return fig


def plot_effort(
    record: SimulationRecord,
    effort_cap: Optional[float] = None,
    title: str = "Fishing Effort",
    figsize: Tuple[int, int] = (10, 5),
    legend_loc: str = 'best',
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """Plot per-reef effort as step lines, optionally with the joint cap."""
    fig, ax = _figure_and_axes(ax, figsize)
    _plot_reefs(ax, record.effort, 'Effort', title, legend_loc, drawstyle='steps-mid')

    if effort_cap is not None:
        periods = np.arange(1, record.periods + 1)
        ax.plot(periods, record.effort.sum(axis=1), color=TOTAL_COLOR,
                linestyle=':', drawstyle='steps-mid', label='Joint effort')
        ax.axhline(y=effort_cap, color='k', linestyle='--', alpha=0.5, label='Cap')
        ax.legend(loc=legend_loc, fontsize=9)

    plt.tight_layout()
    return fig


def plot_harvest(
    record: SimulationRecord,
    stacked: bool = False,
    title: str = "Harvest",
    figsize: Tuple[int, int] = (10, 5),
    legend_loc: str = 'best',
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """Plot harvest per reef and in total.

    Parameters
    ----------
    record : SimulationRecord
        Simulation results
    stacked : bool
        Stack the two reefs as areas instead of drawing lines
    title : str
        Plot title
    figsize : tuple
        Figure size
    legend_loc : str
        Legend location
    ax : Axes, optional
        Matplotlib axes

    Returns
    -------
    matplotlib.Figure
    """
    fig, ax = _figure_and_axes(ax, figsize)
    periods = np.arange(1, record.periods + 1)

    if stacked:
        ax.stackplot(periods, record.harvest[:, 0], record.harvest[:, 1],
                     labels=REEF_LABELS, colors=REEF_COLORS, alpha=0.7)
        ax.set_xlabel('Period', fontsize=11)
        ax.set_ylabel('Harvest', fontsize=11)
        ax.set_title(title, fontsize=12)
        ax.legend(loc=legend_loc, fontsize=9)
        ax.grid(True, alpha=0.3)
    else:
        _plot_reefs(ax, record.harvest, 'Harvest', title, legend_loc)
        ax.plot(periods, record.harvest_total, color=TOTAL_COLOR,
                linewidth=2, label='Total')
        ax.legend(loc=legend_loc, fontsize=9)

    plt.tight_layout()
    return fig


def plot_convergence(
    result: OptimizationResult,
    title: str = "Optimization Convergence",
    figsize: Tuple[int, int] = (8, 4),
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """Plot the best total utility found against evaluation count."""
    fig, ax = _figure_and_axes(ax, figsize)

    best = -np.asarray(result.convergence, dtype=float)
    # Penalized evaluations would flatten the curve
    best = np.where(np.abs(best) < C.PENALTY_VALUE, best, np.nan)
    ax.plot(np.arange(1, len(best) + 1), best, 'b-', linewidth=2)
    ax.set_xlabel('Evaluation')
    ax.set_ylabel('Best Total Utility')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def plot_harvest_summary(
    record: SimulationRecord,
    effort_cap: Optional[float] = None,
    carrying_capacity: Optional[float] = None,
    figsize: Tuple[int, int] = (10, 12),
) -> plt.Figure:
    """Create summary plot with stock, effort, and harvest.

    Parameters
    ----------
    record : SimulationRecord
        Simulation results (a single run or a sweep mean)
    effort_cap : float, optional
        Draw the joint effort and its cap on the effort panel
    carrying_capacity : float, optional
        Draw K on the stock panel
    figsize : tuple
        Figure size

    Returns
    -------
    matplotlib.Figure
    """
    fig, axes = plt.subplots(3, 1, figsize=figsize, sharex=True)

    plot_stock(record, carrying_capacity=carrying_capacity, ax=axes[0])
    plot_effort(record, effort_cap=effort_cap, ax=axes[1])
    plot_harvest(record, ax=axes[2])

    plt.tight_layout()
    return fig

