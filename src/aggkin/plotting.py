"""
Visualization functions for aggregation simulations and fits.
"""

from typing import Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

from .models import ConfigurationError, FitResult, ParameterSet, TimeSeries
from .comparison import normalize_series
from .analysis import fit_summary


def _species_label(i: int) -> str:
    if i == 0:
        return 'iM'
    if i == 1:
        return 'aM'
    return f'A_{i - 1}'


def plot_concentrations(series: TimeSeries,
                        max_species: int = 5,
                        figsize: Tuple[int, int] = (10, 5)) -> plt.Figure:
    """
    Plot the first `max_species` species of a concentration series.
    """
    if series.mode != "concentration":
        raise ConfigurationError("plot_concentrations needs a concentration-mode series")

    fig, ax = plt.subplots(figsize=figsize)
    width = min(max_species, max(len(s) for s in series.values))
    cmap = plt.get_cmap('hsv')

    for i in range(width):
        conc = np.array([s[i] if i < len(s) else 0.0 for s in series.values])
        ax.plot(series.times, conc, color=cmap(i / width),
                linewidth=1.5, label=_species_label(i))

    ax.set_xlabel('Time (s)', fontsize=12)
    ax.set_ylabel('Molarity (M)', fontsize=12)
    ax.set_title('Species Concentrations', fontsize=12)
    ax.legend(loc='upper right')
    ax.grid(True, alpha=0.3)
    ax.set_ylim(0, None)

    plt.tight_layout()
    return fig


def plot_fit(real_data: TimeSeries, modeled_data: TimeSeries,
             params: Optional[ParameterSet] = None,
             figsize: Tuple[int, int] = (12, 5)) -> plt.Figure:
    """
    Normalised data vs model (left) and residuals (right).

    Both curves are normalised at the last experimental time, as in fitting.
    """
    anchor = real_data.final_time
    data = normalize_series(real_data, anchor)
    model = normalize_series(modeled_data, anchor)
    summary = fit_summary(data, model)

    fig, axes = plt.subplots(1, 2, figsize=figsize)

    ax1 = axes[0]
    ax1.plot(data.times, data.values, 'ko', markersize=4, label='Data')
    ax1.plot(model.times, model.values, 'b-', linewidth=2,
             label=f'Model (MSE={summary["mse"]:.3e})')
    ax1.set_xlabel('Time (s)', fontsize=12)
    ax1.set_ylabel('Normalised aggregate mass', fontsize=12)
    title = 'Model Fit'
    if params is not None:
        title += f' (n={params.n:.3g})'
    ax1.set_title(title, fontsize=12)
    ax1.legend(loc='lower right')
    ax1.grid(True, alpha=0.3)

    ax2 = axes[1]
    ax2.scatter(data.times, summary['residuals'], c='blue', s=20, alpha=0.7)
    ax2.axhline(0, color='black', linestyle='-', linewidth=1)
    ax2.set_xlabel('Time (s)', fontsize=12)
    ax2.set_ylabel('Residual', fontsize=12)
    ax2.set_title('Residuals', fontsize=12)
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def plot_simplex_history(result: FitResult,
                         figsize: Tuple[int, int] = (8, 5)) -> plt.Figure:
    """Best error after each Nelder-Mead iteration."""
    fig, ax = plt.subplots(figsize=figsize)
    history = np.array(result.history, dtype=float)
    iterations = np.arange(1, len(history) + 1)
    finite = np.isfinite(history) & (history > 0)

    ax.plot(iterations[finite], history[finite], 'b.-', linewidth=1.5)
    if np.any(finite):
        ax.set_yscale('log')
    ax.set_xlabel('Iteration', fontsize=12)
    ax.set_ylabel('Best MSE', fontsize=12)
    ax.set_title('Nelder-Mead Convergence', fontsize=12)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig
