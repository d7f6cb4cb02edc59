"""
Tests for aggkin.plotting module.

These are smoke tests that verify plotting functions don't raise exceptions.
"""

import numpy as np
import pytest
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for testing
import matplotlib.pyplot as plt

from aggkin.plotting import plot_concentrations, plot_fit, plot_simplex_history
from aggkin.models import ConfigurationError, FitResult, SimplexVertex
from aggkin.integrator import integrate


class TestPlotConcentrations:
    """Tests for plot_concentrations."""

    def test_returns_figure(self, standard_params, short_meta):
        series = integrate([1.0], standard_params, short_meta)
        fig = plot_concentrations(series, max_species=6)

        assert isinstance(fig, plt.Figure)
        assert len(fig.axes[0].lines) == 6
        plt.close(fig)

    def test_rejects_mass_series(self, linear_series):
        with pytest.raises(ConfigurationError):
            plot_concentrations(linear_series)


class TestPlotFit:
    """Tests for plot_fit."""

    def test_returns_figure(self, standard_params, short_meta):
        model = integrate([1.0], standard_params, short_meta, mode="mass")
        data = integrate([1.0], standard_params * 1.1, short_meta, mode="mass")

        fig = plot_fit(data, model, params=standard_params)
        assert isinstance(fig, plt.Figure)
        assert len(fig.axes) == 2
        plt.close(fig)


class TestPlotSimplexHistory:
    """Tests for plot_simplex_history."""

    def test_returns_figure(self, standard_params):
        result = FitResult(
            best=standard_params,
            error=1e-4,
            simplex=[SimplexVertex(standard_params, 1e-4)],
            history=[1e-2, 1e-3, 1e-3, 1e-4],
            iterations=4
        )
        fig = plot_simplex_history(result)
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    def test_infinite_history(self, standard_params):
        """Iterations with no feasible vertex are left out."""
        result = FitResult(
            best=standard_params,
            error=np.inf,
            simplex=[SimplexVertex(standard_params, np.inf)],
            history=[np.inf, np.inf],
            iterations=2
        )
        fig = plot_simplex_history(result)
        plt.close(fig)
