"""
Shared pytest fixtures for the aggkin test suite.
"""

import numpy as np
import pytest

from aggkin.models import ExperimentConstants, Metaparameters, ParameterSet, TimeSeries


@pytest.fixture
def standard_params():
    """All six reactions active, stable at step size 0.01."""
    return ParameterSet(
        n=2,
        forward_rates=(0.5, 0.2, 1.0),
        backward_rates=(0.05, 0.01, 0.1)
    )


@pytest.fixture
def nucleation_params():
    """Nucleation only, n=1: aM <=> A_1 with equilibrium A_1/aM = 10."""
    return ParameterSet(
        n=1,
        forward_rates=(0.0, 0.1, 0.0),
        backward_rates=(0.0, 0.01, 0.0)
    )


@pytest.fixture
def short_meta():
    """500 steps, one sample every 10 steps."""
    return Metaparameters(step_size=0.01, time_length=5.0, points=50)


@pytest.fixture
def standard_constants(short_meta):
    return ExperimentConstants(initial_conditions=(1.0, 0.0, 0.0, 0.0),
                               metaparameters=short_meta)


@pytest.fixture
def low_concentration_constants(short_meta):
    """Second assay for global fits: half the monomer."""
    return ExperimentConstants(initial_conditions=(0.5, 0.0, 0.0, 0.0),
                               metaparameters=short_meta)


@pytest.fixture
def perturbed_guesses(standard_params):
    """Eight vertices: the true parameters plus one scaled field each."""
    base = standard_params.to_vector()
    guesses = [standard_params]
    for j in range(len(base)):
        vector = base.copy()
        vector[j] *= 1.3
        guesses.append(ParameterSet.from_vector(vector))
    return guesses


@pytest.fixture
def linear_series():
    """Mass-mode series with value 10*t at t = 0..4."""
    times = np.arange(5, dtype=float)
    return TimeSeries(times=times, values=10 * times, mode="mass")


@pytest.fixture
def experimental_csv(tmp_path):
    """Single-assay data file."""
    path = tmp_path / "assay.csv"
    path.write_text("0,0.0\n1,0.25\n2,0.5\n3,1.0\n")
    return str(path)
