"""
Fixed-step forward-Euler integration of the aggregation network.

The state vector grows by one slot per step (the newest aggregate size) and
trailing slots that are exactly zero are dropped again, so the live
dimensionality follows the aggregate sizes that actually carry mass. The
floor length is MIN_STATE_LENGTH.

Stability is the caller's responsibility: a step size that is large compared
with the fastest rate produces oscillating or exploding concentrations. This
is reported with a NumericalDivergenceWarning, never corrected.
"""

from typing import Callable, Optional, Sequence, Union
import warnings

import numpy as np

from .models import (
    ConfigurationError,
    ExperimentConstants,
    Metaparameters,
    NumericalDivergenceWarning,
    ParameterSet,
    TimeSeries,
)
from .reaction import ReactionModel, aggregate_mass, pad_state, trim_state

# Maximum number of progress callbacks per integration
PROGRESS_UPDATES = 20

MODES = ("concentration", "mass")


def integrate(initial_conditions: Sequence[float],
              params: ParameterSet,
              metaparameters: Metaparameters,
              mode: str = "concentration",
              nm: Optional[float] = None,
              progress: Optional[Callable[[float], None]] = None) -> TimeSeries:
    """
    Integrate from t=0 to metaparameters.time_length.

    Args:
        initial_conditions: [iM, aM, A_1, ...] at t=0
        params: kinetic parameters
        metaparameters: step size, time length and number of points
        mode: 'concentration' records full state vectors, 'mass' records
            the aggregate mass sum(state[2:])
        nm: order of the slow nucleation step (defaults to params.n)
        progress: called with the fraction complete, PROGRESS_UPDATES times

    Returns:
        TimeSeries starting at (0, initial snapshot) and always ending with
        the final integrated state
    """
    if mode not in MODES:
        raise ConfigurationError(f"Unknown integration mode: {mode}")
    model = ReactionModel.from_parameters(params, metaparameters.step_size, nm)

    snapshot = (lambda s: s.copy()) if mode == "concentration" else aggregate_mass

    state = pad_state(initial_conditions)
    n_steps = metaparameters.n_steps
    interval = metaparameters.sample_interval
    progress_every = max(1, n_steps // PROGRESS_UPDATES)

    times = [0.0]
    values = [snapshot(state)]
    diverged = False
    step = 0
    t = 0.0

    while step < n_steps:
        state = trim_state(model.step(state))
        step += 1
        t = step * metaparameters.step_size

        if not diverged and not _is_physical(state):
            diverged = True
            warnings.warn(
                f"Concentrations became negative or non-finite at t={t:g}; "
                f"step size {metaparameters.step_size:g} is too large for these rates",
                NumericalDivergenceWarning,
                stacklevel=2
            )

        if step % interval == 0:
            times.append(t)
            values.append(snapshot(state))

        if progress is not None and step % progress_every == 0:
            progress(step / n_steps)

    if times[-1] != t:
        times.append(t)
        values.append(snapshot(state))

    if mode == "mass":
        values = np.array(values)

    return TimeSeries(times=np.array(times), values=values, mode=mode)


def _is_physical(state: np.ndarray) -> bool:
    return bool(np.all(np.isfinite(state)) and np.all(state >= 0))


def generate_concentrations(constants: ExperimentConstants, params: ParameterSet,
                            nm: Optional[float] = None,
                            progress: Optional[Callable[[float], None]] = None) -> TimeSeries:
    """Concentration-series integration for one experiment."""
    return integrate(constants.initial_conditions, params, constants.metaparameters,
                     mode="concentration", nm=nm, progress=progress)


def generate_mass(constants: ExperimentConstants, params: ParameterSet,
                  nm: Optional[float] = None,
                  progress: Optional[Callable[[float], None]] = None) -> TimeSeries:
    """Aggregate-mass integration for one experiment."""
    return integrate(constants.initial_conditions, params, constants.metaparameters,
                     mode="mass", nm=nm, progress=progress)


def absorbance_series(series: TimeSeries,
                      absorptivity: Union[Callable[[int], float], Sequence[float]]) -> TimeSeries:
    """
    Beer-Lambert observable: sum_i epsilon(i) * c_i per sample.

    Args:
        series: concentration-mode TimeSeries
        absorptivity: callable of species index, or a sequence of molar
            absorptivities (species past its end reuse the last entry)

    Returns:
        Scalar TimeSeries in 'mass' layout holding absorbance values
    """
    if series.mode != "concentration":
        raise ConfigurationError("Absorbance requires a concentration-mode series")

    if callable(absorptivity):
        coefficient = absorptivity
    else:
        eps = [float(e) for e in absorptivity]
        if not eps:
            raise ConfigurationError("Absorptivity sequence must not be empty")

        def coefficient(i):
            return eps[min(i, len(eps) - 1)]

    absorbance = np.array([
        sum(coefficient(i) * c for i, c in enumerate(state))
        for state in series.values
    ])
    return TimeSeries(times=series.times.copy(), values=absorbance, mode="mass")
