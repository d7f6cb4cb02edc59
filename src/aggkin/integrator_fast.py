"""
Numba-accelerated aggregate-mass integration.

Same Euler scheme, growth and truncation rules as integrator.integrate in
'mass' mode, compiled to a single loop. The state lives in a preallocated
buffer with a live length; the buffer doubles when the aggregate chain
outgrows it.

First call includes JIT compilation overhead.
"""

from typing import Optional, Sequence

import numpy as np
from numba import njit

from .models import MIN_STATE_LENGTH, ExperimentConstants, Metaparameters, ParameterSet, TimeSeries
from .reaction import ReactionModel, pad_state


@njit(cache=True)
def _euler_mass_kernel(state0: np.ndarray, n: float, nm: float,
                       k_a: float, k_n: float, k_e: float,
                       k_am: float, k_nm: float, k_em: float,
                       step_size: float, n_steps: int, interval: int,
                       min_length: int) -> tuple:
    """
    Compiled Euler loop.

    Returns:
        times, masses arrays (initial sample, regular samples, final sample)
    """
    length = len(state0)
    capacity = max(2 * length, 64)
    buf = np.zeros(capacity)
    nxt = np.zeros(capacity)
    buf[:length] = state0

    n_records = n_steps // interval + 2
    times = np.zeros(n_records)
    masses = np.zeros(n_records)
    masses[0] = np.sum(buf[2:length])
    record_idx = 1
    t = 0.0

    for step in range(1, n_steps + 1):
        if length + 1 > capacity:
            capacity *= 2
            grown = np.zeros(capacity)
            grown[:length] = buf[:length]
            buf = grown
            nxt = np.zeros(capacity)

        i_m = buf[0]
        a_m = buf[1]
        last = length - 1

        activation = k_a * i_m - k_am * a_m
        nucleation = k_n * a_m ** nm
        denucleation = k_nm * buf[2]
        k_e_am = k_e * a_m

        elongation_total = 0.0
        delongation_total = 0.0
        for i in range(2, length):
            if i == 2:
                diff = nucleation - denucleation
            else:
                diff = 0.0
            diff -= k_e_am * buf[i]
            elongation_total += k_e_am * buf[i]
            if i > 2:
                diff += k_e_am * buf[i - 1]
                diff -= k_em * buf[i]
                delongation_total += k_em * buf[i]
            if i < last:
                diff += k_em * buf[i + 1]
            nxt[i] = buf[i] + step_size * diff
        nxt[length] = step_size * (k_e_am * buf[last])

        nxt[0] = i_m + step_size * -activation
        nxt[1] = a_m + step_size * (activation - n * nucleation + n * denucleation
                                    - elongation_total + delongation_total)

        new_length = length + 1
        while new_length > min_length and nxt[new_length - 1] == 0.0:
            new_length -= 1

        buf, nxt = nxt, buf
        length = new_length
        t = step * step_size

        if step % interval == 0:
            times[record_idx] = t
            masses[record_idx] = np.sum(buf[2:length])
            record_idx += 1

    if times[record_idx - 1] != t:
        times[record_idx] = t
        masses[record_idx] = np.sum(buf[2:length])
        record_idx += 1

    return times[:record_idx], masses[:record_idx]


def integrate_mass_numba(initial_conditions: Sequence[float],
                         params: ParameterSet,
                         metaparameters: Metaparameters,
                         nm: Optional[float] = None) -> TimeSeries:
    """
    Numba-accelerated equivalent of integrate(..., mode='mass').

    No progress callback and no divergence warning: this is the fitting
    hot path.
    """
    # Validates rates and step size before entering compiled code
    model = ReactionModel.from_parameters(params, metaparameters.step_size, nm)
    state0 = pad_state(initial_conditions)

    times, masses = _euler_mass_kernel(
        state0, model.n, model.nm,
        model.k_a, model.k_n, model.k_e,
        model.k_am, model.k_nm, model.k_em,
        model.step_size, metaparameters.n_steps, metaparameters.sample_interval,
        MIN_STATE_LENGTH
    )
    return TimeSeries(times=times, values=masses, mode="mass")


def generate_mass_numba(constants: ExperimentConstants, params: ParameterSet,
                        nm: Optional[float] = None) -> TimeSeries:
    """Aggregate-mass integration for one experiment (numba kernel)."""
    return integrate_mass_numba(constants.initial_conditions, params,
                                constants.metaparameters, nm=nm)
