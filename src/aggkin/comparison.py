"""
Scoring of simulated aggregate-mass curves against experimental data.

Both curves are normalised by their value at the last experimental time and
compared by mean squared error. Simulated values at experimental times come
from the two bracketing samples: their arithmetic mean, not a time-weighted
interpolation.
"""

import math
from typing import Callable, List, Optional, Sequence, Tuple
import warnings

import numpy as np

from .models import (
    DataFormatError,
    ExperimentConstants,
    NumericalDivergenceWarning,
    ParameterSet,
    TimeSeries,
)
from .integrator import generate_mass

SimulateFn = Callable[[ExperimentConstants, ParameterSet, Optional[float]], TimeSeries]


def binary_search(times: np.ndarray, time: float) -> Tuple[int, int]:
    """
    Locate the samples bracketing `time` in a sorted time array.

    Returns:
        (m, m) on an exact hit, otherwise (L, R) with times[L] < time < times[R].
        Out-of-range queries return (-1, 0) or (len-1, len).
    """
    left = 0
    right = len(times) - 1
    while left <= right:
        m = (left + right) // 2
        if times[m] < time:
            left = m + 1
        elif times[m] > time:
            right = m - 1
        else:
            return m, m
    return right, left


def interpolate_value(series: TimeSeries, time: float) -> float:
    """
    Simulated value at `time`: the sample itself on an exact hit, else the
    mean of the two bracketing samples. Queries outside the sampled range
    use the nearest end sample.
    """
    values = series.scalar_values()
    left, right = binary_search(series.times, time)
    left = min(max(left, 0), len(values) - 1)
    right = min(max(right, 0), len(values) - 1)
    return (values[left] + values[right]) / 2


def normalize_series(series: TimeSeries, time: float) -> TimeSeries:
    """Divide every value by the (interpolated) value at `time`."""
    anchor = interpolate_value(series, time)
    return TimeSeries(times=series.times.copy(),
                      values=series.scalar_values() / anchor,
                      mode="mass")


def normalize_experimental(data: TimeSeries) -> TimeSeries:
    """Normalise experimental data by its own final value."""
    anchor = interpolate_value(data, data.final_time)
    if anchor == 0 or not np.isfinite(anchor):
        raise DataFormatError(
            f"Cannot normalise experimental data: value at t={data.final_time:g} is {anchor}"
        )
    return normalize_series(data, data.final_time)


def mse(real_data: TimeSeries, modeled_data: TimeSeries) -> float:
    """Mean squared error over every experimental point."""
    real_values = real_data.scalar_values()
    modeled = np.array([interpolate_value(modeled_data, t) for t in real_data.times])
    return float(np.mean((real_values - modeled) ** 2))


def compute_error(params: ParameterSet,
                  constants: ExperimentConstants,
                  real_data: TimeSeries,
                  nm: Optional[float] = None,
                  simulate: Optional[SimulateFn] = None) -> float:
    """
    Objective value of one candidate against one (normalised) dataset.

    Invalid parameter sets score +inf without simulating; so does a
    simulation whose error is not finite.
    """
    if not params.is_valid:
        return math.inf
    simulate = simulate or generate_mass

    with warnings.catch_warnings(), np.errstate(all='ignore'):
        warnings.simplefilter("ignore", NumericalDivergenceWarning)
        warnings.simplefilter("ignore", RuntimeWarning)
        modeled = simulate(constants, params, nm)
        modeled = normalize_series(modeled, real_data.final_time)
        error = mse(real_data, modeled)

    if not math.isfinite(error):
        return math.inf
    return error


def compute_global_error(params: ParameterSet,
                         constants_list: Sequence[ExperimentConstants],
                         datasets: Sequence[TimeSeries],
                         nm: Optional[float] = None,
                         simulate: Optional[SimulateFn] = None) -> float:
    """Unweighted mean of compute_error across datasets."""
    if len(constants_list) != len(datasets):
        raise DataFormatError(
            f"Got {len(datasets)} datasets for {len(constants_list)} experiment configurations"
        )
    if not params.is_valid:
        return math.inf
    errors: List[float] = [
        compute_error(params, constants, data, nm=nm, simulate=simulate)
        for constants, data in zip(constants_list, datasets)
    ]
    return float(np.mean(errors))
