"""
Parameter sweep runner: integrate every point of a parameter grid.
"""

import itertools
import os
from typing import Iterator, List, Optional

import numpy as np
from tqdm import tqdm

from .models import ConfigurationError, ExperimentConstants, ParameterSet
from .integrator import integrate
from .datafiles import write_series_csv


def parameter_grid(start: ParameterSet, change: ParameterSet,
                   number: List[int]) -> Iterator[ParameterSet]:
    """
    Cartesian grid over the seven parameters.

    Field j takes the values start[j] + change[j] * k for k in range(number[j]),
    fields ordered as ParameterSet.to_vector().
    """
    if len(number) != len(start.to_vector()):
        raise ConfigurationError(f"Grid needs {len(start.to_vector())} counts, got {len(number)}")
    if any(int(c) != c or c < 1 for c in number):
        raise ConfigurationError("Grid counts must be positive integers")

    base = start.to_vector()
    delta = change.to_vector()
    for ks in itertools.product(*(range(int(c)) for c in number)):
        yield ParameterSet.from_vector(base + delta * np.array(ks))


def grid_file_name(params: ParameterSet) -> str:
    """File name encoding every parameter, e.g. '4_0.001_1.5_3600_0.1_0.0039_400.csv'."""
    return '_'.join(f"{v:g}" for v in params.to_vector()) + '.csv'


def run_sweep(grid: List[ParameterSet],
              constants: ExperimentConstants,
              output_dir: str,
              mode: str = "mass",
              nm: Optional[float] = None,
              show_progress: bool = True) -> List[str]:
    """
    Integrate each grid point and write one CSV per point.

    Args:
        grid: parameter sets to simulate
        constants: initial conditions and integration settings shared by all
        output_dir: created if missing
        mode: 'concentration' or 'mass'
        show_progress: Show progress bar

    Returns:
        List of written file paths
    """
    os.makedirs(output_dir, exist_ok=True)
    paths = []
    iterator = tqdm(grid, desc="Parameter sweep") if show_progress else grid

    for params in iterator:
        series = integrate(constants.initial_conditions, params, constants.metaparameters,
                           mode=mode, nm=nm)
        path = os.path.join(output_dir, grid_file_name(params))
        write_series_csv(series, path)
        paths.append(path)

    return paths
