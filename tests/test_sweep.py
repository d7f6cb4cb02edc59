"""
Tests for aggkin.sweep module.
"""

import os

import numpy as np
import pytest

from aggkin.models import ConfigurationError, ParameterSet
from aggkin.sweep import grid_file_name, parameter_grid, run_sweep
from aggkin.datafiles import read_series_csv


@pytest.fixture
def start():
    return ParameterSet(2, (0.5, 0.2, 1.0), (0.05, 0.01, 0.1))


@pytest.fixture
def change():
    return ParameterSet(1, (0.1, 0.0, 0.5), (0.0, 0.0, 0.0))


class TestParameterGrid:
    """Tests for parameter_grid."""

    def test_size_is_product(self, start, change):
        grid = list(parameter_grid(start, change, [2, 1, 1, 3, 1, 1, 1]))
        assert len(grid) == 6

    def test_values(self, start, change):
        grid = list(parameter_grid(start, change, [1, 1, 1, 3, 1, 1, 1]))
        assert [p.forward_rates[2] for p in grid] == [1.0, 1.5, 2.0]
        assert all(p.n == 2 for p in grid)

    def test_first_point_is_start(self, start, change):
        first = next(parameter_grid(start, change, [2] * 7))
        np.testing.assert_allclose(first.to_vector(), start.to_vector())

    def test_wrong_count_length(self, start, change):
        with pytest.raises(ConfigurationError):
            list(parameter_grid(start, change, [1, 1, 1]))

    @pytest.mark.parametrize("bad", [0, 1.5])
    def test_bad_counts(self, start, change, bad):
        with pytest.raises(ConfigurationError):
            list(parameter_grid(start, change, [bad, 1, 1, 1, 1, 1, 1]))


class TestRunSweep:
    """Tests for run_sweep."""

    def test_file_name(self, start):
        assert grid_file_name(start) == "2_0.5_0.2_1_0.05_0.01_0.1.csv"

    def test_writes_one_file_per_point(self, tmp_path, start, change, standard_constants):
        grid = list(parameter_grid(start, change, [2, 1, 1, 1, 1, 1, 1]))
        output_dir = str(tmp_path / "sweep")

        paths = run_sweep(grid, standard_constants, output_dir, show_progress=False)

        assert len(paths) == 2
        assert all(os.path.exists(p) for p in paths)
        series = read_series_csv(paths[0])
        assert series.times[0] == 0.0
        assert series.values[-1] > 0.0
