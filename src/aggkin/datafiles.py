"""
File input and output: experimental data, run/fit configuration, results.

Experimental data formats:
    single assay:  one `time,value` pair per line
    multi assay:   blocks of `time,value` lines separated by '>'

Every read or write opens and closes its file within the call.
"""

import io
import json
import os
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .models import (
    ConfigurationError,
    DataFormatError,
    ExperimentConstants,
    FitConfig,
    FitResult,
    Metaparameters,
    ParameterSet,
    RunConfig,
    TimeSeries,
)


# =============================================================================
# EXPERIMENTAL DATA
# =============================================================================

def _parse_assay(text: str, source: str) -> TimeSeries:
    try:
        df = pd.read_csv(io.StringIO(text), header=None, skip_blank_lines=True,
                         float_precision='round_trip')
    except pd.errors.EmptyDataError:
        raise DataFormatError(f"{source}: assay contains no data") from None
    except pd.errors.ParserError as e:
        raise DataFormatError(f"{source}: {e}") from None

    if df.shape[1] != 2:
        raise DataFormatError(f"{source}: expected 2 columns (time,value), got {df.shape[1]}")

    try:
        df = df.astype(float)
    except ValueError as e:
        raise DataFormatError(f"{source}: non-numeric value ({e})") from None
    if df.isnull().values.any():
        raise DataFormatError(f"{source}: missing values")

    times = df[0].values
    if np.any(np.diff(times) <= 0):
        raise DataFormatError(f"{source}: times must be strictly increasing")

    return TimeSeries(times=times, values=df[1].values, mode="mass")


def load_experimental_data(filepath: str) -> TimeSeries:
    """
    Load a single-assay data file.

    Expected format (no header, trailing blank line allowed):
        0,0.0
        60,0.02
        ...
    """
    with open(filepath) as f:
        text = f.read()
    return _parse_assay(text, filepath)


def load_multi_assay(filepath: str) -> List[TimeSeries]:
    """
    Load a multi-assay data file, one TimeSeries per '>'-separated block.

    Blank blocks (e.g. before a leading '>') are skipped.
    """
    with open(filepath) as f:
        text = f.read()

    blocks = [block for block in text.split('>') if block.strip()]
    if not blocks:
        raise DataFormatError(f"{filepath}: no assays found")
    return [_parse_assay(block, f"{filepath} (assay {i + 1})") for i, block in enumerate(blocks)]


# =============================================================================
# CONFIGURATION
# =============================================================================

def _pick(data: dict, *keys, default=None):
    for key in keys:
        if key in data:
            return data[key]
    return default


def parse_metaparameters(data: dict) -> Metaparameters:
    """
    Metaparameters from a config mapping.

    Accepts camelCase (stepSize) or snake_case (step_size) keys, either at
    the top level or nested under 'metaparameters'.
    """
    nested = data.get('metaparameters') or {}
    if not isinstance(nested, dict):
        raise ConfigurationError("'metaparameters' must be a mapping")
    data = {**data, **nested}
    step_size = _pick(data, 'stepSize', 'step_size')
    time_length = _pick(data, 'timeLength', 'time_length')
    if step_size is None or time_length is None:
        raise ConfigurationError("Configuration needs stepSize and timeLength")
    return Metaparameters(
        step_size=step_size,
        time_length=time_length,
        points=_pick(data, 'points', default=1000),
        output_file=_pick(data, 'outputFile', 'output_file'),
    )


def parse_constants(data: dict) -> ExperimentConstants:
    if not isinstance(data, dict):
        raise ConfigurationError(f"Experiment constants must be a mapping, got {type(data).__name__}")
    if 'initialConditions' not in data:
        raise ConfigurationError("Configuration needs initialConditions")
    return ExperimentConstants(
        initial_conditions=data['initialConditions'],
        metaparameters=parse_metaparameters(data),
    )


def _optional_number(value, name: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{name}' must be a number, got {value!r}") from None


def _read_json(filepath: str) -> dict:
    with open(filepath) as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{filepath}: invalid JSON ({e})") from None


def load_run_config(filepath: str) -> RunConfig:
    """
    Load a simulation run configuration.

    Example:
        {"initialConditions": [1e-5, 0, 0, 0], "n": 4,
         "forwardRates": [0.001, 1.5, 3600], "backwardRates": [0.1, 0.0039, 400],
         "stepSize": 0.001, "timeLength": 100, "points": 1000,
         "outputFile": "output.csv"}
    """
    data = _read_json(filepath)
    return RunConfig(
        constants=parse_constants(data),
        params=ParameterSet.from_dict(data),
        nm=_optional_number(data.get('nm'), 'nm'),
    )


def load_fit_config(filepath: str) -> FitConfig:
    """
    Load a fitting configuration.

    Example:
        {"constants": {"initialConditions": [1.2e-4, 0, 0, 0],
                       "stepSize": 0.001, "timeLength": 170000, "points": 10000},
         "guesses": [{"n": 4, "forwardRates": [...], "backwardRates": [...]}, ...],
         "iterations": 100}

    `constants` may be a list, one entry per assay, for a global fit.
    """
    data = _read_json(filepath)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{filepath}: fit configuration must be a JSON object")
    constants = data.get('constants')
    if constants is None:
        raise ConfigurationError(f"{filepath}: missing 'constants'")
    if isinstance(constants, dict):
        constants = [constants]
    guesses = data.get('guesses', [])
    if not isinstance(constants, list) or not isinstance(guesses, list):
        raise ConfigurationError(f"{filepath}: 'constants' and 'guesses' must be lists")

    return FitConfig(
        constants=tuple(parse_constants(c) for c in constants),
        guesses=tuple(ParameterSet.from_dict(g) for g in guesses),
        iterations=data.get('iterations', 100),
        nm=_optional_number(data.get('nm'), 'nm'),
    )


# =============================================================================
# OUTPUT
# =============================================================================

def _fmt(value) -> str:
    return format(float(value), '.17g')


def write_series_csv(series: TimeSeries, filepath: str) -> None:
    """
    Write `time,state_0,...,state_k` rows (concentration mode) or
    `time,mass` rows (mass mode), one per sample.
    """
    with open(filepath, 'w') as f:
        if series.mode == "concentration":
            for t, state in zip(series.times, series.values):
                f.write(','.join([_fmt(t)] + [_fmt(c) for c in state]) + '\n')
        else:
            for t, value in zip(series.times, series.scalar_values()):
                f.write(f"{_fmt(t)},{_fmt(value)}\n")


def read_series_csv(filepath: str, mode: str = "mass") -> TimeSeries:
    """
    Read a file written by write_series_csv.

    Concentration rows grow with the aggregate chain, so the frame is read
    as wide as the longest row and each state is cut at its first missing
    column.
    """
    with open(filepath) as f:
        text = f.read()
    width = max((line.count(',') + 1 for line in text.splitlines() if line.strip()), default=0)
    if width < 2:
        raise DataFormatError(f"{filepath}: expected time,value rows")
    df = pd.read_csv(io.StringIO(text), header=None, names=list(range(width)),
                     skip_blank_lines=True, float_precision='round_trip')

    times = df[0].to_numpy(dtype=float)
    if mode == "concentration":
        rows = df.iloc[:, 1:].to_numpy(dtype=float)
        values = [row[:np.argmax(np.isnan(row))] if np.isnan(row).any() else row
                  for row in rows]
    else:
        values = df[1].to_numpy(dtype=float)
    return TimeSeries(times=times, values=values, mode=mode)


def export_parameters(params: ParameterSet, filepath: str,
                      constants: Optional[ExperimentConstants] = None,
                      nm: Optional[float] = None) -> None:
    """
    Write a parameter set in run-config JSON form, ready for a simulation run.
    """
    content = params.to_dict()
    if constants is not None:
        meta = constants.metaparameters
        content.update({
            'initialConditions': list(constants.initial_conditions),
            'stepSize': meta.step_size,
            'timeLength': meta.time_length,
            'points': meta.points,
        })
        if meta.output_file is not None:
            content['outputFile'] = meta.output_file
    if nm is not None:
        content['nm'] = nm

    with open(filepath, 'w') as f:
        json.dump(content, f, indent=2)


def write_fit_result(result: FitResult, filepath: str) -> None:
    """Write the best parameter set, its error and the final simplex as JSON."""
    def _error(e):
        return e if np.isfinite(e) else None

    content = {
        'best': result.best.to_dict(),
        'error': _error(result.error),
        'iterations': result.iterations,
        'history': [_error(e) for e in result.history],
        'simplex': [
            {**vertex.params.to_dict(), 'error': _error(vertex.error)}
            for vertex in result.simplex
        ],
    }
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'w') as f:
        json.dump(content, f, indent=2)


def load_guesses(filepath: str) -> Sequence[ParameterSet]:
    """Parameter sets from a JSON list (e.g. the 'simplex' of a previous fit)."""
    data = _read_json(filepath)
    if isinstance(data, dict):
        data = data.get('simplex', data.get('guesses', []))
    if not isinstance(data, list):
        raise ConfigurationError(f"{filepath}: expected a list of parameter sets")
    return [ParameterSet.from_dict(entry) for entry in data]
