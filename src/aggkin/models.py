"""
Data structures for the aggregation kinetics model.
"""

from dataclasses import dataclass, field
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np


# Monomer forms plus the first two aggregate slots
MIN_STATE_LENGTH = 4

# Number of rate constants in each direction: activation, nucleation, elongation
RATE_CONSTANTS = 3


class ConfigurationError(ValueError):
    """Invalid rates, metaparameters or run configuration."""


class DataFormatError(ValueError):
    """Experimental data that cannot be parsed or normalised."""


class NumericalDivergenceWarning(RuntimeWarning):
    """Forward-Euler integration produced negative or non-finite concentrations."""


@dataclass(frozen=True)
class ParameterSet:
    """
    Kinetic parameters of the aggregation mechanism.

    n: nucleation order (monomers consumed per nucleus)
    forward_rates: (k_a, k_n, k_e) activation, nucleation, elongation
    backward_rates: (k_am, k_nm, k_em) deactivation, denucleation, delongation

    Instances are immutable; the arithmetic operators are component-wise and
    return new instances, which is all the simplex geometry needs.
    """
    n: float
    forward_rates: Tuple[float, float, float]
    backward_rates: Tuple[float, float, float]

    def __post_init__(self):
        try:
            object.__setattr__(self, 'n', float(self.n))
            object.__setattr__(self, 'forward_rates', tuple(float(k) for k in self.forward_rates))
            object.__setattr__(self, 'backward_rates', tuple(float(k) for k in self.backward_rates))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Parameter set must hold numbers ({e})") from None
        validate_rates(self.forward_rates, self.backward_rates)

    @classmethod
    def from_vector(cls, vector: Sequence[float]) -> 'ParameterSet':
        """Build from [n, k_a, k_n, k_e, k_am, k_nm, k_em]."""
        if len(vector) != 1 + 2 * RATE_CONSTANTS:
            raise ConfigurationError(
                f"Parameter vector must have {1 + 2 * RATE_CONSTANTS} entries, got {len(vector)}"
            )
        return cls(
            n=vector[0],
            forward_rates=tuple(vector[1:1 + RATE_CONSTANTS]),
            backward_rates=tuple(vector[1 + RATE_CONSTANTS:]),
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'ParameterSet':
        """Build from a config mapping with keys n, forwardRates, backwardRates."""
        try:
            return cls(n=data['n'],
                       forward_rates=data['forwardRates'],
                       backward_rates=data['backwardRates'])
        except KeyError as e:
            raise ConfigurationError(f"Parameter set is missing key {e}") from None
        except TypeError:
            raise ConfigurationError(f"Parameter set must be a mapping, got {type(data).__name__}") from None

    def to_vector(self) -> np.ndarray:
        return np.array([self.n, *self.forward_rates, *self.backward_rates])

    def to_dict(self) -> dict:
        return {
            'n': self.n,
            'forwardRates': list(self.forward_rates),
            'backwardRates': list(self.backward_rates),
        }

    @property
    def is_valid(self) -> bool:
        """Physically valid: every field non-negative."""
        return bool(np.all(self.to_vector() >= 0))

    def __add__(self, other: 'ParameterSet') -> 'ParameterSet':
        return ParameterSet.from_vector(self.to_vector() + other.to_vector())

    def __sub__(self, other: 'ParameterSet') -> 'ParameterSet':
        return ParameterSet.from_vector(self.to_vector() - other.to_vector())

    def __mul__(self, scalar: float) -> 'ParameterSet':
        return ParameterSet.from_vector(self.to_vector() * scalar)

    __rmul__ = __mul__

    def __str__(self):
        fw = ', '.join(f"{k:.4e}" for k in self.forward_rates)
        bw = ', '.join(f"{k:.4e}" for k in self.backward_rates)
        return f"n={self.n:.4g} forward=[{fw}] backward=[{bw}]"


def _is_count(value, minimum: int) -> bool:
    """A whole number of at least `minimum`, given as int or integral float."""
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return float(value).is_integer() and value >= minimum


def validate_rates(forward_rates: Sequence[float], backward_rates: Sequence[float]) -> None:
    """Both rate arrays must carry the activation, nucleation and elongation slots."""
    if len(forward_rates) != RATE_CONSTANTS or len(backward_rates) != RATE_CONSTANTS:
        raise ConfigurationError(
            f"Incorrect number of rates: expected {RATE_CONSTANTS} forward and "
            f"{RATE_CONSTANTS} backward, got {len(forward_rates)} and {len(backward_rates)}"
        )


@dataclass(frozen=True)
class Metaparameters:
    """Integration settings for one simulation."""
    step_size: float
    time_length: float
    points: int = 1000
    output_file: Optional[str] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, 'step_size', float(self.step_size))
            object.__setattr__(self, 'time_length', float(self.time_length))
        except (TypeError, ValueError):
            raise ConfigurationError("Step size and time length must be numbers") from None
        if not self.step_size > 0:
            raise ConfigurationError("Step size must be a positive number")
        if not self.time_length >= self.step_size:
            raise ConfigurationError("Time length must be longer than step size")
        if not _is_count(self.points, minimum=1):
            raise ConfigurationError("Points must be a positive integer")
        object.__setattr__(self, 'points', int(self.points))

    @property
    def n_steps(self) -> int:
        """Number of Euler steps taken to cover time_length."""
        return int(math.ceil(self.time_length / self.step_size - 1e-9))

    @property
    def sample_interval(self) -> int:
        """Steps between recorded samples (at least one)."""
        return max(1, int(math.floor(self.time_length / self.points / self.step_size)))


@dataclass(frozen=True)
class ExperimentConstants:
    """Initial conditions and integration settings of one experiment."""
    initial_conditions: Tuple[float, ...]
    metaparameters: Metaparameters

    def __post_init__(self):
        try:
            object.__setattr__(self, 'initial_conditions',
                               tuple(float(c) for c in self.initial_conditions))
        except (TypeError, ValueError):
            raise ConfigurationError("Initial conditions must be a list of numbers") from None
        if len(self.initial_conditions) == 0:
            raise ConfigurationError("Initial conditions must not be empty")
        if any(c < 0 for c in self.initial_conditions):
            raise ConfigurationError("Initial concentrations must be non-negative")


@dataclass
class TimeSeries:
    """
    Sampled output of an integration, or experimental data.

    In mass mode (and for experimental data) `values` is a 1D array. In
    concentration mode `values` is a list of state vectors whose lengths may
    differ between samples.
    """
    times: np.ndarray
    values: object
    mode: str = "mass"

    def __len__(self):
        return len(self.times)

    @property
    def final_time(self) -> float:
        return float(self.times[-1])

    def scalar_values(self) -> np.ndarray:
        """Values as a float array (mass mode) or aggregate mass per sample."""
        if self.mode == "mass":
            return np.asarray(self.values, dtype=float)
        return np.array([np.sum(state[2:]) for state in self.values])


@dataclass
class SimplexVertex:
    """A candidate parameter set and its objective value."""
    params: ParameterSet
    error: float


@dataclass
class FitResult:
    """Outcome of a Nelder-Mead run."""
    best: ParameterSet
    error: float
    simplex: List[SimplexVertex]
    history: List[float] = field(default_factory=list)
    iterations: int = 0

    def __str__(self):
        lines = [
            "",
            "Nelder-Mead Fit Results:",
            "========================",
            f"n        = {self.best.n:.4e}",
            f"k_a      = {self.best.forward_rates[0]:.4e}   k_am = {self.best.backward_rates[0]:.4e}",
            f"k_n      = {self.best.forward_rates[1]:.4e}   k_nm = {self.best.backward_rates[1]:.4e}",
            f"k_e      = {self.best.forward_rates[2]:.4e}   k_em = {self.best.backward_rates[2]:.4e}",
            "",
            f"MSE      = {self.error:.4e}",
            f"Iterations: {self.iterations}",
        ]
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class RunConfig:
    """A single simulation run: one experiment and one parameter set."""
    constants: ExperimentConstants
    params: ParameterSet
    nm: Optional[float] = None


@dataclass(frozen=True)
class FitConfig:
    """
    A fitting run. One entry in `constants` per experimental assay; more
    than one entry means a global fit.
    """
    constants: Tuple[ExperimentConstants, ...]
    guesses: Tuple[ParameterSet, ...]
    iterations: int = 100
    nm: Optional[float] = None

    def __post_init__(self):
        if len(self.constants) == 0:
            raise ConfigurationError("Fit configuration needs at least one experiment")
        if len(self.guesses) < 2:
            raise ConfigurationError("Nelder-Mead needs at least two initial guesses")
        if not _is_count(self.iterations, minimum=0):
            raise ConfigurationError("Iterations must be a non-negative integer")
        object.__setattr__(self, 'iterations', int(self.iterations))

    @property
    def is_global(self) -> bool:
        return len(self.constants) > 1
