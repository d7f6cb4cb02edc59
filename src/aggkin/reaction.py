"""
Reaction network for monomer activation, nucleation and elongation.

Mechanism:
    iM <=> aM                  (activation, k_a / k_am)
    n aM <=> A_1               (nucleation, k_n / k_nm)
    aM + A_i <=> A_(i+1)       (elongation, k_e / k_em)

State layout: [iM, aM, A_1, A_2, ..., A_k]

Rate equations (nm is the monomer order of the slow nucleation step):
    d[iM]/dt  = -k_a[iM] + k_am[aM]
    d[aM]/dt  = +k_a[iM] - k_am[aM] - n k_n[aM]^nm + n k_nm[A_1]
                - sum_i k_e[aM][A_i] + sum_(i>=2) k_em[A_i]
    d[A_1]/dt = +k_n[aM]^nm - k_nm[A_1] - k_e[aM][A_1] + k_em[A_2]
    d[A_i]/dt = +k_e[aM][A_(i-1)] - k_em[A_i] - k_e[aM][A_i] + k_em[A_(i+1)]

The last live aggregate has no A_(k+1) to receive monomer from, and the flux
k_e[aM][A_k] out of it seeds a new slot A_(k+1) appended to the next state.
"""

from typing import Optional, Sequence

import numpy as np

from .models import MIN_STATE_LENGTH, ParameterSet, validate_rates, ConfigurationError


class ReactionModel:
    """
    Forward-Euler step function for the aggregation network.

    The model holds only rate constants; `step` is a pure function of the
    state vector and returns a new vector one element longer than its input.
    """

    def __init__(self, n: float, forward_rates: Sequence[float],
                 backward_rates: Sequence[float], step_size: float,
                 nm: Optional[float] = None):
        validate_rates(forward_rates, backward_rates)
        if not step_size > 0:
            raise ConfigurationError("Step size must be a positive number")
        self.n = float(n)
        self.nm = self.n if nm is None else float(nm)
        self.k_a, self.k_n, self.k_e = (float(k) for k in forward_rates)
        self.k_am, self.k_nm, self.k_em = (float(k) for k in backward_rates)
        self.step_size = float(step_size)

    @classmethod
    def from_parameters(cls, params: ParameterSet, step_size: float,
                        nm: Optional[float] = None) -> 'ReactionModel':
        return cls(params.n, params.forward_rates, params.backward_rates, step_size, nm)

    def derivatives(self, state: np.ndarray) -> np.ndarray:
        """
        Net flux of every species, plus the flux into the not-yet-live slot.

        Args:
            state: [iM, aM, A_1, ..., A_k] with k >= 2

        Returns:
            Array of length len(state) + 1
        """
        i_m, a_m = state[0], state[1]
        agg = state[2:]

        activation = self.k_a * i_m - self.k_am * a_m
        nucleation = self.k_n * a_m ** self.nm
        denucleation = self.k_nm * agg[0]
        elongation = self.k_e * a_m * agg      # A_i -> A_(i+1), every live aggregate
        delongation = self.k_em * agg[1:]      # A_i -> A_(i-1), i >= 2

        diff = np.zeros(len(state) + 1)
        diff[0] = -activation
        diff[1] = (activation
                   - self.n * nucleation + self.n * denucleation
                   - elongation.sum() + delongation.sum())

        d_agg = diff[2:]
        d_agg[0] += nucleation - denucleation
        d_agg[:-1] -= elongation
        d_agg[1:] += elongation
        d_agg[1:-1] -= delongation
        d_agg[:-2] += delongation
        return diff

    def step(self, state: np.ndarray) -> np.ndarray:
        """Advance one Euler step: next = state + step_size * flux."""
        state = pad_state(state)
        diff = self.derivatives(state)
        next_state = np.empty(len(state) + 1)
        next_state[:-1] = state + self.step_size * diff[:-1]
        next_state[-1] = self.step_size * diff[-1]
        return next_state


def pad_state(state: Sequence[float]) -> np.ndarray:
    """Extend a state with zero-valued aggregate slots up to the floor length."""
    state = np.asarray(state, dtype=float)
    if len(state) >= MIN_STATE_LENGTH:
        return state
    return np.concatenate([state, np.zeros(MIN_STATE_LENGTH - len(state))])


def trim_state(state: np.ndarray) -> np.ndarray:
    """Drop trailing aggregate slots that are exactly zero, keeping the floor length."""
    end = len(state)
    while end > MIN_STATE_LENGTH and state[end - 1] == 0:
        end -= 1
    return state[:end]


def aggregate_mass(state: np.ndarray) -> float:
    """Sum of all aggregate concentrations (everything past the monomer forms)."""
    return float(np.sum(state[2:]))


def total_monomer_equivalents(state: np.ndarray, n: float) -> float:
    """
    Total monomer content: iM + aM + sum_i (n + i - 1) [A_i].

    A_1 holds n monomers and each elongation adds one more, so this is
    conserved by every reaction of the network.
    """
    state = np.asarray(state, dtype=float)
    sizes = n + np.arange(len(state) - 2)
    return float(state[0] + state[1] + np.dot(sizes, state[2:]))
