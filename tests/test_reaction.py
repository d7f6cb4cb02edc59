"""
Tests for aggkin.reaction module.
"""

import numpy as np
import pytest

from aggkin.models import ConfigurationError, MIN_STATE_LENGTH, ParameterSet
from aggkin.reaction import (
    ReactionModel,
    aggregate_mass,
    pad_state,
    total_monomer_equivalents,
    trim_state,
)


@pytest.fixture
def model():
    return ReactionModel(n=2, forward_rates=(0.1, 0.2, 0.3),
                         backward_rates=(0.05, 0.01, 0.02), step_size=0.1)


class TestDerivatives:
    """Tests for the rate equations."""

    def test_hand_computed_fluxes(self, model):
        """Every term of the rate equations at a four-species state."""
        state = np.array([1.0, 0.5, 0.2, 0.1])
        diff = model.derivatives(state)

        # activation 0.075, nucleation 0.05, denucleation 0.002,
        # elongation [0.03, 0.015], delongation 0.002
        expected = [-0.075, -0.064, 0.02, 0.013, 0.015]
        assert len(diff) == len(state) + 1
        np.testing.assert_allclose(diff, expected, rtol=1e-12, atol=1e-15)

    def test_initial_monomer_only(self, model):
        """Only activation acts on a pure inactive monomer state."""
        diff = model.derivatives(np.array([1.0, 0.0, 0.0, 0.0]))
        np.testing.assert_allclose(diff, [-0.1, 0.1, 0.0, 0.0, 0.0])

    def test_fluxes_conserve_monomer_equivalents(self, model):
        """Weighted by monomers per species, the net flux is zero."""
        np.random.seed(42)
        state = np.random.rand(12)
        diff = model.derivatives(state)
        weights = np.concatenate([[1.0, 1.0], model.n + np.arange(len(diff) - 2)])
        assert np.dot(weights, diff) == pytest.approx(0.0, abs=1e-12)

    def test_nucleation_order_override(self):
        """nm changes the power of aM but not the n-fold monomer consumption."""
        model = ReactionModel(n=3, forward_rates=(0, 1.0, 0), backward_rates=(0, 0, 0),
                              step_size=0.1, nm=2)
        diff = model.derivatives(np.array([0.0, 0.5, 0.0, 0.0]))
        assert diff[2] == pytest.approx(0.25)
        assert diff[1] == pytest.approx(-0.75)


class TestStep:
    """Tests for the Euler step."""

    def test_grows_by_one(self, model):
        state = np.array([1.0, 0.5, 0.2, 0.1, 0.05])
        assert len(model.step(state)) == len(state) + 1

    def test_euler_update(self, model):
        state = np.array([1.0, 0.5, 0.2, 0.1])
        next_state = model.step(state)
        expected = np.append(state, 0.0) + 0.1 * model.derivatives(state)
        np.testing.assert_allclose(next_state, expected)

    def test_pads_short_state(self, model):
        """A two-species state is padded to the floor length first."""
        next_state = model.step(np.array([1.0, 0.0]))
        assert len(next_state) == MIN_STATE_LENGTH + 1

    def test_does_not_modify_input(self, model):
        state = np.array([1.0, 0.5, 0.2, 0.1])
        model.step(state)
        np.testing.assert_array_equal(state, [1.0, 0.5, 0.2, 0.1])

    def test_from_parameters(self):
        params = ParameterSet(4, (1, 2, 3), (4, 5, 6))
        model = ReactionModel.from_parameters(params, step_size=0.5)
        assert (model.k_a, model.k_n, model.k_e) == (1, 2, 3)
        assert (model.k_am, model.k_nm, model.k_em) == (4, 5, 6)
        assert model.nm == 4

    def test_invalid_step_size(self):
        with pytest.raises(ConfigurationError):
            ReactionModel(n=2, forward_rates=(1, 1, 1), backward_rates=(1, 1, 1), step_size=0)


class TestStateHelpers:
    """Tests for padding, trimming and state reductions."""

    def test_pad(self):
        np.testing.assert_array_equal(pad_state([1.0]), [1.0, 0.0, 0.0, 0.0])
        assert len(pad_state(np.ones(6))) == 6

    def test_trim_trailing_zeros(self):
        state = np.array([1.0, 0.5, 0.2, 0.1, 0.0, 0.0])
        np.testing.assert_array_equal(trim_state(state), [1.0, 0.5, 0.2, 0.1])

    def test_trim_keeps_floor(self):
        assert len(trim_state(np.zeros(8))) == MIN_STATE_LENGTH

    def test_trim_keeps_interior_zeros(self):
        state = np.array([1.0, 0.0, 0.0, 0.0, 0.3])
        assert len(trim_state(state)) == 5

    def test_aggregate_mass(self):
        assert aggregate_mass(np.array([1.0, 0.5, 0.2, 0.1])) == pytest.approx(0.3)

    def test_monomer_equivalents(self):
        """A_1 carries n monomers, A_2 carries n + 1."""
        state = np.array([1.0, 0.5, 0.2, 0.1])
        assert total_monomer_equivalents(state, n=3) == pytest.approx(1.5 + 0.6 + 0.4)
