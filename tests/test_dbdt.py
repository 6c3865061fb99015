"""
Tests for the derivative evaluators.

The compact evaluator must give the same derivative as the generic one
for every model configuration and state.
"""

import numpy as np
import pytest

from pybefw.core.biorates import BioRates
from pybefw.core.dbdt import GenericDerivative, build_derivative, dBdt
from pybefw.core.dbdt_compact import CompactDerivative, compact_fragments, merge_fragments
from pybefw.core.exceptions import ConsistencyError
from pybefw.core.functional_response import BioenergeticResponse, ClassicResponse, LinearResponse
from pybefw.core.model_parameters import model_parameters
from pybefw.core.network import FoodWeb, Layer, MultiplexNetwork
from pybefw.core.producer_growth import LogisticGrowth, NutrientIntake


def two_species_chain():
    return model_parameters(FoodWeb([[0, 1], [0, 0]]))


def three_species_competition():
    foodweb = FoodWeb([[0, 1, 1], [0, 0, 0], [0, 0, 0]])
    a = np.array([[0.0, 0.0, 0.0], [0.0, 1.0, 0.6], [0.0, 0.0, 1.0]])
    return model_parameters(foodweb, producer_growth=LogisticGrowth(foodweb, K=[0.0, 1.0, 2.0], a=a))


def three_species_chain():
    foodweb = FoodWeb([[0, 1, 0], [0, 0, 1], [0, 0, 0]], M=[100.0, 10.0, 1.0])
    return model_parameters(foodweb, functional_response=BioenergeticResponse(foodweb, c=0.5))


def nutrient_producers():
    foodweb = FoodWeb([[0, 1, 1, 0], [0, 0, 0, 1], [0, 0, 0, 0], [0, 0, 0, 0]])
    growth = NutrientIntake(
        foodweb,
        n_nutrients=2,
        concentration=[[1.0, 0.5], [0.3, 1.0]],
        half_saturation=[[0.5, 1.0], [1.0, 0.2]],
    )
    return model_parameters(foodweb, producer_growth=growth)


def multiplex_classic():
    foodweb = FoodWeb([[0, 1, 1, 0], [0, 0, 1, 1], [0, 0, 0, 0], [0, 0, 0, 0]])
    S = 4

    def layer(links, intensity):
        A = np.zeros((S, S))
        for k, i in links:
            A[k, i] = 1
        return Layer(A, intensity)

    network = MultiplexNetwork(
        foodweb,
        competition=layer([(2, 3), (3, 2)], 0.3),
        facilitation=layer([(1, 2)], 0.8),
        interference=layer([(1, 0)], 1.5),
        refuge=layer([(3, 2)], 2.0),
    )
    response = ClassicResponse(network, h=1.5, c=0.2, attack_rate=2.0, handling_time=0.3)
    return model_parameters(network, functional_response=response)


def linear_omnivory():
    foodweb = FoodWeb([[0, 1, 1], [0, 0, 1], [0, 0, 0]])
    rates = BioRates.from_network(foodweb, d=0.0)
    return model_parameters(
        foodweb, biorates=rates, functional_response=LinearResponse(foodweb, alpha=[0.5, 2.0, 0.0])
    )


def cannibal():
    foodweb = FoodWeb([[1, 1], [0, 0]])
    return model_parameters(foodweb)


MODELS = [
    two_species_chain,
    three_species_competition,
    three_species_chain,
    nutrient_producers,
    multiplex_classic,
    linear_omnivory,
    cannibal,
]


def _random_state(params, seed):
    rng = np.random.RandomState(seed)
    return rng.uniform(0.0, 3.0, params.n_state)


class TestEquivalence:
    """Generic and compact evaluators agree."""

    @pytest.mark.parametrize("build", MODELS)
    @pytest.mark.parametrize("seed", range(5))
    def test_same_derivative(self, build, seed):
        params = build()
        u = _random_state(params, seed)
        np.testing.assert_allclose(
            CompactDerivative(params)(u), GenericDerivative(params)(u), rtol=1e-10, atol=1e-12
        )

    @pytest.mark.parametrize("build", MODELS)
    def test_same_derivative_with_extinctions(self, build):
        params = build()
        u = _random_state(params, 42)
        extinct = {0, params.richness - 1}
        np.testing.assert_allclose(
            CompactDerivative(params)(u, 0.0, extinct),
            GenericDerivative(params)(u, 0.0, extinct),
            rtol=1e-10,
            atol=1e-12,
        )

    @pytest.mark.parametrize("build", MODELS)
    def test_same_derivative_at_zero(self, build):
        params = build()
        u = np.zeros(params.n_state)
        compact = CompactDerivative(params)(u)
        assert np.all(np.isfinite(compact))
        np.testing.assert_allclose(compact, GenericDerivative(params)(u), atol=1e-12)

    def test_scratch_buffers_overwritten(self):
        params = multiplex_classic()
        reused = CompactDerivative(params)
        for seed in range(3):
            reused(_random_state(params, seed))
        u = _random_state(params, 99)
        np.testing.assert_array_equal(reused(u), CompactDerivative(params)(u))


class TestDerivative:
    """Properties shared by both evaluators."""

    @pytest.mark.parametrize("strategy", ["generic", "compact"])
    def test_extinct_species_stay_at_zero(self, strategy):
        params = two_species_chain()
        f = build_derivative(params, strategy)
        # The producer would grow if it were not extinct
        du = f(np.array([0.5, 0.5]), 0.0, {1})
        assert du[1] == 0.0
        # The consumer sees no prey
        assert du[0] == pytest.approx(-(0.314 + 0.0314) * 0.5)

    @pytest.mark.parametrize("strategy", ["generic", "compact"])
    def test_negative_values_read_as_zero(self, strategy):
        params = nutrient_producers()
        f = build_derivative(params, strategy)
        u = _random_state(params, 3)
        u[[1, 4]] = -1e-3
        clamped = np.maximum(u, 0.0)
        np.testing.assert_allclose(f(u), f(clamped))

    def test_input_state_not_modified(self):
        params = two_species_chain()
        u = np.array([-0.1, 0.5])
        dBdt(np.empty(2), u, params, 0.0, {0})
        np.testing.assert_array_equal(u, [-0.1, 0.5])

    def test_in_place_output(self):
        params = two_species_chain()
        du = np.empty(2)
        out = dBdt(du, np.array([0.5, 0.5]), params)
        assert out is du

    def test_two_species_values(self):
        params = two_species_chain()
        du = GenericDerivative(params)(np.array([1.0, 1.0]))
        # Consumer: 0.45 * 6.4 - 0.314 - 0.0314; producer: 0 - 6.4 - 0.0138
        np.testing.assert_allclose(du, [2.88 - 0.3454, -6.4138])

    def test_state_shape_checked(self):
        with pytest.raises(ValueError, match="shape"):
            GenericDerivative(two_species_chain())(np.ones(3))

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown derivative strategy"):
            build_derivative(two_species_chain(), "fast")

    def test_default_strategy_is_compact(self):
        assert build_derivative(two_species_chain()).strategy == "compact"


class TestFragments:
    """Tests for compact fragment merging."""

    def test_terms_in_evaluation_order(self):
        names = [name for name, _ in compact_fragments(two_species_chain())]
        assert names[:2] == ["functional_response", "consumption"]
        assert set(names) == {"functional_response", "consumption", "producer_growth", "metabolism", "death"}

    def test_shared_keys_agree(self):
        params = three_species_chain()
        steps, data = merge_fragments(compact_fragments(params))
        assert len(steps) == 5
        assert data["S"] == 3

    def test_conflicting_data_raises(self):
        def noop(dB, dN, B, N, d):
            pass

        fragments = [
            ("first", ([noop], {"S": 2, "links_i": np.array([0])})),
            ("second", ([noop], {"S": 2, "links_i": np.array([1])})),
        ]
        with pytest.raises(ConsistencyError, match="links_i"):
            merge_fragments(fragments)

    def test_consistency_error_is_assertion(self):
        assert issubclass(ConsistencyError, AssertionError)

    def test_skips_structurally_null_terms(self):
        foodweb = FoodWeb([[0, 1], [0, 0]])
        params = model_parameters(foodweb, producer_growth=LogisticGrowth(foodweb, K=0.0))
        data = CompactDerivative(params).data
        assert len(data["growing"]) == 0
        np.testing.assert_array_equal(data["metabolism_species"], [0])
