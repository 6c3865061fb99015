"""
Tests for producer growth models.
"""

import numpy as np
import pytest

from pybefw.core.biorates import BioRates
from pybefw.core.dbdt import build_derivative
from pybefw.core.exceptions import ConfigurationError
from pybefw.core.functional_response import ClassicResponse
from pybefw.core.model_parameters import model_parameters
from pybefw.core.network import FoodWeb, Layer, MultiplexNetwork
from pybefw.core.producer_growth import (
    LogisticGrowth,
    NutrientIntake,
    logisticgrowth,
    nutrient_dynamics,
    nutrient_limitation,
    nutrients_derivative,
)


@pytest.fixture
def two_producers():
    """Consumer s1 eating producers s2 and s3."""
    return FoodWeb([[0, 1, 1], [0, 0, 0], [0, 0, 0]])


class TestLogisticGrowth:
    """Tests for logistic growth."""

    def test_scalar_form(self):
        assert logisticgrowth(0.5, 1.0, 1.0) == pytest.approx(0.25)
        assert logisticgrowth(1.0, 1.0, 1.0) == 0.0
        assert logisticgrowth(0.5, 1.0, 1.0, s=2.0) == pytest.approx(-0.5)

    def test_null_rate_or_capacity(self):
        assert logisticgrowth(0.5, 0.0, 1.0) == 0.0
        assert logisticgrowth(0.5, 1.0, 0.0) == 0.0
        assert logisticgrowth(0.5, 1.0, None) == 0.0

    @pytest.mark.parametrize("strategy", ["generic", "compact"])
    def test_infinite_capacity_is_unlimited(self, strategy):
        foodweb = FoodWeb([[0]])
        params = model_parameters(
            foodweb,
            biorates=BioRates.from_network(foodweb, d=0.0),
            producer_growth=LogisticGrowth(foodweb, K=np.inf),
        )
        B = np.array([0.5])
        G = params.producer_growth(B, np.zeros(0), params)
        du = build_derivative(params, strategy)(B)
        # r * B * (1 - B / inf)
        assert G[0] == pytest.approx(logisticgrowth(0.5, 1.0, np.inf))
        np.testing.assert_allclose(du, [0.5])

    def test_carrying_capacity_is_fixed_point(self):
        foodweb = FoodWeb([[0]])
        params = model_parameters(foodweb, producer_growth=LogisticGrowth(foodweb, K=2.5))
        G = params.producer_growth(np.array([2.5]), np.zeros(0), params)
        assert G[0] == 0.0

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_consumers_never_grow(self, two_producers, seed):
        params = model_parameters(two_producers)
        B = np.random.RandomState(seed).uniform(0, 5, 3)
        G = params.producer_growth(B, np.zeros(0), params)
        assert G[0] == 0.0
        assert np.all(G[1:] != 0.0)

    def test_capacity_only_for_producers(self, two_producers):
        growth = LogisticGrowth(two_producers, K=[7.0, 2.0, 3.0])
        assert np.isnan(growth.K[0])
        np.testing.assert_array_equal(growth.K[1:], [2.0, 3.0])

    def test_producer_competition(self, two_producers):
        growth = LogisticGrowth(two_producers, a={"diag": 1.0, "offdiag": 0.5})
        params = model_parameters(two_producers, producer_growth=growth)
        G = growth(np.array([1.0, 0.5, 0.5]), np.zeros(0), params)
        # s = 0.5 + 0.5 * 0.5
        np.testing.assert_allclose(G, [0.0, 0.125, 0.125])

    def test_competition_matrix_shape_checked(self, two_producers):
        with pytest.raises(ValueError):
            LogisticGrowth(two_producers, a=np.eye(2))

    def test_facilitation_raises_growth_rate(self):
        foodweb = FoodWeb([[0, 1], [0, 0]])
        A = np.zeros((2, 2))
        A[0, 1] = 1
        network = MultiplexNetwork(foodweb, facilitation=Layer(A, 1.0))
        params = model_parameters(network, functional_response=ClassicResponse(network))
        G = params.producer_growth(np.array([1.0, 0.5]), np.zeros(0), params)
        # r = 1 * (1 + 1 * 1)
        assert G[1] == pytest.approx(0.5)

    def test_competition_layer_lowers_growth(self, two_producers):
        A = np.zeros((3, 3))
        A[2, 1] = 1
        network = MultiplexNetwork(two_producers, competition=Layer(A, 0.5))
        params = model_parameters(network, functional_response=ClassicResponse(network))
        B = np.array([1.0, 0.5, 1.0])
        G = params.producer_growth(B, np.zeros(0), params)
        # 0.5 * (1 - 0.5) * (1 - 0.5 * 1)
        assert G[1] == pytest.approx(0.125)


class TestNutrientIntake:
    """Tests for nutrient-limited growth."""

    @pytest.fixture
    def params(self):
        foodweb = FoodWeb([[0]])
        return model_parameters(foodweb, producer_growth=NutrientIntake(foodweb, n_nutrients=2))

    def test_limitation_degenerate_case(self):
        limitation = nutrient_limitation(np.zeros(2), np.zeros((1, 2)))
        np.testing.assert_array_equal(limitation, [[0.0, 0.0]])

    def test_scarcest_nutrient_limits(self, params):
        G = params.producer_growth(np.array([1.0]), np.array([1.0, 3.0]), params)
        # min(1 / 2, 3 / 4)
        assert G[0] == pytest.approx(0.5)

    def test_no_nutrient_no_growth(self):
        foodweb = FoodWeb([[0]])
        growth = NutrientIntake(foodweb, n_nutrients=1, half_saturation=0.0)
        params = model_parameters(foodweb, producer_growth=growth)
        G = growth(np.array([1.0]), np.zeros(1), params)
        assert G[0] == 0.0
        assert np.isfinite(G[0])

    def test_nutrient_pools(self, params):
        B = np.array([1.0])
        N = np.array([1.0, 3.0])
        G = params.producer_growth(B, N, params)
        dN = nutrients_derivative(params, B, N, G)
        # 0.25 * (4 - N) - 1 * G
        np.testing.assert_allclose(dN, [0.25, -0.25])

    @pytest.mark.parametrize("strategy", ["generic", "compact"])
    def test_uptake_scales_with_producer_biomass(self, strategy):
        foodweb = FoodWeb([[0]])
        growth = NutrientIntake(foodweb, n_nutrients=1)
        params = model_parameters(
            foodweb, biorates=BioRates.from_network(foodweb, d=0.0), producer_growth=growth
        )
        B = np.array([2.0])
        N = np.array([1.0])
        G = growth(B, N, params)
        # G = 1 * 2 * 1 / (1 + 1); dN = 0.25 * (4 - 1) - 1 * G * B
        assert G[0] == pytest.approx(1.0)
        assert nutrient_dynamics(params, B, 0, N[0], G) == pytest.approx(-1.25)
        du = build_derivative(params, strategy)(np.concatenate([B, N]))
        np.testing.assert_allclose(du, [1.0, -1.25])

    def test_consumers_never_grow(self, two_producers):
        growth = NutrientIntake(two_producers, n_nutrients=3)
        params = model_parameters(two_producers, producer_growth=growth)
        G = growth(np.ones(3), np.full(3, 2.0), params)
        assert G[0] == 0.0
        assert params.n_state == 6

    def test_at_least_one_nutrient(self, two_producers):
        with pytest.raises(ValueError):
            NutrientIntake(two_producers, n_nutrients=0)

    def test_nutrient_dynamics_requires_nutrient_model(self, two_producers):
        params = model_parameters(two_producers)
        with pytest.raises(ConfigurationError, match="LogisticGrowth"):
            nutrient_dynamics(params, np.ones(3), 0, 1.0, np.zeros(3))
