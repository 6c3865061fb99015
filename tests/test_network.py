"""
Tests for network data structures.
"""

import numpy as np
import pytest
import scipy.sparse

from pybefw.core.network import FoodWeb, Layer, MultiplexNetwork


@pytest.fixture
def chain():
    """Three-species chain: s1 eats s2, s2 eats s3."""
    return FoodWeb([[0, 1, 0], [0, 0, 1], [0, 0, 0]])


class TestFoodWeb:
    """Tests for FoodWeb."""

    def test_defaults(self, chain):
        assert chain.richness == 3
        assert chain.n_links == 2
        assert chain.species == ["s1", "s2", "s3"]
        assert chain.metabolic_class == ["invertebrate", "invertebrate", "producer"]
        np.testing.assert_array_equal(chain.M, np.ones(3))

    def test_producers_have_no_prey(self, chain):
        np.testing.assert_array_equal(chain.producers(), [2])
        assert chain.is_producer(2)
        assert not chain.is_producer(0)

    def test_preys_and_predators(self, chain):
        np.testing.assert_array_equal(chain.preys_of(0), [1])
        np.testing.assert_array_equal(chain.predators_of(2), [1])
        assert len(chain.preys_of(2)) == 0

    def test_trophic_links_are_consumer_resource(self, chain):
        consumers, resources = chain.trophic_links()
        np.testing.assert_array_equal(consumers, [0, 1])
        np.testing.assert_array_equal(resources, [1, 2])

    def test_sparse_input(self):
        A = scipy.sparse.csr_matrix(np.array([[0, 1], [0, 0]]))
        foodweb = FoodWeb(A, species=["fox", "grass"])
        assert foodweb.n_links == 1
        assert foodweb.species == ["fox", "grass"]

    def test_explicit_zeros_are_not_links(self):
        A = scipy.sparse.csr_matrix(([0.0, 1.0], ([0, 0], [0, 1])), shape=(2, 2))
        assert FoodWeb(A).n_links == 1

    def test_non_square_raises(self):
        with pytest.raises(ValueError, match="square"):
            FoodWeb([[0, 1, 0], [0, 0, 1]])

    def test_duplicate_species_raises(self):
        with pytest.raises(ValueError, match="unique"):
            FoodWeb([[0, 1], [0, 0]], species=["a", "a"])

    def test_wrong_metabolic_class_length_raises(self):
        with pytest.raises(ValueError, match="metabolic_class"):
            FoodWeb([[0, 1], [0, 0]], metabolic_class=["producer"])

    def test_non_positive_mass_raises(self):
        with pytest.raises(ValueError, match="positive"):
            FoodWeb([[0, 1], [0, 0]], M=[1.0, 0.0])


class TestMultiplexNetwork:
    """Tests for MultiplexNetwork."""

    def test_missing_layers_are_empty(self, chain):
        network = MultiplexNetwork(chain)
        for layer in network.layers.values():
            assert layer.n_links == 0
            assert not layer.is_active

    def test_layer_activity_needs_intensity(self, chain):
        links = np.zeros((3, 3))
        links[1, 2] = 1
        assert not Layer(links, 0.0).is_active
        assert Layer(links, 0.5).is_active

    def test_delegates_to_foodweb(self, chain):
        network = MultiplexNetwork(chain, facilitation=Layer(np.eye(3)[::-1], 1.0))
        assert network.richness == 3
        assert network.n_links == 2
        np.testing.assert_array_equal(network.producers(), [2])
        np.testing.assert_array_equal(network.preys_of(1), [2])
        assert network.species == chain.species
        assert network.facilitation.n_links == 3

    def test_layer_shape_checked(self, chain):
        with pytest.raises(ValueError, match="refuge"):
            MultiplexNetwork(chain, refuge=Layer(np.ones((2, 2)), 1.0))
