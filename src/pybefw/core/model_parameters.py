"""
Model parameters: the aggregate consumed by the derivative evaluators.

ModelParameters owns one network, one set of biological rates, one
environment, one functional response, one producer growth model and one
temperature response. It is built once and never mutated during
integration; extinctions live in the simulation state.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np

from pybefw.core.biorates import BioRates
from pybefw.core.environment import Environment, NoTemperatureResponse, TemperatureResponse
from pybefw.core.exceptions import ConfigurationError
from pybefw.core.functional_response import (
    BioenergeticResponse,
    ClassicResponse,
    FunctionalResponse,
)
from pybefw.core.network import EcologicalNetwork, MultiplexNetwork
from pybefw.core.producer_growth import LogisticGrowth, NutrientIntake, ProducerGrowth


@dataclass(frozen=True, eq=False)
class ModelParameters:
    """Parameters of a bioenergetic food-web model.

    Attributes
    ----------
    network : FoodWeb or MultiplexNetwork
        Interaction topology
    biorates : BioRates
        Biological rates, already adjusted for temperature
    environment : Environment
        Abiotic conditions
    functional_response : FunctionalResponse
        Consumption intensity of each trophic link
    producer_growth : ProducerGrowth
        Logistic or nutrient-limited producer growth
    temperature_response : TemperatureResponse
        Policy that produced ``biorates`` from reference rates
    """

    network: EcologicalNetwork
    biorates: BioRates
    environment: Environment
    functional_response: FunctionalResponse
    producer_growth: ProducerGrowth
    temperature_response: TemperatureResponse

    def __repr__(self) -> str:
        return (
            f"ModelParameters{{{type(self.functional_response).__name__}, "
            f"{type(self.producer_growth).__name__}}}:\n"
            f"  network: {self.network!r}\n"
            f"  environment: {self.environment!r}\n"
            f"  biorates: {self.biorates!r}\n"
            f"  functional_response: {self.functional_response!r}\n"
            f"  producer_growth: {self.producer_growth!r}\n"
            f"  temperature_response: {self.temperature_response!r}"
        )

    @property
    def richness(self) -> int:
        return self.network.richness

    @property
    def n_nutrients(self) -> int:
        return self.producer_growth.n_nutrients

    @property
    def has_nutrients(self) -> bool:
        return isinstance(self.producer_growth, NutrientIntake)

    @property
    def n_state(self) -> int:
        """Length of the state vector (species then nutrients)."""
        return self.richness + self.n_nutrients

    @property
    def species_indices(self) -> slice:
        return slice(0, self.richness)

    @property
    def nutrient_indices(self) -> slice:
        return slice(self.richness, self.n_state)


def model_parameters(
    network: EcologicalNetwork,
    biorates: Optional[BioRates] = None,
    environment: Optional[Environment] = None,
    functional_response: Optional[FunctionalResponse] = None,
    producer_growth: Optional[ProducerGrowth] = None,
    temperature_response: Optional[TemperatureResponse] = None,
) -> ModelParameters:
    """Assemble the parameters of a community.

    Components left to None get their defaults: allometric rates,
    20 degrees C, bioenergetic response, logistic growth and no
    temperature dependence.

    Parameters
    ----------
    network : FoodWeb or MultiplexNetwork
        Interaction topology
    biorates, environment, functional_response, producer_growth,
    temperature_response : optional
        Model components

    Returns
    -------
    ModelParameters
        Parameters ready for simulation

    Raises
    ------
    ConfigurationError
        If a component does not match the network

    Examples
    --------
    >>> foodweb = FoodWeb([[0, 1], [0, 0]])
    >>> params = model_parameters(foodweb)
    >>> params.functional_response
    BioenergeticResponse(h=2.0, L=1)
    """
    S = network.richness
    if biorates is None:
        biorates = BioRates.from_network(network)
    if environment is None:
        environment = Environment()
    if functional_response is None:
        functional_response = BioenergeticResponse(network)
    if producer_growth is None:
        producer_growth = LogisticGrowth(network)
    if temperature_response is None:
        temperature_response = NoTemperatureResponse()

    if biorates.richness != S:
        raise ConfigurationError(f"BioRates has {biorates.richness} species, network has {S}")
    if functional_response.S != S:
        raise ConfigurationError(
            f"Functional response has {functional_response.S} species, network has {S}"
        )
    if not np.array_equal(producer_growth.producers, network.producers()):
        raise ConfigurationError("Producer growth was built for a different set of producers")

    if isinstance(network, MultiplexNetwork) and not isinstance(functional_response, ClassicResponse):
        warnings.warn(
            f"Non-trophic interactions for `{type(functional_response).__name__}` are not "
            f"supported. Use a classical functional response instead: `ClassicResponse`.",
            UserWarning,
            stacklevel=2,
        )

    biorates = temperature_response.apply(biorates, environment)

    return ModelParameters(
        network=network,
        biorates=biorates,
        environment=environment,
        functional_response=functional_response,
        producer_growth=producer_growth,
        temperature_response=temperature_response,
    )
