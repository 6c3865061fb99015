"""
Core module for pybefw.

Contains the network types, the biological rates, the model terms, the
derivative evaluators and the simulation driver.
"""

from pybefw.core.exceptions import ConfigurationError, ConsistencyError
from pybefw.core.network import FoodWeb, Layer, MultiplexNetwork
from pybefw.core.biorates import (
    AllometricParams,
    BioRates,
    allometric_rate,
    efficiency_matrix,
)
from pybefw.core.environment import Environment, ExponentialBA, NoTemperatureResponse
from pybefw.core.functional_response import (
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
    homogeneous_preference,
)
from pybefw.core.producer_growth import LogisticGrowth, NutrientIntake
from pybefw.core.model_parameters import ModelParameters, model_parameters
from pybefw.core.dbdt import build_derivative, dBdt
from pybefw.core.simulate import (
    SimulationConfig,
    SimulationOutput,
    SimulationStatus,
    simulate,
)
from pybefw.core.measures import (
    coefficient_of_variation,
    foodweb_evenness,
    foodweb_shannon,
    foodweb_simpson,
    population_stability,
    species_persistence,
    species_richness,
    summarize,
    total_biomass,
)

__all__ = [
    # Errors
    "ConfigurationError",
    "ConsistencyError",
    # Networks
    "FoodWeb",
    "Layer",
    "MultiplexNetwork",
    # Rates
    "AllometricParams",
    "BioRates",
    "allometric_rate",
    "efficiency_matrix",
    "Environment",
    "ExponentialBA",
    "NoTemperatureResponse",
    # Model terms
    "BioenergeticResponse",
    "ClassicResponse",
    "LinearResponse",
    "homogeneous_preference",
    "LogisticGrowth",
    "NutrientIntake",
    "ModelParameters",
    "model_parameters",
    # Dynamics
    "build_derivative",
    "dBdt",
    "SimulationConfig",
    "SimulationOutput",
    "SimulationStatus",
    "simulate",
    # Measures
    "coefficient_of_variation",
    "foodweb_evenness",
    "foodweb_shannon",
    "foodweb_simpson",
    "population_stability",
    "species_persistence",
    "species_richness",
    "summarize",
    "total_biomass",
]
