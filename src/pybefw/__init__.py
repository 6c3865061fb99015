"""
pybefw - Python bioenergetic food-web model

Biomass dynamics of multi-species communities on trophic and multiplex
(non-trophic) networks.
"""

__version__ = "0.1.0"
__author__ = "pybefw Development Team"

# Core imports
from pybefw.core.exceptions import ConfigurationError, ConsistencyError
from pybefw.core.network import FoodWeb, Layer, MultiplexNetwork
from pybefw.core.biorates import AllometricParams, BioRates, allometric_rate
from pybefw.core.environment import Environment, ExponentialBA, NoTemperatureResponse
from pybefw.core.functional_response import (
    BioenergeticResponse,
    ClassicResponse,
    LinearResponse,
    homogeneous_preference,
)
from pybefw.core.producer_growth import LogisticGrowth, NutrientIntake
from pybefw.core.model_parameters import ModelParameters, model_parameters
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
    # Version
    "__version__",
    "__author__",
    # Errors
    "ConfigurationError",
    "ConsistencyError",
    # Networks
    "FoodWeb",
    "Layer",
    "MultiplexNetwork",
    # Parameters
    "AllometricParams",
    "BioRates",
    "allometric_rate",
    "Environment",
    "ExponentialBA",
    "NoTemperatureResponse",
    "BioenergeticResponse",
    "ClassicResponse",
    "LinearResponse",
    "homogeneous_preference",
    "LogisticGrowth",
    "NutrientIntake",
    "ModelParameters",
    "model_parameters",
    # Simulation
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
