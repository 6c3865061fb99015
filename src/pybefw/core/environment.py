"""
Abiotic environment and temperature dependence of biological rates.

The temperature response is a policy applied once, when the model
parameters are assembled; rates are never rescaled during integration.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Dict

import numpy as np

from pybefw.core import constants
from pybefw.core.biorates import BioRates


@dataclass(frozen=True)
class Environment:
    """Abiotic conditions.

    Attributes
    ----------
    T : float
        Temperature in Kelvin
    """

    T: float = constants.REFERENCE_TEMPERATURE

    def __post_init__(self):
        if self.T <= 0:
            raise ValueError(f"Temperature must be positive (Kelvin), got {self.T}")

    def __repr__(self) -> str:
        return f"Environment(T={self.T}K)"


class TemperatureResponse:
    """Policy mapping reference biological rates to rates at temperature T."""

    def apply(self, biorates: BioRates, environment: Environment) -> BioRates:
        raise NotImplementedError


class NoTemperatureResponse(TemperatureResponse):
    """Rates do not depend on temperature."""

    def apply(self, biorates: BioRates, environment: Environment) -> BioRates:
        return biorates

    def __repr__(self) -> str:
        return "NoTemperatureResponse"


@dataclass(frozen=True)
class ExponentialBA(TemperatureResponse):
    """Boltzmann-Arrhenius temperature scaling.

    Each rate is multiplied by ``exp(E * (T - T0) / (k * T * T0))`` where
    ``E`` is the activation energy of that rate and ``T0`` the reference
    temperature at which the rates were given.
    """

    activation_energy: Dict[str, float] = field(
        default_factory=lambda: dict(constants.ACTIVATION_ENERGY)
    )
    T0: float = constants.REFERENCE_TEMPERATURE

    def factor(self, E: float, T: float) -> float:
        return float(np.exp(E * (T - self.T0) / (constants.BOLTZMANN_EV * T * self.T0)))

    def apply(self, biorates: BioRates, environment: Environment) -> BioRates:
        scaled = {}
        for name, E in self.activation_energy.items():
            if name not in ("d", "r", "x", "y"):
                raise ValueError(f"Cannot scale unknown rate '{name}'")
            scaled[name] = np.asarray(getattr(biorates, name)) * self.factor(E, environment.T)
        return dataclasses.replace(biorates, **scaled)

    def __repr__(self) -> str:
        return f"ExponentialBA(T0={self.T0}K)"
