"""
Derivative of the bioenergetic food-web model (generic evaluator).

This module contains the reference right-hand side of the ODE system:

    dB_i/dt = G_i + eating_i - being_eaten_i - x_i B_i - d_i B_i
    dN_l/dt = turnover_l (supply_l - N_l) - sum_j concentration_jl G_j B_j

Every term is recomputed from the parameters with array operations on
each call. The compact evaluator (``dbdt_compact``) must give the same
values.
"""

from __future__ import annotations

from typing import Collection, Optional

import numpy as np

from pybefw.core.consumption import consumption
from pybefw.core.metabolism import metabolic_loss, natural_death_loss
from pybefw.core.model_parameters import ModelParameters
from pybefw.core.producer_growth import nutrients_derivative


def prepare_state(u: np.ndarray, params: ModelParameters, extinct: Collection[int] = ()):
    """Split a state vector into non-negative biomass and nutrient copies.

    Negative values are integrator overshoot and read as zero; extinct
    species are pinned to zero. The caller's vector is not modified.
    """
    u = np.array(u, dtype=float)
    if u.shape != (params.n_state,):
        raise ValueError(f"State shape {u.shape} != ({params.n_state},)")
    np.maximum(u, 0.0, out=u)
    if len(extinct):
        u[np.fromiter(extinct, dtype=np.intp, count=len(extinct))] = 0.0
    return u[params.species_indices], u[params.nutrient_indices]


def dBdt(
    du: np.ndarray,
    u: np.ndarray,
    params: ModelParameters,
    t: float = 0.0,
    extinct: Collection[int] = (),
) -> np.ndarray:
    """Calculate the derivative of every state variable.

    Parameters
    ----------
    du : np.ndarray
        Output buffer, filled in place
    u : np.ndarray
        Current state (species biomass then nutrient concentrations)
    params : ModelParameters
        Model parameters
    t : float
        Current time (the model is autonomous)
    extinct : collection of int
        Species pinned to zero biomass

    Returns
    -------
    np.ndarray
        ``du``
    """
    B, N = prepare_state(u, params, extinct)

    growth = params.producer_growth(B, N, params)
    eating, being_eaten = consumption(B, params)
    losses = metabolic_loss(B, params.biorates) + natural_death_loss(B, params.biorates)

    S = params.richness
    du[:S] = growth + eating - being_eaten - losses
    if params.has_nutrients:
        du[S:] = nutrients_derivative(params, B, N, growth)
    if len(extinct):
        du[list(extinct)] = 0.0
    return du


class GenericDerivative:
    """Derivative function built on ``dBdt``.

    Parameters
    ----------
    params : ModelParameters
        Model parameters
    """

    strategy = "generic"

    def __init__(self, params: ModelParameters):
        self.params = params

    def __call__(self, u: np.ndarray, t: float = 0.0, extinct: Collection[int] = ()) -> np.ndarray:
        du = np.empty(self.params.n_state)
        return dBdt(du, u, self.params, t, extinct)


def build_derivative(params: ModelParameters, diff_code_data: Optional[str] = "compact"):
    """Create the derivative function of a model.

    Parameters
    ----------
    params : ModelParameters
        Model parameters
    diff_code_data : str
        ``"compact"`` (precomputed link arrays) or ``"generic"``

    Returns
    -------
    callable
        ``f(u, t=0.0, extinct=())`` returning the derivative vector
    """
    from pybefw.core.dbdt_compact import CompactDerivative

    if diff_code_data is None or diff_code_data == "compact":
        return CompactDerivative(params)
    if diff_code_data == "generic":
        return GenericDerivative(params)
    raise ValueError(f"Unknown derivative strategy '{diff_code_data}', use 'compact' or 'generic'")
