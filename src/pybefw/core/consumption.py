"""
Consumption: biomass flows along trophic links.

For each link (i eats j) the functional response gives ``F_ij`` and the
biomass flow is ``y_i B_i F_ij``. The consumer gains the assimilated part
``e_ij y_i B_i F_ij``; the resource loses the whole flow. The unassimilated
part ``(1 - e_ij)`` leaves the system.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

import numpy as np
import scipy.sparse

from pybefw.core.functional_response import link_values

if TYPE_CHECKING:
    from pybefw.core.model_parameters import ModelParameters


def consumption_flows(B: np.ndarray, params: ModelParameters) -> scipy.sparse.csr_matrix:
    """Biomass removed from each resource by each consumer [consumer, resource]."""
    F = params.functional_response(B, params.network)
    yB = params.biorates.y * B
    return scipy.sparse.csr_matrix(scipy.sparse.diags(yB) @ F)


def consumption(B: np.ndarray, params: ModelParameters) -> Tuple[np.ndarray, np.ndarray]:
    """Gains from eating and losses from being eaten.

    Parameters
    ----------
    B : np.ndarray
        Species biomass
    params : ModelParameters
        Model parameters

    Returns
    -------
    eating : np.ndarray
        Assimilated biomass gained by each consumer
    being_eaten : np.ndarray
        Biomass removed from each resource
    """
    flows = consumption_flows(B, params)
    eating = np.asarray(flows.multiply(params.biorates.e).sum(axis=1)).ravel()
    being_eaten = np.asarray(flows.sum(axis=0)).ravel()
    return eating, being_eaten


def consumption_fragment(params: ModelParameters):
    """Compact fragment; this step initializes every ``dB`` entry."""
    links = params.functional_response.links()
    data = {
        "S": params.richness,
        "links_i": links[0],
        "links_j": links[1],
        "y": np.asarray(params.biorates.y),
        "e_links": link_values(params.biorates.e, links),
    }

    def eat(dB, dN, B, N, d):
        i, j = d["links_i"], d["links_j"]
        S = d["S"]
        flow = d["y"][i] * B[i] * d["F"]
        dB[:] = np.bincount(i, weights=d["e_links"] * flow, minlength=S)
        dB -= np.bincount(j, weights=flow, minlength=S)

    return [eat], data
