"""
Effects of non-trophic interaction layers on trophic rates.

The layers themselves are built elsewhere; these functions only translate
their adjacency and intensity into modifiers of growth and consumption.
On a plain FoodWeb every function returns its input unchanged.

Layer convention: ``A[k, i] == 1`` means species ``k`` acts on species ``i``.
"""

from __future__ import annotations

import numpy as np
import scipy.sparse

from pybefw.core.network import EcologicalNetwork, MultiplexNetwork


def _pressure(layer, B: np.ndarray) -> np.ndarray:
    """Total biomass acting on each target species, ``sum_k A[k, i] * B[k]``."""
    return layer.A.T @ B


def effect_facilitation(r: np.ndarray, B: np.ndarray, network: EcologicalNetwork) -> np.ndarray:
    """Growth rates increased by facilitating species: ``r * (1 + f0 * sum_k A_f[k, i] B[k])``."""
    if not isinstance(network, MultiplexNetwork) or not network.facilitation.is_active:
        return r
    layer = network.facilitation
    return r * (1.0 + layer.intensity * _pressure(layer, B))


def effect_competition(G: np.ndarray, B: np.ndarray, network: EcologicalNetwork) -> np.ndarray:
    """Growth terms reduced by competitors: ``G * (1 - c0 * sum_k A_c[k, i] B[k])``."""
    if not isinstance(network, MultiplexNetwork) or not network.competition.is_active:
        return G
    layer = network.competition
    return G * (1.0 - layer.intensity * _pressure(layer, B))


def effect_refuge(omega: scipy.sparse.csr_matrix, B: np.ndarray, network: EcologicalNetwork):
    """Preferences for each prey divided by ``1 + r0 * sum_k A_r[k, j] B[k]``."""
    if not isinstance(network, MultiplexNetwork) or not network.refuge.is_active:
        return omega
    layer = network.refuge
    protection = 1.0 / (1.0 + layer.intensity * _pressure(layer, B))
    return scipy.sparse.csr_matrix(omega @ scipy.sparse.diags(protection))


def effect_interference(B: np.ndarray, network: EcologicalNetwork) -> np.ndarray:
    """Interference felt by each predator: ``i0 * sum_k A_i[k, i] B[k]``."""
    S = len(B)
    if not isinstance(network, MultiplexNetwork) or not network.interference.is_active:
        return np.zeros(S)
    layer = network.interference
    return layer.intensity * _pressure(layer, B)


def layer_links(network: EcologicalNetwork, name: str):
    """Return (source, target, weight, intensity) of an active layer, or None."""
    if not isinstance(network, MultiplexNetwork):
        return None
    layer = network.layers[name]
    if not layer.is_active:
        return None
    coo = layer.A.tocoo()
    return (
        coo.row.astype(np.intp),
        coo.col.astype(np.intp),
        coo.data.astype(float),
        float(layer.intensity),
    )
