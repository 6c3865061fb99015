"""
Functional responses: consumption intensity of every trophic link.

A functional response maps the biomass vector ``B`` to a sparse matrix
``F[consumer, resource]`` with values only on trophic links. Three forms
are available:

- BioenergeticResponse (default):
      F_ij = w_ij B_j^h / (B0_i^h + c_i B_i B0_i^h + sum_k w_ik B_k^h)
- ClassicResponse:
      F_ij = w_ij B_j^h / (1 + c_i B_i + sum_k ar_ik ht_ik w_ik B_k^h)
- LinearResponse:
      F_ij = alpha_i w_ij B_j

Each response can also describe itself as a compact fragment: the index
arrays of its active links plus a step that fills the per-link buffer
``F`` used by the consumption term.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np
import scipy.sparse

from pybefw.core import constants
from pybefw.core.network import EcologicalNetwork
from pybefw.core.nontrophic import effect_interference, effect_refuge, layer_links

if TYPE_CHECKING:
    from pybefw.core.model_parameters import ModelParameters


def homogeneous_preference(network: EcologicalNetwork) -> scipy.sparse.csr_matrix:
    """Equal preference of each consumer for all its prey (``1 / n_prey``)."""
    S = network.richness
    rows, cols = network.trophic_links()
    n_prey = np.diff(network.A.indptr)
    values = 1.0 / n_prey[rows]
    return scipy.sparse.csr_matrix((values, (rows, cols)), shape=(S, S))


def _species_vector(value, S: int, name: str) -> np.ndarray:
    vec = np.array(np.broadcast_to(np.asarray(value, dtype=float), (S,)))
    if vec.shape != (S,):
        raise ValueError(f"{name} shape {vec.shape} != ({S},)")
    return vec


def _on_links(value, network: EcologicalNetwork, name: str) -> scipy.sparse.csr_matrix:
    """Sparse link matrix holding ``value`` on every trophic link and nowhere else."""
    S = network.richness
    rows, cols = network.trophic_links()
    if np.isscalar(value):
        values = np.full(len(rows), float(value))
    else:
        dense = value.toarray() if scipy.sparse.issparse(value) else np.asarray(value, dtype=float)
        if dense.shape != (S, S):
            raise ValueError(f"{name} shape {dense.shape} != ({S}, {S})")
        values = dense[rows, cols]
    mat = scipy.sparse.csr_matrix((values, (rows, cols)), shape=(S, S))
    mat.eliminate_zeros()
    mat.sort_indices()
    return mat


def active_links(omega: scipy.sparse.csr_matrix) -> Tuple[np.ndarray, np.ndarray]:
    """(consumer, resource) index arrays of the links with non-zero preference."""
    coo = omega.tocoo()
    order = np.lexsort((coo.col, coo.row))
    return coo.row[order].astype(np.intp), coo.col[order].astype(np.intp)


def link_values(matrix: scipy.sparse.spmatrix, links: Tuple[np.ndarray, np.ndarray]) -> np.ndarray:
    """Values of ``matrix`` at the given (row, col) links, as a flat array."""
    rows, cols = links
    if len(rows) == 0:
        return np.zeros(0)
    return np.asarray(scipy.sparse.csr_matrix(matrix)[rows, cols], dtype=float).ravel()


class FunctionalResponse:
    """Base class of functional responses.

    Attributes
    ----------
    omega : scipy.sparse.csr_matrix
        Relative preference of each consumer for each resource
    h : float
        Hill exponent
    """

    def __init__(self, network: EcologicalNetwork, omega=None, h: float = constants.DEFAULT_HILL_EXPONENT):
        self.S = network.richness
        if omega is None:
            omega = homogeneous_preference(network)
        self.omega = _on_links(omega, network, "omega")
        self.h = float(h)

    def __call__(self, B: np.ndarray, network: EcologicalNetwork) -> scipy.sparse.csr_matrix:
        raise NotImplementedError

    def fragment(self, params: ModelParameters):
        raise NotImplementedError

    def links(self) -> Tuple[np.ndarray, np.ndarray]:
        return active_links(self.omega)

    def _base_data(self) -> dict:
        links = self.links()
        return {
            "S": self.S,
            "links_i": links[0],
            "links_j": links[1],
            "omega": link_values(self.omega, links),
            "h": self.h,
            # Scratch, overwritten at every evaluation
            "F": np.zeros(len(links[0])),
        }


class BioenergeticResponse(FunctionalResponse):
    """Bioenergetic functional response (Yodzis and Innes 1992).

    Parameters
    ----------
    network : FoodWeb or MultiplexNetwork
        Trophic network
    B0 : float or array
        Half-saturation density
    h : float
        Hill exponent
    c : float or array
        Intensity of predator interference
    omega : array or sparse matrix, optional
        Preferences, homogeneous by default
    """

    def __init__(
        self,
        network: EcologicalNetwork,
        B0=constants.DEFAULT_HALF_SATURATION,
        h: float = constants.DEFAULT_HILL_EXPONENT,
        c=constants.DEFAULT_INTERFERENCE,
        omega=None,
    ):
        super().__init__(network, omega=omega, h=h)
        self.B0 = _species_vector(B0, self.S, "B0")
        self.c = _species_vector(c, self.S, "c")

    def __repr__(self) -> str:
        return f"BioenergeticResponse(h={self.h}, L={self.omega.nnz})"

    def __call__(self, B: np.ndarray, network: EcologicalNetwork) -> scipy.sparse.csr_matrix:
        Bh = B ** self.h
        B0h = self.B0 ** self.h
        numerator = self.omega @ scipy.sparse.diags(Bh)
        denominator = B0h + self.c * B * B0h + self.omega @ Bh
        inverse = np.divide(1.0, denominator, out=np.zeros(self.S), where=denominator != 0)
        return scipy.sparse.csr_matrix(scipy.sparse.diags(inverse) @ numerator)

    def fragment(self, params: ModelParameters):
        data = self._base_data()
        data["B0h"] = self.B0 ** self.h
        data["c"] = self.c

        def response(dB, dN, B, N, d):
            i, j = d["links_i"], d["links_j"]
            wBh = d["omega"] * B[j] ** d["h"]
            denominator = d["B0h"] + d["c"] * B * d["B0h"]
            denominator += np.bincount(i, weights=wBh, minlength=d["S"])
            denominator = denominator[i]
            d["F"].fill(0.0)
            np.divide(wBh, denominator, out=d["F"], where=denominator != 0)

        return [response], data


class ClassicResponse(FunctionalResponse):
    """Classic (Holling type II/III) functional response.

    On a MultiplexNetwork, refuge lowers the preference for protected prey
    and interference adds to the consumer's denominator.

    Parameters
    ----------
    network : FoodWeb or MultiplexNetwork
        Trophic network
    h : float
        Hill exponent (1 = type II, 2 = type III)
    c : float or array
        Intensity of intraspecific predator interference
    omega : array or sparse matrix, optional
        Preferences, homogeneous by default
    attack_rate : float or matrix
        Attack rate of each link (``a_r``)
    handling_time : float or matrix
        Handling time of each link (``h_t``)
    """

    def __init__(
        self,
        network: EcologicalNetwork,
        h: float = constants.DEFAULT_HILL_EXPONENT,
        c=constants.DEFAULT_INTERFERENCE,
        omega=None,
        attack_rate=constants.DEFAULT_ATTACK_RATE,
        handling_time=constants.DEFAULT_HANDLING_TIME,
    ):
        super().__init__(network, omega=omega, h=h)
        self.c = _species_vector(c, self.S, "c")
        self.attack_rate = _on_links(attack_rate, network, "attack_rate")
        self.handling_time = _on_links(handling_time, network, "handling_time")

    def __repr__(self) -> str:
        return f"ClassicResponse(h={self.h}, L={self.omega.nnz})"

    def __call__(self, B: np.ndarray, network: EcologicalNetwork) -> scipy.sparse.csr_matrix:
        Bh = B ** self.h
        omega = effect_refuge(self.omega, B, network)
        numerator = omega @ scipy.sparse.diags(Bh)
        saturation = omega.multiply(self.attack_rate).multiply(self.handling_time)
        denominator = (
            1.0
            + self.c * B
            + effect_interference(B, network)
            + scipy.sparse.csr_matrix(saturation) @ Bh
        )
        return scipy.sparse.csr_matrix(scipy.sparse.diags(1.0 / denominator) @ numerator)

    def fragment(self, params: ModelParameters):
        data = self._base_data()
        links = self.links()
        data["c"] = self.c
        data["aht"] = link_values(self.attack_rate, links) * link_values(self.handling_time, links)
        refuge = layer_links(params.network, "refuge")
        interference = layer_links(params.network, "interference")
        if refuge is not None:
            data["refuge_links"] = refuge
        if interference is not None:
            data["interference_links"] = interference

        def response(dB, dN, B, N, d):
            i, j = d["links_i"], d["links_j"]
            S = d["S"]
            omega = d["omega"]
            if "refuge_links" in d:
                source, target, weight, r0 = d["refuge_links"]
                shelter = np.bincount(target, weights=weight * B[source], minlength=S)
                omega = omega / (1.0 + r0 * shelter[j])
            wBh = omega * B[j] ** d["h"]
            denominator = 1.0 + d["c"] * B
            if "interference_links" in d:
                source, target, weight, i0 = d["interference_links"]
                denominator += i0 * np.bincount(target, weights=weight * B[source], minlength=S)
            denominator += np.bincount(i, weights=d["aht"] * wBh, minlength=S)
            np.divide(wBh, denominator[i], out=d["F"])

        return [response], data


class LinearResponse(FunctionalResponse):
    """Linear (Holling type I) functional response, ``F_ij = alpha_i w_ij B_j``."""

    def __init__(self, network: EcologicalNetwork, alpha=constants.DEFAULT_LINEAR_ALPHA, omega=None):
        super().__init__(network, omega=omega, h=1.0)
        self.alpha = _species_vector(alpha, self.S, "alpha")

    def __repr__(self) -> str:
        return f"LinearResponse(L={self.omega.nnz})"

    def __call__(self, B: np.ndarray, network: EcologicalNetwork) -> scipy.sparse.csr_matrix:
        return scipy.sparse.csr_matrix(
            scipy.sparse.diags(self.alpha) @ self.omega @ scipy.sparse.diags(B)
        )

    def fragment(self, params: ModelParameters):
        data = self._base_data()
        data["alpha"] = self.alpha

        def response(dB, dN, B, N, d):
            i, j = d["links_i"], d["links_j"]
            np.multiply(d["alpha"][i] * d["omega"], B[j], out=d["F"])

        return [response], data
