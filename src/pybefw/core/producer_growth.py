"""
Producer growth models.

Two models are available:

- LogisticGrowth: self-limited growth towards a carrying capacity,
      G_i = r_i B_i (1 - sum_k a_ik B_k / K_i)
- NutrientIntake: growth limited by the scarcest nutrient (Liebig),
      G_i = r_i B_i min_l N_l / (N_l + half_saturation_jl)
  coupled to the nutrient pools
      dN_l/dt = turnover_l (supply_l - N_l) - sum_j concentration_jl G_j B_j

Non-producers never grow. On a MultiplexNetwork, facilitation raises the
growth rate and competition lowers the growth term.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np
import scipy.sparse

from pybefw.core import constants
from pybefw.core.exceptions import ConfigurationError
from pybefw.core.network import EcologicalNetwork
from pybefw.core.nontrophic import effect_competition, effect_facilitation, layer_links

if TYPE_CHECKING:
    from pybefw.core.model_parameters import ModelParameters


def logisticgrowth(B: float, r: float, K: float, s: Optional[float] = None) -> float:
    """Logistic growth of a single producer.

    ``s`` is the competitive pressure, ``B`` (no competitors) when omitted.
    A null growth rate or carrying capacity gives a null growth.
    """
    if r == 0 or K is None or K == 0:
        return 0.0
    if s is None:
        s = B
    return r * B * (1.0 - s / K)


def nutrient_limitation(N: np.ndarray, half_saturation: np.ndarray) -> np.ndarray:
    """Saturation ``N_l / (N_l + k_jl)`` of each producer j for each nutrient l.

    The degenerate case ``N_l = k_jl = 0`` gives 0.
    """
    N = np.broadcast_to(N, half_saturation.shape)
    denominator = N + half_saturation
    return np.divide(N, denominator, out=np.zeros(half_saturation.shape), where=denominator != 0)


def _multiplex_growth_data(network: EcologicalNetwork) -> dict:
    data = {}
    facilitation = layer_links(network, "facilitation")
    competition = layer_links(network, "competition")
    if facilitation is not None:
        data["facilitation_links"] = facilitation
    if competition is not None:
        data["competition_layer_links"] = competition
    return data


def _layer_pressure(links, B: np.ndarray, S: int) -> np.ndarray:
    source, target, weight, _ = links
    return np.bincount(target, weights=weight * B[source], minlength=S)


def _facilitated(r: np.ndarray, idx: np.ndarray, B: np.ndarray, d: dict) -> np.ndarray:
    if "facilitation_links" not in d:
        return r
    f0 = d["facilitation_links"][3]
    return r * (1.0 + f0 * _layer_pressure(d["facilitation_links"], B, d["S"])[idx])


def _competed(G: np.ndarray, B: np.ndarray, d: dict) -> None:
    if "competition_layer_links" in d:
        c0 = d["competition_layer_links"][3]
        G *= 1.0 - c0 * _layer_pressure(d["competition_layer_links"], B, d["S"])


class ProducerGrowth:
    """Base class of producer growth models."""

    n_nutrients = 0

    def __call__(self, B: np.ndarray, N: np.ndarray, params: ModelParameters) -> np.ndarray:
        raise NotImplementedError

    def fragment(self, params: ModelParameters):
        raise NotImplementedError


class LogisticGrowth(ProducerGrowth):
    """Logistic producer growth.

    Parameters
    ----------
    network : FoodWeb or MultiplexNetwork
        Trophic network
    K : float or array
        Carrying capacity; only producer entries are kept (NaN elsewhere).
        ``np.inf`` removes the self-limitation.
    a : None, dict or matrix
        Producer competition matrix. None is self-competition only
        (identity over producers). A dict ``{"diag": x, "offdiag": y}``
        fills the producer block.
    """

    def __init__(self, network: EcologicalNetwork, K=constants.DEFAULT_CARRYING_CAPACITY, a=None):
        S = network.richness
        self.producers = network.producers()
        K = np.array(np.broadcast_to(np.asarray(K, dtype=float), (S,)))
        self.K = np.full(S, np.nan)
        self.K[self.producers] = K[self.producers]
        self.a = self._competition_matrix(a, S)

    def _competition_matrix(self, a, S: int) -> scipy.sparse.csr_matrix:
        prods = self.producers
        if a is None:
            a = {"diag": 1.0, "offdiag": 0.0}
        if isinstance(a, dict):
            dense = np.zeros((S, S))
            block = np.full((len(prods), len(prods)), float(a.get("offdiag", 0.0)))
            np.fill_diagonal(block, float(a.get("diag", 1.0)))
            dense[np.ix_(prods, prods)] = block
        else:
            dense = a.toarray() if scipy.sparse.issparse(a) else np.asarray(a, dtype=float)
            if dense.shape != (S, S):
                raise ValueError(f"Competition matrix shape {dense.shape} != ({S}, {S})")
        mat = scipy.sparse.csr_matrix(dense)
        mat.eliminate_zeros()
        mat.sort_indices()
        return mat

    def __repr__(self) -> str:
        return f"LogisticGrowth(producers={len(self.producers)}, competition links={self.a.nnz})"

    def growing(self, r: np.ndarray) -> np.ndarray:
        """Indices of producers whose growth term is not structurally zero."""
        K = self.K[self.producers]
        keep = ~np.isnan(K) & (K != 0) & (r[self.producers] != 0)
        return self.producers[keep]

    def __call__(self, B: np.ndarray, N: np.ndarray, params: ModelParameters) -> np.ndarray:
        network = params.network
        r = effect_facilitation(params.biorates.r, B, network)
        s = self.a @ B
        G = np.zeros(len(B))
        idx = self.growing(params.biorates.r)
        G[idx] = r[idx] * B[idx] * (1.0 - s[idx] / self.K[idx])
        return effect_competition(G, B, network)

    def fragment(self, params: ModelParameters):
        S = params.richness
        idx = self.growing(params.biorates.r)
        # Only competition rows of growing producers are ever read
        coo = self.a.tocoo()
        keep = np.isin(coo.row, idx)
        data = {
            "S": S,
            "growing": idx,
            "r_growing": np.asarray(params.biorates.r)[idx],
            "K_growing": self.K[idx],
            "competition_links": (coo.row[keep].astype(np.intp), coo.col[keep].astype(np.intp)),
            "a": coo.data[keep],
            # Scratch, overwritten at every evaluation
            "s": np.zeros(S),
            "G": np.zeros(S),
        }
        data.update(_multiplex_growth_data(params.network))

        def growth(dB, dN, B, N, d):
            i, c = d["competition_links"]
            s = d["s"]
            s.fill(0.0)
            s += np.bincount(i, weights=d["a"] * B[c], minlength=d["S"])
            idx = d["growing"]
            r = _facilitated(d["r_growing"], idx, B, d)
            G = d["G"]
            G.fill(0.0)
            G[idx] = r * B[idx] * (1.0 - s[idx] / d["K_growing"])
            _competed(G, B, d)
            dB += G

        return [growth], data


class NutrientIntake(ProducerGrowth):
    """Nutrient-limited producer growth with explicit nutrient pools.

    Parameters
    ----------
    network : FoodWeb or MultiplexNetwork
        Trophic network
    n_nutrients : int
        Number of nutrients
    turnover : float or array
        Turnover rate of each nutrient pool
    supply : float or array
        Supply concentration of each nutrient
    concentration : float or matrix
        Nutrient content of each producer [producer, nutrient]
    half_saturation : float or matrix
        Half-saturation of each producer for each nutrient [producer, nutrient]
    """

    def __init__(
        self,
        network: EcologicalNetwork,
        n_nutrients: int = constants.DEFAULT_N_NUTRIENTS,
        turnover=constants.DEFAULT_NUTRIENT_TURNOVER,
        supply=constants.DEFAULT_NUTRIENT_SUPPLY,
        concentration=constants.DEFAULT_NUTRIENT_CONCENTRATION,
        half_saturation=constants.DEFAULT_NUTRIENT_HALF_SATURATION,
    ):
        if n_nutrients < 1:
            raise ValueError(f"n_nutrients must be at least 1, got {n_nutrients}")
        self.producers = network.producers()
        P = len(self.producers)
        L = int(n_nutrients)
        self.n_nutrients = L
        self.turnover = np.array(np.broadcast_to(np.asarray(turnover, dtype=float), (L,)))
        self.supply = np.array(np.broadcast_to(np.asarray(supply, dtype=float), (L,)))
        self.concentration = np.array(
            np.broadcast_to(np.asarray(concentration, dtype=float), (P, L))
        )
        self.half_saturation = np.array(
            np.broadcast_to(np.asarray(half_saturation, dtype=float), (P, L))
        )

    def __repr__(self) -> str:
        return f"NutrientIntake(producers={len(self.producers)}, nutrients={self.n_nutrients})"

    def __call__(self, B: np.ndarray, N: np.ndarray, params: ModelParameters) -> np.ndarray:
        network = params.network
        prods = self.producers
        r = effect_facilitation(params.biorates.r, B, network)
        limitation = nutrient_limitation(N, self.half_saturation).min(axis=1, initial=np.inf)
        G = np.zeros(len(B))
        G[prods] = r[prods] * B[prods] * limitation
        return effect_competition(G, B, network)

    def fragment(self, params: ModelParameters):
        S = params.richness
        r = np.asarray(params.biorates.r)[self.producers]
        # Producers with a null growth rate are skipped
        keep = r != 0
        data = {
            "S": S,
            "growing": self.producers[keep],
            "r_growing": r[keep],
            "half_saturation": self.half_saturation[keep],
            "nutrient_producers": self.producers,
            "concentration": self.concentration,
            "turnover": self.turnover,
            "supply": self.supply,
            # Scratch, overwritten at every evaluation
            "G": np.zeros(S),
        }
        data.update(_multiplex_growth_data(params.network))

        def growth(dB, dN, B, N, d):
            idx = d["growing"]
            r = _facilitated(d["r_growing"], idx, B, d)
            k = d["half_saturation"]
            limitation = np.zeros(k.shape)
            denominator = N + k
            np.divide(np.broadcast_to(N, k.shape), denominator, out=limitation, where=denominator != 0)
            G = d["G"]
            G.fill(0.0)
            G[idx] = r * B[idx] * limitation.min(axis=1, initial=np.inf)
            _competed(G, B, d)
            dB += G

        def nutrients(dB, dN, B, N, d):
            prods = d["nutrient_producers"]
            uptake = d["concentration"].T @ (d["G"][prods] * B[prods])
            dN[:] = d["turnover"] * (d["supply"] - N) - uptake

        return [growth, nutrients], data


def nutrient_dynamics(params: ModelParameters, B: np.ndarray, i_nutrient: int, n: float, G: np.ndarray) -> float:
    """Rate of change of one nutrient pool.

    Parameters
    ----------
    params : ModelParameters
        Model with NutrientIntake producer growth
    B : np.ndarray
        Species biomass
    i_nutrient : int
        Index of the nutrient
    n : float
        Current concentration of that nutrient
    G : np.ndarray
        Growth term of every species

    Raises
    ------
    ConfigurationError
        If producer growth is not NutrientIntake
    """
    growth = params.producer_growth
    if not isinstance(growth, NutrientIntake):
        raise ConfigurationError(
            f"Nutrient dynamics cannot be computed for producer growth of type "
            f"`{type(growth).__name__}`."
        )
    d = growth.turnover[i_nutrient]
    s = growth.supply[i_nutrient]
    c = growth.concentration[:, i_nutrient]
    prods = growth.producers
    return d * (s - n) - np.sum(c * G[prods] * B[prods])


def nutrients_derivative(params: ModelParameters, B: np.ndarray, N: np.ndarray, G: np.ndarray) -> np.ndarray:
    """Rate of change of every nutrient pool (see ``nutrient_dynamics``)."""
    return np.array(
        [nutrient_dynamics(params, B, l, N[l], G) for l in range(len(N))],
        dtype=float,
    )
