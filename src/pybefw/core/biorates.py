"""
Biological rates of the species community.

Per-species rates are derived once from body masses with allometric
scaling laws, ``rate = a * M ** b`` where ``(a, b)`` depend on the
metabolic class, or supplied directly by the user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import scipy.sparse

from pybefw.core import constants
from pybefw.core.exceptions import ConfigurationError
from pybefw.core.network import EcologicalNetwork

RateLike = Optional[Union[float, np.ndarray, list]]


@dataclass(frozen=True)
class AllometricParams:
    """Allometric coefficients by metabolic class.

    ``a_*`` are the scaling constants and ``b_*`` the exponents for
    producers (p), ectotherm vertebrates (ect) and invertebrates (inv).
    """

    a_p: float
    a_ect: float
    a_inv: float
    b_p: float
    b_ect: float
    b_inv: float

    def for_class(self, metabolic_class: str):
        """Return the (a, b) pair for one metabolic class."""
        if metabolic_class == constants.PRODUCER:
            return self.a_p, self.b_p
        if metabolic_class == constants.VERTEBRATE:
            return self.a_ect, self.b_ect
        if metabolic_class == constants.INVERTEBRATE:
            return self.a_inv, self.b_inv
        raise ConfigurationError(
            f"Unknown metabolic class '{metabolic_class}'. "
            f"Expected one of {constants.METABOLIC_CLASSES}"
        )


DEFAULT_GROWTH_PARAMS = AllometricParams(*constants.GROWTH_ALLOMETRY)
DEFAULT_METABOLISM_PARAMS = AllometricParams(*constants.METABOLISM_ALLOMETRY)
DEFAULT_MAX_CONSUMPTION_PARAMS = AllometricParams(*constants.MAX_CONSUMPTION_ALLOMETRY)
DEFAULT_MORTALITY_PARAMS = AllometricParams(*constants.MORTALITY_ALLOMETRY)


def allometric_scale(a: float, b: float, M: float) -> float:
    """Allometric scaling law ``a * M ** b``."""
    return a * M ** b


def allometric_rate(network: EcologicalNetwork, params: AllometricParams) -> np.ndarray:
    """Compute a rate for every species from its body mass and class.

    Parameters
    ----------
    network : FoodWeb or MultiplexNetwork
        Network providing ``M`` and ``metabolic_class``
    params : AllometricParams
        Allometric coefficients

    Returns
    -------
    np.ndarray
        Rate for each species

    Raises
    ------
    ConfigurationError
        If a species has an unknown metabolic class
    """
    a = np.empty(network.richness)
    b = np.empty(network.richness)
    for i, metabolic_class in enumerate(network.metabolic_class):
        a[i], b[i] = params.for_class(metabolic_class)
    return allometric_scale(a, b, network.M)


def efficiency_matrix(
    network: EcologicalNetwork,
    e_herbivory: float = constants.EFFICIENCY_HERBIVORY,
    e_carnivory: float = constants.EFFICIENCY_CARNIVORY,
) -> scipy.sparse.csr_matrix:
    """Assimilation efficiency of each trophic link [consumer, resource]."""
    S = network.richness
    rows, cols = network.trophic_links()
    is_prod = np.zeros(S, dtype=bool)
    is_prod[network.producers()] = True
    values = np.where(is_prod[cols], e_herbivory, e_carnivory)
    return scipy.sparse.csr_matrix((values, (rows, cols)), shape=(S, S))


def _species_vector(value: RateLike, default: np.ndarray, name: str) -> np.ndarray:
    if value is None:
        vec = default
    else:
        vec = np.broadcast_to(np.asarray(value, dtype=float), default.shape)
    vec = np.array(vec, dtype=float)
    if vec.shape != default.shape:
        raise ValueError(f"{name} shape {vec.shape} != {default.shape}")
    return vec


def _link_matrix(value, network: EcologicalNetwork, default: scipy.sparse.csr_matrix):
    """Build a link-valued matrix that is zero wherever no trophic link exists."""
    if value is None:
        return default
    S = network.richness
    rows, cols = network.trophic_links()
    if np.isscalar(value):
        values = np.full(len(rows), float(value))
    else:
        dense = value.toarray() if scipy.sparse.issparse(value) else np.asarray(value, dtype=float)
        if dense.shape != (S, S):
            raise ValueError(f"Link matrix shape {dense.shape} != ({S}, {S})")
        values = dense[rows, cols]
    return scipy.sparse.csr_matrix((values, (rows, cols)), shape=(S, S))


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class BioRates:
    """Biological rates of every species.

    Attributes
    ----------
    d : np.ndarray
        Natural mortality rate
    r : np.ndarray
        Intrinsic growth rate (non-zero for producers only)
    x : np.ndarray
        Metabolic rate
    y : np.ndarray
        Maximum consumption rate
    e : scipy.sparse.csr_matrix
        Assimilation efficiency [consumer, resource]
    """

    d: np.ndarray
    r: np.ndarray
    x: np.ndarray
    y: np.ndarray
    e: scipy.sparse.csr_matrix

    def __post_init__(self):
        S = len(self.r)
        for name in ("d", "r", "x", "y"):
            vec = np.array(getattr(self, name), dtype=float)
            if vec.shape != (S,):
                raise ValueError(f"{name} shape {vec.shape} != ({S},)")
            object.__setattr__(self, name, _readonly(vec))
        e = scipy.sparse.csr_matrix(self.e, dtype=float)
        if e.shape != (S, S):
            raise ValueError(f"e shape {e.shape} != ({S}, {S})")
        object.__setattr__(self, "e", e)

    def __repr__(self) -> str:
        return f"BioRates(S={len(self.r)}; d, r, x, y, e)"

    @property
    def richness(self) -> int:
        return len(self.r)

    @classmethod
    def from_network(
        cls,
        network: EcologicalNetwork,
        d: RateLike = None,
        r: RateLike = None,
        x: RateLike = None,
        y: RateLike = None,
        e=None,
    ) -> BioRates:
        """Create rates for a network.

        Every rate left to None is computed from allometric scaling.
        Scalars are broadcast to all species (or all links for ``e``).

        Examples
        --------
        >>> foodweb = FoodWeb([[0, 1], [0, 0]])
        >>> rates = BioRates.from_network(foodweb, r=2.0)
        >>> rates.r
        array([0., 2.])
        """
        defaults = {
            "d": allometric_rate(network, DEFAULT_MORTALITY_PARAMS),
            "r": allometric_rate(network, DEFAULT_GROWTH_PARAMS),
            "x": allometric_rate(network, DEFAULT_METABOLISM_PARAMS),
            "y": allometric_rate(network, DEFAULT_MAX_CONSUMPTION_PARAMS),
        }
        given = {"d": d, "r": r, "x": x, "y": y}
        rates = {
            name: _species_vector(given[name], defaults[name], name)
            for name in defaults
        }
        # Only producers grow
        if r is not None:
            rates["r"][~_producer_mask(network)] = 0.0
        rates["e"] = _link_matrix(e, network, efficiency_matrix(network))
        return cls(**rates)


def _producer_mask(network: EcologicalNetwork) -> np.ndarray:
    mask = np.zeros(network.richness, dtype=bool)
    mask[network.producers()] = True
    return mask
