"""
Ecological network data structures.

This module defines the interaction topology consumed by the model:
- FoodWeb: trophic adjacency, metabolic classes and body masses
- Layer: one non-trophic interaction layer (adjacency + intensity)
- MultiplexNetwork: a food web overlaid with non-trophic layers

Convention: ``A[i, j] == 1`` means that consumer ``i`` eats resource ``j``.
Producers are the species with no prey. Self-loops are cannibalism links.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.sparse

from pybefw.core.constants import PRODUCER, INVERTEBRATE

ArrayLike = Union[np.ndarray, Sequence, scipy.sparse.spmatrix]

LAYER_NAMES = ("competition", "facilitation", "interference", "refuge")


def _as_adjacency(A: ArrayLike) -> scipy.sparse.csr_matrix:
    """Convert an adjacency-like object to a sorted CSR matrix."""
    if scipy.sparse.issparse(A):
        mat = scipy.sparse.csr_matrix(A, dtype=float)
    else:
        arr = np.asarray(A, dtype=float)
        if arr.ndim != 2:
            raise ValueError(f"Adjacency matrix must be 2D, got {arr.ndim}D")
        mat = scipy.sparse.csr_matrix(arr)
    if mat.shape[0] != mat.shape[1]:
        raise ValueError(f"Adjacency matrix must be square, got shape {mat.shape}")
    mat.eliminate_zeros()
    mat.sort_indices()
    return mat


@dataclass
class FoodWeb:
    """Trophic network of a species community.

    Attributes
    ----------
    A : scipy.sparse.csr_matrix
        Trophic adjacency [consumer, resource]
    species : list of str
        Species names (default ``s1 ... sS``)
    metabolic_class : list of str
        ``"producer"``, ``"invertebrate"`` or ``"ectotherm vertebrate"``
    M : np.ndarray
        Species body masses (default 1)
    """

    A: ArrayLike
    species: Optional[List[str]] = None
    metabolic_class: Optional[List[str]] = None
    M: Optional[np.ndarray] = None

    def __post_init__(self):
        self.A = _as_adjacency(self.A)
        S = self.A.shape[0]

        if self.species is None:
            self.species = [f"s{i + 1}" for i in range(S)]
        self.species = list(self.species)
        if len(self.species) != S:
            raise ValueError(f"species length ({len(self.species)}) != richness ({S})")
        if len(set(self.species)) != S:
            raise ValueError("Species names must be unique")

        if self.metabolic_class is None:
            self.metabolic_class = [
                PRODUCER if self.is_producer(i) else INVERTEBRATE for i in range(S)
            ]
        self.metabolic_class = list(self.metabolic_class)
        if len(self.metabolic_class) != S:
            raise ValueError(
                f"metabolic_class length ({len(self.metabolic_class)}) != richness ({S})"
            )

        if self.M is None:
            self.M = np.ones(S)
        self.M = np.asarray(self.M, dtype=float)
        if self.M.shape != (S,):
            raise ValueError(f"M shape {self.M.shape} != ({S},)")
        if np.any(self.M <= 0):
            raise ValueError("Body masses must be positive")

    def __repr__(self) -> str:
        return f"FoodWeb(S={self.richness}, L={self.n_links})"

    @property
    def richness(self) -> int:
        """Number of species."""
        return self.A.shape[0]

    @property
    def n_links(self) -> int:
        """Number of trophic links."""
        return self.A.nnz

    def producers(self) -> np.ndarray:
        """Indices of producers (species without prey), sorted."""
        n_prey = np.diff(self.A.indptr)
        return np.flatnonzero(n_prey == 0)

    def is_producer(self, i: int) -> bool:
        return self.A.indptr[i + 1] == self.A.indptr[i]

    def preys_of(self, i: int) -> np.ndarray:
        return self.A.indices[self.A.indptr[i]:self.A.indptr[i + 1]].copy()

    def predators_of(self, j: int) -> np.ndarray:
        return np.flatnonzero(self.A[:, j].toarray().ravel())

    def trophic_links(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return (consumer, resource) index arrays of every link, row-major."""
        coo = self.A.tocoo()
        return coo.row.astype(np.intp), coo.col.astype(np.intp)


@dataclass
class Layer:
    """Non-trophic interaction layer.

    Attributes
    ----------
    A : scipy.sparse.csr_matrix
        Adjacency [source, target], ``A[k, i] == 1`` if ``k`` acts on ``i``
    intensity : float
        Layer intensity (c0, f0, i0 or r0)
    """

    A: ArrayLike
    intensity: float = 0.0

    def __post_init__(self):
        self.A = _as_adjacency(self.A)

    @property
    def n_links(self) -> int:
        return self.A.nnz

    @property
    def is_active(self) -> bool:
        return self.A.nnz > 0 and self.intensity != 0


class MultiplexNetwork:
    """Food web extended with non-trophic interaction layers.

    Layers that are not given are empty. Every ``FoodWeb`` query is
    answered by the trophic layer.

    Parameters
    ----------
    foodweb : FoodWeb
        Trophic layer
    competition, facilitation, interference, refuge : Layer, optional
        Non-trophic layers, each of shape (S, S)
    """

    def __init__(
        self,
        foodweb: FoodWeb,
        competition: Optional[Layer] = None,
        facilitation: Optional[Layer] = None,
        interference: Optional[Layer] = None,
        refuge: Optional[Layer] = None,
    ):
        self.foodweb = foodweb
        S = foodweb.richness
        given = dict(
            competition=competition,
            facilitation=facilitation,
            interference=interference,
            refuge=refuge,
        )
        self.layers = {}
        for name in LAYER_NAMES:
            layer = given[name]
            if layer is None:
                layer = Layer(scipy.sparse.csr_matrix((S, S)), 0.0)
            if layer.A.shape != (S, S):
                raise ValueError(
                    f"{name} layer shape {layer.A.shape} != ({S}, {S})"
                )
            self.layers[name] = layer

    def __repr__(self) -> str:
        counts = ", ".join(
            f"L{name[0]}={self.layers[name].n_links}" for name in LAYER_NAMES
        )
        return f"MultiplexNetwork(S={self.richness}, Lt={self.n_links}, {counts})"

    @property
    def competition(self) -> Layer:
        return self.layers["competition"]

    @property
    def facilitation(self) -> Layer:
        return self.layers["facilitation"]

    @property
    def interference(self) -> Layer:
        return self.layers["interference"]

    @property
    def refuge(self) -> Layer:
        return self.layers["refuge"]

    # Trophic layer delegation

    @property
    def A(self) -> scipy.sparse.csr_matrix:
        return self.foodweb.A

    @property
    def species(self) -> List[str]:
        return self.foodweb.species

    @property
    def metabolic_class(self) -> List[str]:
        return self.foodweb.metabolic_class

    @property
    def M(self) -> np.ndarray:
        return self.foodweb.M

    @property
    def richness(self) -> int:
        return self.foodweb.richness

    @property
    def n_links(self) -> int:
        return self.foodweb.n_links

    def producers(self) -> np.ndarray:
        return self.foodweb.producers()

    def is_producer(self, i: int) -> bool:
        return self.foodweb.is_producer(i)

    def preys_of(self, i: int) -> np.ndarray:
        return self.foodweb.preys_of(i)

    def predators_of(self, j: int) -> np.ndarray:
        return self.foodweb.predators_of(j)

    def trophic_links(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.foodweb.trophic_links()


EcologicalNetwork = Union[FoodWeb, MultiplexNetwork]
