"""
Compact derivative evaluator.

At construction the sparse interaction structure is walked once. Each
model term contributes a fragment ``(steps, data)``:

- steps: callables ``step(dB, dN, B, N, data)`` run in order on every
  evaluation
- data: precomputed index arrays (trophic links, growing producers,
  competitors, ...), rates restricted to those indices and scratch buffers

The fragments are merged into one evaluation routine that only visits the
precomputed entries. The result must match ``dbdt.dBdt`` for any state.
"""

from __future__ import annotations

from typing import Any, Callable, Collection, Dict, List, Tuple

import numpy as np

from pybefw.core.consumption import consumption_fragment
from pybefw.core.dbdt import prepare_state
from pybefw.core.exceptions import ConsistencyError
from pybefw.core.metabolism import death_fragment, metabolism_fragment
from pybefw.core.model_parameters import ModelParameters

Step = Callable[..., None]
Fragment = Tuple[List[Step], Dict[str, Any]]


def _same(a: Any, b: Any) -> bool:
    """Structural equality of fragment data values (arrays, tuples, scalars)."""
    if isinstance(a, tuple) and isinstance(b, tuple):
        return len(a) == len(b) and all(_same(x, y) for x, y in zip(a, b))
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        a, b = np.asarray(a), np.asarray(b)
        return a.shape == b.shape and a.dtype.kind == b.dtype.kind and np.array_equal(a, b)
    return type(a) == type(b) and a == b


def merge_fragments(fragments: List[Tuple[str, Fragment]]) -> Fragment:
    """Concatenate steps and merge data of named fragments.

    Raises
    ------
    ConsistencyError
        If two fragments produce different values for the same key
    """
    steps = []
    data = {}
    owner = {}
    for name, (fragment_steps, fragment_data) in fragments:
        steps.extend(fragment_steps)
        for key, value in fragment_data.items():
            if key in data and not _same(value, data[key]):
                raise ConsistencyError(
                    f"Error in package source: '{name}' produced data '{key}': {value!r} "
                    f"inconsistently with '{key}' previously produced by "
                    f"'{owner[key]}': {data[key]!r}"
                )
            if key not in data:
                data[key] = value
                owner[key] = name
    return steps, data


def compact_fragments(params: ModelParameters) -> List[Tuple[str, Fragment]]:
    """Fragments of every model term, in evaluation order."""
    return [
        # Fills the per-link consumption intensity buffer
        ("functional_response", params.functional_response.fragment(params)),
        # Full pass over dB, initializes every entry
        ("consumption", consumption_fragment(params)),
        # Partial passes
        ("producer_growth", params.producer_growth.fragment(params)),
        ("metabolism", metabolism_fragment(params)),
        ("death", death_fragment(params)),
    ]


class CompactDerivative:
    """Derivative function over precomputed sparse index arrays.

    Parameters
    ----------
    params : ModelParameters
        Model parameters

    Attributes
    ----------
    steps : list
        Evaluation steps, run in order
    data : dict
        Precomputed indices, rates and scratch buffers
    """

    strategy = "compact"

    def __init__(self, params: ModelParameters):
        self.params = params
        self.steps, self.data = merge_fragments(compact_fragments(params))

    def __repr__(self) -> str:
        return f"CompactDerivative(steps={len(self.steps)}, links={len(self.data['links_i'])})"

    def __call__(self, u: np.ndarray, t: float = 0.0, extinct: Collection[int] = ()) -> np.ndarray:
        B, N = prepare_state(u, self.params, extinct)
        du = np.empty(self.params.n_state)
        S = self.params.richness
        dB, dN = du[:S], du[S:]
        for step in self.steps:
            step(dB, dN, B, N, self.data)
        if len(extinct):
            dB[list(extinct)] = 0.0
        return du
