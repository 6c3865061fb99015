"""
Biomass losses that do not involve another species.

- metabolic loss: maintenance respiration, ``x_i B_i``
- natural death: background mortality, ``d_i B_i``
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from pybefw.core.biorates import BioRates

if TYPE_CHECKING:
    from pybefw.core.model_parameters import ModelParameters


def metabolic_loss(B: np.ndarray, biorates: BioRates) -> np.ndarray:
    """Biomass lost to maintenance metabolism by every species."""
    return biorates.x * B


def natural_death_loss(B: np.ndarray, biorates: BioRates) -> np.ndarray:
    """Biomass lost to natural mortality by every species."""
    return biorates.d * B


def _loss_fragment(rates: np.ndarray, key: str):
    # Species with a null rate are skipped
    idx = np.flatnonzero(rates)
    data = {f"{key}_species": idx, f"{key}_rate": np.asarray(rates)[idx]}

    def loss(dB, dN, B, N, d):
        idx = d[f"{key}_species"]
        dB[idx] -= d[f"{key}_rate"] * B[idx]

    return [loss], data


def metabolism_fragment(params: ModelParameters):
    return _loss_fragment(params.biorates.x, "metabolism")


def death_fragment(params: ModelParameters):
    return _loss_fragment(params.biorates.d, "death")
