"""
Measures of simulated communities.

Functioning (biomass, persistence, richness), diversity (Shannon,
Simpson, evenness) and stability (variability) of a simulation output.
Every measure is computed over the final samples of the trajectory,
selected with ``last``:

- a float in (0, 1]: fraction of the samples
- an int >= 1: number of samples
"""

from __future__ import annotations

from typing import Dict, Union

import numpy as np
import pandas as pd

from pybefw.core import constants
from pybefw.core.simulate import SimulationOutput

Last = Union[int, float]


def _last_samples(output: SimulationOutput, last: Last) -> np.ndarray:
    """Biomass samples [time, species] of the final part of the trajectory."""
    B = output.B
    n = B.shape[0]
    if isinstance(last, (int, np.integer)) and not isinstance(last, bool):
        if last < 1:
            raise ValueError(f"last must be >= 1 sample, got {last}")
        k = min(int(last), n)
    else:
        if not 0 < last <= 1:
            raise ValueError(f"last must be a fraction in (0, 1], got {last}")
        k = max(1, int(np.ceil(last * n)))
    return B[n - k:]


def _proportions(B: np.ndarray) -> np.ndarray:
    total = B.sum(axis=1, keepdims=True)
    return np.divide(B, total, out=np.zeros_like(B), where=total > 0)


# =============================================================================
# FUNCTIONING
# =============================================================================


def total_biomass(output: SimulationOutput, last: Last = constants.DEFAULT_LAST_FRACTION) -> float:
    """Mean total community biomass over the final samples."""
    return float(_last_samples(output, last).sum(axis=1).mean())


def species_richness(
    output: SimulationOutput,
    last: Last = constants.DEFAULT_LAST_FRACTION,
    threshold: float = 0.0,
) -> float:
    """Mean number of species with biomass above ``threshold``."""
    B = _last_samples(output, last)
    return float((B > threshold).sum(axis=1).mean())


def species_persistence(
    output: SimulationOutput,
    last: Last = constants.DEFAULT_LAST_FRACTION,
    threshold: float = 0.0,
) -> float:
    """Mean fraction of species with biomass above ``threshold``.

    Examples
    --------
    >>> out = simulate(params, 0.5)
    >>> species_persistence(out)  # every species alive
    1.0
    """
    return species_richness(output, last, threshold) / output.n_species


# =============================================================================
# DIVERSITY
# =============================================================================


def foodweb_shannon(output: SimulationOutput, last: Last = constants.DEFAULT_LAST_FRACTION) -> float:
    """Mean Shannon entropy of the biomass distribution.

    ``H = -sum_i p_i log(p_i)`` with ``p_i = B_i / sum_k B_k``; absent
    species contribute 0.
    """
    p = _proportions(_last_samples(output, last))
    logp = np.log(p, out=np.zeros_like(p), where=p > 0)
    return float((-(p * logp).sum(axis=1)).mean())


def foodweb_simpson(output: SimulationOutput, last: Last = constants.DEFAULT_LAST_FRACTION) -> float:
    """Mean inverse Simpson index ``1 / sum_i p_i^2`` of the biomass distribution.

    Equals the number of species when biomass is evenly spread, 0 for an
    empty community.
    """
    p = _proportions(_last_samples(output, last))
    concentration = (p ** 2).sum(axis=1)
    inverse = np.divide(1.0, concentration, out=np.zeros_like(concentration), where=concentration > 0)
    return float(inverse.mean())


def foodweb_evenness(
    output: SimulationOutput,
    last: Last = constants.DEFAULT_LAST_FRACTION,
    threshold: float = 0.0,
) -> float:
    """Pielou evenness: Shannon entropy divided by ``log`` of the richness.

    Communities of fewer than two species have an evenness of 0.
    """
    B = _last_samples(output, last)
    p = _proportions(B)
    logp = np.log(p, out=np.zeros_like(p), where=p > 0)
    shannon = -(p * logp).sum(axis=1)
    log_richness = np.log(np.maximum((B > threshold).sum(axis=1), 1))
    evenness = np.divide(shannon, log_richness, out=np.zeros_like(shannon), where=log_richness > 0)
    return float(evenness.mean())


# =============================================================================
# STABILITY
# =============================================================================


def coefficient_of_variation(
    output: SimulationOutput,
    last: Last = constants.DEFAULT_LAST_FRACTION,
) -> Dict[str, float]:
    """Temporal variability of the community over the final samples.

    Returns
    -------
    dict
        - community: CV of the total biomass
        - species: biomass-weighted mean CV of the species
        - synchrony: ``community / species`` (1 when species fluctuate
          in phase, 0 when they compensate perfectly); NaN when no species
          varies
    """
    B = _last_samples(output, last)
    mean = B.mean(axis=0)
    std = B.std(axis=0)
    total_mean = mean.sum()
    if total_mean == 0:
        return {"community": np.nan, "species": np.nan, "synchrony": np.nan}
    community = float(B.sum(axis=1).std() / total_mean)
    species = float(std.sum() / total_mean)
    synchrony = community / species if species > 0 else np.nan
    return {"community": community, "species": species, "synchrony": synchrony}


def population_stability(
    output: SimulationOutput,
    last: Last = constants.DEFAULT_LAST_FRACTION,
    threshold: float = 0.0,
) -> float:
    """Negative mean coefficient of variation of the persisting species.

    0 for a community at equilibrium, more negative as populations
    fluctuate. NaN when no species persists.
    """
    B = _last_samples(output, last)
    alive = B[-1] > threshold
    if not np.any(alive):
        return np.nan
    mean = B[:, alive].mean(axis=0)
    cv = B[:, alive].std(axis=0) / mean
    return float(-cv.mean())


def summarize(output: SimulationOutput, last: Last = constants.DEFAULT_LAST_FRACTION) -> pd.Series:
    """All community measures of a simulation output."""
    cv = coefficient_of_variation(output, last)
    return pd.Series(
        {
            "total_biomass": total_biomass(output, last),
            "species_richness": species_richness(output, last),
            "species_persistence": species_persistence(output, last),
            "shannon": foodweb_shannon(output, last),
            "simpson": foodweb_simpson(output, last),
            "evenness": foodweb_evenness(output, last),
            "cv_community": cv["community"],
            "cv_species": cv["species"],
            "synchrony": cv["synchrony"],
            "population_stability": population_stability(output, last),
        },
        name="measures",
    )
