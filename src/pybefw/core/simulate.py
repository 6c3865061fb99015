"""
Simulation driver for the bioenergetic food-web model.

The ODE system is integrated with ``scipy.integrate.solve_ivp`` in
segments. Every surviving species carries a terminal event at the
extinction threshold; when it fires the species is recorded as extinct,
its biomass is pinned to zero and integration restarts from the event
time. A second terminal event stops the run at steady state.

Terminal states: converged (steady state), stopped at the time horizon,
all species extinct, or numerical failure. The trajectory computed so far
is always returned.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.integrate import solve_ivp

from pybefw.core import constants
from pybefw.core.dbdt import build_derivative
from pybefw.core.model_parameters import ModelParameters
from pybefw.logger import get_logger

logger = get_logger(__name__)


class SimulationStatus(Enum):
    """State of a simulation run."""

    RUNNING = "running"
    CONVERGED = "converged"
    STOPPED_AT_HORIZON = "stopped_at_horizon"
    ALL_EXTINCT = "all_extinct"
    NUMERICAL_FAILURE = "numerical_failure"


@dataclass
class SimulationConfig:
    """Integration options.

    Attributes
    ----------
    tmax : float
        Time horizon
    t0 : float
        Initial time
    extinction_threshold : float
        Biomass below which a species is extinct
    stop_at_steady_state : bool
        Stop as soon as ``|du/dt| <= steady_state_atol + steady_state_rtol * |u|``
    method : str
        ``solve_ivp`` method (LSODA, RK45, BDF, Radau, ...)
    rtol, atol : float
        Integration tolerances
    max_step : float
        Largest step allowed to the solver
    diff_code_data : str
        Derivative evaluator, ``"compact"`` or ``"generic"``
    t_eval : array, optional
        Times at which to store the solution (solver steps when None).
        Extinction and steady-state event times are always stored.
    verbose : bool
        Log extinctions at INFO level instead of DEBUG
    """

    tmax: float = constants.DEFAULT_TMAX
    t0: float = 0.0
    extinction_threshold: float = constants.EXTINCTION_THRESHOLD
    stop_at_steady_state: bool = True
    method: str = constants.INTEGRATION_METHOD
    rtol: float = constants.INTEGRATION_RTOL
    atol: float = constants.INTEGRATION_ATOL
    steady_state_rtol: float = constants.STEADY_STATE_RTOL
    steady_state_atol: float = constants.STEADY_STATE_ATOL
    max_step: float = np.inf
    diff_code_data: str = "compact"
    t_eval: Optional[Sequence[float]] = None
    verbose: bool = False

    def __post_init__(self):
        if self.tmax <= self.t0:
            raise ValueError(f"tmax ({self.tmax}) must be > t0 ({self.t0})")
        if self.extinction_threshold < 0:
            raise ValueError("extinction_threshold must be non-negative")
        if self.t_eval is not None:
            t_eval = np.asarray(self.t_eval, dtype=float)
            if np.any(np.diff(t_eval) <= 0):
                raise ValueError("t_eval must be strictly increasing")
            if t_eval.size and (t_eval[0] < self.t0 or t_eval[-1] > self.tmax):
                raise ValueError("t_eval must lie within [t0, tmax]")


@dataclass
class SimulationOutput:
    """Result of a simulation run.

    Attributes
    ----------
    t : np.ndarray
        Sample times
    u : np.ndarray
        State samples [time, state] (species biomass then nutrients)
    species : list of str
        Species names
    extinct : dict
        Species index -> extinction time
    status : SimulationStatus
        Terminal state of the run
    message : str
        Solver message
    nutrients : list of str
        Nutrient names (empty without nutrient dynamics)
    """

    t: np.ndarray
    u: np.ndarray
    species: List[str]
    extinct: Dict[int, float]
    status: SimulationStatus
    message: str = ""
    nutrients: List[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"SimulationOutput(status={self.status.value}, samples={len(self.t)}, "
            f"t_end={self.t[-1]:.4g}, extinct={len(self.extinct)}/{self.n_species})"
        )

    @property
    def n_species(self) -> int:
        return len(self.species)

    @property
    def B(self) -> np.ndarray:
        """Species biomass [time, species]."""
        return self.u[:, :self.n_species]

    @property
    def N(self) -> np.ndarray:
        """Nutrient concentrations [time, nutrient]."""
        return self.u[:, self.n_species:]

    @property
    def final_biomass(self) -> np.ndarray:
        return self.B[-1].copy()

    @property
    def extinct_species(self) -> List[str]:
        """Names of extinct species, in order of extinction."""
        order = sorted(self.extinct, key=self.extinct.get)
        return [self.species[i] for i in order]

    @property
    def converged(self) -> bool:
        return self.status is SimulationStatus.CONVERGED

    def to_dataframe(self) -> pd.DataFrame:
        """Trajectory as a DataFrame indexed by time."""
        df = pd.DataFrame(self.u, columns=list(self.species) + list(self.nutrients))
        df.index = pd.Index(self.t, name="time")
        return df


class _ExtinctionEvent:
    """Biomass of one species crossing the extinction threshold from above."""

    terminal = True
    direction = -1

    def __init__(self, species: int, threshold: float):
        self.species = species
        self.threshold = threshold

    def __call__(self, t: float, u: np.ndarray) -> float:
        return u[self.species] - self.threshold


class _SteadyStateEvent:
    """Largest excess of ``|du/dt|`` over the steady-state tolerance becoming negative."""

    terminal = True
    direction = -1

    def __init__(self, rhs, atol: float, rtol: float):
        self.rhs = rhs
        self.atol = atol
        self.rtol = rtol

    def __call__(self, t: float, u: np.ndarray) -> float:
        excess = np.abs(self.rhs(t, u)) - (self.atol + self.rtol * np.abs(u))
        return float(np.max(excess))


def _initial_state(params: ModelParameters, B0, N0) -> np.ndarray:
    S = params.richness
    if B0 is None:
        B0 = constants.DEFAULT_INITIAL_BIOMASS
    B0 = np.array(np.broadcast_to(np.asarray(B0, dtype=float), (S,)))
    if params.has_nutrients:
        if N0 is None:
            N0 = params.producer_growth.supply
        N0 = np.array(np.broadcast_to(np.asarray(N0, dtype=float), (params.n_nutrients,)))
    else:
        if N0 is not None:
            raise ValueError("N0 given but the model has no nutrient dynamics")
        N0 = np.zeros(0)
    u0 = np.concatenate([B0, N0])
    if not np.all(np.isfinite(u0)):
        raise ValueError("Initial state must be finite")
    if np.any(u0 < 0):
        raise ValueError("Initial biomass and nutrient concentrations must be non-negative")
    return u0


def _is_steady(du: np.ndarray, u: np.ndarray, config: SimulationConfig) -> bool:
    return bool(np.all(np.abs(du) <= config.steady_state_atol + config.steady_state_rtol * np.abs(u)))


def _fired_events(sol, events):
    """Events that terminated the integration, with their time and state."""
    times = [t_ev[-1] if len(t_ev) else np.inf for t_ev in sol.t_events]
    k = int(np.argmin(times))
    t_event = times[k]
    tol = 1e-12 * max(1.0, abs(t_event))
    fired = [events[m] for m, t_m in enumerate(times) if abs(t_m - t_event) <= tol]
    return t_event, np.array(sol.y_events[k][-1], dtype=float), fired


def simulate(
    params: ModelParameters,
    B0: Optional[Union[float, Sequence[float]]] = None,
    N0: Optional[Union[float, Sequence[float]]] = None,
    config: Optional[SimulationConfig] = None,
    **options,
) -> SimulationOutput:
    """Integrate the biomass dynamics of a community.

    Parameters
    ----------
    params : ModelParameters
        Model parameters
    B0 : float or array, optional
        Initial biomass (default 0.5 for every species)
    N0 : float or array, optional
        Initial nutrient concentrations (default: nutrient supply)
    config : SimulationConfig, optional
        Integration options
    **options
        Overrides of ``config`` fields, e.g. ``tmax=1000``

    Returns
    -------
    SimulationOutput
        Trajectory, extinction record and terminal status

    Examples
    --------
    >>> params = model_parameters(FoodWeb([[0, 1], [0, 0]]))
    >>> out = simulate(params, 0.5, tmax=1000)
    >>> out.status
    <SimulationStatus.CONVERGED: 'converged'>
    """
    config = dataclasses.replace(config or SimulationConfig(), **options)
    rhs = build_derivative(params, config.diff_code_data)
    S = params.richness
    threshold = config.extinction_threshold
    log_extinction = logger.info if config.verbose else logger.debug
    t_eval = None if config.t_eval is None else np.asarray(config.t_eval, dtype=float)

    u = _initial_state(params, B0, N0)
    t = float(config.t0)
    extinct: Dict[int, float] = {}
    times: List[float] = [t]
    states: List[np.ndarray] = [u.copy()]
    status = SimulationStatus.RUNNING
    message = ""

    while status is SimulationStatus.RUNNING:
        # Species at or below the threshold at the start of a segment
        for i in range(S):
            if i not in extinct and u[i] <= threshold:
                extinct[i] = t
                u[i] = 0.0
                log_extinction(f"Species {params.network.species[i]} extinct at t={t:.6g}")
        states[-1] = u.copy()

        if len(extinct) == S:
            status = SimulationStatus.ALL_EXTINCT
            break

        pinned = frozenset(extinct)

        def fun(t, y, pinned=pinned):
            return rhs(y, t, pinned)

        if config.stop_at_steady_state and _is_steady(fun(t, u), u, config):
            status = SimulationStatus.CONVERGED
            break

        events = [_ExtinctionEvent(i, threshold) for i in range(S) if i not in extinct]
        if config.stop_at_steady_state:
            events.append(
                _SteadyStateEvent(fun, config.steady_state_atol, config.steady_state_rtol)
            )
        segment_eval = None
        if t_eval is not None:
            segment_eval = t_eval[(t_eval > t) & (t_eval <= config.tmax)]

        logger.debug(f"Integrating from t={t:.6g} with {S - len(extinct)} species alive")
        sol = solve_ivp(
            fun,
            (t, config.tmax),
            u,
            method=config.method,
            t_eval=segment_eval,
            events=events,
            rtol=config.rtol,
            atol=config.atol,
            max_step=config.max_step,
        )

        # Empty lists when no t_eval point falls inside the segment
        sol_t = np.asarray(sol.t, dtype=float)
        sol_y = np.asarray(sol.y, dtype=float).reshape(len(u), -1)
        new = sol_t > t
        seg_t = sol_t[new]
        seg_u = sol_y.T[new]
        finite = np.all(np.isfinite(seg_u), axis=1)
        if not np.all(finite):
            first_bad = int(np.argmin(finite))
            times.extend(seg_t[:first_bad])
            states.extend(np.maximum(seg_u[:first_bad], 0.0))
            status = SimulationStatus.NUMERICAL_FAILURE
            message = f"Non-finite state at t={seg_t[first_bad]:.6g}"
            break
        times.extend(seg_t)
        states.extend(np.maximum(seg_u, 0.0))

        if sol.status == -1:
            status = SimulationStatus.NUMERICAL_FAILURE
            message = sol.message
            break
        if sol.status == 0:
            status = SimulationStatus.STOPPED_AT_HORIZON
            message = sol.message
            break

        t_event, u_event, fired = _fired_events(sol, events)
        if not np.all(np.isfinite(u_event)):
            status = SimulationStatus.NUMERICAL_FAILURE
            message = f"Non-finite state at t={t_event:.6g}"
            break
        t = float(t_event)
        u = np.maximum(u_event, 0.0)
        for event in fired:
            if isinstance(event, _ExtinctionEvent):
                extinct[event.species] = t
                u[event.species] = 0.0
                log_extinction(
                    f"Species {params.network.species[event.species]} extinct at t={t:.6g}"
                )
        if times[-1] != t:
            times.append(t)
            states.append(u.copy())
        else:
            states[-1] = u.copy()

        if len(extinct) == S:
            status = SimulationStatus.ALL_EXTINCT
        elif any(isinstance(event, _SteadyStateEvent) for event in fired):
            status = SimulationStatus.CONVERGED
            message = "Steady state reached"

    logger.info(
        f"Simulation ended with status '{status.value}' at t={times[-1]:.6g} "
        f"({len(extinct)}/{S} species extinct)"
    )
    nutrients = [f"n{l + 1}" for l in range(params.n_nutrients)]
    return SimulationOutput(
        t=np.asarray(times, dtype=float),
        u=np.vstack(states),
        species=list(params.network.species),
        extinct=dict(extinct),
        status=status,
        message=message,
        nutrients=nutrients,
    )
