# asm1_simulation.py File

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd

from asm1_parameters import (
    ASM1_STATE_ORDER,
    S_O_IDX,
    array_to_state,
    correct_temperature,
    get_default_kinetic_params,
    get_default_stoich_params,
    get_default_temperature_coefficients,
    merge_params,
    state_to_array,
)
from ASM1_Processes import PROCESS_NAMES, describe_process_rates
from cstr_model import CSTRModel
from effluent_metrics import (
    calculate_effluent_quality,
    calculate_oxygen_demand,
    calculate_performance,
    calculate_sludge_production,
    oxygen_uptake_rate,
)
from ode_solver import ODESolver, SolverOptions, is_steady_state, max_window_change, steady_state_error

logger = logging.getLogger(__name__)

DEFAULT_TARGET_DO = 2.0        # mg/L when no aerobic zone defines one
STEADY_STATE_HISTORY = 30      # retained samples inspected for steady state
STEADY_STATE_WINDOW = 10
STEADY_STATE_TOLERANCE = 1e-4

QUICK_STEADY_STATE_DT = 0.1    # d
QUICK_STEADY_STATE_TOLERANCE = 1e-6


# ============================================================
#  CONFIGURATION RECORDS
# ============================================================

@dataclass
class ReactorZone:
    id: str
    name: str
    volume: float                      # m^3
    aeration_mode: str = 'aerobic'     # aerobic | anoxic | anaerobic | intermittent
    target_do: Optional[float] = None  # mg/L
    mixing_intensity: str = 'medium'
    hrt: Optional[float] = None        # h
    srt: Optional[float] = None        # d

    @classmethod
    def from_dict(cls, data):
        return cls(**data)


@dataclass
class ReactorConfig:
    zones: List[ReactorZone]
    total_volume: float                # m^3
    total_hrt: float                   # h
    srt: float                         # d
    temperature: float = 20.0          # deg C
    recirculation: dict = field(default_factory=lambda: {'external': 0.0, 'wastage': 0.0})
    type: str = 'cstr'

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        data['zones'] = [z if isinstance(z, ReactorZone) else ReactorZone.from_dict(z)
                         for z in data.get('zones', [])]
        return cls(**data)

    def target_do(self):
        """Set point of the first aerobic zone, or DEFAULT_TARGET_DO."""
        for zone in self.zones:
            if zone.aeration_mode == 'aerobic':
                return zone.target_do if zone.target_do is not None else DEFAULT_TARGET_DO
        return DEFAULT_TARGET_DO


@dataclass
class SimulationConfig:
    initial_state: dict
    start_time: float = 0.0            # d
    end_time: float = 10.0             # d
    time_step: float = 0.01            # d
    output_interval: Optional[float] = 1.0  # d
    solver: str = 'rk4'                # euler | rk2 | rk4 | rkf45
    tolerance: Optional[float] = None
    max_iterations: Optional[int] = None
    kinetic_params: Optional[dict] = None
    stoich_params: Optional[dict] = None
    temp_coeffs: Optional[dict] = None

    @classmethod
    def from_dict(cls, data):
        return cls(**data)

    def solver_options(self):
        options = {}
        if self.tolerance is not None:
            options['tolerance'] = self.tolerance
        if self.max_iterations is not None:
            options['max_iterations'] = self.max_iterations
        return SolverOptions(**options)


# ============================================================
#  RESULT RECORD
# ============================================================

@dataclass
class SimulationResult:
    config: SimulationConfig
    reactor: ReactorConfig
    time_series: list
    final_state: dict
    effluent_quality: dict
    sludge_production: dict
    oxygen_demand: dict
    steady_state: dict
    performance: dict
    computation: dict

    def to_dataframe(self):
        """One row per retained time point: states, process rates, OUR and N balance."""
        rows = []
        for point in self.time_series:
            row = {'time': point['time']}
            row.update(point['state'])
            row.update({p['process']: p['rate'] for p in point['process_rates']})
            row['oxygen_demand'] = point['oxygen_demand']
            row.update({f"N_{k}": v for k, v in point['nitrogen_balance'].items()})
            rows.append(row)
        columns = (['time'] + ASM1_STATE_ORDER + PROCESS_NAMES
                   + ['oxygen_demand', 'N_total', 'N_oxidized', 'N_reduced'])
        return pd.DataFrame(rows, columns=columns)


# ============================================================
#  HELPERS
# ============================================================

def nitrogen_balance(state):
    """Split of the nitrogen pool into oxidised (NO3) and reduced (NH4 + organic N) forms."""
    reduced = state['S_NH'] + state['S_ND'] + state['X_ND']
    return {
        'total': reduced + state['S_NO'],
        'oxidized': state['S_NO'],
        'reduced': reduced,
    }


def steady_state_info(times, states):
    """
    Steady-state diagnostics for the retained samples.

    Returns:
        dict: reached, time_to_steady_state (None unless reached), max_variation
              (tolerance used) and convergence_metric (largest relative change
              over the last window).
    """
    history = [state_to_array(array_to_state(s)) for s in states[-STEADY_STATE_HISTORY:]]
    reached = is_steady_state(history, STEADY_STATE_WINDOW, STEADY_STATE_TOLERANCE)

    time_to_ss = None
    if reached:
        # last sample pair in the inspected history that still changed by more than the tolerance
        last_change = 0
        for k in range(1, len(history)):
            if steady_state_error(history[k - 1], history[k]) >= STEADY_STATE_TOLERANCE:
                last_change = k
        offset = len(states) - len(history)
        time_to_ss = float(times[offset + min(last_change + STEADY_STATE_WINDOW - 1, len(history) - 1)])

    return {
        'reached': reached,
        'time_to_steady_state': time_to_ss,
        'max_variation': STEADY_STATE_TOLERANCE,
        'convergence_metric': max_window_change(history, STEADY_STATE_WINDOW),
    }


def _validate(config, reactor):
    if reactor.total_hrt <= 0:
        raise ValueError(f"Reactor HRT must be positive, got {reactor.total_hrt} h")
    if reactor.total_volume <= 0:
        raise ValueError(f"Reactor volume must be positive, got {reactor.total_volume} m3")
    if reactor.srt <= 0:
        raise ValueError(f"SRT must be positive, got {reactor.srt} d")
    if config.time_step <= 0:
        raise ValueError(f"Time step must be positive, got {config.time_step} d")


# ============================================================
#  DYNAMIC SIMULATION
# ============================================================

def run_asm1_simulation(config, reactor, influent):
    """
    Dynamic simulation of a single aerated CSTR under constant influent.

    Args:
        config (SimulationConfig): Horizon, solver and parameter overrides.
        reactor (ReactorConfig): Volume, HRT (h), SRT (d), temperature, zones.
        influent (dict): Influent ASM1 state.

    Returns:
        SimulationResult: Owns copies of every input; solver failure is reported
        in computation['errors'] rather than raised.

    Raises:
        ValueError: For non-positive HRT, volume, SRT or time step, an unknown
            solver tag or an unknown parameter override.
    """
    started = time.perf_counter()
    warnings = []
    errors = []

    _validate(config, reactor)

    # --- 1) Parameters ---
    Kin_params = merge_params(get_default_kinetic_params(), config.kinetic_params)
    stoich_params = merge_params(get_default_stoich_params(), config.stoich_params)
    temp_coeffs = merge_params(get_default_temperature_coefficients(), config.temp_coeffs)
    Kin_corrected = correct_temperature(Kin_params, reactor.temperature, temp_coeffs)

    hrt_days = reactor.total_hrt / 24.0
    target_do = reactor.target_do()

    # --- 2) Reactor model & solver ---
    model = CSTRModel.from_states(influent, hrt_days, Kin_corrected, stoich_params, target_do)
    solver = ODESolver(model.evaluate, config.solver, config.solver_options())

    solution = solver.solve(
        state_to_array(config.initial_state),
        config.start_time,
        config.end_time,
        config.time_step,
        config.output_interval,
    )
    if not solution.success:
        errors.append(solution.message or 'Simulation failed')
    elif solution.message:
        warnings.append(solution.message)

    # --- 3) Time series ---
    time_series = []
    for t, y in zip(solution.times, solution.states):
        state = array_to_state(y)
        state['S_O'] = target_do
        process_rates = describe_process_rates(state, Kin_corrected)
        our_c, our_n = oxygen_uptake_rate(process_rates, stoich_params)
        time_series.append({
            'time': float(t),
            'state': state,
            'process_rates': process_rates,
            'oxygen_demand': our_c + our_n,
            'nitrogen_balance': nitrogen_balance(state),
        })

    # --- 4) Final metrics ---
    final_state = array_to_state(solution.states[-1])
    final_state['S_O'] = target_do
    final_rates = describe_process_rates(final_state, Kin_corrected)

    effluent_quality = calculate_effluent_quality(final_state)
    oxygen_demand = calculate_oxygen_demand(final_rates, stoich_params, reactor.total_volume)
    sludge = calculate_sludge_production(final_state, reactor.srt, reactor.total_volume)

    # influent and effluent share the clarified basis
    influent_quality = calculate_effluent_quality(influent)
    performance = calculate_performance(influent_quality, effluent_quality)

    flow = reactor.total_volume / hrt_days  # m3/d
    bod_load = influent_quality['BOD5'] * flow / 1000.0  # kg/d
    sludge_production = {
        'total_vss': sludge['total_vss'],
        'total_tss': sludge['total_tss'],
        'wastage_rate': sludge['wastage_rate'],
        'yield_observed': sludge['total_vss'] / max(bod_load, 1.0),
    }

    steady_state = steady_state_info(solution.times, solution.states)
    if not steady_state['reached']:
        warnings.append(f"Steady state not reached within {config.end_time - config.start_time:g} d")
        logger.warning(warnings[-1])

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    logger.info("ASM1 %s simulation: %d steps, %d samples, %.1f ms",
                config.solver, solution.total_steps, len(time_series), elapsed_ms)

    return SimulationResult(
        config=copy.deepcopy(config),
        reactor=copy.deepcopy(reactor),
        time_series=time_series,
        final_state=final_state,
        effluent_quality=effluent_quality,
        sludge_production=sludge_production,
        oxygen_demand=oxygen_demand,
        steady_state=steady_state,
        performance=performance,
        computation={
            'total_steps': solution.total_steps,
            'execution_time': elapsed_ms,
            'warnings': warnings,
            'errors': errors,
        },
    )


# ============================================================
#  QUICK STEADY STATE
# ============================================================

def calculate_steady_state(influent, hrt, srt, temperature, target_do=DEFAULT_TARGET_DO,
                           max_iterations=1000, Kin_params=None, stoich_params=None):
    """
    Approximate steady state by fixed-step (0.1 d) forward relaxation of the
    CSTR balance. Cheap and best effort: there is no convergence guarantee
    within max_iterations, and it is not a substitute for run_asm1_simulation.

    Args:
        influent (dict): Influent ASM1 state.
        hrt (float): Hydraulic retention time (d).
        srt (float): Solids retention time (d); not used by the relaxation
            (single tank, no solids recycle).
        temperature (float): deg C.
        target_do (float): DO set point (mg/L).
        max_iterations (int): Relaxation steps.
        Kin_params (dict): Kinetic parameters at 20 deg C, defaults if None.
        stoich_params (dict): Stoichiometric parameters, defaults if None.

    Returns:
        dict: ASM1 state at the last iterate.
    """
    if Kin_params is None:
        Kin_params = get_default_kinetic_params()
    if stoich_params is None:
        stoich_params = get_default_stoich_params()

    model = CSTRModel.from_states(influent, hrt, correct_temperature(Kin_params, temperature),
                                  stoich_params, target_do)

    # influent with a seeded biomass inventory
    state = dict(influent)
    state.update({'S_O': target_do, 'X_H': 2000.0, 'X_A': 200.0, 'X_P': 500.0})
    y = state_to_array(state)

    for iteration in range(max_iterations):
        y_new = np.maximum(0.0, y + QUICK_STEADY_STATE_DT * model.evaluate(0.0, y))
        y_new[S_O_IDX] = target_do

        max_change = float(np.max(np.abs(y_new - y) / np.maximum(y, 1.0)))
        y = y_new
        if max_change < QUICK_STEADY_STATE_TOLERANCE:
            logger.debug("Quick steady state converged after %d iterations", iteration + 1)
            break
    else:
        logger.debug("Quick steady state stopped at max_iterations=%d", max_iterations)

    return array_to_state(y)
