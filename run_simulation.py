# run_simulation.py File

"""
Run an ASM1 single-CSTR scenario from the command line.

    python run_simulation.py                         # built-in typical scenario
    python run_simulation.py --config scenario.json  # JSON scenario
    python run_simulation.py --solver rkf45 --days 30 --outdir results

A JSON scenario has three objects, "simulation", "reactor" and "influent".
The influent may be given as a full ASM1 state or as conventional analyses
({"COD": ..., "TKN": ..., "NH4": ..., "alkalinity": ..., "fractionation": ...}).
"""

import argparse
import json
import logging
import os

from asm1_simulation import (
    ReactorConfig,
    SimulationConfig,
    calculate_steady_state,
    run_asm1_simulation,
)
from effluent_metrics import calculate_effluent_quality, make_performance_plot
from influent import fractionate_influent, get_industrial_fractionation, get_typical_influent
from plot_results import plot_process_rates, plot_state_trajectories


def get_default_reactor():
    """Single aerated CSTR: 500 m3, HRT 6 h, SRT 15 d, 20 deg C, DO 2 mg/L."""
    return {
        'type': 'cstr',
        'zones': [{
            'id': 'aeration',
            'name': 'Aeration Tank',
            'volume': 500.0,
            'aeration_mode': 'aerobic',
            'target_do': 2.0,
            'mixing_intensity': 'high',
            'hrt': 6.0,
        }],
        'total_volume': 500.0,
        'total_hrt': 6.0,
        'srt': 15.0,
        'temperature': 20.0,
        'recirculation': {'external': 0.5, 'wastage': 33.0},
    }


def get_default_simulation(influent):
    """RK4, dt = 0.01 d, 10 days, daily output, started from influent plus seed biomass."""
    initial_state = dict(influent)
    initial_state.update({'X_H': 100.0, 'X_A': 10.0, 'S_O': 2.0})
    return {
        'start_time': 0.0,
        'end_time': 10.0,
        'time_step': 0.01,
        'output_interval': 1.0,
        'solver': 'rk4',
        'initial_state': initial_state,
    }


def influent_from_dict(data):
    """Influent as full ASM1 state, or fractionated from conventional analyses."""
    if 'COD' not in data:
        return dict(data)
    fractionation = data.get('fractionation')
    if fractionation == 'industrial':
        fractionation = get_industrial_fractionation()
    return fractionate_influent(data['COD'], data['TKN'], data['NH4'],
                                data.get('alkalinity', 0.0), fractionation)


def load_scenario(config_path=None):
    """
    Returns:
        tuple: (SimulationConfig, ReactorConfig, influent dict)
    """
    scenario = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Could not find scenario file {config_path}")
        with open(config_path, 'r') as f:
            scenario = json.load(f)

    influent = influent_from_dict(scenario.get('influent', get_typical_influent()))

    simulation = get_default_simulation(influent)
    simulation.update(scenario.get('simulation', {}))
    reactor = get_default_reactor()
    reactor.update(scenario.get('reactor', {}))

    return SimulationConfig.from_dict(simulation), ReactorConfig.from_dict(reactor), influent


def print_summary(result):
    print("\n[ASM1 CSTR | final state]")
    for name, value in result.final_state.items():
        print(f"{name:6s}: {value:10.3f}")

    print("\n[Effluent quality, mg/L]")
    for name, value in result.effluent_quality.items():
        print(f"{name:6s}: {value:10.3f}")

    od = result.oxygen_demand
    print(f"\nOxygen demand: {od['total']:.2f} kg O2/d "
          f"(carbonaceous {od['carbonaceous']:.2f}, nitrogenous {od['nitrogenous']:.2f})")
    sp = result.sludge_production
    print(f"Sludge production: {sp['total_vss']:.2f} kg VSS/d, {sp['total_tss']:.2f} kg TSS/d")

    print("\n[Performance, %]")
    for name, value in result.performance.items():
        print(f"{name:12s}: {value:7.2f}")

    ss = result.steady_state
    print(f"\nSteady state reached: {ss['reached']} (max window change {ss['convergence_metric']:.2e})")
    comp = result.computation
    print(f"Solver steps: {comp['total_steps']} in {comp['execution_time']:.1f} ms")
    for w in comp['warnings']:
        print(f"WARN: {w}")
    for e in comp['errors']:
        print(f"ERROR: {e}")


def main():
    ap = argparse.ArgumentParser(description="Dynamic ASM1 simulation of a single aerated CSTR.")
    ap.add_argument("--config", default=None, help="JSON scenario file")
    ap.add_argument("--solver", choices=['euler', 'rk2', 'rk4', 'rkf45'], default=None)
    ap.add_argument("--days", type=float, default=None, help="Simulation horizon (d)")
    ap.add_argument("--dt", type=float, default=None, help="Time step (d)")
    ap.add_argument("--outdir", default="results", help="Output directory for CSV and figures")
    ap.add_argument("--quick", action="store_true", help="Also run the quick steady-state estimate")
    ap.add_argument("--no-plots", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO)

    try:
        config, reactor, influent = load_scenario(args.config)
        if args.solver is not None:
            config.solver = args.solver
        if args.days is not None:
            config.end_time = config.start_time + args.days
        if args.dt is not None:
            config.time_step = args.dt

        print("Starting ASM1 simulation...")
        result = run_asm1_simulation(config, reactor, influent)
    except (ValueError, FileNotFoundError, KeyError, TypeError) as exc:
        raise SystemExit(f"Simulation not run: {exc}")

    print_summary(result)

    os.makedirs(args.outdir, exist_ok=True)
    csv_path = os.path.join(args.outdir, 'asm1_time_series.csv')
    result.to_dataframe().to_csv(csv_path, index=False)
    print(f"CSV  saved → {csv_path}")

    if not args.no_plots:
        influent_quality = calculate_effluent_quality(influent)
        make_performance_plot(influent_quality, result.effluent_quality,
                              out_png=os.path.join(args.outdir, 'asm1_performance.png'),
                              out_csv=os.path.join(args.outdir, 'asm1_performance_summary.csv'))
        print(f"Plot saved → {plot_state_trajectories(result, args.outdir)}")
        print(f"Plot saved → {plot_process_rates(result, args.outdir)}")

    if args.quick:
        quick = calculate_steady_state(influent, reactor.total_hrt / 24.0, reactor.srt,
                                       reactor.temperature, reactor.target_do())
        print("\n[Quick steady-state estimate]")
        for name, value in quick.items():
            print(f"{name:6s}: {value:10.3f}")


if __name__ == '__main__':
    main()
