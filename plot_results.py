#!/usr/bin/env python3
"""
Plot ASM1 state trajectories and process rates from a simulation result
or from the time-series CSV written by run_simulation.py.
Usage: python plot_results.py --csv results/asm1_time_series.csv
"""

import argparse
import os

import pandas as pd
import matplotlib
matplotlib.use("Agg")  # headless backend for terminals/servers
import matplotlib.pyplot as plt

from asm1_parameters import ASM1_STATE_ORDER, all_particulate_idx
from ASM1_Processes import PROCESS_LABELS, PROCESS_NAMES

UNITS = {name: 'g/m³' for name in ASM1_STATE_ORDER}
UNITS['S_ALK'] = 'mol/m³'


def _as_frame(data):
    # SimulationResult or DataFrame
    return data.to_dataframe() if hasattr(data, 'to_dataframe') else data


def plot_state_trajectories(data, output_dir, filename='asm1_states.png'):
    """
    One panel per ASM1 component; particulates drawn in a second colour.

    Args:
        data: SimulationResult or DataFrame from SimulationResult.to_dataframe().
        output_dir: Directory to save the figure in.

    Returns:
        str: Path of the saved figure.
    """
    df = _as_frame(data)
    os.makedirs(output_dir, exist_ok=True)

    fig, axes = plt.subplots(5, 3, figsize=(14, 16), sharex=True)
    axes = axes.ravel()
    t_span = df['time']

    for idx, comp_name in enumerate(ASM1_STATE_ORDER):
        color = 'tab:brown' if idx in all_particulate_idx else 'tab:blue'
        axes[idx].plot(t_span, df[comp_name], color=color)
        axes[idx].set_title(comp_name)
        axes[idx].set_ylabel(UNITS[comp_name])
        axes[idx].grid(True)

    # oxygen demand shares the last free panel
    axes[13].plot(t_span, df['oxygen_demand'], color='tab:red')
    axes[13].set_title('Oxygen uptake rate')
    axes[13].set_ylabel('g O₂/(m³·d)')
    axes[13].grid(True)
    axes[14].axis('off')

    for ax in axes[-3:]:
        ax.set_xlabel('Time (days)')

    plt.tight_layout()
    output_path = os.path.join(output_dir, filename)
    plt.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


def plot_process_rates(data, output_dir, filename='asm1_process_rates.png'):
    """Eight process rates on a shared log axis."""
    df = _as_frame(data)
    os.makedirs(output_dir, exist_ok=True)

    fig, ax = plt.subplots(figsize=(12, 6))
    for key, label in zip(PROCESS_NAMES, PROCESS_LABELS):
        # log axis: zero rates are left out
        series = df[key].where(df[key] > 0)
        ax.plot(df['time'], series, label=label)
    ax.set_yscale('log')
    ax.set_xlabel('Time (days)')
    ax.set_ylabel('Rate (g/(m³·d))')
    ax.set_title('ASM1 process rates')
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)

    fig.tight_layout()
    output_path = os.path.join(output_dir, filename)
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


def main():
    ap = argparse.ArgumentParser(description="Plot ASM1 simulation output saved as CSV.")
    ap.add_argument("--csv", required=True, help="Time-series CSV written by run_simulation.py")
    ap.add_argument("--outdir", default="results", help="Output directory for images")
    args = ap.parse_args()

    if not os.path.exists(args.csv):
        raise SystemExit(f"Could not find {args.csv}")

    df = pd.read_csv(args.csv)
    print(f"Saved: {plot_state_trajectories(df, args.outdir)}")
    print(f"Saved: {plot_process_rates(df, args.outdir)}")


if __name__ == '__main__':
    main()
