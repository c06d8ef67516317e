# effluent_metrics.py File

import os

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from asm1_parameters import particulate_cod_idx, state_to_array

CLARIFIER_EFFICIENCY = 0.95  # fraction of particulates retained by the secondary clarifier
COD_PER_VSS = 1.42           # g COD / g VSS
VSS_PER_TSS = 0.8            # volatile fraction of suspended solids
BOD5_XS_FACTOR = 0.4         # share of X_S exerted within 5 days
O2_PER_N_NITRIFIED = 4.57    # g O2 / g N oxidised to nitrate

QUALITY_KEYS = ['COD', 'BOD5', 'TSS', 'VSS', 'TKN', 'NH4N', 'NO3N', 'TN']


def calculate_effluent_quality(state, clarifier_efficiency=CLARIFIER_EFFICIENCY):
    """
    Conventional effluent quality after an ideal secondary clarifier.

    Solubles pass unchanged, particulates are reduced by clarifier_efficiency.
    With clarifier_efficiency=0 the same formulas describe the unsettled stream.

    Args:
        state (dict): Mixed-liquor (or influent) ASM1 state.
        clarifier_efficiency (float): Fraction of particulates removed.

    Returns:
        dict: COD, BOD5, TSS, VSS, TKN, NH4N, NO3N, TN in mg/L, all >= 0.
    """
    escape = 1.0 - clarifier_efficiency
    x = state_to_array(state)
    particulate_cod = float(np.sum(x[particulate_cod_idx]))

    # --- Organics ---
    effluent_particulate_cod = particulate_cod * escape
    COD = state['S_I'] + state['S_S'] + effluent_particulate_cod
    BOD5 = state['S_S'] + BOD5_XS_FACTOR * state['X_S'] * escape

    # --- Solids ---
    VSS = effluent_particulate_cod / COD_PER_VSS
    TSS = VSS / VSS_PER_TSS

    # --- Nitrogen ---
    TKN = state['S_NH'] + state['S_ND'] + state['X_ND'] * escape
    TN = TKN + state['S_NO']

    quality = {
        'COD': COD,
        'BOD5': BOD5,
        'TSS': TSS,
        'VSS': VSS,
        'TKN': TKN,
        'NH4N': state['S_NH'],
        'NO3N': state['S_NO'],
        'TN': TN,
    }
    return {k: max(0.0, float(v)) for k, v in quality.items()}


def _rate_values(process_rates):
    # accepts plain rates or the records from describe_process_rates
    return [p['rate'] if isinstance(p, dict) else float(p) for p in process_rates]


def oxygen_uptake_rate(process_rates, stoich_params):
    """
    Oxygen uptake rate (g O2/(m^3*d)) split into carbonaceous and nitrogenous parts.

    Returns:
        tuple: (our_carbonaceous, our_nitrogenous)
    """
    rhos = _rate_values(process_rates)
    Y_H = stoich_params['Y_H']
    Y_A = stoich_params['Y_A']
    our_c = (1.0 - Y_H) / Y_H * rhos[0]
    our_n = (O2_PER_N_NITRIFIED - Y_A) / Y_A * rhos[2]
    return our_c, our_n


def calculate_oxygen_demand(process_rates, stoich_params, volume):
    """
    Aeration demand of the reactor.

    Args:
        process_rates (list): rho_1..rho_8 (floats or process records).
        stoich_params (dict): Provides Y_H and Y_A.
        volume (float): Reactor volume (m^3).

    Returns:
        dict: carbonaceous, nitrogenous and total (kg O2/d) and specific (kg O2/(m^3*d)).
    """
    our_c, our_n = oxygen_uptake_rate(process_rates, stoich_params)
    # g/(m3*d) * m3 / 1000 = kg/d
    carbonaceous = our_c * volume / 1000.0
    nitrogenous = our_n * volume / 1000.0
    total = carbonaceous + nitrogenous
    return {
        'carbonaceous': carbonaceous,
        'nitrogenous': nitrogenous,
        'total': total,
        'specific': total / volume if volume > 0 else 0.0,
    }


def calculate_sludge_production(state, srt, volume):
    """
    Waste sludge production needed to hold the SRT.

    Args:
        state (dict): Mixed-liquor ASM1 state.
        srt (float): Solids retention time (d).
        volume (float): Reactor volume (m^3).

    Returns:
        dict: total_vss and total_tss (kg/d), wastage_rate (m^3/d).
    """
    x = state_to_array(state)
    mlvss = float(np.sum(x[particulate_cod_idx])) / COD_PER_VSS  # mg/L

    # SRT = V / Qw for wastage directly from the mixed reactor
    wastage_rate = volume / srt
    total_vss = mlvss * wastage_rate / 1000.0
    return {
        'total_vss': total_vss,
        'total_tss': total_vss / VSS_PER_TSS,
        'wastage_rate': wastage_rate,
    }


def removal_percent(inlet, outlet):
    """100 * (inlet - outlet) / inlet with the denominator floored at 1."""
    return (inlet - outlet) / max(inlet, 1.0) * 100.0


def calculate_performance(influent_quality, effluent_quality):
    """
    Removal efficiencies (%) for BOD5, COD, TSS, NH4-N and TN.

    Args:
        influent_quality (dict): Output of calculate_effluent_quality for the influent.
        effluent_quality (dict): Output of calculate_effluent_quality for the reactor.
    """
    return {
        'bod_removal': removal_percent(influent_quality['BOD5'], effluent_quality['BOD5']),
        'cod_removal': removal_percent(influent_quality['COD'], effluent_quality['COD']),
        'tss_removal': removal_percent(influent_quality['TSS'], effluent_quality['TSS']),
        'nh4_removal': removal_percent(influent_quality['NH4N'], effluent_quality['NH4N']),
        'tn_removal': removal_percent(influent_quality['TN'], effluent_quality['TN']),
    }


def performance_table(influent_quality, effluent_quality):
    """DataFrame with one row per quality parameter: influent, effluent, removal %."""
    return pd.DataFrame({
        'parameter': QUALITY_KEYS,
        'influent': [influent_quality[k] for k in QUALITY_KEYS],
        'effluent': [effluent_quality[k] for k in QUALITY_KEYS],
        'removal_pct': [removal_percent(influent_quality[k], effluent_quality[k]) for k in QUALITY_KEYS],
    })


def make_performance_plot(influent_quality,
                          effluent_quality,
                          out_png="results/asm1_performance.png",
                          out_csv="results/asm1_performance_summary.csv"):
    """
    Grouped bar chart of influent vs effluent quality, with removal % labels,
    plus a CSV of the same numbers.

    Returns:
        pandas.DataFrame: The table written to out_csv.
    """
    out_dir = os.path.dirname(out_png)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    df = performance_table(influent_quality, effluent_quality)
    df.to_csv(out_csv, index=False)

    x = np.arange(len(df))
    width = 0.38
    fig, ax = plt.subplots(figsize=(10, 5))
    ax.bar(x - width/2, df['influent'], width, label="Influent")
    ax.bar(x + width/2, df['effluent'], width, label="Effluent")

    ax.set_xticks(x)
    ax.set_xticklabels([f"{k}\n[mg/L]" for k in df['parameter']])
    ax.set_ylabel("Concentration (mg/L)")
    ax.set_title("ASM1 CSTR treatment performance")
    ax.grid(True, axis="y")
    ax.legend()

    for xi, yi, pct in zip(x + width/2, df['effluent'], df['removal_pct']):
        ax.text(xi, yi, f"{pct:+.1f}%", ha="center", va="bottom", fontsize=8)

    fig.tight_layout()
    fig.savefig(out_png, dpi=300, bbox_inches="tight")
    plt.close(fig)
    return df
