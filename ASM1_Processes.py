# ASM1_Processes.py File

# Process keys in Petersen-matrix row order
PROCESS_NAMES = [
    'aerobic_growth_heterotrophs',   # rho_1
    'anoxic_growth_heterotrophs',    # rho_2
    'aerobic_growth_autotrophs',     # rho_3
    'decay_heterotrophs',            # rho_4
    'decay_autotrophs',              # rho_5
    'ammonification',                # rho_6
    'hydrolysis_organics',           # rho_7
    'hydrolysis_nitrogen',           # rho_8
]

PROCESS_LABELS = [
    'Aerobic Growth of Heterotrophs',
    'Anoxic Growth of Heterotrophs (Denitrification)',
    'Aerobic Growth of Autotrophs (Nitrification)',
    'Decay of Heterotrophs',
    'Decay of Autotrophs',
    'Ammonification of Soluble Organic N',
    'Hydrolysis of Entrapped Organics',
    'Hydrolysis of Entrapped Organic N',
]

RATE_EQUATIONS = [
    'mu_H*(S_S/(K_S+S_S))*(S_O/(K_O_H+S_O))*X_H',
    'mu_H*(S_S/(K_S+S_S))*(K_O_H/(K_O_H+S_O))*(S_NO/(K_NO+S_NO))*eta_g*X_H',
    'mu_A*(S_NH/(K_NH+S_NH))*(S_O/(K_O_A+S_O))*X_A',
    'b_H*X_H',
    'b_A*X_A',
    'k_a*S_ND*X_H',
    'k_h*((X_S/X_H)/(K_X+X_S/X_H))*[S_O/(K_O_H+S_O) + eta_h*(K_O_H/(K_O_H+S_O))*(S_NO/(K_NO+S_NO))]*X_H',
    'rho_7*(X_ND/X_S)',
]


def monod(S, K):
    """Monod switch S/(K+S); 0 when S <= 0 or K <= 0."""
    if S <= 0 or K <= 0:
        return 0.0
    return S / (K + S)


def inhibition(S, K):
    """Inhibition switch K/(K+S) with S floored at 0; 0 when K <= 0."""
    if K <= 0:
        return 0.0
    return K / (K + max(S, 0.0))


def calculate_process_rates(state, Kin_params):
    """
    Rates rho_1..rho_8 of the ASM1 processes, in Petersen-matrix row order.

    Args:
        state (dict): The 13 ASM1 concentrations keyed by component name.
            Only S_S, X_S, X_H, X_A, S_O, S_NO, S_NH, S_ND and X_ND are read.
        Kin_params (dict): Kinetic parameters, temperature correction already applied.

    Returns:
        list: 8 floats in g/(m^3*d). Zero concentrations give zero rates, never NaN.
    """

    # --- 1) Concentrations ---
    S_S, X_S = state['S_S'], state['X_S']          # biodegradable substrate, soluble / particulate
    X_H, X_A = state['X_H'], state['X_A']          # heterotrophs, autotrophs
    S_O, S_NO = state['S_O'], state['S_NO']        # electron acceptors
    S_NH, S_ND, X_ND = state['S_NH'], state['S_ND'], state['X_ND']

    # --- 2) Kinetics ---
    p = Kin_params
    mu_H, K_S, b_H = p['mu_H'], p['K_S'], p['b_H']
    K_O_H, K_NO = p['K_O_H'], p['K_NO']
    eta_g, eta_h = p['eta_g'], p['eta_h']
    mu_A, K_NH, K_O_A, b_A = p['mu_A'], p['K_NH'], p['K_O_A'], p['b_A']
    k_h, K_X, k_a = p['k_h'], p['K_X'], p['k_a']

    # --- 3) Rates ---

    # Process 1: Aerobic growth of heterotrophs
    rho_1 = mu_H * monod(S_S, K_S) * monod(S_O, K_O_H) * X_H

    # Process 2: Anoxic growth of heterotrophs (Denitrification)
    # Active only when oxygen is low and nitrate is available.
    rho_2 = mu_H * monod(S_S, K_S) * inhibition(S_O, K_O_H) * monod(S_NO, K_NO) * eta_g * X_H

    # Process 3: Aerobic growth of autotrophs (Nitrification)
    rho_3 = mu_A * monod(S_NH, K_NH) * monod(S_O, K_O_A) * X_A

    # Process 4: Decay of heterotrophs
    rho_4 = b_H * X_H

    # Process 5: Decay of autotrophs
    rho_5 = b_A * X_A

    # Process 6: Ammonification
    rho_6 = k_a * S_ND * X_H

    # Process 7: Hydrolysis of entrapped organics
    # Surface-limited kinetics on the X_S/X_H ratio; zero biomass means zero hydrolysis.
    xs_per_xh = X_S / X_H if X_H > 0 else 0.0
    term_hydrolysis_switch = monod(S_O, K_O_H) + inhibition(S_O, K_O_H) * monod(S_NO, K_NO) * eta_h
    rho_7 = k_h * monod(xs_per_xh, K_X) * term_hydrolysis_switch * X_H

    # Process 8: Hydrolysis of entrapped organic nitrogen
    # Proportional to rho_7 by the N content of the slowly biodegradable substrate.
    xnd_per_xs = X_ND / X_S if X_S > 0 else 0.0
    rho_8 = rho_7 * xnd_per_xs

    return [rho_1, rho_2, rho_3, rho_4, rho_5, rho_6, rho_7, rho_8]


def describe_process_rates(state, Kin_params):
    """
    Same rates as calculate_process_rates, packaged for reporting.

    Returns:
        list: 8 dicts with keys 'process', 'name', 'rate' and 'rate_equation'.
    """
    rates = calculate_process_rates(state, Kin_params)
    return [
        {
            'process': key,
            'name': label,
            'rate': float(rate),
            'rate_equation': f"{equation} = {rate:.4f} g/(m3*d)",
        }
        for key, label, equation, rate in zip(PROCESS_NAMES, PROCESS_LABELS, RATE_EQUATIONS, rates)
    ]
