# asm1_parameters.py File

import numpy as np

# Component order used by every array in the model (Henze et al., 1987)
ASM1_STATE_ORDER = ['S_I', 'S_S', 'X_I', 'X_S', 'X_H', 'X_A', 'X_P',
                    'S_O', 'S_NO', 'S_NH', 'S_ND', 'X_ND', 'S_ALK']

N_COMPONENTS = len(ASM1_STATE_ORDER)  # 13
N_PROCESSES = 8

# indices: [2..6] are particulate COD; 11 is X_ND (particulate N)
particulate_cod_idx = [2, 3, 4, 5, 6]            # X_I, X_S, X_H, X_A, X_P
all_particulate_idx = [2, 3, 4, 5, 6, 11]        # add X_ND
soluble_idx = [0, 1, 7, 8, 9, 10, 12]            # S_I, S_S, S_O, S_NO, S_NH, S_ND, S_ALK
S_O_IDX = 7

# Kinetic constants subject to Arrhenius correction
TEMPERATURE_DEPENDENT = ['mu_H', 'b_H', 'mu_A', 'b_A', 'k_h', 'k_a']


def get_default_kinetic_params():
    """
    Returns the ASM1 kinetic parameters at 20 deg C (Henze et al., 1987).
    A new dictionary is built on every call, so callers may modify it freely.
    """
    return {
        # Heterotrophs
        'mu_H': 6.0,     # Max specific growth rate for heterotrophs per day (4-8)
        'K_S': 20.0,     # Substrate half-saturation constant (g COD/m^3)
        'K_O_H': 0.2,    # Oxygen half-saturation constant for heterotrophs (g O2/m^3)
        'K_NO': 0.5,     # Nitrate half-saturation constant for heterotrophs (g N/m^3)
        'b_H': 0.62,     # Decay rate for heterotrophs per day
        'eta_g': 0.8,    # Correction factor for anoxic growth of heterotrophs
        'eta_h': 0.4,    # Correction factor for anoxic hydrolysis
        # Autotrophs
        'mu_A': 0.8,     # Max specific growth rate for autotrophs per day
        'K_NH': 1.0,     # Ammonia half-saturation constant for autotrophs (g N/m^3)
        'K_O_A': 0.4,    # Oxygen half-saturation constant for autotrophs (g O2/m^3)
        'b_A': 0.15,     # Decay rate for autotrophs per day
        # Hydrolysis
        'k_h': 3.0,      # Max specific hydrolysis rate (g COD/(g COD*d))
        'K_X': 0.03,     # Particulate substrate half-saturation constant (g COD/g COD)
        # Ammonification
        'k_a': 0.08,     # Ammonification rate constant m3/(g COD*d)
    }


def get_default_stoich_params():
    """Returns the ASM1 stoichiometric parameters (Henze et al., 1987)."""
    return {
        'Y_H': 0.67,    # g COD/g COD
        'Y_A': 0.24,    # g COD/g N
        'f_P': 0.08,    # dimensionless
        'i_XB': 0.086,  # g N/g COD
        'i_XP': 0.06,   # g N/g COD
    }


def get_default_temperature_coefficients():
    """Returns the Arrhenius theta values (Metcalf & Eddy, 2014)."""
    return {
        'theta_mu_H': 1.072,
        'theta_b_H': 1.029,
        'theta_mu_A': 1.103,
        'theta_b_A': 1.029,
        'theta_k_h': 1.041,
        'theta_k_a': 1.072,
    }


def merge_params(defaults, overrides=None):
    """
    Overlay a partial set of parameters on top of a defaults dictionary.

    Args:
        defaults (dict): Complete parameter set.
        overrides (dict or None): Subset of keys to replace.

    Returns:
        dict: A new dictionary; neither input is modified.

    Raises:
        ValueError: If overrides contains a key that is not in defaults.
    """
    merged = dict(defaults)
    if not overrides:
        return merged
    unknown = sorted(set(overrides) - set(defaults))
    if unknown:
        raise ValueError(f"Unknown parameter(s): {', '.join(unknown)}")
    merged.update({k: float(v) for k, v in overrides.items()})
    return merged


def correct_temperature(kin_params, temperature, temp_coeffs=None):
    """
    Apply the Arrhenius correction k(T) = k(20) * theta^(T - 20).

    Only mu_H, b_H, mu_A, b_A, k_h and k_a are corrected; half-saturation
    constants and anoxic correction factors are copied unchanged.

    Args:
        kin_params (dict): Kinetic parameters at 20 deg C.
        temperature (float): Reactor temperature (deg C).
        temp_coeffs (dict): Theta values, defaults to get_default_temperature_coefficients().

    Returns:
        dict: New dictionary of temperature corrected kinetic parameters.
    """
    if temp_coeffs is None:
        temp_coeffs = get_default_temperature_coefficients()

    dT = temperature - 20.0
    corrected = dict(kin_params)
    for name in TEMPERATURE_DEPENDENT:
        corrected[name] = kin_params[name] * temp_coeffs[f'theta_{name}'] ** dT
    return corrected


def state_to_array(state):
    """Dictionary of the 13 state variables -> numpy array in ASM1_STATE_ORDER."""
    return np.array([float(state[name]) for name in ASM1_STATE_ORDER], dtype=float)


def array_to_state(array):
    """
    Array in ASM1_STATE_ORDER -> dictionary of state variables.
    Negative entries are clamped to 0 and missing trailing entries read as 0.
    """
    values = np.asarray(array, dtype=float).ravel()
    state = {}
    for i, name in enumerate(ASM1_STATE_ORDER):
        value = float(values[i]) if i < values.size else 0.0
        state[name] = max(0.0, value)
    return state
