# influent.py File

"""
Influent characterisation: conventional wastewater analyses -> ASM1 state.
"""

HETEROTROPH_SHARE = 0.9   # share of residual biomass COD assigned to X_H
CACO3_TO_HCO3_MOL = 0.01  # 1 mg/L as CaCO3 = 0.01 mol HCO3-/m^3 (per ASM1 convention)


def get_domestic_fractionation():
    """COD and nitrogen fractions for typical municipal (domestic) wastewater."""
    return {
        # fractions of total COD
        'f_SI': 0.07,
        'f_SS': 0.20,
        'f_XI': 0.13,
        'f_XS': 0.60,
        # fractions of TKN
        'f_SNH': 0.70,
        'f_SND': 0.10,
        'f_XND': 0.20,
    }


def get_industrial_fractionation():
    """Industrial wastewater is typically more soluble than domestic."""
    return {
        'f_SI': 0.10,
        'f_SS': 0.35,
        'f_XI': 0.15,
        'f_XS': 0.40,
        'f_SNH': 0.60,
        'f_SND': 0.15,
        'f_XND': 0.25,
    }


def get_typical_influent():
    """Typical settled domestic wastewater as ASM1 state (g/m^3, S_ALK in mol/m^3)."""
    return {
        'S_I': 30.0,
        'S_S': 100.0,
        'X_I': 50.0,
        'X_S': 250.0,
        'X_H': 10.0,
        'X_A': 0.0,
        'X_P': 0.0,
        'S_O': 0.0,
        'S_NO': 0.0,
        'S_NH': 30.0,
        'S_ND': 5.0,
        'X_ND': 10.0,
        'S_ALK': 5.0,
    }


def fractionate_influent(cod, tkn, nh4, alkalinity, fractionation=None):
    """
    Convert conventional wastewater parameters into ASM1 state variables.

    The COD left over after the four organic fractions is treated as active
    biomass, split 90 % heterotrophs / 10 % autotrophs. Organic nitrogen
    (TKN - NH4) is split between S_ND and X_ND in proportion to f_SND and
    f_XND. Raw wastewater is assumed free of oxygen and nitrate.

    Args:
        cod (float): Total COD (mg/L).
        tkn (float): Total Kjeldahl nitrogen (mg N/L).
        nh4 (float): Ammonium nitrogen (mg N/L).
        alkalinity (float): Alkalinity (mg/L as CaCO3).
        fractionation (dict): Fractions, defaults to get_domestic_fractionation().

    Returns:
        dict: The 13 ASM1 state variables.
    """
    if fractionation is None:
        fractionation = get_domestic_fractionation()

    f_SI = fractionation['f_SI']
    f_SS = fractionation['f_SS']
    f_XI = fractionation['f_XI']
    f_XS = fractionation['f_XS']
    f_SND = fractionation['f_SND']
    f_XND = fractionation['f_XND']

    # --- COD ---
    f_biomass = 1.0 - f_SI - f_SS - f_XI - f_XS
    X_H = cod * max(0.0, f_biomass * HETEROTROPH_SHARE)
    X_A = cod * max(0.0, f_biomass * (1.0 - HETEROTROPH_SHARE))

    # --- Nitrogen ---
    organic_n = tkn - nh4
    organic_weight = f_SND + f_XND
    if organic_weight > 0:
        S_ND = organic_n * f_SND / organic_weight
        X_ND = organic_n * f_XND / organic_weight
    else:
        S_ND = X_ND = 0.0

    return {
        'S_I': cod * f_SI,
        'S_S': cod * f_SS,
        'X_I': cod * f_XI,
        'X_S': cod * f_XS,
        'X_H': X_H,
        'X_A': X_A,
        'X_P': 0.0,
        'S_O': 0.0,
        'S_NO': 0.0,
        'S_NH': nh4,
        'S_ND': S_ND,
        'X_ND': X_ND,
        'S_ALK': alkalinity * CACO3_TO_HCO3_MOL,
    }
