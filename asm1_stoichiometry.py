# asm1_stoichiometry.py File

import numpy as np

from asm1_parameters import N_COMPONENTS, N_PROCESSES
from ASM1_Processes import calculate_process_rates

# COD equivalents used by the continuity check (g COD per g of component)
COD_PER_N_NITRATE = -4.57     # NH4 -> NO3 oxygen equivalent
COD_PER_N_DENITRIFIED = -2.86  # NO3 -> N2 electron acceptor equivalent


def _petersen_rows(stoich_params):
    Y_A = stoich_params['Y_A']
    Y_H = stoich_params['Y_H']
    f_P = stoich_params['f_P']
    i_XB = stoich_params['i_XB']
    i_XP = stoich_params['i_XP']

    return [
        # S_I, S_S,   X_I, X_S,   X_H, X_A, X_P,  S_O,               S_NO,                    S_NH,          S_ND, X_ND,            S_ALK
        [0,   -1/Y_H,  0,  0,      1,   0,   0,  -(1-Y_H)/Y_H,        0,                      -i_XB,          0,    0,              -i_XB/14],                               # rho1
        [0,   -1/Y_H,  0,  0,      1,   0,   0,   0,                 -(1-Y_H)/(2.86*Y_H),     -i_XB,          0,    0,              (1-Y_H)/(14*2.86*Y_H) - i_XB/14],        # rho2
        [0,    0,      0,  0,      0,   1,   0,  -(4.57-Y_A)/Y_A,     1/Y_A,                  -i_XB - 1/Y_A,  0,    0,              -i_XB/14 - 1/(7*Y_A)],                   # rho3
        [0,    0,      0,  1-f_P, -1,   0,   f_P, 0,                  0,                       0,             0,    i_XB - f_P*i_XP, 0],                                      # rho4
        [0,    0,      0,  1-f_P,  0,  -1,   f_P, 0,                  0,                       0,             0,    i_XB - f_P*i_XP, 0],                                      # rho5
        [0,    0,      0,  0,      0,   0,   0,   0,                  0,                       1,            -1,    0,              1/14],                                   # rho6
        [0,    1,      0, -1,      0,   0,   0,   0,                  0,                       0,             0,    0,              0],                                      # rho7
        [0,    0,      0,  0,      0,   0,   0,   0,                  0,                       0,             1,   -1,              0],                                      # rho8
    ]


def get_stoichiometric_coefficient(process_index, component_index, stoich_params):
    """
    Stoichiometric coefficient nu[process][component] of the ASM1 Petersen matrix.

    Args:
        process_index (int): 0..7 (rho_1 .. rho_8).
        component_index (int): 0..12, following ASM1_STATE_ORDER.
        stoich_params (dict): Y_H, Y_A, f_P, i_XB, i_XP.

    Returns:
        float: The coefficient, or 0.0 for an index outside the matrix.
    """
    if not 0 <= process_index < N_PROCESSES:
        return 0.0
    if not 0 <= component_index < N_COMPONENTS:
        return 0.0
    return float(_petersen_rows(stoich_params)[process_index][component_index])


def build_stoichiometric_matrix(stoich_params):
    """Full 8 x 13 Petersen matrix (rows = processes, columns = components)."""
    matrix = np.empty((N_PROCESSES, N_COMPONENTS), dtype=float)
    for p in range(N_PROCESSES):
        for c in range(N_COMPONENTS):
            matrix[p, c] = get_stoichiometric_coefficient(p, c, stoich_params)
    return matrix


def reaction_terms(rhos, stoichiometric_matrix):
    """Contract process rates with the matrix: r_C[i] = sum_j nu[j][i] * rho[j]."""
    return stoichiometric_matrix.T.dot(np.asarray(rhos, dtype=float))


def calculate_derivatives(state, Kin_params, stoich_params):
    """
    Batch-reactor derivatives dC/dt for the 13 components (no hydraulics).

    Args:
        state (dict): Current concentrations.
        Kin_params (dict): Temperature corrected kinetic parameters.
        stoich_params (dict): Stoichiometric parameters.

    Returns:
        numpy.ndarray: 13 derivatives in ASM1_STATE_ORDER (g/(m^3*d)).
    """
    rhos = calculate_process_rates(state, Kin_params)
    return reaction_terms(rhos, build_stoichiometric_matrix(stoich_params))


def composition_balance(stoich_params):
    """
    COD and nitrogen continuity residuals for each process row.

    COD: organics count +1, oxygen -1, nitrate -4.57 g COD/g N.
    N: S_NO, S_NH, S_ND, X_ND count +1, biomass i_XB, products i_XP.
    Nitrate for denitrification (rho2) is counted at -2.86 because the
    electrons end in N2, not NH4.

    Returns:
        dict: {'COD': array(8), 'N': array(8)}, both ~0 for a consistent matrix.
    """
    matrix = build_stoichiometric_matrix(stoich_params)
    i_XB = stoich_params['i_XB']
    i_XP = stoich_params['i_XP']

    cod_weights = np.zeros(N_COMPONENTS)
    cod_weights[[0, 1, 2, 3, 4, 5, 6]] = 1.0
    cod_weights[7] = -1.0
    cod_weights[8] = COD_PER_N_NITRATE

    cod_residual = matrix.dot(cod_weights)
    # anoxic growth: nitrate ends as N2 (-2.86) rather than re-entering the NH4 pool (-4.57)
    cod_residual[1] += matrix[1, 8] * (COD_PER_N_DENITRIFIED - COD_PER_N_NITRATE)

    n_weights = np.zeros(N_COMPONENTS)
    n_weights[[8, 9, 10, 11]] = 1.0
    n_weights[[4, 5]] = i_XB
    n_weights[6] = i_XP
    n_residual = matrix.dot(n_weights)
    # denitrified nitrate leaves as N2 gas
    n_residual[1] -= matrix[1, 8]

    return {'COD': cod_residual, 'N': n_residual}
