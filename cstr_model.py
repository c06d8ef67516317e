# cstr_model.py File

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from asm1_parameters import S_O_IDX, array_to_state, state_to_array
from ASM1_Processes import calculate_process_rates
from asm1_stoichiometry import build_stoichiometric_matrix, reaction_terms


def calculate_cstr_derivatives(state, influent, hrt, Kin_params, stoich_params, target_do=None):
    """
    CSTR mass balance for the 13 ASM1 components:

        dC_i/dt = (1/HRT) * (C_in,i - C_i) + sum_j nu[j][i] * rho_j

    Args:
        state (dict): Concentrations in the reactor (g/m^3).
        influent (dict): Influent concentrations (g/m^3).
        hrt (float): Hydraulic retention time (d).
        Kin_params (dict): Temperature corrected kinetic parameters.
        stoich_params (dict): Stoichiometric parameters.
        target_do (float or None): When given, DO is a boundary condition
            (perfect aeration control) and its derivative is 0.

    Returns:
        numpy.ndarray: 13 derivatives (g/(m^3*d)).
    """
    rhos = calculate_process_rates(state, Kin_params)
    r_C = reaction_terms(rhos, build_stoichiometric_matrix(stoich_params))

    flow_term = (state_to_array(influent) - state_to_array(state)) / hrt
    dCdt = flow_term + r_C

    if target_do is not None:
        # no KLa term: DO is held at the set point
        dCdt[S_O_IDX] = 0.0
    return dCdt


@dataclass(frozen=True, eq=False)
class CSTRModel:
    """
    Right-hand side of a single completely mixed aerated tank.

    Bundles everything the mass balance needs (influent, HRT, corrected
    kinetics, stoichiometry, DO set point) so that the function handed to
    the ODE solver carries no hidden state. ``evaluate`` never mutates its
    inputs and returns a new array on every call.
    """
    influent: np.ndarray
    hrt: float
    Kin_params: dict
    stoich_params: dict
    target_do: Optional[float] = None
    stoichiometric_matrix: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, 'influent', np.array(self.influent, dtype=float))
        object.__setattr__(self, 'Kin_params', dict(self.Kin_params))
        object.__setattr__(self, 'stoich_params', dict(self.stoich_params))
        object.__setattr__(self, 'stoichiometric_matrix', build_stoichiometric_matrix(self.stoich_params))

    @classmethod
    def from_states(cls, influent, hrt, Kin_params, stoich_params, target_do=None):
        """Build from an influent given as a state dictionary."""
        return cls(state_to_array(influent), hrt, Kin_params, stoich_params, target_do)

    def evaluate(self, t, y):
        """
        dC/dt at time t for the state array y (ASM1_STATE_ORDER).

        Negative entries of y are read as 0. With a DO set point, the
        rates are evaluated at S_O = target_do and dS_O/dt = 0.
        """
        state = array_to_state(y)
        if self.target_do is not None:
            state['S_O'] = self.target_do

        rhos = calculate_process_rates(state, self.Kin_params)
        r_C = reaction_terms(rhos, self.stoichiometric_matrix)

        dCdt = (self.influent - state_to_array(state)) / self.hrt + r_C
        if self.target_do is not None:
            dCdt[S_O_IDX] = 0.0
        return dCdt

    def __call__(self, t, y):
        return self.evaluate(t, y)
