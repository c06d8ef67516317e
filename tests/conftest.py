# conftest.py File

import pytest

from asm1_parameters import (
    correct_temperature,
    get_default_kinetic_params,
    get_default_stoich_params,
)
from influent import get_typical_influent


@pytest.fixture
def kinetic_params():
    return get_default_kinetic_params()


@pytest.fixture
def stoich_params():
    return get_default_stoich_params()


@pytest.fixture
def corrected_params():
    return correct_temperature(get_default_kinetic_params(), 20.0)


@pytest.fixture
def typical_influent():
    return get_typical_influent()


@pytest.fixture
def reactor_state():
    """Aerated mixed liquor with every process active."""
    return {
        'S_I': 30.0,
        'S_S': 5.0,
        'X_I': 50.0,
        'X_S': 40.0,
        'X_H': 1000.0,
        'X_A': 50.0,
        'X_P': 100.0,
        'S_O': 2.0,
        'S_NO': 10.0,
        'S_NH': 2.0,
        'S_ND': 1.0,
        'X_ND': 5.0,
        'S_ALK': 4.0,
    }


@pytest.fixture
def seeded_state(typical_influent):
    """Start-up state: typical influent plus seed biomass, DO at set point."""
    state = dict(typical_influent)
    state.update({'X_H': 100.0, 'X_A': 10.0, 'S_O': 2.0})
    return state
