import math

import numpy as np
import pytest
from scipy.integrate import solve_ivp

from asm1_parameters import state_to_array
from cstr_model import CSTRModel
from ode_solver import (
    ODESolver,
    SolverOptions,
    create_ode_solver,
    interpolate_state,
    is_steady_state,
    max_window_change,
    optimal_step,
    steady_state_error,
)


def decay(t, y):
    return -y


def final_error(method, dt=0.1, **options):
    solver = create_ode_solver(decay, method, **options)
    solution = solver.solve([1.0], 0.0, 1.0, dt)
    return abs(solution.states[-1][0] - math.exp(-1.0))


class TestFixedStepMethods:
    @pytest.mark.unit
    def test_rk4_accuracy(self):
        assert final_error('rk4') < 1e-3

    @pytest.mark.unit
    def test_fine_step_accuracy(self):
        rk4 = final_error('rk4', dt=0.01)
        assert rk4 < 1e-3
        assert final_error('euler', dt=0.01) > rk4

    @pytest.mark.unit
    def test_order_of_accuracy(self):
        euler = final_error('euler')
        rk2 = final_error('rk2')
        rk4 = final_error('rk4')
        assert euler > rk2 > rk4

    @pytest.mark.unit
    def test_euler_single_step(self):
        result = ODESolver(decay, 'euler').step(0.0, [2.0], 0.5)
        assert result.t == 0.5
        assert result.y[0] == pytest.approx(1.0)

    @pytest.mark.unit
    def test_unknown_method(self):
        with pytest.raises(ValueError, match="rk5"):
            ODESolver(decay, 'rk5')


class TestRKF45:
    @pytest.mark.unit
    def test_accuracy(self):
        assert final_error('rkf45', tolerance=1e-8) < 1e-6

    @pytest.mark.unit
    def test_step_grows_on_smooth_problem(self):
        solver = create_ode_solver(decay, 'rkf45', tolerance=1e-4, max_step=1.0)
        result = solver.step(0.0, [1.0], 0.01)
        assert result.converged
        assert result.next_dt > result.dt

        solution = solver.solve([1.0], 0.0, 10.0, 0.01)
        # carried step sizes: far fewer steps than fixed dt would need
        assert solution.total_steps < 100

    @pytest.mark.unit
    def test_optimal_step(self):
        new_dt, accept = optimal_step(0.1, 0.0, 1e-6, 1e-10, 1.0)
        assert accept and new_dt == pytest.approx(0.5)

        new_dt, accept = optimal_step(0.1, 1.0, 1e-6, 1e-10, 1.0)
        assert not accept and new_dt == pytest.approx(0.01)

        new_dt, accept = optimal_step(0.1, 0.0, 1e-6, 1e-10, 0.2)
        assert accept and new_dt == 0.2

    @pytest.mark.unit
    def test_unconverged_steps_reported(self):
        solver = create_ode_solver(decay, 'rkf45', tolerance=1e-14, min_step=0.05,
                                   max_step=0.05, max_iterations=3)
        solution = solver.solve([1.0], 0.0, 1.0, 0.05)
        assert solution.success
        assert "did not reach tolerance" in solution.message
        assert solution.times[-1] == pytest.approx(1.0)


class TestSolve:
    @pytest.mark.unit
    def test_output_sampling(self):
        solution = ODESolver(decay, 'rk4').solve([1.0], 0.0, 1.0, 0.01, output_interval=0.25)
        assert solution.success
        assert solution.times == pytest.approx([0.0, 0.25, 0.5, 0.75, 1.0])
        assert solution.total_steps == 100

    @pytest.mark.unit
    def test_final_state_always_kept(self):
        solution = ODESolver(decay, 'rk4').solve([1.0], 0.0, 1.05, 0.1, output_interval=0.5)
        assert solution.times == pytest.approx([0.0, 0.5, 1.0, 1.05])
        assert solution.states[-1][0] == pytest.approx(math.exp(-1.05), rel=1e-5)

    @pytest.mark.unit
    def test_zero_length_interval(self):
        solution = ODESolver(decay, 'rk4').solve([1.0], 2.0, 2.0, 0.1)
        assert solution.times == [2.0]
        assert solution.total_steps == 0

    @pytest.mark.unit
    def test_stored_states_are_copies(self):
        y0 = np.array([1.0])
        solution = ODESolver(decay, 'euler').solve(y0, 0.0, 0.2, 0.1)
        assert y0[0] == 1.0
        assert len({id(s) for s in solution.states}) == len(solution.states)

    @pytest.mark.unit
    def test_as_arrays(self):
        solution = ODESolver(decay, 'rk2').solve([1.0, 2.0], 0.0, 1.0, 0.1, output_interval=0.5)
        times, states = solution.as_arrays()
        assert times.shape == (3,)
        assert states.shape == (3, 2)

    @pytest.mark.unit
    def test_step_ceiling(self):
        solver = create_ode_solver(decay, 'euler', max_total_steps=5)
        solution = solver.solve([1.0], 0.0, 1.0, 0.01)
        assert not solution.success
        assert solution.message == 'Maximum steps exceeded'
        assert solution.total_steps == 6

    @pytest.mark.unit
    @pytest.mark.parametrize("t0, t_end, dt, output_interval", [
        (0.0, 1.0, 0.0, None),
        (0.0, 1.0, -0.1, None),
        (1.0, 0.0, 0.1, None),
        (0.0, 1.0, 0.1, -0.5),
        (0.0, 1.0, 0.1, 0.0),
    ])
    def test_invalid_arguments(self, t0, t_end, dt, output_interval):
        with pytest.raises(ValueError):
            ODESolver(decay).solve([1.0], t0, t_end, dt, output_interval)

    @pytest.mark.unit
    def test_default_options(self):
        solver = ODESolver(decay)
        assert solver.method == 'rk4'
        assert solver.options == SolverOptions()


class TestAgainstScipy:
    @pytest.fixture
    def model(self, typical_influent, corrected_params, stoich_params):
        return CSTRModel.from_states(typical_influent, 0.25, corrected_params, stoich_params, 2.0)

    @pytest.fixture
    def reference(self, model, seeded_state):
        y0 = state_to_array(seeded_state)
        sol = solve_ivp(model, (0.0, 1.0), y0, method='LSODA', rtol=1e-9, atol=1e-9)
        assert sol.success
        return sol.y[:, -1]

    @pytest.mark.component
    @pytest.mark.parametrize("method, dt", [('rk4', 0.01), ('rkf45', 0.01)])
    def test_cstr_one_day(self, model, reference, seeded_state, method, dt):
        solver = create_ode_solver(model, method, tolerance=1e-7)
        solution = solver.solve(state_to_array(seeded_state), 0.0, 1.0, dt)
        assert solution.success
        assert np.allclose(solution.states[-1], reference, rtol=1e-3, atol=1e-3)
        assert np.all(np.isfinite(solution.states[-1]))


class TestSteadyStateUtilities:
    @pytest.mark.unit
    def test_interpolate(self):
        y = interpolate_state(0.0, [0.0, 10.0], 2.0, [2.0, 20.0], 0.5)
        assert y == pytest.approx([0.5, 12.5])

    @pytest.mark.unit
    def test_steady_state_error(self):
        assert steady_state_error([1.0, 0.0], [1.0, 0.0]) == 0.0
        assert steady_state_error([2.0], [1.0]) == pytest.approx(0.5)
        assert steady_state_error([], []) == 0.0

    @pytest.mark.unit
    def test_constant_history_is_steady(self):
        history = [np.array([1.0, 5.0, 0.0])] * 12
        assert is_steady_state(history, 10, 1e-4)
        assert is_steady_state(history, 10, 1e-12)
        assert max_window_change(history) == 0.0

    @pytest.mark.unit
    def test_linear_history_is_not_steady(self):
        history = [np.array([1.0 + 0.1 * k]) for k in range(12)]
        assert not is_steady_state(history, 10, 1e-6)

    @pytest.mark.unit
    def test_short_history_is_not_steady(self):
        history = [np.array([1.0])] * 5
        assert not is_steady_state(history, 10, 1e-4)

    @pytest.mark.unit
    def test_only_last_window_counts(self):
        history = [np.array([100.0 * k]) for k in range(5)] + [np.array([1.0])] * 10
        assert is_steady_state(history, 10, 1e-4)
