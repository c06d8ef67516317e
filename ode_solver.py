# ode_solver.py File

"""
Explicit integrators for systems dy/dt = f(t, y).

The method is chosen once, when the solver is built, from the tags
'euler', 'rk2', 'rk4' and 'rkf45'. Each tag maps to a step object with the
same ``step(f, t, y, dt)`` signature, so the integration loop in
``ODESolver.solve`` is identical for all of them.

Reference: Press et al. (2007) "Numerical Recipes", 3rd Edition, ch. 17.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)

# Hard ceiling on integration steps; guards against runaway step shrinking
MAX_TOTAL_STEPS = 10_000_000
TIME_EPS = 1e-10


@dataclass(frozen=True)
class SolverOptions:
    tolerance: float = 1e-6      # rkf45 only
    min_step: float = 1e-10
    max_step: float = 1.0
    max_iterations: int = 1000   # step-size retries per rkf45 step
    max_total_steps: int = MAX_TOTAL_STEPS


@dataclass
class StepResult:
    t: float
    y: np.ndarray
    dt: float                        # step size actually taken
    next_dt: Optional[float] = None  # proposal for the next step (adaptive only)
    error: Optional[float] = None
    iterations: int = 1
    converged: bool = True


@dataclass
class ODESolution:
    times: List[float] = field(default_factory=list)
    states: List[np.ndarray] = field(default_factory=list)
    total_steps: int = 0
    success: bool = True
    message: Optional[str] = None

    def as_arrays(self):
        """Return (times, states) as numpy arrays of shape (T,) and (T, n)."""
        return np.asarray(self.times, dtype=float), np.vstack(self.states)


def _rhs(f, t, y):
    return np.asarray(f(t, y), dtype=float)


# ----------------------------------------------------------------------------
# Fixed-step methods
# ----------------------------------------------------------------------------

class EulerStep:
    """Forward Euler, first order: y' = y + dt * f(t, y)."""
    name = 'euler'

    def __init__(self, options):
        self.options = options

    def step(self, f, t, y, dt):
        dydt = _rhs(f, t, y)
        return StepResult(t=t + dt, y=y + dt * dydt, dt=dt)


class HeunStep:
    """Runge-Kutta 2nd order (Heun's improved Euler)."""
    name = 'rk2'

    def __init__(self, options):
        self.options = options

    def step(self, f, t, y, dt):
        k1 = _rhs(f, t, y)
        k2 = _rhs(f, t + dt, y + dt * k1)
        return StepResult(t=t + dt, y=y + (dt / 2.0) * (k1 + k2), dt=dt)


class RK4Step:
    """Classical 4-stage Runge-Kutta."""
    name = 'rk4'

    def __init__(self, options):
        self.options = options

    def step(self, f, t, y, dt):
        k1 = _rhs(f, t, y)
        k2 = _rhs(f, t + dt / 2.0, y + (dt / 2.0) * k1)
        k3 = _rhs(f, t + dt / 2.0, y + (dt / 2.0) * k2)
        k4 = _rhs(f, t + dt, y + dt * k3)
        y_new = y + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)
        return StepResult(t=t + dt, y=y_new, dt=dt)


# ----------------------------------------------------------------------------
# Runge-Kutta-Fehlberg 4(5)
# ----------------------------------------------------------------------------

# Butcher tableau
RKF45_A = np.array([0.0, 1/4, 3/8, 12/13, 1.0, 1/2])
RKF45_B = [
    [],
    [1/4],
    [3/32, 9/32],
    [1932/2197, -7200/2197, 7296/2197],
    [439/216, -8.0, 3680/513, -845/4104],
    [-8/27, 2.0, -3544/2565, 1859/4104, -11/40],
]
RKF45_C4 = np.array([25/216, 0.0, 1408/2565, 2197/4104, -1/5, 0.0])
RKF45_C5 = np.array([16/135, 0.0, 6656/12825, 28561/56430, -9/50, 2/55])

SAFETY = 0.9
GROW_EXPONENT = 0.2
SHRINK_EXPONENT = 0.25
MAX_GROW = 5.0
MAX_SHRINK = 0.1


def rkf45_estimates(f, t, y, dt):
    """
    One Fehlberg step of size dt.

    Returns:
        tuple: (y4, y5, error) where error = max_i |y5_i - y4_i| / max(|y_i|, |y4_i|, 1e-10).
    """
    k = np.empty((6, y.size), dtype=float)
    k[0] = _rhs(f, t, y)
    for stage in range(1, 6):
        y_stage = y + dt * np.dot(RKF45_B[stage], k[:stage])
        k[stage] = _rhs(f, t + RKF45_A[stage] * dt, y_stage)

    y4 = y + dt * RKF45_C4.dot(k)
    y5 = y + dt * RKF45_C5.dot(k)

    scale = np.maximum(np.maximum(np.abs(y), np.abs(y4)), 1e-10)
    error = float(np.max(np.abs(y5 - y4) / scale)) if y.size else 0.0
    return y4, y5, error


def optimal_step(current_dt, error, tolerance, min_step, max_step):
    """
    Step-size controller.

    Returns:
        tuple: (new_dt, accept)
    """
    if error <= tolerance:
        if error > 0:
            factor = min(MAX_GROW, SAFETY * (tolerance / error) ** GROW_EXPONENT)
        else:
            factor = MAX_GROW
        return min(max_step, max(min_step, current_dt * factor)), True

    factor = max(MAX_SHRINK, SAFETY * (tolerance / error) ** SHRINK_EXPONENT)
    return max(min_step, current_dt * factor), False


class RKF45Step:
    """Adaptive Runge-Kutta-Fehlberg; accepts the 5th order estimate."""
    name = 'rkf45'

    def __init__(self, options):
        self.options = options

    def step(self, f, t, y, dt):
        opts = self.options
        current_dt = dt
        for iteration in range(opts.max_iterations):
            _, y5, error = rkf45_estimates(f, t, y, current_dt)
            new_dt, accept = optimal_step(current_dt, error, opts.tolerance, opts.min_step, opts.max_step)
            if accept:
                return StepResult(t=t + current_dt, y=y5, dt=current_dt, next_dt=new_dt,
                                  error=error, iterations=iteration + 1)
            current_dt = new_dt

        # retries exhausted: take the best estimate at the smallest step tried
        _, y5, error = rkf45_estimates(f, t, y, current_dt)
        logger.debug("rkf45 step at t=%.6g did not meet tolerance after %d retries (err=%.3g)",
                     t, opts.max_iterations, error)
        return StepResult(t=t + current_dt, y=y5, dt=current_dt, next_dt=current_dt,
                          error=error, iterations=opts.max_iterations, converged=False)


SOLVER_METHODS = {
    'euler': EulerStep,
    'rk2': HeunStep,
    'rk4': RK4Step,
    'rkf45': RKF45Step,
}


# ----------------------------------------------------------------------------
# Solver
# ----------------------------------------------------------------------------

class ODESolver:
    """
    Integrates a derivative function f(t, y) -> dy/dt over [t0, t_end].

    Args:
        derivative_function (callable): f(t, y) returning an array like y.
        method (str): 'euler', 'rk2', 'rk4' or 'rkf45'.
        options (SolverOptions): Tolerance and step limits.

    Raises:
        ValueError: For an unknown method tag.
    """

    def __init__(self, derivative_function, method='rk4', options=None):
        if method not in SOLVER_METHODS:
            raise ValueError(f"Unknown solver method '{method}'; expected one of {sorted(SOLVER_METHODS)}")
        self.f = derivative_function
        self.method = method
        self.options = options if options is not None else SolverOptions()
        self.stepper = SOLVER_METHODS[method](self.options)

    def step(self, t, y, dt):
        return self.stepper.step(self.f, t, np.asarray(y, dtype=float), dt)

    def solve(self, y0, t0, t_end, dt, output_interval=None):
        """
        Integrate from t0 to t_end.

        Samples are stored at t0, then every output_interval (default dt),
        and the final state is always included.

        Returns:
            ODESolution: success is False only when the step ceiling is hit.
        """
        if dt <= 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        if t_end < t0:
            raise ValueError(f"End time {t_end} is before start time {t0}")
        if output_interval is not None and output_interval <= 0:
            raise ValueError(f"Output interval must be positive, got {output_interval}")

        y = np.array(y0, dtype=float)
        t = float(t0)
        solution = ODESolution(times=[t], states=[y.copy()])

        output_dt = output_interval if output_interval else dt
        next_output = t0 + output_dt
        current_dt = dt
        unconverged_at = None

        while t < t_end - TIME_EPS:
            step_size = min(current_dt, t_end - t)
            result = self.step(t, y, step_size)
            t, y = result.t, result.y
            solution.total_steps += 1

            if result.next_dt is not None:
                current_dt = result.next_dt
            if not result.converged and unconverged_at is None:
                unconverged_at = result.t

            if t >= next_output - TIME_EPS:
                solution.times.append(t)
                solution.states.append(y.copy())
                while next_output <= t + TIME_EPS:
                    next_output += output_dt

            if solution.total_steps > self.options.max_total_steps:
                logger.warning("%s solver stopped at t=%.6g after %d steps",
                               self.method, t, solution.total_steps)
                solution.success = False
                solution.message = 'Maximum steps exceeded'
                return solution

        if abs(solution.times[-1] - t_end) > TIME_EPS:
            solution.times.append(t)
            solution.states.append(y.copy())

        if unconverged_at is not None:
            solution.message = f"Step size control did not reach tolerance at t={unconverged_at:.6g}"
        return solution


# ----------------------------------------------------------------------------
# Utilities
# ----------------------------------------------------------------------------

def interpolate_state(t1, y1, t2, y2, t):
    """Linear interpolation between (t1, y1) and (t2, y2)."""
    y1 = np.asarray(y1, dtype=float)
    y2 = np.asarray(y2, dtype=float)
    factor = (t - t1) / (t2 - t1)
    return y1 + factor * (y2 - y1)


def steady_state_error(y1, y2, threshold=1e-6):
    """Max relative change between two states, each term scaled by max(|y1|, |y2|, threshold)."""
    y1 = np.asarray(y1, dtype=float)
    y2 = np.asarray(y2, dtype=float)
    if y1.size == 0:
        return 0.0
    scale = np.maximum(np.maximum(np.abs(y1), np.abs(y2)), threshold)
    return float(np.max(np.abs(y2 - y1) / scale))


def max_window_change(history, window_size=10):
    """Largest steady_state_error between consecutive states in the last window."""
    recent = list(history)[-window_size:]
    max_change = 0.0
    for previous, current in zip(recent[:-1], recent[1:]):
        max_change = max(max_change, steady_state_error(previous, current))
    return max_change


def is_steady_state(history, window_size=10, tolerance=1e-4):
    """True when every consecutive change in the last window_size states is below tolerance."""
    if len(history) < window_size:
        return False
    return max_window_change(history, window_size) < tolerance


def create_ode_solver(derivative_function, method='rk4', **options):
    """Shortcut: ODESolver with SolverOptions built from keyword arguments."""
    return ODESolver(derivative_function, method, SolverOptions(**options))
