"""Primal-dual projected-gradient solver for the latency objective.

Minimizes ``L(x1, x2, x3) = a/x1 + b/x2 + c/x3`` subject to

- ``x1 >= min_rate``       (minimum data rate)
- ``x2 <= max_power``      (maximum transmission power)
- ``x3 <= max_bandwidth``  (maximum bandwidth)

Each constraint gets a non-negative multiplier that grows while the
constraint is violated and resets to zero once it holds again. The iterate
is projected back onto the bounds after every gradient step, so every
accepted point is feasible. Pure function of a validated request; no I/O.
"""

from __future__ import annotations

import numpy as np

from validators import OptimizationRequest

from .types import SolverOutput, SolverState

MAX_ITERATIONS = 1000
CONVERGENCE_THRESHOLD = 0.001
STEP_SIZE = 0.01

# +1 for a lower bound (x1), -1 for an upper bound (x2, x3)
_BOUND_SIGN = np.array([1.0, -1.0, -1.0])


def _coefficients(request: OptimizationRequest) -> np.ndarray:
    return np.array([request.coeff_a, request.coeff_b, request.coeff_c], dtype=np.float64)


def _bounds(request: OptimizationRequest) -> np.ndarray:
    return np.array(
        [request.min_rate, request.max_power, request.max_bandwidth], dtype=np.float64
    )


def objective(request: OptimizationRequest, x1: float, x2: float, x3: float) -> float:
    """Latency objective a/x1 + b/x2 + c/x3."""
    return request.coeff_a / x1 + request.coeff_b / x2 + request.coeff_c / x3


def initial_state(request: OptimizationRequest) -> SolverState:
    # Satisfies all three bounds by construction
    x = np.array(
        [request.min_rate + 1.0, request.max_power * 0.8, request.max_bandwidth * 0.8],
        dtype=np.float64,
    )
    return SolverState(x=x, duals=np.zeros(3, dtype=np.float64))


def constraint_margins(state: SolverState, bounds: np.ndarray) -> np.ndarray:
    """(x1 - min_rate, max_power - x2, max_bandwidth - x3); >= 0 when feasible."""
    return _BOUND_SIGN * (state.x - bounds)


def project(x: np.ndarray, bounds: np.ndarray) -> np.ndarray:
    return np.where(_BOUND_SIGN > 0, np.maximum(x, bounds), np.minimum(x, bounds))


def _step(state: SolverState, coeffs: np.ndarray, bounds: np.ndarray) -> np.ndarray:
    margins = constraint_margins(state, bounds)
    # Multiplier only carries pressure while its constraint is violated
    state.duals = np.where(
        margins < 0,
        np.maximum(0.0, state.duals + STEP_SIZE * np.abs(margins)),
        0.0,
    )
    grad = -coeffs / (state.x * state.x)
    candidate = state.x - STEP_SIZE * (grad + _BOUND_SIGN * state.duals)
    return project(candidate, bounds)


def solve(request: OptimizationRequest, *, trace: bool = False) -> SolverOutput:
    """Run the solver to convergence or the iteration cap.

    Reaching ``MAX_ITERATIONS`` is not an error; the output simply reports
    ``converged=False`` and the iteration count reached. With ``trace`` the
    objective value of every projected iterate is returned in order.
    """
    coeffs = _coefficients(request)
    bounds = _bounds(request)
    state = initial_state(request)
    history: list[float] = []
    converged = False

    while state.iteration < MAX_ITERATIONS:
        state.iteration += 1
        projected = _step(state, coeffs, bounds)
        current = objective(request, *(float(v) for v in projected))
        if trace:
            history.append(current)
        done = abs(state.prev_objective - current) < CONVERGENCE_THRESHOLD
        state.x = projected
        state.prev_objective = current
        if done:
            converged = True
            break

    x1, x2, x3 = (float(v) for v in state.x)
    return SolverOutput(
        rate=x1,
        power=x2,
        bandwidth=x3,
        latency=objective(request, x1, x2, x3),
        iterations=state.iteration,
        converged=converged,
        objective_history=tuple(history),
    )
