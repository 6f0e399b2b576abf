"""Multivariate Newton-Raphson root finding for the maximum-likelihood models."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE: float = 1e-6
DEFAULT_MAX_ITERATIONS: int = 300

Objective = Callable[[np.ndarray], np.ndarray]
Jacobian = Callable[[np.ndarray], np.ndarray]


class SolverError(ArithmeticError):
    """Base class for Newton-Raphson failures."""


class NonConvergenceError(SolverError):
    pass


class SingularJacobianError(SolverError):
    pass


class NonFiniteEvaluationError(SolverError):
    pass


class SolverTimeoutError(SolverError):
    pass


@dataclass(frozen=True)
class NewtonSolution:
    """A converged root; failures raise SolverError instead."""
    x: np.ndarray
    iterations: int


def _evaluate(objective: Objective, x: np.ndarray, k: int) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        f = np.asarray(objective(x), dtype=float).reshape(-1)
    if f.shape != (k,):
        raise ValueError(f"Objective returned shape {f.shape}, expected ({k},)")
    if not np.all(np.isfinite(f)):
        raise NonFiniteEvaluationError(f"Objective is not finite at x={x.tolist()}")
    return f


def newton_raphson(
    objective: Objective,
    jacobian: Jacobian,
    x0: Sequence[float],
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    time_budget: Optional[float] = None,
) -> NewtonSolution:
    """Find x with objective(x) ~= 0.

    Iterates ``x <- x - J(x)^-1 F(x)``, solving the linear system rather than
    inverting J. Stops once the infinity norm of the step, or of F at the new
    iterate, is below ``tolerance``.

    Args:
        objective: F: R^k -> R^k
        jacobian: J: R^k -> R^{k x k}, the derivative of F
        x0: Initial guess of length k
        tolerance: Convergence threshold on the infinity norm
        max_iterations: Iteration bound; reaching it raises NonConvergenceError
        time_budget: Optional wall-clock limit in seconds

    Raises:
        NonConvergenceError, SingularJacobianError, NonFiniteEvaluationError,
        SolverTimeoutError
    """
    if tolerance <= 0:
        raise ValueError("tolerance must be positive")
    if max_iterations < 1:
        raise ValueError("max_iterations must be >= 1")

    x = np.array(x0, dtype=float).reshape(-1)
    k = x.size
    if not np.all(np.isfinite(x)):
        raise NonFiniteEvaluationError(f"Initial guess is not finite: {x.tolist()}")

    deadline = None if time_budget is None else time.monotonic() + float(time_budget)
    f = _evaluate(objective, x, k)

    for iteration in range(1, max_iterations + 1):
        if deadline is not None and time.monotonic() >= deadline:
            raise SolverTimeoutError(f"Time budget of {time_budget}s exhausted after {iteration - 1} iterations")

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            jac = np.asarray(jacobian(x), dtype=float)
        if jac.shape != (k, k):
            raise ValueError(f"Jacobian returned shape {jac.shape}, expected ({k}, {k})")
        if not np.all(np.isfinite(jac)):
            raise NonFiniteEvaluationError(f"Jacobian is not finite at x={x.tolist()}")
        with np.errstate(divide="ignore", invalid="ignore"):
            condition = np.linalg.cond(jac)
        if not condition < 1.0 / np.finfo(float).eps:
            raise SingularJacobianError(f"Jacobian is singular at x={x.tolist()}")
        try:
            step = np.linalg.solve(jac, f)
        except np.linalg.LinAlgError as e:
            raise SingularJacobianError(f"Jacobian is singular at x={x.tolist()}") from e
        if not np.all(np.isfinite(step)):
            raise NonFiniteEvaluationError(f"Newton step is not finite at x={x.tolist()}")

        x = x - step
        f = _evaluate(objective, x, k)
        step_norm = float(np.max(np.abs(step)))
        residual = float(np.max(np.abs(f)))
        logger.debug("newton iteration %d: x=%s step=%.3e residual=%.3e", iteration, x.tolist(), step_norm, residual)

        if step_norm < tolerance or residual < tolerance:
            return NewtonSolution(x=x, iterations=iteration)

    raise NonConvergenceError(f"No convergence within {max_iterations} iterations (last x={x.tolist()})")


def numerical_jacobian(objective: Objective, x: Sequence[float], rel_step: Optional[float] = None) -> np.ndarray:
    """Central-difference Jacobian of ``objective`` at ``x``."""
    x = np.asarray(x, dtype=float).reshape(-1)
    if rel_step is None:
        rel_step = np.cbrt(np.finfo(float).eps)
    f0 = np.asarray(objective(x), dtype=float).reshape(-1)
    jac = np.empty((f0.size, x.size))
    for j in range(x.size):
        h = rel_step * max(abs(x[j]), 1.0)
        up = x.copy()
        down = x.copy()
        up[j] += h
        down[j] -= h
        jac[:, j] = (np.asarray(objective(up), dtype=float).reshape(-1)
                     - np.asarray(objective(down), dtype=float).reshape(-1)) / (2.0 * h)
    return jac
