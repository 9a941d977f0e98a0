"""Nonlinear conjugate gradient (Fletcher-Reeves and Polak-Ribiere)."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..exceptions import ConfigurationError, OptimizationError
from ..logging import get_logger
from .core import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    Array,
    Gradient,
    GradientMultiOptimizer,
    IterationCallback,
    Objective,
    OptimizeResult,
    Problem,
    fractional_change_converged,
    history_recorder,
)
from .line_search import LineMinimizer
from .utils import as_vector, gradient_estimator

logger = get_logger(__name__)

# Rescues the fractional test for a function converging to exactly zero
EPS = 1e-18
# Convergence criterion for the zero-gradient test
GTOL = 1e-8


def scaled_gradient_norm(g: Array, p: Array, fp: float) -> float:
    """Largest gradient component scaled by the magnitude of ``p`` and ``f(p)``."""
    den = max(abs(fp), 1.0)
    return float(np.max(np.abs(g) * np.maximum(np.abs(p), 1.0))) / den


class ConjugateGradientMultiOptimizer(GradientMultiOptimizer):
    """Minimize along a sequence of mutually conjugate directions.

    Each iteration line-minimizes along the current direction ``h``, then
    builds the next one as ``-g_new + beta * h``. With ``use_polak_ribiere``
    (the default) ``beta = max(0, g_new . (g_new - g_old)) / |g_old|^2``,
    otherwise the Fletcher-Reeves ratio ``|g_new|^2 / |g_old|^2`` is used.
    The direction restarts from steepest descent every ``n`` iterations and
    whenever it stops being a descent direction.

    Parameters
    ----------
    fun, grad:
        Objective and its gradient.
    start_point:
        Initial point.
    tolerance:
        Fractional decrease of the function below which the minimization stops.
    callback:
        Progress callback, called after each line minimization.
    max_iterations:
        Maximum number of line minimizations.
    use_polak_ribiere:
        Choose the Polak-Ribiere (True) or Fletcher-Reeves (False) update.
    use_derivative_line_search:
        Use derivative-aware Brent in the line minimizations.
    initial_direction:
        Optional first search direction; defaults to ``-grad(start_point)``.
    """

    def __init__(
        self,
        fun: Optional[Objective] = None,
        grad: Optional[Gradient] = None,
        start_point: Optional[Array] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        use_polak_ribiere: bool = True,
        use_derivative_line_search: bool = False,
        initial_direction: Optional[Array] = None,
    ) -> None:
        self._initial_direction: Optional[Array] = None
        super().__init__(
            fun=fun,
            grad=grad,
            start_point=start_point,
            tolerance=tolerance,
            callback=callback,
            max_iterations=max_iterations,
        )
        self._use_polak_ribiere = bool(use_polak_ribiere)
        self._use_derivative_line_search = bool(use_derivative_line_search)
        if initial_direction is not None:
            self.initial_direction = initial_direction

    @property
    def use_polak_ribiere(self) -> bool:
        return self._use_polak_ribiere

    @use_polak_ribiere.setter
    def use_polak_ribiere(self, value: bool) -> None:
        self._check_unlocked()
        self._use_polak_ribiere = bool(value)
        self._invalidate_result()

    @property
    def use_derivative_line_search(self) -> bool:
        return self._use_derivative_line_search

    @use_derivative_line_search.setter
    def use_derivative_line_search(self, value: bool) -> None:
        self._check_unlocked()
        self._use_derivative_line_search = bool(value)
        self._invalidate_result()

    @property
    def initial_direction(self) -> Optional[Array]:
        """ndarray or None: First search direction, None for steepest descent."""
        if self._initial_direction is None:
            return None
        return self._initial_direction.copy()

    @initial_direction.setter
    def initial_direction(self, value: Optional[Array]) -> None:
        self._check_unlocked()
        if value is None:
            self._initial_direction = None
        else:
            direction = as_vector(value, "initial direction")
            if self._start_point is not None and direction.size != self._start_point.size:
                raise ConfigurationError(
                    f"Initial direction of size {direction.size} does not match a start "
                    f"point of size {self._start_point.size}"
                )
            self._initial_direction = direction
        self._invalidate_result()

    def _check_start_point(self, point: Array) -> None:
        if self._initial_direction is not None and self._initial_direction.size != point.size:
            raise ConfigurationError(
                f"Start point of size {point.size} does not match the initial direction "
                f"of size {self._initial_direction.size}"
            )

    def minimize(self) -> OptimizeResult:
        """Run conjugate gradient iterations from :attr:`start_point`.

        Raises
        ------
        NotReadyError
            If the function, gradient or start point is missing.
        OptimizationError
            If :attr:`max_iterations` is exceeded, or a line minimization along
            steepest descent fails.
        """
        with self._running():
            self._nfev = 0
            self._njev = 0
            p = self._start_point.copy()
            n = p.size
            fp = self._evaluate(p)
            if not math.isfinite(fp):
                raise OptimizationError(f"Function is not finite at the start point ({fp})")
            g = self._gradient(p)
            if scaled_gradient_norm(g, p, fp) < GTOL:
                return self._finish(p, fp, g, "Gradient below tolerance.")

            xi = -g if self._initial_direction is None else self._initial_direction.copy()
            if np.dot(xi, g) >= 0.0:
                logger.debug("conjugate gradient: initial direction is not downhill, using -g")
                xi = -g
            line = LineMinimizer(
                self._fun,
                self._grad if self._use_derivative_line_search else None,
                tolerance=self._tolerance,
            )

            for iteration in range(self._max_iterations):
                ls = line.minimize(p, xi, fp)
                self._nfev += ls.nfev
                self._njev += ls.njev
                if not ls.converged:
                    if np.array_equal(xi, -g):
                        raise OptimizationError(
                            "Line minimization along steepest descent failed"
                        )
                    logger.debug("conjugate gradient: restarting from steepest descent")
                    xi = -g
                    continue
                p, fret = ls.x, ls.fun
                self._start_point = p.copy()
                self._iterations = iteration + 1
                self._notify(iteration, self._max_iterations)

                if fractional_change_converged(fp, fret, self._tolerance, EPS):
                    return self._finish(p, fret, None, "Fractional decrease below tolerance.")
                fp = fret
                g_new = self._gradient(p)
                if scaled_gradient_norm(g_new, p, fp) < GTOL:
                    return self._finish(p, fp, g_new, "Gradient below tolerance.")
                gg = float(np.dot(g, g))
                if gg == 0.0:
                    return self._finish(p, fp, g_new, "Gradient is exactly zero.")

                if (iteration + 1) % n == 0:
                    beta = 0.0
                elif self._use_polak_ribiere:
                    beta = max(0.0, float(np.dot(g_new, g_new - g))) / gg
                else:
                    beta = float(np.dot(g_new, g_new)) / gg
                xi = -g_new + beta * xi
                if np.dot(xi, g_new) >= 0.0:
                    logger.debug("conjugate gradient: direction not downhill, restarting")
                    xi = -g_new
                g = g_new

        raise OptimizationError(
            f"Conjugate gradient did not converge in {self._max_iterations} iterations"
        )

    def _finish(
        self, p: Array, fp: float, g: Optional[Array], message: str
    ) -> OptimizeResult:
        self._set_result(p, fp)
        logger.debug(
            "conjugate gradient converged to f=%g after %d iterations", fp, self._iterations
        )
        grad_norm = None if g is None else float(np.linalg.norm(g))
        return self._to_result(message, grad_norm=grad_norm)


def conjugate_gradient(
    problem: Problem,
    x0: Array,
    maxiter: int = DEFAULT_MAX_ITERATIONS,
    tol: float = DEFAULT_TOLERANCE,
    polak_ribiere: bool = True,
    history: bool = False,
) -> OptimizeResult:
    """Minimize ``problem.fun`` from ``x0`` with nonlinear conjugate gradient.

    Uses a central finite-difference gradient when ``problem.grad`` is None.
    """
    grad = problem.grad if problem.grad is not None else gradient_estimator(problem.fun)
    hist: list[Array] = []
    opt = ConjugateGradientMultiOptimizer(
        problem.fun,
        grad,
        start_point=x0,
        tolerance=tol,
        callback=history_recorder(hist) if history else None,
        max_iterations=maxiter,
        use_polak_ribiere=polak_ribiere,
    )
    result = opt.minimize()
    result.history = hist
    return result


__all__ = [
    "ConjugateGradientMultiOptimizer",
    "conjugate_gradient",
    "scaled_gradient_norm",
    "EPS",
    "GTOL",
]
