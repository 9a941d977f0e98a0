"""Line searches used by the multi-dimensional optimizers.

:class:`LineMinimizer` performs an exact one-dimensional minimization of
``f(p + t * d)`` with Brent's method (or its derivative-aware variant when a
gradient is available). :func:`backtracking_line_search` only guarantees a
sufficient decrease, which is all the quasi-Newton method needs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..exceptions import ConfigurationError, NonDescentDirectionError, OptimizationError
from ..logging import get_logger
from .brent import (
    DEFAULT_MAX_ITERATIONS,
    BrentSingleOptimizer,
    DerivativeBrentSingleOptimizer,
)
from .core import (
    DEFAULT_TOLERANCE,
    Array,
    Gradient,
    Objective,
    check_max_iterations,
    check_tolerance,
)
from .evaluators import CountingFunction, DirectionalDerivativeEvaluator, DirectionalEvaluator

logger = get_logger(__name__)

# Sufficient decrease constant of the Armijo condition
ALF = 1e-4
# Smallest relative step before the backtracking search gives up
TOLX = 1e-12


@dataclass
class LineSearchResult:
    """Outcome of a line minimization along ``direction``.

    ``x`` equals ``base + step * direction``. When ``converged`` is False the
    one-dimensional search failed and ``x`` is the base point.
    """

    step: float
    x: Array
    fun: float
    direction: Array
    converged: bool = True
    nfev: int = 0
    njev: int = 0


class LineMinimizer:
    """Minimize a function of several variables along a ray.

    Parameters
    ----------
    fun:
        Objective ``fun(x: ndarray) -> float``.
    grad:
        Optional gradient ``grad(x) -> ndarray``. When given, the directional
        derivative ``grad(p + t d) . d`` drives derivative-aware Brent.
    tolerance:
        Relative tolerance of the one-dimensional minimization.
    max_iterations:
        Iteration cap of the one-dimensional minimizer.
    """

    def __init__(
        self,
        fun: Objective,
        grad: Optional[Gradient] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self.fun = fun
        self.grad = grad
        self.tolerance = check_tolerance(tolerance)
        self.max_iterations = check_max_iterations(max_iterations)

    def minimize(
        self, point: Array, direction: Array, fp: Optional[float] = None
    ) -> LineSearchResult:
        """Minimize along ``direction`` starting from ``point``.

        A bracket is searched for from steps ``t = 0`` and ``t = 1``. Exceptions
        raised by the objective or gradient propagate unchanged. ``fp`` is the
        known value at ``point``, used only when the search falls back to it.
        """
        point = np.asarray(point, dtype=float)
        direction = np.asarray(direction, dtype=float)
        if self.grad is None:
            evaluator = DirectionalEvaluator(self.fun, point, direction)
            f1 = CountingFunction(evaluator.evaluate_at)
            df1 = None
            opt = BrentSingleOptimizer(
                f1, tolerance=self.tolerance, max_iterations=self.max_iterations
            )
        else:
            evaluator = DirectionalDerivativeEvaluator(self.fun, self.grad, point, direction)
            f1 = CountingFunction(evaluator.evaluate_at)
            df1 = CountingFunction(evaluator.differentiate_at)
            opt = DerivativeBrentSingleOptimizer(
                f1, df1, tolerance=self.tolerance, max_iterations=self.max_iterations
            )

        try:
            opt.compute_bracket(0.0, 1.0)
            res = opt.minimize()
        except OptimizationError as exc:
            logger.warning("line minimization failed, keeping base point: %s", exc)
            if fp is None:
                fp = f1(0.0)
            return LineSearchResult(
                step=0.0,
                x=point.copy(),
                fun=float(fp),
                direction=direction.copy(),
                converged=False,
                nfev=f1.calls,
                njev=0 if df1 is None else df1.calls,
            )

        return LineSearchResult(
            step=res.x,
            x=evaluator.point_at(res.x),
            fun=res.fun,
            direction=direction.copy(),
            nfev=f1.calls,
            njev=0 if df1 is None else df1.calls,
        )


def backtracking_line_search(
    fun: Objective,
    x_old: Array,
    f_old: float,
    grad_old: Array,
    p: Array,
    stpmax: float,
    alf: float = ALF,
    tolx: float = TOLX,
) -> tuple[Array, float, bool, int]:
    """Backtrack along ``p`` until the Armijo condition holds.

    The full step is tried first (after scaling ``p`` down to length
    ``stpmax``); on failure the step is shortened by minimizing a quadratic,
    then cubic, model of ``f`` along the ray, never by less than a factor 10
    or more than a factor 2.

    Returns ``(x, f, check, nfev)``. ``check`` is True when the step became
    negligible and ``x`` is ``x_old``; for a minimization this usually means
    convergence.

    Raises
    ------
    NonDescentDirectionError
        If ``p`` is not a descent direction at ``x_old``.
    """
    if not (0 < alf < 1):
        raise ConfigurationError("Armijo constant alf must lie in (0, 1)")
    if stpmax <= 0:
        raise ConfigurationError("stpmax must be positive")
    x_old = np.asarray(x_old, dtype=float)
    p = np.asarray(p, dtype=float)
    norm = float(np.linalg.norm(p))
    if norm > stpmax:
        p = p * (stpmax / norm)
    slope = float(np.dot(grad_old, p))
    if not slope < 0.0:
        raise NonDescentDirectionError(
            f"Direction is not a descent direction (slope {slope:g})"
        )
    test = float(np.max(np.abs(p) / np.maximum(np.abs(x_old), 1.0)))
    alamin = tolx / test
    alam = 1.0
    alam2 = 0.0
    f2: Optional[float] = None
    nfev = 0
    while True:
        x = x_old + alam * p
        f = float(fun(x))
        nfev += 1
        if alam < alamin:
            return x_old.copy(), f_old, True, nfev
        if math.isfinite(f) and f <= f_old + alf * alam * slope:
            return x, f, False, nfev
        if not math.isfinite(f):
            # no model through a non-finite value, just shrink
            f2 = None
            alam *= 0.1
            continue
        if f2 is None:
            # quadratic through f_old, slope and f
            tmplam = -slope * alam**2 / (2.0 * (f - f_old - slope * alam))
        else:
            rhs1 = f - f_old - alam * slope
            rhs2 = f2 - f_old - alam2 * slope
            a = (rhs1 / alam**2 - rhs2 / alam2**2) / (alam - alam2)
            b = (-alam2 * rhs1 / alam**2 + alam * rhs2 / alam2**2) / (alam - alam2)
            if a == 0.0:
                tmplam = -slope / (2.0 * b)
            else:
                disc = b * b - 3.0 * a * slope
                if disc < 0.0:
                    tmplam = 0.5 * alam
                elif b <= 0.0:
                    tmplam = (-b + math.sqrt(disc)) / (3.0 * a)
                else:
                    tmplam = -slope / (b + math.sqrt(disc))
        tmplam = min(tmplam, 0.5 * alam)
        alam2 = alam
        f2 = f
        alam = max(tmplam, 0.1 * alam)


__all__ = ["LineMinimizer", "LineSearchResult", "backtracking_line_search", "ALF", "TOLX"]
