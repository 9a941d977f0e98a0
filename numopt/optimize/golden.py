"""Golden-section search for the minimum of a single-variable function."""

from __future__ import annotations

from typing import Optional, Sequence

from ..exceptions import OptimizationError
from ..logging import get_logger
from .bracket import (
    DEFAULT_MAX_BRACKET_ITERATIONS,
    Bracket,
    BracketedSingleOptimizer,
    prepare_bracket,
)
from .core import (
    DEFAULT_TOLERANCE,
    IterationCallback,
    OptimizeResult,
    ScalarFunction,
    check_max_iterations,
)

logger = get_logger(__name__)

# Golden ratios
R = 0.61803399
C = 1.0 - R
DEFAULT_MAX_ITERATIONS = 10_000
# Absolute floor on the stopping width, for minima at the origin
ZEPS = 1e-20


class GoldenSingleOptimizer(BracketedSingleOptimizer):
    """Golden-section minimizer.

    Each iteration places a new point in the larger of the two sub-intervals
    of the current triple at a golden-ratio fraction, then keeps the triple
    that still brackets the minimum. Convergence is linear but robust, and no
    derivatives are used. The search stops when the bracket width falls below
    ``tolerance * (|x1| + |x2|)`` where ``x1, x2`` are the interior points.
    """

    def __init__(
        self,
        fun: Optional[ScalarFunction] = None,
        bracket: Optional[Bracket | Sequence[float]] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_bracket_iterations: int = DEFAULT_MAX_BRACKET_ITERATIONS,
    ) -> None:
        super().__init__(
            fun=fun,
            bracket=bracket,
            tolerance=tolerance,
            callback=callback,
            max_bracket_iterations=max_bracket_iterations,
        )
        self._max_iterations = check_max_iterations(max_iterations)

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        self._check_unlocked()
        self._max_iterations = check_max_iterations(value)

    def minimize(self) -> OptimizeResult:
        """Shrink the bracket until it is narrower than the tolerance.

        Raises
        ------
        NotReadyError
            If the function or the bracket is missing.
        InvalidBracketRangeError
            If the bracket values do not enclose a minimum.
        OptimizationError
            If :attr:`max_iterations` is exceeded.
        """
        with self._running():
            self._nfev = 0
            bracket = self._validated_bracket()
            ax, bx, cx = bracket.a, bracket.b, bracket.c
            x0 = ax
            x3 = cx
            # x0 to x1 is the smaller segment
            if abs(cx - bx) > abs(bx - ax):
                x1 = bx
                x2 = bx + C * (cx - bx)
                f1 = bracket.fb
                f2 = self._evaluate(x2)
            else:
                x2 = bx
                x1 = bx - C * (bx - ax)
                f2 = bracket.fb
                f1 = self._evaluate(x1)

            iteration = 0
            while abs(x3 - x0) > self._tolerance * (abs(x1) + abs(x2)) + ZEPS:
                if iteration >= self._max_iterations:
                    raise OptimizationError(
                        f"Golden section did not converge in {self._max_iterations} iterations"
                    )
                if f2 < f1:
                    x0, x1, x2 = x1, x2, R * x2 + C * x3
                    f1, f2 = f2, self._evaluate(x2)
                else:
                    x3, x2, x1 = x2, x1, R * x1 + C * x0
                    f2, f1 = f1, self._evaluate(x1)
                self._iterations = iteration + 1
                self._notify(iteration, None)
                iteration += 1

            if f1 < f2:
                self._set_result(x1, f1)
            else:
                self._set_result(x2, f2)
            logger.debug(
                "golden section converged to x=%g after %d iterations", self._xmin, iteration
            )
            return self._to_result("Bracket width below tolerance.")


def golden(
    fun: ScalarFunction,
    bracket: Optional[Bracket | Sequence[float]] = None,
    tol: float = DEFAULT_TOLERANCE,
    maxiter: int = DEFAULT_MAX_ITERATIONS,
) -> OptimizeResult:
    """Minimize ``fun`` with golden-section search.

    If ``bracket`` is a pair ``(a, b)`` or None, a bracket is searched for
    starting from those abscissas (default ``(0, 1)``).
    """
    opt = GoldenSingleOptimizer(fun, tolerance=tol, max_iterations=maxiter)
    prepare_bracket(opt, bracket)
    return opt.minimize()


__all__ = ["GoldenSingleOptimizer", "golden", "R", "C"]
