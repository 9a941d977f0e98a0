"""Brent's method for single-variable minimization.

:class:`BrentSingleOptimizer` combines golden-section steps with inverse
parabolic interpolation through the three best points seen so far;
:class:`DerivativeBrentSingleOptimizer` replaces the parabola by secant steps on
the derivative and uses its sign to decide which side of the best point is
downhill. Both follow Press et al., *Numerical Recipes*, 10.3-10.4.

Bookkeeping names: ``x`` is the best point so far, ``w`` the second best,
``v`` the previous value of ``w``, ``u`` the latest trial point, and
``[a, b]`` the current bracket.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..exceptions import ConfigurationError, NotAvailableError, OptimizationError
from ..logging import get_logger
from .bracket import (
    DEFAULT_MAX_BRACKET_ITERATIONS,
    Bracket,
    BracketedSingleOptimizer,
    prepare_bracket,
    sign,
)
from .core import (
    DEFAULT_TOLERANCE,
    IterationCallback,
    OptimizeResult,
    ScalarFunction,
    check_max_iterations,
)
from .utils import approx_derivative

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 100
# Golden section ratio
CGOLD = 0.3819660
# Protects against a fractional tolerance on a minimum at exactly zero
ZEPS = 1e-10
DERIVATIVE_ZEPS = 1e-8


class BrentSingleOptimizer(BracketedSingleOptimizer):
    """Brent's parabolic-interpolation minimizer (value only).

    A parabolic step is taken only when it falls inside the bracket, moves
    less than half of the step before last and is not vanishingly small;
    otherwise a golden-section step into the larger segment is taken.
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
        """Locate the minimum inside the current bracket.

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
            a = bracket.lower
            b = bracket.upper
            d = 0.0
            # distance moved on the step before last
            e = 0.0
            x = w = v = bracket.b
            fx = fw = fv = bracket.fb
            tol = self._tolerance

            for iteration in range(self._max_iterations):
                xm = 0.5 * (a + b)
                tol1 = tol * abs(x) + ZEPS
                tol2 = 2.0 * tol1
                if abs(x - xm) <= (tol2 - 0.5 * (b - a)):
                    self._set_result(x, fx)
                    logger.debug("brent converged to x=%g after %d iterations", x, iteration)
                    return self._to_result("Bracket width below tolerance.")

                if abs(e) > tol1:
                    # trial parabolic fit
                    r = (x - w) * (fx - fv)
                    q = (x - v) * (fx - fw)
                    p = (x - v) * q - (x - w) * r
                    q = 2.0 * (q - r)
                    if q > 0.0:
                        p = -p
                    q = abs(q)
                    etemp = e
                    e = d
                    if abs(p) >= abs(0.5 * q * etemp) or p <= q * (a - x) or p >= q * (b - x):
                        # golden section step into the larger segment
                        e = a - x if x >= xm else b - x
                        d = CGOLD * e
                    else:
                        d = p / q
                        u = x + d
                        if u - a < tol2 or b - u < tol2:
                            d = sign(tol1, xm - x)
                else:
                    e = a - x if x >= xm else b - x
                    d = CGOLD * e

                u = x + d if abs(d) >= tol1 else x + sign(tol1, d)
                fu = self._evaluate(u)
                if fu <= fx:
                    if u >= x:
                        a = x
                    else:
                        b = x
                    v, w, x = w, x, u
                    fv, fw, fx = fw, fx, fu
                else:
                    if u < x:
                        a = u
                    else:
                        b = u
                    if fu <= fw or w == x:
                        v, w = w, u
                        fv, fw = fw, fu
                    elif fu <= fv or v == x or v == w:
                        v = u
                        fv = fu
                self._iterations = iteration + 1
                self._notify(iteration, self._max_iterations)

        raise OptimizationError(
            f"Brent did not converge in {self._max_iterations} iterations"
        )


class DerivativeBrentSingleOptimizer(BrentSingleOptimizer):
    """Brent's method using first derivatives.

    Requires both ``fun`` and ``derivative``. Secant estimates through the two
    previous points are accepted only if they land inside the bracket on the
    downhill side indicated by the sign of the derivative at the best point;
    otherwise the downhill segment is bisected.
    """

    def __init__(
        self,
        fun: Optional[ScalarFunction] = None,
        derivative: Optional[ScalarFunction] = None,
        bracket: Optional[Bracket | Sequence[float]] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_bracket_iterations: int = DEFAULT_MAX_BRACKET_ITERATIONS,
    ) -> None:
        self._derivative = None
        super().__init__(
            fun=fun,
            bracket=bracket,
            tolerance=tolerance,
            callback=callback,
            max_iterations=max_iterations,
            max_bracket_iterations=max_bracket_iterations,
        )
        self.derivative = derivative
        self._ndev = 0

    @property
    def derivative(self) -> ScalarFunction:
        """callable: First derivative of :attr:`fun`."""
        if self._derivative is None:
            raise NotAvailableError("No derivative has been set.")
        return self._derivative

    @derivative.setter
    def derivative(self, value: Optional[ScalarFunction]) -> None:
        self._check_unlocked()
        if value is not None and not callable(value):
            raise ConfigurationError("The derivative must be callable.")
        self._derivative = value
        self._invalidate_result()

    @property
    def is_derivative_available(self) -> bool:
        return self._derivative is not None

    @property
    def is_ready(self) -> bool:
        return super().is_ready and self.is_derivative_available

    def _differentiate(self, x: float) -> float:
        self._ndev += 1
        return float(self._derivative(x))

    def minimize(self) -> OptimizeResult:
        """Locate the minimum inside the current bracket using derivatives.

        Raises
        ------
        NotReadyError
            If the function, derivative or bracket is missing.
        InvalidBracketRangeError
            If the bracket values do not enclose a minimum.
        OptimizationError
            If :attr:`max_iterations` is exceeded.
        """
        with self._running():
            self._nfev = 0
            self._ndev = 0
            bracket = self._validated_bracket()
            a = bracket.lower
            b = bracket.upper
            d = 0.0
            e = 0.0
            x = w = v = bracket.b
            fx = fw = fv = bracket.fb
            dx = dw = dv = self._differentiate(x)
            tol = self._tolerance

            for iteration in range(self._max_iterations):
                xm = 0.5 * (a + b)
                tol1 = tol * abs(x) + DERIVATIVE_ZEPS
                tol2 = 2.0 * tol1
                if abs(x - xm) <= (tol2 - 0.5 * (b - a)):
                    return self._finish(x, fx, iteration)

                downhill = a - x if dx >= 0.0 else b - x
                if abs(e) > tol1:
                    # out-of-bracket values unless a secant estimate exists
                    d1 = 2.0 * (b - a)
                    d2 = d1
                    if dw != dx:
                        d1 = (w - x) * dx / (dx - dw)
                    if dv != dx:
                        d2 = (v - x) * dx / (dx - dv)
                    u1 = x + d1
                    u2 = x + d2
                    # inside the bracket and on the side the derivative points to
                    ok1 = (a - u1) * (u1 - b) > 0.0 and dx * d1 <= 0.0
                    ok2 = (a - u2) * (u2 - b) > 0.0 and dx * d2 <= 0.0
                    olde = e
                    e = d
                    if ok1 or ok2:
                        if ok1 and ok2:
                            d = d1 if abs(d1) < abs(d2) else d2
                        elif ok1:
                            d = d1
                        else:
                            d = d2
                        if abs(d) <= abs(0.5 * olde):
                            u = x + d
                            if u - a < tol2 or b - u < tol2:
                                d = sign(tol1, xm - x)
                        else:
                            e = downhill
                            d = 0.5 * e
                    else:
                        e = downhill
                        d = 0.5 * e
                else:
                    e = downhill
                    d = 0.5 * e

                if abs(d) >= tol1:
                    u = x + d
                    fu = self._evaluate(u)
                else:
                    u = x + sign(tol1, d)
                    fu = self._evaluate(u)
                    if fu > fx:
                        # the minimum step downhill goes uphill
                        return self._finish(x, fx, iteration)

                du = self._differentiate(u)
                if fu <= fx:
                    if u >= x:
                        a = x
                    else:
                        b = x
                    v, fv, dv = w, fw, dw
                    w, fw, dw = x, fx, dx
                    x, fx, dx = u, fu, du
                else:
                    if u < x:
                        a = u
                    else:
                        b = u
                    if fu <= fw or w == x:
                        v, fv, dv = w, fw, dw
                        w, fw, dw = u, fu, du
                    elif fu < fv or v == x or v == w:
                        v, fv, dv = u, fu, du
                self._iterations = iteration + 1
                self._notify(iteration, self._max_iterations)

        raise OptimizationError(
            f"Derivative Brent did not converge in {self._max_iterations} iterations"
        )

    def _finish(self, x: float, fx: float, iteration: int) -> OptimizeResult:
        self._set_result(x, fx)
        logger.debug("derivative brent converged to x=%g after %d iterations", x, iteration)
        result = self._to_result("Bracket width below tolerance.")
        result.njev = self._ndev
        return result


def brent(
    fun: ScalarFunction,
    bracket: Optional[Bracket | Sequence[float]] = None,
    tol: float = DEFAULT_TOLERANCE,
    maxiter: int = DEFAULT_MAX_ITERATIONS,
) -> OptimizeResult:
    """Minimize ``fun`` with Brent's method.

    ``bracket`` is a :class:`Bracket`, a triple ``(a, b, c)``, a pair
    ``(a, b)`` to search from, or None to search from ``(0, 1)``.

    Example
    -------
    >>> res = brent(lambda x: (x - 3.0) ** 2 / 1.5 + 7.0, bracket=(-10.0, 0.0, 10.0))
    >>> round(res.x, 6), round(res.fun, 6)
    (3.0, 7.0)
    """
    opt = BrentSingleOptimizer(fun, tolerance=tol, max_iterations=maxiter)
    prepare_bracket(opt, bracket)
    return opt.minimize()


def dbrent(
    fun: ScalarFunction,
    derivative: Optional[ScalarFunction] = None,
    bracket: Optional[Bracket | Sequence[float]] = None,
    tol: float = DEFAULT_TOLERANCE,
    maxiter: int = DEFAULT_MAX_ITERATIONS,
) -> OptimizeResult:
    """Minimize ``fun`` with derivative-aware Brent.

    Without ``derivative`` a central finite-difference estimate is used.
    """
    if derivative is None:

        def derivative(x: float) -> float:
            return approx_derivative(fun, x)

    opt = DerivativeBrentSingleOptimizer(
        fun, derivative, tolerance=tol, max_iterations=maxiter
    )
    prepare_bracket(opt, bracket)
    return opt.minimize()


__all__ = [
    "BrentSingleOptimizer",
    "DerivativeBrentSingleOptimizer",
    "brent",
    "dbrent",
    "CGOLD",
    "ZEPS",
]
