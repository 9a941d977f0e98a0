"""Brackets and the base classes of the single-variable minimizers.

A bracket is a triple of abscissas ``a, b, c`` with ``b`` between ``a`` and
``c`` and ``f(b) <= f(a)``, ``f(b) <= f(c)``, so that a local minimum lies
between ``a`` and ``c``. :meth:`BracketedSingleOptimizer.compute_bracket`
finds one by walking downhill from two starting abscissas with golden-ratio
steps and parabolic extrapolation (Press et al., *Numerical Recipes*, 10.1).
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Optional, Sequence

from ..exceptions import (
    ConfigurationError,
    InvalidBracketRangeError,
    NotAvailableError,
    NotReadyError,
    OptimizationError,
)
from ..logging import get_logger
from .core import (
    DEFAULT_TOLERANCE,
    IterationCallback,
    OptimizeResult,
    Optimizer,
    ScalarFunction,
    check_max_iterations,
)

logger = get_logger(__name__)

# Default ratio by which successive intervals are magnified
GOLD = 1.618034
# Maximum magnification allowed for a parabolic-fit step
GLIMIT = 100.0
# Prevents division by zero in the parabolic extrapolation
TINY = 1e-20
DEFAULT_MAX_BRACKET_ITERATIONS = 100


def sign(a: float, b: float) -> float:
    """Return ``|a|`` with the sign of ``b`` (zero counts as positive)."""
    return abs(a) if b >= 0.0 else -abs(a)


@dataclass(frozen=True)
class Bracket:
    """Three abscissas enclosing a local minimum, with optional values.

    The abscissas must be monotone (ascending or descending) and ``a`` must
    differ from ``c``. When the values are known, ``fb`` may not exceed either
    ``fa`` or ``fc``.
    """

    a: float
    b: float
    c: float
    fa: Optional[float] = None
    fb: Optional[float] = None
    fc: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("a", "b", "c"):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise InvalidBracketRangeError(f"Bracket abscissa {name}={value!r} must be finite")
            object.__setattr__(self, name, float(value))
        ascending = self.a <= self.b <= self.c
        descending = self.a >= self.b >= self.c
        if not (ascending or descending):
            raise InvalidBracketRangeError(
                f"Middle point {self.b} is not between {self.a} and {self.c}"
            )
        if self.a == self.c:
            raise InvalidBracketRangeError("Bracket has zero width")
        values = (self.fa, self.fb, self.fc)
        if any(v is None for v in values) and not all(v is None for v in values):
            raise ConfigurationError("Bracket values must be given for all three points or none")
        if self.has_evaluations:
            self.check_values()

    @property
    def has_evaluations(self) -> bool:
        return self.fa is not None

    @property
    def lower(self) -> float:
        return min(self.a, self.c)

    @property
    def upper(self) -> float:
        return max(self.a, self.c)

    @property
    def width(self) -> float:
        return abs(self.c - self.a)

    def check_values(self) -> None:
        """Raise :class:`InvalidBracketRangeError` unless ``fb <= min(fa, fc)``."""
        if not (self.fb <= self.fa and self.fb <= self.fc):
            raise InvalidBracketRangeError(
                f"f(b)={self.fb} must not exceed f(a)={self.fa} or f(c)={self.fc}"
            )

    def with_values(self, fa: float, fb: float, fc: float) -> "Bracket":
        return Bracket(self.a, self.b, self.c, float(fa), float(fb), float(fc))


class SingleOptimizer(Optimizer):
    """Base class for minimizers of functions of a single variable."""

    def __init__(
        self,
        fun: Optional[ScalarFunction] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
    ) -> None:
        super().__init__(tolerance=tolerance, callback=callback)
        self._fun = None
        self._xmin = 0.0
        self._fmin = 0.0
        self._nfev = 0
        self.fun = fun

    @property
    def fun(self) -> ScalarFunction:
        """callable: Function being minimized, ``fun(x: float) -> float``."""
        if self._fun is None:
            raise NotAvailableError("No function has been set.")
        return self._fun

    @fun.setter
    def fun(self, value: Optional[ScalarFunction]) -> None:
        self._check_unlocked()
        if value is not None and not callable(value):
            raise ConfigurationError("The function to minimize must be callable.")
        self._fun = value
        self._fun_changed()
        self._invalidate_result()

    @property
    def is_fun_available(self) -> bool:
        return self._fun is not None

    @property
    def is_ready(self) -> bool:
        return self.is_fun_available

    @property
    def result(self) -> float:
        """float: Abscissa of the minimum found."""
        self._require_result()
        return self._xmin

    @property
    def evaluation_at_result(self) -> float:
        """float: Function value at :attr:`result`."""
        self._require_result()
        return self._fmin

    def _fun_changed(self) -> None:
        pass

    def _evaluate(self, x: float) -> float:
        self._nfev += 1
        return float(self._fun(x))

    def _set_result(self, x: float, fmin: float) -> None:
        self._xmin = float(x)
        self._fmin = float(fmin)
        self._result_available = True

    def _to_result(self, message: str) -> OptimizeResult:
        return OptimizeResult(
            x=self._xmin,
            fun=self._fmin,
            nit=self._iterations,
            success=True,
            message=message,
            nfev=self._nfev,
        )


class BracketedSingleOptimizer(SingleOptimizer):
    """Single-variable minimizer that works on a :class:`Bracket`.

    Parameters
    ----------
    fun:
        Function to minimize.
    bracket:
        Optional initial bracket, a :class:`Bracket` or an ``(a, b, c)``
        sequence. Either supply one or call :meth:`compute_bracket`.
    tolerance:
        Relative convergence tolerance.
    callback:
        Progress callback.
    max_bracket_iterations:
        Growth steps allowed in :meth:`compute_bracket` before giving up.
    """

    def __init__(
        self,
        fun: Optional[ScalarFunction] = None,
        bracket: Optional[Bracket | Sequence[float]] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_bracket_iterations: int = DEFAULT_MAX_BRACKET_ITERATIONS,
    ) -> None:
        self._bracket: Optional[Bracket] = None
        super().__init__(fun=fun, tolerance=tolerance, callback=callback)
        self._max_bracket_iterations = check_max_iterations(max_bracket_iterations)
        if bracket is not None:
            self.bracket = bracket

    @property
    def bracket(self) -> Bracket:
        """:class:`Bracket`: Current bracket."""
        if self._bracket is None:
            raise NotAvailableError("No bracket has been set or computed.")
        return self._bracket

    @bracket.setter
    def bracket(self, value: Bracket | Sequence[float]) -> None:
        if isinstance(value, Bracket):
            self._check_unlocked()
            self._bracket = value
            self._invalidate_result()
        else:
            a, b, c = value
            self.set_bracket(a, b, c)

    def set_bracket(self, a: float, b: float, c: float) -> None:
        """Set the bracket abscissas; values are evaluated lazily."""
        self._check_unlocked()
        self._bracket = Bracket(float(a), float(b), float(c))
        self._invalidate_result()

    @property
    def is_bracket_available(self) -> bool:
        return self._bracket is not None

    @property
    def are_bracket_evaluations_available(self) -> bool:
        return self._bracket is not None and self._bracket.has_evaluations

    @property
    def max_bracket_iterations(self) -> int:
        return self._max_bracket_iterations

    @max_bracket_iterations.setter
    def max_bracket_iterations(self, value: int) -> None:
        self._check_unlocked()
        self._max_bracket_iterations = check_max_iterations(value)

    @property
    def is_ready(self) -> bool:
        return self.is_fun_available and self.is_bracket_available

    def _fun_changed(self) -> None:
        if getattr(self, "_bracket", None) is not None and self._bracket.has_evaluations:
            b = self._bracket
            self._bracket = Bracket(b.a, b.b, b.c)

    def compute_bracket(self, a: float = 0.0, b: float = 1.0) -> Bracket:
        """Search downhill from ``a`` and ``b`` for a bracket of a minimum.

        Raises
        ------
        ConfigurationError
            If ``a == b``.
        OptimizationError
            If no bracket is found within :attr:`max_bracket_iterations`
            growth steps or the function becomes non-finite along the way.
        """
        self._check_unlocked()
        if not self.is_fun_available:
            raise NotReadyError("A function is required to compute a bracket.")
        a = float(a)
        b = float(b)
        if a == b or not (math.isfinite(a) and math.isfinite(b)):
            raise InvalidBracketRangeError("Bracket search needs two distinct finite abscissas")
        with self._lock():
            self._result_available = False
            bracket = self._search_bracket(a, b)
        self._bracket = bracket
        return bracket

    def evaluate_bracket(self) -> Bracket:
        """Evaluate the function at the three abscissas of the current bracket.

        Raises
        ------
        InvalidBracketRangeError
            If the values show that the abscissas do not bracket a minimum.
        """
        self._check_unlocked()
        if not self.is_ready:
            raise NotReadyError("A function and a bracket are required.")
        with self._lock():
            self._result_available = False
            b = self._bracket
            bracket = b.with_values(self._evaluate(b.a), self._evaluate(b.b), self._evaluate(b.c))
        self._bracket = bracket
        return bracket

    def _validated_bracket(self) -> Bracket:
        """Return the bracket with values, evaluating it if needed.

        Must be called with the optimizer locked.
        """
        b = self._bracket
        if not b.has_evaluations:
            # raises when fb > min(fa, fc)
            b = b.with_values(self._evaluate(b.a), self._evaluate(b.b), self._evaluate(b.c))
            self._bracket = b
        return b

    def _search_bracket(self, ax: float, bx: float) -> Bracket:
        fa = self._evaluate(ax)
        fb = self._evaluate(bx)
        if fb > fa:
            # go downhill from a to b
            ax, bx = bx, ax
            fa, fb = fb, fa
        cx = bx + GOLD * (bx - ax)
        fc = self._evaluate(cx)
        steps = 0
        while fb > fc:
            steps += 1
            if steps > self._max_bracket_iterations:
                raise OptimizationError(
                    f"No bracket found after {self._max_bracket_iterations} growth steps"
                )
            # parabolic extrapolation from a, b, c
            r = (bx - ax) * (fb - fc)
            q = (bx - cx) * (fb - fa)
            u = bx - ((bx - cx) * q - (bx - ax) * r) / (
                2.0 * sign(max(abs(q - r), TINY), q - r)
            )
            ulim = bx + GLIMIT * (cx - bx)
            if (bx - u) * (u - cx) > 0.0:
                # parabolic u between b and c
                fu = self._evaluate(u)
                if fu < fc:
                    ax, bx = bx, u
                    fa, fb = fb, fu
                    break
                elif fu > fb:
                    cx, fc = u, fu
                    break
                u = cx + GOLD * (cx - bx)
                fu = self._evaluate(u)
            elif (cx - u) * (u - ulim) > 0.0:
                # parabolic u between c and its allowed limit
                fu = self._evaluate(u)
                if fu < fc:
                    bx, cx, u = cx, u, u + GOLD * (u - cx)
                    fb, fc, fu = fc, fu, self._evaluate(u)
            elif (u - ulim) * (ulim - cx) >= 0.0:
                u = ulim
                fu = self._evaluate(u)
            else:
                u = cx + GOLD * (cx - bx)
                fu = self._evaluate(u)
            ax, bx, cx = bx, cx, u
            fa, fb, fc = fb, fc, fu
            if not all(math.isfinite(v) for v in (ax, bx, cx, fa, fb, fc)):
                raise OptimizationError("Bracket search diverged to non-finite values")
        if not _all_comparable(fa, fb, fc):
            raise OptimizationError("Function is not comparable at the bracket points")
        logger.debug("bracket found: (%g, %g, %g) after %d steps", ax, bx, cx, steps)
        return Bracket(ax, bx, cx, fa, fb, fc)


def prepare_bracket(
    opt: BracketedSingleOptimizer, bracket: Optional[Bracket | Sequence[float]]
) -> None:
    """Give ``opt`` a bracket from a :class:`Bracket`, a triple or a search pair.

    ``None`` searches from ``(0, 1)``; a pair ``(a, b)`` searches from those
    two abscissas; a triple is used as-is.
    """
    if bracket is None:
        opt.compute_bracket()
    elif isinstance(bracket, Bracket) or len(bracket) == 3:
        opt.bracket = bracket
    elif len(bracket) == 2:
        opt.compute_bracket(bracket[0], bracket[1])
    else:
        raise ConfigurationError("bracket must be a Bracket, a pair or a triple")


def _all_comparable(*values: float) -> bool:
    return not any(math.isnan(v) for v in values)


__all__ = [
    "GOLD",
    "GLIMIT",
    "TINY",
    "Bracket",
    "SingleOptimizer",
    "BracketedSingleOptimizer",
    "prepare_bracket",
    "sign",
]
