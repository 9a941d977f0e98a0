"""Powell's direction-set method (derivative free).

Each iteration is a sweep of line minimizations along every direction of the
set. The net displacement of the sweep then replaces the direction of
largest decrease, unless doing so would make the set linearly dependent or
the function is not locally quadratic along it (Press et al., *Numerical
Recipes*, 10.5).
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..debug_mode import check_invariant, is_debug_enabled
from ..exceptions import ConfigurationError, NotAvailableError, OptimizationError
from ..logging import get_logger
from .core import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    Array,
    IterationCallback,
    Objective,
    OptimizeResult,
    Problem,
    StartPointMultiOptimizer,
    history_recorder,
)
from .line_search import LineMinimizer, LineSearchResult
from .utils import as_vector

logger = get_logger(__name__)

TINY = 1e-25


class PowellMultiOptimizer(StartPointMultiOptimizer):
    """Minimize a function of several variables without derivatives.

    Parameters
    ----------
    fun:
        Objective ``fun(x: ndarray) -> float``.
    start_point:
        Initial point.
    directions:
        Initial direction set as an ``(n, n)`` array, one direction per row.
        Defaults to the coordinate axes.
    tolerance:
        Fractional decrease of the function over one sweep below which the
        minimization stops.
    callback:
        Progress callback, called after every sweep.
    max_iterations:
        Maximum number of sweeps.

    The direction set is updated in place by :meth:`minimize` and can be read
    back through :attr:`directions` afterwards.
    """

    def __init__(
        self,
        fun: Optional[Objective] = None,
        start_point: Optional[Array] = None,
        directions: Optional[Array] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self._directions: Optional[Array] = None
        super().__init__(
            fun=fun,
            start_point=start_point,
            tolerance=tolerance,
            callback=callback,
            max_iterations=max_iterations,
        )
        if directions is not None:
            self.directions = directions

    @property
    def directions(self) -> Array:
        """ndarray: Current direction set, one direction per row."""
        if self._directions is not None:
            return self._directions.copy()
        if self._start_point is not None:
            return np.eye(self._start_point.size)
        raise NotAvailableError("Neither directions nor a start point have been set.")

    @directions.setter
    def directions(self, value: Array) -> None:
        self._check_unlocked()
        dirs = _as_direction_set(value)
        if self._start_point is not None and dirs.shape[0] != self._start_point.size:
            raise ConfigurationError(
                f"Directions {dirs.shape} do not match a start point of size "
                f"{self._start_point.size}"
            )
        self._directions = dirs
        self._invalidate_result()

    @property
    def is_directions_available(self) -> bool:
        return self._directions is not None

    def set_start_point_and_directions(self, start_point: Array, directions: Array) -> None:
        """Set both at once, so that their sizes may change together."""
        self._check_unlocked()
        point = as_vector(start_point, "start point")
        dirs = _as_direction_set(directions)
        if dirs.shape[0] != point.size:
            raise ConfigurationError(
                f"Directions {dirs.shape} do not match a start point of size {point.size}"
            )
        self._start_point = point
        self._directions = dirs
        self._invalidate_result()

    def _check_start_point(self, point: Array) -> None:
        if self._directions is not None and self._directions.shape[0] != point.size:
            raise ConfigurationError(
                f"Start point of size {point.size} does not match directions "
                f"{self._directions.shape}"
            )

    def minimize(self) -> OptimizeResult:
        """Run sweeps until the fractional decrease falls below the tolerance.

        Raises
        ------
        NotReadyError
            If the function or start point is missing.
        OptimizationError
            If :attr:`max_iterations` sweeps do not converge.
        """
        with self._running():
            self._nfev = 0
            p = self._start_point.copy()
            n = p.size
            xi = self.directions
            line = LineMinimizer(self._fun, tolerance=self._tolerance)
            fret = self._evaluate(p)
            if not math.isfinite(fret):
                raise OptimizationError(f"Function is not finite at the start point ({fret})")
            pt = p.copy()
            logger.debug("powell: starting from f=%g in %d dimensions", fret, n)

            for iteration in range(self._max_iterations):
                fp = fret
                ibig = 0
                # largest decrease along a single direction
                delta = 0.0
                for i in range(n):
                    fptt = fret
                    ls = self._line_minimize(line, p, xi[i], fret)
                    p, fret = ls.x, ls.fun
                    if fptt - fret > delta:
                        delta = fptt - fret
                        ibig = i

                self._start_point = p.copy()
                self._iterations = iteration + 1
                self._notify(iteration, self._max_iterations)

                if 2.0 * (fp - fret) <= self._tolerance * (abs(fp) + abs(fret)) + TINY:
                    self._directions = xi
                    self._set_result(p, fret)
                    logger.debug(
                        "powell converged to f=%g after %d sweeps", fret, self._iterations
                    )
                    return self._to_result("Fractional decrease below tolerance.")

                # extrapolated point and average direction moved
                ptt = 2.0 * p - pt
                xit = p - pt
                pt = p.copy()
                fptt = self._evaluate(ptt)
                if fptt < fp:
                    t = 2.0 * (fp - 2.0 * fret + fptt) * (fp - fret - delta) ** 2 - delta * (
                        fp - fptt
                    ) ** 2
                    if t < 0.0:
                        ls = self._line_minimize(line, p, xit, fret)
                        p, fret = ls.x, ls.fun
                        xi[ibig] = xi[n - 1]
                        xi[n - 1] = xit
                        self._start_point = p.copy()
                self._directions = xi.copy()
                if is_debug_enabled():
                    _check_direction_set(xi)

        raise OptimizationError(f"Powell did not converge in {self._max_iterations} sweeps")

    def _line_minimize(
        self, line: LineMinimizer, p: Array, direction: Array, fp: float
    ) -> LineSearchResult:
        ls = line.minimize(p, direction, fp)
        self._nfev += ls.nfev
        return ls


def _as_direction_set(value: Array) -> Array:
    try:
        dirs = np.array(value, dtype=float, copy=True)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("Directions must be a square array of real numbers") from exc
    if dirs.ndim != 2 or dirs.shape[0] != dirs.shape[1] or dirs.shape[0] == 0:
        raise ConfigurationError(f"Directions must be a square (n, n) array, got {dirs.shape}")
    if not np.all(np.isfinite(dirs)):
        raise ConfigurationError("Directions must contain only finite values")
    return dirs


def _check_direction_set(xi: Array) -> None:
    check_invariant(bool(np.all(np.isfinite(xi))), "Direction set became non-finite")
    check_invariant(
        np.linalg.matrix_rank(xi) == xi.shape[0], "Direction set became linearly dependent"
    )


def powell(
    problem: Problem,
    x0: Array,
    maxiter: int = DEFAULT_MAX_ITERATIONS,
    tol: float = DEFAULT_TOLERANCE,
    directions: Optional[Array] = None,
    history: bool = False,
) -> OptimizeResult:
    """Minimize ``problem.fun`` from ``x0`` with Powell's method.

    ``problem.grad`` is ignored. With ``history=True`` the point reached after
    every sweep is recorded in ``result.history``.
    """
    hist: list[Array] = []
    callback = history_recorder(hist) if history else None
    opt = PowellMultiOptimizer(
        problem.fun,
        start_point=x0,
        directions=directions,
        tolerance=tol,
        callback=callback,
        max_iterations=maxiter,
    )
    result = opt.minimize()
    result.history = hist
    return result


__all__ = ["PowellMultiOptimizer", "powell", "TINY"]
