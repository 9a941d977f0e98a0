"""Downhill simplex method of Nelder and Mead.

Only function values are needed. A simplex of ``n + 1`` vertices walks
downhill by reflecting its worst vertex through the centroid of the others,
expanding or contracting along that ray, or shrinking towards its best
vertex when nothing else helps (Press et al., *Numerical Recipes*, 10.4).
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..debug_mode import check_invariant, is_debug_enabled
from ..exceptions import ConfigurationError, NotAvailableError, OptimizationError
from ..logging import get_logger
from .core import (
    DEFAULT_TOLERANCE,
    Array,
    IterationCallback,
    MultiOptimizer,
    Objective,
    OptimizeResult,
    Problem,
    check_max_iterations,
)
from .utils import as_vector

logger = get_logger(__name__)

# Maximum number of function evaluations
NMAX = 5000
# Rescues the spread test for values at exactly zero
TINY = 1e-10

REFLECT = -1.0
EXPAND = 2.0
CONTRACT = 0.5


def build_simplex(start_point: Array, delta: float | Array = 1.0) -> Array:
    """Return the ``(n + 1, n)`` simplex spanned by ``start_point`` and ``delta``.

    Row 0 is the start point; row ``i`` moves coordinate ``i - 1`` by
    ``delta`` (a scalar, or one value per coordinate).
    """
    point = as_vector(start_point, "start point")
    n = point.size
    if np.ndim(delta) == 0:
        steps = np.full(n, float(delta))
    else:
        steps = np.asarray(delta, dtype=float).reshape(-1)
    if steps.size != n:
        raise ConfigurationError(f"delta has {steps.size} values, expected {n}")
    if np.any(steps == 0.0) or not np.all(np.isfinite(steps)):
        raise ConfigurationError("delta must be finite and non-zero on every axis")
    simplex = np.tile(point, (n + 1, 1))
    simplex[1:] += np.diag(steps)
    return simplex


class SimplexMultiOptimizer(MultiOptimizer):
    """Nelder-Mead minimizer.

    Parameters
    ----------
    fun:
        Objective ``fun(x: ndarray) -> float``.
    simplex:
        Initial simplex, an ``(n + 1, n)`` array of vertices. Alternatively
        use :meth:`set_simplex` with a start point and per-axis deltas.
    tolerance:
        Fractional spread of the vertex values below which the minimization
        stops.
    callback:
        Progress callback, called after each move with ``max_iterations``
        set to None (the cap is on function evaluations).
    max_evaluations:
        Maximum number of function evaluations.
    """

    def __init__(
        self,
        fun: Optional[Objective] = None,
        simplex: Optional[Array] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_evaluations: int = NMAX,
    ) -> None:
        super().__init__(fun=fun, tolerance=tolerance, callback=callback)
        self._simplex: Optional[Array] = None
        self._values: Optional[Array] = None
        self._max_evaluations = check_max_iterations(max_evaluations)
        if simplex is not None:
            self.simplex = simplex

    @property
    def simplex(self) -> Array:
        """ndarray: Current vertices, one per row; best first after a run."""
        if self._simplex is None:
            raise NotAvailableError("No simplex has been set.")
        return self._simplex.copy()

    @simplex.setter
    def simplex(self, value: Array) -> None:
        self._check_unlocked()
        try:
            simplex = np.array(value, dtype=float, copy=True)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Simplex must be an array of real numbers") from exc
        if simplex.ndim != 2 or simplex.shape[1] == 0 or simplex.shape[0] != simplex.shape[1] + 1:
            raise ConfigurationError(f"Simplex must have shape (n + 1, n), got {simplex.shape}")
        if not np.all(np.isfinite(simplex)):
            raise ConfigurationError("Simplex must contain only finite values")
        self._simplex = simplex
        self._values = None
        self._invalidate_result()

    def set_simplex(self, start_point: Array, delta: float | Array = 1.0) -> None:
        """Build the simplex from a start point and per-axis deltas."""
        self.simplex = build_simplex(start_point, delta)

    @property
    def is_simplex_available(self) -> bool:
        return self._simplex is not None

    @property
    def values(self) -> Array:
        """ndarray: Function values at the vertices of :attr:`simplex`."""
        if self._values is None:
            raise NotAvailableError("Simplex values are only known after minimize().")
        return self._values.copy()

    @property
    def max_evaluations(self) -> int:
        return self._max_evaluations

    @max_evaluations.setter
    def max_evaluations(self, value: int) -> None:
        self._check_unlocked()
        self._max_evaluations = check_max_iterations(value)

    @property
    def is_ready(self) -> bool:
        return self.is_fun_available and self.is_simplex_available

    def minimize(self) -> OptimizeResult:
        """Move the simplex downhill until its values agree within tolerance.

        Raises
        ------
        NotReadyError
            If the function or the simplex is missing.
        OptimizationError
            If more than :attr:`max_evaluations` evaluations are needed.
        """
        with self._running():
            self._nfev = 0
            pts = self._simplex.copy()
            npts = pts.shape[0]
            y = np.array([self._evaluate(v) for v in pts])
            self._simplex = pts
            self._values = y
            psum = pts.sum(axis=0)
            iteration = 0
            while True:
                order = np.argsort(y, kind="stable")
                ilo = int(order[0])
                ihi = int(order[-1])
                inhi = int(order[-2])
                rtol = 2.0 * abs(y[ihi] - y[ilo]) / (abs(y[ihi]) + abs(y[ilo]) + TINY)
                if rtol < self._tolerance:
                    # best vertex first
                    pts[[0, ilo]] = pts[[ilo, 0]]
                    y[[0, ilo]] = y[[ilo, 0]]
                    self._set_result(pts[0], y[0])
                    logger.debug(
                        "simplex converged to f=%g after %d evaluations", y[0], self._nfev
                    )
                    return self._to_result("Simplex spread below tolerance.")
                if self._nfev >= self._max_evaluations:
                    raise OptimizationError(
                        f"Simplex did not converge in {self._max_evaluations} evaluations"
                    )

                ytry = self._amotry(pts, y, psum, ihi, REFLECT)
                if ytry <= y[ilo]:
                    self._amotry(pts, y, psum, ihi, EXPAND)
                elif ytry >= y[inhi]:
                    ysave = y[ihi]
                    ytry = self._amotry(pts, y, psum, ihi, CONTRACT)
                    if ytry >= ysave:
                        # vertices and values change together once all evaluations succeed
                        shrunk = 0.5 * (pts + pts[ilo])
                        shrunk[ilo] = pts[ilo]
                        y_shrunk = y.copy()
                        for i in range(npts):
                            if i != ilo:
                                y_shrunk[i] = self._evaluate(shrunk[i])
                        pts[:] = shrunk
                        y[:] = y_shrunk
                        psum = pts.sum(axis=0)
                if is_debug_enabled():
                    check_invariant(
                        bool(np.all(np.isfinite(pts))), "Simplex vertices became non-finite"
                    )
                self._iterations = iteration + 1
                self._notify(iteration, None)
                iteration += 1

    def _amotry(self, pts: Array, y: Array, psum: Array, ihi: int, fac: float) -> float:
        """Move the worst vertex by ``fac`` through the opposite face.

        The vertex, its value and ``psum`` are replaced in place if the trial
        point improves on it.
        """
        n = pts.shape[1]
        fac1 = (1.0 - fac) / n
        fac2 = fac1 - fac
        ptry = psum * fac1 - pts[ihi] * fac2
        ytry = self._evaluate(ptry)
        if ytry < y[ihi]:
            y[ihi] = ytry
            psum += ptry - pts[ihi]
            pts[ihi] = ptry
        return ytry


def nelder_mead(
    problem: Problem,
    x0: Array,
    delta: float | Array = 1.0,
    maxfev: int = NMAX,
    tol: float = DEFAULT_TOLERANCE,
    history: bool = False,
) -> OptimizeResult:
    """Minimize ``problem.fun`` with a simplex built around ``x0``.

    With ``history=True`` the best vertex after each move is recorded in
    ``result.history``.
    """
    hist: list[Array] = []
    callback = None
    if history:

        def callback(opt: SimplexMultiOptimizer, iteration: int, cap: Optional[int]) -> None:
            hist.append(opt.simplex[int(np.argmin(opt.values))])

    opt = SimplexMultiOptimizer(
        problem.fun,
        build_simplex(x0, delta),
        tolerance=tol,
        callback=callback,
        max_evaluations=maxfev,
    )
    result = opt.minimize()
    result.history = hist
    return result


__all__ = [
    "SimplexMultiOptimizer",
    "nelder_mead",
    "build_simplex",
    "NMAX",
    "TINY",
]
