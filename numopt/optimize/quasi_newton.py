"""Quasi-Newton (variable metric) minimization with the BFGS update."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..debug_mode import check_invariant, is_debug_enabled
from ..exceptions import ConfigurationError, NotAvailableError, OptimizationError
from ..logging import get_logger
from .conjugate_gradient import scaled_gradient_norm
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
from .line_search import ALF, backtracking_line_search
from .utils import gradient_estimator, is_pos_def

logger = get_logger(__name__)

# Machine precision scale for the curvature test
EPS = 1e-12
# Convergence criterion on x values
TOLX = 4.0 * EPS
# Scaled maximum step length allowed in line searches
STPMX = 100.0
# Smallest relative step of the line search
TOLX2 = 1e-12


class QuasiNewtonMultiOptimizer(GradientMultiOptimizer):
    """Minimize a smooth function using an approximate inverse Hessian.

    The search direction is ``-H g``. Steps come from
    :func:`~numopt.optimize.line_search.backtracking_line_search`, which only
    asks for sufficient decrease, with the step length bounded by
    ``max_step * max(|x0|, n)``. ``H`` starts at the identity and receives a
    BFGS rank-two update whenever the curvature ``dx . dg`` is sufficiently
    positive; otherwise the previous ``H`` is kept. If ``H`` stops producing
    a descent direction it is reset to the identity.

    Parameters
    ----------
    fun, grad:
        Objective and its gradient.
    start_point:
        Initial point.
    tolerance:
        Tolerance of the scaled gradient test and the fractional decrease test.
    callback:
        Progress callback, called after each step.
    max_iterations:
        Maximum number of steps.
    max_step:
        Scaled maximum step length of the line search.
    """

    def __init__(
        self,
        fun: Optional[Objective] = None,
        grad: Optional[Gradient] = None,
        start_point: Optional[Array] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_step: float = STPMX,
    ) -> None:
        super().__init__(
            fun=fun,
            grad=grad,
            start_point=start_point,
            tolerance=tolerance,
            callback=callback,
            max_iterations=max_iterations,
        )
        self._inverse_hessian: Optional[Array] = None
        self._max_step = _check_max_step(max_step)

    @property
    def max_step(self) -> float:
        return self._max_step

    @max_step.setter
    def max_step(self, value: float) -> None:
        self._check_unlocked()
        self._max_step = _check_max_step(value)
        self._invalidate_result()

    @property
    def inverse_hessian(self) -> Array:
        """ndarray: Inverse-Hessian approximation at the end of the last run."""
        if self._inverse_hessian is None:
            raise NotAvailableError("No inverse Hessian has been computed yet.")
        return self._inverse_hessian.copy()

    def minimize(self) -> OptimizeResult:
        """Take quasi-Newton steps from :attr:`start_point` until convergence.

        Raises
        ------
        NotReadyError
            If the function, gradient or start point is missing.
        NonDescentDirectionError
            If no descent direction exists even after resetting the inverse
            Hessian (e.g. a non-finite gradient).
        OptimizationError
            If :attr:`max_iterations` is exceeded.
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
            hessin = np.eye(n)
            self._inverse_hessian = hessin.copy()
            if scaled_gradient_norm(g, p, fp) < self._tolerance:
                return self._finish(p, fp, g, "Gradient below tolerance.")
            xi = -g
            stpmax = self._max_step * max(float(np.linalg.norm(p)), float(n))

            for iteration in range(self._max_iterations):
                pnew, fret, check, nfev = backtracking_line_search(
                    self._fun, p, fp, g, xi, stpmax, alf=ALF, tolx=TOLX2
                )
                self._nfev += nfev
                xi = pnew - p
                p = pnew
                f_old, fp = fp, fret
                self._start_point = p.copy()
                self._iterations = iteration + 1
                self._notify(iteration, self._max_iterations)

                test = float(np.max(np.abs(xi) / np.maximum(np.abs(p), 1.0)))
                if check or test < TOLX:
                    return self._finish(p, fp, g, "Step length below tolerance.")
                dg = g
                g = self._gradient(p)
                if scaled_gradient_norm(g, p, fp) < self._tolerance:
                    return self._finish(p, fp, g, "Gradient below tolerance.")
                if fractional_change_converged(f_old, fp, self._tolerance, EPS):
                    return self._finish(p, fp, g, "Fractional decrease below tolerance.")

                hessin = _bfgs_update(hessin, xi, g - dg)
                xi = -hessin @ g
                if not np.all(np.isfinite(hessin)) or np.dot(xi, g) >= 0.0:
                    logger.warning(
                        "quasi-Newton: inverse Hessian lost descent property, resetting"
                    )
                    hessin = np.eye(n)
                    xi = -g
                if is_debug_enabled():
                    _check_inverse_hessian(hessin)
                self._inverse_hessian = hessin.copy()

        raise OptimizationError(
            f"Quasi-Newton did not converge in {self._max_iterations} iterations"
        )

    def _finish(self, p: Array, fp: float, g: Array, message: str) -> OptimizeResult:
        self._set_result(p, fp)
        logger.debug("quasi-Newton converged to f=%g after %d iterations", fp, self._iterations)
        return self._to_result(message, grad_norm=float(np.linalg.norm(g)))


def _bfgs_update(hessin: Array, xi: Array, dg: Array) -> Array:
    """BFGS update of the inverse Hessian for the secant pair ``(xi, dg)``.

    The update is skipped when ``dx . dg`` is not sufficiently positive.
    """
    hdg = hessin @ dg
    fac = float(np.dot(dg, xi))
    fae = float(np.dot(dg, hdg))
    sumdg = float(np.dot(dg, dg))
    sumxi = float(np.dot(xi, xi))
    if fac <= math.sqrt(EPS * sumdg * sumxi):
        return hessin
    fac = 1.0 / fac
    fad = 1.0 / fae
    u = fac * xi - fad * hdg
    return (
        hessin
        + fac * np.outer(xi, xi)
        - fad * np.outer(hdg, hdg)
        + fae * np.outer(u, u)
    )


def _check_inverse_hessian(hessin: Array) -> None:
    check_invariant(
        np.allclose(hessin, hessin.T, rtol=1e-8, atol=1e-10),
        "Inverse Hessian approximation is not symmetric",
    )
    check_invariant(
        is_pos_def(hessin, tol=0.0), "Inverse Hessian approximation is not positive definite"
    )


def _check_max_step(value: float) -> float:
    step = float(value)
    if not math.isfinite(step) or step <= 0.0:
        raise ConfigurationError(f"max_step must be positive and finite, got {value!r}")
    return step


def bfgs(
    problem: Problem,
    x0: Array,
    maxiter: int = DEFAULT_MAX_ITERATIONS,
    tol: float = DEFAULT_TOLERANCE,
    history: bool = False,
) -> OptimizeResult:
    """Minimize ``problem.fun`` from ``x0`` with BFGS.

    Uses a central finite-difference gradient when ``problem.grad`` is None.
    """
    grad = problem.grad if problem.grad is not None else gradient_estimator(problem.fun)
    hist: list[Array] = []
    opt = QuasiNewtonMultiOptimizer(
        problem.fun,
        grad,
        start_point=x0,
        tolerance=tol,
        callback=history_recorder(hist) if history else None,
        max_iterations=maxiter,
    )
    result = opt.minimize()
    result.history = hist
    return result


__all__ = ["QuasiNewtonMultiOptimizer", "bfgs", "EPS", "TOLX", "STPMX"]
