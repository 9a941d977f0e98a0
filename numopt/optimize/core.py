"""Core interfaces shared across the optimizers.

Every optimizer is a small state machine. It is *not ready* until all of its
inputs (function, gradient, bracket, start point, simplex) are present, *ready*
afterwards, *locked* while :meth:`Optimizer.minimize` runs and holds an
available result after a successful run. Structural setters raise
:class:`~numopt.exceptions.LockedError` while locked and discard any previous
result.
"""

from __future__ import annotations

import abc
import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, List, Optional

import numpy as np

from ..exceptions import (
    ConfigurationError,
    LockedError,
    NotAvailableError,
    NotReadyError,
)
from .utils import as_vector

Array = np.ndarray
Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]
ScalarFunction = Callable[[float], float]
IterationCallback = Callable[["Optimizer", int, Optional[int]], None]

DEFAULT_TOLERANCE = 3e-8
DEFAULT_MAX_ITERATIONS = 200


class OptimizerState(Enum):
    """Lifecycle state of an optimizer."""

    NOT_READY = "not_ready"
    READY = "ready"
    LOCKED = "locked"
    RESULT_AVAILABLE = "result_available"


@dataclass(frozen=True)
class Problem:
    """Container describing a multi-dimensional minimization problem."""

    fun: Objective
    grad: Optional[Gradient] = None
    dim: Optional[int] = None


@dataclass
class OptimizeResult:
    """Standard result object returned by the functional API."""

    x: Array | float
    fun: float
    nit: int
    success: bool
    message: str
    nfev: int
    njev: int = 0
    grad_norm: Optional[float] = None
    history: List[Array] = field(default_factory=list)


def check_tolerance(value: float) -> float:
    """Validate a relative tolerance, returning it as a float."""
    try:
        tol = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Tolerance must be a real number, got {value!r}") from exc
    if not math.isfinite(tol) or tol <= 0.0:
        raise ConfigurationError(f"Tolerance must be positive and finite, got {value!r}")
    return tol


def check_max_iterations(value: int) -> int:
    """Validate an iteration (or evaluation) cap."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError("The maximum number of iterations must be an integer.")
    if value < 1:
        raise ConfigurationError("The maximum number of iterations must be positive.")
    return int(value)


def fractional_change_converged(
    f_old: float, f_new: float, tol: float, eps: float = 0.0
) -> bool:
    """Return True if ``f_new`` differs from ``f_old`` by less than ``tol`` relatively."""
    return 2.0 * abs(f_new - f_old) <= tol * (abs(f_old) + abs(f_new) + eps)


class Optimizer(abc.ABC):
    """Abstract base class holding the lock / ready / result lifecycle.

    Parameters
    ----------
    tolerance:
        Relative convergence tolerance, must be positive.
    callback:
        Optional progress callback invoked as
        ``callback(optimizer, iteration, max_iterations)`` after each
        iteration. ``max_iterations`` is ``None`` for methods without a fixed
        cap. The optimizer is locked during the call, so the callback can only
        inspect it.
    """

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
    ) -> None:
        self._locked = False
        self._result_available = False
        self._iterations = 0
        self._tolerance = check_tolerance(tolerance)
        self._callback = None
        self.callback = callback

    @property
    def is_locked(self) -> bool:
        """bool: True while :meth:`minimize` is running."""
        return self._locked

    @property
    @abc.abstractmethod
    def is_ready(self) -> bool:
        """bool: True when all inputs needed by :meth:`minimize` are set."""

    @property
    def is_result_available(self) -> bool:
        """bool: True after a successful minimization."""
        return self._result_available

    @property
    def state(self) -> OptimizerState:
        """:class:`OptimizerState`: Current lifecycle state."""
        if self._locked:
            return OptimizerState.LOCKED
        if self._result_available:
            return OptimizerState.RESULT_AVAILABLE
        if self.is_ready:
            return OptimizerState.READY
        return OptimizerState.NOT_READY

    @property
    def tolerance(self) -> float:
        """float: Relative convergence tolerance. Must be positive."""
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        self._check_unlocked()
        self._tolerance = check_tolerance(value)
        self._invalidate_result()

    @property
    def callback(self) -> Optional[IterationCallback]:
        """callable or None: Progress callback."""
        return self._callback

    @callback.setter
    def callback(self, value: Optional[IterationCallback]) -> None:
        self._check_unlocked()
        if value is not None and not callable(value):
            raise ConfigurationError("The progress callback must be callable.")
        self._callback = value

    @property
    def iterations(self) -> int:
        """int: Iterations performed by the last call to :meth:`minimize`."""
        return self._iterations

    @abc.abstractmethod
    def minimize(self):
        """Run the minimization, storing (and returning) the result."""

    def _check_unlocked(self) -> None:
        if self._locked:
            raise LockedError(f"{type(self).__name__} is locked while minimizing.")

    def _invalidate_result(self) -> None:
        self._result_available = False

    def _require_result(self) -> None:
        if not self._result_available:
            raise NotAvailableError("No result is available; call minimize() first.")

    @contextmanager
    def _lock(self) -> Iterator[None]:
        self._check_unlocked()
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    @contextmanager
    def _running(self) -> Iterator[None]:
        """Lock the optimizer for the duration of a minimization."""
        self._check_unlocked()
        if not self.is_ready:
            raise NotReadyError(f"{type(self).__name__} is not ready to minimize.")
        self._result_available = False
        self._iterations = 0
        with self._lock():
            yield

    def _notify(self, iteration: int, max_iterations: Optional[int]) -> None:
        if self._callback is not None:
            self._callback(self, iteration, max_iterations)


class MultiOptimizer(Optimizer):
    """Base class for optimizers of functions of several variables."""

    def __init__(
        self,
        fun: Optional[Objective] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
    ) -> None:
        super().__init__(tolerance=tolerance, callback=callback)
        self._fun = None
        self._xmin: Optional[Array] = None
        self._fmin = 0.0
        self._nfev = 0
        self._njev = 0
        self.fun = fun

    @property
    def fun(self) -> Objective:
        """callable: Function being minimized, ``fun(x: ndarray) -> float``."""
        if self._fun is None:
            raise NotAvailableError("No function has been set.")
        return self._fun

    @fun.setter
    def fun(self, value: Optional[Objective]) -> None:
        self._check_unlocked()
        if value is not None and not callable(value):
            raise ConfigurationError("The function to minimize must be callable.")
        self._fun = value
        self._invalidate_result()

    @property
    def is_fun_available(self) -> bool:
        """bool: True if the function to minimize has been set."""
        return self._fun is not None

    @property
    def result(self) -> Array:
        """ndarray: Point where the minimum was found."""
        self._require_result()
        return self._xmin.copy()

    @property
    def evaluation_at_result(self) -> float:
        """float: Function value at :attr:`result`."""
        self._require_result()
        return self._fmin

    def _evaluate(self, x: Array) -> float:
        self._nfev += 1
        return float(self._fun(x))

    def _set_result(self, x: Array, fmin: float) -> None:
        self._xmin = np.array(x, dtype=float, copy=True)
        self._fmin = float(fmin)
        self._result_available = True

    def _to_result(self, message: str, grad_norm: Optional[float] = None) -> OptimizeResult:
        return OptimizeResult(
            x=self._xmin.copy(),
            fun=self._fmin,
            nit=self._iterations,
            success=True,
            message=message,
            nfev=self._nfev,
            njev=self._njev,
            grad_norm=grad_norm,
        )


class StartPointMultiOptimizer(MultiOptimizer):
    """Multi-dimensional optimizer that iterates from a start point.

    The start point follows the current iterate: after :meth:`minimize`
    returns or fails, it holds the last point reached, so calling
    :meth:`minimize` again continues from there.
    """

    def __init__(
        self,
        fun: Optional[Objective] = None,
        start_point: Optional[Array] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self._start_point: Optional[Array] = None
        super().__init__(fun=fun, tolerance=tolerance, callback=callback)
        self._max_iterations = check_max_iterations(max_iterations)
        if start_point is not None:
            self.start_point = start_point

    @property
    def start_point(self) -> Array:
        """ndarray: Point where the next minimization starts."""
        if self._start_point is None:
            raise NotAvailableError("No start point has been set.")
        return self._start_point.copy()

    @start_point.setter
    def start_point(self, value: Array) -> None:
        self._check_unlocked()
        point = as_vector(value, "start point")
        self._check_start_point(point)
        self._start_point = point
        self._invalidate_result()

    @property
    def is_start_point_available(self) -> bool:
        return self._start_point is not None

    @property
    def dim(self) -> Optional[int]:
        """int or None: Number of variables, known once a start point is set."""
        return None if self._start_point is None else self._start_point.size

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        self._check_unlocked()
        self._max_iterations = check_max_iterations(value)

    @property
    def is_ready(self) -> bool:
        return self.is_fun_available and self.is_start_point_available

    def _check_start_point(self, point: Array) -> None:
        """Hook for subclasses holding state whose shape depends on the point."""


class GradientMultiOptimizer(StartPointMultiOptimizer):
    """Start-point optimizer that also requires the gradient of the function."""

    def __init__(
        self,
        fun: Optional[Objective] = None,
        grad: Optional[Gradient] = None,
        start_point: Optional[Array] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        callback: Optional[IterationCallback] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self._grad = None
        super().__init__(
            fun=fun,
            start_point=start_point,
            tolerance=tolerance,
            callback=callback,
            max_iterations=max_iterations,
        )
        self.grad = grad

    @property
    def grad(self) -> Gradient:
        """callable: Gradient of :attr:`fun`, ``grad(x: ndarray) -> ndarray``."""
        if self._grad is None:
            raise NotAvailableError("No gradient has been set.")
        return self._grad

    @grad.setter
    def grad(self, value: Optional[Gradient]) -> None:
        self._check_unlocked()
        if value is not None and not callable(value):
            raise ConfigurationError("The gradient must be callable.")
        self._grad = value
        self._invalidate_result()

    @property
    def is_gradient_available(self) -> bool:
        return self._grad is not None

    @property
    def is_ready(self) -> bool:
        return super().is_ready and self.is_gradient_available

    def _gradient(self, x: Array) -> Array:
        self._njev += 1
        g = np.asarray(self._grad(x), dtype=float).reshape(-1)
        if g.size != x.size:
            raise ConfigurationError(
                f"Gradient returned {g.size} components, expected {x.size}"
            )
        return g


def history_recorder(hist: List[Array]) -> IterationCallback:
    """Return a progress callback appending each iterate to ``hist``."""

    def record(
        opt: StartPointMultiOptimizer, iteration: int, max_iterations: Optional[int]
    ) -> None:
        hist.append(opt.start_point)

    return record


__all__ = [
    "Array",
    "Objective",
    "Gradient",
    "ScalarFunction",
    "IterationCallback",
    "DEFAULT_TOLERANCE",
    "DEFAULT_MAX_ITERATIONS",
    "OptimizerState",
    "Problem",
    "OptimizeResult",
    "Optimizer",
    "MultiOptimizer",
    "StartPointMultiOptimizer",
    "GradientMultiOptimizer",
    "check_tolerance",
    "check_max_iterations",
    "fractional_change_converged",
    "history_recorder",
]
