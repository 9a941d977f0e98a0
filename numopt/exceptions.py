"""Error taxonomy shared by every optimizer.

Errors fall into four families so that callers can react differently:

* :class:`ConfigurationError` - invalid input supplied by the caller (fix the
  input). Also a :class:`ValueError`.
* :class:`StateError` - the optimizer was used at the wrong time: queried
  before a value exists (:class:`NotAvailableError`), run before it has all of
  its inputs (:class:`NotReadyError`) or reconfigured while running
  (:class:`LockedError`).
* :class:`OptimizationError` - the numerical method itself failed (iteration
  cap, non-descent direction, unbracketable function). Retry with another
  start point, tolerance or method.
* :class:`EvaluationError` - raised by user functions. Optimizers never catch
  exceptions raised by user functions; they propagate unchanged.
"""

from __future__ import annotations


class NumericalError(Exception):
    """Base class for all numopt errors."""


class ConfigurationError(NumericalError, ValueError):
    """Invalid configuration value (tolerance, dimensions, bracket, ...)."""


class InvalidBracketRangeError(ConfigurationError):
    """Bracket abscissas or values do not enclose a minimum."""


class StateError(NumericalError):
    """Base class for lifecycle violations."""


class NotReadyError(StateError):
    """Raised when minimizing before all required inputs are set."""


class NotAvailableError(StateError):
    """Raised when querying a value (result, bracket, listener) that does not exist yet."""


class LockedError(StateError):
    """Raised when an optimizer is reconfigured while a minimization runs."""


class EvaluationError(NumericalError):
    """Raised by user functions when a point cannot be evaluated."""


class OptimizationError(NumericalError):
    """Raised when a minimization fails to converge or breaks down numerically."""


class NonDescentDirectionError(OptimizationError):
    """Raised when a line search is asked to move along a non-descent direction."""


__all__ = [
    "NumericalError",
    "ConfigurationError",
    "InvalidBracketRangeError",
    "StateError",
    "NotReadyError",
    "NotAvailableError",
    "LockedError",
    "EvaluationError",
    "OptimizationError",
    "NonDescentDirectionError",
]
