"""Utility helpers for finite differences and array validation.

The finite-difference estimators let gradient-based optimizers run on
functions for which only values are available. Steps are relative to the
magnitude of each coordinate, falling back to an absolute step at zero.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from ..exceptions import ConfigurationError

Array = np.ndarray
Objective = Callable[[Array], float]
ScalarFunction = Callable[[float], float]

EPS = 1e-8


def _step(x: float, eps: float) -> float:
    h = eps * abs(x)
    if h == 0.0:
        h = eps
    return h


def as_vector(value, name: str = "point") -> Array:
    """Return ``value`` as a new 1-D float array, validating its contents."""
    try:
        vec = np.array(value, dtype=float, copy=True)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a sequence of real numbers") from exc
    if vec.ndim != 1 or vec.size == 0:
        raise ConfigurationError(f"{name} must be a non-empty 1-D array, got shape {vec.shape}")
    if not np.all(np.isfinite(vec)):
        raise ConfigurationError(f"{name} must contain only finite values")
    return vec


def approx_derivative(
    fun: ScalarFunction, x: float, eps: float = EPS, symmetric: bool = True
) -> float:
    """Estimate the derivative of a single-variable function.

    Parameters
    ----------
    fun:
        Function returning a scalar given a scalar.
    x:
        Point where the derivative is estimated.
    eps:
        Relative perturbation size.
    symmetric:
        Use a central difference (two evaluations away from ``x``) instead of a
        forward difference.
    """
    if eps <= 0:
        raise ConfigurationError("eps must be positive")
    x = float(x)
    h = _step(x, eps)
    if symmetric:
        xh1 = x + h
        xh2 = x - h
        # actual step after rounding
        hh = (xh1 - x) + (x - xh2)
        return (fun(xh1) - fun(xh2)) / hh
    xh = x + h
    h = xh - x
    return (fun(xh) - fun(x)) / h


def approx_grad(
    fun: Objective,
    x: Array,
    eps: float = EPS,
    symmetric: bool = True,
    return_evals: bool = False,
) -> Array | tuple[Array, int]:
    """Compute a finite-difference gradient approximation.

    Parameters
    ----------
    fun:
        Objective function returning a scalar given x.
    x:
        Point where the gradient is approximated.
    eps:
        Relative perturbation size.
    symmetric:
        Central differences when True, forward differences otherwise.
    return_evals:
        Also return the number of function evaluations used.
    """
    if eps <= 0:
        raise ConfigurationError("eps must be positive")
    x = np.asarray(x, dtype=float)
    grad = np.zeros_like(x, dtype=float)
    xh = x.copy()
    evals = 0
    fold = None
    if not symmetric:
        fold = fun(x)
        evals += 1
    for i in range(x.size):
        temp = x[i]
        h = _step(temp, eps)
        if symmetric:
            xh[i] = temp + h
            h1 = xh[i] - temp
            f_plus = fun(xh)
            xh[i] = temp - h
            h2 = temp - xh[i]
            f_minus = fun(xh)
            evals += 2
            grad[i] = (f_plus - f_minus) / (h1 + h2)
        else:
            xh[i] = temp + h
            h = xh[i] - temp
            f_plus = fun(xh)
            evals += 1
            grad[i] = (f_plus - fold) / h
        xh[i] = temp
    if return_evals:
        return grad, evals
    return grad


def gradient_estimator(fun: Objective, eps: float = EPS, symmetric: bool = True):
    """Return a gradient callable backed by :func:`approx_grad`."""
    if eps <= 0:
        raise ConfigurationError("eps must be positive")

    def grad(x: Array) -> Array:
        return approx_grad(fun, x, eps=eps, symmetric=symmetric)

    return grad


def is_pos_def(mat: Array, tol: float = 1e-12) -> bool:
    """Check if a matrix is positive definite via eigenvalues."""
    sym = 0.5 * (mat + mat.T)
    eigvals = np.linalg.eigvalsh(sym)
    return bool(np.all(eigvals > tol))


__all__ = [
    "EPS",
    "as_vector",
    "approx_derivative",
    "approx_grad",
    "gradient_estimator",
    "is_pos_def",
]
