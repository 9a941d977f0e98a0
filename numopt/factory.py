"""Factory for creating multi-dimensional optimizers from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .exceptions import ConfigurationError
from .optimize.conjugate_gradient import ConjugateGradientMultiOptimizer
from .optimize.core import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    IterationCallback,
    MultiOptimizer,
    Problem,
)
from .optimize.powell import PowellMultiOptimizer
from .optimize.quasi_newton import STPMX, QuasiNewtonMultiOptimizer
from .optimize.simplex import NMAX, SimplexMultiOptimizer, build_simplex
from .optimize.utils import EPS, gradient_estimator

SUPPORTED_METHODS = ("powell", "conjugate_gradient", "quasi_newton", "simplex")

_ALIASES = {
    "cg": "conjugate_gradient",
    "bfgs": "quasi_newton",
    "nelder_mead": "simplex",
    "nelder-mead": "simplex",
}


@dataclass(frozen=True)
class OptimizerConfig:
    """
    Configuration for creating a multi-dimensional optimizer.

    Fields that a method does not use are ignored by it.

    Args:
        method: Optimizer name. Supported values: "powell",
            "conjugate_gradient" (alias "cg"), "quasi_newton" (alias "bfgs")
            and "simplex" (aliases "nelder_mead", "nelder-mead").
        tolerance: Relative convergence tolerance. Must be positive.
        max_iterations: Iteration cap (sweeps for Powell). Defaults to 200.
        max_evaluations: Function evaluation cap for the simplex method.
            Defaults to 5000.
        use_polak_ribiere: Polak-Ribiere (True) or Fletcher-Reeves (False)
            update for conjugate gradient. Defaults to True.
        use_derivative_line_search: Derivative-aware line minimization for
            conjugate gradient. Defaults to False.
        max_step: Scaled maximum step length for quasi-Newton. Defaults to 100.
        simplex_delta: Step along each axis used to build the initial simplex.
            Defaults to 1.0.
        finite_difference_eps: Relative step of the finite-difference
            gradient used when the problem has no gradient.
        symmetric_gradient: Central (True) or forward (False) differences.
    """

    method: str
    tolerance: float = DEFAULT_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_evaluations: int = NMAX
    use_polak_ribiere: bool = True
    use_derivative_line_search: bool = False
    max_step: float = STPMX
    simplex_delta: float = 1.0
    finite_difference_eps: float = EPS
    symmetric_gradient: bool = True


def _method_name(name: str) -> str:
    key = name.lower().strip()
    key = _ALIASES.get(key, key)
    if key not in SUPPORTED_METHODS:
        raise ConfigurationError(
            f"Unsupported optimizer method '{name}'. "
            f"Supported methods: {list(SUPPORTED_METHODS)}"
        )
    return key


def create_optimizer(
    config: OptimizerConfig,
    problem: Problem,
    x0: np.ndarray,
    callback: Optional[IterationCallback] = None,
) -> MultiOptimizer:
    """
    Create a ready-to-run optimizer from a configuration.

    Gradient-based methods fall back to a finite-difference gradient when
    ``problem.grad`` is None.

    Args:
        config: Optimizer configuration.
        problem: Function (and optional gradient) to minimize.
        x0: Start point; for the simplex method, the first vertex.
        callback: Optional progress callback.

    Returns:
        An optimizer whose ``minimize()`` can be called directly.

    Raises:
        ConfigurationError: If the method is not supported or a parameter
            is invalid.
    """
    method = _method_name(config.method)
    if problem.dim is not None and np.size(x0) != problem.dim:
        raise ConfigurationError(
            f"Start point has {np.size(x0)} values but the problem has dimension {problem.dim}"
        )

    if method == "simplex":
        return SimplexMultiOptimizer(
            problem.fun,
            build_simplex(x0, config.simplex_delta),
            tolerance=config.tolerance,
            callback=callback,
            max_evaluations=config.max_evaluations,
        )
    if method == "powell":
        return PowellMultiOptimizer(
            problem.fun,
            start_point=x0,
            tolerance=config.tolerance,
            callback=callback,
            max_iterations=config.max_iterations,
        )

    grad = problem.grad
    if grad is None:
        grad = gradient_estimator(
            problem.fun,
            eps=config.finite_difference_eps,
            symmetric=config.symmetric_gradient,
        )
    if method == "conjugate_gradient":
        return ConjugateGradientMultiOptimizer(
            problem.fun,
            grad,
            start_point=x0,
            tolerance=config.tolerance,
            callback=callback,
            max_iterations=config.max_iterations,
            use_polak_ribiere=config.use_polak_ribiere,
            use_derivative_line_search=config.use_derivative_line_search,
        )
    return QuasiNewtonMultiOptimizer(
        problem.fun,
        grad,
        start_point=x0,
        tolerance=config.tolerance,
        callback=callback,
        max_iterations=config.max_iterations,
        max_step=config.max_step,
    )


__all__ = ["OptimizerConfig", "create_optimizer", "SUPPORTED_METHODS"]
