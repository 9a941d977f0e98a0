"""Local minimization of functions of one or several variables.

Example
-------
>>> import numpy as np
>>> from numopt.optimize import Problem, bfgs
>>> def rosen(x):
...     return (1 - x[0])**2 + 100 * (x[1] - x[0]**2)**2
>>> def rosen_grad(x):
...     return np.array([
...         -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
...         200 * (x[1] - x[0] ** 2),
...     ])
>>> problem = Problem(fun=rosen, grad=rosen_grad, dim=2)
>>> res = bfgs(problem, np.array([-1.2, 1.0]))
>>> round(res.fun, 6)
0.0
"""

from .bracket import Bracket, BracketedSingleOptimizer, SingleOptimizer
from .brent import BrentSingleOptimizer, DerivativeBrentSingleOptimizer, brent, dbrent
from .conjugate_gradient import ConjugateGradientMultiOptimizer, conjugate_gradient
from .core import (
    DEFAULT_TOLERANCE,
    GradientMultiOptimizer,
    MultiOptimizer,
    OptimizeResult,
    Optimizer,
    OptimizerState,
    Problem,
    StartPointMultiOptimizer,
)
from .evaluators import CountingFunction, DirectionalDerivativeEvaluator, DirectionalEvaluator
from .golden import GoldenSingleOptimizer, golden
from .line_search import LineMinimizer, LineSearchResult, backtracking_line_search
from .powell import PowellMultiOptimizer, powell
from .quasi_newton import QuasiNewtonMultiOptimizer, bfgs
from .simplex import SimplexMultiOptimizer, build_simplex, nelder_mead
from .utils import approx_derivative, approx_grad, gradient_estimator, is_pos_def

__all__ = [
    "DEFAULT_TOLERANCE",
    "Bracket",
    "BracketedSingleOptimizer",
    "BrentSingleOptimizer",
    "ConjugateGradientMultiOptimizer",
    "CountingFunction",
    "DerivativeBrentSingleOptimizer",
    "DirectionalDerivativeEvaluator",
    "DirectionalEvaluator",
    "GoldenSingleOptimizer",
    "GradientMultiOptimizer",
    "LineMinimizer",
    "LineSearchResult",
    "MultiOptimizer",
    "OptimizeResult",
    "Optimizer",
    "OptimizerState",
    "PowellMultiOptimizer",
    "Problem",
    "QuasiNewtonMultiOptimizer",
    "SimplexMultiOptimizer",
    "SingleOptimizer",
    "StartPointMultiOptimizer",
    "approx_derivative",
    "approx_grad",
    "backtracking_line_search",
    "bfgs",
    "brent",
    "build_simplex",
    "conjugate_gradient",
    "dbrent",
    "golden",
    "gradient_estimator",
    "is_pos_def",
    "nelder_mead",
    "powell",
]
