"""numopt - local minimization of real functions of one or several variables."""

__version__ = "0.1.0"

# Errors
from .exceptions import (
    ConfigurationError,
    EvaluationError,
    InvalidBracketRangeError,
    LockedError,
    NonDescentDirectionError,
    NotAvailableError,
    NotReadyError,
    NumericalError,
    OptimizationError,
    StateError,
)

# Configuration
from .factory import OptimizerConfig, create_optimizer

# Optimizers
from .optimize import (
    Bracket,
    BrentSingleOptimizer,
    ConjugateGradientMultiOptimizer,
    DerivativeBrentSingleOptimizer,
    GoldenSingleOptimizer,
    LineMinimizer,
    OptimizeResult,
    OptimizerState,
    PowellMultiOptimizer,
    Problem,
    QuasiNewtonMultiOptimizer,
    SimplexMultiOptimizer,
    bfgs,
    brent,
    conjugate_gradient,
    dbrent,
    golden,
    nelder_mead,
    powell,
)

__all__ = [
    "__version__",
    "Bracket",
    "BrentSingleOptimizer",
    "ConfigurationError",
    "ConjugateGradientMultiOptimizer",
    "DerivativeBrentSingleOptimizer",
    "EvaluationError",
    "GoldenSingleOptimizer",
    "InvalidBracketRangeError",
    "LineMinimizer",
    "LockedError",
    "NonDescentDirectionError",
    "NotAvailableError",
    "NotReadyError",
    "NumericalError",
    "OptimizationError",
    "OptimizeResult",
    "OptimizerConfig",
    "OptimizerState",
    "PowellMultiOptimizer",
    "Problem",
    "QuasiNewtonMultiOptimizer",
    "SimplexMultiOptimizer",
    "StateError",
    "bfgs",
    "brent",
    "conjugate_gradient",
    "create_optimizer",
    "dbrent",
    "golden",
    "nelder_mead",
    "powell",
]
