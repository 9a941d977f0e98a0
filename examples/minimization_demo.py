"""
Example: Local minimization with numopt

This example walks through the one-dimensional minimizers, the
direction-set, conjugate gradient and quasi-Newton methods, the downhill
simplex and the configuration-driven factory, on small problems with known
minima.
"""

import numpy as np

from numopt import (
    BrentSingleOptimizer,
    OptimizationError,
    OptimizerConfig,
    PowellMultiOptimizer,
    Problem,
    bfgs,
    conjugate_gradient,
    create_optimizer,
    golden,
    nelder_mead,
)


def bowl(x: np.ndarray) -> float:
    return float(1.2 * (x[0] - 2.0) ** 2 + 1.8 * (x[1] + 1.0) ** 2 + 0.5)


def bowl_grad(x: np.ndarray) -> np.ndarray:
    return np.array([2.4 * (x[0] - 2.0), 3.6 * (x[1] + 1.0)])


def rosenbrock(x: np.ndarray) -> float:
    return float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2)


def rosenbrock_grad(x: np.ndarray) -> np.ndarray:
    return np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )


def example_single_variable():
    """Example: Brent and golden section search on a parabola."""
    print("=" * 60)
    print("Example 1: Single-Variable Minimization")
    print("=" * 60)

    def parabola(x: float) -> float:
        return (x - 3.0) ** 2 / 1.5 + 7.0

    opt = BrentSingleOptimizer(parabola, bracket=(-10.0, 0.0, 10.0), tolerance=1e-6)
    result = opt.minimize()
    print(f"Brent:  x = {result.x:.6f}, f = {result.fun:.6f}, iterations = {result.nit}")

    # No bracket given: one is searched for downhill from (0, 1)
    result = golden(parabola, tol=1e-6)
    print(f"Golden: x = {result.x:.6f}, f = {result.fun:.6f}, evaluations = {result.nfev}")
    print()


def example_powell():
    """Example: Powell's method, reading the direction set after each sweep."""
    print("=" * 60)
    print("Example 2: Powell's Direction-Set Method")
    print("=" * 60)

    def report(opt, iteration, max_iterations):
        print(f"  sweep {iteration + 1}/{max_iterations}: f = {opt.fun(opt.start_point):.8f}")

    opt = PowellMultiOptimizer(bowl, start_point=[0.0, 0.0], callback=report)
    result = opt.minimize()
    print(f"Minimum: x = {result.x}, f = {result.fun:.8f}")
    print(f"Final directions:\n{opt.directions}")
    print()


def example_gradient_methods():
    """Example: Conjugate gradient and BFGS on the Rosenbrock function."""
    print("=" * 60)
    print("Example 3: Gradient Methods on Rosenbrock")
    print("=" * 60)

    problem = Problem(fun=rosenbrock, grad=rosenbrock_grad, dim=2)
    x0 = np.array([-1.2, 1.0])

    result = bfgs(problem, x0)
    print(f"BFGS:   x = {result.x}, f = {result.fun:.2e}, iterations = {result.nit}")

    result = conjugate_gradient(problem, x0, maxiter=2000, polak_ribiere=True)
    print(f"CG(PR): x = {result.x}, f = {result.fun:.2e}, iterations = {result.nit}")

    # Without a gradient, a finite-difference estimate is used
    result = bfgs(Problem(fun=rosenbrock), x0)
    print(f"BFGS (finite differences): f = {result.fun:.2e}, evaluations = {result.nfev}")
    print()


def example_simplex():
    """Example: Nelder-Mead, which needs no derivatives at all."""
    print("=" * 60)
    print("Example 4: Downhill Simplex")
    print("=" * 60)

    result = nelder_mead(Problem(fun=bowl), np.array([0.0, 0.0]), delta=1.0, history=True)
    print(f"Minimum: x = {result.x}, f = {result.fun:.8f}")
    print(f"Moves: {result.nit}, evaluations: {result.nfev}")
    print()


def example_factory():
    """Example: Choosing the method from configuration."""
    print("=" * 60)
    print("Example 5: Configuration-Driven Optimizers")
    print("=" * 60)

    problem = Problem(fun=bowl, grad=bowl_grad, dim=2)
    for method in ("powell", "cg", "bfgs", "nelder-mead"):
        config = OptimizerConfig(method=method, tolerance=1e-10)
        opt = create_optimizer(config, problem, np.array([5.0, 5.0]))
        result = opt.minimize()
        print(f"  {method:12s} f = {result.fun:.10f} ({result.nfev} evaluations)")

    # Failures are reported as exceptions carrying the reason
    config = OptimizerConfig(method="bfgs", max_iterations=2)
    opt = create_optimizer(config, Problem(fun=rosenbrock, grad=rosenbrock_grad), np.zeros(2))
    try:
        opt.minimize()
    except OptimizationError as exc:
        print(f"  expected failure: {exc}")
        print(f"  continuing from {opt.start_point}")
        opt.max_iterations = 200
        print(f"  f = {opt.minimize().fun:.2e}")
    print()


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("numopt - Local Minimization Examples")
    print("=" * 60 + "\n")

    example_single_variable()
    example_powell()
    example_gradient_methods()
    example_simplex()
    example_factory()

    print("=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
