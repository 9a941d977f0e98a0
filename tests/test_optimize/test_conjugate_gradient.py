import numpy as np
import pytest

from numopt.exceptions import ConfigurationError, LockedError, OptimizationError
from numopt.optimize import (
    ConjugateGradientMultiOptimizer,
    OptimizerState,
    Problem,
    conjugate_gradient,
)
from numopt.optimize.conjugate_gradient import scaled_gradient_norm


def rosen(x: np.ndarray) -> float:
    return float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2)


def rosen_grad(x: np.ndarray) -> np.ndarray:
    return np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )


@pytest.mark.parametrize("polak_ribiere", [True, False])
def test_cg_on_bowl(bowl, polak_ribiere):
    opt = ConjugateGradientMultiOptimizer(
        bowl, bowl.grad, start_point=[0.0, 0.0], use_polak_ribiere=polak_ribiere
    )
    res = opt.minimize()
    assert res.success
    assert res.fun == pytest.approx(0.5, abs=1e-6)
    assert np.allclose(res.x, [2.0, -1.0], atol=1e-3)
    assert res.njev > 0
    assert opt.use_polak_ribiere is polak_ribiere


@pytest.mark.parametrize("polak_ribiere", [True, False])
def test_cg_on_random_bowls(random_bowl, polak_ribiere):
    for _ in range(3):
        b = random_bowl()
        x0 = np.zeros(b.minimum.size)
        res = conjugate_gradient(Problem(b, b.grad), x0, polak_ribiere=polak_ribiere)
        assert res.fun == pytest.approx(b.offset, abs=1e-5)


def test_cg_with_derivative_line_search(bowl):
    opt = ConjugateGradientMultiOptimizer(
        bowl, bowl.grad, start_point=[0.0, 0.0], use_derivative_line_search=True
    )
    res = opt.minimize()
    assert res.fun == pytest.approx(0.5, abs=1e-6)
    assert opt.use_derivative_line_search


def test_cg_rosenbrock():
    opt = ConjugateGradientMultiOptimizer(
        rosen, rosen_grad, start_point=[-1.2, 1.0], tolerance=1e-12, max_iterations=2000
    )
    res = opt.minimize()
    assert res.fun < 1e-6
    assert np.allclose(res.x, [1.0, 1.0], atol=1e-2)


def test_cg_with_finite_difference_gradient(bowl):
    res = conjugate_gradient(Problem(bowl), np.array([0.0, 0.0]))
    assert res.fun == pytest.approx(0.5, abs=1e-6)


def test_cg_initial_direction(bowl):
    opt = ConjugateGradientMultiOptimizer(
        bowl, bowl.grad, start_point=[0.0, 0.0], initial_direction=[1.0, -1.0]
    )
    assert np.array_equal(opt.initial_direction, [1.0, -1.0])
    res = opt.minimize()
    assert res.fun == pytest.approx(0.5, abs=1e-6)

    # an uphill initial direction falls back to steepest descent
    opt.start_point = [0.0, 0.0]
    opt.initial_direction = [-1.0, 1.0]
    res = opt.minimize()
    assert res.fun == pytest.approx(0.5, abs=1e-6)

    opt.initial_direction = None
    assert opt.initial_direction is None


def test_cg_initial_direction_size_checked(bowl):
    opt = ConjugateGradientMultiOptimizer(bowl, bowl.grad, start_point=[0.0, 0.0])
    with pytest.raises(ConfigurationError):
        opt.initial_direction = [1.0, 0.0, 0.0]
    opt.initial_direction = [1.0, 0.0]
    with pytest.raises(ConfigurationError):
        opt.start_point = [0.0]


def test_cg_stops_immediately_at_stationary_point(bowl):
    opt = ConjugateGradientMultiOptimizer(bowl, bowl.grad, start_point=[2.0, -1.0])
    res = opt.minimize()
    assert res.nit == 0
    assert res.fun == 0.5
    assert res.grad_norm == 0.0
    assert opt.state is OptimizerState.RESULT_AVAILABLE


def test_cg_gradient_size_checked(bowl):
    opt = ConjugateGradientMultiOptimizer(
        bowl, lambda x: np.zeros(3), start_point=[0.0, 0.0]
    )
    with pytest.raises(ConfigurationError):
        opt.minimize()
    assert opt.state is OptimizerState.READY


def test_cg_iteration_cap():
    opt = ConjugateGradientMultiOptimizer(
        rosen, rosen_grad, start_point=[-1.2, 1.0], tolerance=1e-14, max_iterations=3
    )
    with pytest.raises(OptimizationError, match="did not converge"):
        opt.minimize()
    # a new call continues from the last iterate
    assert rosen(opt.start_point) < rosen(np.array([-1.2, 1.0]))


def test_cg_steepest_descent_failure_raises():
    # unbounded below along every descent direction
    def fun(x):
        return -float(np.sum(x))

    def grad(x):
        return -np.ones_like(x)

    opt = ConjugateGradientMultiOptimizer(fun, grad, start_point=[0.0, 0.0])
    with pytest.raises(OptimizationError, match="steepest descent"):
        opt.minimize()
    assert not opt.is_locked


def test_cg_callback_and_locking(bowl):
    seen = []

    def callback(opt, iteration, max_iterations):
        with pytest.raises(LockedError):
            opt.use_polak_ribiere = False
        with pytest.raises(LockedError):
            opt.grad = bowl.grad
        seen.append(iteration)

    opt = ConjugateGradientMultiOptimizer(
        bowl, bowl.grad, start_point=[5.0, 5.0], callback=callback
    )
    res = opt.minimize()
    assert seen == list(range(res.nit))


def test_scaled_gradient_norm():
    g = np.array([1e-3, -2e-3])
    p = np.array([0.5, 10.0])
    assert scaled_gradient_norm(g, p, 0.1) == pytest.approx(2e-2)
    assert scaled_gradient_norm(g, p, 100.0) == pytest.approx(2e-4)


def test_cg_history(bowl):
    res = conjugate_gradient(Problem(bowl, bowl.grad), np.array([4.0, 4.0]), history=True)
    assert len(res.history) == res.nit
    values = [bowl(x) for x in res.history]
    assert all(b <= a + 1e-12 for a, b in zip(values, values[1:]))
