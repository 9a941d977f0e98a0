import numpy as np
import pytest

from numopt.exceptions import ConfigurationError, NonDescentDirectionError, OptimizationError
from numopt.optimize.line_search import LineMinimizer, backtracking_line_search


def quadratic_fun(x: np.ndarray) -> float:
    return float(x.T @ x)


def quadratic_grad(x: np.ndarray) -> np.ndarray:
    return 2 * x


def rosen(x: np.ndarray) -> float:
    return (1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2


def rosen_grad(x: np.ndarray) -> np.ndarray:
    return np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )


@pytest.mark.parametrize("use_grad", [False, True])
def test_line_minimizer_finds_exact_minimum(use_grad):
    line = LineMinimizer(quadratic_fun, quadratic_grad if use_grad else None)
    point = np.array([1.0, -2.0])
    direction = np.array([-1.0, 1.0])
    res = line.minimize(point, direction)
    # minimum of (1 - t)^2 + (t - 2)^2 at t = 1.5
    assert res.converged
    assert res.step == pytest.approx(1.5, abs=1e-6)
    assert np.allclose(res.x, point + res.step * direction)
    assert res.fun == pytest.approx(0.5, abs=1e-10)
    assert np.array_equal(res.direction, direction)
    assert res.nfev > 0
    if use_grad:
        assert res.njev > 0
    else:
        assert res.njev == 0


def test_line_minimizer_does_not_modify_inputs():
    line = LineMinimizer(quadratic_fun)
    point = np.array([1.0, 1.0])
    direction = np.array([-1.0, 0.0])
    line.minimize(point, direction)
    assert np.array_equal(point, [1.0, 1.0])
    assert np.array_equal(direction, [-1.0, 0.0])


def test_line_minimizer_propagates_evaluation_errors():
    class EvaluationFailed(RuntimeError):
        pass

    def fun(x):
        if x[0] > 2.0:
            raise EvaluationFailed("outside the domain")
        return quadratic_fun(x - 5.0)

    line = LineMinimizer(fun)
    with pytest.raises(EvaluationFailed, match="outside the domain"):
        line.minimize(np.zeros(2), np.ones(2))


def test_line_minimizer_falls_back_to_base_point():
    line = LineMinimizer(lambda x: -float(np.sum(x)))
    point = np.array([0.5, 0.5])
    res = line.minimize(point, np.array([1.0, 0.0]), fp=-1.0)
    assert not res.converged
    assert res.step == 0.0
    assert np.array_equal(res.x, point)
    assert res.fun == -1.0


def test_line_minimizer_rejects_mismatched_shapes():
    line = LineMinimizer(quadratic_fun)
    with pytest.raises(ConfigurationError):
        line.minimize(np.zeros(2), np.ones(3))


def test_line_minimizer_validates_tolerance():
    with pytest.raises(ConfigurationError):
        LineMinimizer(quadratic_fun, tolerance=0.0)


def test_backtracking_accepts_full_newton_step():
    x = np.array([1.0, -2.0])
    g = quadratic_grad(x)
    # exact Newton step for x.x
    p = -0.5 * g
    x_new, f_new, check, nfev = backtracking_line_search(
        quadratic_fun, x, quadratic_fun(x), g, p, stpmax=100.0
    )
    assert not check
    assert nfev == 1
    assert np.allclose(x_new, 0.0)
    assert f_new == pytest.approx(0.0)


def test_backtracking_satisfies_armijo_on_rosenbrock():
    x = np.array([-1.2, 1.0])
    g = rosen_grad(x)
    p = -g
    f0 = rosen(x)
    x_new, f_new, check, nfev = backtracking_line_search(rosen, x, f0, g, p, stpmax=100.0)
    assert not check
    assert nfev > 1
    assert f_new == pytest.approx(rosen(x_new))
    step = x_new - x
    assert f_new <= f0 + 1e-4 * float(g @ step)


def test_backtracking_limits_step_length():
    x = np.zeros(2)
    g = np.array([-1.0, 0.0])
    p = np.array([1e6, 0.0])
    x_new, _, _, _ = backtracking_line_search(
        lambda z: -float(z[0]), x, 0.0, g, p, stpmax=10.0
    )
    assert np.linalg.norm(x_new) <= 10.0 + 1e-12


def test_backtracking_rejects_uphill_direction():
    x = np.array([1.0, 1.0])
    g = quadratic_grad(x)
    with pytest.raises(NonDescentDirectionError):
        backtracking_line_search(quadratic_fun, x, quadratic_fun(x), g, g, stpmax=10.0)
    assert issubclass(NonDescentDirectionError, OptimizationError)


def test_backtracking_recovers_from_non_finite_values():
    def fun(x):
        return float(x @ x) if x[0] > -1.0 else float("inf")

    x = np.array([1.0])
    g = quadratic_grad(x)
    x_new, f_new, check, _ = backtracking_line_search(fun, x, fun(x), g, -10.0 * g, 100.0)
    assert not check
    assert np.isfinite(f_new)
    assert f_new < 1.0


def test_backtracking_reports_negligible_step():
    # f increases along p although g claims descent, so every step fails Armijo
    def fun(x):
        return 1.0 + float(x[0])

    x = np.array([0.0])
    g = np.array([-1.0])
    x_new, f_new, check, _ = backtracking_line_search(fun, x, fun(x), g, np.array([1.0]), 10.0)
    assert check
    assert np.array_equal(x_new, x)
    assert f_new == 1.0


def test_backtracking_validates_parameters():
    x = np.array([1.0])
    g = quadratic_grad(x)
    with pytest.raises(ConfigurationError):
        backtracking_line_search(quadratic_fun, x, 1.0, g, -g, stpmax=1.0, alf=1.5)
    with pytest.raises(ConfigurationError):
        backtracking_line_search(quadratic_fun, x, 1.0, g, -g, stpmax=0.0)
