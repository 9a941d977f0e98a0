import numpy as np
import pytest

from numopt.exceptions import ConfigurationError
from numopt.optimize.evaluators import (
    CountingFunction,
    DirectionalDerivativeEvaluator,
    DirectionalEvaluator,
)
from numopt.optimize.utils import (
    approx_derivative,
    approx_grad,
    as_vector,
    gradient_estimator,
    is_pos_def,
)


def test_approx_grad_matches_linear_function():
    def fun(x: np.ndarray) -> float:
        return float(3 * x[0] - 2 * x[1])

    grad = approx_grad(fun, np.array([0.2, -0.1]))
    assert np.allclose(grad, np.array([3.0, -2.0]), atol=1e-6)


def test_forward_difference_gradient_counts_evaluations():
    def fun(x: np.ndarray) -> float:
        return float(x[0] ** 2 + 3 * x[1] ** 2)

    grad, evals = approx_grad(fun, np.array([1.0, -2.0]), symmetric=False, return_evals=True)
    assert np.allclose(grad, [2.0, -12.0], atol=1e-5)
    assert evals == 3


def test_central_difference_gradient_at_origin():
    grad, evals = approx_grad(
        lambda x: float(np.sum(x**2)), np.zeros(3), return_evals=True
    )
    assert np.allclose(grad, 0.0, atol=1e-6)
    assert evals == 6


def test_approx_grad_invalid_eps():
    with pytest.raises(ValueError):
        approx_grad(lambda x: float(x[0]), np.array([0.0]), eps=0.0)
    with pytest.raises(ConfigurationError):
        gradient_estimator(lambda x: float(x[0]), eps=-1.0)


def test_approx_derivative_forward_and_central():
    fun = lambda x: x**3  # noqa: E731
    assert approx_derivative(fun, 2.0) == pytest.approx(12.0, rel=1e-6)
    assert approx_derivative(fun, 2.0, symmetric=False) == pytest.approx(12.0, rel=1e-4)


def test_gradient_estimator_returns_callable():
    grad = gradient_estimator(lambda x: float(x[0] ** 2 + x[1]))
    assert np.allclose(grad(np.array([1.5, 0.0])), [3.0, 1.0], atol=1e-6)


def test_is_pos_def():
    assert is_pos_def(np.diag([1.0, 2.0]))
    assert not is_pos_def(np.array([[1.0, 2.0], [2.0, 1.0]]))


def test_as_vector_validates_and_copies():
    src = np.array([1.0, 2.0])
    vec = as_vector(src)
    vec[0] = 5.0
    assert src[0] == 1.0
    with pytest.raises(ConfigurationError):
        as_vector([[1.0, 2.0]])
    with pytest.raises(ConfigurationError):
        as_vector([])
    with pytest.raises(ConfigurationError):
        as_vector([1.0, np.nan])
    with pytest.raises(ConfigurationError):
        as_vector(["a", "b"])


def test_directional_evaluators():
    fun = lambda x: float(x @ x)  # noqa: E731
    grad = lambda x: 2 * x  # noqa: E731
    point = np.array([1.0, 0.0])
    direction = np.array([0.0, 2.0])

    ev = DirectionalEvaluator(fun, point, direction)
    assert np.allclose(ev.point_at(0.5), [1.0, 1.0])
    assert ev.evaluate_at(0.5) == pytest.approx(2.0)

    dev = DirectionalDerivativeEvaluator(fun, grad, point, direction)
    # d/dt (1 + 4 t^2) = 8 t
    assert dev.differentiate_at(0.5) == pytest.approx(4.0)

    with pytest.raises(ConfigurationError):
        ev.set_point_and_direction(np.zeros(2), np.zeros(3))


def test_counting_function():
    counted = CountingFunction(lambda x: x + 1)
    assert counted(1) == 2
    assert counted(2) == 3
    assert counted.calls == 2
