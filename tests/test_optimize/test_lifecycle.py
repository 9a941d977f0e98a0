"""Lifecycle behavior shared by every multi-dimensional optimizer."""

import numpy as np
import pytest

from numopt.exceptions import (
    EvaluationError,
    LockedError,
    NotAvailableError,
    NotReadyError,
    StateError,
)
from numopt.optimize import (
    ConjugateGradientMultiOptimizer,
    OptimizerState,
    PowellMultiOptimizer,
    QuasiNewtonMultiOptimizer,
    SimplexMultiOptimizer,
    build_simplex,
)

METHODS = ["powell", "cg", "bfgs", "simplex"]


def make_ready(method, fun, grad, x0, **kwargs):
    if method == "powell":
        return PowellMultiOptimizer(fun, start_point=x0, **kwargs)
    if method == "cg":
        return ConjugateGradientMultiOptimizer(fun, grad, start_point=x0, **kwargs)
    if method == "bfgs":
        return QuasiNewtonMultiOptimizer(fun, grad, start_point=x0, **kwargs)
    return SimplexMultiOptimizer(fun, build_simplex(x0), **kwargs)


def make_empty(method):
    return {
        "powell": PowellMultiOptimizer,
        "cg": ConjugateGradientMultiOptimizer,
        "bfgs": QuasiNewtonMultiOptimizer,
        "simplex": SimplexMultiOptimizer,
    }[method]()


@pytest.mark.parametrize("method", METHODS)
def test_not_ready_without_inputs(method):
    opt = make_empty(method)
    assert opt.state is OptimizerState.NOT_READY
    assert not opt.is_ready
    with pytest.raises(NotReadyError):
        opt.minimize()
    with pytest.raises(NotAvailableError):
        _ = opt.fun
    with pytest.raises(NotAvailableError):
        _ = opt.result
    with pytest.raises(NotAvailableError):
        _ = opt.evaluation_at_result
    assert issubclass(NotReadyError, StateError)


@pytest.mark.parametrize("method", METHODS)
def test_result_available_after_minimize(method, bowl):
    opt = make_ready(method, bowl, bowl.grad, [0.0, 0.0])
    assert opt.state is OptimizerState.READY
    res = opt.minimize()
    assert opt.state is OptimizerState.RESULT_AVAILABLE
    assert opt.is_result_available
    # repeated queries return equal, independent copies
    first = opt.result
    first[0] = 100.0
    assert np.array_equal(opt.result, res.x)
    assert opt.evaluation_at_result == opt.evaluation_at_result == res.fun
    assert opt.iterations == res.nit


@pytest.mark.parametrize("method", METHODS)
def test_changing_inputs_discards_result(method, bowl):
    opt = make_ready(method, bowl, bowl.grad, [0.0, 0.0])
    opt.minimize()
    opt.fun = bowl
    assert opt.state is OptimizerState.READY
    with pytest.raises(NotAvailableError):
        _ = opt.result
    opt.minimize()
    opt.tolerance = 1e-6
    assert not opt.is_result_available


@pytest.mark.parametrize("method", METHODS)
def test_locked_while_minimizing(method, bowl):
    states = []

    def callback(opt, iteration, max_iterations):
        states.append(opt.state)
        with pytest.raises(LockedError):
            opt.fun = bowl
        with pytest.raises(LockedError):
            opt.tolerance = 1e-3
        with pytest.raises(LockedError):
            opt.callback = None
        with pytest.raises(LockedError):
            opt.minimize()

    opt = make_ready(method, bowl, bowl.grad, [3.0, 3.0], callback=callback)
    opt.minimize()
    assert states
    assert all(s is OptimizerState.LOCKED for s in states)
    assert not opt.is_locked
    assert opt.callback is callback


@pytest.mark.parametrize("method", METHODS)
def test_evaluation_error_propagates_and_unlocks(method, bowl):
    calls = {"n": 0}

    def fun(x):
        calls["n"] += 1
        if calls["n"] > 3:
            raise EvaluationError(f"cannot evaluate at {x}")
        return bowl(x)

    opt = make_ready(method, fun, bowl.grad, [0.0, 0.0])
    with pytest.raises(EvaluationError, match="cannot evaluate"):
        opt.minimize()
    assert opt.state is OptimizerState.READY
    assert not opt.is_result_available

    # the optimizer stays usable
    opt.fun = bowl
    res = opt.minimize()
    assert res.fun == pytest.approx(0.5, abs=1e-4)


@pytest.mark.parametrize("method", METHODS)
def test_callback_exception_unlocks(method, bowl):
    def callback(opt, iteration, max_iterations):
        raise KeyboardInterrupt

    opt = make_ready(method, bowl, bowl.grad, [3.0, 3.0], callback=callback)
    with pytest.raises(KeyboardInterrupt):
        opt.minimize()
    assert not opt.is_locked


@pytest.mark.parametrize("method", ["powell", "cg", "bfgs"])
def test_start_point_is_copied(method, bowl):
    x0 = np.array([0.0, 0.0])
    opt = make_ready(method, bowl, bowl.grad, x0)
    x0[0] = 50.0
    assert np.array_equal(opt.start_point, [0.0, 0.0])
    opt.start_point[1] = 7.0
    assert np.array_equal(opt.start_point, [0.0, 0.0])
    opt.minimize()
    assert np.array_equal(x0, [50.0, 0.0])


@pytest.mark.parametrize("method", METHODS)
def test_minimize_again_from_result_is_immediate(method, bowl):
    opt = make_ready(method, bowl, bowl.grad, [0.0, 0.0])
    first = opt.minimize()
    second = opt.minimize()
    assert second.nit <= 1
    assert second.fun <= first.fun
    assert second.fun == pytest.approx(first.fun, abs=1e-8)
