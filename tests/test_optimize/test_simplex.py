import numpy as np
import pytest

from numopt.exceptions import (
    ConfigurationError,
    EvaluationError,
    LockedError,
    NotAvailableError,
    NotReadyError,
    OptimizationError,
)
from numopt.optimize import (
    OptimizerState,
    Problem,
    SimplexMultiOptimizer,
    build_simplex,
    nelder_mead,
)


def rosen(x: np.ndarray) -> float:
    return float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2)


def test_simplex_on_bowl(bowl):
    opt = SimplexMultiOptimizer(bowl, build_simplex([0.0, 0.0], 1.0))
    res = opt.minimize()
    assert res.success
    assert res.fun == pytest.approx(0.5, abs=1e-4)
    assert res.nfev <= 5000
    assert np.allclose(res.x, [2.0, -1.0], atol=1e-2)


def test_best_vertex_comes_first(bowl):
    opt = SimplexMultiOptimizer(bowl)
    opt.set_simplex([0.0, 0.0], [1.0, 0.5])
    res = opt.minimize()
    values = opt.values
    assert values[0] == np.min(values)
    assert np.array_equal(opt.simplex[0], opt.result)
    assert res.fun == values[0]
    assert np.allclose([bowl(v) for v in opt.simplex], values)


def test_nelder_mead_rosenbrock():
    # shifted so that the relative spread test is meaningful near the minimum
    res = nelder_mead(
        Problem(lambda x: rosen(x) + 1.0), np.array([-1.2, 1.0]), delta=0.5, tol=1e-10
    )
    assert res.fun == pytest.approx(1.0, abs=1e-6)
    assert np.allclose(res.x, [1.0, 1.0], atol=1e-2)


def test_nelder_mead_higher_dimension(random_bowl):
    b = random_bowl()
    res = nelder_mead(Problem(lambda x: b(x) + 20.0), np.zeros(b.minimum.size), delta=2.0)
    assert res.fun - 20.0 == pytest.approx(b.offset, abs=1e-4)


def test_build_simplex():
    s = build_simplex([1.0, 2.0], [0.5, -1.0])
    assert np.array_equal(s, [[1.0, 2.0], [1.5, 2.0], [1.0, 1.0]])
    s = build_simplex(np.array([0.0, 0.0, 0.0]), 2.0)
    assert s.shape == (4, 3)
    assert np.array_equal(s[1:] - s[0], 2.0 * np.eye(3))


@pytest.mark.parametrize("delta", [0.0, [1.0, 0.0], [1.0, 1.0, 1.0], np.inf])
def test_build_simplex_rejects_bad_delta(delta):
    with pytest.raises(ConfigurationError):
        build_simplex([0.0, 0.0], delta)


@pytest.mark.parametrize(
    "simplex",
    [
        np.zeros((2, 2)),
        np.zeros((3, 3)),
        np.zeros(3),
        [[0.0, 0.0], [1.0, np.nan], [0.0, 1.0]],
    ],
)
def test_simplex_shape_validated(simplex):
    opt = SimplexMultiOptimizer(lambda x: 0.0)
    with pytest.raises(ConfigurationError):
        opt.simplex = simplex
    assert not opt.is_simplex_available


def test_evaluation_cap():
    opt = SimplexMultiOptimizer(
        rosen, build_simplex([-1.2, 1.0], 0.1), tolerance=1e-14, max_evaluations=20
    )
    with pytest.raises(OptimizationError, match="20 evaluations"):
        opt.minimize()
    assert opt.state is OptimizerState.READY
    with pytest.raises(ConfigurationError):
        opt.max_evaluations = 0


def test_simplex_lifecycle(bowl):
    opt = SimplexMultiOptimizer()
    assert opt.state is OptimizerState.NOT_READY
    with pytest.raises(NotAvailableError):
        _ = opt.simplex
    with pytest.raises(NotAvailableError):
        _ = opt.values
    opt.fun = bowl
    with pytest.raises(NotReadyError):
        opt.minimize()
    opt.set_simplex([0.0, 0.0])
    assert opt.state is OptimizerState.READY
    opt.minimize()
    assert opt.state is OptimizerState.RESULT_AVAILABLE
    opt.set_simplex([1.0, 1.0])
    assert opt.state is OptimizerState.READY


def test_simplex_callback(bowl):
    calls = []

    def callback(opt, iteration, max_iterations):
        assert max_iterations is None
        with pytest.raises(LockedError):
            opt.set_simplex([0.0, 0.0])
        calls.append(iteration)

    opt = SimplexMultiOptimizer(bowl, build_simplex([0.0, 0.0]), callback=callback)
    res = opt.minimize()
    assert calls == list(range(res.nit))


def test_simplex_propagates_evaluation_errors():
    class Boom(Exception):
        pass

    def fun(x):
        if x[0] > 1.5:
            raise Boom()
        return float(np.sum((x - 5.0) ** 2))

    opt = SimplexMultiOptimizer(fun, build_simplex([0.0, 0.0]))
    with pytest.raises(Boom):
        opt.minimize()
    assert not opt.is_locked


def test_nelder_mead_history(bowl):
    res = nelder_mead(Problem(bowl), np.array([0.0, 0.0]), history=True)
    assert len(res.history) == res.nit
    values = [bowl(x) for x in res.history]
    assert all(b <= a for a, b in zip(values, values[1:]))


def test_failed_shrink_leaves_simplex_consistent():
    # reflection and contraction both worsen the high vertex, forcing a shrink
    table = {0.0: 0.0, 1.0: 1.0, -1.0: 5.0, 0.5: 2.0}
    calls = []

    def fun(x):
        calls.append(float(x[0]))
        if len(calls) == 5:
            raise EvaluationError("cannot evaluate during shrink")
        return table[float(x[0])]

    opt = SimplexMultiOptimizer(fun, [[0.0], [1.0]])
    with pytest.raises(EvaluationError):
        opt.minimize()
    assert calls == [0.0, 1.0, -1.0, 0.5, 0.5]
    assert opt.state is OptimizerState.READY
    assert np.array_equal(opt.simplex, [[0.0], [1.0]])
    assert np.array_equal(opt.values, [table[v] for v in opt.simplex[:, 0]])
