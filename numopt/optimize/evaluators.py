"""Adapters that turn user functions into what the optimizers consume."""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from ..exceptions import ConfigurationError
from .core import Array, Gradient, Objective


class CountingFunction:
    """Callable wrapper that counts how many times a function is called."""

    def __init__(self, fun: Callable[..., Any]) -> None:
        self.fun = fun
        self.calls = 0

    def __call__(self, *args: Any) -> Any:
        self.calls += 1
        return self.fun(*args)


class DirectionalEvaluator:
    """Restriction of a multi-dimensional function to a line.

    Evaluates ``f(point + t * direction)`` for a scalar step ``t``.
    """

    def __init__(self, fun: Objective, point: Array, direction: Array) -> None:
        self.fun = fun
        self.set_point_and_direction(point, direction)

    def set_point_and_direction(self, point: Array, direction: Array) -> None:
        point = np.asarray(point, dtype=float)
        direction = np.asarray(direction, dtype=float)
        if point.shape != direction.shape:
            raise ConfigurationError(
                f"Point {point.shape} and direction {direction.shape} must have the same shape"
            )
        self.point = point
        self.direction = direction

    def point_at(self, t: float) -> Array:
        """Return the n-dimensional point reached after a step ``t``."""
        return self.point + t * self.direction

    def evaluate_at(self, t: float) -> float:
        return float(self.fun(self.point_at(t)))


class DirectionalDerivativeEvaluator(DirectionalEvaluator):
    """Directional evaluator that also provides ``d/dt f(point + t * direction)``."""

    def __init__(
        self,
        fun: Objective,
        grad: Gradient,
        point: Array,
        direction: Array,
    ) -> None:
        super().__init__(fun, point, direction)
        self.grad = grad

    def differentiate_at(self, t: float) -> float:
        g = np.asarray(self.grad(self.point_at(t)), dtype=float)
        return float(np.dot(g, self.direction))


__all__ = [
    "CountingFunction",
    "DirectionalEvaluator",
    "DirectionalDerivativeEvaluator",
]
