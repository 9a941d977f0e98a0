"""Pytest configuration and shared fixtures for numopt tests.

This module provides:
- A deterministic numpy RNG fixture
- Quadratic bowl problems with a known minimum
"""

import os
from typing import Callable

import numpy as np
import pytest

from numopt.debug_mode import is_debug_enabled, set_debug_enabled


def _seed() -> int:
    return int(os.environ.get("TEST_RNG_SEED", "0"))


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    return np.random.default_rng(_seed())


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set the global numpy seed for reproducibility."""
    np.random.seed(_seed())


@pytest.fixture(scope="function", autouse=True)
def restore_debug_mode():
    """Undo any debug mode change made by a test."""
    original = is_debug_enabled()
    yield
    set_debug_enabled(original)


class QuadraticBowl:
    """``f(x) = sum(w_i (x_i - m_i)^2) + offset`` and its gradient."""

    def __init__(self, minimum, widths, offset: float) -> None:
        self.minimum = np.asarray(minimum, dtype=float)
        self.widths = np.asarray(widths, dtype=float)
        self.offset = float(offset)

    def __call__(self, x: np.ndarray) -> float:
        return float(np.sum(self.widths * (x - self.minimum) ** 2) + self.offset)

    def grad(self, x: np.ndarray) -> np.ndarray:
        return 2.0 * self.widths * (x - self.minimum)


@pytest.fixture
def bowl() -> QuadraticBowl:
    """2-D bowl with minimum 0.5 at (2, -1)."""
    return QuadraticBowl([2.0, -1.0], [1.2, 1.8], 0.5)


@pytest.fixture
def random_bowl(rng: np.random.Generator) -> Callable[[], QuadraticBowl]:
    """Factory of bowls with random dimension (2-4), minimum, widths and offset."""

    def make() -> QuadraticBowl:
        dim = int(rng.integers(2, 5))
        minimum = rng.uniform(-10.0, 10.0, size=dim)
        widths = rng.uniform(0.5, 5.0, size=dim)
        offset = float(rng.uniform(-10.0, 10.0))
        return QuadraticBowl(minimum, widths, offset)

    return make
