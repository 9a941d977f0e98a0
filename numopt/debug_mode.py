"""Debug mode: extra invariant checks inside the optimizers.

Off by default. Turn it on with ``NUMOPT_DEBUG=1`` in the environment, with
:func:`set_debug_enabled` or inside a :func:`debug_context` block. While it is
on, the optimizers verify the state they carry from one iteration to the next
(Powell's direction set, the quasi-Newton inverse Hessian, the simplex
vertices) and fail fast through :func:`check_invariant`.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

from .exceptions import OptimizationError
from .logging import get_logger

logger = get_logger(__name__)

ENV_VAR = "NUMOPT_DEBUG"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _flag_from_env(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUE_VALUES


_debug_enabled: bool = _flag_from_env(os.environ.get(ENV_VAR))


def is_debug_enabled() -> bool:
    """Return True if the optimizers run their invariant checks."""
    return _debug_enabled


def set_debug_enabled(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


@contextmanager
def debug_context(enabled: bool = True) -> Iterator[None]:
    """Switch debug mode for the duration of a ``with`` block.

    The previous setting is restored on exit, also when the block raises.

    Example
    -------
    >>> with debug_context():
    ...     result = bfgs(problem, x0)  # doctest: +SKIP
    """
    global _debug_enabled
    saved = _debug_enabled
    _debug_enabled = bool(enabled)
    try:
        yield
    finally:
        _debug_enabled = saved


def check_invariant(condition: bool, message: str) -> None:
    """Raise :class:`~numopt.exceptions.OptimizationError` unless ``condition`` holds.

    Callers guard the (possibly expensive) computation of ``condition`` with
    :func:`is_debug_enabled`.
    """
    if not condition:
        logger.error("invariant violated: %s", message)
        raise OptimizationError(message)


__all__ = [
    "ENV_VAR",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    "check_invariant",
]
