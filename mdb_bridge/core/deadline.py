"""
Deadline scopes for adapter operations.

A deadline is an absolute time on the monotonic clock stored in a context
variable, so it follows the caller through awaits and into tasks created from
the caller's context. Every adapter operation reads it to bound how long the
store may take.

Usage:
    from mdb_bridge import operation_deadline

    async with adapter:
        with operation_deadline(2.5):
            doc = await adapter.find_one({"name": "a"})
            docs = await adapter.find({}).to_list()
"""

import contextvars
import time
from collections.abc import Iterator
from contextlib import contextmanager

from ..exceptions import ConfigurationError

_deadline: contextvars.ContextVar[float | None] = contextvars.ContextVar(
    "operation_deadline", default=None
)


def current_deadline() -> float | None:
    """Return the absolute deadline of the active scope, or None."""
    return _deadline.get()


@contextmanager
def operation_deadline(seconds: float) -> Iterator[float]:
    """
    Bound every adapter operation issued inside the block.

    Nested scopes never extend an outer deadline: the earlier of the two wins.

    Args:
        seconds: Time budget for the block, in seconds

    Yields:
        The absolute monotonic deadline in effect inside the block
    """
    if seconds is None or seconds < 0:
        raise ConfigurationError(
            "Deadline must be a non-negative number of seconds",
            config_key="seconds",
            config_value=seconds,
        )

    deadline = time.monotonic() + seconds
    outer = _deadline.get()
    if outer is not None:
        deadline = min(deadline, outer)

    token = _deadline.set(deadline)
    try:
        yield deadline
    finally:
        _deadline.reset(token)


def resolve_deadline(timeout: float | None = None, default: float | None = None) -> float | None:
    """
    Work out the absolute deadline for one operation.

    An explicit timeout wins over the active scope only when it is earlier;
    the configured default applies when neither is set.

    Args:
        timeout: Per-call timeout in seconds
        default: Configured default timeout in seconds

    Returns:
        Absolute monotonic deadline, or None for no deadline
    """
    scoped = _deadline.get()
    if timeout is not None:
        explicit = time.monotonic() + timeout
        return explicit if scoped is None else min(explicit, scoped)
    if scoped is not None:
        return scoped
    if default is not None:
        return time.monotonic() + default
    return None


def remaining(deadline: float | None) -> float | None:
    """Seconds left until deadline (may be <= 0), or None for no deadline."""
    if deadline is None:
        return None
    return deadline - time.monotonic()
