"""
Connection lifecycle and deadline scopes.
"""

from .connection import Connection, ConnectionManager, redact_uri
from .deadline import current_deadline, operation_deadline, remaining, resolve_deadline

__all__ = [
    "Connection",
    "ConnectionManager",
    "redact_uri",
    "current_deadline",
    "operation_deadline",
    "remaining",
    "resolve_deadline",
]
