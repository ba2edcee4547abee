"""
MDB_BRIDGE - MongoDB Bridge

A MongoDB-style document store facade for embedding runtimes: generic CRUD
and aggregation operations in, plain values or typed failures out.
"""

from .config import BridgeConfig
from .core import Connection, ConnectionManager, operation_deadline
from .database import CollectionHandle, DocumentAdapter, DocumentStream, bind
from .exceptions import (
    BridgeError,
    ConfigurationError,
    OperationError,
    QueryError,
    StoreConnectionError,
    WriteError,
)
from .factory import from_config, new_client
from .host import HostBinding, OperationResult, ResultKind

__version__ = "0.1.0"

__all__ = [
    # Factory
    "new_client",
    "from_config",
    "BridgeConfig",
    # Core
    "Connection",
    "ConnectionManager",
    "operation_deadline",
    # Database
    "DocumentAdapter",
    "DocumentStream",
    "CollectionHandle",
    "bind",
    # Host
    "HostBinding",
    "OperationResult",
    "ResultKind",
    # Exceptions
    "BridgeError",
    "StoreConnectionError",
    "OperationError",
    "QueryError",
    "WriteError",
    "ConfigurationError",
]
