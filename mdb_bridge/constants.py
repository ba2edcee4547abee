"""
Constants for MDB_BRIDGE.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# CONNECTION CONSTANTS
# ============================================================================

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_APP_NAME: Final[str] = "MDB_BRIDGE"
"""Application name reported to the server in the connection handshake."""

# ============================================================================
# OPERATION CONSTANTS
# ============================================================================

DEFAULT_OPERATION_TIMEOUT_MS: Final[int] = 0
"""Default per-operation deadline in milliseconds (0 disables it)."""

ID_FIELD: Final[str] = "_id"
"""Name of the store's primary identifier field."""

ID_OPERATORS: Final[tuple[str, ...]] = ("$eq", "$ne", "$in", "$nin")
"""Query operators whose identifier operands are matched as string and ObjectId."""

# ============================================================================
# HOST OPERATION NAMES
# ============================================================================

HOST_OPERATION_NAMES: Final[dict[str, str]] = {
    "findOne": "find_one",
    "find": "find",
    "insertOne": "insert_one",
    "insertMany": "insert_many",
    "updateOne": "update_one",
    "updateMany": "update_many",
    "replaceOne": "replace_one",
    "deleteOne": "delete_one",
    "deleteMany": "delete_many",
    "countDocuments": "count_documents",
    "aggregate": "aggregate",
    "ping": "ping",
}
"""Host-facing (camelCase) operation names mapped to adapter methods."""

# ============================================================================
# METRICS CONSTANTS
# ============================================================================

MAX_METRICS: Final[int] = 10000
"""Maximum number of distinct metric keys kept before LRU eviction."""
