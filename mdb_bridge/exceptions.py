"""
Custom exceptions for MDB_BRIDGE.

Every failure reported by the document store is wrapped into one of these
types before it leaves the adapter, so callers never handle driver exceptions.
All of them derive from RuntimeError through BridgeError.
"""

from typing import Any, Dict, List, Optional

DUPLICATE_KEY_CODE = 11000


class BridgeError(RuntimeError):
    """
    Base exception for MDB_BRIDGE errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (operation,
                 namespace, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class StoreConnectionError(BridgeError):
    """
    Raised when the store cannot be reached or the connection is unusable.

    Covers malformed URIs, unreachable servers, rejected credentials, failed
    liveness checks and use of a connection that was already closed.

    Attributes:
        message: Error message
        uri: Connection URI with credentials redacted (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        uri: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if uri:
            context["uri"] = uri
        super().__init__(message, context=context)
        self.uri = uri


class OperationError(BridgeError):
    """
    Base class for failures of a single adapter operation.

    Attributes:
        message: Error message
        operation: Adapter operation name (e.g. "find_one")
        namespace: "database.collection" the operation ran against
        cancelled: True when the operation's deadline expired
        code: Server error code, when the store reported one
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        namespace: Optional[str] = None,
        cancelled: bool = False,
        code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation
        if namespace:
            context["namespace"] = namespace
        if cancelled:
            context["cancelled"] = True
        if code is not None:
            context["code"] = code
        super().__init__(message, context=context)
        self.operation = operation
        self.namespace = namespace
        self.cancelled = cancelled
        self.code = code


class QueryError(OperationError):
    """
    Raised when a read-side operation fails after the connection exists.

    Read-side operations are find, find_one, aggregate, count_documents and
    server-reported ping failures. Rejected filters or pipelines, decode
    failures and expired deadlines all land here.
    """


class WriteError(OperationError):
    """
    Raised when a write-side operation fails.

    For insert_many, the documents the store accepted before the failure are
    reported in inserted_ids and the rejected input positions in
    failed_indexes, so a partial insert is never mistaken for a full one.

    Attributes:
        inserted_ids: Identifiers of documents that were written
        failed_indexes: Input positions of documents that were not written
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        namespace: Optional[str] = None,
        cancelled: bool = False,
        code: Optional[int] = None,
        inserted_ids: Optional[List[Any]] = None,
        failed_indexes: Optional[List[int]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if inserted_ids is not None:
            context["inserted_count"] = len(inserted_ids)
        if failed_indexes:
            context["failed_indexes"] = failed_indexes
        super().__init__(
            message,
            operation=operation,
            namespace=namespace,
            cancelled=cancelled,
            code=code,
            context=context,
        )
        self.inserted_ids = list(inserted_ids) if inserted_ids is not None else []
        self.failed_indexes = list(failed_indexes) if failed_indexes else []

    @property
    def duplicate_key(self) -> bool:
        """True when the store rejected the write for a duplicate key."""
        return self.code == DUPLICATE_KEY_CODE


class ConfigurationError(BridgeError):
    """
    Raised when input or configuration is structurally invalid.

    This is raised before any store call is attempted, e.g. an empty
    document list for insert_many or a filter that is not a mapping.

    Attributes:
        message: Error message
        config_key: Configuration key or argument that caused the error
        config_value: Offending value (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value
