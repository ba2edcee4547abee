"""
Host runtime binding.

Embedding runtimes (scripting engines, load generators, plugin hosts) often
cannot catch Python exceptions or consume async iterators. HostBinding wraps
a DocumentAdapter so every call returns an OperationResult instead: a tagged
value that is either the operation's plain result or the failure, never both.

Usage:
    opened = HostBinding.open("mongodb://localhost:27017", "shop", "orders")
    if not opened.ok:
        report(opened.to_dict())
    binding = opened.value

    result = await binding.call("insertOne", {"sku": "A-1"})
    found = await binding.call("find", {"sku": "A-1"})
    found.kind   # ResultKind.DOCUMENTS
    found.value  # [{"_id": "65a1...", "sku": "A-1"}]
"""

import inspect
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import BridgeConfig
from .constants import HOST_OPERATION_NAMES
from .database.adapter import DocumentAdapter
from .database.cursor import DocumentStream
from .exceptions import BridgeError, ConfigurationError, WriteError
from .factory import new_client
from .observability import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)

logger = get_logger(__name__)


class ResultKind(str, Enum):
    """Shape of an OperationResult's value."""

    CLIENT = "client"
    DOCUMENT = "document"
    DOCUMENTS = "documents"
    COUNT = "count"
    IDENTIFIER = "identifier"
    IDENTIFIERS = "identifiers"
    FLAG = "flag"
    EMPTY = "empty"
    FAILURE = "failure"


_RESULT_KINDS: dict[str, ResultKind] = {
    "find_one": ResultKind.DOCUMENT,
    "find": ResultKind.DOCUMENTS,
    "aggregate": ResultKind.DOCUMENTS,
    "insert_one": ResultKind.IDENTIFIER,
    "insert_many": ResultKind.IDENTIFIERS,
    "update_one": ResultKind.FLAG,
    "replace_one": ResultKind.FLAG,
    "delete_one": ResultKind.FLAG,
    "update_many": ResultKind.COUNT,
    "delete_many": ResultKind.COUNT,
    "count_documents": ResultKind.COUNT,
    "ping": ResultKind.EMPTY,
}


@dataclass
class OperationResult:
    """Outcome of one host call."""

    kind: ResultKind
    value: Any = None
    error: BridgeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: BridgeError) -> "OperationResult":
        return cls(ResultKind.FAILURE, error=error)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a dictionary of plain values.

        The CLIENT value is omitted since a binding is not data.
        """
        result: dict[str, Any] = {"kind": self.kind.value}
        if self.error is None:
            result["value"] = None if self.kind == ResultKind.CLIENT else self.value
            return result

        error: dict[str, Any] = {
            "type": type(self.error).__name__,
            "message": self.error.message,
            "context": dict(self.error.context),
        }
        if getattr(self.error, "cancelled", False):
            error["cancelled"] = True
        if isinstance(self.error, WriteError):
            error["inserted_ids"] = list(self.error.inserted_ids)
            error["failed_indexes"] = list(self.error.failed_indexes)
            error["duplicate_key"] = self.error.duplicate_key
        result["error"] = error
        return result


class HostBinding:
    """
    Value-returning facade over one DocumentAdapter.

    Operation names are accepted in host style ("findOne", "insertMany") or
    as the adapter's method names ("find_one"). Streams are materialized
    into lists before being returned.
    """

    def __init__(self, adapter: DocumentAdapter):
        self.adapter = adapter

    @classmethod
    def open(
        cls,
        uri: str,
        database: str,
        collection: str,
        pipeline_hint: Sequence[Mapping[str, Any]] | None = None,
        *,
        config: BridgeConfig | None = None,
    ) -> OperationResult:
        """
        Create a binding with its own connection.

        Returns:
            CLIENT result holding the HostBinding, or a FAILURE result
        """
        try:
            adapter = new_client(uri, database, collection, pipeline_hint, config=config)
        except BridgeError as e:
            logger.warning(f"Could not open binding for {database}.{collection}: {e}")
            return OperationResult.failed(e)
        return OperationResult(ResultKind.CLIENT, cls(adapter))

    @staticmethod
    def resolve(name: str) -> str:
        """
        Map a host operation name to the adapter method name.

        Raises:
            ConfigurationError: If the name is not a supported operation
        """
        method = HOST_OPERATION_NAMES.get(name, name)
        if method not in _RESULT_KINDS:
            raise ConfigurationError(
                f"Unknown operation: {name}",
                config_key="operation",
                config_value=name,
                context={"supported": sorted(HOST_OPERATION_NAMES)},
            )
        return method

    async def call(self, name: str, *args: Any, **kwargs: Any) -> OperationResult:
        """
        Run one adapter operation and wrap its outcome.

        Log records emitted during the call share a correlation ID. The
        caller's ID is kept when one is set; otherwise a new one is set for
        the call and cleared afterwards.

        Args:
            name: Operation name, host style or Python style
            *args: Positional arguments of the adapter method
            **kwargs: Keyword arguments of the adapter method (timeout, ...)

        Returns:
            OperationResult with the value, or FAILURE with the error
        """
        owns_correlation_id = get_correlation_id() is None
        if owns_correlation_id:
            set_correlation_id()
        try:
            return await self._dispatch(name, args, kwargs)
        finally:
            if owns_correlation_id:
                clear_correlation_id()

    async def _dispatch(
        self, name: str, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> OperationResult:
        try:
            method_name = self.resolve(name)
            method = getattr(self.adapter, method_name)
            try:
                inspect.signature(method).bind(*args, **kwargs)
            except TypeError as e:
                raise ConfigurationError(
                    f"Invalid arguments for {name}: {e}", config_key="arguments"
                ) from e

            value = method(*args, **kwargs)
            if isinstance(value, DocumentStream):
                async with value:
                    value = await value.to_list()
            else:
                value = await value
        except BridgeError as e:
            logger.debug(f"{name} on {self.adapter.namespace} failed: {e}")
            return OperationResult.failed(e)

        kind = _RESULT_KINDS[method_name]
        if kind == ResultKind.DOCUMENT and value is None:
            kind = ResultKind.EMPTY
        return OperationResult(kind, value)

    def close(self) -> OperationResult:
        """Release the binding's connection."""
        self.adapter.close()
        return OperationResult(ResultKind.EMPTY)

    async def __aenter__(self) -> "HostBinding":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
