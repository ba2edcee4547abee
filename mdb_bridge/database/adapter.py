"""
Document Adapter

A MongoDB-style facade for one collection, built for embedding runtimes.

Callers pass plain mappings and lists and get plain values back: documents
as dicts, identifiers as strings, counts as ints, flags as bools. Driver
results never leave this module untranslated, and every driver failure is
raised as one of the mdb_bridge.exceptions types.

This module is part of MDB_BRIDGE.

Usage:
    from mdb_bridge import new_client

    async with new_client("mongodb://localhost:27017", "shop", "orders") as orders:
        order_id = await orders.insert_one({"sku": "A-1", "qty": 2})
        doc = await orders.find_one({"_id": order_id})
        changed = await orders.update_one({"_id": order_id}, {"$inc": {"qty": 1}})
        async for doc in orders.find({"qty": {"$gt": 1}}, {"sort": {"qty": -1}}):
            ...
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import pymongo
from bson.errors import BSONError
from pymongo.errors import PyMongoError

from ..config import BridgeConfig
from ..core.deadline import remaining, resolve_deadline
from ..exceptions import BridgeError
from ..observability import get_logger as get_contextual_logger
from ..observability import (
    log_operation,
    record_operation,
    reset_store_context,
    set_store_context,
)
from .collection import CollectionHandle
from .cursor import DocumentStream
from .documents import (
    prepare_document,
    prepare_documents,
    prepare_filter,
    prepare_options,
    prepare_pipeline,
    prepare_replacement,
    prepare_update,
)
from .translator import READ, WRITE, ResultTranslator

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

_DRIVER_FAILURES = (asyncio.TimeoutError, PyMongoError, BSONError, TypeError, ValueError)


class DocumentAdapter:
    """
    Generic CRUD and aggregation operations on one collection.

    The adapter is bound to a single CollectionHandle for its lifetime. When
    it was created by the factory it also owns the handle's Connection and
    releases it on close().

    Every operation takes an optional options mapping, passed to the driver
    as keyword arguments, and a keyword-only timeout in seconds.
    """

    def __init__(
        self,
        handle: CollectionHandle,
        pipeline_hint: Sequence[Mapping[str, Any]] | None = None,
        config: BridgeConfig | None = None,
        owns_connection: bool = False,
    ):
        """
        Initialize the adapter.

        Args:
            handle: Collection the adapter operates on
            pipeline_hint: Default pipeline for aggregate() calls without one
            config: Bridge configuration (default deadline, id coercion)
            owns_connection: Close the handle's connection in close()
        """
        self._handle = handle
        self.config = config or BridgeConfig()
        self._translator = ResultTranslator(handle.namespace)
        self._pipeline_hint = (
            prepare_pipeline(pipeline_hint, argument="pipeline_hint")
            if pipeline_hint is not None
            else None
        )
        # A strong reference keeps the owned connection alive as long as the adapter.
        self._connection = handle.connection if owns_connection else None

    @property
    def handle(self) -> CollectionHandle:
        return self._handle

    @property
    def namespace(self) -> str:
        return self._handle.namespace

    @property
    def pipeline_hint(self) -> list[dict[str, Any]] | None:
        """Copy of the default aggregation pipeline, if one was given."""
        if self._pipeline_hint is None:
            return None
        return [dict(stage) for stage in self._pipeline_hint]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_one(
        self,
        filter: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """
        Find a single document matching the filter.

        Args:
            filter: Match criteria; None or {} matches any document
                   Example: {"_id": "65a1..."}, {"status": "active"}
            options: Driver options (projection, sort, skip, ...)
            timeout: Deadline for this call in seconds

        Returns:
            The document, or None when nothing matches (not an error)

        Raises:
            QueryError: If the store rejects the query or it times out
            ConfigurationError: If filter or options are malformed
        """
        query = self._filter(filter)
        kwargs = prepare_options(options)
        raw = await self._execute(
            "find_one", READ, lambda: self._handle.collection.find_one(query, **kwargs), timeout
        )
        return self._translator.document(raw)

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> DocumentStream:
        """
        Find documents matching the filter.

        No request is sent until the returned stream is iterated; query
        failures are raised as QueryError from the iteration.

        Args:
            filter: Match criteria; None or {} matches every document
            options: Driver options (projection, sort, skip, limit, batch_size, ...)
            timeout: Deadline covering the whole iteration, in seconds

        Returns:
            DocumentStream over the matching documents

        Example:
            docs = await adapter.find({"status": "active"}, {"limit": 10}).to_list()
        """
        query = self._filter(filter)
        kwargs = prepare_options(options)
        return self._open_stream(
            "find", lambda: self._handle.collection.find(query, **kwargs), timeout
        )

    def aggregate(
        self,
        pipeline: Sequence[Mapping[str, Any]] | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> DocumentStream:
        """
        Run an aggregation pipeline.

        Stages run in the given order. Without a pipeline the adapter's
        pipeline hint is used, or the empty pipeline when there is none. The
        result is never truncated.

        Args:
            pipeline: List of aggregation stages
            options: Driver options (allowDiskUse, batchSize, maxTimeMS, ...)
            timeout: Deadline covering the whole iteration, in seconds

        Returns:
            DocumentStream over the pipeline's output

        Example:
            pipeline = [
                {"$match": {"status": "active"}},
                {"$group": {"_id": "$category", "count": {"$sum": 1}}},
            ]
            results = await adapter.aggregate(pipeline).to_list()
        """
        if pipeline is None:
            stages = self.pipeline_hint or []
        else:
            stages = prepare_pipeline(pipeline)
        kwargs = prepare_options(options)
        return self._open_stream(
            "aggregate", lambda: self._handle.collection.aggregate(stages, **kwargs), timeout
        )

    async def count_documents(
        self,
        filter: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        """Count documents matching the filter."""
        query = self._filter(filter)
        kwargs = prepare_options(options)
        return await self._execute(
            "count_documents",
            READ,
            lambda: self._handle.collection.count_documents(query, **kwargs),
            timeout,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_one(
        self,
        document: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """
        Insert a single document.

        The caller's mapping is not modified.

        Returns:
            The document's identifier: the generated one as a string, or the
            caller's own "_id" value. A 24-hex string _id is found again by
            find_one, since filters match such strings in both forms.

        Raises:
            WriteError: If the store rejects the document (duplicate_key is
                set for duplicate identifiers)
        """
        doc = prepare_document(document)
        kwargs = prepare_options(options)
        result = await self._execute(
            "insert_one", WRITE, lambda: self._handle.collection.insert_one(doc, **kwargs), timeout
        )
        return self._translator.inserted_id(result)

    async def insert_many(
        self,
        documents: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Any]:
        """
        Insert multiple documents at once.

        Args:
            documents: Non-empty list of documents
            options: Driver options (ordered=True/False, ...)
            timeout: Deadline for this call in seconds

        Returns:
            Identifiers, one per input document, in input order

        Raises:
            ConfigurationError: If documents is empty
            WriteError: If any document was rejected; inserted_ids and
                failed_indexes on the error describe what was written
        """
        docs = prepare_documents(documents)
        kwargs = prepare_options(options)
        result = await self._execute(
            "insert_many",
            WRITE,
            lambda: self._handle.collection.insert_many(docs, **kwargs),
            timeout,
            documents=docs,
            ordered=kwargs.get("ordered", True),
        )
        return self._translator.inserted_ids(result)

    async def update_one(
        self,
        filter: Mapping[str, Any],
        update: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> bool:
        """
        Update a single document matching the filter.

        Args:
            filter: Match criteria
            update: Update operators (e.g., {"$set": {...}}) or pipeline stages
            options: Driver options (upsert=True/False, ...)
            timeout: Deadline for this call in seconds

        Returns:
            True if a document was changed or upserted; a match that needed
            no change returns False
        """
        query = self._filter(filter)
        changes = prepare_update(update)
        kwargs = prepare_options(options)
        result = await self._execute(
            "update_one",
            WRITE,
            lambda: self._handle.collection.update_one(query, changes, **kwargs),
            timeout,
        )
        return self._translator.modified(result)

    async def update_many(
        self,
        filter: Mapping[str, Any],
        update: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        """
        Update every document matching the filter.

        Returns:
            Number of documents changed (an upserted insert counts as one)
        """
        query = self._filter(filter)
        changes = prepare_update(update)
        kwargs = prepare_options(options)
        result = await self._execute(
            "update_many",
            WRITE,
            lambda: self._handle.collection.update_many(query, changes, **kwargs),
            timeout,
        )
        return self._translator.modified_count(result)

    async def replace_one(
        self,
        filter: Mapping[str, Any],
        replacement: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> bool:
        """
        Replace a single document matching the filter wholesale.

        Returns:
            True if a document was changed or upserted
        """
        query = self._filter(filter)
        doc = prepare_replacement(replacement)
        kwargs = prepare_options(options)
        result = await self._execute(
            "replace_one",
            WRITE,
            lambda: self._handle.collection.replace_one(query, doc, **kwargs),
            timeout,
        )
        return self._translator.modified(result)

    async def delete_one(
        self,
        filter: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> bool:
        """
        Delete a single document matching the filter.

        Returns:
            True if a document was deleted; deleting a document that is
            already gone returns False
        """
        query = self._filter(filter)
        kwargs = prepare_options(options)
        result = await self._execute(
            "delete_one", WRITE, lambda: self._handle.collection.delete_one(query, **kwargs), timeout
        )
        return self._translator.deleted(result)

    async def delete_many(
        self,
        filter: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> int:
        """Delete every document matching the filter and return how many went."""
        query = self._filter(filter)
        kwargs = prepare_options(options)
        result = await self._execute(
            "delete_many",
            WRITE,
            lambda: self._handle.collection.delete_many(query, **kwargs),
            timeout,
        )
        return self._translator.deleted_count(result)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def ping(self, *, timeout: float | None = None) -> None:
        """
        Check that the store is reachable.

        Raises:
            StoreConnectionError: If the store is unreachable
            QueryError: If the check was rejected or its deadline expired
        """
        await self._handle.connection.ping(timeout, default_timeout=self.config.operation_timeout)

    def close(self) -> None:
        """Release the owned connection, if any. Safe to call repeatedly."""
        if self._connection is not None:
            self._connection.close()

    async def __aenter__(self) -> "DocumentAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DocumentAdapter({self.namespace!r})"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _filter(self, filter: Mapping[str, Any] | None) -> dict[str, Any]:
        return prepare_filter(filter, coerce_ids=self.config.coerce_object_ids)

    async def _execute(
        self,
        operation: str,
        kind: str,
        call: Callable[[], Awaitable[Any]],
        timeout: float | None,
        **failure_details: Any,
    ) -> Any:
        """
        Run one driver call under the operation's deadline.

        Raises the translated failure; a deadline that has already passed
        fails without contacting the store.
        """
        deadline = resolve_deadline(timeout, self.config.operation_timeout)
        left = remaining(deadline)
        token = set_store_context(
            self._handle.database_name, self._handle.collection_name, operation=operation
        )
        start_time = time.time()
        success = False
        try:
            if left is not None and left <= 0:
                raise asyncio.TimeoutError()
            with pymongo.timeout(left):
                result = await asyncio.wait_for(call(), left)
            success = True
            return result
        except _DRIVER_FAILURES as e:
            expired = deadline is not None and remaining(deadline) <= 0
            error = self._translator.failure(
                e, operation, kind, deadline_expired=expired, **failure_details
            )
            contextual_logger.warning(
                f"{operation} failed on {self.namespace}",
                extra={"error_type": type(e).__name__, "error": str(error)},
            )
            raise error from e
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(
                f"adapter.{operation}", duration_ms, success, namespace=self.namespace
            )
            log_operation(
                contextual_logger,
                f"adapter.{operation}",
                level=logging.DEBUG,
                success=success,
                duration_ms=duration_ms,
            )
            reset_store_context(token)

    def _open_stream(
        self,
        operation: str,
        open_cursor: Callable[[], Any],
        timeout: float | None,
    ) -> DocumentStream:
        deadline = resolve_deadline(timeout, self.config.operation_timeout)
        try:
            cursor = open_cursor()
        except (PyMongoError, TypeError, ValueError) as e:
            record_operation(f"adapter.{operation}", 0.0, False, namespace=self.namespace)
            error = self._translator.failure(e, operation, READ)
            logger.warning(f"{operation} on {self.namespace} could not start: {error}")
            raise error from e
        except BridgeError:
            record_operation(f"adapter.{operation}", 0.0, False, namespace=self.namespace)
            raise
        record_operation(f"adapter.{operation}", 0.0, True, namespace=self.namespace)
        return DocumentStream(cursor, self._translator, operation, deadline)
