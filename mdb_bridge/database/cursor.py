"""
Lazy document streams.

find() and aggregate() return a DocumentStream over the store-side cursor.
Documents are fetched batch by batch as the caller iterates; there is no
upper bound on how many a stream yields and nothing is buffered beyond the
driver's current batch.

Usage:
    async with adapter.find({"status": "active"}, {"sort": {"created_at": -1}}) as stream:
        async for doc in stream:
            ...

    docs = await adapter.aggregate([{"$match": {}}]).to_list()
"""

import asyncio
import logging
from typing import Any

import pymongo
from bson.errors import BSONError
from motor.motor_asyncio import AsyncIOMotorCommandCursor, AsyncIOMotorCursor
from pymongo.errors import PyMongoError

from ..core.deadline import remaining
from .translator import READ, ResultTranslator

logger = logging.getLogger(__name__)


class DocumentStream:
    """
    Single-use async iterator of translated documents.

    The stream owns its cursor; the adapter keeps no reference to it. Every
    fetch is bounded by the deadline that was in effect when the stream was
    created. Once exhausted, closed or failed, the stream yields nothing more.
    """

    def __init__(
        self,
        cursor: AsyncIOMotorCursor | AsyncIOMotorCommandCursor,
        translator: ResultTranslator,
        operation: str,
        deadline: float | None = None,
    ):
        self._cursor = cursor
        self._translator = translator
        self._operation = operation
        self._deadline = deadline
        self._done = False
        self.fetched = 0

    @property
    def done(self) -> bool:
        """Check if the stream can yield no more documents."""
        return self._done

    def __aiter__(self) -> "DocumentStream":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self._done:
            raise StopAsyncIteration

        left = remaining(self._deadline)
        try:
            if left is not None and left <= 0:
                raise asyncio.TimeoutError()
            with pymongo.timeout(left):
                raw = await asyncio.wait_for(self._cursor.next(), left)
        except StopAsyncIteration:
            self._done = True
            raise
        except (asyncio.TimeoutError, PyMongoError, BSONError) as e:
            expired = self._deadline is not None and remaining(self._deadline) <= 0
            await self._release()
            logger.warning(
                f"{self._operation} stream on {self._translator.namespace} failed "
                f"after {self.fetched} documents: {e!r}"
            )
            raise self._translator.failure(
                e, self._operation, READ, deadline_expired=expired
            ) from e

        self.fetched += 1
        return self._translator.document(raw)

    async def to_list(self) -> list[dict[str, Any]]:
        """Drain the stream into a list. No length cap is applied."""
        return [doc async for doc in self]

    async def close(self) -> None:
        """Stop iterating and release the server-side cursor."""
        if self._done:
            return
        await self._release()

    async def _release(self) -> None:
        self._done = True
        try:
            await self._cursor.close()
        except PyMongoError as e:
            logger.debug(f"Ignoring error while closing {self._operation} cursor: {e}")

    async def __aenter__(self) -> "DocumentStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
