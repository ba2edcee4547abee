"""
Result translation.

Converts what the driver hands back (raw BSON documents, pymongo result
objects, driver exceptions) into plain Python values or MDB_BRIDGE errors.
Nothing returned from here references a bson or pymongo type.
"""

import asyncio
import logging
import re
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from bson import ObjectId
from bson.binary import UUID_SUBTYPE, Binary
from bson.code import Code
from bson.datetime_ms import DatetimeMS
from bson.dbref import DBRef
from bson.decimal128 import Decimal128
from bson.errors import InvalidDocument
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.regex import Regex
from bson.timestamp import Timestamp
from pymongo.errors import (
    BulkWriteError,
    ConnectionFailure,
    OperationFailure,
    PyMongoError,
)
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from ..constants import ID_FIELD
from ..exceptions import (
    BridgeError,
    ConfigurationError,
    OperationError,
    QueryError,
    WriteError,
)

logger = logging.getLogger(__name__)

READ = "read"
WRITE = "write"


_REGEX_FLAGS = (
    (re.IGNORECASE, "i"),
    (re.LOCALE, "l"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.UNICODE, "u"),
    (re.VERBOSE, "x"),
)


def to_plain(value: Any) -> Any:
    """
    Convert a BSON value to a plain Python value.

    Mappings and lists are converted recursively into new containers.
    Scalars the driver decodes into bson types become:

    - ObjectId, Decimal128: str
    - datetime: ISO string; DatetimeMS (out of datetime range): milliseconds
    - Int64: int
    - Binary: UUID string for a 16-byte subtype 4 value, bytes otherwise
    - Regex: {"pattern": ..., "flags": "imsx"}
    - Timestamp: {"t": seconds, "i": increment}
    - Code: str, or {"code": ..., "scope": {...}} when it carries a scope
    - DBRef: {"$ref": ..., "$id": ..., "$db": ...}
    - MinKey, MaxKey: "MinKey", "MaxKey"
    """
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, (ObjectId, Decimal128, uuid.UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, DatetimeMS):
        return int(value)
    if isinstance(value, Int64):
        return int(value)
    if isinstance(value, Binary):
        if value.subtype == UUID_SUBTYPE and len(value) == 16:
            return str(value.as_uuid())
        return bytes(value)
    if isinstance(value, Regex):
        flags = "".join(letter for flag, letter in _REGEX_FLAGS if value.flags & flag)
        return {"pattern": value.pattern, "flags": flags}
    if isinstance(value, Timestamp):
        return {"t": value.time, "i": value.inc}
    if isinstance(value, Code):
        if value.scope is not None:
            return {"code": str(value), "scope": to_plain(value.scope)}
        return str(value)
    if isinstance(value, DBRef):
        return to_plain(value.as_doc())
    if isinstance(value, (MinKey, MaxKey)):
        return type(value).__name__
    return value


class ResultTranslator:
    """
    Shapes store results and failures for one collection.

    Every method returns a newly built value; nothing returned is shared
    with the driver or with an earlier call.
    """

    def __init__(self, namespace: str):
        self.namespace = namespace

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def document(self, raw: Mapping[str, Any] | None) -> dict[str, Any] | None:
        """Translate a single document; None means no match."""
        if raw is None:
            return None
        return to_plain(raw)

    def identifier(self, value: Any) -> Any:
        """Translate an inserted identifier."""
        return to_plain(value)

    def inserted_id(self, result: InsertOneResult) -> Any:
        return self.identifier(result.inserted_id)

    def inserted_ids(self, result: InsertManyResult) -> list[Any]:
        return [self.identifier(value) for value in result.inserted_ids]

    def modified(self, result: UpdateResult) -> bool:
        """Whether an update changed or upserted a document."""
        return self.modified_count(result) > 0

    def modified_count(self, result: UpdateResult) -> int:
        """Number of documents changed, counting an upserted insert."""
        if not result.acknowledged:
            logger.debug(f"Unacknowledged update on {self.namespace}; reporting no change")
            return 0
        upserted = 1 if result.upserted_id is not None else 0
        return result.modified_count + upserted

    def deleted(self, result: DeleteResult) -> bool:
        return self.deleted_count(result) > 0

    def deleted_count(self, result: DeleteResult) -> int:
        if not result.acknowledged:
            logger.debug(f"Unacknowledged delete on {self.namespace}; reporting no change")
            return 0
        return result.deleted_count

    # ------------------------------------------------------------------
    # Failures
    # ------------------------------------------------------------------

    def cancelled(self, operation: str, kind: str) -> OperationError:
        """Build the error reported when an operation's deadline expires."""
        error_cls = WriteError if kind == WRITE else QueryError
        message = f"{operation} on {self.namespace} cancelled: deadline expired"
        return error_cls(message, operation=operation, namespace=self.namespace, cancelled=True)

    def failure(
        self,
        exc: BaseException,
        operation: str,
        kind: str,
        deadline_expired: bool = False,
        documents: list[dict[str, Any]] | None = None,
        ordered: bool = True,
    ) -> BridgeError:
        """
        Translate a driver exception raised by one operation.

        Args:
            exc: Exception raised by the driver
            operation: Adapter operation name
            kind: READ or WRITE
            deadline_expired: The operation's deadline had passed when exc arrived
            documents: Prepared documents of an insert_many, for partial results
            ordered: Whether that insert_many stopped at the first error

        Returns:
            The error to raise (the caller chains it with "from exc")
        """
        if isinstance(exc, BridgeError):
            return exc

        if isinstance(exc, (TypeError, ValueError, InvalidDocument)):
            return ConfigurationError(
                f"{operation} rejected its arguments: {exc}",
                context={
                    "operation": operation,
                    "namespace": self.namespace,
                    "error_type": type(exc).__name__,
                },
            )

        if isinstance(exc, asyncio.TimeoutError) or (
            deadline_expired and isinstance(exc, PyMongoError) and exc.timeout
        ):
            return self.cancelled(operation, kind)

        if isinstance(exc, BulkWriteError) and documents is not None:
            return self._bulk_failure(exc, operation, documents, ordered)

        code = getattr(exc, "code", None)
        # maxTimeMS expiry on the server is reported as a cancellation.
        timed_out = isinstance(exc, OperationFailure) and exc.timeout
        error_type = type(exc).__name__

        if kind == WRITE:
            if isinstance(exc, OperationFailure):
                message = f"{operation} on {self.namespace} was rejected: {_errmsg(exc)}"
            else:
                message = f"{operation} on {self.namespace} failed: {exc}"
            return WriteError(
                message,
                operation=operation,
                namespace=self.namespace,
                cancelled=timed_out,
                code=code,
                context={"error_type": error_type},
            )

        if isinstance(exc, ConnectionFailure):
            message = f"{operation} on {self.namespace} could not reach the store: {exc}"
        else:
            message = f"{operation} on {self.namespace} failed: {_errmsg(exc)}"
        return QueryError(
            message,
            operation=operation,
            namespace=self.namespace,
            cancelled=timed_out,
            code=code,
            context={"error_type": error_type},
        )

    def _bulk_failure(
        self,
        exc: BulkWriteError,
        operation: str,
        documents: list[dict[str, Any]],
        ordered: bool,
    ) -> WriteError:
        details = exc.details or {}
        write_errors = details.get("writeErrors", [])
        failed = sorted({err.get("index") for err in write_errors if "index" in err})
        n_inserted = details.get("nInserted", 0)

        # pymongo assigns every _id before sending, so the prepared copies
        # carry the identifiers of the documents that did get written.
        if ordered:
            written = documents[:n_inserted]
            failed = list(range(n_inserted, len(documents)))
        else:
            failed_set = set(failed)
            written = [doc for i, doc in enumerate(documents) if i not in failed_set]
        inserted_ids = [self.identifier(doc.get(ID_FIELD)) for doc in written]

        first = write_errors[0] if write_errors else {}
        message = (
            f"{operation} on {self.namespace} partially failed: "
            f"{len(inserted_ids)}/{len(documents)} documents inserted"
        )
        if first.get("errmsg"):
            message += f" ({first['errmsg']})"

        return WriteError(
            message,
            operation=operation,
            namespace=self.namespace,
            code=first.get("code"),
            inserted_ids=inserted_ids,
            failed_indexes=failed,
        )


def _errmsg(exc: BaseException) -> str:
    details = getattr(exc, "details", None)
    if isinstance(details, Mapping) and details.get("errmsg"):
        return str(details["errmsg"])
    return str(exc)
