"""
Connection management for MDB_BRIDGE.

ConnectionManager turns a URI into a Connection. The Connection owns one
AsyncIOMotorClient until close() is called; nothing else in the package
creates or closes clients.

Creating a client does not contact the server (motor connects lazily), so
connect() only fails for problems the driver detects up front, such as a
malformed URI. Reachability is checked by ping().
"""

import asyncio
import logging
import re
import time

import pymongo
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from ..config import BridgeConfig
from ..exceptions import ConfigurationError, QueryError, StoreConnectionError
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation, timed_operation
from .deadline import remaining, resolve_deadline

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

_CREDENTIALS_RE = re.compile(r"(?<=://)[^@/]+@")


def redact_uri(uri: str) -> str:
    """Strip user credentials from a connection URI for logs and errors."""
    return _CREDENTIALS_RE.sub("***@", uri)


class Connection:
    """
    A live client session with the document store.

    Exclusively owned by whoever obtained it from ConnectionManager.connect();
    CollectionHandles only hold weak references to it.
    """

    def __init__(self, client: AsyncIOMotorClient, uri: str) -> None:
        self._client: AsyncIOMotorClient | None = client
        self.uri = redact_uri(uri)

    @property
    def closed(self) -> bool:
        """Check if the connection was released."""
        return self._client is None

    @property
    def client(self) -> AsyncIOMotorClient:
        """
        Get the motor client.

        Raises:
            StoreConnectionError: If the connection was closed
        """
        if self._client is None:
            raise StoreConnectionError("Connection is closed", uri=self.uri)
        return self._client

    async def ping(
        self, timeout: float | None = None, default_timeout: float | None = None
    ) -> None:
        """
        Check that the store answers.

        Args:
            timeout: Seconds to wait; the active deadline scope applies otherwise
            default_timeout: Seconds to wait when neither timeout nor a scope is set

        Raises:
            StoreConnectionError: If the store is unreachable
            QueryError: If the store answered with an error or the deadline expired
        """
        client = self.client
        deadline = resolve_deadline(timeout, default_timeout)
        left = remaining(deadline)
        start_time = time.time()
        success = False

        try:
            if left is not None and left <= 0:
                raise asyncio.TimeoutError()
            with pymongo.timeout(left):
                await asyncio.wait_for(client.admin.command("ping"), left)
            success = True
        except asyncio.TimeoutError as e:
            raise QueryError("Ping deadline expired", operation="ping", cancelled=True) from e
        except ConnectionFailure as e:
            if deadline is not None and remaining(deadline) <= 0:
                raise QueryError(
                    "Ping deadline expired", operation="ping", cancelled=True
                ) from e
            logger.warning(f"Ping failed, store unreachable: {e}")
            raise StoreConnectionError(
                f"Store is unreachable: {e}",
                uri=self.uri,
                context={"error_type": type(e).__name__},
            ) from e
        except OperationFailure as e:
            raise QueryError(
                f"Ping rejected: {e}", operation="ping", cancelled=e.timeout, code=e.code
            ) from e
        except PyMongoError as e:
            raise QueryError(f"Ping failed: {e}", operation="ping", cancelled=e.timeout) from e
        finally:
            record_operation("connection.ping", (time.time() - start_time) * 1000, success=success)

    @timed_operation("connection.close")
    def close(self) -> None:
        """
        Close the client and release its resources.

        This method is idempotent - it's safe to call multiple times.
        """
        if self._client is None:
            return
        client, self._client = self._client, None
        client.close()
        contextual_logger.info("MongoDB connection closed", extra={"uri": self.uri})


class ConnectionManager:
    """
    Creates Connections from URIs using the bridge configuration.
    """

    def __init__(self, config: BridgeConfig | None = None) -> None:
        """
        Initialize the connection manager.

        Args:
            config: Client settings; environment defaults are used when omitted
        """
        self.config = config or BridgeConfig()

    @timed_operation("connection.connect")
    def connect(self, uri: str) -> Connection:
        """
        Establish a Connection to the store.

        No liveness check is made here; use Connection.ping() for that.

        Args:
            uri: MongoDB connection URI

        Returns:
            Connection ready for use

        Raises:
            ConfigurationError: If uri is empty or not a string
            StoreConnectionError: If the driver rejects the URI or client options
        """
        if not isinstance(uri, str) or not uri:
            raise ConfigurationError(
                "Connection URI must be a non-empty string", config_key="uri"
            )

        redacted = redact_uri(uri)
        contextual_logger.info(
            "Creating MongoDB client",
            extra={
                "uri": redacted,
                "server_selection_timeout_ms": self.config.server_selection_timeout_ms,
            },
        )

        try:
            client = AsyncIOMotorClient(
                uri,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
                appname=self.config.app_name,
            )
        except (PyMongoError, TypeError, ValueError) as e:
            contextual_logger.error(
                "MongoDB client creation failed",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )
            raise StoreConnectionError(
                f"Failed to connect to MongoDB: {e}",
                uri=redacted,
                context={"error_type": type(e).__name__},
            ) from e

        return Connection(client, uri)
