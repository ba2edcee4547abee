"""
Collection handles.

A CollectionHandle names one collection on one Connection. It holds only a
weak reference to the Connection, so it never keeps a client alive and never
issues calls once its owner released the connection.
"""

import weakref

from motor.motor_asyncio import AsyncIOMotorCollection

from ..core.connection import Connection
from ..exceptions import StoreConnectionError


class CollectionHandle:
    """
    Reference to (connection, database name, collection name).

    Construction performs no I/O and does not check that the collection
    exists; the store creates collections on first write.
    """

    __slots__ = ("_connection_ref", "database_name", "collection_name")

    def __init__(self, connection: Connection, database_name: str, collection_name: str):
        self._connection_ref = weakref.ref(connection)
        self.database_name = database_name
        self.collection_name = collection_name

    @property
    def namespace(self) -> str:
        """The "database.collection" namespace."""
        return f"{self.database_name}.{self.collection_name}"

    @property
    def connection(self) -> Connection:
        """
        The Connection this handle is bound to.

        Raises:
            StoreConnectionError: If the connection was closed or discarded
        """
        connection = self._connection_ref()
        if connection is None:
            raise StoreConnectionError(
                "Connection was released", context={"namespace": self.namespace}
            )
        if connection.closed:
            raise StoreConnectionError(
                "Connection is closed", uri=connection.uri, context={"namespace": self.namespace}
            )
        return connection

    @property
    def collection(self) -> AsyncIOMotorCollection:
        """Resolve the motor collection; no I/O is performed."""
        return self.connection.client[self.database_name][self.collection_name]

    def __repr__(self) -> str:
        return f"CollectionHandle({self.namespace!r})"


def bind(connection: Connection, database_name: str, collection_name: str) -> CollectionHandle:
    """
    Bind a connection to a collection.

    Args:
        connection: Connection to issue calls through
        database_name: Database name
        collection_name: Collection name

    Returns:
        CollectionHandle for the collection
    """
    return CollectionHandle(connection, database_name, collection_name)
