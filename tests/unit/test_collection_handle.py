"""
Unit tests for CollectionHandle.
"""

import gc
from unittest.mock import MagicMock

import pytest

from mdb_bridge.core.connection import Connection
from mdb_bridge.database.collection import CollectionHandle, bind
from mdb_bridge.exceptions import StoreConnectionError


class TestCollectionHandle:
    def test_bind(self, connection):
        handle = bind(connection, "shop", "orders")
        assert isinstance(handle, CollectionHandle)
        assert handle.namespace == "shop.orders"
        assert handle.connection is connection
        assert repr(handle) == "CollectionHandle('shop.orders')"

    def test_bind_performs_no_io(self, connection, mock_mongo_client):
        bind(connection, "shop", "orders")
        mock_mongo_client.__getitem__.assert_not_called()
        mock_mongo_client.admin.command.assert_not_called()

    def test_collection_resolves_motor_collection(
        self, connection, mock_mongo_client, mock_mongo_collection
    ):
        handle = bind(connection, "shop", "orders")
        assert handle.collection is mock_mongo_collection
        mock_mongo_client.__getitem__.assert_called_with("shop")
        mock_mongo_client["shop"].__getitem__.assert_called_with("orders")

    def test_closed_connection(self, connection):
        handle = bind(connection, "shop", "orders")
        connection.close()
        with pytest.raises(StoreConnectionError) as exc_info:
            handle.collection
        assert "closed" in str(exc_info.value)

    def test_released_connection(self):
        connection = Connection(MagicMock(), "mongodb://localhost:27017")
        handle = bind(connection, "shop", "orders")
        del connection
        gc.collect()
        with pytest.raises(StoreConnectionError) as exc_info:
            handle.connection
        assert "released" in str(exc_info.value)
