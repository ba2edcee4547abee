"""
Unit tests for the adapter factory.
"""

import pytest

from mdb_bridge import from_config, new_client
from mdb_bridge.config import BridgeConfig
from mdb_bridge.database.adapter import DocumentAdapter
from mdb_bridge.exceptions import ConfigurationError, StoreConnectionError


class TestNewClient:
    """Test new_client()."""

    def test_returns_bound_adapter(self, patched_motor_client):
        adapter = new_client("mongodb://localhost:27017", "shop", "orders")

        assert isinstance(adapter, DocumentAdapter)
        assert adapter.namespace == "shop.orders"
        assert adapter.pipeline_hint is None
        patched_motor_client.assert_called_once()

    def test_each_call_creates_a_fresh_connection(self, patched_motor_client):
        first = new_client("mongodb://localhost:27017", "shop", "orders")
        second = new_client("mongodb://localhost:27017", "shop", "orders")

        assert first is not second
        assert first.handle.connection is not second.handle.connection
        assert patched_motor_client.call_count == 2

    def test_pipeline_hint_is_kept(self, patched_motor_client):
        hint = [{"$match": {"active": True}}]
        adapter = new_client("mongodb://localhost:27017", "shop", "orders", hint)
        assert adapter.pipeline_hint == hint
        assert adapter.pipeline_hint is not hint

    def test_invalid_pipeline_hint_closes_connection(self, patched_motor_client, mock_mongo_client):
        with pytest.raises(ConfigurationError):
            new_client("mongodb://localhost:27017", "shop", "orders", "not a pipeline")
        mock_mongo_client.close.assert_called_once()

    @pytest.mark.parametrize("database, collection", [("", "orders"), ("shop", ""), ("shop", None)])
    def test_names_required(self, patched_motor_client, database, collection):
        with pytest.raises(ConfigurationError):
            new_client("mongodb://localhost:27017", database, collection)
        patched_motor_client.assert_not_called()

    def test_empty_uri(self, patched_motor_client):
        with pytest.raises(ConfigurationError):
            new_client("", "shop", "orders")

    def test_invalid_config(self, patched_motor_client):
        with pytest.raises(ConfigurationError):
            new_client(
                "mongodb://localhost:27017",
                "shop",
                "orders",
                config=BridgeConfig(server_selection_timeout_ms=0),
            )

    def test_driver_failure(self, patched_motor_client):
        patched_motor_client.side_effect = ValueError("unsupported option")
        with pytest.raises(StoreConnectionError):
            new_client("mongodb://localhost:27017/?bogus=1", "shop", "orders")

    @pytest.mark.asyncio
    async def test_adapter_closes_its_connection(self, patched_motor_client, mock_mongo_client):
        async with new_client("mongodb://localhost:27017", "shop", "orders"):
            pass
        mock_mongo_client.close.assert_called_once()


class TestFromConfig:
    """Test from_config()."""

    def test_from_explicit_config(self, patched_motor_client, bridge_config):
        adapter = from_config(bridge_config)
        assert adapter.namespace == "test_db.items"
        assert adapter.config is bridge_config

    def test_from_environment(self, patched_motor_client, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://env-host:27017")
        monkeypatch.setenv("DB_NAME", "env_db")
        monkeypatch.setenv("COLLECTION_NAME", "env_items")

        adapter = from_config()

        assert adapter.namespace == "env_db.env_items"
        assert patched_motor_client.call_args.args[0] == "mongodb://env-host:27017"

    def test_missing_settings(self, patched_motor_client):
        with pytest.raises(ConfigurationError) as exc_info:
            from_config()
        assert exc_info.value.config_key == "mongo_uri"
