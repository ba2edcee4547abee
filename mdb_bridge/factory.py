"""
Adapter factory.

The only way to obtain a DocumentAdapter with its own connection. Every call
creates a fresh Connection; nothing is registered globally.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .config import BridgeConfig
from .core.connection import ConnectionManager
from .database.adapter import DocumentAdapter
from .database.collection import bind
from .exceptions import BridgeError, ConfigurationError

logger = logging.getLogger(__name__)


def new_client(
    uri: str,
    database: str,
    collection: str,
    pipeline_hint: Sequence[Mapping[str, Any]] | None = None,
    *,
    config: BridgeConfig | None = None,
) -> DocumentAdapter:
    """
    Create an adapter bound to one collection.

    The returned adapter owns its connection; release it with close() or by
    using the adapter as an async context manager.

    Args:
        uri: MongoDB connection URI
        database: Database name
        collection: Collection name
        pipeline_hint: Default pipeline for aggregate() calls without one
        config: Client settings; environment defaults are used when omitted

    Returns:
        DocumentAdapter ready for use

    Raises:
        ConfigurationError: If an argument or setting is invalid
        StoreConnectionError: If the driver rejects the URI
    """
    config = config or BridgeConfig()
    config.validate(require_target=False)
    for key, value in (("database", database), ("collection", collection)):
        if not isinstance(value, str) or not value:
            raise ConfigurationError(
                f"{key} name must be a non-empty string", config_key=key, config_value=value
            )

    connection = ConnectionManager(config).connect(uri)
    try:
        adapter = DocumentAdapter(
            bind(connection, database, collection),
            pipeline_hint=pipeline_hint,
            config=config,
            owns_connection=True,
        )
    except BridgeError:
        connection.close()
        raise

    logger.info(f"Adapter ready for {adapter.namespace} at {connection.uri}")
    return adapter


def from_config(config: BridgeConfig | None = None) -> DocumentAdapter:
    """
    Create an adapter from configuration alone.

    Args:
        config: Bridge configuration; read from the environment when omitted

    Raises:
        ConfigurationError: If the URI, database or collection is missing
        StoreConnectionError: If the driver rejects the URI
    """
    config = config or BridgeConfig()
    config.validate()
    return new_client(config.mongo_uri, config.db_name, config.collection_name, config=config)
