"""
Configuration management for MDB_BRIDGE.

BridgeConfig gathers the few settings the bridge needs. Every value can be
passed directly; anything left out falls back to an environment variable and
then to the defaults in constants.py.
"""

import os

from .constants import (
    DEFAULT_APP_NAME,
    DEFAULT_OPERATION_TIMEOUT_MS,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
)
from .exceptions import ConfigurationError

_TRUE_VALUES = ("1", "true", "yes", "on")


class BridgeConfig:
    """
    MongoDB bridge configuration.

    Example:
        # Using environment variables
        config = BridgeConfig()
        adapter = from_config(config)

        # Or using direct parameters
        config = BridgeConfig(
            mongo_uri="mongodb://localhost:27017",
            db_name="my_db",
            collection_name="events",
        )
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        collection_name: str | None = None,
        server_selection_timeout_ms: int | None = None,
        operation_timeout_ms: int | None = None,
        app_name: str | None = None,
        coerce_object_ids: bool | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (defaults to MONGO_URI env var)
            db_name: Database name (defaults to DB_NAME env var)
            collection_name: Collection name (defaults to COLLECTION_NAME env var)
            server_selection_timeout_ms: Server selection timeout in ms
                (defaults to MONGO_SERVER_SELECTION_TIMEOUT_MS or 5000)
            operation_timeout_ms: Default deadline for each operation in ms,
                0 for none (defaults to MONGO_OPERATION_TIMEOUT_MS or 0)
            app_name: Application name sent to the server (defaults to
                MONGO_APP_NAME or "MDB_BRIDGE")
            coerce_object_ids: Match 24-hex string _id filter values as
                strings and as ObjectIds (defaults to
                MDB_BRIDGE_COERCE_OBJECT_IDS or True)
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI", "")
        self.db_name = db_name or os.getenv("DB_NAME", "")
        self.collection_name = collection_name or os.getenv("COLLECTION_NAME", "")
        self.server_selection_timeout_ms = _int_setting(
            server_selection_timeout_ms,
            "MONGO_SERVER_SELECTION_TIMEOUT_MS",
            DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
        )
        self.operation_timeout_ms = _int_setting(
            operation_timeout_ms, "MONGO_OPERATION_TIMEOUT_MS", DEFAULT_OPERATION_TIMEOUT_MS
        )
        self.app_name = app_name or os.getenv("MONGO_APP_NAME", DEFAULT_APP_NAME)
        if coerce_object_ids is None:
            coerce_object_ids = (
                os.getenv("MDB_BRIDGE_COERCE_OBJECT_IDS", "true").lower() in _TRUE_VALUES
            )
        self.coerce_object_ids = coerce_object_ids

    @property
    def operation_timeout(self) -> float | None:
        """Default operation deadline in seconds, or None when disabled."""
        if self.operation_timeout_ms <= 0:
            return None
        return self.operation_timeout_ms / 1000

    def validate(self, require_target: bool = True) -> None:
        """
        Validate configuration values.

        Args:
            require_target: Also require mongo_uri, db_name and collection_name

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if require_target:
            if not self.mongo_uri:
                raise ConfigurationError(
                    "mongo_uri is required (set MONGO_URI environment variable or pass directly)",
                    config_key="mongo_uri",
                )
            if not self.db_name:
                raise ConfigurationError(
                    "db_name is required (set DB_NAME environment variable or pass directly)",
                    config_key="db_name",
                )
            if not self.collection_name:
                raise ConfigurationError(
                    "collection_name is required "
                    "(set COLLECTION_NAME environment variable or pass directly)",
                    config_key="collection_name",
                )

        if self.server_selection_timeout_ms < 1:
            raise ConfigurationError(
                f"server_selection_timeout_ms must be >= 1, got "
                f"{self.server_selection_timeout_ms}",
                config_key="server_selection_timeout_ms",
                config_value=self.server_selection_timeout_ms,
            )

        if self.operation_timeout_ms < 0:
            raise ConfigurationError(
                f"operation_timeout_ms must be >= 0, got {self.operation_timeout_ms}",
                config_key="operation_timeout_ms",
                config_value=self.operation_timeout_ms,
            )


def _int_setting(value: int | None, env_var: str, default: int) -> int:
    if value is not None:
        return value
    raw = os.getenv(env_var)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{env_var} must be an integer, got {raw!r}",
            config_key=env_var,
            config_value=raw,
        ) from e
