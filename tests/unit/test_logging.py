"""
Unit tests for contextual logging.
"""

import logging

import pytest

from mdb_bridge.observability.logging import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    reset_store_context,
    set_correlation_id,
    set_store_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_correlation_id()
    yield
    clear_correlation_id()


class TestLoggingContext:
    def test_correlation_id_generated(self):
        correlation_id = set_correlation_id()
        assert get_correlation_id() == correlation_id
        assert get_logging_context()["correlation_id"] == correlation_id

    def test_explicit_correlation_id(self):
        set_correlation_id("req-1")
        assert get_correlation_id() == "req-1"
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_store_context_token_restores(self):
        outer = set_store_context("shop", "orders")
        inner = set_store_context("shop", "items", operation="find_one")
        context = get_logging_context()
        assert context["collection"] == "items"
        assert context["operation"] == "find_one"

        reset_store_context(inner)
        assert get_logging_context()["collection"] == "orders"
        reset_store_context(outer)
        assert "collection" not in get_logging_context()


class TestContextualLogger:
    def test_records_carry_context(self, caplog):
        set_correlation_id("req-2")
        token = set_store_context("shop", "orders")
        logger = get_logger("mdb_bridge.tests")

        try:
            with caplog.at_level(logging.INFO, logger="mdb_bridge.tests"):
                logger.info("hello", extra={"attempt": 1})
        finally:
            reset_store_context(token)

        record = caplog.records[-1]
        assert record.correlation_id == "req-2"
        assert record.database == "shop"
        assert record.collection == "orders"
        assert record.attempt == 1

    def test_log_operation(self, caplog):
        logger = get_logger("mdb_bridge.tests")
        with caplog.at_level(logging.DEBUG, logger="mdb_bridge.tests"):
            log_operation(
                logger, "adapter.find_one", level=logging.DEBUG, success=False, duration_ms=3.14159
            )

        record = caplog.records[-1]
        assert record.getMessage() == "Operation failed: adapter.find_one (duration: 3.14ms)"
        assert record.operation == "adapter.find_one"
        assert record.success is False
        assert record.duration_ms == 3.14
