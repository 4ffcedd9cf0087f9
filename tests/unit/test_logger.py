"""Tests for structured logging and correlation IDs."""

import asyncio

import pytest

from trade_analytics.core.config import ObservabilityConfig
from trade_analytics.core.errors import ConfigurationError
from trade_analytics.observability.logger import (
    _add_correlation_id,
    correlation_scope,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
    setup_observability,
)


class TestCorrelationId:
    def test_set_and_get(self):
        set_correlation_id("batch-42")
        assert get_correlation_id() == "batch-42"

    def test_scope_restores_previous(self):
        set_correlation_id("outer")
        with correlation_scope("inner") as cid:
            assert cid == "inner"
            assert get_correlation_id() == "inner"
        assert get_correlation_id() == "outer"

    def test_scope_generates_id(self):
        set_correlation_id("outer")
        with correlation_scope() as cid:
            assert cid not in ("", "outer")
            assert get_correlation_id() == cid

    def test_scope_restores_on_error(self):
        set_correlation_id("outer")
        with pytest.raises(RuntimeError):
            with correlation_scope("inner"):
                raise RuntimeError("boom")
        assert get_correlation_id() == "outer"

    def test_processor_adds_field(self):
        set_correlation_id("abc")
        event = _add_correlation_id(None, "info", {"event": "hello"})
        assert event == {"event": "hello", "correlation_id": "abc"}

    @pytest.mark.asyncio
    async def test_isolated_per_task(self):
        set_correlation_id("outer")

        async def inner():
            set_correlation_id("inner")
            return get_correlation_id()

        assert await asyncio.create_task(inner()) == "inner"
        assert get_correlation_id() == "outer"


class TestSetupLogging:
    @pytest.mark.parametrize("fmt", ["json", "console"])
    def test_configures_structlog(self, fmt):
        setup_logging("DEBUG", fmt)
        log = get_logger("trade_analytics.test")
        log.info("configured", fmt=fmt)

    def test_setup_from_config(self):
        setup_observability(ObservabilityConfig(log_level="WARNING", log_format="console"))

    def test_invalid_format_rejected(self):
        with pytest.raises(ConfigurationError):
            setup_observability(ObservabilityConfig(log_format="xml"))
