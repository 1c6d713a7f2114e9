"""Tests for logging helpers."""

import logging
import pytest
from unittest.mock import patch

from reelhome.utils.logging import (
    correlation_context,
    get_correlation_id,
    get_structured_logger,
    mask_sensitive_data,
    mask_user_id,
    sanitize_message_text,
    timed,
)
from reelhome.utils.logging_config import LoggingConfig


def test_mask_sensitive_data():
    text = "contact buyer@example.com or 0912-345-678, key eyJhbGciOi.eyJzdWIiOiIx.c2lnbmF0dXJl"
    masked = mask_sensitive_data(text)

    assert "buyer@example.com" not in masked
    assert "0912-345-678" not in masked
    assert "eyJhbGciOi" not in masked
    assert "[REDACTED_EMAIL]" in masked


def test_mask_user_id():
    user_id = "5f1d7c3a-0000-4000-8000-000000000001"
    masked = mask_user_id(user_id)
    assert masked.startswith("5f1d...")
    assert user_id not in masked
    assert mask_user_id("short") == "short"
    assert mask_user_id(None) is None


def test_sanitize_message_text_respects_content_flag():
    with patch.object(LoggingConfig, "LOG_MESSAGE_CONTENT", False):
        assert sanitize_message_text("請問還在嗎") is None
    assert sanitize_message_text("x" * 20, max_length=5) == "xxxxx..."


def test_correlation_context_restores_previous():
    assert get_correlation_id() is None
    with correlation_context("fetch_abc") as outer:
        assert get_correlation_id() == outer == "fetch_abc"
        with correlation_context() as inner:
            assert get_correlation_id() == inner
        assert get_correlation_id() == "fetch_abc"
    assert get_correlation_id() is None


def test_structured_logger_adds_correlation_id(caplog):
    logger = get_structured_logger("reelhome.test")
    with caplog.at_level(logging.INFO, logger="reelhome.test"):
        with correlation_context("op_123"):
            logger.info("Listings loaded", count=3)

    record = caplog.records[-1]
    assert record.correlation_id == "op_123"
    assert record.count == 3


@pytest.mark.asyncio
async def test_timed_wraps_coroutines():
    @timed("test.op")
    async def work(value):
        return value * 2

    assert await work(21) == 42


def test_setup_logging_json_formatter():
    from pythonjsonlogger import jsonlogger
    from reelhome.utils.logging import setup_logging

    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        with patch.object(LoggingConfig, "LOG_FORMAT", "json"):
            logger = setup_logging()
        assert logger.name == "reelhome"
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, jsonlogger.JsonFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
