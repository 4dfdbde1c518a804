"""Tests for logging configuration and helpers."""

import json
from collections.abc import Generator
from io import StringIO

import pytest
import structlog

from record_ai.common.structured_logging import (
    configure_logging,
    correlation_context,
    get_logger,
    mask_secret,
)


@pytest.fixture
def isolated_structlog() -> Generator[None, None, None]:
    """Reset structlog configuration between tests."""
    original_config = structlog.get_config()
    yield
    structlog.configure(**original_config)
    structlog.contextvars.clear_contextvars()


class TestConfigureLogging:
    """JSON and console output."""

    @pytest.mark.unit
    def test_json_output_carries_service_and_fields(self, isolated_structlog):
        output = StringIO()
        configure_logging("INFO", json_logs=True, service_name="record-ai", stream=output)

        get_logger("test_logger").info("transcription.request_started", size_bytes=42)

        data = json.loads(output.getvalue().strip())
        assert data["event"] == "transcription.request_started"
        assert data["size_bytes"] == 42
        assert data["service"] == "record-ai"
        assert data["level"] == "info"
        assert "timestamp" in data

    @pytest.mark.unit
    def test_json_output_keeps_korean_unescaped(self, isolated_structlog):
        output = StringIO()
        configure_logging("INFO", json_logs=True, stream=output)

        get_logger("test_logger").info("stt.done", text="좋은 공연이었어요")

        assert "좋은 공연이었어요" in output.getvalue()

    @pytest.mark.unit
    def test_console_output_is_not_json(self, isolated_structlog):
        output = StringIO()
        configure_logging("INFO", json_logs=False, stream=output)

        get_logger("test_logger").info("console message", extra_field="value")

        text = output.getvalue()
        assert "console message" in text
        with pytest.raises(json.JSONDecodeError):
            json.loads(text.strip())

    @pytest.mark.unit
    def test_level_filters_lower_events(self, isolated_structlog):
        output = StringIO()
        configure_logging("WARNING", json_logs=True, stream=output)

        logger = get_logger("test_logger")
        logger.info("dropped")
        logger.warning("kept")

        lines = [json.loads(line) for line in output.getvalue().splitlines() if line]
        assert [line["event"] for line in lines] == ["kept"]


class TestCorrelationContext:
    """Correlation ID binding."""

    @pytest.mark.unit
    def test_binds_and_restores(self, isolated_structlog):
        output = StringIO()
        configure_logging("INFO", json_logs=True, stream=output)
        logger = get_logger("test_logger")

        with correlation_context("outer"):
            with correlation_context("inner"):
                logger.info("nested")
            logger.info("outer_again")
        logger.info("outside")

        events = {
            line["event"]: line.get("correlation_id")
            for line in map(json.loads, output.getvalue().splitlines())
        }
        assert events == {"nested": "inner", "outer_again": "outer", "outside": None}


class TestMaskSecret:
    """Credential masking."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("secret", "expected"),
        [
            (None, "<unset>"),
            ("", "<unset>"),
            ("short", "***"),
            ("sk-abcdefghijklmnop", "sk-a...mnop"),
            ("  sk-abcdefghijklmnop  ", "sk-a...mnop"),
        ],
    )
    def test_mask(self, secret, expected):
        assert mask_secret(secret) == expected
