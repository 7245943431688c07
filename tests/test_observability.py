"""Tests for observability utilities."""

import json
import logging
import sys

import pytest

from coworkly.observability.correlation import correlation_scope, get_correlation_id
from coworkly.observability.logging import (
    ROOT_LOGGER_NAME,
    JsonFormatter,
    configure_logging,
    get_logger,
)


def _record(msg="reservation_created", **kwargs):
    return logging.LogRecord(
        name="coworkly.domain.scheduling",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )


class TestJsonFormatter:
    def test_basic_fields(self):
        payload = json.loads(JsonFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "coworkly.domain.scheduling"
        assert payload["message"] == "reservation_created"
        assert "timestamp" in payload
        assert "correlationId" not in payload

    def test_extra_fields_merged(self):
        record = _record()
        record.extra_fields = {"reservation_id": "res-1", "total_price": "100.00"}
        payload = json.loads(JsonFormatter().format(record))
        assert payload["reservation_id"] == "res-1"
        assert payload["total_price"] == "100.00"

    def test_includes_correlation_id(self):
        with correlation_scope("cid-42"):
            payload = json.loads(JsonFormatter().format(_record()))
        assert payload["correlationId"] == "cid-42"
        assert get_correlation_id() == ""

    def test_exception_rendered(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(exc_info=sys.exc_info())
        payload = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["exception"]


@pytest.fixture
def clean_root_logger():
    """Run with a bare package logger, restoring its state afterwards."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(root.handlers), root.propagate, root.level)
    root.handlers = []
    try:
        yield root
    finally:
        root.handlers, root.propagate, root.level = saved[0], saved[1], saved[2]


class TestLoggers:
    def test_get_logger_prefixes_package(self):
        assert get_logger("domain.lifecycle").name == "coworkly.domain.lifecycle"
        assert get_logger("coworkly.api").name == "coworkly.api"
        assert get_logger(ROOT_LOGGER_NAME).name == ROOT_LOGGER_NAME

    def test_configure_logging_is_idempotent(self, clean_root_logger):
        root = configure_logging("debug")
        handlers = list(root.handlers)
        configure_logging("WARNING")

        assert root.handlers == handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JsonFormatter)
        assert root.level == logging.WARNING
        assert root.propagate is False


class TestCorrelationScope:
    def test_generates_uuid_when_missing(self):
        with correlation_scope(None) as cid:
            assert len(cid) == 36
            assert get_correlation_id() == cid
        assert get_correlation_id() == ""

    def test_nested_scopes_restore(self):
        with correlation_scope("outer"):
            with correlation_scope("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"
