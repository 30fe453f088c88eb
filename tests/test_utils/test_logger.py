"""Tests for the structlog helpers."""

import json

import pytest
import structlog

from hitown_reddit_bot.utils.logger import (
    bind_request_context,
    clear_request_context,
    get_logger,
    log_request,
    redact,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    clear_request_context()
    structlog.reset_defaults()


class TestRedact:
    def test_long_secret(self):
        assert redact("abcdefghijklmnop") == "abcdefgh..."

    def test_unset(self):
        assert redact(None) == "<unset>"
        assert redact("") == "<unset>"


class TestRequestContext:
    def test_bind_generates_request_id(self):
        request_id = bind_request_context("GET", "/health")

        context = structlog.contextvars.get_contextvars()
        assert context == {"request_id": request_id, "method": "GET", "path": "/health"}
        assert len(request_id) == 12

    def test_bind_keeps_given_request_id(self):
        assert bind_request_context("POST", "/message", "abc") == "abc"

    def test_clear(self):
        bind_request_context("GET", "/")
        clear_request_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestJsonOutput:
    def test_production_renders_json_with_context(self, capsys):
        setup_logging(level="INFO", environment="production")
        bind_request_context("POST", "/message", "req-1")

        log_request(200, 12.3456)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "http_request"
        assert event["status"] == 200
        assert event["duration_ms"] == 12.35
        assert event["request_id"] == "req-1"
        assert event["path"] == "/message"
        assert event["level"] == "info"

    @pytest.mark.parametrize("status,level", [(404, "warning"), (503, "error")])
    def test_level_follows_status(self, capsys, status, level):
        setup_logging(level="INFO")

        log_request(status, 1.0)

        event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert event["level"] == level

    def test_level_filtering(self, capsys):
        setup_logging(level="WARNING")

        get_logger("test").info("should_not_appear")

        assert "should_not_appear" not in capsys.readouterr().out
