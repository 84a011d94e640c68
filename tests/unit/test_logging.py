"""
Unit Tests for Logging Helpers

Credentials and signatures must never reach the logs.

Run with:
    pytest tests/unit/test_logging.py -v
"""

import logging

import pytest

from core.logging import (
    REDACTED,
    RedactingFilter,
    get_logger,
    log_api_request,
    log_api_response,
    log_websocket_event,
    redact_secrets,
)
from core.schemas import ApiCredentials, ApiRequest, Classification
from exchanges.binance.auth import RequestPreprocessor


class TestLogHelpers:
    """Tests for the log helper functions"""

    def test_child_logger_name(self):
        assert get_logger("transport").name == "binance_client.transport"

    def test_signature_not_logged(self, caplog):
        """Verify the signature parameter is dropped from request logs"""
        caplog.set_level(logging.DEBUG, logger="binance_client")

        log_api_request("GET", "/api/v3/account", [("timestamp", "1"), ("signature", "deadbeef")])

        assert "timestamp=1" in caplog.text
        assert "deadbeef" not in caplog.text

    def test_signed_request_logs_no_credentials(self, caplog):
        """Verify neither key nor secret shows up when a processed request is logged"""
        caplog.set_level(logging.DEBUG, logger="binance_client")
        pre = RequestPreprocessor(ApiCredentials(api_key="apikey-123", secret_key="secret-456"))
        request = pre.process(ApiRequest(
            method="GET", path="/api/v3/account",
            params=(("timestamp", "1"),), classification=Classification.SIGNED,
        ))

        log_api_request(request.method, request.path, request.params)

        assert "apikey-123" not in caplog.text
        assert "secret-456" not in caplog.text
        assert request.params[-1][1] not in caplog.text

    @pytest.mark.parametrize("status,level", [(200, logging.DEBUG), (400, logging.WARNING)])
    def test_response_level(self, caplog, status, level):
        caplog.set_level(logging.DEBUG, logger="binance_client")

        log_api_response("GET", "/api/v3/ping", status, 0.01)

        assert caplog.records[-1].levelno == level

    def test_websocket_error_level(self, caplog):
        caplog.set_level(logging.DEBUG, logger="binance_client")

        log_websocket_event("btcusdt@trade", "error", "boom")

        assert caplog.records[-1].levelno == logging.ERROR
        assert "boom" in caplog.text


class TestRedaction:
    """Tests for redact_secrets() and RedactingFilter"""

    def test_signature_in_url_redacted(self):
        url = "https://api.binance.com/api/v3/account?timestamp=1&signature=" + "c8" * 32

        assert redact_secrets(url) == \
            "https://api.binance.com/api/v3/account?timestamp=1&signature=***REDACTED***"

    def test_api_key_header_redacted(self):
        text = str({"X-MBX-APIKEY": "vmPUZE6mv9SD5VNH"})

        redacted = redact_secrets(text)

        assert "vmPUZE6mv9SD5VNH" not in redacted
        assert REDACTED in redacted

    def test_plain_text_untouched(self):
        assert redact_secrets("Listen key created (user_stream)") == "Listen key created (user_stream)"

    def test_filter_rewrites_record(self):
        """Verify formatted arguments are redacted too"""
        record = logging.LogRecord(
            "binance_client.test", logging.ERROR, __file__, 1,
            "failed %s", ("GET /x?signature=" + "ab" * 32,), None
        )

        assert RedactingFilter().filter(record) is True
        assert record.getMessage() == "failed GET /x?signature=***REDACTED***"
