"""Tests for external error classification and retry hints."""

from types import SimpleNamespace

import pytest

from interest_engine.scheduler.errors import (
    ErrorKind,
    QuotaExhaustedError,
    classify_error,
    retry_hint_seconds,
)


class ProviderError(Exception):
    """Shape of an SDK error: message plus optional status, body and response."""

    def __init__(self, message, status_code=None, body=None, response=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.response = response


class TestClassifyError:
    @pytest.mark.parametrize(
        "exc",
        [
            TimeoutError(),
            ProviderError("Too Many Requests", status_code=429),
            ProviderError("Service Unavailable", status_code=503),
            ProviderError("Bad gateway", status_code=502),
            Exception("429 RESOURCE_EXHAUSTED"),
            Exception("Request timed out"),
            Exception("rate limit reached for requests"),
            Exception("HTTP 503: upstream unavailable"),
        ],
    )
    def test_transient(self, exc):
        assert classify_error(exc) == ErrorKind.TRANSIENT

    @pytest.mark.parametrize(
        "exc",
        [
            QuotaExhaustedError("out of quota"),
            ProviderError("You exceeded your current quota", status_code=429,
                          body={"code": "insufficient_quota"}),
            Exception("429 RESOURCE_EXHAUSTED: Daily quota exceeded"),
            Exception("QUOTA_EXCEEDED for project"),
        ],
    )
    def test_quota_wins_over_transient(self, exc):
        assert classify_error(exc) == ErrorKind.QUOTA

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("bad input"),
            ProviderError("Invalid API key", status_code=401),
            ProviderError("Bad request", status_code=400),
            Exception("processed 4290 tokens before failing"),
            Exception("upstream request 15031 rejected"),
        ],
    )
    def test_fatal(self, exc):
        assert classify_error(exc) == ErrorKind.FATAL


class TestRetryHint:
    def test_retry_after_header(self):
        response = SimpleNamespace(headers={"retry-after": "12"}, status_code=429)
        assert retry_hint_seconds(ProviderError("slow down", response=response)) == 12.0

    def test_retry_info_in_body(self):
        body = {
            "error": {
                "details": [
                    {"@type": "type.googleapis.com/google.rpc.ErrorInfo"},
                    {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "31s"},
                ]
            }
        }
        assert retry_hint_seconds(ProviderError("exhausted", body=body)) == 31.0

    def test_retry_in_message(self):
        exc = Exception("429 Too Many Requests. Please retry in 4.5s.")
        assert retry_hint_seconds(exc) == 4.5

    def test_retry_delay_in_message(self):
        exc = Exception("RESOURCE_EXHAUSTED {'retryDelay': '17s'}")
        assert retry_hint_seconds(exc) == 17.0

    def test_no_hint(self):
        assert retry_hint_seconds(Exception("503 Service Unavailable")) is None

    def test_zero_hint_ignored(self):
        response = SimpleNamespace(headers={"retry-after": "0"})
        assert retry_hint_seconds(ProviderError("x", response=response)) is None
