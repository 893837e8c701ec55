"""Error taxonomy for calls to the external inference service.

Provider SDKs disagree on how they report rate limits and quota
exhaustion, so classification looks at status codes, error codes and
message text together:

- TRANSIENT: timeouts, 429, 503/5xx, RESOURCE_EXHAUSTED without quota
  wording. Retried by the scheduler.
- QUOTA: the account is out of quota. Never retried.
- FATAL: everything else. Propagated unchanged.
"""

import asyncio
import enum
import re
from typing import Any


class InterestEngineError(Exception):
    """Base class for engine errors."""


class ExternalServiceError(InterestEngineError):
    """A call to the external inference service failed."""

    def __init__(self, message: str, operation: str = "external") -> None:
        super().__init__(message)
        self.operation = operation


class TransientExternalError(ExternalServiceError):
    """Transient failures persisted past the retry budget."""

    def __init__(
        self,
        message: str,
        operation: str = "external",
        attempts: int = 0,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(message, operation)
        self.attempts = attempts
        self.last_error = last_error


class QuotaExhaustedError(ExternalServiceError):
    """The provider quota is exhausted; retrying will not help."""


class ErrorKind(str, enum.Enum):
    TRANSIENT = "transient"
    QUOTA = "quota"
    FATAL = "fatal"


_QUOTA_MARKERS = (
    "quota_exceeded",
    "quota exceeded",
    "daily quota",
    "insufficient_quota",
)

_TRANSIENT_STATUS_RE = re.compile(r"\b(?:429|50[0234])\b")

_TRANSIENT_MARKERS = (
    "timed out",
    "timeout",
    "resource_exhausted",
    "rate limit",
)

_RETRY_IN_RE = re.compile(r"retry in ([\d.]+)\s*s", re.IGNORECASE)
_RETRY_DELAY_RE = re.compile(r"retryDelay[\"'\s:]+([\d.]+)", re.IGNORECASE)


def _status_of(exc: BaseException) -> int | None:
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _text_of(exc: BaseException) -> str:
    parts = [str(exc)]
    code = getattr(exc, "code", None)
    if isinstance(code, str):
        parts.append(code)
    body = getattr(exc, "body", None)
    if body:
        parts.append(str(body))
    return " ".join(parts)


def classify_error(exc: BaseException) -> ErrorKind:
    """Decide whether an exception is worth retrying."""
    if isinstance(exc, QuotaExhaustedError):
        return ErrorKind.QUOTA
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TRANSIENT

    text = _text_of(exc).lower()
    if any(marker in text for marker in _QUOTA_MARKERS):
        return ErrorKind.QUOTA

    status = _status_of(exc)
    if status is not None and (status == 429 or status >= 500):
        return ErrorKind.TRANSIENT
    if _TRANSIENT_STATUS_RE.search(text):
        return ErrorKind.TRANSIENT
    if any(marker in text for marker in _TRANSIENT_MARKERS):
        return ErrorKind.TRANSIENT

    return ErrorKind.FATAL


def _parse_seconds(value: Any) -> float | None:
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        try:
            seconds = float(value.strip().rstrip("s"))
        except ValueError:
            return None
    else:
        return None
    return seconds if seconds > 0 else None


def retry_hint_seconds(exc: BaseException) -> float | None:
    """Extract the provider's suggested retry delay, if it gave one.

    Looks at a Retry-After header, RetryInfo details in the error body,
    and "retry in Xs" / "retryDelay: X" wording in the message.
    """
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if headers is not None:
        try:
            hinted = _parse_seconds(headers.get("retry-after"))
        except AttributeError:
            hinted = None
        if hinted is not None:
            return hinted

    body = getattr(exc, "body", None)
    details: Any = None
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            details = error.get("details")
    details = details or getattr(exc, "details", None)
    if isinstance(details, dict):
        details = [details]
    if isinstance(details, list):
        for detail in details:
            if isinstance(detail, dict) and "RetryInfo" in str(detail.get("@type", "")):
                hinted = _parse_seconds(detail.get("retryDelay"))
                if hinted is not None:
                    return hinted

    text = str(exc)
    for pattern in (_RETRY_IN_RE, _RETRY_DELAY_RE):
        match = pattern.search(text)
        if match:
            hinted = _parse_seconds(match.group(1))
            if hinted is not None:
                return hinted
    return None


class MalformedResponseError(InterestEngineError):
    """The inference service answered with something we cannot parse."""
