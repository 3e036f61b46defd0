"""
ErrorClassifier - Maps raw transport failures to typed, retry-aware failures.

Status code mapping:
- 408, 504           -> TIMEOUT (retryable)
- 429                -> RATE_LIMITED (retryable)
- 500, 502, 503      -> SERVER_ERROR (retryable)
- 400, 404, 422      -> CLIENT_ERROR
- anything else      -> UNEXPECTED
"""

import asyncio
from typing import Any

import httpx
from loguru import logger

from recipe_manager.services.errors import DependencyCallError, RequestTimeoutError
from recipe_manager.services.outcomes import FailureKind

TIMEOUT_CODES = frozenset({408, 504})
RATE_LIMITED_CODES = frozenset({429})
SERVER_ERROR_CODES = frozenset({500, 502, 503})
CLIENT_ERROR_CODES = frozenset({400, 404, 422})

# Bodies are diagnostics only, keep messages short.
MAX_BODY_CHARS = 200


class ErrorClassifier:
    """
    Classifies dependency failures.

    Usage:
        classifier = ErrorClassifier(default_dependency="recipe-scraper")

        kind = classifier.classify(503, "upstream down")   # SERVER_ERROR
        error = classifier.to_error("recipe-scraper", 503, "upstream down")
        raise error
    """

    def __init__(self, default_dependency: str = "recipe-scraper"):
        self.default_dependency = default_dependency

    @staticmethod
    def classify(status_code: int | None, body: Any = None) -> FailureKind:
        """Map a status code to a FailureKind. Never raises."""
        if status_code in TIMEOUT_CODES:
            return FailureKind.TIMEOUT
        if status_code in RATE_LIMITED_CODES:
            return FailureKind.RATE_LIMITED
        if status_code in SERVER_ERROR_CODES:
            return FailureKind.SERVER_ERROR
        if status_code in CLIENT_ERROR_CODES:
            return FailureKind.CLIENT_ERROR
        return FailureKind.UNEXPECTED

    def attribute(self, dependency: str | None) -> str:
        """Dependency name for a failure, falling back to the configured default."""
        return dependency or self.default_dependency

    def to_error(
        self,
        dependency: str | None,
        status_code: int | None,
        body: Any = None,
    ) -> DependencyCallError:
        """Build the typed failure for an HTTP error response."""
        service_id = self.attribute(dependency)
        kind = self.classify(status_code, body)
        text = read_body(body)

        if kind is FailureKind.TIMEOUT:
            message = f"Timeout from {service_id} (HTTP {status_code})"
        elif kind is FailureKind.RATE_LIMITED:
            message = f"Rate limit exceeded for {service_id}"
        elif kind is FailureKind.SERVER_ERROR:
            message = f"Server error in {service_id}: {text}"
        elif kind is FailureKind.CLIENT_ERROR:
            message = f"Client error for {service_id}: {text}"
        else:
            message = f"Unexpected error from {service_id}: {text}"

        return DependencyCallError(service_id, kind, message, status_code=status_code)

    def classify_exception(
        self,
        dependency: str | None,
        exc: BaseException,
        timeout: float | None = None,
    ) -> DependencyCallError:
        """Normalize any exception raised by an operation into a DependencyCallError."""
        service_id = self.attribute(dependency)

        if isinstance(exc, DependencyCallError):
            return exc

        if isinstance(exc, httpx.HTTPStatusError):
            return self.to_error(service_id, exc.response.status_code, exc.response)

        if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
            return RequestTimeoutError(service_id, timeout or 0.0)

        if isinstance(exc, httpx.TransportError):
            # No status code: connection refused, reset, protocol errors.
            return DependencyCallError(
                service_id,
                FailureKind.SERVER_ERROR,
                f"Transport error calling {service_id}: {type(exc).__name__}: {exc}",
            )

        return DependencyCallError(
            service_id,
            FailureKind.UNEXPECTED,
            f"Unexpected error from {service_id}: {type(exc).__name__}: {exc}",
        )


def read_body(body: Any) -> str:
    """Best-effort body text. Unreadable bodies become an empty string."""
    if body is None:
        return ""
    try:
        if isinstance(body, httpx.Response):
            text = body.text
        elif isinstance(body, (bytes, bytearray)):
            text = bytes(body).decode("utf-8")
        else:
            text = str(body)
    except Exception as e:
        logger.warning(f"Failed to extract response body: {e}")
        return ""
    return text[:MAX_BODY_CHARS]
