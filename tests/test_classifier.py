"""Unit tests for status-code and exception classification."""

import asyncio

import httpx
import pytest

from recipe_manager.services.classifier import ErrorClassifier, read_body
from recipe_manager.services.errors import DependencyCallError, RequestTimeoutError
from recipe_manager.services.outcomes import FailureKind


@pytest.mark.unit
class TestStatusClassification:
    """Test the status-code table."""

    @pytest.mark.parametrize(
        "status_code,kind",
        [
            (408, FailureKind.TIMEOUT),
            (504, FailureKind.TIMEOUT),
            (429, FailureKind.RATE_LIMITED),
            (500, FailureKind.SERVER_ERROR),
            (502, FailureKind.SERVER_ERROR),
            (503, FailureKind.SERVER_ERROR),
            (400, FailureKind.CLIENT_ERROR),
            (404, FailureKind.CLIENT_ERROR),
            (422, FailureKind.CLIENT_ERROR),
            (401, FailureKind.UNEXPECTED),
            (418, FailureKind.UNEXPECTED),
            (None, FailureKind.UNEXPECTED),
        ],
    )
    def test_classify(self, status_code, kind):
        assert ErrorClassifier.classify(status_code) is kind

    def test_retryable_kinds(self):
        assert FailureKind.TIMEOUT.retryable
        assert FailureKind.RATE_LIMITED.retryable
        assert FailureKind.SERVER_ERROR.retryable
        assert not FailureKind.CLIENT_ERROR.retryable
        assert not FailureKind.UNEXPECTED.retryable


@pytest.mark.unit
class TestErrorMessages:
    """Test typed errors built from responses."""

    @pytest.fixture
    def classifier(self):
        return ErrorClassifier(default_dependency="recipe-scraper")

    def test_rate_limited_message(self, classifier):
        error = classifier.to_error("user-management", 429, "slow down")
        assert str(error) == "Rate limit exceeded for user-management"
        assert error.retryable

    def test_server_error_includes_body(self, classifier):
        error = classifier.to_error("media-manager", 503, "upstream down")
        assert str(error) == "Server error in media-manager: upstream down"
        assert error.status_code == 503

    def test_client_error_not_retryable(self, classifier):
        error = classifier.to_error("media-manager", 404, "no such recipe")
        assert str(error) == "Client error for media-manager: no such recipe"
        assert not error.retryable

    def test_unexpected_status(self, classifier):
        error = classifier.to_error("media-manager", 401, "")
        assert error.kind is FailureKind.UNEXPECTED
        assert str(error).startswith("Unexpected error from media-manager")

    def test_unknown_dependency_attributed_to_default(self, classifier):
        error = classifier.to_error(None, 500, "boom")
        assert error.service_id == "recipe-scraper"
        assert "recipe-scraper" in str(error)

    def test_unreadable_body_becomes_empty(self, classifier):
        class Unreadable:
            def __str__(self):
                raise RuntimeError("stream already consumed")

        error = classifier.to_error("media-manager", 500, Unreadable())
        assert str(error) == "Server error in media-manager: "

    def test_body_is_truncated(self):
        assert len(read_body("x" * 1000)) == 200

    def test_body_from_response_and_bytes(self):
        response = httpx.Response(502, text="bad gateway")
        assert read_body(response) == "bad gateway"
        assert read_body(b"raw bytes") == "raw bytes"
        assert read_body(None) == ""


@pytest.mark.unit
class TestExceptionClassification:
    """Test normalization of raw exceptions."""

    @pytest.fixture
    def classifier(self):
        return ErrorClassifier()

    def test_http_status_error(self, classifier):
        request = httpx.Request("GET", "http://scraper.test/x")
        response = httpx.Response(503, text="maintenance", request=request)
        exc = httpx.HTTPStatusError("503", request=request, response=response)

        error = classifier.classify_exception("recipe-scraper", exc)
        assert error.kind is FailureKind.SERVER_ERROR
        assert error.status_code == 503
        assert "maintenance" in str(error)

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ReadTimeout("read timed out"),
            httpx.ConnectTimeout("connect timed out"),
            asyncio.TimeoutError(),
        ],
    )
    def test_timeouts(self, classifier, exc):
        error = classifier.classify_exception("recipe-scraper", exc, timeout=15.0)
        assert isinstance(error, RequestTimeoutError)
        assert error.kind is FailureKind.TIMEOUT
        assert error.timeout == 15.0

    def test_transport_error_without_status_is_retryable(self, classifier):
        error = classifier.classify_exception(
            "recipe-scraper", httpx.ConnectError("connection refused")
        )
        assert error.kind is FailureKind.SERVER_ERROR
        assert error.status_code is None
        assert error.retryable

    def test_other_exceptions_are_unexpected(self, classifier):
        error = classifier.classify_exception("recipe-scraper", ValueError("bad json"))
        assert error.kind is FailureKind.UNEXPECTED
        assert not error.retryable

    def test_classified_errors_pass_through(self, classifier):
        original = DependencyCallError("media-manager", FailureKind.CLIENT_ERROR, "nope", 404)
        assert classifier.classify_exception("recipe-scraper", original) is original
