"""
Service layer exceptions.
"""

from recipe_manager.services.outcomes import FailureKind


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class DependencyCallError(ServiceError):
    """A single attempt against a dependency failed."""

    def __init__(
        self,
        service_id: str,
        kind: FailureKind,
        message: str,
        status_code: int | None = None,
    ):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message, service_id=service_id)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class RequestTimeoutError(DependencyCallError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            service_id,
            FailureKind.TIMEOUT,
            f"Request to service '{service_id}' timed out after {timeout}s",
        )


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request blocked."""

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Circuit breaker open for service '{service_id}', "
            f"retry after {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


class DependencyUnavailableError(ServiceError):
    """
    Raised to callers of a non-degradable dependency once the call path gives up.

    This is the only failure a caller ever observes; raw transport exceptions
    never escape the invoker.
    """

    def __init__(
        self,
        service_id: str,
        kind: FailureKind | None,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
        circuit_open: bool = False,
    ):
        self.kind = kind
        self.status_code = status_code
        self.retryable = retryable
        self.circuit_open = circuit_open
        super().__init__(
            f"Dependency '{service_id}' unavailable: {message}",
            service_id=service_id,
        )
