"""
Call outcomes and per-call context.

Every attempt against a dependency ends in exactly one CallOutcome:
- Success: the operation returned a value
- Failure: the operation failed with a classified FailureKind
- TimedOut: the attempt was abandoned by the deadline governor
- CircuitOpen: the breaker refused admission, no I/O happened
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    """Classification of a failed dependency call."""

    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_ERROR = "SERVER_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    UNEXPECTED = "UNEXPECTED"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS = frozenset(
    {FailureKind.TIMEOUT, FailureKind.RATE_LIMITED, FailureKind.SERVER_ERROR}
)


@dataclass(frozen=True)
class CallOutcome:
    """Base class for attempt outcomes."""

    dependency: str
    latency: float = 0.0

    @property
    def succeeded(self) -> bool:
        return False


@dataclass(frozen=True)
class Success(CallOutcome):
    value: Any = None

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure(CallOutcome):
    kind: FailureKind = FailureKind.UNEXPECTED
    status_code: int | None = None
    message: str = ""

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


@dataclass(frozen=True)
class TimedOut(CallOutcome):
    timeout: float = 0.0

    @property
    def kind(self) -> FailureKind:
        return FailureKind.TIMEOUT

    @property
    def retryable(self) -> bool:
        return True


@dataclass(frozen=True)
class CircuitOpen(CallOutcome):
    reset_after_seconds: float = 0.0


class FallbackCause(str, Enum):
    """Why the call path gave up and asked for a fallback."""

    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"
    NON_RETRYABLE = "NON_RETRYABLE"
    DISABLED = "DISABLED"


@dataclass(frozen=True)
class FallbackReason:
    """Reason handed to the fallback resolver."""

    cause: FallbackCause
    kind: FailureKind | None = None
    status_code: int | None = None
    message: str = ""

    @property
    def retryable(self) -> bool:
        return self.kind.retryable if self.kind else False

    def __str__(self) -> str:
        if self.message:
            return f"{self.cause.value}: {self.message}"
        return self.cause.value


@dataclass(frozen=True)
class CallContext:
    """
    Explicit context passed through a call chain.

    Replaces thread-local logging context: whoever starts a request creates
    (or forwards) a CallContext and hands it to the invoker.
    """

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def ensure(cls, context: "CallContext | None") -> "CallContext":
        return context if context is not None else cls()
