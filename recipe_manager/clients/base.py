"""
Base external service client.
"""

from abc import ABC, abstractmethod

from recipe_manager.services.http import HttpTransport
from recipe_manager.services.invoker import ResilientInvoker


class BaseServiceClient(ABC):
    """
    Abstract base class for all external service clients.

    All clients should:
    - Route every call through the shared ResilientInvoker
    - Use HttpTransport for the HTTP exchange of a single attempt
    - Return Pydantic models
    - Never raise transport errors to business code
    """

    def __init__(
        self,
        invoker: ResilientInvoker,
        transport: HttpTransport,
        base_url: str,
    ):
        self.invoker = invoker
        self.transport = transport
        self.base_url = base_url.rstrip("/")

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Dependency name used for policy, cache, breaker and metrics."""
        ...

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def is_service_available(self) -> bool:
        """Whether the dependency is registered and currently enabled."""
        if not self.invoker.is_registered(self.service_id):
            return False
        return self.invoker.policy(self.service_id).enabled
