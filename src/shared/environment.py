"""Environment injection sink.

Writes resolved Stripe identifiers into the service definition:

- provider environment (shared by every function): product, price and
  portal ids
- function environment: webhook signing secrets

Writes are serialised with a lock because accounts may be reconciled on
worker threads. Values are never logged, only variable names.
"""

import logging
import threading
from typing import Any

from src.shared.errors import FunctionReferenceError
from src.shared.models.service import ServiceDefinition

logger = logging.getLogger(__name__)


class EnvironmentSink:
    """Thread-safe writer for provider and function environments.

    Usage:
        sink = EnvironmentSink(service)
        sink.set_provider("subscription", "prod_123")
        sink.set_function("webhookHandler", "stripeWebhookSecret", secret)
    """

    def __init__(self, service: ServiceDefinition) -> None:
        self._service = service
        self._lock = threading.Lock()
        self._written: list[tuple[str | None, str]] = []

    def set_provider(self, name: str, value: str) -> None:
        """Publish a value to the provider-level environment."""
        with self._lock:
            self._service.environment[name] = value
            self._written.append((None, name))
        logger.debug("Provider environment variable set", extra={"variable": name})

    def set_function(self, function_name: str, name: str, value: str) -> None:
        """Publish a value to one function's environment.

        Raises:
            FunctionReferenceError: If the function is not defined
        """
        with self._lock:
            function = self._service.functions.get(function_name)
            if function is None:
                raise FunctionReferenceError(
                    f"Function {function_name} not found", field="functionName"
                )
            function.environment[name] = value
            self._written.append((function_name, name))
        logger.debug(
            "Function environment variable set",
            extra={"function": function_name, "variable": name},
        )

    def get_provider(self, name: str) -> Any:
        with self._lock:
            return self._service.environment.get(name)

    def get_function(self, function_name: str, name: str) -> Any:
        with self._lock:
            function = self._service.functions.get(function_name)
            return None if function is None else function.environment.get(name)

    @property
    def written(self) -> list[tuple[str | None, str]]:
        """(function or None for provider, variable name) pairs written so far."""
        with self._lock:
            return list(self._written)

    def snapshot(self) -> dict[str, Any]:
        """Copy of all environments, for writing the CLI output file."""
        with self._lock:
            return {
                "provider": dict(self._service.environment),
                "functions": {
                    name: dict(function.environment)
                    for name, function in self._service.functions.items()
                    if function.environment
                },
            }
