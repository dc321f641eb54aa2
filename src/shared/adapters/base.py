"""Base adapter for the remote billing API."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# Stripe caps list endpoints at 100 items per page
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page:
    """One page of a cursor-paginated listing."""

    data: list[Any] = field(default_factory=list)
    has_more: bool = False


class BillingAdapter(ABC):
    """Capability set the reconcilers need from the billing provider.

    Remote entities are returned as provider records that support
    mapping access (``entity["id"]``, ``entity.get("metadata")``).
    Provider errors are raised unchanged.
    """

    def __init__(self, account_id: str):
        """Initialize adapter for one provider account.

        Args:
            account_id: Account identifier from the plugin configuration
        """
        self.account_id = account_id

    # Webhook endpoints

    @abstractmethod
    def list_webhook_endpoints(
        self, limit: int, starting_after: str | None = None
    ) -> Page:
        pass

    @abstractmethod
    def create_webhook_endpoint(self, params: dict[str, Any]) -> Any:
        pass

    @abstractmethod
    def update_webhook_endpoint(self, webhook_id: str, params: dict[str, Any]) -> Any:
        pass

    @abstractmethod
    def delete_webhook_endpoint(self, webhook_id: str) -> Any:
        pass

    # Products and prices

    @abstractmethod
    def list_products(self, limit: int, starting_after: str | None = None) -> Page:
        pass

    @abstractmethod
    def create_product(self, params: dict[str, Any]) -> Any:
        pass

    @abstractmethod
    def update_product(self, product_id: str, params: dict[str, Any]) -> Any:
        pass

    @abstractmethod
    def list_prices(
        self, product_id: str, limit: int, starting_after: str | None = None
    ) -> Page:
        pass

    @abstractmethod
    def create_price(self, params: dict[str, Any]) -> Any:
        pass

    # Customer portal configurations

    @abstractmethod
    def list_portal_configurations(
        self, limit: int, starting_after: str | None = None
    ) -> Page:
        pass

    @abstractmethod
    def create_portal_configuration(self, params: dict[str, Any]) -> Any:
        pass

    @abstractmethod
    def update_portal_configuration(
        self, configuration_id: str, params: dict[str, Any]
    ) -> Any:
        pass
