"""Stripe adapter built on the StripeClient service interface.

One StripeClient per declared account; the client is created lazily so
`validate` never needs a usable API key.
"""

import logging
from typing import Any

import stripe

from src.shared.adapters.base import BillingAdapter, Page

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2023-10-16"


def _list_params(limit: int, starting_after: str | None, **extra: Any) -> dict[str, Any]:
    params: dict[str, Any] = {"limit": limit, **extra}
    if starting_after:
        params["starting_after"] = starting_after
    return params


def _to_page(response: Any) -> Page:
    return Page(data=list(response.data), has_more=bool(response.has_more))


class StripeAdapter(BillingAdapter):
    """Billing adapter for one Stripe account."""

    def __init__(
        self,
        account_id: str,
        api_key: str,
        api_version: str = DEFAULT_API_VERSION,
        client: stripe.StripeClient | None = None,
    ):
        super().__init__(account_id)
        self._api_key = api_key
        self.api_version = api_version
        self._client = client

    @property
    def client(self) -> stripe.StripeClient:
        if self._client is None:
            self._client = stripe.StripeClient(
                self._api_key, stripe_version=self.api_version
            )
            logger.debug(
                "Stripe client created",
                extra={"account_id": self.account_id, "api_version": self.api_version},
            )
        return self._client

    def list_webhook_endpoints(
        self, limit: int, starting_after: str | None = None
    ) -> Page:
        return _to_page(
            self.client.webhook_endpoints.list(
                params=_list_params(limit, starting_after)
            )
        )

    def create_webhook_endpoint(self, params: dict[str, Any]) -> Any:
        return self.client.webhook_endpoints.create(params=params)

    def update_webhook_endpoint(self, webhook_id: str, params: dict[str, Any]) -> Any:
        return self.client.webhook_endpoints.update(webhook_id, params=params)

    def delete_webhook_endpoint(self, webhook_id: str) -> Any:
        return self.client.webhook_endpoints.delete(webhook_id)

    def list_products(self, limit: int, starting_after: str | None = None) -> Page:
        return _to_page(
            self.client.products.list(params=_list_params(limit, starting_after))
        )

    def create_product(self, params: dict[str, Any]) -> Any:
        return self.client.products.create(params=params)

    def update_product(self, product_id: str, params: dict[str, Any]) -> Any:
        return self.client.products.update(product_id, params=params)

    def list_prices(
        self, product_id: str, limit: int, starting_after: str | None = None
    ) -> Page:
        return _to_page(
            self.client.prices.list(
                params=_list_params(limit, starting_after, product=product_id)
            )
        )

    def create_price(self, params: dict[str, Any]) -> Any:
        return self.client.prices.create(params=params)

    def list_portal_configurations(
        self, limit: int, starting_after: str | None = None
    ) -> Page:
        return _to_page(
            self.client.billing_portal.configurations.list(
                params=_list_params(limit, starting_after)
            )
        )

    def create_portal_configuration(self, params: dict[str, Any]) -> Any:
        return self.client.billing_portal.configurations.create(params=params)

    def update_portal_configuration(
        self, configuration_id: str, params: dict[str, Any]
    ) -> Any:
        return self.client.billing_portal.configurations.update(
            configuration_id, params=params
        )
