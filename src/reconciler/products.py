"""Product and price reconciliation.

Products are upserted by metadata.internalId. Prices are never updated:
a declared tier either matches an existing price on its content
(country, amount, currency, interval plus the ownership tags) or a new
price is created. Existing subscribers keep the price they signed up for.

Nothing here deletes products or prices; stale ones stay in Stripe as part
of the billing history.
"""

import logging
from typing import Any

from src.reconciler.ownership import OwnershipTag
from src.reconciler.pagination import collect_all
from src.reconciler.summary import ChangeAction, PriceChange, ProductChange
from src.shared.adapters.base import MAX_PAGE_SIZE, BillingAdapter
from src.shared.environment import EnvironmentSink
from src.shared.models.declared import PriceConfig, ProductConfig

logger = logging.getLogger(__name__)

INTERNAL_ID_KEY = "internalId"
COUNTRY_KEY = "country"


def _interval_of(price: Any) -> str | None:
    recurring = price.get("recurring")
    return recurring.get("interval") if recurring else None


def _currency_of(price_config: PriceConfig) -> str | None:
    return price_config.currency.lower() if price_config.currency else None


def find_matching_price(
    price_config: PriceConfig, prices: list[Any], ownership: OwnershipTag
) -> Any | None:
    """Find a remote price identical to a declared tier.

    The declared `id` is not part of the match; two runs with the same tier
    content resolve to the same Stripe price even if the variable name
    changed.
    """
    currency = _currency_of(price_config)
    for price in prices:
        metadata = price.get("metadata") or {}
        if (
            ownership.owns(price)
            and metadata.get(COUNTRY_KEY) == price_config.country_code
            and price.get("unit_amount") == price_config.price
            and price.get("currency") == currency
            and _interval_of(price) == price_config.interval
        ):
            return price
    return None


class ProductReconciler:
    """Reconciles declared products and prices for one Stripe account."""

    def __init__(
        self,
        adapter: BillingAdapter,
        ownership: OwnershipTag,
        sink: EnvironmentSink,
        products: list[ProductConfig],
        page_size: int = MAX_PAGE_SIZE,
    ):
        self.adapter = adapter
        self.ownership = ownership
        self.sink = sink
        self.products = products
        self.page_size = page_size

    def list_owned(self) -> list[Any]:
        products = collect_all(self.adapter.list_products, self.page_size)
        return self.ownership.filter_owned(products)

    def list_prices(self, product_id: str) -> list[Any]:
        return collect_all(
            lambda limit, starting_after: self.adapter.list_prices(
                product_id, limit, starting_after
            ),
            self.page_size,
        )

    def reconcile(self) -> list[ProductChange]:
        """Upsert every declared product and resolve its prices."""
        if not self.products:
            return []

        products_before = self.list_owned()
        return [
            self._reconcile_product(product_config, products_before)
            for product_config in self.products
        ]

    def _reconcile_product(
        self, product_config: ProductConfig, products_before: list[Any]
    ) -> ProductChange:
        internal_id = product_config.internal.id
        existing = next(
            (
                p
                for p in products_before
                if (p.get("metadata") or {}).get(INTERNAL_ID_KEY) == internal_id
            ),
            None,
        )

        params = {
            "name": product_config.name,
            "metadata": self.ownership.metadata(**{INTERNAL_ID_KEY: internal_id}),
        }

        if existing is None:
            product = self.adapter.create_product(params)
            action = ChangeAction.CREATE
            logger.info(
                "Created product",
                extra={"product_id": product["id"], "internal_id": internal_id},
            )
        else:
            product = self.adapter.update_product(existing["id"], params)
            action = ChangeAction.UPDATE
            logger.info(
                "Updated product",
                extra={"product_id": product["id"], "internal_id": internal_id},
            )

        prices = self.list_prices(product["id"])
        price_changes = [
            self._resolve_price(product["id"], price_config, prices)
            for price_config in product_config.prices
        ]

        self.sink.set_provider(internal_id, product["id"])

        return ProductChange(
            action=action,
            product_id=product["id"],
            name=product.get("name"),
            internal_id=internal_id,
            prices=price_changes,
        )

    def _resolve_price(
        self, product_id: str, price_config: PriceConfig, prices: list[Any]
    ) -> PriceChange:
        price = find_matching_price(price_config, prices, self.ownership)

        if price is not None:
            action = ChangeAction.ACTIVE
            logger.info("Price already exists", extra={"price_id": price["id"]})
        else:
            params: dict[str, Any] = {
                "product": product_id,
                "unit_amount": price_config.price,
                "currency": _currency_of(price_config),
                "metadata": self.ownership.metadata(
                    **{COUNTRY_KEY: price_config.country_code}
                ),
            }
            if price_config.interval:
                params["recurring"] = {"interval": price_config.interval}

            price = self.adapter.create_price(params)
            # later identical tiers in this run reuse it
            prices.append(price)
            action = ChangeAction.CREATE
            logger.info(
                "Created price",
                extra={"price_id": price["id"], "product_id": product_id},
            )

        self.sink.set_provider(price_config.id, price["id"])

        return PriceChange(
            action=action,
            price_id=price["id"],
            env_variable_name=price_config.id,
            country=price_config.country_code,
            amount=price.get("unit_amount"),
            currency=price.get("currency"),
            interval=_interval_of(price),
        )
