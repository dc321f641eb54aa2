"""Operator-facing deployment summary.

Each reconciler records what it did as small change records; the summary
renders them into the text blocks the hosting tool prints after a deploy
or remove.
"""

from dataclasses import dataclass, field
from enum import Enum

TAB = "  "
NEWLINE = f"\n{TAB}"


class ChangeAction(str, Enum):
    """What happened to a remote entity during this run."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    ACTIVE = "ACTIVE"
    MARK_FOR_DELETION = "MARK_FOR_DELETION"
    DELETE = "DELETE"


@dataclass(frozen=True)
class WebhookChange:
    action: ChangeAction
    webhook_id: str
    lambda_name: str | None
    url: str | None
    events: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PriceChange:
    action: ChangeAction
    price_id: str
    env_variable_name: str | None
    country: str | None
    amount: int | None
    currency: str | None
    interval: str | None


@dataclass(frozen=True)
class ProductChange:
    action: ChangeAction
    product_id: str
    name: str | None
    internal_id: str | None
    prices: list[PriceChange] = field(default_factory=list)


@dataclass(frozen=True)
class PortalChange:
    action: ChangeAction
    configuration_id: str
    internal_id: str | None
    env_variable_name: str | None


def _render_webhook(change: WebhookChange) -> str:
    block = (
        f"{change.action.value}{NEWLINE}"
        f"webhookId:{NEWLINE}{TAB}{change.webhook_id}{NEWLINE}"
        f"lambda:{NEWLINE}{TAB}{change.lambda_name}{NEWLINE}"
        f"url:{NEWLINE}{TAB}{change.url}{NEWLINE}"
    )
    if change.events:
        events = f"{NEWLINE}{TAB}".join(change.events)
        block += f"events:{NEWLINE}{TAB}{events}{NEWLINE}"
    return block


def _render_price(price: PriceChange) -> str:
    indent = f"{NEWLINE}{TAB}{TAB}"
    return (
        f"{price.price_id} ({price.action.value}){indent}"
        f"envVariable:{price.env_variable_name}{indent}"
        f"country:{price.country}{indent}"
        f"price:{price.amount}{indent}"
        f"currency:{price.currency}{indent}"
        f"interval:{price.interval}"
    )


def _render_product(change: ProductChange) -> str:
    prices = f"{NEWLINE}{TAB}".join(_render_price(price) for price in change.prices)
    return (
        f"PRODUCT {change.action.value}{NEWLINE}"
        f"productId:{NEWLINE}{TAB}{change.product_id}{NEWLINE}"
        f"name:{NEWLINE}{TAB}{change.name}{NEWLINE}"
        f"internalId:{NEWLINE}{TAB}{change.internal_id}{NEWLINE}"
        f"prices:{NEWLINE}{TAB}{prices}"
    )


def _render_portal(change: PortalChange) -> str:
    return (
        f"PORTAL {change.action.value}{NEWLINE}"
        f"configurationId:{NEWLINE}{TAB}{change.configuration_id}{NEWLINE}"
        f"internalId:{NEWLINE}{TAB}{change.internal_id}{NEWLINE}"
        f"envVariable:{NEWLINE}{TAB}{change.env_variable_name}{NEWLINE}"
    )


@dataclass
class DeploymentSummary:
    """Everything one account's reconciler did in one phase."""

    account_id: str
    webhooks: list[WebhookChange] = field(default_factory=list)
    products: list[ProductChange] = field(default_factory=list)
    portals: list[PortalChange] = field(default_factory=list)

    @property
    def header(self) -> str:
        return (
            f"{NEWLINE}Stripe deployment summary for account {self.account_id}:"
            f"{NEWLINE}--------------------------------{NEWLINE}"
        )

    def render(self) -> list[str]:
        """Text blocks: header, webhooks, products, then portals."""
        return [
            self.header,
            *(_render_webhook(change) for change in self.webhooks),
            *(_render_product(change) for change in self.products),
            *(_render_portal(change) for change in self.portals),
        ]
