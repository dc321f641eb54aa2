"""Declared Stripe configuration (the `custom.stripe` block of serverless.yml).

Fields mirror the camelCase keys operators write in serverless.yml. Every
field is optional at the schema level; required-ness, regexes and
uniqueness are enforced by the validation gate so that all problems are
reported together with the offending key.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookConfig(BaseModel):
    """A Stripe webhook endpoint routed to one function."""

    model_config = ConfigDict(populate_by_name=True)

    function_name: str | None = Field(default=None, alias="functionName")
    events: list[str] | None = None
    webhook_secret_env_variable_name: str | None = Field(
        default=None, alias="webhookSecretEnvVariableName"
    )


class ProductInternal(BaseModel):
    """Stable identity of a product across deployments."""

    id: str | None = None
    description: str | None = None


class PriceConfig(BaseModel):
    """One price tier of a product.

    `id` is only the environment variable name the resolved Stripe price id
    is published under. Matching against Stripe uses the price's content.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    price: int | None = None  # minor units, e.g. 9900 = 99.00
    currency: str | None = None
    interval: str | None = None  # "month" | "year" | None for one-time
    country_code: str | None = Field(default=None, alias="countryCode")


class ProductConfig(BaseModel):
    """A Stripe product with its price tiers."""

    name: str | None = None
    internal: ProductInternal | None = None
    prices: list[PriceConfig] = Field(default_factory=list)


class BillingPortalConfig(BaseModel):
    """A Stripe customer portal configuration."""

    model_config = ConfigDict(populate_by_name=True)

    internal_id: str | None = Field(default=None, alias="internalId")
    env_variable_name: str | None = Field(default=None, alias="envVariableName")
    configuration: dict[str, Any] | None = None


class StripeAccountConfig(BaseModel):
    """Everything declared for one Stripe account."""

    model_config = ConfigDict(populate_by_name=True)

    account_id: str | None = Field(default=None, alias="accountId")
    api_key: str | None = Field(default=None, alias="apiKey", repr=False)
    webhooks: list[WebhookConfig] | None = None
    products: list[ProductConfig] = Field(default_factory=list)
    billing_portals: list[BillingPortalConfig] = Field(
        default_factory=list, alias="billingPortals"
    )
