"""Declared configuration and service definition models."""

from src.shared.models.declared import (
    BillingPortalConfig,
    PriceConfig,
    ProductConfig,
    ProductInternal,
    StripeAccountConfig,
    WebhookConfig,
)
from src.shared.models.service import (
    CustomDomain,
    FunctionDefinition,
    ServiceDefinition,
)

__all__ = [
    "WebhookConfig",
    "ProductInternal",
    "PriceConfig",
    "ProductConfig",
    "BillingPortalConfig",
    "StripeAccountConfig",
    "CustomDomain",
    "FunctionDefinition",
    "ServiceDefinition",
]
