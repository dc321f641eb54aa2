"""Billing provider adapters."""

from src.shared.adapters.base import MAX_PAGE_SIZE, BillingAdapter, Page
from src.shared.adapters.stripe_adapter import DEFAULT_API_VERSION, StripeAdapter

__all__ = [
    "BillingAdapter",
    "Page",
    "MAX_PAGE_SIZE",
    "StripeAdapter",
    "DEFAULT_API_VERSION",
]
