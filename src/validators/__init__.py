"""Pre-flight validation of the declared Stripe configuration."""

from src.validators.stripe_config import (
    IDENTIFIER_PATTERN,
    PRICE_INTERVALS,
    ValidationResult,
    ValidationStatus,
    assert_valid,
    validate_custom_domain,
    validate_deployment,
    validate_portal,
    validate_product,
    validate_service,
    validate_stack_uniqueness,
    validate_webhooks,
)

__all__ = [
    "IDENTIFIER_PATTERN",
    "PRICE_INTERVALS",
    "ValidationResult",
    "ValidationStatus",
    "assert_valid",
    "validate_custom_domain",
    "validate_deployment",
    "validate_portal",
    "validate_product",
    "validate_service",
    "validate_stack_uniqueness",
    "validate_webhooks",
]
