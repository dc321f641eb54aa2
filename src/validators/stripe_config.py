"""Pre-flight validation of the declared Stripe configuration.

Runs before any Stripe or SSM call. Every check produces a ValidationResult;
assert_valid() raises a single ConfigurationError listing every failure so
an operator can fix serverless.yml in one pass.

Checks:
    - stage, region and service name present and strings
    - custom.stripe present; accountId/apiKey per account, unique accountId
    - custom.customDomain with domainName and basePath
    - webhooks: required fields, non-empty unique events, unique
      functionName per account, valid SSM parameter name
    - products/prices: required fields, internal.id regex and uniqueness,
      interval in (month, year), non-negative integer amount
    - billing portals: required fields, envVariableName regex, unique
      internalId and envVariableName
    - no two products/prices/portals publish the same environment variable
"""

from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from dataclasses import dataclass
from enum import Enum

from src.shared.errors import ConfigurationError
from src.shared.models.declared import (
    BillingPortalConfig,
    ProductConfig,
    StripeAccountConfig,
    WebhookConfig,
)
from src.shared.models.service import ServiceDefinition
from src.shared.secrets import build_parameter_name

logger = logging.getLogger(__name__)


class ValidationStatus(Enum):
    """Status of a validation check."""

    FAIL = "fail"
    WARN = "warn"


@dataclass(frozen=True)
class ValidationResult:
    """One problem found in the declared configuration.

    Attributes:
        status: FAIL aborts the run, WARN is only logged
        field: Path of the offending key (e.g. "custom.stripe[0].webhooks[1].events")
        message: Human-readable description
    """

    status: ValidationStatus
    field: str
    message: str


# Pattern constants
IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]+$")
PRICE_INTERVALS = frozenset({"month", "year"})

STRIPE_PATH = "custom.stripe"
DOMAIN_PATH = "custom.customDomain"


def _fail(field: str, message: str) -> ValidationResult:
    return ValidationResult(ValidationStatus.FAIL, field, message)


def _warn(field: str, message: str) -> ValidationResult:
    return ValidationResult(ValidationStatus.WARN, field, message)


def _duplicates(values: list[str | None]) -> list[str]:
    counts = Counter(v for v in values if v)
    return sorted(value for value, count in counts.items() if count > 1)


def _account_path(service: ServiceDefinition, index: int) -> str:
    return f"{STRIPE_PATH}[{index}]" if service.multi_account else STRIPE_PATH


def validate_deployment(service: ServiceDefinition) -> list[ValidationResult]:
    """Validate stage, region and service name."""
    results = []
    for field, value in (
        ("provider.stage", service.stage),
        ("provider.region", service.region),
        ("service", service.service),
    ):
        if not value:
            results.append(_fail(field, f"{field} is required."))
        elif not isinstance(value, str):
            results.append(_fail(field, f"{field} must be a string."))
    return results


def validate_custom_domain(service: ServiceDefinition) -> list[ValidationResult]:
    """Validate the domain-manager config webhook URLs are built from."""
    domain = service.custom_domain
    if domain is None:
        return [_fail(DOMAIN_PATH, "Serverless Domain Manager required (custom.customDomain)")]

    results = []
    if not domain.domain_name:
        results.append(
            _fail(f"{DOMAIN_PATH}.domainName", "'domainName' is required in 'customDomain' config")
        )
    if not domain.base_path:
        results.append(
            _fail(f"{DOMAIN_PATH}.basePath", "'basePath' is required in 'customDomain' config")
        )
    return results


def validate_webhooks(
    service: ServiceDefinition, account: StripeAccountConfig, path: str
) -> list[ValidationResult]:
    """Validate one account's webhook list."""
    if account.webhooks is None:
        return [_fail(f"{path}.webhooks", "Stripe webhooks not found")]

    results = []
    for index, webhook in enumerate(account.webhooks):
        results.extend(
            _validate_webhook(service, account, webhook, f"{path}.webhooks[{index}]")
        )

    for name in _duplicates([w.function_name for w in account.webhooks]):
        results.append(
            _fail(f"{path}.webhooks", f"Function names must be unique: {name} is listed twice")
        )
    return results


def _validate_webhook(
    service: ServiceDefinition,
    account: StripeAccountConfig,
    webhook: WebhookConfig,
    path: str,
) -> list[ValidationResult]:
    results = []
    if not webhook.function_name:
        results.append(_fail(f"{path}.functionName", "Webhook functionName is required"))
    if not webhook.events:
        results.append(
            _fail(
                f"{path}.events",
                f"Function {webhook.function_name} does not have any events defined",
            )
        )
    else:
        for event in _duplicates(webhook.events):
            results.append(_fail(f"{path}.events", f"Event {event} is listed twice"))
    if not webhook.webhook_secret_env_variable_name:
        results.append(
            _fail(
                f"{path}.webhookSecretEnvVariableName",
                "webhookSecretEnvVariableName is required",
            )
        )

    deployment_known = all(
        isinstance(value, str) and value
        for value in (account.account_id, service.service, service.stage, webhook.function_name)
    )
    if deployment_known:
        try:
            build_parameter_name(
                account.account_id, service.service, service.stage, webhook.function_name
            )
        except ConfigurationError as e:
            results.append(_fail(f"{path}.functionName", e.message))
    return results


def validate_product(product: ProductConfig, path: str) -> list[ValidationResult]:
    """Validate one product and its price tiers."""
    results = []
    if not product.name:
        results.append(_fail(f"{path}.name", "Product name is required"))

    if product.internal is None:
        results.append(_fail(f"{path}.internal", "Product internal is required"))
    else:
        if not product.internal.id:
            results.append(_fail(f"{path}.internal.id", "Product internal.id is required"))
        elif not IDENTIFIER_PATTERN.match(product.internal.id):
            results.append(
                _fail(
                    f"{path}.internal.id",
                    f"Product internal.id {product.internal.id} does not match regex "
                    f"{IDENTIFIER_PATTERN.pattern}",
                )
            )
        if not product.internal.description:
            results.append(
                _fail(f"{path}.internal.description", "Product internal.description is required")
            )

    tuples: dict[tuple, list[str | None]] = defaultdict(list)
    for index, price in enumerate(product.prices):
        price_path = f"{path}.prices[{index}]"
        if not price.id:
            results.append(_fail(f"{price_path}.id", "Price id is required"))
        if price.price is None:
            results.append(_fail(f"{price_path}.price", "Price price is required"))
        elif price.price < 0:
            results.append(_fail(f"{price_path}.price", "Price price must not be negative"))
        if not price.currency:
            results.append(_fail(f"{price_path}.currency", "Price currency is required"))
        if not price.country_code:
            results.append(_fail(f"{price_path}.countryCode", "Price countryCode is required"))
        if price.interval is not None and price.interval not in PRICE_INTERVALS:
            results.append(
                _fail(
                    f"{price_path}.interval",
                    f"Price interval {price.interval} must be one of "
                    f"{', '.join(sorted(PRICE_INTERVALS))}",
                )
            )

        key = (
            price.country_code,
            price.price,
            price.currency.lower() if price.currency else None,
            price.interval,
        )
        tuples[key].append(price.id)

    for key, price_ids in tuples.items():
        if len(price_ids) > 1:
            results.append(
                _warn(
                    f"{path}.prices",
                    f"Prices {', '.join(str(p) for p in price_ids)} have identical "
                    "country, amount, currency and interval and resolve to the same "
                    "Stripe price",
                )
            )
    return results


def validate_portal(portal: BillingPortalConfig, path: str) -> list[ValidationResult]:
    """Validate one customer portal configuration."""
    results = []
    if not portal.env_variable_name:
        results.append(_fail(f"{path}.envVariableName", "Portal envVariableName is required"))
    elif not IDENTIFIER_PATTERN.match(portal.env_variable_name):
        results.append(
            _fail(
                f"{path}.envVariableName",
                f"Portal envVariableName {portal.env_variable_name} does not match regex "
                f"{IDENTIFIER_PATTERN.pattern}",
            )
        )
    if not portal.configuration:
        results.append(_fail(f"{path}.configuration", "Portal configuration is required"))
    if not portal.internal_id:
        results.append(_fail(f"{path}.internalId", "Portal internalId is required"))
    return results


def validate_stack_uniqueness(service: ServiceDefinition) -> list[ValidationResult]:
    """Uniqueness rules that span every declared account."""
    accounts = service.stripe or []
    products = [p for a in accounts for p in a.products]
    portals = [p for a in accounts for p in a.billing_portals]
    results = []

    for account_id in _duplicates([a.account_id for a in accounts]):
        results.append(_fail(STRIPE_PATH, f"Account ids must be unique: {account_id}"))

    for internal_id in _duplicates([p.internal.id for p in products if p.internal]):
        results.append(
            _fail(STRIPE_PATH, f"Product internal ids must be unique: {internal_id}")
        )
    for internal_id in _duplicates([p.internal_id for p in portals]):
        results.append(_fail(STRIPE_PATH, f"Portal ids must be unique: {internal_id}"))
    for name in _duplicates([p.env_variable_name for p in portals]):
        results.append(
            _fail(STRIPE_PATH, f"Portal envVariableNames must be unique: {name}")
        )

    # product ids, price ids and portal ids share the provider environment
    published: dict[str, set[str]] = defaultdict(set)
    counts: Counter = Counter()
    for product in products:
        if product.internal and product.internal.id:
            published[product.internal.id].add("product")
            counts[product.internal.id] += 1
        for price in product.prices:
            if price.id:
                published[price.id].add("price")
                counts[price.id] += 1
    for portal in portals:
        if portal.env_variable_name:
            published[portal.env_variable_name].add("portal")
            counts[portal.env_variable_name] += 1

    for name in sorted(published):
        kinds = published[name]
        if counts[name] > 1 and kinds not in ({"product"}, {"portal"}):
            results.append(
                _fail(
                    STRIPE_PATH,
                    f"Environment variable {name} is published by more than one "
                    "product, price or portal",
                )
            )

    secret_targets = [
        f"{w.function_name}.{w.webhook_secret_env_variable_name}"
        for a in accounts
        for w in a.webhooks or []
        if w.function_name and w.webhook_secret_env_variable_name
    ]
    for target in _duplicates(secret_targets):
        results.append(
            _fail(
                STRIPE_PATH,
                f"Webhook secret variable {target} is written by more than one account",
            )
        )
    return results


def validate_service(service: ServiceDefinition) -> list[ValidationResult]:
    """Run every check and return all problems found."""
    results = validate_deployment(service)

    if service.stripe is None:
        results.append(_fail(STRIPE_PATH, "Plugin configuration is missing."))
        return results
    if not service.stripe:
        results.append(_fail(STRIPE_PATH, "At least one Stripe account is required."))
        return results

    results.extend(validate_custom_domain(service))

    for index, account in enumerate(service.stripe):
        path = _account_path(service, index)
        if not account.api_key:
            results.append(_fail(f"{path}.apiKey", "Stripe API key is required."))
        if not account.account_id:
            results.append(_fail(f"{path}.accountId", "Stripe account ID is required."))

        results.extend(validate_webhooks(service, account, path))
        for product_index, product in enumerate(account.products):
            results.extend(validate_product(product, f"{path}.products[{product_index}]"))
        for portal_index, portal in enumerate(account.billing_portals):
            results.extend(
                validate_portal(portal, f"{path}.billingPortals[{portal_index}]")
            )

    results.extend(validate_stack_uniqueness(service))
    return results


def assert_valid(service: ServiceDefinition) -> list[ValidationResult]:
    """Validate and raise on any failure.

    Returns:
        Warnings (already logged)

    Raises:
        ConfigurationError: Lists every failed check, first one as message
    """
    results = validate_service(service)
    failures = [r for r in results if r.status == ValidationStatus.FAIL]
    warnings = [r for r in results if r.status == ValidationStatus.WARN]

    for warning in warnings:
        logger.warning(warning.message, extra={"field": warning.field})

    if failures:
        violations = [f"{r.field}: {r.message}" for r in failures]
        logger.error(
            "Stripe configuration is invalid",
            extra={"violations": len(violations), "first_field": failures[0].field},
        )
        raise ConfigurationError(
            f"{failures[0].field}: {failures[0].message}",
            field=failures[0].field,
            violations=violations,
        )

    return warnings
