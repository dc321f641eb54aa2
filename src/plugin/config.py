"""
Stripe Plugin Configuration
===========================

Parses and validates plugin settings from environment variables and loads
the service definition (serverless.yml) from disk.

For On-Call Engineers:
    Environment variables:
    - STRIPE_PLUGIN_IDENTITY: managedBy tag written to Stripe metadata
      (default "Serverless Stripe"). Changing it orphans every existing
      webhook, product and portal; they will no longer be recognised.
    - STRIPE_API_VERSION: Pinned Stripe API version (default 2023-10-16)
    - STRIPE_PAGE_SIZE: List page size, 1-100 (default 100)
    - STRIPE_PARALLEL_ACCOUNTS: "true" to reconcile accounts concurrently
    - CLOUD_REGION / AWS_REGION: Region of the SSM parameter store, used
      when the service definition has no provider.region

For Developers:
    - Use get_settings() to load settings
    - Use load_service_definition() to read serverless.yml
    - Settings are validated on construction

Security Notes:
    - Stripe API keys come from the service definition, never from here
    - Loaded settings are logged; the service document is not
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from src.reconciler.ownership import DEFAULT_PLUGIN_IDENTITY
from src.shared.adapters.base import MAX_PAGE_SIZE
from src.shared.adapters.stripe_adapter import DEFAULT_API_VERSION
from src.shared.errors import ConfigurationError
from src.shared.logging_utils import redact_sensitive_fields
from src.shared.models.service import ServiceDefinition

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_VALUES = frozenset({"", "0", "false", "no", "off"})


@dataclass
class PluginSettings:
    """
    Settings shared by every phase of one plugin run.

    On-Call Note:
        region is only a fallback; provider.region of the service wins.
    """

    plugin_identity: str = DEFAULT_PLUGIN_IDENTITY
    api_version: str = DEFAULT_API_VERSION
    page_size: int = MAX_PAGE_SIZE
    parallel_accounts: bool = False
    region: str | None = None

    def __post_init__(self):
        """Validate settings after initialization."""
        self._validate()

    def _validate(self):
        """
        Raises:
            ConfigurationError: If any setting is invalid
        """
        if not self.plugin_identity or not self.plugin_identity.strip():
            raise ConfigurationError(
                "STRIPE_PLUGIN_IDENTITY must not be empty",
                field="STRIPE_PLUGIN_IDENTITY",
            )

        if not self.api_version:
            raise ConfigurationError(
                "STRIPE_API_VERSION must not be empty", field="STRIPE_API_VERSION"
            )

        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(
                f"STRIPE_PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}, "
                f"got {self.page_size}",
                field="STRIPE_PAGE_SIZE",
            )


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be true or false, got {value!r}", field=name)


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer, got {value!r}", field=name
        ) from e


def get_settings() -> PluginSettings:
    """
    Load and validate plugin settings from environment variables.

    Returns:
        PluginSettings

    Raises:
        ConfigurationError: If a variable is malformed or out of range

    Example:
        >>> settings = get_settings()
        >>> settings.plugin_identity
        'Serverless Stripe'
    """
    settings = PluginSettings(
        plugin_identity=os.environ.get("STRIPE_PLUGIN_IDENTITY", DEFAULT_PLUGIN_IDENTITY),
        api_version=os.environ.get("STRIPE_API_VERSION", DEFAULT_API_VERSION),
        page_size=_parse_int(
            "STRIPE_PAGE_SIZE", os.environ.get("STRIPE_PAGE_SIZE", str(MAX_PAGE_SIZE))
        ),
        parallel_accounts=_parse_bool(
            "STRIPE_PARALLEL_ACCOUNTS", os.environ.get("STRIPE_PARALLEL_ACCOUNTS", "")
        ),
        region=os.environ.get("CLOUD_REGION") or os.environ.get("AWS_REGION"),
    )

    logger.info(
        "Plugin settings loaded",
        extra={
            "plugin_identity": settings.plugin_identity,
            "api_version": settings.api_version,
            "page_size": settings.page_size,
            "parallel_accounts": settings.parallel_accounts,
        },
    )

    return settings


def load_document(path: str | Path) -> dict[str, Any]:
    """
    Parse a serverless.yml (or .json) file into a mapping.

    Raises:
        ConfigurationError: File missing, unparsable or not a mapping
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read service definition {path}: {e.strerror}", field="config"
        ) from e

    try:
        if path.suffix == ".json":
            document = json.loads(text)
        else:
            document = yaml.safe_load(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot parse service definition {path}", field="config"
        ) from e

    if not isinstance(document, dict):
        raise ConfigurationError(
            f"Service definition {path} must be a mapping", field="config"
        )
    return document


def load_service_definition(
    path: str | Path, stage: str | None = None, region: str | None = None
) -> ServiceDefinition:
    """Load serverless.yml and build the service definition.

    Args:
        path: Path to serverless.yml or a JSON equivalent
        stage: Stage override (--stage)
        region: Region override (--region)
    """
    document = load_document(path)
    service = ServiceDefinition.from_document(document, stage=stage, region=region)
    logger.info(
        "Service definition loaded",
        extra={
            "service": service.service,
            "stage": service.stage,
            "accounts": len(service.stripe or []),
        },
    )
    for account in service.stripe or []:
        logger.debug(
            "Stripe account declared",
            extra={
                "account": redact_sensitive_fields(
                    account.model_dump(
                        by_alias=True, include={"account_id", "api_key"}
                    )
                ),
                "webhooks": len(account.webhooks or []),
                "products": len(account.products),
                "portals": len(account.billing_portals),
            },
        )
    return service
