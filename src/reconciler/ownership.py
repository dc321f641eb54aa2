"""Ownership tagging for Stripe entities.

A Stripe account is routinely shared by several services, stages and
hand-made dashboard objects. Everything this plugin creates carries three
metadata tags (managedBy, service, stage); an entity is ours to update or
delete only when all three match the current deployment exactly.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_PLUGIN_IDENTITY = "Serverless Stripe"

MANAGED_BY_KEY = "managedBy"
SERVICE_KEY = "service"
STAGE_KEY = "stage"


def _metadata_of(entity: Any) -> Mapping[str, Any]:
    metadata = entity.get("metadata") if entity is not None else None
    return metadata or {}


def is_owned(entity: Any, stage: str, service: str, plugin_identity: str) -> bool:
    """Return True when the entity was created by this service and stage.

    Args:
        entity: Stripe record (StripeObject or dict) with optional metadata
        stage: Current deployment stage
        service: Current service name
        plugin_identity: managedBy value written by this plugin

    Example:
        >>> is_owned({"metadata": {"managedBy": "Serverless Stripe",
        ...     "service": "api", "stage": "dev"}}, "dev", "api", "Serverless Stripe")
        True
    """
    # An unset expectation must never match an absent tag
    if not (stage and service and plugin_identity):
        return False

    metadata = _metadata_of(entity)
    return (
        metadata.get(MANAGED_BY_KEY) == plugin_identity
        and metadata.get(SERVICE_KEY) == service
        and metadata.get(STAGE_KEY) == stage
    )


@dataclass(frozen=True)
class OwnershipTag:
    """The base tag set for one deployment."""

    plugin_identity: str
    service: str
    stage: str

    def metadata(self, **discriminators: str) -> dict[str, str]:
        """Base tags plus entity-specific discriminators (lambda, internalId, ...)."""
        return {
            **discriminators,
            STAGE_KEY: self.stage,
            SERVICE_KEY: self.service,
            MANAGED_BY_KEY: self.plugin_identity,
        }

    def owns(self, entity: Any) -> bool:
        return is_owned(entity, self.stage, self.service, self.plugin_identity)

    def filter_owned(self, entities: list[Any]) -> list[Any]:
        return [entity for entity in entities if self.owns(entity)]
