"""Customer portal configuration reconciliation.

Portal configurations are upserted by metadata.internalId and their ids
published under the declared environment variable. They are never deleted.
"""

import logging
from typing import Any

from src.reconciler.ownership import OwnershipTag
from src.reconciler.pagination import collect_all
from src.reconciler.summary import ChangeAction, PortalChange
from src.shared.adapters.base import MAX_PAGE_SIZE, BillingAdapter
from src.shared.environment import EnvironmentSink
from src.shared.models.declared import BillingPortalConfig

logger = logging.getLogger(__name__)

INTERNAL_ID_KEY = "internalId"


class BillingPortalReconciler:
    """Reconciles declared portal configurations for one Stripe account."""

    def __init__(
        self,
        adapter: BillingAdapter,
        ownership: OwnershipTag,
        sink: EnvironmentSink,
        portals: list[BillingPortalConfig],
        page_size: int = MAX_PAGE_SIZE,
    ):
        self.adapter = adapter
        self.ownership = ownership
        self.sink = sink
        self.portals = portals
        self.page_size = page_size

    def list_owned(self) -> list[Any]:
        configurations = collect_all(
            self.adapter.list_portal_configurations, self.page_size
        )
        return self.ownership.filter_owned(configurations)

    def reconcile(self) -> list[PortalChange]:
        if not self.portals:
            return []

        portals_before = self.list_owned()
        changes = []

        for portal_config in self.portals:
            internal_id = portal_config.internal_id
            existing = next(
                (
                    p
                    for p in portals_before
                    if (p.get("metadata") or {}).get(INTERNAL_ID_KEY) == internal_id
                ),
                None,
            )

            params = {
                **(portal_config.configuration or {}),
                "metadata": self.ownership.metadata(**{INTERNAL_ID_KEY: internal_id}),
            }

            if existing is None:
                portal = self.adapter.create_portal_configuration(params)
                action = ChangeAction.CREATE
                logger.info(
                    "Created customer portal",
                    extra={"configuration_id": portal["id"], "internal_id": internal_id},
                )
            else:
                portal = self.adapter.update_portal_configuration(existing["id"], params)
                action = ChangeAction.UPDATE
                logger.info(
                    "Updated customer portal",
                    extra={"configuration_id": portal["id"], "internal_id": internal_id},
                )

            self.sink.set_provider(portal_config.env_variable_name, portal["id"])
            changes.append(
                PortalChange(
                    action=action,
                    configuration_id=portal["id"],
                    internal_id=internal_id,
                    env_variable_name=portal_config.env_variable_name,
                )
            )

        return changes
