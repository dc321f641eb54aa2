"""Per-account reconciliation.

One AccountReconciler owns one Stripe account for one run. The account is
passed in explicitly and flows to every reconciler through its adapter, so
several accounts can be reconciled side by side.
"""

import logging

from src.reconciler.billing_portal import BillingPortalReconciler
from src.reconciler.ownership import OwnershipTag
from src.reconciler.products import ProductReconciler
from src.reconciler.summary import DeploymentSummary
from src.reconciler.webhooks import WebhookReconciler
from src.shared.adapters.base import BillingAdapter
from src.shared.environment import EnvironmentSink
from src.shared.models.declared import StripeAccountConfig
from src.shared.models.service import ServiceDefinition
from src.shared.secrets import ParameterStoreSecrets

logger = logging.getLogger(__name__)


class AccountReconciler:
    """Runs the deploy, post-deploy and remove phases for one account."""

    def __init__(
        self,
        account: StripeAccountConfig,
        service: ServiceDefinition,
        adapter: BillingAdapter,
        secret_store: ParameterStoreSecrets,
        sink: EnvironmentSink,
        plugin_identity: str,
        include_account_query: bool = False,
        page_size: int = 100,
    ):
        self.account = account
        self.ownership = OwnershipTag(
            plugin_identity=plugin_identity,
            service=service.service,
            stage=service.stage,
        )
        self.webhooks = WebhookReconciler(
            adapter,
            secret_store,
            service,
            self.ownership,
            sink,
            account.webhooks or [],
            include_account_query=include_account_query,
            page_size=page_size,
        )
        self.products = ProductReconciler(
            adapter, self.ownership, sink, account.products, page_size=page_size
        )
        self.portals = BillingPortalReconciler(
            adapter, self.ownership, sink, account.billing_portals, page_size=page_size
        )

    @property
    def account_id(self) -> str:
        return self.account.account_id

    def apply(self) -> DeploymentSummary:
        """Deploy phase: portals, then webhooks, then products and prices."""
        logger.info("Reconciling Stripe account", extra={"account_id": self.account_id})
        portals = self.portals.reconcile()
        webhooks = self.webhooks.reconcile()
        products = self.products.reconcile()
        return DeploymentSummary(
            account_id=self.account_id,
            webhooks=webhooks,
            products=products,
            portals=portals,
        )

    def remove_webhooks_not_in_config(self) -> DeploymentSummary:
        """Post-deploy phase: sweep endpoints tagged toBeDeleted."""
        return DeploymentSummary(
            account_id=self.account_id,
            webhooks=self.webhooks.remove_webhooks_not_in_config(),
        )

    def remove_webhooks(self) -> DeploymentSummary:
        """Remove phase: delete every endpoint owned by this stage."""
        return DeploymentSummary(
            account_id=self.account_id,
            webhooks=self.webhooks.remove_webhooks(),
        )
