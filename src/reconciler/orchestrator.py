"""
Stripe Deployment Orchestrator
==============================

Drives every declared Stripe account through one lifecycle phase.

For On-Call Engineers:
    Phases:
    - validate: configuration gate, no remote calls; runs before every
      other phase
    - deploy: portals, webhooks, products/prices per account; webhook
      secrets and resolved ids are written into the service environment
    - post_deploy: delete webhooks tagged toBeDeleted during deploy
    - remove: delete every webhook owned by this service and stage

    A failure aborts the account it happened in. Partial progress is not
    rolled back; the next successful deploy converges. With
    STRIPE_PARALLEL_ACCOUNTS=true the other accounts still finish and the
    first failure (in declaration order) is raised afterwards.

For Developers:
    - adapter_factory(account) returns the BillingAdapter for one account;
      tests pass a factory returning MockStripeAdapter
    - Summaries are always returned in declaration order

Security Notes:
    - API keys are handed to the adapter and never logged
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from src.plugin.config import PluginSettings
from src.reconciler.account import AccountReconciler
from src.reconciler.summary import DeploymentSummary
from src.shared.adapters.base import BillingAdapter
from src.shared.adapters.stripe_adapter import StripeAdapter
from src.shared.environment import EnvironmentSink
from src.shared.logging_utils import get_safe_error_info
from src.shared.models.declared import StripeAccountConfig
from src.shared.models.service import ServiceDefinition
from src.shared.secrets import ParameterStoreSecrets
from src.validators.stripe_config import assert_valid

logger = logging.getLogger(__name__)

# Upper bound on concurrently reconciled accounts
MAX_WORKERS = 4

AdapterFactory = Callable[[StripeAccountConfig], BillingAdapter]
Phase = Callable[[AccountReconciler], DeploymentSummary]


class StripeDeployment:
    """Entry point for the lifecycle phases of one service deployment.

    Usage:
        deployment = StripeDeployment(service, get_settings())
        deployment.validate()
        blocks = deployment.deploy()
        print("\\n".join(blocks))
    """

    def __init__(
        self,
        service: ServiceDefinition,
        settings: PluginSettings,
        adapter_factory: AdapterFactory | None = None,
        secret_store: ParameterStoreSecrets | None = None,
    ):
        self.service = service
        self.settings = settings
        self.sink = EnvironmentSink(service)
        self._adapter_factory = adapter_factory or self._stripe_adapter
        self._secret_store = secret_store

    def _stripe_adapter(self, account: StripeAccountConfig) -> BillingAdapter:
        return StripeAdapter(
            account.account_id, account.api_key, api_version=self.settings.api_version
        )

    @property
    def secret_store(self) -> ParameterStoreSecrets:
        if self._secret_store is None:
            region = self.service.region or self.settings.region
            self._secret_store = ParameterStoreSecrets(region_name=region)
        return self._secret_store

    def validate(self) -> None:
        """Run the configuration gate.

        Raises:
            ConfigurationError: Lists every violation found
        """
        assert_valid(self.service)
        logger.info(
            "Stripe configuration is valid",
            extra={"service": self.service.service, "stage": self.service.stage},
        )

    def deploy(self) -> list[str]:
        """Reconcile every account and inject ids and secrets."""
        self.validate()
        blocks = self._run("deploy", AccountReconciler.apply)
        logger.info(
            "Stripe values injected into service environment",
            extra={"variables": len(self.sink.written)},
        )
        return blocks

    def post_deploy(self) -> list[str]:
        """Delete webhooks tagged for deletion by the last deploy."""
        self.validate()
        return self._run("post_deploy", AccountReconciler.remove_webhooks_not_in_config)

    def remove(self) -> list[str]:
        """Delete every webhook owned by this service and stage."""
        self.validate()
        return self._run("remove", AccountReconciler.remove_webhooks)

    def _reconciler(self, account: StripeAccountConfig) -> AccountReconciler:
        return AccountReconciler(
            account,
            self.service,
            self._adapter_factory(account),
            self.secret_store,
            self.sink,
            plugin_identity=self.settings.plugin_identity,
            include_account_query=self.service.multi_account,
            page_size=self.settings.page_size,
        )

    def _run(self, phase_name: str, phase: Phase) -> list[str]:
        accounts = self.service.stripe or []
        logger.info(
            "Running Stripe phase",
            extra={"phase": phase_name, "accounts": len(accounts)},
        )

        if self.settings.parallel_accounts and len(accounts) > 1:
            summaries = self._run_parallel(phase_name, phase, accounts)
        else:
            summaries = [phase(self._reconciler(account)) for account in accounts]

        blocks: list[str] = []
        for summary in summaries:
            blocks.extend(summary.render())
        return blocks

    def _run_parallel(
        self,
        phase_name: str,
        phase: Phase,
        accounts: list[StripeAccountConfig],
    ) -> list[DeploymentSummary]:
        # The secret store client is created lazily; build it before fan-out
        _ = self.secret_store

        with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(accounts))) as executor:
            futures = [
                executor.submit(lambda a=account: phase(self._reconciler(a)))
                for account in accounts
            ]

        summaries = []
        first_error: Exception | None = None
        for account, future in zip(accounts, futures, strict=True):
            error = future.exception()
            if error is None:
                summaries.append(future.result())
                continue
            logger.error(
                "Stripe phase failed for account",
                extra={
                    "phase": phase_name,
                    "account_id": account.account_id,
                    **get_safe_error_info(error),
                },
            )
            if first_error is None:
                first_error = error

        if first_error is not None:
            raise first_error
        return summaries
