"""
Webhook Reconciler
==================

Keeps the Stripe webhook endpoints of one account in line with the
`webhooks` list of serverless.yml.

For On-Call Engineers:
    Deploy phases touching webhooks:
    1. before:package:compileFunctions - create/update declared endpoints,
       tag undeclared ones with metadata toBeDeleted=true
    2. after:deploy:deploy - delete every endpoint still tagged
    3. before:remove:remove - delete every endpoint owned by the stage

    If a deploy fails between 1 and 2, tagged endpoints keep receiving
    events until the next successful deploy. That is intended: the old
    routes are still live until CloudFormation finishes.

    "Webhook secret not found, recreating webhook" means the SSM parameter
    was deleted or never written. A new endpoint and secret are created and
    the old endpoint is swept after deploy.

For Developers:
    - Endpoints are matched on metadata.lambda, never on URL
    - SecretNotFoundError is the only store error recovered here
    - Secrets go to the function environment and SSM, never to logs
"""

import logging
from typing import Any
from urllib.parse import urlencode

from src.reconciler.ownership import OwnershipTag
from src.reconciler.pagination import collect_all
from src.reconciler.summary import ChangeAction, WebhookChange
from src.shared.adapters.base import MAX_PAGE_SIZE, BillingAdapter
from src.shared.environment import EnvironmentSink
from src.shared.errors import ConfigurationError, MissingWebhookSecretError
from src.shared.logging_utils import log_expected_warning, sanitize_for_log
from src.shared.models.declared import WebhookConfig
from src.shared.models.service import ServiceDefinition
from src.shared.secrets import (
    ParameterStoreSecrets,
    SecretNotFoundError,
    build_parameter_name,
)

logger = logging.getLogger(__name__)

LAMBDA_KEY = "lambda"
TO_BE_DELETED_KEY = "toBeDeleted"
ACCOUNT_QUERY_PARAMETER = "stripeAccountKey"


def is_marked_for_deletion(webhook: Any) -> bool:
    metadata = webhook.get("metadata") or {}
    return str(metadata.get(TO_BE_DELETED_KEY, "")).lower() == "true"


def _lambda_of(webhook: Any) -> str | None:
    return (webhook.get("metadata") or {}).get(LAMBDA_KEY)


def _change_for(action: ChangeAction, webhook: Any) -> WebhookChange:
    return WebhookChange(
        action=action,
        webhook_id=webhook["id"],
        lambda_name=_lambda_of(webhook),
        url=webhook.get("url"),
        events=list(webhook.get("enabled_events") or []),
    )


class WebhookReconciler:
    """Reconciles declared webhooks for one Stripe account."""

    def __init__(
        self,
        adapter: BillingAdapter,
        secret_store: ParameterStoreSecrets,
        service: ServiceDefinition,
        ownership: OwnershipTag,
        sink: EnvironmentSink,
        webhooks: list[WebhookConfig],
        include_account_query: bool = False,
        page_size: int = MAX_PAGE_SIZE,
    ):
        self.adapter = adapter
        self.secret_store = secret_store
        self.service = service
        self.ownership = ownership
        self.sink = sink
        self.webhooks = webhooks
        self.include_account_query = include_account_query
        self.page_size = page_size

    @property
    def account_id(self) -> str:
        return self.adapter.account_id

    def list_owned(self) -> list[Any]:
        """All webhook endpoints in the account owned by this stage."""
        endpoints = collect_all(self.adapter.list_webhook_endpoints, self.page_size)
        return self.ownership.filter_owned(endpoints)

    def parameter_name(self, function_name: str) -> str:
        return build_parameter_name(
            self.account_id, self.ownership.service, self.ownership.stage, function_name
        )

    def webhook_url(self, function_name: str) -> str:
        """Public URL Stripe should deliver events for a function to.

        Raises:
            ConfigurationError: customDomain is missing or incomplete
            FunctionReferenceError: Function missing or without POST event
        """
        domain = self.service.custom_domain
        if domain is None or not domain.domain_name or not domain.base_path:
            raise ConfigurationError(
                "'domainName' and 'basePath' are required in 'customDomain' config",
                field="customDomain",
            )

        path = self.service.resolve_post_path(function_name)
        url = f"https://{domain.domain_name}/{domain.base_path}{path}"
        if self.include_account_query:
            url += "?" + urlencode({ACCOUNT_QUERY_PARAMETER: self.account_id})
        return url

    def reconcile(self) -> list[WebhookChange]:
        """Create/update declared endpoints and tag the rest for deletion.

        Returns:
            One change per declared webhook (CREATE or UPDATE) followed by
            one MARK_FOR_DELETION per undeclared owned endpoint
        """
        webhooks_before = self.list_owned()
        changes: list[WebhookChange] = []
        touched: set[str] = set()

        for webhook_config in self.webhooks:
            change = self._reconcile_one(webhook_config, webhooks_before)
            touched.add(change.webhook_id)
            changes.append(change)

        untouched = [w for w in webhooks_before if w["id"] not in touched]
        logger.info(
            "Marking webhooks not in config for deletion",
            extra={"account_id": self.account_id, "count": len(untouched)},
        )

        for webhook in untouched:
            if not is_marked_for_deletion(webhook):
                metadata = dict(webhook.get("metadata") or {})
                metadata[TO_BE_DELETED_KEY] = "true"
                self.adapter.update_webhook_endpoint(
                    webhook["id"], {"metadata": metadata}
                )
            logger.info(
                "Marked webhook for deletion",
                extra={"webhook_id": webhook["id"], "lambda": _lambda_of(webhook)},
            )
            changes.append(_change_for(ChangeAction.MARK_FOR_DELETION, webhook))

        return changes

    def remove_webhooks_not_in_config(self) -> list[WebhookChange]:
        """Delete endpoints tagged during deploy; report the active ones."""
        webhooks = self.list_owned()
        active = [w for w in webhooks if not is_marked_for_deletion(w)]
        marked = [w for w in webhooks if is_marked_for_deletion(w)]

        logger.info(
            "Found webhooks marked for deletion",
            extra={"account_id": self.account_id, "count": len(marked)},
        )

        changes = [_change_for(ChangeAction.ACTIVE, w) for w in active]
        changes.extend(self._delete_all(marked))
        return changes

    def remove_webhooks(self) -> list[WebhookChange]:
        """Delete every endpoint owned by this stage (stack removal)."""
        webhooks = self.list_owned()
        logger.info(
            "Removing webhooks",
            extra={"account_id": self.account_id, "count": len(webhooks)},
        )
        return self._delete_all(webhooks)

    def _delete_all(self, webhooks: list[Any]) -> list[WebhookChange]:
        changes = []
        for webhook in webhooks:
            deleted = self.adapter.delete_webhook_endpoint(webhook["id"])
            logger.info("Deleted webhook", extra={"webhook_id": deleted["id"]})
            changes.append(
                WebhookChange(
                    action=ChangeAction.DELETE,
                    webhook_id=deleted["id"],
                    lambda_name=_lambda_of(webhook),
                    url=webhook.get("url"),
                )
            )
        return changes

    def _find_existing(self, function_name: str, webhooks: list[Any]) -> Any | None:
        # After a self-heal the old endpoint lingers until the sweep; prefer
        # the one that is not tagged
        matches = [w for w in webhooks if _lambda_of(w) == function_name]
        for webhook in matches:
            if not is_marked_for_deletion(webhook):
                return webhook
        return matches[0] if matches else None

    def _reconcile_one(
        self, webhook_config: WebhookConfig, webhooks_before: list[Any]
    ) -> WebhookChange:
        function_name = webhook_config.function_name
        events = webhook_config.events
        env_variable_name = webhook_config.webhook_secret_env_variable_name

        if not function_name:
            raise ConfigurationError("Webhook functionName is required", field="functionName")
        if not events:
            raise ConfigurationError(
                f"Function {function_name} does not have any events defined",
                field="events",
            )
        if not env_variable_name:
            raise ConfigurationError(
                "webhookSecretEnvVariableName is required",
                field="webhookSecretEnvVariableName",
            )

        url = self.webhook_url(function_name)
        parameter_name = self.parameter_name(function_name)
        params = {
            "url": url,
            "enabled_events": list(events),
            "metadata": self.ownership.metadata(**{LAMBDA_KEY: function_name}),
        }

        existing = self._find_existing(function_name, webhooks_before)
        secret = None
        if existing is not None:
            secret = self._read_secret(parameter_name, function_name)

        if existing is not None and secret:
            if is_marked_for_deletion(existing):
                # Stripe merges metadata; an empty value removes the key
                params["metadata"][TO_BE_DELETED_KEY] = ""
            webhook = self.adapter.update_webhook_endpoint(existing["id"], params)
            action = ChangeAction.UPDATE
            logger.info(
                "Updated webhook",
                extra={"webhook_id": webhook["id"], "lambda": function_name},
            )
        else:
            webhook, secret = self._create(params, parameter_name)
            action = ChangeAction.CREATE

        self.sink.set_function(function_name, env_variable_name, secret)
        logger.info(
            "Webhook secret published to function environment",
            extra={"lambda": function_name, "variable": env_variable_name},
        )

        return WebhookChange(
            action=action,
            webhook_id=webhook["id"],
            lambda_name=function_name,
            url=url,
            events=list(events),
        )

    def _read_secret(self, parameter_name: str, function_name: str) -> str | None:
        """Stored secret, or None when the webhook has to be recreated."""
        try:
            value = self.secret_store.get_secret(parameter_name)
        except SecretNotFoundError:
            log_expected_warning(
                logger,
                "Webhook secret not found, recreating webhook",
                extra={"lambda": sanitize_for_log(function_name)},
            )
            return None

        if not value:
            logger.warning(
                "Webhook secret is empty, recreating webhook",
                extra={"lambda": sanitize_for_log(function_name)},
            )
            return None

        return value

    def _create(self, params: dict[str, Any], parameter_name: str) -> tuple[Any, str]:
        webhook = self.adapter.create_webhook_endpoint(params)
        logger.info(
            "Created webhook",
            extra={"webhook_id": webhook["id"], "lambda": params["metadata"][LAMBDA_KEY]},
        )

        secret = webhook.get("secret")
        if not secret:
            raise MissingWebhookSecretError(f"Webhook {webhook['id']} secret is missing")

        self.secret_store.put_secret(
            parameter_name,
            secret,
            description=(
                "Webhook secret automatically created by "
                f"{self.ownership.plugin_identity}"
            ),
            overwrite=True,
        )
        return webhook, secret
