"""Lifecycle hook dispatch.

Maps the deployment tool's lifecycle events to StripeDeployment phases:

    before:package:initialize        -> validate
    before:package:compileFunctions  -> deploy
    after:deploy:deploy              -> post_deploy
    before:remove:remove             -> remove
"""

import logging

from src.plugin.config import PluginSettings
from src.reconciler.orchestrator import AdapterFactory, StripeDeployment
from src.shared.errors import ConfigurationError, PluginError
from src.shared.logging_utils import get_safe_error_info
from src.shared.models.service import ServiceDefinition
from src.shared.secrets import ParameterStoreSecrets

logger = logging.getLogger(__name__)

HOOKS = {
    "before:package:initialize": "validate",
    "before:package:compileFunctions": "deploy",
    "after:deploy:deploy": "post_deploy",
    "before:remove:remove": "remove",
}


def run_hook(
    event_name: str,
    service: ServiceDefinition,
    settings: PluginSettings,
    adapter_factory: AdapterFactory | None = None,
    secret_store: ParameterStoreSecrets | None = None,
) -> list[str]:
    """Run the phase bound to a lifecycle event.

    Returns:
        Summary text blocks (empty for validate)

    Raises:
        ConfigurationError: Unknown event or invalid configuration
        PluginError: Any other plugin failure, after logging its code
    """
    phase = HOOKS.get(event_name)
    if phase is None:
        raise ConfigurationError(f"Unknown lifecycle event: {event_name}", field="event")

    deployment = StripeDeployment(
        service, settings, adapter_factory=adapter_factory, secret_store=secret_store
    )
    logger.info("Running lifecycle hook", extra={"event": event_name, "phase": phase})

    try:
        result = getattr(deployment, phase)()
    except PluginError as e:
        logger.error(
            "Stripe plugin hook failed",
            extra={
                "event": event_name,
                "code": e.code.value,
                "field": e.field,
                **get_safe_error_info(e),
            },
        )
        raise

    return result or []
