"""
Plugin Error Taxonomy
=====================

Exception hierarchy shared by the validation gate, the reconcilers and the
lifecycle hooks.

For On-Call Engineers:
    Error codes and their meanings:
    - CONFIGURATION_ERROR: Declared stripe/customDomain config is invalid.
      Nothing was changed in Stripe; fix serverless.yml and redeploy.
    - REFERENCE_ERROR: A webhook points at a function that does not exist
      or has no HTTP POST event.
    - MISSING_SECRET: Stripe created a webhook but returned no signing
      secret. The endpoint exists in Stripe; rerun the deploy.
    - SECRET_ERROR: SSM Parameter Store failure other than "not found".

    Stripe API failures are not wrapped; they surface as stripe.StripeError
    subclasses with the original Stripe request id.

For Developers:
    - Raise ConfigurationError for anything detectable before a remote call
    - Pass field= so the operator sees which key is wrong
    - Do not catch PluginError inside reconcilers; the hook runner logs it
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable codes attached to every PluginError."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    REFERENCE_ERROR = "REFERENCE_ERROR"
    MISSING_SECRET = "MISSING_SECRET"  # noqa: S105 - error code name
    SECRET_ERROR = "SECRET_ERROR"  # noqa: S105 - error code name


class PluginError(Exception):
    """Base exception for errors raised by the plugin itself."""

    code: ErrorCode = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ConfigurationError(PluginError):
    """
    Raised when declared configuration or plugin settings are invalid.

    On-Call Note:
        Always raised before any Stripe call, so the account is untouched.
    """

    code = ErrorCode.CONFIGURATION_ERROR

    def __init__(
        self,
        message: str,
        field: str | None = None,
        violations: list[str] | None = None,
    ):
        super().__init__(message, field=field)
        self.violations = violations or []


class FunctionReferenceError(PluginError):
    """Raised when a webhook references an unknown function or route."""

    code = ErrorCode.REFERENCE_ERROR


class MissingWebhookSecretError(PluginError):
    """Raised when Stripe returns a newly created webhook without a secret."""

    code = ErrorCode.MISSING_SECRET
