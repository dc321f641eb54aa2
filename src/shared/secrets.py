"""
Webhook Secret Store (SSM Parameter Store)
==========================================

Stripe reveals a webhook endpoint's signing secret exactly once, in the
response to the create call. This module persists that secret in SSM
Parameter Store so later deploys can inject it again without recreating the
endpoint.

For On-Call Engineers:
    If a deploy fails with SECRET_ERROR, check:
    1. Parameter exists:
       aws ssm get-parameter --name stripe-webhook-secret-<acct>-<service>-<stage>-<fn>
    2. Deploy role has ssm:GetParameter, ssm:PutParameter and kms:Decrypt
    3. Region matches provider.region in serverless.yml

    A missing parameter is NOT an error: the webhook is recreated and the
    new secret is stored. Deleting the parameter is the supported way to
    rotate a webhook secret.

For Developers:
    - get_secret() raises SecretNotFoundError for ParameterNotFound; the
      webhook reconciler is the only caller allowed to recover from it
    - Never log secret values, only sanitized parameter names
    - build_parameter_name() is also called by the validation gate

Security Notes:
    - Parameters are written as SecureString (KMS encrypted)
    - Reads always use WithDecryption=True
"""

import logging
import os
import re
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from src.shared.errors import ConfigurationError, ErrorCode, PluginError

logger = logging.getLogger(__name__)

# Retry configuration
RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",
    },
    connect_timeout=5,
    read_timeout=10,
)

PARAMETER_NAME_PREFIX = "stripe-webhook-secret"
PARAMETER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")

# SSM caps the full parameter ARN at 1011 characters. The ARN prefix
# (arn:aws:ssm:<region>:<account>:parameter/) is reserved from that budget.
MAX_PARAMETER_ARN_LENGTH = 1011
ARN_PREFIX_RESERVE = 80
MAX_PARAMETER_NAME_LENGTH = MAX_PARAMETER_ARN_LENGTH - ARN_PREFIX_RESERVE


def build_parameter_name(
    account_id: str, service: str, stage: str, function_name: str
) -> str:
    """
    Build the deterministic SSM parameter name for a webhook secret.

    Args:
        account_id: Stripe account id from the plugin config
        service: Serverless service name
        stage: Deployment stage
        function_name: Function receiving the webhook

    Returns:
        Name of the form stripe-webhook-secret-{account}-{service}-{stage}-{fn}

    Raises:
        ConfigurationError: If the name has characters SSM rejects or is
            longer than the parameter name budget
    """
    name = f"{PARAMETER_NAME_PREFIX}-{account_id}-{service}-{stage}-{function_name}"

    if not PARAMETER_NAME_PATTERN.match(name):
        raise ConfigurationError(
            f"SSM parameter name {name} does not match regex "
            f"{PARAMETER_NAME_PATTERN.pattern}",
            field="functionName",
        )

    if len(name) > MAX_PARAMETER_NAME_LENGTH:
        raise ConfigurationError(
            f"SSM parameter name {name[:60]}... is too long "
            f"({len(name)} > {MAX_PARAMETER_NAME_LENGTH} characters)",
            field="functionName",
        )

    return name


def _sanitize_parameter_name_for_log(name: str) -> str:
    """
    Sanitize a parameter name for logging.

    Keeps only the trailing function name so account ids do not end up in
    shared CI logs.

    Example:
        >>> _sanitize_parameter_name_for_log("stripe-webhook-secret-acct_1-api-dev-webhookHandler")
        'webhookHandler'
    """
    return name.rsplit("-", 1)[-1]


def get_ssm_client(region_name: str | None = None) -> Any:
    """
    Get an SSM client with retry configuration.

    Args:
        region_name: AWS region (defaults to CLOUD_REGION or AWS_REGION env var)

    Returns:
        boto3 SSM client
    """
    region = (
        region_name or os.environ.get("CLOUD_REGION") or os.environ.get("AWS_REGION")
    )
    if not region:
        raise ConfigurationError(
            "CLOUD_REGION or AWS_REGION environment variable must be set",
            field="region",
        )

    return boto3.client("ssm", region_name=region, config=RETRY_CONFIG)


class ParameterStoreSecrets:
    """
    Secret store backed by SSM Parameter Store.

    One instance per deploy run; the client is created lazily so building a
    deployment for `validate` never needs AWS credentials.
    """

    def __init__(self, region_name: str | None = None, client: Any = None):
        self.region_name = region_name
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_ssm_client(self.region_name)
        return self._client

    def get_secret(self, name: str) -> str:
        """
        Read a webhook secret.

        Args:
            name: Parameter name from build_parameter_name()

        Returns:
            The decrypted value. May be an empty string; the caller decides
            how to treat that.

        Raises:
            SecretNotFoundError: Parameter does not exist
            SecretAccessDeniedError: Deploy role lacks permission
            SecretRetrievalError: Any other SSM failure
        """
        safe_name = _sanitize_parameter_name_for_log(name)

        try:
            response = self.client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")

            if error_code == "ParameterNotFound":
                logger.info(
                    "Webhook secret parameter not found",
                    extra={"parameter": safe_name, "error_code": error_code},
                )
                raise SecretNotFoundError(f"Secret not found: {name}") from e

            if error_code in ("AccessDeniedException", "UnauthorizedAccess"):
                logger.error(
                    "Access denied to webhook secret parameter",
                    extra={"parameter": safe_name, "error_code": error_code},
                )
                raise SecretAccessDeniedError(
                    f"Access denied to secret: {name}"
                ) from e

            logger.error(
                "Failed to retrieve webhook secret parameter",
                extra={"parameter": safe_name, "error_code": error_code},
            )
            raise SecretRetrievalError(f"Failed to retrieve secret: {name}") from e

        value = response.get("Parameter", {}).get("Value") or ""

        logger.debug(
            "Webhook secret retrieved from Parameter Store",
            extra={"parameter": safe_name},
        )
        return value

    def put_secret(
        self, name: str, value: str, description: str, overwrite: bool = True
    ) -> None:
        """
        Store a webhook secret as a SecureString.

        Raises:
            SecretAccessDeniedError: Deploy role lacks permission
            SecretRetrievalError: Any other SSM failure
        """
        safe_name = _sanitize_parameter_name_for_log(name)

        try:
            self.client.put_parameter(
                Name=name,
                Description=description,
                Value=value,
                Type="SecureString",
                Overwrite=overwrite,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                "Failed to store webhook secret parameter",
                extra={"parameter": safe_name, "error_code": error_code},
            )
            if error_code in ("AccessDeniedException", "UnauthorizedAccess"):
                raise SecretAccessDeniedError(
                    f"Access denied to secret: {name}"
                ) from e
            raise SecretRetrievalError(f"Failed to store secret: {name}") from e

        logger.info(
            "Webhook secret stored in Parameter Store",
            extra={"parameter": safe_name},
        )


# Custom exceptions for better error handling
class SecretError(PluginError):
    """Base exception for secret-related errors."""

    code = ErrorCode.SECRET_ERROR


class SecretNotFoundError(SecretError):
    """Raised when a secret doesn't exist."""

    pass


class SecretAccessDeniedError(SecretError):
    """Raised when access to a secret is denied."""

    pass


class SecretRetrievalError(SecretError):
    """Raised for general secret retrieval errors."""

    pass
