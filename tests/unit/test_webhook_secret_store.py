"""
Unit Tests for the Webhook Secret Store
=======================================

Tests ParameterStoreSecrets and parameter naming using moto mocks.

For On-Call Engineers:
    If tests fail with credential errors:
    1. Ensure the secret_store fixture (moto) is used
    2. Verify no real AWS calls are being made

For Developers:
    - ParameterNotFound must map to SecretNotFoundError; the webhook
      reconciler self-heals only on that type
    - Error branches moto cannot produce use a stubbed client
"""

from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError

from src.shared.errors import ConfigurationError
from src.shared.secrets import (
    MAX_PARAMETER_NAME_LENGTH,
    ParameterStoreSecrets,
    SecretAccessDeniedError,
    SecretNotFoundError,
    SecretRetrievalError,
    _sanitize_parameter_name_for_log,
    build_parameter_name,
    get_ssm_client,
)
from tests.conftest import assert_error_logged

PARAMETER = "stripe-webhook-secret-acct_test-billing-api-dev-webhookHandler"


def _client_error(code: str, operation: str = "GetParameter") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestBuildParameterName:
    def test_deterministic_name(self):
        name = build_parameter_name("acct_test", "billing-api", "dev", "webhookHandler")
        assert name == PARAMETER

    def test_rejects_characters_ssm_does_not_allow(self):
        with pytest.raises(ConfigurationError, match="does not match regex") as exc_info:
            build_parameter_name("acct_test", "billing api", "dev", "webhookHandler")
        assert exc_info.value.field == "functionName"

    def test_rejects_names_over_budget(self):
        long_function = "f" * MAX_PARAMETER_NAME_LENGTH
        with pytest.raises(ConfigurationError, match="too long"):
            build_parameter_name("acct_test", "billing-api", "dev", long_function)

    def test_accepts_name_at_budget(self):
        prefix = build_parameter_name("acct_test", "billing-api", "dev", "x")[:-1]
        function_name = "f" * (MAX_PARAMETER_NAME_LENGTH - len(prefix))
        name = build_parameter_name("acct_test", "billing-api", "dev", function_name)
        assert len(name) == MAX_PARAMETER_NAME_LENGTH


class TestGetSsmClient:
    def test_explicit_region(self, aws_credentials):
        client = get_ssm_client(region_name="eu-north-1")
        assert client.meta.region_name == "eu-north-1"

    def test_falls_back_to_env(self, aws_credentials, monkeypatch):
        monkeypatch.setenv("CLOUD_REGION", "eu-west-1")
        assert get_ssm_client().meta.region_name == "eu-west-1"

    def test_missing_region(self, monkeypatch):
        monkeypatch.delenv("CLOUD_REGION", raising=False)
        monkeypatch.delenv("AWS_REGION", raising=False)
        with pytest.raises(ConfigurationError, match="CLOUD_REGION or AWS_REGION"):
            get_ssm_client()


class TestParameterStoreSecrets:
    def test_put_then_get(self, secret_store):
        secret_store.put_secret(PARAMETER, "whsec_abc", description="test")
        assert secret_store.get_secret(PARAMETER) == "whsec_abc"

    def test_stored_as_secure_string(self, secret_store):
        secret_store.put_secret(PARAMETER, "whsec_abc", description="test")

        ssm = boto3.client("ssm", region_name="us-east-1")
        parameter = ssm.get_parameter(Name=PARAMETER)["Parameter"]
        assert parameter["Type"] == "SecureString"

    def test_overwrite(self, secret_store):
        secret_store.put_secret(PARAMETER, "whsec_old", description="test")
        secret_store.put_secret(PARAMETER, "whsec_new", description="test")
        assert secret_store.get_secret(PARAMETER) == "whsec_new"

    def test_not_found(self, secret_store):
        with pytest.raises(SecretNotFoundError, match="Secret not found"):
            secret_store.get_secret(PARAMETER)

    def test_access_denied(self, caplog):
        client = MagicMock()
        client.get_parameter.side_effect = _client_error("AccessDeniedException")
        store = ParameterStoreSecrets(client=client)

        with pytest.raises(SecretAccessDeniedError):
            store.get_secret(PARAMETER)

        assert_error_logged(caplog, "Access denied to webhook secret parameter")

    def test_other_errors(self, caplog):
        client = MagicMock()
        client.get_parameter.side_effect = _client_error("InternalServerError")
        store = ParameterStoreSecrets(client=client)

        with pytest.raises(SecretRetrievalError):
            store.get_secret(PARAMETER)

        assert_error_logged(caplog, "Failed to retrieve webhook secret parameter")

    def test_put_access_denied(self, caplog):
        client = MagicMock()
        client.put_parameter.side_effect = _client_error(
            "AccessDeniedException", "PutParameter"
        )
        store = ParameterStoreSecrets(client=client)

        with pytest.raises(SecretAccessDeniedError):
            store.put_secret(PARAMETER, "whsec_abc", description="test")

        assert_error_logged(caplog, "Failed to store webhook secret parameter")

    def test_empty_value_is_returned_as_empty_string(self):
        client = MagicMock()
        client.get_parameter.return_value = {"Parameter": {"Value": ""}}
        store = ParameterStoreSecrets(client=client)

        assert store.get_secret(PARAMETER) == ""

    def test_secret_value_never_logged(self, secret_store, caplog):
        caplog.set_level("DEBUG", logger="src")
        secret_store.put_secret(PARAMETER, "whsec_do_not_log", description="test")
        secret_store.get_secret(PARAMETER)

        assert "whsec_do_not_log" not in caplog.text

    def test_client_created_lazily(self):
        store = ParameterStoreSecrets(region_name="us-east-1")
        assert store._client is None


def test_sanitized_parameter_name_hides_account():
    assert _sanitize_parameter_name_for_log(PARAMETER) == "webhookHandler"
