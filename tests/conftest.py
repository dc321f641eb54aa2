"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If tests fail with AWS credential errors:
    1. Ensure moto is properly mocking (check mock_aws usage)
    2. Verify AWS env vars are set in fixtures

    If tests fail with "Expected ERROR/WARNING log ... not found":
    1. The log message changed; update the pattern or the code
    2. Expected self-healing warnings are logged at DEBUG under pytest
       (see log_expected_warning)

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - No test talks to real Stripe or AWS: Stripe is MockStripeAdapter,
      SSM is moto
    - Add new shared fixtures here, test-specific fixtures in test files
"""

import logging
import os

import pytest
from moto import mock_aws

from src.plugin.config import PluginSettings
from src.reconciler.ownership import OwnershipTag
from src.shared.environment import EnvironmentSink
from src.shared.models.service import ServiceDefinition
from src.shared.secrets import ParameterStoreSecrets
from tests.fixtures.mocks.mock_stripe import MockStripeAdapter
from tests.fixtures.service_documents import make_document

# Set default test environment variables at module load time
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")

TEST_REGION = "us-east-1"


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def aws_credentials():
    """
    Set up mock AWS credentials for moto.

    Use this fixture when testing AWS SDK calls.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_REGION"] = TEST_REGION

    yield


@pytest.fixture
def secret_store(aws_credentials):
    """ParameterStoreSecrets backed by moto SSM."""
    with mock_aws():
        yield ParameterStoreSecrets(region_name=TEST_REGION)


@pytest.fixture
def stripe_adapter():
    """Empty in-memory Stripe account."""
    return MockStripeAdapter(account_id="acct_test")


@pytest.fixture
def settings():
    return PluginSettings()


@pytest.fixture
def service():
    """Service with one webhookHandler function and one declared webhook."""
    return ServiceDefinition.from_document(make_document())


@pytest.fixture
def ownership(service):
    return OwnershipTag(
        plugin_identity="Serverless Stripe", service=service.service, stage=service.stage
    )


@pytest.fixture
def sink(service):
    return EnvironmentSink(service)


# =============================================================================
# Log Validation Helpers
# =============================================================================
#
# Production code logs normally (never test-aware). Tests explicitly assert
# on expected logs using caplog.


def assert_error_logged(caplog, pattern: str):
    """
    Helper to assert an ERROR log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no ERROR log matches the pattern
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno >= logging.ERROR
    ), f"Expected ERROR log matching '{pattern}' not found"


def assert_warning_logged(caplog, pattern: str):
    """
    Helper to assert a WARNING log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no WARNING log matches the pattern
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.WARNING
    ), f"Expected WARNING log matching '{pattern}' not found"


def assert_no_secret_logged(caplog, secret: str):
    """Helper to assert a secret value never reached a log record."""
    for record in caplog.records:
        assert secret not in record.getMessage()
        assert secret not in str(record.__dict__)
