"""Unit tests for the multi-account deployment orchestrator."""

import pytest
import stripe

from src.plugin.config import PluginSettings
from src.reconciler.orchestrator import StripeDeployment
from src.shared.adapters import StripeAdapter
from src.shared.models.service import ServiceDefinition
from tests.conftest import assert_error_logged
from tests.fixtures.mocks.mock_stripe import PRODUCTS, WEBHOOKS, MockStripeAdapter
from tests.fixtures.service_documents import (
    WEBHOOK_URL,
    account,
    make_document,
    product,
    webhook,
)

HEADER = "Stripe deployment summary for account"


def _multi_account_service():
    return ServiceDefinition.from_document(
        make_document(
            stripe=[
                account("acct_a", products=[product()]),
                account("acct_b", webhooks=[webhook(env_name="STRIPE_WEBHOOK_SECRET_B")]),
            ]
        )
    )


class AdapterPool:
    def __init__(self, **fail_on):
        self.adapters = {}
        self.fail_on = fail_on

    def __call__(self, declared):
        if declared.account_id not in self.adapters:
            failures = self.fail_on.get(declared.account_id, {})
            self.adapters[declared.account_id] = MockStripeAdapter(
                account_id=declared.account_id, fail_on=failures
            )
        return self.adapters[declared.account_id]


class TestStripeDeployment:
    def test_summaries_follow_declaration_order(self, secret_store):
        pool = AdapterPool()
        deployment = StripeDeployment(
            _multi_account_service(), PluginSettings(), pool, secret_store
        )

        blocks = deployment.deploy()

        headers = [b for b in blocks if HEADER in b]
        assert [h.strip().splitlines()[0] for h in headers] == [
            f"{HEADER} acct_a:",
            f"{HEADER} acct_b:",
        ]
        assert len(pool.adapters["acct_a"].all(PRODUCTS)) == 1
        assert pool.adapters["acct_b"].all(PRODUCTS) == []

    def test_multi_account_urls_carry_account_key(self, secret_store):
        pool = AdapterPool()
        StripeDeployment(_multi_account_service(), PluginSettings(), pool, secret_store).deploy()

        [webhook_b] = pool.adapters["acct_b"].all(WEBHOOKS)
        assert webhook_b["url"] == f"{WEBHOOK_URL}?stripeAccountKey=acct_b"

    def test_single_account_url_has_no_query(self, service, secret_store):
        pool = AdapterPool()
        StripeDeployment(service, PluginSettings(), pool, secret_store).deploy()

        [created] = pool.adapters["acct_test"].all(WEBHOOKS)
        assert created["url"] == WEBHOOK_URL

    def test_each_account_publishes_its_secret(self, secret_store):
        service = _multi_account_service()
        StripeDeployment(service, PluginSettings(), AdapterPool(), secret_store).deploy()

        environment = service.functions["webhookHandler"].environment
        assert environment["STRIPE_WEBHOOK_SECRET"].startswith("whsec_")
        assert environment["STRIPE_WEBHOOK_SECRET_B"].startswith("whsec_")

    def test_parallel_matches_sequential_order(self, secret_store):
        pool = AdapterPool()
        deployment = StripeDeployment(
            _multi_account_service(),
            PluginSettings(parallel_accounts=True),
            pool,
            secret_store,
        )

        blocks = deployment.deploy()

        headers = [b for b in blocks if HEADER in b]
        assert "acct_a" in headers[0]
        assert "acct_b" in headers[1]

    def test_parallel_failure_raised_after_other_accounts_finish(
        self, secret_store, caplog
    ):
        error = stripe.APIConnectionError("network down")
        pool = AdapterPool(acct_a={"create_product": error})
        deployment = StripeDeployment(
            _multi_account_service(),
            PluginSettings(parallel_accounts=True),
            pool,
            secret_store,
        )

        with pytest.raises(stripe.APIConnectionError):
            deployment.deploy()

        assert len(pool.adapters["acct_b"].all(WEBHOOKS)) == 1
        assert_error_logged(caplog, "Stripe phase failed for account")

    def test_sequential_failure_stops_later_accounts(self, secret_store):
        error = stripe.APIConnectionError("network down")
        pool = AdapterPool(acct_a={"create_product": error})
        deployment = StripeDeployment(
            _multi_account_service(), PluginSettings(), pool, secret_store
        )

        with pytest.raises(stripe.APIConnectionError):
            deployment.deploy()

        assert "acct_b" not in pool.adapters

    def test_plugin_identity_is_written_to_metadata(self, service, secret_store):
        pool = AdapterPool()
        settings = PluginSettings(plugin_identity="Billing Bot")

        StripeDeployment(service, settings, pool, secret_store).deploy()

        [created] = pool.adapters["acct_test"].all(WEBHOOKS)
        assert created["metadata"]["managedBy"] == "Billing Bot"

    def test_default_adapter_is_stripe(self, service):
        deployment = StripeDeployment(service, PluginSettings(api_version="2024-06-20"))

        adapter = deployment._adapter_factory(service.stripe[0])

        assert isinstance(adapter, StripeAdapter)
        assert adapter.account_id == "acct_test"
        assert adapter.api_version == "2024-06-20"

    def test_secret_store_uses_service_region(self, service):
        deployment = StripeDeployment(service, PluginSettings(region="eu-west-1"))
        assert deployment.secret_store.region_name == "us-east-1"

    def test_secret_store_falls_back_to_settings_region(self):
        document = make_document()
        del document["provider"]["region"]
        service = ServiceDefinition.from_document(document)

        deployment = StripeDeployment(service, PluginSettings(region="eu-west-1"))

        assert deployment.secret_store.region_name == "eu-west-1"
