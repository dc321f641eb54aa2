"""Unit tests for customer portal reconciliation."""

import pytest

from src.reconciler.billing_portal import BillingPortalReconciler
from src.reconciler.ownership import OwnershipTag
from src.reconciler.summary import ChangeAction
from src.shared.models.declared import BillingPortalConfig
from tests.fixtures.mocks.mock_stripe import PORTALS
from tests.fixtures.service_documents import portal


@pytest.fixture
def make_reconciler(stripe_adapter, ownership, sink):
    def _make(*declared):
        portals = [BillingPortalConfig.model_validate(p) for p in declared]
        return BillingPortalReconciler(stripe_adapter, ownership, sink, portals)

    return _make


class TestBillingPortalReconciler:
    def test_no_portals_makes_no_calls(self, make_reconciler, stripe_adapter):
        assert make_reconciler().reconcile() == []
        assert stripe_adapter.calls == []

    def test_creates_portal_and_publishes_id(self, make_reconciler, stripe_adapter, sink):
        changes = make_reconciler(portal()).reconcile()

        [stored] = stripe_adapter.all(PORTALS)
        assert changes[0].action == ChangeAction.CREATE
        assert stored["business_profile"] == {"headline": "Manage your subscription"}
        assert stored["metadata"]["internalId"] == "defaultPortal"
        assert stored["metadata"]["managedBy"] == "Serverless Stripe"
        assert sink.get_provider("BILLING_PORTAL_ID") == stored["id"]

    def test_existing_portal_is_updated(self, make_reconciler, stripe_adapter):
        first = make_reconciler(portal()).reconcile()
        stripe_adapter.reset()

        second = make_reconciler(portal()).reconcile()

        assert second[0].action == ChangeAction.UPDATE
        assert second[0].configuration_id == first[0].configuration_id
        assert stripe_adapter.calls_to("create_portal_configuration") == []
        assert len(stripe_adapter.all(PORTALS)) == 1

    def test_other_stage_portal_is_not_reused(self, make_reconciler, stripe_adapter):
        stripe_adapter.seed(
            PORTALS,
            metadata=OwnershipTag("Serverless Stripe", "billing-api", "prod").metadata(
                internalId="defaultPortal"
            ),
        )

        changes = make_reconciler(portal()).reconcile()

        assert changes[0].action == ChangeAction.CREATE
        assert len(stripe_adapter.all(PORTALS)) == 2

    def test_portals_are_never_deleted(self, make_reconciler, stripe_adapter):
        make_reconciler(portal()).reconcile()

        make_reconciler(portal(internal_id="otherPortal", env_name="OTHER_PORTAL")).reconcile()

        assert len(stripe_adapter.all(PORTALS)) == 2
        assert not any(name.startswith("delete_") for name in stripe_adapter.mutations)
