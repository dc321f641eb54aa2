"""Unit tests for the operator-facing deployment summary."""

from src.reconciler.summary import (
    NEWLINE,
    TAB,
    ChangeAction,
    DeploymentSummary,
    PortalChange,
    PriceChange,
    ProductChange,
    WebhookChange,
)

WEBHOOK = WebhookChange(
    action=ChangeAction.CREATE,
    webhook_id="we_1",
    lambda_name="webhookHandler",
    url="https://api.example.com/billing/webhook",
    events=["invoice.paid", "invoice.voided"],
)


class TestDeploymentSummary:
    def test_header_names_account(self):
        summary = DeploymentSummary(account_id="acct_1")
        assert summary.render() == [
            f"{NEWLINE}Stripe deployment summary for account acct_1:"
            f"{NEWLINE}--------------------------------{NEWLINE}"
        ]

    def test_webhook_block(self):
        [_, block] = DeploymentSummary(account_id="acct_1", webhooks=[WEBHOOK]).render()

        assert block.startswith("CREATE")
        assert f"webhookId:{NEWLINE}{TAB}we_1" in block
        assert f"lambda:{NEWLINE}{TAB}webhookHandler" in block
        assert f"url:{NEWLINE}{TAB}https://api.example.com/billing/webhook" in block
        assert f"events:{NEWLINE}{TAB}invoice.paid{NEWLINE}{TAB}invoice.voided" in block

    def test_deleted_webhook_has_no_events_block(self):
        deleted = WebhookChange(ChangeAction.DELETE, "we_2", "oldHandler", "https://x")
        [_, block] = DeploymentSummary(account_id="acct_1", webhooks=[deleted]).render()

        assert block.startswith("DELETE")
        assert "events:" not in block

    def test_blocks_are_ordered_webhooks_products_portals(self):
        summary = DeploymentSummary(
            account_id="acct_1",
            webhooks=[WEBHOOK],
            products=[
                ProductChange(
                    action=ChangeAction.UPDATE,
                    product_id="prod_1",
                    name="Subscription",
                    internal_id="subscription",
                    prices=[
                        PriceChange(
                            ChangeAction.ACTIVE, "price_1", "price_sweden", "SE", 9900,
                            "sek", "month",
                        )
                    ],
                )
            ],
            portals=[PortalChange(ChangeAction.CREATE, "bpc_1", "portal", "PORTAL_ID")],
        )

        blocks = summary.render()

        assert len(blocks) == 4
        assert blocks[1].startswith("CREATE")
        assert blocks[2].startswith("PRODUCT UPDATE")
        assert "price_1 (ACTIVE)" in blocks[2]
        assert "envVariable:price_sweden" in blocks[2]
        assert "interval:month" in blocks[2]
        assert blocks[3].startswith("PORTAL CREATE")
