from unittest.mock import MagicMock, patch

import pytest
import stripe

from config import Settings
from billing.billing import (
    Billing,
    BillingError,
    BillingNotConfigured,
    InactiveSubscription,
)


def _subscription(status="active", price_id="price_pro"):
    return stripe.Subscription.construct_from(
        {
            "id": "sub_123",
            "object": "subscription",
            "status": status,
            "items": {"object": "list", "data": [{"object": "subscription_item", "price": {"object": "price", "id": price_id}}]},
        },
        "sk_test_123",
    )


def _event(event_type, obj):
    return stripe.Event.construct_from(
        {"id": "evt_1", "object": "event", "type": event_type, "data": {"object": obj}},
        "sk_test_123",
    )


@pytest.fixture
def billing(settings):
    return Billing(settings)


class TestPlans:

    def test_plan_for_price_id(self, billing):
        assert billing.plan_for_price_id("price_pro") == "pro"
        assert billing.plan_for_price_id("price_basic") == "basic"
        assert billing.plan_for_price_id("price_other") == "basic"
        assert billing.plan_for_price_id(None) == "basic"

    def test_plan_from_identifier(self, billing):
        assert billing.plan_from_identifier("pro") == "pro"
        assert billing.plan_from_identifier("Basic") == "basic"
        assert billing.plan_from_identifier("price_pro") == "pro"
        assert billing.plan_from_identifier("price_basic") == "basic"
        assert billing.plan_from_identifier("enterprise") is None
        assert billing.plan_from_identifier(None) is None

    def test_public_plans(self, billing):
        plans = {p["id"]: p for p in billing.public_plans()}
        assert plans["basic"]["price"] == 19
        assert plans["pro"]["price"] == 49
        assert plans["basic"]["limits"] == {"analyses_per_month": 10, "advanced_features": False}
        assert plans["pro"]["limits"]["analyses_per_month"] == -1


class TestResolvePlan:

    @patch("billing.billing.stripe.Subscription.retrieve")
    def test_active_pro(self, mock_retrieve, billing):
        mock_retrieve.return_value = _subscription()
        assert billing.resolve_plan("sub_123") == "pro"
        mock_retrieve.assert_called_once_with("sub_123")

    @patch("billing.billing.stripe.Subscription.retrieve")
    def test_active_basic(self, mock_retrieve, billing):
        mock_retrieve.return_value = _subscription(price_id="price_basic")
        assert billing.resolve_plan("sub_123") == "basic"

    @patch("billing.billing.stripe.Subscription.retrieve")
    def test_trialing_counts_as_active(self, mock_retrieve, billing):
        mock_retrieve.return_value = _subscription(status="trialing")
        assert billing.resolve_plan("sub_123") == "pro"

    @patch("billing.billing.stripe.Subscription.retrieve")
    def test_inactive(self, mock_retrieve, billing):
        mock_retrieve.return_value = _subscription(status="canceled")
        with pytest.raises(InactiveSubscription) as exc:
            billing.resolve_plan("sub_123")
        assert exc.value.status == "canceled"

    @patch("billing.billing.stripe.Subscription.retrieve")
    def test_subscription_without_items_is_basic(self, mock_retrieve, billing):
        mock_retrieve.return_value = stripe.Subscription.construct_from(
            {"id": "sub_123", "object": "subscription", "status": "active"}, "sk_test_123"
        )
        assert billing.resolve_plan("sub_123") == "basic"

    @patch("billing.billing.stripe.Subscription.retrieve")
    def test_malformed_subscription_is_billing_error(self, mock_retrieve, billing):
        mock_retrieve.return_value = stripe.Subscription.construct_from(
            {"id": "sub_123", "object": "subscription", "status": "active", "items": {"data": [42]}},
            "sk_test_123",
        )
        with pytest.raises(BillingError):
            billing.resolve_plan("sub_123")

    @patch("billing.billing.stripe.Subscription.retrieve")
    def test_lookup_failure(self, mock_retrieve, billing):
        mock_retrieve.side_effect = Exception("No such subscription")
        with pytest.raises(BillingError):
            billing.resolve_plan("sub_missing")

    def test_not_configured(self):
        with pytest.raises(BillingNotConfigured):
            Billing(Settings()).resolve_plan("sub_123")


class TestCheckout:

    @patch("billing.billing.stripe.checkout.Session.create")
    def test_creates_subscription_session(self, mock_create, billing):
        mock_create.return_value = MagicMock(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

        result = billing.create_checkout_session("pro", customer_email="dev@example.com")

        assert result == {"sessionId": "cs_test_1", "url": "https://checkout.stripe.com/c/cs_test_1"}
        kwargs = mock_create.call_args.kwargs
        assert kwargs["mode"] == "subscription"
        assert kwargs["line_items"] == [{"price": "price_pro", "quantity": 1}]
        assert kwargs["customer_email"] == "dev@example.com"
        assert kwargs["success_url"] == "https://reporevenue.test/success?session_id={CHECKOUT_SESSION_ID}"
        assert kwargs["cancel_url"] == "https://reporevenue.test/pricing"
        assert kwargs["metadata"] == {"plan": "pro"}
        assert kwargs["subscription_data"] == {"metadata": {"plan": "pro"}}
        assert kwargs["allow_promotion_codes"] is True

    @patch("billing.billing.stripe.checkout.Session.create")
    def test_email_is_optional(self, mock_create, billing):
        mock_create.return_value = MagicMock(id="cs_test_2", url="https://checkout.stripe.com/c/cs_test_2")
        billing.create_checkout_session("basic")
        assert "customer_email" not in mock_create.call_args.kwargs

    @patch("billing.billing.stripe.checkout.Session.create")
    def test_stripe_failure(self, mock_create, billing):
        mock_create.side_effect = Exception("card declined")
        with pytest.raises(BillingError):
            billing.create_checkout_session("basic")

    def test_missing_price_id(self):
        billing = Billing(Settings(stripe_secret_key="sk_test_123"))
        with pytest.raises(BillingNotConfigured):
            billing.create_checkout_session("pro")


class TestWebhook:

    @patch("billing.billing.stripe.Webhook.construct_event")
    def test_construct_event_uses_secret(self, mock_construct, billing):
        mock_construct.return_value = {"type": "invoice.payment_succeeded"}
        assert billing.construct_event(b"{}", "t=1,v1=abc") == {"type": "invoice.payment_succeeded"}
        mock_construct.assert_called_once_with(b"{}", "t=1,v1=abc", "whsec_test")

    def test_construct_event_without_secret(self):
        with pytest.raises(BillingNotConfigured):
            Billing(Settings(stripe_secret_key="sk_test_123")).construct_event(b"{}", "sig")

    @pytest.mark.parametrize("event_type", [
        "checkout.session.completed",
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
        "invoice.payment_succeeded",
        "invoice.payment_failed",
    ])
    def test_handled_events(self, billing, event_type, capsys):
        event = _event(event_type, {"id": "obj_1", "status": "active"})
        assert billing.handle_event(event) is True
        assert "obj_1" in capsys.readouterr().out

    def test_unhandled_event(self, billing, capsys):
        event = _event("customer.created", {"id": "cus_1"})
        assert billing.handle_event(event) is False
        assert "Unhandled event type: customer.created" in capsys.readouterr().out

    def test_subscription_update_reports_activation(self, billing, capsys):
        event = _event("customer.subscription.updated", {"id": "sub_9", "status": "active"})
        assert billing.handle_event(event) is True
        out = capsys.readouterr().out
        assert "Subscription updated: sub_9" in out
        assert "Subscription is now active" in out

    def test_object_without_status(self, billing, capsys):
        event = _event("customer.subscription.updated", {"id": "sub_9"})
        assert billing.handle_event(event) is True
        assert "Subscription is now active" not in capsys.readouterr().out
