import stripe


ACTIVE_STATUSES = {"active", "trialing"}

PLAN_DETAILS = {
    "basic": {
        "name": "Basic Plan",
        "price": 19,
        "features": [
            "10 repository analyses per month",
            "Basic monetization insights",
            "Email support",
            "Community access",
        ],
        "limits": {"analyses_per_month": 10, "advanced_features": False},
    },
    "pro": {
        "name": "Pro Plan",
        "price": 49,
        "features": [
            "Unlimited repository analyses",
            "Advanced AI-powered insights",
            "Priority support",
            "Custom monetization strategies",
            "API access",
            "Team collaboration",
        ],
        "limits": {"analyses_per_month": -1, "advanced_features": True},
    },
}

HANDLED_EVENTS = {
    "checkout.session.completed",
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
    "invoice.payment_succeeded",
    "invoice.payment_failed",
}


def _field(obj, key, default=None):
    # Stripe objects support `in` and item access but are not dicts.
    if obj is not None and key in obj:
        return obj[key]
    return default


class BillingError(Exception):
    """Raised when the payment gateway rejects or fails a request."""
    pass


class BillingNotConfigured(BillingError):
    pass


class InactiveSubscription(BillingError):
    def __init__(self, status):
        super().__init__(f"Subscription is not active ({status})")
        self.status = status


class Billing:
    """Thin wrapper over the Stripe SDK for plans, checkout and webhooks."""

    def __init__(self, settings):
        self.settings = settings
        if settings.stripe_secret_key:
            stripe.api_key = settings.stripe_secret_key

    @property
    def enabled(self) -> bool:
        return self.settings.stripe_enabled

    def price_id_for(self, plan):
        if plan == "basic":
            return self.settings.stripe_basic_price_id
        if plan == "pro":
            return self.settings.stripe_pro_price_id
        return None

    def plan_for_price_id(self, price_id):
        if price_id and price_id == self.settings.stripe_pro_price_id:
            return "pro"
        return "basic"

    def plan_from_identifier(self, value):
        """Accepts a plan name or one of the configured Stripe price ids."""
        if not value:
            return None
        key = str(value).strip()
        if key.lower() in PLAN_DETAILS:
            return key.lower()
        for plan in PLAN_DETAILS:
            if self.price_id_for(plan) == key:
                return plan
        return None

    def public_plans(self):
        return [
            {
                "id": plan,
                "name": details["name"],
                "price": details["price"],
                "features": list(details["features"]),
                "limits": dict(details["limits"]),
            }
            for plan, details in PLAN_DETAILS.items()
        ]

    def _require_stripe(self):
        if not self.enabled:
            raise BillingNotConfigured("Stripe is not configured.")

    def resolve_plan(self, subscription_id):
        """Look up a subscription and return the plan tier it pays for."""
        self._require_stripe()
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
            status = _field(subscription, "status")
            items = _field(_field(subscription, "items"), "data") or []
            price_id = _field(_field(items[0], "price"), "id") if items else None
        except Exception as e:
            raise BillingError(f"Failed to retrieve subscription: {e}") from e
        if status not in ACTIVE_STATUSES:
            raise InactiveSubscription(status)
        return self.plan_for_price_id(price_id)

    def create_checkout_session(self, plan, customer_email=None):
        self._require_stripe()
        price_id = self.price_id_for(plan)
        if not price_id:
            raise BillingNotConfigured(f"No Stripe price configured for the {plan} plan.")
        base_url = self.settings.app_url
        params = dict(
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=f"{base_url}/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/pricing",
            metadata={"plan": plan},
            subscription_data={"metadata": {"plan": plan}},
            allow_promotion_codes=True,
        )
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session_obj = stripe.checkout.Session.create(**params)
        except Exception as e:
            raise BillingError(str(e)) from e
        return {"sessionId": session_obj.id, "url": session_obj.url}

    def construct_event(self, payload, signature):
        if not self.settings.stripe_webhook_secret:
            raise BillingNotConfigured("Stripe webhook secret is not configured.")
        return stripe.Webhook.construct_event(payload, signature, self.settings.stripe_webhook_secret)

    def handle_event(self, event):
        event_type = event["type"]
        obj = event["data"]["object"]
        obj_id = _field(obj, "id")
        if event_type not in HANDLED_EVENTS:
            print(f"Unhandled event type: {event_type}")
            return False

        if event_type == "checkout.session.completed":
            print("Checkout completed:", obj_id)
        elif event_type == "customer.subscription.created":
            print("Subscription created:", obj_id)
        elif event_type == "customer.subscription.updated":
            print("Subscription updated:", obj_id)
            if _field(obj, "status") == "active":
                print("Subscription is now active")
        elif event_type == "customer.subscription.deleted":
            print("Subscription cancelled:", obj_id)
        elif event_type == "invoice.payment_succeeded":
            print("Payment succeeded:", obj_id)
        elif event_type == "invoice.payment_failed":
            print("Payment failed:", obj_id)
        return True
