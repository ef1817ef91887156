from flask import Flask, request, jsonify
import time

import requests

from config import Settings
from analyzer.analyzer import RepositoryAnalyzer, InvalidRepositoryUrl
from billing.billing import Billing, BillingError, BillingNotConfigured, InactiveSubscription


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _send_analysis_webhook(webhook_url, *, analysis, plan, duration_ms=None):
    if not webhook_url:
        return
    try:
        repo = analysis.get("repository") or {}
        source = analysis.get("source") or "unknown"
        fields = [
            {"name": "Repository", "value": f'{repo.get("owner")}/{repo.get("name")}', "inline": True},
            {"name": "Plan", "value": plan, "inline": True},
            {"name": "Source", "value": source.title(), "inline": True},
            {"name": "Score", "value": str(analysis.get("monetizationScore")), "inline": True},
        ]
        if duration_ms is not None:
            fields.append({"name": "Duration", "value": f"{duration_ms} ms", "inline": True})
        requests.post(webhook_url, json={
            "embeds": [{
                "title": "Analysis Completed" if source != "fallback" else "Analysis Degraded",
                "color": 3066993 if source != "fallback" else 15158332,
                "fields": fields
            }]
        }, timeout=5)
    except Exception as e:
        print("Analysis webhook failed (non-blocking):", e)


def create_app(settings=None, analyzer=None, billing=None):
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    analyzer = analyzer or RepositoryAnalyzer(settings)
    billing = billing or Billing(settings)

    @app.before_request
    def maintenance_mode_guard():
        if request.method == "OPTIONS" and request.path.startswith("/api/"):
            return "", 200
        if settings.down:
            return jsonify({"error": "Service is under maintenance. Please try again later."}), 503
        return None

    @app.after_request
    def add_cors_headers(response):
        if request.path.startswith("/api/"):
            for key, value in CORS_HEADERS.items():
                response.headers[key] = value
        return response

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "ok",
            "ai_enabled": settings.ai_enabled,
            "stripe_enabled": settings.stripe_enabled
        })

    @app.route("/api/plans")
    def plans():
        return jsonify({"plans": billing.public_plans()})

    @app.route("/api/analyze", methods=["POST", "OPTIONS"])
    def analyze():
        data = request.get_json(silent=True) or {}
        repo_url = (data.get("repoUrl") or data.get("githubUrl") or "")
        if not isinstance(repo_url, str) or not repo_url.strip():
            return jsonify({"error": "Repository URL is required"}), 400

        plan = "basic"
        subscription_id = data.get("subscriptionId")
        if subscription_id:
            try:
                plan = billing.resolve_plan(subscription_id)
            except InactiveSubscription as e:
                return jsonify({"error": "Subscription is not active", "status": e.status}), 403
            except BillingError as e:
                print("Subscription verification error:", e)
                return jsonify({"error": "Invalid subscription"}), 403

        start_time = time.monotonic()
        try:
            analysis = analyzer.analyze(repo_url, plan)
        except InvalidRepositoryUrl as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            print("Analysis error:", e)
            return jsonify({"error": "Failed to analyze repository"}), 500

        duration_ms = int((time.monotonic() - start_time) * 1000)
        _send_analysis_webhook(settings.analysis_webhook_url, analysis=analysis, plan=plan, duration_ms=duration_ms)
        return jsonify({"success": True, "plan": plan, "analysis": analysis})

    @app.route("/api/create-checkout", methods=["POST", "OPTIONS"])
    def create_checkout():
        data = request.get_json(silent=True) or {}
        plan = billing.plan_from_identifier(data.get("plan") or data.get("priceId"))
        if not plan:
            return jsonify({"error": "Invalid plan selected"}), 400
        try:
            session_obj = billing.create_checkout_session(plan, customer_email=data.get("customerEmail"))
        except BillingNotConfigured as e:
            return jsonify({"error": str(e)}), 503
        except BillingError as e:
            print("Checkout session error:", e)
            return jsonify({"error": "Failed to create checkout session", "details": str(e)}), 500
        return jsonify({"success": True, **session_obj})

    @app.route("/api/webhook", methods=["POST"])
    def webhook():
        payload = request.get_data()
        signature = request.headers.get("Stripe-Signature")
        try:
            event = billing.construct_event(payload, signature)
        except BillingNotConfigured as e:
            return jsonify({"error": str(e)}), 503
        except Exception as e:
            print("Webhook signature verification failed:", e)
            return jsonify({"error": f"Webhook Error: {e}"}), 400

        try:
            billing.handle_event(event)
        except Exception as e:
            print("Webhook handler error:", e)
            return jsonify({"error": "Webhook handler failed"}), 500
        return jsonify({"received": True})

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=1500)
