# pod_sync/routes/register.py
from flask import Blueprint, current_app

from ..utils.logger import info, warn

bp = Blueprint("register", __name__)

# topic -> path on this service
SUBSCRIPTIONS = (
    ("orders/paid", "/webhooks/shopify/orders-paid"),
    ("orders/cancelled", "/webhooks/shopify/orders-cancelled"),
)


def plan_subscription(existing: list[dict], topic: str, address: str):
    """Return ("ok", None), ("update", webhook_id) or ("create", None).

    A topic subscribed to some other address is moved, never duplicated.
    """
    same_topic = [w for w in existing if w.get("topic") == topic]
    if any(w.get("address") == address for w in same_topic):
        return "ok", None
    if same_topic:
        return "update", same_topic[0].get("id")
    return "create", None


def ensure_webhooks(storefront, base_url: str | None):
    if not base_url:
        return "Missing BASE_URL in env.", 500
    try:
        existing = storefront.list_webhooks()
    except Exception as e:
        warn(f"[register] listing webhooks failed: {e}")
        return f"Failed to read existing webhooks: {e}", 500

    results = []
    for topic, path in SUBSCRIPTIONS:
        address = f"{base_url}{path}"
        action, webhook_id = plan_subscription(existing, topic, address)
        try:
            if action == "update":
                storefront.update_webhook(webhook_id, address)
            elif action == "create":
                storefront.create_webhook(topic, address)
        except Exception as e:
            warn(f"[register] {action} {topic} failed: {e}")
            results.append(f"FAIL {topic} {e}")
            continue
        label = {"ok": "OK", "update": "UPDATED", "create": "CREATED"}[action]
        info(f"[register] {label} {topic} -> {address}")
        results.append(f"{label} {topic}")

    return "; ".join(results), 200


@bp.get("")
def register():
    svc = current_app.extensions["pod_sync"]
    return ensure_webhooks(svc.storefront, svc.config.base_url)
