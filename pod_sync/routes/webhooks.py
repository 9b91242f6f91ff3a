# pod_sync/routes/webhooks.py
import json
import time
from flask import Blueprint, current_app, request

from ..utils.security import verify_webhook_hmac
from ..utils.logger import info, warn

bp = Blueprint("webhooks", __name__)

TOPIC_HEADER = "X-Shopify-Topic"
WEBHOOK_ID_HEADER = "X-Shopify-Webhook-Id"

# In-memory idempotency (best-effort; duplicates that get through are
# absorbed by the linkage metafield check)
_SEEN_IDS: dict[str, float] = {}
_SEEN_TTL = 60 * 10  # 10 minutes

def _seen(webhook_id: str) -> bool:
    now = time.time()
    # GC old ids
    for k, ts in list(_SEEN_IDS.items()):
        if now - ts > _SEEN_TTL:
            _SEEN_IDS.pop(k, None)
    if not webhook_id:
        return False
    if webhook_id in _SEEN_IDS:
        return True
    _SEEN_IDS[webhook_id] = now
    return False


def _services():
    return current_app.extensions["pod_sync"]


def _verified_order(expected_topic: str):
    """Verify HMAC (401 on failure) and return the order body, or None when there is nothing to do."""
    raw = verify_webhook_hmac(_services().config.webhook_secret)

    topic = request.headers.get(TOPIC_HEADER, "")
    if topic != expected_topic:
        info(f"[webhook] ignoring topic {topic!r} on {request.path}")
        return None
    if _seen(request.headers.get(WEBHOOK_ID_HEADER, "")):
        info(f"[webhook] duplicate delivery {request.headers.get(WEBHOOK_ID_HEADER)} ignored")
        return None

    try:
        order = json.loads(raw.decode("utf-8")) if raw else {}
    except ValueError as e:
        warn(f"[webhook] unparseable {topic} body: {e}")
        return None
    if not isinstance(order, dict) or not order.get("id"):
        warn(f"[webhook] {topic} body without order id")
        return None
    return order


@bp.post("/orders-paid")
def orders_paid():
    order = _verified_order("orders/paid")
    if order is None:
        return "Ignored", 200
    info(f"[webhook] orders/paid OID={order.get('id')} / {order.get('name')}")
    # returns immediately; first attempt runs after the initial delay
    _services().submission.dispatch(order)
    return "OK", 200


@bp.post("/orders-cancelled")
def orders_cancelled():
    order = _verified_order("orders/cancelled")
    if order is None:
        return "Ignored", 200
    oid = order.get("id")
    info(f"[webhook] orders/cancelled OID={oid} / {order.get('name')}")
    svc = _services()
    svc.scheduler.spawn(svc.cancellation.cancel, oid)
    return "OK", 200
