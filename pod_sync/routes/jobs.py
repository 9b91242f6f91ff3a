# pod_sync/routes/jobs.py
from flask import Blueprint, current_app, request

from ..utils.security import bearer_token_ok
from ..utils.logger import info, error

bp = Blueprint("jobs", __name__)


def _services():
    return current_app.extensions["pod_sync"]


@bp.before_request
def require_token():
    if not bearer_token_ok(_services().config.jobs_token):
        return {"error": "unauthorized"}, 401


@bp.route("/sync-recent", methods=["GET", "POST"])
def sync_recent():
    days = request.args.get("days", type=int)
    info(f"[jobs] sync-recent days={days if days is not None else 'default'}")
    try:
        report = _services().reconciler.sync_recent(days)
    except Exception as e:
        error(f"[jobs] sync-recent failed: {e}")
        return {"error": str(e)}, 500
    return report.as_json(), 200


@bp.route("/resync/<order_id>", methods=["GET", "POST"])
def resync(order_id):
    info(f"[jobs] resync OID={order_id}")
    try:
        so = _services().reconciler.resync_one(order_id)
    except Exception as e:
        error(f"[jobs] resync OID={order_id} failed: {e}")
        return {"order_id": order_id, "error": str(e)}, 500
    if so is None:
        return {"order_id": order_id, "linked": False}, 404
    return {"order_id": order_id, "linked": True, "supplier_order": so.as_json()}, 200
