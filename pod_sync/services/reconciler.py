"""Project Printoteca order state back onto Shopify orders.

Printoteca has no webhooks, so state only moves by polling. Each pass
recomputes the POD status tag from scratch; the supplier order is the
source of truth and the tag is just a view of it. All writes are
re-appliable (tag replace, metafield upsert, fulfillment keyed by tracking
number), which is what makes overlapping sweeps harmless.
"""
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import POD_NAMESPACE, PodConfig
from ..models import SupplierOrder, normalize_order
from ..utils.logger import debug, info, warn, error
from .linkage import (
    SHIPPING_COST_KEY,
    SHIPPING_CURRENCY_KEY,
    get_linked_supplier_id,
    iter_recent_orders,
    parse_correlation_id,
)
from .ports import StorefrontOrders, SupplierOrders
from .tags import PodTag, apply_pod_tag

PRINTING_STATUSES = frozenset({"stock allocation", "printing", "quality control"})
PRODUCTION_STATUSES = frozenset({"received", "in progress", "paid"})
SHIPPING_TAGS = (PodTag.SHIPPED, PodTag.DELIVERED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def map_status_to_pod_tag(status: Optional[str], has_tracking: bool, shipped_at: Optional[datetime],
                          now: datetime, window_days: int) -> Optional[PodTag]:
    """Map Printoteca lifecycle fields to a POD tag, or None to leave the order alone.

    "delivered" is only an estimate: we have no delivery confirmation, so a
    parcel counts as delivered once `window_days` have passed since it
    shipped.
    """
    s = (status or "").strip().lower()
    # exception states win over anything derived from shipping
    if s == "refunded":
        return PodTag.REFUNDED
    if s == "internal order query":
        return PodTag.ON_HOLD

    if has_tracking or shipped_at is not None:
        if shipped_at is not None and now - shipped_at >= timedelta(days=window_days):
            return PodTag.DELIVERED
        return PodTag.SHIPPED

    if s in PRINTING_STATUSES:
        return PodTag.PRINTING
    if s in PRODUCTION_STATUSES:
        return PodTag.IN_PRODUCTION
    return None


@dataclass(frozen=True)
class ProjectionResult:
    order_id: str
    tag: Optional[PodTag]
    fulfillment: Optional[str] = None
    shipping_cost_written: bool = False


@dataclass(frozen=True)
class SyncReport:
    synced: int = 0
    errors: int = 0
    skipped: int = 0

    def as_json(self) -> dict:
        return {"synced": self.synced, "errors": self.errors, "skipped": self.skipped}


class StatusReconciler:
    def __init__(self, config: PodConfig, storefront: StorefrontOrders, supplier: SupplierOrders, clock=_utcnow):
        self.config = config
        self.storefront = storefront
        self.supplier = supplier
        self.clock = clock

    # ---- bulk sweep ----

    def sync_recent(self, window_days: Optional[int] = None) -> SyncReport:
        days = window_days if window_days is not None else self.config.tracking_window_days
        now = self.clock()
        counts = Counter()
        for raw in iter_recent_orders(self.supplier, now, days, self.config.page_size, self.config.max_pages):
            try:
                result = self.apply_projection(normalize_order(raw))
            except Exception as e:
                counts["errors"] += 1
                pid = raw.get("id") if isinstance(raw, dict) else None
                error(f"[reconcile] PID={pid} projection failed: {e}")
                continue
            counts["synced" if result else "skipped"] += 1

        report = SyncReport(counts["synced"], counts["errors"], counts["skipped"])
        info(f"[reconcile] sweep over {days}d done: {report.as_json()}")
        return report

    # ---- single order ----

    def resync_one(self, order_id) -> Optional[SupplierOrder]:
        supplier_id = get_linked_supplier_id(self.storefront, order_id)
        if not supplier_id:
            info(f"[reconcile] OID={order_id} not linked to a Printoteca order")
            return None
        so = normalize_order(self.supplier.get_by_id(supplier_id))
        self.apply_projection(so)
        return so

    # ---- projection ----

    def apply_projection(self, so: SupplierOrder) -> Optional[ProjectionResult]:
        order_id = parse_correlation_id(so.correlation_id)
        if not order_id:
            debug(f"[reconcile] PID={so.id} external_id={so.correlation_id!r} not ours, skip")
            return None

        tag = map_status_to_pod_tag(so.status, bool(so.tracking_numbers), so.shipped_at,
                                    self.clock(), self.config.tracking_window_days)
        if tag is not None:
            if apply_pod_tag(self.storefront, order_id, tag):
                info(f"[reconcile] OID={order_id} PID={so.id} status={so.status!r} -> {tag.label}")
        else:
            debug(f"[reconcile] OID={order_id} PID={so.id} status={so.status!r} left as is")

        cost_written = self._write_shipping_cost(order_id, so)

        fulfillment = None
        if tag in SHIPPING_TAGS and so.tracking_number:
            # no item list from the supplier: fulfill every open line
            matched = so.quantities_by_sku() or None
            fulfillment = self.storefront.ensure_fulfillment_with_tracking(
                order_id, so.tracking_number, self.config.carrier_name, matched)
            debug(f"[reconcile] OID={order_id} tracking={so.tracking_number} fulfillment={fulfillment}")

        return ProjectionResult(order_id, tag, fulfillment, cost_written)

    def _write_shipping_cost(self, order_id: str, so: SupplierOrder) -> bool:
        if so.shipping_cost is None:
            return False
        try:
            self.storefront.set_metafield(order_id, POD_NAMESPACE, SHIPPING_COST_KEY, so.shipping_cost, "number_decimal")
            if so.currency:
                self.storefront.set_metafield(order_id, POD_NAMESPACE, SHIPPING_CURRENCY_KEY, so.currency,
                                              "single_line_text_field")
        except Exception as e:
            warn(f"[reconcile] OID={order_id} shipping cost not recorded: {e}")
            return False
        return True
