# pod_sync/services/cancellation.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..config import PodConfig
from ..errors import ConfigError, LinkageNotFound, SupplierError
from ..models import normalize_order
from ..utils.logger import info, warn, error
from .linkage import find_supplier_order_by_correlation, get_linked_supplier_id, set_linked_supplier_id
from .ports import StorefrontOrders, SupplierOrders
from .tags import PodTag, apply_pod_tag, surface_supplier_error

NOT_LINKED_NOTE = (
    "Printoteca: cancellation webhook received but no pod.supplier_order_id metafield was found. "
    "Cancel manually in Printoteca if needed."
)


class CancellationOutcome(str, Enum):
    CANCELLED = "cancelled"
    NOT_LINKED = "not_linked"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CancellationEngine:
    """Shopify cancellation -> Printoteca deletion.

    The triggering webhook has already been acknowledged by the time this
    runs, so `cancel` never raises: every outcome ends up as a tag and/or a
    note on the Shopify order.
    """

    def __init__(self, config: PodConfig, storefront: StorefrontOrders, supplier: SupplierOrders, clock=_utcnow):
        self.config = config
        self.storefront = storefront
        self.supplier = supplier
        self.clock = clock

    def cancel(self, order_id) -> CancellationOutcome:
        try:
            return self._cancel(order_id)
        except LinkageNotFound:
            self._note(order_id, NOT_LINKED_NOTE)
            return CancellationOutcome.NOT_LINKED
        except Exception as e:
            error(f"[cancel] OID={order_id} unexpected failure: {e}")
            surface_supplier_error(self.storefront, order_id, str(e))
            return CancellationOutcome.FAILED

    def _note(self, order_id, text: str):
        try:
            self.storefront.append_note(order_id, text)
        except Exception as e:
            warn(f"[cancel] OID={order_id} could not append note: {e}")

    def resolve_supplier_id(self, order_id) -> str:
        supplier_id = get_linked_supplier_id(self.storefront, order_id)
        if supplier_id:
            return supplier_id

        info(f"[cancel] OID={order_id} no linkage metafield, searching by external_id")
        try:
            found = find_supplier_order_by_correlation(
                self.supplier, order_id, self.clock(), self.config.tracking_window_days,
                self.config.page_size, self.config.max_pages)
        except (SupplierError, ConfigError) as e:
            warn(f"[cancel] OID={order_id} external_id lookup failed: {e}")
            found = None
        if not found:
            raise LinkageNotFound(str(order_id))

        try:
            set_linked_supplier_id(self.storefront, order_id, found.id)
        except Exception as e:
            warn(f"[cancel] OID={order_id} could not restore linkage metafield: {e}")
        return found.id

    def _fetch_shipped_at(self, supplier_id) -> Optional[datetime]:
        try:
            return normalize_order(self.supplier.get_by_id(supplier_id)).shipped_at
        except (SupplierError, ConfigError) as e:
            warn(f"[cancel] failed to fetch PID={supplier_id} before cancelling: {e}")
            return None

    def _cancel(self, order_id) -> CancellationOutcome:
        supplier_id = self.resolve_supplier_id(order_id)

        shipped_at = self._fetch_shipped_at(supplier_id)
        if shipped_at:
            self._note(order_id, f"Printoteca: order {supplier_id} already shipped at "
                                 f"{shipped_at:%Y-%m-%d %H:%M:%S}, API cancel may not be possible.")

        try:
            self.supplier.delete_order(supplier_id)
        except (SupplierError, ConfigError) as e:
            message = getattr(e, "message", str(e))
            error(f"[cancel] failed to cancel PID={supplier_id} for OID={order_id}: {message}")
            surface_supplier_error(self.storefront, order_id, message)
            return CancellationOutcome.FAILED

        info(f"[cancel] PID={supplier_id} deleted for OID={order_id}")
        try:
            apply_pod_tag(self.storefront, order_id, PodTag.CANCELLED_AT_SUPPLIER)
        except Exception as e:
            warn(f"[cancel] OID={order_id} could not tag cancellation: {e}")
        self._note(order_id, f"Printoteca: order {supplier_id} cancelled via API because Shopify order was cancelled.")
        return CancellationOutcome.CANCELLED
