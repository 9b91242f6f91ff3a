# pod_sync/services/linkage.py
# ---------------------------------------------------------
# Storefront order <-> supplier order linkage.
#
# Forward:  Shopify order metafield pod.supplier_order_id = <Printoteca id>
# Backward: Printoteca external_id = "shopify:<Shopify order id>"
#
# The metafield is the fast path. The correlation id is what we fall back
# to when the metafield write was lost or predates it.
# ---------------------------------------------------------
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import POD_NAMESPACE
from ..models import CORRELATION_PREFIX, SupplierOrder, normalize_order
from ..errors import MalformedResponse
from ..utils.logger import debug, warn

SUPPLIER_ORDER_ID_KEY = "supplier_order_id"
SHIPPING_COST_KEY = "shipping_cost"
SHIPPING_CURRENCY_KEY = "shipping_currency"

SUPPLIER_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def correlation_id_for(order_id) -> str:
    return f"{CORRELATION_PREFIX}{order_id}"


def parse_correlation_id(correlation_id: Optional[str]) -> Optional[str]:
    if not correlation_id or not correlation_id.startswith(CORRELATION_PREFIX):
        return None
    order_id = correlation_id[len(CORRELATION_PREFIX):].strip()
    return order_id or None


def get_linked_supplier_id(storefront, order_id) -> Optional[str]:
    return storefront.get_metafield(order_id, POD_NAMESPACE, SUPPLIER_ORDER_ID_KEY)


def set_linked_supplier_id(storefront, order_id, supplier_order_id):
    storefront.set_metafield(order_id, POD_NAMESPACE, SUPPLIER_ORDER_ID_KEY, str(supplier_order_id),
                             "single_line_text_field")


def created_window(now: datetime, days: int) -> dict:
    start = now - timedelta(days=days)
    return {
        "created_at_min": start.astimezone(timezone.utc).strftime(SUPPLIER_TIME_FORMAT),
        "created_at_max": now.astimezone(timezone.utc).strftime(SUPPLIER_TIME_FORMAT),
    }


def iter_recent_orders(supplier, now: datetime, days: int, page_size: int, max_pages: int):
    """Yield raw supplier orders created within `days`, page by page.

    A page shorter than `page_size` is the last one.
    """
    window = created_window(now, days)
    for page in range(1, max_pages + 1):
        batch = supplier.list_orders({**window, "limit": page_size, "page": page})
        debug(f"[linkage] supplier page {page}: {len(batch)} orders")
        yield from batch
        if len(batch) < page_size:
            return
    warn(f"[linkage] stopped paging after {max_pages} pages")


def find_supplier_order_by_correlation(supplier, order_id, now: datetime, days: int,
                                       page_size: int, max_pages: int) -> Optional[SupplierOrder]:
    wanted = correlation_id_for(order_id)
    for raw in iter_recent_orders(supplier, now, days, page_size, max_pages):
        try:
            so = normalize_order(raw)
        except MalformedResponse:
            continue
        if so.correlation_id == wanted:
            return so
    return None
