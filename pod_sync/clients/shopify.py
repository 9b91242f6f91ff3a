# pod_sync/clients/shopify.py
import time
from collections.abc import Iterable
from typing import Optional

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..config import API_VERSION
from ..errors import StorefrontError
from ..utils.logger import debug, info

# Fulfillment orders we are allowed to fulfill against
OPEN_FO_STATUSES = ("open", "in_progress")
# Fulfillments in these states don't count as "already shipped with this tracking"
DEAD_FULFILLMENT_STATUSES = ("cancelled", "error", "failure")


def admin_base(domain: str, api_version: str = API_VERSION) -> str:
    return f"https://{domain}/admin/api/{api_version}"

def rest_headers(token: str) -> dict:
    return {"Content-Type": "application/json", "Accept": "application/json", "X-Shopify-Access-Token": token}


class TransientWriteError(Exception): pass


def _note_stamp() -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())


def _tracking_numbers(fulfillment: dict) -> set[str]:
    numbers = {str(n) for n in (fulfillment.get("tracking_numbers") or []) if n}
    if fulfillment.get("tracking_number"):
        numbers.add(str(fulfillment["tracking_number"]))
    return numbers


def _sum_by_sku(items: Iterable[tuple[str, int]]) -> dict[str, int]:
    out: dict[str, int] = {}
    for sku, qty in items:
        sku = (sku or "").strip()
        if not sku:
            continue
        out[sku] = out.get(sku, 0) + int(qty or 0)
    return out


class ShopifyOrders:
    """Shopify Admin REST access for the handful of order primitives the sync needs.

    Only tags, note, `pod` metafields and fulfillments are ever written;
    line items, prices and addresses are read-only from our side.
    """

    def __init__(self, domain: str, token: str, api_version: str = API_VERSION, timeout: int = 20):
        self.domain = domain
        self.token = token
        self.api_version = api_version
        self.timeout = timeout

    @property
    def base(self) -> str:
        return admin_base(self.domain, self.api_version)

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        r = requests.get(f"{self.base}{path}", headers=rest_headers(self.token),
                         params=params, timeout=self.timeout)
        if r.status_code != 200:
            raise StorefrontError(f"GET {path} failed {r.status_code}: {r.text}", r.status_code)
        return r.json()

    @retry(
        reraise=True,
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=6),
        retry=retry_if_exception_type(TransientWriteError),
    )
    def _write(self, method: str, path: str, payload: dict) -> dict:
        r = requests.request(method, f"{self.base}{path}", headers=rest_headers(self.token),
                             json=payload, timeout=self.timeout)
        if r.status_code in (200, 201, 202):
            return r.json() if r.content else {}
        if r.status_code in (429, 502, 503):
            raise TransientWriteError(r.text)
        raise StorefrontError(f"{method} {path} failed {r.status_code}: {r.text}", r.status_code)

    # ---- orders ----

    def get_order(self, order_id: int | str) -> dict:
        return self._get(f"/orders/{order_id}.json").get("order") or {}

    def set_tags(self, order_id: int | str, tags: str):
        self._write("PUT", f"/orders/{order_id}.json", {"order": {"id": int(order_id), "tags": tags}})

    def append_note(self, order_id: int | str, text: str):
        order = self.get_order(order_id)
        existing = order.get("note") or ""
        prefix = f"{existing}\n" if existing else ""
        note = f"{prefix}[{_note_stamp()}] {text}"
        self._write("PUT", f"/orders/{order_id}.json", {"order": {"id": int(order_id), "note": note}})

    # ---- metafields ----

    def list_metafields(self, order_id: int | str, namespace: Optional[str] = None) -> list[dict]:
        params = {"namespace": namespace} if namespace else None
        return self._get(f"/orders/{order_id}/metafields.json", params).get("metafields", [])

    def _find_metafield(self, order_id: int | str, namespace: str, key: str) -> Optional[dict]:
        for m in self.list_metafields(order_id, namespace):
            if m.get("namespace", namespace) == namespace and m.get("key") == key:
                return m
        return None

    def get_metafield(self, order_id: int | str, namespace: str, key: str) -> Optional[str]:
        m = self._find_metafield(order_id, namespace, key)
        if not m or m.get("value") in (None, ""):
            return None
        return str(m["value"])

    def set_metafield(self, order_id: int | str, namespace: str, key: str, value,
                      type_: str = "single_line_text_field"):
        body = {"metafield": {"namespace": namespace, "key": key, "value": str(value), "type": type_}}
        try:
            self._write("POST", f"/orders/{order_id}/metafields.json", body)
            return
        except StorefrontError as e:
            if e.status_code != 422:
                raise
        existing = self._find_metafield(order_id, namespace, key)
        if not existing:
            raise StorefrontError(f"metafield {namespace}.{key} conflicts on order {order_id} but was not found", 422)
        debug(f"[shopify] metafield {namespace}.{key} exists on OID={order_id}, updating {existing.get('id')}")
        self._write("PUT", f"/metafields/{existing['id']}.json",
                    {"metafield": {"id": existing["id"], "value": str(value), "type": type_}})

    # ---- fulfillments ----

    def list_fulfillment_orders(self, order_id: int | str) -> list[dict]:
        return self._get(f"/orders/{order_id}/fulfillment_orders.json").get("fulfillment_orders", [])

    def ensure_fulfillment_with_tracking(self, order_id: int | str, tracking_number: str, carrier_name: str,
                                         matched_line_items: Optional[Iterable[tuple[str, int]]] = None) -> str:
        """Create a fulfillment carrying `tracking_number` unless one already exists.

        With `matched_line_items` (sku, qty) pairs only those quantities are
        fulfilled, each capped at what the line still has open and at what
        was ordered. Without it every open line is fulfilled.

        Returns "already_exists", "created" or "no_items".
        """
        order = self.get_order(order_id)
        for f in (order.get("fulfillments") or []):
            if (f.get("status") or "").lower() in DEAD_FULFILLMENT_STATUSES:
                continue
            if str(tracking_number) in _tracking_numbers(f):
                return "already_exists"

        sku_by_line = {li.get("id"): (li.get("sku") or "").strip() for li in (order.get("line_items") or [])}
        ordered_by_line = {li.get("id"): int(li.get("quantity") or 0) for li in (order.get("line_items") or [])}
        remaining = _sum_by_sku(matched_line_items) if matched_line_items is not None else None

        groups = []
        for fo in self.list_fulfillment_orders(order_id):
            if (fo.get("status") or "").lower() not in OPEN_FO_STATUSES:
                continue
            lines = []
            for fli in (fo.get("line_items") or []):
                line_id = fli.get("line_item_id")
                qty = min(int(fli.get("fulfillable_quantity") or 0), ordered_by_line.get(line_id, 0))
                if remaining is not None:
                    sku = sku_by_line.get(line_id, "")
                    qty = min(qty, remaining.get(sku, 0))
                    if qty > 0:
                        remaining[sku] -= qty
                if qty <= 0:
                    continue
                lines.append({"id": fli["id"], "quantity": qty})
            if lines:
                groups.append({"fulfillment_order_id": fo["id"], "fulfillment_order_line_items": lines})

        if not groups:
            return "no_items"

        payload = {"fulfillment": {
            "line_items_by_fulfillment_order": groups,
            "tracking_info": {"number": str(tracking_number), "company": carrier_name},
            "notify_customer": True,
        }}
        self._write("POST", "/fulfillments.json", payload)
        info(f"[shopify] fulfillment created OID={order_id} tracking={tracking_number} groups={len(groups)}")
        return "created"

    # ---- admin plumbing (webhooks, graphql) ----

    def graphql(self, query: str, variables=None) -> dict:
        url = f"{self.base}/graphql.json"
        r = requests.post(url, headers=rest_headers(self.token),
                          json={"query": query, "variables": variables or {}}, timeout=30)
        r.raise_for_status()
        return r.json()

    def list_webhooks(self) -> list[dict]:
        return self._get("/webhooks.json").get("webhooks", [])

    def create_webhook(self, topic: str, address: str) -> dict:
        return self._write("POST", "/webhooks.json",
                           {"webhook": {"topic": topic, "address": address, "format": "json"}})

    def update_webhook(self, webhook_id: int | str, address: str) -> dict:
        return self._write("PUT", f"/webhooks/{webhook_id}.json",
                           {"webhook": {"id": webhook_id, "address": address, "format": "json"}})
