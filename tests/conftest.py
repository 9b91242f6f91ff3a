"""Shared fixtures: in-memory Shopify/Printoteca doubles and a manual scheduler."""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections import defaultdict
from datetime import datetime, timezone

import pytest

from pod_sync.config import PodConfig
from pod_sync.errors import StorefrontError, SupplierError
from pod_sync.services import build_services
from pod_sync.services.tags import OrderTags

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
WEBHOOK_SECRET = "whsec-test"


class FakeStorefront:
    """Shopify orders held in dicts; records every write."""

    def __init__(self, orders: dict | None = None):
        self.orders = {str(k): v for k, v in (orders or {}).items()}
        self.metafields: dict[tuple[str, str, str], tuple[str, str]] = {}
        self.notes: dict[str, list[str]] = defaultdict(list)
        self.fulfillments: dict[str, list[dict]] = defaultdict(list)
        self.calls: list[tuple] = []
        self.fail_ids: set[str] = set()
        self.fail_metafield_writes = False

    def _order(self, order_id) -> dict:
        oid = str(order_id)
        if oid in self.fail_ids:
            raise StorefrontError(f"GET /orders/{oid}.json failed 500: boom", 500)
        return self.orders.setdefault(oid, {"id": order_id, "tags": "", "note": ""})

    def get_order(self, order_id) -> dict:
        return dict(self._order(order_id))

    def set_tags(self, order_id, tags: str):
        self.calls.append(("set_tags", str(order_id), tags))
        self._order(order_id)["tags"] = tags

    def append_note(self, order_id, text: str):
        self.calls.append(("append_note", str(order_id), text))
        self.notes[str(order_id)].append(text)

    def get_metafield(self, order_id, namespace, key):
        self._order(order_id)
        found = self.metafields.get((str(order_id), namespace, key))
        return found[0] if found else None

    def set_metafield(self, order_id, namespace, key, value, type_="single_line_text_field"):
        if self.fail_metafield_writes:
            raise StorefrontError("POST metafields failed 500", 500)
        self.calls.append(("set_metafield", str(order_id), namespace, key, str(value), type_))
        self.metafields[(str(order_id), namespace, key)] = (str(value), type_)

    def ensure_fulfillment_with_tracking(self, order_id, tracking_number, carrier_name, matched_line_items=None):
        existing = self.fulfillments[str(order_id)]
        if any(f["tracking"] == tracking_number for f in existing):
            return "already_exists"
        existing.append({
            "tracking": tracking_number,
            "carrier": carrier_name,
            "items": list(matched_line_items) if matched_line_items is not None else None,
        })
        return "created"

    # helpers for assertions
    def tags_of(self, order_id) -> OrderTags:
        return OrderTags.parse(self.orders.get(str(order_id), {}).get("tags"))

    def writes(self, kind: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == kind]


class FakeSupplier:
    """Printoteca double. `create_results` is consumed in order (dicts returned, exceptions raised)."""

    def __init__(self):
        self.created: list[dict] = []
        self.create_results: list = []
        self.orders: dict[str, dict] = {}
        self.pages: list[list[dict]] = []
        self.list_calls: list[dict] = []
        self.deleted: list[str] = []
        self.delete_error: Exception | None = None
        self.get_error: Exception | None = None

    def create(self, payload):
        self.created.append(payload)
        result = self.create_results.pop(0) if self.create_results else {"id": f"P{len(self.created)}"}
        if isinstance(result, Exception):
            raise result
        return result

    def get_by_id(self, order_id):
        if self.get_error:
            raise self.get_error
        try:
            return {"order": self.orders[str(order_id)]}
        except KeyError:
            raise SupplierError("Order not found", 404) from None

    def list_orders(self, params=None):
        params = dict(params or {})
        self.list_calls.append(params)
        page = int(params.get("page", 1))
        return list(self.pages[page - 1]) if page <= len(self.pages) else []

    def delete_order(self, order_id):
        if self.delete_error:
            raise self.delete_error
        self.deleted.append(str(order_id))
        return {"ok": True}


class ManualScheduler:
    """Records deferred work; tests decide when it runs."""

    def __init__(self):
        self.pending: list[tuple] = []
        self.spawned: list[tuple] = []

    def call_later(self, delay, fn, *args):
        self.pending.append((delay, fn, args))

    def spawn(self, fn, *args):
        self.spawned.append((fn, args))

    def run_pending(self) -> int:
        jobs, self.pending = self.pending, []
        for _delay, fn, args in jobs:
            fn(*args)
        return len(jobs)

    def run_spawned(self) -> list:
        jobs, self.spawned = self.spawned, []
        return [fn(*args) for fn, args in jobs]


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def make_order(order_id=1001, line_items=None, **extra) -> dict:
    order = {
        "id": order_id,
        "name": f"#{order_id}",
        "tags": "",
        "note": "",
        "shipping_address": {
            "first_name": "Ada", "last_name": "Lovelace", "address1": "1 Loom St",
            "city": "London", "zip": "N1 1AA", "country": "United Kingdom",
        },
        "line_items": line_items if line_items is not None else [
            {"id": 1, "sku": "A", "quantity": 2, "price": "20.00", "title": "Tee", "variant_title": "Black / M"},
            {"id": 2, "sku": "B", "quantity": 1, "price": "25.00", "title": "Hoodie", "variant_title": ""},
        ],
    }
    order.update(extra)
    return order


@pytest.fixture()
def config() -> PodConfig:
    return PodConfig(
        shop_domain="test-shop.myshopify.com",
        shop_token="shpat_test",
        webhook_secret=WEBHOOK_SECRET,
        supplier_app_id="app-1",
        supplier_secret_key="sup-secret",
        brand_name="Test Brand",
        max_attempts=3,
        retry_delay_seconds=300,
        initial_delay_seconds=60,
        page_size=50,
    )


@pytest.fixture()
def storefront() -> FakeStorefront:
    return FakeStorefront()


@pytest.fixture()
def supplier() -> FakeSupplier:
    return FakeSupplier()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def services(config, storefront, supplier, scheduler):
    return build_services(config, storefront=storefront, supplier=supplier, scheduler=scheduler, clock=lambda: NOW)
