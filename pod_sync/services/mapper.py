"""Shopify order -> Printoteca order payload.

Everything in here is pure: no I/O, no config lookups. Missing address or
line fields become empty strings rather than nulls in the outbound payload.
"""
from collections.abc import Iterable
from typing import Optional

from ..errors import NoFulfillableItems
from .linkage import correlation_id_for

NO_SKU = "(no SKU)"

ADDRESS_FIELDS = (
    # (printoteca, shopify)
    ("firstName", "first_name"),
    ("lastName", "last_name"),
    ("company", "company"),
    ("address1", "address1"),
    ("address2", "address2"),
    ("city", "city"),
    ("county", "province"),
    ("postcode", "zip"),
    ("country", "country"),
    ("phone1", "phone"),
)


def _s(value) -> str:
    return "" if value is None else str(value)


def is_valid_sku(sku: Optional[str], allowed_skus: Iterable[str] = ()) -> bool:
    if not sku or not sku.strip():
        return False
    allowed = set(allowed_skus or ())
    # empty allow-list: validation off until real SKUs are curated
    if not allowed:
        return True
    return sku.strip() in allowed


def partition_line_items(order: dict, allowed_skus: Iterable[str] = ()) -> tuple[list[dict], list[str]]:
    """Split an order's line items into (valid line items, invalid SKUs)."""
    allowed = set(allowed_skus or ())
    valid, invalid = [], []
    for li in (order.get("line_items") or []):
        sku = li.get("sku")
        if not is_valid_sku(sku, allowed):
            invalid.append((sku or "").strip() or NO_SKU)
            continue
        valid.append(li)
    return valid, invalid


def extract_designs(line_item: dict, prefix: str) -> dict:
    """First matching property is the front design, second the back; the rest are ignored."""
    urls = []
    for prop in (line_item.get("properties") or []):
        if not isinstance(prop, dict):
            continue
        name = _s(prop.get("name"))
        value = _s(prop.get("value")).strip()
        if prefix and name.startswith(prefix) and value:
            urls.append(value)
        if len(urls) == 2:
            break
    return dict(zip(("front", "back"), urls))


def describe_line(line_item: dict) -> str:
    title = _s(line_item.get("title")).strip()
    variant = _s(line_item.get("variant_title")).strip()
    return f"{title} - {variant}" if title and variant else (title or variant)


def map_address(order: dict) -> dict:
    addr = order.get("shipping_address") or {}
    return {ours: _s(addr.get(theirs)) for ours, theirs in ADDRESS_FIELDS}


def map_line_item(line_item: dict, design_prefix: str) -> dict:
    item = {
        "pn": _s(line_item.get("sku")).strip(),
        "quantity": int(line_item.get("quantity") or 0),
        "retailPrice": _s(line_item.get("price")),
        "description": describe_line(line_item),
    }
    designs = extract_designs(line_item, design_prefix)
    if designs:
        item["designs"] = designs
    return item


def map_to_supplier_payload(order: dict, valid_line_items: list[dict], *, design_prefix: str,
                            external_id: Optional[str] = None) -> dict:
    if not valid_line_items:
        raise NoFulfillableItems(f"order {order.get('id')} has no fulfillable line items")
    return {
        "external_id": external_id or correlation_id_for(order.get("id")),
        "comment": f"Shopify order {_s(order.get('name') or order.get('id'))}",
        "shipping_address": map_address(order),
        "shipping": {},
        "items": [map_line_item(li, design_prefix) for li in valid_line_items],
    }
