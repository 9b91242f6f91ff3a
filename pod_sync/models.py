"""Normalized view of Printoteca order payloads.

The supplier API is loose about where things live: an id may come back
at the top level or under ``order``, lists may be bare or wrapped in
``orders``/``data``, and the ship timestamp is spelled ``shiped_at``.
Everything downstream works on ``SupplierOrder`` so that probing happens
here and nowhere else. Shapes we can't make sense of raise
``MalformedResponse``.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .errors import MalformedResponse

CORRELATION_PREFIX = "shopify:"


@dataclass(frozen=True)
class SupplierItem:
    pn: str
    quantity: int
    price: str = ""
    description: str = ""
    designs: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SupplierOrder:
    id: str
    correlation_id: Optional[str]
    status: str
    tracking_numbers: tuple[str, ...] = ()
    shipped_at: Optional[datetime] = None
    shipping_cost: Optional[str] = None
    currency: Optional[str] = None
    items: tuple[SupplierItem, ...] = ()
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @property
    def tracking_number(self) -> Optional[str]:
        return self.tracking_numbers[0] if self.tracking_numbers else None

    def quantities_by_sku(self) -> list[tuple[str, int]]:
        return [(it.pn, it.quantity) for it in self.items if it.pn]

    def as_json(self) -> dict:
        return {
            "id": self.id,
            "external_id": self.correlation_id,
            "status": self.status,
            "tracking_numbers": list(self.tracking_numbers),
            "shipped_at": self.shipped_at.isoformat() if self.shipped_at else None,
            "shipping_cost": self.shipping_cost,
            "currency": self.currency,
            "items": [
                {"pn": it.pn, "quantity": it.quantity, "price": it.price,
                 "description": it.description, "designs": dict(it.designs)}
                for it in self.items
            ],
        }


def _brief(data: Any) -> str:
    try:
        return json.dumps(data)[:300]
    except (TypeError, ValueError):
        return repr(data)[:300]


def _unwrap(data: Any) -> dict:
    if not isinstance(data, dict):
        raise MalformedResponse(f"expected an order object, got: {_brief(data)}")
    inner = data.get("order")
    return inner if isinstance(inner, dict) else data


def _scalar(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Supplier timestamps as aware UTC datetimes; blanks and zero-dates are None."""
    if value in (None, "", 0, "0"):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    text = str(value).strip()
    if not text or text.startswith("0000-00-00"):
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _tracking(shipping: dict) -> tuple[str, ...]:
    raw = shipping.get("trackingNumber") or shipping.get("tracking_number") or shipping.get("tracking_numbers")
    if not raw:
        return ()
    if isinstance(raw, (list, tuple)):
        parts = [str(x) for x in raw]
    else:
        parts = str(raw).split(",")
    return tuple(p.strip() for p in parts if p and p.strip())


def _items(body: dict) -> tuple[SupplierItem, ...]:
    out = []
    for it in (body.get("items") or []):
        if not isinstance(it, dict):
            continue
        try:
            qty = int(it.get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        designs = it.get("designs") if isinstance(it.get("designs"), dict) else {}
        out.append(SupplierItem(
            pn=(_scalar(it.get("pn")) or _scalar(it.get("sku")) or ""),
            quantity=qty,
            price=_scalar(it.get("retailPrice")) or _scalar(it.get("price")) or "",
            description=_scalar(it.get("description")) or "",
            designs={k: v for k, v in designs.items() if v},
        ))
    return tuple(out)


def extract_order_id(data: Any) -> str:
    order_id = _scalar(_unwrap(data).get("id"))
    if not order_id:
        raise MalformedResponse(f"Printoteca response did not contain id: {_brief(data)}")
    return order_id


def normalize_order(data: Any) -> SupplierOrder:
    body = _unwrap(data)
    order_id = extract_order_id(body)
    shipping = body.get("shipping") or body.get("shipping_details") or {}
    if not isinstance(shipping, dict):
        shipping = {}
    summary = body.get("summary") if isinstance(body.get("summary"), dict) else {}

    cost = None
    for key in ("shipping_price", "shipping_cost", "shipping"):
        cost = _scalar(summary.get(key))
        if cost is not None:
            break

    return SupplierOrder(
        id=order_id,
        correlation_id=_scalar(body.get("external_id")) or _scalar(body.get("externalId")),
        status=_scalar(body.get("status")) or "",
        tracking_numbers=_tracking(shipping),
        shipped_at=parse_timestamp(shipping.get("shiped_at") or shipping.get("shipped_at")),
        shipping_cost=cost,
        currency=_scalar(summary.get("currency")) or _scalar(body.get("currency")),
        items=_items(body),
        raw=body,
    )


def normalize_order_list(data: Any) -> list[dict]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("orders", "data"):
            if isinstance(data.get(key), list):
                return data[key]
        if not data:
            return []
    raise MalformedResponse(f"unexpected order list shape: {_brief(data)}")
