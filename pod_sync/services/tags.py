# pod_sync/services/tags.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..utils.logger import debug, warn

TAG_PREFIX = "POD: "


class PodTag(str, Enum):
    IN_PRODUCTION = "in production"
    PRINTING = "printing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED_AT_SUPPLIER = "cancelled at supplier"
    SUPPLIER_ERROR = "supplier error"
    UNKNOWN_SKU = "unknown SKU"
    REFUNDED = "refunded"
    ON_HOLD = "on hold"

    @property
    def label(self) -> str:
        return f"{TAG_PREFIX}{self.value}"


_BY_LABEL = {t.label: t for t in PodTag}


def parse_tag_string(tags: Optional[str]) -> list[str]:
    return [t.strip() for t in (tags or "").split(",") if t.strip()]


@dataclass
class OrderTags:
    """A Shopify tag string split into free tags and the POD status tags present.

    Membership is case-sensitive, same as Shopify's own handling.
    """
    other: list[str] = field(default_factory=list)
    pod: set[PodTag] = field(default_factory=set)

    @classmethod
    def parse(cls, tags: Optional[str]) -> "OrderTags":
        out = cls()
        for t in parse_tag_string(tags):
            member = _BY_LABEL.get(t)
            if member is not None:
                out.pod.add(member)
            elif t not in out.other:
                out.other.append(t)
        return out

    def with_pod_tag(self, tag: Optional[PodTag]) -> "OrderTags":
        return OrderTags(other=list(self.other), pod={tag} if tag is not None else set())

    def serialize(self) -> str:
        labels = list(self.other)
        # stable order when several members were present on input
        labels.extend(t.label for t in PodTag if t in self.pod)
        return ", ".join(labels)


def apply_pod_tag(storefront, order_id, tag: Optional[PodTag]) -> bool:
    """Replace whatever POD status tag the order carries with `tag`. Returns True if it wrote."""
    order = storefront.get_order(order_id)
    current = OrderTags.parse(order.get("tags"))
    updated = current.with_pod_tag(tag)
    if updated.pod == current.pod:
        debug(f"[tags] OID={order_id} already {tag.label if tag else 'untagged'}")
        return False
    storefront.set_tags(order_id, updated.serialize())
    return True


def surface_supplier_error(storefront, order_id, message: str):
    """Tag + note so a human looking at the order sees why automation stopped.

    Both writes are attempted independently; neither failure masks the other.
    """
    try:
        apply_pod_tag(storefront, order_id, PodTag.SUPPLIER_ERROR)
    except Exception as e:
        warn(f"[tags] failed to tag supplier error OID={order_id}: {e}")
    try:
        storefront.append_note(order_id, f"Printoteca error: {message}")
    except Exception as e:
        warn(f"[tags] failed to append error note OID={order_id}: {e}")
