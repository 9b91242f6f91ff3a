"""Capabilities the sync engines depend on.

``ShopifyOrders`` and ``PrintotecaClient`` satisfy these; tests hand in
in-memory doubles. The engines never talk HTTP themselves.
"""
from collections.abc import Iterable
from typing import Any, Optional, Protocol


class StorefrontOrders(Protocol):
    def get_order(self, order_id: int | str) -> dict: ...

    def set_tags(self, order_id: int | str, tags: str): ...

    def append_note(self, order_id: int | str, text: str): ...

    def get_metafield(self, order_id: int | str, namespace: str, key: str) -> Optional[str]: ...

    def set_metafield(self, order_id: int | str, namespace: str, key: str, value,
                      type_: str = "single_line_text_field"): ...

    def ensure_fulfillment_with_tracking(self, order_id: int | str, tracking_number: str, carrier_name: str,
                                         matched_line_items: Optional[Iterable[tuple[str, int]]] = None) -> str:
        """Returns "already_exists", "created" or "no_items"."""
        ...


class SupplierOrders(Protocol):
    def create(self, payload: dict) -> Any: ...

    def get_by_id(self, order_id: str | int) -> Any: ...

    def list_orders(self, params: Optional[dict] = None) -> list[dict]: ...

    def delete_order(self, order_id: str | int) -> Any: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, fn, *args): ...

    def spawn(self, fn, *args): ...
