"""Tests for the Shopify -> Printoteca payload mapper."""

from __future__ import annotations

import pytest

from conftest import make_order
from pod_sync.errors import NoFulfillableItems
from pod_sync.services.mapper import (
    NO_SKU,
    describe_line,
    extract_designs,
    is_valid_sku,
    map_to_supplier_payload,
    partition_line_items,
)

PREFIX = "_tib_design_link"


class TestSkuPartition:
    def test_empty_allow_list_accepts_any_present_sku(self):
        order = make_order(line_items=[{"sku": "A"}, {"sku": "B"}, {"sku": None}, {"sku": "  "}])
        valid, invalid = partition_line_items(order, ())
        assert [li["sku"] for li in valid] == ["A", "B"]
        assert invalid == [NO_SKU, NO_SKU]

    def test_allow_list_filters(self):
        order = make_order(line_items=[{"sku": "A"}, {"sku": "B"}])
        valid, invalid = partition_line_items(order, {"A"})
        assert [li["sku"] for li in valid] == ["A"]
        assert invalid == ["B"]

    def test_missing_line_items(self):
        assert partition_line_items({"id": 1}, ()) == ([], [])

    def test_is_valid_sku(self):
        assert is_valid_sku("X") is True
        assert is_valid_sku("") is False
        assert is_valid_sku(None, {"X"}) is False
        assert is_valid_sku("Y", {"X"}) is False


class TestDesignExtraction:
    def test_first_is_front_second_is_back_rest_ignored(self):
        li = {"properties": [
            {"name": f"{PREFIX}_1", "value": "https://cdn/front.png"},
            {"name": "Engraving", "value": "hello"},
            {"name": f"{PREFIX}_2", "value": "https://cdn/back.png"},
            {"name": f"{PREFIX}_3", "value": "https://cdn/extra.png"},
        ]}
        assert extract_designs(li, PREFIX) == {"front": "https://cdn/front.png", "back": "https://cdn/back.png"}

    def test_single_design_is_front_only(self):
        li = {"properties": [{"name": PREFIX, "value": "u"}]}
        assert extract_designs(li, PREFIX) == {"front": "u"}

    def test_no_match(self):
        assert extract_designs({"properties": [{"name": "x", "value": "y"}]}, PREFIX) == {}
        assert extract_designs({}, PREFIX) == {}

    def test_blank_values_skipped(self):
        li = {"properties": [{"name": PREFIX, "value": ""}, {"name": PREFIX, "value": "real"}]}
        assert extract_designs(li, PREFIX) == {"front": "real"}


class TestPayload:
    def test_shape_and_correlation_id(self):
        order = make_order(1001)
        valid, _ = partition_line_items(order, ())
        payload = map_to_supplier_payload(order, valid, design_prefix=PREFIX)

        assert payload["external_id"] == "shopify:1001"
        assert payload["shipping_address"]["firstName"] == "Ada"
        assert payload["shipping_address"]["postcode"] == "N1 1AA"
        assert payload["items"][0] == {
            "pn": "A", "quantity": 2, "retailPrice": "20.00", "description": "Tee - Black / M",
        }
        assert payload["items"][1]["description"] == "Hoodie"
        assert "brandName" not in payload
        assert payload["shipping"] == {}

    def test_missing_address_defaults_to_empty_strings(self):
        order = make_order(7, shipping_address=None)
        payload = map_to_supplier_payload(order, order["line_items"], design_prefix=PREFIX)
        assert set(payload["shipping_address"].values()) == {""}
        assert "firstName" in payload["shipping_address"]

    def test_designs_attached_per_item(self):
        order = make_order(8, line_items=[
            {"sku": "A", "quantity": 1, "properties": [{"name": PREFIX, "value": "https://cdn/a.png"}]},
        ])
        payload = map_to_supplier_payload(order, order["line_items"], design_prefix=PREFIX)
        assert payload["items"][0]["designs"] == {"front": "https://cdn/a.png"}
        assert payload["items"][0]["retailPrice"] == ""

    def test_caller_supplied_external_id_kept(self):
        order = make_order(9)
        payload = map_to_supplier_payload(order, order["line_items"], design_prefix=PREFIX, external_id="manual:1")
        assert payload["external_id"] == "manual:1"

    def test_no_items_raises(self):
        with pytest.raises(NoFulfillableItems):
            map_to_supplier_payload(make_order(10), [], design_prefix=PREFIX)


def test_describe_line():
    assert describe_line({"title": "Tee", "variant_title": "Red"}) == "Tee - Red"
    assert describe_line({"variant_title": "Red"}) == "Red"
    assert describe_line({}) == ""
