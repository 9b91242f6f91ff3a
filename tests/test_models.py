"""Tests for Printoteca response normalization."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from pod_sync.errors import MalformedResponse
from pod_sync.models import extract_order_id, normalize_order, normalize_order_list, parse_timestamp


class TestExtractOrderId:
    def test_top_level(self):
        assert extract_order_id({"id": 123}) == "123"

    def test_nested(self):
        assert extract_order_id({"order": {"id": "PT-9"}}) == "PT-9"

    @pytest.mark.parametrize("data", [{}, {"status": "ok"}, {"order": {"id": ""}}, [], "nope", None])
    def test_malformed(self, data):
        with pytest.raises(MalformedResponse):
            extract_order_id(data)


class TestNormalizeOrder:
    def test_full_record(self):
        so = normalize_order({"order": {
            "id": 55,
            "external_id": "shopify:9001",
            "status": "Dispatched",
            "shipping": {"trackingNumber": "AB1, AB2", "shiped_at": "2025-05-20 08:30:00"},
            "summary": {"shipping_price": 3.95, "currency": "GBP"},
            "items": [
                {"pn": "A", "quantity": "2", "retailPrice": "20.00", "description": "Tee",
                 "designs": {"front": "u1", "back": ""}},
            ],
        }})
        assert so.id == "55"
        assert so.correlation_id == "shopify:9001"
        assert so.tracking_numbers == ("AB1", "AB2")
        assert so.tracking_number == "AB1"
        assert so.shipped_at == datetime(2025, 5, 20, 8, 30, tzinfo=timezone.utc)
        assert so.shipping_cost == "3.95"
        assert so.currency == "GBP"
        assert so.items[0].quantity == 2
        assert so.items[0].designs == {"front": "u1"}
        assert so.quantities_by_sku() == [("A", 2)]

    def test_sparse_record(self):
        so = normalize_order({"id": "7"})
        assert so.correlation_id is None
        assert so.status == ""
        assert so.tracking_numbers == ()
        assert so.shipped_at is None
        assert so.shipping_cost is None
        assert so.items == ()

    def test_as_json(self):
        body = normalize_order({"id": 1, "shipping": {"shipped_at": "2025-01-01T00:00:00Z"}}).as_json()
        assert body["shipped_at"] == "2025-01-01T00:00:00+00:00"
        assert body["items"] == []


class TestParseTimestamp:
    @pytest.mark.parametrize("value", [None, "", "0", 0, "0000-00-00 00:00:00", "not a date"])
    def test_empty_values(self, value):
        assert parse_timestamp(value) is None

    def test_naive_is_utc(self):
        assert parse_timestamp("2025-02-03 04:05:06").tzinfo == timezone.utc

    def test_epoch(self):
        assert parse_timestamp(0.5).year == 1970


class TestNormalizeList:
    def test_shapes(self):
        assert normalize_order_list([{"id": 1}]) == [{"id": 1}]
        assert normalize_order_list({"orders": [{"id": 2}]}) == [{"id": 2}]
        assert normalize_order_list({"data": []}) == []
        assert normalize_order_list({}) == []

    def test_unexpected(self):
        with pytest.raises(MalformedResponse):
            normalize_order_list({"orders": "nope"})
