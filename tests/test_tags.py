"""Tests for POD status tag parsing and replacement."""

from __future__ import annotations

from conftest import FakeStorefront
from pod_sync.services.tags import OrderTags, PodTag, apply_pod_tag, surface_supplier_error


class TestOrderTags:
    def test_parse_splits_pod_members(self):
        tags = OrderTags.parse("vip, POD: printing,wholesale")
        assert tags.other == ["vip", "wholesale"]
        assert tags.pod == {PodTag.PRINTING}

    def test_membership_is_case_sensitive(self):
        tags = OrderTags.parse("pod: printing, POD: Printing")
        assert tags.pod == set()
        assert tags.other == ["pod: printing", "POD: Printing"]

    def test_replace_strips_every_member(self):
        tags = OrderTags.parse("POD: in production, vip, POD: supplier error")
        out = tags.with_pod_tag(PodTag.SHIPPED)
        assert out.pod == {PodTag.SHIPPED}
        assert out.serialize() == "vip, POD: shipped"

    def test_replace_with_none_clears(self):
        assert OrderTags.parse("POD: on hold, a").with_pod_tag(None).serialize() == "a"

    def test_serialize_dedupes(self):
        assert OrderTags.parse("a, b, a").serialize() == "a, b"

    def test_empty(self):
        assert OrderTags.parse(None).serialize() == ""
        assert OrderTags.parse("").with_pod_tag(PodTag.REFUNDED).serialize() == "POD: refunded"


class TestApplyPodTag:
    def test_writes_once(self):
        sf = FakeStorefront({1: {"id": 1, "tags": "vip, POD: printing"}})
        assert apply_pod_tag(sf, 1, PodTag.SHIPPED) is True
        assert sf.orders["1"]["tags"] == "vip, POD: shipped"
        assert apply_pod_tag(sf, 1, PodTag.SHIPPED) is False
        assert len(sf.writes("set_tags")) == 1

    def test_surface_supplier_error_tags_and_notes(self):
        sf = FakeStorefront()
        surface_supplier_error(sf, 5, "Design url is not valid")
        assert sf.tags_of(5).pod == {PodTag.SUPPLIER_ERROR}
        assert sf.notes["5"] == ["Printoteca error: Design url is not valid"]

    def test_surface_supplier_error_note_survives_tag_failure(self):
        sf = FakeStorefront()
        sf.fail_ids.add("6")
        # get_order fails, so tagging fails; the note write does not go through get_order in the fake
        surface_supplier_error(sf, 6, "boom")
        assert sf.notes["6"] == ["Printoteca error: boom"]
