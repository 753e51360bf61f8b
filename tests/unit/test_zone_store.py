"""
Unit tests for the in-memory zone store.

Tests upsert/merge semantics, deletion and selection, change listeners and
JSON persistence.
"""

import json

import pytest

from zonemap.errors import ZoneNotFound
from zonemap.zones.models import LatLng, PolygonZone, RadiusZone
from zonemap.zones.store import InMemoryZoneStore

from conftest import make_polygon_zone, make_radius_zone


class TestUpsert:
    """Insert and partial update."""

    def test_insert_full_zone(self):
        store = InMemoryZoneStore()
        zone = make_radius_zone()
        assert store.upsert_zone(zone) is zone
        assert store.get_zone("zone_circle") is zone
        assert len(store) == 1

    def test_partial_update_keeps_other_fields(self):
        store = InMemoryZoneStore([make_radius_zone(fee=7.5)])
        updated = store.upsert_zone({"id": "zone_circle", "radius_meters": 2500.0})

        assert updated.radius_meters == 2500.0
        assert updated.fee == 7.5
        assert store.get_zone("zone_circle") == updated

    def test_insertion_order_kept_on_update(self):
        store = InMemoryZoneStore([make_radius_zone("a"), make_radius_zone("b")])
        store.upsert_zone({"id": "a", "name": "renamed"})
        assert [z.id for z in store.list_zones()] == ["a", "b"]

    def test_new_zone_from_mapping(self):
        store = InMemoryZoneStore()
        zone = store.upsert_zone({
            "id": "p1",
            "type": "POLYGON",
            "path": [LatLng(0, 0), LatLng(0, 1), LatLng(1, 1)],
        })
        assert isinstance(zone, PolygonZone)
        assert zone.name == ""

    def test_new_zone_needs_type(self):
        with pytest.raises(ValueError):
            InMemoryZoneStore().upsert_zone({"id": "x", "radius_meters": 10})

    def test_new_zone_needs_geometry(self):
        with pytest.raises(ValueError):
            InMemoryZoneStore().upsert_zone({"id": "x", "type": "RADIUS"})

    def test_patch_without_id(self):
        with pytest.raises(ValueError):
            InMemoryZoneStore().upsert_zone({"fee": 1.0})

    def test_unknown_field_for_variant(self):
        store = InMemoryZoneStore([make_radius_zone()])
        with pytest.raises(ValueError):
            store.upsert_zone({"id": "zone_circle", "path": []})


class TestDeleteAndSelect:
    """Deletion and selection."""

    def test_delete(self):
        store = InMemoryZoneStore([make_radius_zone()])
        store.delete_zone("zone_circle")
        assert store.get_zone("zone_circle") is None

    def test_delete_unknown(self):
        with pytest.raises(ZoneNotFound):
            InMemoryZoneStore().delete_zone("missing")

    def test_select_and_clear(self):
        store = InMemoryZoneStore([make_radius_zone()])
        store.select_zone("zone_circle")
        assert store.selected_zone_id == "zone_circle"
        store.select_zone(None)
        assert store.selected_zone_id is None

    def test_select_unknown(self):
        with pytest.raises(ZoneNotFound):
            InMemoryZoneStore().select_zone("missing")

    def test_deleting_selected_zone_clears_selection(self):
        store = InMemoryZoneStore([make_radius_zone()])
        store.select_zone("zone_circle")
        store.delete_zone("zone_circle")
        assert store.selected_zone_id is None


class TestListeners:
    """Change notification."""

    def test_notified_after_each_mutation(self):
        store = InMemoryZoneStore([make_radius_zone()])
        calls = []
        store.subscribe(lambda: calls.append(len(store)))

        store.upsert_zone(make_polygon_zone())
        store.select_zone("zone_poly")
        store.delete_zone("zone_circle")

        assert calls == [2, 2, 1]

    def test_reselecting_same_zone_is_silent(self):
        store = InMemoryZoneStore([make_radius_zone()])
        store.select_zone("zone_circle")
        calls = []
        store.subscribe(lambda: calls.append(1))

        store.select_zone("zone_circle")
        assert calls == []

    def test_unsubscribe(self):
        store = InMemoryZoneStore()
        calls = []
        unsubscribe = store.subscribe(lambda: calls.append(1))
        unsubscribe()
        unsubscribe()

        store.upsert_zone(make_radius_zone())
        assert calls == []

    def test_listener_can_read_store(self):
        """Listeners run outside the lock and may read the store again."""
        store = InMemoryZoneStore()
        seen = []
        store.subscribe(lambda: seen.append([z.id for z in store.list_zones()]))

        store.upsert_zone(make_radius_zone())
        assert seen == [["zone_circle"]]


class TestPersistence:
    """JSON save and load."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "data" / "zones.json"
        store = InMemoryZoneStore([make_radius_zone(fee=5.0), make_polygon_zone()])
        store.save_json(path)

        data = json.loads(path.read_text())
        assert [r["id"] for r in data["deliveryZones"]] == ["zone_circle", "zone_poly"]

        loaded = InMemoryZoneStore()
        assert loaded.load_json(path) == 2
        assert loaded.get_zone("zone_circle").fee == 5.0
        assert isinstance(loaded.get_zone("zone_poly"), PolygonZone)

    def test_load_missing_file(self, tmp_path):
        store = InMemoryZoneStore([make_radius_zone()])
        assert store.load_json(tmp_path / "missing.json") == 0
        assert len(store) == 1

    def test_load_skips_malformed_records(self, tmp_path):
        path = tmp_path / "zones.json"
        path.write_text(json.dumps({"deliveryZones": [
            {"id": "ok", "type": "RADIUS", "centerLat": 0, "centerLng": 0, "radiusMeters": 100},
            {"id": "bad", "type": "TRIANGLE"},
            {"name": "no id"},
        ]}))

        store = InMemoryZoneStore()
        assert store.load_json(path) == 1
        assert isinstance(store.get_zone("ok"), RadiusZone)

    def test_load_skips_records_that_are_not_objects(self, tmp_path):
        path = tmp_path / "zones.json"
        path.write_text(json.dumps({"deliveryZones": [
            "zone_legacy",
            None,
            [1, 2],
            {"id": "ok", "centerLat": 0, "centerLng": 0, "radiusMeters": 100},
        ]}))

        store = InMemoryZoneStore()
        assert store.load_json(path) == 1
        assert store.list_zones()[0].id == "ok"
