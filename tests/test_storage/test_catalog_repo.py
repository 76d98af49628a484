"""Tests for CatalogRepo lookups."""
from __future__ import annotations

import sqlite3

import pytest

from multilands_rp.storage.repos import CatalogRepo


@pytest.fixture
def catalog(seeded_db):
    return CatalogRepo(seeded_db)


class TestLookups:
    def test_affinity_effect_value_is_parsed(self, catalog):
        wrath = catalog.get_affinity_by_name("wrath")
        assert wrath["effect_type"] == "damage_multiplier"
        assert wrath["effect_value"] == {"multiplier": 1.5}
        assert wrath["inflicted_status"] == "Fire"
        assert wrath["status_duration"] == 2

    def test_npc_names_are_exact(self, catalog):
        assert catalog.get_npc_by_name("GOOFY NEBULA")["is_boss"] == 1
        assert catalog.get_npc_by_name("goofy nebula") is None

    def test_attack_names_ignore_case(self, catalog):
        attack_id = catalog.create_attack({"name": "Fire Bolt", "base_damage_dice": "1d8"})
        assert catalog.get_attack_by_name("fire bolt")["id"] == attack_id
        assert catalog.get_attack(attack_id)["name"] == "Fire Bolt"

    def test_duplicate_attack_name(self, catalog):
        catalog.create_attack({"name": "Fire Bolt", "base_damage_dice": "1d8"})
        with pytest.raises(sqlite3.IntegrityError):
            catalog.create_attack({"name": "Fire Bolt", "base_damage_dice": "1d6"})

    def test_ensure_keeps_existing_row(self, catalog):
        catalog.ensure_npc({"name": "Water Bottle", "health_max": 1, "health_current": 1})
        assert catalog.get_npc_by_name("Water Bottle")["health_max"] == 45

    def test_listing_in_id_order(self, catalog):
        assert [t["name"] for t in catalog.list_attack_types()] == ["Slash", "Pierce", "Blunt", "Magic"]
        assert len(catalog.list_affinities()) == 7
        assert [n["name"] for n in catalog.list_npcs()] == ["Water Bottle", "GOOFY NEBULA", "Wingslompson"]
