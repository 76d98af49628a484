"""Catalog seeding: affinities, attack types, items and NPCs from content TOML."""
from __future__ import annotations

import logging
from pathlib import Path

from multilands_rp.content.loader import load_affinities, load_attack_types, load_items, load_npcs
from multilands_rp.mechanics.effects import effect_params, parse_affinity_effect, parse_item_effect
from multilands_rp.models.catalog import ItemType
from multilands_rp.storage.database import Database
from multilands_rp.storage.repos.catalog_repo import CatalogRepo

logger = logging.getLogger(__name__)


def seed_catalog(db: Database, content_dir: Path | None = None) -> dict[str, int]:
    """Insert every catalog entry that is not already present.

    Existing rows (matched by name) are left untouched, so running this
    repeatedly is safe. Effect payloads are validated before anything is
    written; an unknown effect kind raises pydantic.ValidationError and the
    whole seed rolls back.
    """
    catalog = CatalogRepo(db)
    affinities = load_affinities(content_dir)
    attack_types = load_attack_types(content_dir)
    items = load_items(content_dir)
    npcs = load_npcs(content_dir)

    with db.get_connection(immediate=True):
        for aff in affinities:
            effect = parse_affinity_effect(aff.get("effect_type"), aff.get("effect_value"))
            catalog.ensure_affinity({
                "name": aff["name"],
                "description": aff.get("description", ""),
                "effect_type": effect.kind,
                "effect_value": effect_params(effect),
                "inflicted_status": aff.get("inflicted_status"),
                "status_duration": aff.get("status_duration", 2),
            })
        for attack_type in attack_types:
            catalog.ensure_attack_type({
                "name": attack_type["name"],
                "description": attack_type.get("description", ""),
            })
        for item in items:
            effect = parse_item_effect(item.get("effect_type"), item.get("effect_value"))
            catalog.ensure_item({
                "name": item["name"],
                "description": item.get("description", ""),
                "item_type": ItemType(item.get("item_type", "misc")).value,
                "rarity": item.get("rarity", "common"),
                "effect_type": effect.kind,
                "effect_value": effect_params(effect),
            })
        for npc in npcs:
            catalog.ensure_npc(npc)

    counts = {
        "affinities": len(affinities),
        "attack_types": len(attack_types),
        "items": len(items),
        "npcs": len(npcs),
    }
    logger.info(f"Catalog seed checked: {counts}")
    return counts
