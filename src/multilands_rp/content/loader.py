from __future__ import annotations
import tomllib
from pathlib import Path
from typing import Any

CONTENT_DIR = Path(__file__).parent

def load_toml(filepath: Path) -> dict[str, Any]:
    with open(filepath, "rb") as f:
        return tomllib.load(f)

def _load_list(filename: str, key: str, content_dir: Path | None = None) -> list[dict[str, Any]]:
    path = (content_dir or CONTENT_DIR) / filename
    if not path.exists():
        return []
    return list(load_toml(path).get(key, []))

def load_affinities(content_dir: Path | None = None) -> list[dict[str, Any]]:
    return _load_list("affinities.toml", "affinities", content_dir)

def load_attack_types(content_dir: Path | None = None) -> list[dict[str, Any]]:
    return _load_list("attack_types.toml", "attack_types", content_dir)

def load_items(content_dir: Path | None = None) -> list[dict[str, Any]]:
    return _load_list("items.toml", "items", content_dir)

def load_npcs(content_dir: Path | None = None) -> list[dict[str, Any]]:
    """Load NPC definitions; current pools start at their maxima unless given."""
    npcs = []
    for npc in _load_list("npcs.toml", "npcs", content_dir):
        npc.setdefault("health_current", npc.get("health_max", 100))
        npc.setdefault("sanity_current", npc.get("sanity_max", 100))
        npcs.append(npc)
    return npcs
