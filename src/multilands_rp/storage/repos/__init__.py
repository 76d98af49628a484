from __future__ import annotations

from multilands_rp.storage.repos.battle_repo import BattleRepo
from multilands_rp.storage.repos.catalog_repo import CatalogRepo
from multilands_rp.storage.repos.character_repo import CharacterRepo
from multilands_rp.storage.repos.inventory_repo import InventoryRepo
from multilands_rp.storage.repos.rating_repo import RatingRepo
from multilands_rp.storage.repos.unlock_repo import UnlockRepo

__all__ = [
    "BattleRepo",
    "CatalogRepo",
    "CharacterRepo",
    "InventoryRepo",
    "RatingRepo",
    "UnlockRepo",
]
