from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ItemType(str, Enum):
    CONSUMABLE = "consumable"
    WEAPON = "weapon"
    ARMOR = "armor"
    MISC = "misc"
    QUEST = "quest"


class Npc(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str = ""
    avatar_url: Optional[str] = None
    health_max: int = 100
    sanity_max: int = 100
    level: int = 1
    base_damage_dice: str = "1d4"
    attack_chain_max: int = 1
    is_boss: bool = False
    rarity: Optional[str] = None
