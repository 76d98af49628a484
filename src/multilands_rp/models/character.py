from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Fields an owner may change through a partial update.
EDITABLE_FIELDS = frozenset({
    "avatar_url",
    "gender",
    "age",
    "species",
    "occupation",
    "appearance_url",
    "sanity_increase_desc",
    "sanity_decrease_desc",
})


class Character(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    name: str
    avatar_url: str = ""
    gender: Optional[str] = None
    age: Optional[int] = None
    species: Optional[str] = None
    occupation: Optional[str] = None
    appearance_url: Optional[str] = None
    sanity_increase_desc: Optional[str] = None
    sanity_decrease_desc: Optional[str] = None
    health_current: int = 100
    health_max: int = 100
    sanity_current: int = 100
    sanity_max: int = 100
    level: int = 1
    experience: int = 0
    attack_chain_max: int = 1


class UnlockedAttack(BaseModel):
    """An attack definition joined with one character's unlock record."""

    model_config = ConfigDict(from_attributes=True)

    attack_id: int
    name: str
    base_damage_dice: str
    type_name: Optional[str] = None
    affinity_name: Optional[str] = None
    health_cost: int = 0
    sanity_cost: int = 0
    cooldown: int = 0
    attack_level: int = 0
    perfect_hits: int = 0


class InventoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: int
    name: str
    quantity: int = Field(ge=0)
    description: str = ""
