from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BattleStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"
    PAUSED = "paused"


class BattleOption(str, Enum):
    RUNAWAY = "runaway"
    DEFEND = "defend"
    FOCUS = "focus"
    ITEM = "item"
    SPECIAL = "special"


def scope_key(guild_id: str, channel_id: str) -> str:
    return f"{guild_id}:{channel_id}"


class Scope(BaseModel):
    """Where a battle lives: one guild channel."""

    guild_id: str
    channel_id: str

    @property
    def key(self) -> str:
        return scope_key(self.guild_id, self.channel_id)


class Battle(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    scope_key: str
    guild_id: str
    channel_id: str
    status: BattleStatus = BattleStatus.ACTIVE
    turn_order: list[int] = Field(default_factory=list)
    current_turn_participant_id: Optional[int] = None
    round_number: int = 1
    created_at: str = ""
    last_activity: str = ""
    ended_at: Optional[str] = None


class Participant(BaseModel):
    """Battle-scoped snapshot of a character or NPC."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    battle_id: int
    character_id: Optional[int] = None
    npc_id: Optional[int] = None
    is_player: bool
    current_health: int
    current_sanity: int
    defending: bool = False
    focus_bonus: int = 0
    skip_next_turn: bool = False
    status_effects: list[dict] = Field(default_factory=list)
    cooldowns: dict[str, int] = Field(default_factory=dict)
    # Joined from the source entity, read-only.
    name: str = ""
    avatar_url: Optional[str] = None
    max_health: int = 0
    max_sanity: int = 0
    owner_id: Optional[str] = None
    level: int = 1
    base_damage_dice: Optional[str] = None

    @property
    def is_defeated(self) -> bool:
        return self.current_health <= 0
