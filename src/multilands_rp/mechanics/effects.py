"""Affinity/item effect payloads and status bookkeeping: pure data, no I/O."""
from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


# -- Affinity effects --

class NoEffect(BaseModel):
    kind: Literal["none"] = "none"


class DamageMultiplier(BaseModel):
    kind: Literal["damage_multiplier"] = "damage_multiplier"
    multiplier: float = 1.5


class DiceDivision(BaseModel):
    kind: Literal["dice_division"] = "dice_division"
    divisor: float = 1.5


class SanityReductionPerDamage(BaseModel):
    kind: Literal["sanity_reduction_per_damage"] = "sanity_reduction_per_damage"
    per_damage: int = 1


class SanitySteal(BaseModel):
    kind: Literal["sanity_steal"] = "sanity_steal"
    amount: int = 5


class BattleScaling(BaseModel):
    kind: Literal["battle_scaling"] = "battle_scaling"


class DamageReflection(BaseModel):
    kind: Literal["damage_reflection"] = "damage_reflection"


class AttackLock(BaseModel):
    kind: Literal["attack_lock"] = "attack_lock"


AffinityEffect = Annotated[
    Union[
        NoEffect,
        DamageMultiplier,
        DiceDivision,
        SanityReductionPerDamage,
        SanitySteal,
        BattleScaling,
        DamageReflection,
        AttackLock,
    ],
    Field(discriminator="kind"),
]

_AFFINITY_ADAPTER: TypeAdapter = TypeAdapter(AffinityEffect)


# -- Item effects --

class HealHealth(BaseModel):
    kind: Literal["heal_health"] = "heal_health"
    amount: int = 10


class RestoreSanity(BaseModel):
    kind: Literal["restore_sanity"] = "restore_sanity"
    amount: int = 10


ItemEffect = Annotated[
    Union[NoEffect, HealHealth, RestoreSanity],
    Field(discriminator="kind"),
]

_ITEM_ADAPTER: TypeAdapter = TypeAdapter(ItemEffect)


def _payload(effect_type: str | None, effect_value: Any) -> dict:
    if isinstance(effect_value, str):
        effect_value = json.loads(effect_value) if effect_value else {}
    data = dict(effect_value or {})
    data["kind"] = effect_type or "none"
    return data


def parse_affinity_effect(effect_type: str | None, effect_value: Any = None) -> AffinityEffect:
    """Build the typed effect from a stored (effect_type, effect_value) pair.

    Raises pydantic.ValidationError for unknown kinds or bad parameters.
    """
    return _AFFINITY_ADAPTER.validate_python(_payload(effect_type, effect_value))


def parse_item_effect(effect_type: str | None, effect_value: Any = None) -> ItemEffect:
    return _ITEM_ADAPTER.validate_python(_payload(effect_type, effect_value))


def effect_params(effect: BaseModel) -> dict:
    """Parameters of an effect without its kind tag, for storage."""
    return effect.model_dump(exclude={"kind"})


def affinity_sanity_deltas(effect: BaseModel, damage: int) -> tuple[int, int]:
    """Sanity changes caused by an affinity on a hit: (target_delta, attacker_delta)."""
    if isinstance(effect, SanityReductionPerDamage):
        return -damage * effect.per_damage, 0
    if isinstance(effect, SanitySteal):
        if damage <= 0:
            return 0, 0
        return -effect.amount, effect.amount
    return 0, 0


def item_deltas(effect: BaseModel) -> tuple[int, int]:
    """Health/sanity changes from using an item: (health_delta, sanity_delta)."""
    if isinstance(effect, HealHealth):
        return effect.amount, 0
    if isinstance(effect, RestoreSanity):
        return 0, effect.amount
    return 0, 0


def describe_effect(effect: BaseModel) -> str:
    params = effect_params(effect)
    if not params:
        return effect.kind.replace("_", " ")
    joined = ", ".join(f"{k}={v}" for k, v in params.items())
    return f"{effect.kind.replace('_', ' ')} ({joined})"


# -- Pools, costs, statuses --

def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def can_afford(health_current: int, sanity_current: int, health_cost: int, sanity_cost: int) -> bool:
    """Check whether a pool can pay an attack's cost.

    Paying health may never be lethal, so a health cost needs strictly
    more health than the cost.
    """
    if health_cost > 0 and health_current <= health_cost:
        return False
    return sanity_current >= sanity_cost


def reduce_damage(damage: int, fraction: float) -> int:
    """Damage left after a fractional reduction; the reduced part rounds down."""
    return damage - int(damage * fraction)


def apply_status(statuses: list[dict], name: str, duration: int) -> list[dict]:
    """Add a status effect, refreshing its duration if already present."""
    out = [dict(s) for s in statuses if s.get("name") != name]
    if duration > 0:
        out.append({"name": name, "remaining": duration})
    return out


def tick_statuses(statuses: list[dict]) -> tuple[list[dict], list[str]]:
    """Count every status down by one. Returns (remaining, expired_names)."""
    remaining: list[dict] = []
    expired: list[str] = []
    for s in statuses:
        left = int(s.get("remaining", 0)) - 1
        if left > 0:
            remaining.append({"name": s["name"], "remaining": left})
        else:
            expired.append(s["name"])
    return remaining, expired


def tick_cooldowns(cooldowns: dict[str, int]) -> dict[str, int]:
    return {k: v - 1 for k, v in cooldowns.items() if v - 1 > 0}
