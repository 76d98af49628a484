"""Tests for src/multilands_rp/mechanics/effects.py."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from multilands_rp.mechanics.effects import (
    DamageMultiplier,
    HealHealth,
    NoEffect,
    RestoreSanity,
    SanityReductionPerDamage,
    SanitySteal,
    affinity_sanity_deltas,
    apply_status,
    can_afford,
    clamp,
    describe_effect,
    effect_params,
    item_deltas,
    parse_affinity_effect,
    parse_item_effect,
    reduce_damage,
    tick_cooldowns,
    tick_statuses,
)


class TestParsing:
    def test_affinity_from_dict(self):
        effect = parse_affinity_effect("damage_multiplier", {"multiplier": 2.0})
        assert isinstance(effect, DamageMultiplier)
        assert effect.multiplier == 2.0

    def test_affinity_from_json_text(self):
        effect = parse_affinity_effect("sanity_steal", '{"amount": 7}')
        assert isinstance(effect, SanitySteal)
        assert effect.amount == 7

    def test_missing_kind_is_none(self):
        assert isinstance(parse_affinity_effect(None, None), NoEffect)
        assert isinstance(parse_item_effect("none", ""), NoEffect)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            parse_affinity_effect("teleport", {})
        with pytest.raises(ValidationError):
            parse_item_effect("damage_multiplier", {})

    def test_params_exclude_kind(self):
        assert effect_params(HealHealth(amount=3)) == {"amount": 3}
        assert effect_params(NoEffect()) == {}

    def test_describe(self):
        assert describe_effect(HealHealth(amount=10)) == "heal health (amount=10)"
        assert describe_effect(NoEffect()) == "none"


class TestDeltas:
    def test_sanity_reduction_scales_with_damage(self):
        assert affinity_sanity_deltas(SanityReductionPerDamage(), 6) == (-6, 0)

    def test_sanity_steal_moves_sanity(self):
        assert affinity_sanity_deltas(SanitySteal(amount=5), 3) == (-5, 5)
        assert affinity_sanity_deltas(SanitySteal(amount=5), 0) == (0, 0)

    def test_declarative_effects_change_nothing(self):
        assert affinity_sanity_deltas(DamageMultiplier(), 10) == (0, 0)

    def test_item_deltas(self):
        assert item_deltas(HealHealth(amount=10)) == (10, 0)
        assert item_deltas(RestoreSanity(amount=4)) == (0, 4)
        assert item_deltas(NoEffect()) == (0, 0)


class TestPools:
    @pytest.mark.parametrize("value, expected", [(-5, 0), (0, 0), (50, 50), (150, 100)])
    def test_clamp(self, value, expected):
        assert clamp(value, 0, 100) == expected

    @pytest.mark.parametrize("health, sanity, hcost, scost, expected", [
        (10, 10, 0, 0, True),
        (10, 10, 9, 0, True),
        (10, 10, 10, 0, False),
        (10, 10, 0, 10, True),
        (10, 9, 0, 10, False),
    ])
    def test_can_afford(self, health, sanity, hcost, scost, expected):
        assert can_afford(health, sanity, hcost, scost) is expected

    @pytest.mark.parametrize("damage, expected", [(10, 8), (5, 4), (4, 4), (0, 0)])
    def test_reduce_damage_by_fifth(self, damage, expected):
        assert reduce_damage(damage, 0.2) == expected


class TestStatuses:
    def test_apply_and_refresh(self):
        statuses = apply_status([], "Fire", 2)
        statuses = apply_status(statuses, "Bleed", 3)
        statuses = apply_status(statuses, "Fire", 4)
        assert sorted((s["name"], s["remaining"]) for s in statuses) == [("Bleed", 3), ("Fire", 4)]

    def test_zero_duration_not_applied(self):
        assert apply_status([], "Fire", 0) == []

    def test_tick_expires_at_zero(self):
        remaining, expired = tick_statuses([{"name": "Fire", "remaining": 1}, {"name": "Bleed", "remaining": 2}])
        assert remaining == [{"name": "Bleed", "remaining": 1}]
        assert expired == ["Fire"]

    def test_cooldowns_tick(self):
        assert tick_cooldowns({"1": 1, "2": 3}) == {"2": 2}
