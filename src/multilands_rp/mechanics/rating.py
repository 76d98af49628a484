"""Roll rating tiers: presentation only, no mechanical effect."""
from __future__ import annotations

from enum import Enum


class Tier(str, Enum):
    PERFECT = "perfect"
    GREAT = "great"
    GOOD = "good"
    DEFLECTED = "deflected"


TIER_HEADLINES: dict[Tier, str] = {
    Tier.PERFECT: "AMAZING!!!!! (Perfect hit!)",
    Tier.GREAT: "GREAT!!!",
    Tier.GOOD: "GOOD!!",
    Tier.DEFLECTED: "bleh... (Attack deflected)",
}

DEFAULT_REFERENCES: dict[Tier, str] = {
    Tier.PERFECT: "https://example.com/amazing.gif",
    Tier.GREAT: "https://example.com/great.gif",
    Tier.GOOD: "https://example.com/good.gif",
    Tier.DEFLECTED: "https://example.com/deflected.gif",
}


def classify_roll(total: int, max_possible: int) -> Tier:
    """Map a roll to its tier. First match wins."""
    if total == max_possible:
        return Tier.PERFECT
    if total >= 3:
        return Tier.GREAT
    if total == 2:
        return Tier.GOOD
    return Tier.DEFLECTED


def headline_for(tier: Tier) -> str:
    return TIER_HEADLINES[tier]
