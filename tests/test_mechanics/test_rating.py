"""Tests for src/multilands_rp/mechanics/rating.py."""
from __future__ import annotations

import pytest

from multilands_rp.mechanics.rating import DEFAULT_REFERENCES, Tier, classify_roll, headline_for


class TestClassifyRoll:
    @pytest.mark.parametrize("total, max_possible, expected", [
        (4, 4, Tier.PERFECT),
        (1, 1, Tier.PERFECT),
        (2, 2, Tier.PERFECT),
        (3, 4, Tier.GREAT),
        (19, 20, Tier.GREAT),
        (2, 4, Tier.GOOD),
        (1, 4, Tier.DEFLECTED),
        (0, 4, Tier.DEFLECTED),
        (-3, 4, Tier.DEFLECTED),
    ])
    def test_first_match_wins(self, total, max_possible, expected):
        assert classify_roll(total, max_possible) is expected

    def test_every_roll_gets_exactly_one_tier(self):
        for max_possible in range(1, 30):
            for total in range(-5, max_possible + 1):
                tier = classify_roll(total, max_possible)
                assert tier in Tier
                if total == max_possible:
                    assert tier is Tier.PERFECT


def test_every_tier_has_headline_and_default():
    for tier in Tier:
        assert headline_for(tier)
        assert DEFAULT_REFERENCES[tier].startswith("https://")
