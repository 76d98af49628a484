"""Damage scaling, experience and attack mastery: pure math, no I/O."""
from __future__ import annotations

import re

# Only the bare NdM form is scaled; anything carrying a modifier passes through.
_SIMPLE_DICE_RE = re.compile(r"^(\d+)d(\d+)$", re.IGNORECASE)

MAX_LEVEL = 20

XP_THRESHOLDS: dict[int, int] = {
    1: 0, 2: 100, 3: 250, 4: 450, 5: 700,
    6: 1000, 7: 1400, 8: 1900, 9: 2500, 10: 3200,
    11: 4000, 12: 5000, 13: 6200, 14: 7600, 15: 9200,
    16: 11000, 17: 13000, 18: 15500, 19: 18500, 20: 22000,
}

# Perfect hits needed to raise an unlocked attack one level.
PERFECT_HITS_PER_LEVEL = 5


def scale_expression(base_expression: str, scalar: int) -> str:
    """Grow the die size linearly with ``scalar``: '1d4' at level 3 -> '1d7'.

    This is a policy, not a rule of the domain. It is deterministic and
    monotonic: a larger scalar never yields fewer sides. Negative scalars
    are treated as 0.
    """
    m = _SIMPLE_DICE_RE.match((base_expression or "").replace(" ", ""))
    if not m:
        return base_expression
    count = int(m.group(1))
    sides = int(m.group(2)) + max(int(scalar), 0)
    return f"{count}d{sides}"


def xp_for_level(level: int) -> int:
    """XP required to reach the given level."""
    return XP_THRESHOLDS.get(level, 0)


def level_for_experience(xp: int) -> int:
    """Determine level from total experience."""
    level = 1
    for lvl in sorted(XP_THRESHOLDS.keys()):
        if xp >= XP_THRESHOLDS[lvl]:
            level = lvl
        else:
            break
    return level


def record_perfect_hit(attack_level: int, perfect_hits: int) -> tuple[int, int, bool]:
    """Apply one perfect hit to an unlock. Returns (level, hits, leveled_up)."""
    hits = perfect_hits + 1
    if hits >= PERFECT_HITS_PER_LEVEL:
        return attack_level + 1, 0, True
    return attack_level, hits, False
