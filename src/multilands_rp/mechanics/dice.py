"""Dice rolling engine: pure math, no I/O."""
from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import Protocol

from multilands_rp.errors import InvalidExpression

# Pattern: NdM, optional +/-X
_DICE_RE = re.compile(r"^(\d+)d(\d+)([+-]\d+)?$", re.IGNORECASE)


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


@dataclass
class DiceResult:
    expression: str
    individual_rolls: list[int] = field(default_factory=list)
    modifier: int = 0
    total: int = 0
    is_max_roll: bool = False
    max_possible: int = 0


@dataclass(frozen=True)
class DiceSpec:
    count: int
    sides: int
    modifier: int = 0

    @property
    def max_possible(self) -> int:
        return self.count * self.sides + self.modifier


def parse(expression: str) -> DiceSpec:
    """Parse an expression like '2d6+3' without rolling it."""
    expr = (expression or "").replace(" ", "")
    m = _DICE_RE.match(expr)
    if not m:
        raise InvalidExpression(expression)
    count = int(m.group(1))
    sides = int(m.group(2))
    if count < 1 or sides < 1:
        raise InvalidExpression(expression)
    modifier = int(m.group(3)) if m.group(3) else 0
    return DiceSpec(count=count, sides=sides, modifier=modifier)


def validate_expression(expression: str) -> str:
    """Return the normalized expression, raising InvalidExpression if malformed."""
    spec = parse(expression)
    if spec.modifier:
        return f"{spec.count}d{spec.sides}{spec.modifier:+d}"
    return f"{spec.count}d{spec.sides}"


def roll(expression: str, rng: RandomSource | None = None) -> DiceResult:
    """Roll dice from an expression like '2d6+3' or '1d20'.

    ``rng`` only needs a ``randint(a, b)`` method; the module-level
    ``random`` generator is used when omitted.
    """
    spec = parse(expression)
    source = rng if rng is not None else random

    rolls = [source.randint(1, spec.sides) for _ in range(spec.count)]
    return DiceResult(
        expression=expression,
        individual_rolls=rolls,
        modifier=spec.modifier,
        total=sum(rolls) + spec.modifier,
        is_max_roll=all(r == spec.sides for r in rolls),
        max_possible=spec.max_possible,
    )
