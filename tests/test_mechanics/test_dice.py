"""Tests for src/multilands_rp/mechanics/dice.py."""
from __future__ import annotations

import pytest

from multilands_rp.errors import GameError, InvalidExpression
from multilands_rp.mechanics.dice import DiceResult, parse, roll, validate_expression


class TestRollParsing:
    @pytest.mark.parametrize("expr", [
        "1d20", "2d6", "1d8+3", "2d10-1", "1d4", "3d12+5", "1D6", " 2d6 + 1 ",
    ])
    def test_valid_expressions(self, expr, seeded_rng):
        result = roll(expr)
        assert isinstance(result, DiceResult)
        assert result.expression == expr

    @pytest.mark.parametrize("expr", [
        "", "abc", "d20", "roll 1d6", "1d", "0d6", "1d0", "2d6*2", "1d6+",
    ])
    def test_invalid_expressions(self, expr):
        with pytest.raises(InvalidExpression):
            roll(expr)

    def test_invalid_expression_is_value_error_and_game_error(self):
        with pytest.raises(ValueError):
            parse("nope")
        with pytest.raises(GameError) as exc:
            parse("nope")
        assert "1d4" in exc.value.message

    def test_validate_normalizes(self):
        assert validate_expression(" 2D6 + 3 ") == "2d6+3"
        assert validate_expression("1d4") == "1d4"
        assert validate_expression("1d8-0") == "1d8"


class TestRollRange:
    @pytest.mark.parametrize("expr, lo, hi", [
        ("1d6", 1, 6),
        ("2d6", 2, 12),
        ("1d20", 1, 20),
        ("1d4+2", 3, 6),
        ("1d4-2", -1, 2),
    ])
    def test_total_within_range(self, expr, lo, hi, seeded_rng):
        for _ in range(100):
            result = roll(expr)
            assert lo <= result.total <= hi, f"{expr} gave {result.total}"


class TestScriptedRolls:
    def test_same_faces_same_result(self, rng):
        rng.push(2, 5, 6, 2, 5, 6)
        first = roll("3d6+2", rng)
        second = roll("3d6+2", rng)
        assert first == second
        assert first.individual_rolls == [2, 5, 6]
        assert first.total == 15
        assert first.max_possible == 20
        assert first.is_max_roll is False

    def test_max_face_on_d4(self, rng):
        rng.push(4)
        result = roll("1d4", rng)
        assert result.is_max_roll is True
        assert result.total == 4
        assert result.max_possible == 4

    @pytest.mark.parametrize("expr, faces, expected", [
        ("2d6+3", (6, 6), True),
        ("2d6-3", (6, 6), True),
        ("2d6-3", (6, 5), False),
        ("1d1", (1,), True),
    ])
    def test_max_roll_ignores_modifier(self, expr, faces, expected, rng):
        rng.push(*faces)
        assert roll(expr, rng).is_max_roll is expected

    def test_draws_one_face_per_die(self, rng):
        rng.push(1, 2, 3, 4)
        roll("4d8", rng)
        assert rng.requests == [(1, 8)] * 4
