"""Tests for the rich result renderer."""
from __future__ import annotations

from rich.console import Console

from multilands_rp.cli.display import ResultDisplay
from multilands_rp.models.result import CommandResult


def _render(result: CommandResult) -> str:
    console = Console(record=True, width=80, force_terminal=False, color_system=None)
    ResultDisplay(console_=console).show(result)
    return console.export_text()


def test_success_panel_shows_headline_fields_and_footer():
    result = CommandResult(headline="Current Battle Status", description="**Round 2**", footer="Battle ID: 7")
    result.add_field("Current Turn", "Ada")
    result.add_field("Your Character(s)", "Ada (HP: 90/100)", inline=True)
    result.add_field("Opponent(s)", "Water Bottle (HP: 40/45)", inline=True)
    text = _render(result)
    for expected in ("Current Battle Status", "Round 2", "Current Turn", "Opponent(s)", "Water Bottle", "Battle ID: 7"):
        assert expected in text


def test_image_references_are_listed():
    text = _render(CommandResult(headline="Hit", image="https://example.com/great.gif", thumbnail="a.png"))
    assert "Image: https://example.com/great.gif" in text
    assert "Portrait: a.png" in text


def test_failure_prints_message_only():
    text = _render(CommandResult.failure("No active battle found in this channel.", "no_active_battle"))
    assert text.strip() == "❌ No active battle found in this channel."


def test_render_border_tracks_outcome():
    display = ResultDisplay(console_=Console(width=80))
    assert display.render(CommandResult(headline="ok")).border_style == "green"
    assert display.render(CommandResult.failure("nope")).border_style == "red"
