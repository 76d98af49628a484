"""End-to-end tests for the Typer CLI."""
from __future__ import annotations

import pytest
from typer.testing import CliRunner

from multilands_rp.cli.main import app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        f'[storage]\ndb_path = "{(tmp_path / "cli.db").as_posix()}"\nretry_delay = 0\n\n'
        '[logging]\nlevel = "ERROR"\n'
    )
    return str(path)


@pytest.fixture
def cli(config_file):
    def invoke(*args: str, owner: str = "tester", input: str | None = None):
        return runner.invoke(app, ["--config", config_file, "--owner", owner, *args], input=input)

    result = invoke("seed")
    assert result.exit_code == 0, result.output
    return invoke


def test_seed_reports_counts(cli):
    result = cli("seed")
    assert result.exit_code == 0
    assert "Catalog ready" in result.output
    assert "7 affinities" in result.output


def test_character_create_and_sheet(cli):
    assert cli("character", "create", "Ada", "--species", "Human").exit_code == 0
    result = cli("character", "sheet")
    assert result.exit_code == 0
    assert "Ada's Character Token" in result.output
    assert "Human" in result.output


def test_duplicate_character_exits_nonzero(cli):
    cli("character", "create", "Ada")
    result = cli("character", "create", "Ada")
    assert result.exit_code == 1
    assert "already have a character" in result.output


def test_delete_requires_confirmation(cli):
    cli("character", "create", "Ada")
    aborted = cli("character", "delete", "Ada", input="n\n")
    assert aborted.exit_code == 1
    assert cli("character", "sheet", "Ada").exit_code == 0
    result = cli("character", "delete", "Ada", "--yes")
    assert result.exit_code == 0
    assert cli("character", "sheet", "Ada").exit_code == 1


def test_battle_flow(cli):
    cli("character", "create", "Ada")
    cli("attack", "create", "Quick Slash", "--type", "Slash", "--dice", "1d4")
    started = cli("battle", "start", "Water Bottle")
    assert started.exit_code == 0
    assert "Battle Started" in started.output

    again = cli("battle", "start", "Water Bottle")
    assert again.exit_code == 1
    assert "already active" in again.output

    assert cli("battle", "action", "defend").exit_code == 0
    status = cli("battle", "status")
    assert status.exit_code == 0
    assert "Round 1" in status.output
    assert cli("battle", "end").exit_code == 0
    assert cli("battle", "status").exit_code == 1


def test_battles_are_scoped_per_channel(config_file, cli):
    cli("character", "create", "Ada")
    base = ["--config", config_file, "--owner", "tester"]
    assert runner.invoke(app, [*base, "--channel", "one", "battle", "start", "Water Bottle"]).exit_code == 0
    assert runner.invoke(app, [*base, "--channel", "two", "battle", "start", "Water Bottle"]).exit_code == 0
    assert runner.invoke(app, [*base, "--channel", "one", "battle", "start", "Water Bottle"]).exit_code == 1


def test_unknown_action_option_is_rejected(cli):
    result = cli("battle", "action", "fly")
    assert result.exit_code != 0
