"""Tests for CommandDispatcher routing and error mapping."""
from __future__ import annotations

import sqlite3

import pytest

from multilands_rp.app import RPApp
from multilands_rp.engine.dispatcher import STORAGE_FAILURE_MESSAGE
from multilands_rp.errors import StorageUnavailable


@pytest.fixture
def rp_app(tmp_path, rng):
    app = RPApp(config={"storage": {"db_path": str(tmp_path / "rp.db"), "retry_delay": 0}}, rng=rng)
    app.seed()
    yield app
    app.close()


@pytest.fixture
def dispatch(rp_app):
    return rp_app.dispatcher.dispatch


class TestCharacters:
    def test_create_and_list(self, dispatch):
        created = dispatch("character.create", "u1", name="Ada", species="Human", gender=None)
        assert created.success
        assert created.headline == '✅ Character "Ada" created successfully!'
        listed = dispatch("character.list", "u1")
        assert listed.data["names"] == ["Ada"]
        assert "- Ada (ID: " in listed.description

    def test_duplicate_maps_to_failure(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        result = dispatch("character.create", "u1", name="Ada")
        assert not result.success
        assert result.error_kind == "duplicate_name"
        assert result.description == 'You already have a character named "Ada".'

    def test_no_character(self, dispatch):
        result = dispatch("character.sheet", "u1")
        assert (result.success, result.error_kind) == (False, "no_character")

    def test_empty_list(self, dispatch):
        result = dispatch("character.list", "u1")
        assert result.success and result.headline.startswith("You have no characters yet")

    def test_edit_select_delete(self, dispatch, rp_app):
        dispatch("character.create", "u1", name="Ada")
        dispatch("character.create", "u1", name="Bea")
        assert dispatch("character.edit", "u1", name="Ada", occupation="Smith", age=None).success
        assert dispatch("character.select", "u1", name="Ada").success
        assert rp_app.ledger.resolve("u1").occupation == "Smith"
        assert dispatch("character.delete", "u1", name="Ada").success
        assert dispatch("character.delete", "u1", name="Ada").error_kind == "no_character"

    def test_adjust_clamps(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        dispatch("character.adjust", "u1", sanity=-60)
        result = dispatch("character.adjust", "u1", sanity=-60)
        assert result.data == {"health": 100, "sanity": 0}

    def test_award_xp(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        result = dispatch("character.award_xp", "u1", amount=120)
        assert result.data["leveled_up"] is True
        assert result.headline == "Ada gained 120 XP and reached level 2!"


class TestAttacksAndItems:
    def test_attack_create_validation(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        bad = dispatch("attack.create", "u1", name="Ember", type_name="Magic", base_damage_dice="d4")
        assert bad.error_kind == "invalid_expression"
        ok = dispatch("attack.create", "u1", name="Ember", type_name="Magic", base_damage_dice="1d4", affinity_name=None)
        assert ok.success
        listed = dispatch("attack.list", "u1")
        assert listed.data["attacks"] == ["Ember"]
        assert listed.fields[0].value == "Damage: 1d5; Cost: free; Cooldown: 0"

    def test_learn(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        dispatch("attack.create", "u1", name="Ember", type_name="Magic", base_damage_dice="1d4")
        dispatch("character.create", "u2", name="Bea")
        assert dispatch("attack.learn", "u2", attack_name="Ember").headline == "Bea learned Ember!"
        assert dispatch("attack.learn", "u2", attack_name="Nope").error_kind == "unknown_catalog_entry"

    def test_item_use_outside_battle(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        dispatch("character.adjust", "u1", health=-30)
        dispatch("item.grant", "u1", item_name="Starter Potion", quantity=2)
        result = dispatch("item.use", "u1", item_name="Starter Potion")
        assert result.data == {"health": 80, "sanity": 100, "remaining": 1}
        assert dispatch("item.inventory", "u1").data["items"] == {"Starter Potion": 1}

    def test_item_use_without_stock_changes_nothing(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        dispatch("character.adjust", "u1", sanity=-50)
        result = dispatch("item.use", "u1", item_name="Calming Tea")
        assert result.error_kind == "insufficient_items"
        assert dispatch("character.adjust", "u1").data["sanity"] == 50


class TestBattles:
    def test_battle_commands_need_scope(self, dispatch):
        dispatch("character.create", "u1", name="Ada")
        result = dispatch("battle.start", "u1", opponent="Water Bottle")
        assert not result.success
        assert result.description == "Battle commands must be used in a channel."

    def test_full_exchange(self, dispatch, rng, scope):
        dispatch("character.create", "u1", name="Ada")
        dispatch("attack.create", "u1", name="Quick Slash", type_name="Slash", base_damage_dice="1d4")
        assert dispatch("battle.start", "u1", scope, opponent="Water Bottle").success
        assert dispatch("battle.start", "u1", scope, opponent="Water Bottle").error_kind == "battle_already_active"

        rng.push(5)
        hit = dispatch("battle.attack", "u1", scope)
        assert hit.data["damage"] == 5
        assert dispatch("battle.next", "u1", scope).data["current_is_player"] is False
        rng.push(1)
        npc = dispatch("battle.npc_turn", "u1", scope)
        assert npc.data["damage"] == 1 and npc.data["current_is_player"] is True

        status = dispatch("battle.status", "u1", scope)
        assert status.data["round_number"] == 2
        assert dispatch("battle.end", "u1", scope).success
        assert dispatch("battle.status", "u1", scope).error_kind == "no_active_battle"

    def test_delete_refused_mid_battle(self, dispatch, scope):
        dispatch("character.create", "u1", name="Ada")
        dispatch("battle.start", "u1", scope, opponent="Water Bottle")
        result = dispatch("character.delete", "u1", name="Ada")
        assert result.error_kind == "character_in_battle"
        assert dispatch("battle.status", "u1", scope).fields[0].value == "Ada"

    def test_negative_pool_is_not_reported_as_duplicate(self, dispatch):
        result = dispatch("character.create", "u1", name="Ghost", health_max=-5)
        assert result.error_kind == "game_error"
        assert result.description == "Health maximum must be at least 1 (got -5)."

    def test_action_missing_input(self, dispatch, scope):
        dispatch("character.create", "u1", name="Ada")
        dispatch("battle.start", "u1", scope, opponent="Water Bottle")
        result = dispatch("battle.action", "u1", scope, option="runaway")
        assert result.error_kind == "missing_action_input"


class TestRatings:
    def test_set_show_clear(self, dispatch):
        assert dispatch("rating.show", "u1", tier="great").image == "https://example.com/great.gif"
        dispatch("rating.set", "u1", tier="great", image_url="https://img.example/wow.gif")
        assert dispatch("rating.show", "u1", tier="great").image == "https://img.example/wow.gif"
        assert dispatch("rating.show", "u2", tier="great").image == "https://example.com/great.gif"
        assert dispatch("rating.clear", "u1", tier="great").data["cleared"] is True
        assert dispatch("rating.clear", "u1", tier="great").data["cleared"] is False

    def test_unknown_tier(self, dispatch):
        result = dispatch("rating.show", "u1", tier="legendary")
        assert result.error_kind == "game_error"


class TestFailures:
    def test_unknown_command(self, dispatch):
        result = dispatch("character.teleport", "u1")
        assert (result.success, result.error_kind) == (False, "unknown_command")

    @pytest.mark.parametrize("error", [sqlite3.OperationalError("disk I/O error"), StorageUnavailable("gone")])
    def test_storage_failure_is_generic_and_reconnects(self, dispatch, rp_app, monkeypatch, error, caplog):
        def broken(*args, **kwargs):
            raise error

        reconnects = []
        monkeypatch.setattr(rp_app.ledger.characters, "get_latest", broken)
        monkeypatch.setattr(rp_app.db, "reconnect", lambda: reconnects.append(True))
        result = dispatch("character.sheet", "u1")
        assert not result.success
        assert result.description == STORAGE_FAILURE_MESSAGE
        assert result.error_kind == "storage_unavailable"
        assert reconnects == [True]
        assert "Storage failure while handling character.sheet" in caplog.text

    def test_recovers_after_reconnect(self, dispatch, rp_app, monkeypatch):
        dispatch("character.create", "u1", name="Ada")

        def broken(owner_id):
            raise sqlite3.OperationalError("boom")

        monkeypatch.setattr(rp_app.ledger.characters, "get_latest", broken)
        assert not dispatch("character.sheet", "u1").success
        monkeypatch.undo()
        assert dispatch("character.sheet", "u1").success
