"""Command dispatcher. Routes validated commands to the ledger and combat engine."""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable

from multilands_rp.engine.combat import CombatEngine
from multilands_rp.engine.ledger import CharacterLedger
from multilands_rp.engine.rating import RatingResolver
from multilands_rp.errors import GameError, StorageUnavailable
from multilands_rp.mechanics import effects
from multilands_rp.mechanics.progression import scale_expression
from multilands_rp.models.battle import Scope
from multilands_rp.models.result import CommandResult
from multilands_rp.storage.database import Database

logger = logging.getLogger(__name__)

Handler = Callable[..., CommandResult]

STORAGE_FAILURE_MESSAGE = "The game store is unavailable right now. Please try again in a moment."


class CommandDispatcher:
    """Single entry point for every player command.

    Handlers receive already-typed parameters plus the acting owner id and,
    for battle commands, the scope. Domain errors become failed results with
    their message; storage errors are logged and reported generically.
    """

    def __init__(
        self,
        db: Database,
        ledger: CharacterLedger,
        combat: CombatEngine,
        rating: RatingResolver,
    ) -> None:
        self.db = db
        self.ledger = ledger
        self.combat = combat
        self.rating = rating
        self._handlers: dict[str, Handler] = {
            "character.create": self._character_create,
            "character.sheet": self._character_sheet,
            "character.list": self._character_list,
            "character.select": self._character_select,
            "character.edit": self._character_edit,
            "character.delete": self._character_delete,
            "character.adjust": self._character_adjust,
            "character.award_xp": self._character_award_xp,
            "attack.create": self._attack_create,
            "attack.learn": self._attack_learn,
            "attack.list": self._attack_list,
            "item.grant": self._item_grant,
            "item.use": self._item_use,
            "item.inventory": self._item_inventory,
            "battle.start": self._battle_start,
            "battle.attack": self._battle_attack,
            "battle.action": self._battle_action,
            "battle.next": self._battle_next,
            "battle.npc_turn": self._battle_npc_turn,
            "battle.status": self._battle_status,
            "battle.end": self._battle_end,
            "rating.show": self._rating_show,
            "rating.set": self._rating_set,
            "rating.clear": self._rating_clear,
        }

    def dispatch(self, command: str, owner_id: str, scope: Scope | None = None, **params: Any) -> CommandResult:
        handler = self._handlers.get(command)
        if handler is None:
            return CommandResult.failure(f"Unknown command '{command}'.", "unknown_command")
        try:
            return handler(owner_id, scope, **params)
        except GameError as e:
            return CommandResult.failure(e.message, e.kind)
        except (sqlite3.Error, StorageUnavailable):
            logger.exception(f"Storage failure while handling {command}")
            self.db.reconnect()
            return CommandResult.failure(STORAGE_FAILURE_MESSAGE, "storage_unavailable")

    @staticmethod
    def _scope(scope: Scope | None) -> Scope:
        if scope is None:
            raise GameError("Battle commands must be used in a channel.")
        return scope

    # -- Characters --

    def _character_create(self, owner_id: str, scope: Scope | None, name: str, avatar_url: str = "", **details: Any) -> CommandResult:
        details = {k: v for k, v in details.items() if v is not None}
        character = self.ledger.create(owner_id, name, avatar_url, **details)
        return CommandResult(
            headline=f'✅ Character "{character.name}" created successfully!',
            thumbnail=character.avatar_url or None,
            data={"character_id": character.id},
        )

    def _character_sheet(self, owner_id: str, scope: Scope | None, name: str | None = None) -> CommandResult:
        return self.ledger.sheet(owner_id, name)

    def _character_list(self, owner_id: str, scope: Scope | None) -> CommandResult:
        characters = self.ledger.list_characters(owner_id)
        if not characters:
            return CommandResult(headline="You have no characters yet. Create one with `character create`.")
        lines = [f"- {c.name} (ID: {c.id}, Lvl {c.level})" for c in characters]
        return CommandResult(
            headline="Your characters:",
            description="\n".join(lines),
            data={"names": [c.name for c in characters]},
        )

    def _character_select(self, owner_id: str, scope: Scope | None, name: str) -> CommandResult:
        character = self.ledger.select(owner_id, name)
        return CommandResult(
            headline=f'✅ Character "{character.name}" selected as your active character.',
            data={"character_id": character.id},
        )

    def _character_edit(self, owner_id: str, scope: Scope | None, name: str, **fields: Any) -> CommandResult:
        character = self.ledger.update_fields(owner_id, name, fields)
        return CommandResult(
            headline=f'✅ Character "{character.name}" updated.',
            data={"character_id": character.id},
        )

    def _character_delete(self, owner_id: str, scope: Scope | None, name: str) -> CommandResult:
        self.ledger.delete(owner_id, name)
        return CommandResult(headline=f'✅ Character "{name}" deleted successfully!')

    def _character_adjust(
        self, owner_id: str, scope: Scope | None, name: str | None = None, health: int = 0, sanity: int = 0,
    ) -> CommandResult:
        character = self.ledger.resolve(owner_id, name)
        health_now, sanity_now = self.ledger.adjust_health_sanity(character.id, health, sanity)
        result = CommandResult(
            headline=f"{character.name}'s pools changed",
            data={"health": health_now, "sanity": sanity_now},
        )
        result.add_field("Health", f"{health_now}/{character.health_max}", inline=True)
        result.add_field("Sanity", f"{sanity_now}/{character.sanity_max}", inline=True)
        return result

    def _character_award_xp(self, owner_id: str, scope: Scope | None, amount: int, name: str | None = None) -> CommandResult:
        character = self.ledger.resolve(owner_id, name)
        character, leveled = self.ledger.award_experience(character.id, amount)
        headline = f"{character.name} gained {amount} XP"
        if leveled:
            headline += f" and reached level {character.level}!"
        return CommandResult(
            headline=headline,
            data={"experience": character.experience, "level": character.level, "leveled_up": leveled},
        )

    # -- Attacks --

    def _attack_create(self, owner_id: str, scope: Scope | None, name: str, type_name: str, base_damage_dice: str, **options: Any) -> CommandResult:
        options = {k: v for k, v in options.items() if v is not None}
        attack_id = self.ledger.create_attack(owner_id, name, type_name, base_damage_dice, **options)
        return CommandResult(headline=f'✅ Attack "{name}" created successfully!', data={"attack_id": attack_id})

    def _attack_learn(self, owner_id: str, scope: Scope | None, attack_name: str, character_name: str | None = None) -> CommandResult:
        character = self.ledger.resolve(owner_id, character_name)
        attack = self.ledger.learn_attack(character.id, attack_name)
        return CommandResult(
            headline=f"{character.name} learned {attack.name}!",
            data={"attack_id": attack.attack_id},
        )

    def _attack_list(self, owner_id: str, scope: Scope | None, character_name: str | None = None) -> CommandResult:
        character = self.ledger.resolve(owner_id, character_name)
        attacks = self.ledger.unlocked_attacks(character.id)
        result = CommandResult(
            headline=f"{character.name}'s attacks",
            description="" if attacks else "None yet.",
            data={"attacks": [a.name for a in attacks]},
        )
        for att in attacks:
            costs = []
            if att.health_cost:
                costs.append(f"{att.health_cost} HP")
            if att.sanity_cost:
                costs.append(f"{att.sanity_cost} SP")
            dice = scale_expression(att.base_damage_dice, character.level)
            result.add_field(att.name, f"Damage: {dice}; Cost: {', '.join(costs) or 'free'}; Cooldown: {att.cooldown}")
        return result

    # -- Items --

    def _item_grant(
        self, owner_id: str, scope: Scope | None, item_name: str, quantity: int = 1, character_name: str | None = None,
    ) -> CommandResult:
        character = self.ledger.resolve(owner_id, character_name)
        held = self.ledger.grant_item(character.id, item_name, quantity)
        return CommandResult(
            headline=f"{character.name} received {quantity}x {item_name}",
            data={"quantity": held},
        ).add_field("Now holding", str(held))

    def _item_use(self, owner_id: str, scope: Scope | None, item_name: str, character_name: str | None = None) -> CommandResult:
        """Use an item outside battle; the effect lands on the character's own pools."""
        with self.db.get_connection(immediate=True):
            character = self.ledger.resolve(owner_id, character_name)
            item, remaining = self.ledger.consume_item(character.id, item_name)
            effect = effects.parse_item_effect(item.get("effect_type"), item.get("effect_value"))
            health_delta, sanity_delta = effects.item_deltas(effect)
            health, sanity = self.ledger.adjust_health_sanity(character.id, health_delta, sanity_delta)
        result = CommandResult(
            headline=f"{character.name} used {item['name']}",
            description=effects.describe_effect(effect),
            data={"health": health, "sanity": sanity, "remaining": remaining},
        )
        result.add_field("Health", f"{health}/{character.health_max}", inline=True)
        result.add_field("Sanity", f"{sanity}/{character.sanity_max}", inline=True)
        return result

    def _item_inventory(self, owner_id: str, scope: Scope | None, character_name: str | None = None) -> CommandResult:
        character = self.ledger.resolve(owner_id, character_name)
        entries = self.ledger.inventory(character.id)
        lines = [f"- {e.name} x{e.quantity}" for e in entries]
        return CommandResult(
            headline=f"{character.name}'s inventory",
            description="\n".join(lines) or "Empty.",
            data={"items": {e.name: e.quantity for e in entries}},
        )

    # -- Battles --

    def _battle_start(self, owner_id: str, scope: Scope | None, opponent: str) -> CommandResult:
        return self.combat.start_battle(self._scope(scope), owner_id, opponent)

    def _battle_attack(self, owner_id: str, scope: Scope | None, attack_name: str | None = None) -> CommandResult:
        return self.combat.attack(self._scope(scope), owner_id, attack_name)

    def _battle_action(
        self, owner_id: str, scope: Scope | None, option: str, dice: str | None = None, custom_text: str | None = None,
    ) -> CommandResult:
        return self.combat.battle_action(self._scope(scope), owner_id, option, dice, custom_text)

    def _battle_next(self, owner_id: str, scope: Scope | None) -> CommandResult:
        return self.combat.advance_turn(self._scope(scope))

    def _battle_npc_turn(self, owner_id: str, scope: Scope | None) -> CommandResult:
        return self.combat.npc_turn(self._scope(scope))

    def _battle_status(self, owner_id: str, scope: Scope | None) -> CommandResult:
        return self.combat.status(self._scope(scope))

    def _battle_end(self, owner_id: str, scope: Scope | None) -> CommandResult:
        return self.combat.end_battle(self._scope(scope))

    # -- Rating images --

    def _rating_show(self, owner_id: str, scope: Scope | None, tier: str) -> CommandResult:
        url = self.rating.reference(owner_id, tier)
        return CommandResult(headline=f"Rating image for {tier}", image=url, data={"image": url})

    def _rating_set(self, owner_id: str, scope: Scope | None, tier: str, image_url: str) -> CommandResult:
        self.rating.set_reference(owner_id, tier, image_url)
        return CommandResult(headline=f"✅ Rating image for {tier} updated.", image=image_url)

    def _rating_clear(self, owner_id: str, scope: Scope | None, tier: str) -> CommandResult:
        cleared = self.rating.clear_reference(owner_id, tier)
        headline = f"✅ Rating image for {tier} reset to default." if cleared else f"No custom image set for {tier}."
        return CommandResult(headline=headline, data={"cleared": cleared})
