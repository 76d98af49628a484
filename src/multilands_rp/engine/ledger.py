"""Character ledger: identity, pools, unlocked attacks and inventory for player characters."""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from multilands_rp.errors import (
    CharacterInBattle,
    DuplicateName,
    GameError,
    InsufficientItems,
    NoCharacter,
    UnknownCatalogEntry,
)
from multilands_rp.mechanics import effects
from multilands_rp.mechanics.dice import validate_expression
from multilands_rp.mechanics.progression import (
    PERFECT_HITS_PER_LEVEL,
    level_for_experience,
    scale_expression,
)
from multilands_rp.models.character import EDITABLE_FIELDS, Character, InventoryEntry, UnlockedAttack
from multilands_rp.models.result import CommandResult
from multilands_rp.storage.database import Database
from multilands_rp.storage.repos import BattleRepo, CatalogRepo, CharacterRepo, InventoryRepo, UnlockRepo

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
_jinja_env: Environment | None = None


def _get_jinja() -> Environment:
    global _jinja_env
    if _jinja_env is None:
        _jinja_env = Environment(loader=FileSystemLoader(str(_TEMPLATES_DIR)), autoescape=False)
    return _jinja_env


class CharacterLedger:
    """Owns every read and write of character state.

    All methods accept and return domain models; repositories stay dict-based.
    Calls made inside an open ``db.get_connection()`` join that transaction.
    """

    def __init__(self, db: Database) -> None:
        self.db = db
        self.characters = CharacterRepo(db)
        self.unlocks = UnlockRepo(db)
        self.items = InventoryRepo(db)
        self.catalog = CatalogRepo(db)
        self.battles = BattleRepo(db)

    # -- Identity --

    def create(self, owner_id: str, name: str, avatar_url: str = "", **details: Any) -> Character:
        unknown = set(details) - EDITABLE_FIELDS - {"health_max", "sanity_max"}
        if unknown:
            raise GameError(f"Unknown character field(s): {', '.join(sorted(unknown))}")
        for pool in ("health_max", "sanity_max"):
            value = details.get(pool)
            if value is not None and value < 1:
                raise GameError(f"{pool.split('_')[0].capitalize()} maximum must be at least 1 (got {value}).")
        data = {"owner_id": owner_id, "name": name, "avatar_url": avatar_url, **details}
        # New characters start at full pools.
        if details.get("health_max") is not None:
            data["health_current"] = details["health_max"]
        if details.get("sanity_max") is not None:
            data["sanity_current"] = details["sanity_max"]
        try:
            with self.db.get_connection(immediate=True):
                if self.characters.get_by_name(owner_id, name):
                    raise DuplicateName(f'You already have a character named "{name}".')
                character_id = self.characters.create(data)
        except sqlite3.IntegrityError as e:
            if "UNIQUE" not in str(e):
                raise
            raise DuplicateName(f'You already have a character named "{name}".') from e
        logger.info(f"Created character {name} (#{character_id}) for {owner_id}")
        return self._by_id(character_id)

    def _by_id(self, character_id: int) -> Character:
        row = self.characters.get(character_id)
        if row is None:
            raise NoCharacter()
        return Character.model_validate(row)

    def get(self, owner_id: str, name: str) -> Character:
        row = self.characters.get_by_name(owner_id, name)
        if row is None:
            raise NoCharacter(name)
        return Character.model_validate(row)

    def latest(self, owner_id: str) -> Character:
        row = self.characters.get_latest(owner_id)
        if row is None:
            raise NoCharacter()
        return Character.model_validate(row)

    def list_characters(self, owner_id: str) -> list[Character]:
        return [Character.model_validate(r) for r in self.characters.list_by_owner(owner_id)]

    def resolve(self, owner_id: str, name: str | None = None) -> Character:
        """Pick the character a command acts as.

        An explicit name wins, then the owner's selected character, then the
        most recently created one.
        """
        if name:
            return self.get(owner_id, name)
        row = self.characters.get_selected(owner_id)
        if row is not None:
            return Character.model_validate(row)
        return self.latest(owner_id)

    def select(self, owner_id: str, name: str) -> Character:
        with self.db.get_connection():
            character = self.get(owner_id, name)
            self.characters.set_selected(owner_id, character.id)
        return character

    def update_fields(self, owner_id: str, name: str, fields: dict[str, Any]) -> Character:
        """Partially update descriptive fields; None values are left unchanged."""
        changes = {k: v for k, v in fields.items() if v is not None}
        rejected = set(changes) - EDITABLE_FIELDS
        if rejected:
            raise GameError(f"Field(s) cannot be edited: {', '.join(sorted(rejected))}")
        with self.db.get_connection():
            character = self.get(owner_id, name)
            self.characters.update_fields(character.id, changes)
            return self._by_id(character.id)

    def delete(self, owner_id: str, name: str) -> None:
        """Delete a character; refused while it fights in an active battle."""
        with self.db.get_connection(immediate=True):
            character = self.get(owner_id, name)
            scope_key = self.battles.active_scope_for_character(character.id)
            if scope_key is not None:
                raise CharacterInBattle(name, scope_key)
            self.characters.delete(owner_id, name)
        logger.info(f"Deleted character {name} for {owner_id}")

    # -- Pools --

    def adjust_health_sanity(self, character_id: int, health_delta: int, sanity_delta: int) -> tuple[int, int]:
        """Apply deltas clamped to [0, max] per pool. Returns the post-clamp values."""
        result = self.characters.adjust_pools(character_id, health_delta, sanity_delta)
        if result is None:
            raise NoCharacter()
        return result

    def can_afford(self, character: Character, health_cost: int, sanity_cost: int) -> bool:
        return effects.can_afford(character.health_current, character.sanity_current, health_cost, sanity_cost)

    def award_experience(self, character_id: int, amount: int) -> tuple[Character, bool]:
        """Add experience and recompute level. Returns (character, leveled_up)."""
        with self.db.get_connection():
            character = self._by_id(character_id)
            xp = max(character.experience + amount, 0)
            level = max(character.level, level_for_experience(xp))
            self.characters.update_fields(character_id, {"experience": xp, "level": level})
            return self._by_id(character_id), level > character.level

    # -- Attacks --

    def unlocked_attacks(self, character_id: int) -> list[UnlockedAttack]:
        return [UnlockedAttack.model_validate(r) for r in self.unlocks.get_unlocked(character_id)]

    def learn_attack(self, character_id: int, attack_name: str) -> UnlockedAttack:
        with self.db.get_connection():
            attack = self.catalog.get_attack_by_name(attack_name)
            if attack is None:
                raise UnknownCatalogEntry("attack", attack_name)
            self._by_id(character_id)
            self.unlocks.unlock(character_id, attack["id"])
            unlocked = self.unlocked_attacks(character_id)
        return next(u for u in unlocked if u.attack_id == attack["id"])

    def create_attack(
        self,
        owner_id: str,
        name: str,
        type_name: str,
        base_damage_dice: str,
        affinity_name: str | None = None,
        description: str = "",
        effect_description: str = "",
        health_cost: int = 0,
        sanity_cost: int = 0,
        cooldown: int = 0,
    ) -> int:
        """Add an attack to the catalog and unlock it for the owner's current character."""
        dice = validate_expression(base_damage_dice)
        with self.db.get_connection(immediate=True):
            character = self.resolve(owner_id)
            if self.catalog.get_attack_by_name(name):
                raise DuplicateName(f'An attack named "{name}" already exists.')
            attack_type = self.catalog.get_attack_type_by_name(type_name)
            if attack_type is None:
                raise UnknownCatalogEntry("attack type", type_name)
            affinity_id = None
            if affinity_name:
                affinity = self.catalog.get_affinity_by_name(affinity_name)
                if affinity is None:
                    raise UnknownCatalogEntry("affinity", affinity_name)
                affinity_id = affinity["id"]
            attack_id = self.catalog.create_attack({
                "name": name,
                "type_id": attack_type["id"],
                "affinity_id": affinity_id,
                "description": description,
                "base_damage_dice": dice,
                "effect_description": effect_description,
                "health_cost": max(health_cost, 0),
                "sanity_cost": max(sanity_cost, 0),
                "cooldown": max(cooldown, 0),
            })
            self.unlocks.unlock(character.id, attack_id)
        logger.info(f"Attack {name} created by {owner_id} and unlocked for {character.name}")
        return attack_id

    # -- Inventory --

    def inventory(self, character_id: int) -> list[InventoryEntry]:
        return [InventoryEntry.model_validate(r) for r in self.items.list_for(character_id)]

    def _item(self, item_name: str) -> dict:
        item = self.catalog.get_item_by_name(item_name)
        if item is None:
            raise UnknownCatalogEntry("item", item_name)
        return item

    def grant_item(self, character_id: int, item_name: str, quantity: int = 1) -> int:
        """Add items to a character's stack. Returns the new quantity."""
        if quantity < 1:
            raise GameError("Quantity must be at least 1.")
        with self.db.get_connection():
            item = self._item(item_name)
            self._by_id(character_id)
            return self.items.add(character_id, item["id"], quantity)

    def consume_item(self, character_id: int, item_name: str, quantity: int = 1) -> tuple[dict, int]:
        """Remove items from a stack. Returns (catalog item, remaining quantity)."""
        if quantity < 1:
            raise GameError("Quantity must be at least 1.")
        with self.db.get_connection():
            item = self._item(item_name)
            remaining = self.items.remove(character_id, item["id"], quantity)
            if remaining is None:
                held = self.items.get_quantity(character_id, item["id"])
                raise InsufficientItems(
                    f'Not enough "{item["name"]}" (have {held}, need {quantity}).'
                )
        return item, remaining

    # -- Presentation --

    def sheet(self, owner_id: str, name: str | None = None) -> CommandResult:
        """Render a character token with attacks and inventory."""
        character = self.resolve(owner_id, name)
        attacks = []
        for att in self.unlocked_attacks(character.id):
            row = att.model_dump()
            row["damage_dice"] = scale_expression(att.base_damage_dice, character.level)
            attacks.append(row)
        text = _get_jinja().get_template("character_sheet.j2").render(
            character=character,
            attacks=attacks,
            inventory=self.inventory(character.id),
            hits_per_level=PERFECT_HITS_PER_LEVEL,
        )
        return CommandResult(
            headline=f"{character.name}'s Character Token",
            description=text.strip(),
            thumbnail=character.avatar_url or None,
            footer=f"Character ID: {character.id} | User ID: {character.owner_id}",
            data={"character_id": character.id},
        )
