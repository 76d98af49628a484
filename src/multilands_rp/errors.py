"""Domain errors: every rejection a command can produce."""
from __future__ import annotations


class GameError(Exception):
    """Base class for domain precondition violations.

    ``message`` is the short human-readable text shown to the player.
    """

    kind = "game_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidExpression(GameError, ValueError):
    kind = "invalid_expression"

    def __init__(self, expression: str) -> None:
        super().__init__(
            f'Invalid dice notation "{expression}". Use a format like "1d4" or "2d6+3".'
        )
        self.expression = expression


class DuplicateName(GameError):
    kind = "duplicate_name"


class NoCharacter(GameError):
    kind = "no_character"

    def __init__(self, name: str | None = None) -> None:
        if name:
            message = f'Character "{name}" not found or doesn\'t belong to you.'
        else:
            message = "You need to create a character first with `character create`."
        super().__init__(message)
        self.name = name


class OpponentNotFound(GameError):
    kind = "opponent_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f'NPC "{name}" not found.')
        self.name = name


class AttackNotUnlocked(GameError):
    kind = "attack_not_unlocked"

    def __init__(self, name: str) -> None:
        super().__init__(f'Attack "{name}" is not unlocked or does not exist.')
        self.name = name


class NoAttacksUnlocked(GameError):
    kind = "no_attacks_unlocked"

    def __init__(self) -> None:
        super().__init__("Your character has no unlocked attacks to use.")


class BattleAlreadyActive(GameError):
    kind = "battle_already_active"

    def __init__(self) -> None:
        super().__init__("A battle is already active in this channel.")


class NoActiveBattle(GameError):
    kind = "no_active_battle"

    def __init__(self) -> None:
        super().__init__("No active battle found in this channel. Start one with `battle start`.")


class CharacterInBattle(GameError):
    kind = "character_in_battle"

    def __init__(self, name: str, scope_key: str) -> None:
        super().__init__(f'"{name}" is in an active battle ({scope_key}). End it before deleting the character.')
        self.name = name
        self.scope_key = scope_key


class InsufficientResources(GameError):
    kind = "insufficient_resources"


class AttackOnCooldown(GameError):
    kind = "attack_on_cooldown"

    def __init__(self, name: str, remaining: int) -> None:
        super().__init__(f'"{name}" is recharging ({remaining} turn(s) left).')
        self.name = name
        self.remaining = remaining


class InsufficientItems(GameError):
    kind = "insufficient_items"


class UnknownCatalogEntry(GameError):
    kind = "unknown_catalog_entry"

    def __init__(self, category: str, name: str) -> None:
        super().__init__(f'{category.capitalize()} "{name}" not found.')
        self.category = category
        self.name = name


class MissingActionInput(GameError):
    kind = "missing_action_input"


class StorageUnavailable(Exception):
    """The database could not be reached after the retry budget was spent."""
