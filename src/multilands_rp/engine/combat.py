"""Battle lifecycle and turn state for one scope (guild channel) at a time."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from multilands_rp.engine.ledger import CharacterLedger
from multilands_rp.engine.rating import RatingResolver
from multilands_rp.errors import (
    AttackNotUnlocked,
    AttackOnCooldown,
    BattleAlreadyActive,
    GameError,
    InsufficientResources,
    MissingActionInput,
    NoActiveBattle,
    NoAttacksUnlocked,
    OpponentNotFound,
)
from multilands_rp.mechanics import effects
from multilands_rp.mechanics.dice import RandomSource, roll
from multilands_rp.mechanics.progression import record_perfect_hit, scale_expression
from multilands_rp.mechanics.rating import Tier, classify_roll, headline_for
from multilands_rp.models.battle import Battle, BattleOption, Participant, Scope
from multilands_rp.models.catalog import Npc
from multilands_rp.models.character import UnlockedAttack
from multilands_rp.models.result import CommandResult
from multilands_rp.storage.database import Database
from multilands_rp.storage.repos import BattleRepo, CatalogRepo, RatingRepo

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CombatRules:
    """Tunable numbers for battle actions, read from the [combat] config section."""

    defend_reduction: float = 0.2
    focus_bonus: int = 2
    auto_end_on_defeat: bool = False

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "CombatRules":
        combat = config.get("combat", {})
        return cls(
            defend_reduction=float(combat.get("defend_reduction", 0.2)),
            focus_bonus=int(combat.get("focus_bonus", 2)),
            auto_end_on_defeat=bool(combat.get("auto_end_on_defeat", False)),
        )


def _pool_line(p: Participant) -> str:
    line = f"**{p.name}** (HP: {p.current_health}/{p.max_health}, SP: {p.current_sanity}/{p.max_sanity})"
    if p.status_effects:
        tags = ", ".join(f"{s['name']} {s['remaining']}" for s in p.status_effects)
        line += f" [{tags}]"
    return line


class CombatEngine:
    """Resolves battle commands against the persisted battle record.

    Every command runs in a single write-locked transaction, so a failed
    precondition or storage error leaves no partial mutation behind. No
    battle state is held in memory between commands.
    """

    def __init__(
        self,
        db: Database,
        ledger: CharacterLedger | None = None,
        rating: RatingResolver | None = None,
        rng: RandomSource | None = None,
        rules: CombatRules | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.db = db
        self.ledger = ledger or CharacterLedger(db)
        self.rating = rating or RatingResolver(RatingRepo(db))
        self.battles = BattleRepo(db)
        self.catalog = CatalogRepo(db)
        self.rng = rng
        self.rules = rules or CombatRules()
        self._now = clock or _utcnow

    # -- Lookups --

    def _require_battle(self, scope: Scope) -> Battle:
        row = self.battles.get_active(scope.key)
        if row is None:
            raise NoActiveBattle()
        return Battle.model_validate(row)

    def _participants(self, battle_id: int) -> list[Participant]:
        return [Participant.model_validate(r) for r in self.battles.get_participants(battle_id)]

    @staticmethod
    def _for_character(participants: list[Participant], character_id: int) -> Participant | None:
        return next((p for p in participants if p.character_id == character_id), None)

    @staticmethod
    def _first_opponent(participants: list[Participant], actor: Participant) -> Participant | None:
        return next((p for p in participants if p.is_player != actor.is_player), None)

    def _save(self, p: Participant) -> None:
        self.battles.update_participant(p.id, {
            "current_health": p.current_health,
            "current_sanity": p.current_sanity,
            "defending": p.defending,
            "focus_bonus": p.focus_bonus,
            "skip_next_turn": p.skip_next_turn,
            "status_effects": p.status_effects,
            "cooldowns": p.cooldowns,
        })

    def _finish_hit(self, battle: Battle, target: Participant, result: CommandResult) -> None:
        """Flag defeat and, when configured, end the battle in the same transaction."""
        defeated = target.is_defeated
        result.data["defeated"] = defeated
        if not defeated:
            return
        result.add_field("Defeated", f"**{target.name}** has been defeated!")
        if self.rules.auto_end_on_defeat:
            self.battles.end_active(battle.scope_key, self._now())
            result.data["battle_ended"] = True
            logger.info(f"Battle {battle.id} ended: {target.name} defeated")

    # -- Lifecycle --

    def start_battle(self, scope: Scope, owner_id: str, opponent_name: str) -> CommandResult:
        """Open a battle between the owner's character and an NPC.

        The initiating player always takes the first turn.
        """
        try:
            with self.db.get_connection(immediate=True):
                if self.battles.get_active(scope.key) is not None:
                    raise BattleAlreadyActive()
                character = self.ledger.resolve(owner_id)
                row = self.catalog.get_npc_by_name(opponent_name)
                if row is None:
                    raise OpponentNotFound(opponent_name)
                npc = Npc.model_validate(row)

                now = self._now()
                battle_id = self.battles.create_battle(scope.key, scope.guild_id, scope.channel_id, now)
                player_pid = self.battles.add_participant(
                    battle_id,
                    character_id=character.id,
                    current_health=character.health_max,
                    current_sanity=character.sanity_max,
                    is_player=True,
                )
                npc_pid = self.battles.add_participant(
                    battle_id,
                    npc_id=npc.id,
                    current_health=npc.health_max,
                    current_sanity=npc.sanity_max,
                    is_player=False,
                )
                self.battles.update_battle(battle_id, {
                    "turn_order": [player_pid, npc_pid],
                    "current_turn_participant_id": player_pid,
                    "round_number": 1,
                })
        except sqlite3.IntegrityError as e:
            # Lost a race with another start in the same scope.
            raise BattleAlreadyActive() from e

        logger.info(f"Battle {battle_id} started in {scope.key}: {character.name} vs {npc.name}")
        result = CommandResult(
            headline="⚔️ Battle Started! ⚔️",
            description=f"**{character.name}** vs. **{npc.name}**",
            thumbnail=character.avatar_url or None,
            image=npc.avatar_url,
            footer=f"Battle ID: {battle_id}",
            data={
                "battle_id": battle_id,
                "round_number": 1,
                "current_turn_participant_id": player_pid,
                "player_participant_id": player_pid,
                "npc_participant_id": npc_pid,
            },
        )
        result.add_field(
            "Your Character", f"{character.name} (HP: {character.health_max}, SP: {character.sanity_max})", inline=True,
        )
        result.add_field("Opponent", f"{npc.name} (HP: {npc.health_max}, SP: {npc.sanity_max})", inline=True)
        result.add_field("Current Turn", character.name)
        return result

    def end_battle(self, scope: Scope) -> CommandResult:
        with self.db.get_connection(immediate=True):
            battle_id = self.battles.end_active(scope.key, self._now())
            if battle_id is None:
                raise NoActiveBattle()
        logger.info(f"Battle {battle_id} in {scope.key} ended")
        return CommandResult(
            headline="✅ Battle successfully ended!",
            footer=f"Battle ID: {battle_id}",
            data={"battle_id": battle_id},
        )

    def status(self, scope: Scope) -> CommandResult:
        """Read-only view of the active battle, split into player and opponent sides."""
        with self.db.get_connection():
            battle = self._require_battle(scope)
            participants = self._participants(battle.id)
        players = [p for p in participants if p.is_player]
        opponents = [p for p in participants if not p.is_player]
        current = next((p for p in participants if p.id == battle.current_turn_participant_id), None)

        result = CommandResult(
            headline="Current Battle Status 📊",
            description=f"**Round {battle.round_number}**",
            thumbnail=current.avatar_url if current else None,
            footer=f"Battle ID: {battle.id}",
            data={
                "battle_id": battle.id,
                "round_number": battle.round_number,
                "current_turn_participant_id": battle.current_turn_participant_id,
                "players": [p.model_dump() for p in players],
                "opponents": [p.model_dump() for p in opponents],
            },
        )
        result.add_field("Current Turn", current.name if current else "Unknown")
        result.add_field("Your Character(s)", "\n".join(_pool_line(p) for p in players) or "None", inline=True)
        result.add_field("Opponent(s)", "\n".join(_pool_line(p) for p in opponents) or "None", inline=True)
        return result

    def stale_battles(self, idle_for: timedelta) -> list[Battle]:
        """Active battles with no activity for at least ``idle_for``."""
        cutoff = (datetime.fromisoformat(self._now()) - idle_for).isoformat()
        return [Battle.model_validate(r) for r in self.battles.list_stale(cutoff)]

    # -- Attacks --

    def _choose_attack(self, unlocked: list[UnlockedAttack], attack_name: str | None) -> UnlockedAttack:
        if not unlocked:
            raise NoAttacksUnlocked()
        if not attack_name:
            return unlocked[0]
        wanted = attack_name.lower()
        for attack in unlocked:
            if attack.name.lower() == wanted:
                return attack
        raise AttackNotUnlocked(attack_name)

    def attack(self, scope: Scope, owner_id: str, attack_name: str | None = None) -> CommandResult:
        """Roll one of the actor's unlocked attacks.

        When the actor's character is in the battle the first opposing
        participant takes the damage; otherwise the roll is only displayed.
        """
        with self.db.get_connection(immediate=True):
            battle = self._require_battle(scope)
            character = self.ledger.resolve(owner_id)
            attack = self._choose_attack(self.ledger.unlocked_attacks(character.id), attack_name)
            participants = self._participants(battle.id)
            actor = self._for_character(participants, character.id)

            cooldown_key = str(attack.attack_id)
            if actor is not None and actor.cooldowns.get(cooldown_key, 0) > 0:
                raise AttackOnCooldown(attack.name, actor.cooldowns[cooldown_key])

            # Costs come out of the battle snapshot when there is one.
            if attack.health_cost or attack.sanity_cost:
                health = actor.current_health if actor else character.health_current
                sanity = actor.current_sanity if actor else character.sanity_current
                if not effects.can_afford(health, sanity, attack.health_cost, attack.sanity_cost):
                    raise InsufficientResources(
                        f'Not enough health or sanity to use "{attack.name}" '
                        f"(costs {attack.health_cost} HP, {attack.sanity_cost} SP)."
                    )
                if actor is not None:
                    actor.current_health -= attack.health_cost
                    actor.current_sanity -= attack.sanity_cost
                else:
                    self.ledger.adjust_health_sanity(character.id, -attack.health_cost, -attack.sanity_cost)

            dice = scale_expression(attack.base_damage_dice, character.level)
            rolled = roll(dice, self.rng)
            tier = classify_roll(rolled.total, rolled.max_possible)

            result = CommandResult(
                headline=f"{character.name} uses {attack.name}!",
                description=(
                    f"{headline_for(tier)}\n"
                    f"Rolled: [{', '.join(str(r) for r in rolled.individual_rolls)}] Total: **{rolled.total}**"
                ),
                image=self.rating.reference(owner_id, tier),
                footer=f"Battle ID: {battle.id}",
                data={
                    "battle_id": battle.id,
                    "attack": attack.name,
                    "dice": dice,
                    "roll": rolled.total,
                    "rolls": rolled.individual_rolls,
                    "max_possible": rolled.max_possible,
                    "tier": tier.value,
                    "damage": 0,
                    "defeated": False,
                },
            )

            if tier is Tier.PERFECT:
                level, hits, leveled = record_perfect_hit(attack.attack_level, attack.perfect_hits)
                self.ledger.unlocks.update_progress(character.id, attack.attack_id, level, hits)
                result.data["mastery_level_up"] = leveled
                if leveled:
                    result.add_field("Mastery", f"{attack.name} reached level {level}!")

            if actor is not None:
                target = self._first_opponent(participants, actor)
                if target is not None:
                    self._apply_hit(actor, target, attack, rolled.total, result)
                if attack.cooldown > 0:
                    actor.cooldowns[cooldown_key] = attack.cooldown
                self._save(actor)
                if target is not None:
                    self._save(target)
                    self._finish_hit(battle, target, result)

            self.battles.update_battle(battle.id, {"last_activity": self._now()})
        return result

    def _apply_hit(
        self,
        actor: Participant,
        target: Participant,
        attack: UnlockedAttack,
        total: int,
        result: CommandResult,
    ) -> None:
        damage = total
        if actor.focus_bonus:
            damage += actor.focus_bonus
            actor.focus_bonus = 0
        if target.defending:
            damage = effects.reduce_damage(damage, self.rules.defend_reduction)
            target.defending = False
        damage = max(damage, 0)
        target.current_health = max(target.current_health - damage, 0)
        result.data["damage"] = damage
        result.data["target_participant_id"] = target.id
        result.add_field("Damage", f"{damage} to **{target.name}**", inline=True)

        if attack.affinity_name:
            affinity = self.catalog.get_affinity_by_name(attack.affinity_name)
            if affinity is not None:
                effect = effects.parse_affinity_effect(affinity["effect_type"], affinity["effect_value"])
                target_delta, actor_delta = effects.affinity_sanity_deltas(effect, damage)
                target.current_sanity = effects.clamp(target.current_sanity + target_delta, 0, target.max_sanity)
                actor.current_sanity = effects.clamp(actor.current_sanity + actor_delta, 0, actor.max_sanity)
                status = affinity.get("inflicted_status")
                if status:
                    target.status_effects = effects.apply_status(
                        target.status_effects, status, affinity.get("status_duration", 2),
                    )
                    result.data["status_applied"] = status
                    result.add_field("Status", f"{target.name} is afflicted with {status}", inline=True)

        result.add_field(
            "Target", f"HP: {target.current_health}/{target.max_health}, SP: {target.current_sanity}/{target.max_sanity}",
        )

    # -- Battle options --

    def battle_action(
        self,
        scope: Scope,
        owner_id: str,
        option: BattleOption | str,
        dice: str | None = None,
        custom_text: str | None = None,
    ) -> CommandResult:
        """Resolve a non-attack option. None of these advance the turn."""
        try:
            option = BattleOption(option)
        except ValueError as e:
            raise GameError(f'Unknown battle option "{option}".') from e

        with self.db.get_connection(immediate=True):
            battle = self._require_battle(scope)
            result = CommandResult(
                headline="Battle Action",
                footer=f"Battle ID: {battle.id}",
                data={"battle_id": battle.id, "option": option.value},
            )
            if option is BattleOption.RUNAWAY:
                self._runaway(dice, result)
            elif option is BattleOption.DEFEND:
                self._defend(battle, owner_id, result)
            elif option is BattleOption.FOCUS:
                self._focus(battle, owner_id, dice, result)
            elif option is BattleOption.ITEM:
                self._use_item(battle, owner_id, custom_text, result)
            else:
                self._special(custom_text, dice, result)
            self.battles.update_battle(battle.id, {"last_activity": self._now()})
        return result

    def _actor(self, battle: Battle, owner_id: str) -> tuple[Any, Participant | None]:
        character = self.ledger.resolve(owner_id)
        return character, self._for_character(self._participants(battle.id), character.id)

    def _runaway(self, dice: str | None, result: CommandResult) -> None:
        if not dice:
            raise MissingActionInput("Please provide dice notation for runaway attempt (e.g., 1d4).")
        rolled = roll(dice, self.rng)
        threshold = rolled.max_possible // 2
        escaped = rolled.total > threshold
        if escaped:
            result.description = f"✅ Successfully ran away! Rolled {rolled.total} (needed > {threshold})"
        else:
            result.description = f"❌ Failed to run away! Rolled {rolled.total} (needed > {threshold})"
        result.data.update({"roll": rolled.total, "threshold": threshold, "escaped": escaped})

    def _defend(self, battle: Battle, owner_id: str, result: CommandResult) -> None:
        _, actor = self._actor(battle, owner_id)
        if actor is not None:
            actor.defending = True
            self._save(actor)
        percent = round(self.rules.defend_reduction * 100)
        result.description = f"🛡️ Defending! Taking {percent}% reduced damage from next attack."
        result.data["applied"] = actor is not None

    def _focus(self, battle: Battle, owner_id: str, dice: str | None, result: CommandResult) -> None:
        if not dice:
            raise MissingActionInput("Please provide dice notation for focus attempt (e.g., 1d4).")
        _, actor = self._actor(battle, owner_id)
        rolled = roll(dice, self.rng)
        result.data.update({"roll": rolled.total, "perfect": rolled.is_max_roll})
        if not rolled.is_max_roll:
            result.description = f"Focused! Rolled {rolled.total}"
            return
        bonus = self.rules.focus_bonus
        if actor is not None:
            actor.focus_bonus = bonus
            actor.skip_next_turn = True
            self._save(actor)
        result.description = f"✨ Perfect Focus! +{bonus} to all stats for next attack, but cannot act next turn."

    def _use_item(self, battle: Battle, owner_id: str, item_name: str | None, result: CommandResult) -> None:
        if not item_name:
            result.description = "🎒 Using item from inventory..."
            return
        character, actor = self._actor(battle, owner_id)
        item, remaining = self.ledger.consume_item(character.id, item_name)
        effect = effects.parse_item_effect(item.get("effect_type"), item.get("effect_value"))
        health_delta, sanity_delta = effects.item_deltas(effect)
        if actor is not None:
            actor.current_health = effects.clamp(actor.current_health + health_delta, 0, actor.max_health)
            actor.current_sanity = effects.clamp(actor.current_sanity + sanity_delta, 0, actor.max_sanity)
            self._save(actor)
            health, sanity = actor.current_health, actor.current_sanity
        else:
            health, sanity = self.ledger.adjust_health_sanity(character.id, health_delta, sanity_delta)
        result.description = f"🎒 {character.name} used {item['name']} ({effects.describe_effect(effect)})."
        result.add_field("Pools", f"HP: {health}, SP: {sanity}", inline=True)
        result.add_field("Remaining", str(remaining), inline=True)
        result.data.update({"item": item["name"], "remaining": remaining, "health": health, "sanity": sanity})

    def _special(self, text: str | None, dice: str | None, result: CommandResult) -> None:
        if not text:
            raise MissingActionInput("Please provide a description for your special action.")
        if dice:
            rolled = roll(dice, self.rng)
            result.description = f"🎯 Special Action: {text}\nRolled: {rolled.total}"
            result.data["roll"] = rolled.total
        else:
            result.description = f"🎯 Special Action: {text}"

    # -- Turns --

    def _advance(self, battle: Battle, participants: list[Participant]) -> dict[str, Any]:
        """Move the turn pointer forward within the open transaction.

        Participants flagged to skip are passed over once, as are defeated
        ones while anyone is still standing. The incoming participant's
        statuses and cooldowns tick down by one.
        """
        by_id = {p.id: p for p in participants}
        order = [pid for pid in battle.turn_order if pid in by_id] or [p.id for p in participants]
        index = order.index(battle.current_turn_participant_id) if battle.current_turn_participant_id in order else -1
        round_number = battle.round_number
        anyone_standing = any(not p.is_defeated for p in participants)
        skipped: list[str] = []

        current = by_id[order[0]]
        for _ in range(2 * len(order)):
            index += 1
            if index >= len(order):
                index = 0
                round_number += 1
            current = by_id[order[index]]
            if current.skip_next_turn:
                current.skip_next_turn = False
                self._save(current)
                skipped.append(current.name)
                continue
            if current.is_defeated and anyone_standing:
                continue
            break

        current.status_effects, expired = effects.tick_statuses(current.status_effects)
        current.cooldowns = effects.tick_cooldowns(current.cooldowns)
        self._save(current)
        self.battles.update_battle(battle.id, {
            "current_turn_participant_id": current.id,
            "round_number": round_number,
            "last_activity": self._now(),
        })
        return {
            "current": current,
            "round_number": round_number,
            "skipped": skipped,
            "expired": expired,
        }

    def _turn_result(self, battle: Battle, turn: dict[str, Any], result: CommandResult | None = None) -> CommandResult:
        current: Participant = turn["current"]
        if result is None:
            result = CommandResult(headline="Next Turn", footer=f"Battle ID: {battle.id}")
        result.add_field("Round", str(turn["round_number"]), inline=True)
        result.add_field("Current Turn", current.name, inline=True)
        if turn["skipped"]:
            result.add_field("Skipped", ", ".join(turn["skipped"]))
        if turn["expired"]:
            result.add_field("Wore Off", f"{current.name}: {', '.join(turn['expired'])}")
        result.thumbnail = result.thumbnail or current.avatar_url
        result.data.update({
            "battle_id": battle.id,
            "round_number": turn["round_number"],
            "current_turn_participant_id": current.id,
            "current_is_player": current.is_player,
            "skipped": turn["skipped"],
            "expired": turn["expired"],
        })
        return result

    def advance_turn(self, scope: Scope) -> CommandResult:
        """Hand the turn to the next participant, starting a new round on wrap."""
        with self.db.get_connection(immediate=True):
            battle = self._require_battle(scope)
            turn = self._advance(battle, self._participants(battle.id))
        result = self._turn_result(battle, turn)
        result.description = f"It is now **{turn['current'].name}**'s turn."
        return result

    def npc_turn(self, scope: Scope) -> CommandResult:
        """Let the NPC whose turn it is strike the first player, then pass the turn."""
        with self.db.get_connection(immediate=True):
            battle = self._require_battle(scope)
            participants = self._participants(battle.id)
            npc = next((p for p in participants if p.id == battle.current_turn_participant_id), None)
            if npc is None or npc.is_player:
                raise GameError("It is not an NPC's turn.")
            target = next((p for p in participants if p.is_player), None)

            result = CommandResult(
                headline=f"{npc.name} attacks!",
                image=npc.avatar_url,
                footer=f"Battle ID: {battle.id}",
                data={"battle_id": battle.id, "damage": 0, "defeated": False},
            )
            if npc.is_defeated or target is None:
                result.description = f"{npc.name} cannot act."
            else:
                dice = scale_expression(npc.base_damage_dice or "1d4", npc.level)
                rolled = roll(dice, self.rng)
                tier = classify_roll(rolled.total, rolled.max_possible)
                damage = rolled.total
                if target.defending:
                    damage = effects.reduce_damage(damage, self.rules.defend_reduction)
                    target.defending = False
                damage = max(damage, 0)
                target.current_health = max(target.current_health - damage, 0)
                self._save(target)
                result.description = (
                    f"{headline_for(tier)}\n"
                    f"Rolled: [{', '.join(str(r) for r in rolled.individual_rolls)}] Total: **{rolled.total}**"
                )
                result.add_field("Damage", f"{damage} to **{target.name}**", inline=True)
                result.add_field(
                    "Target", f"HP: {target.current_health}/{target.max_health}, SP: {target.current_sanity}/{target.max_sanity}",
                )
                result.data.update({
                    "dice": dice,
                    "roll": rolled.total,
                    "tier": tier.value,
                    "damage": damage,
                    "target_participant_id": target.id,
                })
                self._finish_hit(battle, target, result)

            if result.data.get("battle_ended"):
                return result
            turn = self._advance(battle, participants)
        return self._turn_result(battle, turn, result)
