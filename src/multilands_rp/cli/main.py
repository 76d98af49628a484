"""Typer CLI application."""
from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.logging import RichHandler

from multilands_rp.models.battle import BattleOption, Scope
from multilands_rp.models.result import CommandResult

app = typer.Typer(
    name="multilands-rp",
    help="Turn-based dice RPG: characters, attacks, items and channel battles",
    no_args_is_help=True,
)
character_app = typer.Typer(help="Create and manage characters", no_args_is_help=True)
attack_app = typer.Typer(help="Create, learn and list attacks", no_args_is_help=True)
item_app = typer.Typer(help="Grant, use and list items", no_args_is_help=True)
battle_app = typer.Typer(help="Battles in the current channel", no_args_is_help=True)
rating_app = typer.Typer(help="Custom images for roll ratings", no_args_is_help=True)

app.add_typer(character_app, name="character")
app.add_typer(attack_app, name="attack")
app.add_typer(item_app, name="item")
app.add_typer(battle_app, name="battle")
app.add_typer(rating_app, name="rating")


@app.callback()
def main(
    ctx: typer.Context,
    owner: str = typer.Option("player", "--owner", "-u", envvar="MULTILANDS_OWNER", help="Acting user id"),
    guild: str = typer.Option("local", "--guild", "-g", help="Guild id of the battle scope"),
    channel: str = typer.Option("general", "--channel", "-c", help="Channel id of the battle scope"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to a config.toml"),
) -> None:
    """Multilands RP from the terminal."""
    from multilands_rp.app import RPApp

    rp_app = RPApp(config_path=config)
    level = rp_app.config.get("logging", {}).get("level", "WARNING")
    logging.basicConfig(
        level=level, format="%(message)s", datefmt="[%X]", handlers=[RichHandler(rich_tracebacks=True)],
    )
    ctx.obj = {"app": rp_app, "owner": owner, "scope": Scope(guild_id=guild, channel_id=channel)}
    ctx.call_on_close(rp_app.close)


def _run(ctx: typer.Context, command: str, **params) -> CommandResult:
    from multilands_rp.cli.display import ResultDisplay

    state = ctx.obj
    result = state["app"].dispatcher.dispatch(command, state["owner"], state["scope"], **params)
    ResultDisplay().show(result)
    if not result.success:
        raise typer.Exit(code=1)
    return result


@app.command()
def seed(ctx: typer.Context) -> None:
    """Insert the default affinities, attack types, items and NPCs."""
    from multilands_rp.cli.display import console

    counts = ctx.obj["app"].seed()
    summary = ", ".join(f"{n} {k.replace('_', ' ')}" for k, n in counts.items())
    console.print(f"[green]Catalog ready:[/green] {summary}")


# -- Characters --

@character_app.command("create")
def character_create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Character name (unique per user)"),
    avatar_url: str = typer.Option("", "--avatar", help="Portrait image URL"),
    gender: Optional[str] = typer.Option(None),
    age: Optional[int] = typer.Option(None),
    species: Optional[str] = typer.Option(None),
    occupation: Optional[str] = typer.Option(None),
    appearance_url: Optional[str] = typer.Option(None, "--appearance"),
    sanity_increase_desc: Optional[str] = typer.Option(None, "--sanity-up", help="What increases sanity"),
    sanity_decrease_desc: Optional[str] = typer.Option(None, "--sanity-down", help="What decreases sanity"),
    health_max: Optional[int] = typer.Option(None, "--health"),
    sanity_max: Optional[int] = typer.Option(None, "--sanity"),
) -> None:
    """Create a character."""
    _run(
        ctx, "character.create", name=name, avatar_url=avatar_url, gender=gender, age=age, species=species,
        occupation=occupation, appearance_url=appearance_url, sanity_increase_desc=sanity_increase_desc,
        sanity_decrease_desc=sanity_decrease_desc, health_max=health_max, sanity_max=sanity_max,
    )


@character_app.command("sheet")
def character_sheet(ctx: typer.Context, name: Optional[str] = typer.Argument(None)) -> None:
    """Show a character token (selected or latest when no name is given)."""
    _run(ctx, "character.sheet", name=name)


@character_app.command("list")
def character_list(ctx: typer.Context) -> None:
    _run(ctx, "character.list")


@character_app.command("select")
def character_select(ctx: typer.Context, name: str) -> None:
    """Make a character the default for later commands."""
    _run(ctx, "character.select", name=name)


@character_app.command("edit")
def character_edit(
    ctx: typer.Context,
    name: str,
    avatar_url: Optional[str] = typer.Option(None, "--avatar"),
    gender: Optional[str] = typer.Option(None),
    age: Optional[int] = typer.Option(None),
    species: Optional[str] = typer.Option(None),
    occupation: Optional[str] = typer.Option(None),
    appearance_url: Optional[str] = typer.Option(None, "--appearance"),
    sanity_increase_desc: Optional[str] = typer.Option(None, "--sanity-up"),
    sanity_decrease_desc: Optional[str] = typer.Option(None, "--sanity-down"),
) -> None:
    """Change descriptive fields; omitted options stay as they are."""
    _run(
        ctx, "character.edit", name=name, avatar_url=avatar_url, gender=gender, age=age, species=species,
        occupation=occupation, appearance_url=appearance_url, sanity_increase_desc=sanity_increase_desc,
        sanity_decrease_desc=sanity_decrease_desc,
    )


@character_app.command("delete")
def character_delete(
    ctx: typer.Context,
    name: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a character with its attacks and inventory."""
    if not yes:
        typer.confirm(f'Delete "{name}" permanently?', abort=True)
    _run(ctx, "character.delete", name=name)


@character_app.command("adjust")
def character_adjust(
    ctx: typer.Context,
    health: int = typer.Option(0, "--health", help="Health delta"),
    sanity: int = typer.Option(0, "--sanity", help="Sanity delta"),
    name: Optional[str] = typer.Option(None, "--name"),
) -> None:
    """Apply health/sanity deltas, clamped to each pool's range."""
    _run(ctx, "character.adjust", name=name, health=health, sanity=sanity)


@character_app.command("xp")
def character_xp(ctx: typer.Context, amount: int, name: Optional[str] = typer.Option(None, "--name")) -> None:
    """Award experience."""
    _run(ctx, "character.award_xp", amount=amount, name=name)


# -- Attacks --

@attack_app.command("create")
def attack_create(
    ctx: typer.Context,
    name: str,
    type_name: str = typer.Option(..., "--type", help="Slash, Pierce, Blunt or Magic"),
    base_damage_dice: str = typer.Option(..., "--dice", help='Damage dice such as "1d4" or "2d6+3"'),
    affinity_name: Optional[str] = typer.Option(None, "--affinity"),
    description: str = typer.Option("", "--description"),
    effect_description: str = typer.Option("", "--effect"),
    health_cost: int = typer.Option(0, "--health-cost"),
    sanity_cost: int = typer.Option(0, "--sanity-cost"),
    cooldown: int = typer.Option(0, "--cooldown"),
) -> None:
    """Add an attack to the catalog and unlock it for your character."""
    _run(
        ctx, "attack.create", name=name, type_name=type_name, base_damage_dice=base_damage_dice,
        affinity_name=affinity_name, description=description, effect_description=effect_description,
        health_cost=health_cost, sanity_cost=sanity_cost, cooldown=cooldown,
    )


@attack_app.command("learn")
def attack_learn(ctx: typer.Context, attack_name: str, character: Optional[str] = typer.Option(None, "--character")) -> None:
    _run(ctx, "attack.learn", attack_name=attack_name, character_name=character)


@attack_app.command("list")
def attack_list(ctx: typer.Context, character: Optional[str] = typer.Option(None, "--character")) -> None:
    _run(ctx, "attack.list", character_name=character)


# -- Items --

@item_app.command("grant")
def item_grant(
    ctx: typer.Context,
    item_name: str,
    quantity: int = typer.Option(1, "--quantity", "-q", min=1),
    character: Optional[str] = typer.Option(None, "--character"),
) -> None:
    _run(ctx, "item.grant", item_name=item_name, quantity=quantity, character_name=character)


@item_app.command("use")
def item_use(ctx: typer.Context, item_name: str, character: Optional[str] = typer.Option(None, "--character")) -> None:
    """Use an item outside battle."""
    _run(ctx, "item.use", item_name=item_name, character_name=character)


@item_app.command("inventory")
def item_inventory(ctx: typer.Context, character: Optional[str] = typer.Option(None, "--character")) -> None:
    _run(ctx, "item.inventory", character_name=character)


# -- Battles --

@battle_app.command("start")
def battle_start(ctx: typer.Context, opponent: str = typer.Argument(..., help="Exact NPC name")) -> None:
    """Start a battle against an NPC in this channel."""
    _run(ctx, "battle.start", opponent=opponent)


@battle_app.command("attack")
def battle_attack(ctx: typer.Context, attack_name: Optional[str] = typer.Argument(None)) -> None:
    """Attack with a named attack, or your first unlocked one."""
    _run(ctx, "battle.attack", attack_name=attack_name)


@battle_app.command("action")
def battle_action(
    ctx: typer.Context,
    option: BattleOption = typer.Argument(..., case_sensitive=False),
    dice: Optional[str] = typer.Option(None, "--dice", "-d"),
    custom_text: Optional[str] = typer.Option(None, "--text", "-t", help="Special action text or item name"),
) -> None:
    """Run away, defend, focus, use an item or take a special action."""
    _run(ctx, "battle.action", option=option.value, dice=dice, custom_text=custom_text)


@battle_app.command("next")
def battle_next(ctx: typer.Context) -> None:
    """Pass the turn to the next participant."""
    _run(ctx, "battle.next")


@battle_app.command("npc")
def battle_npc(ctx: typer.Context) -> None:
    """Resolve the current NPC's attack and pass the turn."""
    _run(ctx, "battle.npc_turn")


@battle_app.command("status")
def battle_status(ctx: typer.Context) -> None:
    _run(ctx, "battle.status")


@battle_app.command("end")
def battle_end(ctx: typer.Context) -> None:
    _run(ctx, "battle.end")


@battle_app.command("stale")
def battle_stale(ctx: typer.Context, minutes: int = typer.Option(60, "--minutes", min=1)) -> None:
    """List active battles idle for at least the given time, in every channel."""
    from datetime import timedelta

    from multilands_rp.cli.display import console

    battles = ctx.obj["app"].combat.stale_battles(timedelta(minutes=minutes))
    if not battles:
        console.print("[dim]No stale battles.[/dim]")
        return
    for b in battles:
        console.print(f"Battle {b.id} in {b.scope_key}: last activity {b.last_activity}")


# -- Rating images --

@rating_app.command("show")
def rating_show(ctx: typer.Context, tier: str) -> None:
    _run(ctx, "rating.show", tier=tier)


@rating_app.command("set")
def rating_set(ctx: typer.Context, tier: str, image_url: str) -> None:
    _run(ctx, "rating.set", tier=tier, image_url=image_url)


@rating_app.command("clear")
def rating_clear(ctx: typer.Context, tier: str) -> None:
    _run(ctx, "rating.clear", tier=tier)


if __name__ == "__main__":
    app()
