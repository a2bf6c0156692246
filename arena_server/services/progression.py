# arena_server/services/progression.py
"""Experience, levels, tiers and upgrades."""

import math
import random
from enum import Enum
from typing import Callable, Dict, List

from arena_server.config.settings import (
    DEATH_RETAIN_FACTOR,
    PLAYER_BASE_BULLET_LIFE,
    PLAYER_BASE_BULLET_SPEED,
    PLAYER_BASE_FIRE_COOLDOWN,
    PLAYER_BASE_HP,
    PLAYER_BASE_REGEN,
    PLAYER_BASE_SPEED,
    TIER_TABLE,
    UPGRADE_BULLET_LIFE,
    UPGRADE_BULLET_SPEED,
    UPGRADE_DAMAGE,
    UPGRADE_FIRE_RATE_FACTOR,
    UPGRADE_HP_MAX,
    UPGRADE_REGEN,
    UPGRADE_SPEED,
    WORLD_HEIGHT,
    WORLD_WIDTH,
    XP_BASE,
    XP_GROWTH,
)
from arena_server.models.entities import Player


def calc_xp_to_level(level: int) -> int:
    """Experience needed to leave ``level``."""
    return round(XP_BASE * XP_GROWTH ** (level - 1))


def tier_for_level(level: int) -> dict:
    """Return the tier table entry for a level."""
    for entry in TIER_TABLE:
        if level >= entry["minLevel"]:
            return entry
    return TIER_TABLE[-1]


def apply_tier(player: Player) -> Player:
    """Recompute tier-derived combat stats from the player's level.

    Damage is the tier's base damage plus any ``damageBonus`` bought through
    upgrades, so crossing into a new tier keeps purchased damage.
    """
    entry = tier_for_level(player.level)
    player.tier = entry["tier"]
    player.damage = entry["damage"] + player.damageBonus
    player.bulletSize = entry["bulletSize"]
    player.muzzles = entry["muzzles"]
    return player


def add_xp_and_resolve_levels(player: Player, xp_gain: int) -> List[int]:
    """Add experience and level up as many times as it pays for.

    Returns the level reached for every level gained, in order.
    """
    player.xp += xp_gain
    gained = []
    while player.xp >= player.xpToLevel:
        player.xp -= player.xpToLevel
        player.level += 1
        player.xpToLevel = calc_xp_to_level(player.level)
        apply_tier(player)
        gained.append(player.level)
    return gained


def award(player: Player, score: int, xp: int) -> List[int]:
    """Credit score and experience to a player."""
    player.score += score
    return add_xp_and_resolve_levels(player, xp)


def reset_combat_stats(player: Player) -> Player:
    """Restore the level-1 baseline for every upgradable stat."""
    player.hp = player.maxHp = PLAYER_BASE_HP
    player.speed = PLAYER_BASE_SPEED
    player.fireCooldown = PLAYER_BASE_FIRE_COOLDOWN
    player.regen = PLAYER_BASE_REGEN
    player.bulletLife = PLAYER_BASE_BULLET_LIFE
    player.bulletSpeed = PLAYER_BASE_BULLET_SPEED
    player.damageBonus = 0
    return player


def soft_reset_on_death(player: Player) -> Player:
    """Apply the death penalty without removing the player."""
    player.score = math.floor(player.score * DEATH_RETAIN_FACTOR)
    player.xp = math.floor(player.xp * DEATH_RETAIN_FACTOR)
    player.level = max(1, player.level - 1)
    reset_combat_stats(player)
    apply_tier(player)
    player.xpToLevel = calc_xp_to_level(player.level)
    player.xp = min(player.xp, player.xpToLevel - 1)
    player.x = random.uniform(0, WORLD_WIDTH)
    player.y = random.uniform(0, WORLD_HEIGHT)
    return player


class UpgradeKind(str, Enum):
    """Upgrade choices a client may send."""

    HP_MAX = "hpMax"
    REGEN = "regen"
    SPEED = "speed"
    FIRE_RATE = "fireRate"
    DAMAGE = "damage"
    BULLET_SPEED = "bulletSpeed"
    BULLET_LIFE = "bulletLife"
    UNKNOWN = "unknown"


def _upgrade_hp_max(player: Player) -> Player:
    player.maxHp += UPGRADE_HP_MAX
    player.hp = player.maxHp
    return player


def _upgrade_regen(player: Player) -> Player:
    player.regen += UPGRADE_REGEN
    return player


def _upgrade_speed(player: Player) -> Player:
    player.speed += UPGRADE_SPEED
    return player


def _upgrade_fire_rate(player: Player) -> Player:
    player.fireCooldown *= UPGRADE_FIRE_RATE_FACTOR
    return player


def _upgrade_damage(player: Player) -> Player:
    player.damageBonus += UPGRADE_DAMAGE
    player.damage += UPGRADE_DAMAGE
    return player


def _upgrade_bullet_speed(player: Player) -> Player:
    player.bulletSpeed += UPGRADE_BULLET_SPEED
    return player


def _upgrade_bullet_life(player: Player) -> Player:
    player.bulletLife += UPGRADE_BULLET_LIFE
    return player


def _no_upgrade(player: Player) -> Player:
    return player


UPGRADE_EFFECTS: Dict[UpgradeKind, Callable[[Player], Player]] = {
    UpgradeKind.HP_MAX: _upgrade_hp_max,
    UpgradeKind.REGEN: _upgrade_regen,
    UpgradeKind.SPEED: _upgrade_speed,
    UpgradeKind.FIRE_RATE: _upgrade_fire_rate,
    UpgradeKind.DAMAGE: _upgrade_damage,
    UpgradeKind.BULLET_SPEED: _upgrade_bullet_speed,
    UpgradeKind.BULLET_LIFE: _upgrade_bullet_life,
    UpgradeKind.UNKNOWN: _no_upgrade,
}


def parse_upgrade(choice) -> UpgradeKind:
    """Map a raw client choice to an upgrade kind."""
    if not isinstance(choice, str):
        return UpgradeKind.UNKNOWN
    try:
        return UpgradeKind(choice)
    except ValueError:
        return UpgradeKind.UNKNOWN


def apply_upgrade(player: Player, choice) -> bool:
    """Apply an upgrade choice. Returns False for unknown choices."""
    kind = parse_upgrade(choice)
    UPGRADE_EFFECTS[kind](player)
    return kind is not UpgradeKind.UNKNOWN
