# arena_server/services/factories.py
"""Construction of new players, projectiles and obstacles."""

import math
import random
import uuid
from typing import List, Optional, Tuple

from arena_server.config.settings import (
    DEFAULT_PLAYER_NAME,
    DUAL_MUZZLE_OFFSET,
    MAX_NAME_LENGTH,
    MUZZLE_DISTANCE,
    OBSTACLE_HEX_MAX_SIZE,
    OBSTACLE_HEX_MIN_SIZE,
    OBSTACLE_MAX_HP,
    OBSTACLE_MIN_HP,
    OBSTACLE_RECT_MAX_SIDE,
    OBSTACLE_RECT_MIN_SIDE,
    PLAYER_BASE_BULLET_LIFE,
    PLAYER_BASE_BULLET_SPEED,
    PLAYER_BASE_FIRE_COOLDOWN,
    PLAYER_BASE_HP,
    PLAYER_BASE_REGEN,
    PLAYER_BASE_SPEED,
    PLAYER_RADIUS,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from arena_server.models.entities import (
    HexObstacle,
    Obstacle,
    Player,
    Projectile,
    RectObstacle,
)
from arena_server.services.progression import apply_tier, calc_xp_to_level


def new_id() -> str:
    """Fresh random entity id."""
    return uuid.uuid4().hex


def clean_name(name) -> str:
    """Sanitize a client-supplied display name."""
    if not isinstance(name, str):
        return DEFAULT_PLAYER_NAME
    name = name.strip()[:MAX_NAME_LENGTH]
    return name or DEFAULT_PLAYER_NAME


def new_obstacle(obstacle_id: Optional[str] = None) -> Obstacle:
    """Create an obstacle with random shape, position, size and health."""
    obstacle_id = obstacle_id or new_id()
    x = random.uniform(0, WORLD_WIDTH)
    y = random.uniform(0, WORLD_HEIGHT)
    max_hp = random.uniform(OBSTACLE_MIN_HP, OBSTACLE_MAX_HP)

    if random.random() < 0.5:
        return RectObstacle(
            id=obstacle_id,
            x=x,
            y=y,
            w=random.uniform(OBSTACLE_RECT_MIN_SIDE, OBSTACLE_RECT_MAX_SIDE),
            h=random.uniform(OBSTACLE_RECT_MIN_SIDE, OBSTACLE_RECT_MAX_SIDE),
            maxHp=max_hp,
            hp=max_hp,
        )
    return HexObstacle(
        id=obstacle_id,
        x=x,
        y=y,
        size=random.uniform(OBSTACLE_HEX_MIN_SIZE, OBSTACLE_HEX_MAX_SIZE),
        maxHp=max_hp,
        hp=max_hp,
    )


def new_player(player_id: str, name) -> Player:
    """Create a level-1 player at a random position."""
    player = Player(
        id=player_id,
        name=clean_name(name),
        x=random.uniform(0, WORLD_WIDTH),
        y=random.uniform(0, WORLD_HEIGHT),
        size=PLAYER_RADIUS,
        hp=PLAYER_BASE_HP,
        maxHp=PLAYER_BASE_HP,
        speed=PLAYER_BASE_SPEED,
        regen=PLAYER_BASE_REGEN,
        fireCooldown=PLAYER_BASE_FIRE_COOLDOWN,
        bulletSpeed=PLAYER_BASE_BULLET_SPEED,
        bulletLife=PLAYER_BASE_BULLET_LIFE,
        level=1,
        xpToLevel=calc_xp_to_level(1),
    )
    return apply_tier(player)


def muzzle_positions(player: Player) -> List[Tuple[float, float]]:
    """Where the player's shots leave the barrel, one entry per muzzle."""
    cos_a = math.cos(player.angle)
    sin_a = math.sin(player.angle)
    reach = player.size + MUZZLE_DISTANCE
    x = player.x + cos_a * reach
    y = player.y + sin_a * reach
    if player.muzzles < 2:
        return [(x, y)]

    # perpendicular to the facing axis
    px, py = -sin_a * DUAL_MUZZLE_OFFSET, cos_a * DUAL_MUZZLE_OFFSET
    return [(x + px, y + py), (x - px, y - py)]


def new_projectile(owner: Player, x: float, y: float) -> Projectile:
    """Create a projectile carrying the owner's current combat stats."""
    return Projectile(
        id=new_id(),
        ownerId=owner.id,
        x=x,
        y=y,
        vx=math.cos(owner.angle) * owner.bulletSpeed,
        vy=math.sin(owner.angle) * owner.bulletSpeed,
        size=owner.bulletSize,
        life=owner.bulletLife,
        damage=owner.damage,
    )


def fire(owner: Player) -> List[Projectile]:
    """Create the projectiles of one shot of the owner's fire pattern."""
    return [new_projectile(owner, x, y) for x, y in muzzle_positions(owner)]
