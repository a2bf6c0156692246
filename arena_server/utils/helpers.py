# arena_server/utils/helpers.py
"""Geometry and collision helpers."""

import math

from arena_server.config.settings import (
    HEX_HEIGHT_RATIO,
    HEX_PUSH_DISTANCE,
    OBSTACLE_CONTACT_DPS,
    WORLD_HEIGHT,
    WORLD_WIDTH,
)
from arena_server.models.entities import ObstacleShape


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(value, high))


def clamp_to_world(x: float, y: float) -> tuple:
    """Clamp a position to the world boundaries."""
    return clamp(x, 0, WORLD_WIDTH), clamp(y, 0, WORLD_HEIGHT)


def calculate_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Calculate distance between two points."""
    return math.hypot(x2 - x1, y2 - y1)


def normalize(dx: float, dy: float) -> tuple:
    """Unit vector along (dx, dy), or (1, 0) for a zero vector."""
    length = math.hypot(dx, dy)
    if length == 0:
        return 1.0, 0.0
    return dx / length, dy / length


def circles_overlap(
    x1: float, y1: float, r1: float, x2: float, y2: float, r2: float
) -> bool:
    """Check if two circles are overlapping."""
    return calculate_distance(x1, y1, x2, y2) < (r1 + r2)


def point_in_obstacle(px: float, py: float, obstacle) -> bool:
    """Check whether a point lies inside an obstacle's shape.

    Hexagons use a rotated-square approximation rather than a true
    hexagon test: |dx| <= size/2 and |dy| <= size/2 * 0.866. Clients
    tune their hit feel against this exact shape, so keep it.
    """
    if obstacle.type == ObstacleShape.RECT:
        return (
            obstacle.x < px < obstacle.x + obstacle.w
            and obstacle.y < py < obstacle.y + obstacle.h
        )
    elif obstacle.type == ObstacleShape.HEX:
        half = obstacle.size / 2
        return (
            abs(px - obstacle.x) <= half
            and abs(py - obstacle.y) <= half * HEX_HEIGHT_RATIO
        )
    return False


def resolve_circle_rect_contact(player, obstacle, dt: float) -> bool:
    """Damage and push a player out of a rectangle it penetrates."""
    closest_x = clamp(player.x, obstacle.x, obstacle.x + obstacle.w)
    closest_y = clamp(player.y, obstacle.y, obstacle.y + obstacle.h)
    dist_x = player.x - closest_x
    dist_y = player.y - closest_y
    dist = math.hypot(dist_x, dist_y)
    if dist >= player.size:
        return False

    player.hp -= OBSTACLE_CONTACT_DPS * dt
    overlap = player.size - dist
    nx, ny = normalize(dist_x, dist_y)
    player.x += nx * overlap
    player.y += ny * overlap
    return True


def resolve_circle_hex_contact(player, obstacle, dt: float) -> bool:
    """Damage and nudge a player whose center falls inside a hexagon."""
    if not point_in_obstacle(player.x, player.y, obstacle):
        return False

    player.hp -= OBSTACLE_CONTACT_DPS * dt
    nx, ny = normalize(player.x - obstacle.x, player.y - obstacle.y)
    player.x += nx * HEX_PUSH_DISTANCE
    player.y += ny * HEX_PUSH_DISTANCE
    return True


def resolve_obstacle_contact(player, obstacle, dt: float) -> bool:
    """Dispatch contact resolution on the obstacle shape."""
    if obstacle.type == ObstacleShape.RECT:
        return resolve_circle_rect_contact(player, obstacle, dt)
    elif obstacle.type == ObstacleShape.HEX:
        return resolve_circle_hex_contact(player, obstacle, dt)
    return False
