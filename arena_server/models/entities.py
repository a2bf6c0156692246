# arena_server/models/entities.py
"""Game entity models and data classes."""

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Union


class ObstacleShape(str, Enum):
    """Shape tag carried by every obstacle."""

    RECT = "rect"
    HEX = "hex"


@dataclass
class PlayerInputs:
    """Latched input state of a player, overwritten by client messages."""

    up: bool = False
    down: bool = False
    left: bool = False
    right: bool = False
    aimX: float = 0.0
    aimY: float = 0.0
    firing: bool = False
    autoFire: bool = False

    def merge(self, data: dict) -> None:
        """Shallow field-by-field override; unknown keys and bad types are ignored.

        Aim coordinates must be finite numbers: ``NaN``, ``Infinity`` and
        integers too large for a float are dropped.
        """
        for f in fields(self):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.type is bool:
                if isinstance(value, bool):
                    setattr(self, f.name, value)
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                try:
                    number = float(value)
                except OverflowError:
                    continue
                if math.isfinite(number):
                    setattr(self, f.name, number)


@dataclass
class Player:
    """Represents a player in the game."""

    id: str
    name: str
    x: float
    y: float
    angle: float = 0.0
    size: float = 20
    hp: float = 100
    maxHp: float = 100
    score: int = 0
    xp: int = 0
    level: int = 1
    xpToLevel: int = 10
    tier: int = 1
    damage: float = 20
    damageBonus: float = 0
    bulletSize: float = 5
    muzzles: int = 1
    speed: float = 220
    regen: float = 1
    fireCooldown: float = 0.3
    bulletSpeed: float = 850
    bulletLife: float = 1.8
    lastShot: float = 0.0
    inputs: PlayerInputs = field(default_factory=PlayerInputs)


@dataclass
class Projectile:
    """Represents a shot in flight."""

    id: str
    ownerId: str
    x: float
    y: float
    vx: float
    vy: float
    size: float
    life: float
    damage: float


@dataclass
class RectObstacle:
    """Axis-aligned rectangle anchored at its top-left corner."""

    id: str
    x: float
    y: float
    w: float
    h: float
    maxHp: float
    hp: float
    type: ObstacleShape = ObstacleShape.RECT

    @property
    def destroyed(self) -> bool:
        return self.hp <= 0


@dataclass
class HexObstacle:
    """Hexagon centered on (x, y)."""

    id: str
    x: float
    y: float
    size: float
    maxHp: float
    hp: float
    type: ObstacleShape = ObstacleShape.HEX

    @property
    def destroyed(self) -> bool:
        return self.hp <= 0


Obstacle = Union[RectObstacle, HexObstacle]


@dataclass
class World:
    """Every entity of a running arena."""

    players: Dict[str, Player] = field(default_factory=dict)
    projectiles: List[Projectile] = field(default_factory=list)
    obstacles: List[Obstacle] = field(default_factory=list)
    respawn_schedule: Dict[str, float] = field(default_factory=dict)
