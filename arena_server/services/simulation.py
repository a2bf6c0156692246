# arena_server/services/simulation.py
"""Authoritative world state and the per-tick simulation step."""

import logging
import math
import time
import uuid
from dataclasses import asdict
from typing import Callable, Dict, List, Optional

from arena_server.config.settings import *
from arena_server.models.entities import Obstacle, Player, Projectile, World
from arena_server.services import factories, progression
from arena_server.utils.helpers import (
    circles_overlap,
    clamp_to_world,
    point_in_obstacle,
    resolve_obstacle_contact,
)

logger = logging.getLogger(__name__)


class GameError(RuntimeError):
    """Base class for simulation failures."""


class UnknownPlayerError(GameError):
    """Raised when an operation names a player that is not in the world."""


class Simulation:
    """Owns the world and advances it one step at a time."""

    def __init__(
        self,
        obstacle_count: int = OBSTACLE_COUNT,
        clock: Callable[[], float] = time.time,
    ):
        self.world = World()
        self.clock = clock
        self.last_tick = clock()
        self._initialize_obstacles(obstacle_count)

    def _initialize_obstacles(self, count: int):
        """Populate the obstacle pool."""
        self.world.obstacles = [factories.new_obstacle() for _ in range(count)]

    # Player lifecycle
    def add_player(self, name, player_id: Optional[str] = None) -> Player:
        """Create a player and place it in the world."""
        player_id = player_id or str(uuid.uuid4())
        player = factories.new_player(player_id, name)
        self.world.players[player_id] = player
        return player

    def remove_player(self, player_id: str):
        """Remove a player. Their projectiles keep flying."""
        self.world.players.pop(player_id, None)

    def get_player(self, player_id: str) -> Player:
        """Look up a player, raising ``UnknownPlayerError`` if absent."""
        try:
            return self.world.players[player_id]
        except KeyError:
            raise UnknownPlayerError(player_id) from None

    def apply_input(self, player_id: str, data: dict):
        """Merge an input message into the player's latched input state."""
        self.get_player(player_id).inputs.merge(data)

    def apply_upgrade(self, player_id: str, choice) -> bool:
        """Apply an upgrade choice to a player."""
        return progression.apply_upgrade(self.get_player(player_id), choice)

    # Obstacles
    def find_obstacle(self, obstacle_id: str) -> Optional[int]:
        """Index of the obstacle with the given id, or None."""
        for index, obstacle in enumerate(self.world.obstacles):
            if obstacle.id == obstacle_id:
                return index
        return None

    def respawn_obstacle(self, obstacle_id: str) -> Optional[Obstacle]:
        """Replace an obstacle in place with a fresh one of the same id."""
        self.world.respawn_schedule.pop(obstacle_id, None)
        index = self.find_obstacle(obstacle_id)
        if index is None:
            return None
        obstacle = factories.new_obstacle(obstacle_id)
        self.world.obstacles[index] = obstacle
        logger.debug("Obstacle %s respawned as %s", obstacle_id, obstacle.type.value)
        return obstacle

    # Update loop
    def tick(self, now: Optional[float] = None) -> List[dict]:
        """Advance the world by the wall-clock time since the previous tick."""
        if now is None:
            now = self.clock()
        dt = min(MAX_TICK_DT, max(0.0, now - self.last_tick))
        self.last_tick = now
        return self.step(dt, now)

    def step(self, dt: float, now: float) -> List[dict]:
        """Advance the world by ``dt`` seconds.

        Returns the notifications produced by the step, each addressed to a
        single player: ``{"playerId": ..., "message": {...}}``.
        """
        notifications = []
        for player in list(self.world.players.values()):
            self._update_player(player, dt, now)
        self._update_projectiles(dt, now, notifications)
        self._respawn_due_obstacles(now)
        return notifications

    def _update_player(self, player: Player, dt: float, now: float):
        """Move, collide, regenerate and fire for one player."""
        inputs = player.inputs

        dx = dy = 0
        if inputs.up:
            dy -= 1
        if inputs.down:
            dy += 1
        if inputs.left:
            dx -= 1
        if inputs.right:
            dx += 1
        length = math.hypot(dx, dy) or 1
        player.x += dx / length * player.speed * dt
        player.y += dy / length * player.speed * dt
        player.x, player.y = clamp_to_world(player.x, player.y)

        if inputs.aimX and inputs.aimY:
            player.angle = math.atan2(inputs.aimY - player.y, inputs.aimX - player.x)

        for obstacle in self.world.obstacles:
            if obstacle.destroyed:
                continue
            resolve_obstacle_contact(player, obstacle, dt)

        for other in self.world.players.values():
            if other is player:
                continue
            if circles_overlap(player.x, player.y, player.size, other.x, other.y, other.size):
                angle = math.atan2(player.y - other.y, player.x - other.x)
                player.x += math.cos(angle) * PLAYER_PUSH_DISTANCE
                player.y += math.sin(angle) * PLAYER_PUSH_DISTANCE
                player.hp -= PLAYER_CONTACT_DPS * dt

        player.x, player.y = clamp_to_world(player.x, player.y)
        player.hp = min(player.hp + player.regen * dt, player.maxHp)

        wants_fire = inputs.firing or inputs.autoFire
        if wants_fire and now - player.lastShot > player.fireCooldown:
            player.lastShot = now
            self.world.projectiles.extend(factories.fire(player))

        if player.hp <= 0:
            progression.soft_reset_on_death(player)

    def _update_projectiles(self, dt: float, now: float, notifications: List[dict]):
        """Advance projectiles and resolve their hits, newest first."""
        projectiles = self.world.projectiles
        for i in range(len(projectiles) - 1, -1, -1):
            projectile = projectiles[i]
            projectile.x += projectile.vx * dt
            projectile.y += projectile.vy * dt
            projectile.life -= dt
            if projectile.life <= 0:
                del projectiles[i]
                continue

            hit = self._hit_obstacle(projectile, now, notifications)
            if not hit:
                hit = self._hit_player(projectile, notifications)
            if hit:
                del projectiles[i]

    def _hit_obstacle(
        self, projectile: Projectile, now: float, notifications: List[dict]
    ) -> bool:
        for obstacle in self.world.obstacles:
            if obstacle.destroyed:
                continue
            if not point_in_obstacle(projectile.x, projectile.y, obstacle):
                continue

            obstacle.hp -= projectile.damage
            if obstacle.hp <= 0:
                obstacle.hp = 0
                self.world.respawn_schedule[obstacle.id] = now + OBSTACLE_RESPAWN_DELAY
                owner = self.world.players.get(projectile.ownerId)
                if owner:
                    reward = OBSTACLE_REWARDS.get(obstacle.type.value)
                    if reward:
                        self._award(owner, reward["score"], reward["xp"], notifications)
            return True
        return False

    def _hit_player(self, projectile: Projectile, notifications: List[dict]) -> bool:
        for target in list(self.world.players.values()):
            if target.id == projectile.ownerId:
                continue
            if not circles_overlap(
                projectile.x, projectile.y, projectile.size, target.x, target.y, target.size
            ):
                continue

            target.hp -= projectile.damage
            if target.hp <= 0:
                victim_score, victim_level = target.score, target.level
                progression.soft_reset_on_death(target)
                shooter = self.world.players.get(projectile.ownerId)
                if shooter:
                    score_gain = max(
                        KILL_SCORE_MIN, math.floor(victim_score * KILL_REWARD_FACTOR)
                    )
                    xp_gain = max(
                        KILL_XP_MIN,
                        math.floor(victim_level * KILL_XP_PER_LEVEL * KILL_REWARD_FACTOR),
                    )
                    self._award(shooter, score_gain, xp_gain, notifications)
            return True
        return False

    def _award(self, player: Player, score: int, xp: int, notifications: List[dict]):
        for level in progression.award(player, score, xp):
            logger.debug("Player %s reached level %d", player.id, level)
            notifications.append(
                {"playerId": player.id, "message": {"type": "levelup", "level": level}}
            )

    def _respawn_due_obstacles(self, now: float):
        due = [
            obstacle_id
            for obstacle_id, due_at in self.world.respawn_schedule.items()
            if now >= due_at
        ]
        for obstacle_id in due:
            self.respawn_obstacle(obstacle_id)

    # Getter methods for world state
    def get_all_players(self) -> List[dict]:
        return [asdict(player) for player in self.world.players.values()]

    def get_all_projectiles(self) -> List[dict]:
        return [asdict(projectile) for projectile in self.world.projectiles]

    def get_all_obstacles(self) -> List[dict]:
        obstacles = []
        for obstacle in self.world.obstacles:
            data = asdict(obstacle)
            data["type"] = obstacle.type.value
            obstacles.append(data)
        return obstacles

    def leaderboard(self, limit: int = LEADERBOARD_SIZE) -> List[dict]:
        """Top players by score, highest first."""
        ranked = sorted(
            self.world.players.values(), key=lambda p: p.score, reverse=True
        )[:limit]
        return [
            {"id": p.id, "name": p.name, "score": p.score, "level": p.level}
            for p in ranked
        ]

    def build_snapshot(self) -> dict:
        """Full world snapshot as sent to every client."""
        return {
            "type": "state",
            "players": self.get_all_players(),
            "bullets": self.get_all_projectiles(),
            "obstacles": self.get_all_obstacles(),
            "leaderboard": self.leaderboard(),
        }

    def stats(self) -> Dict[str, int]:
        """Entity counts for the stats endpoint."""
        return {
            "totalPlayers": len(self.world.players),
            "totalBullets": len(self.world.projectiles),
            "totalObstacles": len(self.world.obstacles),
            "destroyedObstacles": sum(1 for o in self.world.obstacles if o.destroyed),
            "pendingRespawns": len(self.world.respawn_schedule),
        }
