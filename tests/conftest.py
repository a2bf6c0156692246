import random

import pytest

from arena_server.models.entities import HexObstacle, Player, Projectile, RectObstacle
from arena_server.services.simulation import Simulation


@pytest.fixture(autouse=True)
def _seed_random():
    random.seed(1234)


@pytest.fixture()
def simulation() -> Simulation:
    return Simulation(obstacle_count=0, clock=lambda: 0.0)


@pytest.fixture()
def place_player(simulation: Simulation):
    def _place(player_id: str, x: float, y: float, **stats) -> Player:
        player = simulation.add_player(player_id.upper(), player_id=player_id)
        player.x = x
        player.y = y
        for name, value in stats.items():
            setattr(player, name, value)
        return player

    return _place


def make_rect(obstacle_id="rect", x=100.0, y=100.0, w=100.0, h=100.0, hp=200.0):
    return RectObstacle(id=obstacle_id, x=x, y=y, w=w, h=h, maxHp=max(hp, 1.0), hp=hp)


def make_hex(obstacle_id="hex", x=500.0, y=500.0, size=100.0, hp=200.0):
    return HexObstacle(id=obstacle_id, x=x, y=y, size=size, maxHp=max(hp, 1.0), hp=hp)


def make_projectile(owner_id, x, y, damage=20.0, size=5.0, life=1.0, vx=0.0, vy=0.0):
    return Projectile(
        id=f"shot-{owner_id}-{x}-{y}",
        ownerId=owner_id,
        x=x,
        y=y,
        vx=vx,
        vy=vy,
        size=size,
        life=life,
        damage=damage,
    )
