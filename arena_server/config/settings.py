# arena_server/config/settings.py
"""Game configuration constants and settings."""

# World settings
WORLD_WIDTH = 3000
WORLD_HEIGHT = 2000

# Obstacle settings
OBSTACLE_COUNT = 80
OBSTACLE_RECT_MIN_SIDE = 60
OBSTACLE_RECT_MAX_SIDE = 120
OBSTACLE_HEX_MIN_SIZE = 60
OBSTACLE_HEX_MAX_SIZE = 110
OBSTACLE_MIN_HP = 120
OBSTACLE_MAX_HP = 270
OBSTACLE_RESPAWN_DELAY = 10.0  # seconds
OBSTACLE_CONTACT_DPS = 25
HEX_PUSH_DISTANCE = 5
HEX_HEIGHT_RATIO = 0.866

# Player settings
PLAYER_RADIUS = 20
PLAYER_BASE_HP = 100
PLAYER_BASE_SPEED = 220
PLAYER_BASE_FIRE_COOLDOWN = 0.3  # seconds
PLAYER_BASE_REGEN = 1  # hp per second
PLAYER_BASE_BULLET_LIFE = 1.8  # seconds
PLAYER_BASE_BULLET_SPEED = 850
PLAYER_CONTACT_DPS = 10
PLAYER_PUSH_DISTANCE = 4
MAX_NAME_LENGTH = 16
DEFAULT_PLAYER_NAME = "Player"

# Firing settings
MUZZLE_DISTANCE = 10  # beyond the player radius
DUAL_MUZZLE_OFFSET = 12  # perpendicular to the facing axis

# Tier settings, highest threshold first
TIER_TABLE = (
    {"tier": 3, "minLevel": 10, "damage": 45, "bulletSize": 8, "muzzles": 2},
    {"tier": 2, "minLevel": 5, "damage": 30, "bulletSize": 12, "muzzles": 1},
    {"tier": 1, "minLevel": 1, "damage": 20, "bulletSize": 5, "muzzles": 1},
)

# Progression settings
XP_BASE = 10
XP_GROWTH = 1.3
OBSTACLE_REWARDS = {
    "rect": {"score": 10, "xp": 5},
    "hex": {"score": 30, "xp": 12},
}
KILL_SCORE_MIN = 5
KILL_XP_MIN = 60
KILL_XP_PER_LEVEL = 10
KILL_REWARD_FACTOR = 0.5
DEATH_RETAIN_FACTOR = 0.5

# Upgrade settings
UPGRADE_HP_MAX = 20
UPGRADE_REGEN = 0.5
UPGRADE_SPEED = 20
UPGRADE_FIRE_RATE_FACTOR = 0.9
UPGRADE_DAMAGE = 5
UPGRADE_BULLET_SPEED = 100
UPGRADE_BULLET_LIFE = 0.2

# Server settings
TICK_RATE = 30  # simulation steps per second
BROADCAST_RATE = 20  # snapshots per second
MAX_TICK_DT = 0.1  # seconds
LEADERBOARD_SIZE = 5
SERVER_HOST = "0.0.0.0"
SERVER_PORT = 8000
LOG_LEVEL = "INFO"


def get_game_config():
    """Get the client-facing game configuration as a dictionary."""
    return {
        "worldSize": {"w": WORLD_WIDTH, "h": WORLD_HEIGHT},
        "tickRate": TICK_RATE,
        "broadcastRate": BROADCAST_RATE,
        "obstacleCount": OBSTACLE_COUNT,
        "obstacleRespawnDelay": OBSTACLE_RESPAWN_DELAY,
        "playerRadius": PLAYER_RADIUS,
        "leaderboardSize": LEADERBOARD_SIZE,
        "tiers": [dict(entry) for entry in TIER_TABLE],
        "obstacleRewards": {
            shape: dict(reward) for shape, reward in OBSTACLE_REWARDS.items()
        },
        "upgrades": [
            "hpMax",
            "regen",
            "speed",
            "fireRate",
            "damage",
            "bulletSpeed",
            "bulletLife",
        ],
    }
