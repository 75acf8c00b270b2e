"""
Fishing Core - The simulation engine of the game.

This module provides the core game simulation, Gymnasium environment wrapper,
and all supporting systems (behavior, collisions, spawning, scoring).

Main exports:
- CoreGame: Game simulation driven by advance(dt)
- FishingEnv: Gymnasium environment for single-agent training
- EventBus and the event types emitted by CoreGame
- GameConfig: Configuration loaded from game_config.yaml
"""

from cat_fishing.fishing_core.config_loader import GameConfig, load_config, get_config, reload_config
from cat_fishing.fishing_core.catalog import (
    EntityCatalog,
    FishKind,
    ObstacleKind,
    PowerUpKind,
    PowerUpEffect,
)
from cat_fishing.fishing_core.entities import Fish, FishState, Obstacle, PowerUp, PowerUpStatus
from cat_fishing.fishing_core.events import (
    AchievementUnlocked,
    BuffExpired,
    ComboChanged,
    DifficultyChanged,
    Event,
    EventBus,
    FishCaught,
    FishEscaped,
    FishHooked,
    GameEnded,
    HighScoreBeaten,
    ObstacleHit,
    PowerUpCollected,
    SpawnEventEnded,
    SpawnEventStarted,
)
from cat_fishing.fishing_core.hook import Hook, HookState
from cat_fishing.fishing_core.storage import (
    HighScoreStore,
    JsonHighScoreStore,
    MemoryHighScoreStore,
    open_store,
)
from cat_fishing.fishing_core.game import CoreGame, StepResult
from cat_fishing.fishing_core.env_gym import FishingEnv

__all__ = [
    "GameConfig",
    "load_config",
    "get_config",
    "reload_config",
    "EntityCatalog",
    "FishKind",
    "ObstacleKind",
    "PowerUpKind",
    "PowerUpEffect",
    "Fish",
    "FishState",
    "Obstacle",
    "PowerUp",
    "PowerUpStatus",
    "Event",
    "EventBus",
    "FishCaught",
    "FishHooked",
    "FishEscaped",
    "ObstacleHit",
    "PowerUpCollected",
    "BuffExpired",
    "ComboChanged",
    "AchievementUnlocked",
    "HighScoreBeaten",
    "DifficultyChanged",
    "SpawnEventStarted",
    "SpawnEventEnded",
    "GameEnded",
    "Hook",
    "HookState",
    "HighScoreStore",
    "MemoryHighScoreStore",
    "JsonHighScoreStore",
    "open_store",
    "CoreGame",
    "StepResult",
    "FishingEnv",
]
