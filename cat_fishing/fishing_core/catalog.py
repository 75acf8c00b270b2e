"""
Entity Catalog
==============

Closed sets of fish, obstacle and power-up kinds, each keyed into an immutable
table built from the loaded config.

Lookups never fail at runtime: an unknown name resolves to the category
default (the first entry of the table) and a warning is logged.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from cat_fishing.fishing_core.config_loader import (
    GameConfig,
    FishTypeConfig,
    ObstacleTypeConfig,
    PowerUpTypeConfig,
    get_config
)

logger = logging.getLogger(__name__)


class FishKind(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    RARE = "rare"
    LEGENDARY = "legendary"


class FishRarity(Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    LEGENDARY = "legendary"


class ObstacleKind(Enum):
    WEED = "weed"
    TRASH = "trash"
    ROCK = "rock"
    CORAL = "coral"
    SEAWEED = "seaweed"


class PowerUpKind(Enum):
    BAIT = "bait"
    ACCELERATOR = "accelerator"
    BUFF_POTION = "buff_potion"
    TIME_BONUS = "time_bonus"
    LUCKY_CHARM = "lucky_charm"
    MAGNET = "magnet"


class PowerUpEffect(Enum):
    ATTRACT_FISH = "attract_fish"
    SPEED_BOOST = "speed_boost"
    SCORE_MULTIPLIER = "score_multiplier"
    TIME_EXTENSION = "time_extension"
    RARE_FISH_BOOST = "rare_fish_boost"
    MAGNETIC_HOOK = "magnetic_hook"


# Kinds whose catches earn the rare-tier bonus and get the lucky charm boost
RARE_KINDS = (FishKind.RARE, FishKind.LEGENDARY)

_FishKey = Union[FishKind, str]
_ObstacleKey = Union[ObstacleKind, str]
_PowerUpKey = Union[PowerUpKind, str]


def _build_table(enum_cls, entries, category: str) -> Dict:
    """Key config entries by enum member, requiring an exact match of the closed set."""
    table = {}
    for entry in entries:
        try:
            kind = enum_cls(entry.name)
        except ValueError:
            raise ValueError(f"Unknown {category} type '{entry.name}' in config") from None
        table[kind] = entry
    missing = [k.value for k in enum_cls if k not in table]
    if missing:
        raise ValueError(f"Config is missing {category} types: {missing}")
    return table


class EntityCatalog:
    """
    Immutable per-type tables for every entity category.

    Provides kind resolution with fallback and the ordered weight lists used
    by the spawner.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize catalog from game config.

        Args:
            config: GameConfig instance. If None, loads from default location.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._fish: Dict[FishKind, FishTypeConfig] = _build_table(FishKind, config.fish, "fish")
        self._obstacles: Dict[ObstacleKind, ObstacleTypeConfig] = _build_table(
            ObstacleKind, config.obstacles.types, "obstacle"
        )
        self._power_ups: Dict[PowerUpKind, PowerUpTypeConfig] = _build_table(
            PowerUpKind, config.power_ups.types, "power-up"
        )

        # Config order is the spawn table order; the first entry is the default
        self._fish_order: Tuple[FishKind, ...] = tuple(FishKind(f.name) for f in config.fish)
        self._obstacle_order: Tuple[ObstacleKind, ...] = tuple(
            ObstacleKind(o.name) for o in config.obstacles.types
        )
        self._power_up_order: Tuple[PowerUpKind, ...] = tuple(
            PowerUpKind(p.name) for p in config.power_ups.types
        )

    # -- kind resolution --------------------------------------------------

    def resolve_fish_kind(self, key: _FishKey) -> FishKind:
        """Resolve a fish kind, falling back to the default with a warning."""
        if isinstance(key, FishKind):
            return key
        try:
            return FishKind(key)
        except ValueError:
            logger.warning("Unknown fish type %r, using %s", key, self._fish_order[0].value)
            return self._fish_order[0]

    def resolve_obstacle_kind(self, key: _ObstacleKey) -> ObstacleKind:
        """Resolve an obstacle kind, falling back to the default with a warning."""
        if isinstance(key, ObstacleKind):
            return key
        try:
            return ObstacleKind(key)
        except ValueError:
            logger.warning("Unknown obstacle type %r, using %s", key, self._obstacle_order[0].value)
            return self._obstacle_order[0]

    def resolve_power_up_kind(self, key: _PowerUpKey) -> PowerUpKind:
        """Resolve a power-up kind, falling back to the default with a warning."""
        if isinstance(key, PowerUpKind):
            return key
        try:
            return PowerUpKind(key)
        except ValueError:
            logger.warning("Unknown power-up type %r, using %s", key, self._power_up_order[0].value)
            return self._power_up_order[0]

    # -- table access -----------------------------------------------------

    def fish(self, key: _FishKey) -> FishTypeConfig:
        return self._fish[self.resolve_fish_kind(key)]

    def obstacle(self, key: _ObstacleKey) -> ObstacleTypeConfig:
        return self._obstacles[self.resolve_obstacle_kind(key)]

    def power_up(self, key: _PowerUpKey) -> PowerUpTypeConfig:
        return self._power_ups[self.resolve_power_up_kind(key)]

    def effect_of(self, key: _PowerUpKey) -> PowerUpEffect:
        return PowerUpEffect(self.power_up(key).effect)

    def resistance(self, kind: FishKind) -> float:
        """Minimum hook power needed to land this fish."""
        return self._fish[kind].resistance

    def base_score(self, kind: FishKind) -> int:
        return self._fish[kind].score

    def rarity(self, kind: FishKind) -> FishRarity:
        return FishRarity(self._fish[kind].rarity)

    def is_rare(self, kind: FishKind) -> bool:
        return kind in RARE_KINDS

    @property
    def fish_kinds(self) -> Tuple[FishKind, ...]:
        return self._fish_order

    @property
    def obstacle_kinds(self) -> Tuple[ObstacleKind, ...]:
        return self._obstacle_order

    @property
    def power_up_kinds(self) -> Tuple[PowerUpKind, ...]:
        return self._power_up_order

    @property
    def fish_weights(self) -> Tuple[float, ...]:
        return tuple(self._fish[k].spawn_weight for k in self._fish_order)

    @property
    def obstacle_weights(self) -> Tuple[float, ...]:
        return tuple(self._obstacles[k].spawn_weight for k in self._obstacle_order)

    @property
    def power_up_weights(self) -> Tuple[float, ...]:
        return tuple(self._power_ups[k].spawn_weight for k in self._power_up_order)

    def __repr__(self) -> str:
        return (
            f"EntityCatalog(fish={len(self._fish)}, obstacles={len(self._obstacles)}, "
            f"power_ups={len(self._power_ups)})"
        )


# Module-level singleton
_cached_catalog: Optional[EntityCatalog] = None


def get_catalog(config: Optional[GameConfig] = None) -> EntityCatalog:
    """
    Get the entity catalog singleton.

    Args:
        config: Optional config to use. If None, uses cached or default config.

    Returns:
        EntityCatalog instance.
    """
    global _cached_catalog
    if _cached_catalog is None or config is not None:
        _cached_catalog = EntityCatalog(config)
    return _cached_catalog
