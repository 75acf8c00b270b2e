"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple, Optional

import yaml


VALID_EFFECTS = (
    "attract_fish",
    "speed_boost",
    "score_multiplier",
    "time_extension",
    "rare_fish_boost",
    "magnetic_hook",
)
VALID_RARITIES = ("common", "uncommon", "rare", "legendary")
SPAWN_CATEGORIES = ("fish", "obstacles", "power_ups")
ACHIEVEMENT_IDS = ("first_catch", "combo_master", "speed_demon", "perfect_game", "collector")


@dataclass(frozen=True)
class BoardConfig:
    """Board geometry and water band."""
    width: int                  # Board width in pixels
    height: int                 # Board height in pixels
    water_top: float            # Fish never swim above this line
    water_bottom_margin: float  # Fish never swim below height - margin
    cull_margin: float          # Distance outside the board before an entity is culled

    @property
    def water_bottom(self) -> float:
        return self.height - self.water_bottom_margin


@dataclass(frozen=True)
class SessionConfig:
    """Session clock and high-score persistence."""
    game_time: float
    high_score_key: str
    history_limit: int


@dataclass(frozen=True)
class HookConfig:
    """Hook kinematics."""
    rod_x: float
    rod_y: float
    max_depth: float
    speed: float
    speed_boost_multiplier: float


@dataclass(frozen=True)
class CollisionConfig:
    """Hit-test margins and broad-phase settings."""
    hook_radius: float
    fish_margin: float
    obstacle_margin: float
    power_up_margin: float
    obstacle_cooldown: float
    use_spatial_grid: bool
    cell_size: float
    magnetic_strength: float
    apply_magnetic_pull: bool   # Move power-ups along their pull vector


@dataclass(frozen=True)
class BuffConfig:
    """Multipliers applied while timed power-up effects are active."""
    magnetic_hook_power: float
    speed_boost_power: float
    lucky_charm_score: float
    bait_fish_rate: float
    rare_weight_boost: float


@dataclass(frozen=True)
class FishBehaviorConfig:
    """Fish state machine timings and flocking gains."""
    dwell_min: float
    dwell_max: float
    reverse_chance: float
    vertical_flip_chance: float
    rest_chance: float
    rest_time: float
    rest_decay: float
    escape_time: float
    escape_delay_min: float
    escape_delay_max: float
    cohesion_radius: float
    separation_radius: float
    cohesion_gain: float
    separation_gain: float
    schooling_threshold: float
    bob_amplitude: float
    bob_frequency: float


@dataclass(frozen=True)
class FishTypeConfig:
    """Configuration for a single fish type."""
    name: str
    width: float
    height: float
    base_speed: float
    score: int
    resistance: float
    agility: float
    escape_chance: float
    rarity: str
    spawn_weight: float


@dataclass(frozen=True)
class ObstacleTypeConfig:
    """Configuration for a single obstacle type."""
    name: str
    width: float
    height: float
    penalty: int
    destructible: bool
    max_hits: int
    sway_intensity: float
    bob_intensity: float
    spawn_weight: float


@dataclass(frozen=True)
class ObstaclesConfig:
    max_lifetime: float
    types: Tuple[ObstacleTypeConfig, ...]


@dataclass(frozen=True)
class PowerUpTypeConfig:
    """Configuration for a single power-up type."""
    name: str
    width: float
    height: float
    effect: str
    duration: float
    value: float
    magnetic_range: float
    collect_bonus: int
    spawn_weight: float


@dataclass(frozen=True)
class PowerUpsConfig:
    max_lifetime: float
    blink_time: float
    drift_speed: float
    types: Tuple[PowerUpTypeConfig, ...]


@dataclass(frozen=True)
class SpawnRegion:
    """Axis-aligned rectangle where new entities may appear."""
    name: str
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CategorySpawnConfig:
    """Spawn timing, population cap and regions for one entity category."""
    base_interval: float
    min_interval: float
    max_interval: float
    max_count: int
    regions: Tuple[SpawnRegion, ...]
    school_chance: float = 0.0
    school_size_min: int = 1
    school_size_max: int = 1
    school_spread_x: float = 0.0
    school_spread_y: float = 0.0


@dataclass(frozen=True)
class SpawningConfig:
    fish: CategorySpawnConfig
    obstacles: CategorySpawnConfig
    power_ups: CategorySpawnConfig

    def category(self, name: str) -> CategorySpawnConfig:
        """Get spawn config by category name."""
        if name not in SPAWN_CATEGORIES:
            raise ValueError(f"Unknown spawn category: {name}")
        return getattr(self, name)


@dataclass(frozen=True)
class DifficultyEventConfig:
    """A timed spawn-rate surge started on a difficulty change."""
    name: str
    category: str
    threshold: float   # Cumulative upper bound of the uniform draw
    rate: float        # Spawn-rate multiplier while active
    duration: float


@dataclass(frozen=True)
class DifficultyConfig:
    level_seconds: float
    step: float
    floor: float
    events: Tuple[DifficultyEventConfig, ...]


@dataclass(frozen=True)
class ScoringConfig:
    """Combo table, time bonuses and achievement rewards."""
    combo_multipliers: Tuple[Tuple[int, float], ...]  # Ascending (threshold, multiplier)
    fast_bonus: int
    perfect_bonus: int
    fast_window: float
    rare_bonus_ratio: float
    combo_decay: float
    achievements: Tuple[Tuple[str, int], ...]

    def achievement_bonus(self, achievement_id: str) -> int:
        for name, bonus in self.achievements:
            if name == achievement_id:
                return bonus
        return 0


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    board: BoardConfig
    session: SessionConfig
    hook: HookConfig
    collision: CollisionConfig
    buffs: BuffConfig
    fish_behavior: FishBehaviorConfig
    fish: Tuple[FishTypeConfig, ...]
    obstacles: ObstaclesConfig
    power_ups: PowerUpsConfig
    spawning: SpawningConfig
    difficulty: DifficultyConfig
    scoring: ScoringConfig

    @property
    def fish_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fish)

    @property
    def obstacle_names(self) -> Tuple[str, ...]:
        return tuple(o.name for o in self.obstacles.types)

    @property
    def power_up_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.power_ups.types)


def _parse_region(name: str, region_data: List) -> SpawnRegion:
    """Parse a [x, y, width, height] spawn region from YAML."""
    if len(region_data) != 4:
        raise ValueError(f"Spawn region '{name}' must have 4 values [x, y, width, height], got {region_data}")
    return SpawnRegion(
        name=str(name),
        x=float(region_data[0]),
        y=float(region_data[1]),
        width=float(region_data[2]),
        height=float(region_data[3])
    )


def _parse_fish(fish_data: dict) -> FishTypeConfig:
    """Parse a single fish type from YAML."""
    return FishTypeConfig(
        name=str(fish_data["name"]),
        width=float(fish_data["width"]),
        height=float(fish_data["height"]),
        base_speed=float(fish_data["base_speed"]),
        score=int(fish_data["score"]),
        resistance=float(fish_data["resistance"]),
        agility=float(fish_data.get("agility", 1.0)),
        escape_chance=float(fish_data.get("escape_chance", 0.0)),
        rarity=str(fish_data.get("rarity", "common")),
        spawn_weight=float(fish_data["spawn_weight"])
    )


def _parse_obstacle(obstacle_data: dict) -> ObstacleTypeConfig:
    """Parse a single obstacle type from YAML."""
    return ObstacleTypeConfig(
        name=str(obstacle_data["name"]),
        width=float(obstacle_data["width"]),
        height=float(obstacle_data["height"]),
        penalty=int(obstacle_data["penalty"]),
        destructible=bool(obstacle_data.get("destructible", False)),
        max_hits=int(obstacle_data.get("max_hits", 1)),
        sway_intensity=float(obstacle_data.get("sway_intensity", 0.0)),
        bob_intensity=float(obstacle_data.get("bob_intensity", 0.0)),
        spawn_weight=float(obstacle_data["spawn_weight"])
    )


def _parse_power_up(power_up_data: dict) -> PowerUpTypeConfig:
    """Parse a single power-up type from YAML."""
    return PowerUpTypeConfig(
        name=str(power_up_data["name"]),
        width=float(power_up_data["width"]),
        height=float(power_up_data["height"]),
        effect=str(power_up_data["effect"]),
        duration=float(power_up_data.get("duration", 0.0)),
        value=float(power_up_data.get("value", 0.0)),
        magnetic_range=float(power_up_data.get("magnetic_range", 0.0)),
        collect_bonus=int(power_up_data.get("collect_bonus", 0)),
        spawn_weight=float(power_up_data["spawn_weight"])
    )


def _parse_category(category_data: dict) -> CategorySpawnConfig:
    """Parse one spawning category from YAML."""
    regions = tuple(
        _parse_region(name, values)
        for name, values in category_data["regions"].items()
    )
    return CategorySpawnConfig(
        base_interval=float(category_data["base_interval"]),
        min_interval=float(category_data["min_interval"]),
        max_interval=float(category_data["max_interval"]),
        max_count=int(category_data["max_count"]),
        regions=regions,
        school_chance=float(category_data.get("school_chance", 0.0)),
        school_size_min=int(category_data.get("school_size_min", 1)),
        school_size_max=int(category_data.get("school_size_max", 1)),
        school_spread_x=float(category_data.get("school_spread_x", 0.0)),
        school_spread_y=float(category_data.get("school_spread_y", 0.0))
    )


def _parse_event(event_data: dict) -> DifficultyEventConfig:
    return DifficultyEventConfig(
        name=str(event_data["name"]),
        category=str(event_data["category"]),
        threshold=float(event_data["threshold"]),
        rate=float(event_data["rate"]),
        duration=float(event_data["duration"])
    )


def _parse_scoring(scoring_data: dict) -> ScoringConfig:
    combos = sorted(
        (int(threshold), float(multiplier))
        for threshold, multiplier in scoring_data["combo_multipliers"].items()
    )
    achievements = tuple(
        (str(name), int(bonus))
        for name, bonus in scoring_data.get("achievements", {}).items()
    )
    return ScoringConfig(
        combo_multipliers=tuple(combos),
        fast_bonus=int(scoring_data["fast_bonus"]),
        perfect_bonus=int(scoring_data["perfect_bonus"]),
        fast_window=float(scoring_data.get("fast_window", 2.0)),
        rare_bonus_ratio=float(scoring_data.get("rare_bonus_ratio", 0.5)),
        combo_decay=float(scoring_data.get("combo_decay", 5.0)),
        achievements=achievements
    )


def _check_unique(kind: str, names: Tuple[str, ...]) -> None:
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate {kind} type names: {list(names)}")


def _check_weights(kind: str, weights: List[float]) -> None:
    if any(w < 0 for w in weights):
        raise ValueError(f"{kind} spawn weights must be non-negative, got {weights}")
    if sum(weights) <= 0:
        raise ValueError(f"{kind} spawn weights must sum to a positive value, got {weights}")


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    if not config.fish or not config.obstacles.types or not config.power_ups.types:
        raise ValueError("fish, obstacles and power_ups must each define at least one type")

    _check_unique("fish", config.fish_names)
    _check_unique("obstacle", config.obstacle_names)
    _check_unique("power-up", config.power_up_names)

    _check_weights("fish", [f.spawn_weight for f in config.fish])
    _check_weights("obstacle", [o.spawn_weight for o in config.obstacles.types])
    _check_weights("power-up", [p.spawn_weight for p in config.power_ups.types])

    for fish in config.fish:
        if fish.rarity not in VALID_RARITIES:
            raise ValueError(f"Fish '{fish.name}' has unknown rarity '{fish.rarity}'")
        if not 0.0 <= fish.escape_chance <= 1.0:
            raise ValueError(f"Fish '{fish.name}' escape_chance must be in [0, 1]")

    for power_up in config.power_ups.types:
        if power_up.effect not in VALID_EFFECTS:
            raise ValueError(f"Power-up '{power_up.name}' has unknown effect '{power_up.effect}'")

    # Spawn categories
    for name in SPAWN_CATEGORIES:
        category = config.spawning.category(name)
        if not category.regions:
            raise ValueError(f"spawning.{name} needs at least one region")
        if category.min_interval > category.max_interval:
            raise ValueError(f"spawning.{name}: min_interval exceeds max_interval")
        if category.max_count < 0:
            raise ValueError(f"spawning.{name}: max_count must be non-negative")
        if category.school_size_min > category.school_size_max:
            raise ValueError(f"spawning.{name}: school_size_min exceeds school_size_max")
        for region in category.regions:
            if region.width < 0 or region.height < 0:
                raise ValueError(f"spawning.{name}.{region.name} has negative size")

    # Difficulty events are checked against one draw, so thresholds must ascend
    previous = 0.0
    for event in config.difficulty.events:
        if event.category not in SPAWN_CATEGORIES:
            raise ValueError(f"Difficulty event '{event.name}' has unknown category '{event.category}'")
        if event.threshold < previous or event.threshold > 1.0:
            raise ValueError(f"Difficulty event thresholds must ascend within [0, 1], got {event.threshold}")
        previous = event.threshold

    if config.difficulty.level_seconds <= 0:
        raise ValueError("difficulty.level_seconds must be positive")

    for name, _ in config.scoring.achievements:
        if name not in ACHIEVEMENT_IDS:
            raise ValueError(f"Unknown achievement '{name}'")

    if config.hook.max_depth <= config.hook.rod_y:
        raise ValueError("hook.max_depth must be below hook.rod_y")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    board_data = raw["board"]
    board = BoardConfig(
        width=int(board_data["width"]),
        height=int(board_data["height"]),
        water_top=float(board_data["water_top"]),
        water_bottom_margin=float(board_data.get("water_bottom_margin", 50.0)),
        cull_margin=float(board_data.get("cull_margin", 150.0))
    )

    session_data = raw.get("session", {})
    session = SessionConfig(
        game_time=float(session_data.get("game_time", 90.0)),
        high_score_key=str(session_data.get("high_score_key", "catFishing_highScore")),
        history_limit=int(session_data.get("history_limit", 50))
    )

    hook_data = raw["hook"]
    hook = HookConfig(
        rod_x=float(hook_data["rod_x"]),
        rod_y=float(hook_data["rod_y"]),
        max_depth=float(hook_data["max_depth"]),
        speed=float(hook_data["speed"]),
        speed_boost_multiplier=float(hook_data.get("speed_boost_multiplier", 1.5))
    )

    collision_data = raw["collision"]
    collision = CollisionConfig(
        hook_radius=float(collision_data["hook_radius"]),
        fish_margin=float(collision_data["fish_margin"]),
        obstacle_margin=float(collision_data["obstacle_margin"]),
        power_up_margin=float(collision_data["power_up_margin"]),
        obstacle_cooldown=float(collision_data.get("obstacle_cooldown", 0.5)),
        use_spatial_grid=bool(collision_data.get("use_spatial_grid", True)),
        cell_size=float(collision_data.get("cell_size", 100.0)),
        magnetic_strength=float(collision_data.get("magnetic_strength", 50.0)),
        apply_magnetic_pull=bool(collision_data.get("apply_magnetic_pull", True))
    )

    buff_data = raw.get("buffs", {})
    buffs = BuffConfig(
        magnetic_hook_power=float(buff_data.get("magnetic_hook_power", 1.5)),
        speed_boost_power=float(buff_data.get("speed_boost_power", 1.2)),
        lucky_charm_score=float(buff_data.get("lucky_charm_score", 1.5)),
        bait_fish_rate=float(buff_data.get("bait_fish_rate", 1.5)),
        rare_weight_boost=float(buff_data.get("rare_weight_boost", 3.0))
    )

    behavior_data = raw["fish_behavior"]
    fish_behavior = FishBehaviorConfig(
        **{name: float(behavior_data[name]) for name in FishBehaviorConfig.__dataclass_fields__}
    )

    fish = tuple(_parse_fish(f) for f in raw["fish"])

    obstacles_data = raw["obstacles"]
    obstacles = ObstaclesConfig(
        max_lifetime=float(obstacles_data.get("max_lifetime", 45.0)),
        types=tuple(_parse_obstacle(o) for o in obstacles_data["types"])
    )

    power_ups_data = raw["power_ups"]
    power_ups = PowerUpsConfig(
        max_lifetime=float(power_ups_data.get("max_lifetime", 30.0)),
        blink_time=float(power_ups_data.get("blink_time", 25.0)),
        drift_speed=float(power_ups_data.get("drift_speed", 5.0)),
        types=tuple(_parse_power_up(p) for p in power_ups_data["types"])
    )

    spawning_data = raw["spawning"]
    spawning = SpawningConfig(
        fish=_parse_category(spawning_data["fish"]),
        obstacles=_parse_category(spawning_data["obstacles"]),
        power_ups=_parse_category(spawning_data["power_ups"])
    )

    difficulty_data = raw["difficulty"]
    difficulty = DifficultyConfig(
        level_seconds=float(difficulty_data.get("level_seconds", 30.0)),
        step=float(difficulty_data.get("step", 0.1)),
        floor=float(difficulty_data.get("floor", 0.3)),
        events=tuple(_parse_event(e) for e in difficulty_data.get("events", []))
    )

    scoring = _parse_scoring(raw["scoring"])

    config = GameConfig(
        board=board,
        session=session,
        hook=hook,
        collision=collision,
        buffs=buffs,
        fish_behavior=fish_behavior,
        fish=fish,
        obstacles=obstacles,
        power_ups=power_ups,
        spawning=spawning,
        difficulty=difficulty,
        scoring=scoring
    )

    _validate_config(config)
    return config


def config_to_dict(config: GameConfig) -> Dict[str, object]:
    """Flatten the headline session parameters for logging and info dicts."""
    return {
        "board": (config.board.width, config.board.height),
        "game_time": config.session.game_time,
        "fish_types": config.fish_names,
        "obstacle_types": config.obstacle_names,
        "power_up_types": config.power_up_names,
        "spatial_grid": config.collision.use_spatial_grid,
    }


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
