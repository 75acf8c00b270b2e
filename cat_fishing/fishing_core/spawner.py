"""
Spawn Director
==============

Owns the entity arenas and decides when, what and where to spawn.

Each category (fish, obstacles, power-ups) runs its own accumulator timer.
The timer advances by dt scaled by the category spawn rate; when it reaches
the current interval one spawn action fires and a fresh interval is drawn
around the difficulty-scaled base. Population caps are enforced silently.
"""

from __future__ import annotations

import logging
import math
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from cat_fishing.fishing_core.catalog import (
    EntityCatalog,
    FishKind,
    ObstacleKind,
    PowerUpKind,
    PowerUpEffect,
    get_catalog,
)
from cat_fishing.fishing_core.config_loader import (
    GameConfig,
    CategorySpawnConfig,
    DifficultyEventConfig,
    SpawnRegion,
    SPAWN_CATEGORIES,
    get_config,
)
from cat_fishing.fishing_core.entities import Fish, Obstacle, PowerUp

logger = logging.getLogger(__name__)

T = TypeVar("T")


def weighted_choice(rng: random.Random, items: Sequence[T], weights: Sequence[float]) -> T:
    """
    Pick one item with probability proportional to its weight.

    Draws uniformly in [0, total) and walks the list subtracting weights.

    Args:
        rng: Random source.
        items: Candidates.
        weights: Non-negative weights, same length as items.

    Returns:
        The chosen item.
    """
    if len(items) != len(weights) or not items:
        raise ValueError("items and weights must be non-empty and the same length")
    total = sum(weights)
    r = rng.random() * total
    for item, weight in zip(items, weights):
        r -= weight
        if r < 0:
            return item
    return items[-1]


@dataclass
class _CategoryState:
    config: CategorySpawnConfig
    timer: float = 0.0
    interval: float = 0.0
    scaled_base: float = 0.0
    spawn_rate: float = 1.0


@dataclass
class ActiveEvent:
    """A running spawn-rate surge."""
    name: str
    category: str
    rate: float
    remaining: float


@dataclass
class SpawnReport:
    """What one director tick changed."""
    spawned: Dict[str, List[int]] = field(default_factory=lambda: {c: [] for c in SPAWN_CATEGORIES})
    difficulty_level: Optional[int] = None   # Set when the level changed
    events_started: List[str] = field(default_factory=list)
    events_ended: List[str] = field(default_factory=list)


@dataclass
class CullReport:
    """Uids pruned from each arena."""
    fish: List[int] = field(default_factory=list)
    obstacles: List[int] = field(default_factory=list)
    power_ups: List[int] = field(default_factory=list)


class SpawnDirector:
    """
    Spawn timers, difficulty progression and the entity arenas.

    Entities live in per-category dicts keyed by a stable integer uid that is
    never reused within a session.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        catalog: Optional[EntityCatalog] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the director.

        Args:
            config: Game configuration. Uses default if None.
            catalog: Entity tables. Built from config if None.
            seed: Random seed for reproducibility. Random if None.
        """
        if config is None:
            config = get_config()
        if catalog is None:
            catalog = get_catalog(config)

        self._config = config
        self._catalog = catalog
        self._rng = random.Random(seed)

        self.fish: Dict[int, Fish] = {}
        self.obstacles: Dict[int, Obstacle] = {}
        self.power_ups: Dict[int, PowerUp] = {}

        self._fish_rate_modifier = 1.0
        self._rare_weight_multiplier = 1.0

        self._init_state()

    def _init_state(self) -> None:
        self._next_uid = 1
        self._game_time = 0.0
        self._difficulty_level = 1
        self._events: Dict[str, ActiveEvent] = {}
        self._states: Dict[str, _CategoryState] = {
            name: _CategoryState(config=self._config.spawning.category(name))
            for name in SPAWN_CATEGORIES
        }
        self._recompute_intervals()
        for state in self._states.values():
            state.interval = self._draw_interval(state)

        self._spawned: Counter = Counter()
        self._spawned_by_type: Counter = Counter()
        self._schools_spawned = 0
        self._dropped_at_cap: Counter = Counter()

    # -- properties -------------------------------------------------------

    @property
    def game_time(self) -> float:
        return self._game_time

    @property
    def difficulty_level(self) -> int:
        return self._difficulty_level

    @property
    def active_events(self) -> Dict[str, float]:
        """Remaining seconds per running event, keyed by event name."""
        return {e.name: e.remaining for e in self._events.values()}

    def spawn_rate(self, category: str) -> float:
        """Effective timer multiplier for a category, including buff modifiers."""
        rate = self._states[category].spawn_rate
        if category == "fish":
            rate *= self._fish_rate_modifier
        return rate

    def interval(self, category: str) -> float:
        """Seconds until the next spawn action of a category is due."""
        return self._states[category].interval

    def base_interval(self, category: str) -> float:
        """Configured base interval scaled by the current difficulty level."""
        return self._states[category].scaled_base

    @property
    def difficulty_multiplier(self) -> float:
        """Interval scale for the current level, floored at difficulty.floor."""
        difficulty = self._config.difficulty
        return max(difficulty.floor, 1.0 - (self._difficulty_level - 1) * difficulty.step)

    def population(self, category: str) -> int:
        """Live entities in a category (pending cull does not count)."""
        if category == "fish":
            return sum(1 for f in self.fish.values() if f.alive)
        if category == "obstacles":
            return sum(1 for o in self.obstacles.values() if o.active)
        if category == "power_ups":
            return sum(1 for p in self.power_ups.values() if p.is_active)
        raise ValueError(f"Unknown spawn category: {category}")

    def set_modifiers(self, fish_rate: float = 1.0, rare_weight: float = 1.0) -> None:
        """Apply buff-driven modifiers (bait fish rate, lucky charm rare weight)."""
        self._fish_rate_modifier = fish_rate
        self._rare_weight_multiplier = rare_weight

    # -- tick -------------------------------------------------------------

    def update(self, dt: float) -> SpawnReport:
        """
        Advance timers, difficulty and events by dt and run due spawns.

        Args:
            dt: Elapsed seconds.

        Returns:
            SpawnReport with new uids, difficulty change and event changes.
        """
        report = SpawnReport()
        self._game_time += dt

        for category in list(self._events):
            event = self._events[category]
            event.remaining -= dt
            if event.remaining <= 0:
                self._end_event(category)
                report.events_ended.append(event.name)

        level = int(math.floor(self._game_time / self._config.difficulty.level_seconds)) + 1
        if level != self._difficulty_level:
            self._difficulty_level = level
            self._recompute_intervals()
            report.difficulty_level = level
            logger.info("Difficulty raised to level %d", level)
            started = self._maybe_start_event()
            if started is not None:
                report.events_started.append(started)

        for category, state in self._states.items():
            state.timer += dt * self.spawn_rate(category)
            if state.timer < state.interval:
                continue
            state.timer = 0.0
            state.interval = self._draw_interval(state)
            report.spawned[category].extend(self._spawn_action(category))

        return report

    def _recompute_intervals(self) -> None:
        multiplier = self.difficulty_multiplier
        for state in self._states.values():
            state.scaled_base = state.config.base_interval * multiplier

    def _draw_interval(self, state: _CategoryState) -> float:
        base = state.scaled_base
        drawn = self._rng.uniform(0.5 * base, 1.5 * base)
        return max(state.config.min_interval, min(state.config.max_interval, drawn))

    def _maybe_start_event(self) -> Optional[str]:
        r = self._rng.random()
        for event_cfg in self._config.difficulty.events:
            if r < event_cfg.threshold:
                self._start_event(event_cfg)
                return event_cfg.name
        return None

    def _start_event(self, event_cfg: DifficultyEventConfig) -> None:
        self._events[event_cfg.category] = ActiveEvent(
            name=event_cfg.name,
            category=event_cfg.category,
            rate=event_cfg.rate,
            remaining=event_cfg.duration
        )
        self._states[event_cfg.category].spawn_rate = event_cfg.rate
        logger.info("Spawn event %s started (x%.1f for %.0fs)", event_cfg.name, event_cfg.rate, event_cfg.duration)

    def _end_event(self, category: str) -> None:
        event = self._events.pop(category)
        self._states[category].spawn_rate = 1.0
        logger.info("Spawn event %s ended", event.name)

    def start_event(self, name: str) -> bool:
        """Start a configured event by name. Returns False if unknown."""
        for event_cfg in self._config.difficulty.events:
            if event_cfg.name == name:
                self._start_event(event_cfg)
                return True
        return False

    # -- spawning ---------------------------------------------------------

    def _spawn_action(self, category: str) -> List[int]:
        if category == "fish":
            if self._rng.random() < self._states["fish"].config.school_chance:
                return [f.uid for f in self.force_spawn_school()]
            fish = self.force_spawn_fish()
            return [fish.uid] if fish is not None else []
        if category == "obstacles":
            obstacle = self.force_spawn_obstacle()
            return [obstacle.uid] if obstacle is not None else []
        power_up = self.force_spawn_power_up()
        return [power_up.uid] if power_up is not None else []

    def _take_uid(self) -> int:
        uid = self._next_uid
        self._next_uid += 1
        return uid

    def _at_cap(self, category: str) -> bool:
        if self.population(category) >= self._states[category].config.max_count:
            self._dropped_at_cap[category] += 1
            return True
        return False

    def _pick_point(self, category: str) -> Tuple[SpawnRegion, float, float]:
        regions = self._states[category].config.regions
        region = regions[self._rng.randrange(len(regions))]
        x = region.x + self._rng.random() * region.width
        y = region.y + self._rng.random() * region.height
        return region, x, y

    def _fish_weights(self) -> List[float]:
        weights = []
        for kind, weight in zip(self._catalog.fish_kinds, self._catalog.fish_weights):
            if self._catalog.is_rare(kind):
                weight *= self._rare_weight_multiplier
            weights.append(weight)
        return weights

    def choose_fish_kind(self) -> FishKind:
        return weighted_choice(self._rng, self._catalog.fish_kinds, self._fish_weights())

    def choose_obstacle_kind(self) -> ObstacleKind:
        return weighted_choice(self._rng, self._catalog.obstacle_kinds, self._catalog.obstacle_weights)

    def choose_power_up_kind(self) -> PowerUpKind:
        return weighted_choice(self._rng, self._catalog.power_up_kinds, self._catalog.power_up_weights)

    def _make_fish(self, kind: FishKind, x: float, y: float, direction: float) -> Fish:
        fish_cfg = self._catalog.fish(kind)
        behavior = self._config.fish_behavior
        fish = Fish(
            uid=self._take_uid(),
            kind=kind,
            x=x,
            y=y,
            width=fish_cfg.width,
            height=fish_cfg.height,
            base_speed=fish_cfg.base_speed,
            cruise_speed=fish_cfg.base_speed + self._rng.random() * 50.0,
            agility=fish_cfg.agility,
            escape_chance=fish_cfg.escape_chance,
            direction=direction,
            vertical_speed=self._rng.uniform(20.0, 50.0),
            vertical_direction=1.0 if self._rng.random() < 0.5 else -1.0,
            dwell_timer=self._rng.uniform(behavior.dwell_min, behavior.dwell_max),
            bob_phase=self._rng.random() * 2 * math.pi
        )
        self.fish[fish.uid] = fish
        self._spawned["fish"] += 1
        self._spawned_by_type[kind.value] += 1
        return fish

    def _direction_for(self, region: SpawnRegion) -> float:
        if region.name == "left":
            return 1.0
        if region.name == "right":
            return -1.0
        return 1.0 if self._rng.random() < 0.5 else -1.0

    def force_spawn_fish(
        self,
        kind: Union[FishKind, str, None] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        direction: Optional[float] = None
    ) -> Optional[Fish]:
        """
        Spawn one fish, ignoring the timer but not the population cap.

        Args:
            kind: Fish kind or name. Weighted random if None.
            x, y: Top-left position. Random region point if None.
            direction: +1 swims right, -1 left. Derived from the region if None.

        Returns:
            The new Fish, or None if the cap was reached.
        """
        if self._at_cap("fish"):
            return None
        kind = self.choose_fish_kind() if kind is None else self._catalog.resolve_fish_kind(kind)
        region, rx, ry = self._pick_point("fish")
        if direction is None:
            direction = self._direction_for(region) if x is None else (1.0 if self._rng.random() < 0.5 else -1.0)
        return self._make_fish(
            kind,
            rx if x is None else x,
            ry if y is None else y,
            direction
        )

    def force_spawn_school(
        self,
        kind: Union[FishKind, str, None] = None,
        size: Optional[int] = None
    ) -> List[Fish]:
        """
        Spawn a same-kind school around a leader position.

        Members are tagged with each other's uids. Stops at the cap.

        Returns:
            The spawned members (may be fewer than size, or empty).
        """
        spawn_cfg = self._states["fish"].config
        if size is None:
            size = self._rng.randint(spawn_cfg.school_size_min, spawn_cfg.school_size_max)
        kind = self.choose_fish_kind() if kind is None else self._catalog.resolve_fish_kind(kind)
        region, leader_x, leader_y = self._pick_point("fish")
        direction = self._direction_for(region)

        members: List[Fish] = []
        for _ in range(size):
            if self._at_cap("fish"):
                break
            x = leader_x + (self._rng.random() - 0.5) * spawn_cfg.school_spread_x
            y = leader_y + (self._rng.random() - 0.5) * spawn_cfg.school_spread_y
            members.append(self._make_fish(kind, x, y, direction))

        uids = [m.uid for m in members]
        for member in members:
            member.school = [uid for uid in uids if uid != member.uid]
        if len(members) > 1:
            self._schools_spawned += 1
        return members

    def force_spawn_obstacle(
        self,
        kind: Union[ObstacleKind, str, None] = None,
        x: Optional[float] = None,
        y: Optional[float] = None
    ) -> Optional[Obstacle]:
        """Spawn one obstacle. Returns None if the cap was reached."""
        if self._at_cap("obstacles"):
            return None
        kind = self.choose_obstacle_kind() if kind is None else self._catalog.resolve_obstacle_kind(kind)
        _, rx, ry = self._pick_point("obstacles")
        obstacle_cfg = self._catalog.obstacle(kind)
        obstacle = Obstacle(
            uid=self._take_uid(),
            kind=kind,
            x=rx if x is None else x,
            y=ry if y is None else y,
            width=obstacle_cfg.width,
            height=obstacle_cfg.height,
            penalty=obstacle_cfg.penalty,
            destructible=obstacle_cfg.destructible,
            max_hits=obstacle_cfg.max_hits,
            max_lifetime=self._config.obstacles.max_lifetime,
            sway_intensity=obstacle_cfg.sway_intensity,
            bob_intensity=obstacle_cfg.bob_intensity,
            phase=self._rng.random() * 2 * math.pi
        )
        self.obstacles[obstacle.uid] = obstacle
        self._spawned["obstacles"] += 1
        self._spawned_by_type[kind.value] += 1
        return obstacle

    def force_spawn_power_up(
        self,
        kind: Union[PowerUpKind, str, None] = None,
        x: Optional[float] = None,
        y: Optional[float] = None
    ) -> Optional[PowerUp]:
        """Spawn one power-up. Returns None if the cap was reached."""
        if self._at_cap("power_ups"):
            return None
        kind = self.choose_power_up_kind() if kind is None else self._catalog.resolve_power_up_kind(kind)
        _, rx, ry = self._pick_point("power_ups")
        power_up_cfg = self._catalog.power_up(kind)
        pool = self._config.power_ups
        power_up = PowerUp(
            uid=self._take_uid(),
            kind=kind,
            effect=PowerUpEffect(power_up_cfg.effect),
            x=rx if x is None else x,
            y=ry if y is None else y,
            width=power_up_cfg.width,
            height=power_up_cfg.height,
            value=power_up_cfg.value,
            duration=power_up_cfg.duration,
            magnetic_range=power_up_cfg.magnetic_range,
            collect_bonus=power_up_cfg.collect_bonus,
            max_life_time=pool.max_lifetime,
            blink_time=pool.blink_time,
            drift_speed=pool.drift_speed,
            heading=self._rng.random() * 2 * math.pi,
            bob_phase=self._rng.random() * 2 * math.pi
        )
        self.power_ups[power_up.uid] = power_up
        self._spawned["power_ups"] += 1
        self._spawned_by_type[kind.value] += 1
        return power_up

    # -- cleanup ----------------------------------------------------------

    def _off_board(self, x: float, y: float, width: float, height: float) -> bool:
        board = self._config.board
        margin = board.cull_margin
        return (
            x + width < -margin or
            x > board.width + margin or
            y + height < -margin or
            y > board.height + margin
        )

    def cull(self) -> CullReport:
        """Remove dead fish, spent obstacles and collected or expired power-ups."""
        report = CullReport()
        for uid in sorted(self.fish):
            f = self.fish[uid]
            if not f.alive or self._off_board(f.x, f.y, f.width, f.height):
                del self.fish[uid]
                report.fish.append(uid)
        for uid in sorted(self.obstacles):
            if not self.obstacles[uid].active:
                del self.obstacles[uid]
                report.obstacles.append(uid)
        for uid in sorted(self.power_ups):
            if not self.power_ups[uid].is_active:
                del self.power_ups[uid]
                report.power_ups.append(uid)
        return report

    def get_stats(self) -> Dict[str, object]:
        return {
            "spawned": dict(self._spawned),
            "spawned_by_type": dict(self._spawned_by_type),
            "schools": self._schools_spawned,
            "dropped_at_cap": dict(self._dropped_at_cap),
            "population": {c: self.population(c) for c in SPAWN_CATEGORIES},
            "difficulty_level": self._difficulty_level,
            "active_events": sorted(self.active_events),
        }

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Clear all entities, timers, events and statistics.

        Args:
            seed: New random seed. Keeps current generator if None.
        """
        if seed is not None:
            self._rng = random.Random(seed)
        self.fish.clear()
        self.obstacles.clear()
        self.power_ups.clear()
        self._fish_rate_modifier = 1.0
        self._rare_weight_multiplier = 1.0
        self._init_state()
