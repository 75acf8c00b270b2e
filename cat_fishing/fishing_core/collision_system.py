"""
Collision System
================

Adjudicates hook-vs-entity contacts each tick.

The hook circle is approximated by a square box; entity boxes are grown by
a per-category margin. A SpatialGrid may narrow the candidate set, but the
result is always identical to testing every entity.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from cat_fishing.fishing_core.catalog import EntityCatalog, get_catalog
from cat_fishing.fishing_core.config_loader import GameConfig, get_config
from cat_fishing.fishing_core.entities import Fish, Obstacle, PowerUp, Rect
from cat_fishing.fishing_core.hook import Hook

logger = logging.getLogger(__name__)


class SpatialGrid:
    """
    Uniform grid keyed by (floor(x / cell), floor(y / cell)).

    Each entry is registered in every cell its box touches, so any box that
    overlaps it shares at least one cell. Cells are unbounded, which keeps
    off-board entities indexable.
    """

    def __init__(self, cell_size: float = 100.0):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self._cells: Dict[Tuple[int, int], List[int]] = defaultdict(list)

    def _cell_range(self, rect: Rect) -> Tuple[int, int, int, int]:
        cs = self.cell_size
        return (
            math.floor(rect.x / cs),
            math.floor(rect.right / cs),
            math.floor(rect.y / cs),
            math.floor(rect.bottom / cs),
        )

    def clear(self) -> None:
        self._cells.clear()

    def insert(self, uid: int, rect: Rect) -> None:
        min_col, max_col, min_row, max_row = self._cell_range(rect)
        for col in range(min_col, max_col + 1):
            for row in range(min_row, max_row + 1):
                self._cells[(col, row)].append(uid)

    def query(self, rect: Rect) -> Set[int]:
        """Uids registered in any cell the box touches."""
        found: Set[int] = set()
        min_col, max_col, min_row, max_row = self._cell_range(rect)
        for col in range(min_col, max_col + 1):
            for row in range(min_row, max_row + 1):
                cell = self._cells.get((col, row))
                if cell:
                    found.update(cell)
        return found

    def __len__(self) -> int:
        return len(self._cells)


@dataclass(frozen=True)
class ObstacleHit:
    uid: int
    kind: str
    penalty: int
    destroyed: bool


@dataclass(frozen=True)
class MagneticPull:
    """Advisory attraction from a power-up toward the hook."""
    uid: int
    fx: float
    fy: float


@dataclass
class CollisionReport:
    """Everything the hook touched this tick."""
    captured_uid: Optional[int] = None
    obstacle_hits: List[ObstacleHit] = field(default_factory=list)
    collected: List[int] = field(default_factory=list)
    magnetic: List[MagneticPull] = field(default_factory=list)

    @property
    def total_pull(self) -> Tuple[float, float]:
        return (
            sum(m.fx for m in self.magnetic),
            sum(m.fy for m in self.magnetic)
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.captured_uid is None and
            not self.obstacle_hits and
            not self.collected and
            not self.magnetic
        )


class CollisionSystem:
    """Hook collision adjudication with optional grid broad phase."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        catalog: Optional[EntityCatalog] = None,
        use_spatial_grid: Optional[bool] = None
    ):
        """
        Initialize the collision system.

        Args:
            config: Game configuration. Uses default if None.
            catalog: Entity tables. Built from config if None.
            use_spatial_grid: Overrides the config toggle when given.
        """
        if config is None:
            config = get_config()
        if catalog is None:
            catalog = get_catalog(config)

        self._config = config
        self._cfg = config.collision
        self._catalog = catalog
        self._use_grid = self._cfg.use_spatial_grid if use_spatial_grid is None else use_spatial_grid
        self._grid = SpatialGrid(self._cfg.cell_size)

        self._total = 0
        self._by_category: Counter = Counter()
        self._by_type: Counter = Counter()

    @property
    def use_spatial_grid(self) -> bool:
        return self._use_grid

    def check(
        self,
        hook: Hook,
        hook_power: float,
        fish: Dict[int, Fish],
        obstacles: Dict[int, Obstacle],
        power_ups: Dict[int, PowerUp]
    ) -> CollisionReport:
        """
        Test the hook against every category.

        Args:
            hook: The hook. Nothing is tested while it is idle at the rod.
            hook_power: Current hook power; must reach a fish's resistance.
            fish: Fish arena keyed by uid.
            obstacles: Obstacle arena keyed by uid.
            power_ups: Power-up arena keyed by uid.

        Returns:
            CollisionReport of captures, hits, pickups and magnetic pulls.
        """
        report = CollisionReport()
        if hook.is_idle:
            return report

        hook_rect = hook.bounds(self._cfg.hook_radius)

        if hook.caught_uid is None:
            report.captured_uid = self._check_fish(hook_rect, hook_power, fish)

        for uid in self._overlapping(hook_rect, obstacles, self._cfg.obstacle_margin):
            obstacle = obstacles[uid]
            if not obstacle.active or not obstacle.on_collision(self._cfg.obstacle_cooldown):
                continue
            report.obstacle_hits.append(ObstacleHit(
                uid=uid,
                kind=obstacle.kind.value,
                penalty=obstacle.penalty,
                destroyed=not obstacle.active
            ))
            self._record("obstacle", obstacle.kind.value)

        for uid in self._overlapping(hook_rect, power_ups, self._cfg.power_up_margin):
            power_up = power_ups[uid]
            if power_up.collect():
                report.collected.append(uid)
                self._record("power_up", power_up.kind.value)

        report.magnetic = self.magnetic_pulls(hook.x, hook.y, power_ups)
        return report

    def _check_fish(self, hook_rect: Rect, hook_power: float, fish: Dict[int, Fish]) -> Optional[int]:
        """Lowest eligible uid wins."""
        for uid in self._overlapping(hook_rect, fish, self._cfg.fish_margin):
            f = fish[uid]
            if not f.is_capturable:
                continue
            if hook_power < self._catalog.resistance(f.kind):
                continue
            self._record("fish", f.kind.value)
            return uid
        return None

    def _overlapping(self, hook_rect: Rect, arena: Dict, margin: float) -> List[int]:
        """Sorted uids whose margin-grown box overlaps the hook box."""
        if self._use_grid:
            self._grid.clear()
            for uid, entity in arena.items():
                self._grid.insert(uid, entity.rect.expanded(margin))
            candidates: Iterable[int] = self._grid.query(hook_rect)
        else:
            candidates = arena.keys()
        return sorted(
            uid for uid in candidates
            if arena[uid].rect.expanded(margin).overlaps(hook_rect)
        )

    def magnetic_pulls(self, hook_x: float, hook_y: float, power_ups: Dict[int, PowerUp]) -> List[MagneticPull]:
        """Attraction vectors from active power-ups whose range reaches the hook."""
        strength = self._cfg.magnetic_strength
        pulls = []
        for uid in sorted(power_ups):
            power_up = power_ups[uid]
            if not power_up.is_active or power_up.magnetic_range <= 0:
                continue
            dx = hook_x - power_up.center_x
            dy = hook_y - power_up.center_y
            distance = math.hypot(dx, dy)
            if distance > power_up.magnetic_range or distance == 0:
                continue
            force = strength * (power_up.magnetic_range - distance) / power_up.magnetic_range
            pulls.append(MagneticPull(uid=uid, fx=dx / distance * force, fy=dy / distance * force))
        return pulls

    def _record(self, category: str, kind: str) -> None:
        self._total += 1
        self._by_category[category] += 1
        self._by_type[kind] += 1

    def get_stats(self) -> Dict[str, object]:
        return {
            "total": self._total,
            "by_category": dict(self._by_category),
            "by_type": dict(self._by_type),
        }

    def reset(self) -> None:
        self._grid.clear()
        self._total = 0
        self._by_category.clear()
        self._by_type.clear()
