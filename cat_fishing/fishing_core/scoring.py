"""
Scoring System
==============

Score, combo chain, bonuses and achievements for one session.

Catch points are computed in a fixed order:

    base score x combo multiplier
    + time bonus (perfect or fast, never both)
    + rare-tier bonus (half of the above, rare and legendary only)
    x buff multiplier (score potion, lucky charm)
    -> floored

Obstacle hits subtract a per-type penalty, clamp the score at zero and break
the combo. The combo also lapses when no catch lands within the decay window.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from cat_fishing.fishing_core.catalog import (
    EntityCatalog,
    FishKind,
    ObstacleKind,
    PowerUpKind,
    get_catalog,
)
from cat_fishing.fishing_core.config_loader import GameConfig, get_config

logger = logging.getLogger(__name__)

# Absorbs float noise such as 25 * 1.2 = 29.999... before flooring
_FLOOR_EPSILON = 1e-9


def _floor_points(value: float) -> int:
    return int(math.floor(value + _FLOOR_EPSILON))


@dataclass
class ScoreEvent:
    """Record of a scoring event."""
    points: int
    source: str                     # "fish", "obstacle", "power_up" or "achievement"
    kind: str
    combo: int
    combo_multiplier: float = 1.0
    time_bonus: int = 0
    rare_bonus: int = 0
    buff_multiplier: float = 1.0
    is_fast: bool = False
    is_perfect: bool = False

    def __repr__(self) -> str:
        if self.source == "fish":
            return f"ScoreEvent({self.kind}={self.points}, combo={self.combo}x{self.combo_multiplier})"
        return f"ScoreEvent({self.source}:{self.kind}={self.points})"


@dataclass(frozen=True)
class Achievement:
    id: str
    bonus: int


@dataclass
class SessionRecord:
    """Summary returned when a session ends."""
    score: int
    high_score: int
    new_high_score: bool
    catches: int
    max_combo: int
    fast_catches: int
    perfect_catches: int
    obstacle_hits: int
    power_ups_collected: int
    achievements: List[str] = field(default_factory=list)
    catches_by_kind: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "score": self.score,
            "high_score": self.high_score,
            "new_high_score": self.new_high_score,
            "catches": self.catches,
            "max_combo": self.max_combo,
            "fast_catches": self.fast_catches,
            "perfect_catches": self.perfect_catches,
            "obstacle_hits": self.obstacle_hits,
            "power_ups_collected": self.power_ups_collected,
            "achievements": list(self.achievements),
            "catches_by_kind": dict(self.catches_by_kind),
        }


# Achievement predicates, checked in this order
ACHIEVEMENT_RULES: Tuple[Tuple[str, Callable[["ScoreTracker"], bool]], ...] = (
    ("first_catch", lambda t: t.catches >= 1),
    ("combo_master", lambda t: t.max_combo >= 10),
    ("speed_demon", lambda t: t.fast_catches >= 10),
    ("perfect_game", lambda t: t.obstacle_hits == 0 and t.catches >= 5),
    ("collector", lambda t: t.power_ups_collected >= 5),
)


class ScoreTracker:
    """
    Tracks score, combo and achievement progress for a session.

    The combo multiplier is the one for the highest threshold not above the
    current combo; below the first threshold it is 1.0.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        catalog: Optional[EntityCatalog] = None,
        high_score: int = 0
    ):
        """
        Initialize score tracker.

        Args:
            config: Game configuration. Uses default if None.
            catalog: Entity tables. Built from config if None.
            high_score: Best score from earlier sessions.
        """
        if config is None:
            config = get_config()
        if catalog is None:
            catalog = get_catalog(config)

        self._config = config
        self._cfg = config.scoring
        self._catalog = catalog
        self._high_score = max(0, int(high_score))
        self._init_counters()

    def _init_counters(self) -> None:
        self._score = 0
        self._combo = 0
        self._max_combo = 0
        self._combo_timer = 0.0
        self._catches = 0
        self._fast_catches = 0
        self._perfect_catches = 0
        self._obstacle_hits = 0
        self._power_ups = 0
        self._catches_by_kind: Counter = Counter()
        self._unlocked: List[str] = []

    @property
    def score(self) -> int:
        return self._score

    @property
    def high_score(self) -> int:
        return self._high_score

    @property
    def combo(self) -> int:
        return self._combo

    @property
    def max_combo(self) -> int:
        return self._max_combo

    @property
    def combo_time_left(self) -> float:
        return self._combo_timer if self._combo > 0 else 0.0

    @property
    def catches(self) -> int:
        return self._catches

    @property
    def fast_catches(self) -> int:
        """Catches inside the fast window that were not perfect."""
        return self._fast_catches

    @property
    def perfect_catches(self) -> int:
        return self._perfect_catches

    @property
    def obstacle_hits(self) -> int:
        return self._obstacle_hits

    @property
    def power_ups_collected(self) -> int:
        return self._power_ups

    @property
    def achievements(self) -> Tuple[str, ...]:
        return tuple(self._unlocked)

    def combo_multiplier(self, combo: Optional[int] = None) -> float:
        """Multiplier for a combo count (current combo if None)."""
        if combo is None:
            combo = self._combo
        multiplier = 1.0
        for threshold, value in self._cfg.combo_multipliers:
            if combo >= threshold:
                multiplier = value
        return multiplier

    def add_fish_catch(
        self,
        kind: FishKind,
        capture_elapsed: Optional[float] = None,
        is_perfect: bool = False,
        buff_multiplier: float = 1.0
    ) -> ScoreEvent:
        """
        Score a landed fish.

        Args:
            kind: Fish kind caught.
            capture_elapsed: Seconds from cast to capture. No fast bonus if None.
            is_perfect: Caller-flagged perfect catch.
            buff_multiplier: Product of active score buffs.

        Returns:
            ScoreEvent describing the points awarded.
        """
        self._combo += 1
        self._max_combo = max(self._max_combo, self._combo)
        self._combo_timer = self._cfg.combo_decay

        combo_mult = self.combo_multiplier()
        bonused = self._catalog.base_score(kind) * combo_mult

        is_fast = not is_perfect and capture_elapsed is not None and capture_elapsed < self._cfg.fast_window
        time_bonus = 0
        if is_perfect:
            time_bonus = self._cfg.perfect_bonus
            self._perfect_catches += 1
        elif is_fast:
            time_bonus = self._cfg.fast_bonus
            self._fast_catches += 1
        bonused += time_bonus

        rare_bonus = _floor_points(bonused * self._cfg.rare_bonus_ratio) if self._catalog.is_rare(kind) else 0
        points = _floor_points((bonused + rare_bonus) * buff_multiplier)

        self._score += points
        self._catches += 1
        self._catches_by_kind[kind.value] += 1

        return ScoreEvent(
            points=points,
            source="fish",
            kind=kind.value,
            combo=self._combo,
            combo_multiplier=combo_mult,
            time_bonus=time_bonus,
            rare_bonus=rare_bonus,
            buff_multiplier=buff_multiplier,
            is_fast=is_fast,
            is_perfect=is_perfect
        )

    def add_obstacle_penalty(self, kind: ObstacleKind) -> ScoreEvent:
        """
        Apply an obstacle hit: penalty, score floor at zero, combo reset.

        Returns:
            ScoreEvent whose points are the amount actually deducted (<= 0).
        """
        penalty = self._catalog.obstacle(kind).penalty
        before = self._score
        self._score = max(0, self._score + penalty)
        self._obstacle_hits += 1
        self._combo = 0
        self._combo_timer = 0.0
        return ScoreEvent(points=self._score - before, source="obstacle", kind=kind.value, combo=0)

    def add_power_up_bonus(self, kind: PowerUpKind) -> ScoreEvent:
        points = self._catalog.power_up(kind).collect_bonus
        self._score += points
        self._power_ups += 1
        return ScoreEvent(points=points, source="power_up", kind=kind.value, combo=self._combo)

    def update(self, dt: float) -> bool:
        """
        Count down the combo window.

        Returns:
            True if the combo lapsed this tick.
        """
        if self._combo <= 0:
            return False
        self._combo_timer -= dt
        if self._combo_timer > 0:
            return False
        logger.debug("Combo of %d lapsed", self._combo)
        self._combo = 0
        self._combo_timer = 0.0
        return True

    def check_achievements(self) -> List[Achievement]:
        """Unlock every newly satisfied achievement and add its bonus."""
        unlocked = []
        for achievement_id, predicate in ACHIEVEMENT_RULES:
            if achievement_id in self._unlocked or not predicate(self):
                continue
            bonus = self._cfg.achievement_bonus(achievement_id)
            self._unlocked.append(achievement_id)
            self._score += bonus
            unlocked.append(Achievement(achievement_id, bonus))
            logger.info("Achievement unlocked: %s (+%d)", achievement_id, bonus)
        return unlocked

    def finalize(self) -> SessionRecord:
        """Close the session, raising the high score if it was beaten."""
        new_high = self._score > self._high_score
        if new_high:
            self._high_score = self._score
        return SessionRecord(
            score=self._score,
            high_score=self._high_score,
            new_high_score=new_high,
            catches=self._catches,
            max_combo=self._max_combo,
            fast_catches=self._fast_catches,
            perfect_catches=self._perfect_catches,
            obstacle_hits=self._obstacle_hits,
            power_ups_collected=self._power_ups,
            achievements=list(self._unlocked),
            catches_by_kind=dict(self._catches_by_kind)
        )

    def reset(self, high_score: Optional[int] = None) -> None:
        """Reset session counters, optionally replacing the stored high score."""
        if high_score is not None:
            self._high_score = max(0, int(high_score))
        self._init_counters()

    def get_stats(self) -> Dict[str, object]:
        return {
            "score": self._score,
            "high_score": self._high_score,
            "combo": self._combo,
            "max_combo": self._max_combo,
            "catches": self._catches,
            "fast_catches": self._fast_catches,
            "perfect_catches": self._perfect_catches,
            "obstacle_hits": self._obstacle_hits,
            "power_ups_collected": self._power_ups,
            "achievements": list(self._unlocked),
        }
