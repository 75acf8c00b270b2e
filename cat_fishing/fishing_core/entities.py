"""
Entities
========

Plain state records for fish, obstacles and power-ups.

Entities hold data and the few transitions that must happen exactly once
(obstacle destruction, power-up collection/expiry). Per-tick behavior lives in
behavior.py, and collision adjudication in collision_system.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from cat_fishing.fishing_core.catalog import (
    FishKind,
    ObstacleKind,
    PowerUpKind,
    PowerUpEffect,
)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box with top-left origin."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def overlaps(self, other: Rect) -> bool:
        """Strict overlap test; touching edges do not count."""
        return (
            self.x < other.right and
            self.right > other.x and
            self.y < other.bottom and
            self.bottom > other.y
        )

    def expanded(self, margin: float) -> Rect:
        """Grow the box by margin on every side."""
        return Rect(
            self.x - margin,
            self.y - margin,
            self.width + 2 * margin,
            self.height + 2 * margin
        )


class FishState(Enum):
    SWIMMING = "swimming"
    RESTING = "resting"
    SCHOOLING = "schooling"
    CAUGHT = "caught"
    ESCAPING = "escaping"


CAPTURABLE_STATES = (FishState.SWIMMING, FishState.RESTING, FishState.SCHOOLING)


class PowerUpStatus(Enum):
    ACTIVE = "active"
    COLLECTED = "collected"
    EXPIRED = "expired"


@dataclass
class Fish:
    """A single fish. Score value and resistance come from the type table."""
    uid: int
    kind: FishKind
    x: float
    y: float
    width: float
    height: float
    base_speed: float
    cruise_speed: float         # Speed drawn at spawn, restored after resting
    agility: float
    escape_chance: float
    direction: float = 1.0      # Horizontal heading in [-1, 1]
    vertical_speed: float = 30.0
    vertical_direction: float = 1.0
    speed: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    state: FishState = FishState.SWIMMING
    dwell_timer: float = 5.0
    rest_timer: float = 0.0
    escape_timer: float = 0.0
    escape_countdown: Optional[float] = None  # Armed on capture when the escape roll succeeds
    hooked_after: Optional[float] = None      # Seconds from cast to capture
    bob_phase: float = 0.0
    school: List[int] = field(default_factory=list)
    alive: bool = True

    def __post_init__(self):
        if self.speed == 0.0:
            self.speed = self.cruise_speed

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def is_capturable(self) -> bool:
        return self.alive and self.state in CAPTURABLE_STATES

    def get_render_data(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "kind": self.kind.value,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "state": self.state.value,
            "facing": 1 if self.direction >= 0 else -1,
        }


@dataclass
class Obstacle:
    """A static hazard. hit_count only increases; destruction happens once."""
    uid: int
    kind: ObstacleKind
    x: float
    y: float
    width: float
    height: float
    penalty: int
    destructible: bool
    max_hits: int
    max_lifetime: float
    sway_intensity: float = 0.0
    bob_intensity: float = 0.0
    hit_count: int = 0
    cooldown: float = 0.0
    age: float = 0.0
    phase: float = 0.0
    sway_offset: float = 0.0
    bob_offset: float = 0.0
    active: bool = True

    @property
    def rect(self) -> Rect:
        # Sway and bob are cosmetic; hits use the anchored position
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def is_cooling_down(self) -> bool:
        return self.cooldown > 0.0

    def on_collision(self, cooldown: float) -> bool:
        """
        Register a hook strike.

        Args:
            cooldown: Seconds during which further strikes are ignored.

        Returns:
            True if the strike counted, False if inactive or cooling down.
        """
        if not self.active or self.is_cooling_down:
            return False
        self.hit_count += 1
        self.cooldown = cooldown
        if self.destructible and self.hit_count >= self.max_hits:
            self.destroy()
        return True

    def destroy(self) -> bool:
        """Deactivate the obstacle. Returns True only on the first call."""
        if not self.active:
            return False
        self.active = False
        return True

    def get_render_data(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "kind": self.kind.value,
            "x": self.x + self.sway_offset,
            "y": self.y + self.bob_offset,
            "width": self.width,
            "height": self.height,
            "hit_count": self.hit_count,
            "cooling_down": self.is_cooling_down,
        }


@dataclass
class PowerUp:
    """A drifting pickup. The effect is applied by the game exactly once, on collection."""
    uid: int
    kind: PowerUpKind
    effect: PowerUpEffect
    x: float
    y: float
    width: float
    height: float
    value: float
    duration: float
    magnetic_range: float
    collect_bonus: int
    max_life_time: float
    blink_time: float
    drift_speed: float
    heading: float = 0.0        # Drift direction in radians
    life_time: float = 0.0
    bob_phase: float = 0.0
    status: PowerUpStatus = PowerUpStatus.ACTIVE

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def is_active(self) -> bool:
        return self.status is PowerUpStatus.ACTIVE

    @property
    def is_blinking(self) -> bool:
        return self.is_active and self.life_time > self.blink_time

    def collect(self) -> bool:
        """Mark as collected. Returns True only if it was still active."""
        if not self.is_active:
            return False
        self.status = PowerUpStatus.COLLECTED
        return True

    def expire(self) -> bool:
        """Mark as expired. Returns True only if it was still active."""
        if not self.is_active:
            return False
        self.status = PowerUpStatus.EXPIRED
        return True

    def get_render_data(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "kind": self.kind.value,
            "effect": self.effect.value,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "blinking": self.is_blinking,
            "status": self.status.value,
        }
