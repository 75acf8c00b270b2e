"""
Hook
====

The fishing hook state machine.

    IDLE --cast--> DROPPING --reel / max depth / capture / obstacle--> REELING
    REELING --back at rod tip--> IDLE

The hook carries at most one fish. Invalid requests return False and leave
the state unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from cat_fishing.fishing_core.config_loader import GameConfig, get_config
from cat_fishing.fishing_core.entities import Rect

logger = logging.getLogger(__name__)

# Distance kept between the aim range and the board walls
AIM_MARGIN = 20.0


class HookState(Enum):
    IDLE = "idle"
    DROPPING = "dropping"
    REELING = "reeling"


@dataclass(frozen=True)
class ReelCompletion:
    """Emitted when a reel-in finishes. caught_uid is None for a miss."""
    caught_uid: Optional[int]
    cast_duration: float
    perfect: bool = False      # Caller flagged the catch as perfectly timed


class Hook:
    """Kinematic hook hanging from the rod tip."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._hook_cfg = config.hook
        self._board_width = config.board.width

        self._x = self._hook_cfg.rod_x
        self._y = self._hook_cfg.rod_y
        self._state = HookState.IDLE
        self._caught_uid: Optional[int] = None
        self._cast_elapsed = 0.0
        self._perfect = False

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    @property
    def state(self) -> HookState:
        return self._state

    @property
    def caught_uid(self) -> Optional[int]:
        return self._caught_uid

    @property
    def cast_elapsed(self) -> float:
        """Seconds since the current cast started (0 while idle)."""
        return self._cast_elapsed

    @property
    def perfect(self) -> bool:
        """True once the caller flagged the current catch as perfect."""
        return self._perfect

    @property
    def is_idle(self) -> bool:
        return self._state is HookState.IDLE

    @property
    def depth(self) -> float:
        """Normalized depth in [0, 1] from rod tip to max depth."""
        span = self._hook_cfg.max_depth - self._hook_cfg.rod_y
        return (self._y - self._hook_cfg.rod_y) / span

    def bounds(self, radius: float) -> Rect:
        """Square box approximating the hook circle."""
        return Rect(self._x - radius, self._y - radius, 2 * radius, 2 * radius)

    # -- requests ---------------------------------------------------------

    def set_aim(self, x_norm: float) -> bool:
        """
        Move the hook horizontally before casting.

        Args:
            x_norm: Aim in [-1, 1], mapped across the board. Clamped.

        Returns:
            True if the aim was applied (hook idle).
        """
        if self._state is not HookState.IDLE:
            return False
        x_norm = max(-1.0, min(1.0, float(x_norm)))
        usable = self._board_width - 2 * AIM_MARGIN
        self._x = AIM_MARGIN + (x_norm + 1.0) / 2.0 * usable
        return True

    def cast(self) -> bool:
        if self._state is not HookState.IDLE:
            return False
        self._state = HookState.DROPPING
        self._y = self._hook_cfg.rod_y
        self._cast_elapsed = 0.0
        logger.debug("Hook cast at x=%.1f", self._x)
        return True

    def reel(self, perfect: bool = False) -> bool:
        """
        Stop dropping and start reeling in.

        Args:
            perfect: Flag the catch landed by this reel as perfectly timed.

        Returns:
            True if the hook was dropping.
        """
        if self._state is not HookState.DROPPING:
            return False
        self._state = HookState.REELING
        self._perfect = self._perfect or perfect
        return True

    def flag_perfect(self) -> bool:
        """Flag the fish currently held as a perfect catch. False if none is held."""
        if self._caught_uid is None:
            return False
        self._perfect = True
        return True

    def attach(self, fish_uid: int) -> bool:
        """Hold a captured fish and start reeling. Fails if already holding one."""
        if self._caught_uid is not None or self._state is HookState.IDLE:
            return False
        self._caught_uid = fish_uid
        if self._state is HookState.DROPPING:
            self._state = HookState.REELING
        return True

    def release(self) -> Optional[int]:
        """Drop the held fish (it escaped). Returns its uid."""
        uid = self._caught_uid
        self._caught_uid = None
        self._perfect = False
        return uid

    # -- kinematics -------------------------------------------------------

    def update(self, dt: float, speed_multiplier: float = 1.0) -> Optional[ReelCompletion]:
        """
        Advance the hook by dt seconds.

        Args:
            dt: Elapsed seconds.
            speed_multiplier: Applied to the base hook speed (speed buff).

        Returns:
            ReelCompletion when the hook arrived back at the rod tip this tick.
        """
        if self._state is HookState.IDLE:
            return None

        self._cast_elapsed += dt
        step = self._hook_cfg.speed * speed_multiplier * dt

        if self._state is HookState.DROPPING:
            self._y += step
            if self._y >= self._hook_cfg.max_depth:
                self._y = self._hook_cfg.max_depth
                self._state = HookState.REELING
            return None

        self._y -= step
        if self._y > self._hook_cfg.rod_y:
            return None

        completion = ReelCompletion(
            caught_uid=self._caught_uid,
            cast_duration=self._cast_elapsed,
            perfect=self._perfect and self._caught_uid is not None
        )
        self._reset_to_rod()
        return completion

    def _reset_to_rod(self) -> None:
        self._y = self._hook_cfg.rod_y
        self._state = HookState.IDLE
        self._caught_uid = None
        self._cast_elapsed = 0.0
        self._perfect = False

    def reset(self) -> None:
        self._x = self._hook_cfg.rod_x
        self._reset_to_rod()

    def get_render_data(self) -> Dict[str, Any]:
        return {
            "x": self._x,
            "y": self._y,
            "rod_x": self._hook_cfg.rod_x,
            "rod_y": self._hook_cfg.rod_y,
            "state": self._state.value,
            "depth": self.depth,
            "caught_uid": self._caught_uid,
        }
