"""
Game Rules
==========

Session clock and termination conditions.

A session ends when the countdown clock reaches zero or when the game is
ended explicitly. Time bonuses extend the clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from cat_fishing.fishing_core.config_loader import GameConfig, get_config

logger = logging.getLogger(__name__)


@dataclass
class TerminationResult:
    """Result of termination check."""
    terminated: bool
    truncated: bool
    reason: str

    @staticmethod
    def none() -> "TerminationResult":
        return TerminationResult(False, False, "")

    @staticmethod
    def game_over(reason: str) -> "TerminationResult":
        return TerminationResult(True, False, reason)

    @staticmethod
    def truncation(reason: str) -> "TerminationResult":
        return TerminationResult(False, True, reason)


class SessionClock:
    """Countdown of the remaining session time."""

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize the clock.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._game_time = config.session.game_time
        self._remaining = self._game_time
        self._elapsed = 0.0

    @property
    def time_remaining(self) -> float:
        return max(0.0, self._remaining)

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def expired(self) -> bool:
        return self._remaining <= 0.0

    def tick(self, dt: float) -> None:
        self._elapsed += dt
        self._remaining -= dt

    def extend(self, seconds: float) -> None:
        """Add bonus seconds to the clock."""
        self._remaining += seconds
        logger.debug("Clock extended by %.1fs (%.1fs left)", seconds, self._remaining)

    def reset(self) -> None:
        self._remaining = self._game_time
        self._elapsed = 0.0


class GameRules:
    """
    Combined interface for session rules.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize game rules.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self.clock = SessionClock(config)
        self._ended_early = False

    def end(self) -> None:
        """End the session before the clock runs out."""
        self._ended_early = True

    def check_termination(self) -> TerminationResult:
        """
        Check all termination conditions.

        Returns:
            TerminationResult indicating game state.
        """
        if self._ended_early:
            return TerminationResult.game_over("ended")
        if self.clock.expired:
            return TerminationResult.game_over("time_up")
        return TerminationResult.none()

    def reset(self) -> None:
        """Reset all rule state."""
        self.clock.reset()
        self._ended_early = False
