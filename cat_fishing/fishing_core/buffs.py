"""
Buffs
=====

Timed power-up effects and the multipliers they contribute.

Collecting a power-up whose effect is already running restarts its timer.
Instant effects (time extension) are not tracked here; the game applies them
to the session clock directly.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from cat_fishing.fishing_core.catalog import PowerUpEffect
from cat_fishing.fishing_core.config_loader import GameConfig, get_config

logger = logging.getLogger(__name__)

INSTANT_EFFECTS = (PowerUpEffect.TIME_EXTENSION,)


class BuffManager:
    """Countdown timers for active power-up effects."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._buff_cfg = config.buffs
        self._speed_multiplier = config.hook.speed_boost_multiplier
        self._remaining: Dict[PowerUpEffect, float] = {}
        self._values: Dict[PowerUpEffect, float] = {}

    def apply(self, effect: PowerUpEffect, duration: float, value: float = 0.0) -> bool:
        """
        Start or restart a timed effect.

        Args:
            effect: The effect to activate.
            duration: Seconds the effect lasts.
            value: Effect magnitude (score multiplier for potions).

        Returns:
            True if a timed effect is now running, False for instant effects.
        """
        if effect in INSTANT_EFFECTS or duration <= 0:
            return False
        restarted = effect in self._remaining
        self._remaining[effect] = float(duration)
        self._values[effect] = float(value)
        logger.debug("Buff %s %s for %.1fs", effect.value, "restarted" if restarted else "started", duration)
        return True

    def update(self, dt: float) -> List[PowerUpEffect]:
        """Count down all effects. Returns the effects that ran out this tick."""
        expired = []
        for effect in list(self._remaining):
            self._remaining[effect] -= dt
            if self._remaining[effect] <= 0:
                del self._remaining[effect]
                self._values.pop(effect, None)
                expired.append(effect)
        return expired

    def is_active(self, effect: PowerUpEffect) -> bool:
        return effect in self._remaining

    def remaining(self, effect: PowerUpEffect) -> float:
        return max(0.0, self._remaining.get(effect, 0.0))

    @property
    def active(self) -> Dict[str, float]:
        """Remaining seconds per active effect, keyed by effect name."""
        return {effect.value: max(0.0, t) for effect, t in self._remaining.items()}

    @property
    def hook_power(self) -> float:
        power = 1.0
        if self.is_active(PowerUpEffect.MAGNETIC_HOOK):
            power *= self._buff_cfg.magnetic_hook_power
        if self.is_active(PowerUpEffect.SPEED_BOOST):
            power *= self._buff_cfg.speed_boost_power
        return power

    @property
    def hook_speed_multiplier(self) -> float:
        return self._speed_multiplier if self.is_active(PowerUpEffect.SPEED_BOOST) else 1.0

    @property
    def score_multiplier(self) -> float:
        multiplier = 1.0
        if self.is_active(PowerUpEffect.SCORE_MULTIPLIER):
            multiplier *= self._values.get(PowerUpEffect.SCORE_MULTIPLIER) or 1.0
        if self.is_active(PowerUpEffect.RARE_FISH_BOOST):
            multiplier *= self._buff_cfg.lucky_charm_score
        return multiplier

    @property
    def fish_spawn_rate(self) -> float:
        return self._buff_cfg.bait_fish_rate if self.is_active(PowerUpEffect.ATTRACT_FISH) else 1.0

    @property
    def rare_weight_multiplier(self) -> float:
        return self._buff_cfg.rare_weight_boost if self.is_active(PowerUpEffect.RARE_FISH_BOOST) else 1.0

    def reset(self) -> None:
        self._remaining.clear()
        self._values.clear()
