"""
Behavior Director
=================

Per-tick state machines and kinematic integration for every entity.

Fish:
    SWIMMING  <-> RESTING      random, at the end of each dwell period
    SWIMMING  <-> SCHOOLING    while school peers exert a steering force
    any free  --> CAUGHT       on capture (collision system decides)
    CAUGHT    --> ESCAPING     when the armed escape countdown runs out
    ESCAPING  --> removed      after the escape timeout

Obstacles age, sway and cool down after a hit. Power-ups drift, blink near
the end of their life and expire.

Nothing here reads global state: bounds and the random source arrive through
a BehaviorContext.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from cat_fishing.fishing_core.config_loader import GameConfig, get_config
from cat_fishing.fishing_core.entities import (
    Fish,
    FishState,
    Obstacle,
    PowerUp,
)

logger = logging.getLogger(__name__)


@dataclass
class BehaviorContext:
    """Play-area bounds and the random source handed to behavior updates."""
    left: float
    right: float
    water_top: float
    water_bottom: float
    rng: random.Random

    @classmethod
    def from_config(cls, config: GameConfig, rng: random.Random) -> BehaviorContext:
        return cls(
            left=0.0,
            right=float(config.board.width),
            water_top=config.board.water_top,
            water_bottom=config.board.water_bottom,
            rng=rng
        )


@dataclass
class BehaviorReport:
    """State changes from one behavior tick that the game must react to."""
    broke_free: List[int] = field(default_factory=list)       # CAUGHT -> ESCAPING


class BehaviorDirector:
    """Runs the fish, obstacle and power-up state machines."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._fish_cfg = config.fish_behavior

    def update(
        self,
        dt: float,
        ctx: BehaviorContext,
        fish: Dict[int, Fish],
        obstacles: Dict[int, Obstacle],
        power_ups: Dict[int, PowerUp],
        hook_pos: Tuple[float, float]
    ) -> BehaviorReport:
        """
        Advance every live entity by dt seconds.

        Args:
            dt: Elapsed seconds.
            ctx: Bounds and random source.
            fish: Fish arena keyed by uid.
            obstacles: Obstacle arena keyed by uid.
            power_ups: Power-up arena keyed by uid.
            hook_pos: Current hook (x, y); caught fish follow it.

        Returns:
            BehaviorReport listing the fish that broke free.
        """
        report = BehaviorReport()

        for uid in sorted(fish):
            f = fish[uid]
            if not f.alive:
                continue
            if self.update_fish(f, dt, ctx, fish, hook_pos) == "broke_free":
                report.broke_free.append(uid)

        for uid in sorted(obstacles):
            self.update_obstacle(obstacles[uid], dt)

        for uid in sorted(power_ups):
            self.update_power_up(power_ups[uid], dt, ctx)

        return report

    # -- fish -------------------------------------------------------------

    def on_captured(self, fish: Fish, ctx: BehaviorContext) -> bool:
        """
        Put a fish on the hook and roll whether it will try to escape.

        Returns:
            True if an escape countdown was armed.
        """
        fish.state = FishState.CAUGHT
        fish.vx = 0.0
        fish.vy = 0.0
        fish.escape_countdown = None
        if ctx.rng.random() < fish.escape_chance:
            fish.escape_countdown = ctx.rng.uniform(
                self._fish_cfg.escape_delay_min, self._fish_cfg.escape_delay_max
            )
            return True
        return False

    def update_fish(
        self,
        fish: Fish,
        dt: float,
        ctx: BehaviorContext,
        arena: Dict[int, Fish],
        hook_pos: Tuple[float, float]
    ) -> Optional[str]:
        """
        Advance one fish.

        Returns:
            "broke_free" or "got_away" on those transitions, else None.
        """
        if fish.state is FishState.CAUGHT:
            return self._update_caught(fish, dt, ctx, hook_pos)

        if fish.state is FishState.ESCAPING:
            fish.escape_timer += dt
            self._integrate(fish, dt, ctx, reflect=False)
            if fish.escape_timer >= self._fish_cfg.escape_time:
                fish.alive = False
                return "got_away"
            return None

        if fish.state is FishState.RESTING:
            fish.speed *= self._fish_cfg.rest_decay
            fish.rest_timer -= dt
            if fish.rest_timer <= 0:
                fish.state = FishState.SWIMMING
                fish.speed = fish.cruise_speed
        elif fish.state is FishState.SCHOOLING:
            steer = self._school_steer(fish, arena)
            if steer is None:
                fish.state = FishState.SWIMMING
                fish.direction = 1.0 if fish.direction >= 0 else -1.0
            else:
                self._apply_steer(fish, steer)
        else:
            self._update_swimming(fish, dt, ctx, arena)

        self._integrate(fish, dt, ctx, reflect=True)
        return None

    def _update_swimming(self, fish: Fish, dt: float, ctx: BehaviorContext, arena: Dict[int, Fish]) -> None:
        cfg = self._fish_cfg
        fish.dwell_timer -= dt
        if fish.dwell_timer <= 0:
            fish.dwell_timer = ctx.rng.uniform(cfg.dwell_min, cfg.dwell_max)
            if ctx.rng.random() < cfg.reverse_chance:
                fish.direction = -fish.direction
            if ctx.rng.random() < cfg.vertical_flip_chance:
                fish.vertical_direction = -fish.vertical_direction
            if ctx.rng.random() < cfg.rest_chance:
                fish.state = FishState.RESTING
                fish.rest_timer = cfg.rest_time
                return

        if fish.school:
            steer = self._school_steer(fish, arena)
            if steer is not None and math.hypot(*steer) > cfg.schooling_threshold:
                fish.state = FishState.SCHOOLING
                self._apply_steer(fish, steer)

    def _update_caught(
        self,
        fish: Fish,
        dt: float,
        ctx: BehaviorContext,
        hook_pos: Tuple[float, float]
    ) -> Optional[str]:
        fish.x = hook_pos[0] - fish.width / 2
        fish.y = hook_pos[1]
        if fish.escape_countdown is None:
            return None
        fish.escape_countdown -= dt
        if fish.escape_countdown > 0:
            return None

        fish.escape_countdown = None
        fish.state = FishState.ESCAPING
        fish.escape_timer = 0.0
        fish.speed = 2.0 * fish.base_speed * fish.agility
        fish.direction = 1.0 if ctx.rng.random() < 0.5 else -1.0
        logger.debug("Fish %d broke free", fish.uid)
        return "broke_free"

    def _school_steer(self, fish: Fish, arena: Dict[int, Fish]) -> Optional[Tuple[float, float]]:
        """Cohesion plus separation from live same-kind peers in range, or None."""
        cfg = self._fish_cfg
        sum_x = sum_y = 0.0
        sep_x = sep_y = 0.0
        count = 0
        for peer_uid in fish.school:
            peer = arena.get(peer_uid)
            if peer is None or not peer.alive or peer.kind is not fish.kind:
                continue
            if peer.state in (FishState.CAUGHT, FishState.ESCAPING):
                continue
            dx = peer.x - fish.x
            dy = peer.y - fish.y
            distance = math.hypot(dx, dy)
            if distance >= cfg.cohesion_radius:
                continue
            sum_x += peer.x
            sum_y += peer.y
            count += 1
            if 0 < distance < cfg.separation_radius:
                sep_x -= dx / distance
                sep_y -= dy / distance

        if count == 0:
            return None
        cohesion_x = (sum_x / count - fish.x) * cfg.cohesion_gain
        cohesion_y = (sum_y / count - fish.y) * cfg.cohesion_gain
        return (
            cohesion_x + sep_x * cfg.separation_gain,
            cohesion_y + sep_y * cfg.separation_gain
        )

    @staticmethod
    def _apply_steer(fish: Fish, steer: Tuple[float, float]) -> None:
        fish.direction = max(-1.0, min(1.0, fish.direction + steer[0]))
        fish.vertical_direction = max(-1.0, min(1.0, fish.vertical_direction + steer[1]))

    def _integrate(self, fish: Fish, dt: float, ctx: BehaviorContext, reflect: bool) -> None:
        cfg = self._fish_cfg
        fish.bob_phase += dt * cfg.bob_frequency
        fish.vx = fish.speed * fish.direction
        fish.vy = (
            fish.vertical_speed * fish.vertical_direction * 0.3 +
            cfg.bob_amplitude * cfg.bob_frequency * math.cos(fish.bob_phase)
        )
        fish.x += fish.vx * dt
        fish.y += fish.vy * dt

        if reflect:
            # Only turn around when heading further out, so fish entering
            # from off-board keep coming in
            if fish.x <= ctx.left and fish.direction < 0:
                fish.direction = -fish.direction
            elif fish.x + fish.width >= ctx.right and fish.direction > 0:
                fish.direction = -fish.direction

        lowest = ctx.water_bottom - fish.height
        if fish.y < ctx.water_top:
            fish.y = ctx.water_top
            fish.vertical_direction = abs(fish.vertical_direction)
        elif fish.y > lowest:
            fish.y = lowest
            fish.vertical_direction = -abs(fish.vertical_direction)

    # -- obstacles --------------------------------------------------------

    def update_obstacle(self, obstacle: Obstacle, dt: float) -> bool:
        """Advance one obstacle. Returns True if its lifetime ran out this tick."""
        if not obstacle.active:
            return False
        obstacle.age += dt
        obstacle.phase += dt
        obstacle.sway_offset = math.sin(obstacle.phase * 1.5) * obstacle.sway_intensity
        obstacle.bob_offset = math.sin(obstacle.phase * 2.0) * obstacle.bob_intensity
        if obstacle.cooldown > 0:
            obstacle.cooldown = max(0.0, obstacle.cooldown - dt)
        if obstacle.age >= obstacle.max_lifetime:
            return obstacle.destroy()
        return False

    # -- power-ups --------------------------------------------------------

    def update_power_up(self, power_up: PowerUp, dt: float, ctx: BehaviorContext) -> bool:
        """Advance one power-up. Returns True if it expired this tick."""
        if not power_up.is_active:
            return False
        power_up.life_time += dt
        if power_up.life_time >= power_up.max_life_time:
            return power_up.expire()

        power_up.bob_phase += dt
        power_up.heading += (ctx.rng.random() - 0.5) * dt
        power_up.x += math.cos(power_up.heading) * power_up.drift_speed * dt
        power_up.y += math.sin(power_up.heading) * power_up.drift_speed * dt

        margin = power_up.width
        if power_up.x < ctx.left + margin or power_up.x > ctx.right - margin:
            power_up.heading = math.pi - power_up.heading
            power_up.x = max(ctx.left + margin, min(ctx.right - margin, power_up.x))
        if power_up.y < ctx.water_top or power_up.y > ctx.water_bottom - margin:
            power_up.heading = -power_up.heading
            power_up.y = max(ctx.water_top, min(ctx.water_bottom - margin, power_up.y))
        return False
