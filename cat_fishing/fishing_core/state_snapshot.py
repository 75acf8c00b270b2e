"""
State Snapshot
==============

Packs game state into fixed-size numpy arrays for observations and renderers.

Array lengths equal the per-category population caps; unused slots are padded
with kind -1 and a False mask.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, TYPE_CHECKING

import numpy as np

from cat_fishing.fishing_core.catalog import EntityCatalog, PowerUpEffect, get_catalog
from cat_fishing.fishing_core.config_loader import GameConfig, get_config
from cat_fishing.fishing_core.entities import FishState

if TYPE_CHECKING:
    from cat_fishing.fishing_core.game import CoreGame

FISH_STATE_CODES = {state: i for i, state in enumerate(FishState)}
HOOK_STATE_CODES = {"idle": 0, "dropping": 1, "reeling": 2}
EFFECT_ORDER = tuple(PowerUpEffect)


@dataclass
class GameSnapshot:
    """
    Complete game state at one instant.

    All arrays are fixed-size with masking for variable entity counts.
    """
    # Session
    score: int
    high_score: int
    combo: int
    time_remaining: float
    difficulty_level: int

    # Hook
    hook_x: float
    hook_y: float
    hook_state: int
    hook_has_fish: bool
    hook_power: float

    # Board info (for normalization)
    board_width: float
    board_height: float

    # Remaining seconds per effect, ordered as PowerUpEffect
    buff_remaining: np.ndarray        # (len(PowerUpEffect),) float32

    fish_kind: np.ndarray             # (MAX_FISH,) int16
    fish_x: np.ndarray                # (MAX_FISH,) float32
    fish_y: np.ndarray                # (MAX_FISH,) float32
    fish_vx: np.ndarray               # (MAX_FISH,) float32
    fish_state: np.ndarray            # (MAX_FISH,) int8
    fish_mask: np.ndarray             # (MAX_FISH,) bool

    obstacle_kind: np.ndarray         # (MAX_OBSTACLES,) int16
    obstacle_x: np.ndarray            # (MAX_OBSTACLES,) float32
    obstacle_y: np.ndarray            # (MAX_OBSTACLES,) float32
    obstacle_mask: np.ndarray         # (MAX_OBSTACLES,) bool

    power_up_kind: np.ndarray         # (MAX_POWER_UPS,) int16
    power_up_x: np.ndarray            # (MAX_POWER_UPS,) float32
    power_up_y: np.ndarray            # (MAX_POWER_UPS,) float32
    power_up_mask: np.ndarray         # (MAX_POWER_UPS,) bool

    def to_obs_dict(self) -> Dict[str, np.ndarray]:
        """Convert to Gymnasium observation dictionary."""
        return {
            "score": np.array(self.score, dtype=np.int64),
            "combo": np.array(self.combo, dtype=np.int32),
            "time_remaining": np.array(self.time_remaining, dtype=np.float32),
            "difficulty_level": np.array(self.difficulty_level, dtype=np.int32),

            "hook_x": np.array(self.hook_x, dtype=np.float32),
            "hook_y": np.array(self.hook_y, dtype=np.float32),
            "hook_state": np.array(self.hook_state, dtype=np.int32),
            "hook_has_fish": np.array(int(self.hook_has_fish), dtype=np.int8),
            "hook_power": np.array(self.hook_power, dtype=np.float32),

            "buff_remaining": self.buff_remaining,

            "fish_kind": self.fish_kind,
            "fish_x": self.fish_x,
            "fish_y": self.fish_y,
            "fish_vx": self.fish_vx,
            "fish_state": self.fish_state,
            "fish_mask": self.fish_mask,

            "obstacle_kind": self.obstacle_kind,
            "obstacle_x": self.obstacle_x,
            "obstacle_y": self.obstacle_y,
            "obstacle_mask": self.obstacle_mask,

            "power_up_kind": self.power_up_kind,
            "power_up_x": self.power_up_x,
            "power_up_y": self.power_up_y,
            "power_up_mask": self.power_up_mask,
        }


class SnapshotBuilder:
    """Builds game state snapshots with pre-allocated arrays."""

    def __init__(self, config: Optional[GameConfig] = None, catalog: Optional[EntityCatalog] = None):
        if config is None:
            config = get_config()
        if catalog is None:
            catalog = get_catalog(config)

        self._config = config
        self._board_width = config.board.width
        self._board_height = config.board.height

        self._max_fish = config.spawning.fish.max_count
        self._max_obstacles = config.spawning.obstacles.max_count
        self._max_power_ups = config.spawning.power_ups.max_count

        self._fish_index = {kind: i for i, kind in enumerate(catalog.fish_kinds)}
        self._obstacle_index = {kind: i for i, kind in enumerate(catalog.obstacle_kinds)}
        self._power_up_index = {kind: i for i, kind in enumerate(catalog.power_up_kinds)}

        # Pre-allocate arrays
        self._buff_remaining = np.zeros(len(EFFECT_ORDER), dtype=np.float32)
        self._fish_kind = np.zeros(self._max_fish, dtype=np.int16)
        self._fish_x = np.zeros(self._max_fish, dtype=np.float32)
        self._fish_y = np.zeros(self._max_fish, dtype=np.float32)
        self._fish_vx = np.zeros(self._max_fish, dtype=np.float32)
        self._fish_state = np.zeros(self._max_fish, dtype=np.int8)
        self._fish_mask = np.zeros(self._max_fish, dtype=bool)
        self._obstacle_kind = np.zeros(self._max_obstacles, dtype=np.int16)
        self._obstacle_x = np.zeros(self._max_obstacles, dtype=np.float32)
        self._obstacle_y = np.zeros(self._max_obstacles, dtype=np.float32)
        self._obstacle_mask = np.zeros(self._max_obstacles, dtype=bool)
        self._power_up_kind = np.zeros(self._max_power_ups, dtype=np.int16)
        self._power_up_x = np.zeros(self._max_power_ups, dtype=np.float32)
        self._power_up_y = np.zeros(self._max_power_ups, dtype=np.float32)
        self._power_up_mask = np.zeros(self._max_power_ups, dtype=bool)

    def build(self, game: "CoreGame") -> GameSnapshot:
        """Build a snapshot from current game state."""
        # Reset arrays
        for kinds in (self._fish_kind, self._obstacle_kind, self._power_up_kind):
            kinds.fill(-1)
        for arr in (self._fish_x, self._fish_y, self._fish_vx, self._fish_state,
                    self._obstacle_x, self._obstacle_y, self._power_up_x, self._power_up_y,
                    self._buff_remaining):
            arr.fill(0)
        for mask in (self._fish_mask, self._obstacle_mask, self._power_up_mask):
            mask.fill(False)

        live_fish = [f for f in game.spawner.fish.values() if f.alive]
        for i, fish in enumerate(live_fish[:self._max_fish]):
            self._fish_kind[i] = self._fish_index[fish.kind]
            self._fish_x[i] = fish.center_x
            self._fish_y[i] = fish.center_y
            self._fish_vx[i] = fish.vx
            self._fish_state[i] = FISH_STATE_CODES[fish.state]
            self._fish_mask[i] = True

        live_obstacles = [o for o in game.spawner.obstacles.values() if o.active]
        for i, obstacle in enumerate(live_obstacles[:self._max_obstacles]):
            self._obstacle_kind[i] = self._obstacle_index[obstacle.kind]
            self._obstacle_x[i] = obstacle.rect.center_x
            self._obstacle_y[i] = obstacle.rect.center_y
            self._obstacle_mask[i] = True

        live_power_ups = [p for p in game.spawner.power_ups.values() if p.is_active]
        for i, power_up in enumerate(live_power_ups[:self._max_power_ups]):
            self._power_up_kind[i] = self._power_up_index[power_up.kind]
            self._power_up_x[i] = power_up.center_x
            self._power_up_y[i] = power_up.center_y
            self._power_up_mask[i] = True

        for i, effect in enumerate(EFFECT_ORDER):
            self._buff_remaining[i] = game.buffs.remaining(effect)

        hook = game.hook
        return GameSnapshot(
            score=game.score,
            high_score=game.high_score,
            combo=game.combo,
            time_remaining=game.time_remaining,
            difficulty_level=game.difficulty_level,
            hook_x=hook.x,
            hook_y=hook.y,
            hook_state=HOOK_STATE_CODES[hook.state.value],
            hook_has_fish=hook.caught_uid is not None,
            hook_power=game.buffs.hook_power,
            board_width=float(self._board_width),
            board_height=float(self._board_height),
            buff_remaining=self._buff_remaining.copy(),
            fish_kind=self._fish_kind.copy(),
            fish_x=self._fish_x.copy(),
            fish_y=self._fish_y.copy(),
            fish_vx=self._fish_vx.copy(),
            fish_state=self._fish_state.copy(),
            fish_mask=self._fish_mask.copy(),
            obstacle_kind=self._obstacle_kind.copy(),
            obstacle_x=self._obstacle_x.copy(),
            obstacle_y=self._obstacle_y.copy(),
            obstacle_mask=self._obstacle_mask.copy(),
            power_up_kind=self._power_up_kind.copy(),
            power_up_x=self._power_up_x.copy(),
            power_up_y=self._power_up_y.copy(),
            power_up_mask=self._power_up_mask.copy()
        )
