"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to the cat fishing game.
Reward is always 0.0 - agents compute their own from info.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

import gymnasium as gym
from gymnasium import spaces

from cat_fishing.fishing_core.catalog import PowerUpEffect
from cat_fishing.fishing_core.config_loader import GameConfig, load_config
from cat_fishing.fishing_core.entities import FishState
from cat_fishing.fishing_core.game import CoreGame
from cat_fishing.fishing_core.rules import TerminationResult
from cat_fishing.fishing_core.storage import open_store

logger = logging.getLogger(__name__)

ACTION_NOOP = 0
ACTION_CAST = 1
ACTION_REEL = 2


class FishingEnv(gym.Env):
    """
    Cat fishing game as a Gymnasium environment.

    Action Space:
        Discrete(3): 0 = wait, 1 = cast the hook, 2 = reel in.

    Observation Space:
        Dict of session scalars, hook state and fixed-size masked entity arrays.

    Reward:
        Always 0.0. Agents compute their own reward from the info dict.

    Info:
        Contains score, delta_score, combo, time_remaining, events, etc.
    """

    metadata = {
        "render_modes": [],
        "render_fps": 30,
    }

    def __init__(
        self,
        config_path: Optional[str] = None,
        frame_dt: Optional[float] = None,
        max_steps: Optional[int] = None,
        high_score_path: Optional[str] = None,
        render_mode: Optional[str] = None,
    ):
        """
        Initialize fishing environment.

        Args:
            config_path: Path to game_config.yaml. Uses default if None.
            frame_dt: Seconds simulated per step. Defaults to one frame at render_fps.
            max_steps: Truncate episodes after this many steps. No limit if None.
            high_score_path: JSON file for the high score. In-memory if None.
            render_mode: Only None is supported; rendering lives outside the core.
        """
        super().__init__()
        if render_mode is not None:
            raise ValueError(f"Unsupported render_mode: {render_mode}")

        self._config = load_config(config_path)
        self._frame_dt = frame_dt if frame_dt is not None else 1.0 / self.metadata["render_fps"]
        if self._frame_dt <= 0:
            raise ValueError(f"frame_dt must be positive, got {self._frame_dt}")
        self._max_steps = max_steps
        self._steps = 0
        self.render_mode = render_mode

        store = open_store(high_score_path, key=self._config.session.high_score_key)
        self._game = CoreGame(config=self._config, store=store)

        self.action_space = spaces.Discrete(3)
        self.observation_space = self._build_observation_space()

        logger.debug(
            "FishingEnv initialized: board %dx%d, frame_dt=%.4f",
            self._config.board.width, self._config.board.height, self._frame_dt
        )

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        spawning = self._config.spawning
        max_fish = spawning.fish.max_count
        max_obstacles = spawning.obstacles.max_count
        max_power_ups = spawning.power_ups.max_count

        num_fish = len(self._config.fish)
        num_obstacles = len(self._config.obstacles.types)
        num_power_ups = len(self._config.power_ups.types)

        return spaces.Dict({
            # Session
            "score": spaces.Box(low=0, high=np.iinfo(np.int64).max, shape=(), dtype=np.int64),
            "combo": spaces.Box(low=0, high=np.iinfo(np.int32).max, shape=(), dtype=np.int32),
            "time_remaining": spaces.Box(low=0, high=np.inf, shape=(), dtype=np.float32),
            "difficulty_level": spaces.Box(low=1, high=np.iinfo(np.int32).max, shape=(), dtype=np.int32),

            # Hook
            "hook_x": spaces.Box(low=-np.inf, high=np.inf, shape=(), dtype=np.float32),
            "hook_y": spaces.Box(low=-np.inf, high=np.inf, shape=(), dtype=np.float32),
            "hook_state": spaces.Discrete(3),
            "hook_has_fish": spaces.Discrete(2),
            "hook_power": spaces.Box(low=0, high=np.inf, shape=(), dtype=np.float32),

            "buff_remaining": spaces.Box(low=0, high=np.inf, shape=(len(PowerUpEffect),), dtype=np.float32),

            # Entity arrays
            "fish_kind": spaces.Box(low=-1, high=num_fish - 1, shape=(max_fish,), dtype=np.int16),
            "fish_x": spaces.Box(low=-np.inf, high=np.inf, shape=(max_fish,), dtype=np.float32),
            "fish_y": spaces.Box(low=-np.inf, high=np.inf, shape=(max_fish,), dtype=np.float32),
            "fish_vx": spaces.Box(low=-np.inf, high=np.inf, shape=(max_fish,), dtype=np.float32),
            "fish_state": spaces.Box(low=0, high=len(FishState) - 1, shape=(max_fish,), dtype=np.int8),
            "fish_mask": spaces.MultiBinary(max_fish),

            "obstacle_kind": spaces.Box(low=-1, high=num_obstacles - 1, shape=(max_obstacles,), dtype=np.int16),
            "obstacle_x": spaces.Box(low=-np.inf, high=np.inf, shape=(max_obstacles,), dtype=np.float32),
            "obstacle_y": spaces.Box(low=-np.inf, high=np.inf, shape=(max_obstacles,), dtype=np.float32),
            "obstacle_mask": spaces.MultiBinary(max_obstacles),

            "power_up_kind": spaces.Box(low=-1, high=num_power_ups - 1, shape=(max_power_ups,), dtype=np.int16),
            "power_up_x": spaces.Box(low=-np.inf, high=np.inf, shape=(max_power_ups,), dtype=np.float32),
            "power_up_y": spaces.Box(low=-np.inf, high=np.inf, shape=(max_power_ups,), dtype=np.float32),
            "power_up_mask": spaces.MultiBinary(max_power_ups),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Reset the environment.

        Args:
            seed: Random seed for reproducibility.
            options: Additional options (unused).

        Returns:
            (observation, info) tuple.
        """
        super().reset(seed=seed)

        snapshot = self._game.reset(seed=seed)
        self._steps = 0

        info = self._game.get_info()
        info["delta_score"] = 0
        info["events"] = []
        return snapshot.to_obs_dict(), info

    def step(
        self,
        action: Union[int, np.integer, np.ndarray]
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Execute one step.

        Args:
            action: 0 = wait, 1 = cast, 2 = reel.

        Returns:
            (observation, reward, terminated, truncated, info) tuple.
            Reward is always 0.0.
        """
        if isinstance(action, np.ndarray):
            action = action.item()
        action = int(action)
        if not self.action_space.contains(action):
            raise ValueError(f"Invalid action: {action}")

        accepted = True
        if action == ACTION_CAST:
            accepted = self._game.request_cast()
        elif action == ACTION_REEL:
            accepted = self._game.request_reel()

        result = self._game.advance(self._frame_dt)
        self._steps += 1

        term = TerminationResult(result.terminated, result.truncated, result.termination_reason)
        if not term.terminated and self._max_steps is not None and self._steps >= self._max_steps:
            term = TerminationResult.truncation("max_steps")

        reward = 0.0

        info = self._game.get_info()
        info["delta_score"] = result.delta_score
        info["action_accepted"] = accepted
        info["events"] = [type(e).__name__ for e in result.events]
        if term.truncated:
            info["truncated_reason"] = term.reason

        return self._game.build_snapshot().to_obs_dict(), reward, term.terminated, term.truncated, info

    def render(self) -> None:
        """Rendering is handled by the presentation layer."""
        return None

    def close(self) -> None:
        """Clean up resources."""
        self._game.events.clear()

    @property
    def game(self) -> CoreGame:
        """Access to underlying game (for debugging/tools)."""
        return self._game

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config

    @property
    def frame_dt(self) -> float:
        return self._frame_dt
