"""
Core Game
=========

Main game orchestrator combining spawning, behavior, collisions, scoring,
buffs and the session clock.

One call to advance(dt) runs, in order:

    spawn -> behavior (entities and hook) -> collisions -> scoring -> cull

Presentation reads state through the accessors or build_snapshot() and
drives the hook with request_cast() / request_reel().
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from cat_fishing.fishing_core.behavior import BehaviorContext, BehaviorDirector
from cat_fishing.fishing_core.buffs import BuffManager
from cat_fishing.fishing_core.catalog import EntityCatalog, PowerUpEffect
from cat_fishing.fishing_core.collision_system import CollisionReport, CollisionSystem
from cat_fishing.fishing_core.config_loader import GameConfig, config_to_dict, get_config
from cat_fishing.fishing_core.entities import Fish, Obstacle, PowerUp
from cat_fishing.fishing_core.events import (
    AchievementUnlocked,
    BuffExpired,
    ComboChanged,
    DifficultyChanged,
    Event,
    EventBus,
    FishCaught,
    FishEscaped,
    FishHooked,
    GameEnded,
    HighScoreBeaten,
    ObstacleHit,
    PowerUpCollected,
    SpawnEventEnded,
    SpawnEventStarted,
)
from cat_fishing.fishing_core.hook import Hook
from cat_fishing.fishing_core.rules import GameRules, TerminationResult
from cat_fishing.fishing_core.scoring import ScoreTracker, SessionRecord
from cat_fishing.fishing_core.spawner import SpawnDirector
from cat_fishing.fishing_core.state_snapshot import GameSnapshot, SnapshotBuilder
from cat_fishing.fishing_core.storage import HighScoreStore, MemoryHighScoreStore

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Result of a single advance(dt) call."""
    terminated: bool
    truncated: bool
    termination_reason: str
    delta_score: int
    events: List[Event] = field(default_factory=list)


class CoreGame:
    """
    Main game simulation class.

    Orchestrates:
    - Spawn director (entity arenas, difficulty, events)
    - Behavior director (fish/obstacle/power-up state machines)
    - Hook
    - Collision adjudication
    - Scoring, buffs and the session clock
    - State snapshots

    Every subsystem is owned by the instance, so independent sessions can
    run side by side.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        store: Optional[HighScoreStore] = None
    ):
        """
        Initialize game.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for reproducibility.
            store: High-score persistence. In-memory if None.
        """
        if config is None:
            config = get_config()
        if store is None:
            store = MemoryHighScoreStore(config.session.high_score_key)

        self._config = config
        self._seed = seed
        self._store = store

        # Initialize subsystems
        self._catalog = EntityCatalog(config)
        self._rng = random.Random(seed)
        self._spawner = SpawnDirector(config, self._catalog, seed=self._rng.randrange(2 ** 32))
        self._behavior = BehaviorDirector(config)
        self._ctx = BehaviorContext.from_config(config, random.Random(self._rng.randrange(2 ** 32)))
        self._hook = Hook(config)
        self._collisions = CollisionSystem(config, self._catalog)
        self._buffs = BuffManager(config)
        self._scorer = ScoreTracker(config, self._catalog, high_score=store.load())
        self._rules = GameRules(config)
        self._snapshot_builder = SnapshotBuilder(config, self._catalog)
        self.events = EventBus()

        # Game state
        self._terminated = False
        self._termination_reason = ""
        self._magnetic_pull: Tuple[float, float] = (0.0, 0.0)
        self._last_record: Optional[SessionRecord] = None
        self._history: List[SessionRecord] = []
        self._pending: List[Event] = []

        logger.debug("CoreGame created: %s", config_to_dict(config))

    # -- accessors --------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def catalog(self) -> EntityCatalog:
        return self._catalog

    @property
    def spawner(self) -> SpawnDirector:
        return self._spawner

    @property
    def buffs(self) -> BuffManager:
        return self._buffs

    @property
    def scorer(self) -> ScoreTracker:
        return self._scorer

    @property
    def collisions(self) -> CollisionSystem:
        return self._collisions

    @property
    def hook(self) -> Hook:
        return self._hook

    @property
    def fish(self) -> Dict[int, Fish]:
        return self._spawner.fish

    @property
    def obstacles(self) -> Dict[int, Obstacle]:
        return self._spawner.obstacles

    @property
    def power_ups(self) -> Dict[int, PowerUp]:
        return self._spawner.power_ups

    @property
    def score(self) -> int:
        """Current score."""
        return self._scorer.score

    @property
    def high_score(self) -> int:
        return self._scorer.high_score

    @property
    def combo(self) -> int:
        return self._scorer.combo

    @property
    def max_combo(self) -> int:
        return self._scorer.max_combo

    @property
    def time_remaining(self) -> float:
        return self._rules.clock.time_remaining

    @property
    def elapsed(self) -> float:
        return self._rules.clock.elapsed

    @property
    def active_buffs(self) -> Dict[str, float]:
        return self._buffs.active

    @property
    def difficulty_level(self) -> int:
        return self._spawner.difficulty_level

    @property
    def active_events(self) -> Dict[str, float]:
        return self._spawner.active_events

    @property
    def magnetic_pull(self) -> Tuple[float, float]:
        """Summed attraction vector reported by the last collision pass."""
        return self._magnetic_pull

    @property
    def is_over(self) -> bool:
        """True if game has ended."""
        return self._terminated

    @property
    def termination_reason(self) -> str:
        return self._termination_reason

    @property
    def last_record(self) -> Optional[SessionRecord]:
        """Summary of the most recently finished session."""
        return self._last_record

    @property
    def history(self) -> List[SessionRecord]:
        return list(self._history)

    # -- commands ---------------------------------------------------------

    def request_cast(self) -> bool:
        """Start dropping the hook. False unless the hook is idle."""
        if self._terminated:
            return False
        return self._hook.cast()

    def request_reel(self, perfect: bool = False) -> bool:
        """
        Start reeling in.

        Args:
            perfect: The presentation judged the timing perfect. While a fish
                is already being reeled in, this flags that catch instead.

        Returns:
            True if the hook started reeling or the held catch was flagged.
        """
        if self._terminated:
            return False
        if self._hook.reel(perfect):
            return True
        return perfect and self._hook.flag_perfect()

    def set_aim(self, x_norm: float) -> bool:
        """Aim the hook in [-1, 1] across the board. Only while idle."""
        if self._terminated:
            return False
        return self._hook.set_aim(x_norm)

    def reset(self, seed: Optional[int] = None) -> GameSnapshot:
        """
        Reset game to initial state.

        Args:
            seed: New random seed. Uses previous if None.

        Returns:
            Initial game snapshot.
        """
        if seed is not None:
            self._seed = seed
        self._rng = random.Random(self._seed)

        self._spawner.reset(self._rng.randrange(2 ** 32))
        self._ctx.rng = random.Random(self._rng.randrange(2 ** 32))
        self._hook.reset()
        self._collisions.reset()
        self._buffs.reset()
        self._scorer.reset(high_score=self._store.load())
        self._rules.reset()

        self._terminated = False
        self._termination_reason = ""
        self._magnetic_pull = (0.0, 0.0)
        self._pending = []

        return self.build_snapshot()

    def end_game(self) -> Optional[SessionRecord]:
        """End the session now. Returns the session record (None if already over)."""
        if self._terminated:
            return None
        self._rules.end()
        self._pending = []
        self._finish(self._rules.check_termination())
        self._flush()
        return self._last_record

    # -- tick -------------------------------------------------------------

    def advance(self, dt: float) -> StepResult:
        """
        Advance the simulation by dt seconds.

        Args:
            dt: Elapsed seconds since the previous call. Must be >= 0.

        Returns:
            StepResult with termination state, score delta and emitted events.
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        if self._terminated:
            return StepResult(
                terminated=True,
                truncated=False,
                termination_reason=self._termination_reason,
                delta_score=0
            )

        score_before = self._scorer.score
        self._pending = []
        self._rules.clock.tick(dt)

        # Buffs feed the spawner and hook before anything moves
        for effect in self._buffs.update(dt):
            self._queue(BuffExpired(effect=effect.value))
        self._spawner.set_modifiers(
            fish_rate=self._buffs.fish_spawn_rate,
            rare_weight=self._buffs.rare_weight_multiplier
        )

        self._spawn_phase(dt)
        landed, perfect = self._behavior_phase(dt)
        report = self._collision_phase(dt)
        self._scoring_phase(dt, landed, perfect, report)
        self._spawner.cull()

        term = self._rules.check_termination()
        if term.terminated:
            self._finish(term)

        events = self._flush()
        return StepResult(
            terminated=self._terminated,
            truncated=False,
            termination_reason=self._termination_reason,
            delta_score=self._scorer.score - score_before,
            events=events
        )

    def _spawn_phase(self, dt: float) -> None:
        report = self._spawner.update(dt)
        if report.difficulty_level is not None:
            self._queue(DifficultyChanged(level=report.difficulty_level))
        for name in report.events_ended:
            self._queue(SpawnEventEnded(name=name))
        for name in report.events_started:
            self._queue(SpawnEventStarted(name=name))

    def _behavior_phase(self, dt: float) -> Tuple[Optional[Fish], bool]:
        """Move the hook and every entity. Returns the fish landed this tick and its perfect flag."""
        landed = None
        perfect = False
        completion = self._hook.update(dt, self._buffs.hook_speed_multiplier)
        if completion is not None and completion.caught_uid is not None:
            landed = self._spawner.fish.get(completion.caught_uid)
            if landed is not None:
                landed.alive = False
                perfect = completion.perfect

        report = self._behavior.update(
            dt,
            self._ctx,
            self._spawner.fish,
            self._spawner.obstacles,
            self._spawner.power_ups,
            (self._hook.x, self._hook.y)
        )
        for uid in report.broke_free:
            if self._hook.caught_uid == uid:
                self._hook.release()
            self._queue(FishEscaped(uid=uid, kind=self._spawner.fish[uid].kind.value))
        return landed, perfect

    def _collision_phase(self, dt: float) -> CollisionReport:
        report = self._collisions.check(
            self._hook,
            self._buffs.hook_power,
            self._spawner.fish,
            self._spawner.obstacles,
            self._spawner.power_ups
        )

        if report.captured_uid is not None:
            fish = self._spawner.fish[report.captured_uid]
            fish.hooked_after = self._hook.cast_elapsed
            self._hook.attach(fish.uid)
            will_escape = self._behavior.on_captured(fish, self._ctx)
            self._queue(FishHooked(uid=fish.uid, kind=fish.kind.value, will_try_escape=will_escape))

        if report.obstacle_hits:
            self._hook.reel()

        for uid in report.collected:
            power_up = self._spawner.power_ups[uid]
            if power_up.effect is PowerUpEffect.TIME_EXTENSION:
                self._rules.clock.extend(power_up.value)
            else:
                self._buffs.apply(power_up.effect, power_up.duration, power_up.value)

        self._magnetic_pull = report.total_pull
        if self._config.collision.apply_magnetic_pull:
            for pull in report.magnetic:
                power_up = self._spawner.power_ups[pull.uid]
                if power_up.is_active:
                    power_up.x += pull.fx * dt
                    power_up.y += pull.fy * dt
        return report

    def _scoring_phase(
        self,
        dt: float,
        landed: Optional[Fish],
        perfect: bool,
        report: CollisionReport
    ) -> None:
        combo = self._scorer.combo
        if self._scorer.update(dt):
            self._queue(ComboChanged(old=combo, new=0, reason="timeout"))

        if landed is not None:
            combo = self._scorer.combo
            score_event = self._scorer.add_fish_catch(
                landed.kind,
                capture_elapsed=landed.hooked_after,
                is_perfect=perfect,
                buff_multiplier=self._buffs.score_multiplier
            )
            self._queue(ComboChanged(old=combo, new=self._scorer.combo, reason="catch"))
            self._queue(FishCaught(
                uid=landed.uid,
                kind=landed.kind.value,
                points=score_event.points,
                combo=score_event.combo,
                is_fast=score_event.is_fast,
                is_perfect=score_event.is_perfect
            ))
            self._check_achievements()

        for hit in report.obstacle_hits:
            combo = self._scorer.combo
            obstacle = self._spawner.obstacles[hit.uid]
            score_event = self._scorer.add_obstacle_penalty(obstacle.kind)
            if combo > 0:
                self._queue(ComboChanged(old=combo, new=0, reason="obstacle"))
            self._queue(ObstacleHit(
                uid=hit.uid,
                kind=hit.kind,
                penalty=score_event.points,
                destroyed=hit.destroyed
            ))
            self._check_achievements()

        for uid in report.collected:
            power_up = self._spawner.power_ups[uid]
            score_event = self._scorer.add_power_up_bonus(power_up.kind)
            self._queue(PowerUpCollected(
                uid=uid,
                kind=power_up.kind.value,
                effect=power_up.effect.value,
                points=score_event.points
            ))
            self._check_achievements()

    def _check_achievements(self) -> None:
        for achievement in self._scorer.check_achievements():
            self._queue(AchievementUnlocked(achievement_id=achievement.id, bonus=achievement.bonus))

    def _finish(self, term: TerminationResult) -> None:
        self._terminated = True
        self._termination_reason = term.reason

        previous = self._scorer.high_score
        record = self._scorer.finalize()
        if record.new_high_score:
            self._store.save(record.score)
            self._queue(HighScoreBeaten(score=record.score, previous=previous))

        self._last_record = record
        self._history.append(record)
        limit = self._config.session.history_limit
        if len(self._history) > limit:
            self._history = self._history[-limit:]

        logger.info(
            "Game over (%s): score=%d catches=%d max_combo=%d",
            term.reason, record.score, record.catches, record.max_combo
        )
        self._queue(GameEnded(reason=term.reason, record=record.to_dict()))

    def _queue(self, event: Event) -> None:
        event.time = self._rules.clock.elapsed
        self._pending.append(event)

    def _flush(self) -> List[Event]:
        events, self._pending = self._pending, []
        for event in events:
            self.events.emit(event)
        return events

    # -- views ------------------------------------------------------------

    def build_snapshot(self) -> GameSnapshot:
        """Build current game state snapshot."""
        return self._snapshot_builder.build(self)

    def get_info(self) -> Dict[str, Any]:
        """Get additional info dict for Gymnasium."""
        return {
            "score": self._scorer.score,
            "high_score": self._scorer.high_score,
            "combo": self._scorer.combo,
            "combo_time_left": self._scorer.combo_time_left,
            "max_combo": self._scorer.max_combo,
            "catches": self._scorer.catches,
            "time_remaining": self.time_remaining,
            "difficulty_level": self.difficulty_level,
            "active_events": self.active_events,
            "active_buffs": self.active_buffs,
            "hook_state": self._hook.state.value,
            "terminated_reason": self._termination_reason,
        }

    def get_render_data(self) -> Dict[str, Any]:
        """
        Get data needed for rendering.

        Returns:
            Dict with entity render dicts, hook, HUD values and board info.
        """
        return {
            "board_width": self._config.board.width,
            "board_height": self._config.board.height,
            "water_top": self._config.board.water_top,
            "fish": [f.get_render_data() for f in self._spawner.fish.values() if f.alive],
            "obstacles": [o.get_render_data() for o in self._spawner.obstacles.values() if o.active],
            "power_ups": [p.get_render_data() for p in self._spawner.power_ups.values() if p.is_active],
            "hook": self._hook.get_render_data(),
            "score": self._scorer.score,
            "high_score": self._scorer.high_score,
            "combo": self._scorer.combo,
            "combo_time_left": self._scorer.combo_time_left,
            "time_remaining": self.time_remaining,
            "active_buffs": self.active_buffs,
            "active_events": self.active_events,
            "difficulty_level": self.difficulty_level,
            "magnetic_pull": self._magnetic_pull,
        }

    def get_stats(self) -> Dict[str, Any]:
        return {
            "score": self._scorer.get_stats(),
            "spawner": self._spawner.get_stats(),
            "collisions": self._collisions.get_stats(),
            "events": self.events.get_stats(),
        }
