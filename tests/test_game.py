"""
Tests for the CoreGame tick loop and its events.
"""

import dataclasses

import numpy as np
import pytest

from cat_fishing.fishing_core.catalog import FishKind
from cat_fishing.fishing_core.config_loader import load_config
from cat_fishing.fishing_core.entities import FishState
from cat_fishing.fishing_core.events import (
    ComboChanged,
    FishCaught,
    FishEscaped,
    FishHooked,
    GameEnded,
    HighScoreBeaten,
    ObstacleHit,
    PowerUpCollected,
)
from cat_fishing.fishing_core.game import CoreGame
from cat_fishing.fishing_core.hook import HookState
from cat_fishing.fishing_core.storage import MemoryHighScoreStore

DT = 1.0 / 60.0


@pytest.fixture
def config():
    return load_config()


def quiet_config(config):
    """Config whose spawn timers never fire within a test."""
    def slow(category):
        return dataclasses.replace(category, base_interval=1000.0, min_interval=1000.0, max_interval=1000.0)

    spawning = config.spawning
    return dataclasses.replace(
        config,
        spawning=dataclasses.replace(
            spawning,
            fish=slow(spawning.fish),
            obstacles=slow(spawning.obstacles),
            power_ups=slow(spawning.power_ups)
        )
    )


@pytest.fixture
def store():
    return MemoryHighScoreStore()


@pytest.fixture
def game(config, store):
    return CoreGame(quiet_config(config), seed=1, store=store)


def still_fish(game, kind="small", y=450.0, escape_chance=0.0):
    """A fish hanging motionless under the hook."""
    width = game.catalog.fish(kind).width
    fish = game.spawner.force_spawn_fish(kind, x=game.hook.x - width / 2, y=y)
    fish.speed = 0.0
    fish.cruise_speed = 0.0
    fish.vertical_speed = 0.0
    fish.dwell_timer = 1000.0
    fish.escape_chance = escape_chance
    return fish


def run_until(game, event_type, max_seconds=20.0):
    """Advance until an event of the given type is emitted; return all events seen."""
    seen = []
    for _ in range(int(max_seconds / DT)):
        result = game.advance(DT)
        seen.extend(result.events)
        if any(isinstance(e, event_type) for e in result.events):
            return seen
    raise AssertionError(f"{event_type.__name__} never emitted")


def of_type(events, event_type):
    return [e for e in events if isinstance(e, event_type)]


class TestInitialState:
    """Test a fresh session."""

    def test_fresh_game(self, game, config):
        assert game.score == 0
        assert game.combo == 0
        assert game.time_remaining == config.session.game_time
        assert game.difficulty_level == 1
        assert game.hook.state is HookState.IDLE
        assert not game.is_over
        assert game.active_buffs == {}
        assert game.magnetic_pull == (0.0, 0.0)

    def test_requests(self, game):
        """Invalid requests are rejected without side effects."""
        assert not game.request_reel()
        assert game.set_aim(0.5)
        assert game.request_cast()
        assert not game.request_cast()
        assert not game.set_aim(0.0)
        assert game.request_reel()

    def test_negative_dt_rejected(self, game):
        with pytest.raises(ValueError):
            game.advance(-0.1)


class TestCatching:
    """Test the cast -> capture -> land flow."""

    def test_deep_catch_scores_base_points(self, game):
        """A slow catch of a small fish scores 10 and starts the combo."""
        fish = still_fish(game, y=900.0)
        game.request_cast()
        events = run_until(game, FishCaught)

        hooked = of_type(events, FishHooked)
        assert [e.uid for e in hooked] == [fish.uid]
        assert not hooked[0].will_try_escape

        caught = of_type(events, FishCaught)[0]
        assert caught.uid == fish.uid
        assert caught.points == 10
        assert caught.combo == 1
        assert not caught.is_fast and not caught.is_perfect
        assert game.combo == 1
        assert game.scorer.catches == 1
        assert fish.uid not in game.fish
        assert game.hook.state is HookState.IDLE

    def test_quick_catch_is_fast(self, game):
        """A capture right under the surface earns the fast bonus unless flagged."""
        still_fish(game, y=450.0)
        game.request_cast()
        events = run_until(game, FishCaught)
        caught = of_type(events, FishCaught)[0]
        assert caught.is_fast
        assert not caught.is_perfect
        assert caught.points == 60
        assert game.scorer.fast_catches == 1
        assert game.scorer.perfect_catches == 0

    def test_flagged_catch_is_perfect(self, game):
        """A catch the caller flags as perfect earns +100 instead of +50."""
        still_fish(game, y=450.0)
        game.request_cast()
        run_until(game, FishHooked)
        assert game.request_reel(perfect=True)
        events = run_until(game, FishCaught)
        caught = of_type(events, FishCaught)[0]
        assert caught.is_perfect
        assert not caught.is_fast
        assert caught.points == 110
        assert game.scorer.perfect_catches == 1
        assert game.scorer.fast_catches == 0

    def test_perfect_flag_set_before_capture(self, game):
        """A perfect reel request before the bite carries over to the catch."""
        fish = still_fish(game, y=500.0)
        fish.x = 40.0
        game.request_cast()
        for _ in range(int(2.5 / DT)):
            game.advance(DT)
        assert game.request_reel(perfect=True)
        # Slide the fish into the path of the rising hook
        fish.x = game.hook.x - fish.width / 2
        events = run_until(game, FishCaught)
        caught = of_type(events, FishCaught)[0]
        assert caught.is_perfect
        assert caught.points == 110

    def test_perfect_flag_needs_a_cast(self, game):
        assert not game.request_reel(perfect=True)
        game.request_cast()
        for _ in range(int(0.5 / DT)):
            game.advance(DT)
        game.request_reel()
        assert not game.request_reel(perfect=True)

    def test_score_counted_in_delta(self, game):
        """delta_score reports the points of the tick they landed in."""
        still_fish(game, y=900.0)
        game.request_cast()
        total = 0
        for _ in range(int(20.0 / DT)):
            result = game.advance(DT)
            total += result.delta_score
            if of_type(result.events, FishCaught):
                break
        assert total == game.score
        assert game.score == 10 + 50

    def test_capture_starts_reel(self, game):
        """A capture while dropping switches the hook to reeling."""
        fish = still_fish(game, y=600.0)
        game.request_cast()
        run_until(game, FishHooked)
        assert game.hook.state is HookState.REELING
        assert game.hook.caught_uid == fish.uid

    def test_legendary_not_caught_without_buffs(self, game):
        """Hook power 1.0 never lands a legendary fish."""
        still_fish(game, kind="legendary", y=600.0)
        game.request_cast()
        for _ in range(int(15.0 / DT)):
            result = game.advance(DT)
            assert not of_type(result.events, FishHooked)

    def test_escape(self, game):
        """A fish that wins the escape roll breaks free and is not scored."""
        fish = still_fish(game, y=800.0, escape_chance=1.0)
        game.request_cast()
        events = run_until(game, FishEscaped)
        assert of_type(events, FishHooked)[0].will_try_escape
        assert of_type(events, FishEscaped)[0].uid == fish.uid
        assert game.hook.caught_uid is None
        for _ in range(int(8.0 / DT)):
            assert not of_type(game.advance(DT).events, FishCaught)
        assert game.score == 0


class TestObstaclesAndPowerUps:
    """Test penalties, pickups and buffs through the game."""

    def test_obstacle_hit(self, game):
        """A hit deducts the penalty, resets the combo and reels the hook."""
        for _ in range(3):
            game.scorer.add_fish_catch(FishKind.SMALL)
        game.scorer.check_achievements()
        before = game.score
        game.spawner.force_spawn_obstacle("trash", x=game.hook.x - 25.0, y=500.0)

        game.request_cast()
        events = run_until(game, ObstacleHit)

        hit = of_type(events, ObstacleHit)[0]
        assert hit.penalty == -10
        assert game.score == before - 10
        assert game.combo == 0
        assert game.hook.state is HookState.REELING
        changes = of_type(events, ComboChanged)
        assert changes[-1].reason == "obstacle"
        assert (changes[-1].old, changes[-1].new) == (3, 0)

    def test_time_bonus(self, game, config):
        """The time bonus extends the clock instead of starting a buff."""
        game.spawner.force_spawn_power_up("time_bonus", x=game.hook.x - 19.0, y=600.0)
        game.request_cast()
        events = run_until(game, PowerUpCollected)

        collected = of_type(events, PowerUpCollected)[0]
        assert collected.effect == "time_extension"
        assert collected.points == 25
        assert game.time_remaining == pytest.approx(config.session.game_time - game.elapsed + 10.0)
        assert game.active_buffs == {}

    def test_buff_power_up(self, game):
        """Timed power-ups show up in the active buffs."""
        game.spawner.force_spawn_power_up("magnet", x=game.hook.x - 18.0, y=600.0)
        game.request_cast()
        run_until(game, PowerUpCollected)
        assert "magnetic_hook" in game.active_buffs
        assert game.buffs.hook_power == pytest.approx(1.5)

    def test_magnetic_pull_reported(self, game):
        """A power-up in range of the hook produces a pull vector."""
        power_up = game.spawner.force_spawn_power_up("magnet", x=game.hook.x + 40.0, y=500.0)
        game.request_cast()
        pulled = False
        for _ in range(int(3.0 / DT)):
            game.advance(DT)
            if game.magnetic_pull != (0.0, 0.0):
                pulled = True
                break
        assert pulled
        assert game.magnetic_pull[0] < 0
        assert power_up.is_active


class TestComboDecay:
    """Test decay through the tick loop."""

    def test_decay_resets_combo(self, game):
        """Six idle seconds after a catch end the combo."""
        game.scorer.add_fish_catch(FishKind.SMALL)
        changes = []
        game.events.subscribe(ComboChanged, changes.append)
        for _ in range(int(6.0 / DT)):
            game.advance(DT)
        assert game.combo == 0
        assert [(c.old, c.new, c.reason) for c in changes] == [(1, 0, "timeout")]


class TestSessionEnd:
    """Test termination, high score and reset."""

    def test_time_up(self, game, config):
        ended = []
        game.events.subscribe(GameEnded, ended.append)
        for _ in range(int(config.session.game_time) + 1):
            result = game.advance(1.0)
        assert result.terminated
        assert result.termination_reason == "time_up"
        assert game.is_over
        assert len(ended) == 1
        assert ended[0].record["score"] == game.score

        after = game.advance(1.0)
        assert after.terminated
        assert after.delta_score == 0
        assert after.events == []
        assert not game.request_cast()

    def test_high_score_saved(self, game, store):
        """Beating the stored high score persists it and emits an event."""
        beaten = []
        game.events.subscribe(HighScoreBeaten, beaten.append)
        game.scorer.add_fish_catch(FishKind.MEDIUM)
        record = game.end_game()

        assert record.new_high_score
        assert store.load() == 25
        assert game.high_score == 25
        assert [(e.score, e.previous) for e in beaten] == [(25, 0)]
        assert game.end_game() is None

    def test_high_score_not_lowered(self, config):
        store = MemoryHighScoreStore(initial=500)
        game = CoreGame(quiet_config(config), seed=1, store=store)
        game.scorer.add_fish_catch(FishKind.SMALL)
        record = game.end_game()
        assert not record.new_high_score
        assert store.load() == 500

    def test_history_trimmed(self, config):
        """Only the latest history_limit session records are kept."""
        quiet = quiet_config(config)
        short = dataclasses.replace(quiet, session=dataclasses.replace(quiet.session, history_limit=3))
        game = CoreGame(short, seed=1)
        for session in range(5):
            for _ in range(session + 1):
                game.scorer.add_fish_catch(FishKind.SMALL)
            record = game.end_game()
            assert game.last_record is record
            game.reset()

        history = game.history
        assert len(history) == 3
        assert [r.catches for r in history] == [3, 4, 5]
        assert history[-1] is game.last_record

    def test_reset(self, game, config):
        """Reset starts a new session but keeps the stored high score."""
        still_fish(game)
        game.scorer.add_fish_catch(FishKind.MEDIUM)
        game.end_game()
        game.reset(seed=2)

        assert not game.is_over
        assert game.score == 0
        assert game.high_score == 25
        assert game.fish == {}
        assert game.time_remaining == config.session.game_time
        assert len(game.history) == 1


class TestLongRun:
    """Property checks over whole random sessions."""

    def test_invariants_hold(self, config):
        """Score stays non-negative, populations stay capped and the held fish stays caught."""
        game = CoreGame(config, seed=123)
        rng = np.random.default_rng(0)
        caps = {name: config.spawning.category(name).max_count for name in ("fish", "obstacles", "power_ups")}

        while not game.is_over:
            action = rng.integers(0, 3)
            if action == 1:
                game.request_cast()
            elif action == 2:
                game.request_reel()
            game.advance(1.0 / 30.0)

            assert game.score >= 0
            for name, cap in caps.items():
                assert game.spawner.population(name) <= cap
            caught = game.hook.caught_uid
            if caught is not None:
                assert game.fish[caught].state is FishState.CAUGHT

    def test_deterministic_with_seed(self, config):
        """Same seed and inputs give the same session."""
        a = CoreGame(config, seed=77)
        b = CoreGame(config, seed=77)
        for step in range(600):
            if step % 90 == 0:
                a.request_cast()
                b.request_cast()
            a.advance(1.0 / 30.0)
            b.advance(1.0 / 30.0)
        assert a.score == b.score
        assert sorted(a.fish) == sorted(b.fish)
        assert [f.x for f in a.fish.values()] == [f.x for f in b.fish.values()]


class TestViews:
    """Test read-only views."""

    def test_render_data(self, game):
        still_fish(game)
        data = game.get_render_data()
        assert len(data["fish"]) == 1
        assert data["hook"]["state"] == "idle"
        assert data["board_width"] == 750

    def test_info(self, game):
        info = game.get_info()
        for key in ("score", "combo", "combo_time_left", "time_remaining", "difficulty_level", "hook_state"):
            assert key in info

    def test_combo_time_left(self, game, config):
        assert game.get_info()["combo_time_left"] == 0.0
        game.scorer.add_fish_catch(FishKind.SMALL)
        game.advance(1.0)
        assert game.get_info()["combo_time_left"] == pytest.approx(config.scoring.combo_decay - 1.0)
