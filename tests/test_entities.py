"""
Tests for entity records, the hook and buff timers.
"""

import pytest

from cat_fishing.fishing_core.config_loader import load_config
from cat_fishing.fishing_core.catalog import ObstacleKind, PowerUpEffect, PowerUpKind
from cat_fishing.fishing_core.entities import Obstacle, PowerUp, PowerUpStatus, Rect
from cat_fishing.fishing_core.hook import Hook, HookState
from cat_fishing.fishing_core.buffs import BuffManager


@pytest.fixture
def config():
    return load_config()


def make_obstacle(destructible=True, max_hits=3):
    return Obstacle(
        uid=1,
        kind=ObstacleKind.CORAL,
        x=100.0,
        y=500.0,
        width=55.0,
        height=70.0,
        penalty=-20,
        destructible=destructible,
        max_hits=max_hits,
        max_lifetime=45.0
    )


def make_power_up():
    return PowerUp(
        uid=2,
        kind=PowerUpKind.BAIT,
        effect=PowerUpEffect.ATTRACT_FISH,
        x=200.0,
        y=600.0,
        width=35.0,
        height=35.0,
        value=0.0,
        duration=15.0,
        magnetic_range=60.0,
        collect_bonus=20,
        max_life_time=30.0,
        blink_time=25.0,
        drift_speed=5.0
    )


class TestRect:
    """Test axis-aligned box helpers."""

    def test_overlap(self):
        """Overlapping boxes intersect."""
        assert Rect(0, 0, 10, 10).overlaps(Rect(5, 5, 10, 10))

    def test_touching_edges_do_not_overlap(self):
        """Shared edges are not an overlap."""
        assert not Rect(0, 0, 10, 10).overlaps(Rect(10, 0, 10, 10))

    def test_expanded(self):
        """Margin grows every side."""
        r = Rect(10, 20, 30, 40).expanded(5)
        assert (r.x, r.y, r.width, r.height) == (5, 15, 40, 50)
        assert r.center_x == 25


class TestObstacle:
    """Test hit counting and destruction."""

    def test_destroyed_exactly_once_at_max_hits(self):
        """The max_hits-th strike destroys; further strikes are no-ops."""
        obstacle = make_obstacle(max_hits=3)

        assert obstacle.on_collision(0.0)
        assert obstacle.on_collision(0.0)
        assert obstacle.active
        assert obstacle.on_collision(0.0)
        assert not obstacle.active
        assert obstacle.hit_count == 3

        assert not obstacle.on_collision(0.0)
        assert obstacle.hit_count == 3
        assert not obstacle.destroy()

    def test_indestructible_never_destroyed(self):
        """Rocks and trash survive any number of hits."""
        obstacle = make_obstacle(destructible=False, max_hits=0)
        for _ in range(10):
            obstacle.on_collision(0.0)
        assert obstacle.active
        assert obstacle.hit_count == 10

    def test_cooldown_skips_strikes(self):
        """A strike during the cooldown is ignored."""
        obstacle = make_obstacle()
        assert obstacle.on_collision(0.5)
        assert obstacle.is_cooling_down
        assert not obstacle.on_collision(0.5)
        assert obstacle.hit_count == 1


class TestPowerUp:
    """Test the exactly-once status transitions."""

    def test_collect_once(self):
        """Only the first collect succeeds."""
        power_up = make_power_up()
        assert power_up.collect()
        assert not power_up.collect()
        assert not power_up.expire()
        assert power_up.status is PowerUpStatus.COLLECTED

    def test_expire_once(self):
        """An expired power-up cannot be collected."""
        power_up = make_power_up()
        assert power_up.expire()
        assert not power_up.collect()
        assert power_up.status is PowerUpStatus.EXPIRED

    def test_blinking(self):
        """Blinks once past the blink time."""
        power_up = make_power_up()
        power_up.life_time = 26.0
        assert power_up.is_blinking


class TestHook:
    """Test the hook state machine."""

    def test_initial_state(self, config):
        """Hook starts idle at the rod tip."""
        hook = Hook(config)
        assert hook.state is HookState.IDLE
        assert hook.y == config.hook.rod_y
        assert hook.x == config.hook.rod_x

    def test_cast_and_reel(self, config):
        """IDLE -> DROPPING -> REELING."""
        hook = Hook(config)
        assert hook.cast()
        assert hook.state is HookState.DROPPING
        assert hook.reel()
        assert hook.state is HookState.REELING

    def test_invalid_requests_rejected(self, config):
        """Invalid transitions return False and change nothing."""
        hook = Hook(config)
        assert not hook.reel()
        assert hook.state is HookState.IDLE
        hook.cast()
        assert not hook.cast()
        hook.reel()
        assert not hook.reel()
        assert not hook.cast()
        assert hook.state is HookState.REELING

    def test_drop_speed(self, config):
        """Hook drops at the configured speed, faster with the boost."""
        hook = Hook(config)
        hook.cast()
        hook.update(1.0)
        assert hook.y == pytest.approx(config.hook.rod_y + 200.0)
        hook.update(1.0, speed_multiplier=1.5)
        assert hook.y == pytest.approx(config.hook.rod_y + 500.0)

    def test_auto_reel_at_max_depth(self, config):
        """Reaching max depth switches to reeling."""
        hook = Hook(config)
        hook.cast()
        hook.update(10.0)
        assert hook.y == config.hook.max_depth
        assert hook.state is HookState.REELING

    def test_reel_completion(self, config):
        """Back at the rod tip the hook reports the fish and goes idle."""
        hook = Hook(config)
        hook.cast()
        hook.update(1.0)
        assert hook.attach(7)
        assert hook.state is HookState.REELING
        assert hook.update(0.5) is None
        completion = hook.update(0.6)
        assert completion is not None
        assert completion.caught_uid == 7
        assert completion.cast_duration == pytest.approx(2.1)
        assert not completion.perfect
        assert hook.state is HookState.IDLE
        assert hook.caught_uid is None

    def test_perfect_flag(self, config):
        """The perfect flag rides with the held fish and clears at the rod."""
        hook = Hook(config)
        assert not hook.flag_perfect()
        hook.cast()
        hook.update(1.0)
        hook.attach(3)
        assert hook.flag_perfect()
        completion = hook.update(2.0)
        assert completion.perfect
        assert not hook.perfect

    def test_perfect_reel_without_fish(self, config):
        """A flagged reel that lands nothing reports no perfect catch."""
        hook = Hook(config)
        hook.cast()
        hook.update(0.5)
        assert hook.reel(perfect=True)
        completion = hook.update(1.0)
        assert completion.caught_uid is None
        assert not completion.perfect

    def test_release_clears_flag(self, config):
        hook = Hook(config)
        hook.cast()
        hook.update(1.0)
        hook.attach(3)
        hook.flag_perfect()
        assert hook.release() == 3
        assert not hook.perfect

    def test_depth(self, config):
        """Depth runs from 0 at the rod tip to 1 at max depth."""
        hook = Hook(config)
        assert hook.depth == 0.0
        assert hook.is_idle
        hook.cast()
        hook.update(10.0)
        assert hook.depth == pytest.approx(1.0)
        assert hook.get_render_data()["depth"] == pytest.approx(1.0)
        assert not hook.is_idle

    def test_miss_completion(self, config):
        """A reel-in without a fish reports None."""
        hook = Hook(config)
        hook.cast()
        hook.update(0.5)
        hook.reel()
        completion = hook.update(1.0)
        assert completion.caught_uid is None

    def test_attach_is_exclusive(self, config):
        """A hook holding a fish cannot take another."""
        hook = Hook(config)
        assert not hook.attach(1)
        hook.cast()
        assert hook.attach(1)
        assert not hook.attach(2)
        assert hook.caught_uid == 1
        assert hook.release() == 1
        assert hook.caught_uid is None

    def test_aim_only_while_idle(self, config):
        """Aim maps [-1, 1] across the board and is locked while casting."""
        hook = Hook(config)
        assert hook.set_aim(-1.0)
        assert hook.x == pytest.approx(20.0)
        assert hook.set_aim(5.0)
        assert hook.x == pytest.approx(config.board.width - 20.0)
        hook.cast()
        assert not hook.set_aim(0.0)
        assert hook.x == pytest.approx(config.board.width - 20.0)


class TestBuffManager:
    """Test timed effects and their multipliers."""

    def test_no_buffs(self, config):
        """Neutral multipliers with nothing active."""
        buffs = BuffManager(config)
        assert buffs.hook_power == 1.0
        assert buffs.score_multiplier == 1.0
        assert buffs.hook_speed_multiplier == 1.0
        assert buffs.active == {}

    def test_hook_power_compounds(self, config):
        """Magnet x1.5 and speed x1.2 multiply."""
        buffs = BuffManager(config)
        buffs.apply(PowerUpEffect.MAGNETIC_HOOK, 12.0)
        assert buffs.hook_power == pytest.approx(1.5)
        buffs.apply(PowerUpEffect.SPEED_BOOST, 10.0)
        assert buffs.hook_power == pytest.approx(1.8)
        assert buffs.hook_speed_multiplier == pytest.approx(1.5)

    def test_score_multiplier_compounds(self, config):
        """Potion value and lucky charm compound."""
        buffs = BuffManager(config)
        buffs.apply(PowerUpEffect.SCORE_MULTIPLIER, 20.0, value=2.0)
        buffs.apply(PowerUpEffect.RARE_FISH_BOOST, 25.0)
        assert buffs.score_multiplier == pytest.approx(3.0)
        assert buffs.rare_weight_multiplier == pytest.approx(3.0)

    def test_expiry(self, config):
        """Effects run out and are reported once."""
        buffs = BuffManager(config)
        buffs.apply(PowerUpEffect.ATTRACT_FISH, 1.0)
        assert buffs.fish_spawn_rate == pytest.approx(1.5)
        assert buffs.update(0.5) == []
        assert buffs.update(0.6) == [PowerUpEffect.ATTRACT_FISH]
        assert buffs.update(1.0) == []
        assert buffs.fish_spawn_rate == 1.0

    def test_recollect_restarts_timer(self, config):
        """Collecting an active effect again restarts its duration."""
        buffs = BuffManager(config)
        buffs.apply(PowerUpEffect.SPEED_BOOST, 10.0)
        buffs.update(8.0)
        buffs.apply(PowerUpEffect.SPEED_BOOST, 10.0)
        assert buffs.remaining(PowerUpEffect.SPEED_BOOST) == pytest.approx(10.0)

    def test_instant_effect_not_tracked(self, config):
        """Time extension is applied by the game, not held as a buff."""
        buffs = BuffManager(config)
        assert not buffs.apply(PowerUpEffect.TIME_EXTENSION, 0.0, value=10.0)
        assert not buffs.is_active(PowerUpEffect.TIME_EXTENSION)
