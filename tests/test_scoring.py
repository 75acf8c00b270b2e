"""
Tests for score, combo and achievement tracking.
"""

import pytest

from cat_fishing.fishing_core.config_loader import load_config
from cat_fishing.fishing_core.catalog import EntityCatalog, FishKind, ObstacleKind, PowerUpKind
from cat_fishing.fishing_core.scoring import ScoreTracker


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def tracker(config):
    return ScoreTracker(config, EntityCatalog(config))


class TestFishScoring:
    """Test catch scoring."""

    def test_catch_and_score(self, tracker):
        """One small catch with no bonuses scores 10 and starts the combo."""
        event = tracker.add_fish_catch(FishKind.SMALL)
        assert event.points == 10
        assert tracker.score == 10
        assert tracker.combo == 1

    def test_fifth_catch_doubles(self, tracker):
        """The 5th consecutive catch uses the 2.0x multiplier."""
        events = [tracker.add_fish_catch(FishKind.SMALL) for _ in range(5)]
        assert [e.combo_multiplier for e in events] == [1.0, 1.2, 1.5, 1.5, 2.0]
        assert events[-1].points == 20
        assert tracker.score == 10 + 12 + 15 + 15 + 20

    def test_combo_multiplier_float_noise(self, tracker):
        """25 x 1.2 floors to 30, not 29."""
        tracker.add_fish_catch(FishKind.MEDIUM)
        event = tracker.add_fish_catch(FishKind.MEDIUM)
        assert event.points == 30

    def test_combo_monotonic(self, tracker):
        """N catches without hits or decay give combo N."""
        for n in range(1, 26):
            tracker.add_fish_catch(FishKind.SMALL)
            assert tracker.combo == n
            assert tracker.max_combo == n

    def test_multiplier_table(self, tracker):
        """Highest threshold not above the combo applies."""
        assert tracker.combo_multiplier(0) == 1.0
        assert tracker.combo_multiplier(1) == 1.0
        assert tracker.combo_multiplier(4) == 1.5
        assert tracker.combo_multiplier(9) == 2.0
        assert tracker.combo_multiplier(19) == 3.0
        assert tracker.combo_multiplier(50) == 5.0
        values = [tracker.combo_multiplier(c) for c in range(30)]
        assert values == sorted(values)

    def test_fast_bonus(self, tracker):
        """A capture under 2 s adds the fast bonus."""
        event = tracker.add_fish_catch(FishKind.SMALL, capture_elapsed=1.9)
        assert event.is_fast
        assert event.points == 60
        assert tracker.fast_catches == 1

    def test_slow_catch_no_bonus(self, tracker):
        event = tracker.add_fish_catch(FishKind.SMALL, capture_elapsed=2.5)
        assert not event.is_fast
        assert event.points == 10

    def test_perfect_replaces_fast(self, tracker):
        """Perfect and fast bonuses are mutually exclusive."""
        event = tracker.add_fish_catch(FishKind.SMALL, capture_elapsed=1.0, is_perfect=True)
        assert event.is_perfect
        assert not event.is_fast
        assert event.points == 110
        assert tracker.perfect_catches == 1
        assert tracker.fast_catches == 0

    def test_rare_bonus(self, tracker):
        """Rare kinds add half of the bonused score."""
        event = tracker.add_fish_catch(FishKind.RARE)
        assert event.rare_bonus == 50
        assert event.points == 150

    def test_rare_bonus_includes_time_bonus(self, tracker):
        event = tracker.add_fish_catch(FishKind.LEGENDARY, capture_elapsed=1.0)
        assert event.points == (250 + 50) + 150

    def test_buff_multiplier_applied_once(self, tracker):
        """Score buffs multiply the final total."""
        event = tracker.add_fish_catch(FishKind.SMALL, buff_multiplier=3.0)
        assert event.points == 30
        event = tracker.add_fish_catch(FishKind.RARE, buff_multiplier=1.5)
        assert event.points == int((120 + 60) * 1.5)


class TestPenaltiesAndDecay:
    """Test obstacle penalties and combo decay."""

    def test_obstacle_resets_combo(self, tracker):
        for _ in range(7):
            tracker.add_fish_catch(FishKind.SMALL)
        tracker.add_obstacle_penalty(ObstacleKind.WEED)
        assert tracker.combo == 0
        assert tracker.max_combo == 7

    def test_score_never_negative(self, tracker):
        """Penalties clamp at zero and report the amount actually deducted."""
        tracker.add_fish_catch(FishKind.SMALL)
        event = tracker.add_obstacle_penalty(ObstacleKind.CORAL)
        assert tracker.score == 0
        assert event.points == -10
        for kind in ObstacleKind:
            tracker.add_obstacle_penalty(kind)
            assert tracker.score == 0

    def test_decay_resets_combo(self, tracker):
        """Six seconds without a catch ends the combo."""
        tracker.add_fish_catch(FishKind.SMALL)
        lapsed = [tracker.update(1.0) for _ in range(6)]
        assert lapsed == [False, False, False, False, True, False]
        assert tracker.combo == 0

    def test_catch_restarts_decay(self, tracker):
        """Each catch restarts the decay window."""
        tracker.add_fish_catch(FishKind.SMALL)
        tracker.update(4.0)
        tracker.add_fish_catch(FishKind.SMALL)
        assert not tracker.update(4.0)
        assert tracker.combo == 2

    def test_power_up_bonus(self, tracker):
        event = tracker.add_power_up_bonus(PowerUpKind.LUCKY_CHARM)
        assert event.points == 40
        assert tracker.power_ups_collected == 1
        assert tracker.combo == 0


class TestAchievements:
    """Test achievement unlocking."""

    def test_first_catch_once(self, tracker):
        tracker.add_fish_catch(FishKind.SMALL)
        unlocked = tracker.check_achievements()
        assert [a.id for a in unlocked] == ["first_catch"]
        assert tracker.score == 10 + 50
        assert tracker.check_achievements() == []

    def test_perfect_game(self, tracker):
        """Five catches without an obstacle hit."""
        ids = []
        for _ in range(5):
            tracker.add_fish_catch(FishKind.SMALL)
            ids.extend(a.id for a in tracker.check_achievements())
        assert ids == ["first_catch", "perfect_game"]

    def test_perfect_game_blocked_by_hit(self, tracker):
        tracker.add_obstacle_penalty(ObstacleKind.WEED)
        for _ in range(5):
            tracker.add_fish_catch(FishKind.SMALL)
        assert "perfect_game" not in [a.id for a in tracker.check_achievements()]

    def test_combo_master_and_speed_demon(self, tracker):
        for _ in range(10):
            tracker.add_fish_catch(FishKind.SMALL, capture_elapsed=1.0)
        ids = [a.id for a in tracker.check_achievements()]
        assert "combo_master" in ids
        assert "speed_demon" in ids

    def test_collector(self, tracker):
        for _ in range(5):
            tracker.add_power_up_bonus(PowerUpKind.BAIT)
        assert [a.id for a in tracker.check_achievements()] == ["collector"]
        assert tracker.score == 5 * 20 + 150


class TestSession:
    """Test high score and session records."""

    def test_finalize_raises_high_score(self, config):
        tracker = ScoreTracker(config, high_score=15)
        tracker.add_fish_catch(FishKind.MEDIUM)
        record = tracker.finalize()
        assert record.new_high_score
        assert record.high_score == 25
        assert tracker.high_score == 25
        assert record.catches_by_kind == {"medium": 1}

    def test_finalize_keeps_high_score(self, config):
        tracker = ScoreTracker(config, high_score=100)
        tracker.add_fish_catch(FishKind.SMALL)
        record = tracker.finalize()
        assert not record.new_high_score
        assert record.high_score == 100

    def test_reset(self, tracker):
        tracker.add_fish_catch(FishKind.SMALL)
        tracker.check_achievements()
        tracker.reset(high_score=500)
        assert tracker.score == 0
        assert tracker.combo == 0
        assert tracker.achievements == ()
        assert tracker.high_score == 500
