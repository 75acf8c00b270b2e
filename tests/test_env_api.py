"""
Tests for the Gymnasium environment wrapper.
"""

import numpy as np
import pytest

from cat_fishing.fishing_core.env_gym import ACTION_CAST, ACTION_NOOP, ACTION_REEL, FishingEnv


@pytest.fixture
def env():
    env = FishingEnv()
    yield env
    env.close()


class TestEnvAPI:
    """Test reset/step contract."""

    def test_reset(self, env):
        obs, info = env.reset(seed=42)
        assert env.observation_space.contains(obs)
        assert info["score"] == 0
        assert info["delta_score"] == 0
        assert info["events"] == []

    def test_step_tuple(self, env):
        env.reset(seed=42)
        obs, reward, terminated, truncated, info = env.step(ACTION_NOOP)
        assert env.observation_space.contains(obs)
        assert reward == 0.0
        assert not terminated
        assert not truncated
        assert "delta_score" in info
        assert info["action_accepted"]

    def test_cast_and_reel(self, env):
        env.reset(seed=42)
        _, _, _, _, info = env.step(ACTION_CAST)
        assert info["action_accepted"]
        assert info["hook_state"] == "dropping"
        _, _, _, _, info = env.step(ACTION_CAST)
        assert not info["action_accepted"]
        _, _, _, _, info = env.step(ACTION_REEL)
        assert info["action_accepted"]
        assert info["hook_state"] == "reeling"

    def test_numpy_action(self, env):
        env.reset(seed=42)
        _, _, _, _, info = env.step(np.array(ACTION_CAST))
        assert info["action_accepted"]

    @pytest.mark.parametrize("action", [-1, 3])
    def test_invalid_action(self, env, action):
        env.reset(seed=42)
        with pytest.raises(ValueError):
            env.step(action)

    def test_render_mode_rejected(self):
        with pytest.raises(ValueError):
            FishingEnv(render_mode="human")

    def test_bad_frame_dt(self):
        with pytest.raises(ValueError):
            FishingEnv(frame_dt=0.0)


class TestEpisodes:
    """Test whole episodes."""

    def test_time_up_terminates(self):
        env = FishingEnv(frame_dt=1.0)
        env.reset(seed=5)
        terminated = False
        steps = 0
        while not terminated and steps < 500:
            obs, reward, terminated, truncated, info = env.step(env.action_space.sample())
            assert reward == 0.0
            assert env.observation_space.contains(obs)
            steps += 1
        assert terminated
        assert info["terminated_reason"] == "time_up"
        assert "GameEnded" in info["events"]

    def test_max_steps_truncates(self):
        env = FishingEnv(max_steps=10)
        env.reset(seed=5)
        for _ in range(9):
            _, _, terminated, truncated, _ = env.step(ACTION_NOOP)
            assert not truncated
        _, _, terminated, truncated, info = env.step(ACTION_NOOP)
        assert truncated
        assert not terminated
        assert info["truncated_reason"] == "max_steps"

    def test_delta_score_sums_to_score(self):
        env = FishingEnv(frame_dt=1.0 / 15.0)
        env.reset(seed=11)
        env.action_space.seed(11)
        total = 0
        for _ in range(600):
            _, _, terminated, _, info = env.step(env.action_space.sample())
            total += info["delta_score"]
            if terminated:
                break
        assert total == info["score"]

    def test_reset_restarts(self, env):
        env.reset(seed=1)
        for _ in range(30):
            env.step(ACTION_CAST)
        obs, info = env.reset(seed=1)
        assert int(obs["score"]) == 0
        assert info["time_remaining"] == env.config.session.game_time

    def test_high_score_file(self, tmp_path):
        path = tmp_path / "scores.json"
        env = FishingEnv(frame_dt=1.0, high_score_path=str(path))
        env.reset(seed=2)
        env.game.scorer.add_fish_catch(env.game.catalog.fish_kinds[0])
        env.game.end_game()
        assert path.exists()
        second = FishingEnv(high_score_path=str(path))
        _, info = second.reset()
        assert info["high_score"] == 10
