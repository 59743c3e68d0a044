"""Tests for env-driven configuration and match bootstrap."""
import asyncio

import config
from conftest import Rolls
from duel.core.clock import VirtualClock
from duel.core.combat_system.fsm import CombatState
from duel.core.persistence import HighScoreStore
from duel.npc.llm_adapter import CombatNarrator
from game.bootstrap import load_match


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("SD_TEST_INT", "42")
    monkeypatch.setenv("SD_TEST_BAD", "abc")
    monkeypatch.setenv("SD_TEST_LOW", "-3")
    assert config._get_int_env("SD_TEST_INT", 1) == 42
    assert config._get_int_env("SD_TEST_BAD", 7) == 7
    assert config._get_int_env("SD_TEST_LOW", 7, minval=0) == 7
    assert config._get_float_env("SD_TEST_INT", 0.5) == 42.0
    monkeypatch.setenv("SD_TEST_FLAG", "Yes")
    assert config._get_bool_env("SD_TEST_FLAG", False) is True
    assert config._get_bool_env("SD_TEST_MISSING", True) is True


def test_ollama_disabled_by_default(monkeypatch):
    monkeypatch.delenv("SD_OLLAMA_ENABLED", raising=False)
    assert config.get_ollama_enabled() is False
    assert not CombatNarrator().enabled


def test_ollama_settings_are_clamped(monkeypatch):
    monkeypatch.setenv("SD_OLLAMA_TEMPERATURE", "9")
    monkeypatch.setenv("SD_OLLAMA_MAX_TOKENS", "2")
    assert config.get_ollama_temperature() == 2.0
    assert config.get_ollama_max_tokens() == 60


def test_log_level_from_env(monkeypatch):
    monkeypatch.setenv("SD_LOG_LEVEL", " debug ")
    assert config.get_log_level() == "DEBUG"


def test_load_match_wires_bundled_content(tmp_path):
    async def scenario():
        ctrl = load_match(clock=VirtualClock(), narrator=CombatNarrator(llm_call=None),
                          scores=HighScoreStore(tmp_path / "hs.json"), rng=Rolls(0.9))
        assert ctrl.selector.max_tier == 4
        assert len(ctrl.roster.names) == 5
        match = ctrl.start()
        assert match.state is CombatState.IDLE
        assert ctrl.opponent_name == "General Ironwood"
        ctrl.close()

    asyncio.run(scenario())
