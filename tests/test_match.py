"""Tests for the match lifecycle: reset, defeat, victory, progression."""
import asyncio
import json

from conftest import QUIET, Rolls
from duel.core.clock import VirtualClock
from duel.core.combat_system.ai import ComboSelector
from duel.core.combat_system.fsm import CombatEvent, CombatState, CombatStatus
from duel.core.combat_system.models import DeathCause, VisualState
from duel.core.loader.content_loader import OpponentRoster
from duel.core.match import MatchController
from duel.core.persistence import HighScoreStore, SaveError
from duel.npc.llm_adapter import TAUNT_FALLBACK, CombatNarrator


class FakeModel:
    def __init__(self, reply='{"say": "Kneel before me!"}'):
        self.reply = reply
        self.calls = []

    def __call__(self, system, user):
        self.calls.append((system, json.loads(user)))
        return self.reply


class BrokenStore:
    def load_high_score(self):
        return 0

    def save_high_score(self, candidate):
        raise SaveError("disk full")


def make_controller(tmp_path, rolls=0.9, model=None, scores=None):
    clock = VirtualClock()
    ctrl = MatchController(
        clock,
        QUIET,
        selector=ComboSelector(rng=Rolls()),
        roster=OpponentRoster(["General Ironwood", "The Crimson Spear"]),
        narrator=CombatNarrator(llm_call=model or FakeModel()),
        scores=scores or HighScoreStore(tmp_path / "highscore.json"),
        rng=Rolls(rolls),
    )
    return clock, ctrl


def test_input_before_start_is_ignored(tmp_path):
    _, ctrl = make_controller(tmp_path)
    assert ctrl.on_action('ATTACK') is None
    assert ctrl.on_release('BLOCK') is False
    assert ctrl.state is None


def test_start_builds_fresh_match_and_requests_taunt(tmp_path):
    async def scenario():
        clock, ctrl = make_controller(tmp_path)
        match = ctrl.start()
        assert match.state is CombatState.IDLE
        assert match.player.hp == 100 and match.enemy.hp == 200
        assert ctrl.opponent_name == "General Ironwood"
        assert ctrl.posture_loop.running and ctrl.ai.running
        snap = match.snapshot()
        assert snap['state'] == 'IDLE' and snap['enemy']['max_hp'] == 200
        assert match.timeline[-1]['event'] == 'match_started'
        assert await ctrl.taunt_task == "Kneel before me!"
        assert ctrl.taunt == "Kneel before me!"
        ctrl.close()

    asyncio.run(scenario())


def test_defeat_stops_loops_and_requests_advice(tmp_path):
    async def scenario():
        model = FakeModel('{"say": "Your rhythm betrayed you."}')
        clock, ctrl = make_controller(tmp_path, model=model)
        ctrl.start()
        await ctrl.taunt_task
        ctrl.match.player = ctrl.match.player.with_hp(40)
        ctrl.match.fire(CombatEvent.PLAYER_DEATH, clock.now(), cause=DeathCause.POSTURE_BROKEN)

        assert ctrl.state is CombatState.DEFEAT
        assert ctrl.death_count == 1
        assert not ctrl.posture_loop.running and not ctrl.ai.running
        assert await ctrl.advice_task == "Your rhythm betrayed you."
        assert ctrl.advice == "Your rhythm betrayed you."
        _, payload = model.calls[-1]
        assert payload["player_hp_pct"] == 40
        assert payload["enemy_hp_pct"] == 100
        assert payload["total_deaths"] == 1
        assert payload["last_death_reason"] == "posture broken"
        # Nessun input dopo la sconfitta
        assert ctrl.on_action('ATTACK') is None

    asyncio.run(scenario())


def test_victory_then_next_opponent(tmp_path):
    async def scenario():
        clock, ctrl = make_controller(tmp_path)
        ctrl.start()
        ctrl.match.status = CombatStatus(CombatState.DEATHBLOW_WINDOW)
        ctrl.on_action('ATTACK')
        assert ctrl.state is CombatState.VICTORY
        assert ctrl.victories == 1
        assert ctrl.match.enemy.visual is VisualState.DEAD

        match = ctrl.next_opponent()
        assert ctrl.opponent_index == 1
        assert match.opponent_index == 1
        assert match.enemy.max_hp == 250
        assert match.state is CombatState.IDLE
        assert ctrl.opponent_name == "The Crimson Spear"
        assert ctrl.high_score == 1
        assert HighScoreStore(tmp_path / "highscore.json").load_high_score() == 1
        ctrl.close()

    asyncio.run(scenario())


def test_next_opponent_before_victory_only_resets(tmp_path):
    async def scenario():
        clock, ctrl = make_controller(tmp_path)
        ctrl.start()
        ctrl.next_opponent()
        assert ctrl.opponent_index == 0
        ctrl.close()

    asyncio.run(scenario())


def test_reset_mid_combo_discards_old_continuations(tmp_path):
    async def scenario():
        clock, ctrl = make_controller(tmp_path, rolls=0.0)
        ctrl.start()
        await clock.advance(QUIET.ai_check_interval_ms + 100)
        assert ctrl.state is CombatState.ENEMY_WINDUP
        old_match, old_task = ctrl.match, ctrl.ai.combo_task

        fresh = ctrl.reset()
        assert fresh is not old_match
        assert fresh.state is CombatState.IDLE
        await clock.advance(1000)
        assert old_task.cancelled()
        assert fresh.state is CombatState.IDLE
        assert fresh.player.hp == 100
        assert old_match.player.hp == 100
        ctrl.close()

    asyncio.run(scenario())


def test_save_failure_is_not_fatal(tmp_path):
    async def scenario():
        clock, ctrl = make_controller(tmp_path, scores=BrokenStore())
        ctrl.start()
        ctrl.match.status = CombatStatus(CombatState.DEATHBLOW_WINDOW)
        ctrl.on_action('ATTACK')
        ctrl.next_opponent()
        assert ctrl.high_score == 1
        assert ctrl.state is CombatState.IDLE
        ctrl.close()

    asyncio.run(scenario())


def test_disabled_narrator_uses_fallback_taunt(tmp_path):
    async def scenario():
        clock = VirtualClock()
        ctrl = MatchController(clock, QUIET, narrator=CombatNarrator(llm_call=None), rng=Rolls(0.9))
        ctrl.start()
        assert await ctrl.taunt_task == TAUNT_FALLBACK
        ctrl.close()

    asyncio.run(scenario())


def test_lethal_strike_through_the_engine(tmp_path):
    async def scenario():
        clock, ctrl = make_controller(tmp_path, rolls=0.0)
        ctrl.start()
        ctrl.match.player = ctrl.match.player.with_hp(5)
        await clock.advance(QUIET.ai_check_interval_ms + 1300)
        assert ctrl.state is CombatState.DEFEAT
        assert ctrl.death_count == 1
        assert ctrl.match.player.visual is VisualState.DEAD
        # Lama abbassata: nessuna posa d'attacco congelata dopo la sconfitta
        assert ctrl.match.enemy.visual is VisualState.IDLE
        await ctrl.advice_task
        ctrl.close()

    asyncio.run(scenario())


def test_visuals_are_left_to_the_engine(tmp_path):
    async def scenario():
        clock, ctrl = make_controller(tmp_path)
        ctrl.start()
        ctrl.match.fire(CombatEvent.PLAYER_DEATH, clock.now())
        assert ctrl.match.player.visual is VisualState.IDLE
        await ctrl.advice_task
        ctrl.close()

    asyncio.run(scenario())


def test_synchronous_ticks_without_event_loop(tmp_path):
    clock = VirtualClock()
    ctrl = MatchController(clock, QUIET, narrator=CombatNarrator(llm_call=None), rng=Rolls(0.0))
    match = ctrl.start()
    match.enemy = match.enemy.with_posture(60)
    clock.tick(QUIET.ai_check_interval_ms * 2 + 10)
    assert match.state is CombatState.IDLE
    assert not match.combo_in_flight
    assert ctrl.ai.combo_task is None
    assert match.enemy.posture < 60
    ctrl.close()
