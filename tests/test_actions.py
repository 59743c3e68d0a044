"""Tests for the input dispatcher."""
import pytest

from conftest import QUIET, Rolls, build_match
from duel.core.actions import ActionDispatcher, ActionError
from duel.core.combat_system.fsm import CombatEvent
from duel.core.combat_system.models import CombatTuning, Outcome, PlayerAction, VisualState


def make_dispatcher(tuning=QUIET, rng=None):
    clock, match, resolver = build_match(tuning=tuning, rng=rng)
    return clock, match, ActionDispatcher(match, resolver, clock, tuning)


def test_block_press_and_release():
    clock, match, dispatcher = make_dispatcher()
    clock.tick(40)
    dispatcher.on_action(PlayerAction.BLOCK)
    assert match.intent.is_block_held
    assert match.intent.block_held_since == 40
    assert match.player.visual is VisualState.DEFLECT
    assert dispatcher.on_release('block') is True
    assert not match.intent.is_block_held
    assert match.player.visual is VisualState.IDLE


def test_release_is_idempotent():
    clock, match, dispatcher = make_dispatcher()
    assert dispatcher.on_release(PlayerAction.BLOCK) is False
    dispatcher.on_action(PlayerAction.BLOCK)
    assert dispatcher.on_release(PlayerAction.BLOCK) is True
    assert dispatcher.on_release(PlayerAction.BLOCK) is False
    assert dispatcher.on_release(PlayerAction.JUMP) is False


def test_repeated_block_press_keeps_original_timestamp():
    clock, match, dispatcher = make_dispatcher()
    dispatcher.on_action('BLOCK')
    clock.tick(100)
    dispatcher.on_action('BLOCK')
    assert match.intent.block_held_since == 0


def test_jump_lasts_its_duration_and_is_not_restarted():
    clock, match, dispatcher = make_dispatcher()
    dispatcher.on_action('JUMP')
    assert match.player.is_jumping
    clock.tick(500)
    dispatcher.on_action('JUMP')
    clock.tick(250)
    assert not match.player.is_jumping


def test_block_does_not_cancel_a_jump():
    clock, match, dispatcher = make_dispatcher()
    dispatcher.on_action('JUMP')
    dispatcher.on_action('BLOCK')
    assert match.intent.is_block_held
    assert match.player.is_jumping


def test_attack_returns_result():
    clock, match, dispatcher = make_dispatcher(rng=Rolls(0.99))
    result = dispatcher.on_action('attack')
    assert result.outcome is Outcome.ENEMY_HIT


def test_unknown_action_raises():
    clock, match, dispatcher = make_dispatcher()
    with pytest.raises(ActionError):
        dispatcher.on_action('dodge')


def test_presses_ignored_during_hit_stop_but_release_honoured():
    tuning = CombatTuning(hit_stop_enabled=True)
    clock, match, dispatcher = make_dispatcher(tuning=tuning, rng=Rolls(0.99))
    dispatcher.on_action('BLOCK')
    dispatcher.on_release('BLOCK')
    dispatcher.on_action('ATTACK')
    assert match.is_frozen(clock.now())
    assert dispatcher.on_action('ATTACK') is None
    dispatcher.on_action('BLOCK')
    assert not match.intent.is_block_held

    match.intent.is_block_held = True
    assert dispatcher.on_release('BLOCK') is True
    clock.tick(tuning.hit_stop_strike_ms)
    assert dispatcher.on_action('ATTACK') is not None


def test_input_ignored_after_match_end():
    clock, match, dispatcher = make_dispatcher()
    match.fire(CombatEvent.PLAYER_DEATH, clock.now())
    assert dispatcher.on_action('ATTACK') is None
    dispatcher.on_action('JUMP')
    assert not match.player.is_jumping
