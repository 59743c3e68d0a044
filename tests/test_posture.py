"""Tests for the posture recovery loop."""
import asyncio

import pytest

from conftest import QUIET, build_match
from duel.core.combat_system.fsm import CombatEvent, CombatState, CombatStatus
from duel.core.combat_system.models import AttackType, CombatTuning
from duel.core.combat_system.posture import PostureRecoveryLoop

TICK = QUIET.posture_tick_ms


def test_recovery_rate_scaling():
    clock, match, _ = build_match()
    loop = PostureRecoveryLoop(match, clock, QUIET)
    healthy = match.player
    assert loop.recovery_for(healthy) == pytest.approx(0.1)
    assert loop.recovery_for(healthy, blocking=True) == pytest.approx(0.15)
    assert loop.recovery_for(healthy.with_hp(50)) == pytest.approx(0.025)
    flat = PostureRecoveryLoop(match, clock, CombatTuning(health_scaled_recovery=False))
    assert flat.recovery_for(healthy.with_hp(50)) == pytest.approx(0.1)


def test_both_sides_recover_each_tick():
    clock, match, _ = build_match()
    match.player = match.player.with_posture(50)
    match.enemy = match.enemy.with_posture(60)
    loop = PostureRecoveryLoop(match, clock, QUIET)
    loop.start()
    clock.tick(TICK * 10 + 1)
    assert match.player.posture == pytest.approx(49.0)
    assert match.enemy.posture == pytest.approx(59.0)


def test_posture_never_goes_negative():
    clock, match, _ = build_match()
    match.player = match.player.with_posture(0.05)
    PostureRecoveryLoop(match, clock, QUIET).start()
    clock.tick(TICK * 3 + 1)
    assert match.player.posture == 0


def test_holding_block_recovers_faster():
    clock, match, _ = build_match()
    match.player = match.player.with_posture(50)
    match.intent.is_block_held = True
    PostureRecoveryLoop(match, clock, QUIET).start()
    clock.tick(TICK * 10 + 1)
    assert match.player.posture == pytest.approx(48.5)


def test_hit_stop_freezes_recovery():
    clock, match, _ = build_match()
    match.player = match.player.with_posture(50)
    PostureRecoveryLoop(match, clock, QUIET).start()
    match.freeze(clock.now(), 1000)
    clock.tick(500)
    assert match.player.posture == 50
    clock.tick(600)
    assert match.player.posture < 50


def test_broken_enemy_stays_pinned_in_deathblow_window():
    clock, match, _ = build_match()
    match.enemy = match.enemy.with_posture(match.enemy.max_posture)
    match.status = CombatStatus(CombatState.DEATHBLOW_WINDOW)
    PostureRecoveryLoop(match, clock, QUIET).start()
    clock.tick(5000)
    assert match.enemy.posture == match.enemy.max_posture
    assert match.state is CombatState.DEATHBLOW_WINDOW


def test_no_recovery_once_match_is_over():
    clock, match, _ = build_match()
    match.player = match.player.with_posture(50)
    loop = PostureRecoveryLoop(match, clock, QUIET)
    loop.start()
    match.fire(CombatEvent.PLAYER_DEATH, clock.now())
    clock.tick(1000)
    assert match.player.posture == 50
    loop.stop()
    assert not loop.running


def test_recovery_keeps_running_through_enemy_attack():
    async def scenario():
        clock, match, resolver = build_match()
        match.enemy = match.enemy.with_posture(50)
        PostureRecoveryLoop(match, clock, QUIET).start()
        task = asyncio.get_running_loop().create_task(resolver.execute_attack_step(AttackType.NORMAL))
        await clock.advance(500)
        assert match.state is CombatState.ENEMY_WINDUP
        assert match.enemy.posture < 50
        windup_posture = match.enemy.posture
        await clock.advance(500)
        assert match.state is CombatState.ENEMY_ATTACKING
        assert match.enemy.posture < windup_posture
        await clock.advance(2000)
        await task

    asyncio.run(scenario())
