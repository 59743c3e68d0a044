"""Core combat resolution: telegraph -> strike -> resolve -> recover.

Every suspension point in execute_attack_step re-validates the match state
through the state machine before touching anything, so a continuation that
wakes up after a defeat, a posture break or a reset does nothing.

RNG iniettabile per determinismo test: set_rng(r).
"""
from __future__ import annotations
import logging
import random
from typing import TYPE_CHECKING, Optional

from ..clock import Clock
from .fsm import CombatEvent, CombatState
from .models import (
    AttackIntent, AttackType, CombatResult, CombatTuning, DeathCause, Outcome, VisualState
)

if TYPE_CHECKING:  # pragma: no cover
    from ..state import MatchState

# Stati in cui un attacco del giocatore va sempre a segno
COUNTER_STATES = frozenset({CombatState.ENEMY_WINDUP, CombatState.ENEMY_RECOVERING})


class AttackResolver:
    """Owns damage application for enemy attack steps and player attacks."""

    def __init__(self, match: "MatchState", clock: Clock, tuning: CombatTuning,
                 rng: Optional[random.Random] = None):
        self.match = match
        self.clock = clock
        self.tuning = tuning
        self._rng = rng

    def set_rng(self, rng: random.Random):
        self._rng = rng

    def windup_ms(self) -> float:
        """Telegraph duration; stronger opponents are faster but never below windup_fast_ms."""
        t = self.tuning
        speed_modifier = self.match.opponent_index * t.windup_step_ms
        return max(t.windup_fast_ms, t.windup_base_ms - speed_modifier)

    # ------------------------------------------------------------------
    # Enemy attack step
    # ------------------------------------------------------------------

    async def execute_attack_step(self, attack_type: AttackType) -> Optional[CombatResult]:
        """Run one full windup -> strike -> resolve -> recovery cycle.

        Returns:
            The CombatResult, or None if the step was aborted because the
            match moved on while it was suspended
        """
        match = self.match
        intent = AttackIntent(attack_type, self.clock.now())
        if not match.fire(CombatEvent.BEGIN_WINDUP, intent.timestamp, intent=intent):
            return None

        await self.clock.sleep(self.windup_ms())
        if not match.fire(CombatEvent.STRIKE, self.clock.now(), expect_intent=intent):
            return None
        match.enemy = match.enemy.with_visual(VisualState.ATTACK)

        await self.clock.sleep(self.tuning.strike_ms)
        result = self.resolve_hit(intent)
        if result is None:
            return None

        if match.fire(CombatEvent.RECOVER, self.clock.now(), expect_intent=intent):
            if match.enemy.visual is VisualState.ATTACK:
                match.enemy = match.enemy.with_visual(VisualState.IDLE)
            staggered = result.outcome in (Outcome.PERFECT_PARRY, Outcome.JUMP_COUNTER)
            await self.clock.sleep(self.tuning.recovery_parried_ms if staggered else self.tuning.recovery_ms)
            match.fire(CombatEvent.SETTLE, self.clock.now())
        elif match.enemy.visual is VisualState.ATTACK:
            # The strike ended the match: lower the blade
            match.enemy = match.enemy.with_visual(VisualState.IDLE)
        return result

    def resolve_hit(self, intent: AttackIntent) -> Optional[CombatResult]:
        """Resolve the strike of intent at this instant.

        Reads block/jump intent as it is right now. Runs at most once per
        intent: anything but ENEMY_ATTACKING with this very intent is stale.
        """
        match = self.match
        if match.state is not CombatState.ENEMY_ATTACKING or match.attack_intent is not intent:
            return None

        t = self.tuning
        now = self.clock.now()
        attack_type = intent.attack_type
        player = match.player
        blocking = match.intent.is_block_held
        hold = now - match.intent.block_held_since if blocking else None
        in_parry_window = hold is not None and hold < t.parry_window_ms

        result = CombatResult(outcome=Outcome.PLAYER_HIT, attack_type=attack_type, hold_duration_ms=hold)

        if attack_type is AttackType.PERILOUS_SWEEP:
            # Unblockable: only a jump answers it
            if player.is_jumping:
                self._jump_counter(result)
            else:
                self._player_hit(result)
        elif attack_type is AttackType.PERILOUS_THRUST:
            if in_parry_window:
                self._perfect_parry(result)
            else:
                self._player_hit(result)
        elif blocking:
            if in_parry_window:
                self._perfect_parry(result)
            else:
                self._chip_block(result)
        else:
            self._player_hit(result)

        self._check_end(result, now)
        result.state_after = match.state
        result.events.append({
            'type': 'attack_resolved',
            'attack_type': attack_type.value,
            'outcome': result.outcome.value,
            'player_damage': result.player_damage,
            'player_posture_damage': result.player_posture_damage,
            'enemy_posture_damage': result.enemy_posture_damage,
            'hold_duration_ms': hold,
            'state_after': match.state.value,
        })
        match.emit('attack_resolved', now, attack_type=attack_type.value, outcome=result.outcome.value)
        logging.debug(f"Resolved {attack_type.value}: {result.outcome.value} -> {match.state.value}")
        return result

    def _jump_counter(self, result: CombatResult):
        t = self.tuning
        self.match.enemy = self.match.enemy.stressed(t.jump_counter_posture).with_visual(VisualState.HIT)
        result.outcome = Outcome.JUMP_COUNTER
        result.enemy_posture_damage = t.jump_counter_posture
        result.description.append("Leapt over the sweep and kicked off the blade")
        self._hit_stop(t.hit_stop_jump_counter_ms)

    def _perfect_parry(self, result: CombatResult):
        t = self.tuning
        match = self.match
        match.enemy = match.enemy.stressed(t.perfect_parry_posture).with_visual(VisualState.HIT)
        match.player = match.player.with_visual(VisualState.DEFLECT)
        result.outcome = Outcome.PERFECT_PARRY
        result.enemy_posture_damage = t.perfect_parry_posture
        result.description.append("Perfect deflection")
        self._hit_stop(t.hit_stop_parry_ms)

    def _chip_block(self, result: CombatResult):
        t = self.tuning
        self.match.player = self.match.player.stressed(t.block_chip_posture).with_visual(VisualState.DEFLECT)
        result.outcome = Outcome.BLOCKED
        result.player_posture_damage = t.block_chip_posture
        result.description.append("Blocked, posture strained")
        self._hit_stop(t.hit_stop_block_ms)

    def _player_hit(self, result: CombatResult):
        t = self.tuning
        damage = t.attack_damage(result.attack_type)
        self.match.player = self.match.player.damaged(damage).stressed(t.hit_posture)
        self.flash('player', VisualState.HIT, t.hit_flinch_ms)
        result.outcome = Outcome.PLAYER_HIT
        result.player_damage = damage
        result.player_posture_damage = t.hit_posture
        if result.attack_type.perilous:
            result.description.append(f"Perilous {result.attack_type.value.split('_')[-1].lower()} lands: {damage:.0f} damage")
        else:
            result.description.append(f"Struck: {damage:.0f} damage")
        self._hit_stop(t.hit_stop_player_hit_ms)

    def _check_end(self, result: CombatResult, now: float):
        """Death check first: it is authoritative over a simultaneous posture break."""
        match = self.match
        player = match.player
        if player.is_dead or player.is_broken:
            cause = DeathCause.CUT_DOWN if player.is_dead else DeathCause.POSTURE_BROKEN
            match.player = player.with_visual(VisualState.DEAD)
            match.fire(CombatEvent.PLAYER_DEATH, now, cause=cause)
            result.description.append(f"Defeat: {cause.value}")
        elif match.enemy.is_broken:
            match.fire(CombatEvent.POSTURE_BREAK, now)
            result.description.append("Posture broken: deathblow")

    # ------------------------------------------------------------------
    # Player attack
    # ------------------------------------------------------------------

    def resolve_player_attack(self) -> Optional[CombatResult]:
        """Resolve an ATTACK press against the current phase."""
        match = self.match
        if match.is_over:
            return None
        t = self.tuning
        now = self.clock.now()
        state = match.state

        if state is CombatState.DEATHBLOW_WINDOW:
            match.player = match.player.with_visual(VisualState.ATTACK)
            match.enemy = match.enemy.with_visual(VisualState.DEAD)
            self._hit_stop(t.hit_stop_deathblow_ms)
            match.fire(CombatEvent.EXECUTE, now)
            result = CombatResult(outcome=Outcome.EXECUTION, state_after=match.state)
            result.description.append("Deathblow")
            match.emit('deathblow', now)
            return result

        self.flash('player', VisualState.ATTACK, t.attack_flash_ms)
        result = CombatResult(outcome=Outcome.ENEMY_HIT)
        rng = self._rng or random
        if state in COUNTER_STATES:
            self._enemy_hit(result, Outcome.COUNTER_HIT)
        elif rng.random() < t.enemy_deflect_chance:
            match.enemy = match.enemy.stressed(t.enemy_block_posture)
            self.flash('enemy', VisualState.DEFLECT, t.attack_flash_ms)
            result.outcome = Outcome.ENEMY_DEFLECTED
            result.enemy_posture_damage = t.enemy_block_posture
            result.description.append("The enemy deflects")
            self._hit_stop(t.hit_stop_enemy_block_ms)
        else:
            self._enemy_hit(result, Outcome.ENEMY_HIT)

        enemy = match.enemy
        if enemy.is_dead or enemy.is_broken:
            match.enemy = enemy.with_posture(enemy.max_posture)
            if match.fire(CombatEvent.POSTURE_BREAK, now):
                result.description.append("Posture broken: deathblow")

        result.state_after = match.state
        result.events.append({
            'type': 'player_attack',
            'outcome': result.outcome.value,
            'enemy_damage': result.enemy_damage,
            'enemy_posture_damage': result.enemy_posture_damage,
            'state_before': state.value,
            'state_after': match.state.value,
        })
        match.emit('player_attack', now, outcome=result.outcome.value)
        return result

    def _enemy_hit(self, result: CombatResult, outcome: Outcome):
        t = self.tuning
        self.match.enemy = self.match.enemy.damaged(t.player_attack_damage).stressed(t.enemy_hit_posture)
        self.flash('enemy', VisualState.HIT, t.attack_flash_ms)
        result.outcome = outcome
        result.enemy_damage = t.player_attack_damage
        result.enemy_posture_damage = t.enemy_hit_posture
        result.description.append("Counter hit" if outcome is Outcome.COUNTER_HIT else "Clean hit")
        self._hit_stop(t.hit_stop_strike_ms)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def flash(self, who: str, visual: VisualState, ms: float):
        """Show visual on 'player' or 'enemy', reverting to IDLE after ms if unchanged."""
        match = self.match
        setattr(match, who, getattr(match, who).with_visual(visual))

        def _revert():
            current = getattr(match, who)
            if current.visual is visual:
                setattr(match, who, current.with_visual(VisualState.IDLE))

        match.track(self.clock.call_later(ms, _revert))

    def _hit_stop(self, ms: float):
        if self.tuning.hit_stop_enabled:
            self.match.freeze(self.clock.now(), ms)
