"""Finite State Machine for the duel.

This module holds the single transition table of the encounter. Every phase
change goes through next_status(); a continuation that resumes after the
match has moved on simply gets None back and stops.

States: IDLE, ENEMY_WINDUP, ENEMY_ATTACKING, ENEMY_RECOVERING,
DEATHBLOW_WINDOW, VICTORY, DEFEAT
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .models import AttackIntent, DeathCause


class CombatState(Enum):
    IDLE = "IDLE"
    ENEMY_WINDUP = "ENEMY_WINDUP"  # enemy is preparing to hit
    ENEMY_ATTACKING = "ENEMY_ATTACKING"  # the active hit window
    ENEMY_RECOVERING = "ENEMY_RECOVERING"
    DEATHBLOW_WINDOW = "DEATHBLOW_WINDOW"  # enemy broken
    VICTORY = "VICTORY"
    DEFEAT = "DEFEAT"

    @property
    def terminal(self) -> bool:
        return self in (CombatState.VICTORY, CombatState.DEFEAT)


class CombatEvent(Enum):
    BEGIN_WINDUP = "begin_windup"
    STRIKE = "strike"
    RECOVER = "recover"
    SETTLE = "settle"
    POSTURE_BREAK = "posture_break"
    PLAYER_DEATH = "player_death"
    EXECUTE = "execute"


S = CombatState
E = CombatEvent

TRANSITIONS: Dict[Tuple[CombatState, CombatEvent], CombatState] = {
    (S.IDLE, E.BEGIN_WINDUP): S.ENEMY_WINDUP,
    (S.ENEMY_WINDUP, E.STRIKE): S.ENEMY_ATTACKING,
    (S.ENEMY_ATTACKING, E.RECOVER): S.ENEMY_RECOVERING,
    (S.ENEMY_RECOVERING, E.SETTLE): S.IDLE,
    (S.DEATHBLOW_WINDOW, E.EXECUTE): S.VICTORY,
}
for _live in (S.IDLE, S.ENEMY_WINDUP, S.ENEMY_ATTACKING, S.ENEMY_RECOVERING):
    TRANSITIONS[(_live, E.POSTURE_BREAK)] = S.DEATHBLOW_WINDOW
for _state in S:
    if not _state.terminal:
        TRANSITIONS[(_state, E.PLAYER_DEATH)] = S.DEFEAT

# Stati in cui esiste un attacco nemico in volo
INTENT_STATES = frozenset({S.ENEMY_WINDUP, S.ENEMY_ATTACKING})


@dataclass(frozen=True)
class CombatStatus:
    """Tagged state: the phase plus its payload.

    intent is set only while an enemy attack is in flight, cause only on DEFEAT.
    """
    state: CombatState = CombatState.IDLE
    intent: Optional[AttackIntent] = None
    cause: Optional[DeathCause] = None


def can_fire(status: CombatStatus, event: CombatEvent, expect_intent: Optional[AttackIntent] = None) -> bool:
    """Check if event is legal from status.

    Args:
        status: Current status
        event: Event to apply
        expect_intent: If given, the in-flight intent must be this very object

    Returns:
        True if the transition exists
    """
    if (status.state, event) not in TRANSITIONS:
        return False
    if expect_intent is not None and status.intent is not expect_intent:
        return False
    return True


def next_status(status: CombatStatus, event: CombatEvent, intent: Optional[AttackIntent] = None,
                cause: Optional[DeathCause] = None,
                expect_intent: Optional[AttackIntent] = None) -> Optional[CombatStatus]:
    """Apply event to status.

    Returns:
        The new CombatStatus, or None if the transition is not legal
    """
    if not can_fire(status, event, expect_intent):
        return None
    target = TRANSITIONS[(status.state, event)]
    if event is CombatEvent.BEGIN_WINDUP:
        if intent is None:
            raise ValueError("BEGIN_WINDUP requires an AttackIntent")
        return CombatStatus(target, intent=intent)
    if target in INTENT_STATES:
        return CombatStatus(target, intent=status.intent)
    if target is CombatState.DEFEAT:
        return CombatStatus(target, cause=cause or DeathCause.CUT_DOWN)
    return CombatStatus(target)
