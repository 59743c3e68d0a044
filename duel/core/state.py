"""Match state container for runtime mutable data.

One MatchState exists per match instance and is shared by reference with
every scheduled callback (resolver, AI, posture loop, dispatcher). A reset
replaces it wholesale.
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .clock import TimerHandle
from .combat_system.fsm import CombatEvent, CombatState, CombatStatus, next_status
from .combat_system.models import AttackIntent, DeathCause, Entity

Listener = Callable[[CombatStatus, CombatStatus], None]


@dataclass
class InputIntentState:
    """Continuous player intent, writable at any time (press/release)."""
    is_block_held: bool = False
    block_held_since: float = 0.0


@dataclass
class MatchState:
    opponent_index: int
    player: Entity
    enemy: Entity
    status: CombatStatus = field(default_factory=CombatStatus)
    intent: InputIntentState = field(default_factory=InputIntentState)
    # Hit-stop: fino a questo istante (ms del clock) loop e input sono congelati
    frozen_until: float = float("-inf")
    combo_in_flight: bool = False
    death_cause: Optional[DeathCause] = None
    timeline: List[Dict[str, Any]] = field(default_factory=list)
    timers: List[TimerHandle] = field(default_factory=list)
    listeners: List[Listener] = field(default_factory=list)

    @property
    def state(self) -> CombatState:
        return self.status.state

    @property
    def is_over(self) -> bool:
        return self.status.state.terminal

    @property
    def attack_intent(self) -> Optional[AttackIntent]:
        return self.status.intent

    def fire(self, event: CombatEvent, now: float, intent: Optional[AttackIntent] = None,
             cause: Optional[DeathCause] = None, expect_intent: Optional[AttackIntent] = None) -> bool:
        """Apply a state machine event. Returns False (and changes nothing) if illegal."""
        old = self.status
        new = next_status(old, event, intent=intent, cause=cause, expect_intent=expect_intent)
        if new is None:
            logging.debug(f"Stale transition ignored: {event.value} from {old.state.value}")
            return False
        self.status = new
        if new.state is CombatState.DEFEAT:
            self.death_cause = new.cause
        self.emit('transition', now, event=event.value, from_state=old.state.value, to_state=new.state.value)
        for listener in list(self.listeners):
            listener(old, new)
        return True

    def freeze(self, now: float, ms: float):
        """Start (or extend) a hit-stop window."""
        if ms <= 0:
            return
        self.frozen_until = max(self.frozen_until, now + ms)

    def is_frozen(self, now: float) -> bool:
        return now < self.frozen_until

    def track(self, handle: TimerHandle) -> TimerHandle:
        """Remember a transient timer so a reset can cancel it."""
        self.timers = [t for t in self.timers if t.active]
        self.timers.append(handle)
        return handle

    def cancel_timers(self):
        for handle in self.timers:
            handle.cancel()
        self.timers.clear()

    def emit(self, event_type: str, now: float, **payload):
        """Append a structured combat event to the timeline.

        Ogni evento è un dict:
          { 'type': 'combat', 'event': event_type, 'time': epoch_sec,
            'clock_ms': clock time, **payload }
        """
        evt = {
            'type': 'combat',
            'event': event_type,
            'time': time.time(),
            'clock_ms': now,
        }
        evt.update(payload)
        self.timeline.append(evt)

    def snapshot(self) -> Dict[str, Any]:
        """Plain dict view for display layers."""
        return {
            'opponent_index': self.opponent_index,
            'state': self.status.state.value,
            'attack_type': self.status.intent.attack_type.value if self.status.intent else None,
            'player': _entity_dict(self.player),
            'enemy': _entity_dict(self.enemy),
            'blocking': self.intent.is_block_held,
            'death_cause': self.death_cause.value if self.death_cause else None,
        }


def _entity_dict(entity: Entity) -> Dict[str, Any]:
    return {
        'hp': entity.hp,
        'max_hp': entity.max_hp,
        'posture': entity.posture,
        'max_posture': entity.max_posture,
        'state': entity.visual.value,
        'posture_critical': entity.is_posture_critical,
    }
