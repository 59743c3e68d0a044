"""Posture recovery loop: posture relaxes toward zero at a fixed tick."""
from __future__ import annotations
from typing import TYPE_CHECKING, Optional

from ..clock import Clock, TimerHandle
from .fsm import CombatState
from .models import CombatTuning, Entity

if TYPE_CHECKING:  # pragma: no cover
    from ..state import MatchState


class PostureRecoveryLoop:
    """Decays both combatants' posture for the whole life of a match.

    Runs concurrently with attack resolution; only victory/defeat and the
    hit-stop freeze suspend it.
    """

    def __init__(self, match: "MatchState", clock: Clock, tuning: CombatTuning):
        self.match = match
        self.clock = clock
        self.tuning = tuning
        self._handle: Optional[TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    def start(self):
        if self.running:
            return
        self._handle = self.clock.call_every(self.tuning.posture_tick_ms, self.tick)

    def stop(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def recovery_for(self, entity: Entity, blocking: bool = False) -> float:
        """Posture recovered by entity in one tick."""
        rate = self.tuning.posture_recovery_rate
        if blocking:
            rate *= self.tuning.block_recovery_multiplier
        if self.tuning.health_scaled_recovery:
            # Wounded combatants recover slower
            rate *= entity.hp_ratio ** 2
        return rate

    def tick(self):
        match = self.match
        if match.is_over or match.is_frozen(self.clock.now()):
            return
        player, enemy = match.player, match.enemy
        match.player = player.relaxed(self.recovery_for(player, blocking=match.intent.is_block_held))
        if match.state is CombatState.DEATHBLOW_WINDOW:
            # Broken enemy stays pinned at max until the deathblow lands
            match.enemy = enemy.with_posture(enemy.max_posture)
        else:
            match.enemy = enemy.relaxed(self.recovery_for(enemy))
