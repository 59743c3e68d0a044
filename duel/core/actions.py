"""Player input dispatcher: press/release actions -> engine transitions.

Press actions are ignored while the match is over or frozen by hit-stop.
Releases are always honoured: a held block must be releasable at any time.
"""
from __future__ import annotations
from typing import Optional, Union

from .clock import Clock
from .combat_system.models import CombatResult, CombatTuning, PlayerAction, VisualState
from .combat_system.resolver import AttackResolver
from .state import MatchState


class ActionError(Exception):
    pass


def _parse_action(action: Union[PlayerAction, str]) -> PlayerAction:
    if isinstance(action, PlayerAction):
        return action
    try:
        return PlayerAction(str(action).strip().upper())
    except ValueError:
        raise ActionError(f"Unknown action: {action!r}") from None


class ActionDispatcher:
    def __init__(self, match: MatchState, resolver: AttackResolver, clock: Clock, tuning: CombatTuning):
        self.match = match
        self.resolver = resolver
        self.clock = clock
        self.tuning = tuning

    def accepts_input(self) -> bool:
        return not self.match.is_over and not self.match.is_frozen(self.clock.now())

    def on_action(self, action: Union[PlayerAction, str]) -> Optional[CombatResult]:
        """Handle a press. Only ATTACK returns a CombatResult."""
        action = _parse_action(action)
        if not self.accepts_input():
            return None
        if action is PlayerAction.BLOCK:
            self._press_block()
        elif action is PlayerAction.JUMP:
            self._jump()
        elif action is PlayerAction.ATTACK:
            return self.resolver.resolve_player_attack()
        return None

    def on_release(self, action: Union[PlayerAction, str]) -> bool:
        """Handle a release. Returns False if nothing was held."""
        action = _parse_action(action)
        if action is not PlayerAction.BLOCK or not self.match.intent.is_block_held:
            return False
        self.match.intent.is_block_held = False
        player = self.match.player
        if player.visual is VisualState.DEFLECT:
            self.match.player = player.with_visual(VisualState.IDLE)
        return True

    def _press_block(self):
        intent = self.match.intent
        # Key auto-repeat must not restart the parry window
        if not intent.is_block_held:
            intent.is_block_held = True
            intent.block_held_since = self.clock.now()
        player = self.match.player
        if not player.is_jumping:
            self.match.player = player.with_visual(VisualState.DEFLECT)

    def _jump(self):
        if self.match.player.is_jumping:
            return
        self.resolver.flash('player', VisualState.JUMPING, self.tuning.jump_duration_ms)
