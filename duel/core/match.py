"""Match / session controller.

Owns the match lifecycle: start, reset, victory progression, defeat handling
(advice request, death counter, high score) and the wiring of resolver,
enemy AI, posture loop and input dispatcher around one MatchState.

Public API:
- start() / reset(opponent_index) / next_opponent() / close()
- on_action(action) / on_release(action)
- state, advice, taunt, death_count, victories, high_score
"""
from __future__ import annotations
import asyncio
import logging
import random
from typing import Optional, Set, Union

from .actions import ActionDispatcher
from .clock import Clock
from .combat_system.ai import ComboSelector, EnemyAI
from .combat_system.fsm import CombatState, CombatStatus
from .combat_system.models import (
    CombatResult, CombatTuning, PlayerAction, new_enemy, new_player
)
from .combat_system.posture import PostureRecoveryLoop
from .combat_system.resolver import AttackResolver
from .loader.content_loader import OpponentRoster
from .persistence import HighScoreStore, SaveError
from .state import MatchState
from ..npc.llm_adapter import CombatNarrator


class MatchController:
    def __init__(self, clock: Clock, tuning: Optional[CombatTuning] = None,
                 selector: Optional[ComboSelector] = None, roster: Optional[OpponentRoster] = None,
                 narrator: Optional[CombatNarrator] = None, scores: Optional[HighScoreStore] = None,
                 rng: Optional[random.Random] = None):
        self.clock = clock
        self.tuning = tuning or CombatTuning()
        self.rng = rng
        self.selector = selector or ComboSelector(max_tier=self.tuning.max_difficulty_tier, rng=rng)
        self.roster = roster or OpponentRoster()
        self.narrator = narrator or CombatNarrator(llm_call=None)
        self.scores = scores

        self.opponent_index = 0
        self.death_count = 0
        self.victories = 0
        self.high_score = scores.load_high_score() if scores else 0
        self.advice: str = ""
        self.taunt: str = ""
        self.opponent_name: str = ""

        self.match: Optional[MatchState] = None
        self.resolver: Optional[AttackResolver] = None
        self.ai: Optional[EnemyAI] = None
        self.posture_loop: Optional[PostureRecoveryLoop] = None
        self.dispatcher: Optional[ActionDispatcher] = None
        self.advice_task: Optional[asyncio.Task] = None
        self.taunt_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> Optional[CombatState]:
        return self.match.state if self.match else None

    def start(self) -> MatchState:
        """Start a new run from the first opponent."""
        return self.reset(0)

    def reset(self, opponent_index: Optional[int] = None) -> MatchState:
        """Replace the match wholesale with fresh entities for opponent_index."""
        if opponent_index is not None:
            self.opponent_index = max(0, opponent_index)
        self._teardown(cancel_combo=True)

        t = self.tuning
        match = MatchState(
            opponent_index=self.opponent_index,
            player=new_player(t),
            enemy=new_enemy(t, self.opponent_index),
        )
        match.listeners.append(self._on_transition)
        self.match = match
        self.resolver = AttackResolver(match, self.clock, t, rng=self.rng)
        self.ai = EnemyAI(match, self.resolver, self.selector, self.clock, t, rng=self.rng)
        self.posture_loop = PostureRecoveryLoop(match, self.clock, t)
        self.dispatcher = ActionDispatcher(match, self.resolver, self.clock, t)
        self.advice = ""

        self.opponent_name = self.roster.name_for(self.opponent_index)
        self.taunt = ""
        self.taunt_task = self._spawn(self._fetch_taunt(self.opponent_name))

        self.posture_loop.start()
        self.ai.start()
        match.emit('match_started', self.clock.now(), opponent_index=self.opponent_index,
                   opponent_name=self.opponent_name)
        logging.info(f"Match started against {self.opponent_name} (opponent {self.opponent_index})")
        return match

    def next_opponent(self) -> MatchState:
        """Advance to the next opponent after a victory."""
        if self.state is not CombatState.VICTORY:
            logging.warning("next_opponent() called before victory; resetting current opponent instead")
            return self.reset()
        self.opponent_index += 1
        self._record_high_score(self.opponent_index)
        return self.reset()

    def close(self):
        """Stop loops, timers and background requests."""
        self._teardown(cancel_combo=True)
        for task in list(self._background):
            task.cancel()

    def _teardown(self, cancel_combo: bool):
        if self.posture_loop is not None:
            self.posture_loop.stop()
        if self.ai is not None:
            self.ai.stop(cancel_combo=cancel_combo)
        if cancel_combo and self.match is not None:
            self.match.cancel_timers()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def on_action(self, action: Union[PlayerAction, str]) -> Optional[CombatResult]:
        if self.dispatcher is None:
            return None
        return self.dispatcher.on_action(action)

    def on_release(self, action: Union[PlayerAction, str]) -> bool:
        if self.dispatcher is None:
            return False
        return self.dispatcher.on_release(action)

    # ------------------------------------------------------------------
    # Terminal states
    # ------------------------------------------------------------------

    def _on_transition(self, old: CombatStatus, new: CombatStatus):
        if new.state is CombatState.DEFEAT:
            self._handle_defeat()
        elif new.state is CombatState.VICTORY:
            self._handle_victory()

    def _handle_defeat(self):
        match = self.match
        # Soft cancellation: the running combo stops at its next state check
        self._teardown(cancel_combo=False)
        self.death_count += 1
        self._record_high_score(self.opponent_index)
        reason = match.death_cause.value if match.death_cause else "unknown"
        logging.info(f"Defeat against {self.opponent_name}: {reason}")
        self.advice_task = self._spawn(self._fetch_advice(
            match.player.hp_ratio * 100, match.enemy.hp_ratio * 100, self.death_count, reason))

    def _handle_victory(self):
        self._teardown(cancel_combo=False)
        self.victories += 1
        logging.info(f"Victory over {self.opponent_name}")

    def _record_high_score(self, candidate: int):
        if candidate <= self.high_score:
            return
        self.high_score = candidate
        if self.scores is None:
            return
        try:
            self.scores.save_high_score(candidate)
        except SaveError as e:
            logging.error(f"High score not saved: {e}")

    # ------------------------------------------------------------------
    # Narrator (never gates a transition)
    # ------------------------------------------------------------------

    async def _fetch_advice(self, player_hp_pct: float, enemy_hp_pct: float, deaths: int, reason: str) -> str:
        text = await self.narrator.request_post_defeat_advice(player_hp_pct, enemy_hp_pct, deaths, reason)
        self.advice = text
        return text

    async def _fetch_taunt(self, name: str) -> str:
        text = await self.narrator.request_opponent_taunt(name)
        if name == self.opponent_name:
            self.taunt = text
        return text

    def _spawn(self, coro) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Nessun event loop: niente richieste in background
            coro.close()
            return None
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
