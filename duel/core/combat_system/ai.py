"""Enemy AI: decides when to attack and runs pattern-selected combos."""
from __future__ import annotations
import asyncio
import logging
import random
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from ..clock import Clock, TimerHandle
from .fsm import CombatState
from .models import CombatTuning, MoveToken
from .resolver import AttackResolver

if TYPE_CHECKING:  # pragma: no cover
    from ..state import MatchState

Pattern = Tuple[MoveToken, ...]

N, S, D = MoveToken.NORMAL, MoveToken.SWEEP, MoveToken.DELAY

# Tier di difficoltà -> combo possibili
DEFAULT_PATTERNS: Dict[int, List[Pattern]] = {
    0: [(N,), (N, D, N)],  # single hits or slow doubles
    1: [(N, N), (S,)],  # doubles or sweeps
    2: [(N, N, N), (N, S)],  # triples
    3: [(N, D, S), (N, N, N)],  # mixups
    4: [(N, N, N, N), (S, D, S)],  # relentless
}
DEFAULT_FALLBACK_TIER = 0


class ComboSelector:
    """Picks an attack pattern from a table keyed by clamped difficulty tier."""

    def __init__(self, patterns: Optional[Dict[int, List[Pattern]]] = None,
                 fallback_tier: int = DEFAULT_FALLBACK_TIER, max_tier: Optional[int] = None,
                 rng: Optional[random.Random] = None):
        self.patterns = {tier: [tuple(p) for p in pats] for tier, pats in (patterns or DEFAULT_PATTERNS).items() if pats}
        if fallback_tier not in self.patterns:
            raise ValueError(f"fallback tier {fallback_tier} has no patterns")
        self.fallback_tier = fallback_tier
        self.max_tier = max(self.patterns) if max_tier is None else max_tier
        self._rng = rng

    def set_rng(self, rng: random.Random):
        self._rng = rng

    def tier_for(self, opponent_index: int) -> int:
        """Difficulty tier for an opponent, clamped to max_tier."""
        return max(0, min(opponent_index, self.max_tier))

    def patterns_for(self, opponent_index: int) -> List[Pattern]:
        return self.patterns.get(self.tier_for(opponent_index), self.patterns[self.fallback_tier])

    def choose_pattern(self, opponent_index: int) -> Pattern:
        rng = self._rng or random
        return rng.choice(self.patterns_for(opponent_index))


class EnemyAI:
    """Periodically rolls to start a combo and executes it step by step.

    Only one combo may be in flight (match.combo_in_flight). Each step is
    awaited; between steps the combo re-checks that the match is still live
    and quietly stops otherwise.
    """

    def __init__(self, match: "MatchState", resolver: AttackResolver, selector: ComboSelector,
                 clock: Clock, tuning: CombatTuning, rng: Optional[random.Random] = None):
        self.match = match
        self.resolver = resolver
        self.selector = selector
        self.clock = clock
        self.tuning = tuning
        self._rng = rng
        self._handle: Optional[TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def set_rng(self, rng: random.Random):
        self._rng = rng

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    @property
    def combo_task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self):
        if self.running:
            return
        self._handle = self.clock.call_every(self.tuning.ai_check_interval_ms, self.check)

    def stop(self, cancel_combo: bool = False):
        """Stop the periodic check.

        With cancel_combo the in-flight combo task is cancelled too (reset);
        otherwise it is left to stop at its next state check (match end).
        """
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if cancel_combo and self._task is not None and not self._task.done():
            self._task.cancel()
            self.match.combo_in_flight = False

    def check(self) -> bool:
        """Periodic initiation check. Returns True if a combo was started."""
        match = self.match
        if match.state is not CombatState.IDLE or match.combo_in_flight:
            return False
        if match.is_frozen(self.clock.now()):
            return False
        rng = self._rng or random
        if rng.random() >= self.tuning.combo_chance:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # tick() sincrono senza event loop: nessuna combo può girare
            logging.debug("Combo roll skipped: no running event loop")
            return False
        pattern = self.selector.choose_pattern(match.opponent_index)
        match.combo_in_flight = True
        self._task = loop.create_task(self.run_combo(pattern))
        return True

    def _live(self) -> bool:
        return self.match.state is CombatState.IDLE

    async def run_combo(self, pattern: Sequence[MoveToken]) -> int:
        """Execute pattern. Returns how many attack steps resolved."""
        match = self.match
        match.combo_in_flight = True
        resolved = 0
        previous_attack = False
        match.emit('combo_started', self.clock.now(), pattern=[tok.value for tok in pattern])
        try:
            for token in pattern:
                if not self._live():
                    return resolved
                if token is MoveToken.DELAY:
                    await self.clock.sleep(self.tuning.delay_token_ms)
                    previous_attack = False
                    continue
                if previous_attack:
                    await self.clock.sleep(self.tuning.combo_gap_ms)
                    if not self._live():
                        return resolved
                result = await self.resolver.execute_attack_step(token.attack_type)
                if result is None:
                    return resolved
                resolved += 1
                previous_attack = True
            return resolved
        finally:
            match.combo_in_flight = False
            logging.debug(f"Combo over after {resolved} step(s), state {match.state.value}")
