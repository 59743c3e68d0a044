"""Bootstrap utilities: load combat content and build a ready MatchController."""
from __future__ import annotations
import logging
import random
from typing import Optional

from config import get_log_level
from duel.core.clock import Clock, LoopClock
from duel.core.combat_system.ai import ComboSelector
from duel.core.combat_system.models import CombatTuning
from duel.core.loader.content_loader import load_patterns, load_roster
from duel.core.match import MatchController
from duel.core.persistence import HighScoreStore
from duel.npc.llm_adapter import CombatNarrator


def configure_logging(level: Optional[str] = None):
    """Configura il logging una sola volta (livello da SD_LOG_LEVEL)."""
    logging.basicConfig(
        level=level if level is not None else get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_match(clock: Optional[Clock] = None, tuning: Optional[CombatTuning] = None,
               narrator: Optional[CombatNarrator] = None, scores: Optional[HighScoreStore] = None,
               rng: Optional[random.Random] = None, patterns_path: Optional[str] = None,
               opponents_path: Optional[str] = None) -> MatchController:
    """Carica pattern e roster dagli asset e collega tutti i sottosistemi.

    Il match non parte finché il chiamante non invoca start() dentro un event loop.
    """
    configure_logging()
    tuning = tuning or CombatTuning()
    tiers, fallback = load_patterns(patterns_path)
    roster = load_roster(opponents_path)
    selector = ComboSelector(tiers, fallback_tier=fallback, max_tier=tuning.max_difficulty_tier, rng=rng)
    logging.info(f"-- Caricati {sum(len(p) for p in tiers.values())} pattern in {len(tiers)} livelli --")
    logging.info(f"-- Caricati {len(roster.names)} avversari --")
    return MatchController(
        clock=clock or LoopClock(),
        tuning=tuning,
        selector=selector,
        roster=roster,
        narrator=narrator if narrator is not None else CombatNarrator(),
        scores=scores if scores is not None else HighScoreStore(),
        rng=rng,
    )
