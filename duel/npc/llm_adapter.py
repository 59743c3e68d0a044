"""Narrator adapter: post-defeat advice and opponent taunts.

Best-effort contract: both requests are async, never raise, and fall back to
fixed lines on any failure (model disabled, unreachable, malformed reply).
Gameplay never waits on them.
"""
import asyncio
import json
import logging
from typing import Callable, Optional

from .dialogue import default_llm_call
from .validator import extract_line

LLMCall = Callable[..., Optional[str]]

ADVICE_EMPTY = "Hesitation is defeat."
ADVICE_FALLBACK = "Focus your mind. Try again."
TAUNT_EMPTY = "Face me!"
TAUNT_FALLBACK = "Draw your blade!"

MASTER_PROMPT = """You are an ancient, cryptic shinobi master. Your student has just fallen in a duel.
Answer with ONE short, atmospheric sentence (under 20 words) about hesitation, rhythm or defense.
Never be cheerful. Be gritty.
Output STRICT JSON only: {"say": "<the sentence>"}
"""

OPPONENT_PROMPT = """You are {name}, a feudal duelist about to fight a wandering shinobi.
Shout ONE short intimidating battle cry (under 10 words): arrogant, powerful, feudal.
Output STRICT JSON only: {{"say": "<the battle cry>"}}
"""

_UNSET = object()


class CombatNarrator:
    """Voices the master (advice) and the opponents (taunts).

    Args:
        llm_call: Function (system, user) -> str | None. Defaults to the
            Ollama client configured in config.py, or no model at all when
            Ollama is disabled.
    """

    def __init__(self, llm_call=_UNSET):
        self._llm_call = default_llm_call() if llm_call is _UNSET else llm_call

    @property
    def enabled(self) -> bool:
        return self._llm_call is not None

    async def request_post_defeat_advice(self, player_hp_pct: float, enemy_hp_pct: float,
                                         death_count: int, death_reason: str) -> str:
        user = {
            "player_hp_pct": round(player_hp_pct),
            "enemy_hp_pct": round(enemy_hp_pct),
            "total_deaths": death_count,
            "last_death_reason": death_reason,
        }
        return await self._speak(MASTER_PROMPT, json.dumps(user, ensure_ascii=False),
                                 ADVICE_EMPTY, ADVICE_FALLBACK)

    async def request_opponent_taunt(self, opponent_name: str) -> str:
        system = OPPONENT_PROMPT.format(name=opponent_name)
        user = json.dumps({"opponent": opponent_name}, ensure_ascii=False)
        return await self._speak(system, user, TAUNT_EMPTY, TAUNT_FALLBACK)

    async def _speak(self, system: str, user: str, empty: str, fallback: str) -> str:
        if self._llm_call is None:
            return fallback
        try:
            raw = await asyncio.to_thread(self._llm_call, system=system, user=user)
            if raw is None:
                return fallback
            return extract_line(raw) or empty
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logging.error(f"Narrator call failed: {e}")
            return fallback
