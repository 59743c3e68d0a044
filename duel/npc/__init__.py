"""Generated lines for the duel's NPCs (master advice, opponent taunts)."""
from .llm_adapter import CombatNarrator, ADVICE_FALLBACK, TAUNT_FALLBACK

__all__ = ['CombatNarrator', 'ADVICE_FALLBACK', 'TAUNT_FALLBACK']
