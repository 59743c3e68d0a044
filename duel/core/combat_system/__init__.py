"""Combat system module - internal implementation."""
from .models import (
    AttackIntent, AttackType, CombatResult, CombatTuning, DeathCause, Entity, MoveToken,
    Outcome, PlayerAction, VisualState, new_enemy, new_player,
)
from .fsm import CombatEvent, CombatState, CombatStatus
from .resolver import AttackResolver
from .posture import PostureRecoveryLoop
from .ai import ComboSelector, EnemyAI

__all__ = [
    'AttackIntent', 'AttackType', 'CombatResult', 'CombatTuning', 'DeathCause', 'Entity', 'MoveToken',
    'Outcome', 'PlayerAction', 'VisualState', 'new_enemy', 'new_player',
    'CombatEvent', 'CombatState', 'CombatStatus',
    'AttackResolver', 'PostureRecoveryLoop', 'ComboSelector', 'EnemyAI',
]
