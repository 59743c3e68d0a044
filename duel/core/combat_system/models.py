"""Core combat data models and enums."""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Any, Optional

import config


class VisualState(Enum):
    """Presentation tag reflecting the most recent action of a combatant."""
    IDLE = "IDLE"
    ATTACK = "ATTACK"
    DEFLECT = "DEFLECT"
    HIT = "HIT"
    DEAD = "DEAD"
    JUMPING = "JUMPING"


class AttackType(Enum):
    """Enemy attack classes."""
    NORMAL = "NORMAL"  # can be blocked or parried
    PERILOUS_SWEEP = "PERILOUS_SWEEP"  # must jump
    PERILOUS_THRUST = "PERILOUS_THRUST"  # must deflect perfectly

    @property
    def perilous(self) -> bool:
        return self is not AttackType.NORMAL


class MoveToken(Enum):
    """Tokens of an attack pattern."""
    NORMAL = "NORMAL"
    SWEEP = "SWEEP"
    THRUST = "THRUST"
    DELAY = "DELAY"

    @property
    def attack_type(self) -> Optional[AttackType]:
        return _TOKEN_ATTACKS.get(self)


_TOKEN_ATTACKS = {
    MoveToken.NORMAL: AttackType.NORMAL,
    MoveToken.SWEEP: AttackType.PERILOUS_SWEEP,
    MoveToken.THRUST: AttackType.PERILOUS_THRUST,
}


class PlayerAction(Enum):
    """Discrete player inputs."""
    ATTACK = "ATTACK"
    BLOCK = "BLOCK"
    JUMP = "JUMP"


class Outcome(Enum):
    """What a single resolution event amounted to."""
    PERFECT_PARRY = "perfect_parry"
    BLOCKED = "blocked"
    JUMP_COUNTER = "jump_counter"
    PLAYER_HIT = "player_hit"
    ENEMY_DEFLECTED = "enemy_deflected"
    ENEMY_HIT = "enemy_hit"
    COUNTER_HIT = "counter_hit"
    EXECUTION = "execution"


class DeathCause(Enum):
    """Human readable reason for a defeat, fed to the advice generator."""
    CUT_DOWN = "cut down"
    POSTURE_BROKEN = "posture broken"


# Soglia (frazione della postura massima) oltre la quale la UI avvisa il giocatore
POSTURE_WARNING_RATIO = 0.8


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class Entity:
    """One combatant. Immutable: every change produces a new Entity.

    hp and posture are clamped into [0, max] on construction, so no
    out-of-range value is ever observable.
    """
    hp: float
    max_hp: float
    posture: float
    max_posture: float
    visual: VisualState = VisualState.IDLE

    def __post_init__(self):
        if self.max_hp <= 0 or self.max_posture <= 0:
            raise ValueError(f"maxima must be positive (max_hp={self.max_hp}, max_posture={self.max_posture})")
        object.__setattr__(self, 'hp', _clamp(float(self.hp), 0.0, float(self.max_hp)))
        object.__setattr__(self, 'posture', _clamp(float(self.posture), 0.0, float(self.max_posture)))

    @classmethod
    def fresh(cls, max_hp: float, max_posture: float) -> "Entity":
        """Full HP, zero posture."""
        return cls(hp=max_hp, max_hp=max_hp, posture=0.0, max_posture=max_posture)

    @property
    def hp_ratio(self) -> float:
        return self.hp / self.max_hp

    @property
    def posture_ratio(self) -> float:
        return self.posture / self.max_posture

    @property
    def is_dead(self) -> bool:
        return self.hp <= 0

    @property
    def is_broken(self) -> bool:
        return self.posture >= self.max_posture

    @property
    def is_posture_critical(self) -> bool:
        return self.posture_ratio >= POSTURE_WARNING_RATIO

    @property
    def is_jumping(self) -> bool:
        return self.visual is VisualState.JUMPING

    def with_hp(self, hp: float) -> "Entity":
        return replace(self, hp=hp)

    def damaged(self, amount: float) -> "Entity":
        return replace(self, hp=self.hp - amount)

    def with_posture(self, posture: float) -> "Entity":
        return replace(self, posture=posture)

    def stressed(self, amount: float) -> "Entity":
        """Posture goes up by amount (capped at max)."""
        return replace(self, posture=self.posture + amount)

    def relaxed(self, amount: float) -> "Entity":
        """Posture goes down by amount (floored at zero)."""
        return replace(self, posture=self.posture - amount)

    def with_visual(self, visual: VisualState) -> "Entity":
        return replace(self, visual=visual)


@dataclass(frozen=True, eq=False)
class AttackIntent:
    """The enemy attack currently in flight. Compared by identity."""
    attack_type: AttackType
    timestamp: float


@dataclass(frozen=True)
class CombatTuning:
    """Every numeric knob of the duel. Defaults come from config.py."""
    player_max_hp: float = config.PLAYER_MAX_HP
    player_max_posture: float = config.PLAYER_MAX_POSTURE
    enemy_max_hp: float = config.ENEMY_MAX_HP
    enemy_max_posture: float = config.ENEMY_MAX_POSTURE
    enemy_hp_per_opponent: float = config.ENEMY_HP_PER_OPPONENT
    enemy_posture_per_opponent: float = config.ENEMY_POSTURE_PER_OPPONENT

    posture_recovery_rate: float = config.POSTURE_RECOVERY_RATE
    posture_tick_ms: float = config.POSTURE_TICK_MS
    block_recovery_multiplier: float = config.BLOCK_RECOVERY_MULTIPLIER
    health_scaled_recovery: bool = config.HEALTH_SCALED_RECOVERY

    parry_window_ms: float = config.PARRY_WINDOW_MS
    enemy_deflect_chance: float = config.ENEMY_DEFLECT_CHANCE

    enemy_light_damage: float = config.ENEMY_LIGHT_DAMAGE
    enemy_heavy_damage: float = config.ENEMY_HEAVY_DAMAGE
    player_attack_damage: float = config.PLAYER_ATTACK_DAMAGE

    block_chip_posture: float = config.BLOCK_CHIP_POSTURE
    perfect_parry_posture: float = config.PERFECT_PARRY_POSTURE
    hit_posture: float = config.HIT_POSTURE
    jump_counter_posture: float = config.JUMP_COUNTER_POSTURE
    enemy_block_posture: float = config.ENEMY_BLOCK_POSTURE
    enemy_hit_posture: float = config.ENEMY_HIT_POSTURE

    windup_base_ms: float = config.WINDUP_BASE_MS
    windup_fast_ms: float = config.WINDUP_FAST_MS
    windup_step_ms: float = config.WINDUP_STEP_MS
    strike_ms: float = config.STRIKE_MS
    recovery_ms: float = config.RECOVERY_MS
    recovery_parried_ms: float = config.RECOVERY_PARRIED_MS
    combo_gap_ms: float = config.COMBO_GAP_MS
    delay_token_ms: float = config.DELAY_TOKEN_MS
    jump_duration_ms: float = config.JUMP_DURATION_MS
    hit_flinch_ms: float = config.HIT_FLINCH_MS
    attack_flash_ms: float = config.ATTACK_FLASH_MS

    ai_check_interval_ms: float = config.AI_CHECK_INTERVAL_MS
    combo_chance: float = config.COMBO_CHANCE
    max_difficulty_tier: int = config.MAX_DIFFICULTY_TIER

    hit_stop_enabled: bool = config.HIT_STOP_ENABLED
    hit_stop_parry_ms: float = config.HIT_STOP_PARRY_MS
    hit_stop_block_ms: float = config.HIT_STOP_BLOCK_MS
    hit_stop_jump_counter_ms: float = config.HIT_STOP_JUMP_COUNTER_MS
    hit_stop_player_hit_ms: float = config.HIT_STOP_PLAYER_HIT_MS
    hit_stop_strike_ms: float = config.HIT_STOP_STRIKE_MS
    hit_stop_enemy_block_ms: float = config.HIT_STOP_ENEMY_BLOCK_MS
    hit_stop_deathblow_ms: float = config.HIT_STOP_DEATHBLOW_MS

    def attack_damage(self, attack_type: AttackType) -> float:
        """HP damage dealt to an undefended player by an attack class."""
        if attack_type is AttackType.NORMAL:
            return self.enemy_light_damage
        return self.enemy_heavy_damage


def new_player(tuning: CombatTuning) -> Entity:
    return Entity.fresh(tuning.player_max_hp, tuning.player_max_posture)


def new_enemy(tuning: CombatTuning, opponent_index: int) -> Entity:
    """Enemy maxima grow with every opponent defeated."""
    return Entity.fresh(
        tuning.enemy_max_hp + opponent_index * tuning.enemy_hp_per_opponent,
        tuning.enemy_max_posture + opponent_index * tuning.enemy_posture_per_opponent,
    )


@dataclass
class CombatResult:
    """Result of a single resolution event."""
    outcome: Outcome
    attack_type: Optional[AttackType] = None
    player_damage: float = 0.0
    enemy_damage: float = 0.0
    player_posture_damage: float = 0.0
    enemy_posture_damage: float = 0.0
    hold_duration_ms: Optional[float] = None
    state_after: Optional[Any] = None  # CombatState dopo la risoluzione
    description: List[str] = field(default_factory=list)
    events: List[Dict[str, Any]] = field(default_factory=list)  # for telemetry
