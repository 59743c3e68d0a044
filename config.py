"""Configurazione centrale per Spirit Duel.

Qui centralizziamo i parametri del duello (finestre di parata, tempi di
telegrafo, danni, recupero postura, hit-stop, ecc.). Tutti i valori hanno un
default sensato e possono essere sovrascritti via variabili d'ambiente SD_*.
Le durate sono in millisecondi reali.
"""
from __future__ import annotations
import os


def _get_int_env(name: str, default: int, minval: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw)
        if minval is not None and v < minval:
            return default
        return v
    except ValueError:
        return default


def _get_float_env(name: str, default: float, minval: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = float(raw)
        if minval is not None and v < minval:
            return default
        return v
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in {"1", "true", "yes", "on"}


# ---------------- Combattenti ----------------
PLAYER_MAX_HP: int = _get_int_env("SD_PLAYER_MAX_HP", 100, minval=1)
PLAYER_MAX_POSTURE: int = _get_int_env("SD_PLAYER_MAX_POSTURE", 100, minval=1)
ENEMY_MAX_HP: int = _get_int_env("SD_ENEMY_MAX_HP", 200, minval=1)
ENEMY_MAX_POSTURE: int = _get_int_env("SD_ENEMY_MAX_POSTURE", 120, minval=1)

# Crescita per ogni avversario sconfitto
ENEMY_HP_PER_OPPONENT: int = _get_int_env("SD_ENEMY_HP_PER_OPPONENT", 50, minval=0)
ENEMY_POSTURE_PER_OPPONENT: int = _get_int_env("SD_ENEMY_POSTURE_PER_OPPONENT", 0, minval=0)


# ---------------- Postura ----------------
# Punti postura recuperati per tick (a ~60 Hz)
POSTURE_RECOVERY_RATE: float = _get_float_env("SD_POSTURE_RECOVERY_RATE", 0.1, minval=0.0)
POSTURE_TICK_MS: float = _get_float_env("SD_POSTURE_TICK_MS", 1000 / 60, minval=1.0)
# Moltiplicatore di recupero mentre il giocatore tiene la guardia
BLOCK_RECOVERY_MULTIPLIER: float = _get_float_env("SD_BLOCK_RECOVERY_MULTIPLIER", 1.5, minval=0.0)
# Recupero scalato con (hp/max_hp)^2: chi è ferito recupera più lentamente
HEALTH_SCALED_RECOVERY: bool = _get_bool_env("SD_HEALTH_SCALED_RECOVERY", True)


# ---------------- Difesa ----------------
PARRY_WINDOW_MS: int = _get_int_env("SD_PARRY_WINDOW_MS", 250, minval=1)
ENEMY_DEFLECT_CHANCE: float = _get_float_env("SD_ENEMY_DEFLECT_CHANCE", 0.7, minval=0.0)


# ---------------- Danni ----------------
ENEMY_LIGHT_DAMAGE: int = _get_int_env("SD_ENEMY_LIGHT_DAMAGE", 10, minval=0)
ENEMY_HEAVY_DAMAGE: int = _get_int_env("SD_ENEMY_HEAVY_DAMAGE", 25, minval=0)
PLAYER_ATTACK_DAMAGE: int = _get_int_env("SD_PLAYER_ATTACK_DAMAGE", 15, minval=0)

# Danni alla postura
BLOCK_CHIP_POSTURE: int = _get_int_env("SD_BLOCK_CHIP_POSTURE", 10, minval=0)
PERFECT_PARRY_POSTURE: int = _get_int_env("SD_PERFECT_PARRY_POSTURE", 30, minval=0)
HIT_POSTURE: int = _get_int_env("SD_HIT_POSTURE", 15, minval=0)
JUMP_COUNTER_POSTURE: int = _get_int_env("SD_JUMP_COUNTER_POSTURE", 25, minval=0)
ENEMY_BLOCK_POSTURE: int = _get_int_env("SD_ENEMY_BLOCK_POSTURE", 15, minval=0)
ENEMY_HIT_POSTURE: int = _get_int_env("SD_ENEMY_HIT_POSTURE", 5, minval=0)


# ---------------- Tempi ----------------
# Telegrafo: l'avversario alza l'arma
WINDUP_BASE_MS: int = _get_int_env("SD_WINDUP_BASE_MS", 800, minval=1)
WINDUP_FAST_MS: int = _get_int_env("SD_WINDUP_FAST_MS", 500, minval=1)
# Quanto si accorcia il telegrafo per ogni avversario
WINDUP_STEP_MS: int = _get_int_env("SD_WINDUP_STEP_MS", 75, minval=0)
# Colpo attivo: la risoluzione avviene una sola volta alla fine
STRIKE_MS: int = _get_int_env("SD_STRIKE_MS", 400, minval=0)
RECOVERY_MS: int = _get_int_env("SD_RECOVERY_MS", 100, minval=0)
RECOVERY_PARRIED_MS: int = _get_int_env("SD_RECOVERY_PARRIED_MS", 1500, minval=0)
# Pausa tra due colpi consecutivi di una combo
COMBO_GAP_MS: int = _get_int_env("SD_COMBO_GAP_MS", 600, minval=0)
DELAY_TOKEN_MS: int = _get_int_env("SD_DELAY_TOKEN_MS", 800, minval=0)
JUMP_DURATION_MS: int = _get_int_env("SD_JUMP_DURATION_MS", 700, minval=1)
HIT_FLINCH_MS: int = _get_int_env("SD_HIT_FLINCH_MS", 500, minval=1)
ATTACK_FLASH_MS: int = _get_int_env("SD_ATTACK_FLASH_MS", 250, minval=1)


# ---------------- IA avversario ----------------
AI_CHECK_INTERVAL_MS: int = _get_int_env("SD_AI_CHECK_INTERVAL_MS", 1400, minval=1)
COMBO_CHANCE: float = _get_float_env("SD_COMBO_CHANCE", 0.75, minval=0.0)
MAX_DIFFICULTY_TIER: int = _get_int_env("SD_MAX_DIFFICULTY_TIER", 4, minval=0)


# ---------------- Hit-stop ----------------
HIT_STOP_ENABLED: bool = _get_bool_env("SD_HIT_STOP", True)
HIT_STOP_PARRY_MS: int = _get_int_env("SD_HIT_STOP_PARRY_MS", 120, minval=0)
HIT_STOP_BLOCK_MS: int = _get_int_env("SD_HIT_STOP_BLOCK_MS", 40, minval=0)
HIT_STOP_JUMP_COUNTER_MS: int = _get_int_env("SD_HIT_STOP_JUMP_COUNTER_MS", 180, minval=0)
HIT_STOP_PLAYER_HIT_MS: int = _get_int_env("SD_HIT_STOP_PLAYER_HIT_MS", 200, minval=0)
HIT_STOP_STRIKE_MS: int = _get_int_env("SD_HIT_STOP_STRIKE_MS", 80, minval=0)
HIT_STOP_ENEMY_BLOCK_MS: int = _get_int_env("SD_HIT_STOP_ENEMY_BLOCK_MS", 50, minval=0)
HIT_STOP_DEATHBLOW_MS: int = _get_int_env("SD_HIT_STOP_DEATHBLOW_MS", 400, minval=0)


# ---------------- Dati e log ----------------
DATA_DIR: str = os.getenv("SD_DATA_DIR", "data")
HIGHSCORE_FILE: str = os.getenv("SD_HIGHSCORE_FILE", os.path.join(DATA_DIR, "highscore.json"))


def get_log_level() -> str:
    """Livello di logging. Var: SD_LOG_LEVEL (default WARNING)."""
    return os.getenv("SD_LOG_LEVEL", "WARNING").strip().upper()


__all__ = [
    # Combattenti
    "PLAYER_MAX_HP", "PLAYER_MAX_POSTURE", "ENEMY_MAX_HP", "ENEMY_MAX_POSTURE",
    "ENEMY_HP_PER_OPPONENT", "ENEMY_POSTURE_PER_OPPONENT",
    # Postura
    "POSTURE_RECOVERY_RATE", "POSTURE_TICK_MS", "BLOCK_RECOVERY_MULTIPLIER", "HEALTH_SCALED_RECOVERY",
    # Difesa / danni
    "PARRY_WINDOW_MS", "ENEMY_DEFLECT_CHANCE",
    "ENEMY_LIGHT_DAMAGE", "ENEMY_HEAVY_DAMAGE", "PLAYER_ATTACK_DAMAGE",
    "BLOCK_CHIP_POSTURE", "PERFECT_PARRY_POSTURE", "HIT_POSTURE", "JUMP_COUNTER_POSTURE",
    "ENEMY_BLOCK_POSTURE", "ENEMY_HIT_POSTURE",
    # Tempi
    "WINDUP_BASE_MS", "WINDUP_FAST_MS", "WINDUP_STEP_MS", "STRIKE_MS", "RECOVERY_MS",
    "RECOVERY_PARRIED_MS", "COMBO_GAP_MS", "DELAY_TOKEN_MS", "JUMP_DURATION_MS",
    "HIT_FLINCH_MS", "ATTACK_FLASH_MS",
    # IA
    "AI_CHECK_INTERVAL_MS", "COMBO_CHANCE", "MAX_DIFFICULTY_TIER",
    # Hit-stop
    "HIT_STOP_ENABLED", "HIT_STOP_PARRY_MS", "HIT_STOP_BLOCK_MS", "HIT_STOP_JUMP_COUNTER_MS",
    "HIT_STOP_PLAYER_HIT_MS", "HIT_STOP_STRIKE_MS", "HIT_STOP_ENEMY_BLOCK_MS", "HIT_STOP_DEATHBLOW_MS",
    # Dati
    "DATA_DIR", "HIGHSCORE_FILE", "get_log_level",
    # Ollama
    "get_ollama_enabled", "get_ollama_base_url", "get_ollama_model",
    "get_ollama_timeout", "get_ollama_temperature", "get_ollama_max_tokens",
]


# ---------------- Ollama AI (consigli e provocazioni) ----------------

def get_ollama_enabled() -> bool:
    """Abilita l'integrazione con Ollama (default: False). Var: SD_OLLAMA_ENABLED."""
    return _get_bool_env("SD_OLLAMA_ENABLED", False)


def get_ollama_base_url() -> str:
    """Base URL del server Ollama. Var: SD_OLLAMA_BASE_URL (default http://localhost:11434)."""
    return os.getenv("SD_OLLAMA_BASE_URL", "http://localhost:11434").strip()


def get_ollama_model() -> str:
    """Nome modello Ollama da usare (es. 'llama3.2:3b'). Var: SD_OLLAMA_MODEL."""
    return os.getenv("SD_OLLAMA_MODEL", "llama3.2:3b").strip()


def get_ollama_timeout() -> float:
    """Timeout richieste HTTP in secondi. Var: SD_OLLAMA_TIMEOUT (default 10.0)."""
    return _get_float_env("SD_OLLAMA_TIMEOUT", 10.0, minval=1.0)


def get_ollama_temperature() -> float:
    """Temperatura sampling modello. Var: SD_OLLAMA_TEMPERATURE (default 0.7)."""
    val = _get_float_env("SD_OLLAMA_TEMPERATURE", 0.7, minval=0.0)
    return max(0.0, min(2.0, val))


def get_ollama_max_tokens() -> int:
    """Max token output. Var: SD_OLLAMA_MAX_TOKENS (default 60)."""
    return _get_int_env("SD_OLLAMA_MAX_TOKENS", 60, minval=16)
