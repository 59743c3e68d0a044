"""Load dynamic combat content: attack pattern tables and the opponent roster.

Reads assets/combat/patterns.json and assets/combat/opponents.json. Both are
validated with jsonschema; a missing or malformed file falls back to the
built-in defaults.
"""
from __future__ import annotations
import json, os
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import jsonschema

from ..combat_system.ai import DEFAULT_FALLBACK_TIER, DEFAULT_PATTERNS, Pattern
from ..combat_system.models import MoveToken

ASSETS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(__file__)))), 'assets')
COMBAT_DIR = os.path.join(ASSETS_DIR, 'combat')
PATTERNS_FILE = os.path.join(COMBAT_DIR, 'patterns.json')
OPPONENTS_FILE = os.path.join(COMBAT_DIR, 'opponents.json')

PATTERNS_SCHEMA = {
    "type": "object",
    "required": ["tiers"],
    "properties": {
        "fallback_tier": {"type": "integer", "minimum": 0},
        "tiers": {
            "type": "object",
            "patternProperties": {
                "^[0-9]+$": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "type": "array",
                        "minItems": 1,
                        "items": {"type": "string", "enum": [t.value for t in MoveToken]},
                    },
                }
            },
            "additionalProperties": False,
            "minProperties": 1,
        },
    },
}

OPPONENTS_SCHEMA = {
    "type": "object",
    "required": ["opponents"],
    "properties": {
        "default_name": {"type": "string", "minLength": 1},
        "opponents": {"type": "array", "items": {"type": "string", "minLength": 1}},
    },
}

DEFAULT_OPPONENT_NAME = "The Iron Guardian"


class ContentError(Exception):
    pass


@dataclass
class OpponentRoster:
    """Opponent names, cycled by opponent index."""
    names: List[str] = field(default_factory=list)
    default_name: str = DEFAULT_OPPONENT_NAME

    def name_for(self, opponent_index: int) -> str:
        if not self.names:
            return self.default_name
        return self.names[opponent_index % len(self.names)] or self.default_name


def _read_json(path: str, schema: dict) -> dict:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        jsonschema.validate(data, schema)
    except (OSError, ValueError, jsonschema.ValidationError) as e:
        raise ContentError(f"{path}: {e}") from e
    return data


def parse_patterns(data: dict) -> Tuple[Dict[int, List[Pattern]], int]:
    """Convert a validated patterns document into ({tier: [pattern]}, fallback_tier)."""
    tiers = {
        int(tier): [tuple(MoveToken(tok) for tok in pattern) for pattern in patterns]
        for tier, patterns in data["tiers"].items()
    }
    fallback = data.get("fallback_tier", min(tiers))
    if fallback not in tiers:
        raise ContentError(f"fallback tier {fallback} is not defined")
    return tiers, fallback


def load_patterns(path: Optional[str] = None) -> Tuple[Dict[int, List[Pattern]], int]:
    """Load pattern tables, falling back to DEFAULT_PATTERNS."""
    path = path or PATTERNS_FILE
    try:
        return parse_patterns(_read_json(path, PATTERNS_SCHEMA))
    except ContentError as e:
        logging.warning(f"Using built-in attack patterns: {e}")
        return dict(DEFAULT_PATTERNS), DEFAULT_FALLBACK_TIER


def load_roster(path: Optional[str] = None) -> OpponentRoster:
    """Load the opponent roster, falling back to a lone default opponent."""
    path = path or OPPONENTS_FILE
    try:
        data = _read_json(path, OPPONENTS_SCHEMA)
    except ContentError as e:
        logging.warning(f"Using default opponent roster: {e}")
        return OpponentRoster()
    return OpponentRoster(names=list(data["opponents"]), default_name=data.get("default_name", DEFAULT_OPPONENT_NAME))
