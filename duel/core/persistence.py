"""High score persistence for Spirit Duel.

Stores the highest opponent index reached across sessions in a small JSON
file with versioned metadata.
"""
from __future__ import annotations
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema

import config

# Save format version - increment when making breaking changes
SAVE_VERSION = 1

HIGHSCORE_SCHEMA = {
    "type": "object",
    "required": ["high_score"],
    "properties": {
        "high_score": {"type": "integer", "minimum": 0},
        "_save_metadata": {"type": "object"},
    },
}


class SaveError(Exception):
    """Exception raised for save/load operations."""
    pass


class HighScoreStore:
    """File-backed high score. save_high_score only ever raises the record."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or config.HIGHSCORE_FILE)

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        jsonschema.validate(data, HIGHSCORE_SCHEMA)
        metadata = data.get("_save_metadata", {})
        if metadata.get("version", 0) > SAVE_VERSION:
            raise SaveError(f"High score file version {metadata['version']} is newer than supported version {SAVE_VERSION}")
        return data

    def load_high_score(self) -> int:
        """Stored high score, or 0 if missing or unreadable."""
        try:
            data = self._read()
        except (OSError, ValueError, jsonschema.ValidationError, SaveError) as e:
            logging.warning(f"Ignoring unreadable high score file {self.path}: {e}")
            return 0
        return int(data["high_score"]) if data else 0

    def save_high_score(self, candidate: int) -> bool:
        """Persist candidate if it beats the stored value.

        Returns:
            True if the file was written

        Raises:
            SaveError: If the write fails
        """
        if candidate <= self.load_high_score():
            return False
        data = {
            "high_score": int(candidate),
            "_save_metadata": {
                "version": SAVE_VERSION,
                "timestamp": time.time(),
                "date_saved": datetime.now().isoformat(),
            },
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise SaveError(f"Failed to save high score: {e}")
        return True
