"""JSON schema definition for generated NPC lines.

The model is asked for strict JSON so a single short line can be validated
before it reaches the player.
"""

NPC_LINE_SCHEMA = {
    "type": "object",
    "required": ["say"],
    "properties": {
        "say": {"type": "string", "minLength": 1, "maxLength": 160},
        "mood": {"type": "string", "enum": ["calm", "grim", "wrathful", "mocking", "neutral"]},
    },
    "additionalProperties": False
}
