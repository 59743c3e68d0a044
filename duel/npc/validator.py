"""Generated line validation.

Extracts the JSON object from a raw model reply and validates it against
NPC_LINE_SCHEMA.
"""
import json
import jsonschema
from .schema import NPC_LINE_SCHEMA


def validate_schema(payload: dict):
    """Validate payload against the NPC line schema."""
    jsonschema.validate(payload, NPC_LINE_SCHEMA)
    return True


def extract_line(raw: str) -> str:
    """Return the spoken line contained in a raw model reply.

    Accepts either a JSON object {"say": ...} (possibly wrapped in extra
    text) or a bare line of text.

    Raises:
        ValueError: malformed JSON object
        jsonschema.ValidationError: JSON that breaks the schema
    """
    text = raw.strip()
    json_start = text.find("{")
    json_end = text.rfind("}")
    if json_start == -1 or json_end == -1:
        line = text
    else:
        payload = json.loads(text[json_start:json_end + 1])
        validate_schema(payload)
        line = payload["say"]
    line = line.strip()
    # Remove quotes if the model wrapped the line in quotes
    if len(line) >= 2 and line[0] == line[-1] == '"':
        line = line[1:-1].strip()
    return line
