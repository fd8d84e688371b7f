"""Structured-output schemas declared to the generation service."""

EPISODE_BATCH_SCHEMA = {
    "type": "object",
    "properties": {
        "units": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "number": {"type": "integer"},
                    "title": {"type": "string"},
                    "content": {"type": "string"},
                },
                "required": ["number", "title", "content"],
                "additionalProperties": False,
            },
        },
        "adaptationSummary": {
            "type": "string",
            "description": (
                "Brief summary of this batch: 1. characters/plot lines cut or changed; "
                "2. payoff beats already used; 3. hooks and setups left for the next batch."
            ),
        },
    },
    "required": ["units", "adaptationSummary"],
    "additionalProperties": False,
}

_CHARACTER_FIELDS = ["name", "gender", "age", "identity", "appearance", "growth", "motivation"]

OUTLINE_SCHEMA = {
    "type": "object",
    "properties": {
        "content": {"type": "string"},
        "characters": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {name: {"type": "string"} for name in _CHARACTER_FIELDS},
                "required": _CHARACTER_FIELDS,
                "additionalProperties": False,
            },
        },
        "phasePlans": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "phaseIndex": {"type": "integer"},
                    "episodeCount": {"type": "integer"},
                    "description": {"type": "string"},
                    "climax": {"type": "string"},
                },
                "required": ["phaseIndex", "episodeCount", "description", "climax"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["content", "characters", "phasePlans"],
    "additionalProperties": False,
}
