"""
JSON schema for structured extraction output, and the envelope check applied
to whatever the model returns before per-entry parsing.
"""
from __future__ import annotations

from typing import Any

import jsonschema

from packages.shared.models import FactCategory

FACT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "time": {"type": "string", "description": "Time of day if specified."},
        "category": {"type": "string", "enum": [c.value for c in FactCategory]},
        "detail": {"type": "string", "description": "Full description of the fact from the prose."},
        "pageNumber": {
            "type": "integer",
            "description": "Page number taken from the [Page N] marker supporting this fact.",
        },
        "quote": {"type": "string", "description": "Short verbatim snippet copied from the prose."},
    },
    "required": ["category", "detail"],
}

DAILY_ENTRY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "date": {
            "type": "string",
            "description": "Date in YYYY-MM-DD format if interpretable, otherwise the original text.",
        },
        "summary": {"type": "string", "description": "One-line summary of the day or encounter."},
        "facts": {"type": "array", "items": FACT_SCHEMA},
        "tags": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Normalized UMLS-style concept tags (e.g. Pain, Diagnosis, Provider).",
        },
    },
    "required": ["date", "summary", "facts"],
}

# Request shape sent to the model: an object wrapping the entry list.
DAILY_ENTRIES_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {"entries": {"type": "array", "items": DAILY_ENTRY_SCHEMA}},
    "required": ["entries"],
}

# Envelope accepted back: a bare array of objects, or {"entries": [...]}.
# Per-entry strictness is enforced later so one bad entry never sinks the rest.
_ENVELOPE_SCHEMA: dict[str, Any] = {
    "oneOf": [
        {"type": "array", "items": {"type": "object"}},
        {
            "type": "object",
            "properties": {"entries": {"type": "array", "items": {"type": "object"}}},
            "required": ["entries"],
        },
    ]
}


def validate_envelope(payload: Any) -> tuple[bool, list[str]]:
    """
    Validate the top-level shape of an extraction payload.
    Returns (is_valid, list_of_error_messages).
    """
    validator = jsonschema.Draft202012Validator(_ENVELOPE_SCHEMA)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
    messages = [f"{'→'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}" for e in errors]
    return (len(messages) == 0, messages)


def unwrap_entries(payload: Any) -> list[dict[str, Any]]:
    """Return the entry list from a payload that already passed validate_envelope."""
    if isinstance(payload, dict):
        return list(payload["entries"])
    return list(payload)
