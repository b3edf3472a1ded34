"""Validates incoming log entry objects against a JSON schema."""

import jsonschema

from daylog.errors import ValidationError

MESSAGE_REQUIRED = "Message is required"

LOG_ENTRY_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["message"],
    "properties": {
        "message": {"type": "string", "minLength": 1},
        "date": {"type": ["string", "null"]},
        "component": {"type": ["string", "null"]},
        "platform": {"type": ["string", "null"]},
    },
}


class LogEntryValidator:
    """Checks entries before anything is formatted or written."""

    def __init__(self, schema=None):
        self._validator = jsonschema.Draft202012Validator(schema or LOG_ENTRY_SCHEMA)

    def errors(self, entry) -> list[str]:
        """Return human-readable problems with ``entry``; empty when valid."""
        if isinstance(entry, dict) and not entry.get("message"):
            return [MESSAGE_REQUIRED]

        messages = []
        for error in sorted(self._validator.iter_errors(entry), key=lambda e: list(e.path)):
            if error.path:
                messages.append(f"{error.path[0]}: {error.message}")
            else:
                messages.append(error.message)
        return messages

    def validate(self, entry) -> None:
        """Raise ValidationError on the first problem found."""
        problems = self.errors(entry)
        if problems:
            raise ValidationError(problems[0])
