from collections.abc import Iterable, Mapping
from typing import Any

REDACTED = "[REDACTED]"

# Structured record fields that are safe to log verbatim; free-text notes are not.
LOGGABLE_RECORD_FIELDS = frozenset({"id", "amount", "category", "day", "month", "year"})


def redact_fields(payload: Mapping[str, Any], allowed_keys: Iterable[str] = LOGGABLE_RECORD_FIELDS) -> dict[str, Any]:
    """
    Produce a shallow copy that preserves only the whitelisted keys and redacts the rest.

    Keys whose value is None are kept as None so log consumers can tell "absent"
    from "hidden".
    """

    whitelist = set(allowed_keys)
    redacted: dict[str, Any] = {}
    for key, value in payload.items():
        if key in whitelist or value is None:
            redacted[key] = value
        else:
            redacted[key] = REDACTED
    return redacted
