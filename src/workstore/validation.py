"""Person-name checks shared by the store, CLI, and API.

Pure functions with no FastAPI or Click dependencies.
"""

from __future__ import annotations

import unicodedata
from typing import Any

_MAX_NAME_LENGTH = 128


def _first_invisible(value: str) -> str | None:
    """First control (Cc) or format (Cf) character in *value*, if any."""
    for ch in value:
        if unicodedata.category(ch).startswith("C"):
            return ch
    return None


def sanitize_actor(value: Any, *, field: str = "actor") -> tuple[str, str | None]:
    """Clean a person name (resolver, reporter, CLI actor).

    Returns ``(cleaned, None)`` on success or ``("", message)`` on failure.
    Invisible characters are rejected before stripping, so ``"\\nsam"`` is
    refused rather than trimmed to ``"sam"``.
    """
    if not isinstance(value, str):
        return "", f"{field} must be a string"
    bad = _first_invisible(value)
    if bad is not None:
        return "", f"{field} must not contain control characters (found U+{ord(bad):04X})"
    cleaned = value.strip()
    if not cleaned:
        return "", f"{field} must not be empty"
    if len(cleaned) > _MAX_NAME_LENGTH:
        return "", f"{field} must be at most {_MAX_NAME_LENGTH} characters"
    return cleaned, None
