"""Shared utility functions."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_bool(value: object, default: bool = True) -> bool:
    """Parse loose boolean input (JSON bools, numbers and common tokens)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    token = str(value).strip().lower()
    if token in {"true", "t", "1", "yes", "y"}:
        return True
    if token in {"false", "f", "0", "no", "n"}:
        return False
    return default


def next_sequential_code(prefix: str, existing_codes: list[str]) -> str:
    """Return next `<prefix><n>` code after the highest numeric suffix in use."""
    highest = 0
    for code in existing_codes:
        if not code or not code.startswith(prefix):
            continue
        suffix = code[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1}"
