"""Helpers shared by controllers."""

from typing import Optional, Tuple

Response = Tuple[Optional[dict], int, dict]


def redact(key_id: str) -> str:
    """Shorten a long-lived key so that it can be logged."""
    if len(key_id) <= 4:
        return '***'
    return f'{key_id[:4]}***'
