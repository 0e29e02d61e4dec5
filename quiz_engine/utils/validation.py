"""Validation utilities."""
from pathlib import Path

from quiz_engine.errors import ValidationError


def validate_id(name: str, value: str) -> str:
    """Validate ID string (no path traversal)."""
    if not isinstance(value, str):
        raise ValidationError(f"{name} is required", constraint=name)
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{name} is required", constraint=name)
    if Path(cleaned).name != cleaned or "/" in cleaned or "\\" in cleaned:
        raise ValidationError(f"Invalid {name}", constraint=name)
    return cleaned
