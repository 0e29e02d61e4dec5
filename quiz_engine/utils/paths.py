"""Path utilities for quiz content."""
from pathlib import Path

from quiz_engine.config import QUIZ_DATA_DIR


def quiz_dir(quiz_id: str, base_dir: Path | None = None) -> Path:
    """Get directory for quiz."""
    return (base_dir or QUIZ_DATA_DIR) / quiz_id


def quiz_payload_path(quiz_id: str, base_dir: Path | None = None) -> Path:
    """Get path to quiz definition JSON."""
    return quiz_dir(quiz_id, base_dir) / "quiz.json"
