"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool_env(name: str, default: bool) -> bool:
    """Parse boolean flag from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Directories
QUIZ_DATA_DIR = Path(
    os.environ.get("QUIZ_DATA_DIR", Path.cwd() / "data" / "quizzes")
)
QUIZ_DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'quiz_engine.db'}"
)

# Key-value store ("sql" or "memory")
KV_BACKEND = os.environ.get("KV_BACKEND", "sql")
KV_NAMESPACE = os.environ.get("KV_NAMESPACE", "quiz:")

# Answer codec (obfuscation only, anyone with the code can derive the key)
CODEC_SECRET = os.environ.get("QUIZ_CODEC_SECRET", "quiz-encryption-key-2024")
CODEC_SALT = os.environ.get("QUIZ_CODEC_SALT", "quiz-salt")

# Submission guard
RATE_LIMIT_MAX_REQUESTS = _parse_int_env("RATE_LIMIT_MAX_REQUESTS", 60)
RATE_LIMIT_WINDOW_SECONDS = _parse_int_env("RATE_LIMIT_WINDOW_SECONDS", 60)
REPLAY_TOKEN_TTL_SECONDS = _parse_int_env("REPLAY_TOKEN_TTL_SECONDS", 24 * 60 * 60)
REPLAY_WAIT_TIMEOUT_SECONDS = _parse_float_env("REPLAY_WAIT_TIMEOUT_SECONDS", 5.0)
REPLAY_POLL_INTERVAL_SECONDS = _parse_float_env("REPLAY_POLL_INTERVAL_SECONDS", 0.05)
NONCE_MIN_LENGTH = _parse_int_env("NONCE_MIN_LENGTH", 10)
STORAGE_RETRY_ATTEMPTS = _parse_int_env("STORAGE_RETRY_ATTEMPTS", 3)
STORAGE_RETRY_BASE_DELAY_SECONDS = _parse_float_env(
    "STORAGE_RETRY_BASE_DELAY_SECONDS", 0.1
)

# Result store
RESULT_TTL_SECONDS = _parse_int_env("RESULT_TTL_SECONDS", 30 * 24 * 60 * 60)
ANALYTICS_EVENT_TTL_SECONDS = _parse_int_env(
    "ANALYTICS_EVENT_TTL_SECONDS", 30 * 24 * 60 * 60
)

# Scoring bonuses
STREAK_BONUS_MULTIPLIER = _parse_float_env("STREAK_BONUS_MULTIPLIER", 0.1)
STREAK_BONUS_CAP = _parse_float_env("STREAK_BONUS_CAP", 0.5)
TIME_BONUS_THRESHOLD = _parse_float_env("TIME_BONUS_THRESHOLD", 0.8)
TIME_BONUS_MAX = _parse_float_env("TIME_BONUS_MAX", 0.1)
BONUS_SCALES_MAX_SCORE = _parse_bool_env("BONUS_SCALES_MAX_SCORE", True)

# Sessions and housekeeping
SESSION_TICK_SECONDS = _parse_float_env("SESSION_TICK_SECONDS", 1.0)
SESSION_IDLE_TIMEOUT_SECONDS = _parse_int_env("SESSION_IDLE_TIMEOUT_SECONDS", 2 * 60 * 60)
CLEANUP_INTERVAL_SECONDS = _parse_int_env("CLEANUP_INTERVAL_SECONDS", 60 * 60)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
