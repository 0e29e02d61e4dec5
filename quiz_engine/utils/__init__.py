"""Utility modules."""
from quiz_engine.utils.json_utils import (
    json_dump,
    json_load,
    read_json_file,
    write_json_file,
)
from quiz_engine.utils.paths import quiz_dir, quiz_payload_path
from quiz_engine.utils.time_utils import parse_iso_timestamp, utc_now, utc_now_iso
from quiz_engine.utils.validation import validate_id

__all__ = [
    "json_dump",
    "json_load",
    "read_json_file",
    "write_json_file",
    "quiz_dir",
    "quiz_payload_path",
    "parse_iso_timestamp",
    "utc_now",
    "utc_now_iso",
    "validate_id",
]
