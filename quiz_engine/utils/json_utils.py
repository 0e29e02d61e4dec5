"""JSON serialization utilities."""
import json
from pathlib import Path

COMPACT_SEPARATORS = (",", ":")


def json_dump(payload: object, compact: bool = False) -> str:
    """Serialize to JSON: pretty for files, compact for stored values."""
    if compact:
        return json.dumps(payload, ensure_ascii=False, separators=COMPACT_SEPARATORS, default=str)
    return json.dumps(payload, ensure_ascii=False, indent=2)


def json_load(data: str | bytes) -> object:
    return json.loads(data)


def read_json_file(path: Path, default: object) -> object:
    """Read and parse JSON file, return default if not exists."""
    if not path.exists():
        return default
    return json_load(path.read_text(encoding="utf-8"))


def write_json_file(path: Path, payload: object) -> None:
    """Write object as pretty JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json_dump(payload) + "\n", encoding="utf-8")
