"""Service layer for quiz content."""
import json
import logging
import threading
from pathlib import Path

import pydantic

from quiz_engine.config import QUIZ_DATA_DIR
from quiz_engine.errors import QuizNotFound, ValidationError
from quiz_engine.models.quiz import Quiz
from quiz_engine.utils import json_load, quiz_payload_path, validate_id

logger = logging.getLogger(__name__)


def load_quiz(payload: object) -> Quiz:
    """Validate a raw quiz definition.

    Raises:
        ValidationError: the definition breaks an authoring rule.
    """
    try:
        return Quiz.model_validate(payload)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", str(exc))
        raise ValidationError(
            f"Invalid quiz definition: {location}: {message}" if location
            else f"Invalid quiz definition: {message}",
            constraint=location or None,
        ) from exc


def serialize_metadata(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "questionCount": len(quiz.questions),
        "timeLimitSec": quiz.time_limit_sec,
        "version": quiz.version,
    }


class QuizRepository:
    """Loads quiz definitions from ``{data_dir}/{quiz_id}/quiz.json``.

    Definitions are validated on first load and cached; quizzes can also be
    registered directly as already-built values.
    """

    def __init__(self, data_dir: Path | None = None) -> None:
        self._data_dir = data_dir or QUIZ_DATA_DIR
        self._cache: dict[str, Quiz] = {}
        self._lock = threading.Lock()

    def register(self, quiz: Quiz) -> Quiz:
        with self._lock:
            self._cache[quiz.id] = quiz
        return quiz

    def get(self, quiz_id: str) -> Quiz:
        quiz_id = validate_id("quizId", quiz_id)
        with self._lock:
            cached = self._cache.get(quiz_id)
        if cached is not None:
            return cached

        path = quiz_payload_path(quiz_id, self._data_dir)
        if not path.exists():
            raise QuizNotFound(quiz_id)
        try:
            payload = json_load(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Quiz file is not valid JSON: {quiz_id}") from exc

        quiz = load_quiz(payload)
        if quiz.id != quiz_id:
            raise ValidationError(
                f"Quiz file {quiz_id} declares id {quiz.id}", constraint="id"
            )
        logger.info(f"Loaded quiz {quiz_id} ({len(quiz.questions)} questions)")
        return self.register(quiz)

    def list_metadata(self) -> list[dict[str, object]]:
        """List metadata of every loadable quiz; broken files are skipped."""
        quiz_ids = set()
        if self._data_dir.exists():
            quiz_ids.update(
                entry.name
                for entry in self._data_dir.iterdir()
                if entry.is_dir() and (entry / "quiz.json").exists()
            )
        with self._lock:
            quiz_ids.update(self._cache)

        items = []
        for quiz_id in sorted(quiz_ids):
            try:
                items.append(serialize_metadata(self.get(quiz_id)))
            except ValidationError as exc:
                logger.error(f"Skipping quiz {quiz_id}: {exc.message}")
        return items
