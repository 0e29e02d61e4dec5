"""Service layer for result persistence and aggregate statistics.

The aggregate counters for one attempt are written as one atomic batch, so a
retried `record_attempt` after a storage failure never counts twice.
"""
import logging

from quiz_engine.config import KV_NAMESPACE, RESULT_TTL_SECONDS
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.stats import HistogramBucket, QuestionStats, QuizStats
from quiz_engine.models.submission import QuizResult
from quiz_engine.services.kv_store import KeyValueStore
from quiz_engine.utils import json_dump, json_load, utc_now_iso

logger = logging.getLogger(__name__)

HISTOGRAM_BUCKETS = [f"{low}-{low + 9}" for low in range(0, 90, 10)] + ["90-100"]


def score_bucket(score: float, max_score: float) -> str:
    """Map a score to its percentage decile bucket."""
    if max_score <= 0:
        return HISTOGRAM_BUCKETS[0]
    decile = int((score / max_score) * 10)
    return HISTOGRAM_BUCKETS[min(max(decile, 0), 9)]


class ResultStore:
    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = KV_NAMESPACE,
        ttl_seconds: int = RESULT_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._ttl_seconds = ttl_seconds

    def _result_key(self, quiz_id: str, token: str) -> str:
        return f"{self._namespace}result:{quiz_id}:{token}"

    def _stats_key(self, quiz_id: str, suffix: str = "") -> str:
        return f"{self._namespace}stats:{quiz_id}{suffix}"

    def put_result(
        self,
        quiz_id: str,
        token: str,
        result: QuizResult,
        metadata: dict[str, object] | None = None,
    ) -> QuizResult:
        """Store a result once. A second put for the same token keeps the first."""
        payload = {
            "quizId": quiz_id,
            "token": token,
            "result": result.model_dump(),
            "metadata": metadata or {},
            "ts": utc_now_iso(),
        }
        stored = self._store.set_if_absent(
            self._result_key(quiz_id, token),
            json_dump(payload, compact=True),
            ttl_seconds=self._ttl_seconds,
        )
        if stored:
            return result
        logger.debug(f"Result for quiz {quiz_id} already stored, keeping original")
        existing = self.get_result(quiz_id, token)
        return existing if existing is not None else result

    def get_result(self, quiz_id: str, token: str) -> QuizResult | None:
        """Load a stored result."""
        raw = self._store.get(self._result_key(quiz_id, token))
        if raw is None:
            return None
        payload = json_load(raw)
        return QuizResult.model_validate(payload["result"])

    def record_attempt(
        self,
        quiz_id: str,
        result: QuizResult,
        completed: bool = True,
        duration_ms: int | None = None,
    ) -> None:
        """Fold one result into the quiz's aggregate counters as a single batch."""
        stats_key = self._stats_key(quiz_id)
        increments = [(stats_key, "attempts", 1)]
        if completed:
            increments.append((stats_key, "completions", 1))
        if duration_ms is not None:
            increments.append((stats_key, "durationMs", int(duration_ms)))
            increments.append((stats_key, "timedQuestions", result.total))

        bucket = score_bucket(result.score, result.maxScore)
        increments.append((self._stats_key(quiz_id, ":histogram"), bucket, 1))

        for item in result.perQuestion:
            question_key = self._stats_key(quiz_id, f":question:{item.id}")
            increments.append((question_key, "attempts", 1))
            if item.correct:
                increments.append((question_key, "correct", 1))

        self._store.hincrby_many(increments)

    def get_stats(self, quiz: Quiz) -> QuizStats:
        """Read aggregate statistics for a quiz."""
        counters = self._store.hgetall(self._stats_key(quiz.id))
        histogram = self._store.hgetall(self._stats_key(quiz.id, ":histogram"))

        attempts = counters.get("attempts", 0)
        completions = counters.get("completions", 0)
        timed_questions = counters.get("timedQuestions", 0)
        avg_time = counters.get("durationMs", 0) / timed_questions if timed_questions else 0.0

        per_question = []
        for question in quiz.questions:
            question_counters = self._store.hgetall(
                self._stats_key(quiz.id, f":question:{question.id}")
            )
            q_attempts = question_counters.get("attempts", 0)
            q_correct = question_counters.get("correct", 0)
            per_question.append(
                QuestionStats(
                    questionId=question.id,
                    attempts=q_attempts,
                    correct=q_correct,
                    correctRate=q_correct / q_attempts if q_attempts else 0.0,
                )
            )

        return QuizStats(
            quizId=quiz.id,
            attempts=attempts,
            completions=completions,
            completionRate=completions / attempts if attempts else 0.0,
            avgTimePerQuestionMs=avg_time,
            scoreHistogram=[
                HistogramBucket(scoreRange=bucket, count=histogram.get(bucket, 0))
                for bucket in HISTOGRAM_BUCKETS
            ],
            perQuestionStats=per_question,
        )
