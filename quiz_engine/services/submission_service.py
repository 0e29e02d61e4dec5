"""Submission guard.

Turns a client submission into a persisted result exactly once per replay
token. Checks run in a fixed order: shape validation, rate limit, replay
check, scoring, persistence, aggregate update. A replay short-circuits
everything after the replay check and returns the original result.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass

import pydantic
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from quiz_engine.config import (
    NONCE_MIN_LENGTH,
    STORAGE_RETRY_ATTEMPTS,
    STORAGE_RETRY_BASE_DELAY_SECONDS,
)
from quiz_engine.errors import (
    ReplayDetected,
    SubmissionInFlight,
    TransientStorageError,
    ValidationError,
)
from quiz_engine.models.quiz import Quiz
from quiz_engine.models.submission import QuizResult, Submission
from quiz_engine.services.analytics_service import AnalyticsEvent, AnalyticsTracker
from quiz_engine.services.quiz_service import QuizRepository
from quiz_engine.services.rate_limit_service import (
    RateLimiter,
    RateLimitRecord,
    hash_identifier,
)
from quiz_engine.services.replay_service import DONE, PENDING, ReplayRegistry
from quiz_engine.services.result_store import ResultStore
from quiz_engine.services.scoring_service import (
    DEFAULT_OPTIONS,
    ScoringOptions,
    finalize_result,
    score_quiz,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionOutcome:
    result: QuizResult
    replayed: bool
    rate_limit: RateLimitRecord


class SubmissionGuard:
    def __init__(
        self,
        quizzes: QuizRepository,
        limiter: RateLimiter,
        replays: ReplayRegistry,
        results: ResultStore,
        tracker: AnalyticsTracker | None = None,
        options: ScoringOptions = DEFAULT_OPTIONS,
        nonce_min_length: int = NONCE_MIN_LENGTH,
        retry_attempts: int = STORAGE_RETRY_ATTEMPTS,
        retry_delay: float = STORAGE_RETRY_BASE_DELAY_SECONDS,
    ) -> None:
        self._quizzes = quizzes
        self._limiter = limiter
        self._replays = replays
        self._results = results
        self._tracker = tracker
        self._options = options
        self._nonce_min_length = nonce_min_length
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay

    def _retrying(self) -> Retrying:
        """Retry policy for storage calls: transient failures only."""
        return Retrying(
            retry=retry_if_exception_type(TransientStorageError),
            stop=stop_after_attempt(max(1, self._retry_attempts)),
            wait=wait_exponential(multiplier=self._retry_delay, max=2),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def validate(self, payload: Submission | Mapping[str, object]) -> tuple[Submission, Quiz]:
        """Check a submission's shape against the schema and its quiz.

        Raises:
            ValidationError: missing/invalid fields, short nonce, or answers
                for question ids the quiz does not have.
            QuizNotFound: the quiz id has no loaded definition.
        """
        if isinstance(payload, Submission):
            submission = payload
        else:
            try:
                submission = Submission.model_validate(payload)
            except pydantic.ValidationError as exc:
                first = exc.errors()[0]
                location = ".".join(str(part) for part in first["loc"])
                raise ValidationError(
                    f"Invalid submission: {location}: {first['msg']}",
                    constraint=location,
                ) from exc

        if len(submission.nonce) < self._nonce_min_length:
            raise ValidationError("Invalid nonce", constraint="nonce")

        quiz = self._quizzes.get(submission.quizId)
        unknown = sorted(set(submission.answers) - quiz.question_ids)
        if unknown:
            raise ValidationError(
                f"Answers reference unknown questions: {', '.join(unknown)}",
                constraint="answers",
            )
        if submission.version != quiz.version:
            logger.warning(
                f"Submission for quiz {quiz.id} has version {submission.version}, "
                f"loaded definition is {quiz.version}"
            )
        return submission, quiz

    def _claim(self, quiz_id: str, token: str) -> None:
        """Claim the replay token or raise ReplayDetected with the stored result."""
        for _ in range(2):
            if self._replays.claim(quiz_id, token):
                return
            state = self._replays.wait_until_settled(quiz_id, token)
            if state == DONE:
                result = self._results.get_result(quiz_id, token)
                if result is None:
                    raise SubmissionInFlight("Replay token already used")
                raise ReplayDetected(quiz_id, token, result)
            if state == PENDING:
                raise SubmissionInFlight("Submission is still being processed")
            # Claim was released by a failed attempt, try again
        raise SubmissionInFlight("Submission is still being processed")

    def _score(self, quiz: Quiz, submission: Submission) -> QuizResult:
        result = score_quiz(quiz.questions, submission.answers, self._options)
        return finalize_result(
            result,
            self._options,
            elapsed_seconds=submission.durationMs / 1000,
            time_limit_seconds=quiz.time_limit_sec,
        )

    def submit(
        self,
        payload: Submission | Mapping[str, object],
        identifier: str,
    ) -> SubmissionOutcome:
        submission, quiz = self.validate(payload)
        record = self._limiter.check(identifier)
        quiz_id, token = quiz.id, submission.nonce

        try:
            self._claim(quiz_id, token)
        except ReplayDetected as replay:
            logger.info(
                f"Replayed submission for quiz {quiz_id} from {hash_identifier(identifier)}"
            )
            return SubmissionOutcome(result=replay.result, replayed=True, rate_limit=record)

        try:
            result = self._score(quiz, submission)
            result = self._retrying()(
                self._results.put_result,
                quiz_id,
                token,
                result,
                {"durationMs": submission.durationMs, "variantId": submission.variantId},
            )
            self._retrying()(self._replays.mark_done, quiz_id, token)
        except Exception:
            self._replays.release(quiz_id, token)
            raise

        completed = all(submission.answers.get(q.id) not in (None, "", []) for q in quiz.questions)
        try:
            self._retrying()(
                self._results.record_attempt,
                quiz_id,
                result,
                completed=completed,
                duration_ms=submission.durationMs,
            )
        except TransientStorageError:
            # Result is persisted and the token settled; counters are not retried later
            logger.exception(f"Failed to update aggregates for quiz {quiz_id}")

        if self._tracker is not None:
            self._tracker.track(
                AnalyticsEvent.FINISH,
                quiz_id,
                score=result.score,
                maxScore=result.maxScore,
                correctCount=result.correctCount,
                total=result.total,
                duration=submission.durationMs,
            )
        logger.info(
            f"Scored quiz {quiz_id}: {result.score}/{result.maxScore} ({result.percent:.0f}%, "
            f"{result.correctCount}/{result.total} correct)"
        )
        return SubmissionOutcome(result=result, replayed=False, rate_limit=record)
