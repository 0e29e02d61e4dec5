"""Quiz session state machine.

    NOT_STARTED -> IN_PROGRESS <-> PAUSED -> SUBMITTED -> REVIEWING
         ^                                       |            |
         +---------------- restart --------------+------------+

A session has a single writer at a time: every transition runs under the
session's own lock, and each transition re-checks the state it starts from.
A timer tick that arrives after a manual submit therefore finds the session
SUBMITTED and does nothing.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from types import MappingProxyType

from quiz_engine.config import SESSION_TICK_SECONDS
from quiz_engine.errors import IllegalTransition, SessionNotFound
from quiz_engine.models.quiz import Question, Quiz
from quiz_engine.models.session import ReviewEntry, SessionSnapshot
from quiz_engine.models.submission import QuestionResult, QuizResult, SubmittedAnswer
from quiz_engine.services.analytics_service import AnalyticsEvent
from quiz_engine.services.codec_service import seal_question
from quiz_engine.services.scoring_service import (
    ScoringOptions,
    finalize_result,
    score_question,
    score_quiz,
    shuffle_questions,
)

logger = logging.getLogger(__name__)

EventCallback = Callable[..., None]


class SessionState(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    SUBMITTED = "submitted"
    REVIEWING = "reviewing"


class QuizMode(str, enum.Enum):
    PRACTICE = "practice"
    EXAM = "exam"


TERMINAL_STATES = frozenset({SessionState.SUBMITTED, SessionState.REVIEWING})


class SessionTimer:
    """Periodic ticker bound to one session.

    Runs on a daemon thread and calls ``session.tick`` every ``interval``
    seconds until cancelled.
    """

    def __init__(self, session: QuizSession, interval: float = SESSION_TICK_SECONDS) -> None:
        self._session = session
        self._interval = interval
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"quiz_session_timer_{session.session_id}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self._session.tick(self._interval, timer=self)


class QuizSession:
    """One user's attempt at a quiz."""

    def __init__(
        self,
        quiz: Quiz,
        mode: QuizMode | str = QuizMode.PRACTICE,
        session_id: str | None = None,
        variant_id: str | None = None,
        options: ScoringOptions | None = None,
        on_event: EventCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
        timer_interval: float | None = None,
    ) -> None:
        self.quiz = quiz
        self.mode = QuizMode(mode)
        self.session_id = session_id or uuid.uuid4().hex
        self.variant_id = variant_id
        self.options = options or ScoringOptions.for_mode(self.mode.value)
        self._on_event = on_event
        self._clock = clock
        self._timer_interval = timer_interval
        self._timer: SessionTimer | None = None
        self._lock = threading.RLock()
        self.last_activity = clock()

        if quiz.shuffle:
            self._questions = shuffle_questions(quiz.questions, seed=variant_id or self.session_id)
        else:
            self._questions = list(quiz.questions)
        self._reset()

    def _reset(self) -> None:
        self._state = SessionState.NOT_STARTED
        self._answers: dict[str, SubmittedAnswer] = {}
        self._revealed: dict[str, QuestionResult] = {}
        self._current_index = 0
        self._streak = 0
        self._started_at: float | None = None
        self._paused_at: float | None = None
        self._paused_total = 0.0
        self._remaining = float(self.quiz.time_limit_sec) if self.quiz.time_limit_sec else None
        self._result: QuizResult | None = None

    # -- read side -------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_question(self) -> Question:
        return self._questions[self._current_index]

    @property
    def questions(self) -> list[Question]:
        return list(self._questions)

    @property
    def answers(self) -> Mapping[str, SubmittedAnswer]:
        with self._lock:
            if self._state in TERMINAL_STATES:
                return self._answers
            return dict(self._answers)

    @property
    def streak(self) -> int:
        return self._streak

    @property
    def remaining_seconds(self) -> float | None:
        return self._remaining

    @property
    def result(self) -> QuizResult | None:
        return self._result

    @property
    def is_paused(self) -> bool:
        return self._state == SessionState.PAUSED

    def elapsed_seconds(self) -> float:
        """Active time since start, excluding pauses."""
        with self._lock:
            if self._started_at is None:
                return 0.0
            end = self._paused_at if self._paused_at is not None else self._clock()
            return max(0.0, end - self._started_at - self._paused_total)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            current = None
            if self._state != SessionState.NOT_STARTED:
                current = seal_question(self.current_question)
            return SessionSnapshot(
                sessionId=self.session_id,
                quizId=self.quiz.id,
                mode=self.mode.value,
                state=self._state.value,
                currentIndex=self._current_index,
                currentQuestion=current,
                questionOrder=[question.id for question in self._questions],
                answers=dict(self._answers),
                revealed=list(self._revealed),
                streak=self._streak,
                remainingSeconds=self._remaining,
                elapsedSeconds=self.elapsed_seconds(),
                isPaused=self.is_paused,
                result=self._result,
            )

    # -- transitions -----------------------------------------------------

    def _require(self, action: str, *states: SessionState) -> None:
        if self._state not in states:
            raise IllegalTransition(action, self._state.value)

    def _emit(self, event: AnalyticsEvent, **properties: object) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(event, self.quiz.id, sessionId=self.session_id, **properties)
        except Exception:
            logger.exception(f"Session event callback failed for {event.value}")

    def _touch(self) -> None:
        self.last_activity = self._clock()

    def _start_timer(self) -> None:
        if self._timer_interval and self._remaining is not None:
            self._timer = SessionTimer(self, self._timer_interval)
            self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def start(self) -> None:
        with self._lock:
            self._require("start", SessionState.NOT_STARTED)
            self._state = SessionState.IN_PROGRESS
            self._started_at = self._clock()
            self._touch()
            self._start_timer()
        self._emit(AnalyticsEvent.START, mode=self.mode.value)

    def go_to(self, index: int) -> int:
        with self._lock:
            self._require("navigate", SessionState.IN_PROGRESS)
            if not 0 <= index < len(self._questions):
                raise IllegalTransition(f"navigate to question {index}", self._state.value)
            self._current_index = index
            self._touch()
            return index

    def next(self) -> int:
        with self._lock:
            self._require("navigate", SessionState.IN_PROGRESS)
            return self.go_to(min(self._current_index + 1, len(self._questions) - 1))

    def previous(self) -> int:
        with self._lock:
            self._require("navigate", SessionState.IN_PROGRESS)
            return self.go_to(max(self._current_index - 1, 0))

    def answer(self, answer: SubmittedAnswer) -> None:
        """Upsert the answer for the current question."""
        with self._lock:
            self._require("answer", SessionState.IN_PROGRESS)
            question = self.current_question
            if question.id in self._revealed:
                raise IllegalTransition("answer a revealed question", self._state.value)
            self._answers[question.id] = list(answer) if isinstance(answer, list) else answer
            self._touch()
        self._emit(
            AnalyticsEvent.SELECT_CHOICE,
            questionId=question.id,
            choiceId=answer[0] if isinstance(answer, list) and answer else answer,
        )

    def reveal(self) -> QuestionResult:
        """Expose the current question's correctness and update the streak."""
        with self._lock:
            self._require("reveal", SessionState.IN_PROGRESS)
            question = self.current_question
            if question.id in self._revealed:
                return self._revealed[question.id]
            outcome = score_question(question, self._answers.get(question.id), self.options)
            self._revealed[question.id] = outcome
            self._streak = self._streak + 1 if outcome.correct else 0
            self._touch()
        self._emit(AnalyticsEvent.REVEAL_QUESTION, questionId=question.id, correct=outcome.correct)
        return outcome

    def pause(self) -> None:
        with self._lock:
            self._require("pause", SessionState.IN_PROGRESS)
            self._cancel_timer()
            self._state = SessionState.PAUSED
            self._paused_at = self._clock()
            self._touch()

    def resume(self) -> None:
        with self._lock:
            self._require("resume", SessionState.PAUSED)
            if self._paused_at is not None:
                self._paused_total += self._clock() - self._paused_at
                self._paused_at = None
            self._state = SessionState.IN_PROGRESS
            self._touch()
            self._start_timer()

    def tick(self, seconds: float = 1.0, timer: SessionTimer | None = None) -> bool:
        """Advance the countdown. Returns True if this tick forced the submit.

        A tick from a timer that is no longer the session's live timer is
        ignored, even if it was already waiting on the lock when replaced.
        """
        with self._lock:
            if timer is not None and (timer is not self._timer or timer.cancelled):
                return False
            if self._state != SessionState.IN_PROGRESS or self._remaining is None:
                return False
            self._remaining = max(0.0, self._remaining - seconds)
            if self._remaining > 0:
                return False
            logger.info(f"Session {self.session_id} ran out of time, submitting")
            self._submit_locked(implicit=True)
            return True

    def _submit_locked(self, implicit: bool) -> QuizResult:
        self._cancel_timer()
        elapsed = self.elapsed_seconds()
        if self._remaining is not None and self.quiz.time_limit_sec:
            elapsed = self.quiz.time_limit_sec - self._remaining

        result = score_quiz(self._questions, self._answers, self.options)
        result = finalize_result(
            result,
            self.options,
            streak=self._streak,
            elapsed_seconds=elapsed,
            time_limit_seconds=self.quiz.time_limit_sec,
        )
        if self._paused_at is not None:
            self._paused_total += self._clock() - self._paused_at
            self._paused_at = None
        self._result = result
        self._answers = MappingProxyType(dict(self._answers))
        self._state = SessionState.SUBMITTED
        self._touch()
        self._emit(
            AnalyticsEvent.FINISH,
            score=result.score,
            maxScore=result.maxScore,
            duration=elapsed,
            implicit=implicit,
        )
        return result

    def submit(self) -> QuizResult:
        """Score the attempt once; later calls return the same result."""
        with self._lock:
            if self._state in TERMINAL_STATES and self._result is not None:
                return self._result
            self._require("submit", SessionState.IN_PROGRESS, SessionState.PAUSED)
            return self._submit_locked(implicit=False)

    def review(self) -> list[ReviewEntry]:
        with self._lock:
            self._require("review", SessionState.SUBMITTED, SessionState.REVIEWING)
            first_open = self._state == SessionState.SUBMITTED
            self._state = SessionState.REVIEWING
            self._touch()
            by_id = {item.id: item for item in self._result.perQuestion}
            entries = [
                ReviewEntry(
                    questionId=question.id,
                    submitted=self._answers.get(question.id),
                    correct=by_id[question.id].correct,
                    earned=by_id[question.id].earned,
                    max=by_id[question.id].max,
                    correctChoiceIds=sorted(question.correct_choice_ids),
                    explanation=question.explanation,
                )
                for question in self._questions
            ]
        if first_open:
            self._emit(AnalyticsEvent.REVIEW_OPEN)
        return entries

    def restart(self) -> None:
        with self._lock:
            self._require("restart", *TERMINAL_STATES)
            self._cancel_timer()
            self._reset()
            self._touch()

    def close(self) -> None:
        """Stop background work; the session is being dropped."""
        with self._lock:
            self._cancel_timer()


class SessionManager:
    """Registry of server-resident sessions."""

    def __init__(
        self,
        on_event: EventCallback | None = None,
        timer_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions: dict[str, QuizSession] = {}
        self._lock = threading.Lock()
        self._on_event = on_event
        self._timer_interval = timer_interval
        self._clock = clock

    def create(
        self,
        quiz: Quiz,
        mode: QuizMode | str = QuizMode.PRACTICE,
        variant_id: str | None = None,
        auto_timer: bool = False,
    ) -> QuizSession:
        session = QuizSession(
            quiz,
            mode=mode,
            variant_id=variant_id,
            on_event=self._on_event,
            clock=self._clock,
            timer_interval=self._timer_interval if auto_timer else None,
        )
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> QuizSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def discard(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def discard_idle(self, max_idle_seconds: float) -> int:
        """Drop sessions without activity for longer than `max_idle_seconds`."""
        cutoff = self._clock() - max_idle_seconds
        with self._lock:
            idle = [sid for sid, s in self._sessions.items() if s.last_activity < cutoff]
        removed = sum(1 for sid in idle if self.discard(sid))
        if removed:
            logger.info(f"Discarded {removed} idle sessions")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
