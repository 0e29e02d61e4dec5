"""Scoring engine.

Pure functions only: nothing here reads or writes shared state, so any number
of callers may score concurrently.
"""
import logging
import random
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from quiz_engine.config import (
    BONUS_SCALES_MAX_SCORE,
    STREAK_BONUS_CAP,
    STREAK_BONUS_MULTIPLIER,
    TIME_BONUS_MAX,
    TIME_BONUS_THRESHOLD,
)
from quiz_engine.errors import DecodeError
from quiz_engine.models.quiz import Question, QuestionType, SealedQuiz
from quiz_engine.models.submission import QuestionResult, QuizResult, SubmittedAnswer
from quiz_engine.services.codec_service import unseal_question

logger = logging.getLogger(__name__)

BONUS_PRECISION = 4


@dataclass(frozen=True)
class ScoringOptions:
    """Switches and constants for one scoring run."""

    partial_credit: bool = True
    streak_bonus: bool = False
    time_bonus: bool = False
    streak_multiplier: float = STREAK_BONUS_MULTIPLIER
    streak_cap: float = STREAK_BONUS_CAP
    time_bonus_threshold: float = TIME_BONUS_THRESHOLD
    time_bonus_max: float = TIME_BONUS_MAX
    scale_max_score: bool = BONUS_SCALES_MAX_SCORE

    @classmethod
    def for_mode(cls, mode: str) -> "ScoringOptions":
        """Bonuses only count in exam mode."""
        exam = mode == "exam"
        return cls(streak_bonus=exam, time_bonus=exam)


DEFAULT_OPTIONS = ScoringOptions()


def _first(answer: SubmittedAnswer | None) -> str | None:
    if isinstance(answer, list):
        return answer[0] if answer else None
    return answer


def _score_single(question: Question, answer: SubmittedAnswer | None) -> tuple[float, bool]:
    correct_ids = question.correct_choice_ids
    # Zero or several correct choices can never be matched by one id
    if len(correct_ids) != 1:
        return 0.0, False
    is_correct = _first(answer) in correct_ids
    return (question.points if is_correct else 0.0), is_correct


def _score_multiple(
    question: Question,
    answer: SubmittedAnswer | None,
    options: ScoringOptions,
) -> tuple[float, bool]:
    if answer is None:
        return 0.0, False
    submitted = {answer} if isinstance(answer, str) else set(answer)
    correct_ids = question.correct_choice_ids
    if not correct_ids:
        return 0.0, False

    selected = submitted & question.choice_ids
    correct_selected = len(selected & correct_ids)
    incorrect_selected = len(selected - correct_ids)
    is_correct = selected == correct_ids

    if not options.partial_credit:
        return (question.points if is_correct else 0.0), is_correct

    fraction = max(0.0, (correct_selected - incorrect_selected) / len(correct_ids))
    earned = min(question.points, max(0.0, question.points * fraction))
    return earned, is_correct


def _score_pattern(question: Question, answer: SubmittedAnswer | None) -> tuple[float, bool]:
    text = _first(answer)
    if not text or not question.answer_pattern:
        return 0.0, False
    is_correct = re.search(question.answer_pattern, text.strip(), re.IGNORECASE) is not None
    return (question.points if is_correct else 0.0), is_correct


def score_question(
    question: Question,
    answer: SubmittedAnswer | None,
    options: ScoringOptions = DEFAULT_OPTIONS,
) -> QuestionResult:
    """Score one submitted answer against its question."""
    if question.type in (QuestionType.SINGLE, QuestionType.TRUEFALSE):
        earned, correct = _score_single(question, answer)
    elif question.type == QuestionType.MULTIPLE:
        earned, correct = _score_multiple(question, answer, options)
    else:
        earned, correct = _score_pattern(question, answer)
    return QuestionResult(id=question.id, correct=correct, earned=earned, max=question.points)


def aggregate(per_question: Sequence[QuestionResult]) -> QuizResult:
    """Sum per-question scores into a result."""
    return QuizResult(
        correctCount=sum(1 for item in per_question if item.correct),
        total=len(per_question),
        score=sum(item.earned for item in per_question),
        maxScore=sum(item.max for item in per_question),
        perQuestion=list(per_question),
    )


def score_quiz(
    questions: Iterable[Question],
    answers: Mapping[str, SubmittedAnswer],
    options: ScoringOptions = DEFAULT_OPTIONS,
) -> QuizResult:
    """Score every question of a quiz."""
    return aggregate(
        [score_question(question, answers.get(question.id), options) for question in questions]
    )


def score_sealed_quiz(
    sealed: SealedQuiz,
    answers: Mapping[str, SubmittedAnswer],
    options: ScoringOptions = DEFAULT_OPTIONS,
) -> QuizResult:
    """Score against a sealed quiz, decoding each answer token.

    A question whose token cannot be decoded earns nothing; the rest of the
    attempt is still scored.
    """
    per_question = []
    for sealed_question in sealed.questions:
        try:
            question = unseal_question(sealed_question)
        except DecodeError as exc:
            logger.warning(f"Scoring question {sealed_question.id} as zero: {exc}")
            per_question.append(
                QuestionResult(
                    id=sealed_question.id,
                    correct=False,
                    earned=0.0,
                    max=sealed_question.points,
                )
            )
            continue
        per_question.append(score_question(question, answers.get(question.id), options))
    return aggregate(per_question)


def _with_bonus(result: QuizResult, fraction: float, scale_max_score: bool) -> QuizResult:
    bonus_points = result.score * fraction
    update = {"score": round(result.score + bonus_points, BONUS_PRECISION)}
    if scale_max_score:
        update["maxScore"] = round(result.maxScore + bonus_points, BONUS_PRECISION)
    return result.model_copy(update=update)


def apply_streak_bonus(
    result: QuizResult,
    streak: int,
    options: ScoringOptions = DEFAULT_OPTIONS,
) -> QuizResult:
    """Add min(streak * multiplier, cap) of the score as a bonus."""
    if streak <= 1:
        return result
    fraction = min(streak * options.streak_multiplier, options.streak_cap)
    return _with_bonus(result, fraction, options.scale_max_score)


def apply_time_bonus(
    result: QuizResult,
    elapsed_seconds: float,
    time_limit_seconds: float,
    options: ScoringOptions = DEFAULT_OPTIONS,
) -> QuizResult:
    """Reward finishing before threshold * limit, linearly up to time_bonus_max."""
    window = time_limit_seconds * options.time_bonus_threshold
    if window <= 0 or elapsed_seconds >= window:
        return result
    fraction = (window - max(0.0, elapsed_seconds)) / window * options.time_bonus_max
    return _with_bonus(result, fraction, options.scale_max_score)


def finalize_result(
    result: QuizResult,
    options: ScoringOptions = DEFAULT_OPTIONS,
    streak: int = 0,
    elapsed_seconds: float | None = None,
    time_limit_seconds: float | None = None,
) -> QuizResult:
    """Apply the bonuses enabled in `options`."""
    if options.streak_bonus:
        result = apply_streak_bonus(result, streak, options)
    if options.time_bonus and time_limit_seconds and elapsed_seconds is not None:
        result = apply_time_bonus(result, elapsed_seconds, time_limit_seconds, options)
    return result


def shuffle_questions(
    questions: Sequence[Question],
    seed: str | None = None,
) -> list[Question]:
    """Shuffle questions; the same seed always yields the same order."""
    shuffled = list(questions)
    rng = random.Random(seed) if seed is not None else random.Random()
    rng.shuffle(shuffled)
    return shuffled
