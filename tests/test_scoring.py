import pytest

from quiz_engine.models.quiz import Question, Quiz
from quiz_engine.models.submission import QuizResult
from quiz_engine.services.scoring_service import (
    ScoringOptions,
    apply_streak_bonus,
    apply_time_bonus,
    finalize_result,
    score_question,
    score_quiz,
    shuffle_questions,
)


def _single() -> Question:
    return Question.model_validate(
        {
            "id": "s1",
            "type": "single",
            "prompt": "Pick b",
            "choices": [
                {"id": "a", "label": "A"},
                {"id": "b", "label": "B", "isCorrect": True},
                {"id": "c", "label": "C"},
            ],
            "points": 10,
        }
    )


def _multiple() -> Question:
    return Question.model_validate(
        {
            "id": "m1",
            "type": "multiple",
            "prompt": "Pick a and c",
            "choices": [
                {"id": "a", "label": "A", "isCorrect": True},
                {"id": "b", "label": "B"},
                {"id": "c", "label": "C", "isCorrect": True},
                {"id": "d", "label": "D"},
            ],
            "points": 15,
        }
    )


def _input() -> Question:
    return Question.model_validate(
        {"id": "i1", "type": "input", "prompt": "Yes?", "answerPattern": "^yes$|^y$", "points": 5}
    )


def _result(score: float, max_score: float) -> QuizResult:
    return QuizResult(correctCount=1, total=1, score=score, maxScore=max_score, perQuestion=[])


def test_single_choice_correct() -> None:
    outcome = score_question(_single(), "b")
    assert outcome.correct is True
    assert outcome.earned == 10
    assert outcome.max == 10


def test_single_choice_wrong_or_missing() -> None:
    assert score_question(_single(), "a").earned == 0
    assert score_question(_single(), None).correct is False
    assert score_question(_single(), "").correct is False


def test_single_choice_list_uses_first_element() -> None:
    assert score_question(_single(), ["b", "a"]).correct is True
    assert score_question(_single(), []).correct is False


def test_truefalse_scored_like_single() -> None:
    question = Question.model_validate(
        {
            "id": "tf",
            "type": "truefalse",
            "prompt": "Sky is blue",
            "choices": [
                {"id": "true", "label": "True", "isCorrect": True},
                {"id": "false", "label": "False"},
            ],
        }
    )
    assert score_question(question, "true").earned == 1
    assert score_question(question, "false").earned == 0


def test_multiple_choice_cancelling_selection_earns_nothing() -> None:
    outcome = score_question(_multiple(), ["a", "b"])
    assert outcome.correct is False
    assert outcome.earned == 0


def test_multiple_choice_partial_credit() -> None:
    outcome = score_question(_multiple(), ["a"])
    assert outcome.correct is False
    assert outcome.earned == pytest.approx(7.5)

    full = score_question(_multiple(), ["c", "a"])
    assert full.correct is True
    assert full.earned == 15


def test_multiple_choice_without_partial_credit() -> None:
    options = ScoringOptions(partial_credit=False)
    assert score_question(_multiple(), ["a"], options).earned == 0
    assert score_question(_multiple(), ["a", "c"], options).earned == 15


def test_multiple_choice_ignores_unknown_ids_and_accepts_string() -> None:
    assert score_question(_multiple(), ["a", "c", "zzz"]).correct is True
    assert score_question(_multiple(), "a").earned == pytest.approx(7.5)


def test_multiple_choice_earned_is_bounded() -> None:
    question = _multiple()
    for answer in ([], ["b", "d"], ["a", "b", "c", "d"], ["a", "c"]):
        earned = score_question(question, answer).earned
        assert 0 <= earned <= question.points


def test_partial_credit_is_monotonic() -> None:
    question = _multiple()
    with_one = score_question(question, ["a"]).earned
    with_two = score_question(question, ["a", "c"]).earned
    with_wrong = score_question(question, ["a", "b"]).earned
    assert with_two >= with_one
    assert with_wrong <= with_one


def test_input_pattern_trims_and_ignores_case() -> None:
    outcome = score_question(_input(), " Yes ")
    assert outcome.correct is True
    assert outcome.earned == 5
    assert score_question(_input(), "Y").correct is True
    assert score_question(_input(), "nope").correct is False
    assert score_question(_input(), "").correct is False


def test_code_question_uses_search() -> None:
    question = Question.model_validate(
        {"id": "c1", "type": "code", "prompt": "Print", "answerPattern": r"print\(.+\)"}
    )
    assert score_question(question, "x = 1\nprint(x)").correct is True


def test_score_quiz_aggregates(sample_quiz: Quiz) -> None:
    result = score_quiz(sample_quiz.questions, {"q1": "b", "q2": ["a"], "q3": "no"})
    assert result.total == 3
    assert result.correctCount == 1
    assert result.score == pytest.approx(17.5)
    assert result.maxScore == 30
    assert [item.id for item in result.perQuestion] == ["q1", "q2", "q3"]


def test_score_quiz_unanswered_counts_zero(sample_quiz: Quiz) -> None:
    result = score_quiz(sample_quiz.questions, {})
    assert result.score == 0
    assert result.maxScore == 30
    assert result.correctCount == 0


def test_streak_bonus_scales_score_and_max() -> None:
    result = apply_streak_bonus(_result(100, 100), streak=3)
    assert result.score == 130
    assert result.maxScore == 130


def test_streak_bonus_keeps_max_when_disabled() -> None:
    options = ScoringOptions(scale_max_score=False)
    result = apply_streak_bonus(_result(100, 100), streak=3, options=options)
    assert result.score == 130
    assert result.maxScore == 100


def test_streak_bonus_capped_and_ignored_for_short_streaks() -> None:
    assert apply_streak_bonus(_result(100, 100), streak=1).score == 100
    assert apply_streak_bonus(_result(100, 100), streak=0).score == 100
    assert apply_streak_bonus(_result(100, 100), streak=20).score == 150


def test_time_bonus() -> None:
    # Window is 80s of a 100s limit; finishing at 40s earns half of the 10% maximum
    result = apply_time_bonus(_result(100, 100), elapsed_seconds=40, time_limit_seconds=100)
    assert result.score == pytest.approx(105)

    assert apply_time_bonus(_result(100, 100), 80, 100).score == 100
    assert apply_time_bonus(_result(100, 100), 95, 100).score == 100
    assert apply_time_bonus(_result(100, 100), 0, 100).score == pytest.approx(110)


def test_finalize_result_respects_options() -> None:
    base = _result(100, 100)
    assert finalize_result(base, ScoringOptions(), streak=5, elapsed_seconds=1, time_limit_seconds=100) == base

    exam = ScoringOptions.for_mode("exam")
    boosted = finalize_result(base, exam, streak=2, elapsed_seconds=80, time_limit_seconds=100)
    assert boosted.score == 120


def test_shuffle_is_deterministic_per_seed(sample_quiz: Quiz) -> None:
    first = [q.id for q in shuffle_questions(sample_quiz.questions, seed="variant-a")]
    second = [q.id for q in shuffle_questions(sample_quiz.questions, seed="variant-a")]
    assert first == second
    assert sorted(first) == ["q1", "q2", "q3"]
