import pytest

from quiz_engine.models.quiz import Quiz
from quiz_engine.models.submission import QuestionResult, QuizResult
from quiz_engine.services.replay_service import DONE, PENDING, ReplayRegistry
from quiz_engine.services.result_store import HISTOGRAM_BUCKETS, ResultStore, score_bucket


def _result(score: float, correct_q1: bool = True) -> QuizResult:
    return QuizResult(
        correctCount=1 if correct_q1 else 0,
        total=3,
        score=score,
        maxScore=30,
        perQuestion=[
            QuestionResult(id="q1", correct=correct_q1, earned=10 if correct_q1 else 0, max=10),
            QuestionResult(id="q2", correct=False, earned=0, max=15),
            QuestionResult(id="q3", correct=False, earned=0, max=5),
        ],
    )


@pytest.mark.parametrize(
    ("score", "max_score", "bucket"),
    [(0, 30, "0-9"), (2.9, 30, "0-9"), (15, 30, "50-59"), (29.9, 30, "90-100"), (30, 30, "90-100"), (5, 0, "0-9")],
)
def test_score_bucket(score: float, max_score: float, bucket: str) -> None:
    assert score_bucket(score, max_score) == bucket


def test_put_result_is_idempotent(memory_store) -> None:
    results = ResultStore(memory_store)
    first = _result(10)
    assert results.put_result("quiz", "token-1", first) == first
    assert results.put_result("quiz", "token-1", _result(0, correct_q1=False)) == first
    assert results.get_result("quiz", "token-1") == first
    assert results.get_result("quiz", "other") is None


def test_record_attempt_and_stats(memory_store, sample_quiz: Quiz) -> None:
    results = ResultStore(memory_store)
    results.record_attempt(sample_quiz.id, _result(10), completed=True, duration_ms=3000)
    results.record_attempt(sample_quiz.id, _result(0, correct_q1=False), completed=False, duration_ms=6000)

    stats = results.get_stats(sample_quiz)
    assert stats.attempts == 2
    assert stats.completions == 1
    assert stats.completionRate == 0.5
    assert stats.avgTimePerQuestionMs == pytest.approx(1500)
    histogram = {bucket.scoreRange: bucket.count for bucket in stats.scoreHistogram}
    assert list(histogram) == HISTOGRAM_BUCKETS
    assert histogram["30-39"] == 1
    assert histogram["0-9"] == 1
    q1 = stats.perQuestionStats[0]
    assert (q1.questionId, q1.attempts, q1.correct, q1.correctRate) == ("q1", 2, 1, 0.5)


def test_empty_stats(memory_store, sample_quiz: Quiz) -> None:
    stats = ResultStore(memory_store).get_stats(sample_quiz)
    assert stats.attempts == 0
    assert stats.completionRate == 0
    assert stats.avgTimePerQuestionMs == 0
    assert all(bucket.count == 0 for bucket in stats.scoreHistogram)


def test_replay_registry_states(memory_store, clock) -> None:
    sleeps = []

    def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)

    replays = ReplayRegistry(memory_store, wait_timeout=1.0, poll_interval=0.25, sleep=_sleep, clock=clock)
    assert replays.claim("quiz", "nonce-1") is True
    assert replays.claim("quiz", "nonce-1") is False
    assert replays.state("quiz", "nonce-1") == PENDING

    assert replays.wait_until_settled("quiz", "nonce-1") == PENDING
    assert sum(sleeps) == pytest.approx(1.0)

    replays.mark_done("quiz", "nonce-1")
    assert replays.wait_until_settled("quiz", "nonce-1") == DONE

    replays.claim("quiz", "nonce-2")
    replays.release("quiz", "nonce-2")
    assert replays.wait_until_settled("quiz", "nonce-2") is None
    assert replays.claim("quiz", "nonce-2") is True
