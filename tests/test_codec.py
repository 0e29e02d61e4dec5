import base64

import pytest

from quiz_engine.errors import DecodeError
from quiz_engine.models.quiz import Quiz
from quiz_engine.services import codec_service
from quiz_engine.services.scoring_service import score_quiz, score_sealed_quiz


def test_encode_decode_string_and_list() -> None:
    token = codec_service.encode_answer("b", "q1")
    assert token != "b"
    assert codec_service.decode_answer(token, "q1") == "b"

    token = codec_service.encode_answer(["a", "c"], "q2")
    assert codec_service.decode_answer(token, "q2") == ["a", "c"]


def test_token_is_keyed_per_question() -> None:
    assert codec_service.encode_answer("b", "q1") != codec_service.encode_answer("b", "q2")
    token = codec_service.encode_answer("b", "q1")
    with pytest.raises(DecodeError):
        codec_service.decode_answer(token, "q2")


def test_custom_secret_changes_token() -> None:
    default = codec_service.encode_answer("yes", "q3")
    custom = codec_service.encode_answer("yes", "q3", secret="other-secret")
    assert default != custom
    assert codec_service.decode_answer(custom, "q3", secret="other-secret") == "yes"


@pytest.mark.parametrize("token", ["", "not base64 !!", "%%%"])
def test_decode_rejects_malformed_tokens(token: str) -> None:
    with pytest.raises(DecodeError):
        codec_service.decode_answer(token, "q1")
    assert codec_service.try_decode_answer(token, "q1") is None


def test_decode_rejects_unexpected_payload_shape() -> None:
    masked = codec_service._xor(b"42", codec_service.derive_key("q1"))
    token = base64.urlsafe_b64encode(masked).decode("ascii")
    with pytest.raises(DecodeError):
        codec_service.decode_answer(token, "q1")


def test_seal_quiz_hides_correctness(sample_quiz: Quiz) -> None:
    sealed = codec_service.seal_quiz(sample_quiz)
    dumped = sealed.model_dump(by_alias=True)

    assert "isCorrect" not in str(dumped)
    assert "answerPattern" not in str(dumped)
    assert [q["id"] for q in dumped["questions"]] == ["q1", "q2", "q3"]
    assert all(q["answerToken"] for q in dumped["questions"])


def test_unseal_restores_scoring(sample_quiz: Quiz) -> None:
    sealed = codec_service.seal_quiz(sample_quiz)
    answers = {"q1": "b", "q2": ["a", "c"], "q3": "y"}

    for sealed_question, question in zip(sealed.questions, sample_quiz.questions):
        restored = codec_service.unseal_question(sealed_question)
        assert restored.correct_choice_ids == question.correct_choice_ids
        assert restored.answer_pattern == question.answer_pattern

    assert score_sealed_quiz(sealed, answers) == score_quiz(sample_quiz.questions, answers)


def test_corrupt_token_scores_question_zero(sample_quiz: Quiz) -> None:
    sealed = codec_service.seal_quiz(sample_quiz)
    broken = sealed.questions[0].model_copy(update={"answer_token": "@@@"})
    sealed = sealed.model_copy(update={"questions": (broken, *sealed.questions[1:])})

    result = score_sealed_quiz(sealed, {"q1": "b", "q2": ["a", "c"], "q3": "yes"})

    assert result.perQuestion[0].earned == 0
    assert result.perQuestion[0].max == 10
    assert result.score == 20
    assert result.maxScore == 30
