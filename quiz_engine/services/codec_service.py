"""Answer codec: keyed, reversible obfuscation of correct answers.

This keeps correct answers out of plain sight in client payloads. It is NOT
encryption: the key is derived from a fixed secret and the question id, so
anyone who can read the deployed code or configuration can decode every
token. Use it to deter casual inspection only.
"""
import base64
import binascii
import hashlib
import logging
from collections.abc import Sequence

from quiz_engine.config import CODEC_SALT, CODEC_SECRET
from quiz_engine.errors import DecodeError
from quiz_engine.models.quiz import (
    Choice,
    Question,
    QuestionType,
    Quiz,
    SealedChoice,
    SealedQuestion,
    SealedQuiz,
)
from quiz_engine.utils import json_dump, json_load

logger = logging.getLogger(__name__)


def derive_key(
    question_id: str,
    secret: str | None = None,
    salt: str | None = None,
) -> bytes:
    """Derive the per-question key stream seed."""
    material = f"{secret or CODEC_SECRET}-{question_id}-{salt or CODEC_SALT}"
    return hashlib.sha256(material.encode("utf-8")).digest()


def _xor(data: bytes, key: bytes) -> bytes:
    return bytes(byte ^ key[index % len(key)] for index, byte in enumerate(data))


def encode_answer(
    answer: str | Sequence[str],
    question_id: str,
    secret: str | None = None,
    salt: str | None = None,
) -> str:
    """Obfuscate an answer (a string or a list of strings) for one question."""
    value = answer if isinstance(answer, str) else list(answer)
    raw = json_dump(value, compact=True).encode("utf-8")
    masked = _xor(raw, derive_key(question_id, secret, salt))
    return base64.urlsafe_b64encode(masked).decode("ascii")


def decode_answer(
    token: str,
    question_id: str,
    secret: str | None = None,
    salt: str | None = None,
) -> str | list[str]:
    """Reverse `encode_answer`.

    Raises:
        DecodeError: the token is not valid base64, does not unmask to JSON,
            or does not hold a string or a list of strings.
    """
    if not isinstance(token, str) or not token:
        raise DecodeError("Answer token is empty")
    try:
        masked = base64.b64decode(token.encode("ascii"), altchars=b"-_", validate=True)
        raw = _xor(masked, derive_key(question_id, secret, salt))
        value = json_load(raw.decode("utf-8"))
    except (UnicodeError, binascii.Error, ValueError) as exc:
        raise DecodeError(f"Malformed answer token for question {question_id}") from exc

    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return value
    raise DecodeError(f"Unexpected answer token payload for question {question_id}")


def try_decode_answer(
    token: str,
    question_id: str,
    secret: str | None = None,
    salt: str | None = None,
) -> str | list[str] | None:
    """Decode a token, returning None instead of raising on malformed input."""
    try:
        return decode_answer(token, question_id, secret, salt)
    except DecodeError as exc:
        logger.warning(f"Failed to decode answer: {exc}")
        return None


def _canonical_answer(question: Question) -> str | list[str]:
    if not question.type.uses_choices:
        return question.answer_pattern or ""
    correct = [choice.id for choice in question.choices if choice.is_correct]
    if question.type == QuestionType.MULTIPLE:
        return correct
    return correct[0]


def seal_question(question: Question) -> SealedQuestion:
    """Strip correctness data from a question and attach its answer token."""
    return SealedQuestion(
        id=question.id,
        type=question.type,
        prompt=question.prompt,
        choices=tuple(
            SealedChoice(id=choice.id, label=choice.label, hint=choice.hint)
            for choice in question.choices
        ),
        explanation=question.explanation,
        points=question.points,
        answer_token=encode_answer(_canonical_answer(question), question.id),
    )


def seal_quiz(quiz: Quiz) -> SealedQuiz:
    """Build the client-safe payload of a quiz."""
    return SealedQuiz(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        questions=tuple(seal_question(question) for question in quiz.questions),
        shuffle=quiz.shuffle,
        time_limit_sec=quiz.time_limit_sec,
        version=quiz.version,
    )


def unseal_question(sealed: SealedQuestion) -> Question:
    """Rebuild a scorable question from its sealed form.

    Raises:
        DecodeError: the answer token is malformed or does not fit the
            question type.
    """
    answer = decode_answer(sealed.answer_token, sealed.id)

    if not sealed.type.uses_choices:
        if not isinstance(answer, str):
            raise DecodeError(f"Expected a pattern for question {sealed.id}")
        pattern = answer
        choices: tuple[Choice, ...] = ()
    else:
        correct_ids = {answer} if isinstance(answer, str) else set(answer)
        pattern = None
        choices = tuple(
            Choice(
                id=choice.id,
                label=choice.label,
                hint=choice.hint,
                is_correct=choice.id in correct_ids,
            )
            for choice in sealed.choices
        )

    try:
        return Question(
            id=sealed.id,
            type=sealed.type,
            prompt=sealed.prompt,
            choices=choices,
            answer_pattern=pattern,
            explanation=sealed.explanation,
            points=sealed.points,
        )
    except ValueError as exc:
        # pydantic's ValidationError is a ValueError
        raise DecodeError(f"Answer token does not fit question {sealed.id}") from exc
