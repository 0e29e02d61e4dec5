"""Quiz content models.

Quizzes are authored elsewhere and loaded read-only. Every authoring
invariant is checked here, at load time, so scoring never has to deal with a
malformed question.
"""
import enum
import re

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QuestionType(str, enum.Enum):
    """Discriminant selecting how a question is scored."""

    SINGLE = "single"
    MULTIPLE = "multiple"
    TRUEFALSE = "truefalse"
    INPUT = "input"
    TEXT = "text"
    CODE = "code"

    @property
    def uses_choices(self) -> bool:
        return self in CHOICE_TYPES


CHOICE_TYPES = frozenset(
    {QuestionType.SINGLE, QuestionType.MULTIPLE, QuestionType.TRUEFALSE}
)


class Choice(BaseModel):
    """A selectable choice of a choice-based question."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    is_correct: bool = Field(False, alias="isCorrect")
    hint: str | None = None


class Question(BaseModel):
    """A single quiz question."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    type: QuestionType
    prompt: str = Field(..., min_length=1)
    choices: tuple[Choice, ...] = ()
    answer_pattern: str | None = Field(None, alias="answerPattern")
    explanation: str | None = None
    points: float = Field(1, gt=0)

    @model_validator(mode="after")
    def _check_payload(self) -> "Question":
        if self.type.uses_choices:
            if not self.choices:
                raise ValueError(f"question {self.id}: choices are required")
            ids = [choice.id for choice in self.choices]
            if len(set(ids)) != len(ids):
                raise ValueError(f"question {self.id}: duplicate choice ids")
            correct = sum(1 for choice in self.choices if choice.is_correct)
            if correct == 0:
                raise ValueError(f"question {self.id}: no correct choice")
            if self.type != QuestionType.MULTIPLE and correct != 1:
                raise ValueError(
                    f"question {self.id}: {self.type.value} needs exactly one correct choice"
                )
        else:
            if not self.answer_pattern:
                raise ValueError(f"question {self.id}: answerPattern is required")
            try:
                re.compile(self.answer_pattern)
            except re.error as exc:
                raise ValueError(
                    f"question {self.id}: invalid answerPattern ({exc})"
                ) from exc
        return self

    @property
    def correct_choice_ids(self) -> frozenset[str]:
        return frozenset(choice.id for choice in self.choices if choice.is_correct)

    @property
    def choice_ids(self) -> frozenset[str]:
        return frozenset(choice.id for choice in self.choices)


class Quiz(BaseModel):
    """An immutable, fully built quiz definition."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str | None = None
    questions: tuple[Question, ...] = Field(..., min_length=1)
    shuffle: bool = False
    time_limit_sec: int | None = Field(None, gt=0, alias="timeLimitSec")
    version: str = Field("1.0.0", min_length=1)

    @model_validator(mode="after")
    def _check_unique_questions(self) -> "Quiz":
        ids = [question.id for question in self.questions]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate question ids")
        return self

    @property
    def question_ids(self) -> frozenset[str]:
        return frozenset(question.id for question in self.questions)

    def get_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)


class SealedChoice(BaseModel):
    """Choice as shown to clients, without its correctness flag."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    label: str
    hint: str | None = None


class SealedQuestion(BaseModel):
    """Question as shown to clients. The answer travels obfuscated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    type: QuestionType
    prompt: str
    choices: tuple[SealedChoice, ...] = ()
    explanation: str | None = None
    points: float = 1
    answer_token: str = Field(..., alias="answerToken")


class SealedQuiz(BaseModel):
    """Client-safe quiz payload."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    description: str | None = None
    questions: tuple[SealedQuestion, ...]
    shuffle: bool = False
    time_limit_sec: int | None = Field(None, alias="timeLimitSec")
    version: str = "1.0.0"
