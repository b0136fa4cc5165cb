"""Domain models for the quiz attempt engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Union

from pydantic import BaseModel, ConfigDict, PositiveInt
from pydantic.alias_generators import to_camel

from quiz_engine.constants.quiz_constants import DEFAULT_AUTO_ADVANCE_SECONDS

if TYPE_CHECKING:
    from quiz_engine.core.services.session_queue import SessionQueueController


class QuestionType(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class QuizMode(str, Enum):
    """Question set flavour: TOEIC reading comprehension or school multiple choice."""

    TOEIC = "TOEIC"
    SCHOOL = "SCHOOL"


class ShowAnswerMode(str, Enum):
    IMMEDIATE = "immediate"
    AFTER_SUBMIT = "after-submit"


CorrectAnswer = Union[int, frozenset]


@dataclass(frozen=True, slots=True)
class SingleSelection:
    """One option chosen on a single-choice question."""

    index: int

    def to_wire(self) -> int:
        return self.index


@dataclass(frozen=True, slots=True)
class MultipleSelection:
    """Set of options chosen on a multiple-choice question."""

    indices: frozenset[int]

    def to_wire(self) -> list[int]:
        return sorted(self.indices)


Selection = Union[SingleSelection, MultipleSelection]


@dataclass(frozen=True, slots=True)
class Question:
    """Authored question in canonical option order."""

    id: str
    question_text: str
    options: tuple[str, ...]
    correct_answer: CorrectAnswer
    question_type: QuestionType = QuestionType.SINGLE
    explanation: str | None = None
    passage_text: str | None = None
    code_block: str | None = None
    order_index: int = 0

    @property
    def correct_indices(self) -> frozenset[int]:
        if isinstance(self.correct_answer, frozenset):
            return self.correct_answer
        return frozenset({self.correct_answer})


@dataclass(frozen=True, slots=True)
class QuestionSet:
    id: str
    title: str
    questions: tuple[Question, ...]
    mode: QuizMode = QuizMode.SCHOOL


@dataclass(frozen=True, slots=True)
class PresentationItem:
    """A question as shown during one attempt, in display order."""

    question: Question
    display_options: tuple[str, ...]
    option_mapping: tuple[int, ...]  # display position -> canonical option index
    display_correct_answer: CorrectAnswer
    display_index: int
    is_retry: bool = False

    @property
    def question_id(self) -> str:
        return self.question.id

    def as_retry(self) -> PresentationItem:
        return replace(self, is_retry=True)

    def to_canonical(self, selection: Selection) -> Selection:
        """Translate a selection made on display positions to canonical indices."""
        if isinstance(selection, SingleSelection):
            return SingleSelection(self.option_mapping[selection.index])
        return MultipleSelection(frozenset(self.option_mapping[i] for i in selection.indices))

    def to_display(self, canonical: CorrectAnswer) -> CorrectAnswer:
        if isinstance(canonical, frozenset):
            return frozenset(self.option_mapping.index(i) for i in canonical)
        return self.option_mapping.index(canonical)


class AttemptConfig(BaseModel):
    """Run-time rules chosen by the student before an attempt starts."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    practice_mode: bool = False
    timed_mode: bool = False
    custom_time_limit: PositiveInt | None = None
    auto_advance: bool = False
    auto_advance_time: PositiveInt = DEFAULT_AUTO_ADVANCE_SECONDS
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_answer_mode: ShowAnswerMode = ShowAnswerMode.IMMEDIATE

    @property
    def time_limit_seconds(self) -> int | None:
        """Limit enforced for the attempt, or None when it is untimed."""
        if self.timed_mode and self.custom_time_limit:
            return self.custom_time_limit
        return None

    @property
    def reveals_immediately(self) -> bool:
        return self.show_answer_mode is ShowAnswerMode.IMMEDIATE


@dataclass(frozen=True, slots=True)
class SubmittedAnswer:
    """One entry of the attempt's append-only answer log."""

    question_id: str
    selection: Selection
    is_correct: bool
    submitted_at: datetime


@dataclass(slots=True)
class Attempt:
    """One student's run through a question set."""

    id: str
    user_id: str
    question_set_id: str
    config: AttemptConfig
    question_ids: tuple[str, ...]
    total_questions: int
    started_at: datetime
    correct_count: int = 0
    is_completed: bool = False
    score: int | None = None
    time_taken: int | None = None
    completed_at: datetime | None = None
    submitted_answers: list[SubmittedAnswer] = field(default_factory=list)
    queue: SessionQueueController | None = field(default=None, repr=False, compare=False)

    def answers_for(self, question_id: str) -> list[SubmittedAnswer]:
        return [answer for answer in self.submitted_answers if answer.question_id == question_id]

    def has_correct_submission(self, question_id: str) -> bool:
        return any(answer.is_correct for answer in self.answers_for(question_id))

    def detached_copy(self) -> Attempt:
        """Copy of the durable fields, without the transient presentation queue."""
        return replace(self, submitted_answers=list(self.submitted_answers), queue=None)

    def to_snapshot(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "question_set_id": self.question_set_id,
            "config": self.config.model_dump(by_alias=True, mode="json"),
            "total_questions": self.total_questions,
            "correct_count": self.correct_count,
            "is_completed": self.is_completed,
            "score": self.score,
            "time_taken": self.time_taken,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "submitted_answers": [
                {
                    "question_id": answer.question_id,
                    "selected_option": answer.selection.to_wire(),
                    "is_correct": answer.is_correct,
                    "submitted_at": answer.submitted_at.isoformat(),
                }
                for answer in self.submitted_answers
            ],
        }
