"""In-memory catalog and attempt storage."""

from __future__ import annotations

from collections.abc import Iterable

from quiz_engine.constants.quiz_constants import MIN_OPTION_COUNT
from quiz_engine.core.errors import QuestionNotFoundError, QuestionSetNotFoundError, QuestionValidationError
from quiz_engine.core.models import Attempt, Question, QuestionSet, QuestionType
from quiz_engine.core.services.ports import AttemptStorePort, QuestionCatalogPort


class QuestionCatalog(QuestionCatalogPort):
    """Holds validated question sets keyed by id."""

    def __init__(self) -> None:
        self._sets: dict[str, QuestionSet] = {}
        self._questions: dict[str, Question] = {}

    def load_question_set(self, question_set: QuestionSet) -> QuestionSet:
        """Validate and store a question set, replacing any set with the same id."""
        if not question_set.questions:
            raise QuestionValidationError("Question set must contain at least one question.")

        prepared = [self._prepare_question(question) for question in question_set.questions]
        ids = [question.id for question in prepared]
        if len(set(ids)) != len(ids):
            raise QuestionValidationError("Question ids must be unique within a set.")

        ordered = QuestionSet(
            id=question_set.id,
            title=question_set.title.strip(),
            questions=tuple(sorted(prepared, key=lambda q: q.order_index)),
            mode=question_set.mode,
        )
        self._sets[ordered.id] = ordered
        for question in ordered.questions:
            self._questions[question.id] = question
        return ordered

    def get_question_set(self, question_set_id: str) -> QuestionSet:
        question_set = self._sets.get(question_set_id)
        if question_set is None:
            raise QuestionSetNotFoundError(f"Question set {question_set_id} not found")
        return question_set

    def get_question(self, question_id: str) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise QuestionNotFoundError(f"Question {question_id} not found")
        return question

    def _prepare_question(self, question: Question) -> Question:
        """Validate a question against the authoring contract."""
        options = self._validate_options(question.options)
        cleaned_text = question.question_text.strip()
        if not cleaned_text:
            raise QuestionValidationError("Question text must not be empty.")

        correct = question.correct_answer
        if question.question_type is QuestionType.MULTIPLE:
            if not isinstance(correct, (set, frozenset, list, tuple)):
                raise QuestionValidationError("Multiple-choice questions need a set of correct indices.")
            if len(set(correct)) != len(correct):
                raise QuestionValidationError("Correct indices must not repeat.")
            correct = frozenset(correct)
            if not correct:
                raise QuestionValidationError("Multiple-choice questions need at least one correct index.")
        elif isinstance(correct, bool) or not isinstance(correct, int):
            raise QuestionValidationError("Single-choice questions need exactly one correct index.")

        self._check_indices(correct if isinstance(correct, frozenset) else [correct], len(options))

        return Question(
            id=question.id,
            question_text=cleaned_text,
            options=options,
            correct_answer=correct,
            question_type=question.question_type,
            explanation=question.explanation,
            passage_text=question.passage_text,
            code_block=question.code_block,
            order_index=question.order_index,
        )

    @staticmethod
    def _validate_options(options: Iterable[str]) -> tuple[str, ...]:
        cleaned = tuple(option.strip() for option in options)
        if len(cleaned) < MIN_OPTION_COUNT:
            raise QuestionValidationError(f"Each question needs at least {MIN_OPTION_COUNT} options.")
        if any(not option for option in cleaned):
            raise QuestionValidationError("Option text cannot be empty.")
        return cleaned

    @staticmethod
    def _check_indices(indices: Iterable[int], option_count: int) -> None:
        for index in indices:
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < option_count:
                raise QuestionValidationError(f"Correct index {index!r} out of range")


class InMemoryAttemptStore(AttemptStorePort):
    """Keeps detached copies of attempts so callers cannot bypass ``save_attempt``."""

    def __init__(self) -> None:
        self._attempts: dict[str, Attempt] = {}

    def save_attempt(self, attempt: Attempt) -> None:
        self._attempts[attempt.id] = attempt.detached_copy()

    def get_attempt(self, attempt_id: str) -> Attempt | None:
        stored = self._attempts.get(attempt_id)
        return stored.detached_copy() if stored else None

    def get_latest_completed_attempt(self, user_id: str, question_set_id: str) -> Attempt | None:
        completed = [
            attempt
            for attempt in self._attempts.values()
            if attempt.user_id == user_id
            and attempt.question_set_id == question_set_id
            and attempt.is_completed
            and attempt.completed_at is not None
        ]
        if not completed:
            return None
        return max(completed, key=lambda a: a.completed_at).detached_copy()

    def list_attempts(self, user_id: str) -> list[Attempt]:
        owned = [attempt for attempt in self._attempts.values() if attempt.user_id == user_id]
        return [attempt.detached_copy() for attempt in sorted(owned, key=lambda a: a.started_at, reverse=True)]
