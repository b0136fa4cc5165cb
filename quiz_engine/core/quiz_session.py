"""Per-attempt facade handed to the presentation layer.

A ``QuizSession`` pairs one ``Attempt`` (durable scoring state) with its
``SessionQueueController`` (ephemeral presentation state) and applies the
interaction rules of the quiz runner: staging selections, revealing or
deferring feedback, advancing, navigating and finishing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from threading import Lock

from quiz_engine.constants.quiz_constants import TIME_WARNING_WINDOW_SECONDS
from quiz_engine.core.errors import AlreadyCompletedError, SelectionError
from quiz_engine.core.markdown_math_renderer import renderer
from quiz_engine.core.models import (
    Attempt,
    AttemptConfig,
    MultipleSelection,
    PresentationItem,
    QuestionType,
    Selection,
    SingleSelection,
)
from quiz_engine.core.services.attempt_machine import AnswerResult, AttemptStateMachine, compute_score
from quiz_engine.core.services.review import AttemptReview, build_review
from quiz_engine.core.services.session_queue import AdvanceResult, SessionQueueController


@dataclass(slots=True)
class ItemOutcome:
    result: AnswerResult
    revealed: bool


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Progress numbers shown above the current question."""

    display_index: int
    total_questions: int
    answered: int
    percentage: int

    @property
    def label(self) -> str:
        return f"{self.display_index} / {self.total_questions}"


class QuizSession:
    """Facade over one attempt and its presentation queue."""

    def __init__(self, machine: AttemptStateMachine, attempt: Attempt) -> None:
        if attempt.queue is None:
            raise ValueError("Attempt has no presentation queue; create it through the state machine.")
        self._lock = Lock()
        self._machine = machine
        self._attempt = attempt
        self._queue: SessionQueueController = attempt.queue
        self._staged: set[int] = set()
        self._outcomes: dict[int, ItemOutcome] = {}

    @classmethod
    def start(
        cls,
        machine: AttemptStateMachine,
        question_set_id: str,
        user_id: str,
        config: AttemptConfig | Mapping[str, object] | None = None,
    ) -> QuizSession:
        attempt = machine.create(question_set_id, user_id, config)
        return cls(machine, attempt)

    @property
    def attempt(self) -> Attempt:
        return self._attempt

    @property
    def queue(self) -> SessionQueueController:
        return self._queue

    @property
    def config(self) -> AttemptConfig:
        return self._attempt.config

    def is_finished(self) -> bool:
        return self._attempt.is_completed

    def current_item(self) -> PresentationItem:
        with self._lock:
            return self._queue.current()

    # --- Answering ---

    def select_option(self, display_index: int) -> AnswerResult | None:
        """Stage an option; returns the result when the selection was submitted."""
        with self._lock:
            self._ensure_active()
            item = self._queue.current()
            if self._queue.cursor in self._outcomes:
                return None
            if not 0 <= display_index < len(item.display_options):
                raise SelectionError(f"Option index {display_index} out of range")

            if item.question.question_type is QuestionType.MULTIPLE:
                self._staged ^= {display_index}
            else:
                self._staged = {display_index}

            if not self.config.reveals_immediately:
                return None
            if item.question.question_type is QuestionType.SINGLE:
                return self._submit_staged(item)
            if len(self._staged) == len(item.question.correct_indices):
                return self._submit_staged(item)
            return None

    def submit(self) -> AnswerResult:
        """Submit the staged selection for the current item."""
        with self._lock:
            self._ensure_active()
            outcome = self._outcomes.get(self._queue.cursor)
            if outcome is not None:
                return outcome.result
            item = self._queue.current()
            if not self._staged:
                raise SelectionError("Select at least one option.")
            return self._submit_staged(item)

    # --- Moving through the queue ---

    def next(self) -> AdvanceResult:
        """Leave the current item, requeueing it in practice mode when it was missed."""
        with self._lock:
            self._ensure_active()
            self._save_staged_answer()
            outcome = self._outcomes.get(self._queue.cursor)
            was_correct = outcome is not None and outcome.result.is_correct
            result = self._queue.advance(was_correct, self.config.practice_mode)
            self._staged = set()
            if result.done:
                self._machine.complete(self._attempt.id, self._attempt.user_id)
            return result

    def previous(self) -> PresentationItem:
        with self._lock:
            return self._navigate(self._queue.cursor - 1)

    def go_to(self, position: int) -> PresentationItem:
        with self._lock:
            return self._navigate(position)

    def finish(self, time_taken: int | None = None) -> Attempt:
        """Hand the attempt in early, saving any staged answer first."""
        with self._lock:
            self._ensure_active()
            return self._finish(time_taken)

    # --- Timing ---

    def check_time(self, elapsed_seconds: int) -> bool:
        """Complete a timed attempt once its limit is reached; True if this call completed it."""
        limit = self.config.time_limit_seconds
        if limit is None or elapsed_seconds < limit:
            return False
        with self._lock:
            if self._attempt.is_completed:
                return False
            self._finish(elapsed_seconds)
            return True

    def time_warning_due(self, elapsed_seconds: int) -> bool:
        limit = self.config.time_limit_seconds
        if limit is None or limit <= TIME_WARNING_WINDOW_SECONDS:
            return False
        return elapsed_seconds == limit - TIME_WARNING_WINDOW_SECONDS

    def auto_advance_delay(self) -> int | None:
        """Seconds to wait before calling ``next`` automatically, if at all."""
        with self._lock:
            if not (self.config.auto_advance and self.config.reveals_immediately):
                return None
            if self._attempt.is_completed or self._queue.cursor not in self._outcomes:
                return None
            return self.config.auto_advance_time

    # --- Read-only views ---

    def progress(self) -> ProgressSnapshot:
        with self._lock:
            return self._progress()

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            if self._attempt.is_completed or self._queue.is_exhausted():
                return {"finished": True, "attempt": self._attempt.to_snapshot()}

            item = self._queue.current()
            question = item.question
            outcome = self._outcomes.get(self._queue.cursor)
            revealed = outcome is not None and outcome.revealed
            if outcome is not None:
                selected = self._display_indices(item, outcome.result.answer.selection)
            else:
                selected = sorted(self._staged)
            progress = self._progress()

            return {
                "finished": False,
                "attempt_id": self._attempt.id,
                "position": self._queue.cursor,
                "display_index": item.display_index,
                "progress_label": progress.label,
                "progress_percentage": progress.percentage,
                "is_retry": item.is_retry,
                "question_id": question.id,
                "question_type": question.question_type.value,
                "question_html": renderer.render_fragment(question.question_text),
                "passage_html": renderer.render_fragment(question.passage_text),
                "code_html": renderer.render_code_block(question.code_block),
                "options": list(item.display_options),
                "selected": selected,
                "submitted": outcome is not None,
                "is_correct": outcome.result.is_correct if revealed else None,
                "display_correct_answer": _to_wire(item.display_correct_answer) if revealed else None,
                "explanation_html": renderer.render_fragment(question.explanation) if revealed else None,
                "can_navigate": not self.config.practice_mode,
            }

    def review(self) -> AttemptReview:
        with self._lock:
            questions = [self._machine.get_question(question_id) for question_id in self._attempt.question_ids]
            return build_review(self._attempt, questions)

    # --- Internals (caller holds the lock) ---

    def _ensure_active(self) -> None:
        if self._attempt.is_completed:
            raise AlreadyCompletedError(f"Attempt {self._attempt.id} already completed")

    def _finish(self, time_taken: int | None) -> Attempt:
        self._save_staged_answer()
        return self._machine.complete(self._attempt.id, self._attempt.user_id, time_taken)

    def _submit_staged(self, item: PresentationItem) -> AnswerResult:
        display_selection: Selection
        if item.question.question_type is QuestionType.MULTIPLE:
            display_selection = MultipleSelection(frozenset(self._staged))
        else:
            display_selection = SingleSelection(next(iter(self._staged)))

        result = self._machine.submit_answer(
            self._attempt.id,
            self._attempt.user_id,
            item.question_id,
            item.to_canonical(display_selection),
        )
        self._outcomes[self._queue.cursor] = ItemOutcome(
            result=result,
            revealed=self.config.reveals_immediately,
        )
        return result

    def _save_staged_answer(self) -> None:
        if self._queue.is_exhausted() or self._queue.cursor in self._outcomes or not self._staged:
            return
        if not self.config.reveals_immediately:
            self._submit_staged(self._queue.current())

    def _navigate(self, position: int) -> PresentationItem:
        self._ensure_active()
        self._save_staged_answer()
        item = self._queue.seek(position)
        self._staged = set()
        return item

    def _progress(self) -> ProgressSnapshot:
        total = self._attempt.total_questions
        answers = self._attempt.submitted_answers
        if self.config.reveals_immediately:
            answered = len({answer.question_id for answer in answers if answer.is_correct})
        else:
            answered = len({answer.question_id for answer in answers})
        if self._queue.is_exhausted():
            display_index = total
        else:
            display_index = self._queue.current().display_index
        return ProgressSnapshot(
            display_index=display_index,
            total_questions=total,
            answered=answered,
            percentage=compute_score(answered, total),
        )

    @staticmethod
    def _display_indices(item: PresentationItem, selection: Selection) -> list[int]:
        canonical = selection.index if isinstance(selection, SingleSelection) else selection.indices
        shown = item.to_display(canonical)
        return sorted(shown) if isinstance(shown, frozenset) else [shown]


def _to_wire(answer) -> int | list[int]:
    if isinstance(answer, frozenset):
        return sorted(answer)
    return answer
