"""Post-attempt review: what was answered, what was right."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from quiz_engine.core.models import Attempt, Question, SubmittedAnswer


@dataclass(frozen=True, slots=True)
class ReviewEntry:
    question: Question
    answers: tuple[SubmittedAnswer, ...]

    @property
    def last_answer(self) -> SubmittedAnswer:
        return self.answers[-1]

    @property
    def is_correct(self) -> bool:
        """Correctness of the latest submission, which is what the review shows."""
        return self.last_answer.is_correct

    @property
    def selected_indices(self) -> list[int]:
        wire = self.last_answer.selection.to_wire()
        return wire if isinstance(wire, list) else [wire]

    @property
    def correct_indices(self) -> list[int]:
        return sorted(self.question.correct_indices)


@dataclass(frozen=True, slots=True)
class AttemptReview:
    attempt_id: str
    score: int | None
    total_questions: int
    unique_correct_count: int
    entries: tuple[ReviewEntry, ...]


def build_review(attempt: Attempt, questions: Iterable[Question]) -> AttemptReview:
    """Group the attempt's answer log by question, in authored order."""
    by_id = {question.id: question for question in questions}
    grouped: dict[str, list[SubmittedAnswer]] = {}
    for answer in sorted(attempt.submitted_answers, key=lambda a: a.submitted_at):
        if answer.question_id in by_id:
            grouped.setdefault(answer.question_id, []).append(answer)

    entries = sorted(
        (ReviewEntry(question=by_id[question_id], answers=tuple(answers)) for question_id, answers in grouped.items()),
        key=lambda entry: entry.question.order_index,
    )
    unique_correct = {answer.question_id for answer in attempt.submitted_answers if answer.is_correct}
    return AttemptReview(
        attempt_id=attempt.id,
        score=attempt.score,
        total_questions=attempt.total_questions,
        unique_correct_count=len(unique_correct),
        entries=tuple(entries),
    )
