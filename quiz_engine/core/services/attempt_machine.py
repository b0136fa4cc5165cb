"""Attempt lifecycle: creation, answer submission and completion."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from datetime import datetime, timezone
import logging
import random
from threading import Lock
from uuid import uuid4

from quiz_engine.constants.quiz_constants import MAX_SCORE
from quiz_engine.core.answer_evaluator import RawSelection, evaluate, normalize_selection
from quiz_engine.core.errors import AlreadyCompletedError, AttemptNotFoundError, QuestionNotFoundError
from quiz_engine.core.models import Attempt, AttemptConfig, CorrectAnswer, Question, SubmittedAnswer
from quiz_engine.core.services.ports import AttemptStorePort, QuestionCatalogPort
from quiz_engine.core.services.session_queue import SessionQueueController
from quiz_engine.core.services.shuffle_engine import build_presentation

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class AnswerResult:
    """Returned to the client after each submission."""

    is_correct: bool
    correct_answer: CorrectAnswer
    explanation: str | None
    answer: SubmittedAnswer
    counted: bool


def compute_score(correct_count: int, total_questions: int) -> int:
    """Percentage of questions answered correctly, rounded half up and capped at 100."""
    if total_questions <= 0:
        return 0
    rounded = (200 * correct_count + total_questions) // (2 * total_questions)
    return min(MAX_SCORE, rounded)


def latest_incorrect_question_ids(attempt: Attempt) -> set[str]:
    """Questions whose most recent answer in ``attempt`` was wrong."""
    latest: dict[str, bool] = {}
    for answer in sorted(attempt.submitted_answers, key=lambda a: a.submitted_at):
        latest[answer.question_id] = answer.is_correct
    return {question_id for question_id, is_correct in latest.items() if not is_correct}


class AttemptStateMachine:
    """Drives attempts from ``Active`` to ``Completed``.

    Every transition is validated before anything changes, persisted through
    the store and only then applied to the live attempt, all under one lock,
    so retried or duplicated client requests cannot interleave.
    """

    def __init__(
        self,
        catalog: QuestionCatalogPort,
        store: AttemptStorePort,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._lock = Lock()
        self._catalog = catalog
        self._store = store
        self._rng = rng or random.Random()
        self._clock = clock or _utcnow
        self._live: dict[str, Attempt] = {}

    def create(
        self,
        question_set_id: str,
        user_id: str,
        config: AttemptConfig | Mapping[str, object] | None = None,
    ) -> Attempt:
        if not isinstance(config, AttemptConfig):
            config = AttemptConfig.model_validate(config or {})

        with self._lock:
            question_set = self._catalog.get_question_set(question_set_id)
            questions = list(question_set.questions)
            retry_ids: set[str] = set()

            if config.practice_mode:
                previous = self._store.get_latest_completed_attempt(user_id, question_set_id)
                if previous is not None:
                    incorrect = latest_incorrect_question_ids(previous)
                    subset = [question for question in questions if question.id in incorrect]
                    if subset:
                        questions = subset
                        retry_ids = incorrect

            items = build_presentation(questions, config, rng=self._rng, retry_ids=retry_ids)
            queue = SessionQueueController(items, rng=self._rng)
            if config.practice_mode:
                queue.lock_navigation()

            attempt = Attempt(
                id=uuid4().hex,
                user_id=user_id,
                question_set_id=question_set_id,
                config=config,
                question_ids=tuple(question.id for question in questions),
                total_questions=len(questions),
                started_at=self._clock(),
            )
            self._store.save_attempt(attempt)
            attempt.queue = queue
            self._live[attempt.id] = attempt

        logger.info(
            "Started attempt %s for user %s on set %s (%d questions, practice=%s)",
            attempt.id,
            user_id,
            question_set_id,
            attempt.total_questions,
            config.practice_mode,
        )
        return attempt

    def submit_answer(
        self,
        attempt_id: str,
        user_id: str,
        question_id: str,
        submitted: RawSelection,
    ) -> AnswerResult:
        with self._lock:
            attempt = self._load(attempt_id, user_id)
            if attempt.is_completed:
                raise AlreadyCompletedError(f"Attempt {attempt_id} already completed")

            question = self._question_in_attempt(attempt, question_id)
            selection = normalize_selection(question, submitted)
            is_correct = evaluate(question.correct_answer, selection)
            counted = is_correct and not attempt.has_correct_submission(question_id)

            record = SubmittedAnswer(
                question_id=question_id,
                selection=selection,
                is_correct=is_correct,
                submitted_at=self._clock(),
            )
            working = attempt.detached_copy()
            working.submitted_answers.append(record)
            if counted:
                working.correct_count += 1
            self._commit(attempt, working)

        return AnswerResult(
            is_correct=is_correct,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            answer=record,
            counted=counted,
        )

    def complete(self, attempt_id: str, user_id: str, time_taken: int | None = None) -> Attempt:
        with self._lock:
            attempt = self._load(attempt_id, user_id)
            if attempt.is_completed:
                raise AlreadyCompletedError(f"Attempt {attempt_id} already completed")

            completed_at = self._clock()
            if time_taken is None:
                time_taken = max(0, int((completed_at - attempt.started_at).total_seconds()))

            working = attempt.detached_copy()
            working.score = compute_score(attempt.correct_count, attempt.total_questions)
            working.is_completed = True
            working.time_taken = time_taken
            working.completed_at = completed_at
            self._commit(attempt, working)
            self._live.pop(attempt.id, None)

        logger.info(
            "Completed attempt %s: %d/%d correct, score %d",
            attempt.id,
            attempt.correct_count,
            attempt.total_questions,
            attempt.score,
        )
        return attempt

    def live_attempt_count(self) -> int:
        """Number of active attempts held in memory with their queues."""
        with self._lock:
            return len(self._live)

    def get_attempt(self, attempt_id: str, user_id: str) -> Attempt:
        with self._lock:
            return self._load(attempt_id, user_id)

    def list_user_attempts(self, user_id: str) -> list[Attempt]:
        return self._store.list_attempts(user_id)

    def get_question(self, question_id: str) -> Question:
        return self._catalog.get_question(question_id)

    def _load(self, attempt_id: str, user_id: str) -> Attempt:
        attempt = self._live.get(attempt_id)
        if attempt is None:
            attempt = self._store.get_attempt(attempt_id)
            # Completed attempts are read-only; only active ones are kept live.
            if attempt is not None and not attempt.is_completed:
                self._live[attempt_id] = attempt
        if attempt is None or attempt.user_id != user_id:
            raise AttemptNotFoundError(f"Attempt {attempt_id} not found")
        return attempt

    def _question_in_attempt(self, attempt: Attempt, question_id: str) -> Question:
        question = self._catalog.get_question(question_id)
        if question_id not in attempt.question_ids:
            raise QuestionNotFoundError(f"Question {question_id} is not part of attempt {attempt.id}")
        return question

    def _commit(self, live: Attempt, working: Attempt) -> None:
        self._store.save_attempt(working)
        for attempt_field in fields(Attempt):
            if attempt_field.name != "queue":
                setattr(live, attempt_field.name, getattr(working, attempt_field.name))
