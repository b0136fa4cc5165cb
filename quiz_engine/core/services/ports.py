"""Collaborator interfaces the attempt engine depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod

from quiz_engine.core.models import Attempt, Question, QuestionSet


class QuestionCatalogPort(ABC):
    """Read-only access to authored question sets."""

    @abstractmethod
    def get_question_set(self, question_set_id: str) -> QuestionSet:
        """Return the set with its questions in canonical order."""

    @abstractmethod
    def get_question(self, question_id: str) -> Question:
        pass


class AttemptStorePort(ABC):
    """Durable storage for attempts and their answer logs."""

    @abstractmethod
    def save_attempt(self, attempt: Attempt) -> None:
        """Persist the attempt, including its submitted answers."""

    @abstractmethod
    def get_attempt(self, attempt_id: str) -> Attempt | None:
        pass

    @abstractmethod
    def get_latest_completed_attempt(self, user_id: str, question_set_id: str) -> Attempt | None:
        """Most recently completed attempt by ``user_id`` on the set, if any."""

    @abstractmethod
    def list_attempts(self, user_id: str) -> list[Attempt]:
        pass
