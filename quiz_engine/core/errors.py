"""Exceptions raised by the attempt engine."""

from __future__ import annotations


class QuizEngineError(Exception):
    """Base class for every error raised by the engine."""


class QuestionValidationError(QuizEngineError, ValueError):
    """Raised when a question breaks the authoring contract."""


class SelectionError(QuizEngineError, ValueError):
    """Raised when a submitted selection has the wrong shape or range."""


class QuestionSetNotFoundError(QuizEngineError, LookupError):
    """Raised when a question set id is unknown to the catalog."""


class QuestionNotFoundError(QuizEngineError, LookupError):
    """Raised when a question is unknown or not part of the attempt."""


class AttemptNotFoundError(QuizEngineError, LookupError):
    """Raised when an attempt does not exist or belongs to another user."""


class AlreadyCompletedError(QuizEngineError, RuntimeError):
    """Raised when mutating an attempt that has already been completed."""


class QueueOutOfRangeError(QuizEngineError, IndexError):
    """Raised when the queue cursor does not point at an item."""


class QueueNavigationError(QuizEngineError, RuntimeError):
    """Raised when free navigation is requested on an adaptive queue."""


class QueueStuckError(QuizEngineError, AssertionError):
    """Raised when practice mode is unfinished but nothing is left to present."""
