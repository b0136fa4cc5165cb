"""Adaptive presentation queue for a single attempt."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import random

from quiz_engine.constants.quiz_constants import RETRY_MIN_GAP
from quiz_engine.core.errors import QueueNavigationError, QueueOutOfRangeError, QueueStuckError
from quiz_engine.core.models import PresentationItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdvanceResult:
    """Outcome of moving past the current item."""

    done: bool
    retry_position: int | None = None


class SessionQueueController:
    """Ordered queue of presentation items with a cursor and mastery tracking.

    In practice mode an incorrectly answered question is copied back into the
    unvisited part of the queue as a retry. At least ``min_retry_gap`` other
    unvisited items are presented before the retry, or the whole remaining
    tail when it is shorter than that.
    """

    def __init__(
        self,
        items: list[PresentationItem],
        rng: random.Random | None = None,
        min_retry_gap: int = RETRY_MIN_GAP,
    ) -> None:
        self._queue: list[PresentationItem] = list(items)
        self._cursor: int = 0
        self._mastered: set[str] = set()
        self._rng = rng or random.Random()
        self._min_retry_gap = min_retry_gap
        self._total_questions = len({item.question_id for item in items})
        self._practice_locked = False

    @property
    def total_questions(self) -> int:
        return self._total_questions

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def items(self) -> tuple[PresentationItem, ...]:
        return tuple(self._queue)

    @property
    def mastered_question_ids(self) -> frozenset[str]:
        return frozenset(self._mastered)

    @property
    def visited_count(self) -> int:
        """Number of items presented so far, counting the current one."""
        return min(self._cursor + 1, len(self._queue))

    @property
    def remaining_count(self) -> int:
        return max(0, len(self._queue) - self._cursor - 1)

    def is_exhausted(self) -> bool:
        return self._cursor >= len(self._queue)

    def current(self) -> PresentationItem:
        if not 0 <= self._cursor < len(self._queue):
            raise QueueOutOfRangeError(f"Queue position {self._cursor} out of range")
        return self._queue[self._cursor]

    def advance(self, was_correct: bool, practice_mode: bool) -> AdvanceResult:
        """Move past the current item, requeueing it first when practice requires."""
        item = self.current()
        if practice_mode:
            self._practice_locked = True

        if was_correct:
            self._mastered.add(item.question_id)

        retry_position = None
        if practice_mode and not was_correct and item.question_id not in self._mastered:
            retry_position = self._insert_retry(item.as_retry())

        last_index = len(self._queue) - 1
        if self._cursor == last_index and practice_mode and len(self._mastered) < self._total_questions:
            logger.error(
                "Practice queue exhausted with %d of %d questions mastered",
                len(self._mastered),
                self._total_questions,
            )
            raise QueueStuckError("Practice mode is unfinished but no retry items remain.")

        self._cursor += 1
        return AdvanceResult(done=self._cursor > last_index, retry_position=retry_position)

    def seek(self, position: int) -> PresentationItem:
        """Jump to an existing queue position (linear navigation only)."""
        if self._practice_locked:
            raise QueueNavigationError("Free navigation is not available in practice mode.")
        if not 0 <= position < len(self._queue):
            raise QueueOutOfRangeError(f"Queue position {position} out of range")
        self._cursor = position
        return self._queue[position]

    def lock_navigation(self) -> None:
        self._practice_locked = True

    def _insert_retry(self, retry_item: PresentationItem) -> int:
        tail_length = len(self._queue) - self._cursor - 1
        if tail_length > self._min_retry_gap:
            offset = self._rng.randint(self._min_retry_gap, tail_length)
        else:
            offset = tail_length
        position = self._cursor + 1 + offset
        self._queue.insert(position, retry_item)
        logger.debug(
            "Requeued question %s at position %d (cursor %d)",
            retry_item.question_id,
            position,
            self._cursor,
        )
        return position
