import random

import pytest

from quiz_engine.core.errors import QueueNavigationError, QueueOutOfRangeError, QueueStuckError
from quiz_engine.core.models import AttemptConfig
from quiz_engine.core.services.session_queue import SessionQueueController
from quiz_engine.core.services.shuffle_engine import build_presentation


@pytest.fixture
def build_queue(make_question):
    def _build(count, seed=0, **config):
        questions = [make_question(f"q{n}") for n in range(1, count + 1)]
        items = build_presentation(questions, AttemptConfig(**config), rng=random.Random(seed))
        return SessionQueueController(items, rng=random.Random(seed))

    return _build


class TestLinearQueue:
    def test_empty_queue_has_no_current_item(self):
        with pytest.raises(QueueOutOfRangeError):
            SessionQueueController([]).current()

    def test_advances_to_done(self, build_queue):
        queue = build_queue(3)
        results = [queue.advance(was_correct=False, practice_mode=False) for _ in range(3)]

        assert [result.done for result in results] == [False, False, True]
        assert all(result.retry_position is None for result in results)
        assert len(queue.items) == 3
        assert queue.is_exhausted()
        with pytest.raises(QueueOutOfRangeError):
            queue.current()

    def test_total_counts_distinct_questions(self, build_queue):
        queue = build_queue(5)
        assert queue.total_questions == 5
        assert queue.visited_count == 1
        assert queue.remaining_count == 4

    def test_seek_moves_cursor(self, build_queue):
        queue = build_queue(4)
        assert queue.seek(2).question_id == "q3"
        assert queue.current().question_id == "q3"
        with pytest.raises(QueueOutOfRangeError):
            queue.seek(4)


class TestPracticeRequeue:
    def test_wrong_then_right_on_retry_terminates_after_six_items(self, build_queue):
        queue = build_queue(3)
        presented = []
        done = False
        while not done:
            item = queue.current()
            presented.append(item)
            done = queue.advance(was_correct=item.is_retry, practice_mode=True).done

        assert len(presented) == 6
        assert queue.mastered_question_ids == {"q1", "q2", "q3"}
        assert [item.is_retry for item in presented] == [False] * 3 + [True] * 3
        assert queue.visited_count == 6
        assert queue.remaining_count == 0

    def test_retry_keeps_display_index(self, build_queue):
        queue = build_queue(2)
        original = queue.current()
        result = queue.advance(was_correct=False, practice_mode=True)

        retry = queue.items[result.retry_position]
        assert retry.question_id == original.question_id
        assert retry.display_index == original.display_index
        assert retry.is_retry is True

    def test_short_tail_appends_retry_at_end(self, build_queue):
        queue = build_queue(3)
        result = queue.advance(was_correct=False, practice_mode=True)
        assert result.retry_position == 3
        assert [item.question_id for item in queue.items] == ["q1", "q2", "q3", "q1"]

    def test_no_retry_when_question_already_mastered(self, build_queue):
        queue = build_queue(2)
        first = queue.current()
        duplicated = SessionQueueController([first, first, queue.items[1]])

        duplicated.advance(was_correct=True, practice_mode=True)
        result = duplicated.advance(was_correct=False, practice_mode=True)
        assert result.retry_position is None
        assert duplicated.total_questions == 2
        assert duplicated.advance(was_correct=True, practice_mode=True).done is True

    def test_stuck_queue_raises_instead_of_looping(self, build_queue):
        queue = build_queue(2)
        queue.advance(was_correct=False, practice_mode=False)
        with pytest.raises(QueueStuckError):
            queue.advance(was_correct=True, practice_mode=True)

    def test_navigation_refused_in_practice(self, build_queue):
        queue = build_queue(4)
        queue.advance(was_correct=True, practice_mode=True)
        with pytest.raises(QueueNavigationError):
            queue.seek(0)

    @pytest.mark.parametrize("seed", range(25))
    def test_retry_never_lands_within_minimum_gap(self, build_queue, seed):
        queue = build_queue(8, seed=seed, shuffle_questions=True)
        answers = random.Random(seed + 1000)
        steps = 0
        done = False
        while not done:
            steps += 1
            assert steps < 10_000
            cursor = queue.cursor
            tail_before = len(queue.items) - cursor - 1
            result = queue.advance(was_correct=answers.random() < 0.4, practice_mode=True)
            if result.retry_position is not None:
                gap = result.retry_position - cursor - 1
                assert gap >= min(3, tail_before)
                assert gap <= tail_before
            done = result.done

        assert queue.mastered_question_ids == {f"q{n}" for n in range(1, 9)}
