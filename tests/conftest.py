from datetime import datetime, timedelta, timezone
import random

import pytest

from quiz_engine.core.models import Question, QuestionSet, QuestionType, QuizMode
from quiz_engine.core.services.attempt_machine import AttemptStateMachine
from quiz_engine.core.services.quiz_repository import InMemoryAttemptStore, QuestionCatalog


class StepClock:
    """Deterministic clock that moves forward one step per call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


def _make_question(qid, correct=0, options=("A", "B", "C", "D"), order_index=0, **kwargs):
    if isinstance(correct, (set, frozenset, list)):
        question_type = QuestionType.MULTIPLE
        correct = frozenset(correct)
    else:
        question_type = QuestionType.SINGLE
    return Question(
        id=qid,
        question_text=f"Question {qid}",
        options=tuple(options),
        correct_answer=correct,
        question_type=question_type,
        order_index=order_index,
        **kwargs,
    )


@pytest.fixture
def make_question():
    return _make_question


@pytest.fixture
def school_set():
    return QuestionSet(
        id="school",
        title="Chapter 1",
        questions=tuple(
            _make_question(f"q{n}", correct=n - 1, order_index=n, explanation=f"Because {n}")
            for n in range(1, 5)
        ),
    )


@pytest.fixture
def multi_set():
    return QuestionSet(
        id="multi",
        title="Pick all that apply",
        questions=(
            _make_question("m1", correct={0, 2}, order_index=1),
            _make_question(
                "m2",
                correct=1,
                order_index=2,
                passage_text="Read the **memo** below.",
                code_block="print(1)",
            ),
        ),
    )


@pytest.fixture
def toeic_set():
    return QuestionSet(
        id="toeic",
        title="Reading part 7",
        mode=QuizMode.TOEIC,
        questions=tuple(_make_question(f"t{n}", correct=0, order_index=n) for n in range(1, 4)),
    )


@pytest.fixture
def catalog(school_set, multi_set, toeic_set):
    catalog = QuestionCatalog()
    catalog.load_question_set(school_set)
    catalog.load_question_set(multi_set)
    catalog.load_question_set(toeic_set)
    return catalog


@pytest.fixture
def store():
    return InMemoryAttemptStore()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def machine(catalog, store, clock):
    return AttemptStateMachine(catalog, store, rng=random.Random(7), clock=clock)
