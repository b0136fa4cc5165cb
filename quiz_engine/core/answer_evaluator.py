"""Correctness checks for submitted selections.

Wire payloads carry either a bare option index or a list of indices,
depending on the client. ``normalize_selection`` turns that value into a
``SingleSelection`` or ``MultipleSelection`` once, using the question type,
so nothing downstream has to branch on the raw shape again. ``evaluate`` is
pure and assumes its inputs were normalized first.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Union

from quiz_engine.core.errors import SelectionError
from quiz_engine.core.models import (
    CorrectAnswer,
    MultipleSelection,
    Question,
    QuestionType,
    Selection,
    SingleSelection,
)

RawSelection = Union[int, Iterable[int], SingleSelection, MultipleSelection]


def normalize_selection(question: Question, raw: RawSelection) -> Selection:
    """Validate a wire value against ``question`` and return its tagged form."""
    option_count = len(question.options)
    if question.question_type is QuestionType.SINGLE:
        index = _coerce_single(raw)
        _check_range(index, option_count)
        return SingleSelection(index)

    indices = _coerce_many(raw)
    if not indices:
        raise SelectionError("Select at least one option.")
    for index in indices:
        _check_range(index, option_count)
    return MultipleSelection(frozenset(indices))


def evaluate(correct_answer: CorrectAnswer, submitted: RawSelection) -> bool:
    """Return True when ``submitted`` matches ``correct_answer`` exactly.

    Single-choice answers compare one index. Multiple-choice answers compare
    as sets, so order is irrelevant and there is no partial credit.
    """
    if isinstance(correct_answer, (set, frozenset)):
        if isinstance(submitted, MultipleSelection):
            chosen = set(submitted.indices)
        elif isinstance(submitted, SingleSelection):
            chosen = {submitted.index}
        elif isinstance(submitted, int):
            chosen = {submitted}
        else:
            chosen = set(submitted)
        return chosen == set(correct_answer)

    if isinstance(submitted, SingleSelection):
        return submitted.index == correct_answer
    if isinstance(submitted, int) and not isinstance(submitted, bool):
        return submitted == correct_answer
    raise TypeError("Single-choice answers must be evaluated against one option index.")


def _coerce_single(raw: RawSelection) -> int:
    if isinstance(raw, SingleSelection):
        return raw.index
    if isinstance(raw, MultipleSelection):
        raw = sorted(raw.indices)
    if _is_index(raw):
        return raw
    if isinstance(raw, (list, tuple)) and len(raw) == 1 and _is_index(raw[0]):
        return raw[0]
    raise SelectionError("Single-choice questions accept exactly one option index.")


def _coerce_many(raw: RawSelection) -> set[int]:
    if isinstance(raw, MultipleSelection):
        return set(raw.indices)
    if isinstance(raw, SingleSelection):
        return {raw.index}
    if _is_index(raw):
        return {raw}
    if isinstance(raw, (list, tuple, set, frozenset)) and all(_is_index(value) for value in raw):
        return set(raw)
    raise SelectionError("Multiple-choice answers must be a list of option indices.")


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_range(index: int, option_count: int) -> None:
    if not 0 <= index < option_count:
        raise SelectionError(f"Option index {index} out of range")
