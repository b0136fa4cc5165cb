"""Builds the per-attempt presentation order for questions and options."""

from __future__ import annotations

from collections.abc import Collection, Sequence
import random

from quiz_engine.core.models import AttemptConfig, PresentationItem, Question


def build_presentation(
    questions: Sequence[Question],
    config: AttemptConfig,
    rng: random.Random | None = None,
    retry_ids: Collection[str] = (),
) -> list[PresentationItem]:
    """Return the first-pass queue for ``questions`` under ``config``.

    ``display_index`` numbers items by the order the student will see them on
    the first pass. Items whose question id is in ``retry_ids`` are marked as
    retries (questions carried over from an earlier attempt in practice mode).
    """
    rng = rng or random.Random()
    ordered = list(questions)
    if config.shuffle_questions:
        rng.shuffle(ordered)

    return [
        _build_item(
            question,
            display_index=position,
            shuffle_options=config.shuffle_options,
            rng=rng,
            is_retry=question.id in retry_ids,
        )
        for position, question in enumerate(ordered, start=1)
    ]


def _build_item(
    question: Question,
    display_index: int,
    shuffle_options: bool,
    rng: random.Random,
    is_retry: bool,
) -> PresentationItem:
    combined = list(zip(question.options, range(len(question.options))))
    if shuffle_options:
        rng.shuffle(combined)

    display_options = tuple(option for option, _ in combined)
    option_mapping = tuple(canonical for _, canonical in combined)
    return PresentationItem(
        question=question,
        display_options=display_options,
        option_mapping=option_mapping,
        display_correct_answer=remap_correct_answer(question, option_mapping),
        display_index=display_index,
        is_retry=is_retry,
    )


def remap_correct_answer(question: Question, option_mapping: Sequence[int]):
    """Express the canonical correct answer in display positions."""
    position_of = {canonical: display for display, canonical in enumerate(option_mapping)}
    if isinstance(question.correct_answer, frozenset):
        return frozenset(position_of[index] for index in question.correct_answer)
    return position_of[question.correct_answer]
