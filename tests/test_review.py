from quiz_engine.core.services.review import build_review


def test_groups_answers_in_authored_order(machine, catalog):
    attempt = machine.create("multi", "u1")
    machine.submit_answer(attempt.id, "u1", "m2", 0)
    machine.submit_answer(attempt.id, "u1", "m1", [0, 2])
    machine.submit_answer(attempt.id, "u1", "m2", 1)
    machine.complete(attempt.id, "u1")

    questions = catalog.get_question_set("multi").questions
    review = build_review(attempt, questions)

    assert [entry.question.id for entry in review.entries] == ["m1", "m2"]
    m1, m2 = review.entries
    assert m1.selected_indices == [0, 2]
    assert m1.correct_indices == [0, 2]
    assert [answer.is_correct for answer in m2.answers] == [False, True]
    assert m2.last_answer.selection.index == 1
    assert review.unique_correct_count == 2
    assert review.score == 100


def test_latest_wrong_answer_is_shown_as_wrong(machine, catalog):
    attempt = machine.create("school", "u1")
    machine.submit_answer(attempt.id, "u1", "q1", 0)
    machine.submit_answer(attempt.id, "u1", "q1", 2)

    review = build_review(attempt, catalog.get_question_set("school").questions)

    assert len(review.entries) == 1
    assert review.entries[0].is_correct is False
    assert review.unique_correct_count == 1
    assert review.score is None
