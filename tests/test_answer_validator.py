# FILE: tests/test_answer_validator.py

import pytest
from daily_quiz.services.answer_validator import check_answer, validate


def test_mcq_accepts_index_or_object(catalog):
    question = catalog.get("algo_q0")

    assert validate(question, 1)
    assert validate(question, {"selected_index": 1})
    assert not validate(question, 0)
    assert not validate(question, 7)


def test_mcq_rejects_booleans_and_strings(catalog):
    """True must not count as index 1"""
    question = catalog.get("algo_q0")

    assert not validate(question, True)
    assert not validate(question, "1")
    assert not validate(question, None)


def test_mcq_wrong_answer_feedback(catalog):
    question = catalog.get("algo_q0")
    check = check_answer(question, 2)

    assert not check.correct
    assert check.feedback(question) == {"wrong_index": 2}


def test_select_all_is_order_independent(catalog):
    question = catalog.get("net_q0")

    assert validate(question, [2, 0])
    assert validate(question, {"selected_indices": [0, 2]})
    assert not validate(question, [0])
    assert not validate(question, [0, 1, 2])
    assert not validate(question, [0, "2"])


def test_select_all_feedback_echoes_selection(catalog):
    question = catalog.get("net_q0")
    check = check_answer(question, [1, 3])

    assert check.feedback(question) == {"selected_indices": [1, 3]}


def test_written_answers_are_normalized(catalog):
    question = catalog.get("os_q0")

    assert validate(question, "  PREEMPTION ")
    assert validate(question, {"text": "Preemptive\tScheduling"})
    assert not validate(question, "pre emption")
    assert check_answer(question, "nope").feedback(question) == {}


@pytest.mark.parametrize("submission", [None, 3, [1], {"unexpected": True}])
def test_malformed_written_submission_is_incorrect(catalog, submission):
    assert not validate(catalog.get("os_q0"), submission)
