# FILE: daily_quiz/services/answer_validator.py
"""
Answer validation for all question types

Pure functions. A submission of the wrong shape for the question type is
an incorrect answer, never an error.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from daily_quiz.models.questions import Question
from daily_quiz.services.question_catalog import normalize_text


@dataclass(frozen=True)
class AnswerCheck:
    correct: bool
    selected_index: Optional[int] = None
    selected_indices: List[int] = field(default_factory=list)
    normalized_answer: Optional[str] = None

    def feedback(self, question: Question) -> Dict[str, Any]:
        """Hints for a wrong answer; written answers get none"""
        if self.correct:
            return {}
        if question.type == "mcq" and self.selected_index is not None:
            return {"wrong_index": self.selected_index}
        if question.type == "select-all":
            return {"selected_indices": self.selected_indices}
        return {}


def _as_index(value: Any) -> Optional[int]:
    # bool is an int subclass; True must not select choice 1
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _mcq_selection(submission: Any) -> Optional[int]:
    if isinstance(submission, dict):
        submission = submission.get("selected_index")
    return _as_index(submission)


def _select_all_selection(submission: Any) -> Optional[List[int]]:
    if isinstance(submission, dict):
        submission = submission.get("selected_indices")
    if not isinstance(submission, (list, tuple)):
        return None
    indices = [_as_index(item) for item in submission]
    if any(index is None for index in indices):
        return None
    return indices


def _written_selection(submission: Any) -> Optional[str]:
    if isinstance(submission, dict):
        submission = submission.get("text")
    if not isinstance(submission, str):
        return None
    return normalize_text(submission)


def check_answer(question: Question, submission: Any) -> AnswerCheck:
    """Score a submission and keep the normalized selection for feedback"""
    if question.type == "mcq":
        index = _mcq_selection(submission)
        if index is None:
            return AnswerCheck(correct=False)
        return AnswerCheck(correct=index == question.correct_index, selected_index=index)

    if question.type == "select-all":
        indices = _select_all_selection(submission)
        if indices is None:
            return AnswerCheck(correct=False)
        correct = set(indices) == set(question.correct_indices or [])
        return AnswerCheck(correct=correct, selected_indices=indices)

    if question.type == "written":
        text = _written_selection(submission)
        if text is None:
            return AnswerCheck(correct=False)
        return AnswerCheck(
            correct=text in set(question.accepted_answers or []),
            normalized_answer=text,
        )

    return AnswerCheck(correct=False)


def validate(question: Question, submission: Any) -> bool:
    return check_answer(question, submission).correct
