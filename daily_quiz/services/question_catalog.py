# FILE: daily_quiz/services/question_catalog.py
"""
Question catalog

Loads published questions from a JSONL file (one question per line) and
keeps the valid ones in memory, keyed by id.

- Broken lines are skipped with a warning
- Questions with an impossible answer key are rejected (listed in .rejected)
- Written answers are normalized once here so validation is a set lookup
- Duplicate ids are logged; the first definition wins
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from pydantic import ValidationError

from daily_quiz.models.questions import BASE_POINTS_BY_DIFFICULTY, Question

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_NUMBER_RE = re.compile(r"(\d+)$")


def normalize_text(text: str) -> str:
    """Trim, lower-case and collapse internal whitespace"""
    return _WHITESPACE_RE.sub(" ", text.strip().lower())


def check_question(question: Question) -> Optional[str]:
    """Return the reason a question cannot be served, or None if it is valid"""
    if not question.id.strip():
        return "empty id"

    if question.type == "mcq":
        if not question.choices:
            return "mcq requires choices"
        if question.correct_index is None:
            return "mcq requires correct_index"
        if not 0 <= question.correct_index < len(question.choices):
            return "mcq correct_index out of range"
        return None

    if question.type == "select-all":
        if not question.choices:
            return "select-all requires choices"
        indices = question.correct_indices or []
        if not indices:
            return "select-all requires correct_indices"
        if len(set(indices)) != len(indices):
            return "select-all correct_indices must be unique"
        if not all(0 <= i < len(question.choices) for i in indices):
            return "select-all correct_indices out of range"
        return None

    answers = [a for a in (question.accepted_answers or []) if a.strip()]
    if not answers:
        return "written requires accepted_answers"
    return None


def _prepare(question: Question) -> Question:
    updates: Dict[str, Any] = {}

    expected_base = BASE_POINTS_BY_DIFFICULTY[question.difficulty]
    if not question.base_points:
        updates["base_points"] = expected_base
    elif question.base_points != expected_base:
        logger.warning(
            f"basePoints mismatch for {question.id}: {question.base_points} != {expected_base}"
        )

    if question.type == "written":
        normalized = []
        for answer in question.accepted_answers or []:
            value = normalize_text(answer)
            if value and value not in normalized:
                normalized.append(value)
        updates["accepted_answers"] = normalized

    return question.model_copy(update=updates) if updates else question


def question_sort_key(question: Question):
    """Numeric suffix first (q2 before q10), then id"""
    match = _TRAILING_NUMBER_RE.search(question.id)
    number = int(match.group(1)) if match else float("inf")
    return (number, question.id)


class QuestionCatalog:
    """Immutable set of valid questions"""

    def __init__(self, questions: Iterable[Question] = ()):
        self._questions: Dict[str, Question] = {}
        self.rejected: Dict[str, str] = {}
        duplicates: Set[str] = set()

        for question in questions:
            if question.id in self._questions or question.id in self.rejected:
                duplicates.add(question.id)
                continue

            reason = check_question(question)
            if reason:
                logger.warning(f"Rejected question {question.id}: {reason}")
                self.rejected[question.id] = reason
                continue

            self._questions[question.id] = _prepare(question)

        if duplicates:
            logger.error(f"Duplicate question IDs detected: {', '.join(sorted(duplicates))}")

        self._ordered = sorted(self._questions.values(), key=question_sort_key)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "QuestionCatalog":
        questions = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning("Skipping non-object question record")
                continue
            try:
                questions.append(Question.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed question {record.get('id')!r}: {e.error_count()} errors")
        return cls(questions)

    @classmethod
    def from_jsonl(cls, path: str) -> "QuestionCatalog":
        """Load questions.jsonl; a missing file gives an empty catalog"""
        catalog_path = Path(path)
        if not catalog_path.exists():
            logger.warning(f"Question catalog not found: {catalog_path}")
            return cls()

        records = []
        with open(catalog_path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping broken line {line_no} in {catalog_path.name}")

        catalog = cls.from_records(records)
        logger.info(f"Loaded {len(catalog)} questions from {catalog_path}")
        return catalog

    def get(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    def ids(self) -> Set[str]:
        return set(self._questions)

    def ordered(self) -> List[Question]:
        return list(self._ordered)

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._questions

    def __len__(self) -> int:
        return len(self._questions)
