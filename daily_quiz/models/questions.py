# FILE: daily_quiz/models/questions.py
"""
Question models
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

__all__ = ["QuestionType", "Question", "BASE_POINTS_BY_DIFFICULTY", "ANSWER_FIELDS"]

QuestionType = Literal["mcq", "select-all", "written"]

BASE_POINTS_BY_DIFFICULTY = {1: 100, 2: 150, 3: 200}

ANSWER_FIELDS = ("correct_index", "correct_indices", "accepted_answers")


class Question(BaseModel):
    """Published quiz question (immutable)"""

    model_config = ConfigDict(frozen=True)

    id: str
    type: QuestionType
    prompt: str
    choices: Optional[List[str]] = None
    correct_index: Optional[int] = None
    correct_indices: Optional[List[int]] = None
    accepted_answers: Optional[List[str]] = None
    difficulty: int = Field(default=2, ge=1, le=3)
    base_points: int = Field(default=0, ge=0)
    tags: List[str] = Field(default_factory=list)
    explanation: Optional[str] = None

    def public_view(self) -> Dict[str, Any]:
        """Question as shown to players: no answer fields"""
        return self.model_dump(exclude=set(ANSWER_FIELDS) | {"explanation"}, exclude_none=True)

    def answer_key(self) -> Dict[str, Any]:
        """Answer fields for the question's type, revealed after a correct submit"""
        if self.type == "mcq":
            return {"correct_index": self.correct_index}
        if self.type == "select-all":
            return {"correct_indices": self.correct_indices}
        return {"accepted_answers": self.accepted_answers}
