# FILE: daily_quiz/models/attempts.py
"""
Attempt and progress models
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "Role",
    "Identity",
    "PointsBreakdown",
    "DailyAttempt",
    "UserProgress",
    "CompletionEvent",
    "AttemptResult",
    "SubmitRequest",
    "StartRequest",
]

Role = Literal["player", "guest", "admin"]


class Identity(BaseModel):
    """Opaque caller identity supplied by the session collaborator"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    role: Role = "player"

    @property
    def key(self) -> str:
        return f"{self.role}:{self.id}"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_key(cls, key: str) -> "Identity":
        role, _, ident = key.partition(":")
        return cls(id=ident, role=role)


class PointsBreakdown(BaseModel):
    base_points: int
    attempt_number: int
    attempt_multiplier: float
    base_after_multiplier: int
    first_try_bonus: int = 0
    speed_bonus: int = 0
    total_points: int


class DailyAttempt(BaseModel):
    """Attempt record for one identity on one date"""
    date_key: str
    question_id: str
    attempt_count: int = 0
    solved_on_attempt: Optional[int] = None
    elapsed_ms: Optional[int] = None
    points_awarded: int = 0
    completed_at: Optional[str] = None
    completion_seq: Optional[int] = None
    completion_published: bool = False

    @property
    def solved(self) -> bool:
        return self.solved_on_attempt is not None


class UserProgress(BaseModel):
    """Per-identity progress; streak counters are derived from attempts"""
    identity: str
    current_streak: int = 0
    longest_streak: int = 0
    total_points: int = 0
    last_completed_date_key: Optional[str] = None
    completions: int = 0
    attempts: List[DailyAttempt] = Field(default_factory=list)

    def attempt_for(self, date_key: str) -> Optional[DailyAttempt]:
        for attempt in self.attempts:
            if attempt.date_key == date_key:
                return attempt
        return None

    def summary(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "total_points": self.total_points,
            "last_completed_date_key": self.last_completed_date_key,
        }


class CompletionEvent(BaseModel):
    """Emitted once per identity per day on the first correct answer"""
    identity: str
    date_key: str
    period_key: str
    score: int
    elapsed_ms: Optional[int] = None

    @property
    def event_id(self) -> str:
        return f"{self.identity}|{self.date_key}"


class AttemptResult(BaseModel):
    correct: bool
    date_key: str
    question_id: str
    attempt_number: int
    already_solved: bool = False
    points_awarded: int = 0
    points_breakdown: Optional[PointsBreakdown] = None
    feedback: Dict[str, Any] = Field(default_factory=dict)
    answer: Dict[str, Any] = Field(default_factory=dict)
    explanation: Optional[str] = None
    progress: Optional[Dict[str, Any]] = None
    recorded: bool = True


class StartRequest(BaseModel):
    guest_token: Optional[str] = None


class SubmitRequest(BaseModel):
    """Answer submission for the current quiz"""
    question_id: str
    answer: Any = None
    elapsed_ms: int = 0
    date_key: Optional[str] = None
    guest_token: Optional[str] = None
