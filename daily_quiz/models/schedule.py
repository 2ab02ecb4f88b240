# FILE: daily_quiz/models/schedule.py
"""
Schedule models
"""
from typing import List, Optional
from pydantic import BaseModel, Field

__all__ = ["SYSTEM_ASSIGNER", "ScheduleEntry", "ScheduleAssignRequest", "RepairReport"]

SYSTEM_ASSIGNER = "system"


class ScheduleEntry(BaseModel):
    """One question assigned to one date"""
    date_key: str
    question_id: str
    assigned_at: str
    assigned_by: str = SYSTEM_ASSIGNER
    repaired_from: Optional[str] = None


class ScheduleAssignRequest(BaseModel):
    """Admin assignment of a question to a date"""
    date: str = Field(..., description="YYYY-MM-DD")
    question_id: str


class RepairReport(BaseModel):
    """Outcome of a legacy reference repair pass"""
    version: int
    scanned: int = 0
    repaired: List[dict] = Field(default_factory=list)
    unrepairable: List[dict] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.repaired)
