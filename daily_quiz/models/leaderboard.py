# FILE: daily_quiz/models/leaderboard.py
"""
Leaderboard models
"""
from typing import List, Optional
from pydantic import BaseModel, Field

__all__ = ["LeaderboardSlot", "LeaderboardEntry", "Leaderboard"]


class LeaderboardSlot(BaseModel):
    """Stored position on a period board (rank is implied by list order)"""
    identity: str
    score: int
    elapsed_ms: Optional[int] = None
    recorded_at: Optional[str] = None
    event_id: Optional[str] = None


class LeaderboardEntry(BaseModel):
    rank: int
    identity: str
    score: int
    elapsed_ms: Optional[int] = None


class Leaderboard(BaseModel):
    period_key: str
    entries: List[LeaderboardEntry] = Field(default_factory=list)
