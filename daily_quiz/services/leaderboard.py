# FILE: daily_quiz/services/leaderboard.py
"""
Bounded per-period leaderboard

Each period board is a single record holding at most `size` slots in rank
order. A completion is folded in with one atomic store update
(read, insert, stable sort, truncate, write), so concurrent completions for
different identities never lose each other.

Policies:
- "append": every completion gets its own slot, so one identity can hold
  several positions in the same period
- "best": one slot per identity, replaced only by a higher score
"""
import logging
from typing import List, Optional

from daily_quiz.models.attempts import CompletionEvent
from daily_quiz.models.leaderboard import Leaderboard, LeaderboardEntry, LeaderboardSlot
from daily_quiz.services.record_store import RecordStore

logger = logging.getLogger(__name__)

LEADERBOARD_COLLECTION = "leaderboard"
DEFAULT_SIZE = 10


def fold_completion(
    slots: List[LeaderboardSlot],
    slot: LeaderboardSlot,
    size: int,
    policy: str = "append"
) -> Optional[List[LeaderboardSlot]]:
    """
    New ranked slot list with `slot` applied, or None when nothing changes.

    The new slot goes after existing ones before the stable sort, so among
    equal scores the earlier completion keeps the higher rank.
    """
    working = list(slots)

    if slot.event_id and any(s.event_id == slot.event_id for s in working):
        return None

    if policy == "best":
        previous = next((s for s in working if s.identity == slot.identity), None)
        if previous is not None:
            if slot.score <= previous.score:
                return None
            working.remove(previous)

    working.append(slot)
    working.sort(key=lambda s: s.score, reverse=True)
    ranked = working[:size]

    if not any(s is slot for s in ranked):
        return None
    return ranked


class LeaderboardAggregator:
    """Maintains top-N boards keyed by period"""

    def __init__(self, store: RecordStore, size: int = DEFAULT_SIZE, policy: str = "append", calendar=None):
        self.store = store
        self.size = size
        self.policy = policy
        self.calendar = calendar

    def record_completion(
        self,
        period_key: str,
        identity: str,
        score: int,
        elapsed_ms: Optional[int] = None,
        event_id: Optional[str] = None
    ) -> List[LeaderboardEntry]:
        slot = LeaderboardSlot(
            identity=identity,
            score=score,
            elapsed_ms=elapsed_ms,
            recorded_at=self.calendar.now_iso() if self.calendar else None,
            event_id=event_id,
        )

        changed = []

        def mutate(current):
            changed.clear()
            slots = [LeaderboardSlot(**s) for s in (current or {}).get("slots", [])]
            ranked = fold_completion(slots, slot, self.size, self.policy)
            if ranked is None:
                return None
            changed.append(True)
            return {
                "period_key": period_key,
                "slots": [s.model_dump() for s in ranked],
            }

        stored = self.store.update(LEADERBOARD_COLLECTION, period_key, mutate)
        if changed:
            logger.info(f"Leaderboard {period_key}: folded {identity} score={score}")
        else:
            logger.debug(f"Leaderboard {period_key}: {identity} score={score} left board unchanged")
        return self._entries(stored)

    def handle_completion(self, event: CompletionEvent) -> List[LeaderboardEntry]:
        """Completion-event sink for the attempt tracker; re-delivery is a no-op"""
        return self.record_completion(
            event.period_key,
            event.identity,
            event.score,
            event.elapsed_ms,
            event_id=event.event_id,
        )

    def get_leaderboard(self, period_key: str) -> Leaderboard:
        stored = self.store.get(LEADERBOARD_COLLECTION, period_key)
        return Leaderboard(period_key=period_key, entries=self._entries(stored))

    def _entries(self, stored) -> List[LeaderboardEntry]:
        slots = (stored or {}).get("slots", [])[: self.size]
        return [
            LeaderboardEntry(
                rank=position,
                identity=s["identity"],
                score=s["score"],
                elapsed_ms=s.get("elapsed_ms"),
            )
            for position, s in enumerate(slots, start=1)
        ]
