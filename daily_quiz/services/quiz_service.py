# FILE: daily_quiz/services/quiz_service.py
"""
Quiz service facade

Wires catalog, schedule, tracker and leaderboard over one record store and
one calendar, and exposes the operations the HTTP routes call.
"""
import logging
from typing import Any, Dict, List, Optional

from daily_quiz.config import get_settings
from daily_quiz.errors import AlreadyScheduled, UnknownQuestion
from daily_quiz.models.attempts import AttemptResult, Identity, SubmitRequest, UserProgress
from daily_quiz.models.leaderboard import Leaderboard
from daily_quiz.models.schedule import RepairReport, ScheduleEntry
from daily_quiz.services.calendar import CivilCalendar, parse_date_key
from daily_quiz.services.integrity_log import IntegrityLog
from daily_quiz.services.leaderboard import LeaderboardAggregator
from daily_quiz.services.progress_tracker import ProgressTracker
from daily_quiz.services.question_catalog import QuestionCatalog
from daily_quiz.services.record_store import RecordStore, build_record_store
from daily_quiz.services.schedule_manager import ScheduleManager, SequentialSelectionPolicy
from daily_quiz.services.scoring import build_scoring_policy

logger = logging.getLogger(__name__)


class QuizService:
    """Entry point for every quiz operation"""

    def __init__(
        self,
        catalog: QuestionCatalog,
        store: RecordStore,
        calendar: CivilCalendar,
        schedule: ScheduleManager,
        tracker: ProgressTracker,
        leaderboard: LeaderboardAggregator,
        integrity_log: Optional[IntegrityLog] = None
    ):
        self.catalog = catalog
        self.store = store
        self.calendar = calendar
        self.schedule = schedule
        self.tracker = tracker
        self.leaderboard = leaderboard
        self.integrity_log = integrity_log

    # ------------------------------------------------------------------
    # player operations
    # ------------------------------------------------------------------
    def resolve_todays_question(self, date_key: Optional[str] = None) -> Dict[str, Any]:
        """Scheduled question for a date (default today), without answers"""
        date_key = date_key or self.calendar.today_key()
        entry = self.schedule.resolve(date_key)
        question = self.catalog.get(entry.question_id)

        return {
            "date_key": date_key,
            "period_key": self.calendar.period_key(date_key),
            "question": question.public_view() if question else None,
        }

    def start_quiz(self, identity: Identity, date_key: Optional[str] = None) -> Dict[str, Any]:
        """Today's question plus where this identity stands on it"""
        payload = self.resolve_todays_question(date_key)
        progress = self.tracker.get_progress(identity)
        attempt = progress.attempt_for(payload["date_key"])

        payload["attempt"] = {
            "attempt_count": attempt.attempt_count if attempt else 0,
            "solved": attempt.solved if attempt else False,
            "points_awarded": attempt.points_awarded if attempt else 0,
        }
        payload["progress"] = progress.summary()
        return payload

    def submit_answer(
        self,
        identity: Identity,
        date_key: Optional[str],
        submission: SubmitRequest
    ) -> AttemptResult:
        date_key = date_key or submission.date_key or self.calendar.today_key()
        return self.tracker.record_attempt(
            identity,
            date_key,
            submission.question_id,
            submission.answer,
            submission.elapsed_ms,
        )

    def get_progress(self, identity: Identity) -> UserProgress:
        return self.tracker.get_progress(identity)

    def get_leaderboard(self, period_key: Optional[str] = None) -> Leaderboard:
        return self.leaderboard.get_leaderboard(period_key or self.calendar.current_period_key())

    # ------------------------------------------------------------------
    # admin operations
    # ------------------------------------------------------------------
    def repair_legacy_references(self) -> RepairReport:
        return self.schedule.repair_legacy_references()

    def list_schedule(self, start: Optional[str] = None, end: Optional[str] = None) -> List[ScheduleEntry]:
        if start:
            parse_date_key(start)
        if end:
            parse_date_key(end)
        return self.schedule.list_entries(start, end)

    def assign_question(self, date_key: str, question_id: str, admin_id: str) -> ScheduleEntry:
        """Assign a question; repeating the same assignment is a no-op"""
        entry, created = self.schedule.assign(date_key, question_id, admin_id)
        if not created and entry.question_id != question_id.strip():
            raise AlreadyScheduled(
                f"{entry.date_key} is already scheduled with {entry.question_id}",
                date_key=entry.date_key,
                question_id=entry.question_id,
            )
        return entry

    def list_questions(self) -> List[Dict[str, Any]]:
        """Full catalog in selection order, answers included"""
        return [question.model_dump(exclude_none=True) for question in self.catalog.ordered()]

    def test_submit(self, question_id: str, answer: Any, elapsed_ms: int = 0) -> AttemptResult:
        question = self.catalog.get(question_id)
        if question is None:
            raise UnknownQuestion(f"Question not found: {question_id}", question_id=question_id)
        return self.tracker.score_only(question, answer, elapsed_ms)

    def integrity_summary(self) -> Dict[str, Any]:
        if self.integrity_log is None:
            return {"enabled": False}
        return self.integrity_log.summary()


def build_quiz_service(settings, now=None, catalog: Optional[QuestionCatalog] = None) -> QuizService:
    """Assemble the service from settings; `now` pins the clock"""
    calendar = CivilCalendar(settings.quiz_timezone, now=now, period=settings.leaderboard_period)
    store = build_record_store(settings)
    catalog = catalog if catalog is not None else QuestionCatalog.from_jsonl(settings.questions_path)
    integrity_log = IntegrityLog.from_settings(settings, calendar)

    schedule = ScheduleManager(
        store,
        catalog,
        calendar,
        selection_policy=SequentialSelectionPolicy(settings.reuse_questions_when_exhausted),
        integrity_log=integrity_log,
        auto_assign_window_days=settings.submit_window_days,
    )
    leaderboard = LeaderboardAggregator(
        store,
        size=settings.leaderboard_size,
        policy=settings.leaderboard_policy,
        calendar=calendar,
    )
    tracker = ProgressTracker(
        store,
        schedule,
        catalog,
        calendar,
        build_scoring_policy(settings.scoring_policy),
        submit_window_days=settings.submit_window_days,
        completion_sink=leaderboard.handle_completion,
    )

    return QuizService(catalog, store, calendar, schedule, tracker, leaderboard, integrity_log)


_service: Optional[QuizService] = None


def get_quiz_service() -> QuizService:
    """Get or create the process-wide service"""
    global _service
    if _service is None:
        _service = build_quiz_service(get_settings())
    return _service


def reset_quiz_service():
    """Drop the cached service (useful for testing)"""
    global _service
    _service = None
