# FILE: daily_quiz/services/progress_tracker.py
"""
Attempt & streak tracker

Each identity has one progress record holding its attempt history. Every
submission is applied as a single atomic update of that record, which is
the unit of mutual exclusion: racing submissions for the same identity are
serialized by the store and cannot award points or extend a streak twice.

The completion event for the leaderboard is flagged as pending inside the
same write, published after the commit and then marked delivered. A pending
event left behind by a failed publish is delivered again by the next
submission for that day; the leaderboard drops re-deliveries by event id.
"""
import logging
from typing import Any, Callable, Dict, Optional

from daily_quiz.errors import NotScheduled, QuestionMismatch
from daily_quiz.models.attempts import (
    AttemptResult,
    CompletionEvent,
    DailyAttempt,
    Identity,
    UserProgress,
)
from daily_quiz.services.answer_validator import check_answer
from daily_quiz.services.calendar import CivilCalendar, parse_date_key
from daily_quiz.services.question_catalog import QuestionCatalog
from daily_quiz.services.record_store import RecordStore
from daily_quiz.services.schedule_manager import ScheduleManager

logger = logging.getLogger(__name__)

PROGRESS_COLLECTION = "progress"

CompletionSink = Callable[[CompletionEvent], Any]


def apply_completion(progress: UserProgress, date_key: str, points: int, calendar: CivilCalendar) -> None:
    """Streak law: +1 after the previous day, unchanged on the same day, else reset to 1"""
    last = progress.last_completed_date_key

    if last == date_key:
        pass
    elif last is not None and last == calendar.previous_day(date_key):
        progress.current_streak += 1
    else:
        progress.current_streak = 1

    progress.longest_streak = max(progress.longest_streak, progress.current_streak)
    progress.total_points += points
    progress.last_completed_date_key = date_key


def rebuild_progress(progress: UserProgress, calendar: CivilCalendar) -> UserProgress:
    """Recompute streaks and totals from the attempt history alone"""
    rebuilt = UserProgress(identity=progress.identity, attempts=progress.attempts)

    solved = [a for a in progress.attempts if a.solved]
    solved.sort(key=lambda a: (a.completion_seq is None, a.completion_seq or 0, a.date_key))

    for attempt in solved:
        apply_completion(rebuilt, attempt.date_key, attempt.points_awarded, calendar)
        rebuilt.completions += 1

    return rebuilt


class ProgressTracker:
    """Records attempts and maintains per-identity progress"""

    def __init__(
        self,
        store: RecordStore,
        schedule: ScheduleManager,
        catalog: QuestionCatalog,
        calendar: CivilCalendar,
        scoring,
        submit_window_days: int = 0,
        completion_sink: Optional[CompletionSink] = None
    ):
        self.store = store
        self.schedule = schedule
        self.catalog = catalog
        self.calendar = calendar
        self.scoring = scoring
        self.submit_window_days = submit_window_days
        self.completion_sink = completion_sink

    def get_progress(self, identity: Identity) -> UserProgress:
        raw = self.store.get(PROGRESS_COLLECTION, identity.key)
        if raw is None:
            return UserProgress(identity=identity.key)
        return UserProgress(**raw)

    def check_window(self, date_key: str) -> None:
        parse_date_key(date_key)
        age = self.calendar.days_between(date_key, self.calendar.today_key())
        if age < 0 or age > self.submit_window_days:
            raise NotScheduled(
                f"{date_key} is outside the submission window",
                date_key=date_key,
                window_days=self.submit_window_days,
            )

    def record_attempt(
        self,
        identity: Identity,
        date_key: str,
        question_id: str,
        submission: Any,
        elapsed_ms: int
    ) -> AttemptResult:
        self.check_window(date_key)

        entry = self.schedule.resolve(date_key)
        question = self.catalog.get(entry.question_id)
        if question is None:
            raise NotScheduled(
                f"Scheduled question {entry.question_id} for {date_key} is unavailable",
                date_key=date_key,
            )
        if question_id != question.id:
            raise QuestionMismatch(date_key, question_id, question.id)

        elapsed = max(0, int(elapsed_ms or 0))

        if identity.is_admin:
            logger.debug(f"Admin {identity.id} submission for {date_key} is not recorded")
            return self.score_only(question, submission, elapsed, date_key)

        check = check_answer(question, submission)

        outcome: Dict[str, Any] = {}

        def mutate(current):
            outcome.clear()
            progress = UserProgress(**current) if current else UserProgress(identity=identity.key)

            attempt = progress.attempt_for(date_key)
            if attempt is None:
                attempt = DailyAttempt(date_key=date_key, question_id=question.id)
                progress.attempts.append(attempt)
            attempt.attempt_count += 1
            outcome["attempt_number"] = attempt.attempt_count

            if attempt.solved:
                outcome["already_solved"] = True
                outcome["republish"] = not attempt.completion_published
            elif check.correct:
                breakdown = self.scoring.calculate(question.base_points, attempt.attempt_count, elapsed)
                attempt.solved_on_attempt = attempt.attempt_count
                attempt.elapsed_ms = elapsed
                attempt.points_awarded = breakdown.total_points
                attempt.completed_at = self.calendar.now_iso()
                progress.completions += 1
                attempt.completion_seq = progress.completions
                apply_completion(progress, date_key, breakdown.total_points, self.calendar)
                outcome["breakdown"] = breakdown
                outcome["newly_solved"] = True

            outcome["attempt"] = attempt.model_copy()
            outcome["progress"] = progress.summary()
            return progress.model_dump()

        self.store.update(PROGRESS_COLLECTION, identity.key, mutate)

        attempt: DailyAttempt = outcome["attempt"]
        breakdown = outcome.get("breakdown")

        if outcome.get("newly_solved"):
            logger.info(
                f"{identity.key} solved {date_key} on attempt {attempt.solved_on_attempt} "
                f"(+{attempt.points_awarded}, streak {outcome['progress']['current_streak']})"
            )
        elif outcome.get("already_solved"):
            logger.debug(f"{identity.key} re-submitted solved quiz {date_key}")

        if outcome.get("newly_solved") or outcome.get("republish"):
            self._publish_completion(identity, attempt)

        result = AttemptResult(
            correct=check.correct,
            date_key=date_key,
            question_id=question.id,
            attempt_number=outcome["attempt_number"],
            already_solved=bool(outcome.get("already_solved")),
            points_awarded=breakdown.total_points if breakdown else 0,
            points_breakdown=breakdown,
            feedback=check.feedback(question),
            progress=outcome["progress"],
        )
        if check.correct:
            result.answer = question.answer_key()
            result.explanation = question.explanation
        return result

    def score_only(self, question, submission: Any, elapsed_ms: int, date_key: Optional[str] = None) -> AttemptResult:
        """Score as a first attempt without touching any record"""
        check = check_answer(question, submission)
        elapsed = max(0, int(elapsed_ms or 0))
        breakdown = self.scoring.calculate(question.base_points, 1, elapsed) if check.correct else None
        date_key = date_key or self.calendar.today_key()
        return AttemptResult(
            correct=check.correct,
            date_key=date_key,
            question_id=question.id,
            attempt_number=1,
            points_awarded=breakdown.total_points if breakdown else 0,
            points_breakdown=breakdown,
            feedback=check.feedback(question),
            answer=question.answer_key() if check.correct else {},
            explanation=question.explanation if check.correct else None,
            recorded=False,
        )

    def _publish_completion(self, identity: Identity, attempt: DailyAttempt) -> None:
        event = CompletionEvent(
            identity=identity.key,
            date_key=attempt.date_key,
            period_key=self.calendar.period_key(attempt.date_key),
            score=attempt.points_awarded,
            elapsed_ms=attempt.elapsed_ms,
        )

        if self.completion_sink is not None:
            try:
                self.completion_sink(event)
            except Exception:
                logger.warning(f"Completion event {event.event_id} left pending", exc_info=True)
                raise

        def mark_published(current):
            if current is None:
                return None
            progress = UserProgress(**current)
            stored = progress.attempt_for(attempt.date_key)
            if stored is None or stored.completion_published:
                return None
            stored.completion_published = True
            return progress.model_dump()

        self.store.update(PROGRESS_COLLECTION, identity.key, mark_published)
