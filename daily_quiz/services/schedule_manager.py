# FILE: daily_quiz/services/schedule_manager.py
"""
Schedule manager: one question per date key

Assignments are write-once. Creation goes through the store's
create_if_absent, so concurrent resolvers for the same date all end up
with whichever entry was persisted first.

Older schedules reference questions by a multi-part numbering
("<puzzle>_q<N>"); only "<puzzle>_q0" exists in the current catalog. The
repair pass rewrites such references in place and reports the ones it
cannot fix without ever touching a valid entry.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Tuple, Union

from daily_quiz.errors import DataIntegrityWarning, InvalidDateKey, NotScheduled, UnknownQuestion
from daily_quiz.models.schedule import SYSTEM_ASSIGNER, RepairReport, ScheduleEntry
from daily_quiz.services.calendar import CivilCalendar, is_valid_date_key, parse_date_key
from daily_quiz.services.question_catalog import QuestionCatalog
from daily_quiz.services.record_store import RecordStore

logger = logging.getLogger(__name__)

SCHEDULE_COLLECTION = "schedule"
LEGACY_REPAIR_VERSION = 1

_LEGACY_SUFFIX_RE = re.compile(r"^(.*)_q(\d+)$", re.IGNORECASE)


# ----------------------------------------------------------------------
# question references
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class CanonicalId:
    value: str


@dataclass(frozen=True)
class LegacyNumberedId:
    value: str
    base: str
    index: int

    @property
    def canonical(self) -> str:
        return f"{self.base}_q0"


QuestionRef = Union[CanonicalId, LegacyNumberedId]


def parse_question_ref(question_id: str) -> QuestionRef:
    """Legacy iff the id ends in _q<N> with N >= 1 and a non-empty base"""
    match = _LEGACY_SUFFIX_RE.match(question_id.strip())
    if match:
        base = match.group(1).strip()
        index = int(match.group(2))
        if base and index > 0:
            return LegacyNumberedId(value=question_id, base=base, index=index)
    return CanonicalId(value=question_id)


# ----------------------------------------------------------------------
# selection policy
# ----------------------------------------------------------------------
SelectionPolicy = Callable[[str, QuestionCatalog, Set[str], CivilCalendar], Optional[str]]


class SequentialSelectionPolicy:
    """
    First catalog question (q2 before q10) that was never scheduled.

    When every question has been used, either give up (None) or, with
    reuse_when_exhausted, cycle through the catalog by date ordinal.
    """

    def __init__(self, reuse_when_exhausted: bool = False):
        self.reuse_when_exhausted = reuse_when_exhausted

    def __call__(self, date_key, catalog, scheduled_ids, calendar) -> Optional[str]:
        ordered = catalog.ordered()
        if not ordered:
            return None

        for question in ordered:
            if question.id not in scheduled_ids:
                return question.id

        if self.reuse_when_exhausted:
            return ordered[calendar.ordinal(date_key) % len(ordered)].id
        return None


class ScheduleManager:
    """Maps date keys to question ids"""

    def __init__(
        self,
        store: RecordStore,
        catalog: QuestionCatalog,
        calendar: CivilCalendar,
        selection_policy: Optional[SelectionPolicy] = None,
        integrity_log=None,
        auto_assign_window_days: int = 0
    ):
        self.store = store
        self.catalog = catalog
        self.calendar = calendar
        self.selection_policy = selection_policy or SequentialSelectionPolicy()
        self.integrity_log = integrity_log
        self.auto_assign_window_days = auto_assign_window_days

    def get_entry(self, date_key: str) -> Optional[ScheduleEntry]:
        raw = self.store.get(SCHEDULE_COLLECTION, date_key)
        return ScheduleEntry(**raw) if raw else None

    def resolve(self, date_key: str) -> ScheduleEntry:
        """Entry for date_key, assigning one through the selection policy if needed"""
        parse_date_key(date_key)

        existing = self.get_entry(date_key)
        if existing:
            return self._heal(existing)

        # Only today (and the last auto_assign_window_days days) may take the next
        # question; older or future dates never consume the sequence
        age = self.calendar.days_between(date_key, self.calendar.today_key())
        if age < 0:
            raise NotScheduled(f"No question assigned for future date {date_key}", date_key=date_key)
        if age > self.auto_assign_window_days:
            raise NotScheduled(f"No question was scheduled for {date_key}", date_key=date_key)

        scheduled_ids = {entry.question_id for entry in self.list_entries()}
        question_id = self.selection_policy(date_key, self.catalog, scheduled_ids, self.calendar)
        if not question_id:
            raise NotScheduled(f"No questions available for {date_key}", date_key=date_key)

        candidate = ScheduleEntry(
            date_key=date_key,
            question_id=question_id,
            assigned_at=self.calendar.now_iso(),
            assigned_by=SYSTEM_ASSIGNER,
        )
        stored, created = self.store.create_if_absent(
            SCHEDULE_COLLECTION, date_key, candidate.model_dump()
        )
        entry = ScheduleEntry(**stored)

        if created:
            logger.info(f"Scheduled {entry.question_id} for {date_key}")
            return entry

        logger.debug(f"Schedule for {date_key} already written by another worker: {entry.question_id}")
        return self._heal(entry)

    def assign(self, date_key: str, question_id: str, assigned_by: str) -> Tuple[ScheduleEntry, bool]:
        """Admin assignment; returns (entry, created) and never overwrites"""
        question_id = question_id.strip()
        parse_date_key(date_key)

        if self.calendar.days_between(self.calendar.today_key(), date_key) < 0:
            raise InvalidDateKey(f"Cannot schedule {date_key}: date is in the past", date_key=date_key)
        if question_id not in self.catalog:
            raise UnknownQuestion(f"Question not found: {question_id}", question_id=question_id)

        candidate = ScheduleEntry(
            date_key=date_key,
            question_id=question_id,
            assigned_at=self.calendar.now_iso(),
            assigned_by=assigned_by,
        )
        stored, created = self.store.create_if_absent(
            SCHEDULE_COLLECTION, date_key, candidate.model_dump()
        )
        if created:
            logger.info(f"Admin {assigned_by} scheduled {question_id} for {date_key}")
        return ScheduleEntry(**stored), created

    def list_entries(self, start: Optional[str] = None, end: Optional[str] = None) -> List[ScheduleEntry]:
        entries = []
        for date_key, raw in self.store.items(SCHEDULE_COLLECTION):
            if not is_valid_date_key(date_key):
                logger.warning(f"Ignoring schedule entry with invalid date key {date_key!r}")
                continue
            if start and date_key < start:
                continue
            if end and date_key > end:
                continue
            entries.append(ScheduleEntry(**raw))

        entries.sort(key=lambda e: e.date_key)
        return entries

    # ------------------------------------------------------------------
    # legacy reference repair
    # ------------------------------------------------------------------
    def repair_legacy_references(self, valid_question_ids: Optional[Set[str]] = None) -> RepairReport:
        valid_ids = set(valid_question_ids) if valid_question_ids is not None else self.catalog.ids()
        report = RepairReport(version=LEGACY_REPAIR_VERSION)

        if not valid_ids:
            # An empty catalog would flag every entry
            logger.warning("Skipping legacy repair: no valid question ids")
            return report

        for entry in self.list_entries():
            report.scanned += 1
            if entry.question_id in valid_ids:
                continue

            repaired, warning = self._repair_entry(entry, valid_ids)
            if warning:
                report.unrepairable.append(warning.to_dict())
                self._report(warning)
            elif repaired and self._was_repaired(repaired, entry.question_id):
                report.repaired.append({
                    "date_key": entry.date_key,
                    "from": entry.question_id,
                    "to": repaired.question_id,
                })

        if report.changed:
            logger.info(f"Legacy repair v{report.version}: {len(report.repaired)} entries rewritten")
        return report

    def _repair_entry(
        self, entry: ScheduleEntry, valid_ids: Set[str]
    ) -> Tuple[Optional[ScheduleEntry], Optional[DataIntegrityWarning]]:
        ref = parse_question_ref(entry.question_id)

        if isinstance(ref, LegacyNumberedId) and ref.canonical in valid_ids:
            stale_id = entry.question_id
            rewritten = []

            def mutate(current):
                del rewritten[:]
                if current is None or current.get("question_id") != stale_id:
                    return None
                current["question_id"] = ref.canonical
                current["repaired_from"] = stale_id
                rewritten.append(True)
                return current

            stored = self.store.update(SCHEDULE_COLLECTION, entry.date_key, mutate)
            if not rewritten:
                # Another writer changed the entry first; serve what is stored
                logger.debug(f"Schedule entry {entry.date_key} changed before repair, leaving it")
                return (ScheduleEntry(**stored) if stored else None), None

            logger.warning(
                f"Repaired legacy schedule entry {entry.date_key}: {stale_id} -> {ref.canonical}"
            )
            return ScheduleEntry(**stored), None

        if isinstance(ref, LegacyNumberedId):
            reason = f"canonical id {ref.canonical} is not in the catalog"
        else:
            reason = "id is not in the catalog and has no legacy numbering"

        return None, DataIntegrityWarning(
            kind="unrepairable_schedule_reference",
            message=f"Schedule entry {entry.date_key} -> {entry.question_id}: {reason}",
            date_key=entry.date_key,
            question_id=entry.question_id,
        )

    @staticmethod
    def _was_repaired(stored: ScheduleEntry, stale_id: str) -> bool:
        """True only when the stored entry is the rewrite of stale_id"""
        return stored.question_id != stale_id and stored.repaired_from == stale_id

    def _heal(self, entry: ScheduleEntry) -> ScheduleEntry:
        """Opportunistic single-entry repair on the read path"""
        if entry.question_id in self.catalog:
            return entry

        valid_ids = self.catalog.ids()
        if not valid_ids:
            return entry

        repaired, warning = self._repair_entry(entry, valid_ids)
        if warning:
            self._report(warning)
            return entry
        return repaired or entry

    def _report(self, warning: DataIntegrityWarning):
        if self.integrity_log is not None:
            self.integrity_log.report(warning)
        else:
            logger.warning("DATA_INTEGRITY %s: %s", warning.kind, warning.message)
