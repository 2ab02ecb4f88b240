# FILE: daily_quiz/services/integrity_log.py
"""
Operator channel for data-integrity warnings (rotated JSONL)

- Appends one JSON line per warning to LOGS_DIR/integrity/events-YYYY-MM-DD.jsonl
- Rotates daily on the local date of the quiz timezone; timestamps stay UTC
- Keeps a small in-memory tail and per-kind counters for GET /admin/integrity

Writing here never fails the caller: the read path that noticed the problem
keeps serving.
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Deque, Dict

from daily_quiz.errors import DataIntegrityWarning
from daily_quiz.services.calendar import CivilCalendar

logger = logging.getLogger(__name__)

_MAX_IN_MEMORY_EVENTS = 200


@dataclass(frozen=True)
class IntegrityLogConfig:
    enabled: bool
    logs_dir: Path
    retention_days: int


class IntegrityLog:
    """Rotated JSONL sink for DataIntegrityWarning records"""

    def __init__(self, config: IntegrityLogConfig, calendar: CivilCalendar):
        self.config = config
        self.calendar = calendar
        self._recent: Deque[Dict[str, Any]] = deque(maxlen=_MAX_IN_MEMORY_EVENTS)
        self._counters: Dict[str, int] = defaultdict(int)

    @classmethod
    def from_settings(cls, settings, calendar: CivilCalendar) -> "IntegrityLog":
        config = IntegrityLogConfig(
            enabled=settings.integrity_log_enabled,
            logs_dir=Path(settings.logs_dir),
            retention_days=settings.integrity_retention_days,
        )
        return cls(config, calendar)

    def _log_dir(self) -> Path:
        d = self.config.logs_dir / "integrity"
        d.mkdir(parents=True, exist_ok=True)
        return d

    def _event_file_path(self) -> Path:
        return self._log_dir() / f"events-{self.calendar.today_key()}.jsonl"

    def init(self) -> None:
        """Create the log dir and prune files past retention"""
        if not self.config.enabled:
            logger.info("Integrity log disabled")
            return

        self._prune_old_files()
        logger.info(
            "Integrity log initialized (tz=%s retention_days=%s dir=%s)",
            self.calendar.tz_name,
            self.config.retention_days,
            str(self.config.logs_dir),
        )

    def _prune_old_files(self) -> None:
        try:
            retention_days = max(self.config.retention_days, 1)
            cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)

            for p in self._log_dir().glob("events-*.jsonl"):
                date_part = p.name.replace("events-", "").replace(".jsonl", "")
                try:
                    file_date = datetime.fromisoformat(date_part).replace(tzinfo=timezone.utc)
                except ValueError:
                    continue

                if file_date < cutoff:
                    p.unlink(missing_ok=True)
        except OSError as e:
            logger.debug("Integrity log prune skipped: %s", e)

    def report(self, warning: DataIntegrityWarning) -> None:
        logger.warning("DATA_INTEGRITY %s: %s", warning.kind, warning.message)

        payload: Dict[str, Any] = {
            "ts": self.calendar.now_iso(),
            "tz": self.calendar.tz_name,
            **warning.to_dict(),
        }
        self._recent.append(payload)
        self._counters[warning.kind] += 1

        if not self.config.enabled:
            return

        try:
            with open(self._event_file_path(), "a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.warning("Failed to write integrity event: %s", e)

    def summary(self) -> Dict[str, Any]:
        return {
            "enabled": self.config.enabled,
            "timezone": self.calendar.tz_name,
            "retention_days": self.config.retention_days,
            "total_events_in_memory": len(self._recent),
            "counters_in_memory": dict(self._counters),
            "recent_events": list(self._recent)[-10:],
        }
