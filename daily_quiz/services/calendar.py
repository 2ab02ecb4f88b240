# FILE: daily_quiz/services/calendar.py
"""
Civil calendar / clock provider

Date keys are YYYY-MM-DD in one fixed timezone. The engine never reads the
wall clock directly: every component receives a CivilCalendar, and tests
pin it with fixed_clock().
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from daily_quiz.errors import InvalidDateKey

logger = logging.getLogger(__name__)

_DATE_KEY_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

Clock = Callable[[], datetime]


def _resolve_tz(tz_name: str):
    """
    Resolve timezone from IANA name.

    Falls back to UTC if the name is unknown to zoneinfo.
    """
    try:
        from zoneinfo import ZoneInfo

        return ZoneInfo(tz_name)
    except Exception:
        logger.warning("Invalid QUIZ_TIMEZONE=%s; falling back to UTC", tz_name)
        return timezone.utc


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(value) -> Clock:
    """Clock pinned to a datetime, or to noon UTC of a date key"""
    if isinstance(value, str):
        pinned = datetime.combine(parse_date_key(value), time(12, 0), tzinfo=timezone.utc)
    else:
        pinned = value
    return lambda: pinned


def parse_date_key(date_key: str) -> date:
    """Strict YYYY-MM-DD; padded or otherwise non-canonical keys are rejected"""
    if not isinstance(date_key, str) or not _DATE_KEY_RE.fullmatch(date_key):
        raise InvalidDateKey(f"Invalid date key: {date_key!r}", date_key=date_key)
    try:
        return date.fromisoformat(date_key)
    except ValueError:
        raise InvalidDateKey(f"Invalid date key: {date_key!r}", date_key=date_key)


def is_valid_date_key(date_key: str) -> bool:
    try:
        parse_date_key(date_key)
    except InvalidDateKey:
        return False
    return True


class CivilCalendar:
    """Date arithmetic in the quiz's civil timezone"""

    def __init__(self, tz_name: str = "UTC", now: Optional[Clock] = None, period: str = "day"):
        self.tz_name = tz_name
        self.tz = _resolve_tz(tz_name)
        self._now = now or _utc_now
        self.period = period

    def local_now(self) -> datetime:
        current = self._now()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(self.tz)

    def today_key(self) -> str:
        return self.local_now().date().isoformat()

    def now_iso(self) -> str:
        return self._now().astimezone(timezone.utc).isoformat()

    def previous_day(self, date_key: str) -> str:
        return (parse_date_key(date_key) - timedelta(days=1)).isoformat()

    def next_day(self, date_key: str) -> str:
        return (parse_date_key(date_key) + timedelta(days=1)).isoformat()

    def days_between(self, start_key: str, end_key: str) -> int:
        """Signed number of days from start_key to end_key"""
        return (parse_date_key(end_key) - parse_date_key(start_key)).days

    def ordinal(self, date_key: str) -> int:
        return parse_date_key(date_key).toordinal()

    def period_key(self, date_key: str) -> str:
        """
        Leaderboard bucket for a date.

        Keys sort in calendar order: 'day' gives the date key itself,
        'week' gives the ISO week as YYYY-Www.
        """
        day = parse_date_key(date_key)
        if self.period == "week":
            iso_year, iso_week, _ = day.isocalendar()
            return f"{iso_year}-W{iso_week:02d}"
        return day.isoformat()

    def current_period_key(self) -> str:
        return self.period_key(self.today_key())
