# FILE: tests/conftest.py

import os
import sys
import tempfile
from datetime import datetime, time, timezone
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Keep module-level settings (daily_quiz.app) out of the working tree
_session_dir = tempfile.mkdtemp(prefix="daily-quiz-tests-")
os.environ.setdefault("DATA_DIR", os.path.join(_session_dir, "data"))
os.environ.setdefault("LOGS_DIR", os.path.join(_session_dir, "logs"))
os.environ.setdefault("QUESTIONS_PATH", os.path.join(_session_dir, "data", "questions.jsonl"))
os.environ.setdefault("RATE_LIMIT_RPM", "10000")
os.environ.setdefault("REPAIR_ON_STARTUP", "false")

import pytest

from daily_quiz.config import Settings
from daily_quiz.services.calendar import CivilCalendar, parse_date_key
from daily_quiz.services.question_catalog import QuestionCatalog
from daily_quiz.services.quiz_service import build_quiz_service
from daily_quiz.services.record_store import JsonFileRecordStore

TODAY = "2025-03-01"

QUESTIONS = [
    {
        "id": "algo_q0",
        "type": "mcq",
        "prompt": "Binary search worst case?",
        "choices": ["O(1)", "O(log n)", "O(n)"],
        "correct_index": 1,
        "difficulty": 1,
        "explanation": "The range halves each step.",
    },
    {
        "id": "net_q0",
        "type": "select-all",
        "prompt": "Which protocols run over UDP?",
        "choices": ["DNS", "HTTP/1.1", "QUIC", "SMTP"],
        "correct_indices": [0, 2],
        "difficulty": 2,
    },
    {
        "id": "os_q0",
        "type": "written",
        "prompt": "Removing a running process from the CPU is called?",
        "accepted_answers": ["Preemption", "  preemptive   scheduling "],
        "difficulty": 2,
    },
    {
        "id": "db_q0",
        "type": "mcq",
        "prompt": "Which isolation level prevents phantom reads?",
        "choices": ["Read committed", "Repeatable read", "Serializable"],
        "correct_index": 2,
        "difficulty": 3,
    },
]


class MovableClock:
    """Clock pinned to noon UTC of a date key; tests move it between days"""

    def __init__(self, date_key: str):
        self.set(date_key)

    def set(self, date_key: str):
        self.current = datetime.combine(parse_date_key(date_key), time(12, 0), tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def question_records():
    """Fresh copies of the sample question records"""
    return [dict(record) for record in QUESTIONS]


@pytest.fixture
def catalog(question_records):
    return QuestionCatalog.from_records(question_records)


@pytest.fixture
def clock():
    return MovableClock(TODAY)


@pytest.fixture
def calendar(clock):
    """UTC calendar whose today is 2025-03-01 unless the clock is moved"""
    return CivilCalendar("UTC", now=clock)


@pytest.fixture
def file_store(tmp_path):
    return JsonFileRecordStore(str(tmp_path / "records"), max_retries=500, retry_backoff_ms=1)


@pytest.fixture
def settings(tmp_path):
    """Settings isolated to a temporary directory"""
    return Settings(
        DATA_DIR=str(tmp_path / "data"),
        LOGS_DIR=str(tmp_path / "logs"),
        QUESTIONS_PATH=str(tmp_path / "data" / "questions.jsonl"),
        STORE_BACKEND="file",
        STORE_RETRY_BACKOFF_MS=1,
        QUIZ_TIMEZONE="UTC",
        RATE_LIMIT_ENABLED=False,
        REPAIR_ON_STARTUP=False,
    )


@pytest.fixture
def service(settings, clock, catalog):
    return build_quiz_service(settings, now=clock, catalog=catalog)
