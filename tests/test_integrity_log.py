# FILE: tests/test_integrity_log.py

import json
from pathlib import Path

from daily_quiz.errors import DataIntegrityWarning
from daily_quiz.services.integrity_log import IntegrityLog, IntegrityLogConfig


def make_warning():
    return DataIntegrityWarning(
        kind="unrepairable_schedule_reference",
        message="Schedule entry 2025-02-20 -> ghost_q3",
        date_key="2025-02-20",
        question_id="ghost_q3",
    )


def test_report_appends_daily_jsonl(tmp_path, calendar):
    log = IntegrityLog(IntegrityLogConfig(True, Path(tmp_path), 90), calendar)
    log.init()
    log.report(make_warning())
    log.report(make_warning())

    path = tmp_path / "integrity" / "events-2025-03-01.jsonl"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["question_id"] == "ghost_q3"

    summary = log.summary()
    assert summary["counters_in_memory"] == {"unrepairable_schedule_reference": 2}
    assert summary["recent_events"][-1]["date_key"] == "2025-02-20"


def test_disabled_log_keeps_memory_only(tmp_path, calendar):
    log = IntegrityLog(IntegrityLogConfig(False, Path(tmp_path), 90), calendar)
    log.report(make_warning())

    assert not (tmp_path / "integrity").exists()
    assert log.summary()["total_events_in_memory"] == 1


def test_init_prunes_old_files(tmp_path, calendar):
    directory = tmp_path / "integrity"
    directory.mkdir()
    (directory / "events-2000-01-01.jsonl").write_text("{}\n")
    (directory / "events-notadate.jsonl").write_text("{}\n")

    IntegrityLog(IntegrityLogConfig(True, Path(tmp_path), 30), calendar).init()

    assert not (directory / "events-2000-01-01.jsonl").exists()
    assert (directory / "events-notadate.jsonl").exists()
