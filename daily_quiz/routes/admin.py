# FILE: daily_quiz/routes/admin.py
"""
Admin endpoints: schedule, repair, catalog and test submissions

Every route requires an X-Admin-Id header.
"""
import logging
from typing import Any, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from daily_quiz.models.attempts import Identity
from daily_quiz.models.schedule import ScheduleAssignRequest
from daily_quiz.routes.identity import require_admin
from daily_quiz.services.quiz_service import QuizService, get_quiz_service

logger = logging.getLogger(__name__)
router = APIRouter()


class TestSubmitRequest(BaseModel):
    """Score an answer for any question without recording it"""
    question_id: str
    answer: Any = None
    elapsed_ms: int = 0


@router.get("/schedule")
def list_schedule(
    start: Optional[str] = None,
    end: Optional[str] = None,
    admin: Identity = Depends(require_admin),
    service: QuizService = Depends(get_quiz_service)
):
    entries = service.list_schedule(start, end)
    return {
        "count": len(entries),
        "entries": [entry.model_dump() for entry in entries]
    }


@router.post("/schedule")
def assign_question(
    request: ScheduleAssignRequest,
    admin: Identity = Depends(require_admin),
    service: QuizService = Depends(get_quiz_service)
):
    """Assign a question to a date that has none yet"""
    entry = service.assign_question(request.date, request.question_id, admin.id)
    return {"status": "success", "entry": entry.model_dump()}


@router.post("/schedule/repair")
def repair_schedule(
    admin: Identity = Depends(require_admin),
    service: QuizService = Depends(get_quiz_service)
):
    logger.info(f"Legacy repair requested by {admin.id}")
    report = service.repair_legacy_references()
    return {"changed": report.changed, **report.model_dump()}


@router.get("/questions")
def list_questions(
    admin: Identity = Depends(require_admin),
    service: QuizService = Depends(get_quiz_service)
):
    questions = service.list_questions()
    return {
        "count": len(questions),
        "questions": questions,
        "rejected": dict(service.catalog.rejected)
    }


@router.post("/test/submit")
def test_submit(
    request: TestSubmitRequest,
    admin: Identity = Depends(require_admin),
    service: QuizService = Depends(get_quiz_service)
):
    result = service.test_submit(request.question_id, request.answer, request.elapsed_ms)
    return result.model_dump()


@router.get("/integrity")
def integrity_summary(
    admin: Identity = Depends(require_admin),
    service: QuizService = Depends(get_quiz_service)
):
    """Recent data-integrity warnings"""
    return service.integrity_summary()
