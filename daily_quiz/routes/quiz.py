# FILE: daily_quiz/routes/quiz.py
"""
Daily quiz endpoints
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends

from daily_quiz.models.attempts import Identity, StartRequest, SubmitRequest
from daily_quiz.routes.identity import optional_identity, resolve_identity
from daily_quiz.services.quiz_service import QuizService, get_quiz_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/today")
def get_today(date: Optional[str] = None, service: QuizService = Depends(get_quiz_service)):
    """Today's question (or the given date's), answers stripped"""
    return service.resolve_todays_question(date)


@router.post("/start")
def start_quiz(
    request: StartRequest,
    date: Optional[str] = None,
    identity: Optional[Identity] = Depends(optional_identity),
    service: QuizService = Depends(get_quiz_service)
):
    """Question plus the caller's attempt state"""
    caller = resolve_identity(identity, request.guest_token)
    return service.start_quiz(caller, date)


@router.post("/submit")
def submit_answer(
    request: SubmitRequest,
    identity: Optional[Identity] = Depends(optional_identity),
    service: QuizService = Depends(get_quiz_service)
):
    """Submit an answer (re-submission after solving changes nothing)"""
    caller = resolve_identity(identity, request.guest_token)
    logger.info(f"Submit: {caller.key} {request.question_id}")

    result = service.submit_answer(caller, request.date_key, request)
    return result.model_dump()
