# FILE: daily_quiz/routes/progress.py
"""
Progress endpoint
"""
from fastapi import APIRouter, Depends

from daily_quiz.models.attempts import Identity
from daily_quiz.routes.identity import require_identity
from daily_quiz.services.quiz_service import QuizService, get_quiz_service

router = APIRouter()


@router.get("")
def get_progress(
    identity: Identity = Depends(require_identity),
    service: QuizService = Depends(get_quiz_service)
):
    return service.get_progress(identity).model_dump()
