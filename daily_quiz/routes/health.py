# FILE: daily_quiz/routes/health.py
"""
Health check endpoint
"""
import logging
from fastapi import APIRouter, Depends

from daily_quiz import __version__
from daily_quiz.services.quiz_service import QuizService, get_quiz_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check(service: QuizService = Depends(get_quiz_service)):
    """
    Health check endpoint
    Reports catalog size and the current quiz date
    """
    return {
        "status": "healthy" if len(service.catalog) > 0 else "degraded",
        "version": __version__,
        "questions": len(service.catalog),
        "timezone": service.calendar.tz_name,
        "today": service.calendar.today_key(),
    }
