# FILE: daily_quiz/routes/leaderboard.py
"""
Leaderboard endpoints
"""
from fastapi import APIRouter, Depends

from daily_quiz.services.quiz_service import QuizService, get_quiz_service

router = APIRouter()


@router.get("")
def current_leaderboard(service: QuizService = Depends(get_quiz_service)):
    """Top entries for the current period"""
    return service.get_leaderboard().model_dump()


@router.get("/{period_key}")
def period_leaderboard(period_key: str, service: QuizService = Depends(get_quiz_service)):
    return service.get_leaderboard(period_key).model_dump()
