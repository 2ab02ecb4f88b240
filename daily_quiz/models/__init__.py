# FILE: daily_quiz/models/__init__.py
"""
Pydantic models for persisted records and request/response validation
"""
from daily_quiz.models.questions import *
from daily_quiz.models.schedule import *
from daily_quiz.models.attempts import *
from daily_quiz.models.leaderboard import *
