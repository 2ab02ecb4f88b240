# FILE: daily_quiz/__init__.py
"""
Daily Quiz service: scheduling, attempts, streaks and leaderboards
"""
__version__ = "0.4.0"
