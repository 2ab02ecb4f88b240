# FILE: daily_quiz/services/scoring.py
"""
Scoring policies for correct answers

Every policy is deterministic and never awards more points for a later
attempt or a slower answer.
"""
import math

from daily_quiz.models.attempts import PointsBreakdown

# 1st=1.0, 2nd=0.6, 3rd=0.4, 4+=0.25
ATTEMPT_MULTIPLIERS = [1.0, 0.6, 0.4, 0.25]

FIRST_TRY_BONUS_PERCENT = 0.5

# Up to +25% of base points, linear decay over 60 seconds
SPEED_BONUS_MAX_PERCENT = 0.25
SPEED_BONUS_WINDOW_MS = 60000

MIN_ELAPSED_MS = 0
MAX_ELAPSED_MS = 300000


def clamp_elapsed_ms(elapsed_ms: int) -> int:
    return max(MIN_ELAPSED_MS, min(MAX_ELAPSED_MS, int(elapsed_ms)))


def attempt_multiplier(attempt_number: int) -> float:
    if attempt_number <= 0:
        return 0.0
    if attempt_number <= len(ATTEMPT_MULTIPLIERS):
        return ATTEMPT_MULTIPLIERS[attempt_number - 1]
    return ATTEMPT_MULTIPLIERS[-1]


def first_try_bonus(base_points: int, attempt_number: int) -> int:
    if attempt_number != 1:
        return 0
    return math.floor(base_points * FIRST_TRY_BONUS_PERCENT)


def speed_bonus(base_points: int, attempt_number: int, elapsed_ms: int) -> int:
    """First try only; full bonus at 0s, nothing from 60s on"""
    if attempt_number != 1:
        return 0

    clamped = clamp_elapsed_ms(elapsed_ms)
    if clamped >= SPEED_BONUS_WINDOW_MS:
        return 0

    remaining_ratio = 1 - clamped / SPEED_BONUS_WINDOW_MS
    return math.floor(base_points * SPEED_BONUS_MAX_PERCENT * remaining_ratio)


class AttemptDecayScoring:
    """Attempt multiplier plus first-try and speed bonuses"""

    name = "attempt_decay"

    def calculate(self, base_points: int, attempt_number: int, elapsed_ms: int) -> PointsBreakdown:
        multiplier = attempt_multiplier(attempt_number)
        base_after = math.floor(base_points * multiplier)
        bonus = first_try_bonus(base_points, attempt_number)
        speed = speed_bonus(base_points, attempt_number, elapsed_ms)

        return PointsBreakdown(
            base_points=base_points,
            attempt_number=attempt_number,
            attempt_multiplier=multiplier,
            base_after_multiplier=base_after,
            first_try_bonus=bonus,
            speed_bonus=speed,
            total_points=base_after + bonus + speed,
        )


class FlatScoring:
    """Base points for any correct attempt"""

    name = "flat"

    def calculate(self, base_points: int, attempt_number: int, elapsed_ms: int) -> PointsBreakdown:
        return PointsBreakdown(
            base_points=base_points,
            attempt_number=attempt_number,
            attempt_multiplier=1.0,
            base_after_multiplier=base_points,
            total_points=base_points,
        )


def build_scoring_policy(name: str):
    if name == "flat":
        return FlatScoring()
    return AttemptDecayScoring()
