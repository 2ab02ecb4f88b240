# FILE: daily_quiz/config.py
"""
Configuration management for the Daily Quiz service
Loads from environment variables with validation
"""
import os
from typing import List, Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore"
    )

    # Backend server
    backend_host: str = Field(default="0.0.0.0", alias="BACKEND_HOST")
    backend_port: int = Field(default=8000, alias="BACKEND_PORT")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Data paths
    data_dir: str = Field(default="./data", alias="DATA_DIR")
    questions_path: str = Field(default="./data/questions.jsonl", alias="QUESTIONS_PATH")
    logs_dir: str = Field(default="./logs", alias="LOGS_DIR")

    # Record store
    store_backend: str = Field(default="file", alias="STORE_BACKEND")
    store_max_retries: int = Field(default=8, alias="STORE_MAX_RETRIES")
    store_retry_backoff_ms: int = Field(default=15, alias="STORE_RETRY_BACKOFF_MS")
    store_lock_timeout_seconds: float = Field(
        default=10.0,
        alias="STORE_LOCK_TIMEOUT_SECONDS",
        description="Lock files older than this are treated as abandoned by a crashed worker"
    )

    # Calendar
    quiz_timezone: str = Field(default="America/Denver", alias="QUIZ_TIMEZONE")
    submit_window_days: int = Field(
        default=0,
        alias="SUBMIT_WINDOW_DAYS",
        description="How many past days still accept submissions (0 = today only)"
    )

    # Scheduling and scoring
    scoring_policy: str = Field(default="attempt_decay", alias="SCORING_POLICY")
    reuse_questions_when_exhausted: bool = Field(default=False, alias="REUSE_QUESTIONS_WHEN_EXHAUSTED")
    repair_on_startup: bool = Field(default=True, alias="REPAIR_ON_STARTUP")

    # Leaderboard
    leaderboard_size: int = Field(default=10, alias="LEADERBOARD_SIZE")
    leaderboard_period: str = Field(default="day", alias="LEADERBOARD_PERIOD")
    leaderboard_policy: str = Field(
        default="append",
        alias="LEADERBOARD_POLICY",
        description="'append' keeps one entry per completion, 'best' keeps one entry per identity"
    )

    # Operator channel
    integrity_log_enabled: bool = Field(default=True, alias="INTEGRITY_LOG_ENABLED")
    integrity_retention_days: int = Field(default=90, alias="INTEGRITY_RETENTION_DAYS")

    # Security
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_rpm: int = Field(default=120, alias="RATE_LIMIT_RPM")
    body_size_limit_kb: int = Field(default=64, alias="BODY_SIZE_LIMIT_KB")

    # CORS
    cors_origins: List[str] = Field(default=["http://localhost:3000"], alias="CORS_ORIGINS")

    # Validators
    @validator("store_backend")
    def validate_store_backend(cls, v):
        if v not in ["file", "memory"]:
            raise ValueError("store_backend must be 'file' or 'memory'")
        return v

    @validator("scoring_policy")
    def validate_scoring_policy(cls, v):
        if v not in ["attempt_decay", "flat"]:
            raise ValueError("scoring_policy must be 'attempt_decay' or 'flat'")
        return v

    @validator("leaderboard_period")
    def validate_leaderboard_period(cls, v):
        if v not in ["day", "week"]:
            raise ValueError("leaderboard_period must be 'day' or 'week'")
        return v

    @validator("leaderboard_policy")
    def validate_leaderboard_policy(cls, v):
        if v not in ["append", "best"]:
            raise ValueError("leaderboard_policy must be 'append' or 'best'")
        return v

    @validator("leaderboard_size", "store_max_retries")
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @validator("submit_window_days")
    def validate_submit_window_days(cls, v):
        if v < 0:
            raise ValueError("submit_window_days cannot be negative")
        if v > 30:
            raise ValueError("submit_window_days should not exceed 30")
        return v

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure directories exist
        for dir_path in [self.data_dir, self.logs_dir]:
            os.makedirs(dir_path, exist_ok=True)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create singleton settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings():
    """Reload settings (useful for testing)"""
    global _settings
    _settings = None
    return get_settings()
