# FILE: daily_quiz/app.py
"""
FastAPI application entry point for the Daily Quiz service
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from daily_quiz import __version__
from daily_quiz.config import get_settings
from daily_quiz.errors import QuizError
from daily_quiz.middleware.body_limit import BodySizeLimitMiddleware
from daily_quiz.middleware.rate_limit import RateLimitMiddleware
from daily_quiz.routes import admin, health, leaderboard, progress, quiz
from daily_quiz.services.quiz_service import get_quiz_service
from daily_quiz.services.startup_verify import verify_startup

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown"""
    logger.info(f"Starting Daily Quiz backend v{__version__}")

    provider = app.dependency_overrides.get(get_quiz_service, get_quiz_service)
    verify_result = verify_startup(provider(), repair_on_startup=settings.repair_on_startup)
    if not verify_result["catalog_ok"]:
        logger.error("Startup verification: serving with an empty question catalog")

    yield

    logger.info("Shutting down Daily Quiz backend")


app = FastAPI(
    title="Daily Quiz API",
    description="Daily question scheduling, streaks and leaderboards",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
if settings.rate_limit_enabled:
    app.add_middleware(RateLimitMiddleware, rpm=settings.rate_limit_rpm)

# Body size limit
app.add_middleware(BodySizeLimitMiddleware, max_size=settings.body_size_limit_kb * 1024)


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    if exc.status_code >= 500:
        logger.warning(f"{exc.error_code} on {request.url.path}: {exc.message}")
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "Internal server error"}
    )


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(quiz.router, prefix="/quiz", tags=["quiz"])
app.include_router(progress.router, prefix="/progress", tags=["progress"])
app.include_router(leaderboard.router, prefix="/leaderboard", tags=["leaderboard"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Daily Quiz",
        "version": __version__,
        "status": "active"
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(
        "daily_quiz.app:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.environment == "development"
    )
