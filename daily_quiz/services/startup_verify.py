# FILE: daily_quiz/services/startup_verify.py
"""
Startup verification
"""
import logging
from typing import Any, Dict

from daily_quiz.services.quiz_service import QuizService

logger = logging.getLogger(__name__)


def verify_startup(service: QuizService, repair_on_startup: bool = True) -> Dict[str, Any]:
    """Check the catalog, open the integrity log and repair legacy references"""
    logger.info("Running startup verification")

    catalog = service.catalog
    if len(catalog) == 0:
        logger.error("Question catalog is empty - no quiz can be scheduled")
    if catalog.rejected:
        logger.warning(f"{len(catalog.rejected)} questions rejected at load")

    if service.integrity_log is not None:
        service.integrity_log.init()

    repair = None
    if repair_on_startup:
        report = service.repair_legacy_references()
        repair = {
            "version": report.version,
            "scanned": report.scanned,
            "repaired": len(report.repaired),
            "unrepairable": len(report.unrepairable),
        }

    result = {
        "catalog_ok": len(catalog) > 0,
        "questions": len(catalog),
        "rejected": dict(catalog.rejected),
        "timezone": service.calendar.tz_name,
        "today": service.calendar.today_key(),
        "repair": repair,
    }
    logger.info(f"Startup verification done: {result['questions']} questions, repair={repair}")
    return result
