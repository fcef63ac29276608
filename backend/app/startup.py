"""
Application startup checks and initialization.

Verifies the record store is reachable and, outside production, creates
missing tables before the API starts serving requests.
"""

import logging
from typing import List, Tuple

from sqlalchemy import text

from core.config import settings
from core.database import engine, init_models

logger = logging.getLogger(__name__)


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    async def check_database_connection(self) -> bool:
        """Check database connectivity"""
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection successful")
            return True
        except Exception as e:
            self.errors.append(f"Database connection failed: {str(e)}")
            return False

    def check_settings(self) -> bool:
        if settings.is_production and settings.debug:
            self.errors.append("DEBUG must be disabled in production")
            return False
        if settings.is_production and settings.is_sqlite:
            self.warnings.append("SQLite is not suitable for production")
        return True

    async def run_all_checks(self) -> Tuple[bool, List[str], List[str]]:
        self.check_settings()
        await self.check_database_connection()
        return len(self.errors) == 0, self.errors, self.warnings


async def run_startup_checks() -> Tuple[bool, List[str]]:
    """Run startup checks; creates tables outside production"""
    validator = StartupValidator()
    passed, errors, warnings = await validator.run_all_checks()

    for error in errors:
        logger.error(f"Startup check failed: {error}")
    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")

    if passed and not settings.is_production:
        await init_models()
        logger.info("Database tables ensured")

    logger.info(f"Starting in {settings.environment.upper()} mode")
    return passed, warnings


def configure_startup_logging():
    """Configure logging for startup"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
