"""
Startup and shutdown of the REST API process.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from rest_api.models import Base
from rest_api.seed import seed
from rest_api.services.events import start_outbox_processor, stop_outbox_processor
from shared.config.logging import rest_api_logger as logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import engine, get_db_context
from shared.infrastructure.events import close_redis_pool


def _check_configuration() -> None:
    """Refuse to boot production with insecure settings, warn elsewhere."""
    problems = settings.validate_production_secrets()
    for problem in problems:
        logger.error("Configuration error", error=problem)
    if problems and settings.environment == "production":
        raise RuntimeError("Insecure production configuration: " + "; ".join(problems))
    if problems:
        logger.warning("Insecure defaults in use", environment=settings.environment)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    _check_configuration()
    logger.info("REST API starting", port=settings.rest_api_port, environment=settings.environment)

    Base.metadata.create_all(bind=engine)
    if settings.seed_on_startup:
        with get_db_context() as db:
            seed(db)

    if settings.outbox_processor_enabled:
        await start_outbox_processor()

    yield

    logger.info("REST API shutting down")
    if settings.outbox_processor_enabled:
        await stop_outbox_processor()
    await close_redis_pool()
