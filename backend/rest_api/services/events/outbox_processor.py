"""
Outbox processor - background publisher for change events.

Polls PENDING outbox rows, publishes each to its Redis channel and marks
it PUBLISHED. Failed publishes go back to PENDING until max retries, then
FAILED. Publishing never blocks or rolls back the business write that
produced the event.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from rest_api.models import OutboxEvent, OutboxStatus
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.infrastructure.events import (
    channel_branch_changes,
    channel_franchise_changes,
    get_redis_pool,
    publish_event,
)

logger = get_logger(__name__)


def channel_for(event: OutboxEvent) -> str:
    """Branch rows go to the branch channel, franchise-wide rows to the franchise channel."""
    if event.branch_id:
        return channel_branch_changes(event.branch_id)
    return channel_franchise_changes(event.franchise_id)


class OutboxProcessor:
    """
    Background processor for outbox events.

    Usage:
        processor = OutboxProcessor()
        await processor.start()
        ...
        await processor.stop()
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session] = SessionLocal,
        redis_getter: Callable[[], Awaitable[Any]] = get_redis_pool,
        batch_size: int | None = None,
        max_retries: int | None = None,
        poll_interval: float | None = None,
    ):
        self._session_factory = session_factory
        self._redis_getter = redis_getter
        self._batch_size = batch_size or settings.outbox_batch_size
        self._max_retries = max_retries or settings.outbox_max_retries
        self._poll_interval = poll_interval or settings.outbox_poll_interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.warning("Outbox processor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Outbox processor started", batch_size=self._batch_size)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Outbox processor stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                processed = await self.process_batch()
                if processed == 0:
                    await asyncio.sleep(self._poll_interval)
            except Exception as e:
                logger.error("Outbox processor error", error=str(e))
                await asyncio.sleep(self._poll_interval)

    async def process_batch(self) -> int:
        """
        Publish one batch of PENDING events.

        Returns:
            Number of events published.
        """
        db = self._session_factory()
        try:
            events = db.execute(
                select(OutboxEvent)
                .where(OutboxEvent.status == OutboxStatus.PENDING)
                .order_by(OutboxEvent.id.asc())
                .limit(self._batch_size)
                .with_for_update(skip_locked=True)
            ).scalars().all()

            if not events:
                return 0

            # Claim the batch so a parallel worker skips it
            db.execute(
                update(OutboxEvent)
                .where(OutboxEvent.id.in_([e.id for e in events]))
                .values(status=OutboxStatus.PROCESSING)
            )
            db.commit()

            published = 0
            for event in events:
                if await self._publish(event):
                    event.status = OutboxStatus.PUBLISHED
                    event.processed_at = datetime.now(timezone.utc)
                    published += 1
                    continue

                event.retry_count += 1
                if event.retry_count >= self._max_retries:
                    event.status = OutboxStatus.FAILED
                    logger.error(
                        "Outbox event failed after max retries",
                        event_id=event.id,
                        event_type=event.event_type,
                    )
                else:
                    event.status = OutboxStatus.PENDING

            db.commit()
            logger.info("Outbox batch processed", total=len(events), published=published)
            return published

        except Exception as e:
            db.rollback()
            logger.error("Outbox batch processing failed", error=str(e))
            return 0
        finally:
            db.close()

    async def _publish(self, event: OutboxEvent) -> bool:
        try:
            redis_client = await self._redis_getter()
            await publish_event(
                redis_client,
                channel_for(event),
                event.payload,
                event.event_type,
            )
            return True
        except Exception as e:
            event.last_error = str(e)
            logger.error(
                "Failed to publish outbox event",
                event_id=event.id,
                event_type=event.event_type,
                error=str(e),
            )
            return False


_processor: OutboxProcessor | None = None


def get_outbox_processor() -> OutboxProcessor:
    """Get the singleton outbox processor instance."""
    global _processor
    if _processor is None:
        _processor = OutboxProcessor()
    return _processor


async def start_outbox_processor() -> None:
    """Start the outbox processor (FastAPI lifespan startup)."""
    await get_outbox_processor().start()


async def stop_outbox_processor() -> None:
    """Stop the outbox processor (FastAPI lifespan shutdown)."""
    if _processor is not None:
        await _processor.stop()


async def process_pending_events_once() -> int:
    """Publish one batch of pending events (CLI / manual trigger)."""
    return await get_outbox_processor().process_batch()
