"""
Change events: outbox writing, Redis publishing and the polling feed.
"""

from .change_event import ChangeEvent, ChangeOperation, EntityKind
from .outbox_service import write_outbox_event, record_change
from .outbox_processor import (
    OutboxProcessor,
    get_outbox_processor,
    start_outbox_processor,
    stop_outbox_processor,
    process_pending_events_once,
)

__all__ = [
    "ChangeEvent",
    "ChangeOperation",
    "EntityKind",
    "write_outbox_event",
    "record_change",
    "OutboxProcessor",
    "get_outbox_processor",
    "start_outbox_processor",
    "stop_outbox_processor",
    "process_pending_events_once",
]
