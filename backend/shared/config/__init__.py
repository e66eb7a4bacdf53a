"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, DATABASE_URL
from shared.config.logging import get_logger, setup_logging
from shared.config.constants import (
    BranchStatus,
    StaffStatus,
    TableStatus,
    SessionStatus,
    OrderStatus,
    ORDER_TRANSITIONS,
    Limits,
)

__all__ = [
    # settings
    "settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "BranchStatus",
    "StaffStatus",
    "TableStatus",
    "SessionStatus",
    "OrderStatus",
    "ORDER_TRANSITIONS",
    "Limits",
]
