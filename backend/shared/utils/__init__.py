"""
Utilities module: Exceptions, money helpers, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
    PartialFailureError,
)
from shared.utils.money import display_amount, to_decimal
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    "PartialFailureError",
    # money
    "display_amount",
    "to_decimal",
    # schemas
    "ErrorResponse",
]
