"""
Common utilities shared across routers.

Schemas live in shared/utils (services must not import from routers).
"""

from .deps import branch_scope, current_staff
from .pagination import Pagination, get_pagination

__all__ = [
    "branch_scope",
    "current_staff",
    "Pagination",
    "get_pagination",
]
