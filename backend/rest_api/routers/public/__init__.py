"""
Unauthenticated routes: /api/health and /api/health/detailed.
"""

from .health import router as health_router

__all__ = ["health_router"]
