"""
Staff authentication under /api/auth: login, refresh, logout and /me.
"""

from .routes import router

__all__ = ["router"]
