"""
Infrastructure: database sessions, Redis change-feed fan-out, request ids.

Import from the submodules directly:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.infrastructure.events import get_redis_pool, publish_event
    from shared.infrastructure.correlation import get_request_id
"""
