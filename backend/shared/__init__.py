"""
Shared module for code used by the REST API and the CLI.

STRUCTURE:
- shared.security: Authentication and login throttling
  - auth.py: JWT signing/verification, token lookup (header or cookie)
  - password.py: Bcrypt hashing
  - rate_limit.py: slowapi limiter for the login endpoint

- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy engine, sessions, safe_commit()
  - events/: Redis pool, channel naming, publish with retry
  - correlation.py: X-Request-ID middleware and log filter

- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Status enums and limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - money.py: Decimal amounts, tax and display rounding
  - schemas.py / admin_schemas.py: Pydantic request/response models
  - health.py: Health check helpers

IMPORT EXAMPLES:
    from shared.security.auth import verify_jwt, sign_access_token
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, TableStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
    from shared.utils.money import display_amount
"""
