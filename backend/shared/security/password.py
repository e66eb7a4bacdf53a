"""
Password hashing with bcrypt.

The work factor comes from settings.bcrypt_rounds. Stored hashes that
are not bcrypt (plain text, legacy digests) never verify.
"""

import bcrypt

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds))
    return hashed.decode()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password.startswith(_BCRYPT_PREFIXES):
        logger.warning("Rejected a stored password hash that is not bcrypt")
        return False
    return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())
