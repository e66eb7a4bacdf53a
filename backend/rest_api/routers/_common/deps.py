"""
Request dependencies shared by the authenticated routers.

current_staff turns the bearer token (header or cookie) into a StaffContext.
branch_scope turns the {branch_id} path segment into a BranchScope checked
against that context. Capability checks stay in the services.
"""

from typing import Any

from fastapi import Depends
from sqlalchemy.orm import Session

from rest_api.services.domain import IdentityResolver
from rest_api.services.permissions import BranchScope, StaffContext, select_branch_scope
from shared.infrastructure.db import get_db
from shared.security.auth import current_token_claims


def current_staff(
    claims: dict[str, Any] = Depends(current_token_claims),
    db: Session = Depends(get_db),
) -> StaffContext:
    """Resolve the caller. Any gap in the identity chain is a 401."""
    return IdentityResolver(db).resolve(claims["sub"])


def branch_scope(
    branch_id: str,
    ctx: StaffContext = Depends(current_staff),
    db: Session = Depends(get_db),
) -> BranchScope:
    """
    Scope for /api/branches/{branch_id}/... routes.

    branch_id may be "all" for owners.
    """
    return select_branch_scope(db, ctx, branch_id)
