"""
Branch scope selection.

Every branch-bound request names its branch in the path. The selection is
resolved once into a frozen BranchScope and handed to the services, which
filter with it instead of reading a global "current branch".

Rules:
- Owners may select any branch of their franchise, or "all".
- Everyone else is pinned to their assigned branch.
- Writes need one concrete branch; "all" is read-only.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from rest_api.models import Branch
from shared.utils.exceptions import BranchAccessError, NotFoundError, ValidationError
from .context import StaffContext

ALL_BRANCHES = "all"


@dataclass(frozen=True)
class BranchScope:
    """
    Set of branch ids a request may read.

    Usage:
        stmt = scope.apply(select(Order), Order.branch_id)
        branch_id = scope.require_single()  # writes
    """

    franchise_id: str
    branch_ids: frozenset[str]
    is_all: bool = False

    @classmethod
    def single(cls, franchise_id: str, branch_id: str) -> "BranchScope":
        return cls(franchise_id=franchise_id, branch_ids=frozenset({branch_id}))

    def contains(self, branch_id: str | None) -> bool:
        return branch_id is not None and branch_id in self.branch_ids

    def require(self, branch_id: str | None) -> None:
        if not self.contains(branch_id):
            raise BranchAccessError(branch_id, franchise_id=self.franchise_id)

    def require_single(self) -> str:
        """The one branch a write applies to. Raises 400 for an "all" scope."""
        if self.is_all or len(self.branch_ids) != 1:
            raise ValidationError(
                "Select a single branch for this operation",
                franchise_id=self.franchise_id,
            )
        return next(iter(self.branch_ids))

    def apply(self, stmt: Select, column) -> Select:
        return stmt.where(column.in_(self.branch_ids))


def select_branch_scope(db: Session, ctx: StaffContext, requested: str) -> BranchScope:
    """
    Resolve the requested branch ("all" or a branch id) for this staff member.

    Raises:
        BranchAccessError: Non-owner asking for another branch or "all".
        NotFoundError: Owner asking for a branch outside the franchise.
    """
    if requested == ALL_BRANCHES:
        if not ctx.is_owner:
            raise BranchAccessError(requested, staff_id=ctx.staff_id)
        branch_ids = db.execute(
            select(Branch.id).where(
                Branch.franchise_id == ctx.franchise_id,
                Branch.is_active.is_(True),
            )
        ).scalars().all()
        return BranchScope(ctx.franchise_id, frozenset(branch_ids), is_all=True)

    if not ctx.is_owner and requested != ctx.branch_id:
        raise BranchAccessError(requested, staff_id=ctx.staff_id)

    branch = db.scalar(
        select(Branch).where(
            Branch.id == requested,
            Branch.franchise_id == ctx.franchise_id,
            Branch.is_active.is_(True),
        )
    )
    if branch is None:
        raise NotFoundError("Branch", requested, franchise_id=ctx.franchise_id)
    return BranchScope.single(ctx.franchise_id, branch.id)
