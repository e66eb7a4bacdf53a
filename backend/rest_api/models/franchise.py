"""
Organisation Models: Franchise and Branch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import BranchStatus, FranchiseStatus
from .base import AuditMixin, Base, new_uuid

if TYPE_CHECKING:
    from .staff import Role, Staff
    from .table import RestaurantTable


class Franchise(AuditMixin, Base):
    """
    Top-level organisation. Every branch, role and staff member belongs to one.
    Inherits: is_active, created_at, updated_at, deleted_at, *_by_id from AuditMixin.
    """

    __tablename__ = "franchises"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    status: Mapped[FranchiseStatus] = mapped_column(
        SQLEnum(FranchiseStatus, name="franchise_status", native_enum=False, length=20),
        default=FranchiseStatus.ACTIVE,
        nullable=False,
    )
    owner_name: Mapped[Optional[str]] = mapped_column(Text)
    contact_email: Mapped[Optional[str]] = mapped_column(Text)
    contact_phone: Mapped[Optional[str]] = mapped_column(Text)
    logo_url: Mapped[Optional[str]] = mapped_column(Text)

    branches: Mapped[list["Branch"]] = relationship(back_populates="franchise")
    roles: Mapped[list["Role"]] = relationship(back_populates="franchise")

    def __repr__(self) -> str:
        return f"<Franchise(id={self.id}, code='{self.code}')>"


class Branch(AuditMixin, Base):
    """
    A physical location. Tables, menu, staff and orders are scoped to a branch.
    """

    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    franchise_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("franchises.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[BranchStatus] = mapped_column(
        SQLEnum(BranchStatus, name="branch_status", native_enum=False, length=20),
        default=BranchStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    number_of_tables: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(Text)
    state: Mapped[Optional[str]] = mapped_column(Text)
    country: Mapped[Optional[str]] = mapped_column(Text)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20))
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)
    opening_time: Mapped[str] = mapped_column(String(5), default="09:00", nullable=False)
    closing_time: Mapped[str] = mapped_column(String(5), default="22:00", nullable=False)

    __table_args__ = (
        UniqueConstraint("franchise_id", "code", name="uq_branch_franchise_code"),
    )

    franchise: Mapped["Franchise"] = relationship(back_populates="branches")
    tables: Mapped[list["RestaurantTable"]] = relationship(back_populates="branch")
    staff: Mapped[list["Staff"]] = relationship(back_populates="branch")

    def __repr__(self) -> str:
        return f"<Branch(id={self.id}, code='{self.code}', franchise_id={self.franchise_id})>"
