"""
Identity Models: Role, Staff, AuthPrincipal, AuthStaffMapping.

An AuthPrincipal is the login identity (email + password hash).
Staff is the business-side employee record. The two are linked 1:1
through AuthStaffMapping.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    Enum as SQLEnum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import StaffStatus
from .base import AuditMixin, Base, new_uuid

if TYPE_CHECKING:
    from .franchise import Branch, Franchise


class Role(AuditMixin, Base):
    """
    Named permission bundle.

    Either is_owner (full access, bypasses module checks) or a map of
    "{module}_{action}" -> bool. Keys are validated on write against the
    closed capability registry.
    """

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    franchise_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("franchises.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_owner: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    permissions: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    __table_args__ = (
        UniqueConstraint("franchise_id", "name", name="uq_role_franchise_name"),
    )

    franchise: Mapped["Franchise"] = relationship(back_populates="roles")
    staff: Mapped[list["Staff"]] = relationship(back_populates="role")

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}', is_owner={self.is_owner})>"


class Staff(AuditMixin, Base):
    """
    Employee record. Deactivated through status, never hard-deleted.
    """

    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    franchise_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("franchises.id"), nullable=False, index=True
    )
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=False, index=True
    )
    role_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("roles.id"), nullable=False, index=True
    )
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[StaffStatus] = mapped_column(
        SQLEnum(StaffStatus, name="staff_status", native_enum=False, length=20),
        default=StaffStatus.ACTIVE,
        nullable=False,
    )
    hire_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    __table_args__ = (
        # Staff codes are printed on receipts and must be unique per location
        UniqueConstraint("branch_id", "code", name="uq_staff_branch_code"),
    )

    branch: Mapped["Branch"] = relationship(back_populates="staff")
    role: Mapped["Role"] = relationship(back_populates="staff")
    mapping: Mapped[Optional["AuthStaffMapping"]] = relationship(back_populates="staff")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class AuthPrincipal(Base):
    """Login identity. Password stored as a bcrypt hash."""

    __tablename__ = "auth_principals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    mapping: Mapped[Optional["AuthStaffMapping"]] = relationship(back_populates="principal")

    def __repr__(self) -> str:
        return f"<AuthPrincipal(id={self.id})>"


class AuthStaffMapping(Base):
    """1:1 link from principal to staff record."""

    __tablename__ = "auth_staff_mapping"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    principal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("auth_principals.id"), unique=True, nullable=False
    )
    staff_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("staff.id"), unique=True, nullable=False
    )

    principal: Mapped["AuthPrincipal"] = relationship(back_populates="mapping")
    staff: Mapped["Staff"] = relationship(back_populates="mapping")
