"""
Pydantic schemas for admin API endpoints.
Centralized to avoid circular imports between routers and services.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from shared.config.constants import (
    BranchStatus,
    FranchiseStatus,
    SagaKind,
    SagaStatus,
    SagaStepStatus,
    StaffStatus,
    TableStatus,
)


# =============================================================================
# Franchise Schemas
# =============================================================================


class FranchiseOutput(BaseModel):
    id: str
    name: str
    code: str
    status: FranchiseStatus
    owner_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    logo_url: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class FranchiseUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    owner_name: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None
    logo_url: str | None = None
    status: FranchiseStatus | None = None


# =============================================================================
# Branch Schemas
# =============================================================================


class BranchOutput(BaseModel):
    id: str
    franchise_id: str
    name: str
    code: str
    status: BranchStatus
    number_of_tables: int
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    timezone: str
    opening_time: str
    closing_time: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class BranchCreate(BaseModel):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1, max_length=50)
    status: BranchStatus = BranchStatus.ACTIVE
    number_of_tables: int = Field(default=0, ge=0)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = Field(default=None, max_length=20)
    timezone: str = "UTC"
    opening_time: str = Field(default="09:00", pattern=_TIME_PATTERN)
    closing_time: str = Field(default="22:00", pattern=_TIME_PATTERN)


class BranchUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    code: str | None = Field(default=None, min_length=1, max_length=50)
    status: BranchStatus | None = None
    number_of_tables: int | None = Field(default=None, ge=0)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = Field(default=None, max_length=20)
    timezone: str | None = None
    opening_time: str | None = Field(default=None, pattern=_TIME_PATTERN)
    closing_time: str | None = Field(default=None, pattern=_TIME_PATTERN)


# =============================================================================
# Role Schemas
# =============================================================================


class RoleOutput(BaseModel):
    id: str
    franchise_id: str
    name: str
    description: str | None = None
    is_owner: bool
    permissions: dict[str, bool]
    created_at: datetime

    class Config:
        from_attributes = True


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    is_owner: bool = False
    permissions: dict[str, bool] = Field(default_factory=dict)


class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    permissions: dict[str, bool] | None = None


# =============================================================================
# Staff Schemas
# =============================================================================


class StaffOutput(BaseModel):
    id: str
    franchise_id: str
    branch_id: str
    role_id: str
    role_name: str | None = None
    first_name: str
    last_name: str
    email: str
    code: str
    status: StaffStatus
    hire_date: date
    created_at: datetime

    class Config:
        from_attributes = True


class StaffProvisionRequest(BaseModel):
    """Hire request. Accepts the camelCase field names used by the admin UI."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    branch_id: str = Field(alias="branchId")
    franchise_id: str = Field(alias="franchiseId")
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    role_id: str = Field(alias="roleId")
    staff_code: str = Field(alias="staffCode", min_length=1, max_length=50)

    class Config:
        populate_by_name = True


class StaffUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    role_id: str | None = None
    status: StaffStatus | None = None
    branch_id: str | None = None


# =============================================================================
# Menu Schemas
# =============================================================================


class MenuItemOutput(BaseModel):
    id: str
    branch_id: str
    name_of_item: str
    category: str | None = None
    description: str | None = None
    cost: Decimal
    is_available: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MenuItemCreate(BaseModel):
    name_of_item: str = Field(min_length=1, max_length=200)
    category: str | None = Field(default=None, max_length=100)
    description: str | None = None
    cost: Decimal = Field(ge=0, max_digits=12, decimal_places=4)
    is_available: bool = True


class MenuItemUpdate(BaseModel):
    name_of_item: str | None = Field(default=None, min_length=1, max_length=200)
    category: str | None = Field(default=None, max_length=100)
    description: str | None = None
    cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=4)
    is_available: bool | None = None


# =============================================================================
# Table Schemas
# =============================================================================


class TableOutput(BaseModel):
    id: str
    branch_id: str
    table_number: str
    capacity: int
    status: TableStatus
    last_status_update: datetime | None = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TableCreate(BaseModel):
    table_number: str = Field(min_length=1, max_length=20)
    capacity: int = Field(default=4, ge=1, le=50)


class TableUpdate(BaseModel):
    table_number: str | None = Field(default=None, min_length=1, max_length=20)
    capacity: int | None = Field(default=None, ge=1, le=50)


# =============================================================================
# Saga Schemas
# =============================================================================


class SagaStepOutput(BaseModel):
    ordinal: int
    name: str
    status: SagaStepStatus
    error: str | None = None
    recorded_at: datetime

    class Config:
        from_attributes = True


class SagaOutput(BaseModel):
    id: str
    kind: SagaKind
    status: SagaStatus
    aggregate_id: str
    branch_id: str | None = None
    failed_step: str | None = None
    error: str | None = None
    started_by: str | None = None
    context: dict[str, Any]
    created_at: datetime
    finished_at: datetime | None = None
    steps: list[SagaStepOutput] = Field(default_factory=list)

    class Config:
        from_attributes = True
