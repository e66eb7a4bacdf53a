"""
Tests for staff administration: the provisioning saga, updates and deactivation.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import select

from conftest import login, staff_context
from rest_api.models import AuthPrincipal, AuthStaffMapping, SagaLog, Staff
from rest_api.services.domain import StaffService
from rest_api.services.permissions import capability_cache
from shared.config.constants import SagaKind, SagaStatus, SagaStepStatus
from shared.utils.admin_schemas import StaffProvisionRequest
from shared.utils.exceptions import (
    BranchAccessError,
    DuplicateEntityError,
    ForbiddenError,
    InternalError,
    ValidationError,
)


def hire_request(seeded, **overrides) -> StaffProvisionRequest:
    data = {
        "email": "new.hire@demo.com",
        "password": "welcome123",
        "branchId": seeded["branch_id"],
        "franchiseId": seeded["franchise_id"],
        "firstName": "Nina",
        "lastName": "Hire",
        "roleId": seeded["roles"]["Waiter"],
        "staffCode": "WTR-002",
    }
    data.update(overrides)
    return StaffProvisionRequest(**data)


class TestProvisioningSaga:
    """create_principal -> insert_staff -> insert_mapping, compensated on failure."""

    def test_provision_creates_login_staff_and_mapping(self, db_session, seeded):
        ctx = staff_context(db_session, "manager@demo.com")
        staff = StaffService(db_session).provision(hire_request(seeded), ctx)

        principal = db_session.scalar(
            select(AuthPrincipal).where(AuthPrincipal.email == "new.hire@demo.com")
        )
        mapping = db_session.scalar(
            select(AuthStaffMapping).where(AuthStaffMapping.principal_id == principal.id)
        )
        assert mapping.staff_id == staff.id
        assert staff.code == "WTR-002"

        saga = db_session.scalar(select(SagaLog).where(SagaLog.kind == SagaKind.STAFF_PROVISION))
        assert saga.status == SagaStatus.COMPLETED
        assert saga.completed_step_names() == ["create_principal", "insert_staff", "insert_mapping"]

    def test_duplicate_staff_code_compensates(self, db_session, seeded):
        """Staff code taken in the branch: the new principal is removed again."""
        ctx = staff_context(db_session, "manager@demo.com")
        with pytest.raises(ValidationError):
            StaffService(db_session).provision(hire_request(seeded, staffCode="WTR-001"), ctx)

        assert db_session.scalar(
            select(AuthPrincipal.id).where(AuthPrincipal.email == "new.hire@demo.com")
        ) is None

        saga = db_session.scalar(select(SagaLog).where(SagaLog.kind == SagaKind.STAFF_PROVISION))
        assert saga.status == SagaStatus.COMPENSATED
        assert saga.failed_step == "insert_staff"
        statuses = [(s.name, s.status) for s in saga.steps]
        assert statuses == [
            ("create_principal", SagaStepStatus.COMPLETED),
            ("insert_staff", SagaStepStatus.FAILED),
            ("undo_create_principal", SagaStepStatus.COMPENSATED),
        ]

    def test_mapping_failure_undoes_staff_and_principal(self, db_session, seeded):
        ctx = staff_context(db_session, "manager@demo.com")
        with patch.object(StaffService, "_insert_mapping", side_effect=RuntimeError("boom")):
            with pytest.raises(InternalError):
                StaffService(db_session).provision(hire_request(seeded), ctx)

        assert db_session.scalar(select(Staff.id).where(Staff.code == "WTR-002")) is None
        assert db_session.scalar(
            select(AuthPrincipal.id).where(AuthPrincipal.email == "new.hire@demo.com")
        ) is None

        saga = db_session.scalar(select(SagaLog).where(SagaLog.kind == SagaKind.STAFF_PROVISION))
        assert saga.status == SagaStatus.COMPENSATED
        assert [s.name for s in saga.steps][-2:] == ["undo_insert_staff", "undo_create_principal"]

    def test_failed_compensation_is_recorded_not_raised(self, db_session, seeded):
        ctx = staff_context(db_session, "manager@demo.com")
        with patch.object(StaffService, "_insert_mapping", side_effect=RuntimeError("boom")), \
                patch.object(StaffService, "_undo_create_principal", side_effect=RuntimeError("gone")):
            with pytest.raises(InternalError):
                StaffService(db_session).provision(hire_request(seeded), ctx)

        saga = db_session.scalar(select(SagaLog).where(SagaLog.kind == SagaKind.STAFF_PROVISION))
        assert saga.status == SagaStatus.COMPENSATION_FAILED
        assert saga.steps[-1].status == SagaStepStatus.COMPENSATION_FAILED

    def test_duplicate_email_rejected_before_saga(self, db_session, seeded):
        ctx = staff_context(db_session, "manager@demo.com")
        with pytest.raises(DuplicateEntityError):
            StaffService(db_session).provision(hire_request(seeded, email="waiter@demo.com"), ctx)
        assert db_session.scalar(select(SagaLog.id)) is None

    def test_other_franchise_rejected(self, db_session, seeded):
        ctx = staff_context(db_session, "manager@demo.com")
        with pytest.raises(ForbiddenError):
            StaffService(db_session).provision(hire_request(seeded, franchiseId="other"), ctx)

    def test_manager_cannot_hire_into_other_branch(self, db_session, seeded):
        ctx = staff_context(db_session, "manager@demo.com")
        with pytest.raises(BranchAccessError):
            StaffService(db_session).provision(hire_request(seeded, branchId="another-branch"), ctx)

    def test_manager_cannot_assign_owner_role(self, db_session, seeded):
        ctx = staff_context(db_session, "manager@demo.com")
        with pytest.raises(ForbiddenError):
            StaffService(db_session).provision(
                hire_request(seeded, roleId=seeded["roles"]["Owner"]), ctx
            )


class TestStaffEndpoints:
    """HTTP surface of staff administration."""

    def test_provision_and_login(self, client, seeded):
        manager_headers = login(client, "manager@demo.com", "manager123")
        response = client.post(
            "/api/admin/staff",
            json={
                "email": "new.hire@demo.com",
                "password": "welcome123",
                "branchId": seeded["branch_id"],
                "franchiseId": seeded["franchise_id"],
                "firstName": "Nina",
                "lastName": "Hire",
                "roleId": seeded["roles"]["Kitchen"],
                "staffCode": "KIT-002",
            },
            headers=manager_headers,
        )
        assert response.status_code == 201
        assert response.json()["role_name"] == "Kitchen"
        assert response.json()["status"] == "ACTIVE"

        login(client, "new.hire@demo.com", "welcome123")

    def test_waiter_cannot_provision(self, client, seeded):
        waiter_headers = login(client, "waiter@demo.com", "waiter123")
        response = client.post(
            "/api/admin/staff",
            json={
                "email": "new.hire@demo.com",
                "password": "welcome123",
                "branchId": seeded["branch_id"],
                "franchiseId": seeded["franchise_id"],
                "firstName": "Nina",
                "lastName": "Hire",
                "roleId": seeded["roles"]["Waiter"],
                "staffCode": "WTR-002",
            },
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_list_staff_in_branch(self, client, seeded):
        manager_headers = login(client, "manager@demo.com", "manager123")
        response = client.get("/api/admin/staff", headers=manager_headers)
        assert response.status_code == 200
        assert {s["email"] for s in response.json()} == {
            "owner@demo.com", "manager@demo.com", "waiter@demo.com", "kitchen@demo.com",
        }

    def test_role_change_takes_effect_immediately(self, client, seeded):
        """Promoting a waiter drops their cached capabilities."""
        waiter_headers = login(client, "waiter@demo.com", "waiter123")
        owner_headers = login(client, "owner@demo.com", "owner123")
        client.cookies.clear()
        waiter_id = seeded["staff"]["waiter@demo.com"]

        assert client.get("/api/admin/staff", headers=waiter_headers).status_code == 403
        assert capability_cache.get(waiter_id) is not None

        response = client.patch(
            f"/api/admin/staff/{waiter_id}",
            json={"role_id": seeded["roles"]["Manager"]},
            headers=owner_headers,
        )
        assert response.status_code == 200
        assert response.json()["role_name"] == "Manager"

        assert client.get("/api/admin/staff", headers=waiter_headers).status_code == 200

    def test_cannot_deactivate_self(self, client, seeded):
        manager_headers = login(client, "manager@demo.com", "manager123")
        manager_id = seeded["staff"]["manager@demo.com"]
        response = client.delete(f"/api/admin/staff/{manager_id}", headers=manager_headers)
        assert response.status_code == 400

    def test_deactivated_staff_hidden_unless_requested(self, client, seeded):
        owner_headers = login(client, "owner@demo.com", "owner123")
        kitchen_id = seeded["staff"]["kitchen@demo.com"]
        client.delete(f"/api/admin/staff/{kitchen_id}", headers=owner_headers)

        active = client.get("/api/admin/staff", headers=owner_headers).json()
        assert kitchen_id not in {s["id"] for s in active}

        everyone = client.get(
            "/api/admin/staff", params={"include_inactive": True}, headers=owner_headers
        ).json()
        assert kitchen_id in {s["id"] for s in everyone}

    def test_manager_cannot_deactivate_owner(self, client, seeded):
        manager_headers = login(client, "manager@demo.com", "manager123")
        owner_id = seeded["staff"]["owner@demo.com"]
        response = client.delete(f"/api/admin/staff/{owner_id}", headers=manager_headers)
        assert response.status_code == 403

        client.cookies.clear()
        assert client.post(
            "/api/auth/login", json={"email": "owner@demo.com", "password": "owner123"}
        ).status_code == 200

    def test_manager_cannot_demote_owner(self, client, seeded):
        manager_headers = login(client, "manager@demo.com", "manager123")
        owner_id = seeded["staff"]["owner@demo.com"]
        response = client.patch(
            f"/api/admin/staff/{owner_id}",
            json={"role_id": seeded["roles"]["Waiter"]},
            headers=manager_headers,
        )
        assert response.status_code == 403
        owner = client.get(f"/api/admin/staff/{owner_id}", headers=manager_headers).json()
        assert owner["role_name"] == "Owner"

    def test_null_role_and_branch_are_ignored(self, client, seeded):
        manager_headers = login(client, "manager@demo.com", "manager123")
        waiter_id = seeded["staff"]["waiter@demo.com"]
        response = client.patch(
            f"/api/admin/staff/{waiter_id}",
            json={"role_id": None, "branch_id": None, "first_name": "Juanito"},
            headers=manager_headers,
        )
        assert response.status_code == 200
        assert response.json()["role_name"] == "Waiter"
        assert response.json()["first_name"] == "Juanito"
