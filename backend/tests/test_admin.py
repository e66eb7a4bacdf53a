"""
Tests for franchise, branch, role, menu and table administration.
"""

from conftest import login
from rest_api.models import RestaurantTable
from shared.config.constants import TableStatus


class TestFranchise:
    def test_owner_reads_and_edits_franchise(self, client, owner_headers):
        response = client.get("/api/admin/franchise", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["code"] == "DEMO"

        response = client.patch(
            "/api/admin/franchise",
            json={"name": "Demo Group", "contact_phone": "+1 555 0100"},
            headers=owner_headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Demo Group"

    def test_manager_cannot_read_franchise(self, client, manager_headers):
        response = client.get("/api/admin/franchise", headers=manager_headers)
        assert response.status_code == 403


class TestBranches:
    def test_owner_creates_branch(self, client, owner_headers):
        response = client.post(
            "/api/admin/branches",
            json={"name": "Harbor", "code": "HARBOR", "city": "Springfield"},
            headers=owner_headers,
        )
        assert response.status_code == 201
        assert response.json()["status"] == "ACTIVE"

        branches = client.get("/api/admin/branches", headers=owner_headers).json()
        assert {b["code"] for b in branches} == {"MAIN", "HARBOR"}

    def test_duplicate_branch_code_rejected(self, client, owner_headers):
        response = client.post(
            "/api/admin/branches",
            json={"name": "Another Main", "code": "MAIN"},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_invalid_opening_time_rejected(self, client, owner_headers):
        response = client.post(
            "/api/admin/branches",
            json={"name": "Late", "code": "LATE", "opening_time": "25:00"},
            headers=owner_headers,
        )
        assert response.status_code == 422

    def test_manager_sees_only_own_branch(self, client, seeded):
        owner_headers = login(client, "owner@demo.com", "owner123")
        client.post(
            "/api/admin/branches",
            json={"name": "Harbor", "code": "HARBOR"},
            headers=owner_headers,
        )
        manager_headers = login(client, "manager@demo.com", "manager123")
        branches = client.get("/api/admin/branches", headers=manager_headers).json()
        assert [b["id"] for b in branches] == [seeded["branch_id"]]

    def test_manager_cannot_create_branch(self, client, manager_headers):
        response = client.post(
            "/api/admin/branches",
            json={"name": "Harbor", "code": "HARBOR"},
            headers=manager_headers,
        )
        assert response.status_code == 403

    def test_manager_edits_own_branch(self, client, seeded, manager_headers):
        response = client.patch(
            f"/api/admin/branches/{seeded['branch_id']}",
            json={"closing_time": "23:30"},
            headers=manager_headers,
        )
        assert response.status_code == 200
        assert response.json()["closing_time"] == "23:30"

    def test_waiter_cannot_edit_branch(self, client, seeded, waiter_headers):
        response = client.patch(
            f"/api/admin/branches/{seeded['branch_id']}",
            json={"closing_time": "23:30"},
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_waiter_cannot_delete_branch(self, client, seeded, waiter_headers):
        response = client.delete(f"/api/admin/branches/{seeded['branch_id']}", headers=waiter_headers)
        assert response.status_code == 403

    def test_manager_without_branch_delete_denied(self, client, seeded, manager_headers):
        response = client.delete(f"/api/admin/branches/{seeded['branch_id']}", headers=manager_headers)
        assert response.status_code == 403

    def test_owner_cannot_delete_own_branch(self, client, seeded, owner_headers):
        response = client.delete(f"/api/admin/branches/{seeded['branch_id']}", headers=owner_headers)
        assert response.status_code == 409

    def test_delete_branch_with_occupied_table_rejected(self, client, db_session, owner_headers):
        branch = client.post(
            "/api/admin/branches",
            json={"name": "Harbor", "code": "HARBOR"},
            headers=owner_headers,
        ).json()
        db_session.add(
            RestaurantTable(branch_id=branch["id"], table_number="1", status=TableStatus.OCCUPIED)
        )
        db_session.commit()

        response = client.delete(f"/api/admin/branches/{branch['id']}", headers=owner_headers)
        assert response.status_code == 409

    def test_soft_deleted_branch_disappears(self, client, owner_headers):
        branch = client.post(
            "/api/admin/branches",
            json={"name": "Harbor", "code": "HARBOR"},
            headers=owner_headers,
        ).json()
        response = client.delete(f"/api/admin/branches/{branch['id']}", headers=owner_headers)
        assert response.status_code == 204

        assert client.get(f"/api/admin/branches/{branch['id']}", headers=owner_headers).status_code == 404
        everything = client.get(
            "/api/admin/branches", params={"include_inactive": True}, headers=owner_headers
        ).json()
        deleted = next(b for b in everything if b["id"] == branch["id"])
        assert deleted["status"] == "INACTIVE"
        assert deleted["is_active"] is False


class TestRoles:
    def test_create_role_with_valid_keys(self, client, owner_headers):
        response = client.post(
            "/api/admin/roles",
            json={"name": "Host", "permissions": {"tables_view": True, "tables_assign": True}},
            headers=owner_headers,
        )
        assert response.status_code == 201
        assert response.json()["permissions"] == {"tables_view": True, "tables_assign": True}
        assert response.json()["is_owner"] is False

    def test_unknown_permission_key_rejected(self, client, owner_headers):
        response = client.post(
            "/api/admin/roles",
            json={"name": "Host", "permissions": {"tables_juggle": True}},
            headers=owner_headers,
        )
        assert response.status_code == 400
        assert "tables_juggle" in response.json()["detail"]

    def test_owner_role_cannot_be_created(self, client, owner_headers):
        response = client.post(
            "/api/admin/roles",
            json={"name": "Co-owner", "is_owner": True},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_duplicate_role_name_rejected(self, client, owner_headers):
        response = client.post(
            "/api/admin/roles",
            json={"name": "Waiter"},
            headers=owner_headers,
        )
        assert response.status_code == 400

    def test_manager_can_view_but_not_create_roles(self, client, manager_headers):
        assert client.get("/api/admin/roles", headers=manager_headers).status_code == 200
        response = client.post("/api/admin/roles", json={"name": "Host"}, headers=manager_headers)
        assert response.status_code == 403

    def test_permission_keys_listing(self, client, owner_headers):
        keys = client.get("/api/admin/roles/permission-keys", headers=owner_headers).json()
        assert "payments_process" in keys
        assert keys == sorted(keys)

    def test_role_in_use_cannot_be_deleted(self, client, seeded, owner_headers):
        response = client.delete(f"/api/admin/roles/{seeded['roles']['Kitchen']}", headers=owner_headers)
        assert response.status_code == 409

    def test_unused_role_deleted(self, client, owner_headers):
        role = client.post("/api/admin/roles", json={"name": "Host"}, headers=owner_headers).json()
        response = client.delete(f"/api/admin/roles/{role['id']}", headers=owner_headers)
        assert response.status_code == 204
        names = {r["name"] for r in client.get("/api/admin/roles", headers=owner_headers).json()}
        assert "Host" not in names

    def test_role_update_applies_to_holders_immediately(self, client, seeded):
        waiter_headers = login(client, "waiter@demo.com", "waiter123")
        owner_headers = login(client, "owner@demo.com", "owner123")
        tables_url = f"/api/branches/{seeded['branch_id']}/tables"
        assert client.get(tables_url, headers=waiter_headers).status_code == 200

        response = client.patch(
            f"/api/admin/roles/{seeded['roles']['Waiter']}",
            json={"permissions": {"menu_view": True}},
            headers=owner_headers,
        )
        assert response.status_code == 200

        assert client.get(tables_url, headers=waiter_headers).status_code == 403


class TestMenuAndTables:
    def test_menu_crud(self, client, seeded, manager_headers):
        base = f"/api/branches/{seeded['branch_id']}/menu"
        response = client.post(
            base,
            json={"name_of_item": "Espresso", "category": "Drinks", "cost": "2.25"},
            headers=manager_headers,
        )
        assert response.status_code == 201
        item = response.json()

        response = client.patch(f"{base}/{item['id']}", json={"cost": "2.50"}, headers=manager_headers)
        assert response.status_code == 200

        response = client.delete(f"{base}/{item['id']}", headers=manager_headers)
        assert response.status_code == 204
        names = {m["name_of_item"] for m in client.get(base, headers=manager_headers).json()}
        assert "Espresso" not in names

    def test_negative_cost_rejected(self, client, seeded, manager_headers):
        response = client.post(
            f"/api/branches/{seeded['branch_id']}/menu",
            json={"name_of_item": "Refund", "cost": "-1"},
            headers=manager_headers,
        )
        assert response.status_code == 422

    def test_waiter_cannot_edit_menu(self, client, seeded, waiter_headers):
        response = client.patch(
            f"/api/branches/{seeded['branch_id']}/menu/{seeded['menu']['Lemonade']}",
            json={"cost": "0.01"},
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_create_table_starts_available(self, client, seeded, manager_headers):
        response = client.post(
            f"/api/branches/{seeded['branch_id']}/tables",
            json={"table_number": "7", "capacity": 2},
            headers=manager_headers,
        )
        assert response.status_code == 201
        assert response.json()["status"] == "AVAILABLE"

    def test_duplicate_table_number_rejected(self, client, seeded, manager_headers):
        response = client.post(
            f"/api/branches/{seeded['branch_id']}/tables",
            json={"table_number": "1"},
            headers=manager_headers,
        )
        assert response.status_code == 400
