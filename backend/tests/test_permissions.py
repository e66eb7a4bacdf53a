"""
Tests for capability-based permissions and branch scoping.
"""

import pytest

from conftest import login, staff_context
from rest_api.models import Branch
from rest_api.services.permissions import (
    ALL_PERMISSION_KEYS,
    Action,
    BranchScope,
    Capability,
    CapabilityCache,
    CapabilitySet,
    Module,
    select_branch_scope,
    validate_permission_map,
)
from shared.utils.exceptions import BranchAccessError, CapabilityError, NotFoundError, ValidationError


class TestCapabilityRegistry:
    """The closed set of (module, action) pairs."""

    def test_key_round_trip(self):
        capability = Capability.from_key("orderHistory_export")
        assert capability == Capability(Module.ORDER_HISTORY, Action.EXPORT)
        assert capability.key == "orderHistory_export"

    def test_unknown_pair_rejected(self):
        with pytest.raises(ValueError):
            Capability(Module.ANALYTICS, Action.DELETE)
        with pytest.raises(ValueError):
            Capability.from_key("kitchen_view")
        with pytest.raises(ValueError):
            Capability.from_key("nounderscore")

    def test_registry_contains_all_module_actions(self):
        assert "tables_assign" in ALL_PERMISSION_KEYS
        assert "tableOrders_void" in ALL_PERMISSION_KEYS
        assert "payments_process" in ALL_PERMISSION_KEYS
        assert "tables_delete" not in ALL_PERMISSION_KEYS

    def test_validate_permission_map_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown permission keys"):
            validate_permission_map({"menu_view": True, "menu_fly": True})

    def test_validate_permission_map_rejects_owner_only_grants(self):
        with pytest.raises(ValueError, match="reserved for owner"):
            validate_permission_map({"franchise_edit": True})

    def test_validate_permission_map_normalizes_values(self):
        assert validate_permission_map({"menu_view": 1, "menu_edit": 0}) == {
            "menu_view": True,
            "menu_edit": False,
        }


class TestCapabilitySet:
    def test_owner_allows_everything(self):
        owner = CapabilitySet.owner()
        assert owner.allows(Module.FRANCHISE, Action.EDIT)
        assert owner.allows(Module.PAYMENTS, Action.PROCESS)
        assert owner.keys() == sorted(ALL_PERMISSION_KEYS)

    def test_from_role_ignores_false_and_unknown_keys(self):
        capabilities = CapabilitySet.from_role(
            False, {"menu_view": True, "menu_edit": False, "legacy_key": True}
        )
        assert capabilities.allows(Module.MENU, Action.VIEW)
        assert not capabilities.allows(Module.MENU, Action.EDIT)
        assert capabilities.keys() == ["menu_view"]

    def test_owner_only_module_never_granted_to_non_owner(self):
        capabilities = CapabilitySet.from_role(False, {"franchise_view": True})
        assert not capabilities.allows(Module.FRANCHISE, Action.VIEW)


class TestCapabilityCache:
    def test_get_or_compute_caches(self):
        cache = CapabilityCache()
        calls = []

        def compute():
            calls.append(1)
            return CapabilitySet.of((Module.MENU, Action.VIEW))

        cache.get_or_compute("staff-1", "role-1", compute)
        cache.get_or_compute("staff-1", "role-1", compute)
        assert len(calls) == 1

    def test_role_change_is_a_miss(self):
        cache = CapabilityCache()
        cache.put("staff-1", "role-1", CapabilitySet.of((Module.MENU, Action.VIEW)))
        result = cache.get_or_compute(
            "staff-1", "role-2", lambda: CapabilitySet.of((Module.STAFF, Action.VIEW))
        )
        assert result.allows(Module.STAFF, Action.VIEW)

    def test_invalidate_role_drops_all_holders(self):
        cache = CapabilityCache()
        cache.put("staff-1", "role-1", CapabilitySet())
        cache.put("staff-2", "role-1", CapabilitySet())
        cache.put("staff-3", "role-2", CapabilitySet())
        assert cache.invalidate_role("role-1") == 2
        assert len(cache) == 1
        assert cache.get("staff-3") is not None


class TestStaffContext:
    def test_require_raises_capability_error(self, db_session, seeded):
        ctx = staff_context(db_session, "kitchen@demo.com")
        ctx.require(Module.ACTIVE_ORDERS, Action.UPDATE)
        with pytest.raises(CapabilityError) as exc_info:
            ctx.require(Module.PAYMENTS, Action.PROCESS)
        assert exc_info.value.status_code == 403
        assert "payments_process" in exc_info.value.detail

    def test_resolved_context(self, db_session, seeded):
        ctx = staff_context(db_session, "waiter@demo.com")
        assert ctx.role_name == "Waiter"
        assert ctx.branch_id == seeded["branch_id"]
        assert ctx.display_name == "Juan Waiter"
        assert not ctx.is_owner


@pytest.fixture
def second_branch(db_session, seeded):
    branch = Branch(
        franchise_id=seeded["franchise_id"],
        name="Harbor",
        code="HARBOR",
        opening_time="10:00",
        closing_time="22:00",
    )
    db_session.add(branch)
    db_session.commit()
    return branch.id


class TestBranchScope:
    """Owners pick any branch or "all"; everyone else is pinned to their own."""

    def test_owner_all_scope(self, db_session, seeded, second_branch):
        ctx = staff_context(db_session, "owner@demo.com")
        scope = select_branch_scope(db_session, ctx, "all")
        assert scope.is_all
        assert scope.branch_ids == {seeded["branch_id"], second_branch}

    def test_owner_can_select_other_branch(self, db_session, seeded, second_branch):
        ctx = staff_context(db_session, "owner@demo.com")
        scope = select_branch_scope(db_session, ctx, second_branch)
        assert scope.require_single() == second_branch

    def test_owner_unknown_branch_not_found(self, db_session, seeded):
        ctx = staff_context(db_session, "owner@demo.com")
        with pytest.raises(NotFoundError):
            select_branch_scope(db_session, ctx, "no-such-branch")

    def test_manager_pinned_to_own_branch(self, db_session, seeded, second_branch):
        ctx = staff_context(db_session, "manager@demo.com")
        assert select_branch_scope(db_session, ctx, seeded["branch_id"]).branch_ids == {seeded["branch_id"]}
        with pytest.raises(BranchAccessError):
            select_branch_scope(db_session, ctx, second_branch)
        with pytest.raises(BranchAccessError):
            select_branch_scope(db_session, ctx, "all")

    def test_all_scope_is_read_only(self):
        scope = BranchScope("franchise-1", frozenset({"b1", "b2"}), is_all=True)
        with pytest.raises(ValidationError):
            scope.require_single()

    def test_manager_other_branch_over_http(self, client, seeded, second_branch):
        headers = login(client, "manager@demo.com", "manager123")
        response = client.get(f"/api/branches/{second_branch}/tables", headers=headers)
        assert response.status_code == 403

    def test_owner_all_reads_but_cannot_write(self, client, seeded, second_branch):
        headers = login(client, "owner@demo.com", "owner123")
        response = client.get("/api/branches/all/tables", headers=headers)
        assert response.status_code == 200
        assert len(response.json()) == 6

        response = client.post(
            f"/api/branches/all/tables/{seeded['tables']['1']}/orders",
            json={"items": [{"item_id": seeded["menu"]["Lemonade"], "quantity": 1}]},
            headers=headers,
        )
        assert response.status_code == 400

    def test_kitchen_cannot_view_tables(self, client, seeded):
        headers = login(client, "kitchen@demo.com", "kitchen123")
        response = client.get(f"/api/branches/{seeded['branch_id']}/tables", headers=headers)
        assert response.status_code == 403
