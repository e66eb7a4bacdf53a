"""
Tests for the table -> dining session -> order -> payment lifecycle.

Covers:
- Session opening and running totals (Decimal, full precision)
- Order status transitions and the kitchen board
- Cancellation adjusting session totals
- Payment closing the session and releasing the table
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import login
from rest_api.models import DiningSession
from shared.config.constants import SessionStatus


def branch_url(seeded, path: str) -> str:
    return f"/api/branches/{seeded['branch_id']}{path}"


def place(client, seeded, headers, table="1", items=None):
    items = items or [{"item_id": seeded["menu"]["Margherita Pizza"], "quantity": 2}]
    return client.post(
        branch_url(seeded, f"/tables/{seeded['tables'][table]}/orders"),
        json={"items": items},
        headers=headers,
    )


class TestPlaceOrder:
    """Placing orders opens or joins a dining session."""

    def test_first_order_opens_session_and_occupies_table(self, client, seeded, waiter_headers):
        response = place(client, seeded, waiter_headers)
        assert response.status_code == 201
        order = response.json()
        assert order["status"] == "IN_PROGRESS"
        assert Decimal(order["total_amount"]) == Decimal("25.98")
        assert Decimal(order["tax_amount"]) == Decimal("2.598")
        assert order["total_display"] == "25.98"
        assert order["tax_display"] == "2.60"
        assert order["items"][0]["name_of_item"] == "Margherita Pizza"

        table = client.get(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}"), headers=waiter_headers
        ).json()
        assert table["status"] == "OCCUPIED"

    def test_second_order_joins_session_and_adds_totals(self, client, seeded, waiter_headers):
        first = place(client, seeded, waiter_headers).json()
        second = place(
            client,
            seeded,
            waiter_headers,
            items=[{"item_id": seeded["menu"]["Caesar Salad"], "quantity": 1}],
        ).json()
        assert second["dining_session_id"] == first["dining_session_id"]

        session = client.get(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}/session"), headers=waiter_headers
        ).json()
        assert Decimal(session["total_amount"]) == Decimal("34.97")
        assert Decimal(session["tax_amount"]) == Decimal("3.497")
        assert Decimal(session["grand_total"]) == Decimal("38.467")
        assert session["grand_total_display"] == "38.47"
        assert len(session["orders"]) == 2

    def test_second_open_session_for_table_rejected(
        self, client, seeded, db_session, waiter_headers
    ):
        place(client, seeded, waiter_headers)
        db_session.add(
            DiningSession(
                branch_id=seeded["branch_id"],
                table_id=seeded["tables"]["1"],
                status=SessionStatus.IN_PROGRESS,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_empty_order_rejected(self, client, seeded, waiter_headers):
        response = client.post(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}/orders"),
            json={"items": []},
            headers=waiter_headers,
        )
        assert response.status_code == 422

    def test_unknown_menu_item_rejected(self, client, seeded, waiter_headers):
        response = place(
            client, seeded, waiter_headers, items=[{"item_id": "no-such-item", "quantity": 1}]
        )
        assert response.status_code == 400

        # Nothing was written: the table is still free
        table = client.get(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}"), headers=waiter_headers
        ).json()
        assert table["status"] == "AVAILABLE"

    def test_unavailable_menu_item_rejected(self, client, seeded, manager_headers):
        item_id = seeded["menu"]["Tiramisu"]
        response = client.patch(
            branch_url(seeded, f"/menu/{item_id}"),
            json={"is_available": False},
            headers=manager_headers,
        )
        assert response.status_code == 200

        response = place(
            client, seeded, manager_headers, items=[{"item_id": item_id, "quantity": 1}]
        )
        assert response.status_code == 400

    def test_kitchen_cannot_place_orders(self, client, seeded, kitchen_headers):
        response = place(client, seeded, kitchen_headers)
        assert response.status_code == 403

    def test_items_priced_by_reference(self, client, seeded, waiter_headers):
        """Order totals stay as placed; item views show the current menu price."""
        order = place(client, seeded, waiter_headers).json()
        manager_headers = login(client, "manager@demo.com", "manager123")
        client.patch(
            branch_url(seeded, f"/menu/{seeded['menu']['Margherita Pizza']}"),
            json={"cost": "14.00"},
            headers=manager_headers,
        )

        fetched = client.get(branch_url(seeded, f"/orders/{order['id']}"), headers=waiter_headers).json()
        assert Decimal(fetched["total_amount"]) == Decimal("25.98")
        assert Decimal(fetched["items"][0]["unit_cost"]) == Decimal("14.00")


class TestOrderTransitions:
    """IN_PROGRESS -> COMPLETED -> SERVED, or IN_PROGRESS -> CANCELLED."""

    def test_complete_then_serve(self, client, seeded, waiter_headers, kitchen_headers):
        order = place(client, seeded, waiter_headers).json()

        active = client.get(branch_url(seeded, "/orders/active"), headers=kitchen_headers).json()
        assert [o["id"] for o in active] == [order["id"]]

        response = client.post(
            branch_url(seeded, f"/orders/{order['id']}/complete"), headers=kitchen_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["completed_at"] is not None

        response = client.post(
            branch_url(seeded, f"/orders/{order['id']}/serve"), headers=waiter_headers
        )
        assert response.status_code == 200
        served = response.json()
        assert served["status"] == "SERVED"
        assert served["waiter_id"] == seeded["staff"]["waiter@demo.com"]

        active = client.get(branch_url(seeded, "/orders/active"), headers=kitchen_headers).json()
        assert active == []

        history = client.get(branch_url(seeded, "/orders/history"), headers=waiter_headers).json()
        assert [o["id"] for o in history] == [order["id"]]

    def test_serve_before_complete_rejected(self, client, seeded, waiter_headers):
        order = place(client, seeded, waiter_headers).json()
        response = client.post(
            branch_url(seeded, f"/orders/{order['id']}/serve"), headers=waiter_headers
        )
        assert response.status_code == 400
        assert "Invalid transition" in response.json()["detail"]

    def test_cancel_completed_order_rejected(self, client, seeded, waiter_headers, manager_headers):
        order = place(client, seeded, waiter_headers).json()
        client.post(branch_url(seeded, f"/orders/{order['id']}/complete"), headers=manager_headers)
        response = client.post(
            branch_url(seeded, f"/orders/{order['id']}/cancel"), headers=manager_headers
        )
        assert response.status_code == 400

    def test_cancel_subtracts_from_session(self, client, seeded, waiter_headers, manager_headers):
        place(client, seeded, waiter_headers)
        salad = place(
            client,
            seeded,
            waiter_headers,
            items=[{"item_id": seeded["menu"]["Caesar Salad"], "quantity": 1}],
        ).json()

        response = client.post(
            branch_url(seeded, f"/orders/{salad['id']}/cancel"), headers=manager_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

        session = client.get(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}/session"), headers=waiter_headers
        ).json()
        assert Decimal(session["total_amount"]) == Decimal("25.98")
        assert Decimal(session["tax_amount"]) == Decimal("2.598")

    def test_waiter_cannot_void(self, client, seeded, waiter_headers):
        order = place(client, seeded, waiter_headers).json()
        response = client.post(
            branch_url(seeded, f"/orders/{order['id']}/cancel"), headers=waiter_headers
        )
        assert response.status_code == 403

    def test_history_rejects_active_status_filter(self, client, seeded, waiter_headers):
        response = client.get(
            branch_url(seeded, "/orders/history"),
            params={"status": "IN_PROGRESS"},
            headers=waiter_headers,
        )
        assert response.status_code == 400


class TestPayment:
    """Paying a session closes it and releases the table."""

    def test_full_lifecycle(self, client, seeded, waiter_headers):
        place(client, seeded, waiter_headers)
        place(
            client,
            seeded,
            waiter_headers,
            items=[{"item_id": seeded["menu"]["Caesar Salad"], "quantity": 1}],
        )
        session = client.get(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}/session"), headers=waiter_headers
        ).json()

        response = client.post(
            branch_url(seeded, f"/sessions/{session['id']}/payment"),
            json={"method": "CARD"},
            headers=waiter_headers,
        )
        assert response.status_code == 201
        payment = response.json()
        assert Decimal(payment["amount"]) == Decimal("38.467")
        assert payment["amount_display"] == "38.47"
        assert payment["method"] == "CARD"
        assert payment["status"] == "COMPLETED"
        assert payment["saga_id"]

        table = client.get(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}"), headers=waiter_headers
        ).json()
        assert table["status"] == "AVAILABLE"

        response = client.get(
            branch_url(seeded, f"/tables/{seeded['tables']['1']}/session"), headers=waiter_headers
        )
        assert response.status_code == 404

    def test_payment_defaults_to_cash(self, client, seeded, waiter_headers):
        order = place(client, seeded, waiter_headers).json()
        response = client.post(
            branch_url(seeded, f"/sessions/{order['dining_session_id']}/payment"),
            headers=waiter_headers,
        )
        assert response.status_code == 201
        assert response.json()["method"] == "CASH"

    def test_fully_voided_session_cannot_be_paid(
        self, client, seeded, waiter_headers, manager_headers
    ):
        order = place(client, seeded, waiter_headers).json()
        client.post(branch_url(seeded, f"/orders/{order['id']}/cancel"), headers=manager_headers)

        response = client.post(
            branch_url(seeded, f"/sessions/{order['dining_session_id']}/payment"),
            headers=waiter_headers,
        )
        assert response.status_code == 400
        assert "billable" in response.json()["detail"]

    def test_paying_twice_conflicts(self, client, seeded, waiter_headers):
        order = place(client, seeded, waiter_headers).json()
        url = branch_url(seeded, f"/sessions/{order['dining_session_id']}/payment")
        assert client.post(url, headers=waiter_headers).status_code == 201

        response = client.post(url, headers=waiter_headers)
        assert response.status_code == 409

    def test_new_order_after_payment_opens_new_session(self, client, seeded, waiter_headers):
        first = place(client, seeded, waiter_headers).json()
        client.post(
            branch_url(seeded, f"/sessions/{first['dining_session_id']}/payment"),
            headers=waiter_headers,
        )
        second = place(client, seeded, waiter_headers).json()
        assert second["dining_session_id"] != first["dining_session_id"]

    def test_cancel_after_payment_rejected(self, client, seeded, waiter_headers, manager_headers):
        order = place(client, seeded, waiter_headers).json()
        client.post(
            branch_url(seeded, f"/sessions/{order['dining_session_id']}/payment"),
            headers=waiter_headers,
        )
        response = client.post(
            branch_url(seeded, f"/orders/{order['id']}/cancel"), headers=manager_headers
        )
        assert response.status_code == 409

    def test_kitchen_cannot_take_payment(self, client, seeded, waiter_headers, kitchen_headers):
        order = place(client, seeded, waiter_headers).json()
        response = client.post(
            branch_url(seeded, f"/sessions/{order['dining_session_id']}/payment"),
            headers=kitchen_headers,
        )
        assert response.status_code == 403
