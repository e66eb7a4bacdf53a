"""
Tests for change events: outbox writes, the polling feed, the Redis
publisher and the WebSocket relay handshake.
"""

import asyncio
import json
from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import create_engine, inspect, select
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketDisconnect

from conftest import TestingSessionLocal, login
from rest_api.models import Base, OutboxEvent, OutboxStatus
from rest_api.services.events import (
    ChangeEvent,
    ChangeOperation,
    EntityKind,
    OutboxProcessor,
    record_change,
)
from rest_api.services.events.outbox_processor import channel_for
from shared.infrastructure.events import channel_branch_changes, channel_franchise_changes


class TestChangeEvent:
    def test_event_type_and_round_trip(self):
        event = ChangeEvent(
            entity=EntityKind.ORDER,
            entity_id="order-1",
            operation=ChangeOperation.UPDATE,
            franchise_id="f-1",
            branch_id="b-1",
            changes={"status": "COMPLETED"},
        )
        assert event.event_type == "order.UPDATE"

        restored = ChangeEvent.from_dict(json.loads(event.to_json()), sequence=7)
        assert restored.entity == EntityKind.ORDER
        assert restored.changes == {"status": "COMPLETED"}
        assert restored.occurred_at == event.occurred_at
        assert restored.sequence == 7

    def test_record_change_writes_pending_outbox_row(self):
        db = MagicMock()
        record_change(
            db,
            EntityKind.TABLE,
            "table-1",
            ChangeOperation.UPDATE,
            franchise_id="f-1",
            branch_id="b-1",
            actor_staff_id="s-1",
            changes={"status": "OCCUPIED"},
        )

        db.add.assert_called_once()
        row = db.add.call_args[0][0]
        assert isinstance(row, OutboxEvent)
        assert row.status == OutboxStatus.PENDING
        assert row.event_type == "table.UPDATE"
        assert json.loads(row.payload)["changes"] == {"status": "OCCUPIED"}
        db.commit.assert_not_called()


class TestOutboxSchema:
    def test_index_names_are_unique(self):
        names = [ix.name for table in Base.metadata.tables.values() for ix in table.indexes]
        assert len(names) == len(set(names))

    def test_schema_builds_on_fresh_database(self):
        engine = create_engine("sqlite://", poolclass=StaticPool)
        Base.metadata.create_all(bind=engine)
        indexes = {ix["name"] for ix in inspect(engine).get_indexes("outbox_event")}
        assert {"ix_outbox_event_branch_id", "ix_outbox_event_branch_seq"} <= indexes
        engine.dispose()


class TestChannels:
    def test_channel_names(self):
        assert channel_branch_changes("b-1") == "branch:b-1:changes"
        assert channel_franchise_changes("f-1") == "franchise:f-1:changes"

    def test_channel_ids_validated(self):
        with pytest.raises(ValueError):
            channel_branch_changes("")
        with pytest.raises(ValueError):
            channel_branch_changes("b:*")

    def test_franchise_wide_rows_use_franchise_channel(self):
        row = OutboxEvent(franchise_id="f-1", branch_id=None)
        assert channel_for(row) == "franchise:f-1:changes"
        row = OutboxEvent(franchise_id="f-1", branch_id="b-1")
        assert channel_for(row) == "branch:b-1:changes"


class TestPollingFeed:
    def _place_order(self, client, seeded, headers):
        response = client.post(
            f"/api/branches/{seeded['branch_id']}/tables/{seeded['tables']['1']}/orders",
            json={"items": [{"item_id": seeded["menu"]["Lemonade"], "quantity": 1}]},
            headers=headers,
        )
        assert response.status_code == 201
        return response.json()

    def test_order_placement_events_in_sequence(self, client, seeded, waiter_headers):
        order = self._place_order(client, seeded, waiter_headers)

        response = client.get(f"/api/branches/{seeded['branch_id']}/changes", headers=waiter_headers)
        assert response.status_code == 200
        feed = response.json()
        types = [e["type"] for e in feed["events"]]
        assert types == ["table.UPDATE", "dining_session.INSERT", "order.INSERT"]
        assert feed["events"][-1]["entity_id"] == order["id"]
        assert feed["events"][0]["changes"] == {"status": "OCCUPIED"}
        assert feed["cursor"] == feed["events"][-1]["sequence"]

    def test_cursor_paging(self, client, seeded, waiter_headers):
        self._place_order(client, seeded, waiter_headers)
        url = f"/api/branches/{seeded['branch_id']}/changes"

        first = client.get(url, params={"limit": 2}, headers=waiter_headers).json()
        assert len(first["events"]) == 2

        rest = client.get(url, params={"after": first["cursor"]}, headers=waiter_headers).json()
        assert [e["type"] for e in rest["events"]] == ["order.INSERT"]

        empty = client.get(url, params={"after": rest["cursor"]}, headers=waiter_headers).json()
        assert empty == {"events": [], "cursor": rest["cursor"]}

    def test_feed_includes_franchise_wide_but_not_other_branches(self, client, seeded, manager_headers):
        owner_headers = login(client, "owner@demo.com", "owner123")
        client.post("/api/admin/roles", json={"name": "Host"}, headers=owner_headers)
        client.post(
            "/api/admin/branches",
            json={"name": "Harbor", "code": "HARBOR"},
            headers=owner_headers,
        )

        feed = client.get(
            f"/api/branches/{seeded['branch_id']}/changes", headers=manager_headers
        ).json()
        assert [e["type"] for e in feed["events"]] == ["role.INSERT"]
        assert feed["events"][0]["branch_id"] is None


@pytest.fixture
def redis_mock():
    client = MagicMock()
    client.publish = AsyncMock(return_value=1)
    return client


def _pending_event(db_session, seeded, entity_id="table-x"):
    record_change(
        db_session,
        EntityKind.TABLE,
        entity_id,
        ChangeOperation.UPDATE,
        franchise_id=seeded["franchise_id"],
        branch_id=seeded["branch_id"],
    )
    db_session.commit()


class TestOutboxProcessor:
    """Publishing PENDING rows to Redis."""

    def test_publishes_pending_events(self, db_session, seeded, redis_mock):
        _pending_event(db_session, seeded, "table-1")
        _pending_event(db_session, seeded, "table-2")
        processor = OutboxProcessor(
            session_factory=TestingSessionLocal,
            redis_getter=AsyncMock(return_value=redis_mock),
        )

        assert asyncio.run(processor.process_batch()) == 2

        db_session.expire_all()
        rows = db_session.scalars(select(OutboxEvent).order_by(OutboxEvent.id)).all()
        assert [r.status for r in rows] == [OutboxStatus.PUBLISHED, OutboxStatus.PUBLISHED]
        assert all(r.processed_at is not None for r in rows)

        channel, payload = redis_mock.publish.call_args_list[0].args
        assert channel == f"branch:{seeded['branch_id']}:changes"
        assert json.loads(payload)["entity_id"] == "table-1"

    def test_nothing_pending(self, db_session, seeded, redis_mock):
        processor = OutboxProcessor(
            session_factory=TestingSessionLocal,
            redis_getter=AsyncMock(return_value=redis_mock),
        )
        assert asyncio.run(processor.process_batch()) == 0
        redis_mock.publish.assert_not_called()

    def test_failed_publish_is_retried_then_failed(self, db_session, seeded, redis_mock):
        _pending_event(db_session, seeded)
        redis_mock.publish.side_effect = ConnectionError("redis down")
        processor = OutboxProcessor(
            session_factory=TestingSessionLocal,
            redis_getter=AsyncMock(return_value=redis_mock),
            max_retries=2,
        )

        with patch("shared.infrastructure.events.publisher.retry_delay", return_value=0):
            assert asyncio.run(processor.process_batch()) == 0
            db_session.expire_all()
            row = db_session.scalar(select(OutboxEvent))
            assert row.status == OutboxStatus.PENDING
            assert row.retry_count == 1
            assert "redis down" in row.last_error

            asyncio.run(processor.process_batch())

        db_session.expire_all()
        row = db_session.scalar(select(OutboxEvent))
        assert row.status == OutboxStatus.FAILED
        assert row.retry_count == 2


class TestChangeWebSocket:
    """Handshake checks of the live relay."""

    def test_invalid_token_closes_4001(self, client, seeded):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(
                f"/ws/branches/{seeded['branch_id']}/changes?token=not-a-jwt"
            ) as websocket:
                websocket.receive_text()
        assert exc_info.value.code == 4001

    def test_branch_outside_scope_closes_4003(self, client, db_session, seeded):
        response = client.post(
            "/api/auth/login", json={"email": "manager@demo.com", "password": "manager123"}
        )
        token = response.json()["access_token"]

        @contextmanager
        def test_db_context():
            yield db_session

        with patch("rest_api.routers.pos.changes.get_db_context", test_db_context):
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect(f"/ws/branches/all/changes?token={token}") as websocket:
                    websocket.receive_text()
        assert exc_info.value.code == 4003
