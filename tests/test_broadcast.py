"""Broadcaster tests — exact channel matching and failure isolation."""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from logstream.schemas.log import LogRead


def _record(service="auth", id=1):
    return LogRead(
        id=id,
        service=service,
        type="error",
        message="login failed",
        timestamp=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_only_matching_subscribers_receive(broadcaster, make_connection):
    auth, billing, idle = make_connection(), make_connection(), make_connection()
    broadcaster.connect(idle)
    broadcaster.subscribe(auth, "auth")
    broadcaster.subscribe(billing, "billing")

    assert broadcaster.broadcast(_record("auth")) == 1

    assert len(auth.sent) == 1
    assert billing.sent == []
    assert idle.sent == []


@pytest.mark.asyncio
async def test_payload_is_full_record(broadcaster, make_connection):
    conn = make_connection()
    broadcaster.subscribe(conn, "auth")
    broadcaster.broadcast(_record(id=42))

    payload = json.loads(conn.sent[0])
    assert payload == {
        "id": 42,
        "service": "auth",
        "type": "error",
        "message": "login failed",
        "timestamp": "2024-03-01T12:00:00Z",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("channel", ["Auth", "auth ", "aut", "auth*", "*"])
async def test_no_pattern_matching(broadcaster, make_connection, channel):
    conn = make_connection()
    broadcaster.subscribe(conn, channel)
    assert broadcaster.broadcast(_record("auth")) == 0
    assert conn.sent == []


@pytest.mark.asyncio
async def test_closed_connections_skipped(broadcaster, make_connection):
    conn = make_connection()
    broadcaster.subscribe(conn, "auth")
    conn.mark_closed()
    assert broadcaster.broadcast(_record()) == 0
    assert conn.sent == []


@pytest.mark.asyncio
async def test_one_failing_connection_does_not_stop_others(
    broadcaster, make_connection, failing_connection
):
    before, after = make_connection(), make_connection()
    broadcaster.subscribe(before, "auth")
    broadcaster.subscribe(failing_connection, "auth")
    broadcaster.subscribe(after, "auth")

    assert broadcaster.broadcast(_record()) == 2
    assert len(before.sent) == 1
    assert len(after.sent) == 1


@pytest.mark.asyncio
async def test_resubscribed_connection_gets_only_new_channel(broadcaster, make_connection):
    conn = make_connection()
    broadcaster.subscribe(conn, "auth")
    broadcaster.subscribe(conn, "billing")

    broadcaster.broadcast(_record("auth", id=1))
    broadcaster.broadcast(_record("billing", id=2))
    assert [json.loads(p)["id"] for p in conn.sent] == [2]


@pytest.mark.asyncio
async def test_disconnect_stops_delivery_and_retries(broadcaster, make_connection):
    conn = make_connection(buffered=1)
    broadcaster.subscribe(conn, "auth")
    broadcaster.broadcast(_record())
    assert broadcaster.sender.pending(conn) == 1

    broadcaster.disconnect(conn)
    conn.buffered = 0
    await asyncio.sleep(0.03)

    assert broadcaster.broadcast(_record()) == 0
    assert conn.sent == []
    assert broadcaster.sender.pending(conn) == 0


@pytest.mark.asyncio
async def test_backpressured_subscriber_eventually_receives(broadcaster, make_connection):
    conn = make_connection(buffered=4096)
    broadcaster.subscribe(conn, "auth")
    assert broadcaster.broadcast(_record()) == 1
    assert conn.sent == []

    conn.buffered = 0
    await asyncio.sleep(0.05)
    assert len(conn.sent) == 1


@pytest.mark.asyncio
async def test_subscriber_removed_mid_broadcast_does_not_break_iteration(
    broadcaster, make_connection
):
    first, second = make_connection(), make_connection()

    def transmit(payload):
        first.sent.append(payload)
        broadcaster.disconnect(second)

    first.transmit = transmit
    broadcaster.subscribe(first, "auth")
    broadcaster.subscribe(second, "auth")

    broadcaster.broadcast(_record())
    assert len(first.sent) == 1
    assert second not in broadcaster.registry
    assert broadcaster.broadcast(_record(id=2)) == 1
