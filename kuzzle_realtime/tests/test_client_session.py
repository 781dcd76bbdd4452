import asyncio

import pytest

from kuzzle_realtime.config import ClientSettings
from kuzzle_realtime.errors import ProtocolError
from kuzzle_realtime.network import ConnectionError, DummyTransport, RealtimeClient
from kuzzle_realtime.session_state import ConnectionState


async def _wait_for(predicate, *, timeout: float = 0.5, interval: float = 0.01) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


def _make_client(**overrides):
    settings = ClientSettings(
        transport="dummy",
        ping_interval_seconds=60,
        request_timeout_seconds=1.0,
        **overrides,
    )
    transport = DummyTransport(settings)
    client = RealtimeClient(settings=settings, transport_factory=lambda _: transport)
    return client, transport


def _reply(frame: dict, **fields) -> dict:
    return {"requestId": frame["requestId"], "room": frame["requestId"], **fields}


async def _answer_subscribe(transport: DummyTransport, already_answered: int, channel: str = "R1-abc") -> None:
    assert await _wait_for(lambda: len(transport.frames(action="subscribe")) > already_answered)
    frame = transport.frames(action="subscribe")[already_answered]
    await transport.feed(_reply(frame, result={"roomId": channel.split("-")[0], "channel": channel}))


@pytest.mark.asyncio
async def test_request_round_trip_over_transport():
    client, transport = _make_client(auth_token="api-key")
    opened = []
    client.on("open", lambda: opened.append(True))
    await client.start()
    try:
        await transport.open()
        await client.wait_until_connected(timeout=0.5)
        assert client.is_connected
        assert opened == [True]
        assert client.context.state is ConnectionState.OPEN

        task = asyncio.create_task(client.send_request({"controller": "server", "action": "now"}))
        assert await _wait_for(lambda: transport.frames(controller="server"))
        (frame,) = transport.frames(controller="server")
        assert frame["jwt"] == "api-key"
        assert frame["volatile"]["sdkInstanceId"] == client.instance_id

        await transport.feed(_reply(frame, result={"now": 1700000000000}))
        response = await task
        assert response.result == {"now": 1700000000000}
    finally:
        await client.stop()
    assert client.context.state is ConnectionState.STOPPED


@pytest.mark.asyncio
async def test_send_before_open_raises_connection_error():
    client, _ = _make_client()
    await client.start()
    try:
        with pytest.raises(ConnectionError):
            await client.send_request({"controller": "server", "action": "now"})
        assert client.request_handler.pending_count == 0
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_wait_until_connected_times_out():
    client, _ = _make_client()
    await client.start()
    try:
        with pytest.raises(asyncio.TimeoutError):
            await client.wait_until_connected(timeout=0.05)
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_peer_ping_answered_and_malformed_frames_dropped():
    client, transport = _make_client()
    await client.start()
    try:
        await transport.open()
        await transport.feed({"p": 1})
        await transport.feed("not json")
        await transport.feed("[1, 2]")
        await transport.feed({"p": 7})

        assert transport.sent == [{"p": 2}]
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_invalid_token_reply_clears_token_and_rejects_request():
    client, transport = _make_client(auth_token="stale")
    await client.start()
    try:
        await transport.open()
        task = asyncio.create_task(client.send_request({"controller": "auth", "action": "getCurrentUser"}))
        assert await _wait_for(lambda: transport.frames(controller="auth"))
        frame = transport.frames(controller="auth")[0]
        error = {"id": "security.token.invalid", "message": "Invalid token.", "status": 401}
        await transport.feed(_reply(frame, status=401, error=error))

        with pytest.raises(ProtocolError):
            await task
        assert client.context.auth_token is None
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_notifications_reach_subscribers_through_dispatch():
    client, transport = _make_client()
    received = []
    await client.start()
    try:
        await transport.open()
        subscribe = asyncio.create_task(
            client.realtime.subscribe_to_document_notifications(
                {"index": "a", "collection": "b"}, {}, received.append
            )
        )
        await _answer_subscribe(transport, 0)
        await subscribe

        await transport.feed(
            {
                "room": "R1-abc",
                "type": "document",
                "event": "delete",
                "scope": "out",
                "result": {"_id": "5", "_source": {}},
                "volatile": {"sdkInstanceId": "other"},
            }
        )
        assert len(received) == 1
        assert received[0].event == "delete"
        assert received[0].scope == "out"
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_reconnect_replays_subscriptions():
    client, transport = _make_client()
    closed = []
    client.on("close", closed.append)
    await client.start()
    try:
        await transport.open()
        subscribe = asyncio.create_task(
            client.realtime.subscribe_to_document_notifications({"index": "a", "collection": "b"}, {}, lambda n: None)
        )
        await _answer_subscribe(transport, 0)
        await subscribe
        original = transport.frames(action="subscribe")[0]

        await transport.drop("going away")
        assert closed == ["going away"]
        assert not client.is_connected
        assert not client.session.ping_handler.running

        await transport.open()
        await _answer_subscribe(transport, 1)
        replayed = transport.frames(action="subscribe")[1]
        assert {k: v for k, v in replayed.items() if k != "requestId"} == {
            k: v for k, v in original.items() if k != "requestId"
        }
        assert await _wait_for(lambda: client.request_handler.pending_count == 0)
        assert client.session.ping_handler.running
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_disconnect_leaves_requests_pending_by_default():
    client, transport = _make_client()
    await client.start()
    try:
        await transport.open()
        task = asyncio.create_task(client.send_request({"controller": "server", "action": "now"}))
        assert await _wait_for(lambda: client.request_handler.pending_count == 1)

        await transport.drop()
        assert client.request_handler.pending_count == 1
        assert not task.done()
    finally:
        await client.stop()
    with pytest.raises(ConnectionError):
        await task


@pytest.mark.asyncio
async def test_disconnect_fails_requests_when_configured():
    client, transport = _make_client(fail_pending_on_disconnect=True)
    await client.start()
    try:
        await transport.open()
        task = asyncio.create_task(client.send_request({"controller": "server", "action": "now"}))
        assert await _wait_for(lambda: client.request_handler.pending_count == 1)

        await transport.drop("going away")
        with pytest.raises(ConnectionError, match="going away"):
            await task
        assert client.request_handler.pending_count == 0
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_async_context_manager_starts_and_stops():
    settings = ClientSettings(transport="dummy", ping_interval_seconds=60)
    transport = DummyTransport(settings, auto_open=True)
    async with RealtimeClient(settings=settings, transport_factory=lambda _: transport) as client:
        await client.wait_until_connected(timeout=0.5)
        assert client.is_connected
    assert not client.is_connected


def test_unknown_lifecycle_event_is_rejected():
    client, _ = _make_client()
    with pytest.raises(ValueError):
        client.on("message", lambda: None)


@pytest.mark.asyncio
async def test_fractional_timestamp_notification_is_delivered():
    client, transport = _make_client()
    received = []
    await client.start()
    try:
        await transport.open()
        subscribe = asyncio.create_task(
            client.realtime.subscribe_to_document_notifications({"index": "a", "collection": "b"}, {}, received.append)
        )
        await _answer_subscribe(transport, 0)
        await subscribe

        await transport.feed(
            {
                "room": "R1-abc",
                "type": "document",
                "event": "write",
                "scope": "in",
                "timestamp": 1700000000000.5,
                "result": {"_id": "5", "_source": {}},
            }
        )
        assert len(received) == 1
        assert received[0].timestamp == 1700000000000.5
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_error_reply_with_mixed_props_rejects_with_protocol_error():
    client, transport = _make_client()
    await client.start()
    try:
        await transport.open()
        task = asyncio.create_task(client.send_request({"controller": "document", "action": "search"}))
        assert await _wait_for(lambda: transport.frames(controller="document"))
        frame = transport.frames(controller="document")[0]
        error = {
            "id": "api.assert.invalid_type",
            "message": 'Wrong type for argument "size" (expected: integer)',
            "status": 400,
            "props": ["size", 5],
        }
        await transport.feed(_reply(frame, status=400, error=error))

        with pytest.raises(ProtocolError) as excinfo:
            await task
        assert excinfo.value.error.props == ["size", 5]
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_error_reply_with_null_id_rejects_with_protocol_error():
    client, transport = _make_client()
    await client.start()
    try:
        await transport.open()
        task = asyncio.create_task(client.send_request({"controller": "server", "action": "now"}))
        assert await _wait_for(lambda: transport.frames(controller="server"))
        frame = transport.frames(controller="server")[0]
        await transport.feed(_reply(frame, error={"id": None, "message": "Internal error", "props": None}))

        with pytest.raises(ProtocolError, match="Internal error"):
            await task
    finally:
        await client.stop()
