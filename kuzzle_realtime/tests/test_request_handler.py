import asyncio

import pytest

from kuzzle_realtime.errors import ProtocolError, RequestTimeoutError
from kuzzle_realtime.handlers import RequestHandler
from kuzzle_realtime.models import Envelope
from kuzzle_realtime.network.connection import ConnectionError
from kuzzle_realtime.session_state import SessionContext


class _Recorder:
    def __init__(self, *, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    async def __call__(self, message: dict) -> None:
        if self.fail:
            raise ConnectionError("Transport not connected")
        self.sent.append(message)


async def _wait_for(predicate, *, timeout: float = 0.5, interval: float = 0.01) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


def _reply(frame: dict, **fields) -> Envelope:
    return Envelope.model_validate({"requestId": frame["requestId"], "room": frame["requestId"], **fields})


@pytest.mark.asyncio
async def test_request_frame_carries_id_volatile_and_token():
    sender = _Recorder()
    context = SessionContext(auth_token="jwt-1")
    handler = RequestHandler(sender, context=context)
    handler.set_volatile_data({"tag": "a"})

    payload = {"controller": "server", "action": "now"}
    task = asyncio.create_task(handler.send_request(payload))
    assert await _wait_for(lambda: sender.sent)

    frame = sender.sent[0]
    assert "requestId" not in payload
    assert frame["controller"] == "server"
    assert frame["action"] == "now"
    assert frame["jwt"] == "jwt-1"
    assert frame["volatile"] == {"tag": "a", "sdkInstanceId": context.instance_id}
    assert handler.is_pending(frame["requestId"])

    assert await handler.handle_message(_reply(frame, result={"now": 1700000000000})) is True
    response = await task
    assert response.result == {"now": 1700000000000}
    assert handler.pending_count == 0


@pytest.mark.asyncio
async def test_token_is_omitted_when_unset_and_ids_are_unique():
    sender = _Recorder()
    handler = RequestHandler(sender)

    tasks = [asyncio.create_task(handler.send_request({"controller": "server", "action": "now"})) for _ in range(3)]
    assert await _wait_for(lambda: len(sender.sent) == 3)

    assert all("jwt" not in frame for frame in sender.sent)
    assert len({frame["requestId"] for frame in sender.sent}) == 3
    for frame in sender.sent:
        await handler.handle_message(_reply(frame, result=True))
    await asyncio.gather(*tasks)


@pytest.mark.asyncio
async def test_timeout_rejects_and_forgets_request():
    sender = _Recorder()
    handler = RequestHandler(sender, timeout_seconds=0.05)

    with pytest.raises(RequestTimeoutError) as excinfo:
        await handler.send_request({"controller": "server", "action": "now"})

    frame = sender.sent[0]
    assert excinfo.value.request_id == frame["requestId"]
    assert str(excinfo.value) == "Request timed out"
    assert handler.pending_count == 0
    # A late reply is no longer claimed.
    assert await handler.handle_message(_reply(frame, result=True)) is False


@pytest.mark.asyncio
async def test_reply_with_room_different_from_request_id_is_not_claimed():
    sender = _Recorder()
    handler = RequestHandler(sender)

    task = asyncio.create_task(handler.send_request({"controller": "realtime", "action": "subscribe"}))
    assert await _wait_for(lambda: sender.sent)
    frame = sender.sent[0]

    notification = Envelope.model_validate({"requestId": frame["requestId"], "room": "R1-abc", "type": "document"})
    assert await handler.handle_message(notification) is False
    assert handler.is_pending(frame["requestId"])

    assert await handler.handle_message(_reply(frame, result={"roomId": "R1", "channel": "R1-abc"})) is True
    await task


@pytest.mark.asyncio
async def test_error_reply_rejects_with_protocol_error():
    sender = _Recorder()
    handler = RequestHandler(sender)

    task = asyncio.create_task(handler.send_request({"controller": "document", "action": "get"}))
    assert await _wait_for(lambda: sender.sent)
    error = {
        "message": 'Document "5" not found.',
        "id": "services.storage.not_found",
        "status": 404,
        "props": ["5"],
    }
    assert await handler.handle_message(_reply(sender.sent[0], status=404, error=error)) is True

    with pytest.raises(ProtocolError) as excinfo:
        await task
    assert excinfo.value.id == "services.storage.not_found"
    assert excinfo.value.status == 404
    assert excinfo.value.error.props == ["5"]


@pytest.mark.asyncio
async def test_unknown_request_id_falls_through():
    handler = RequestHandler(_Recorder())

    envelope = Envelope.model_validate({"requestId": "nope", "room": "nope", "result": True})
    assert await handler.handle_message(envelope) is False


@pytest.mark.asyncio
async def test_send_failure_surfaces_and_leaves_nothing_pending():
    handler = RequestHandler(_Recorder(fail=True))

    with pytest.raises(ConnectionError):
        await handler.send_request({"controller": "server", "action": "now"})
    assert handler.pending_count == 0


@pytest.mark.asyncio
async def test_token_change_applies_to_later_requests_only():
    sender = _Recorder()
    handler = RequestHandler(sender)
    handler.set_auth_token("first")

    first = asyncio.create_task(handler.send_request({"controller": "auth", "action": "getCurrentUser"}))
    assert await _wait_for(lambda: sender.sent)
    handler.set_auth_token(None)
    second = asyncio.create_task(handler.send_request({"controller": "auth", "action": "getCurrentUser"}))
    assert await _wait_for(lambda: len(sender.sent) == 2)

    assert sender.sent[0]["jwt"] == "first"
    assert "jwt" not in sender.sent[1]
    for frame in sender.sent:
        await handler.handle_message(_reply(frame, result={}))
    await asyncio.gather(first, second)


@pytest.mark.asyncio
async def test_fail_pending_rejects_in_flight_requests():
    sender = _Recorder()
    handler = RequestHandler(sender)

    task = asyncio.create_task(handler.send_request({"controller": "server", "action": "now"}))
    assert await _wait_for(lambda: sender.sent)
    handler.fail_pending(ConnectionError("Connection closed: going away"))

    with pytest.raises(ConnectionError):
        await task
    assert handler.pending_count == 0
