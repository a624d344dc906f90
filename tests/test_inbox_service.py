import json

import pytest

from signed_inbox.services import InboxService
from signed_inbox.stores import RedisSetStore, SqlTableStore


def _body(payload: dict) -> bytes:
    return json.dumps(payload).encode()


async def _send(service: InboxService, sender, receivers: list[str], content: dict | None = None) -> dict:
    body = _body({"sender": sender.name, "receivers": receivers, "content": content if content is not None else {"text": "hi"}})
    return await service.send(body, sender.sign(body))


async def _read(service: InboxService, receiver, signer=None, **extra) -> dict:
    body = _body({"receiver": receiver.name, **extra})
    return await service.read(body, (signer or receiver).sign(body))


@pytest.mark.asyncio
async def test_send_then_read_set_store(set_service: InboxService, alice, bob) -> None:
    assert await _send(set_service, alice, ["bob"]) == {"success": True, "count": 1}

    result = await _read(set_service, bob, request_id=7)
    assert result == {"success": True, "request_id": 7, "messages": [{"text": "hi"}]}
    assert (await _read(set_service, bob))["messages"] == []


@pytest.mark.asyncio
async def test_send_then_read_table_store(table_service: InboxService, alice, bob) -> None:
    assert await _send(table_service, alice, ["bob"]) == {"success": True, "count": 1}

    result = await _read(table_service, bob)
    assert result["success"] is True
    [message] = result["messages"]
    assert message["content"] == {"text": "hi"}
    assert message["read"] is False
    assert isinstance(message["id"], int)


@pytest.mark.asyncio
async def test_no_receivers_regardless_of_signature(set_service: InboxService, alice) -> None:
    body = _body({"sender": "alice", "receivers": [], "content": {"text": "hi"}})
    assert await set_service.send(body, alice.sign(body)) == {"success": False, "error": "No receivers"}
    assert await set_service.send(body, "garbage") == {"success": False, "error": "No receivers"}
    assert await set_service.send(body, None) == {"success": False, "error": "No receivers"}


@pytest.mark.asyncio
async def test_blank_receiver_is_rejected(set_service: InboxService, alice, fake_redis) -> None:
    result = await _send(set_service, alice, ["bob", ""])
    assert result == {"success": False, "error": "Empty receiver"}
    assert fake_redis.scard("inbox:bob") == 0


@pytest.mark.asyncio
async def test_empty_content_is_rejected(set_service: InboxService, alice, fake_redis) -> None:
    result = await _send(set_service, alice, ["bob"], content={})
    assert result == {"success": False, "error": "Empty content"}
    assert fake_redis.scard("inbox:bob") == 0


@pytest.mark.asyncio
async def test_malformed_body_is_rejected(set_service: InboxService) -> None:
    result = await set_service.send(b"{not json", "sig")
    assert result["success"] is False
    assert result["error"].startswith("Invalid request")


@pytest.mark.asyncio
async def test_empty_body_is_rejected(set_service: InboxService) -> None:
    result = await set_service.read(b"", "sig")
    assert result == {"success": False, "error": "Could not read the body of the request"}


@pytest.mark.asyncio
async def test_missing_sender_is_rejected(set_service: InboxService) -> None:
    result = await set_service.send(_body({"receivers": ["bob"], "content": {"a": 1}}), "sig")
    assert result["success"] is False
    assert "sender" in result["error"]


@pytest.mark.asyncio
async def test_bad_signature_sends_nothing(set_service: InboxService, alice, bob, fake_redis) -> None:
    body = _body({"sender": "alice", "receivers": ["bob"], "content": {"text": "hi"}})
    result = await set_service.send(body, bob.sign(body))
    assert result == {"success": False, "error": "Invalid signature"}
    assert fake_redis.scard("inbox:bob") == 0


@pytest.mark.asyncio
async def test_wrong_key_read_does_not_consume(set_service: InboxService, alice, bob, carol) -> None:
    await _send(set_service, alice, ["bob"])

    denied = await _read(set_service, bob, signer=carol)
    assert denied == {"success": False, "error": "Invalid signature"}

    allowed = await _read(set_service, bob)
    assert allowed["messages"] == [{"text": "hi"}]


@pytest.mark.asyncio
async def test_unknown_sender_is_denied(set_service: InboxService, fake_redis) -> None:
    body = _body({"sender": "mallory", "receivers": ["bob"], "content": {"text": "hi"}})
    result = await set_service.send(body, "sig")
    assert result == {"success": False, "error": "No public key found for mallory"}
    assert fake_redis.scard("inbox:bob") == 0


@pytest.mark.asyncio
async def test_store_untouched_when_auth_fails(
    table_service: InboxService, table_store: SqlTableStore, alice, mocker
) -> None:
    spies = [
        mocker.spy(table_store, name)
        for name in ("deliver", "read", "set_read", "count_unread", "delete")
    ]
    calls = [
        (table_service.send, {"sender": "alice", "receivers": ["bob"], "content": {"a": 1}}),
        (table_service.read, {"receiver": "bob"}),
        (table_service.set_read, {"receiver": "bob", "message_id": 1, "read": True}),
        (table_service.count_unread, {"receiver": "bob"}),
        (table_service.delete, {"receiver": "bob", "message_id": 1}),
    ]
    for operation, payload in calls:
        body = _body(payload)
        # Well-formed but not a signature by anyone.
        result = await operation(body, "00" * 64)
        assert result["success"] is False
    for spy in spies:
        spy.assert_not_called()


@pytest.mark.asyncio
async def test_partial_fan_out_still_succeeds(set_service: InboxService, alice, fake_redis) -> None:
    fake_redis.failing_keys.add("inbox:carol")
    result = await _send(set_service, alice, ["bob", "carol"])
    assert result == {"success": True, "count": 1}


@pytest.mark.asyncio
async def test_zero_deliveries_is_still_success(set_service: InboxService, alice, fake_redis) -> None:
    fake_redis.failing_keys.update({"inbox:bob", "inbox:carol"})
    result = await _send(set_service, alice, ["bob", "carol"])
    assert result == {"success": True, "count": 0}


@pytest.mark.asyncio
async def test_duplicate_receivers_receive_once(set_service: InboxService, alice, fake_redis) -> None:
    result = await _send(set_service, alice, ["bob", "bob"])
    assert result == {"success": True, "count": 1}
    assert fake_redis.scard("inbox:bob") == 1


@pytest.mark.asyncio
async def test_delivery_outcomes_are_opt_in(set_store: RedisSetStore, gate, alice, fake_redis) -> None:
    fake_redis.failing_keys.add("inbox:carol")
    service = InboxService(set_store, gate, expose_delivery_outcomes=True)
    result = await _send(service, alice, ["bob", "carol"])
    assert result["count"] == 1
    assert [(item["receiver"], item["delivered"]) for item in result["outcomes"]] == [
        ("bob", True),
        ("carol", False),
    ]


@pytest.mark.asyncio
async def test_table_store_read_state_flow(table_service: InboxService, alice, bob) -> None:
    for _ in range(3):
        await _send(table_service, alice, ["bob"])
    messages = (await _read(table_service, bob))["messages"]

    body = _body({"receiver": "bob", "message_id": messages[0]["id"], "read": True})
    assert await table_service.set_read(body, bob.sign(body)) == {"success": True}
    assert await table_service.set_read(body, bob.sign(body)) == {"success": True}

    body = _body({"receiver": "bob"})
    assert await table_service.count_unread(body, bob.sign(body)) == {"success": True, "count": 2}

    unread = (await _read(table_service, bob, only_unread=True))["messages"]
    assert [message["id"] for message in unread] == [messages[1]["id"], messages[2]["id"]]


@pytest.mark.asyncio
async def test_table_store_delete_flow(table_service: InboxService, alice, bob) -> None:
    await _send(table_service, alice, ["bob"])
    [message] = (await _read(table_service, bob))["messages"]

    body = _body({"receiver": "bob", "message_id": message["id"]})
    assert await table_service.delete(body, bob.sign(body)) == {"success": True}
    assert await table_service.delete(body, bob.sign(body)) == {
        "success": False,
        "error": "Message not found",
    }


@pytest.mark.asyncio
async def test_unread_request_is_rejected(table_service: InboxService, bob) -> None:
    body = _body({"receiver": "bob", "message_id": 1, "read": False})
    result = await table_service.set_read(body, bob.sign(body))
    assert result == {"success": False, "error": "Messages cannot be marked unread"}


@pytest.mark.asyncio
async def test_set_store_rejects_addressed_operations(set_service: InboxService, bob) -> None:
    for operation, payload in (
        (set_service.set_read, {"receiver": "bob", "message_id": 1}),
        (set_service.delete, {"receiver": "bob", "message_id": 1}),
    ):
        body = _body(payload)
        result = await operation(body, bob.sign(body))
        assert result["success"] is False
        assert "not supported by the set store" in result["error"]


@pytest.mark.asyncio
async def test_count_unread_set_store(set_service: InboxService, alice, bob) -> None:
    await _send(set_service, alice, ["bob"], content={"n": 1})
    await _send(set_service, alice, ["bob"], content={"n": 2})
    body = _body({"receiver": "bob"})
    assert await set_service.count_unread(body, bob.sign(body)) == {"success": True, "count": 2}
    # Counting is read-only.
    assert await set_service.count_unread(body, bob.sign(body)) == {"success": True, "count": 2}


@pytest.mark.asyncio
async def test_close_releases_store_and_gate(set_service: InboxService, fake_redis) -> None:
    await set_service.close()
    assert fake_redis.closed is True
