from unittest import mock

import pytest
from asgiref.sync import async_to_sync

from chat_relay.realtime.gateway import MISSING_TOKEN
from chat_relay.realtime.gateway import ConnectionState
from chat_relay.realtime.gateway import MissingToken
from chat_relay.realtime.gateway import RelayGateway
from chat_relay.realtime.gateway import extract_token
from chat_relay.realtime.presence import USER_COUNTS_EVENT


def _connect(relay, sid, token):
    return relay.gateway.connect(sid, {}, {"token": token})


class TestExtractToken:
    def test_auth_token(self):
        assert extract_token({}, {"token": "alice"}) == "alice"

    def test_asgi_query_string_fallback(self):
        environ = {"asgi.scope": {"query_string": b"EIO=4&token=bob"}}
        assert extract_token(environ, None) == "bob"

    def test_wsgi_query_string_fallback(self):
        assert extract_token({"QUERY_STRING": "token=carol"}, {}) == "carol"

    def test_auth_wins_over_query(self):
        environ = {"query_string": b"token=bob"}
        assert extract_token(environ, {"token": "alice"}) == "alice"

    @pytest.mark.parametrize(
        ("environ", "auth"),
        [
            ({}, None),
            ({}, {}),
            ({}, {"token": ""}),
            ({}, {"token": "   "}),
            ({}, {"token": 42}),
            ({"query_string": b"token="}, None),
            (None, "alice"),
        ],
    )
    def test_missing(self, environ, auth):
        assert extract_token(environ, auth) is None


def test_attach_registers_handlers(relay, fake_server):
    assert set(fake_server.handlers) == {
        "connect",
        "disconnect",
        "send_message",
        "send_image",
    }
    assert fake_server.handlers["send_image"] == relay.gateway.send_image


def test_connect_without_token_is_refused_before_registry(relay, fake_server):
    async def scenario():
        with pytest.raises(MissingToken) as excinfo:
            await relay.gateway.connect("sid-x", {}, None)
        await fake_server.drain()
        return excinfo.value

    error = async_to_sync(scenario)()

    assert error.error_args == {"message": MISSING_TOKEN}
    assert relay.registry.size() == 0
    assert relay.gateway.state("sid-x") is ConnectionState.CLOSED
    assert fake_server.emitted == []


@pytest.mark.parametrize("token", ["alice", None])
def test_connection_is_pending_while_handshake_is_checked(relay, token):
    seen = []

    def observe(environ, auth):
        seen.append(relay.gateway.state("sid-p"))
        return token

    async def scenario():
        with mock.patch("chat_relay.realtime.gateway.extract_token", observe):
            try:
                await relay.gateway.connect("sid-p", {}, None)
            except MissingToken:
                pass

    async_to_sync(scenario)()

    assert seen == [ConnectionState.PENDING]
    expected = ConnectionState.ADMITTED if token else ConnectionState.CLOSED
    assert relay.gateway.state("sid-p") is expected


def test_refused_connection_never_receives_broadcasts(relay, fake_server):
    async def scenario():
        with pytest.raises(MissingToken):
            await relay.gateway.connect("ghost", {}, {"token": ""})
        await _connect(relay, "a", "alice")
        await relay.gateway.send_message("a", {"text": "hi"})
        await fake_server.drain()
        # Disconnect of a never-admitted sid is a no-op.
        await relay.gateway.disconnect("ghost")
        await fake_server.drain()

    async_to_sync(scenario)()

    assert fake_server.received("ghost") == []
    assert relay.registry.size() == 1


def test_connect_admits_and_broadcasts_counts(relay, fake_server):
    async def scenario():
        await _connect(relay, "a", "alice")
        await fake_server.drain()

    async_to_sync(scenario)()

    assert relay.gateway.state("a") is ConnectionState.ADMITTED
    assert relay.registry.get("a").identity_token == "alice"
    counts = fake_server.received("a", USER_COUNTS_EVENT)
    assert counts[-1].data == {"registered": 2, "online": 1}


def test_alice_bob_presence_scenario(relay, fake_server):
    async def scenario():
        await _connect(relay, "a", "alice")
        await fake_server.drain()
        await _connect(relay, "b", "bob")
        await fake_server.drain()
        for sid in ("a", "b"):
            latest = fake_server.received(sid, USER_COUNTS_EVENT)[-1]
            assert latest.data["online"] == 2

        await relay.gateway.disconnect("a", "client disconnect")
        await fake_server.drain()

    async_to_sync(scenario)()

    assert relay.gateway.state("a") is ConnectionState.CLOSED
    assert relay.registry.size() == 1
    latest_b = fake_server.received("b", USER_COUNTS_EVENT)[-1]
    assert latest_b.data == {"registered": 2, "online": 1}
    # Nothing is delivered to the departed connection after it closed.
    assert fake_server.received("a", USER_COUNTS_EVENT)[-1].data["online"] == 2


def test_disconnect_broadcast_waits_for_delay(fake_server, memory_directory, relay):
    gateway = RelayGateway(
        fake_server,
        relay.registry,
        relay.broadcaster,
        disconnect_delay=0.05,
    )

    async def scenario():
        await gateway.connect("a", {}, {"token": "alice"})
        await gateway.connect("b", {}, {"token": "bob"})
        await fake_server.drain()
        before = len(fake_server.received("b", USER_COUNTS_EVENT))

        await gateway.disconnect("a")
        # Not yet: the rebroadcast is still sleeping.
        assert len(fake_server.received("b", USER_COUNTS_EVENT)) == before
        await fake_server.drain()
        return before

    before = async_to_sync(scenario)()

    after = fake_server.received("b", USER_COUNTS_EVENT)
    assert len(after) == before + 1
    assert after[-1].data["online"] == 1


def test_each_disconnect_triggers_its_own_broadcast(relay, fake_server):
    async def scenario():
        for sid, token in [("a", "alice"), ("b", "bob"), ("c", "carol")]:
            await _connect(relay, sid, token)
        await fake_server.drain()
        fake_server.emitted.clear()

        await relay.gateway.disconnect("a")
        await relay.gateway.disconnect("b")
        await fake_server.drain()

    async_to_sync(scenario)()

    counts = fake_server.received("c", USER_COUNTS_EVENT)
    assert len(counts) == 2
    assert all(e.data["online"] == 1 for e in counts)


def test_disconnect_twice_is_harmless(relay, fake_server):
    async def scenario():
        await _connect(relay, "a", "alice")
        await relay.gateway.disconnect("a")
        await relay.gateway.disconnect("a")
        await fake_server.drain()

    async_to_sync(scenario)()

    assert relay.registry.size() == 0


def test_message_fans_out_to_everyone_but_sender(relay, fake_server):
    payload = {"user": "alice", "text": "hello", "meta": [1, 2, 3]}

    async def scenario():
        for sid, token in [("a", "alice"), ("b", "bob"), ("c", "carol")]:
            await _connect(relay, sid, token)
        await fake_server.drain()
        return await relay.gateway.relay("a", "send_message", payload)

    delivered = async_to_sync(scenario)()

    assert delivered == 2
    assert fake_server.received("a", "receive_message") == []
    for sid in ("b", "c"):
        messages = fake_server.received(sid, "receive_message")
        assert [m.data for m in messages] == [payload]
        assert messages[0].data is payload


def test_image_fans_out_as_receive_image(relay, fake_server):
    async def scenario():
        await _connect(relay, "a", "alice")
        await _connect(relay, "b", "bob")
        await relay.gateway.send_image("b", "https://cdn.example/img.png")
        await fake_server.drain()

    async_to_sync(scenario)()

    assert [e.data for e in fake_server.received("a", "receive_image")] == [
        "https://cdn.example/img.png"
    ]
    assert fake_server.received("b", "receive_image") == []
    assert fake_server.received("a", "receive_message") == []


def test_lone_sender_reaches_nobody(relay, fake_server):
    async def scenario():
        await _connect(relay, "a", "alice")
        await fake_server.drain()
        fake_server.emitted.clear()
        await relay.gateway.send_message("a", "anyone?")

    async_to_sync(scenario)()

    assert fake_server.emitted == []


def test_events_from_unadmitted_sid_are_dropped(relay, fake_server):
    async def scenario():
        await _connect(relay, "a", "alice")
        await fake_server.drain()
        fake_server.emitted.clear()
        return await relay.gateway.relay("intruder", "send_message", "spoof")

    assert async_to_sync(scenario)() == 0
    assert fake_server.emitted == []


def test_presence_failure_does_not_block_admission_or_fan_out(
    relay, fake_server, memory_directory
):
    memory_directory.fail = True

    async def scenario():
        await _connect(relay, "a", "alice")
        await _connect(relay, "b", "bob")
        await relay.gateway.send_message("a", "still works")
        await fake_server.drain()

    async_to_sync(scenario)()

    assert relay.registry.size() == 2
    assert fake_server.received("b", USER_COUNTS_EVENT) == []
    assert [e.data for e in fake_server.received("b", "receive_message")] == [
        "still works"
    ]


def test_reconnect_is_a_fresh_admission(relay, fake_server):
    async def scenario():
        await _connect(relay, "a1", "alice")
        await relay.gateway.disconnect("a1")
        await _connect(relay, "a2", "alice")
        await fake_server.drain()

    async_to_sync(scenario)()

    assert relay.registry.connection_ids() == ["a2"]
    assert relay.gateway.state("a1") is ConnectionState.CLOSED
