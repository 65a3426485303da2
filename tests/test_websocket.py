from contextlib import ExitStack
from datetime import timedelta

import pytest
from starlette.websockets import WebSocketDisconnect

from marketplace.api.presence import prune_idle_connections, registry
from marketplace.database.helpers.timeutils import utcnow
from tests.conftest import body


@pytest.fixture
def conversation(api, shopper, supplier):
    response = api.post("/chat/conversation/start", {"participant_id": supplier["id"]}, token=shopper["token"])
    return body(response)["conversation"]


def _connect(client, user):
    return client.websocket_connect(f"/ws?token={user['token']}")


@pytest.mark.parametrize("path", ["/ws", "/ws?token=not-a-jwt"])
def test_socket_requires_a_valid_token(client, path):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(path) as ws:
            ws.receive_json()
    assert exc.value.code == 1008


def test_connected_event_and_ping(client, shopper, conversation):
    with _connect(client, shopper) as ws:
        connected = ws.receive_json()
        assert connected == {"event": "connected", "data": {"user_id": shopper["id"], "conversations": [conversation["id"]]}}
        ws.send_json({"event": "ping"})
        assert ws.receive_json() == {"event": "pong", "data": {}}


def test_bad_frames_get_error_events(client, shopper):
    with _connect(client, shopper) as ws:
        ws.receive_json()
        ws.send_text("not json")
        assert ws.receive_json() == {"event": "error", "data": {"message": "Malformed event"}}
        ws.send_json({"event": "dance"})
        assert ws.receive_json() == {"event": "error", "data": {"message": "Unknown event: dance"}}
        ws.send_json({"event": "typing", "data": {"is_typing": True}})
        assert ws.receive_json() == {"event": "error", "data": {"message": "Conversation ID is required"}}


def test_presence_typing_and_messages(client, api, shopper, supplier, conversation):
    with _connect(client, shopper) as alice:
        alice.receive_json()
        with _connect(client, supplier) as acme:
            acme.receive_json()
            assert alice.receive_json() == {"event": "userStatusChanged", "data": {"user_id": supplier["id"], "is_online": True}}

            status = body(api.post("/chat/status", {"user_ids": [supplier["id"]]}, token=shopper["token"]))["statuses"]
            assert status[supplier["id"]]["is_online"] is True

            alice.send_json({"event": "typing", "data": {"conversation_id": conversation["id"], "is_typing": True}})
            typing = acme.receive_json()
            assert typing["event"] == "typingStatus"
            assert typing["data"] == {"conversation_id": conversation["id"], "user_id": shopper["id"], "username": "alice", "is_typing": True}

            api.post("/chat/send", {"conversation_id": conversation["id"], "text": "hello"}, token=shopper["token"])
            delivered = acme.receive_json()
            assert delivered["event"] == "newMessage"
            assert delivered["data"]["message"]["text"] == "hello"
            assert delivered["data"]["conversation"]["unread_count"] == 1

            acme.send_json({"event": "markRead", "data": {"conversation_id": conversation["id"]}})
            read = alice.receive_json()
            assert read == {"event": "messagesRead", "data": {"conversation_id": conversation["id"], "reader": {"id": supplier["id"], "username": "acme"}}}

        assert alice.receive_json() == {"event": "userStatusChanged", "data": {"user_id": supplier["id"], "is_online": False}}


def test_viewing_requires_membership(client, other_supplier, conversation):
    with _connect(client, other_supplier) as ws:
        ws.receive_json()
        ws.send_json({"event": "viewingConversation", "data": {"conversation_id": conversation["id"]}})
        assert ws.receive_json() == {"event": "error", "data": {"message": "Not a participant of this conversation"}}


def test_websocket_status(client, shopper):
    assert client.get("/api/websocket-status").json() == {"connected_users": 0, "users": []}
    with _connect(client, shopper) as ws:
        ws.receive_json()
        status = client.get("/api/websocket-status").json()
        assert status["connected_users"] == 1
        assert status["users"][0]["username"] == "alice"


def test_idle_socket_is_pruned(client, api, shopper, supplier, conversation):
    with _connect(client, shopper) as alice:
        alice.receive_json()
        with _connect(client, supplier) as acme:
            acme.receive_json()
            alice.receive_json()

            registry.get(supplier["id"]).last_activity = utcnow() - timedelta(hours=1)
            assert client.portal.call(prune_idle_connections) == [supplier["id"]]

            with pytest.raises(WebSocketDisconnect) as exc:
                acme.receive_json()
            assert exc.value.code == 1000
            assert alice.receive_json() == {"event": "userStatusChanged", "data": {"user_id": supplier["id"], "is_online": False}}

        alice.send_json({"event": "ping"})
        assert alice.receive_json() == {"event": "pong", "data": {}}
        status = body(api.post("/chat/status", {"user_ids": [supplier["id"]]}, token=shopper["token"]))["statuses"]
        assert status[supplier["id"]]["is_online"] is False
        assert client.get("/api/websocket-status").json()["connected_users"] == 1


def test_join_and_view_a_conversation(client, api, shopper, supplier, conversation):
    with _connect(client, shopper) as alice:
        alice.receive_json()
        with _connect(client, supplier) as acme:
            acme.receive_json()
            alice.receive_json()
            api.post("/chat/send", {"conversation_id": conversation["id"], "text": "are you open?"}, token=shopper["token"])
            assert acme.receive_json()["event"] == "newMessage"

            registry.leave(supplier["id"], conversation["id"])
            acme.send_json({"event": "joinConversation", "data": {"conversation_id": conversation["id"]}})
            acme.send_json({"event": "ping"})
            assert acme.receive_json() == {"event": "pong", "data": {}}
            assert supplier["id"] in registry.room_members(conversation["id"])
            rows = body(api.get("/chat/conversations", token=supplier["token"]))["conversations"]
            assert rows[0]["unread_count"] == 1

            registry.leave(supplier["id"], conversation["id"])
            acme.send_json({"event": "viewingConversation", "data": {"conversation_id": conversation["id"]}})
            read = alice.receive_json()
            assert read == {"event": "messagesRead", "data": {"conversation_id": conversation["id"], "reader": {"id": supplier["id"], "username": "acme"}}}
            assert supplier["id"] in registry.room_members(conversation["id"])
            assert registry.get(supplier["id"]).viewing_conversation == conversation["id"]
            rows = body(api.get("/chat/conversations", token=supplier["token"]))["conversations"]
            assert rows[0]["unread_count"] == 0

            acme.send_json({"event": "leaveConversation", "data": {"conversation_id": conversation["id"]}})
            acme.send_json({"event": "ping"})
            acme.receive_json()
            assert registry.get(supplier["id"]).viewing_conversation is None


def test_newer_socket_replaces_the_old_one(client, api, shopper):
    with ExitStack() as stack:
        with _connect(client, shopper) as first:
            first.receive_json()
            second = stack.enter_context(_connect(client, shopper))
            second.receive_json()
            assert client.get("/api/websocket-status").json()["connected_users"] == 1

        assert client.get("/api/websocket-status").json()["connected_users"] == 1
        second.send_json({"event": "ping"})
        assert second.receive_json() == {"event": "pong", "data": {}}
        status = body(api.post("/chat/status", {"user_ids": [shopper["id"]]}, token=shopper["token"]))["statuses"]
        assert status[shopper["id"]]["is_online"] is True

    assert client.get("/api/websocket-status").json()["connected_users"] == 0
