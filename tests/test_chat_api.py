import uuid

import pytest

from tests.conftest import body


@pytest.fixture
def conversation(api, shopper, supplier):
    response = api.post("/chat/conversation/start", {"participant_id": supplier["id"]}, token=shopper["token"])
    assert response.status_code == 201
    return body(response)["conversation"]


def _send(api, user, conversation_id, text):
    return api.post("/chat/send", {"conversation_id": conversation_id, "text": text}, token=user["token"])


def test_start_conversation_is_idempotent(api, shopper, supplier, conversation):
    assert conversation["participant"]["username"] == "acme"
    assert conversation["participant"]["is_online"] is False
    assert conversation["last_message"] is None

    again = api.post("/chat/conversation/start", {"participant_id": shopper["id"]}, token=supplier["token"])
    assert again.status_code == 200
    assert body(again)["conversation"]["id"] == conversation["id"]


def test_start_conversation_errors(api, shopper):
    assert api.post("/chat/conversation/start", {}, token=shopper["token"]).json() == {"error": "Participant ID is required"}
    yourself = api.post("/chat/conversation/start", {"participant_id": shopper["id"]}, token=shopper["token"])
    assert yourself.json() == {"error": "Cannot start conversation with yourself"}
    missing = api.post("/chat/conversation/start", {"participant_id": str(uuid.uuid4())}, token=shopper["token"])
    assert missing.status_code == 404
    assert missing.json() == {"error": "Participant not found"}
    assert api.get("/chat/conversations").status_code == 401


def test_send_and_read_messages(api, shopper, supplier, conversation):
    sent = _send(api, shopper, conversation["id"], "Is the lamp in stock?")
    assert sent.status_code == 201
    message = body(sent)["sent_message"]
    assert message["text"] == "Is the lamp in stock?"
    assert message["sender"]["username"] == "alice"
    _send(api, shopper, conversation["id"], "Also in blue?")

    inbox = body(api.get("/chat/conversations", token=supplier["token"]))["conversations"]
    assert inbox[0]["id"] == conversation["id"]
    assert inbox[0]["unread_count"] == 2
    assert inbox[0]["last_message"]["text"] == "Also in blue?"
    assert inbox[0]["participants"][0]["username"] == "alice"

    page = body(api.post("/chat/messages", {"conversation_id": conversation["id"], "limit": 1}, token=supplier["token"]))
    assert [m["text"] for m in page["messages"]] == ["Also in blue?"]
    assert page["has_more"] is True
    inbox = body(api.get("/chat/conversations", token=supplier["token"]))["conversations"]
    assert inbox[0]["unread_count"] == 0


def test_mark_read_counts_messages(api, shopper, supplier, conversation):
    _send(api, shopper, conversation["id"], "one")
    _send(api, shopper, conversation["id"], "two")
    marked = body(api.post("/chat/mark-read", {"conversation_id": conversation["id"]}, token=supplier["token"]))
    assert marked["updated_count"] == 2
    again = body(api.post("/chat/mark-read", {"conversation_id": conversation["id"]}, token=supplier["token"]))
    assert again["updated_count"] == 0


def test_strangers_cannot_use_a_conversation(api, other_supplier, shopper, conversation):
    response = api.post("/chat/messages", {"conversation_id": conversation["id"]}, token=other_supplier["token"])
    assert response.status_code == 404
    assert response.json() == {"error": "Conversation not found"}
    assert _send(api, other_supplier, conversation["id"], "hi").status_code == 404
    assert _send(api, shopper, conversation["id"], "").json() == {"error": "Conversation ID and message text are required"}


def test_user_status(api, shopper, supplier, conversation):
    unknown = str(uuid.uuid4())
    statuses = body(api.post("/chat/status", {"user_ids": [supplier["id"], unknown]}, token=shopper["token"]))["statuses"]
    assert statuses[supplier["id"]]["is_online"] is False
    assert statuses[unknown] == {"is_online": False, "last_seen": None}
    assert api.post("/chat/status", {"user_ids": []}, token=shopper["token"]).json() == {"error": "User IDs array is required"}


def test_typing_over_rest(api, shopper, conversation):
    started = body(api.post("/chat/typing", {"conversation_id": conversation["id"], "is_typing": True}, token=shopper["token"]))
    assert started["message"] == "Typing status started"
    stopped = body(api.post("/chat/typing", {"conversation_id": conversation["id"]}, token=shopper["token"]))
    assert stopped["message"] == "Typing status stopped"


def test_notifications(api, shopper, supplier, conversation):
    _send(api, shopper, conversation["id"], "x" * 60)
    feed = body(api.get("/chat/notifications", token=supplier["token"]))
    assert feed["unread_count"] == 1
    notification = feed["notifications"][0]
    assert notification["type"] == "message"
    assert notification["sender"]["username"] == "alice"
    assert notification["conversation_id"] == conversation["id"]
    assert len(notification["message"]) < 60

    marked = body(api.post("/chat/notifications/mark-read", {"notification_ids": [notification["id"]]}, token=supplier["token"]))
    assert marked["updated_count"] == 1
    assert body(api.get("/chat/notifications", token=supplier["token"]))["unread_count"] == 0
    assert api.post("/chat/notifications/mark-read", {}, token=supplier["token"]).json() == {
        "error": "Notification IDs array is required"
    }


def test_unread_notifications_count(api, shopper, supplier, conversation):
    count = body(api.get("/account/unread_notifications_count", token=supplier["token"]))
    assert count == {"message": "Unread count retrieved successfully", "unread_count": 0}
    _send(api, shopper, conversation["id"], "First")
    _send(api, shopper, conversation["id"], "Second")
    assert body(api.get("/account/unread_notifications_count", token=supplier["token"]))["unread_count"] == 2
    assert body(api.get("/account/unread_notifications_count", token=shopper["token"]))["unread_count"] == 0
    assert api.get("/account/unread_notifications_count").status_code == 401


def test_search_users(api, shopper, supplier):
    found = body(api.post("/chat/search-users", {"query": "ac"}, token=shopper["token"]))["users"]
    assert [u["username"] for u in found] == ["acme"]
    assert body(api.post("/chat/search-users", {"query": "alice"}, token=shopper["token"]))["users"] == []
    assert api.post("/chat/search-users", {"query": " "}, token=shopper["token"]).json() == {"error": "Search query is required"}
