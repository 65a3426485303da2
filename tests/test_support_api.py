import re

import pytest

from marketplace.database.core import mailer
from marketplace.database.entities.support_message import SupportMessage
from marketplace.database.helpers.transactionManagement import SessionFactory
from tests.conftest import body

CONTACT = {"fullname": "Alice Moreau", "email": "alice@example.com", "subject": "Wholesale", "message": "Do you ship to Lyon?"}


@pytest.fixture
def team_inbox(monkeypatch):
    sent = {"notifications": [], "receipts": []}
    monkeypatch.setattr(mailer, "send_support_notification", lambda **kw: sent["notifications"].append(kw))
    monkeypatch.setattr(mailer, "send_support_receipt", lambda **kw: sent["receipts"].append(kw))
    return sent


def _stored():
    session = SessionFactory()
    try:
        return session.query(SupportMessage).order_by(SupportMessage.created_at).all()
    finally:
        session.close()


def test_contact_message_anonymous_and_signed_in(api, shopper, team_inbox):
    response = api.post("/account/contact", CONTACT)
    assert response.status_code == 201
    assert body(response) == {"message": "Your message has been sent successfully. We will contact you soon."}
    api.post("/account/contact", CONTACT, token=shopper["token"])

    messages = _stored()
    assert [m.kind for m in messages] == ["contact", "contact"]
    assert messages[0].user_id is None
    assert str(messages[1].user_id) == shopper["id"]
    assert messages[0].status == "new"
    assert messages[0].ticket_number is None

    assert team_inbox["notifications"][0]["kind"] == "contact"
    assert team_inbox["receipts"][0]["email"] == "alice@example.com"


def test_contact_message_validation(api):
    missing = api.post("/account/contact", dict(CONTACT, message=""))
    assert missing.status_code == 400
    assert api.post("/account/contact", dict(CONTACT, email="nowhere")).status_code == 400
    assert _stored() == []


def test_feedback(api, team_inbox):
    payload = {"fullname": "Alice", "email": "alice@example.com", "feedback": "Great lamps", "feedback_type": "product", "rating": 5}
    response = api.post("/account/feedback", payload)
    assert response.status_code == 201
    assert body(response) == {"message": "Thank you for your feedback!"}
    stored = _stored()[0]
    assert (stored.kind, stored.feedback_type, stored.rating) == ("feedback", "product", 5)

    assert api.post("/account/feedback", dict(payload, rating=6)).status_code == 400
    wrong_type = api.post("/account/feedback", dict(payload, feedback_type="rant"))
    assert wrong_type.json() == {"error": "Invalid feedback type: rant"}


def test_support_request_gets_a_ticket(api, team_inbox):
    response = api.post("/account/support", dict(CONTACT, support_category="order"))
    assert response.status_code == 201
    data = body(response)
    assert re.fullmatch(r"SUP-\d{8}-\d{4}", data["ticket_number"])
    assert data["ticket_number"] in data["message"]

    stored = _stored()[0]
    assert (stored.kind, stored.category, stored.status) == ("support", "order", "open")
    assert team_inbox["receipts"][0]["ticket_number"] == data["ticket_number"]

    invalid = api.post("/account/support", dict(CONTACT, support_category="gossip"))
    assert invalid.status_code == 400
    assert invalid.json() == {"error": "Invalid support category: gossip"}


def test_failed_email_does_not_fail_the_submission(api, monkeypatch):
    def _down(**kwargs):
        raise ConnectionError("smtp down")

    monkeypatch.setattr(mailer, "send_support_notification", _down)
    monkeypatch.setattr(mailer, "send_support_receipt", _down)
    response = api.post("/account/support", CONTACT)
    assert response.status_code == 201
    assert len(_stored()) == 1
