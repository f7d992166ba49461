from datetime import datetime, timedelta

from conftest import auth, create_startup, create_user
from pitchmatch.api import messaging
from pitchmatch.database.models import Message


def _send(client, sender, recipient, content="Hello there", startup_id=None):
    payload = {"recipient_id": recipient, "content": content}
    if startup_id:
        payload["startup_id"] = startup_id
    return client.post("/api/messages", json=payload, headers=auth(sender))


def test_send_message_notifies_recipient(client, founder, investor, monkeypatch):
    calls = []
    monkeypatch.setattr(messaging, "notify_new_message", lambda *args: calls.append(args))
    startup_id = create_startup(founder)

    response = _send(client, investor, founder, "Loved the deck", startup_id)
    assert response.status_code == 201
    body = response.json()
    assert body["sender_id"] == investor
    assert body["recipient_id"] == founder
    assert body["startup_id"] == startup_id
    assert body["read"] is False
    assert calls == [(founder, investor, body["id"], startup_id)]


def test_message_content_is_stripped_of_markup(client, founder, investor):
    response = _send(client, investor, founder, "<b>Hi</b> <img src=x onerror=alert(1)>there")
    assert response.status_code == 201
    assert response.json()["content"] == "Hi there"


def test_message_rejects_empty_content(client, founder, investor):
    assert _send(client, investor, founder, "").status_code == 422
    assert _send(client, investor, founder, "<p></p>").status_code == 400


def test_message_rejects_self_and_unknown_recipients(client, founder):
    assert _send(client, founder, founder).status_code == 400
    assert _send(client, founder, "ghost").status_code == 404


def test_message_rejects_unknown_startup(client, founder, investor):
    response = _send(client, investor, founder, startup_id="no-such-startup")
    assert response.status_code == 404


def test_list_messages_includes_both_parties(client, founder, investor):
    _send(client, investor, founder, "First")
    _send(client, founder, investor, "Reply")

    response = client.get("/api/messages", headers=auth(founder))
    assert response.status_code == 200
    messages = response.json()
    assert len(messages) == 2
    for message in messages:
        assert {message["sender"]["id"], message["recipient"]["id"]} == {founder, investor}


def test_conversation_is_chronological_and_scoped(client, founder, investor, db):
    other = create_user("investor-2", "investor")
    startup_id = create_startup(founder)

    _send(client, investor, founder, "About the startup", startup_id)
    _send(client, founder, investor, "Sure, ask away")
    _send(client, other, founder, "Unrelated")

    # pin creation times so ordering does not depend on clock resolution
    base = datetime.utcnow()
    for offset, content in enumerate(["About the startup", "Sure, ask away"]):
        db.query(Message).filter(Message.content == content).update(
            {"created_at": base + timedelta(seconds=offset)}
        )
    db.commit()

    conversation = client.get(f"/api/messages/conversation/{investor}", headers=auth(founder)).json()
    assert [m["content"] for m in conversation] == ["About the startup", "Sure, ask away"]

    scoped = client.get(
        f"/api/messages/conversation/{investor}",
        params={"startup_id": startup_id},
        headers=auth(founder),
    ).json()
    assert [m["content"] for m in scoped] == ["About the startup"]


def test_unread_count_and_mark_read(client, founder, investor):
    first = _send(client, investor, founder, "One").json()
    _send(client, investor, founder, "Two")

    assert client.get("/api/messages/unread-count", headers=auth(founder)).json() == {"count": 2}
    assert client.get("/api/messages/unread-count", headers=auth(investor)).json() == {"count": 0}

    forbidden = client.patch(f"/api/messages/{first['id']}/read", headers=auth(investor))
    assert forbidden.status_code == 403

    marked = client.patch(f"/api/messages/{first['id']}/read", headers=auth(founder))
    assert marked.status_code == 200
    assert client.get("/api/messages/unread-count", headers=auth(founder)).json() == {"count": 1}


def test_mark_read_unknown_message(client, founder):
    assert client.patch("/api/messages/missing/read", headers=auth(founder)).status_code == 404


def test_message_text_is_stored_as_typed(client, founder, investor):
    sent = _send(client, investor, founder, "valuation < 5M & growing")
    assert sent.status_code == 201
    assert sent.json()["content"] == "valuation < 5M & growing"

    conversation = client.get(f"/api/messages/conversation/{investor}", headers=auth(founder)).json()
    assert [m["content"] for m in conversation] == ["valuation < 5M & growing"]
