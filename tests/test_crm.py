from datetime import date

import pytest

from clientpulse.main import app
from clientpulse.models import AuditLog, Client, ClientPrioritization, Deal, Reminder
from clientpulse.routes.clients import filter_clients
from clientpulse.routes.deals import parse_amount


def _login(client, email, password):
    response = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert response.status_code == 303


def _create_client(client, **overrides):
    data = {"name": "Dana Reyes", "company": "Acme Logistics", "source": "Referral", "email": "dana@acme.example"}
    data.update(overrides)
    return client.post("/clients", data=data, follow_redirects=False)


def test_client_create_list_and_search(client):
    _login(client, "owner@test.local", "pass1234")
    assert _create_client(client).status_code == 303
    assert _create_client(client, name="Sam Okafor", company="Bolt Fitness", email="sam@bolt.example").status_code == 303

    page = client.get("/clients")
    assert page.status_code == 200
    assert "Dana Reyes" in page.text and "Sam Okafor" in page.text

    filtered = client.get("/clients?q=BOLT")
    assert "Sam Okafor" in filtered.text
    assert "Dana Reyes" not in filtered.text

    by_email = client.get("/clients?q=acme.example")
    assert "Dana Reyes" in by_email.text


def test_client_requires_name_company_source(client):
    _login(client, "owner@test.local", "pass1234")
    response = _create_client(client, source="  ")
    assert response.status_code == 400
    assert response.json()["detail"] == "Please fill in Name, Company, and Source."

    bad_priority = _create_client(client, priority="urgent")
    assert bad_priority.status_code == 400


def test_filter_clients_matches_name_email_company():
    clients = [
        Client(name="Dana", company="Acme", source="x", email="dana@acme.example"),
        Client(name="Sam", company="Bolt", source="x", email=None),
    ]
    assert [c.name for c in filter_clients(clients, "")] == ["Dana", "Sam"]
    assert [c.name for c in filter_clients(clients, "bolt")] == ["Sam"]
    assert [c.name for c in filter_clients(clients, "DANA@")] == ["Dana"]
    assert filter_clients(clients, "zzz") == []


def test_client_detail_update_and_delete(client):
    _login(client, "owner@test.local", "pass1234")
    _create_client(client)
    db = app.state.testing_sessionmaker()
    try:
        client_id = db.query(Client).filter(Client.name == "Dana Reyes").one().id
    finally:
        db.close()

    client.post("/deals", data={"title": "Fleet rollout", "amount": "$4,000", "client_id": str(client_id)}, follow_redirects=False)
    client.post("/prioritization", data={"client_id": str(client_id), "interaction_frequency": "1-2times"}, follow_redirects=False)

    detail = client.get(f"/clients/{client_id}")
    assert detail.status_code == 200
    assert "Fleet rollout" in detail.text
    assert "Calculated priority" in detail.text

    updated = client.post(
        f"/clients/{client_id}",
        data={"name": "Dana R.", "company": "Acme Logistics", "source": "Referral", "priority": "high"},
        follow_redirects=False,
    )
    assert updated.status_code == 303

    deleted = client.post(f"/clients/{client_id}/delete", follow_redirects=False)
    assert deleted.status_code == 303

    db = app.state.testing_sessionmaker()
    try:
        assert db.query(Client).count() == 0
        assert db.query(Deal).count() == 0
        assert db.query(ClientPrioritization).count() == 0
    finally:
        db.close()


def test_clients_are_scoped_to_their_owner(client):
    _login(client, "owner@test.local", "pass1234")
    _create_client(client)
    db = app.state.testing_sessionmaker()
    try:
        client_id = db.query(Client).one().id
    finally:
        db.close()

    _login(client, "viewer@test.local", "pass1234")
    assert "Dana Reyes" not in client.get("/clients").text
    assert client.get(f"/clients/{client_id}").status_code == 404
    assert client.post(f"/clients/{client_id}/delete", follow_redirects=False).status_code == 404


@pytest.mark.parametrize(
    "raw,expected",
    [("1200", 1200.0), ("$1,200.50", 1200.5), (" 99.9 ", 99.9), ("abc", 0.0), ("12abc", 12.0), ("", 0.0)],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_deal_pipeline_and_stage_move(client):
    _login(client, "owner@test.local", "pass1234")
    response = client.post("/deals", data={"title": "Member portal", "amount": "$7,200"}, follow_redirects=False)
    assert response.status_code == 303

    db = app.state.testing_sessionmaker()
    try:
        deal = db.query(Deal).one()
        assert deal.stage == "Lead"
        assert deal.amount == 7200.0
        assert deal.client_id is None
        deal_id = deal.id
    finally:
        db.close()

    board = client.get("/deals")
    assert board.status_code == 200
    assert "Member portal" in board.text
    assert "$7,200.00" in board.text

    moved = client.post(f"/deals/{deal_id}/stage", data={"stage": "Negotiation"}, follow_redirects=False)
    assert moved.status_code == 303
    assert client.post(f"/deals/{deal_id}/stage", data={"stage": "Won"}, follow_redirects=False).status_code == 400

    db = app.state.testing_sessionmaker()
    try:
        assert db.query(Deal).one().stage == "Negotiation"
        audit = db.query(AuditLog).filter(AuditLog.entity_type == "deal").one()
        assert audit.action == "stage_changed"
    finally:
        db.close()


def test_deal_validation_and_unknown_client(client):
    _login(client, "owner@test.local", "pass1234")
    missing = client.post("/deals", data={"title": "", "amount": "100"}, follow_redirects=False)
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Please fill in Deal Name and Deal Amount."

    unknown = client.post("/deals", data={"title": "X", "amount": "100", "client_id": "999"}, follow_redirects=False)
    assert unknown.status_code == 404


def test_deal_update_and_delete(client):
    _login(client, "owner@test.local", "pass1234")
    client.post("/deals", data={"title": "Audit", "amount": "500"}, follow_redirects=False)
    db = app.state.testing_sessionmaker()
    try:
        deal_id = db.query(Deal).one().id
    finally:
        db.close()

    assert client.get(f"/deals/{deal_id}").status_code == 200
    updated = client.post(
        f"/deals/{deal_id}",
        data={"title": "Security audit", "amount": "750", "stage": "Proposal", "priority": "high"},
        follow_redirects=False,
    )
    assert updated.status_code == 303

    db = app.state.testing_sessionmaker()
    try:
        deal = db.query(Deal).one()
        assert (deal.title, deal.amount, deal.stage, deal.priority) == ("Security audit", 750.0, "Proposal", "high")
    finally:
        db.close()

    assert client.post(f"/deals/{deal_id}/delete", follow_redirects=False).status_code == 303
    db = app.state.testing_sessionmaker()
    try:
        assert db.query(Deal).count() == 0
    finally:
        db.close()


def test_reminder_create_list_and_complete(client):
    _login(client, "owner@test.local", "pass1234")
    _create_client(client)
    db = app.state.testing_sessionmaker()
    try:
        client_id = db.query(Client).one().id
    finally:
        db.close()

    for title, due in (("Later call", "2030-05-02"), ("Send proposal", "2030-05-01")):
        response = client.post(
            "/reminders",
            data={"title": title, "type": "call", "due_date": due, "due_time": "09:30", "client_id": str(client_id)},
            follow_redirects=False,
        )
        assert response.status_code == 303

    client.get("/reminders")
    page = client.get("/reminders")
    assert page.status_code == 200
    assert page.text.index("Send proposal") < page.text.index("Later call")

    db = app.state.testing_sessionmaker()
    try:
        reminder = db.query(Reminder).filter(Reminder.title == "Send proposal").one()
        assert reminder.related_to == "Dana Reyes"
        assert reminder.due_date == date(2030, 5, 1)
        reminder_id = reminder.id
    finally:
        db.close()

    done = client.post(f"/reminders/{reminder_id}", data={"completed": "true"}, follow_redirects=False)
    assert done.status_code == 303

    db = app.state.testing_sessionmaker()
    try:
        reminder = db.query(Reminder).filter(Reminder.id == reminder_id).one()
        assert reminder.completed is True
        assert reminder.title == "Send proposal"
    finally:
        db.close()


def test_reminder_requires_title_type_date_time(client):
    _login(client, "owner@test.local", "pass1234")
    response = client.post("/reminders", data={"title": "Call", "type": "call", "due_date": "2030-01-01"}, follow_redirects=False)
    assert response.status_code == 400
    assert response.json()["detail"] == "Please fill in Title, Type, Date and Time."

    bad_date = client.post(
        "/reminders",
        data={"title": "Call", "type": "call", "due_date": "tomorrow", "due_time": "10:00"},
        follow_redirects=False,
    )
    assert bad_date.status_code == 400
