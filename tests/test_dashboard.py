from datetime import datetime, timedelta

from clientpulse.main import app
from clientpulse.models import Client, Deal, Reminder
from clientpulse.services.intelligence import priority_clients, recent_activity, time_ago


def _login(client, email, password):
    response = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert response.status_code == 303


def test_priority_clients_sorted_by_priority_then_deal_count():
    clients = [
        Client(id=1, name="Low", priority="low"),
        Client(id=2, name="Busy medium", priority="medium"),
        Client(id=3, name="High", priority="high"),
        Client(id=4, name="Quiet medium", priority="medium"),
        Client(id=5, name="Unknown", priority="urgent"),
        Client(id=6, name="Second high", priority="high"),
    ]
    deals = [Deal(client_id=2), Deal(client_id=2), Deal(client_id=6), Deal(client_id=None)]

    rows = priority_clients(clients, deals)
    assert [r.client.name for r in rows] == ["Second high", "High", "Busy medium", "Quiet medium", "Unknown"]
    assert rows[0].deals == 1
    assert rows[2].deals == 2


def test_recent_activity_mixes_three_clients_and_three_deals():
    now = datetime(2030, 1, 10, 12, 0)
    clients = [Client(id=i, name=f"C{i}", created_at=now - timedelta(hours=i)) for i in range(1, 5)]
    deals = [
        Deal(id=i, title=f"D{i}", client=clients[0], created_at=now - timedelta(minutes=5 * i)) for i in range(1, 5)
    ]

    items = recent_activity(clients, deals, now=now)
    assert len(items) == 5
    assert [i.id for i in items] == ["client-1", "client-2", "client-3", "deal-1", "deal-2"]
    assert items[0].time == "about 1 hour ago"
    assert items[3].description == "Deal: D1"
    assert items[3].client == "C1"


def test_time_ago_labels():
    now = datetime(2030, 1, 10, 12, 0)
    assert time_ago(now - timedelta(seconds=20), now) == "less than a minute ago"
    assert time_ago(now - timedelta(minutes=1), now) == "1 minute ago"
    assert time_ago(now - timedelta(hours=3), now) == "about 3 hours ago"
    assert time_ago(now - timedelta(days=2), now) == "2 days ago"


def test_root_redirects_anonymous_users_to_login(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert client.get("/dashboard").status_code == 401


def test_dashboard_stats(client):
    _login(client, "owner@test.local", "pass1234")
    assert client.get("/", follow_redirects=False).headers["location"] == "/dashboard"

    db = app.state.testing_sessionmaker()
    try:
        acme = Client(owner_user_id=1, name="Acme Buyer", company="Acme", source="Referral", priority="high")
        other = Client(owner_user_id=2, name="Hidden Buyer", company="Else", source="Web")
        db.add_all([acme, other])
        db.flush()
        db.add_all(
            [
                Deal(owner_user_id=1, client_id=acme.id, title="Open one", amount=1500, stage="Proposal"),
                Deal(owner_user_id=1, client_id=acme.id, title="Won one", amount=9000, stage="Closed"),
                Deal(owner_user_id=2, client_id=other.id, title="Not mine", amount=77777, stage="Lead"),
                Reminder(owner_user_id=1, title="Call", due_date=datetime(2030, 1, 1).date(), type="call"),
                Reminder(owner_user_id=1, title="Done", due_date=datetime(2030, 1, 1).date(), type="call", completed=True),
            ]
        )
        db.commit()
    finally:
        db.close()

    page = client.get("/dashboard")
    assert page.status_code == 200
    assert "$1,500.00" in page.text
    assert "Acme Buyer" in page.text
    assert "Hidden Buyer" not in page.text
    assert "77,777" not in page.text

    events = client.get("/events")
    assert events.status_code == 200
