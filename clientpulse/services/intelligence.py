import json
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from clientpulse.models import AuditLog, Client, Deal, Event, Reminder
from clientpulse.services.priority import PRIORITY_ORDER


def emit_event(
    db: Session,
    *,
    owner_id: int,
    event_type: str,
    entity_type: str,
    entity_id: int,
    severity: str,
    title: str,
    detail: dict | None = None,
) -> Event:
    row = Event(
        owner_user_id=owner_id,
        type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        severity=severity,
        title=title,
        detail_json=json.dumps(detail or {}),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row


def audit_change(
    db: Session,
    *,
    owner_id: int,
    actor_user_id: int | None,
    entity_type: str,
    entity_id: int,
    action: str,
    before: dict | None = None,
    after: dict | None = None,
) -> AuditLog:
    row = AuditLog(
        owner_user_id=owner_id,
        actor_user_id=actor_user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        before_json=json.dumps(before or {}),
        after_json=json.dumps(after or {}),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row


def time_ago(moment: datetime, now: datetime | None = None) -> str:
    now = now or datetime.utcnow()
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "less than a minute ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"about {hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    if days < 30:
        return f"{days} day{'s' if days != 1 else ''} ago"
    months = days // 30
    if months < 12:
        return f"{months} month{'s' if months != 1 else ''} ago"
    years = days // 365
    return f"about {years} year{'s' if years != 1 else ''} ago"


@dataclass
class PriorityClient:
    client: Client
    deals: int
    priority: str


@dataclass
class ActivityItem:
    id: str
    type: str
    description: str
    client: str
    created_at: datetime
    time: str


def priority_clients(clients: list[Client], deals: list[Deal], limit: int = 5) -> list[PriorityClient]:
    """Clients sorted by priority (high first) then by number of deals."""
    counts: dict[int, int] = {}
    for deal in deals:
        if deal.client_id is not None:
            counts[deal.client_id] = counts.get(deal.client_id, 0) + 1

    rows = [PriorityClient(client=c, deals=counts.get(c.id, 0), priority=c.priority or "medium") for c in clients]
    rows.sort(key=lambda r: (PRIORITY_ORDER.get(r.priority, 2), r.deals), reverse=True)
    return rows[:limit]


def recent_activity(clients: list[Client], deals: list[Deal], limit: int = 5, now: datetime | None = None) -> list[ActivityItem]:
    recent_clients = sorted(clients, key=lambda c: c.created_at, reverse=True)[:3]
    recent_deals = sorted(deals, key=lambda d: d.created_at, reverse=True)[:3]

    items = [
        ActivityItem(
            id=f"client-{c.id}",
            type="client_added",
            description="New client added",
            client=c.name,
            created_at=c.created_at,
            time=time_ago(c.created_at, now),
        )
        for c in recent_clients
    ]
    items += [
        ActivityItem(
            id=f"deal-{d.id}",
            type="deal_created",
            description=f"Deal: {d.title}",
            client=d.client.name if d.client else "Unknown",
            created_at=d.created_at,
            time=time_ago(d.created_at, now),
        )
        for d in recent_deals
    ]
    return items[:limit]


def dashboard_stats(db: Session, owner_id: int) -> dict:
    clients = db.query(Client).filter(Client.owner_user_id == owner_id).all()
    deals = db.query(Deal).filter(Deal.owner_user_id == owner_id).all()
    open_deals = [d for d in deals if d.stage != "Closed"]
    pending_reminders = db.query(Reminder).filter(Reminder.owner_user_id == owner_id, Reminder.completed.is_(False)).count()
    return {
        "total_clients": len(clients),
        "open_deals": len(open_deals),
        "pipeline_value": sum(d.amount or 0 for d in open_deals),
        "pending_reminders": pending_reminders,
        "priority_clients": priority_clients(clients, deals),
        "recent_activity": recent_activity(clients, deals),
    }
