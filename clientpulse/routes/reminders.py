from datetime import date

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.session import flash
from clientpulse.core.templating import render
from clientpulse.models import Client, Reminder
from clientpulse.services.authz import CurrentContext, get_owned, require_context
from clientpulse.services.priority import PRIORITY_LEVELS

router = APIRouter(prefix="/reminders", tags=["reminders"])

REMINDER_TYPES = ["call", "email", "meeting", "follow-up"]


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date")


@router.get("")
def reminders_page(request: Request, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    reminders = (
        db.query(Reminder)
        .filter(Reminder.owner_user_id == ctx.user.id)
        .order_by(Reminder.due_date.asc(), Reminder.due_time.asc())
        .all()
    )
    clients = db.query(Client).filter(Client.owner_user_id == ctx.user.id).order_by(Client.name.asc()).all()
    return render(
        request,
        "reminders.html",
        {
            "ctx": ctx,
            "reminders": reminders,
            "clients": clients,
            "types": REMINDER_TYPES,
            "priorities": PRIORITY_LEVELS,
            "today": date.today(),
        },
    )


@router.post("")
def create_reminder(
    title: str = Form(""),
    reminder_type: str = Form("", alias="type"),
    due_date: str = Form(""),
    due_time: str = Form(""),
    priority: str = Form("medium"),
    client_id: str = Form(""),
    notes: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    if not title.strip() or not reminder_type.strip() or not due_date.strip() or not due_time.strip():
        raise HTTPException(status_code=400, detail="Please fill in Title, Type, Date and Time.")
    if reminder_type not in REMINDER_TYPES or priority not in PRIORITY_LEVELS:
        raise HTTPException(status_code=400, detail="Invalid type or priority")

    related_to = None
    if client_id.strip():
        client = get_owned(db, Client, int(client_id) if client_id.strip().isdigit() else None, ctx, "Client not found")
        related_to = client.name

    reminder = Reminder(
        owner_user_id=ctx.user.id,
        title=title.strip(),
        description=notes.strip() or None,
        due_date=_parse_date(due_date),
        due_time=due_time.strip(),
        priority=priority,
        type=reminder_type,
        related_to=related_to,
        completed=False,
    )
    db.add(reminder)
    db.commit()

    response = RedirectResponse(url="/reminders", status_code=303)
    flash(response, "Reminder created", f'Reminder "{reminder.title}" has been added.')
    return response


@router.post("/{reminder_id}")
def update_reminder(
    reminder_id: int,
    title: str | None = Form(None),
    due_date: str | None = Form(None),
    due_time: str | None = Form(None),
    priority: str | None = Form(None),
    notes: str | None = Form(None),
    completed: str | None = Form(None),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    reminder = get_owned(db, Reminder, reminder_id, ctx, "Reminder not found")
    if title is not None:
        if not title.strip():
            raise HTTPException(status_code=400, detail="Title cannot be empty")
        reminder.title = title.strip()
    if due_date is not None:
        reminder.due_date = _parse_date(due_date)
    if due_time is not None:
        reminder.due_time = due_time.strip() or None
    if priority is not None:
        if priority not in PRIORITY_LEVELS:
            raise HTTPException(status_code=400, detail="Invalid priority")
        reminder.priority = priority
    if notes is not None:
        reminder.description = notes.strip() or None
    if completed is not None:
        reminder.completed = completed.lower() in {"1", "true", "on", "yes"}
    db.commit()
    return RedirectResponse(url="/reminders", status_code=303)
