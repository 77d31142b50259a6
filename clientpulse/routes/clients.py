from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.session import flash
from clientpulse.core.templating import render
from clientpulse.models import Client, ClientSummary, Deal, OutboundMessage
from clientpulse.services.authz import CurrentContext, get_owned, require_context
from clientpulse.services.intelligence import emit_event
from clientpulse.services.prioritization import latest_prioritization, load_answers
from clientpulse.services.priority import PRIORITY_LEVELS

router = APIRouter(prefix="/clients", tags=["clients"])


def _clean(value: str) -> str | None:
    return value.strip() or None


def _validate_client_form(name: str, company: str, source: str, priority: str) -> None:
    if not name.strip() or not company.strip() or not source.strip():
        raise HTTPException(status_code=400, detail="Please fill in Name, Company, and Source.")
    if priority not in PRIORITY_LEVELS:
        raise HTTPException(status_code=400, detail="Invalid priority")


def filter_clients(clients: list[Client], query: str) -> list[Client]:
    q = query.strip().lower()
    if not q:
        return clients
    return [
        c
        for c in clients
        if q in c.name.lower() or (c.email and q in c.email.lower()) or (c.company and q in c.company.lower())
    ]


@router.get("")
def clients_page(
    request: Request,
    q: str = Query(default=""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    clients = db.query(Client).filter(Client.owner_user_id == ctx.user.id).order_by(Client.name.asc()).all()
    return render(
        request,
        "clients.html",
        {"ctx": ctx, "clients": filter_clients(clients, q), "q": q, "priorities": PRIORITY_LEVELS},
    )


@router.post("")
def create_client(
    name: str = Form(""),
    company: str = Form(""),
    source: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    notes: str = Form(""),
    priority: str = Form("medium"),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    _validate_client_form(name, company, source, priority)
    client = Client(
        owner_user_id=ctx.user.id,
        name=name.strip(),
        company=company.strip(),
        source=source.strip(),
        email=_clean(email),
        phone=_clean(phone),
        notes=_clean(notes),
        priority=priority,
    )
    db.add(client)
    db.flush()
    emit_event(
        db,
        owner_id=ctx.user.id,
        event_type="client_created",
        entity_type="client",
        entity_id=client.id,
        severity="info",
        title=f"Client created: {client.name}",
    )
    db.commit()

    response = RedirectResponse(url="/clients", status_code=303)
    flash(response, "Client created", f"{client.name} has been added successfully.")
    return response


@router.get("/{client_id}")
def client_detail(
    client_id: int,
    request: Request,
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    client = get_owned(db, Client, client_id, ctx, "Client not found")
    deals = db.query(Deal).filter(Deal.owner_user_id == ctx.user.id, Deal.client_id == client.id).order_by(Deal.id.desc()).all()
    prioritization = latest_prioritization(db, ctx.user.id, client.id)
    summary = (
        db.query(ClientSummary)
        .filter(ClientSummary.owner_user_id == ctx.user.id, ClientSummary.client_id == client.id)
        .order_by(ClientSummary.generated_at.desc())
        .first()
    )
    return render(
        request,
        "client_detail.html",
        {
            "ctx": ctx,
            "client": client,
            "deals": deals,
            "prioritization": prioritization,
            "answers": load_answers(prioritization) if prioritization else None,
            "summary": summary,
            "priorities": PRIORITY_LEVELS,
        },
    )


@router.post("/{client_id}")
def update_client(
    client_id: int,
    name: str = Form(""),
    company: str = Form(""),
    source: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    notes: str = Form(""),
    priority: str = Form("medium"),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    client = get_owned(db, Client, client_id, ctx, "Client not found")
    _validate_client_form(name, company, source, priority)
    client.name = name.strip()
    client.company = company.strip()
    client.source = source.strip()
    client.email = _clean(email)
    client.phone = _clean(phone)
    client.notes = _clean(notes)
    client.priority = priority
    db.commit()

    response = RedirectResponse(url=f"/clients/{client.id}", status_code=303)
    flash(response, "Client updated", f"{client.name} has been updated successfully.")
    return response


@router.post("/{client_id}/delete")
def delete_client(
    client_id: int,
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    client = get_owned(db, Client, client_id, ctx, "Client not found")
    name = client.name
    db.query(ClientSummary).filter(ClientSummary.client_id == client.id).delete()
    db.query(OutboundMessage).filter(OutboundMessage.client_id == client.id).update({"client_id": None})
    db.delete(client)
    db.commit()

    response = RedirectResponse(url="/clients", status_code=303)
    flash(response, "Client deleted", f"{name} has been removed.")
    return response
