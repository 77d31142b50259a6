import re

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.session import flash
from clientpulse.core.templating import render
from clientpulse.models import Client, Deal
from clientpulse.services.authz import CurrentContext, get_owned, require_context
from clientpulse.services.intelligence import audit_change, emit_event
from clientpulse.services.priority import PRIORITY_LEVELS

router = APIRouter(prefix="/deals", tags=["deals"])

STAGES = ["Lead", "Qualified", "Proposal", "Negotiation", "Closed"]
DEFAULT_STAGE = STAGES[0]

_AMOUNT_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def parse_amount(raw: str) -> float:
    """Parse "$1,200.50"-style input; anything unparseable counts as 0."""
    match = _AMOUNT_RE.match(raw.replace("$", "").replace(",", "").strip())
    return float(match.group(0)) if match else 0.0


def _optional_client_id(raw: str) -> int | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid client")


@router.get("")
def deals_page(request: Request, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    clients = db.query(Client).filter(Client.owner_user_id == ctx.user.id).order_by(Client.name.asc()).all()
    deals = db.query(Deal).filter(Deal.owner_user_id == ctx.user.id).order_by(Deal.id.desc()).all()

    deals_by_stage = {stage: [] for stage in STAGES}
    for deal in deals:
        deals_by_stage.setdefault(deal.stage, []).append(deal)
    totals = {stage: sum(d.amount or 0 for d in rows) for stage, rows in deals_by_stage.items()}

    return render(
        request,
        "deals.html",
        {
            "ctx": ctx,
            "stages": STAGES,
            "clients": clients,
            "deals_by_stage": deals_by_stage,
            "totals": totals,
            "priorities": PRIORITY_LEVELS,
        },
    )


@router.post("")
def create_deal(
    title: str = Form(""),
    amount: str = Form(""),
    client_id: str = Form(""),
    description: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    if not title.strip() or not amount.strip():
        raise HTTPException(status_code=400, detail="Please fill in Deal Name and Deal Amount.")

    parsed_client_id = _optional_client_id(client_id)
    if parsed_client_id is not None:
        get_owned(db, Client, parsed_client_id, ctx, "Client not found")

    deal = Deal(
        owner_user_id=ctx.user.id,
        client_id=parsed_client_id,
        title=title.strip(),
        amount=parse_amount(amount),
        stage=DEFAULT_STAGE,
        priority="medium",
        description=description.strip() or None,
    )
    db.add(deal)
    db.flush()
    emit_event(
        db,
        owner_id=ctx.user.id,
        event_type="deal_created",
        entity_type="deal",
        entity_id=deal.id,
        severity="info",
        title=f"Deal created: {deal.title}",
        detail={"detail": f"${deal.amount:,.2f} in stage {deal.stage}"},
    )
    db.commit()

    response = RedirectResponse(url="/deals", status_code=303)
    flash(response, "Deal created", f'"{deal.title}" has been added to {DEFAULT_STAGE} stage.')
    return response


@router.get("/{deal_id}")
def deal_detail(deal_id: int, request: Request, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    deal = get_owned(db, Deal, deal_id, ctx, "Deal not found")
    clients = db.query(Client).filter(Client.owner_user_id == ctx.user.id).order_by(Client.name.asc()).all()
    return render(
        request,
        "deal_detail.html",
        {"ctx": ctx, "deal": deal, "clients": clients, "stages": STAGES, "priorities": PRIORITY_LEVELS},
    )


@router.post("/{deal_id}")
def update_deal(
    deal_id: int,
    title: str = Form(""),
    amount: str = Form(""),
    client_id: str = Form(""),
    stage: str = Form(DEFAULT_STAGE),
    priority: str = Form("medium"),
    description: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    deal = get_owned(db, Deal, deal_id, ctx, "Deal not found")
    if not title.strip() or not amount.strip():
        raise HTTPException(status_code=400, detail="Please fill in Deal Name and Deal Amount.")
    if stage not in STAGES or priority not in PRIORITY_LEVELS:
        raise HTTPException(status_code=400, detail="Invalid stage or priority")

    parsed_client_id = _optional_client_id(client_id)
    if parsed_client_id is not None:
        get_owned(db, Client, parsed_client_id, ctx, "Client not found")

    deal.title = title.strip()
    deal.amount = parse_amount(amount)
    deal.client_id = parsed_client_id
    deal.stage = stage
    deal.priority = priority
    deal.description = description.strip() or None
    db.commit()

    response = RedirectResponse(url=f"/deals/{deal.id}", status_code=303)
    flash(response, "Deal updated", f'"{deal.title}" has been updated.')
    return response


@router.post("/{deal_id}/stage")
def move_deal_stage(
    deal_id: int,
    stage: str = Form(...),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    deal = get_owned(db, Deal, deal_id, ctx, "Deal not found")
    if stage not in STAGES:
        raise HTTPException(status_code=400, detail="Invalid stage")
    old_stage = deal.stage
    deal.stage = stage
    emit_event(
        db,
        owner_id=ctx.user.id,
        event_type="deal_stage_changed",
        entity_type="deal",
        entity_id=deal.id,
        severity="info",
        title=f"Deal stage changed: {deal.title}",
        detail={"detail": f"Stage {old_stage} -> {stage}"},
    )
    audit_change(
        db,
        owner_id=ctx.user.id,
        actor_user_id=ctx.user.id,
        entity_type="deal",
        entity_id=deal.id,
        action="stage_changed",
        before={"stage": old_stage},
        after={"stage": stage},
    )
    db.commit()
    return RedirectResponse(url="/deals", status_code=303)


@router.post("/{deal_id}/delete")
def delete_deal(deal_id: int, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    deal = get_owned(db, Deal, deal_id, ctx, "Deal not found")
    title = deal.title
    db.delete(deal)
    db.commit()

    response = RedirectResponse(url="/deals", status_code=303)
    flash(response, "Deal deleted", f'"{title}" has been removed.')
    return response
