import json

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.session import flash
from clientpulse.core.templating import render
from clientpulse.models import Automation, AutomationRun, Client, ClientSummary, OutboundMessage
from clientpulse.services.authz import CurrentContext, get_owned, require_context
from clientpulse.services.automations import (
    ACTION_TYPES,
    automation_config,
    build_config,
    create_automation,
    execute_automation,
)
from clientpulse.services.errors import AutomationConfigError

router = APIRouter(prefix="/automations", tags=["automations"])


def _client_ref(raw: str) -> int | None:
    raw = (raw or "").strip()
    return int(raw) if raw.isdigit() else None


@router.get("")
def automations_page(request: Request, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    automations = db.query(Automation).filter(Automation.owner_user_id == ctx.user.id).order_by(Automation.id.desc()).all()
    clients = db.query(Client).filter(Client.owner_user_id == ctx.user.id).order_by(Client.name.asc()).all()
    return render(
        request,
        "automations.html",
        {"ctx": ctx, "automations": automations, "clients": clients, "action_types": ACTION_TYPES},
    )


@router.post("")
def create_automation_route(
    name: str = Form(""),
    description: str = Form(""),
    action_type: str = Form(""),
    client_id: str = Form(""),
    email_message: str = Form(""),
    email_send_date: str = Form(""),
    meeting_name: str = Form(""),
    meeting_email_content: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    if not name.strip() or not action_type.strip():
        raise HTTPException(status_code=400, detail="Please fill in Automation Name and Action.")
    try:
        config = build_config(
            action_type,
            client_id=_client_ref(client_id),
            email_message=email_message,
            email_send_date=email_send_date,
            meeting_name=meeting_name,
            meeting_email_content=meeting_email_content,
        )
        automation = create_automation(
            db,
            owner_id=ctx.user.id,
            name=name,
            description=description,
            action_type=action_type,
            config=config,
        )
    except AutomationConfigError as exc:
        raise HTTPException(status_code=400, detail=exc.user_message)

    if automation.action_type != "ai-summary":
        response = RedirectResponse(url="/automations", status_code=303)
        flash(response, "Automation created", f'"{automation.name}" has been set up successfully.')
        return response

    result = execute_automation(db, automation)
    response = RedirectResponse(url=f"/automations/{automation.id}", status_code=303)
    if result.success:
        flash(response, "AI Summary Generated", f"Client summary for {result.output.get('clientName')} has been generated.")
    else:
        flash(
            response,
            "Automation created with warning",
            f"Automation was created but AI summary generation failed: {result.message}",
            variant="destructive",
        )
    return response


@router.get("/{automation_id}")
def automation_detail(
    automation_id: int,
    request: Request,
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    automation = get_owned(db, Automation, automation_id, ctx, "Automation not found")
    runs = (
        db.query(AutomationRun)
        .filter(AutomationRun.automation_id == automation.id, AutomationRun.owner_user_id == ctx.user.id)
        .order_by(AutomationRun.id.desc())
        .limit(20)
        .all()
    )
    run_ids = [r.id for r in runs]
    messages = []
    if run_ids:
        messages = (
            db.query(OutboundMessage)
            .filter(OutboundMessage.owner_user_id == ctx.user.id, OutboundMessage.automation_run_id.in_(run_ids))
            .order_by(OutboundMessage.id.desc())
            .all()
        )
    latest_summary = None
    for run in runs:
        output = json.loads(run.output_json or "{}")
        if run.status == "succeeded" and output.get("summary"):
            latest_summary = output
            break

    config = automation_config(automation)
    client = None
    if config.get("client_id"):
        client = db.query(Client).filter(Client.id == config["client_id"], Client.owner_user_id == ctx.user.id).first()

    return render(
        request,
        "automation_detail.html",
        {
            "ctx": ctx,
            "automation": automation,
            "config": config,
            "client": client,
            "runs": runs,
            "messages": messages,
            "summary": latest_summary,
            "action_types": ACTION_TYPES,
        },
    )


@router.post("/{automation_id}/execute")
def execute_automation_route(
    automation_id: int,
    client_email: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    automation = get_owned(db, Automation, automation_id, ctx, "Automation not found")
    result = execute_automation(db, automation, client_email=client_email.strip() or None)
    response = RedirectResponse(url=f"/automations/{automation.id}", status_code=303)
    if result.success:
        flash(response, "Automation executed", result.message)
    else:
        flash(response, "Execution failed", result.message, variant="destructive")
    return response


@router.post("/{automation_id}/toggle")
def toggle_automation(
    automation_id: int,
    enabled: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    automation = get_owned(db, Automation, automation_id, ctx, "Automation not found")
    automation.is_enabled = enabled.lower() in {"1", "true", "on", "yes"}
    db.commit()
    return RedirectResponse(url="/automations", status_code=303)


@router.post("/{automation_id}/delete")
def delete_automation(automation_id: int, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    automation = get_owned(db, Automation, automation_id, ctx, "Automation not found")
    name = automation.name
    run_ids = [r.id for r in automation.runs]
    if run_ids:
        db.query(OutboundMessage).filter(OutboundMessage.automation_run_id.in_(run_ids)).delete(synchronize_session=False)
        db.query(ClientSummary).filter(ClientSummary.automation_run_id.in_(run_ids)).update(
            {"automation_run_id": None}, synchronize_session=False
        )
    db.delete(automation)
    db.commit()

    response = RedirectResponse(url="/automations", status_code=303)
    flash(response, "Automation deleted", f'"{name}" has been removed.')
    return response
