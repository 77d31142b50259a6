import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx
from sqlalchemy.orm import Session

from clientpulse.core.config import Settings, get_settings
from clientpulse.models import (
    Automation,
    AutomationRun,
    Client,
    ClientPrioritization,
    ClientSummary,
    Deal,
    OutboundMessage,
    Reminder,
)
from clientpulse.services.content_analysis import OPENAI_CHAT_URL
from clientpulse.services.errors import AutomationConfigError, AutomationExecutionError
from clientpulse.services.intelligence import emit_event

logger = logging.getLogger(__name__)

ACTION_TYPES = {
    "email": "Email",
    "meeting": "Meeting follow-up",
    "ai-summary": "AI Client Summary",
}

TERMINAL = {"succeeded", "failed"}


@dataclass
class ExecutionResult:
    success: bool
    message: str
    run_id: int | None = None
    output: dict = field(default_factory=dict)


@dataclass
class SummaryData:
    client_id: int
    client_name: str
    summary: str
    generated_at: datetime
    model: str = "heuristic"


def parse_send_date(value: str) -> datetime:
    """
    Parse a datetime-local / ISO string into a naive UTC datetime.

    Values without an offset are taken as UTC.
    """
    raw = (value or "").strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise AutomationConfigError(f"Invalid date format: {value}", user_message="Invalid date format") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def build_config(
    action_type: str,
    *,
    client_id: int | None = None,
    email_message: str = "",
    email_send_date: str = "",
    meeting_name: str = "",
    meeting_email_content: str = "",
) -> dict:
    if action_type not in ACTION_TYPES:
        raise AutomationConfigError(
            f"Unknown action type: {action_type}",
            user_message="Please fill in Automation Name and Action.",
        )

    if action_type == "email":
        if not email_message.strip() or not email_send_date.strip() or not client_id:
            raise AutomationConfigError(
                "email automation is missing fields",
                user_message="Please fill in Custom message, Date of sending, and select a client for Email action.",
            )
        send_at = parse_send_date(email_send_date)
        return {
            "email_message": email_message.strip(),
            "email_send_date": send_at.replace(tzinfo=timezone.utc).isoformat(),
            "client_id": client_id,
        }

    if action_type == "meeting":
        if not meeting_name.strip() or not meeting_email_content.strip() or not client_id:
            raise AutomationConfigError(
                "meeting automation is missing fields",
                user_message="Please fill in Meeting name, Email content, and select a client for Meeting follow-up.",
            )
        return {
            "meeting_name": meeting_name.strip(),
            "email_content": meeting_email_content.strip(),
            "client_id": client_id,
        }

    if not client_id:
        raise AutomationConfigError(
            "ai-summary automation is missing a client",
            user_message="Please select a client for AI Client Summary.",
        )
    return {"client_id": client_id}


def create_automation(
    db: Session,
    *,
    owner_id: int,
    name: str,
    description: str | None,
    action_type: str,
    config: dict,
) -> Automation:
    if not name.strip() or not action_type:
        raise AutomationConfigError("name and action are required", user_message="Please fill in Automation Name and Action.")
    client_id = config.get("client_id")
    if client_id is not None:
        client = db.query(Client).filter(Client.id == client_id, Client.owner_user_id == owner_id).first()
        if not client:
            raise AutomationConfigError(f"Client {client_id} not found", user_message="Selected client was not found.")

    automation = Automation(
        owner_user_id=owner_id,
        name=name.strip(),
        description=(description or "").strip() or None,
        action_type=action_type,
        is_enabled=True,
        config_json=json.dumps(config),
    )
    db.add(automation)
    db.commit()
    db.refresh(automation)
    logger.info("Automation %s (%s) created", automation.id, action_type)
    return automation


def automation_config(automation: Automation) -> dict:
    return json.loads(automation.config_json or "{}")


def heuristic_summary(
    client: Client,
    deals: list[Deal],
    reminders: list[Reminder],
    prioritization: ClientPrioritization | None,
) -> str:
    open_deals = [d for d in deals if d.stage != "Closed"]
    pipeline = sum(d.amount or 0 for d in open_deals)
    parts = [f"{client.name}" + (f" ({client.company})" if client.company else "") + f" is a {client.priority}-priority client"]
    if client.source:
        parts[0] += f" sourced from {client.source}"
    parts[0] += "."

    if open_deals:
        stages = sorted({d.stage for d in open_deals})
        parts.append(
            f"{len(open_deals)} open deal{'s' if len(open_deals) != 1 else ''} worth ${pipeline:,.2f} "
            f"in {', '.join(stages)}."
        )
    else:
        parts.append("No open deals at the moment.")

    pending = [r for r in reminders if not r.completed]
    if pending:
        nxt = min(pending, key=lambda r: r.due_date)
        parts.append(f"{len(pending)} pending reminder{'s' if len(pending) != 1 else ''}; next: {nxt.title} on {nxt.due_date.isoformat()}.")

    if prioritization:
        parts.append(
            f"Last prioritization on {prioritization.created_at.date().isoformat()} scored {prioritization.calculated_priority}."
        )

    if client.notes:
        notes = client.notes if len(client.notes) <= 120 else f"{client.notes[:120]}..."
        parts.append(f"Notes: {notes}")

    return " ".join(parts)


def _remote_summary(facts: str, settings: Settings, client: httpx.Client | None = None) -> str:
    body = {
        "model": settings.openai_model,
        "temperature": 0.3,
        "messages": [
            {"role": "system", "content": "You write short CRM account summaries for a sales rep. Three sentences at most."},
            {"role": "user", "content": facts},
        ],
    }
    http = client or httpx.Client(timeout=settings.openai_timeout)
    try:
        resp = http.post(OPENAI_CHAT_URL, headers={"Authorization": f"Bearer {settings.openai_api_key}"}, json=body)
        resp.raise_for_status()
        content = resp.json()["choices"][0]["message"]["content"]
        if not isinstance(content, str) or not content.strip():
            raise ValueError(f"Summary response has no text content: {content!r}")
        return content.strip()
    finally:
        if client is None:
            http.close()


def summarize_client(
    db: Session,
    client: Client,
    settings: Settings | None = None,
    http_client: httpx.Client | None = None,
) -> SummaryData:
    settings = settings or get_settings()
    deals = db.query(Deal).filter(Deal.owner_user_id == client.owner_user_id, Deal.client_id == client.id).all()
    reminders = (
        db.query(Reminder)
        .filter(Reminder.owner_user_id == client.owner_user_id, Reminder.related_to == client.name)
        .all()
    )
    prioritization = (
        db.query(ClientPrioritization)
        .filter(ClientPrioritization.owner_user_id == client.owner_user_id, ClientPrioritization.client_id == client.id)
        .order_by(ClientPrioritization.created_at.desc(), ClientPrioritization.id.desc())
        .first()
    )
    summary = heuristic_summary(client, deals, reminders, prioritization)
    model = "heuristic"

    if settings.openai_api_key:
        try:
            summary = _remote_summary(summary, settings, http_client)
            model = settings.openai_model
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning("Remote summary failed for client %s, using heuristic: %s", client.id, exc)

    return SummaryData(client_id=client.id, client_name=client.name, summary=summary, generated_at=datetime.utcnow(), model=model)


def _load_client(db: Session, automation: Automation, config: dict) -> Client:
    client_id = config.get("client_id")
    client = (
        db.query(Client)
        .filter(Client.id == client_id, Client.owner_user_id == automation.owner_user_id)
        .first()
    )
    if not client:
        raise AutomationExecutionError(f"Client {client_id} not found", user_message="The automation's client no longer exists.")
    return client


def _queue_message(
    db: Session,
    automation: Automation,
    run: AutomationRun,
    client: Client,
    to_email: str | None,
    subject: str,
    body: str,
    send_at: datetime | None,
) -> OutboundMessage:
    if not to_email:
        raise AutomationExecutionError(
            f"Client {client.id} has no email address",
            user_message=f"{client.name} has no email address.",
        )
    message = OutboundMessage(
        owner_user_id=automation.owner_user_id,
        automation_run_id=run.id,
        client_id=client.id,
        to_email=to_email,
        subject=subject,
        body=body,
        status="scheduled" if send_at and send_at > datetime.utcnow() else "queued",
        send_at=send_at,
    )
    db.add(message)
    db.flush()
    return message


def _run_action(
    db: Session,
    automation: Automation,
    run: AutomationRun,
    client_email: str | None,
    settings: Settings,
    http_client: httpx.Client | None,
) -> tuple[str, dict]:
    config = automation_config(automation)
    client = _load_client(db, automation, config)

    if automation.action_type == "email":
        send_at = parse_send_date(config["email_send_date"])
        message = _queue_message(
            db, automation, run, client, client_email or client.email, automation.name, config["email_message"], send_at
        )
        return (
            f"Email to {message.to_email} {message.status} for {send_at.isoformat()} UTC",
            {"message_id": message.id, "status": message.status, "send_at": send_at.isoformat()},
        )

    if automation.action_type == "meeting":
        message = _queue_message(
            db,
            automation,
            run,
            client,
            client_email or client.email,
            f"Follow-up: {config['meeting_name']}",
            config["email_content"],
            None,
        )
        return f"Meeting follow-up queued for {message.to_email}", {"message_id": message.id, "status": message.status}

    if automation.action_type == "ai-summary":
        data = summarize_client(db, client, settings=settings, http_client=http_client)
        row = ClientSummary(
            owner_user_id=automation.owner_user_id,
            client_id=client.id,
            automation_run_id=run.id,
            model=data.model,
            summary=data.summary,
            generated_at=data.generated_at,
        )
        db.add(row)
        db.flush()
        return (
            f"Summary generated for {client.name}",
            {
                "summary_id": row.id,
                "clientId": client.id,
                "clientName": data.client_name,
                "summary": data.summary,
                "generatedAt": data.generated_at.isoformat(),
            },
        )

    raise AutomationExecutionError(f"Unknown action type: {automation.action_type}")


def _fail_run(db: Session, automation: Automation, run: AutomationRun, detail: str, user_message: str) -> ExecutionResult:
    run.status = "failed"
    run.error_message = user_message
    run.ended_at = datetime.utcnow()
    emit_event(
        db,
        owner_id=automation.owner_user_id,
        event_type="automation_failed",
        entity_type="automation",
        entity_id=automation.id,
        severity="high",
        title=f"Automation failed: {automation.name}",
        detail={"run_id": run.id, "detail": detail},
    )
    db.commit()
    return ExecutionResult(success=False, message=user_message, run_id=run.id)


def execute_automation(
    db: Session,
    automation: Automation,
    client_email: str | None = None,
    settings: Settings | None = None,
    http_client: httpx.Client | None = None,
) -> ExecutionResult:
    settings = settings or get_settings()
    if not automation.is_enabled:
        return ExecutionResult(success=False, message="Automation is disabled")

    run = AutomationRun(
        owner_user_id=automation.owner_user_id,
        automation_id=automation.id,
        status="running",
        started_at=datetime.utcnow(),
    )
    db.add(run)
    db.flush()

    try:
        message, output = _run_action(db, automation, run, client_email, settings, http_client)
    except (AutomationExecutionError, AutomationConfigError) as exc:
        logger.warning("Automation %s run %s failed: %s", automation.id, run.id, exc.message)
        return _fail_run(db, automation, run, exc.message, exc.user_message)
    except Exception as exc:
        logger.exception("Automation %s run %s crashed", automation.id, run.id)
        return _fail_run(db, automation, run, str(exc), "Automation failed unexpectedly.")

    run.status = "succeeded"
    run.output_json = json.dumps(output)
    run.ended_at = datetime.utcnow()
    emit_event(
        db,
        owner_id=automation.owner_user_id,
        event_type="automation_succeeded",
        entity_type="automation",
        entity_id=automation.id,
        severity="info",
        title=f"Automation executed: {automation.name}",
        detail={"run_id": run.id},
    )
    db.commit()
    logger.info("Automation %s run %s succeeded", automation.id, run.id)
    return ExecutionResult(success=True, message=message, run_id=run.id, output=output)
