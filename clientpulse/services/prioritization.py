import json
import logging
from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from clientpulse.models import Client, ClientPrioritization, Deal
from clientpulse.services.errors import InvalidPrioritizationInput, PrioritizationExists
from clientpulse.services.intelligence import audit_change, emit_event
from clientpulse.services.priority import (
    ACTIVE_DEALS_OPTIONS,
    FREQUENCY_OPTIONS,
    PENDING_PROPOSAL_OPTIONS,
    PRIORITY_LEVELS,
    SENTIMENT_OPTIONS,
    WHO_INITIATED_OPTIONS,
    PrioritizationInput,
    calculate_final_priority,
)

logger = logging.getLogger(__name__)

CLOSED_STAGE = "Closed"


@dataclass
class PrioritizationResult:
    id: int
    client_id: int
    calculated_priority: str
    created_at: datetime
    updated_at: datetime


def active_deals_bucket(count: int) -> str:
    # No open deals still answers "1"; the question has no zero option.
    if count <= 1:
        return "1"
    if count == 2:
        return "2"
    return "3+"


def count_active_deals(db: Session, owner_id: int, client_id: int) -> int:
    return (
        db.query(Deal)
        .filter(Deal.owner_user_id == owner_id, Deal.client_id == client_id, Deal.stage != CLOSED_STAGE)
        .count()
    )


def has_existing_prioritization(db: Session, owner_id: int, client_id: int) -> bool:
    return (
        db.query(ClientPrioritization)
        .filter(ClientPrioritization.owner_user_id == owner_id, ClientPrioritization.client_id == client_id)
        .first()
        is not None
    )


def latest_prioritization(db: Session, owner_id: int, client_id: int) -> ClientPrioritization | None:
    return (
        db.query(ClientPrioritization)
        .filter(ClientPrioritization.owner_user_id == owner_id, ClientPrioritization.client_id == client_id)
        .order_by(ClientPrioritization.created_at.desc(), ClientPrioritization.id.desc())
        .first()
    )


def _check_choices(field: str, values: Collection[str] | None, allowed: tuple[str, ...], required: bool = False) -> None:
    if not values:
        if required:
            question = field.replace("_", " ")
            raise InvalidPrioritizationInput(
                f"{field} is required",
                user_message=f"Please select an option for the {question} question.",
            )
        return
    unknown = [v for v in values if v not in allowed]
    if unknown:
        raise InvalidPrioritizationInput(f"Invalid {field}: {', '.join(unknown)}")


def validate_prioritization_input(data: PrioritizationInput) -> None:
    _check_choices("active_deals", data.active_deals, ACTIVE_DEALS_OPTIONS, required=True)
    _check_choices("interaction_frequency", data.interaction_frequency, FREQUENCY_OPTIONS, required=True)
    _check_choices("who_initiated", data.who_initiated, WHO_INITIATED_OPTIONS)
    _check_choices("pending_proposal", data.pending_proposal, PENDING_PROPOSAL_OPTIONS)
    if data.pdf_priority is not None and data.pdf_priority not in PRIORITY_LEVELS:
        raise InvalidPrioritizationInput(f"Invalid pdf_priority: {data.pdf_priority}")
    if data.pdf_sentiment is not None and data.pdf_sentiment not in SENTIMENT_OPTIONS:
        raise InvalidPrioritizationInput(f"Invalid pdf_sentiment: {data.pdf_sentiment}")
    if data.pdf_keywords_count is not None and data.pdf_keywords_count < 0:
        raise InvalidPrioritizationInput("pdf_keywords_count must be >= 0")


def _dump(values: Collection[str] | None) -> str | None:
    if not values:
        return None
    return json.dumps(list(values))


def create_prioritization(
    db: Session,
    *,
    owner_id: int,
    client: Client,
    data: PrioritizationInput,
    calculated_priority: str | None = None,
    overwrite: bool = False,
) -> PrioritizationResult:
    validate_prioritization_input(data)
    if not overwrite and has_existing_prioritization(db, owner_id, client.id):
        raise PrioritizationExists(
            f"Client {client.id} already has a prioritization",
            user_message=f"{client.name} already has a prioritization. Confirm to replace it.",
        )

    priority = calculated_priority or calculate_final_priority(data)
    if priority not in PRIORITY_LEVELS:
        raise InvalidPrioritizationInput(f"Invalid calculated_priority: {priority}")

    now = datetime.utcnow()
    row = ClientPrioritization(
        owner_user_id=owner_id,
        client_id=client.id,
        active_deals_json=_dump(data.active_deals) or "[]",
        interaction_frequency_json=_dump(data.interaction_frequency) or "[]",
        who_initiated_json=_dump(data.who_initiated),
        pending_proposal_json=_dump(data.pending_proposal),
        pdf_priority=data.pdf_priority,
        pdf_keywords_count=data.pdf_keywords_count,
        pdf_sentiment=data.pdf_sentiment,
        calculated_priority=priority,
        created_at=now,
        updated_at=now,
    )
    db.add(row)

    before = client.priority
    client.priority = priority
    db.flush()

    emit_event(
        db,
        owner_id=owner_id,
        event_type="client_prioritized",
        entity_type="client",
        entity_id=client.id,
        severity="high" if priority == "high" else "info",
        title=f"Prioritization for {client.name}: {priority}",
        detail={"prioritization_id": row.id},
    )
    audit_change(
        db,
        owner_id=owner_id,
        actor_user_id=owner_id,
        entity_type="client",
        entity_id=client.id,
        action="prioritized",
        before={"priority": before},
        after={"priority": priority},
    )
    db.commit()
    db.refresh(row)
    logger.info("Client %s prioritized as %s (prioritization %s)", client.id, priority, row.id)

    return PrioritizationResult(
        id=row.id,
        client_id=row.client_id,
        calculated_priority=row.calculated_priority,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def load_answers(row: ClientPrioritization) -> dict:
    return {
        "active_deals": json.loads(row.active_deals_json or "[]"),
        "interaction_frequency": json.loads(row.interaction_frequency_json or "[]"),
        "who_initiated": json.loads(row.who_initiated_json) if row.who_initiated_json else None,
        "pending_proposal": json.loads(row.pending_proposal_json) if row.pending_proposal_json else None,
        "pdf_priority": row.pdf_priority,
        "pdf_keywords_count": row.pdf_keywords_count,
        "pdf_sentiment": row.pdf_sentiment,
    }
