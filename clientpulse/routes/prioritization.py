import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.config import get_settings
from clientpulse.core.db import get_db
from clientpulse.core.session import flash
from clientpulse.core.templating import render
from clientpulse.models import Client
from clientpulse.routes.clients import filter_clients
from clientpulse.services.authz import CurrentContext, get_owned, require_context
from clientpulse.services.content_analysis import analyze_image, check_image_type
from clientpulse.services.errors import (
    ContentAnalysisError,
    InvalidPrioritizationInput,
    PrioritizationExists,
    UnsupportedImageType,
)
from clientpulse.services.prioritization import (
    active_deals_bucket,
    count_active_deals,
    create_prioritization,
    has_existing_prioritization,
    validate_prioritization_input,
)
from clientpulse.services.priority import (
    FREQUENCY_OPTIONS,
    PENDING_PROPOSAL_OPTIONS,
    WHO_INITIATED_OPTIONS,
    PrioritizationInput,
    calculate_final_priority,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prioritization", tags=["prioritization"])


def _one(value: str | None) -> list[str] | None:
    value = (value or "").strip()
    return [value] if value else None


def _build_input(
    db: Session,
    ctx: CurrentContext,
    client: Client,
    interaction_frequency: str,
    who_initiated: str | None = None,
    pending_proposal: str | None = None,
    pdf_priority: str | None = None,
    pdf_keywords_count: int | None = None,
    pdf_sentiment: str | None = None,
) -> PrioritizationInput:
    bucket = active_deals_bucket(count_active_deals(db, ctx.user.id, client.id))
    return PrioritizationInput(
        active_deals=[bucket],
        interaction_frequency=_one(interaction_frequency) or [],
        who_initiated=_one(who_initiated),
        pending_proposal=_one(pending_proposal),
        pdf_priority=pdf_priority,
        pdf_keywords_count=pdf_keywords_count,
        pdf_sentiment=pdf_sentiment,
    )


@router.get("")
def prioritization_page(
    request: Request,
    q: str = Query(default=""),
    client_id: int | None = Query(default=None),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    clients = db.query(Client).filter(Client.owner_user_id == ctx.user.id).order_by(Client.name.asc()).all()
    selected = None
    active_deals = None
    existing = False
    if client_id is not None:
        selected = get_owned(db, Client, client_id, ctx, "Client not found")
        active_deals = active_deals_bucket(count_active_deals(db, ctx.user.id, selected.id))
        existing = has_existing_prioritization(db, ctx.user.id, selected.id)

    return render(
        request,
        "prioritization.html",
        {
            "ctx": ctx,
            "clients": filter_clients(clients, q),
            "q": q,
            "selected": selected,
            "active_deals": active_deals,
            "existing": existing,
            "frequencies": FREQUENCY_OPTIONS,
            "who_options": WHO_INITIATED_OPTIONS,
            "proposal_options": PENDING_PROPOSAL_OPTIONS,
        },
    )


@router.get("/clients/{client_id}/existing")
def existing_prioritization(client_id: int, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    client = get_owned(db, Client, client_id, ctx, "Client not found")
    return {"client_id": client.id, "exists": has_existing_prioritization(db, ctx.user.id, client.id)}


@router.post("/preview")
def preview_priority(
    client_id: int = Form(...),
    interaction_frequency: str = Form(""),
    who_initiated: str = Form(""),
    pending_proposal: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    client = get_owned(db, Client, client_id, ctx, "Client not found")
    data = _build_input(db, ctx, client, interaction_frequency, who_initiated, pending_proposal)
    try:
        validate_prioritization_input(data)
    except InvalidPrioritizationInput as exc:
        raise HTTPException(status_code=400, detail=exc.user_message)
    return {
        "client_id": client.id,
        "active_deals": list(data.active_deals),
        "calculated_priority": calculate_final_priority(data),
    }


@router.post("")
def submit_prioritization(
    client_id: int = Form(...),
    interaction_frequency: str = Form(""),
    mode: str = Form("full"),
    who_initiated: str = Form(""),
    pending_proposal: str = Form(""),
    confirm_overwrite: str = Form(""),
    image: UploadFile | None = File(None),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    client = get_owned(db, Client, client_id, ctx, "Client not found")
    quick = mode == "quick"
    if quick:
        who_initiated = pending_proposal = ""

    upload = None
    if not quick and image is not None and image.filename:
        try:
            check_image_type(image.content_type)
        except UnsupportedImageType as exc:
            raise HTTPException(status_code=400, detail=exc.user_message)
        upload = image

    overwrite = confirm_overwrite.lower() in {"1", "true", "on", "yes"}
    if not overwrite and has_existing_prioritization(db, ctx.user.id, client.id):
        raise HTTPException(status_code=409, detail=f"{client.name} already has a prioritization. Confirm to replace it.")

    data = _build_input(db, ctx, client, interaction_frequency, who_initiated, pending_proposal)
    try:
        validate_prioritization_input(data)
    except InvalidPrioritizationInput as exc:
        raise HTTPException(status_code=400, detail=exc.user_message)

    warning = None
    if upload is not None:
        try:
            analysis = analyze_image(upload.file.read(get_settings().max_image_bytes + 1), upload.content_type)
        except ContentAnalysisError as exc:
            logger.warning("Image analysis failed for client %s: %s", client.id, exc.message)
            warning = f"Could not analyze image: {exc.user_message} Continuing without image analysis."
        else:
            data = replace(
                data,
                pdf_priority=analysis.priority,
                pdf_keywords_count=analysis.keywords_count,
                pdf_sentiment=analysis.sentiment,
            )

    try:
        result = create_prioritization(db, owner_id=ctx.user.id, client=client, data=data, overwrite=overwrite)
    except InvalidPrioritizationInput as exc:
        raise HTTPException(status_code=400, detail=exc.user_message)
    except PrioritizationExists as exc:
        raise HTTPException(status_code=409, detail=exc.user_message)

    label = "Priority" if quick else "Final priority"
    response = RedirectResponse(url=f"/clients/{client.id}", status_code=303)
    if warning:
        flash(response, "Prioritization saved with a warning", f"{warning} {label}: {result.calculated_priority}.")
    else:
        flash(
            response,
            "Prioritization saved",
            f"Prioritization for {client.name} has been configured successfully. {label}: {result.calculated_priority}.",
        )
    return response
