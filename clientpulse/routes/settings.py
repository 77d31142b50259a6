import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from clientpulse.core.session import flash
from clientpulse.core.templating import render
from clientpulse.services.authz import CurrentContext, require_context
from clientpulse.services.intelligence import audit_change

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])

PROFILE_FIELDS = ("first_name", "last_name", "company", "phone")


def validate_password_change(current_password: str, new_password: str, confirm_password: str) -> str | None:
    if not current_password or not new_password or not confirm_password:
        return "Please fill in all password fields."
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return f"New password must be at least {MIN_PASSWORD_LENGTH} characters long."
    if new_password != confirm_password:
        return "New password and confirmation do not match."
    if new_password == current_password:
        return "New password must be different from current password."
    return None


@router.get("")
def settings_page(request: Request, ctx: CurrentContext = Depends(require_context)):
    return render(request, "settings.html", {"ctx": ctx, "user": ctx.user})


@router.post("/profile")
def update_profile(
    first_name: str | None = Form(None),
    last_name: str | None = Form(None),
    company: str | None = Form(None),
    phone: str | None = Form(None),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    user = ctx.user
    submitted = {"first_name": first_name, "last_name": last_name, "company": company, "phone": phone}
    before = {f: getattr(user, f) for f in PROFILE_FIELDS}
    for field_name, value in submitted.items():
        if value is not None:
            setattr(user, field_name, value.strip() or None)
    audit_change(
        db,
        owner_id=user.id,
        actor_user_id=user.id,
        entity_type="user",
        entity_id=user.id,
        action="profile_updated",
        before=before,
        after={f: getattr(user, f) for f in PROFILE_FIELDS},
    )
    db.commit()

    response = RedirectResponse(url="/settings", status_code=303)
    flash(response, "Profile updated", "Your profile information has been saved successfully.")
    return response


@router.post("/password")
def change_password(
    current_password: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    ctx: CurrentContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    error = validate_password_change(current_password, new_password, confirm_password)
    if error:
        raise HTTPException(status_code=400, detail=error)
    if not verify_password(current_password, ctx.user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect.")

    ctx.user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("User %s changed password", ctx.user.id)

    response = RedirectResponse(url="/settings", status_code=303)
    flash(response, "Password updated", "Your password has been changed successfully.")
    return response
