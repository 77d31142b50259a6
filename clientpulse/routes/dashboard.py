from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.session import read_session
from clientpulse.core.templating import render
from clientpulse.models import Event
from clientpulse.services.authz import CurrentContext, require_context
from clientpulse.services.intelligence import dashboard_stats

router = APIRouter(tags=["dashboard"])


@router.get("/")
def home(request: Request):
    if not read_session(request):
        return RedirectResponse(url="/login", status_code=303)
    return RedirectResponse(url="/dashboard", status_code=303)


@router.get("/dashboard")
def dashboard(request: Request, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    stats = dashboard_stats(db, ctx.user.id)
    return render(request, "dashboard.html", {"ctx": ctx, **stats})


@router.get("/events")
def events_page(request: Request, ctx: CurrentContext = Depends(require_context), db: Session = Depends(get_db)):
    events = db.query(Event).filter(Event.owner_user_id == ctx.user.id).order_by(Event.id.desc()).limit(100).all()
    return render(request, "events.html", {"ctx": ctx, "events": events})
