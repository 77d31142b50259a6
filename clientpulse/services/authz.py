from dataclasses import dataclass
from typing import TypeVar

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.session import read_session
from clientpulse.models import User

T = TypeVar("T")


@dataclass
class CurrentContext:
    user: User


def _find_current_user(request: Request, db: Session) -> User:
    user_id = read_session(request)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return user


def require_context(request: Request, db: Session = Depends(get_db)) -> CurrentContext:
    return CurrentContext(user=_find_current_user(request, db))


def get_owned(db: Session, model: type[T], object_id: int | None, ctx: CurrentContext, detail: str) -> T:
    """Load a row owned by the current user or answer 404."""
    row = None
    if object_id is not None:
        row = db.query(model).filter(model.id == object_id, model.owner_user_id == ctx.user.id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return row
