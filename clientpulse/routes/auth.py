import logging

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from clientpulse.core.db import get_db
from clientpulse.core.security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from clientpulse.core.session import clear_session, set_session
from clientpulse.core.templating import render
from clientpulse.models import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/login")
def login_page(request: Request):
    return render(request, "login.html", {})


@router.post("/login")
def login(request: Request, email: str = Form(...), password: str = Form(...), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == email.lower().strip(), User.is_active.is_(True)).first()
    if not user or not verify_password(password, user.password_hash):
        return render(
            request,
            "login.html",
            {"error": "Invalid credentials"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    response = RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    set_session(response, user.id)
    return response


@router.get("/signup")
def signup_page(request: Request):
    return render(request, "signup.html", {})


@router.post("/signup")
def signup(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    first_name: str = Form(""),
    last_name: str = Form(""),
    db: Session = Depends(get_db),
):
    email = email.lower().strip()
    error = None
    if not email or "@" not in email:
        error = "Please enter a valid email address"
    elif len(password) < MIN_PASSWORD_LENGTH:
        error = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    elif db.query(User).filter(User.email == email).first():
        error = "An account with this email already exists"
    if error:
        return render(request, "signup.html", {"error": error}, status_code=status.HTTP_400_BAD_REQUEST)

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip() or None,
        last_name=last_name.strip() or None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s signed up", user.id)

    response = RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    set_session(response, user.id)
    return response


@router.post("/logout")
def logout():
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    clear_session(response)
    return response
