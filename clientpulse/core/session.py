from fastapi import Request, Response
from itsdangerous import BadSignature, URLSafeSerializer

from clientpulse.core.config import get_settings

settings = get_settings()
serializer = URLSafeSerializer(settings.secret_key, salt="session")
flash_serializer = URLSafeSerializer(settings.secret_key, salt="flash")

FLASH_COOKIE = "clientpulse_flash"


def set_session(response: Response, user_id: int) -> None:
    signed = serializer.dumps({"user_id": user_id})
    response.set_cookie(
        settings.session_cookie,
        signed,
        httponly=True,
        secure=False,
        samesite="lax",
    )
    clear_flash(response)


def clear_session(response: Response) -> None:
    response.delete_cookie(settings.session_cookie)
    clear_flash(response)


def read_session(request: Request) -> int | None:
    raw = request.cookies.get(settings.session_cookie)
    if not raw:
        return None
    try:
        payload = serializer.loads(raw)
        return int(payload.get("user_id"))
    except (BadSignature, TypeError, ValueError):
        return None


def flash(response: Response, title: str, description: str = "", variant: str = "default") -> None:
    """Attach a one-shot toast message that the next rendered page picks up."""
    signed = flash_serializer.dumps({"title": title, "description": description, "variant": variant})
    response.set_cookie(FLASH_COOKIE, signed, httponly=True, samesite="lax")


def read_flash(request: Request) -> dict | None:
    raw = request.cookies.get(FLASH_COOKIE)
    if not raw:
        return None
    try:
        return flash_serializer.loads(raw)
    except BadSignature:
        return None


def clear_flash(response: Response) -> None:
    response.delete_cookie(FLASH_COOKIE)
