from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from clientpulse.core.session import clear_flash, read_flash

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


def render(request: Request, name: str, context: dict, status_code: int = 200):
    message = read_flash(request)
    response = templates.TemplateResponse(request, name, {**context, "flash": message}, status_code=status_code)
    if message:
        clear_flash(response)
    return response
