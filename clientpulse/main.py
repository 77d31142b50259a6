import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from clientpulse.core.config import get_settings
from clientpulse.core.templating import STATIC_DIR
from clientpulse.routes import auth, automations, clients, dashboard, deals, prioritization, reminders, settings

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=get_settings().app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(clients.router)
app.include_router(deals.router)
app.include_router(reminders.router)
app.include_router(prioritization.router)
app.include_router(automations.router)
app.include_router(settings.router)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
