from functools import lru_cache
import os


class Settings:
    app_name: str = "ClientPulse CRM"
    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./clientpulse.db")
    session_cookie: str = "clientpulse_session"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_timeout: float = float(os.getenv("OPENAI_TIMEOUT", "30"))
    max_image_bytes: int = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))


@lru_cache
def get_settings() -> Settings:
    return Settings()
