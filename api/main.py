from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트의 .env 파일 명시적 로딩
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI

from feedsync.settings import get_settings
from feedsync.utils.logging import configure_logging, get_logger

from .routes import router

logger = get_logger(__name__)


def create_app() -> FastAPI:
    try:
        settings = get_settings()
        configure_logging(settings.structlog_level, json_enabled=settings.log_json)
    except RuntimeError as exc:
        # settings are validated again per request; start anyway so /healthz answers
        configure_logging("INFO")
        logger.warning("settings.invalid_at_startup", extra={"error": str(exc)})

    app = FastAPI(title="Feed Sync API", version="0.1.0")
    app.include_router(router)

    @app.get("/healthz", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
