import logging
import os
import subprocess
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marquee.api.responses import register_exception_handlers
from marquee.config import get_settings
from marquee.database import init_db
from marquee.routes import (
    contact,
    cron,
    family,
    health,
    i18n,
    metrics,
    settings as settings_routes,
    streaming,
    watch_history,
    watchlist,
    webhooks,
)

APP_NAME = "Marquee API"

logger = logging.getLogger("marquee")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def resolve_build_hash(configured: str = "") -> str:
    """BUILD_HASH from the deploy, else the git short hash, else a UTC build timestamp"""
    if configured:
        return configured
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    return datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")


_settings = get_settings()
configure_logging(_settings.log_level)

BUILD_HASH = resolve_build_hash(_settings.build_hash)

app = FastAPI(title=APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(contact.router, prefix="/api", tags=["contact"])
app.include_router(watchlist.router, prefix="/api", tags=["watchlist"])
app.include_router(watch_history.router, prefix="/api", tags=["watch-history"])
app.include_router(family.router, prefix="/api", tags=["family"])
app.include_router(settings_routes.router, prefix="/api", tags=["settings"])
app.include_router(streaming.router, prefix="/api", tags=["streaming"])
app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])

# Scheduled jobs (Bearer CRON_SECRET)
app.include_router(cron.router, prefix="/api", tags=["cron"])

# Admin-only observability (Bearer ADMIN_SECRET)
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(metrics.router, prefix="/api", tags=["metrics"])

app.include_router(i18n.router, prefix="/api", tags=["i18n"])


@app.on_event("startup")
def on_startup():
    init_db()  # Imports every model and creates missing tables

    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info(f"{APP_NAME} started: env={_settings.app_env} routes={route_count} build={BUILD_HASH}")
    if not _settings.streaming_api_url:
        logger.warning("STREAMING_API_URL not set")


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": APP_NAME, "build_hash": BUILD_HASH, "status": "healthy"}
