"""
Health API Routes
Admin-only health of the external streaming backend.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from marquee.auth import require_admin
from marquee.config import Settings, get_settings
from marquee.services.metrics import get_metrics_store
from marquee.utils.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health/streaming", dependencies=[Depends(require_admin)])
def streaming_health(settings: Settings = Depends(get_settings)):
    """
    Status derived from recent streaming backend calls: healthy and degraded
    answer 200, unhealthy (or no backend configured) answers 503.
    """
    if not settings.streaming_api_url.strip():
        logger.error("[Health] Streaming backend not configured")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "service": "streaming",
                "message": "Streaming backend not configured",
                "timestamp": to_iso(utcnow()),
            },
        )

    report = get_metrics_store().get_health_report(operation_prefix="streaming.")
    content = {
        "status": report.status,
        "service": "streaming",
        "operations": report.total_operations,
        "successRate": round(report.success_rate, 2),
        "avgLatency": report.average_latency_ms,
        "lastSuccess": report.last_success,
        "recentErrors": report.recent_errors,
        "timestamp": to_iso(utcnow()),
    }
    return JSONResponse(status_code=503 if report.status == "unhealthy" else 200, content=content)
