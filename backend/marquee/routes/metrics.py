"""
Metrics API Routes
Admin-only view of outbound operation metrics, as JSON or Prometheus text.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from marquee.auth import require_admin
from marquee.services.metrics import format_uptime, get_metrics_store, render_prometheus
from marquee.utils.clock import to_iso, utcnow

router = APIRouter()


@router.get("/metrics", dependencies=[Depends(require_admin)])
def get_metrics(output_format: Literal["json", "prometheus"] = Query("json", alias="format")):
    report = get_metrics_store().get_health_report()

    if output_format == "prometheus":
        return Response(content=render_prometheus(report), media_type=CONTENT_TYPE_LATEST)

    content = {
        "status": report.status,
        "uptime": report.uptime_ms,
        "performance": {
            "operations": report.total_operations,
            "successRate": round(report.success_rate, 2),
            "avgLatency": report.average_latency_ms,
            "p95Latency": report.p95_latency_ms,
        },
        "uptimeHuman": format_uptime(report.uptime_ms),
        "timestamp": to_iso(utcnow()),
    }
    return JSONResponse(status_code=503 if report.status == "unhealthy" else 200, content=content)
