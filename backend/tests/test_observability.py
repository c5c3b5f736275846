"""Tests for the admin health and metrics endpoints and the metrics store"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from marquee import main
from marquee.config import Settings
from marquee.main import resolve_build_hash
from marquee.services.metrics import (
    HealthReportCollector,
    MetricsStore,
    OperationMetric,
    format_uptime,
    get_metrics_store,
    render_prometheus,
    track_operation,
)
from marquee.utils.clock import utcnow
from tests.conftest import ADMIN_SECRET, CRON_SECRET

ADMIN = {"Authorization": f"Bearer {ADMIN_SECRET}"}


def _record(operation: str, success: bool, duration_ms: float = 10.0):
    get_metrics_store().add(
        OperationMetric(
            operation=operation,
            timestamp=utcnow(),
            duration_ms=duration_ms,
            success=success,
            error=None if success else "boom",
        )
    )


# ---------------------------------------------------------------------------
# Admin auth
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("path", ["/api/health/streaming", "/api/metrics"])
def test_admin_endpoints_require_secret(client: TestClient, path):
    assert client.get(path).status_code == 401
    assert client.get(path, headers={"Authorization": "Bearer wrong"}).status_code == 401


def test_admin_rejects_non_ascii_authorization(client: TestClient):
    response = client.get("/api/metrics", headers={"Authorization": b"Bearer caf\xe9"})

    assert response.status_code == 401


def test_cron_secret_is_admin_fallback(client: TestClient, settings: Settings):
    settings.admin_secret_value = ""

    assert client.get("/api/metrics", headers={"Authorization": f"Bearer {CRON_SECRET}"}).status_code == 200
    assert client.get("/api/metrics", headers=ADMIN).status_code == 401


def test_admin_without_any_secret(client: TestClient, settings: Settings):
    settings.admin_secret_value = ""
    settings.cron_secret = ""
    settings.app_env = "development"

    assert client.get("/api/metrics").status_code == 401

    settings.app_env = "production"
    assert client.get("/api/metrics").status_code == 500


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


def test_public_health_check(client: TestClient):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["app_name"] == "Marquee API"
    assert response.json()["build_hash"]


def test_build_hash_prefers_configured_value():
    assert resolve_build_hash("abc1234") == "abc1234"


def test_build_hash_falls_back_to_timestamp(monkeypatch):
    def no_git(*args, **kwargs):
        raise OSError("git not installed")

    monkeypatch.setattr(main.subprocess, "run", no_git)

    build_hash = resolve_build_hash()

    assert len(build_hash) == 15
    assert build_hash[8] == "-"


def test_streaming_health_without_backend(client: TestClient, settings: Settings):
    settings.streaming_api_url = ""

    response = client.get("/api/health/streaming", headers=ADMIN)

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["service"] == "streaming"


def test_streaming_health_with_no_traffic_is_healthy(client: TestClient):
    response = client.get("/api/health/streaming", headers=ADMIN)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["operations"] == 0
    assert data["successRate"] == 100
    assert data["lastSuccess"] is None


def test_streaming_health_only_counts_streaming(client: TestClient):
    for _ in range(9):
        _record("streaming.resolve", True)
    _record("streaming.resolve", False)
    _record("email.send", False)
    _record("email.send", False)

    data = client.get("/api/health/streaming", headers=ADMIN).json()

    assert data["operations"] == 10
    assert data["successRate"] == 90
    assert data["status"] == "healthy"
    assert [e["operation"] for e in data["recentErrors"]] == ["streaming.resolve"]


def test_streaming_health_unhealthy_is_503(client: TestClient):
    _record("streaming.resolve", True)
    _record("streaming.resolve", False)
    _record("streaming.resolve", False)

    response = client.get("/api/health/streaming", headers=ADMIN)

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


# ---------------------------------------------------------------------------
# /api/metrics
# ---------------------------------------------------------------------------


def test_metrics_json(client: TestClient):
    _record("streaming.resolve", True, 20)
    _record("email.send", True, 40)

    response = client.get("/api/metrics", headers=ADMIN)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["performance"]["operations"] == 2
    assert data["performance"]["successRate"] == 100
    assert data["performance"]["avgLatency"] == 30
    assert data["uptimeHuman"].endswith("s")
    assert isinstance(data["uptime"], int)


def test_metrics_prometheus(client: TestClient):
    _record("streaming.resolve", True)
    _record("streaming.resolve", False)

    response = client.get("/api/metrics", params={"format": "prometheus"}, headers=ADMIN)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    lines = response.text.splitlines()
    assert "marquee_upstream_operations 2.0" in lines
    assert "marquee_upstream_operations_failed 1.0" in lines
    assert "marquee_upstream_success_rate 50.0" in lines
    assert "marquee_upstream_health_status 1.0" in lines
    assert "# TYPE marquee_upstream_health_status gauge" in lines


def test_metrics_rejects_unknown_format(client: TestClient):
    response = client.get("/api/metrics", params={"format": "xml"}, headers=ADMIN)

    assert response.status_code == 400


# ---------------------------------------------------------------------------
# MetricsStore
# ---------------------------------------------------------------------------


class TestMetricsStore:
    def test_keeps_only_latest(self):
        store = MetricsStore(max_metrics=3)
        for i in range(5):
            store.add(OperationMetric(operation=f"op{i}", timestamp=utcnow(), duration_ms=1, success=True))

        assert [m.operation for m in store.get_metrics()] == ["op2", "op3", "op4"]

    def test_since_filter(self):
        store = MetricsStore()
        now = utcnow()
        store.add(OperationMetric(operation="old", timestamp=now - timedelta(hours=1), duration_ms=1, success=True))
        store.add(OperationMetric(operation="new", timestamp=now, duration_ms=1, success=True))

        assert [m.operation for m in store.get_metrics(since=now - timedelta(minutes=1))] == ["new"]

    def test_degraded_between_thresholds(self):
        store = MetricsStore()
        for success in (True, True, True, False):
            store.add(OperationMetric(operation="x", timestamp=utcnow(), duration_ms=5, success=success))

        report = store.get_health_report()

        assert report.status == "degraded"
        assert report.success_rate == 75
        assert report.failed_operations == 1

    def test_percentiles(self):
        store = MetricsStore()
        for duration in range(1, 101):
            store.add(OperationMetric(operation="x", timestamp=utcnow(), duration_ms=duration, success=True))

        report = store.get_health_report()

        assert report.p95_latency_ms == 96
        assert report.p99_latency_ms == 100
        assert report.average_latency_ms == 50

    def test_track_operation_records_failure_and_reraises(self):
        get_metrics_store().clear()

        with pytest.raises(RuntimeError):
            with track_operation("email.send", provider="resend"):
                raise RuntimeError("smtp down")

        [metric] = get_metrics_store().get_metrics()
        assert metric.success is False
        assert metric.error == "smtp down"
        assert metric.metadata == {"provider": "resend"}
        get_metrics_store().clear()

    def test_track_operation_extra_metadata(self):
        get_metrics_store().clear()

        with track_operation("streaming.resolve") as extra:
            extra["status_code"] = 200

        [metric] = get_metrics_store().get_metrics()
        assert metric.success is True
        assert metric.metadata["status_code"] == 200
        get_metrics_store().clear()


def test_format_uptime():
    assert format_uptime(0) == "0d 0h 0m 0s"
    assert format_uptime(((1 * 24 + 2) * 3600 + 3 * 60 + 4) * 1000) == "1d 2h 3m 4s"


def test_render_prometheus_uses_prefix():
    text = render_prometheus(MetricsStore().get_health_report(), prefix="test").decode()

    lines = text.splitlines()
    assert "# TYPE test_health_status gauge" in lines
    assert "test_health_status 0.0" in lines
    assert "test_operations 0.0" in lines
    assert text.endswith("\n")


def test_collector_yields_one_family_per_gauge():
    store = MetricsStore()
    store.add(OperationMetric(operation="x", timestamp=utcnow(), duration_ms=12, success=False))

    families = {f.name: f for f in HealthReportCollector(store.get_health_report(), prefix="t").collect()}

    assert len(families) == 9
    assert families["t_operations_failed"].samples[0].value == 1
    assert families["t_health_status"].samples[0].value == 2
