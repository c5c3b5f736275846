"""
In-memory metrics for outbound operations (streaming backend, email, payment relay).

Keeps the last MAX_METRICS operations per process and emits one JSON log line
per operation so an external log pipeline can aggregate across instances.
"""

import json
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, Iterator, List, Optional

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily

from marquee.utils.clock import to_iso, utcnow

logger = logging.getLogger(__name__)

MAX_METRICS = 1000
RECENT_ERRORS = 10
DEGRADED_BELOW = 0.9
UNHEALTHY_BELOW = 0.5


@dataclass
class OperationMetric:
    operation: str
    timestamp: datetime
    duration_ms: float
    success: bool
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    status: str  # healthy|degraded|unhealthy
    uptime_ms: int
    total_operations: int
    successful_operations: int
    failed_operations: int
    average_latency_ms: int
    p95_latency_ms: float
    p99_latency_ms: float
    recent_errors: List[Dict[str, str]]
    last_success: Optional[str] = None

    @property
    def success_rate(self) -> float:
        """Percentage; 100 when nothing has been recorded yet."""
        if self.total_operations == 0:
            return 100.0
        return self.successful_operations / self.total_operations * 100


class MetricsStore:
    def __init__(self, max_metrics: int = MAX_METRICS, log_details: bool = False):
        self._metrics: Deque[OperationMetric] = deque(maxlen=max_metrics)
        self._lock = threading.Lock()
        self._start = time.monotonic()
        self.log_details = log_details

    def add(self, metric: OperationMetric) -> None:
        with self._lock:
            self._metrics.append(metric)
        self._log_structured(metric)

    def _log_structured(self, metric: OperationMetric) -> None:
        entry: Dict[str, Any] = {
            "timestamp": to_iso(metric.timestamp),
            "level": "info" if metric.success else "error",
            "operation": metric.operation,
            "duration_ms": round(metric.duration_ms, 2),
            "success": metric.success,
        }
        # Error text can carry upstream details; only logged when enabled
        if self.log_details and metric.error:
            entry["error"] = metric.error
        entry.update(metric.metadata)
        logger.log(logging.INFO if metric.success else logging.ERROR, json.dumps(entry, default=str))

    def get_metrics(self, since: Optional[datetime] = None) -> List[OperationMetric]:
        with self._lock:
            metrics = list(self._metrics)
        if since is None:
            return metrics
        return [m for m in metrics if m.timestamp >= since]

    def get_health_report(self, operation_prefix: Optional[str] = None) -> HealthReport:
        metrics = self.get_metrics()
        if operation_prefix:
            metrics = [m for m in metrics if m.operation.startswith(operation_prefix)]

        total = len(metrics)
        successful = sum(1 for m in metrics if m.success)
        durations = sorted(m.duration_ms for m in metrics)
        average = sum(durations) / total if total else 0

        def percentile(fraction: float) -> float:
            if not durations:
                return 0
            index = min(int(total * fraction), total - 1)
            return round(durations[index], 2)

        recent_errors = [
            {"timestamp": to_iso(m.timestamp), "operation": m.operation, "error": m.error or "Unknown error"}
            for m in metrics
            if not m.success
        ][-RECENT_ERRORS:]

        last_success = next((m for m in reversed(metrics) if m.success), None)

        success_ratio = successful / total if total else 1
        if success_ratio < UNHEALTHY_BELOW:
            status = "unhealthy"
        elif success_ratio < DEGRADED_BELOW:
            status = "degraded"
        else:
            status = "healthy"

        return HealthReport(
            status=status,
            uptime_ms=int((time.monotonic() - self._start) * 1000),
            total_operations=total,
            successful_operations=successful,
            failed_operations=total - successful,
            average_latency_ms=round(average),
            p95_latency_ms=percentile(0.95),
            p99_latency_ms=percentile(0.99),
            recent_errors=recent_errors,
            last_success=to_iso(last_success.timestamp) if last_success else None,
        )

    def clear(self) -> None:
        with self._lock:
            self._metrics.clear()


_metrics_store = MetricsStore()


def get_metrics_store() -> MetricsStore:
    return _metrics_store


@contextmanager
def track_operation(operation: str, **metadata: Any) -> Iterator[Dict[str, Any]]:
    """
    Time the wrapped block and record it. Exceptions are recorded as failures
    and re-raised. The yielded dict can be filled with extra metadata.
    """
    extra: Dict[str, Any] = dict(metadata)
    started = time.perf_counter()
    timestamp = utcnow()
    try:
        yield extra
    except Exception as e:
        get_metrics_store().add(
            OperationMetric(
                operation=operation,
                timestamp=timestamp,
                duration_ms=(time.perf_counter() - started) * 1000,
                success=False,
                error=str(e) or type(e).__name__,
                metadata=extra,
            )
        )
        raise
    get_metrics_store().add(
        OperationMetric(
            operation=operation,
            timestamp=timestamp,
            duration_ms=(time.perf_counter() - started) * 1000,
            success=True,
            metadata=extra,
        )
    )


def format_uptime(uptime_ms: int) -> str:
    """'1d 2h 3m 4s'"""
    seconds = uptime_ms // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    return f"{days}d {hours % 24}h {minutes % 60}m {seconds % 60}s"


HEALTH_STATUS_VALUES = {"healthy": 0, "degraded": 1, "unhealthy": 2}


class HealthReportCollector:
    """Exposes a HealthReport as Prometheus gauges over the current window."""

    def __init__(self, report: HealthReport, prefix: str = "marquee_upstream"):
        self.report = report
        self.prefix = prefix

    def collect(self):
        report = self.report
        rows = [
            ("operations", "Operations in the current window", report.total_operations),
            ("operations_successful", "Successful operations in the current window", report.successful_operations),
            ("operations_failed", "Failed operations in the current window", report.failed_operations),
            ("success_rate", "Success rate percentage", round(report.success_rate, 2)),
            ("latency_average_ms", "Average latency in milliseconds", report.average_latency_ms),
            ("latency_p95_ms", "P95 latency in milliseconds", report.p95_latency_ms),
            ("latency_p99_ms", "P99 latency in milliseconds", report.p99_latency_ms),
            ("uptime_seconds", "Process uptime in seconds", report.uptime_ms // 1000),
            (
                "health_status",
                "Health status (0=healthy, 1=degraded, 2=unhealthy)",
                HEALTH_STATUS_VALUES[report.status],
            ),
        ]
        for name, documentation, value in rows:
            yield GaugeMetricFamily(f"{self.prefix}_{name}", documentation, value=value)


def render_prometheus(report: HealthReport, prefix: str = "marquee_upstream") -> bytes:
    registry = CollectorRegistry()
    registry.register(HealthReportCollector(report, prefix))
    return generate_latest(registry)
