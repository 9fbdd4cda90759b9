from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.branchflow.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self, enabled: bool | None = None) -> None:
        self.enabled = settings.METRICS_ENABLED if enabled is None else enabled
        self._registry = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )
        self._rbac_denied_total = Counter(
            "rbac_denied_total",
            "Role checks that denied the request.",
            registry=self._registry,
        )
        self._transfer_conflict_total = Counter(
            "transfer_conflict_total",
            "Transfer saves rejected by the revision check.",
            registry=self._registry,
        )
        self._relocation_total = Counter(
            "relocation_total",
            "Inventory relocation attempts by outcome.",
            ["outcome"],
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def increment_rbac_denied(self) -> None:
        if not self.enabled:
            return
        self._rbac_denied_total.inc()

    def increment_transfer_conflict(self) -> None:
        if not self.enabled:
            return
        self._transfer_conflict_total.inc()

    def record_relocation(self, outcome: str) -> None:
        if not self.enabled:
            return
        self._relocation_total.labels(outcome=outcome).inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
