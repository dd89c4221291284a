"""Prometheus metrics describing the discovery loop itself."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

RESULT_SUCCESS = "success"
RESULT_FAILURE = "failure"


class DiscoveryMetrics:
    """Collectors for one daemon, kept in their own registry."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.targets = Gauge(
            "gcesd_targets",
            "Number of targets discovered, by job name",
            ["job"],
            registry=self.registry,
        )
        self.sync_duration = Histogram(
            "gcesd_sync_duration_seconds",
            "Duration of the GCE api to prometheus target sync operation",
            registry=self.registry,
        )
        self.sync_result = Counter(
            "gcesd_sync",
            "Count of the GCE api to prometheus target sync operation, labeled by result",
            ["result"],
            registry=self.registry,
        )
        self.target_writes = Counter(
            "gcesd_target_writes",
            "Number of times that the output file is updated",
            registry=self.registry,
        )
        for result in (RESULT_SUCCESS, RESULT_FAILURE):
            self.sync_result.labels(result=result)

    def record_targets(self, jobs: Iterable[str], counts: Mapping[str, int]) -> None:
        """Set the per-job gauge; configured jobs without targets report 0."""
        for job in dict.fromkeys([*jobs, *counts]):
            self.targets.labels(job=job).set(counts.get(job, 0))

    def record_cycle(self, success: bool, duration: float) -> None:
        self.sync_duration.observe(duration)
        self.sync_result.labels(result=RESULT_SUCCESS if success else RESULT_FAILURE).inc()

    def record_write(self) -> None:
        self.target_writes.inc()

    def serve(self, address: str, port: int) -> None:
        """Expose the registry over HTTP from a background thread."""
        start_http_server(port, addr=address or "0.0.0.0", registry=self.registry)
        logger.info("Serving metrics on %s:%d", address or "0.0.0.0", port)
