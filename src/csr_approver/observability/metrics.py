"""
Prometheus metrics for the CSR approver.

This module provides metrics collection for reconciliation results,
approval decisions, and the HTTP server that exposes them.
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

# aiohttp is provided transitively by kopf
from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from ..constants import OUTCOME_APPROVED

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

# Metrics definitions
RECONCILIATION_TOTAL = Counter(
    "csr_approver_reconciliation_total",
    "Total number of CSR reconciliation attempts",
    ["result"],
    registry=None,  # Registered in get_metrics_registry()
)

RECONCILIATION_DURATION = Histogram(
    "csr_approver_reconciliation_duration_seconds",
    "Time spent reconciling a CSR",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=None,
)

RECONCILIATION_ERRORS = Counter(
    "csr_approver_reconciliation_errors_total",
    "Total number of CSR reconciliation errors",
    ["error_type", "retryable"],
    registry=None,
)

DECISIONS_TOTAL = Counter(
    "csr_approver_decisions_total",
    "Approval decisions reached, by outcome",
    ["outcome"],
    registry=None,
)

APPROVALS_TOTAL = Counter(
    "csr_approver_approvals_total",
    "CSRs approved, by cluster",
    ["cluster_name"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()
        for metric in [
            RECONCILIATION_TOTAL,
            RECONCILIATION_DURATION,
            RECONCILIATION_ERRORS,
            DECISIONS_TOTAL,
            APPROVALS_TOTAL,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the CSR approver."""

    def __init__(self):
        self.registry = get_metrics_registry()

    @contextmanager
    def track_reconciliation(self) -> Iterator[None]:
        """Context manager counting a reconciliation and timing it."""
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"
            retryable = "true" if getattr(e, "retryable", False) else "false"
            RECONCILIATION_ERRORS.labels(
                error_type=type(e).__name__, retryable=retryable
            ).inc()
            raise
        finally:
            RECONCILIATION_TOTAL.labels(result=result).inc()
            RECONCILIATION_DURATION.observe(time.time() - start_time)

    def record_decision(self, outcome: str, cluster_name: str | None = None) -> None:
        """
        Record the outcome of an approval decision.

        Args:
            outcome: Reconcile outcome code
            cluster_name: Cluster the CSR belongs to, counted on approval
        """
        DECISIONS_TOTAL.labels(outcome=outcome).inc()
        if outcome == OUTCOME_APPROVED and cluster_name:
            APPROVALS_TOTAL.labels(cluster_name=cluster_name).inc()


class MetricsServer:
    """HTTP server for exposing Prometheus metrics and health endpoints."""

    def __init__(self, port: int = 8081, host: str = "0.0.0.0"):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
        """
        self.port = port
        self.host = host
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/health", self._health_handler)
        self.app.router.add_get("/ready", self._ready_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            metrics_data = generate_latest(get_metrics_registry())
            return Response(
                body=metrics_data, headers={"Content-Type": CONTENT_TYPE_LATEST}
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _health_handler(self, request: Request) -> Response:
        """Handle /health endpoint with the full set of health checks."""
        from .health import HealthChecker

        try:
            health_checker = HealthChecker()
            health_results = await health_checker.check_all()
            health_dict = health_checker.to_dict(health_results)
            status_code = (
                200 if health_dict["status"] in ["healthy", "degraded"] else 503
            )
            return json_response(health_dict, status=status_code)
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return json_response(
                {
                    "status": "unhealthy",
                    "error": f"{type(e).__name__}. Check logs for details.",
                    "timestamp": time.time(),
                },
                status=500,
            )

    async def _ready_handler(self, request: Request) -> Response:
        """Handle /ready endpoint for readiness probes."""
        from .health import HealthChecker

        try:
            health_checker = HealthChecker()
            results: dict[str, Any] = {
                "kubernetes_api": await health_checker.check_kubernetes_api()
            }
            ready = results["kubernetes_api"].status == "healthy"
            return json_response(
                {
                    "status": "ready" if ready else "not_ready",
                    "timestamp": time.time(),
                    "checks": {name: r.status for name, r in results.items()},
                },
                status=200 if ready else 503,
            )
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            return json_response(
                {
                    "status": "not_ready",
                    "error": f"{type(e).__name__}. Check logs for details.",
                    "timestamp": time.time(),
                },
                status=503,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint; 200 whenever the server is running."""
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        self.runner = AppRunner(self.app)
        await self.runner.setup()

        self.site = TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        logger.info(f"Metrics available at http://{self.host}:{self.port}/metrics")

    async def stop(self) -> None:
        """Stop the metrics server."""
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Metrics server stopped")


# Global metrics collector instance
metrics_collector = MetricsCollector()
