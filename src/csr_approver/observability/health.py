"""
Health check utilities for the CSR approver.

Reports whether the Kubernetes API is reachable and whether the
ManagedCluster CRD that backs the cluster registry is installed.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..constants import MANAGED_CLUSTER_CRD_NAME

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """Result of a health check operation."""

    name: str
    status: str  # "healthy", "unhealthy", "degraded", "unknown"
    message: str
    details: dict[str, Any] | None = None
    duration: float = 0.0
    timestamp: float = 0.0


class HealthChecker:
    """Performs health checks for the operator."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize health checker.

        Args:
            k8s_client: Kubernetes API client, created on first use if not provided
        """
        self.k8s_client = k8s_client

    @property
    def kubernetes_client(self) -> client.ApiClient:
        if self.k8s_client is None:
            from ..utils.kubernetes import get_kubernetes_client

            self.k8s_client = get_kubernetes_client()
        return self.k8s_client

    async def check_all(self) -> dict[str, HealthCheckResult]:
        """
        Run all health checks.

        Returns:
            Dictionary of health check results keyed by check name
        """
        checks = {
            "kubernetes_api": self.check_kubernetes_api,
            "registry_crd": self.check_registry_crd,
        }

        results = {}
        for name, check in checks.items():
            try:
                results[name] = await check()
            except Exception as e:
                results[name] = HealthCheckResult(
                    name=name,
                    status="unhealthy",
                    message=f"Health check failed: {e}",
                    timestamp=time.time(),
                )

        return results

    async def check_kubernetes_api(self) -> HealthCheckResult:
        """Check Kubernetes API connectivity."""
        start_time = time.time()

        try:
            version_api = client.VersionApi(self.kubernetes_client)
            version = await asyncio.to_thread(version_api.get_code)
            duration = time.time() - start_time

            return HealthCheckResult(
                name="kubernetes_api",
                status="healthy",
                message="Kubernetes API is accessible",
                details={
                    "git_version": getattr(version, "git_version", "unknown"),
                    "response_time_ms": round(duration * 1000, 2),
                },
                duration=duration,
                timestamp=time.time(),
            )

        except ApiException as e:
            duration = time.time() - start_time
            return HealthCheckResult(
                name="kubernetes_api",
                status="unhealthy",
                message=f"Kubernetes API error: {e.reason}",
                details={"status_code": e.status},
                duration=duration,
                timestamp=time.time(),
            )

        except Exception as e:
            duration = time.time() - start_time
            return HealthCheckResult(
                name="kubernetes_api",
                status="unhealthy",
                message=f"Failed to connect to Kubernetes API: {e}",
                duration=duration,
                timestamp=time.time(),
            )

    async def check_registry_crd(self) -> HealthCheckResult:
        """Check that the ManagedCluster CRD is installed."""
        start_time = time.time()

        try:
            api_extensions = client.ApiextensionsV1Api(self.kubernetes_client)
            await asyncio.to_thread(
                api_extensions.read_custom_resource_definition,
                name=MANAGED_CLUSTER_CRD_NAME,
            )
            status = "healthy"
            message = f"CRD {MANAGED_CLUSTER_CRD_NAME} is installed"

        except ApiException as e:
            if e.status == 404:
                # No cluster can be registered, so nothing will be approved
                status = "degraded"
                message = f"CRD {MANAGED_CLUSTER_CRD_NAME} is not installed"
            else:
                status = "unhealthy"
                message = f"Failed to read CRD {MANAGED_CLUSTER_CRD_NAME}: {e.reason}"

        except Exception as e:
            status = "unhealthy"
            message = f"Failed to check CRD {MANAGED_CLUSTER_CRD_NAME}: {e}"

        return HealthCheckResult(
            name="registry_crd",
            status=status,
            message=message,
            duration=time.time() - start_time,
            timestamp=time.time(),
        )

    def get_overall_health(self, results: dict[str, HealthCheckResult]) -> str:
        """
        Determine overall health status from individual check results.

        Args:
            results: Dictionary of health check results

        Returns:
            Overall health status
        """
        if not results:
            return "unknown"

        statuses = [result.status for result in results.values()]

        if "unhealthy" in statuses:
            return "unhealthy"
        elif "degraded" in statuses or "unknown" in statuses:
            return "degraded"
        else:
            return "healthy"

    def to_dict(self, results: dict[str, HealthCheckResult]) -> dict[str, Any]:
        """Convert health check results to a JSON-ready dictionary."""
        return {
            "status": self.get_overall_health(results),
            "timestamp": time.time(),
            "checks": {
                name: {
                    "status": result.status,
                    "message": result.message,
                    "details": result.details,
                    "duration": result.duration,
                    "timestamp": result.timestamp,
                }
                for name, result in results.items()
            },
        }
