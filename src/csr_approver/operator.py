#!/usr/bin/env python3
"""
CSR Approver - Main entry point for the Kopf-based CSR auto-approval operator.

The operator watches cluster-scoped CertificateSigningRequests and approves
those created by a registered managed cluster's bootstrap service account.

Usage:
    python -m csr_approver.operator
    # Or with kopf directly:
    kopf run -m csr_approver.operator --all-namespaces

Environment Variables:
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    DRY_RUN: Set to 'true' to log approvals without submitting them
    METRICS_PORT: Port for the Prometheus metrics server
"""

import logging
import random
import sys

import kopf

from csr_approver.constants import KOPF_ANNOTATION_PREFIX

# Importing the handlers module registers its decorators with kopf
from csr_approver.handlers import csr as csr_handler  # noqa: F401
from csr_approver.observability.health import HealthChecker
from csr_approver.observability.logging import OperatorLogger, setup_structured_logging
from csr_approver.observability.metrics import MetricsServer
from csr_approver.observability.tracing import setup_tracing, shutdown_tracing
from csr_approver.services import CSRApprovalReconciler
from csr_approver.settings import settings as operator_settings
from csr_approver.utils.kubernetes import KubernetesCSRStore, get_kubernetes_client

# Global reference to metrics server for cleanup
_global_metrics_server: MetricsServer | None = None


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
        log_health_probes=operator_settings.log_health_probes,
    )


def configure_kopf(settings: kopf.OperatorSettings) -> None:
    """
    Apply operator settings to kopf.

    Handler progress and the last-handled configuration are kept in
    annotations under the operator's own prefix, since a CSR's status is
    owned by the certificates API.
    """
    settings.watching.reconnect_backoff = 1.0

    # Peering for leader election with a random priority per pod
    settings.peering.name = operator_settings.operator_name
    settings.peering.priority = random.randint(0, 32767)
    settings.peering.clusterwide = True

    # Sync handlers run in this many threads
    settings.execution.max_workers = operator_settings.max_workers

    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=KOPF_ANNOTATION_PREFIX
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=KOPF_ANNOTATION_PREFIX,
        key="last-handled-configuration",
    )


@kopf.on.startup()
async def startup_handler(
    settings: kopf.OperatorSettings, memo: kopf.Memo, **_
) -> None:
    """
    Operator startup configuration.

    Configures kopf, tracing and the Kubernetes client, builds the
    reconciler shared by all handler invocations, and starts the metrics
    server.
    """
    logging.info("Starting CSR Approver...")

    configure_kopf(settings)
    logging.info(
        f"Peering priority set to {settings.peering.priority} for leader election"
    )

    setup_tracing(
        enabled=operator_settings.tracing_enabled,
        endpoint=operator_settings.tracing_endpoint,
        service_name=operator_settings.tracing_service_name,
        sample_rate=operator_settings.tracing_sample_rate,
    )

    if operator_settings.dry_run:
        logging.info("Running in DRY-RUN mode - no CSRs will be approved")

    memo.csr_reconciler = CSRApprovalReconciler(
        store=KubernetesCSRStore(get_kubernetes_client()),
        logger=OperatorLogger("csr_approver.reconciler"),
        dry_run=operator_settings.dry_run,
    )

    try:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port, host=operator_settings.metrics_host
        )
        await metrics_server.start()

        global _global_metrics_server
        _global_metrics_server = metrics_server

    except Exception as e:
        logging.error(f"Failed to start metrics server: {e}")
        # Don't fail operator startup if metrics server fails
        logging.warning("Continuing without metrics server")


@kopf.on.cleanup()
async def cleanup_handler(**_) -> None:
    """Stop the metrics server and flush pending spans on shutdown."""
    logging.info("Shutting down CSR Approver...")

    global _global_metrics_server
    if _global_metrics_server:
        try:
            await _global_metrics_server.stop()
        except Exception as e:
            logging.error(f"Error stopping metrics server: {e}")
        _global_metrics_server = None

    shutdown_tracing()


@kopf.on.probe(id="healthz")
async def health_check(**_) -> dict[str, str]:
    """
    Health check probe for Kubernetes liveness/readiness checks.

    Returns:
        Dictionary indicating operator health status
    """
    try:
        health_checker = HealthChecker()
        health_results = await health_checker.check_all()
        return {
            "status": health_checker.get_overall_health(health_results),
            "operator": operator_settings.operator_name,
        }
    except Exception as e:
        logging.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "operator": operator_settings.operator_name,
            "error": str(e),
        }


@kopf.on.probe(id="ready")
async def readiness_check(**_) -> dict[str, str]:
    """
    Readiness check probe - ready once the Kubernetes API answers.

    Returns:
        Dictionary indicating operator readiness
    """
    try:
        result = await HealthChecker().check_kubernetes_api()
        status = "ready" if result.status == "healthy" else "not_ready"
        return {"status": status, "operator": operator_settings.operator_name}
    except Exception as e:
        logging.error(f"Readiness check failed: {e}")
        return {
            "status": "not_ready",
            "operator": operator_settings.operator_name,
            "error": str(e),
        }


def main() -> None:
    """
    Main entry point for the operator.

    Configures logging and runs kopf cluster-wide, since
    CertificateSigningRequests and ManagedClusters are cluster-scoped.
    """
    configure_logging()

    try:
        kopf.run(
            clusterwide=True,
            liveness_endpoint=f"http://0.0.0.0:{operator_settings.liveness_port}/healthz",
        )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
