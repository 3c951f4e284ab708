"""
Approval reconciler for cluster bootstrap CertificateSigningRequests.

Given the name of a CSR that passed the event filter, the reconciler re-reads
it, confirms the requesting cluster is registered, re-checks eligibility on
the fresh object, and appends an Approved condition. Every call performs at
most one write. Retries are left to the caller: retryable failures are raised
as OperatorError and carry the suggested delay.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from opentelemetry import trace

from ..constants import (
    OUTCOME_ALREADY_RESOLVED,
    OUTCOME_APPROVED,
    OUTCOME_CLUSTER_NOT_REGISTERED,
    OUTCOME_CSR_NOT_FOUND,
    OUTCOME_DELETING,
    OUTCOME_DRY_RUN,
    OUTCOME_MISSING_CLUSTER_LABEL,
    OUTCOME_USERNAME_MISMATCH,
)
from ..errors import OperatorError, TemporaryError
from ..models.csr import approval_condition
from ..observability.logging import OperatorLogger
from ..observability.metrics import MetricsCollector, metrics_collector
from ..utils.kubernetes import CSRStore
from .eligibility import (
    expected_username,
    get_approval_type,
    get_cluster_name,
    has_valid_username,
)

RESOURCE_TYPE = "certificatesigningrequest"


def utc_now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


@dataclass(frozen=True)
class ReconcileResult:
    """Terminal result of one reconciliation."""

    outcome: str
    requeue: bool = False

    @property
    def approved(self) -> bool:
        return self.outcome == OUTCOME_APPROVED


class CSRApprovalReconciler:
    """
    Reconciles one CertificateSigningRequest at a time.

    Holds no mutable state of its own, so a single instance can serve
    concurrent reconciliations of different CSRs.
    """

    def __init__(
        self,
        store: CSRStore,
        logger: OperatorLogger | None = None,
        dry_run: bool = False,
        clock: Callable[[], datetime] = utc_now,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the reconciler.

        Args:
            store: Store used to read CSRs and registry entries and to submit approvals
            logger: Logging handle, defaults to one named after this class
            dry_run: Decide and log, but never submit approvals
            clock: Source of the approval timestamp
            metrics: Metrics collector, defaults to the global collector
        """
        self.store = store
        self.logger = logger or OperatorLogger(self.__class__.__name__)
        self.dry_run = dry_run
        self.clock = clock
        self.metrics = metrics or metrics_collector

    def reconcile(self, name: str) -> ReconcileResult:
        """
        Reconcile the CSR called ``name``.

        Args:
            name: CSR name

        Returns:
            ReconcileResult describing the decision

        Raises:
            OperatorError: On store failures the caller should retry
        """
        start_time = time.time()
        self.logger.log_reconciliation_start(
            resource_type=RESOURCE_TYPE, resource_name=name
        )

        with self.metrics.track_reconciliation():
            try:
                result = self._reconcile(name)
            except OperatorError as e:
                self.logger.log_reconciliation_error(
                    resource_type=RESOURCE_TYPE,
                    resource_name=name,
                    error=e,
                    duration=time.time() - start_time,
                )
                raise
            except Exception as e:
                # Wrap unexpected errors as temporary to allow retry
                error = TemporaryError(
                    f"Unexpected error during reconciliation: {str(e)}"
                )
                self.logger.log_reconciliation_error(
                    resource_type=RESOURCE_TYPE,
                    resource_name=name,
                    error=error,
                    duration=time.time() - start_time,
                )
                raise error from e

        self.logger.log_reconciliation_success(
            resource_type=RESOURCE_TYPE,
            resource_name=name,
            outcome=result.outcome,
            duration=time.time() - start_time,
        )
        return result

    def _reconcile(self, name: str) -> ReconcileResult:
        csr = self.store.get_csr(name)
        if csr is None:
            # Deleted between enqueue and processing
            return self._finish(name, OUTCOME_CSR_NOT_FOUND, "CSR no longer exists")

        if csr.is_deleting:
            return self._finish(name, OUTCOME_DELETING, "CSR is being deleted")

        cluster_name = get_cluster_name(csr)
        if not cluster_name:
            return self._finish(
                name, OUTCOME_MISSING_CLUSTER_LABEL, "CSR has no cluster-name label"
            )

        try:
            cluster = self.store.get_cluster_registry_entry(cluster_name)
        except OperatorError as e:
            # A registry read failure is not retried; a later CSR or
            # ManagedCluster change triggers evaluation again.
            self.logger.warning(
                f"Failed to read ManagedCluster {cluster_name}: {e}",
                resource_name=name,
                cluster_name=cluster_name,
                error_type=type(e).__name__,
            )
            cluster = None

        if cluster is None:
            return self._finish(
                name,
                OUTCOME_CLUSTER_NOT_REGISTERED,
                f"Cluster {cluster_name} is not registered, not approving CSR {name}",
                level=logging.INFO,
                cluster_name=cluster_name,
            )

        approval_type = get_approval_type(csr)
        if approval_type is not None:
            return self._finish(
                name,
                OUTCOME_ALREADY_RESOLVED,
                f"CSR {name} is already {approval_type}",
                cluster_name=cluster_name,
            )

        if not has_valid_username(csr, cluster_name):
            return self._finish(
                name,
                OUTCOME_USERNAME_MISMATCH,
                f"CSR {name} was not requested by {expected_username(cluster_name)}",
                cluster_name=cluster_name,
                username=csr.username,
            )

        if self.dry_run:
            return self._finish(
                name,
                OUTCOME_DRY_RUN,
                f"DRY-RUN: would approve CSR {name} for cluster {cluster_name}",
                level=logging.INFO,
                cluster_name=cluster_name,
            )

        self.store.submit_approval(csr.with_condition(approval_condition(self.clock())))
        return self._finish(
            name,
            OUTCOME_APPROVED,
            f"Approved CSR {name} for cluster {cluster_name}",
            level=logging.INFO,
            cluster_name=cluster_name,
        )

    def _finish(
        self,
        name: str,
        outcome: str,
        message: str,
        level: int = logging.DEBUG,
        cluster_name: str | None = None,
        username: str | None = None,
    ) -> ReconcileResult:
        self.logger.log_decision(
            resource_name=name,
            outcome=outcome,
            message=message,
            level=level,
            cluster_name=cluster_name,
            username=username,
        )
        self.metrics.record_decision(outcome, cluster_name=cluster_name)
        trace.get_current_span().set_attribute("csr.outcome", outcome)
        return ReconcileResult(outcome=outcome)
