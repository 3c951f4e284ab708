"""
CertificateSigningRequest handlers - feed eligible CSRs to the reconciler.

kopf delivers create and update events (and resumes existing objects after
a restart). Each handler is gated by an event filter that applies the
eligibility checks to the event body, so ineligible CSRs never reach the
reconciler. The reconciler repeats those checks against fresh state because
the event body may be stale by the time the handler runs.

Handlers are synchronous: kopf runs them in its thread pool, which keeps the
blocking Kubernetes client calls off the event loop.
"""

from typing import Any

import kopf
from pydantic import ValidationError

from csr_approver.constants import CSR_GROUP, CSR_PLURAL, CSR_VERSION
from csr_approver.errors import OperatorError
from csr_approver.models.csr import CertificateSigningRequest
from csr_approver.observability.tracing import traced_handler
from csr_approver.services import CSRApprovalReconciler, is_eligible
from csr_approver.utils.handler_logging import log_handler_entry


def csr_is_eligible(body: kopf.Body, **_: Any) -> bool:
    """Event filter: whether a CSR event is worth reconciling.

    Bodies that do not parse as a CSR are simply not eligible.
    """
    try:
        csr = CertificateSigningRequest.from_body(body)
    except ValidationError:
        return False
    return is_eligible(csr)


def get_reconciler(memo: kopf.Memo) -> CSRApprovalReconciler:
    """Return the reconciler created at startup, creating one if missing."""
    reconciler = memo.get("csr_reconciler")
    if reconciler is None:
        from csr_approver.settings import settings as operator_settings
        from csr_approver.utils.kubernetes import KubernetesCSRStore

        reconciler = CSRApprovalReconciler(
            store=KubernetesCSRStore(), dry_run=operator_settings.dry_run
        )
        memo["csr_reconciler"] = reconciler
    return reconciler


@kopf.on.create(
    CSR_PLURAL, group=CSR_GROUP, version=CSR_VERSION, when=csr_is_eligible
)
@kopf.on.update(
    CSR_PLURAL, group=CSR_GROUP, version=CSR_VERSION, when=csr_is_eligible
)
@kopf.on.resume(
    CSR_PLURAL, group=CSR_GROUP, version=CSR_VERSION, when=csr_is_eligible
)
@traced_handler("reconcile_csr")
def approve_csr(
    name: str,
    memo: kopf.Memo,
    reason: kopf.Reason | None = None,
    **kwargs: Any,
) -> None:
    """
    Approve an eligible CertificateSigningRequest.

    Args:
        name: Name of the CSR
        memo: Operator memo holding the reconciler
        reason: kopf cause (create, update, resume)

    Raises:
        kopf.TemporaryError: For retryable failures such as update conflicts
        kopf.PermanentError: For failures that a retry cannot fix
    """
    handler_type = reason.value if reason is not None else "event"
    log_handler_entry(handler_type, "certificatesigningrequest", name)

    try:
        get_reconciler(memo).reconcile(name)
    except OperatorError as e:
        raise e.as_kopf_error() from e
