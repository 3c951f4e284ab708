"""
Eligibility checks for CertificateSigningRequest auto-approval.

A CSR is eligible when it names its cluster through the cluster-name label,
has not been approved or denied yet, and was requested by that cluster's
bootstrap service account. These checks are pure: they look only at the CSR
snapshot they are given, so they can run both as a kopf event filter and as
the reconciler's re-check against freshly read state.
"""

from ..constants import (
    BOOTSTRAP_USERNAME_TEMPLATE,
    CLUSTER_NAME_LABEL,
    TERMINAL_CONDITION_TYPES,
)
from ..models.csr import CertificateSigningRequest


def get_cluster_name(csr: CertificateSigningRequest) -> str:
    """Return the cluster-name label value, or an empty string if absent."""
    return csr.labels.get(CLUSTER_NAME_LABEL, "")


def get_approval_type(csr: CertificateSigningRequest) -> str | None:
    """
    Return the first Approved or Denied condition type on the CSR.

    Args:
        csr: CSR snapshot

    Returns:
        "Approved", "Denied", or None when the CSR is still pending
    """
    for condition in csr.conditions:
        if condition.type in TERMINAL_CONDITION_TYPES:
            return condition.type
    return None


def expected_username(cluster_name: str) -> str:
    """Bootstrap service account identity expected for ``cluster_name``."""
    return BOOTSTRAP_USERNAME_TEMPLATE.format(cluster_name)


def has_valid_username(csr: CertificateSigningRequest, cluster_name: str) -> bool:
    return csr.username == expected_username(cluster_name)


def is_eligible(csr: CertificateSigningRequest) -> bool:
    """Whether the CSR should be auto-approved, judged from the snapshot alone."""
    cluster_name = get_cluster_name(csr)
    return (
        cluster_name != ""
        and get_approval_type(csr) is None
        and has_valid_username(csr, cluster_name)
    )
