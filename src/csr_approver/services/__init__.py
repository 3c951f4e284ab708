"""
Service layer for the CSR approver.

Contains the eligibility checks and the approval reconciler, independent of
the kopf handlers that drive them.
"""

from .csr_reconciler import CSRApprovalReconciler, ReconcileResult
from .eligibility import is_eligible

__all__ = [
    "CSRApprovalReconciler",
    "ReconcileResult",
    "is_eligible",
]
