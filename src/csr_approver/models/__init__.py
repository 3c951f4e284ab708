"""
Pydantic models for the resources the CSR approver reads and writes.
"""

from .csr import (
    CertificateSigningRequest,
    CSRCondition,
    CSRMetadata,
    CSRSpec,
    CSRStatus,
    approval_condition,
)

__all__ = [
    "CertificateSigningRequest",
    "CSRCondition",
    "CSRMetadata",
    "CSRSpec",
    "CSRStatus",
    "approval_condition",
]
