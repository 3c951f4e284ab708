"""Shared fixtures for CSR approver unit tests."""

import pytest

from csr_approver.services.csr_reconciler import CSRApprovalReconciler
from tests.unit.factories import FIXED_NOW, FakeCSRStore, make_csr_body


@pytest.fixture
def csr_store():
    """Store holding the canonical eligible CSR and a registered cluster."""
    return FakeCSRStore(csrs=[make_csr_body()], clusters=["alpha"])


@pytest.fixture
def reconciler(csr_store):
    return CSRApprovalReconciler(store=csr_store, clock=lambda: FIXED_NOW)
