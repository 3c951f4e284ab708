"""Unit tests for the CertificateSigningRequest model."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from csr_approver.models.csr import (
    CertificateSigningRequest,
    CSRCondition,
    approval_condition,
)
from tests.unit.factories import make_csr, make_csr_body


class TestFromBody:
    def test_typed_fields(self):
        csr = make_csr()

        assert csr.name == "csr-1"
        assert csr.metadata.resource_version == "1"
        assert csr.labels == {"open-cluster-management.io/cluster-name": "alpha"}
        assert csr.username == "system:serviceaccount:alpha:alpha-bootstrap-sa"
        assert csr.conditions == []
        assert not csr.is_deleting

    def test_null_sections_default_to_empty(self):
        body = make_csr_body()
        body["metadata"]["labels"] = None
        body["spec"] = None
        body["status"] = None

        csr = CertificateSigningRequest.from_body(body)

        assert csr.labels == {}
        assert csr.username is None
        assert csr.conditions == []

    def test_null_conditions(self):
        body = make_csr_body()
        body["status"] = {"conditions": None}
        assert CertificateSigningRequest.from_body(body).conditions == []

    def test_deletion_timestamp(self):
        csr = make_csr(deletionTimestamp="2024-05-01T12:00:00Z")
        assert csr.is_deleting

    def test_missing_metadata_is_invalid(self):
        with pytest.raises(ValidationError):
            CertificateSigningRequest.from_body({"spec": {"username": "x"}})

    def test_non_string_label_is_invalid(self):
        body = make_csr_body()
        body["metadata"]["labels"] = {"open-cluster-management.io/cluster-name": 7}
        with pytest.raises(ValidationError):
            CertificateSigningRequest.from_body(body)


class TestToBody:
    def test_preserves_untyped_fields(self):
        body = make_csr_body(
            conditions=[
                {
                    "type": "Failed",
                    "status": "True",
                    "reason": "SignerError",
                    "lastUpdateTime": "2024-05-01T10:00:00Z",
                }
            ]
        )
        body["status"]["certificate"] = "Y2VydA=="

        out = CertificateSigningRequest.from_body(body).to_body()

        assert out["spec"]["request"] == body["spec"]["request"]
        assert out["spec"]["signerName"] == "kubernetes.io/kube-apiserver-client"
        assert out["spec"]["usages"] == body["spec"]["usages"]
        assert out["status"]["certificate"] == "Y2VydA=="
        assert out["metadata"]["resourceVersion"] == "1"
        assert out["status"]["conditions"][0]["reason"] == "SignerError"
        assert "lastUpdateTime" in out["status"]["conditions"][0]
        assert "last_update_time" not in out["status"]["conditions"][0]

    def test_omits_absent_fields(self):
        out = make_csr().to_body()
        assert "deletionTimestamp" not in out["metadata"]


class TestApprovalCondition:
    def test_content(self):
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
        condition = approval_condition(now)

        assert condition.type == "Approved"
        assert condition.status == "True"
        assert condition.reason == "AutoApprovedByCSRController"
        assert condition.message == (
            "The managedcluster-import-controller auto approval "
            "automatically approved this CSR"
        )
        assert condition.last_update_time == now
        assert condition.last_transition_time == now

    def test_with_condition_appends_to_copy(self):
        existing = {"type": "Failed", "status": "True"}
        csr = make_csr(conditions=[existing])
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

        updated = csr.with_condition(approval_condition(now))

        assert [c.type for c in updated.conditions] == ["Failed", "Approved"]
        assert [c.type for c in csr.conditions] == ["Failed"]

    def test_serialized_condition_uses_api_field_names(self):
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
        body = make_csr().with_condition(approval_condition(now)).to_body()

        condition = body["status"]["conditions"][0]
        assert condition["type"] == "Approved"
        assert condition["lastUpdateTime"].startswith("2024-05-01T12:00:00")

    def test_condition_defaults_status_true(self):
        assert CSRCondition(type="Approved").status == "True"
