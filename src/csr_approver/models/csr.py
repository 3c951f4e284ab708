"""
Pydantic model of a certificates.k8s.io/v1 CertificateSigningRequest.

Only the fields the approver inspects are typed. Everything else (the PEM
request, signer name, usages, issued certificate, ...) is kept as extra data
so an object can be written back to the API server without losing fields.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import (
    APPROVAL_MESSAGE,
    APPROVAL_REASON,
    CONDITION_APPROVED,
    CONDITION_TRUE,
    CSR_GROUP,
    CSR_VERSION,
)


class CSRCondition(BaseModel):
    """A single entry of ``status.conditions``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str = Field(..., description="Condition type (Approved, Denied, Failed)")
    status: str = Field(CONDITION_TRUE, description="Condition status")
    reason: str | None = Field(None, description="Machine-readable reason")
    message: str | None = Field(None, description="Human-readable message")
    last_update_time: datetime | None = Field(None, alias="lastUpdateTime")
    last_transition_time: datetime | None = Field(None, alias="lastTransitionTime")


class CSRMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    uid: str | None = None
    resource_version: str | None = Field(None, alias="resourceVersion")
    labels: dict[str, str] = Field(default_factory=dict)
    deletion_timestamp: datetime | None = Field(None, alias="deletionTimestamp")

    @field_validator("labels", mode="before")
    @classmethod
    def _labels_default(cls, value: Any) -> Any:
        return {} if value is None else value


class CSRSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    username: str | None = Field(None, description="Identity that created the CSR")


class CSRStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    conditions: list[CSRCondition] = Field(default_factory=list)

    @field_validator("conditions", mode="before")
    @classmethod
    def _conditions_default(cls, value: Any) -> Any:
        return [] if value is None else value


class CertificateSigningRequest(BaseModel):
    """
    Snapshot of a CertificateSigningRequest.

    Built either from a kopf event body or from a serialized object returned
    by the Kubernetes API.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_version: str = Field(f"{CSR_GROUP}/{CSR_VERSION}", alias="apiVersion")
    kind: str = "CertificateSigningRequest"
    metadata: CSRMetadata
    spec: CSRSpec = Field(default_factory=CSRSpec)
    status: CSRStatus = Field(default_factory=CSRStatus)

    @field_validator("spec", "status", mode="before")
    @classmethod
    def _empty_section(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "CertificateSigningRequest":
        """
        Build a snapshot from a resource body.

        Args:
            body: Raw object as a mapping (kopf Body or sanitized API object)

        Returns:
            Parsed CertificateSigningRequest

        Raises:
            pydantic.ValidationError: If the body is not a well-formed CSR
        """
        return cls.model_validate(dict(body))

    def to_body(self) -> dict[str, Any]:
        """Serialize back to a camelCase, JSON-ready body for the API server."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels

    @property
    def username(self) -> str | None:
        return self.spec.username

    @property
    def conditions(self) -> list[CSRCondition]:
        return self.status.conditions

    @property
    def is_deleting(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def with_condition(self, condition: CSRCondition) -> "CertificateSigningRequest":
        """Return a copy with ``condition`` appended to the existing conditions."""
        updated = self.model_copy(deep=True)
        updated.status.conditions.append(condition)
        return updated


def approval_condition(now: datetime) -> CSRCondition:
    """Build the Approved condition this operator adds to eligible CSRs."""
    return CSRCondition(
        type=CONDITION_APPROVED,
        status=CONDITION_TRUE,
        reason=APPROVAL_REASON,
        message=APPROVAL_MESSAGE,
        last_update_time=now,
        last_transition_time=now,
    )
