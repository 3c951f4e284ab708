"""
Kubernetes utilities for the CSR approver.

This module provides client construction and the store the reconciler reads
from and writes to:
- CertificateSigningRequests (certificates.k8s.io/v1, cluster-scoped)
- ManagedCluster registry entries (cluster.open-cluster-management.io/v1)

API errors and connection failures are translated into the operator error
hierarchy here, so the reconciler only deals with "absent", "conflict" and
"retryable" outcomes.
"""

import logging
from typing import Any, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from ..constants import (
    CSR_PLURAL,
    MANAGED_CLUSTER_GROUP,
    MANAGED_CLUSTER_PLURAL,
    MANAGED_CLUSTER_VERSION,
)
from ..errors import ConfigurationError, ConflictError, KubernetesAPIError
from ..models.csr import CertificateSigningRequest

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    Tries in-cluster configuration first (when running in a pod) and falls
    back to the local kubeconfig for development.

    Returns:
        Configured Kubernetes API client

    Raises:
        ConfigurationError: If neither configuration can be loaded
    """
    try:
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise ConfigurationError(
                f"Unable to load Kubernetes configuration: {e}",
                user_action="Run in-cluster with a service account or set KUBECONFIG",
            ) from e

    return client.ApiClient()


def translate_api_exception(
    e: ApiException, resource: str, name: str
) -> KubernetesAPIError | ConflictError:
    """
    Map an ApiException to the operator error hierarchy.

    409 becomes a ConflictError. Server errors and failures without an HTTP
    status are retryable; other client errors are not.
    """
    if e.status == 409:
        return ConflictError(resource=resource, name=name, cause=e)

    retryable = e.status is None or e.status >= 500 or e.status == 429
    return KubernetesAPIError(
        message=f"Request for {resource} '{name}' failed with status {e.status}",
        reason=e.reason,
        retryable=retryable,
        cause=e,
    )


def translate_transport_error(
    e: HTTPError, resource: str, name: str
) -> KubernetesAPIError:
    """Map a connection-level failure (timeout, refused, TLS) to a retryable error."""
    return KubernetesAPIError(
        message=f"Request for {resource} '{name}' did not reach the API server: {e}",
        retryable=True,
        cause=e,
    )


class CSRStore(Protocol):
    """Authoritative store consulted and updated by the approval reconciler."""

    def get_csr(self, name: str) -> CertificateSigningRequest | None: ...

    def get_cluster_registry_entry(self, name: str) -> dict[str, Any] | None: ...

    def submit_approval(
        self, csr: CertificateSigningRequest
    ) -> CertificateSigningRequest: ...


class KubernetesCSRStore:
    """CSRStore backed by the Kubernetes API server."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize the store.

        Args:
            k8s_client: Kubernetes API client, created on first use if not provided
        """
        self.k8s_client = k8s_client

    @property
    def kubernetes_client(self) -> client.ApiClient:
        """Get or create Kubernetes API client."""
        if self.k8s_client is None:
            self.k8s_client = get_kubernetes_client()
        return self.k8s_client

    def _to_model(self, obj: Any) -> CertificateSigningRequest:
        body = self.kubernetes_client.sanitize_for_serialization(obj)
        return CertificateSigningRequest.from_body(body)

    def get_csr(self, name: str) -> CertificateSigningRequest | None:
        """
        Read a CertificateSigningRequest.

        Args:
            name: CSR name

        Returns:
            The CSR, or None if it does not exist
        """
        certificates_api = client.CertificatesV1Api(self.kubernetes_client)
        try:
            obj = certificates_api.read_certificate_signing_request(name=name)
        except ApiException as e:
            if e.status == 404:
                return None
            raise translate_api_exception(e, CSR_PLURAL, name) from e
        except HTTPError as e:
            raise translate_transport_error(e, CSR_PLURAL, name) from e
        return self._to_model(obj)

    def get_cluster_registry_entry(self, name: str) -> dict[str, Any] | None:
        """
        Read the ManagedCluster registered under ``name``.

        Returns:
            The ManagedCluster object, or None if no such cluster is registered
        """
        custom_api = client.CustomObjectsApi(self.kubernetes_client)
        try:
            return custom_api.get_cluster_custom_object(
                group=MANAGED_CLUSTER_GROUP,
                version=MANAGED_CLUSTER_VERSION,
                plural=MANAGED_CLUSTER_PLURAL,
                name=name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise translate_api_exception(e, MANAGED_CLUSTER_PLURAL, name) from e
        except HTTPError as e:
            raise translate_transport_error(e, MANAGED_CLUSTER_PLURAL, name) from e

    def submit_approval(
        self, csr: CertificateSigningRequest
    ) -> CertificateSigningRequest:
        """
        Write the CSR's conditions through the approval subresource.

        The body carries ``metadata.resourceVersion`` so the API server rejects
        the update if the CSR changed since it was read.

        Raises:
            ConflictError: If the CSR was modified concurrently
            KubernetesAPIError: For any other API failure
        """
        certificates_api = client.CertificatesV1Api(self.kubernetes_client)
        try:
            obj = certificates_api.replace_certificate_signing_request_approval(
                name=csr.name, body=csr.to_body()
            )
        except ApiException as e:
            raise translate_api_exception(e, CSR_PLURAL, csr.name) from e
        except HTTPError as e:
            raise translate_transport_error(e, CSR_PLURAL, csr.name) from e
        return self._to_model(obj)
