"""Unit tests for the Kubernetes-backed CSR store."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes import config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError, ReadTimeoutError

from csr_approver.errors import ConfigurationError, ConflictError, KubernetesAPIError
from csr_approver.services.csr_reconciler import CSRApprovalReconciler
from csr_approver.utils.kubernetes import (
    KubernetesCSRStore,
    get_kubernetes_client,
    translate_api_exception,
)
from tests.unit.factories import make_csr, make_csr_body


@pytest.fixture
def k8s_client():
    """API client whose serializer passes dict bodies through unchanged."""
    mock_client = MagicMock()
    mock_client.sanitize_for_serialization.side_effect = lambda obj: obj
    return mock_client


@pytest.fixture
def certificates_api():
    api = MagicMock()
    with patch(
        "csr_approver.utils.kubernetes.client.CertificatesV1Api", return_value=api
    ):
        yield api


@pytest.fixture
def custom_api():
    api = MagicMock()
    with patch(
        "csr_approver.utils.kubernetes.client.CustomObjectsApi", return_value=api
    ):
        yield api


class TestGetCSR:
    def test_returns_model(self, k8s_client, certificates_api):
        certificates_api.read_certificate_signing_request.return_value = (
            make_csr_body()
        )

        csr = KubernetesCSRStore(k8s_client).get_csr("csr-1")

        certificates_api.read_certificate_signing_request.assert_called_once_with(
            name="csr-1"
        )
        assert csr is not None
        assert csr.name == "csr-1"
        assert csr.username == "system:serviceaccount:alpha:alpha-bootstrap-sa"

    def test_not_found_returns_none(self, k8s_client, certificates_api):
        certificates_api.read_certificate_signing_request.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        assert KubernetesCSRStore(k8s_client).get_csr("csr-1") is None

    def test_server_error_is_retryable(self, k8s_client, certificates_api):
        certificates_api.read_certificate_signing_request.side_effect = ApiException(
            status=503, reason="Service Unavailable"
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            KubernetesCSRStore(k8s_client).get_csr("csr-1")

        assert exc_info.value.retryable
        assert isinstance(exc_info.value.__cause__, ApiException)

    def test_connection_failure_is_retryable(self, k8s_client, certificates_api):
        certificates_api.read_certificate_signing_request.side_effect = MaxRetryError(
            None, "/apis/certificates.k8s.io/v1/certificatesigningrequests/csr-1"
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            KubernetesCSRStore(k8s_client).get_csr("csr-1")

        assert exc_info.value.retryable
        assert isinstance(exc_info.value.__cause__, MaxRetryError)


class TestGetClusterRegistryEntry:
    def test_returns_managed_cluster(self, k8s_client, custom_api):
        cluster = {"metadata": {"name": "alpha"}}
        custom_api.get_cluster_custom_object.return_value = cluster

        result = KubernetesCSRStore(k8s_client).get_cluster_registry_entry("alpha")

        assert result == cluster
        custom_api.get_cluster_custom_object.assert_called_once_with(
            group="cluster.open-cluster-management.io",
            version="v1",
            plural="managedclusters",
            name="alpha",
        )

    def test_not_found_returns_none(self, k8s_client, custom_api):
        custom_api.get_cluster_custom_object.side_effect = ApiException(status=404)

        assert (
            KubernetesCSRStore(k8s_client).get_cluster_registry_entry("alpha") is None
        )

    def test_forbidden_is_not_retryable(self, k8s_client, custom_api):
        custom_api.get_cluster_custom_object.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            KubernetesCSRStore(k8s_client).get_cluster_registry_entry("alpha")

        assert not exc_info.value.retryable

    def test_timeout_is_translated(self, k8s_client, custom_api):
        custom_api.get_cluster_custom_object.side_effect = ReadTimeoutError(
            None, "/apis/cluster.open-cluster-management.io/v1", "Read timed out."
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            KubernetesCSRStore(k8s_client).get_cluster_registry_entry("alpha")

        assert exc_info.value.retryable

    def test_unreachable_registry_is_not_retried_by_reconciler(
        self, k8s_client, certificates_api, custom_api
    ):
        certificates_api.read_certificate_signing_request.return_value = (
            make_csr_body()
        )
        custom_api.get_cluster_custom_object.side_effect = MaxRetryError(
            None, "/apis/cluster.open-cluster-management.io/v1/managedclusters/alpha"
        )
        reconciler = CSRApprovalReconciler(store=KubernetesCSRStore(k8s_client))

        result = reconciler.reconcile("csr-1")

        assert result.outcome == "cluster_not_registered"
        certificates_api.replace_certificate_signing_request_approval.assert_not_called()


class TestSubmitApproval:
    def test_puts_full_body_to_approval_subresource(
        self, k8s_client, certificates_api
    ):
        csr = make_csr()
        certificates_api.replace_certificate_signing_request_approval.side_effect = (
            lambda name, body: body
        )

        result = KubernetesCSRStore(k8s_client).submit_approval(csr)

        call = certificates_api.replace_certificate_signing_request_approval.call_args
        assert call.kwargs["name"] == "csr-1"
        assert call.kwargs["body"]["metadata"]["resourceVersion"] == "1"
        assert call.kwargs["body"]["spec"]["signerName"] == (
            "kubernetes.io/kube-apiserver-client"
        )
        assert result.name == "csr-1"

    def test_conflict(self, k8s_client, certificates_api):
        certificates_api.replace_certificate_signing_request_approval.side_effect = (
            ApiException(status=409, reason="Conflict")
        )

        with pytest.raises(ConflictError) as exc_info:
            KubernetesCSRStore(k8s_client).submit_approval(make_csr())

        assert exc_info.value.retryable
        assert exc_info.value.delay == 1
        assert exc_info.value.name == "csr-1"

    def test_not_found_on_write_is_an_error(self, k8s_client, certificates_api):
        certificates_api.replace_certificate_signing_request_approval.side_effect = (
            ApiException(status=404, reason="Not Found")
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            KubernetesCSRStore(k8s_client).submit_approval(make_csr())

        assert not exc_info.value.retryable

    def test_connection_failure_on_write_is_retryable(
        self, k8s_client, certificates_api
    ):
        certificates_api.replace_certificate_signing_request_approval.side_effect = (
            MaxRetryError(None, "/apis/certificates.k8s.io/v1")
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            KubernetesCSRStore(k8s_client).submit_approval(make_csr())

        assert exc_info.value.retryable


class TestTranslateApiException:
    @pytest.mark.parametrize(
        ("status", "retryable"),
        [(None, True), (429, True), (500, True), (504, True), (400, False)],
    )
    def test_retryability(self, status, retryable):
        error = translate_api_exception(
            ApiException(status=status), "certificatesigningrequests", "csr-1"
        )
        assert isinstance(error, KubernetesAPIError)
        assert error.retryable is retryable

    def test_unauthorized_reason_is_never_retryable(self):
        error = translate_api_exception(
            ApiException(status=500, reason="Unauthorized"), "managedclusters", "a"
        )
        assert not error.retryable


class TestGetKubernetesClient:
    @patch("csr_approver.utils.kubernetes.config.load_kube_config")
    @patch("csr_approver.utils.kubernetes.config.load_incluster_config")
    def test_prefers_incluster(self, mock_incluster, mock_kubeconfig):
        get_kubernetes_client()

        mock_incluster.assert_called_once()
        mock_kubeconfig.assert_not_called()

    @patch("csr_approver.utils.kubernetes.config.load_kube_config")
    @patch(
        "csr_approver.utils.kubernetes.config.load_incluster_config",
        side_effect=config.ConfigException("not in cluster"),
    )
    def test_falls_back_to_kubeconfig(self, mock_incluster, mock_kubeconfig):
        get_kubernetes_client()

        mock_kubeconfig.assert_called_once()

    @patch(
        "csr_approver.utils.kubernetes.config.load_kube_config",
        side_effect=config.ConfigException("no kubeconfig"),
    )
    @patch(
        "csr_approver.utils.kubernetes.config.load_incluster_config",
        side_effect=config.ConfigException("not in cluster"),
    )
    def test_raises_configuration_error(self, mock_incluster, mock_kubeconfig):
        with pytest.raises(ConfigurationError):
            get_kubernetes_client()
