"""Unit tests for operator health checks."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.rest import ApiException

from csr_approver.observability.health import HealthChecker, HealthCheckResult


@pytest.fixture
def checker():
    return HealthChecker(k8s_client=MagicMock())


class TestKubernetesAPICheck:
    @pytest.mark.asyncio
    async def test_healthy(self, checker):
        with patch(
            "csr_approver.observability.health.client.VersionApi"
        ) as mock_version_api:
            mock_version_api.return_value.get_code.return_value = MagicMock(
                git_version="v1.30.0"
            )
            result = await checker.check_kubernetes_api()

        assert result.status == "healthy"
        assert result.details["git_version"] == "v1.30.0"

    @pytest.mark.asyncio
    async def test_api_error(self, checker):
        with patch(
            "csr_approver.observability.health.client.VersionApi"
        ) as mock_version_api:
            mock_version_api.return_value.get_code.side_effect = ApiException(
                status=401, reason="Unauthorized"
            )
            result = await checker.check_kubernetes_api()

        assert result.status == "unhealthy"
        assert result.details == {"status_code": 401}

    @pytest.mark.asyncio
    async def test_api_call_runs_off_event_loop(self, checker):
        called_from = []

        def get_code():
            called_from.append(threading.get_ident())
            return MagicMock(git_version="v1.30.0")

        with patch(
            "csr_approver.observability.health.client.VersionApi"
        ) as mock_version_api:
            mock_version_api.return_value.get_code.side_effect = get_code
            await checker.check_kubernetes_api()

        assert called_from
        assert called_from[0] != threading.get_ident()


class TestRegistryCRDCheck:
    @pytest.mark.asyncio
    async def test_installed(self, checker):
        with patch("csr_approver.observability.health.client.ApiextensionsV1Api"):
            result = await checker.check_registry_crd()

        assert result.status == "healthy"

    @pytest.mark.asyncio
    async def test_missing_crd_is_degraded(self, checker):
        with patch(
            "csr_approver.observability.health.client.ApiextensionsV1Api"
        ) as mock_api:
            mock_api.return_value.read_custom_resource_definition.side_effect = (
                ApiException(status=404)
            )
            result = await checker.check_registry_crd()

        assert result.status == "degraded"
        assert "managedclusters.cluster.open-cluster-management.io" in result.message


class TestOverallHealth:
    def result(self, status: str) -> HealthCheckResult:
        return HealthCheckResult(name=status, status=status, message="")

    def test_empty(self, checker):
        assert checker.get_overall_health({}) == "unknown"

    def test_unhealthy_wins(self, checker):
        results = {"a": self.result("healthy"), "b": self.result("unhealthy")}
        assert checker.get_overall_health(results) == "unhealthy"

    def test_degraded(self, checker):
        results = {"a": self.result("healthy"), "b": self.result("degraded")}
        assert checker.get_overall_health(results) == "degraded"

    def test_to_dict(self, checker):
        data = checker.to_dict({"a": self.result("healthy")})
        assert data["status"] == "healthy"
        assert data["checks"]["a"]["status"] == "healthy"
