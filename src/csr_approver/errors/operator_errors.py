"""
Operator error hierarchy with categorization and retry logic.

This module defines the error types raised by the CSR store and reconciler,
providing clear categorization and integration with kopf's retry mechanisms.
"""

import kopf

from ..constants import CONFLICT_RETRY_DELAY, DEFAULT_RETRY_DELAY


class OperatorError(Exception):
    """
    Base error class for all operator-related exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = True,
        delay: int = DEFAULT_RETRY_DELAY,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description
            category: Error category (api, conflict, configuration, external)
            retryable: Whether kopf should retry this operation
            delay: Suggested retry delay in seconds
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.delay = delay
        self.user_action = user_action
        self.cause = cause

    def as_kopf_error(self):
        """Convert to appropriate kopf exception type."""
        if self.retryable:
            return kopf.TemporaryError(str(self), delay=self.delay)
        else:
            return kopf.PermanentError(str(self))

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class TemporaryError(OperatorError):
    """Temporary error that should be retried."""

    def __init__(
        self,
        message: str,
        delay: int = DEFAULT_RETRY_DELAY,
        user_action: str | None = None,
    ):
        super().__init__(
            message=message,
            category="temporary",
            retryable=True,
            delay=delay,
            user_action=user_action
            or "Wait for automatic retry or check system status",
        )


class ExternalServiceError(OperatorError):
    """Error communicating with external services."""

    def __init__(
        self,
        service: str,
        message: str,
        retryable: bool = True,
        delay: int = DEFAULT_RETRY_DELAY,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        action = user_action or f"Check {service} connectivity and credentials"
        super().__init__(
            message=f"{service} error: {message}",
            category="external",
            retryable=retryable,
            delay=delay,
            user_action=action,
            cause=cause,
        )


class KubernetesAPIError(ExternalServiceError):
    """Error communicating with Kubernetes API."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        retryable: bool = True,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"

        # Some K8s errors are not retryable
        non_retryable_reasons = {"Forbidden", "Unauthorized", "Invalid"}
        if reason in non_retryable_reasons:
            retryable = False

        super().__init__(
            service="Kubernetes API",
            message=message,
            retryable=retryable,
            user_action="Check RBAC permissions and cluster connectivity",
            cause=cause,
        )


class ConflictError(OperatorError):
    """Optimistic concurrency collision when writing a resource.

    Always retryable: the retry re-reads the latest object and re-runs the
    approval guards, so concurrent writers converge.
    """

    def __init__(self, resource: str, name: str, cause: Exception | None = None):
        super().__init__(
            message=f"Conflict updating {resource} '{name}': object was modified",
            category="conflict",
            retryable=True,
            delay=CONFLICT_RETRY_DELAY,
            cause=cause,
        )
        self.resource = resource
        self.name = name


class ConfigurationError(OperatorError):
    """Error in operator configuration."""

    def __init__(
        self, message: str, retryable: bool = False, user_action: str | None = None
    ):
        super().__init__(
            message=message,
            category="configuration",
            retryable=retryable,
            user_action=user_action or "Review and correct configuration",
        )
