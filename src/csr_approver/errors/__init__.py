"""
Error handling module for the CSR approver.

This module provides an error hierarchy that integrates with kopf
and separates retryable store failures from permanent ones.
"""

from .operator_errors import (
    ConfigurationError,
    ConflictError,
    ExternalServiceError,
    KubernetesAPIError,
    OperatorError,
    TemporaryError,
)

__all__ = [
    "OperatorError",
    "TemporaryError",
    "ExternalServiceError",
    "KubernetesAPIError",
    "ConflictError",
    "ConfigurationError",
]
