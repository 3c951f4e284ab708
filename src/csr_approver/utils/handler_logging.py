"""Shared logging utilities for kopf handlers."""

import logging
from typing import Any

from ..constants import HANDLER_ENTRY_LOG_LEVEL

logger = logging.getLogger(__name__)


def log_handler_entry(
    handler_type: str,
    resource_type: str,
    name: str,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log handler invocation at configurable level.

    This provides visibility into which handlers are being called,
    useful for debugging issues where handlers appear to not be invoked.

    The log level is controlled by the HANDLER_ENTRY_LOG_LEVEL environment
    variable (default: INFO). Set to DEBUG to reduce noise in production.

    Args:
        handler_type: Type of handler (create, update, resume)
        resource_type: Type of resource
        name: Resource name
        extra: Additional context to include in structured log
    """
    log_extra = {
        "handler_type": handler_type,
        "resource_type": resource_type,
        "resource_name": name,
        "handler_phase": "invoked",
    }
    if extra:
        log_extra.update(extra)

    logger.log(
        HANDLER_ENTRY_LOG_LEVEL,
        f"Handler invoked: {handler_type} {resource_type}/{name}",
        extra=log_extra,
    )
