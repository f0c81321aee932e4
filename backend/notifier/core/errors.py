"""
Centralized error handling for the notification pipeline.
Exception types plus one mapping helper so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing error labels
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_INTERNAL_ERROR = 500

ERR_INVALID_REQUEST = "Invalid request"
ERR_INVALID_TYPE = "Invalid notification type"
ERR_INTERNAL = "Internal server error"


class NotificationError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(NotificationError):
    """Request can never succeed as sent. Rejected before any work is done."""

    label = ERR_INVALID_REQUEST


class UnknownTemplate(ConfigurationError):
    label = ERR_INVALID_TYPE

    def __init__(self, notification_type: str) -> None:
        self.notification_type = notification_type
        super().__init__(f"No template found for type: {notification_type}")


class InvalidTarget(ConfigurationError):
    """Neither or both of userId / groupId were given."""


class RecipientResolutionError(NotificationError):
    """User directory could not be read. Never fail open here: the request would silently vanish."""


class GatewayError(NotificationError):
    """One push attempt failed (network, non-2xx, unreadable reply). Retried by the transport."""


def error_to_response(exc: Exception) -> tuple[int, dict[str, Any]]:
    """
    Map an exception from the pipeline into (status_code, body).
    Configuration errors are the caller's fault (400); everything else is ours (500).
    """
    if isinstance(exc, ConfigurationError):
        return STATUS_BAD_REQUEST, {"error": exc.label, "message": str(exc)}
    return STATUS_INTERNAL_ERROR, {"error": ERR_INTERNAL, "message": str(exc) or exc.__class__.__name__}
