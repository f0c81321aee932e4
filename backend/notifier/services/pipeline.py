"""
Notification delivery pipeline: one logical event -> per-device pushes + durable history.

request -> render template -> resolve recipients -> preference filter -> active tokens
        -> Expo push (batched, retried) -> retire dead tokens, then log one record per recipient

Each call runs to completion on its own session; nothing is shared between calls except the
stores. The template is rendered before any store is touched, so an unknown type is rejected
with no partial work.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.core.errors import ConfigurationError
from notifier.services.devices import tokens_for
from notifier.services.failures import handle_failures
from notifier.services.notification_log import record_notifications
from notifier.services.preferences import filter_by_preferences
from notifier.services.push import DeliveryResult, ExpoPushClient
from notifier.services.recipients import Target, make_target, resolve_recipients
from notifier.services.templates import NotificationType, build_payload, parse_type

logger = logging.getLogger(__name__)

MSG_NO_RECIPIENTS = "No recipients found"
MSG_ALL_OPTED_OUT = "All recipients have disabled this notification type"
MSG_NO_DEVICES = "Notifications logged (no active devices)"
MSG_SENT = "Notifications sent"


@dataclass(frozen=True)
class NotificationRequest:
    type: NotificationType
    target: Target
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_fields(
        cls,
        type: str | None,
        user_id: str | None = None,
        group_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> "NotificationRequest":
        """Validate raw inbound fields. Raises a ConfigurationError subclass on bad input."""
        if not (type or "").strip():
            raise ConfigurationError("Notification type is required")
        return cls(type=parse_type(type), target=make_target(user_id, group_id), data=dict(data or {}))


@dataclass
class DeliverySummary:
    success: bool
    message: str
    recipients: int = 0
    sent: int = 0
    failed: int = 0
    retired_tokens: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "recipients": self.recipients,
            "sent": self.sent,
            "failed": self.failed,
        }


def send_notification(db: Session, request: NotificationRequest, push_client: ExpoPushClient) -> DeliverySummary:
    """
    Run the whole pipeline for one request and return a summary.
    Resolution and logging errors propagate; preference errors fail open inside the filter;
    token retirement errors are logged (the token is retired next time the gateway reports it).
    """
    payload = build_payload(request.type, request.data)

    recipient_ids = resolve_recipients(db, request.target)
    if not recipient_ids:
        logger.info("No recipients found for %s notification", request.type.value)
        return DeliverySummary(success=True, message=MSG_NO_RECIPIENTS)

    filtered_ids = filter_by_preferences(db, recipient_ids, request.type)
    if not filtered_ids:
        logger.info("All recipients have disabled %s", request.type.value)
        return DeliverySummary(success=True, message=MSG_ALL_OPTED_OUT)

    tokens_by_user = tokens_for(db, filtered_ids)
    results: list[DeliveryResult] = []
    if tokens_by_user:
        logger.info("Found %s users with active devices", len(tokens_by_user))
        all_tokens = [token for uid in filtered_ids for token in tokens_by_user.get(uid, [])]
        results = push_client.send(all_tokens, payload)
    else:
        # Still logged below so users see it in-app on next login
        logger.info("No active device tokens found for recipients")

    sent = sum(1 for r in results if r.ticket.ok)
    failed = len(results) - sent
    if results:
        logger.info("Sent %s notifications successfully, %s failed", sent, failed)

    # Retirement commits on its own, so a failed log write still drops dead tokens
    retired: list[str] = []
    try:
        retired = handle_failures(db, results)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error deactivating tokens: %s", e)

    try:
        record_notifications(db, filtered_ids, payload, results, tokens_by_user)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    return DeliverySummary(
        success=True,
        message=MSG_SENT if tokens_by_user else MSG_NO_DEVICES,
        recipients=len(filtered_ids),
        sent=sent,
        failed=failed,
        retired_tokens=retired,
    )
