"""
Notification log: one durable record per recipient per request.

Written for every recipient that survived resolution and preference filtering, whether or
not they had a device and whatever the gateway said, so the notification still shows up
in-app on next login. Status per user:
  - any ok ticket             -> sent_at = delivered_at = now ("delivered" = gateway accepted)
  - only error tickets        -> failed_at = now, failure_reason = first error message
  - no tickets (no devices)   -> no timestamps, read = False
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from notifier.core.constants import UNKNOWN_ERROR_MESSAGE
from notifier.models.notification import Notification
from notifier.services.push import DeliveryResult
from notifier.services.templates import NotificationPayload

logger = logging.getLogger(__name__)


def _results_by_user(
    results: list[DeliveryResult], tokens_by_user: dict[str, list[str]]
) -> dict[str, list[DeliveryResult]]:
    owner = {token: user_id for user_id, tokens in tokens_by_user.items() for token in tokens}
    grouped: dict[str, list[DeliveryResult]] = {}
    for r in results:
        user_id = owner.get(r.token)
        if user_id is not None:
            grouped.setdefault(user_id, []).append(r)
    return grouped


def record_notifications(
    db: Session,
    user_ids: list[str],
    payload: NotificationPayload,
    results: list[DeliveryResult],
    tokens_by_user: dict[str, list[str]],
) -> list[Notification]:
    """Insert one Notification per user. Caller commits; store errors propagate."""
    now = datetime.now(timezone.utc)
    by_user = _results_by_user(results, tokens_by_user)
    rows: list[Notification] = []
    for user_id in user_ids:
        user_results = by_user.get(user_id, [])
        has_success = any(r.ticket.ok for r in user_results)
        errors = [r for r in user_results if not r.ticket.ok]
        row = Notification(
            user_id=user_id,
            type=payload.type.value,
            title=payload.title,
            body=payload.body,
            data=payload.data,
            priority=payload.priority.value,
            read=False,
            retry_count=max((max(r.attempts - 1, 0) for r in user_results), default=0),
            created_at=now,
        )
        if has_success:
            row.sent_at = now
            row.delivered_at = now
        elif errors:
            row.failed_at = now
            row.failure_reason = errors[0].ticket.message or UNKNOWN_ERROR_MESSAGE
        rows.append(row)
    db.add_all(rows)
    db.flush()
    logger.info("Logged %s notification records", len(rows))
    return rows
