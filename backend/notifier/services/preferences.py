"""
Preference filter: narrow a recipient list by each user's per-category toggle.

Critical types skip this entirely. Everything else fails open:
  - a type with no category mapping goes to everyone (warning logged),
  - a user without a preferences row is opted in,
  - a preference store error sends to the whole batch.
Only an explicit False for the category drops a user.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.models.notification_preference import NotificationPreference
from notifier.services.templates import CRITICAL_TYPES, NotificationType, is_critical

logger = logging.getLogger(__name__)

# Preference columns, in display order
CATEGORIES = (
    "ride_requests",
    "ride_status_updates",
    "event_updates",
    "dd_request_updates",
    "dd_session_reminders",
    "sep_failure_alerts",
    "dd_revocation_alerts",
)

# Stored but informational: critical types never consult them, and users cannot turn them off
SAFETY_CATEGORIES = frozenset({"sep_failure_alerts", "dd_revocation_alerts"})

_T = NotificationType

CATEGORY_FOR_TYPE: dict[NotificationType, str] = {
    _T.RIDE_REQUEST: "ride_requests",
    _T.RIDE_ACCEPTED: "ride_status_updates",
    _T.RIDE_PICKED_UP: "ride_status_updates",
    _T.RIDE_CANCELLED: "ride_status_updates",
    _T.VERIFICATION_FAILURE: "sep_failure_alerts",
    _T.STATUS_REVOKED: "dd_revocation_alerts",
    _T.SESSION_STARTED: "dd_session_reminders",
    _T.SESSION_REMINDER: "dd_session_reminders",
    _T.DD_REQUEST_APPROVED: "dd_request_updates",
    _T.DD_REQUEST_REJECTED: "dd_request_updates",
    _T.EVENT_ACTIVE: "event_updates",
    _T.EVENT_CANCELLED: "event_updates",
    _T.DD_ASSIGNED: "event_updates",
}


def _check_categories() -> None:
    unknown = sorted(set(CATEGORY_FOR_TYPE.values()) - set(CATEGORIES))
    if unknown:
        raise RuntimeError(f"Preference mapping names unknown columns: {unknown}")
    for ntype in CRITICAL_TYPES:
        if CATEGORY_FOR_TYPE.get(ntype) not in SAFETY_CATEGORIES:
            raise RuntimeError(f"Critical type {ntype.value} must map to a safety category")


_check_categories()


def category_for(notification_type: NotificationType) -> str | None:
    return CATEGORY_FOR_TYPE.get(notification_type)


def filter_by_preferences(db: Session, user_ids: list[str], notification_type: NotificationType) -> list[str]:
    """Recipients who should get this type. Input order is kept; critical types pass unchanged."""
    if is_critical(notification_type):
        logger.info("Notification type %s is critical, skipping preference check", notification_type.value)
        return list(user_ids)
    if not user_ids:
        return []

    column_name = category_for(notification_type)
    if column_name is None:
        logger.warning("No preference mapping found for notification type: %s", notification_type.value)
        return list(user_ids)

    column = getattr(NotificationPreference, column_name)
    try:
        rows = (
            db.query(NotificationPreference.user_id, column)
            .filter(NotificationPreference.user_id.in_(user_ids))
            .all()
        )
    except SQLAlchemyError as e:
        # Nothing has been written yet in this request; drop the failed read transaction
        logger.error("Error fetching notification preferences (sending to all): %s", e)
        db.rollback()
        return list(user_ids)

    opted_out = {user_id for user_id, enabled in rows if enabled is False}
    kept = [uid for uid in user_ids if uid not in opted_out]
    logger.info(
        "Filtered %s users to %s based on preferences for %s",
        len(user_ids),
        len(kept),
        notification_type.value,
    )
    return kept


# --- Read / update (preferences screen) ---


def preferences_to_dict(row: NotificationPreference | None) -> dict[str, bool]:
    """Category flags for a user; missing row means everything enabled."""
    if row is None:
        return {c: True for c in CATEGORIES}
    return {c: bool(getattr(row, c)) for c in CATEGORIES}


def get_preferences(db: Session, user_id: str) -> dict[str, bool]:
    row = db.query(NotificationPreference).filter(NotificationPreference.user_id == user_id).first()
    return preferences_to_dict(row)


def update_preferences(db: Session, user_id: str, changes: dict[str, Any]) -> dict[str, bool]:
    """
    Apply category toggles (upsert). Unknown keys raise ValueError; so does disabling a
    safety category, which cannot be turned off.
    """
    unknown = sorted(set(changes) - set(CATEGORIES))
    if unknown:
        raise ValueError(f"Unknown preference categories: {unknown}")
    locked = sorted(c for c in SAFETY_CATEGORIES if changes.get(c) is False)
    if locked:
        raise ValueError(f"Safety alerts cannot be disabled: {locked}")

    row = db.query(NotificationPreference).filter(NotificationPreference.user_id == user_id).first()
    if row is None:
        row = NotificationPreference(user_id=user_id)
        db.add(row)
    for key, value in changes.items():
        setattr(row, key, bool(value))
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    return preferences_to_dict(row)
