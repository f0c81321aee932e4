"""
Device token directory: register/unregister Expo push tokens and look up active ones.

A token is globally unique; registering a known token upserts the row (it may move to another
user when someone else signs in on the same device).
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from notifier.core.constants import TOKEN_LOG_PREFIX
from notifier.models.user_device import UserDevice

logger = logging.getLogger(__name__)


def register_device(
    db: Session,
    user_id: str,
    token: str,
    *,
    device_os: str | None = None,
    app_version: str | None = None,
    device_name: str | None = None,
) -> tuple[UserDevice, bool]:
    """Upsert by token and reactivate. Returns (row, created)."""
    token = token.strip()
    now = datetime.now(timezone.utc)
    row = db.query(UserDevice).filter(UserDevice.expo_push_token == token).first()
    created = row is None
    if created:
        row = UserDevice(expo_push_token=token, user_id=user_id)
        db.add(row)
    row.user_id = user_id
    row.device_os = device_os
    row.app_version = app_version
    row.device_name = device_name
    row.is_active = True
    row.last_used_at = now
    row.updated_at = now
    db.commit()
    logger.info(
        "%s push token %s... for user %s",
        "Registered" if created else "Refreshed",
        token[:TOKEN_LOG_PREFIX],
        user_id,
    )
    return row, created


def unregister_device(db: Session, token: str) -> bool:
    """Mark a token inactive (logout). Row is kept. Returns False if the token is unknown."""
    updated = deactivate_tokens(db, [token.strip()])
    db.commit()
    return updated > 0


def deactivate_tokens(db: Session, tokens: list[str]) -> int:
    """Set is_active = False for the given tokens. Idempotent; caller commits."""
    if not tokens:
        return 0
    return (
        db.query(UserDevice)
        .filter(UserDevice.expo_push_token.in_(tokens))
        .update(
            {UserDevice.is_active: False, UserDevice.updated_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
    )


def tokens_for(db: Session, user_ids: list[str]) -> dict[str, list[str]]:
    """Active tokens grouped by user. Users without an active token are absent from the map."""
    if not user_ids:
        return {}
    rows = (
        db.query(UserDevice.user_id, UserDevice.expo_push_token)
        .filter(UserDevice.user_id.in_(user_ids), UserDevice.is_active.is_(True))
        .order_by(UserDevice.id)
        .all()
    )
    by_user: dict[str, list[str]] = defaultdict(list)
    for user_id, token in rows:
        by_user[user_id].append(token)
    return dict(by_user)
