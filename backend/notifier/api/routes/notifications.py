"""
Notification history API: records written by the pipeline, read back by the app.

User identified by X-User-Id header or ?user_id=.
Supports: list (with unread filter), mark one read, mark all read.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from notifier.api.deps import current_user_id
from notifier.db.session import get_db
from notifier.models.notification import Notification

router = APIRouter()
logger = logging.getLogger(__name__)


def _iso(dt) -> str | None:
    return dt.isoformat() if dt else None


def _to_dict(r: Notification) -> dict[str, Any]:
    return {
        "id": r.id,
        "type": r.type,
        "title": r.title,
        "body": r.body,
        "data": r.data or {},
        "priority": r.priority,
        "read": bool(r.read),
        "sent_at": _iso(r.sent_at),
        "delivered_at": _iso(r.delivered_at),
        "failed_at": _iso(r.failed_at),
        "failure_reason": r.failure_reason,
        "retry_count": r.retry_count,
        "created_at": _iso(r.created_at),
    }


# --- List ---


@router.get("/notifications")
def list_notifications(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = Query(False),
) -> dict[str, Any]:
    """List the user's notifications, newest first. unread_only=true for the unread view."""
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.read.is_(False))
    rows = q.order_by(Notification.created_at.desc()).limit(limit).all()
    return {"notifications": [_to_dict(r) for r in rows]}


# --- Mark one read ---


@router.patch("/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Mark a single notification as read."""
    row = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Notification not found")
    if not row.read:
        row.read = True
        db.commit()
    return {"ok": True, "id": notification_id}


# --- Mark all read ---


@router.post("/notifications/mark-all-read")
def mark_all_read(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Mark all of the user's notifications as read ('Clear all' in the app)."""
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return {"ok": True, "user_id": user_id, "marked_count": updated}
