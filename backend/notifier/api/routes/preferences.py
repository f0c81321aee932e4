"""Notification preferences API. Missing row = everything enabled; safety alerts cannot be disabled."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from notifier.api.deps import current_user_id
from notifier.core.errors import STATUS_BAD_REQUEST
from notifier.db.session import get_db
from notifier.services.preferences import get_preferences, update_preferences

router = APIRouter()
logger = logging.getLogger(__name__)


class PreferencesBody(BaseModel):
    ride_requests: bool | None = None
    ride_status_updates: bool | None = None
    event_updates: bool | None = None
    dd_request_updates: bool | None = None
    dd_session_reminders: bool | None = None
    sep_failure_alerts: bool | None = None
    dd_revocation_alerts: bool | None = None


@router.get("/notification-preferences")
def read_preferences(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    return {"user_id": user_id, "preferences": get_preferences(db, user_id)}


@router.put("/notification-preferences")
def write_preferences(
    body: PreferencesBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """Update only the categories present in the body."""
    changes = body.model_dump(exclude_none=True)
    try:
        prefs = update_preferences(db, user_id, changes)
    except ValueError as e:
        raise HTTPException(status_code=STATUS_BAD_REQUEST, detail=str(e))
    logger.info("Updated notification preferences for %s: %s", user_id, sorted(changes))
    return {"user_id": user_id, "preferences": prefs}
