"""Push registration: Expo device tokens per user, plus the channel classes clients must create."""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from notifier.api.deps import current_user_id
from notifier.core.channels import get_channels
from notifier.db.session import get_db
from notifier.services.devices import register_device, unregister_device

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterDeviceBody(BaseModel):
    expo_push_token: str = Field(..., min_length=1, max_length=256, description="Expo push token")
    device_os: str = Field(default="ios", pattern="^(ios|android)$")
    app_version: str | None = Field(None, max_length=32)
    device_name: str | None = Field(None, max_length=256)


class UnregisterDeviceBody(BaseModel):
    expo_push_token: str = Field(..., min_length=1, max_length=256)


@router.post("/push/register")
def register_push_token(
    body: RegisterDeviceBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    """
    Register a device for push notifications. Call after the app obtains its Expo token.
    Idempotent: same token is upserted (reassigned to this user and reactivated).
    """
    row, created = register_device(
        db,
        user_id,
        body.expo_push_token,
        device_os=body.device_os,
        app_version=body.app_version,
        device_name=body.device_name,
    )
    return {"ok": True, "id": row.id, "message": "Token registered" if created else "Token already registered"}


@router.post("/push/unregister")
def unregister_push_token(body: UnregisterDeviceBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Deactivate a token on logout. The row is kept for audit."""
    if not unregister_device(db, body.expo_push_token):
        return {"ok": False, "error": "not_found"}
    return {"ok": True}


@router.get("/push/channels")
def list_channels() -> dict[str, Any]:
    """Android channel classes referenced by channelId in push messages."""
    return {"channels": [c.to_dict() for c in get_channels()]}
