"""Shared route dependencies."""
from fastapi import Header, HTTPException, Query

from notifier.config import settings
from notifier.core.errors import STATUS_BAD_REQUEST, STATUS_UNAUTHORIZED


def current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    user_id: str | None = Query(None),
) -> str:
    """Caller's user id from X-User-Id header or ?user_id=. Auth happens upstream (gateway/session)."""
    uid = (x_user_id or user_id or "").strip()
    if not uid:
        raise HTTPException(status_code=STATUS_BAD_REQUEST, detail="X-User-Id header or user_id query is required")
    return uid


def require_webhook_secret(authorization: str | None = Header(None)) -> None:
    """When NOTIFY_WEBHOOK_SECRET is set, the send call must carry it as a bearer token."""
    secret = settings.notify_webhook_secret
    if secret and (authorization or "").strip() != f"Bearer {secret}":
        raise HTTPException(status_code=STATUS_UNAUTHORIZED, detail="Invalid or missing bearer token")
