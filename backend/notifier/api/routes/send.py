"""
Inbound send call, invoked by upstream record-change triggers.

POST /send-notification {type, userId? | groupId?, data}
  200 {success, message, recipients, sent, failed}  processed (possibly zero recipients)
  400 {error, message}                               missing target / unknown type / bad body
  500 {error, message}                               unexpected internal failure
Other methods get 405 from the router.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from notifier.api.deps import require_webhook_secret
from notifier.core.errors import STATUS_INTERNAL_ERROR, error_to_response
from notifier.db.session import get_db
from notifier.services.pipeline import NotificationRequest, send_notification
from notifier.services.push import ExpoPushClient, get_push_client

router = APIRouter()
logger = logging.getLogger(__name__)


class SendNotificationBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str | None = Field(None, description="Notification type, e.g. ride-request (ride_request accepted)")
    user_id: str | None = Field(None, alias="userId", description="Single recipient")
    group_id: str | None = Field(None, alias="groupId", description="All admins of this group")
    data: dict[str, Any] | None = Field(default=None, description="Template fields (riderName, eventName, ...)")


@router.post("/send-notification", dependencies=[Depends(require_webhook_secret)])
def send_notification_route(
    body: SendNotificationBody,
    db: Session = Depends(get_db),
    push_client: ExpoPushClient = Depends(get_push_client),
) -> Any:
    try:
        request = NotificationRequest.from_fields(body.type, body.user_id, body.group_id, body.data)
        summary = send_notification(db, request, push_client)
    except Exception as e:
        status_code, content = error_to_response(e)
        if status_code >= STATUS_INTERNAL_ERROR:
            logger.exception("Error in send-notification: %s", e)
        else:
            logger.warning("Rejected send-notification request: %s", e)
        return JSONResponse(status_code=status_code, content=content)
    return summary.to_dict()
