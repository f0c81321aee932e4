from notifier.services.pipeline import DeliverySummary, NotificationRequest, send_notification
from notifier.services.push import ExpoPushClient, get_push_client
from notifier.services.templates import NotificationType, build_payload

__all__ = [
    "DeliverySummary",
    "ExpoPushClient",
    "NotificationRequest",
    "NotificationType",
    "build_payload",
    "get_push_client",
    "send_notification",
]
