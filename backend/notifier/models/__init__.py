from notifier.models.notification import Notification
from notifier.models.notification_preference import NotificationPreference
from notifier.models.user import User
from notifier.models.user_device import UserDevice

__all__ = [
    "Notification",
    "NotificationPreference",
    "User",
    "UserDevice",
]
