"""
Notification template registry: one immutable template per notification type.

A template fixes priority and sound and has three pure builders (title, body, data) over the
request's data bag. Builders never fail on missing fields; they fall back to a readable
placeholder ("A rider", "an event") so a slightly incomplete event still produces a notification.

The outbound data bag always carries `screen` + nested `params` so a client can route a tapped
notification without this service knowing the app's navigation tree.

The table is fixed: add a type by adding a NotificationType member and an entry here.
_check_registry() runs at import, so a missing entry fails startup instead of returning 400s.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from notifier.core.errors import UnknownTemplate


class NotificationType(str, Enum):
    RIDE_REQUEST = "ride-request"
    RIDE_ACCEPTED = "ride-accepted"
    RIDE_PICKED_UP = "ride-picked-up"
    RIDE_CANCELLED = "ride-cancelled"
    VERIFICATION_FAILURE = "verification-failure"
    STATUS_REVOKED = "status-revoked"
    SESSION_STARTED = "session-started"
    SESSION_REMINDER = "session-reminder"
    DD_REQUEST_APPROVED = "dd-request-approved"
    DD_REQUEST_REJECTED = "dd-request-rejected"
    EVENT_ACTIVE = "event-active"
    EVENT_CANCELLED = "event-cancelled"
    DD_ASSIGNED = "dd-assigned"
    DD_REQUEST_CREATED = "dd-request-created"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class Sound(str, Enum):
    DEFAULT = "default"
    CRITICAL = "critical"
    NONE = "none"


# Safety-relevant: bypass user opt-out entirely
CRITICAL_TYPES = frozenset({NotificationType.VERIFICATION_FAILURE, NotificationType.STATUS_REVOKED})

# Names emitted by the database triggers (underscored, pre-rename)
_LEGACY_ALIASES = {
    "sep-failure": NotificationType.VERIFICATION_FAILURE,
    "dd-revoked": NotificationType.STATUS_REVOKED,
    "dd-session-started": NotificationType.SESSION_STARTED,
    "dd-session-reminder": NotificationType.SESSION_REMINDER,
}


@dataclass(frozen=True)
class NotificationTemplate:
    type: NotificationType
    priority: Priority
    sound: Sound
    build_title: Callable[[Mapping[str, Any]], str]
    build_body: Callable[[Mapping[str, Any]], str]
    build_data: Callable[[Mapping[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class NotificationPayload:
    """Rendered notification, shared by the transport and the history log."""

    type: NotificationType
    title: str
    body: str
    data: dict[str, Any]
    priority: Priority
    sound: Sound


def _field(data: Mapping[str, Any], key: str, placeholder: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        return placeholder
    return str(value)


def _route(
    ntype: NotificationType,
    screen: str,
    child: str | None = None,
    *id_keys: str,
) -> Callable[[Mapping[str, Any]], dict[str, Any]]:
    """Data builder: inbound bag + type + screen/params routing. Ids absent from data are omitted."""

    def build(data: Mapping[str, Any]) -> dict[str, Any]:
        if child:
            ids = {k: data[k] for k in id_keys if data.get(k) is not None}
            params: dict[str, Any] = {"screen": child, "params": ids}
        else:
            params = {}
        return {**data, "type": ntype.value, "screen": screen, "params": params}

    return build


def _const(text: str) -> Callable[[Mapping[str, Any]], str]:
    return lambda data: text


def _ride_accepted_body(data: Mapping[str, Any]) -> str:
    car = data.get("carInfo")
    suffix = f" - {car}" if car else ""
    return f"{_field(data, 'ddName', 'Your driver')} is on the way!{suffix}"


def _event_cancelled_body(data: Mapping[str, Any]) -> str:
    reason = data.get("reason")
    suffix = f" Reason: {reason}" if reason else ""
    return f"{_field(data, 'eventName', 'An event')} has been cancelled.{suffix}"


_T = NotificationType

_TEMPLATES: dict[NotificationType, NotificationTemplate] = {
    _T.RIDE_REQUEST: NotificationTemplate(
        type=_T.RIDE_REQUEST,
        priority=Priority.HIGH,
        sound=Sound.DEFAULT,
        build_title=_const("🚗 New Ride Request"),
        build_body=lambda d: (
            f"{_field(d, 'riderName', 'A rider')} needs a ride from {_field(d, 'pickupLocation', 'their location')}"
        ),
        build_data=_route(_T.RIDE_REQUEST, "Rides", "DDRideQueue", "sessionId", "eventId"),
    ),
    _T.RIDE_ACCEPTED: NotificationTemplate(
        type=_T.RIDE_ACCEPTED,
        priority=Priority.HIGH,
        sound=Sound.DEFAULT,
        build_title=_const("✅ Ride Accepted"),
        build_body=_ride_accepted_body,
        build_data=_route(_T.RIDE_ACCEPTED, "Rides", "RideStatus", "eventId"),
    ),
    _T.RIDE_PICKED_UP: NotificationTemplate(
        type=_T.RIDE_PICKED_UP,
        priority=Priority.NORMAL,
        sound=Sound.DEFAULT,
        build_title=_const("🎉 Ride Started"),
        build_body=lambda d: f"{_field(d, 'ddName', 'Your driver')} has picked you up. Have a safe trip!",
        build_data=_route(_T.RIDE_PICKED_UP, "Rides", "RideStatus", "eventId"),
    ),
    _T.RIDE_CANCELLED: NotificationTemplate(
        type=_T.RIDE_CANCELLED,
        priority=Priority.HIGH,
        sound=Sound.DEFAULT,
        build_title=_const("❌ Ride Cancelled"),
        build_body=lambda d: f"{_field(d, 'ddName', 'Your driver')} cancelled your ride. Please request another ride.",
        build_data=_route(_T.RIDE_CANCELLED, "Rides", "RideStatus", "eventId"),
    ),
    _T.VERIFICATION_FAILURE: NotificationTemplate(
        type=_T.VERIFICATION_FAILURE,
        priority=Priority.CRITICAL,
        sound=Sound.CRITICAL,
        build_title=_const("🚨 SEP Failure Alert"),
        build_body=lambda d: (
            f"{_field(d, 'userName', 'A user')} failed SEP verification at {_field(d, 'eventName', 'an event')}. "
            "Immediate action required."
        ),
        build_data=_route(_T.VERIFICATION_FAILURE, "Admin", "AdminDashboard", "alertId"),
    ),
    _T.STATUS_REVOKED: NotificationTemplate(
        type=_T.STATUS_REVOKED,
        priority=Priority.CRITICAL,
        sound=Sound.CRITICAL,
        build_title=_const("⚠️ DD Status Revoked"),
        build_body=lambda d: (
            f"Your DD status has been revoked. Reason: {_field(d, 'reason', 'Policy violation')}. "
            "Contact an admin for details."
        ),
        build_data=_route(_T.STATUS_REVOKED, "Profile", "ProfileMain"),
    ),
    _T.SESSION_STARTED: NotificationTemplate(
        type=_T.SESSION_STARTED,
        priority=Priority.NORMAL,
        sound=Sound.DEFAULT,
        build_title=_const("🚦 DD Session Started"),
        build_body=lambda d: f"Your DD session for {_field(d, 'eventName', 'the event')} is now active. Stay safe!",
        build_data=_route(_T.SESSION_STARTED, "Events", "DDActiveSession", "sessionId", "eventId"),
    ),
    _T.SESSION_REMINDER: NotificationTemplate(
        type=_T.SESSION_REMINDER,
        priority=Priority.NORMAL,
        sound=Sound.DEFAULT,
        build_title=_const("⏰ DD Session Reminder"),
        build_body=lambda d: (
            f"You've been on duty for 4 hours at {_field(d, 'eventName', 'the event')}. "
            "Remember to take breaks and stay alert."
        ),
        build_data=_route(_T.SESSION_REMINDER, "Events", "DDActiveSession", "sessionId", "eventId"),
    ),
    _T.DD_REQUEST_APPROVED: NotificationTemplate(
        type=_T.DD_REQUEST_APPROVED,
        priority=Priority.HIGH,
        sound=Sound.DEFAULT,
        build_title=_const("🎉 DD Request Approved"),
        build_body=_const("Congratulations! Your DD request has been approved. You can now start DD sessions."),
        build_data=_route(_T.DD_REQUEST_APPROVED, "DDUpgrade"),
    ),
    _T.DD_REQUEST_REJECTED: NotificationTemplate(
        type=_T.DD_REQUEST_REJECTED,
        priority=Priority.NORMAL,
        sound=Sound.DEFAULT,
        build_title=_const("❌ DD Request Not Approved"),
        build_body=lambda d: (
            f"Your DD request was not approved. Reason: {_field(d, 'reason', 'Requirements not met')}. "
            "You can reapply after addressing the issues."
        ),
        build_data=_route(_T.DD_REQUEST_REJECTED, "DDUpgrade"),
    ),
    _T.EVENT_ACTIVE: NotificationTemplate(
        type=_T.EVENT_ACTIVE,
        priority=Priority.NORMAL,
        sound=Sound.DEFAULT,
        build_title=_const("🎊 Event Now Active"),
        build_body=lambda d: f"{_field(d, 'eventName', 'Your event')} is now active! DDs are available for rides.",
        build_data=_route(_T.EVENT_ACTIVE, "Events", "EventDetail", "eventId"),
    ),
    _T.EVENT_CANCELLED: NotificationTemplate(
        type=_T.EVENT_CANCELLED,
        priority=Priority.HIGH,
        sound=Sound.DEFAULT,
        build_title=_const("🚫 Event Cancelled"),
        build_body=_event_cancelled_body,
        build_data=_route(_T.EVENT_CANCELLED, "Events", "EventDetail", "eventId"),
    ),
    _T.DD_ASSIGNED: NotificationTemplate(
        type=_T.DD_ASSIGNED,
        priority=Priority.HIGH,
        sound=Sound.DEFAULT,
        build_title=_const("🚗 You're Assigned as DD"),
        build_body=lambda d: (
            f"You've been assigned as a designated driver for {_field(d, 'eventName', 'an event')}. "
            "Remember to start your session when ready."
        ),
        build_data=_route(_T.DD_ASSIGNED, "Events", "EventDetail", "eventId"),
    ),
    _T.DD_REQUEST_CREATED: NotificationTemplate(
        type=_T.DD_REQUEST_CREATED,
        priority=Priority.HIGH,
        sound=Sound.DEFAULT,
        build_title=_const("📋 New DD Request"),
        build_body=lambda d: (
            f"{_field(d, 'userName', 'A user')} wants to be a DD for {_field(d, 'eventName', 'an event')}. "
            "Review their request."
        ),
        build_data=_route(_T.DD_REQUEST_CREATED, "Events", "EventDetail", "eventId"),
    ),
}

TEMPLATES: Mapping[NotificationType, NotificationTemplate] = MappingProxyType(_TEMPLATES)


def _check_registry() -> None:
    missing = [t.value for t in NotificationType if t not in TEMPLATES]
    if missing:
        raise RuntimeError(f"Notification types without a template: {missing}")
    mismatched = [t.value for t, tpl in TEMPLATES.items() if tpl.type is not t]
    if mismatched:
        raise RuntimeError(f"Templates registered under the wrong type: {mismatched}")


_check_registry()


def parse_type(raw: str | None) -> NotificationType:
    """
    Canonical NotificationType for a type string. Accepts the trigger-side spelling
    (ride_request, sep_failure, dd_revoked, ...). Raises UnknownTemplate otherwise.
    """
    key = (raw or "").strip().lower().replace("_", "-")
    try:
        return NotificationType(key)
    except ValueError:
        pass
    if key in _LEGACY_ALIASES:
        return _LEGACY_ALIASES[key]
    raise UnknownTemplate(raw or "")


def lookup(notification_type: NotificationType | str) -> NotificationTemplate | None:
    """Template for a type, or None when the type is not registered."""
    if isinstance(notification_type, NotificationType):
        return TEMPLATES.get(notification_type)
    try:
        return TEMPLATES.get(parse_type(notification_type))
    except UnknownTemplate:
        return None


def is_critical(notification_type: NotificationType) -> bool:
    return notification_type in CRITICAL_TYPES


def build_payload(notification_type: NotificationType | str, data: Mapping[str, Any] | None) -> NotificationPayload:
    """Render title/body/data for a type. Raises UnknownTemplate if the type has no entry."""
    template = lookup(notification_type)
    if template is None:
        raise UnknownTemplate(str(getattr(notification_type, "value", notification_type)))
    bag = dict(data or {})
    return NotificationPayload(
        type=template.type,
        title=template.build_title(bag),
        body=template.build_body(bag),
        data=template.build_data(bag),
        priority=template.priority,
        sound=template.sound,
    )
