"""
Android notification channel classes.

Push messages name a channelId derived from priority; the app must create the same channels
on the device. The definitions live here (served at GET /push/channels) and are registered
once at startup via configure_channels(). Re-invoking it never creates duplicates.
"""
import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any

logger = logging.getLogger(__name__)

CHANNEL_CRITICAL = "critical"
CHANNEL_HIGH = "high"
CHANNEL_DEFAULT = "default"


@dataclass(frozen=True)
class ChannelSpec:
    id: str
    name: str
    importance: str  # Android importance: max | high | default
    vibration_pattern: tuple[int, ...] = (0, 250)
    light_color: str = "#FF6B35"
    sound: str = "default"
    bypass_dnd: bool = False
    show_badge: bool = True
    lockscreen_visibility: str = "public"

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["vibration_pattern"] = list(self.vibration_pattern)
        return d


_DEFAULT_CHANNELS = (
    ChannelSpec(
        id=CHANNEL_CRITICAL,
        name="Critical Alerts",
        importance="max",
        vibration_pattern=(0, 250, 250, 250),
        light_color="#FF0000",
        bypass_dnd=True,
    ),
    ChannelSpec(
        id=CHANNEL_HIGH,
        name="Ride Requests",
        importance="high",
        vibration_pattern=(0, 250, 250, 250),
    ),
    ChannelSpec(
        id=CHANNEL_DEFAULT,
        name="General Notifications",
        importance="default",
    ),
)

_channels: dict[str, ChannelSpec] = {}
_lock = threading.Lock()


def configure_channels() -> list[ChannelSpec]:
    """Register the built-in channel classes. Idempotent; returns the registered channels."""
    with _lock:
        added = 0
        for spec in _DEFAULT_CHANNELS:
            if spec.id not in _channels:
                _channels[spec.id] = spec
                added += 1
        if added:
            logger.info("Configured %s notification channel(s)", added)
        return list(_channels.values())


def get_channels() -> list[ChannelSpec]:
    """Registered channels (empty until configure_channels has run)."""
    with _lock:
        return list(_channels.values())


def channel_for_priority(priority: str) -> str:
    """Channel id for a template priority: critical -> critical, high -> high, else default."""
    if priority == "critical":
        return CHANNEL_CRITICAL
    if priority == "high":
        return CHANNEL_HIGH
    return CHANNEL_DEFAULT


def reset_channels() -> None:
    """Forget registered channels (tests)."""
    with _lock:
        _channels.clear()
