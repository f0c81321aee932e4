"""
Send push notifications via the Expo Push API.

Tokens are sent in batches of at most 100 (the gateway ceiling). Each batch is one POST; a
failed batch (network error, non-2xx, unreadable reply) is retried with exponential backoff
(1s, 2s, 4s by default) inside an explicit per-batch deadline. A batch that never succeeds
yields a uniform error ticket for each of its tokens carrying the last error seen.

The gateway answers with tickets positionally aligned to the request array; results keep that
alignment, so results[i].token == tokens[i] for the whole call.
"""
from __future__ import annotations

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from notifier.config import settings
from notifier.core.channels import channel_for_priority
from notifier.core.constants import (
    GATEWAY_BATCH_LIMIT,
    MISSING_TICKET_MESSAGE,
    TICKET_ERROR,
    TICKET_OK,
    UNKNOWN_ERROR_MESSAGE,
)
from notifier.core.errors import GatewayError
from notifier.services.templates import NotificationPayload, Priority, Sound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushTicket:
    """Gateway outcome for one message."""

    status: str
    id: str | None = None
    message: str | None = None
    error: str | None = None  # details.error, e.g. DeviceNotRegistered

    @property
    def ok(self) -> bool:
        return self.status == TICKET_OK

    @classmethod
    def failure(cls, message: str, error: str | None = None) -> "PushTicket":
        return cls(status=TICKET_ERROR, message=message, error=error)

    @classmethod
    def from_json(cls, raw: Any) -> "PushTicket":
        if not isinstance(raw, dict):
            return cls.failure(MISSING_TICKET_MESSAGE)
        if raw.get("status") == TICKET_OK:
            return cls(status=TICKET_OK, id=raw.get("id"))
        details = raw.get("details") if isinstance(raw.get("details"), dict) else {}
        return cls.failure(raw.get("message") or UNKNOWN_ERROR_MESSAGE, details.get("error"))


@dataclass(frozen=True)
class DeliveryResult:
    token: str
    ticket: PushTicket
    attempts: int = 1


def expo_priority(priority: Priority) -> str:
    """critical|high -> high, normal -> normal, low -> default."""
    if priority in (Priority.CRITICAL, Priority.HIGH):
        return "high"
    if priority == Priority.LOW:
        return "default"
    return "normal"


def wire_sound(sound: Sound, critical_sound: str | None = None) -> str | None:
    if sound == Sound.NONE:
        return None
    if sound == Sound.CRITICAL:
        return critical_sound or settings.critical_sound_name
    return "default"


def build_message(token: str, payload: NotificationPayload, critical_sound: str | None = None) -> dict[str, Any]:
    return {
        "to": token,
        "title": payload.title,
        "body": payload.body,
        "data": payload.data,
        "priority": expo_priority(payload.priority),
        "sound": wire_sound(payload.sound, critical_sound),
        "channelId": channel_for_priority(payload.priority.value),
    }


class ExpoPushClient:
    """Batched Expo push sender with per-batch retry, backoff and deadline."""

    def __init__(
        self,
        *,
        url: str | None = None,
        access_token: str | None = None,
        batch_size: int | None = None,
        max_retries: int | None = None,
        backoff_base_seconds: float | None = None,
        backoff_jitter_seconds: float | None = None,
        request_timeout_seconds: float | None = None,
        batch_deadline_seconds: float | None = None,
        max_concurrent_batches: int | None = None,
        critical_sound: str | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url or settings.expo_push_url
        self.access_token = settings.expo_access_token if access_token is None else access_token
        size = settings.push_batch_size if batch_size is None else batch_size
        self.batch_size = max(1, min(size, GATEWAY_BATCH_LIMIT))
        self.max_retries = settings.push_max_retries if max_retries is None else max(0, max_retries)
        self.backoff_base = (
            settings.push_backoff_base_seconds if backoff_base_seconds is None else backoff_base_seconds
        )
        self.backoff_jitter = (
            settings.push_backoff_jitter_seconds if backoff_jitter_seconds is None else backoff_jitter_seconds
        )
        self.request_timeout = (
            settings.push_request_timeout_seconds if request_timeout_seconds is None else request_timeout_seconds
        )
        self.batch_deadline = (
            settings.push_batch_deadline_seconds if batch_deadline_seconds is None else batch_deadline_seconds
        )
        concurrency = settings.push_max_concurrent_batches if max_concurrent_batches is None else max_concurrent_batches
        self.max_concurrent_batches = max(1, concurrency)
        self.critical_sound = critical_sound
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    def _headers(self) -> dict[str, str]:
        h = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            h["Authorization"] = f"Bearer {self.access_token}"
        return h

    def backoff_for(self, attempt: int) -> float:
        """Delay before retry `attempt` (1-based): base * 2**(attempt-1), plus optional jitter."""
        delay = self.backoff_base * (2 ** (attempt - 1))
        if self.backoff_jitter > 0:
            delay += random.uniform(0, self.backoff_jitter)
        return delay

    def _post(self, client: httpx.Client, messages: list[dict[str, Any]], timeout: float) -> list[Any]:
        """One POST. Returns the ticket array or raises GatewayError."""
        try:
            r = client.post(self.url, json=messages, headers=self._headers(), timeout=timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise GatewayError(f"Expo Push API request failed: {e}") from e
        if not r.is_success:
            raise GatewayError(f"Expo Push API error: {r.status_code} {r.reason_phrase}")
        try:
            body = r.json()
        except ValueError as e:
            raise GatewayError("Expo Push API returned a non-JSON body") from e
        tickets = body.get("data") if isinstance(body, dict) else None
        if not isinstance(tickets, list):
            raise GatewayError("Expo Push API response has no ticket array")
        return tickets

    def _send_batch(
        self, client: httpx.Client, batch: list[str], payload: NotificationPayload
    ) -> list[DeliveryResult]:
        messages = [build_message(token, payload, self.critical_sound) for token in batch]
        started = self._clock()
        last_error: str | None = None
        attempts = 0

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = self.backoff_for(attempt)
                if self._clock() - started + delay >= self.batch_deadline:
                    logger.error(
                        "Batch deadline (%ss) reached after %s attempt(s); giving up",
                        self.batch_deadline,
                        attempts,
                    )
                    break
                logger.warning(
                    "Retrying batch after %.1fs (attempt %s/%s)", delay, attempt, self.max_retries
                )
                self._sleep(delay)
            remaining = self.batch_deadline - (self._clock() - started)
            if remaining <= 0:
                break
            attempts += 1
            try:
                tickets = self._post(client, messages, timeout=min(self.request_timeout, remaining))
            except GatewayError as e:
                last_error = str(e)
                logger.warning(
                    "Error sending batch (attempt %s/%s): %s", attempt + 1, self.max_retries + 1, last_error
                )
                continue
            if len(tickets) != len(batch):
                logger.warning("Gateway returned %s tickets for %s messages", len(tickets), len(batch))
            logger.info("Sent batch of %s notifications (attempt %s)", len(batch), attempt + 1)
            return [
                DeliveryResult(
                    token=token,
                    ticket=PushTicket.from_json(tickets[i] if i < len(tickets) else None),
                    attempts=attempts,
                )
                for i, token in enumerate(batch)
            ]

        logger.error("Failed to send batch of %s after %s attempt(s): %s", len(batch), attempts, last_error)
        ticket = PushTicket.failure(last_error or UNKNOWN_ERROR_MESSAGE)
        return [DeliveryResult(token=token, ticket=ticket, attempts=attempts) for token in batch]

    def send(self, tokens: list[str], payload: NotificationPayload) -> list[DeliveryResult]:
        """Deliver payload to every token. Output is aligned with input."""
        if not tokens:
            return []
        batches = [tokens[i : i + self.batch_size] for i in range(0, len(tokens), self.batch_size)]
        logger.info("Sending %s notifications via Expo Push API in %s batch(es)", len(tokens), len(batches))

        with httpx.Client(timeout=self.request_timeout, transport=self._transport) as client:
            if self.max_concurrent_batches == 1 or len(batches) == 1:
                per_batch = [self._send_batch(client, b, payload) for b in batches]
            else:
                workers = min(len(batches), self.max_concurrent_batches)
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push_batch") as executor:
                    futures = [executor.submit(self._send_batch, client, b, payload) for b in batches]
                    # Collect in submission order, not completion order
                    per_batch = [f.result() for f in futures]

        results = [r for batch_results in per_batch for r in batch_results]
        failed = sum(1 for r in results if not r.ticket.ok)
        if failed:
            logger.info("%s of %s tickets were errors", failed, len(results))
        return results


_client: ExpoPushClient | None = None
_client_lock = threading.Lock()


def get_push_client() -> ExpoPushClient:
    """Process-wide client built from settings (FastAPI dependency)."""
    global _client
    with _client_lock:
        if _client is None:
            _client = ExpoPushClient()
        return _client
