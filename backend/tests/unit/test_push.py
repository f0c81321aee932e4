"""Expo push transport: batching, alignment, retry/backoff, deadline, message shape."""
import json

import httpx
import pytest

from notifier.core.constants import DEVICE_NOT_REGISTERED, MISSING_TICKET_MESSAGE
from notifier.services.push import (
    ExpoPushClient,
    PushTicket,
    build_message,
    expo_priority,
    wire_sound,
)
from notifier.services.templates import NotificationType, Priority, Sound, build_payload

GATEWAY_URL = "https://push.test/--/api/v2/push/send"


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def _client(gateway, **overrides):
    clock = FakeClock()
    kwargs = dict(
        url=GATEWAY_URL,
        access_token="",
        transport=httpx.MockTransport(gateway),
        sleep=clock.sleep,
        clock=clock,
        batch_size=100,
        max_retries=3,
        backoff_base_seconds=1.0,
        backoff_jitter_seconds=0.0,
        batch_deadline_seconds=30.0,
        max_concurrent_batches=1,
    )
    kwargs.update(overrides)
    return ExpoPushClient(**kwargs), clock


@pytest.fixture
def payload():
    return build_payload(NotificationType.RIDE_REQUEST, {"riderName": "Alex"})


def _tokens(n):
    return [f"ExponentPushToken[{i:04d}]" for i in range(n)]


def test_empty_token_list_makes_no_requests(gateway, payload):
    client, _ = _client(gateway)
    assert client.send([], payload) == []
    assert gateway.requests == []


def test_batches_of_at_most_100_and_results_aligned(gateway, payload):
    client, _ = _client(gateway)
    tokens = _tokens(250)
    results = client.send(tokens, payload)
    assert [len(b) for b in gateway.requests] == [100, 100, 50]
    assert [r.token for r in results] == tokens
    assert gateway.sent_tokens == tokens
    assert all(r.ticket.ok for r in results)
    assert results[0].ticket.id == "ticket-1-0"
    assert results[249].ticket.id == "ticket-3-49"


def test_concurrent_batches_keep_alignment(gateway, payload):
    client, _ = _client(gateway, max_concurrent_batches=4)
    tokens = _tokens(350)
    results = client.send(tokens, payload)
    assert len(gateway.requests) == 4
    assert [r.token for r in results] == tokens
    assert all(r.ticket.ok for r in results)


def test_batch_size_is_capped_at_gateway_limit(gateway, payload):
    client, _ = _client(gateway, batch_size=500)
    assert client.batch_size == 100
    client.send(_tokens(150), payload)
    assert [len(b) for b in gateway.requests] == [100, 50]


def test_always_failing_gateway_is_tried_exactly_four_times(gateway, payload):
    gateway.always_fail_status = 500
    client, clock = _client(gateway)
    results = client.send(_tokens(3), payload)
    assert len(gateway.requests) == 4
    assert clock.sleeps == [1.0, 2.0, 4.0]
    assert len(results) == 3
    for r in results:
        assert not r.ticket.ok
        assert "500" in r.ticket.message
        assert r.attempts == 4


def test_transient_failure_then_success(gateway, payload):
    gateway.fail_next = 2
    client, clock = _client(gateway)
    results = client.send(_tokens(2), payload)
    assert len(gateway.requests) == 3
    assert clock.sleeps == [1.0, 2.0]
    assert all(r.ticket.ok for r in results)
    assert all(r.attempts == 3 for r in results)


def test_network_error_is_retried_and_reported(payload):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = _client(handler)
    results = client.send(_tokens(1), payload)
    assert len(calls) == 4
    assert "connection refused" in results[0].ticket.message


def test_non_json_body_is_retried(payload):
    replies = [httpx.Response(200, text="<html>bad gateway</html>"), None]

    def handler(request):
        reply = replies.pop(0)
        if reply is not None:
            return reply
        return httpx.Response(200, json={"data": [{"status": "ok", "id": "x"}]})

    client, _ = _client(handler)
    results = client.send(_tokens(1), payload)
    assert results[0].ticket.ok
    assert results[0].attempts == 2


def test_missing_tickets_become_errors(gateway, payload):
    gateway.drop_last_ticket = True
    client, _ = _client(gateway)
    results = client.send(_tokens(3), payload)
    assert [r.ticket.ok for r in results] == [True, True, False]
    assert results[2].ticket.message == MISSING_TICKET_MESSAGE
    # Not a transport failure: no retry
    assert len(gateway.requests) == 1


def test_per_token_error_codes_are_preserved(gateway, payload):
    tokens = _tokens(3)
    gateway.token_errors[tokens[1]] = DEVICE_NOT_REGISTERED
    client, _ = _client(gateway)
    results = client.send(tokens, payload)
    assert results[1].ticket.error == DEVICE_NOT_REGISTERED
    assert results[0].ticket.ok and results[2].ticket.ok


def test_batch_deadline_stops_retries(gateway, payload):
    gateway.always_fail_status = 503
    # attempt 1 at t=0, sleep 1s, attempt 2 at t=1; next backoff (2s) would pass 2.5s
    client, clock = _client(gateway, batch_deadline_seconds=2.5)
    results = client.send(_tokens(1), payload)
    assert len(gateway.requests) == 2
    assert clock.sleeps == [1.0]
    assert results[0].attempts == 2
    assert not results[0].ticket.ok


def test_failed_batch_does_not_affect_other_batches(payload):
    def handler(request):
        body = json.loads(request.content)
        if body[0]["to"] == "ExponentPushToken[0100]":
            return httpx.Response(502)
        return httpx.Response(200, json={"data": [{"status": "ok", "id": m["to"]} for m in body]})

    client, _ = _client(handler, max_retries=0)
    results = client.send(_tokens(150), payload)
    assert all(r.ticket.ok for r in results[:100])
    assert not any(r.ticket.ok for r in results[100:])


def test_backoff_with_jitter_stays_in_range(gateway):
    client, _ = _client(gateway, backoff_jitter_seconds=0.5)
    for attempt, base in ((1, 1.0), (2, 2.0), (3, 4.0)):
        delay = client.backoff_for(attempt)
        assert base <= delay <= base + 0.5


def test_access_token_sent_as_bearer(gateway, payload):
    client, _ = _client(gateway, access_token="secret-token")
    client.send(_tokens(1), payload)
    assert gateway.headers[0]["authorization"] == "Bearer secret-token"


def test_no_authorization_header_without_token(gateway, payload):
    client, _ = _client(gateway)
    client.send(_tokens(1), payload)
    assert "authorization" not in gateway.headers[0]


@pytest.mark.parametrize(
    "priority, expected",
    [(Priority.CRITICAL, "high"), (Priority.HIGH, "high"), (Priority.NORMAL, "normal"), (Priority.LOW, "default")],
)
def test_expo_priority_mapping(priority, expected):
    assert expo_priority(priority) == expected


def test_wire_sound():
    assert wire_sound(Sound.DEFAULT) == "default"
    assert wire_sound(Sound.NONE) is None
    assert wire_sound(Sound.CRITICAL, "siren") == "siren"
    assert wire_sound(Sound.CRITICAL) == "critical_alert"


def test_build_message_for_critical_type():
    payload = build_payload(NotificationType.VERIFICATION_FAILURE, {"userName": "Jo", "alertId": "a1"})
    msg = build_message("ExponentPushToken[x]", payload)
    assert msg["to"] == "ExponentPushToken[x]"
    assert msg["title"] == "🚨 SEP Failure Alert"
    assert msg["priority"] == "high"
    assert msg["channelId"] == "critical"
    assert msg["sound"] == "critical_alert"
    assert msg["data"]["params"] == {"screen": "AdminDashboard", "params": {"alertId": "a1"}}


def test_build_message_channels_by_priority():
    high = build_payload(NotificationType.RIDE_REQUEST, {})
    normal = build_payload(NotificationType.EVENT_ACTIVE, {})
    assert build_message("t", high)["channelId"] == "high"
    assert build_message("t", normal)["channelId"] == "default"
    assert build_message("t", normal)["priority"] == "normal"


def test_ticket_from_json():
    ok = PushTicket.from_json({"status": "ok", "id": "abc"})
    assert ok.ok and ok.id == "abc"
    err = PushTicket.from_json(
        {"status": "error", "message": "gone", "details": {"error": DEVICE_NOT_REGISTERED}}
    )
    assert not err.ok
    assert err.error == DEVICE_NOT_REGISTERED
    assert err.message == "gone"
    assert PushTicket.from_json(None).message == MISSING_TICKET_MESSAGE
    assert PushTicket.from_json({"status": "error"}).error is None


def test_default_deadline_allows_four_timed_out_attempts(payload):
    clock = FakeClock()
    calls = []

    def handler(request):
        calls.append(request)
        # Each attempt burns the full request timeout
        clock.now += 10.0
        raise httpx.ReadTimeout("timed out", request=request)

    client = ExpoPushClient(
        url=GATEWAY_URL,
        access_token="",
        transport=httpx.MockTransport(handler),
        sleep=clock.sleep,
        clock=clock,
    )
    assert client.request_timeout == 10.0
    results = client.send(_tokens(1), payload)
    assert len(calls) == 4
    assert clock.sleeps == [1.0, 2.0, 4.0]
    assert results[0].attempts == 4
    assert "timed out" in results[0].ticket.message


def test_invalid_gateway_url_becomes_error_ticket(gateway, payload):
    client, _ = _client(gateway, url="https://push.test/send\x00", max_retries=0)
    results = client.send(_tokens(2), payload)
    assert gateway.requests == []
    assert [r.ticket.ok for r in results] == [False, False]
    assert "Expo Push API request failed" in results[0].ticket.message
