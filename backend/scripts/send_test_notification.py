#!/usr/bin/env python3
"""
Send sample notifications to a running notifier (manual end-to-end check).

  python backend/scripts/send_test_notification.py --user-id <uuid>
  python backend/scripts/send_test_notification.py --group-id <uuid> --type dd-request-created
  NOTIFIER_URL=https://... NOTIFY_WEBHOOK_SECRET=... python backend/scripts/send_test_notification.py --all --user-id <uuid>
"""
import argparse
import json
import os
import sys

import httpx

SAMPLE_DATA = {
    "ride-request": {
        "riderName": "Test Rider",
        "pickupLocation": "123 Test Street",
        "rideRequestId": "test-ride-123",
        "eventId": "test-event-123",
        "sessionId": "test-session-123",
    },
    "ride-accepted": {"ddName": "Test DD", "carInfo": "Blue Honda Civic", "eventId": "test-event-123"},
    "ride-picked-up": {"ddName": "Test DD", "eventId": "test-event-123"},
    "ride-cancelled": {"ddName": "Test DD", "eventId": "test-event-123"},
    "verification-failure": {"userName": "Test User", "eventName": "Test Event", "alertId": "test-alert-123"},
    "status-revoked": {"reason": "Test revocation"},
    "session-started": {"eventName": "Test Event", "sessionId": "test-session-123", "eventId": "test-event-123"},
    "session-reminder": {"eventName": "Test Event", "sessionId": "test-session-123", "eventId": "test-event-123"},
    "dd-request-approved": {},
    "dd-request-rejected": {"reason": "Test rejection"},
    "event-active": {"eventName": "Test Event", "eventId": "test-event-123"},
    "event-cancelled": {"eventName": "Test Event", "eventId": "test-event-123", "reason": "Weather"},
    "dd-assigned": {"eventName": "Test Event", "eventId": "test-event-123"},
    "dd-request-created": {"userName": "Test User", "eventName": "Test Event", "eventId": "test-event-123"},
}


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--url", default=os.getenv("NOTIFIER_URL", "http://127.0.0.1:8000"))
    parser.add_argument("--secret", default=os.getenv("NOTIFY_WEBHOOK_SECRET", ""))
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--user-id")
    target.add_argument("--group-id")
    parser.add_argument("--type", default="ride-request", choices=sorted(SAMPLE_DATA))
    parser.add_argument("--all", action="store_true", help="send one of every type")
    args = parser.parse_args()

    headers = {"Authorization": f"Bearer {args.secret}"} if args.secret else {}
    types = sorted(SAMPLE_DATA) if args.all else [args.type]
    failures = 0
    with httpx.Client(base_url=args.url, timeout=60.0) as client:
        for ntype in types:
            body = {"type": ntype, "data": SAMPLE_DATA[ntype]}
            if args.user_id:
                body["userId"] = args.user_id
            else:
                body["groupId"] = args.group_id
            r = client.post("/send-notification", json=body, headers=headers)
            ok = r.status_code == 200
            failures += 0 if ok else 1
            print(f"{'OK ' if ok else 'FAIL'} {ntype}: {r.status_code} {json.dumps(r.json() if r.content else {})}")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
