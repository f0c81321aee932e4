from notifier.models.notification import Notification
from notifier.services.notification_log import record_notifications
from notifier.services.push import DeliveryResult, PushTicket
from notifier.services.templates import NotificationType, build_payload

OK = PushTicket(status="ok", id="t")


def _payload():
    return build_payload(NotificationType.EVENT_ACTIVE, {"eventName": "Formal", "eventId": "e1"})


def _by_user(db):
    db.flush()
    return {n.user_id: n for n in db.query(Notification).all()}


def test_one_record_per_user_with_rendered_content(db):
    payload = _payload()
    rows = record_notifications(db, ["u1", "u2"], payload, [], {})
    db.commit()
    assert len(rows) == 2
    stored = _by_user(db)
    assert set(stored) == {"u1", "u2"}
    row = stored["u1"]
    assert row.type == "event-active"
    assert row.title == payload.title
    assert row.body == payload.body
    assert row.data["params"] == {"screen": "EventDetail", "params": {"eventId": "e1"}}
    assert row.priority == "normal"
    assert row.read is False


def test_no_devices_means_no_timestamps(db):
    record_notifications(db, ["u1"], _payload(), [], {})
    row = _by_user(db)["u1"]
    assert row.sent_at is None and row.delivered_at is None and row.failed_at is None
    assert row.retry_count == 0


def test_any_success_marks_sent_and_delivered(db):
    results = [
        DeliveryResult("t1", PushTicket.failure("gone", "DeviceNotRegistered")),
        DeliveryResult("t2", OK),
    ]
    record_notifications(db, ["u1"], _payload(), results, {"u1": ["t1", "t2"]})
    row = _by_user(db)["u1"]
    assert row.sent_at is not None
    assert row.delivered_at is not None
    assert row.failed_at is None
    assert row.failure_reason is None


def test_all_errors_mark_failed_with_first_message(db):
    results = [
        DeliveryResult("t1", PushTicket.failure("first"), attempts=4),
        DeliveryResult("t2", PushTicket.failure("second"), attempts=4),
    ]
    record_notifications(db, ["u1"], _payload(), results, {"u1": ["t1", "t2"]})
    row = _by_user(db)["u1"]
    assert row.sent_at is None
    assert row.failed_at is not None
    assert row.failure_reason == "first"
    assert row.retry_count == 3


def test_results_are_attributed_to_token_owner(db):
    results = [DeliveryResult("t1", OK, attempts=2), DeliveryResult("t2", PushTicket.failure("boom"))]
    record_notifications(db, ["u1", "u2"], _payload(), results, {"u1": ["t1"], "u2": ["t2"]})
    stored = _by_user(db)
    assert stored["u1"].sent_at is not None
    assert stored["u1"].retry_count == 1
    assert stored["u2"].failure_reason == "boom"
    assert stored["u2"].retry_count == 0
