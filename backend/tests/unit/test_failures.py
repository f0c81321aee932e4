from notifier.core.constants import DEVICE_NOT_REGISTERED, MESSAGE_RATE_EXCEEDED
from notifier.services.devices import tokens_for
from notifier.services.failures import handle_failures, tokens_to_retire
from notifier.services.push import DeliveryResult, PushTicket

OK = PushTicket(status="ok", id="t")


def _gone(token):
    return DeliveryResult(token, PushTicket.failure("not registered", DEVICE_NOT_REGISTERED))


def test_only_device_not_registered_is_retired():
    results = [
        DeliveryResult("a", OK),
        _gone("b"),
        DeliveryResult("c", PushTicket.failure("slow down", MESSAGE_RATE_EXCEEDED)),
        DeliveryResult("d", PushTicket.failure("Expo Push API error: 503 Service Unavailable")),
        _gone("b"),
    ]
    assert tokens_to_retire(results) == ["b"]


def test_handle_failures_deactivates_tokens(db, add_device):
    add_device("u1", "a")
    add_device("u1", "b")
    retired = handle_failures(db, [DeliveryResult("a", OK), _gone("b")])
    db.commit()
    assert retired == ["b"]
    assert tokens_for(db, ["u1"]) == {"u1": ["a"]}


def test_transient_errors_leave_directory_untouched(db, add_device):
    add_device("u1", "a")
    retired = handle_failures(db, [DeliveryResult("a", PushTicket.failure("timeout"), attempts=4)])
    db.commit()
    assert retired == []
    assert tokens_for(db, ["u1"]) == {"u1": ["a"]}
