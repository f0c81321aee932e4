import json
import os

# Must be set before notifier.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFY_WEBHOOK_SECRET"] = ""
os.environ["EXPO_ACCESS_TOKEN"] = ""

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import notifier.models  # noqa: F401  (registers tables on Base.metadata)
from notifier.core.channels import reset_channels
from notifier.db.base import Base
from notifier.models.user import User
from notifier.models.user_device import UserDevice
from notifier.services.push import ExpoPushClient

GATEWAY_URL = "https://push.test/--/api/v2/push/send"


class FakeGateway:
    """Expo push stand-in for httpx.MockTransport.

    Replies with one ok ticket per message. `fail_next` makes the next N calls return 503,
    `always_fail_status` fails every call, `token_errors` maps token -> details.error code.
    """

    def __init__(self):
        self.requests: list[list[dict]] = []
        self.headers: list[httpx.Headers] = []
        self.fail_next = 0
        self.always_fail_status: int | None = None
        self.token_errors: dict[str, str] = {}
        self.drop_last_ticket = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        messages = json.loads(request.content)
        self.requests.append(messages)
        self.headers.append(request.headers)
        if self.always_fail_status is not None:
            return httpx.Response(self.always_fail_status)
        if self.fail_next > 0:
            self.fail_next -= 1
            return httpx.Response(503)
        data = []
        for i, m in enumerate(messages):
            code = self.token_errors.get(m["to"])
            if code:
                data.append({
                    "status": "error",
                    "message": f'"{m["to"]}" is not a registered push notification recipient',
                    "details": {"error": code},
                })
            else:
                data.append({"status": "ok", "id": f"ticket-{len(self.requests)}-{i}"})
        if self.drop_last_ticket:
            data = data[:-1]
        return httpx.Response(200, json={"data": data})

    @property
    def sent_tokens(self) -> list[str]:
        return [m["to"] for batch in self.requests for m in batch]


@pytest.fixture(autouse=True)
def _reset_channels():
    reset_channels()
    yield
    reset_channels()


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def push_client(gateway, sleeps):
    return ExpoPushClient(
        url=GATEWAY_URL,
        access_token="",
        transport=httpx.MockTransport(gateway),
        sleep=sleeps.append,
        batch_size=100,
        max_retries=3,
        backoff_base_seconds=1.0,
        backoff_jitter_seconds=0.0,
        batch_deadline_seconds=30.0,
        max_concurrent_batches=1,
    )


@pytest.fixture
def add_user(db):
    def _add(user_id, group_id=None, role="member", name=None):
        db.add(User(id=user_id, group_id=group_id, role=role, name=name))
        db.commit()
        return user_id

    return _add


@pytest.fixture
def add_device(db):
    def _add(user_id, token, is_active=True, device_os="ios"):
        db.add(UserDevice(user_id=user_id, expo_push_token=token, is_active=is_active, device_os=device_os))
        db.commit()
        return token

    return _add
