import pytest
from fastapi.testclient import TestClient

from notifier.db.session import get_db
from notifier.main import app
from notifier.services.push import get_push_client


@pytest.fixture
def client(session_factory, push_client):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_client] = lambda: push_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def as_user():
    def _headers(user_id):
        return {"X-User-Id": user_id}

    return _headers
