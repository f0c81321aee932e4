from notifier.models.user_device import UserDevice


def test_register_is_idempotent(client, db, as_user):
    body = {"expo_push_token": "ExponentPushToken[x]", "device_os": "android", "app_version": "1.0.0"}
    r1 = client.post("/push/register", json=body, headers=as_user("u1"))
    r2 = client.post("/push/register", json=body, headers=as_user("u1"))
    assert r1.status_code == 200 and r2.status_code == 200
    assert r1.json()["message"] == "Token registered"
    assert r2.json()["message"] == "Token already registered"
    assert r1.json()["id"] == r2.json()["id"]
    assert db.query(UserDevice).count() == 1


def test_register_requires_user(client):
    r = client.post("/push/register", json={"expo_push_token": "t"})
    assert r.status_code == 400


def test_register_rejects_unknown_os(client, as_user):
    r = client.post("/push/register", json={"expo_push_token": "t", "device_os": "symbian"}, headers=as_user("u1"))
    assert r.status_code == 400


def test_unregister(client, db, as_user):
    client.post("/push/register", json={"expo_push_token": "t1"}, headers=as_user("u1"))
    assert client.post("/push/unregister", json={"expo_push_token": "t1"}).json() == {"ok": True}
    assert client.post("/push/unregister", json={"expo_push_token": "nope"}).json()["ok"] is False
    db.expire_all()
    assert db.query(UserDevice).one().is_active is False


def test_channels_configured_at_startup(client):
    r = client.get("/push/channels")
    assert r.status_code == 200
    ids = [c["id"] for c in r.json()["channels"]]
    assert ids == ["critical", "high", "default"]
