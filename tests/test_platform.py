"""App wiring — health probe, error mapping, uploads, startup indexes."""

import pytest
from pymongo.errors import DuplicateKeyError


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "OK"


def test_unknown_route_is_json_404(client):
    res = client.get("/no/such/route")
    assert res.status_code == 404
    assert "message" in res.get_json()


def test_unexpected_errors_hide_internals(app, client):
    @app.get("/boom")
    def boom():
        raise RuntimeError("db password is hunter2")

    res = client.get("/boom")
    assert res.status_code == 500
    assert res.get_json() == {"message": "Internal server error"}


def test_missing_upload_is_404(client):
    assert client.get("/uploads/grains/missing.png").status_code == 404


def test_upload_path_traversal_refused(client):
    assert client.get("/uploads/../app.py").status_code == 404


def test_unique_email_index(db):
    db.users.insert_one({"email": "one@example.com"})
    with pytest.raises(DuplicateKeyError):
        db.users.insert_one({"email": "one@example.com"})


def test_tokens_do_not_set_session_cookies(client, api):
    _, user = api.register("farmer")
    res = client.post("/auth/login", json={"email": user["email"], "password": "secret123"})
    assert res.status_code == 200
    assert "Set-Cookie" not in res.headers
