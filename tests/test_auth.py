"""Identity — registration, login, bearer tokens, role gates, profile edits."""

from datetime import timedelta

from flask_jwt_extended import create_access_token, decode_token


def test_register_returns_token_and_public_user(client, api):
    token, user = api.register("farmer", email="Ravi@Example.com")

    assert user["email"] == "ravi@example.com"
    assert user["role"] == "farmer"
    assert user["profile"] == {"role": "farmer", "address": "Village Road, Nashik"}
    assert "password" not in user

    res = client.get("/auth/profile", headers=api.h(token))
    assert res.status_code == 200
    assert res.get_json()["user"]["id"] == user["id"]


def test_token_carries_id_email_role_and_seven_day_expiry(app, api):
    token, user = api.register("buyer")

    with app.app_context():
        claims = decode_token(token)

    assert claims["sub"] == user["id"]
    assert claims["email"] == user["email"]
    assert claims["role"] == "buyer"
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600


def test_password_is_stored_hashed(api, db):
    _, user = api.register("farmer")
    stored = db.users.find_one({"email": user["email"]})
    assert stored["password"] != "secret123"
    assert stored["password"].startswith("$2")


def test_duplicate_email_rejected(client, api):
    api.register("farmer", email="dup@example.com")
    res = client.post("/auth/register", json={
        "name": "Other", "email": "DUP@example.com", "password": "secret123",
        "phone": "9876543210", "role": "buyer",
    })
    assert res.status_code == 400
    assert res.get_json()["message"] == "User with this email already exists"


def test_register_validation_errors_list_fields(client):
    res = client.post("/auth/register", json={
        "name": "A", "email": "not-an-email", "password": "123",
        "phone": "call me", "role": "admin",
    })
    body = res.get_json()
    assert res.status_code == 400
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"name", "email", "password", "phone", "role"} <= fields


def test_login_ok_and_bad_password_same_message(client, api):
    _, user = api.register("farmer", email="login@example.com")

    ok = client.post("/auth/login", json={"email": "login@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.get_json()["user"]["id"] == user["id"]

    bad_pw = client.post("/auth/login", json={"email": "login@example.com", "password": "wrong"})
    unknown = client.post("/auth/login", json={"email": "nobody@example.com", "password": "secret123"})
    assert bad_pw.status_code == unknown.status_code == 401
    assert bad_pw.get_json() == unknown.get_json() == {"message": "Invalid email or password"}


def test_missing_token_is_401(client):
    res = client.get("/auth/profile")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Access token required"


def test_garbage_token_is_403(client, api):
    res = client.get("/auth/profile", headers=api.h("not.a.jwt"))
    assert res.status_code == 403
    assert res.get_json()["message"] == "Invalid or expired token"


def test_expired_token_is_403(app, client, api):
    _, user = api.register("farmer")
    with app.app_context():
        token = create_access_token(identity=user["id"], expires_delta=timedelta(seconds=-10))

    res = client.get("/auth/profile", headers=api.h(token))
    assert res.status_code == 403


def test_token_of_deleted_user_is_401(client, api, db):
    token, user = api.register("buyer")
    db.users.delete_one({"email": user["email"]})

    res = client.get("/auth/profile", headers=api.h(token))
    assert res.status_code == 401
    assert res.get_json()["message"] == "Invalid token"


def test_role_gate_names_required_role(client, api, buyer):
    token, _ = buyer
    res = client.get("/grains/farmer/my-grains", headers=api.h(token))
    assert res.status_code == 403
    assert res.get_json()["message"] == "Access denied. Required role: farmer"


def test_update_profile_own_role_fields(client, api, buyer):
    token, _ = buyer
    res = client.put("/auth/profile", headers=api.h(token), json={
        "name": "Renamed Buyer", "officeName": "Deccan Grains",
    })
    user = res.get_json()["user"]
    assert res.status_code == 200
    assert user["name"] == "Renamed Buyer"
    assert user["profile"]["officeName"] == "Deccan Grains"
    assert user["profile"]["gstNumber"] == "27ABCDE1234F1Z5"


def test_update_profile_rejects_other_role_fields(client, api, farmer):
    token, _ = farmer
    res = client.put("/auth/profile", headers=api.h(token), json={"gstNumber": "X"})
    assert res.status_code == 400
    assert res.get_json()["errors"][0]["field"] == "gstNumber"
