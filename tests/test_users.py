from conftest import PASSWORD, auth_headers, register_payload

from schemas import RegisterInput
from security import verify_password
from users import validate_email, validate_name, validate_password, validate_registration


def test_register_creates_user(client, db):
    resp = client.post("/users/register", json=register_payload())
    assert resp.status_code == 201
    assert resp.json() == {"message": "User registered successfully"}

    user = db["user"].find_one({"email": "ana@example.com"})
    assert user["first_name"] == "Ana"
    assert user["address"] == "Calle Mayor 1"
    assert user.get("refresh_token") is None
    assert user.get("auth_token") is None


def test_register_stores_hash_not_plaintext(client, db):
    client.post("/users/register", json=register_payload())
    user = db["user"].find_one({"email": "ana@example.com"})
    assert user["password_hash"] != PASSWORD
    assert verify_password(PASSWORD, user["password_hash"])
    assert not verify_password("Wrong1", user["password_hash"])


def test_register_reports_all_field_errors(client):
    payload = register_payload(email="not-an-email", password="abc", confirmPassword="abcd", firstName="Ana3")
    resp = client.post("/users/register", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "validation_error"
    assert set(body["errors"]) == {"email", "password", "confirmPassword", "firstName"}
    assert body["detail"] == body["errors"]["email"]


def test_register_missing_fields_is_validation_error(client, db):
    resp = client.post("/users/register", json={"email": "ana@example.com"})
    assert resp.status_code == 400
    assert "password" in resp.json()["errors"]
    assert db["user"].count_documents({}) == 0


def test_register_duplicate_email_conflict(client, db):
    assert client.post("/users/register", json=register_payload()).status_code == 201
    original = db["user"].find_one({"email": "ana@example.com"})

    resp = client.post("/users/register", json=register_payload(firstName="Other", address="Elsewhere"))
    assert resp.status_code == 400
    assert resp.json()["kind"] == "conflict"
    assert db["user"].count_documents({}) == 1
    assert db["user"].find_one({"email": "ana@example.com"}) == original


def test_email_match_is_case_sensitive(client):
    client.post("/users/register", json=register_payload())
    resp = client.post("/users/register", json=register_payload(email="Ana@example.com"))
    assert resp.status_code == 201


def test_login_returns_profile_and_tokens(client, db):
    client.post("/users/register", json=register_payload())
    resp = client.post("/users/login", json={"email": "ana@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"userId", "firstName", "lastName", "email", "authToken", "refreshToken"}
    assert body["firstName"] == "Ana"

    user = db["user"].find_one({"email": "ana@example.com"})
    assert str(user["_id"]) == body["userId"]
    assert user["auth_token"] == body["authToken"]
    assert user["refresh_token"] == body["refreshToken"]


def test_login_failures_share_one_message(client):
    client.post("/users/register", json=register_payload())
    wrong_password = client.post("/users/login", json={"email": "ana@example.com", "password": "Nope123"})
    unknown_email = client.post("/users/login", json={"email": "bob@example.com", "password": PASSWORD})
    missing_field = client.post("/users/login", json={"email": "ana@example.com"})

    for resp in (wrong_password, unknown_email, missing_field):
        assert resp.status_code == 401
    assert wrong_password.json() == unknown_email.json() == missing_field.json()


def test_logout_clears_tokens(client, db, session):
    resp = client.post("/users/logout", headers=auth_headers(session))
    assert resp.status_code == 200
    user = db["user"].find_one({"email": "ana@example.com"})
    assert "refresh_token" not in user
    assert "auth_token" not in user


def test_logout_requires_credentials(client):
    resp = client.post("/users/logout")
    assert resp.status_code == 401
    assert resp.json()["kind"] == "authentication_required"


def test_logout_unknown_user(client, db, session):
    db["user"].delete_many({})
    resp = client.post("/users/logout", headers=auth_headers(session))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "User not found"


def test_validators():
    assert validate_email("a@b.co")
    assert not validate_email("a@b")
    assert validate_password("Abcde")
    assert not validate_password("abcde")
    assert not validate_password("ABCDE")
    assert not validate_password("Abcd")
    assert validate_name("Mary Ann")
    assert not validate_name("R2D2")
    assert not validate_name("")


def test_validate_registration_accepts_valid_data():
    data = RegisterInput(**register_payload())
    assert validate_registration(data) == {}
