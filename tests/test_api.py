from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from chatvault.config import Settings
from chatvault.database import get_db
from chatvault.main import create_app
from chatvault.routers.auth import SESSION_COOKIE
from chatvault.security import sign_session_token


def test_end_to_end_flow(client, register):
    resp = register()
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "redirect": "/index.html"}
    assert SESSION_COOKIE in resp.cookies

    resp = client.post("/api/login", json={"email": "alice@example.com", "password": "pw123"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "redirect": "/index.html"}

    resp = client.post("/api/chat/save", json={"message": "hi", "response": "hello"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["chat"]["id"] > 0
    assert body["chat"]["timestamp"]
    assert body["chat"]["message"] == "hi"

    resp = client.get("/api/chat/history")
    assert resp.status_code == 200
    history = resp.json()
    assert len(history) == 1
    assert history[0]["message"] == "hi"
    assert history[0]["response"] == "hello"

    resp = client.get("/api/logout")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "redirect": "/login"}
    assert SESSION_COOKIE not in client.cookies

    resp = client.get("/api/me")
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthenticated"


def test_me_returns_public_profile_only(client, register):
    register()
    resp = client.get("/api/me")
    assert resp.status_code == 200
    assert resp.json() == {"username": "alice", "email": "alice@example.com"}


def test_logout_without_session_succeeds(client):
    resp = client.get("/api/logout")
    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_protected_routes_require_session(client):
    assert client.get("/api/me").status_code == 401
    assert client.get("/api/chat/history").status_code == 401
    resp = client.post("/api/chat/save", json={"message": "hi", "response": "hello"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Please log in", "code": "unauthenticated"}


def test_tampered_cookie_is_unauthenticated(client, register):
    register()
    client.cookies.clear()
    client.cookies.set(SESSION_COOKIE, "not-a-signed-token")
    assert client.get("/api/me").status_code == 401


def test_session_expires_after_one_day(client, register, clock):
    register()
    clock.advance(hours=23, minutes=59)
    assert client.get("/api/me").status_code == 200

    clock.advance(minutes=2)
    assert client.get("/api/me").status_code == 401


def test_me_returns_404_when_user_missing(client, sessions, app):
    token = sessions.create(999)
    client.cookies.set(SESSION_COOKIE, sign_session_token(token, app.state.settings.session_secret))
    resp = client.get("/api/me")
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found", "code": "not_found"}


def test_register_duplicate_email(client, register):
    register()
    resp = register(username="alice2")
    assert resp.status_code == 400
    assert resp.json() == {"error": "This email is already registered", "code": "duplicate_email"}


def test_register_missing_fields(client):
    resp = client.post("/api/register", json={"username": "alice", "email": "alice@example.com"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Please fill in all fields", "code": "validation"}


def test_register_malformed_email(client, register):
    resp = register(email="not-an-email")
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation"


def test_register_rejects_non_json(client):
    resp = client.post("/api/register", content=b"username=alice", headers={"Content-Type": "text/plain"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation"


def test_login_errors_do_not_reveal_cause(client, register):
    register()
    client.cookies.clear()

    wrong_password = client.post("/api/login", json={"email": "alice@example.com", "password": "nope"})
    unknown_email = client.post("/api/login", json={"email": "bob@example.com", "password": "pw123"})

    assert wrong_password.status_code == unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["code"] == "invalid_credentials"
    assert SESSION_COOKIE not in wrong_password.cookies


def test_login_missing_fields(client):
    resp = client.post("/api/login", json={"email": "alice@example.com"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Email and password are required", "code": "validation"}


def test_error_messages_follow_accept_language(client):
    resp = client.post(
        "/api/login",
        json={"email": "bob@example.com", "password": "pw123"},
        headers={"Accept-Language": "ta-IN,en;q=0.5"},
    )
    assert resp.json()["error"] == "தவறான மின்னஞ்சல் அல்லது கடவுச்சொல்"


def test_save_chat_missing_fields(client, register):
    register()
    resp = client.post("/api/chat/save", json={"message": "hi"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Message and response are required", "code": "validation"}

    resp = client.post("/api/chat/save", json={"message": "  ", "response": "hello"})
    assert resp.status_code == 400
    assert client.get("/api/chat/history").json() == []


def test_history_is_scoped_to_session_user(client, register):
    register()
    client.post("/api/chat/save", json={"message": "alice says", "response": "r"})
    client.get("/api/logout")

    register(username="bob", email="bob@example.com", password="pw456")
    client.post("/api/chat/save", json={"message": "bob says", "response": "r"})

    assert [c["message"] for c in client.get("/api/chat/history").json()] == ["bob says"]


def test_history_newest_first_and_capped(client, register):
    register()
    for i in range(52):
        client.post("/api/chat/save", json={"message": f"m{i}", "response": "r"})

    history = client.get("/api/chat/history").json()
    assert len(history) == 50
    assert history[0]["message"] == "m51"
    assert history[-1]["message"] == "m2"


def test_store_failure_is_500_without_details(client, register, app):
    register()

    def broken_db():
        db = app.state.session_factory()

        def commit():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        db.commit = commit
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = broken_db
    try:
        resp = client.post("/api/chat/save", json={"message": "hi", "response": "hello"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "Could not save the message", "code": "store_failure"}
    assert "disk" not in resp.text


def test_login_retires_previous_session(client, register, sessions):
    register()
    old_cookie = client.cookies[SESSION_COOKIE]
    assert len(sessions.backend) == 1

    resp = client.post("/api/login", json={"email": "alice@example.com", "password": "pw123"})
    assert resp.status_code == 200
    assert len(sessions.backend) == 1

    client.cookies.clear()
    client.cookies.set(SESSION_COOKIE, old_cookie)
    assert client.get("/api/me").status_code == 401


def test_development_cookie_attributes(client, register):
    cookie = register().headers["set-cookie"].lower()
    assert "httponly" in cookie
    assert "max-age=86400" in cookie
    assert "samesite=lax" in cookie
    assert "secure" not in cookie


def test_production_cookie_is_secure(sessions, hasher):
    settings = Settings(
        app_env="production",
        database_url="sqlite://",
        session_backend="memory",
        session_secret="test-secret",
        default_locale="en",
    )
    app = create_app(settings, sessions=sessions, password_hasher=hasher)
    with TestClient(app) as client:
        resp = client.post(
            "/api/register",
            json={"username": "alice", "email": "alice@example.com", "password": "pw123"},
        )
        assert resp.status_code == 200
        cookie = resp.headers["set-cookie"].lower()
        assert cookie.startswith(SESSION_COOKIE + "=")
        assert "secure" in cookie
        assert "httponly" in cookie
        assert "max-age=86400" in cookie

        resp = client.get("/api/logout")
        cleared = resp.headers["set-cookie"].lower()
        assert cleared.startswith(SESSION_COOKIE + "=")
        assert "max-age=0" in cleared
        assert "secure" in cleared
