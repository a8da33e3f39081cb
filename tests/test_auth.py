# tests/test_auth.py
from datetime import timedelta

from poufmaker.db.base import utcnow
from poufmaker.models.user import User, UserLoginHistory, UserSession


def _register(client, email="a@x.com", password="password123", full_name="A", **extra):
    body = {"email": email, "password": password, "fullName": full_name}
    body.update(extra)
    return client.post("/auth/register", json=body)


def _confirmation_token(database, email):
    with database.session() as s:
        return s.query(User).filter(User.email == email).one().confirmation_token


def test_register_login_scenario(client, database, mailer):
    r = _register(client)
    assert r.status_code == 201
    assert r.json()["userId"]

    r = client.post("/auth/login", json={"email": "a@x.com", "password": "password123"})
    assert r.status_code == 401
    assert r.json()["message"] == "Email not confirmed"

    token = _confirmation_token(database, "a@x.com")
    assert any(token in m.get_body(("html",)).get_content() for m in mailer.sent)
    r = client.get("/auth/verify-email", params={"token": token})
    assert r.status_code == 200

    r = client.post("/auth/login", json={"email": "a@x.com", "password": "password123"})
    assert r.status_code == 200
    data = r.json()
    assert data["token"]
    assert data["user"] == {
        "id": data["user"]["id"], "email": "a@x.com", "fullName": "A", "role": "client",
    }


def test_register_duplicate_email_always_rejected(client):
    assert _register(client).status_code == 201
    for password, name in [("password123", "A"), ("another-pass", "Someone Else"), ("zzzzzzzz", "B")]:
        r = _register(client, password=password, full_name=name)
        assert r.status_code == 400
        assert r.json()["kind"] == "invalid_request"
        assert r.json()["message"] == "Email already registered"


def test_register_validation(client):
    assert _register(client, password="short").status_code == 400
    assert _register(client, email="not-an-email").status_code == 400
    assert _register(client, role="admin").status_code == 400
    assert _register(client, role="pirate").status_code == 400
    r = client.post("/auth/register", json={"email": "b@x.com", "password": "password123"})
    assert r.status_code == 400


def test_register_succeeds_when_email_delivery_fails(client, mailer, database):
    mailer.fail = True
    r = _register(client, email="c@x.com")
    assert r.status_code == 201
    assert mailer.sent == []
    with database.session() as s:
        user = s.query(User).filter(User.email == "c@x.com").one()
        assert user.email_confirmed is False
        history = s.query(UserLoginHistory).filter(UserLoginHistory.user_id == user.id).all()
        assert [h.failure_reason for h in history] == ["Registration successful"]


def test_register_as_upholsterer(client, database):
    r = _register(client, email="u@x.com", role="upholsterer")
    assert r.status_code == 201
    with database.session() as s:
        assert s.query(User).filter(User.email == "u@x.com").one().role.value == "upholsterer"


def test_login_bad_credentials(client, make_user):
    make_user(email="known@x.com")
    r = client.post("/auth/login", json={"email": "known@x.com", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"
    r = client.post("/auth/login", json={"email": "nobody@x.com", "password": "password123"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"
    assert "details" not in r.json()


def test_login_records_session_and_history(client, database, make_user):
    user_id, _ = make_user(email="h@x.com")
    client.post("/auth/login", json={"email": "h@x.com", "password": "nope-nope"},
                headers={"User-Agent": "pytest", "X-Forwarded-For": "10.0.0.1, 10.0.0.2"})
    with database.session() as s:
        user = s.query(User).filter(User.id == user_id).one()
        assert user.last_login_date is not None
        sessions = s.query(UserSession).filter(UserSession.user_id == user_id).all()
        assert len(sessions) == 1
        assert sessions[0].expires_at - sessions[0].created_at <= timedelta(hours=24, seconds=5)
        failed = s.query(UserLoginHistory).filter(
            UserLoginHistory.user_id == user_id, UserLoginHistory.successful.is_(False)
        ).one()
        assert failed.ip_address == "10.0.0.1"
        assert failed.user_agent == "pytest"


def test_verify_email_invalid_token(client):
    assert client.get("/auth/verify-email", params={"token": "nope"}).status_code == 400
    assert client.get("/auth/verify-email").status_code == 400


def test_verify_email_token_is_single_use(client, database):
    _register(client, email="once@x.com")
    token = _confirmation_token(database, "once@x.com")
    assert client.get("/auth/verify-email", params={"token": token}).status_code == 200
    assert client.get("/auth/verify-email", params={"token": token}).status_code == 400


def test_password_reset_flow(client, database, mailer, make_user):
    make_user(email="r@x.com")
    assert client.post("/auth/request-reset", json={"email": "missing@x.com"}).status_code == 404

    r = client.post("/auth/request-reset", json={"email": "r@x.com"})
    assert r.status_code == 200
    with database.session() as s:
        token = s.query(User).filter(User.email == "r@x.com").one().reset_password_token
    assert token
    assert "Password Reset Request" in [m["Subject"] for m in mailer.sent]

    r = client.post("/auth/reset-password", json={"token": token, "newPassword": "short"})
    assert r.status_code == 400
    r = client.post("/auth/reset-password", json={"token": "bogus", "newPassword": "brand-new-pass"})
    assert r.status_code == 400

    r = client.post("/auth/reset-password", json={"token": token, "newPassword": "brand-new-pass"})
    assert r.status_code == 200
    assert client.post("/auth/login", json={"email": "r@x.com", "password": "password123"}).status_code == 401
    assert client.post("/auth/login", json={"email": "r@x.com", "password": "brand-new-pass"}).status_code == 200
    # токен одноразовый
    r = client.post("/auth/reset-password", json={"token": token, "newPassword": "another-pass"})
    assert r.status_code == 400


def test_password_reset_token_expires(client, database, make_user):
    make_user(email="e@x.com")
    client.post("/auth/request-reset", json={"email": "e@x.com"})
    with database.session() as s:
        user = s.query(User).filter(User.email == "e@x.com").one()
        token = user.reset_password_token
        user.reset_password_expiry = utcnow() - timedelta(minutes=1)
        s.commit()
    r = client.post("/auth/reset-password", json={"token": token, "newPassword": "brand-new-pass"})
    assert r.status_code == 400


def test_me(client, make_user):
    user_id, headers = make_user(email="me@x.com")
    r = client.get("/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == user_id
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
