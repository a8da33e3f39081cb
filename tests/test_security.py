# tests/test_security.py
import time
from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from jose import jwt

from poufmaker.core.config import Settings, settings
from poufmaker.core.security import (
    Principal,
    create_access_token,
    get_password_hash,
    verify_password,
    verify_token,
)
from poufmaker.main import create_app
from poufmaker.models.user import RoleEnum, User
from poufmaker.services import products as product_service


def test_token_round_trip():
    token = create_access_token("user-1", RoleEnum.upholsterer)
    principal = verify_token(token)
    assert principal == Principal(user_id="user-1", role=RoleEnum.upholsterer)
    assert principal.is_upholsterer and not principal.is_admin


def test_token_expiry_is_24h_by_default():
    claims = jwt.get_unverified_claims(create_access_token("u", RoleEnum.client))
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


def test_verify_fails_closed():
    assert verify_token(None) is None
    assert verify_token("") is None
    assert verify_token("not.a.jwt") is None
    assert verify_token(create_access_token("u", RoleEnum.client, expires_delta=timedelta(seconds=-5))) is None

    exp = datetime.utcnow() + timedelta(hours=1)
    foreign = jwt.encode({"sub": "u", "role": "client", "exp": exp}, "other-secret", algorithm="HS256")
    assert verify_token(foreign) is None

    unknown_role = jwt.encode({"sub": "u", "role": "pirate", "exp": exp}, settings.SECRET_KEY, algorithm="HS256")
    assert verify_token(unknown_role) is None

    no_subject = jwt.encode({"role": "client", "exp": exp}, settings.SECRET_KEY, algorithm="HS256")
    assert verify_token(no_subject) is None


def test_password_hash_is_salted():
    first, second = get_password_hash("password123"), get_password_hash("password123")
    assert first != second
    assert verify_password("password123", first)
    assert not verify_password("password124", first)


def test_health(client):
    assert client.get("/").json()["status"] == "ok"
    assert client.get("/health").json()["database"] == "connected"


def test_unexpected_error_is_opaque(database, mailer, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("password=hunter2 host=10.0.0.5")

    monkeypatch.setattr(product_service, "list_products", boom)
    dev_settings = Settings()
    dev_settings.ENVIRONMENT = "development"
    app = create_app(settings=dev_settings, database=database, mailer=mailer)

    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.get("/products")
    assert r.status_code == 500
    assert r.json() == {"status": "error", "kind": "internal", "message": "Internal server error"}
    assert "hunter2" not in r.text


def test_reads_do_not_wait_for_writer(database):
    with database.session(write=True) as writer, database.session() as reader:
        writer.connection()  # BEGIN IMMEDIATE: блокировка записи взята
        started = time.monotonic()
        assert reader.query(User).count() == 0
        assert time.monotonic() - started < 5
