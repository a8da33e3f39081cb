# tests/conftest.py
# Общие фикстуры: отдельная SQLite-база на тест, почта-заглушка, TestClient.
import os

# Настройки читаются при импорте poufmaker.core.config — задаём окружение до него
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient

from poufmaker.core.email import Mailer
from poufmaker.db.session import Database
from poufmaker.main import create_app
from poufmaker.models.user import RoleEnum, User


class RecordingMailer(Mailer):
    """Вместо SMTP складывает письма в список; fail=True имитирует недоступный сервер."""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.sent = []
        self.fail = fail

    @property
    def configured(self) -> bool:
        return True

    def _deliver(self, msg):
        if self.fail:
            raise ConnectionRefusedError("smtp is down")
        self.sent.append(msg)


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'poufmaker.db'}")
    db.create_all(retries=1, delay=0)
    yield db
    db.dispose()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(database, mailer):
    return create_app(database=database, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client, database):
    """Регистрирует, подтверждает и логинит пользователя. Возвращает (user_id, headers)."""
    counter = {"n": 0}

    def _make(role: RoleEnum = RoleEnum.client, email: str | None = None, password: str = "password123"):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        if role is RoleEnum.admin:
            # админ не регистрируется сам — создаём клиентом и повышаем в БД
            register_role = RoleEnum.client
        else:
            register_role = role
        r = client.post("/auth/register", json={
            "email": email, "password": password, "fullName": f"User {counter['n']}", "role": register_role.value,
        })
        assert r.status_code == 201, r.text
        user_id = r.json()["userId"]
        with database.session() as s:
            user = s.query(User).filter(User.id == user_id).one()
            user.role = role
            token = user.confirmation_token
            s.commit()
        assert client.get("/auth/verify-email", params={"token": token}).status_code == 200
        r = client.post("/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return user_id, auth(r.json()["token"])

    return _make


@pytest.fixture
def make_product(client):
    def _make(headers, **fields):
        body = {"title": "Velvet pouf", "description": "Round pouf, green velvet", "price": 120}
        body.update(fields)
        r = client.post("/products", json=body, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()["id"]

    return _make
