# poufmaker/api/deps.py
# Зависимости FastAPI: сессия БД, почта, текущий Principal.
from typing import Iterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from poufmaker.core.email import Mailer
from poufmaker.core.errors import Unauthorized
from poufmaker.core.security import Principal, verify_token

bearer_scheme = HTTPBearer(auto_error=False)

READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def get_db(request: Request) -> Iterator[Session]:
    """Сессия БД на запрос из хэндла, переданного в create_app. Не-GET запросы пишут."""
    write = request.method not in READ_METHODS
    with request.app.state.database.session(write=write) as db:
        yield db


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal | None:
    """Principal, если передан валидный Bearer-токен, иначе None."""
    if credentials is None:
        return None
    return verify_token(credentials.credentials)


def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """Principal или 401."""
    if credentials is None:
        raise Unauthorized("Authorization token required")
    principal = verify_token(credentials.credentials)
    if principal is None:
        raise Unauthorized("Invalid token")
    return principal


def client_info(request: Request) -> tuple[str, str | None]:
    """IP (с учётом прокси) и User-Agent для журнала входов."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    else:
        ip = request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")
    return ip, request.headers.get("user-agent")
