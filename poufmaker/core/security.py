# poufmaker/core/security.py
# Функции для хеширования паролей и работы с JWT.
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import jwt, JWTError
from passlib.context import CryptContext

from poufmaker.core.config import settings
from poufmaker.models.user import RoleEnum

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


@dataclass(frozen=True)
class Principal:
    """Аутентифицированный субъект запроса: (user_id, role) из проверенного токена."""
    user_id: str
    role: RoleEnum

    @property
    def is_admin(self) -> bool:
        return self.role is RoleEnum.admin

    @property
    def is_upholsterer(self) -> bool:
        return self.role is RoleEnum.upholsterer


def get_password_hash(password: str) -> str:
    """Хешируем пароль для хранения в БД (bcrypt, соль внутри хеша)."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Проверяем пароль при логине."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, role: RoleEnum, expires_delta: timedelta | None = None) -> str:
    """Создаём JWT токен с полями sub = id пользователя и role."""
    now = datetime.utcnow()
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "role": RoleEnum(role).value,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str | None) -> Principal | None:
    """
    Проверяет токен и возвращает Principal.
    Битый, просроченный или чужой подписью токен даёт None, исключений наружу нет.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        return None
    try:
        return Principal(user_id=str(user_id), role=RoleEnum(role))
    except ValueError:
        return None

