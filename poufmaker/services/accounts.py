# poufmaker/services/accounts.py
# Регистрация, вход, подтверждение email и сброс пароля.
import logging
import uuid
from datetime import timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from poufmaker.core import security
from poufmaker.core.config import settings
from poufmaker.core.email import Mailer
from poufmaker.core.errors import InvalidRequest, NotFound, Unauthorized
from poufmaker.db.base import utcnow
from poufmaker.models.user import RoleEnum, User, UserLoginHistory, UserSession

logger = logging.getLogger(__name__)

# Самостоятельно зарегистрироваться можно только клиентом или обивщиком
SELF_REGISTER_ROLES = (RoleEnum.client, RoleEnum.upholsterer)


def _check_password(password: str) -> None:
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise InvalidRequest(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user


def register(
    db: Session,
    mailer: Mailer,
    email: str,
    password: str,
    full_name: str,
    phone_number: str | None = None,
    role: RoleEnum = RoleEnum.client,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User:
    """
    Регистрация пользователя. Email должен быть уникальным, пароль достаточно длинным.
    Письмо с подтверждением отправляется после коммита; его ошибка регистрацию не ломает.
    """
    _check_password(password)
    if role not in SELF_REGISTER_ROLES:
        raise InvalidRequest(f"Role '{role.value}' cannot be chosen at registration")

    existing = db.query(User.id).filter(User.email == email).first()
    if existing:
        raise InvalidRequest("Email already registered")

    user = User(
        email=email,
        full_name=full_name,
        phone_number=phone_number,
        hashed_password=security.get_password_hash(password),
        role=role,
        email_confirmed=False,
        confirmation_token=str(uuid.uuid4()),
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # параллельная регистрация с тем же email
        db.rollback()
        raise InvalidRequest("Email already registered")
    db.add(UserLoginHistory(
        user_id=user.id,
        ip_address=ip_address,
        user_agent=user_agent,
        successful=True,
        failure_reason="Registration successful",
    ))
    db.commit()
    db.refresh(user)
    logger.info(f"✅ User registered: {user.id} ({user.role.value})")

    if not mailer.send_confirmation(user.email, user.confirmation_token):
        logger.warning(f"Failed to send confirmation email to user {user.id}")
    return user


def _record_login(db: Session, user: User, successful: bool, reason: str | None,
                  ip_address: str | None, user_agent: str | None) -> None:
    db.add(UserLoginHistory(
        user_id=user.id,
        ip_address=ip_address,
        user_agent=user_agent,
        successful=successful,
        failure_reason=reason,
    ))


def login(
    db: Session,
    email: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> tuple[str, User]:
    """Проверка учётных данных и выдача токена на ACCESS_TOKEN_EXPIRE_MINUTES."""
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        logger.warning("Login failed: unknown email")
        raise Unauthorized("Invalid credentials")

    if not security.verify_password(password, user.hashed_password):
        logger.warning(f"Login failed: bad password for user {user.id}")
        try:
            _record_login(db, user, False, "Invalid password", ip_address, user_agent)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Could not record failed login for user {user.id}: {e}")
        raise Unauthorized("Invalid credentials")

    if not user.email_confirmed:
        raise Unauthorized("Email not confirmed")

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = security.create_access_token(user.id, user.role, expires_delta=expires)

    # Сессия и история — только аудит, их сбой вход не отменяет
    try:
        now = utcnow()
        db.add(UserSession(
            user_id=user.id,
            token=token,
            expires_at=now + expires,
            ip_address=ip_address,
            user_agent=user_agent,
        ))
        user.last_login_date = now
        _record_login(db, user, True, None, ip_address, user_agent)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Session/history creation failed for user {user.id}: {e}")
    db.refresh(user)
    logger.info(f"🔑 User logged in: {user.id}")
    return token, user


def verify_email(db: Session, token: str) -> User:
    if not token:
        raise InvalidRequest("Confirmation token is required")
    user = (
        db.query(User)
        .filter(User.confirmation_token == token, User.email_confirmed.is_(False))
        .first()
    )
    if user is None:
        raise InvalidRequest("Invalid or expired confirmation token")
    user.email_confirmed = True
    user.confirmation_token = None
    db.commit()
    logger.info(f"Email confirmed for user {user.id}")
    return user


def request_password_reset(db: Session, mailer: Mailer, email: str) -> None:
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise NotFound("User not found")
    user.reset_password_token = str(uuid.uuid4())
    user.reset_password_expiry = utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    db.commit()

    if not mailer.send_password_reset(user.email, user.reset_password_token):
        logger.warning(f"Failed to send password reset email to user {user.id}")


def reset_password(
    db: Session,
    token: str,
    new_password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User:
    _check_password(new_password)
    user = (
        db.query(User)
        .filter(User.reset_password_token == token, User.reset_password_expiry > utcnow())
        .first()
    )
    if user is None:
        raise InvalidRequest("Invalid or expired reset token")
    user.hashed_password = security.get_password_hash(new_password)
    user.reset_password_token = None
    user.reset_password_expiry = None
    _record_login(db, user, True, "Password reset successful", ip_address, user_agent)
    db.commit()
    logger.info(f"Password reset for user {user.id}")
    return user
