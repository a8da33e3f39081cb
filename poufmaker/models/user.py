# poufmaker/models/user.py
# Модель пользователя: email, hashed_password, role, подтверждение почты, сброс пароля.
# Плюс журнал сессий и истории входов (только аудит, токены по ним не проверяются).
import enum

from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship

from poufmaker.db.base import Base, new_id, utcnow


class RoleEnum(str, enum.Enum):
    client = "client"
    upholsterer = "upholsterer"
    admin = "admin"


def enum_column(enum_cls):
    """Enum хранится строкой со значениями (а не именами) членов."""
    return Enum(
        enum_cls,
        values_callable=lambda e: [m.value for m in e],
        native_enum=False,
        length=32,
    )


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(enum_column(RoleEnum), nullable=False, default=RoleEnum.client)
    email_confirmed = Column(Boolean, nullable=False, default=False)
    confirmation_token = Column(String, nullable=True, index=True)
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expiry = Column(DateTime, nullable=True)
    last_login_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    login_history = relationship("UserLoginHistory", back_populates="user", cascade="all, delete-orphan")


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="sessions")


class UserLoginHistory(Base):
    __tablename__ = "user_login_history"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    successful = Column(Boolean, nullable=False, default=True)
    failure_reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="login_history")
