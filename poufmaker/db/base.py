# poufmaker/db/base.py
# Общая declarative база для SQLAlchemy.
# Этот модуль должен быть максимально простым и не импортировать модели,
# чтобы избежать циклических импортов. Модели должны импортировать Base отсюда.

import uuid
from datetime import datetime

from sqlalchemy.orm import declarative_base

# Единственная точка определения Base для всех моделей
Base = declarative_base()


def new_id() -> str:
    """Глобально уникальный непрозрачный идентификатор (UUID строкой)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Текущее время в UTC (naive, как хранится в БД)."""
    return datetime.utcnow()
