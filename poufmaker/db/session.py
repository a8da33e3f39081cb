# poufmaker/db/session.py
# Хэндл хранилища: SQLAlchemy engine + фабрика сессий.
# Создаётся явно и передаётся в приложение, глобального клиента нет.
# Поддерживает как Postgres, так и SQLite (для тестов/локального использования).

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from poufmaker.db.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine, фабрика сессий и явный жизненный цикл connect/dispose."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.is_sqlite = url.startswith("sqlite")

        # Для sqlite требуется connect_args; для Postgres — пустой dict
        connect_args = {"check_same_thread": False, "timeout": 30} if self.is_sqlite else {}

        # pool_pre_ping полезен для долгоживущих соединений с Postgres
        self.engine = create_engine(
            url,
            connect_args=connect_args,
            pool_pre_ping=True,
            echo=echo,
        )
        if self.is_sqlite:
            self._configure_sqlite()
        # Соединения этого engine открывают транзакцию с блокировкой записи (SQLite)
        self.write_engine = self.engine.execution_options(sqlite_immediate=True)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def _configure_sqlite(self) -> None:
        # pysqlite сам открывает транзакции лениво и не блокирует писателей.
        # Берём управление на себя: транзакции пишущих сессий начинаются с
        # BEGIN IMMEDIATE (записи сериализуются на уровне файла БД),
        # читающие — с обычного BEGIN и не держат блокировку записи.
        @event.listens_for(self.engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(self.engine, "begin")
        def _on_begin(conn):
            if conn.get_execution_options().get("sqlite_immediate"):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

    def connect(self) -> None:
        """Проверяет, что БД отвечает. Бросает исключение драйвера, если нет."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def create_all(self, retries: int = 5, delay: int = 2) -> bool:
        """
        Пытаемся создать таблицы с повторными попытками.
        Если БД недоступна, логируем ошибку и пробуем снова.

        Returns:
            True если таблицы созданы/существуют, False если все попытки исчерпаны
        """
        # Импорт моделей, чтобы SQLAlchemy видел их определения
        import poufmaker.models.user  # noqa: F401
        import poufmaker.models.product  # noqa: F401
        import poufmaker.models.bid  # noqa: F401
        import poufmaker.models.conversation  # noqa: F401

        for attempt in range(1, retries + 1):
            try:
                logger.info(f"Creating tables ({attempt}/{retries})...")
                Base.metadata.create_all(bind=self.engine)
                logger.info("✅ Database tables created (or already exist).")
                return True
            except Exception as e:
                logger.warning(f"❌ Attempt {attempt}/{retries} failed to create tables: {e}")
                if attempt < retries:
                    logger.info(f"⏳ Waiting {delay}s before retry...")
                    time.sleep(delay)
        logger.error(f"❌ Could not create tables after {retries} retries.")
        return False

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self, write: bool = False) -> Iterator[Session]:
        """
        Сессия на одну единицу работы; всегда закрывается (незакоммиченное откатывается).
        write=True: на SQLite транзакции сразу берут блокировку записи.
        """
        db = self.SessionLocal(bind=self.write_engine) if write else self.SessionLocal()
        try:
            yield db
        finally:
            db.close()
