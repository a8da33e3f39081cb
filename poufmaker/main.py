# poufmaker/main.py
# Точка входа FastAPI. Хэндл БД и почта создаются явно и передаются в create_app;
# таблицы создаются в lifespan с обработкой ошибок.

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from poufmaker.api import auth as auth_router
from poufmaker.api import bids as bids_router
from poufmaker.api import conversations as conversations_router
from poufmaker.api import products as products_router
from poufmaker.core.config import Settings, settings as default_settings
from poufmaker.core.email import Mailer
from poufmaker.core.errors import DomainError, Internal, InvalidRequest
from poufmaker.db.session import Database

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    mailer: Mailer | None = None,
) -> FastAPI:
    settings = settings or default_settings
    database = database or Database(settings.DATABASE_URL)
    mailer = mailer or Mailer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Управление жизненным циклом приложения.
        Запускается при старте и завершении приложения.
        """
        # Startup
        logger.info("🚀 Poufmaker API starting up...")
        if not database.create_all(retries=5, delay=2):
            logger.error("⚠️ Failed to create database tables. Application may not work correctly.")
            if settings.is_production:
                raise RuntimeError("Cannot start application: database tables creation failed")

        yield

        # Shutdown
        logger.info("🛑 Poufmaker API shutting down...")
        try:
            database.dispose()
            logger.info("✅ Database connection closed")
        except Exception as e:
            logger.error(f"Error closing database: {e}")

    app = FastAPI(
        title="Poufmaker API",
        description="Marketplace API: products, upholsterer bids and support chat",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.mailer = mailer

    # CORS: в development всё открыто, иначе — только CORS_ORIGINS
    if settings.ENVIRONMENT == "development":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["*"],
        )

    # Подключаем роутеры
    app.include_router(auth_router.router, prefix="/auth", tags=["auth"])
    app.include_router(products_router.router, prefix="/products", tags=["products"])
    app.include_router(bids_router.router, prefix="/bids", tags=["bids"])
    app.include_router(conversations_router.router, prefix="/conversations", tags=["conversations"])

    # Базовые health check endpoints
    @app.get("/", tags=["health"])
    async def root():
        """Базовый health check."""
        return {
            "status": "ok",
            "service": "Poufmaker API",
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/health", tags=["health"])
    def health():
        """Детальный health check: проверяет соединение с БД."""
        try:
            database.connect()
            db_state = "connected"
        except Exception as e:
            logger.warning(f"Health check: database unavailable: {e}")
            db_state = "unavailable"
        return {
            "status": "healthy" if db_state == "connected" else "degraded",
            "database": db_state,
            "version": "1.0.0",
        }

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
        body = InvalidRequest(message).to_dict()
        body["errors"] = errors
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    # Глобальный обработчик исключений
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Всё непредусмотренное — 500 без внутренних подробностей; контекст только в логе."""
        logger.error(f"{request.method} {request.url.path} unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=Internal("Internal server error").to_dict(),
        )

    return app


# Настройка логирования
logging.basicConfig(level=default_settings.LOG_LEVEL)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "poufmaker.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.ENVIRONMENT == "development",
        log_level=default_settings.LOG_LEVEL.lower(),
    )
