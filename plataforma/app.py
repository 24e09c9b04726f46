"""
Bootstrap da plataforma - Aplicação principal.

Boot Sequence (ordem garantida):
1. Settings loaded (validado)
2. Policies registradas
3. Middleware applied (CORS, request id, logging, auth)
4. Exception handlers
5. Routes registered
6. Health checks registered
7. Startup (lifespan): database engine, tabelas, callbacks
"""

from __future__ import annotations

import logging
from typing import Any
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from plataforma.auth.middleware import AuthenticationMiddleware
from plataforma.auth.tokens import JwtSettings
from plataforma.config import Settings, get_settings
from plataforma.exceptions import ValidationProblem
from plataforma.middleware import LoggingMiddleware, RequestIDMiddleware
from plataforma.models import init_database, create_tables, close_database, get_session
from plataforma.permissions import PolicyRegistry
from plataforma.validation import collect_errors

app_logger = logging.getLogger("plataforma.app")


class PlataformaApp:
    """
    Wrapper de FastAPI com settings, políticas e ciclo de vida.

    Exemplo:
        app = PlataformaApp(
            settings=settings,
            routers=[auth_router, fornecedor_router],
            policies=register_policies,
        )
    """

    def __init__(
        self,
        title: str | None = None,
        description: str = "",
        settings: Settings | None = None,
        routers: list[APIRouter] | None = None,
        policies: Callable[[PolicyRegistry], None] | None = None,
        on_startup: list[Callable] | None = None,
        on_shutdown: list[Callable] | None = None,
        **fastapi_kwargs: Any,
    ) -> None:
        self.settings = settings or get_settings()
        self._on_startup = on_startup or []
        self._on_shutdown = on_shutdown or []

        self.app = FastAPI(
            title=title or self.settings.app_name,
            description=description,
            version=self.settings.app_version,
            lifespan=self._lifespan,
            **fastapi_kwargs,
        )

        # Estado acessível pelas dependencies
        self.app.state.settings = self.settings
        self.app.state.policies = PolicyRegistry()
        if policies is not None:
            policies(self.app.state.policies)

        self._setup_middleware()
        self._setup_exception_handlers()

        for router in routers or []:
            self.app.include_router(router)

        self._setup_health_checks()

    @property
    def policies(self) -> PolicyRegistry:
        return self.app.state.policies

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Gerencia o ciclo de vida da aplicação."""
        await self._startup()
        yield
        await self._shutdown()

    async def _startup(self) -> None:
        app_logger.info(
            "Starting %s (environment=%s, debug=%s)",
            self.settings.app_name,
            self.settings.environment,
            self.settings.debug,
        )

        await init_database(
            database_url=self.settings.database_url,
            echo=self.settings.database_echo,
            pool_size=self.settings.database_pool_size,
            max_overflow=self.settings.database_max_overflow,
        )

        if self.settings.auto_create_tables:
            await create_tables()

        for callback in self._on_startup:
            result = callback()
            if hasattr(result, "__await__"):
                await result

        app_logger.info("Application started successfully")

    async def _shutdown(self) -> None:
        for callback in self._on_shutdown:
            result = callback()
            if hasattr(result, "__await__"):
                await result

        await close_database()
        app_logger.info("Application stopped")

    def _setup_middleware(self) -> None:
        """Último adicionado executa primeiro: CORS > request id > logging > auth."""
        self.app.add_middleware(
            AuthenticationMiddleware,
            jwt_settings=JwtSettings.from_settings(self.settings),
        )
        self.app.add_middleware(LoggingMiddleware)
        self.app.add_middleware(RequestIDMiddleware)
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.settings.cors_origins,
            allow_credentials=self.settings.cors_allow_credentials,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _setup_exception_handlers(self) -> None:
        """Configura handlers de exceção."""

        # Erros de validação de DTOs
        @self.app.exception_handler(ValidationProblem)
        async def validation_problem_handler(
            request: Request,
            exc: ValidationProblem,
        ) -> JSONResponse:
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        # Erros de validação do FastAPI (path/body malformados)
        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(
            request: Request,
            exc: RequestValidationError,
        ) -> JSONResponse:
            problem = ValidationProblem(collect_errors(exc.errors(), strip_request_location=True))
            return JSONResponse(status_code=problem.status_code, content=problem.to_dict())

        # UNIQUE, FK, NOT NULL
        @self.app.exception_handler(IntegrityError)
        async def integrity_error_handler(
            request: Request,
            exc: IntegrityError,
        ) -> JSONResponse:
            app_logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
            return JSONResponse(
                status_code=409,
                content={
                    "detail": "A record with this value already exists.",
                    "code": "unique_constraint",
                },
            )

        # Conexão, lock, timeout
        @self.app.exception_handler(OperationalError)
        async def operational_error_handler(
            request: Request,
            exc: OperationalError,
        ) -> JSONResponse:
            app_logger.error("Database operation failed: %s", exc)
            return JSONResponse(
                status_code=503,
                content={
                    "detail": "Service temporarily unavailable. Please try again.",
                    "code": "service_unavailable",
                },
            )

        # Exceções não tratadas
        @self.app.exception_handler(Exception)
        async def generic_exception_handler(
            request: Request,
            exc: Exception,
        ) -> JSONResponse:
            app_logger.exception("Unhandled exception: %s", exc)
            return JSONResponse(
                status_code=500,
                content={
                    "detail": "Internal server error",
                    "code": "internal_error",
                },
            )

    def _setup_health_checks(self) -> None:
        """
        Registra endpoints de health check.

        - /healthz: Liveness probe
        - /readyz: Readiness probe (banco de dados)
        """
        @self.app.get("/healthz", tags=["health"], include_in_schema=False)
        async def healthz():
            return {"status": "alive"}

        @self.app.get("/readyz", tags=["health"], include_in_schema=False)
        async def readyz():
            try:
                session = await get_session()
                try:
                    await session.execute(text("SELECT 1"))
                finally:
                    await session.close()
            except (RuntimeError, OperationalError) as e:
                app_logger.warning("Readiness check failed: %s", e)
                return JSONResponse(
                    status_code=503,
                    content={"status": "not_ready", "checks": {"database": f"error: {type(e).__name__}"}},
                )

            return {"status": "ready", "checks": {"database": "ok"}}

    async def __call__(self, scope, receive, send):
        """Torna PlataformaApp callable como ASGI app (uvicorn main:app)."""
        await self.app(scope, receive, send)


def create_app(
    settings: Settings | None = None,
    **kwargs: Any,
) -> PlataformaApp:
    """Factory function para criar aplicação."""
    return PlataformaApp(settings=settings, **kwargs)
