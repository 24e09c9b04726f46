"""
Configurações centralizadas da plataforma.

UNICO local de configuração para toda a aplicação:
- Database, CORS, Server
- Auth (JWT, hash de senha)
- Identity (política de senha, lockout)
- Logging

Uso:
    # settings.py do projeto
    from plataforma.config import Settings, configure

    class AppSettings(Settings):
        app_name: str = "Minha API"

    settings = configure(settings_class=AppSettings)

Configuração via .env:
    DATABASE_URL=sqlite+aiosqlite:///./fornecedores.db
    AUTH_SECRET_KEY=troque-esta-chave
    AUTH_ACCESS_TOKEN_EXPIRE_HOURS=2

Resolução de .env por ambiente:
    Precedência (maior para menor):
    1. Variáveis de ambiente do OS
    2. .env.{ENVIRONMENT} (ex: .env.production)
    3. .env (base)
    4. Defaults da classe Settings
"""

import logging
import os
import secrets
from pathlib import Path
from typing import Any, Literal, Self

from pydantic import Field as PydanticField, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("plataforma.config")


# =========================================================================
# ENV FILE RESOLUTION
# =========================================================================

def _resolve_env_files() -> tuple[str, ...]:
    """
    Resolve .env files baseado na variável ENVIRONMENT.

    Returns:
        Tupla de paths de .env files para carregar
    """
    env = os.environ.get("ENVIRONMENT", "development")
    files: list[str] = []

    if Path(".env").is_file():
        files.append(".env")

    env_file = f".env.{env}"
    if Path(env_file).is_file():
        files.append(env_file)

    return tuple(files) if files else (".env",)


class Settings(BaseSettings):
    """
    Configurações centralizadas da plataforma.

    Variáveis de ambiente carregadas automaticamente:
        DATABASE_URL, SECRET_KEY, AUTH_ISSUER, LOG_LEVEL, etc.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Application
    # =========================================================================

    app_name: str = PydanticField(
        default="Plataforma API",
        description="Nome da aplicação",
    )
    app_version: str = PydanticField(
        default="0.1.0",
        description="Versão da aplicação",
    )
    environment: Literal["development", "staging", "production", "testing"] = PydanticField(
        default="development",
        description="Ambiente de execução",
    )
    debug: bool = PydanticField(
        default=False,
        description="Modo debug (NUNCA use em produção)",
    )
    secret_key: str = PydanticField(
        default="__auto_generate__",
        description=(
            "Chave secreta para tokens. "
            "OBRIGATÓRIA em production/staging. "
            "Em development/testing, auto-gerada se não configurada."
        ),
    )
    auto_create_tables: bool = PydanticField(
        default=False,
        description="Se True, cria tabelas automaticamente no startup",
    )

    # =========================================================================
    # Database
    # =========================================================================

    database_url: str = PydanticField(
        default="sqlite+aiosqlite:///./app.db",
        description="URL de conexão async do banco de dados",
    )
    database_echo: bool = PydanticField(
        default=False,
        description="Loga SQL gerado",
    )
    database_pool_size: int = PydanticField(
        default=5,
        description="Tamanho do pool de conexões (ignorado em SQLite)",
    )
    database_max_overflow: int = PydanticField(
        default=10,
        description="Conexões extras além do pool (ignorado em SQLite)",
    )

    # =========================================================================
    # CORS
    # =========================================================================

    cors_origins: list[str] = PydanticField(
        default=["*"],
        description="Origens permitidas em CORS",
    )
    cors_allow_credentials: bool = PydanticField(
        default=False,
        description="Permite credenciais em CORS",
    )

    # =========================================================================
    # Authentication (JWT)
    # =========================================================================

    auth_secret_key: str | None = PydanticField(
        default=None,
        description="Chave secreta para tokens (usa secret_key se None)",
    )
    auth_algorithm: str = PydanticField(
        default="HS256",
        description="Algoritmo JWT",
    )
    auth_access_token_expire_hours: int = PydanticField(
        default=2,
        description="Tempo de expiração do access token em horas",
    )
    auth_issuer: str = PydanticField(
        default="MeuSistema",
        description="Emissor (iss) dos tokens",
    )
    auth_audience: str = PydanticField(
        default="https://localhost",
        description="Audiência (aud) dos tokens",
    )
    auth_password_hasher: Literal["pbkdf2_sha256"] = PydanticField(
        default="pbkdf2_sha256",
        description="Algoritmo de hash de senha",
    )
    auth_password_iterations: int = PydanticField(
        default=600_000,
        description="Iterações do PBKDF2",
    )

    # =========================================================================
    # Identity
    # =========================================================================

    identity_password_required_length: int = PydanticField(
        default=6,
        description="Tamanho mínimo da senha",
    )
    identity_password_require_digit: bool = PydanticField(
        default=True,
        description="Senha precisa de ao menos um dígito",
    )
    identity_password_require_lowercase: bool = PydanticField(
        default=True,
        description="Senha precisa de ao menos uma letra minúscula",
    )
    identity_password_require_uppercase: bool = PydanticField(
        default=True,
        description="Senha precisa de ao menos uma letra maiúscula",
    )
    identity_password_require_non_alphanumeric: bool = PydanticField(
        default=True,
        description="Senha precisa de ao menos um caractere não alfanumérico",
    )
    identity_password_required_unique_chars: int = PydanticField(
        default=1,
        description="Quantidade mínima de caracteres distintos na senha",
    )
    identity_require_unique_email: bool = PydanticField(
        default=True,
        description="Rejeita emails já cadastrados",
    )
    identity_require_confirmed_email: bool = PydanticField(
        default=False,
        description="Bloqueia login de usuários sem email confirmado",
    )
    identity_lockout_allowed_for_new_users: bool = PydanticField(
        default=True,
        description="Novos usuários podem ser bloqueados",
    )
    identity_lockout_max_failed_attempts: int = PydanticField(
        default=5,
        description="Falhas de login até o bloqueio",
    )
    identity_lockout_minutes: int = PydanticField(
        default=5,
        description="Duração do bloqueio em minutos",
    )

    # =========================================================================
    # Server
    # =========================================================================

    host: str = PydanticField(
        default="0.0.0.0",
        description="Host do servidor",
    )
    port: int = PydanticField(
        default=8000,
        description="Porta do servidor",
    )
    reload: bool = PydanticField(
        default=False,
        description="Auto-reload em desenvolvimento",
    )

    # =========================================================================
    # Logging
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = PydanticField(
        default="INFO",
        description="Nível de log",
    )
    log_format: str = PydanticField(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Formato de log",
    )

    @model_validator(mode="after")
    def _apply_security_and_defaults(self) -> Self:
        """
        Valida/gera secret_key baseado no ambiente.

        Executado automaticamente após a criação do Settings.
        """
        if self.secret_key == "__auto_generate__":
            if self.environment in ("production", "staging"):
                raise ValueError(
                    "SECRET_KEY is required in production/staging environments. "
                    "Set SECRET_KEY in your .env file or as an environment variable."
                )
            generated = secrets.token_urlsafe(64)
            object.__setattr__(self, "secret_key", generated)
            logger.warning(
                "SECRET_KEY not configured, auto-generated random key for '%s'. "
                "This key changes on every restart. Set SECRET_KEY for persistent tokens.",
                self.environment,
            )

        if self.environment == "production":
            if self.debug:
                logger.warning(
                    "DEBUG=True in production environment. "
                    "This exposes sensitive information. Set DEBUG=False."
                )
            if "*" in self.cors_origins:
                logger.warning(
                    "CORS_ORIGINS contains '*' in production. "
                    "Restrict to specific domains."
                )

        return self

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def is_development(self) -> bool:
        """Verifica se está em desenvolvimento."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Verifica se está em produção."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Verifica se está em testes."""
        return self.environment == "testing"

    @property
    def effective_auth_secret(self) -> str:
        """Retorna a chave secreta efetiva para auth."""
        return self.auth_secret_key or self.secret_key


# =========================================================================
# GLOBAL SETTINGS SINGLETON
# =========================================================================

_settings: Settings | None = None
_settings_class: type[Settings] = Settings

_on_settings_loaded: list[Any] = []


def get_settings() -> Settings:
    """Retorna o singleton global de Settings."""
    global _settings

    if _settings is None:
        _settings = _settings_class(_env_file=_resolve_env_files())
        for callback in _on_settings_loaded:
            callback(_settings)

    return _settings


def configure(
    settings_class: type[Settings] | None = None,
    **overrides: Any,
) -> Settings:
    """
    Configura a plataforma ANTES de iniciar a aplicação.

    Args:
        settings_class: Classe customizada de Settings (opcional)
        **overrides: Valores para sobrescrever

    Returns:
        Settings configurado
    """
    global _settings, _settings_class

    if settings_class is not None:
        _settings_class = settings_class

    if overrides:
        unknown = set(overrides) - set(_settings_class.model_fields)
        if unknown:
            logger.warning(
                "Unknown settings keys passed to configure(): %s.",
                ", ".join(sorted(unknown)),
            )

    _settings = _settings_class(_env_file=_resolve_env_files(), **overrides)

    for callback in _on_settings_loaded:
        callback(_settings)

    return _settings


def on_settings_loaded(callback: Any) -> Any:
    """
    Registra callback executado após Settings ser carregado.

    Exemplo:
        @on_settings_loaded
        def setup_logging(settings):
            logging.basicConfig(level=settings.log_level)
    """
    _on_settings_loaded.append(callback)
    return callback


def reset_settings() -> None:
    """
    Reseta configurações. Útil para testes.

    Em produção, emite um warning e não executa.
    """
    global _settings, _settings_class

    if _settings is not None and _settings.environment == "production":
        logger.warning(
            "reset_settings() called in production environment, ignored. "
            "This function is intended for testing only."
        )
        return

    _settings = None
    _settings_class = Settings


@on_settings_loaded
def configure_logging(settings: Settings) -> None:
    """Configura o logging raiz a partir das settings."""
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
