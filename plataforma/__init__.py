"""
Plataforma - base FastAPI + SQLAlchemy async para APIs pequenas.

Fornece:
- Models e Manager com leitura sem rastreamento
- Validação explícita de DTOs com resposta de problema (400)
- Store de identidade (usuários, claims, roles, lockout) e tokens JWT
- Políticas de autorização por claim
"""

from plataforma.models import Model, Field
from plataforma.serializers import InputSchema, OutputSchema
from plataforma.validation import validate
from plataforma.database import DBSession, get_db, save_changes
from plataforma.permissions import (
    Permission,
    AllowAny,
    IsAuthenticated,
    RequireClaim,
    HasRole,
    PolicyRegistry,
    authorize,
)
from plataforma.config import Settings, configure, get_settings
from plataforma.app import PlataformaApp, create_app

__version__ = "0.1.0"

__all__ = [
    "Model",
    "Field",
    "InputSchema",
    "OutputSchema",
    "validate",
    "DBSession",
    "get_db",
    "save_changes",
    "Permission",
    "AllowAny",
    "IsAuthenticated",
    "RequireClaim",
    "HasRole",
    "PolicyRegistry",
    "authorize",
    "Settings",
    "configure",
    "get_settings",
    "PlataformaApp",
    "create_app",
]
