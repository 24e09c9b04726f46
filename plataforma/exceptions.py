"""
Centralized exception classes for the plataforma layer.

Exception Hierarchy:
    PlataformaException (base)
    ├── ValidationProblem
    ├── TokenError
    └── ConfigurationError
    HTTPException (convenience wrappers)
    ├── BadRequest (400)
    │   └── IdentityFailure
    ├── Unauthorized (401)
    └── Forbidden (403)

Example:
    from plataforma.exceptions import BadRequest, ValidationProblem

    raise BadRequest("Erro ao salvar o registro", code="save_failed")
    raise ValidationProblem({"nome": ["The nome field is required."]})
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException as FastAPIHTTPException
from fastapi import status


# =============================================================================
# Base Exception
# =============================================================================

class PlataformaException(Exception):
    """
    Base exception for all plataforma exceptions.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional error details
    """

    message: str = "An error occurred"
    code: str = "error"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result = {
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r})"


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationProblem(PlataformaException):
    """
    One or more field validation failures on an inbound payload.

    Rendered as a 400 problem document with a ``field -> [messages]`` map.

    Example:
        raise ValidationProblem({"confirmPassword": ["The passwords do not match."]})
    """

    message = "One or more validation errors occurred."
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    problem_type = "https://tools.ietf.org/html/rfc7231#section-6.5.1"

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__()
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationProblem":
        """Create a problem with a single field error."""
        return cls({field: [message]})

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.problem_type,
            "title": self.message,
            "status": self.status_code,
            "errors": self.errors,
        }


# =============================================================================
# Auth Exceptions
# =============================================================================

class TokenError(PlataformaException):
    """Raised when a bearer token cannot be decoded or verified."""

    message = "Invalid token"
    code = "invalid_token"


# =============================================================================
# HTTP Exceptions
# =============================================================================

class HTTPException(FastAPIHTTPException):
    """
    HTTP exception carrying a machine-readable code.

    Example:
        raise HTTPException(404, "Fornecedor not found", code="not_found")
    """

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        headers: dict[str, str] | None = None,
        code: str | None = None,
    ) -> None:
        if code and detail:
            detail = {"message": detail, "code": code}
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class BadRequest(HTTPException):
    """
    400 Bad Request exception.

    Example:
        raise BadRequest("Ocorreu um problema ao alterar o registro", code="update_failed")
    """

    def __init__(self, detail: str = "Bad request", code: str = "bad_request") -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, code=code)


class IdentityFailure(BadRequest):
    """
    400 raised when the identity store rejects an operation.

    The detail carries the list of ``{"code", "description"}`` errors
    reported by the user manager.
    """

    def __init__(
        self,
        errors: list[dict[str, str]],
        detail: str = "Identity operation failed",
        code: str = "identity_error",
    ) -> None:
        super().__init__(detail, code=code)
        self.errors = errors
        self.detail["errors"] = errors


class Unauthorized(HTTPException):
    """
    401 Unauthorized exception.

    Example:
        raise Unauthorized("Invalid or expired token")
    """

    def __init__(
        self,
        detail: str = "Authentication required",
        code: str = "unauthorized",
        headers: dict[str, str] | None = None,
    ) -> None:
        if headers is None:
            headers = {"WWW-Authenticate": "Bearer"}
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail, headers=headers, code=code)


class Forbidden(HTTPException):
    """
    403 Forbidden exception.

    Use when user is authenticated but lacks a required claim.
    """

    def __init__(self, detail: str = "Access forbidden", code: str = "forbidden") -> None:
        super().__init__(status.HTTP_403_FORBIDDEN, detail, code=code)


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(PlataformaException):
    """
    Raised when there's a configuration error.

    Example:
        raise ConfigurationError("Policy 'ExcluirFornecedor' is not registered")
    """

    message = "Configuration error"
    code = "configuration_error"


__all__ = [
    "PlataformaException",
    "ValidationProblem",
    "TokenError",
    "HTTPException",
    "BadRequest",
    "IdentityFailure",
    "Unauthorized",
    "Forbidden",
    "ConfigurationError",
]
