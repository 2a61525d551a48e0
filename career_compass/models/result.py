"""
Result Models
Uniform data/error pair returned by every backend-facing operation
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Type

import structlog
from pydantic import BaseModel, ValidationError

logger = structlog.get_logger(__name__)


@dataclass
class ServiceError:
    """Error reported by the backend or by a follow-up step"""
    message: str
    code: str = "backend_error"
    status: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: Exception) -> "ServiceError":
        """Build from a Supabase auth/postgrest exception or any other error"""
        message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        code = getattr(exc, "code", None) or "backend_error"
        status = getattr(exc, "status", None)
        return cls(
            message=str(message),
            code=str(code),
            status=status if isinstance(status, int) else None
        )


@dataclass
class AuthResult:
    """
    Outcome of a gateway or accessor call.

    Exactly one of ``data``/``error`` is meaningful. ``warnings`` lists
    follow-up steps that failed after the primary call succeeded.
    """
    data: Any = None
    error: Optional[ServiceError] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error, warnings: Optional[List[str]] = None) -> "AuthResult":
        if isinstance(error, Exception):
            error = ServiceError.from_exception(error)
        return cls(data=None, error=error, warnings=list(warnings or []))


def parse_rows(model: Type[BaseModel], rows: Iterable[Dict[str, Any]]) -> AuthResult:
    """
    Validate table rows into ``model`` instances

    A row that does not fit the model (e.g. a NULL required column) fails
    the whole result with code ``invalid_row`` instead of raising.
    """
    try:
        return AuthResult(data=[model.model_validate(row) for row in rows])
    except ValidationError as e:
        logger.error("Malformed table row", model=model.__name__, errors=e.error_count(), error=str(e))
        return AuthResult.failure(ServiceError(
            f"Malformed {model.__name__} data",
            code="invalid_row"
        ))


def parse_row(model: Type[BaseModel], row: Dict[str, Any]) -> AuthResult:
    """Single-row variant of ``parse_rows``"""
    result = parse_rows(model, [row])
    if result.ok:
        result.data = result.data[0]
    return result
