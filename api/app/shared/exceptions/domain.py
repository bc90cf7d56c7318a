"""
Errores de dominio: recursos inexistentes y entradas invalidas.
"""
from typing import Any, Dict, Optional

from app.shared.exceptions.base import AppException


class DomainException(AppException):
    def __init__(
        self,
        message: str,
        error_code: str = "DOMAIN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class EntityNotFoundException(DomainException):
    """Campo, mapeo o registro inexistente (HTTP 404)."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} '{entity_id}' no encontrado",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)},
            status_code=404,
        )


class ValidationException(DomainException):
    """Entrada rechazada; `field` indica el dato ofensivo."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else None,
        )
