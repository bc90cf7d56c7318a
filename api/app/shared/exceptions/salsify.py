"""
Excepciones del sincronizador Salsify.
"""
from typing import Any, Dict, Optional

from app.shared.exceptions.base import AppException


class SalsifyException(AppException):
    """Excepcion base para errores de integracion con Salsify."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "SALSIFY_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class TransportError(SalsifyException):
    """Fallo de red/HTTP o JSON invalido al consultar el canal."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="SALSIFY_TRANSPORT_ERROR",
            details=details,
        )


class DataShapeError(SalsifyException):
    """El payload de Salsify no tiene la forma esperada."""

    def __init__(self, message: str, missing: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="SALSIFY_DATA_SHAPE_ERROR",
            details={"missing": missing} if missing else None,
        )


class MissingBundleConfigError(SalsifyException):
    """No hay entity_type/bundle destino configurado."""

    def __init__(self, entity_type: str = "", bundle: str = ""):
        super().__init__(
            message="No hay tipo de contenido configurado para la importacion",
            status_code=400,
            error_code="SALSIFY_BUNDLE_NOT_CONFIGURED",
            details={"entity_type": entity_type, "bundle": bundle},
        )


class ReconciliationFieldError(SalsifyException):
    """Fallo al crear/actualizar/eliminar un campo individual."""

    def __init__(self, operation: str, salsify_id: str, field_name: str, cause: Exception):
        super().__init__(
            message=f"Error en '{operation}' del campo {field_name} ({salsify_id}): {cause}",
            status_code=500,
            error_code="SALSIFY_FIELD_ERROR",
            details={
                "operation": operation,
                "salsify_id": salsify_id,
                "field_name": field_name,
            },
        )
        self.operation = operation
        self.salsify_id = salsify_id
        self.field_name = field_name


class RecordError(SalsifyException):
    """Un registro de producto no puede procesarse (p.ej. sin identidad)."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="SALSIFY_RECORD_ERROR",
            details={"record_id": record_id} if record_id else None,
        )


class SyncInProgressError(SalsifyException):
    """Otra corrida mantiene el lock del bundle."""

    def __init__(self, entity_type: str, bundle: str):
        super().__init__(
            message=f"Ya hay una sincronizacion en curso para {entity_type}.{bundle}",
            status_code=409,
            error_code="SALSIFY_SYNC_IN_PROGRESS",
            details={"entity_type": entity_type, "bundle": bundle},
        )
