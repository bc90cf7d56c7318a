"""
Excepcion raiz de la aplicacion.

Toda excepcion con `status_code` y `error_code` se serializa igual en la
API (handler global) y en los scripts CLI.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Error con codigo HTTP y codigo de error estable.

    Args:
        message: Mensaje legible
        status_code: Codigo HTTP de la respuesta
        error_code: Identificador estable para clientes (p.ej. SALSIFY_TRANSPORT_ERROR)
        details: Datos adicionales serializables a JSON
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code}: {self.message})"
