"""
Persistencia ORM del almacen de contenido.

Importar este paquete registra los modelos content_* en Base.
"""
from app.infrastructure.database.models import (
    ContentEntityModel,
    ContentFieldIndexModel,
    ContentFieldModel,
)

__all__ = ["ContentEntityModel", "ContentFieldIndexModel", "ContentFieldModel"]
