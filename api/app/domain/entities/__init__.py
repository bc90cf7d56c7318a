"""
Entidades del dominio.
"""
from app.domain.entities.field_mapping import FieldMapping, build_mapping_key
from app.domain.entities.content import FieldDefinition, TargetEntity

__all__ = [
    "FieldMapping",
    "build_mapping_key",
    "FieldDefinition",
    "TargetEntity",
]
