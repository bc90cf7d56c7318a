"""
Entidades de dominio del almacen destino: definiciones de campo y registros.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from app.shared.constants.salsify_constants import (
    HIGH_WATER_MARK_FIELD,
    SYNC_ID_FIELD,
    FieldKind,
)


@dataclass
class FieldDefinition:
    """
    Definicion de un campo en un (entity_type, bundle).

    cardinality -1 significa multivaluado sin limite.
    displays guarda los componentes adjuntos, p.ej.
    {"view.default": {"label": "above", "weight": 0}}.
    """

    entity_type: str
    bundle: str
    field_name: str
    kind: FieldKind
    label: str = ""
    cardinality: int = 1
    settings: Dict[str, Any] = field(default_factory=dict)
    displays: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def max_length(self) -> Optional[int]:
        value = self.settings.get("max_length")
        return int(value) if value else None

    @property
    def target_type(self) -> Optional[str]:
        return self.settings.get("target_type")


@dataclass
class TargetEntity:
    """
    Registro generico del almacen destino.

    Los valores de campo viven en `values`; title/status/created/changed
    tambien se guardan ahi para simplificar el contrato del almacen.
    """

    entity_type: str
    bundle: str
    id: Optional[int] = None
    values: Dict[str, Any] = field(default_factory=dict)

    def get(self, field_name: str, default: Any = None) -> Any:
        return self.values.get(field_name, default)

    def set(self, field_name: str, value: Any) -> None:
        self.values[field_name] = value

    @property
    def title(self) -> str:
        return str(self.values.get("title") or "")

    @property
    def sync_id(self) -> Optional[str]:
        return self.values.get(SYNC_ID_FIELD)

    @property
    def high_water_mark(self) -> Optional[int]:
        value = self.values.get(HIGH_WATER_MARK_FIELD)
        return int(value) if value is not None else None
