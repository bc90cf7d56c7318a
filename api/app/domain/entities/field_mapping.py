"""
Entidad de dominio: FieldMapping.

Vincula un atributo remoto de Salsify con un campo local de un
(entity_type, bundle). Se persiste en un almacen clave-valor bajo la clave
"<method>.<entity_type>.<bundle>.<field_name>".
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from app.shared.constants.salsify_constants import MappingMethod


def build_mapping_key(
    method: str,
    entity_type: str,
    bundle: str,
    field_name: Optional[str] = None,
) -> str:
    """
    Construye la clave compuesta de un mapeo.

    Sin field_name se obtiene el prefijo del scope (usado para listados).
    """
    parts = [str(method), entity_type, bundle]
    if field_name:
        parts.append(field_name)
    return ".".join(parts)


@dataclass(frozen=True)
class FieldMapping:
    """
    Mapeo entre un campo remoto y un campo local.

    - salsify_id: id del atributo en Salsify
    - field_id: system id del atributo (llave del almacen de opciones)
    - created/changed: epoch-seconds; changed refleja el updated_at remoto
      aplicado por ultima vez
    """

    entity_type: str
    bundle: str
    method: MappingMethod
    salsify_id: str
    field_name: str
    field_id: str = ""
    salsify_data_type: str = "string"
    created: int = 0
    changed: int = 0

    @property
    def key(self) -> str:
        return build_mapping_key(self.method.value, self.entity_type, self.bundle, self.field_name)

    def with_changes(self, **changes: Any) -> "FieldMapping":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        return cls(
            entity_type=data["entity_type"],
            bundle=data["bundle"],
            method=MappingMethod(data["method"]),
            salsify_id=data["salsify_id"],
            field_name=data["field_name"],
            field_id=data.get("field_id") or "",
            salsify_data_type=data.get("salsify_data_type") or "string",
            created=int(data.get("created") or 0),
            changed=int(data.get("changed") or 0),
        )
