"""
Almacenes de configuracion del sincronizador sobre un backend clave-valor:

- FieldMappingStore: mapeos campo remoto <-> campo local, con clave
  "<method>.<entity_type>.<bundle>.<field_name>"
- FieldOptionsStore: opciones permitidas de campos enumerados, por system_id
- SyncStateStore: scope (entity_type, bundle) de la ultima corrida

El backend se inyecta (Postgres en produccion, memoria en tests).
"""

from __future__ import annotations

from typing import Any, Optional, Union

from loguru import logger

from app.domain.entities.field_mapping import FieldMapping, build_mapping_key
from app.domain.repositories.key_value_backend import IKeyValueBackend
from app.shared.constants.salsify_constants import MappingMethod
from app.shared.utils.datetime_utils import epoch_now

from .hooks import FIELD_MAPPING_ALTER, HookRegistry

KEY_BY_OPTIONS = ("field_name", "salsify_id")
_REQUIRED_KEY_FIELDS = ("method", "entity_type", "bundle", "field_name")

MappingValues = Union[FieldMapping, dict[str, Any]]


def _as_dict(values: MappingValues) -> dict[str, Any]:
    if isinstance(values, FieldMapping):
        return values.to_dict()
    data = dict(values)
    if isinstance(data.get("method"), MappingMethod):
        data["method"] = data["method"].value
    return data


def _resolve_key(values: dict[str, Any]) -> str:
    missing = [name for name in _REQUIRED_KEY_FIELDS if not values.get(name)]
    if missing:
        raise ValueError(f"Faltan componentes de la clave del mapeo: {', '.join(missing)}")
    return build_mapping_key(
        MappingMethod(values["method"]).value,
        values["entity_type"],
        values["bundle"],
        values["field_name"],
    )


class FieldMappingStore:
    """
    Repositorio de FieldMapping.

    Antes de crear/actualizar, los callbacks registrados en
    FIELD_MAPPING_ALTER pueden reescribir el payload (p.ej. redirigir a
    otro campo destino).
    """

    def __init__(self, backend: IKeyValueBackend, *, hooks: Optional[HookRegistry] = None) -> None:
        self._backend = backend
        self._hooks = hooks or HookRegistry()

    def get_mappings(
        self,
        *,
        entity_type: str,
        bundle: str,
        method: Optional[MappingMethod] = None,
        field_name: Optional[str] = None,
        key_by: str = "field_name",
    ) -> dict[str, FieldMapping]:
        """
        Retorna los mapeos del scope indexados por key_by.

        Sin method se combinan ambos metodos; los manuales se leen al final
        y prevalecen si comparten salsify_id con uno dinamico.
        """
        if key_by not in KEY_BY_OPTIONS:
            raise ValueError(f"key_by invalido: {key_by}")

        methods = [method] if method else [MappingMethod.DYNAMIC, MappingMethod.MANUAL]
        result: dict[str, FieldMapping] = {}
        for current in methods:
            if field_name:
                key = build_mapping_key(current.value, entity_type, bundle, field_name)
                raw = self._backend.get(key)
                rows = {key: raw} if raw else {}
            else:
                rows = self._backend.get_by_prefix(build_mapping_key(current.value, entity_type, bundle) + ".")

            for raw in rows.values():
                mapping = FieldMapping.from_dict(raw)
                result[getattr(mapping, key_by)] = mapping
        return result

    def get_mapping(
        self,
        *,
        method: MappingMethod,
        entity_type: str,
        bundle: str,
        field_name: str,
    ) -> Optional[FieldMapping]:
        raw = self._backend.get(build_mapping_key(method.value, entity_type, bundle, field_name))
        return FieldMapping.from_dict(raw) if raw else None

    def create_mapping(self, values: MappingValues) -> FieldMapping:
        data = _as_dict(values)
        now = epoch_now()
        if not data.get("created"):
            data["created"] = now
        data.setdefault("changed", now)
        data = self._hooks.alter(FIELD_MAPPING_ALTER, data, {"operation": "create"})
        return self._write(data)

    def update_mapping(self, values: MappingValues) -> FieldMapping:
        data = _as_dict(values)
        existing = self._backend.get(_resolve_key(data)) or {}
        merged = {**existing, **data}
        merged = self._hooks.alter(FIELD_MAPPING_ALTER, merged, {"operation": "update"})
        return self._write(merged)

    def delete_mapping(
        self,
        *,
        method: MappingMethod,
        entity_type: str,
        bundle: str,
        field_name: str,
    ) -> bool:
        """Elimina exactamente un mapeo; no hay borrado por prefijo."""
        key = _resolve_key({
            "method": method.value if isinstance(method, MappingMethod) else method,
            "entity_type": entity_type,
            "bundle": bundle,
            "field_name": field_name,
        })
        deleted = self._backend.delete(key)
        if deleted:
            logger.info(f"Mapeo eliminado: {key}")
        return deleted

    def _write(self, data: dict[str, Any]) -> FieldMapping:
        key = _resolve_key(data)
        mapping = FieldMapping.from_dict(data)
        self._backend.set(key, mapping.to_dict())
        return mapping


class FieldOptionsStore:
    """Opciones permitidas {value_id: label} indexadas por system_id."""

    def __init__(self, backend: IKeyValueBackend) -> None:
        self._backend = backend

    def get_options(self, system_id: str) -> dict[str, str]:
        raw = self._backend.get(system_id)
        return dict(raw.get("options") or {}) if raw else {}

    def set_options(self, system_id: str, options: dict[str, str]) -> None:
        self._backend.set(system_id, {"options": dict(options)})

    def remove_options(self, system_id: str) -> bool:
        return self._backend.delete(system_id)

    def clear(self) -> int:
        return self._backend.clear()


class SyncStateStore:
    """Estado persistido del sync (scope destino de la ultima corrida)."""

    SCOPE_KEY = "scope"

    def __init__(self, backend: IKeyValueBackend) -> None:
        self._backend = backend

    def get_scope(self) -> Optional[tuple[str, str]]:
        raw = self._backend.get(self.SCOPE_KEY)
        if not raw:
            return None
        return raw["entity_type"], raw["bundle"]

    def set_scope(self, entity_type: str, bundle: str) -> None:
        self._backend.set(self.SCOPE_KEY, {"entity_type": entity_type, "bundle": bundle})
