"""
Reglas puras para definir campos locales a partir de atributos remotos:
- derivacion de nombres de maquina (<= 32 caracteres, sin colisiones)
- tabla de tipos remoto -> tipo de campo destino
- componentes de display por defecto
- compatibilidad de tipos para mapeos manuales
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, Set, Tuple

from app.domain.entities.content import FieldDefinition
from app.infrastructure.external.salsify_sync.types import RemoteField
from app.shared.constants.salsify_constants import (
    CUSTOM_FIELD_PREFIX,
    ENGINE_FIELD_PREFIX,
    FORM_DISPLAY_MODES,
    MACHINE_NAME_MAX_LENGTH,
    RESERVED_FIELD_PREFIX,
    VIEW_DISPLAY_MODES,
    FieldKind,
    RemoteDataType,
)

_NON_MACHINE_CHARS = re.compile(r"[^A-Za-z0-9_]")

# Funcion de valores permitidos para listas (resuelve contra el almacen de opciones)
ALLOWED_VALUES_FUNCTION = "salsify_allowed_values"

# Tipos locales aceptables para un mapeo manual, por tipo remoto
COMPATIBLE_KINDS: Dict[str, Tuple[FieldKind, ...]] = {
    RemoteDataType.ENUMERATED.value: (FieldKind.LIST_STRING, FieldKind.ENTITY_REFERENCE, FieldKind.STRING),
    RemoteDataType.DATE.value: (FieldKind.DATETIME, FieldKind.INTEGER, FieldKind.STRING),
    RemoteDataType.BOOLEAN.value: (FieldKind.BOOLEAN,),
    RemoteDataType.RICH_TEXT.value: (FieldKind.TEXT_LONG,),
    RemoteDataType.HTML.value: (FieldKind.STRING_LONG, FieldKind.TEXT_LONG),
    RemoteDataType.LINK.value: (FieldKind.LINK, FieldKind.STRING),
    RemoteDataType.DIGITAL_ASSET.value: (FieldKind.ENTITY_REFERENCE, FieldKind.STRING, FieldKind.STRING_LONG),
    RemoteDataType.NUMBER.value: (FieldKind.DECIMAL, FieldKind.INTEGER, FieldKind.STRING),
    RemoteDataType.STRING.value: (FieldKind.STRING, FieldKind.STRING_LONG, FieldKind.TEXT_LONG),
}


def is_system_field_id(field_id: str) -> bool:
    """Atributos propios de Salsify (salsify:*) son reservados/sistema."""
    return "salsify:" in field_id


def is_engine_field(field_name: str) -> bool:
    """Solo los campos con prefijo del motor pueden eliminarse automaticamente."""
    return field_name.startswith(ENGINE_FIELD_PREFIX)


def is_custom_field(field_name: str) -> bool:
    return field_name.startswith(CUSTOM_FIELD_PREFIX)


def derive_machine_name(field_id: str) -> str:
    """
    Nombre candidato para un atributo remoto.

    "Model Number" -> "salsifysync_model_number"; "salsify:id" -> "salsify_salsifyid".
    """
    prefix = RESERVED_FIELD_PREFIX if is_system_field_id(field_id) else CUSTOM_FIELD_PREFIX
    cleaned = field_id.replace("-", "_").replace(" ", "_")
    cleaned = _NON_MACHINE_CHARS.sub("", cleaned).lower()
    return (prefix + cleaned)[:MACHINE_NAME_MAX_LENGTH]


def unique_machine_name(candidate: str, used: Set[str]) -> str:
    """
    Resuelve colisiones agregando _0, _1, ... y recortando el candidato
    para respetar el largo maximo.
    """
    if candidate not in used:
        return candidate

    counter = 0
    while True:
        suffix = f"_{counter}"
        name = candidate[:MACHINE_NAME_MAX_LENGTH - len(suffix)] + suffix
        if name not in used:
            return name
        counter += 1


def field_kind_for(data_type: str, *, process_media_assets: bool = False) -> Tuple[FieldKind, int, dict]:
    """
    Tabla de tipos: retorna (kind, cardinality, settings) para un tipo remoto.
    """
    if data_type == RemoteDataType.ENUMERATED.value:
        return FieldKind.LIST_STRING, -1, {"allowed_values_function": ALLOWED_VALUES_FUNCTION}
    if data_type == RemoteDataType.DATE.value:
        return FieldKind.DATETIME, 1, {"datetime_type": "date"}
    if data_type == RemoteDataType.BOOLEAN.value:
        return FieldKind.BOOLEAN, 1, {}
    if data_type == RemoteDataType.RICH_TEXT.value:
        return FieldKind.TEXT_LONG, 1, {}
    if data_type == RemoteDataType.HTML.value:
        return FieldKind.STRING_LONG, 1, {}
    if data_type == RemoteDataType.LINK.value:
        # link_type 16 = links externos, title 0 = sin titulo
        return FieldKind.LINK, 1, {"link_type": 16, "title": 0}
    if data_type == RemoteDataType.DIGITAL_ASSET.value and process_media_assets:
        return FieldKind.ENTITY_REFERENCE, -1, {"target_type": "media"}
    return FieldKind.STRING, 1, {"max_length": 255}


def default_displays(field_name: str, kind: FieldKind, *, weight: int = 0) -> Dict[str, Dict]:
    """
    Componentes de display: visibles para campos personalizados,
    ocultos para campos reservados.
    """
    region = "content" if is_custom_field(field_name) else "hidden"
    displays: Dict[str, Dict] = {}
    for mode in VIEW_DISPLAY_MODES:
        displays[f"view.{mode}"] = {"region": region, "label": "above", "weight": weight}
    for mode in FORM_DISPLAY_MODES:
        form = {"region": region, "weight": weight}
        if kind == FieldKind.LIST_STRING:
            form["type"] = "options_buttons"
        displays[f"form.{mode}"] = form
    return displays


def build_field_definition(
    remote: RemoteField,
    *,
    entity_type: str,
    bundle: str,
    field_name: str,
    process_media_assets: bool = False,
    weight: int = 0,
) -> FieldDefinition:
    kind, cardinality, settings = field_kind_for(
        remote.data_type, process_media_assets=process_media_assets
    )
    if kind == FieldKind.LIST_STRING:
        settings = {**settings, "system_id": remote.system_id}
    return FieldDefinition(
        entity_type=entity_type,
        bundle=bundle,
        field_name=field_name,
        kind=kind,
        label=remote.name,
        cardinality=cardinality,
        settings=settings,
        displays=default_displays(field_name, kind, weight=weight),
    )


def is_compatible(data_type: str, kind: FieldKind) -> bool:
    allowed: Iterable[FieldKind] = COMPATIBLE_KINDS.get(data_type, COMPATIBLE_KINDS[RemoteDataType.STRING.value])
    return kind in allowed
