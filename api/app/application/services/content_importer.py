"""
Importacion de registros de producto al almacen destino.

Maquina de estados por registro:

    LOOKUP -> SKIPPED                       (sin efectos)
    LOOKUP -> CREATE -> FIELDS_APPLIED -> SAVED
    LOOKUP ---------> FIELDS_APPLIED -> SAVED  (registro existente con cambios)

El high-water mark (salsify_updated) guarda el ultimo updated_at aplicado;
un registro con updated_at <= high-water mark se omite salvo force_update.
Esto hace la importacion idempotente ante entregas duplicadas o
desordenadas de la cola.

Variantes (seleccionadas por SALSIFY_IMPORT_METHOD):
- FieldMappedImporter: aplica todos los mapeos (dinamicos y manuales)
- SerializedImporter: aplica mapeos manuales y serializa el resto en
  salsifysync_data
"""
from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from loguru import logger

from app.application.services.reference_sync import MediaSync, TaxonomyTermSync
from app.domain.entities.content import FieldDefinition, TargetEntity
from app.domain.entities.field_mapping import FieldMapping
from app.domain.repositories.target_store import ITargetStore
from app.infrastructure.external.salsify_sync.hooks import (
    ENTITY_PRESAVE,
    PROCESS_FIELD,
    RECORD_TITLE,
    HookRegistry,
    process_field_hook_name,
)
from app.infrastructure.external.salsify_sync.mapping_store import FieldMappingStore
from app.infrastructure.external.salsify_sync.types import FieldCatalog
from app.shared.constants.salsify_constants import (
    HIGH_WATER_MARK_FIELD,
    SALSIFY_CREATED_AT,
    SALSIFY_ID,
    SALSIFY_UPDATED_AT,
    SERIALIZED_DATA_FIELD,
    SYNC_ID_FIELD,
    FieldKind,
    ImportMethod,
    MappingMethod,
    RemoteDataType,
)
from app.shared.exceptions.salsify import RecordError
from app.shared.utils.datetime_utils import to_epoch, to_epoch_or_default

# Claves del registro consumidas en LOOKUP/CREATE
RESERVED_RECORD_KEYS = frozenset({SALSIFY_ID, SALSIFY_CREATED_AT, SALSIFY_UPDATED_AT})
RESERVED_FIELD_NAMES = frozenset({SYNC_ID_FIELD, HIGH_WATER_MARK_FIELD, SERIALIZED_DATA_FIELD})

CatalogLoader = Callable[[], FieldCatalog]


class ImportState(str, Enum):
    LOOKUP = "lookup"
    SKIPPED = "skipped"
    CREATE = "create"
    FIELDS_APPLIED = "fields_applied"
    SAVED = "saved"


@dataclass(frozen=True)
class ImportOutcome:
    sync_id: str
    state: ImportState
    entity_id: Optional[int] = None
    created: bool = False


def transform_value(data_type: str, raw: Any) -> Any:
    """
    Transforma un valor crudo del feed segun el tipo remoto.

    Raises:
        ValueError: si una fecha no se puede interpretar
    """
    if data_type == RemoteDataType.LINK.value:
        return {"uri": raw, "title": "", "options": {}}
    if data_type == RemoteDataType.DATE.value:
        return to_epoch(raw)
    if data_type == RemoteDataType.ENUMERATED.value:
        return raw if isinstance(raw, (list, tuple, dict)) else [raw]
    if data_type == RemoteDataType.RICH_TEXT.value:
        return {"value": raw, "format": "full_html"}
    return raw


class ContentImporter(ABC):
    """
    Base de los importadores: implementa LOOKUP/SKIPPED/CREATE y el guardado;
    cada variante define como se aplican los campos.
    """

    def __init__(
        self,
        *,
        entity_type: str,
        bundle: str,
        mapping_store: FieldMappingStore,
        target_store: ITargetStore,
        hooks: Optional[HookRegistry] = None,
        taxonomy: Optional[TaxonomyTermSync] = None,
        media: Optional[MediaSync] = None,
        catalog_loader: Optional[CatalogLoader] = None,
        entity_reference_allow: bool = False,
        process_media_assets: bool = False,
    ) -> None:
        self._entity_type = entity_type
        self._bundle = bundle
        self._mappings = mapping_store
        self._target = target_store
        self._hooks = hooks or HookRegistry()
        self._taxonomy = taxonomy
        self._media = media
        self._catalog_loader = catalog_loader
        self._entity_reference_allow = entity_reference_allow
        self._process_media_assets = process_media_assets

    def process_record(self, record: Dict[str, Any], force_update: bool = False) -> ImportOutcome:
        """
        Importa un registro de producto.

        Raises:
            RecordError: si el registro no trae salsify:id
        """
        sync_id = record.get(SALSIFY_ID)
        if sync_id is None or sync_id == "":
            raise RecordError("El registro de producto no tiene 'salsify:id'")
        sync_id = str(sync_id)
        original = copy.deepcopy(record)

        updated = to_epoch_or_default(record.get(SALSIFY_UPDATED_AT))
        created_ts = to_epoch_or_default(record.get(SALSIFY_CREATED_AT), updated)

        entity = self._lookup(sync_id)
        is_new = entity is None
        if entity is not None:
            mark = entity.high_water_mark
            if not force_update and mark is not None and updated <= mark:
                logger.debug(f"Producto {sync_id} sin cambios (updated {updated} <= {mark}); se omite")
                return ImportOutcome(sync_id=sync_id, state=ImportState.SKIPPED, entity_id=entity.id)
            entity.set(HIGH_WATER_MARK_FIELD, updated)
            entity.set("changed", updated)
        else:
            title = self._hooks.alter(RECORD_TITLE, sync_id, {"record": original})
            entity = self._target.create_entity(
                self._entity_type,
                self._bundle,
                {
                    "title": title,
                    "status": True,
                    "created": created_ts,
                    "changed": updated,
                    SYNC_ID_FIELD: sync_id,
                    HIGH_WATER_MARK_FIELD: updated,
                },
            )
            logger.debug(f"Producto {sync_id} creado con id {entity.id}")

        fields = self._target.list_fields(self._entity_type, self._bundle)
        self.apply_fields(entity, record, fields)

        entity = self._hooks.alter(ENTITY_PRESAVE, entity, {"record": original})
        self._target.save_entity(entity)
        return ImportOutcome(sync_id=sync_id, state=ImportState.SAVED, entity_id=entity.id, created=is_new)

    @abstractmethod
    def apply_fields(
        self,
        entity: TargetEntity,
        record: Dict[str, Any],
        fields: Dict[str, FieldDefinition],
    ) -> None:
        """Asigna los valores mapeados del registro sobre la entidad."""

    def _lookup(self, sync_id: str) -> Optional[TargetEntity]:
        matches = self._target.query_entities(
            self._entity_type, SYNC_ID_FIELD, [sync_id], bundle=self._bundle
        )
        if len(matches) > 1:
            logger.warning(f"Producto {sync_id} tiene {len(matches)} registros; se usa el primero")
        return self._target.load_entity(self._entity_type, matches[0]) if matches else None

    def _apply_mapping(
        self,
        entity: TargetEntity,
        mapping: FieldMapping,
        definition: FieldDefinition,
        record: Dict[str, Any],
    ) -> bool:
        raw = record[mapping.salsify_id]
        try:
            value = transform_value(mapping.salsify_data_type, raw)
        except ValueError as e:
            logger.warning(f"Valor invalido para {mapping.salsify_id} en {record.get(SALSIFY_ID)}: {e}")
            return False

        if self._is_media_field(mapping, definition):
            value = self._media.process_media_item(mapping, record)
        elif self._is_taxonomy_field(mapping, definition):
            value = self._taxonomy.get_or_create_terms(
                TaxonomyTermSync.vocabulary_for(definition),
                mapping,
                value,
                self._catalog_entry(mapping.salsify_id),
            )
        elif (
            definition.kind == FieldKind.STRING
            and isinstance(value, str)
            and definition.max_length
            and len(value) > definition.max_length
        ):
            value = value[:definition.max_length]

        value = self._hooks.alter(
            [PROCESS_FIELD, process_field_hook_name(definition.kind.value)],
            value,
            {"field_definition": definition, "record": record, "field_mapping": mapping},
        )
        entity.set(mapping.field_name, value)
        return True

    def _is_media_field(self, mapping: FieldMapping, definition: FieldDefinition) -> bool:
        return (
            self._process_media_assets
            and self._media is not None
            and mapping.salsify_data_type == RemoteDataType.DIGITAL_ASSET.value
            and definition.kind == FieldKind.ENTITY_REFERENCE
        )

    def _is_taxonomy_field(self, mapping: FieldMapping, definition: FieldDefinition) -> bool:
        return (
            self._entity_reference_allow
            and self._taxonomy is not None
            and mapping.salsify_data_type == RemoteDataType.ENUMERATED.value
            and definition.kind == FieldKind.ENTITY_REFERENCE
            and definition.target_type == TaxonomyTermSync.ENTITY_TYPE
        )

    def _catalog_entry(self, salsify_id: str):
        if self._catalog_loader is None:
            return None
        return self._catalog_loader().get(salsify_id)

    def _mapped_fields(self, mappings: Dict[str, FieldMapping], record: Dict[str, Any], fields: Dict[str, FieldDefinition]):
        """Pares (mapping, definition) aplicables al registro."""
        for salsify_id, mapping in mappings.items():
            if salsify_id in RESERVED_RECORD_KEYS or mapping.field_name in RESERVED_FIELD_NAMES:
                continue
            if salsify_id not in record:
                continue
            definition = fields.get(mapping.field_name)
            if definition is None:
                logger.warning(
                    f"Mapeo {mapping.salsify_id} -> {mapping.field_name} sin campo en "
                    f"{self._entity_type}.{self._bundle}; se omite"
                )
                continue
            yield mapping, definition


class FieldMappedImporter(ContentImporter):
    """Aplica cada mapeo (dinamico o manual) a su propio campo."""

    def apply_fields(self, entity, record, fields) -> None:
        mappings = self._mappings.get_mappings(
            entity_type=self._entity_type, bundle=self._bundle, key_by="salsify_id"
        )
        for mapping, definition in self._mapped_fields(mappings, record, fields):
            self._apply_mapping(entity, mapping, definition, record)


class SerializedImporter(ContentImporter):
    """Aplica los mapeos manuales y guarda el resto del registro como JSON."""

    def apply_fields(self, entity, record, fields) -> None:
        mappings = self._mappings.get_mappings(
            entity_type=self._entity_type,
            bundle=self._bundle,
            method=MappingMethod.MANUAL,
            key_by="salsify_id",
        )
        consumed = set(RESERVED_RECORD_KEYS)
        for mapping, definition in self._mapped_fields(mappings, record, fields):
            if self._apply_mapping(entity, mapping, definition, record):
                consumed.add(mapping.salsify_id)

        if SERIALIZED_DATA_FIELD not in fields:
            logger.warning(f"Campo {SERIALIZED_DATA_FIELD} inexistente; no se guardan datos serializados")
            return

        leftover = {key: value for key, value in record.items() if key not in consumed}
        entity.set(SERIALIZED_DATA_FIELD, json.dumps(leftover, sort_keys=True, default=str))


def build_importer(import_method: str, **kwargs: Any) -> ContentImporter:
    """Selecciona la variante de importador segun el metodo configurado."""
    method = ImportMethod(import_method)
    if method == ImportMethod.MANUAL:
        return SerializedImporter(**kwargs)
    return FieldMappedImporter(**kwargs)
