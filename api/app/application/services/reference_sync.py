"""
Colaboradores de referencias: terminos de taxonomia y media.

Resuelven valores remotos (ids de opcion / ids de asset) en referencias
{"target_id": id} a registros del almacen destino, creando o actualizando
esos registros cuando hace falta. Ambos se identifican por el campo de
seguimiento salsify_id.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger

from app.domain.entities.content import FieldDefinition, TargetEntity
from app.domain.entities.field_mapping import FieldMapping
from app.domain.repositories.target_store import ITargetStore
from app.infrastructure.external.salsify_sync.types import RemoteField
from app.shared.constants.salsify_constants import (
    HIGH_WATER_MARK_FIELD,
    SALSIFY_ASSET_RESOURCE_TYPE,
    SALSIFY_FORMAT,
    SALSIFY_NAME,
    SALSIFY_UPDATED_AT,
    SALSIFY_URL,
    TRACKING_ID_FIELD,
    FieldKind,
)
from app.shared.utils.datetime_utils import to_epoch_or_default

Reference = Dict[str, int]


def ensure_tracking_field(target: ITargetStore, entity_type: str, bundle: str) -> None:
    """Crea el campo salsify_id en el bundle si todavia no existe."""
    if target.get_field(entity_type, bundle, TRACKING_ID_FIELD):
        return
    target.create_field(
        FieldDefinition(
            entity_type=entity_type,
            bundle=bundle,
            field_name=TRACKING_ID_FIELD,
            kind=FieldKind.STRING,
            label="Salsify ID",
            settings={"max_length": 255},
        )
    )
    logger.info(f"Campo de seguimiento creado en {entity_type}.{bundle}")


def _as_list(raw: Any) -> List[str]:
    if raw is None or raw == "":
        return []
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    return [str(item) for item in items if item is not None and item != ""]


def _first_by_tracking_id(target: ITargetStore, entity_type: str, entity_ids: Sequence[int]) -> Dict[str, TargetEntity]:
    found: Dict[str, TargetEntity] = {}
    for entity_id in entity_ids:
        entity = target.load_entity(entity_type, entity_id)
        if entity is None:
            continue
        tracking_id = str(entity.get(TRACKING_ID_FIELD))
        # duplicados previos: gana el primero
        found.setdefault(tracking_id, entity)
    return found


class TaxonomyTermSync:
    """Terminos de taxonomia para campos enumerados mapeados a referencias."""

    ENTITY_TYPE = "taxonomy_term"

    def __init__(self, target_store: ITargetStore) -> None:
        self._target = target_store

    @staticmethod
    def vocabulary_for(definition: FieldDefinition) -> str:
        bundles = definition.settings.get("target_bundles") or []
        return bundles[0] if bundles else definition.field_name

    def get_or_create_terms(
        self,
        vocabulary: str,
        field_mapping: FieldMapping,
        remote_ids: Any,
        catalog_entry: Optional[RemoteField],
    ) -> List[Reference]:
        ids = _as_list(remote_ids)
        if not ids:
            return []

        ensure_tracking_field(self._target, self.ENTITY_TYPE, vocabulary)
        labels = catalog_entry.option_labels() if catalog_entry else {}

        existing = _first_by_tracking_id(
            self._target,
            self.ENTITY_TYPE,
            self._target.query_entities(self.ENTITY_TYPE, TRACKING_ID_FIELD, ids, bundle=vocabulary),
        )
        for remote_id, term in existing.items():
            label = labels.get(remote_id)
            if label and term.title != label:
                term.set("title", label)
                self._target.save_entity(term)
                logger.debug(f"Termino {remote_id} renombrado a '{label}' en {vocabulary}")

        refs: List[Reference] = []
        for remote_id in ids:
            term = existing.get(remote_id)
            if term is None:
                term = self._target.create_entity(
                    self.ENTITY_TYPE,
                    vocabulary,
                    {"title": labels.get(remote_id, remote_id), "status": True, TRACKING_ID_FIELD: remote_id},
                )
                existing[remote_id] = term
                logger.debug(f"Termino {remote_id} creado en {vocabulary} ({field_mapping.salsify_id})")
            refs.append({"target_id": term.id})
        return refs


class MediaSync:
    """Registros media para campos digital_asset."""

    ENTITY_TYPE = "media"

    def __init__(self, target_store: ITargetStore, asset_loader: Callable[[], Dict[str, dict]]) -> None:
        self._target = target_store
        self._asset_loader = asset_loader

    @staticmethod
    def bundle_for(asset: dict) -> str:
        return "image" if asset.get(SALSIFY_ASSET_RESOURCE_TYPE) == "image" else "file"

    def process_media_item(self, field_mapping: FieldMapping, record: Dict[str, Any]) -> List[Reference]:
        asset_ids = _as_list(record.get(field_mapping.salsify_id))
        if not asset_ids:
            return []

        assets = self._asset_loader()
        refs: List[Reference] = []
        for asset_id in asset_ids:
            asset = assets.get(asset_id)
            if asset is None:
                logger.warning(f"Asset {asset_id} referenciado por {field_mapping.salsify_id} no esta en el feed")
                continue
            media = self._upsert_media(asset_id, asset)
            refs.append({"target_id": media.id})
        return refs

    def _upsert_media(self, asset_id: str, asset: dict) -> TargetEntity:
        bundle = self.bundle_for(asset)
        ensure_tracking_field(self._target, self.ENTITY_TYPE, bundle)

        updated = to_epoch_or_default(asset.get(SALSIFY_UPDATED_AT))
        values = {
            "title": asset.get(SALSIFY_NAME) or asset_id,
            "status": True,
            TRACKING_ID_FIELD: asset_id,
            "salsify_url": asset.get(SALSIFY_URL),
            "salsify_format": asset.get(SALSIFY_FORMAT),
            HIGH_WATER_MARK_FIELD: updated,
        }

        existing = _first_by_tracking_id(
            self._target,
            self.ENTITY_TYPE,
            self._target.query_entities(self.ENTITY_TYPE, TRACKING_ID_FIELD, [asset_id], bundle=bundle),
        ).get(asset_id)

        if existing is None:
            return self._target.create_entity(self.ENTITY_TYPE, bundle, values)

        if updated > (existing.high_water_mark or 0):
            existing.values.update(values)
            return self._target.save_entity(existing)
        return existing
