"""
Construccion del catalogo de campos a partir del feed crudo de Salsify.
"""

from __future__ import annotations

from typing import Any, Iterable

from loguru import logger

from app.shared.constants.salsify_constants import (
    FEED_ATTRIBUTE_VALUES,
    FEED_ATTRIBUTES,
    FEED_DIGITAL_ASSETS,
    FEED_PRODUCTS,
    SALSIFY_ATTRIBUTE_ID,
    SALSIFY_CREATED_AT,
    SALSIFY_DATA_TYPE,
    SALSIFY_ENTITY_TYPES,
    SALSIFY_ID,
    SALSIFY_NAME,
    SALSIFY_SYSTEM_ID,
    SALSIFY_UPDATED_AT,
    SYNC_ID_REMOTE_FIELD,
)
from app.shared.exceptions.salsify import DataShapeError
from app.shared.utils.datetime_utils import to_epoch_or_default

from .types import FieldCatalog, RawFeed, RemoteField, RemoteValue


def _require_list(raw_feed: RawFeed, key: str) -> list:
    if key not in raw_feed or raw_feed[key] is None:
        raise DataShapeError(f"El feed de Salsify no contiene '{key}'", missing=key)
    value = raw_feed[key]
    if not isinstance(value, list):
        raise DataShapeError(f"'{key}' del feed de Salsify no es una lista", missing=key)
    return value


def _entity_types(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return (raw,)
    return tuple(str(item) for item in raw)


def build_sync_id_field() -> RemoteField:
    """
    Campo sintetico de identidad de sincronizacion.

    Timestamps fijos: el campo no cambia entre corridas y nunca dispara updates.
    """
    return RemoteField(
        id=SYNC_ID_REMOTE_FIELD["id"],
        system_id=SYNC_ID_REMOTE_FIELD["system_id"],
        name=SYNC_ID_REMOTE_FIELD["name"],
        data_type=SYNC_ID_REMOTE_FIELD["data_type"],
    )


def _index_digital_assets(assets: Iterable[dict]) -> dict[str, dict]:
    indexed: dict[str, dict] = {}
    for asset in assets:
        asset_id = asset.get(SALSIFY_ID) if isinstance(asset, dict) else None
        if asset_id:
            indexed[str(asset_id)] = asset
    return indexed


def build_catalog(raw_feed: RawFeed) -> FieldCatalog:
    """
    Normaliza atributos y opciones del feed en un FieldCatalog.

    Reglas:
    - Cada atributo se indexa por salsify:id
    - Cada opcion se adjunta a su atributo y eleva su updated_at al maximo
    - Se inyecta el campo sintetico de identidad (salsify:id)
    - digital_assets se re-indexa por id de asset
    """
    attributes = _require_list(raw_feed, FEED_ATTRIBUTES)
    attribute_values = _require_list(raw_feed, FEED_ATTRIBUTE_VALUES)

    catalog = FieldCatalog(products=list(raw_feed.get(FEED_PRODUCTS) or []))

    for attribute in attributes:
        field_id = attribute.get(SALSIFY_ID)
        if not field_id:
            logger.warning("Atributo de Salsify sin 'salsify:id'; se omite")
            continue

        field_id = str(field_id)
        entity_types = _entity_types(attribute.get(SALSIFY_ENTITY_TYPES))
        remote = RemoteField(
            id=field_id,
            system_id=str(attribute.get(SALSIFY_SYSTEM_ID) or field_id),
            name=str(attribute.get(SALSIFY_NAME) or field_id),
            data_type=str(attribute.get(SALSIFY_DATA_TYPE) or "string"),
            created_at=to_epoch_or_default(attribute.get(SALSIFY_CREATED_AT)),
            updated_at=to_epoch_or_default(attribute.get(SALSIFY_UPDATED_AT)),
            entity_types=entity_types,
        )
        catalog.fields[field_id] = remote
        if not remote.is_product_field:
            catalog.container_field_ids.add(field_id)

    orphans = 0
    for value in attribute_values:
        owner = catalog.fields.get(str(value.get(SALSIFY_ATTRIBUTE_ID)))
        value_id = value.get(SALSIFY_ID)
        if owner is None or not value_id:
            orphans += 1
            continue

        updated_at = to_epoch_or_default(value.get(SALSIFY_UPDATED_AT))
        owner.values[str(value_id)] = RemoteValue(
            value_id=str(value_id),
            name=str(value.get(SALSIFY_NAME) or value_id),
            updated_at=updated_at,
        )
        owner.updated_at = max(owner.updated_at, updated_at)

    if orphans:
        logger.warning(f"{orphans} opcion(es) de Salsify sin atributo asociado; se omiten")

    # El campo sintetico siempre gana sobre un atributo remoto con el mismo id
    sync_field = build_sync_id_field()
    catalog.fields[sync_field.id] = sync_field

    if FEED_DIGITAL_ASSETS in raw_feed:
        catalog.digital_assets = _index_digital_assets(raw_feed.get(FEED_DIGITAL_ASSETS) or [])

    logger.info(
        f"Catalogo construido: {len(catalog.fields)} campo(s), "
        f"{len(catalog.container_field_ids)} exclusivos de contenedores"
    )
    return catalog
