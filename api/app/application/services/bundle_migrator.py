"""
Migracion de campos dinamicos cuando cambia el (entity_type, bundle) destino.

Por cada mapeo dinamico del scope anterior:
1. crea el campo equivalente en el scope nuevo (si no existe)
2. reescribe el mapeo bajo la clave nueva
3. elimina el campo del scope anterior

Los datos de los registros no se copian: la siguiente importacion los
repuebla (forzada si se quiere reescribir todo).
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Tuple

from loguru import logger

from app.application.services.field_definitions import default_displays, is_engine_field
from app.domain.repositories.target_store import ITargetStore
from app.infrastructure.external.salsify_sync.mapping_store import FieldMappingStore
from app.shared.constants.salsify_constants import MappingMethod


@dataclass
class MigrationResult:
    moved: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class BundleMigrator:
    def __init__(self, *, mapping_store: FieldMappingStore, target_store: ITargetStore) -> None:
        self._mappings = mapping_store
        self._target = target_store

    def migrate(self, original: Tuple[str, str], current: Tuple[str, str]) -> MigrationResult:
        result = MigrationResult()
        if original == current:
            return result

        old_type, old_bundle = original
        new_type, new_bundle = current
        logger.info(f"Migrando campos dinamicos {old_type}.{old_bundle} -> {new_type}.{new_bundle}")

        mappings = self._mappings.get_mappings(
            entity_type=old_type, bundle=old_bundle, method=MappingMethod.DYNAMIC
        )
        for mapping in mappings.values():
            try:
                definition = self._target.get_field(old_type, old_bundle, mapping.field_name)
                if definition is not None and self._target.get_field(new_type, new_bundle, mapping.field_name) is None:
                    moved = replace(
                        definition,
                        entity_type=new_type,
                        bundle=new_bundle,
                        displays=default_displays(mapping.field_name, definition.kind),
                    )
                    self._target.create_field(moved)

                self._mappings.delete_mapping(
                    method=mapping.method,
                    entity_type=old_type,
                    bundle=old_bundle,
                    field_name=mapping.field_name,
                )
                self._mappings.create_mapping(
                    mapping.with_changes(entity_type=new_type, bundle=new_bundle)
                )

                if definition is not None and is_engine_field(mapping.field_name):
                    self._target.delete_field(old_type, old_bundle, mapping.field_name)

                result.moved.append(mapping.field_name)
            except Exception as e:
                logger.error(f"Error migrando campo {mapping.field_name}: {e}")
                result.failed.append(mapping.field_name)

        logger.info(f"Migracion finalizada: {len(result.moved)} movido(s), {len(result.failed)} con error")
        return result
