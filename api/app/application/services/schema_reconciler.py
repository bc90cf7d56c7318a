"""
Reconciliacion del esquema remoto (Salsify) contra los campos locales.

Para un scope (entity_type, bundle):
- R = ids de campos remotos del catalogo
- M = ids con mapeo dinamico en el scope

Conjuntos:
- R ∩ M: si cambio updated_at, se actualiza etiqueta/opciones y mapping.changed
- R \\ M: se deriva nombre de maquina, se crea (o adopta) el campo y su mapeo
- M \\ R: se elimina el campo (solo con prefijo del motor), sus opciones y el mapeo

No es transaccional: cada campo es una operacion independiente. Un fallo se
loguea y se continua; la recuperacion es re-ejecutar (todas las operaciones
re-chequean existencia antes de actuar). No es reentrante para un mismo
bundle: el caller debe serializar las corridas.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from loguru import logger

from app.application.services.field_definitions import (
    build_field_definition,
    default_displays,
    derive_machine_name,
    is_engine_field,
    unique_machine_name,
)
from app.domain.entities.content import FieldDefinition
from app.domain.entities.field_mapping import FieldMapping
from app.domain.repositories.target_store import ITargetStore
from app.infrastructure.external.salsify_sync.mapping_store import (
    FieldMappingStore,
    FieldOptionsStore,
)
from app.infrastructure.external.salsify_sync.types import FieldCatalog, RemoteField
from app.shared.constants.salsify_constants import (
    HIGH_WATER_MARK_FIELD,
    SALSIFY_ID,
    SERIALIZED_DATA_FIELD,
    SYNC_ID_FIELD,
    FieldKind,
    MappingMethod,
    RemoteDataType,
)
from app.shared.exceptions.salsify import ReconciliationFieldError
from app.shared.utils.datetime_utils import epoch_now


@dataclass
class ReconciliationResult:
    """Resumen de una reconciliacion (nombres de campo por operacion)."""

    created: List[str] = field(default_factory=list)
    adopted: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    errors: List[ReconciliationFieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def changes(self) -> int:
        return len(self.created) + len(self.adopted) + len(self.updated) + len(self.deleted)

    def summary(self) -> Dict[str, int]:
        return {
            "created": len(self.created),
            "adopted": len(self.adopted),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
            "errors": len(self.errors),
        }


class SchemaReconciler:
    """
    Sincroniza definiciones de campo y mapeos dinamicos con el catalogo remoto.
    """

    def __init__(
        self,
        *,
        mapping_store: FieldMappingStore,
        options_store: FieldOptionsStore,
        target_store: ITargetStore,
        process_media_assets: bool = False,
    ) -> None:
        self._mappings = mapping_store
        self._options = options_store
        self._target = target_store
        self._process_media_assets = process_media_assets

    def reconcile(
        self,
        catalog: FieldCatalog,
        *,
        entity_type: str,
        bundle: str,
        field_ids: Optional[Iterable[str]] = None,
        prune: bool = True,
    ) -> ReconciliationResult:
        """
        Ejecuta el diff y aplica los cambios.

        Args:
            catalog: catalogo de la corrida
            entity_type, bundle: scope destino
            field_ids: restringe R a estos ids (modo manual: solo reservados)
            prune: si False no se eliminan campos ausentes del feed
        """
        result = ReconciliationResult()

        remote = catalog.product_fields()
        if field_ids is not None:
            wanted = set(field_ids)
            remote = {fid: rf for fid, rf in remote.items() if fid in wanted}

        dynamic = self._mappings.get_mappings(
            entity_type=entity_type, bundle=bundle, method=MappingMethod.DYNAMIC, key_by="salsify_id"
        )
        manual = self._mappings.get_mappings(
            entity_type=entity_type, bundle=bundle, method=MappingMethod.MANUAL, key_by="salsify_id"
        )
        existing_fields = self._target.list_fields(entity_type, bundle)
        used = self._used_names(existing_fields, dynamic.values(), manual.values())

        remote_ids = set(remote)
        mapped_ids = set(dynamic)
        new_ids = remote_ids - mapped_ids - set(manual)

        logger.info(
            f"Reconciliando {entity_type}.{bundle}: {len(remote_ids)} remoto(s), "
            f"{len(mapped_ids)} mapeo(s) dinamico(s), {len(manual)} manual(es)"
        )

        for field_id, remote_field in remote.items():
            if field_id in mapped_ids:
                self._update_field(remote_field, dynamic[field_id], result)
            elif field_id in manual:
                self._refresh_manual_options(remote_field, manual[field_id], result)

        # Orden del feed: nombres deterministas ante colisiones
        for field_id, remote_field in remote.items():
            if field_id in new_ids:
                self._create_field(remote_field, entity_type, bundle, used, result)

        if prune:
            for field_id in sorted(mapped_ids - remote_ids):
                self._remove_field(dynamic[field_id], result)

        log = logger.warning if result.errors else logger.info
        log(f"Reconciliacion {entity_type}.{bundle} finalizada: {result.summary()}")
        return result

    def remove_dynamic_fields(self, *, entity_type: str, bundle: str) -> ReconciliationResult:
        """Elimina todos los campos dinamicos del scope (desinstalacion)."""
        result = ReconciliationResult()
        dynamic = self._mappings.get_mappings(
            entity_type=entity_type, bundle=bundle, method=MappingMethod.DYNAMIC
        )
        for mapping in dynamic.values():
            self._remove_field(mapping, result)
        logger.info(f"Campos dinamicos eliminados de {entity_type}.{bundle}: {len(result.deleted)}")
        return result

    def remove_dynamic_mapping(self, mapping: FieldMapping) -> ReconciliationResult:
        """Elimina un mapeo dinamico puntual junto con su campo y opciones."""
        result = ReconciliationResult()
        self._remove_field(mapping, result)
        return result

    def ensure_reserved_fields(self, *, entity_type: str, bundle: str, serialized: bool = False) -> List[str]:
        """
        Crea los campos reservados que no vienen del feed:
        high-water mark y, para el importador serializado, el campo de datos.
        """
        wanted = [
            FieldDefinition(
                entity_type=entity_type,
                bundle=bundle,
                field_name=HIGH_WATER_MARK_FIELD,
                kind=FieldKind.INTEGER,
                label="Salsify Last Updated",
            )
        ]
        if serialized:
            wanted.append(
                FieldDefinition(
                    entity_type=entity_type,
                    bundle=bundle,
                    field_name=SERIALIZED_DATA_FIELD,
                    kind=FieldKind.TEXT_LONG,
                    label="Salsify Data",
                )
            )

        created: List[str] = []
        for definition in wanted:
            if self._target.get_field(entity_type, bundle, definition.field_name):
                continue
            definition.displays = {
                mode: {**component, "region": "hidden"}
                for mode, component in default_displays(definition.field_name, definition.kind).items()
            }
            self._target.create_field(definition)
            created.append(definition.field_name)
        return created

    # ------------------------------------------------------------------

    @staticmethod
    def _used_names(
        existing_fields: Dict[str, FieldDefinition],
        *mapping_groups: Iterable[FieldMapping],
    ) -> Set[str]:
        """
        Nombres no disponibles: campos ajenos al motor, campos ya mapeados y
        los reservados del importador. Campos del motor sin mapeo quedan
        libres para ser adoptados.
        """
        used = {name for name in existing_fields if not is_engine_field(name)}
        used.update((HIGH_WATER_MARK_FIELD, SERIALIZED_DATA_FIELD))
        for group in mapping_groups:
            used.update(mapping.field_name for mapping in group)
        return used

    def _update_field(self, remote: RemoteField, mapping: FieldMapping, result: ReconciliationResult) -> None:
        if remote.updated_at == mapping.changed:
            return

        try:
            definition = self._target.get_field(mapping.entity_type, mapping.bundle, mapping.field_name)
            if definition is None:
                logger.warning(
                    f"Campo {mapping.field_name} mapeado pero inexistente en "
                    f"{mapping.entity_type}.{mapping.bundle}; se recrea"
                )
                self._target.create_field(self._definition_for(remote, mapping.entity_type, mapping.bundle, mapping.field_name))
            else:
                definition.label = remote.name
                if definition.kind == FieldKind.LIST_STRING:
                    definition.settings = {**definition.settings, "system_id": remote.system_id}
                self._target.update_field(definition)

            self._store_options(remote)

            # El mapeo se avanza al final: si algo falla, la proxima corrida reintenta
            self._mappings.update_mapping(
                mapping.with_changes(
                    changed=remote.updated_at,
                    field_id=remote.system_id,
                    salsify_data_type=remote.data_type,
                )
            )
            result.updated.append(mapping.field_name)
        except Exception as e:
            self._record_error(result, "update", remote.id, mapping.field_name, e)

    def _refresh_manual_options(
        self, remote: RemoteField, mapping: FieldMapping, result: ReconciliationResult
    ) -> None:
        """Campos mapeados manualmente: solo se refrescan opciones permitidas."""
        if remote.updated_at == mapping.changed:
            return
        try:
            self._store_options(remote)
            self._mappings.update_mapping(mapping.with_changes(changed=remote.updated_at))
        except Exception as e:
            self._record_error(result, "update", remote.id, mapping.field_name, e)

    def _create_field(
        self,
        remote: RemoteField,
        entity_type: str,
        bundle: str,
        used: Set[str],
        result: ReconciliationResult,
    ) -> None:
        # Solo el campo sintetico de identidad puede tomar el nombre reservado
        taken = used if remote.id == SALSIFY_ID else used | {SYNC_ID_FIELD}
        field_name = unique_machine_name(derive_machine_name(remote.id), taken)
        used.add(field_name)

        try:
            existing = self._target.get_field(entity_type, bundle, field_name)
            if existing is None:
                self._target.create_field(self._definition_for(remote, entity_type, bundle, field_name))
                result.created.append(field_name)
            else:
                logger.info(f"Campo huerfano {field_name} adoptado para {remote.id}")
                result.adopted.append(field_name)

            self._store_options(remote)
            self._mappings.create_mapping(
                FieldMapping(
                    entity_type=entity_type,
                    bundle=bundle,
                    method=MappingMethod.DYNAMIC,
                    salsify_id=remote.id,
                    field_name=field_name,
                    field_id=remote.system_id,
                    salsify_data_type=remote.data_type,
                    created=remote.created_at or epoch_now(),
                    changed=remote.updated_at,
                )
            )
        except Exception as e:
            self._record_error(result, "create", remote.id, field_name, e)

    def _remove_field(self, mapping: FieldMapping, result: ReconciliationResult) -> None:
        try:
            if is_engine_field(mapping.field_name):
                if self._target.get_field(mapping.entity_type, mapping.bundle, mapping.field_name):
                    self._target.delete_field(mapping.entity_type, mapping.bundle, mapping.field_name)
            else:
                logger.warning(
                    f"Campo {mapping.field_name} sin prefijo del motor; se elimina solo el mapeo"
                )

            if mapping.salsify_data_type == RemoteDataType.ENUMERATED.value and mapping.field_id:
                self._options.remove_options(mapping.field_id)

            self._mappings.delete_mapping(
                method=mapping.method,
                entity_type=mapping.entity_type,
                bundle=mapping.bundle,
                field_name=mapping.field_name,
            )
            result.deleted.append(mapping.field_name)
        except Exception as e:
            self._record_error(result, "delete", mapping.salsify_id, mapping.field_name, e)

    def _definition_for(self, remote: RemoteField, entity_type: str, bundle: str, field_name: str) -> FieldDefinition:
        return build_field_definition(
            remote,
            entity_type=entity_type,
            bundle=bundle,
            field_name=field_name,
            process_media_assets=self._process_media_assets,
        )

    def _store_options(self, remote: RemoteField) -> None:
        if remote.data_type == RemoteDataType.ENUMERATED.value and remote.values:
            self._options.set_options(remote.system_id, remote.option_labels())

    @staticmethod
    def _record_error(
        result: ReconciliationResult,
        operation: str,
        salsify_id: str,
        field_name: str,
        cause: Exception,
    ) -> None:
        error = ReconciliationFieldError(operation, salsify_id, field_name, cause)
        logger.error(error.message)
        result.errors.append(error)
