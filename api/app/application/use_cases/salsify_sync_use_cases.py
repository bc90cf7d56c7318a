"""
Casos de uso del sincronizador Salsify.

Orquesta: fetch del canal -> catalogo -> reconciliacion de campos ->
importacion de productos (inmediata o encolada).

Diseño:
- Un fallo de fetch aborta antes de cualquier mutacion local.
- Los errores de corrida se traducen a {status, message} distinguiendo
  "sin bundle", "fallo la solicitud", "formato inesperado" y "sin productos".
- Un registro con error no detiene el lote.
- La reconciliacion no es reentrante por bundle: los triggers (API, CLI)
  deben serializar las corridas.
"""
from __future__ import annotations

from contextlib import nullcontext
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, ContextManager, Dict, Iterable, List, Optional

from loguru import logger

from app.application.services.bundle_migrator import BundleMigrator
from app.application.services.content_importer import (
    CatalogLoader,
    ContentImporter,
    ImportState,
    build_importer,
)
from app.application.services.field_definitions import is_compatible
from app.application.services.reference_sync import MediaSync, TaxonomyTermSync
from app.application.services.schema_reconciler import ReconciliationResult, SchemaReconciler
from app.domain.entities.field_mapping import FieldMapping
from app.domain.repositories.import_queue import IImportQueue
from app.domain.repositories.target_store import ITargetStore
from app.infrastructure.external.salsify_sync.field_catalog import build_catalog
from app.infrastructure.external.salsify_sync.hooks import ENTITY_TYPE_OPTIONS, HookRegistry
from app.infrastructure.external.salsify_sync.mapping_store import (
    FieldMappingStore,
    FieldOptionsStore,
    SyncStateStore,
)
from app.infrastructure.external.salsify_sync.salsify_client import FeedFetcher
from app.infrastructure.external.salsify_sync.types import FieldCatalog
from app.shared.constants.salsify_constants import (
    DEFAULT_ENTITY_TYPE_OPTIONS,
    MSG_DATA_SHAPE_ERROR,
    MSG_IMPORT_COMPLETE,
    MSG_IMPORT_QUEUED,
    MSG_NO_BUNDLE,
    MSG_NO_PRODUCT_DATA,
    MSG_RUN_IN_PROGRESS,
    MSG_TRANSPORT_ERROR,
    SALSIFY_ID,
    ImportMethod,
    MappingMethod,
    RemoteDataType,
    RunStatus,
)
from app.shared.exceptions.domain import EntityNotFoundException, ValidationException
from app.shared.exceptions.salsify import (
    DataShapeError,
    MissingBundleConfigError,
    RecordError,
    SyncInProgressError,
    TransportError,
)
from app.shared.utils.datetime_utils import epoch_now


RunLock = Callable[[], ContextManager[bool]]


@dataclass(frozen=True)
class SalsifySyncConfig:
    """Configuracion efectiva del sincronizador."""

    product_feed_url: str
    access_token: str
    entity_type: str
    bundle: str
    import_method: str = ImportMethod.DYNAMIC.value
    process_immediately: bool = True
    entity_reference_allow: bool = False
    process_media_assets: bool = False
    keep_fields_on_uninstall: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.entity_type and self.bundle)

    @property
    def is_manual(self) -> bool:
        return self.import_method == ImportMethod.MANUAL.value

    @classmethod
    def from_settings(cls, settings: Any) -> "SalsifySyncConfig":
        return cls(
            product_feed_url=settings.SALSIFY_PRODUCT_FEED_URL,
            access_token=settings.SALSIFY_ACCESS_TOKEN,
            entity_type=settings.SALSIFY_ENTITY_TYPE,
            bundle=settings.SALSIFY_BUNDLE,
            import_method=ImportMethod(settings.SALSIFY_IMPORT_METHOD).value,
            process_immediately=settings.SALSIFY_PROCESS_IMMEDIATELY,
            entity_reference_allow=settings.SALSIFY_ENTITY_REFERENCE_ALLOW,
            process_media_assets=settings.SALSIFY_PROCESS_MEDIA_ASSETS,
            keep_fields_on_uninstall=settings.SALSIFY_KEEP_FIELDS_ON_UNINSTALL,
        )


@dataclass
class ImportStats:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    queued: int = 0


@dataclass
class SyncRunResult:
    status: RunStatus
    message: str
    fields: Optional[Dict[str, int]] = None
    records: ImportStats = field(default_factory=ImportStats)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "fields": self.fields,
            "records": asdict(self.records),
        }


def _error(message: str) -> SyncRunResult:
    return SyncRunResult(status=RunStatus.ERROR, message=message)


class SalsifySyncUseCases:
    """Casos de uso de sincronizacion Salsify -> almacen de contenido."""

    def __init__(
        self,
        *,
        config: SalsifySyncConfig,
        fetcher: FeedFetcher,
        mapping_store: FieldMappingStore,
        options_store: FieldOptionsStore,
        state_store: SyncStateStore,
        target_store: ITargetStore,
        queue: Optional[IImportQueue] = None,
        hooks: Optional[HookRegistry] = None,
        run_lock: Optional[RunLock] = None,
    ) -> None:
        self.config = config
        self._run_lock = run_lock or (lambda: nullcontext(True))
        self.hooks = hooks or HookRegistry()
        self._fetcher = fetcher
        self._mappings = mapping_store
        self._options = options_store
        self._state = state_store
        self._target = target_store
        self._queue = queue
        self._catalog: Optional[FieldCatalog] = None
        self._reconciler = SchemaReconciler(
            mapping_store=mapping_store,
            options_store=options_store,
            target_store=target_store,
            process_media_assets=config.process_media_assets,
        )
        self._migrator = BundleMigrator(mapping_store=mapping_store, target_store=target_store)

    # ------------------------------------------------------------------
    # Catalogo
    # ------------------------------------------------------------------

    def fetch_catalog(self) -> FieldCatalog:
        """Descarga el feed y construye el catalogo (lo cachea para la corrida)."""
        raw = self._fetcher.fetch_channel(self.config.product_feed_url, self.config.access_token)
        self._catalog = build_catalog(raw)
        return self._catalog

    def cached_catalog(self) -> FieldCatalog:
        return self._catalog if self._catalog is not None else self.fetch_catalog()

    # ------------------------------------------------------------------
    # Campos
    # ------------------------------------------------------------------

    def import_product_fields(self, catalog: Optional[FieldCatalog] = None) -> ReconciliationResult:
        """
        Reconcilia los campos del bundle configurado contra el catalogo.

        Raises:
            MissingBundleConfigError, TransportError, DataShapeError,
            SyncInProgressError
        """
        self._require_scope()
        catalog = catalog or self.fetch_catalog()
        with self._run_lock() as locked:
            if not locked:
                raise SyncInProgressError(self.config.entity_type, self.config.bundle)
            return self._reconcile_fields(catalog)

    def _reconcile_fields(self, catalog: FieldCatalog) -> ReconciliationResult:
        self._migrate_scope_if_needed()

        entity_type, bundle = self.config.entity_type, self.config.bundle
        self._reconciler.ensure_reserved_fields(
            entity_type=entity_type, bundle=bundle, serialized=self.config.is_manual
        )
        if self.config.is_manual:
            # Solo la identidad; los demas campos se mapean a mano
            return self._reconciler.reconcile(
                catalog, entity_type=entity_type, bundle=bundle, field_ids=[SALSIFY_ID], prune=False
            )
        return self._reconciler.reconcile(catalog, entity_type=entity_type, bundle=bundle)

    # ------------------------------------------------------------------
    # Productos
    # ------------------------------------------------------------------

    def import_product_data(
        self,
        *,
        force_update: bool = False,
        process_immediately: Optional[bool] = None,
    ) -> SyncRunResult:
        """
        Corrida completa: campos + productos.

        Nunca lanza por errores de corrida; retorna {status: error, message}.
        """
        try:
            self._require_scope()
            catalog = self.fetch_catalog()
        except MissingBundleConfigError:
            logger.error("Sync Salsify abortado: no hay bundle configurado")
            return _error(MSG_NO_BUNDLE)
        except TransportError as e:
            logger.error(f"Sync Salsify abortado: {e.message}")
            return _error(MSG_TRANSPORT_ERROR)
        except DataShapeError as e:
            logger.error(f"Sync Salsify abortado: {e.message}")
            return _error(MSG_DATA_SHAPE_ERROR)

        immediate = self.config.process_immediately if process_immediately is None else process_immediately
        with self._run_lock() as locked:
            if not locked:
                logger.warning("Sync Salsify omitido: otra corrida tiene el lock")
                return _error(MSG_RUN_IN_PROGRESS)

            # Los cambios de esquema se aplican aunque el canal no tenga productos
            fields_result = self._reconcile_fields(catalog)
            if not catalog.products:
                logger.warning(f"Salsify no devolvio productos; campos {fields_result.summary()}")
                result = _error(MSG_NO_PRODUCT_DATA)
                result.fields = fields_result.summary()
                return result

            if immediate:
                stats = self.import_records(
                    catalog.products,
                    force_update=force_update,
                    importer=self.build_importer(lambda: catalog),
                )
                message = MSG_IMPORT_COMPLETE
            else:
                stats = self.enqueue_records(catalog.products, force_update=force_update)
                message = MSG_IMPORT_QUEUED

        logger.success(f"Sync Salsify finalizado: campos {fields_result.summary()}, productos {asdict(stats)}")
        return SyncRunResult(
            status=RunStatus.STATUS,
            message=message,
            fields=fields_result.summary(),
            records=stats,
        )

    def build_importer(self, catalog_loader: Optional[CatalogLoader] = None) -> ContentImporter:
        loader = catalog_loader or self.cached_catalog
        return build_importer(
            self.config.import_method,
            entity_type=self.config.entity_type,
            bundle=self.config.bundle,
            mapping_store=self._mappings,
            target_store=self._target,
            hooks=self.hooks,
            taxonomy=TaxonomyTermSync(self._target),
            media=MediaSync(self._target, lambda: loader().digital_assets),
            catalog_loader=loader,
            entity_reference_allow=self.config.entity_reference_allow,
            process_media_assets=self.config.process_media_assets,
        )

    def import_records(
        self,
        records: Iterable[Dict[str, Any]],
        *,
        force_update: bool = False,
        importer: Optional[ContentImporter] = None,
    ) -> ImportStats:
        """Importa registros secuencialmente; un registro fallido no corta el lote."""
        importer = importer or self.build_importer()
        stats = ImportStats()
        for record in records:
            try:
                outcome = importer.process_record(record, force_update=force_update)
            except RecordError as e:
                logger.warning(f"Registro omitido: {e.message}")
                stats.failed += 1
                continue
            except Exception as e:
                logger.exception(f"Error importando producto {record.get(SALSIFY_ID)}: {e}")
                stats.failed += 1
                continue

            if outcome.state == ImportState.SKIPPED:
                stats.skipped += 1
            elif outcome.created:
                stats.created += 1
            else:
                stats.updated += 1
        return stats

    def enqueue_records(self, records: Iterable[Dict[str, Any]], *, force_update: bool = False) -> ImportStats:
        if self._queue is None:
            raise RuntimeError("No hay cola de importacion configurada")
        stats = ImportStats()
        for record in records:
            self._queue.create_item({"record": record, "force_update": force_update})
            stats.queued += 1
        logger.info(f"{stats.queued} producto(s) encolados para importacion")
        return stats

    def process_queue(self, *, max_items: Optional[int] = None) -> ImportStats:
        """
        Worker: reclama items y los importa hasta vaciar la cola (o max_items).
        """
        if self._queue is None:
            raise RuntimeError("No hay cola de importacion configurada")
        self._require_scope()

        importer = self.build_importer()
        stats = ImportStats()
        processed = 0
        while max_items is None or processed < max_items:
            item = self._queue.claim_next()
            if item is None:
                break
            processed += 1

            record = item.payload.get("record") or {}
            try:
                outcome = importer.process_record(record, force_update=bool(item.payload.get("force_update")))
            except Exception as e:
                logger.error(f"Item {item.item_id} fallido: {e}")
                self._queue.mark_failed(item.item_id, str(e))
                stats.failed += 1
                continue

            self._queue.mark_done(item.item_id)
            if outcome.state == ImportState.SKIPPED:
                stats.skipped += 1
            elif outcome.created:
                stats.created += 1
            else:
                stats.updated += 1

        logger.info(f"Worker finalizado: {processed} item(s) procesados, {stats.failed} con error")
        return stats

    # ------------------------------------------------------------------
    # Mapeos manuales y consultas
    # ------------------------------------------------------------------

    def list_mappings(self, method: Optional[MappingMethod] = None) -> List[FieldMapping]:
        self._require_scope()
        mappings = self._mappings.get_mappings(
            entity_type=self.config.entity_type, bundle=self.config.bundle, method=method
        )
        return sorted(mappings.values(), key=lambda m: (m.method.value, m.field_name))

    def set_manual_mapping(self, *, salsify_id: str, field_name: str) -> FieldMapping:
        """
        Mapea un atributo remoto a un campo existente del bundle.

        Reemplaza mapeos previos del mismo atributo (manual o dinamico) para
        mantener un unico mapeo por salsify_id en el scope.
        """
        self._require_scope()
        entity_type, bundle = self.config.entity_type, self.config.bundle

        remote = self.cached_catalog().get(salsify_id)
        if remote is None:
            raise EntityNotFoundException("Campo Salsify", salsify_id)
        definition = self._target.get_field(entity_type, bundle, field_name)
        if definition is None:
            raise EntityNotFoundException("Campo", field_name)
        if not is_compatible(remote.data_type, definition.kind):
            raise ValidationException(
                f"El campo {field_name} ({definition.kind.value}) no es compatible con "
                f"el tipo remoto {remote.data_type}",
                field="field_name",
            )

        previous = self._mappings.get_mappings(entity_type=entity_type, bundle=bundle, key_by="field_name")
        for mapping in previous.values():
            if mapping.salsify_id != salsify_id or mapping.field_name == field_name:
                continue
            if mapping.method == MappingMethod.DYNAMIC:
                self._reconciler.remove_dynamic_mapping(mapping)
            else:
                self._mappings.delete_mapping(
                    method=mapping.method,
                    entity_type=entity_type,
                    bundle=bundle,
                    field_name=mapping.field_name,
                )

        if remote.data_type == RemoteDataType.ENUMERATED.value and remote.values:
            self._options.set_options(remote.system_id, remote.option_labels())

        mapping = self._mappings.create_mapping(
            FieldMapping(
                entity_type=entity_type,
                bundle=bundle,
                method=MappingMethod.MANUAL,
                salsify_id=remote.id,
                field_name=field_name,
                field_id=remote.system_id,
                salsify_data_type=remote.data_type,
                created=epoch_now(),
                changed=remote.updated_at,
            )
        )
        logger.info(f"Mapeo manual {salsify_id} -> {field_name} guardado")
        return mapping

    def delete_manual_mapping(self, field_name: str) -> bool:
        self._require_scope()
        deleted = self._mappings.delete_mapping(
            method=MappingMethod.MANUAL,
            entity_type=self.config.entity_type,
            bundle=self.config.bundle,
            field_name=field_name,
        )
        if not deleted:
            raise EntityNotFoundException("Mapeo manual", field_name)
        return deleted

    def allowed_values_for(self, field_name: str) -> Dict[str, str]:
        """Opciones permitidas de un campo enumerado mapeado."""
        self._require_scope()
        mappings = self._mappings.get_mappings(
            entity_type=self.config.entity_type, bundle=self.config.bundle, field_name=field_name
        )
        mapping = mappings.get(field_name)
        if mapping is None:
            raise EntityNotFoundException("Mapeo", field_name)
        return self._options.get_options(mapping.field_id)

    def entity_type_options(self) -> Dict[str, str]:
        return self.hooks.alter(ENTITY_TYPE_OPTIONS, dict(DEFAULT_ENTITY_TYPE_OPTIONS), {})

    def uninstall(self) -> ReconciliationResult:
        """Limpieza de campos dinamicos salvo que se pida conservarlos."""
        if self.config.keep_fields_on_uninstall or not self.config.is_configured:
            logger.info("Desinstalacion: se conservan los campos dinamicos")
            return ReconciliationResult()
        result = self._reconciler.remove_dynamic_fields(
            entity_type=self.config.entity_type, bundle=self.config.bundle
        )
        self._options.clear()
        return result

    # ------------------------------------------------------------------

    def _require_scope(self) -> None:
        if not self.config.is_configured:
            raise MissingBundleConfigError(self.config.entity_type, self.config.bundle)

    def _migrate_scope_if_needed(self) -> None:
        current = (self.config.entity_type, self.config.bundle)
        previous = self._state.get_scope()
        if previous and previous != current:
            self._migrator.migrate(previous, current)
        if previous != current:
            self._state.set_scope(*current)


def build_from_settings(settings: Any = None) -> SalsifySyncUseCases:
    """
    Constructor "oficial" leyendo la configuracion de la aplicacion.
    """
    from app.core.config import settings as app_settings
    from app.infrastructure.database.session import SessionLocal
    from app.infrastructure.external.salsify_sync.import_queue import PostgresImportQueue
    from app.infrastructure.external.salsify_sync.pg_repository import (
        PostgresConnectionFactory,
        PostgresKeyValueRepository,
        stable_lock_key,
    )
    from app.infrastructure.external.salsify_sync.salsify_client import SalsifyCredentials
    from app.infrastructure.repositories.content_store_repository import SqlTargetStore

    settings = settings or app_settings
    connections = PostgresConnectionFactory(settings.psycopg_dsn)
    hooks = HookRegistry()
    lock_key = stable_lock_key("salsify_sync", f"{settings.SALSIFY_ENTITY_TYPE}.{settings.SALSIFY_BUNDLE}")

    return SalsifySyncUseCases(
        config=SalsifySyncConfig.from_settings(settings),
        fetcher=FeedFetcher(
            SalsifyCredentials(
                endpoint=settings.SALSIFY_PRODUCT_FEED_URL,
                token=settings.SALSIFY_ACCESS_TOKEN,
            ),
            timeout_s=settings.SALSIFY_REQUEST_TIMEOUT_S,
            max_retries=settings.SALSIFY_MAX_RETRIES,
        ),
        mapping_store=FieldMappingStore(
            PostgresKeyValueRepository(connections, "salsify_field_mapping"), hooks=hooks
        ),
        options_store=FieldOptionsStore(PostgresKeyValueRepository(connections, "salsify_field_options")),
        state_store=SyncStateStore(PostgresKeyValueRepository(connections, "salsify_sync_state")),
        target_store=SqlTargetStore(SessionLocal),
        queue=PostgresImportQueue(connections, queue_name=settings.SALSIFY_QUEUE_NAME),
        hooks=hooks,
        run_lock=lambda: connections.advisory_lock(lock_key),
    )
