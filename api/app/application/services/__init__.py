"""
Servicios de aplicacion.

Contiene la logica de negocio reutilizable que no pertenece
a un caso de uso especifico.
"""
from app.application.services.field_definitions import (
    build_field_definition,
    derive_machine_name,
    field_kind_for,
    is_compatible,
    unique_machine_name,
)
from app.application.services.schema_reconciler import ReconciliationResult, SchemaReconciler
from app.application.services.reference_sync import MediaSync, TaxonomyTermSync
from app.application.services.content_importer import (
    ContentImporter,
    FieldMappedImporter,
    ImportOutcome,
    ImportState,
    SerializedImporter,
    build_importer,
)
from app.application.services.bundle_migrator import BundleMigrator, MigrationResult

__all__ = [
    # Definiciones de campo
    "build_field_definition",
    "derive_machine_name",
    "field_kind_for",
    "is_compatible",
    "unique_machine_name",
    # Reconciliacion
    "ReconciliationResult",
    "SchemaReconciler",
    "BundleMigrator",
    "MigrationResult",
    # Importacion
    "ContentImporter",
    "FieldMappedImporter",
    "SerializedImporter",
    "ImportOutcome",
    "ImportState",
    "build_importer",
    "MediaSync",
    "TaxonomyTermSync",
]
