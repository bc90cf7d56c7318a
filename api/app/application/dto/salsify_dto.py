"""
DTOs de la API de sincronizacion Salsify.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.application.use_cases.salsify_sync_use_cases import ImportStats, SyncRunResult
from app.application.services.schema_reconciler import ReconciliationResult
from app.domain.entities.field_mapping import FieldMapping


class ImportStatsDTO(BaseModel):
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    queued: int = 0

    @classmethod
    def from_stats(cls, stats: ImportStats) -> "ImportStatsDTO":
        return cls(
            created=stats.created,
            updated=stats.updated,
            skipped=stats.skipped,
            failed=stats.failed,
            queued=stats.queued,
        )


class ReconciliationSummaryDTO(BaseModel):
    """Resultado de una reconciliacion de campos."""

    created: List[str] = Field(default_factory=list)
    adopted: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "ReconciliationSummaryDTO":
        return cls(
            created=list(result.created),
            adopted=list(result.adopted),
            updated=list(result.updated),
            deleted=list(result.deleted),
            errors=[error.message for error in result.errors],
        )


class SyncRunResultDTO(BaseModel):
    """
    Resultado de una corrida de importacion.

    `status` es "status" si la corrida se completo (o encolo) y "error" si se
    aborto; `message` distingue la causa.
    """

    status: str
    message: str
    fields: Optional[Dict[str, int]] = None
    records: ImportStatsDTO = Field(default_factory=ImportStatsDTO)

    @classmethod
    def from_result(cls, result: SyncRunResult) -> "SyncRunResultDTO":
        return cls(
            status=result.status.value,
            message=result.message,
            fields=result.fields,
            records=ImportStatsDTO.from_stats(result.records),
        )


class FieldMappingDTO(BaseModel):
    entity_type: str
    bundle: str
    method: str
    salsify_id: str
    field_name: str
    field_id: str = ""
    salsify_data_type: str = "string"
    created: int = 0
    changed: int = 0

    @classmethod
    def from_entity(cls, mapping: FieldMapping) -> "FieldMappingDTO":
        return cls(**mapping.to_dict())


class ManualMappingRequestDTO(BaseModel):
    """Request para mapear un atributo Salsify a un campo existente."""

    salsify_id: str = Field(..., min_length=1, description="Id del atributo en Salsify")
    field_name: str = Field(..., min_length=1, max_length=32, description="Campo destino existente")

    @field_validator("salsify_id", "field_name")
    @classmethod
    def strip_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("no puede estar vacio")
        return v


class AllowedValuesDTO(BaseModel):
    field_name: str
    options: Dict[str, str] = Field(default_factory=dict)
