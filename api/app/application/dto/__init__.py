"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .salsify_dto import (
    AllowedValuesDTO,
    FieldMappingDTO,
    ImportStatsDTO,
    ManualMappingRequestDTO,
    ReconciliationSummaryDTO,
    SyncRunResultDTO,
)

__all__ = [
    "AllowedValuesDTO",
    "FieldMappingDTO",
    "ImportStatsDTO",
    "ManualMappingRequestDTO",
    "ReconciliationSummaryDTO",
    "SyncRunResultDTO",
]
