"""
Endpoints de sincronizacion Salsify.

Las operaciones son sincronas (requests/psycopg/SQLAlchemy) y se ejecutan
en un thread para no bloquear el event loop.
"""
import asyncio
from typing import List

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from app.api.v1.dependencies.use_case_deps import get_salsify_use_cases
from app.application.dto.salsify_dto import (
    AllowedValuesDTO,
    FieldMappingDTO,
    ManualMappingRequestDTO,
    ReconciliationSummaryDTO,
    SyncRunResultDTO,
)
from app.application.use_cases.salsify_sync_use_cases import SalsifySyncUseCases


router = APIRouter(prefix="/salsify", tags=["Salsify"])


@router.post(
    "/sync",
    response_model=SyncRunResultDTO,
    summary="Importar productos desde Salsify",
)
async def sync_products(
    force_update: bool = Query(False, description="Reimporta aunque el producto no haya cambiado"),
    process_immediately: bool | None = Query(
        None, description="Sobrescribe SALSIFY_PROCESS_IMMEDIATELY (False = encolar)"
    ),
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> SyncRunResultDTO:
    """
    Corrida completa: reconcilia campos e importa (o encola) productos.

    Los errores de corrida no levantan HTTP 5xx: se informan en `status`/`message`.
    """
    logger.info(f"Sync Salsify solicitado (force_update={force_update})")
    result = await asyncio.to_thread(
        use_cases.import_product_data,
        force_update=force_update,
        process_immediately=process_immediately,
    )
    return SyncRunResultDTO.from_result(result)


@router.post(
    "/fields/sync",
    response_model=ReconciliationSummaryDTO,
    summary="Reconciliar solo los campos",
)
async def sync_fields(
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> ReconciliationSummaryDTO:
    result = await asyncio.to_thread(use_cases.import_product_fields)
    return ReconciliationSummaryDTO.from_result(result)


@router.get("/mappings", response_model=List[FieldMappingDTO])
async def list_mappings(
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> List[FieldMappingDTO]:
    mappings = await asyncio.to_thread(use_cases.list_mappings)
    return [FieldMappingDTO.from_entity(m) for m in mappings]


@router.put("/mappings/manual", response_model=FieldMappingDTO)
async def set_manual_mapping(
    request: ManualMappingRequestDTO,
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> FieldMappingDTO:
    """Mapea un atributo Salsify a un campo existente del bundle."""
    mapping = await asyncio.to_thread(
        use_cases.set_manual_mapping,
        salsify_id=request.salsify_id,
        field_name=request.field_name,
    )
    return FieldMappingDTO.from_entity(mapping)


@router.delete("/mappings/manual/{field_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_manual_mapping(
    field_name: str,
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> None:
    await asyncio.to_thread(use_cases.delete_manual_mapping, field_name)


@router.get("/fields/{field_name}/allowed-values", response_model=AllowedValuesDTO)
async def get_allowed_values(
    field_name: str,
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> AllowedValuesDTO:
    options = await asyncio.to_thread(use_cases.allowed_values_for, field_name)
    return AllowedValuesDTO(field_name=field_name, options=options)


@router.get("/entity-types")
async def get_entity_type_options(
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> dict:
    return use_cases.entity_type_options()


@router.post("/uninstall", response_model=ReconciliationSummaryDTO)
async def uninstall(
    use_cases: SalsifySyncUseCases = Depends(get_salsify_use_cases),
) -> ReconciliationSummaryDTO:
    """Elimina los campos dinamicos (respeta SALSIFY_KEEP_FIELDS_ON_UNINSTALL)."""
    result = await asyncio.to_thread(use_cases.uninstall)
    return ReconciliationSummaryDTO.from_result(result)
