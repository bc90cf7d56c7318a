"""
Dependencias para inyeccion de casos de uso.
"""
from functools import lru_cache

from app.application.use_cases.salsify_sync_use_cases import (
    SalsifySyncUseCases,
    build_from_settings,
)


@lru_cache(maxsize=1)
def get_salsify_use_cases() -> SalsifySyncUseCases:
    """
    Dependencia para obtener los casos de uso de Salsify.

    La instancia se comparte entre requests: el registro de hooks y las
    conexiones se configuran una sola vez.

    Returns:
        SalsifySyncUseCases: Instancia configurada desde settings
    """
    return build_from_settings()
