"""
Eventos de ciclo de vida de la API.

Startup: sink de logs a archivo, chequeo de configuracion de Salsify y
creacion de las tablas del almacen de contenido.
Shutdown: descarta la instancia cacheada de casos de uso y cierra el pool.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI
from loguru import logger

from app.core.config import settings
from app.core.logging import setup_logging
from app.infrastructure.database.session import close_db, init_db


def missing_salsify_settings() -> List[str]:
    """Variables SALSIFY_* requeridas que no tienen valor."""
    required = {
        "SALSIFY_PRODUCT_FEED_URL": settings.SALSIFY_PRODUCT_FEED_URL,
        "SALSIFY_ACCESS_TOKEN": settings.SALSIFY_ACCESS_TOKEN,
        "SALSIFY_BUNDLE": settings.SALSIFY_BUNDLE,
    }
    return [name for name, value in required.items() if not value]


async def startup() -> None:
    setup_logging()
    logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    logger.info(
        f"Destino {settings.SALSIFY_ENTITY_TYPE}.{settings.SALSIFY_BUNDLE or '<sin bundle>'}, "
        f"metodo {settings.SALSIFY_IMPORT_METHOD}, "
        f"{'inmediato' if settings.SALSIFY_PROCESS_IMMEDIATELY else 'encolado'}"
    )
    for name in missing_salsify_settings():
        logger.warning(f"CONFIG: {name} no configurada; /salsify/sync respondera con error")

    try:
        init_db()
    except Exception:
        logger.exception("No se pudieron crear las tablas del almacen de contenido")
        raise
    logger.success("Aplicacion iniciada")


async def shutdown() -> None:
    from app.api.v1.dependencies.use_case_deps import get_salsify_use_cases

    get_salsify_use_cases.cache_clear()
    close_db()
    logger.info("Conexiones cerradas; aplicacion detenida")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await startup()
    try:
        yield
    finally:
        await shutdown()
