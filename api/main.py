"""
Punto de entrada de la API de sincronizacion Salsify.

    uvicorn main:app --host 0.0.0.0 --port 8000
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.api.middlewares.error_handler import ErrorHandlerMiddleware
from app.api.v1.router import api_router
from app.core.config import get_cors_origins, settings
from app.core.events import lifespan, missing_salsify_settings
from app.shared.exceptions.base import AppException


def create_application() -> FastAPI:
    """
    Arma la aplicacion: CORS, middleware de errores, lifespan y rutas /api/v1.
    """
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Sincronizacion de productos y campos desde Salsify",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(ErrorHandlerMiddleware)

    application.include_router(api_router, prefix="/api")

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc!r}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @application.get("/health", tags=["Health"])
    async def health_check():
        """Estado de la app y si el destino de Salsify esta configurado."""
        missing = missing_salsify_settings()
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "salsify_configured": not missing,
            "missing_settings": missing,
        }

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    logger.info(f"Swagger UI: http://{host}:{settings.PORT}/docs")
    logger.info(f"Sync:       POST http://{host}:{settings.PORT}/api/v1/salsify/sync")

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
