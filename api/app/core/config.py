"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Notas:
    - DATABASE_URL se puede especificar completa o por componentes
    - SALSIFY_BUNDLE vacio significa "sin bundle configurado": el sync
      responde con error sin tocar el almacen destino
    - SALSIFY_IMPORT_METHOD: 'dynamic' (crea campos por cada atributo
      remoto) o 'manual' (solo mapeos manuales + datos serializados)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Salsify Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="salsify_user")
    DATABASE_PASSWORD: str = Field(default="salsify_pass")
    DATABASE_NAME: str = Field(default="salsify_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Salsify - canal de exportacion
    SALSIFY_PRODUCT_FEED_URL: str = Field(default="")
    SALSIFY_ACCESS_TOKEN: str = Field(default="")
    SALSIFY_REQUEST_TIMEOUT_S: int = Field(default=60)
    SALSIFY_MAX_RETRIES: int = Field(default=3)

    # Salsify - destino e importacion
    SALSIFY_ENTITY_TYPE: str = Field(default="node")
    SALSIFY_BUNDLE: str = Field(default="")
    SALSIFY_IMPORT_METHOD: str = Field(default="dynamic")
    SALSIFY_PROCESS_IMMEDIATELY: bool = Field(default=True)
    SALSIFY_ENTITY_REFERENCE_ALLOW: bool = Field(default=False)
    SALSIFY_PROCESS_MEDIA_ASSETS: bool = Field(default=False)
    SALSIFY_KEEP_FIELDS_ON_UNINSTALL: bool = Field(default=True)
    SALSIFY_QUEUE_NAME: str = Field(default="salsify_content_import")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva (SQLAlchemy, driver psycopg).
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def psycopg_dsn(self) -> str:
        """DSN para conexiones psycopg directas (sin sufijo de driver)."""
        return self.effective_database_url.replace("+psycopg", "")

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
