"""
Entorno de Alembic para el almacen de contenido.

Solo se versionan las tablas ORM (content_*). Las tablas clave-valor y la
cola del sincronizador las crea psycopg en el primer uso, por eso
autogenerate las ignora en vez de proponer borrarlas.
"""
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import engine_from_config, pool

from alembic import context

API_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(API_DIR))

from app.core.config import settings  # noqa: E402
from app.infrastructure.database.session import Base  # noqa: E402
from app.infrastructure.database import models  # noqa: E402,F401

# Tablas gestionadas fuera del ORM
UNMANAGED_TABLES = {
    "salsify_field_mapping",
    "salsify_field_options",
    "salsify_sync_state",
    "salsify_import_queue",
}

config = context.config
config.set_main_option("sqlalchemy.url", settings.effective_database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    if type_ == "table" and name in UNMANAGED_TABLES:
        return False
    table = getattr(obj, "table", None)
    return not (table is not None and table.name in UNMANAGED_TABLES)


def run_migrations_offline() -> None:
    """Genera el SQL sin conectarse (alembic upgrade --sql)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
