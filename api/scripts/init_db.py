"""
Crea las tablas del almacen de contenido (content_*) sin pasar por Alembic.

Las tablas clave-valor y la cola del sincronizador se crean solas en el
primer uso, por eso aca solo se reportan.

Ejecucion:
  python scripts/init_db.py
  python scripts/init_db.py --check
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

load_dotenv(_API_ROOT / ".env", override=False)

from sqlalchemy import inspect  # noqa: E402

from app.core.logging import setup_logging  # noqa: E402
from app.infrastructure.database.session import Base, engine, init_db  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Inicializa las tablas del almacen de contenido.")
    parser.add_argument("--check", action="store_true", help="Solo lista las tablas faltantes.")
    args = parser.parse_args()
    setup_logging()

    try:
        existing = set(inspect(engine).get_table_names())
    except Exception as e:
        logger.error(f"No se pudo conectar a la base de datos: {e}")
        return 1

    from app.infrastructure.database import models  # noqa: F401

    missing = sorted(set(Base.metadata.tables) - existing)
    if args.check:
        logger.info(f"Tablas faltantes: {', '.join(missing) or 'ninguna'}")
        return 1 if missing else 0

    init_db()
    logger.success(f"Tablas creadas: {', '.join(missing) or 'ninguna (ya existian)'}")
    for table in ("salsify_field_mapping", "salsify_field_options", "salsify_sync_state", "salsify_import_queue"):
        state = "existe" if table in existing else "se creara en el primer uso"
        logger.info(f"  {table}: {state}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
