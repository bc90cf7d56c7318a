"""
CLI: Salsify -> almacen de contenido.

Uso recomendado:
  - Ejecutar como job (cron/systemd timer).
  - Las corridas del mismo bundle se serializan con un advisory lock.

Variables de entorno requeridas:
  - SALSIFY_PRODUCT_FEED_URL
  - SALSIFY_ACCESS_TOKEN
  - SALSIFY_BUNDLE (y opcionalmente SALSIFY_ENTITY_TYPE)
  - DATABASE_URL o DATABASE_* por componentes

Ejecucion:
  python scripts/salsify_sync.py
  python scripts/salsify_sync.py --force-update
  python scripts/salsify_sync.py --deferred
  python scripts/salsify_sync.py --fields-only
  python scripts/salsify_sync.py --uninstall
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from app.core.logging import setup_logging
from app.application.use_cases.salsify_sync_use_cases import build_from_settings
from app.shared.constants.salsify_constants import RunStatus
from app.shared.exceptions.base import AppException


def main() -> int:
    parser = argparse.ArgumentParser(description="Sincroniza productos y campos desde Salsify.")
    parser.add_argument(
        "--force-update",
        action="store_true",
        help="Reimporta todos los productos aunque no hayan cambiado.",
    )
    parser.add_argument(
        "--deferred",
        action="store_true",
        help="Encola los productos en lugar de importarlos (ver salsify_import_worker.py).",
    )
    parser.add_argument(
        "--fields-only",
        action="store_true",
        help="Solo reconcilia los campos, sin importar productos.",
    )
    parser.add_argument(
        "--uninstall",
        action="store_true",
        help="Elimina los campos dinamicos (salvo SALSIFY_KEEP_FIELDS_ON_UNINSTALL=true).",
    )
    args = parser.parse_args()
    setup_logging()

    use_cases = build_from_settings()

    if args.uninstall:
        result = use_cases.uninstall()
        logger.info(f"Desinstalacion: {result.summary()}")
        return 0 if result.ok else 1

    if args.fields_only:
        try:
            result = use_cases.import_product_fields()
        except AppException as e:
            logger.error(e.message)
            return 1
        logger.info(f"Campos reconciliados: {result.summary()}")
        return 0 if result.ok else 1

    logger.info("Iniciando Salsify -> contenido sync...")
    run = use_cases.import_product_data(
        force_update=args.force_update,
        process_immediately=False if args.deferred else None,
    )
    if run.status == RunStatus.ERROR:
        logger.error(run.message)
        return 1

    logger.info(run.message)
    logger.info(f"Resultado: {run.as_dict()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
