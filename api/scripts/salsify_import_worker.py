"""
Worker de la cola de importacion Salsify.

Procesa los productos encolados por `salsify_sync.py --deferred` (o por el
endpoint con process_immediately=false). Varios workers pueden correr en
paralelo: cada item se reclama con FOR UPDATE SKIP LOCKED.

Ejecucion:
  python scripts/salsify_import_worker.py
  python scripts/salsify_import_worker.py --max-items 500
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from app.core.logging import setup_logging
from app.application.use_cases.salsify_sync_use_cases import build_from_settings
from app.shared.exceptions.salsify import MissingBundleConfigError


def main() -> int:
    parser = argparse.ArgumentParser(description="Procesa la cola de importacion Salsify.")
    parser.add_argument(
        "--max-items",
        type=int,
        default=None,
        help="Cantidad maxima de items a procesar (por defecto, hasta vaciar la cola).",
    )
    args = parser.parse_args()
    setup_logging()

    use_cases = build_from_settings()
    try:
        stats = use_cases.process_queue(max_items=args.max_items)
    except MissingBundleConfigError as e:
        logger.error(e.message)
        return 1

    logger.info(
        f"Worker OK: created={stats.created}, updated={stats.updated}, "
        f"skipped={stats.skipped}, failed={stats.failed}"
    )
    return 0 if stats.failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
