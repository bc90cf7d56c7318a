"""
Servidor de desarrollo con autoreload.

  python scripts/run_dev.py
"""
import sys
from pathlib import Path

import uvicorn
from loguru import logger

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

from app.core.config import settings  # noqa: E402
from app.core.events import missing_salsify_settings  # noqa: E402


if __name__ == "__main__":
    missing = missing_salsify_settings()
    if missing:
        logger.warning(f"Faltan variables de Salsify: {', '.join(missing)}")
    logger.info(f"Levantando {settings.APP_NAME} en http://localhost:{settings.PORT}/docs")
    uvicorn.run(
        "main:app",
        app_dir=str(_API_ROOT),
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )
