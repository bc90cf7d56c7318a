"""
Sink de archivo de loguru compartido por la API y los scripts.
"""
from typing import Optional

from loguru import logger

from app.core.config import settings

_file_sink_id: Optional[int] = None


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Agrega (una sola vez) el sink rotativo en LOG_FILE."""
    global _file_sink_id
    if _file_sink_id is not None:
        return
    _file_sink_id = logger.add(
        log_file or settings.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level=(level or settings.LOG_LEVEL).upper(),
    )
