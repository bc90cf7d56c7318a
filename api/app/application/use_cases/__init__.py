"""
Casos de uso de la aplicacion.
"""
from .salsify_sync_use_cases import SalsifySyncConfig, SalsifySyncUseCases, build_from_settings

__all__ = ["SalsifySyncConfig", "SalsifySyncUseCases", "build_from_settings"]
