"""
Utilidades para manejo de fechas y timestamps.

Salsify entrega fechas ISO8601 ("2024-01-15T10:00:00.000Z" o "2024-01-15");
el almacen destino guarda epoch-seconds enteros.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Fechas sin zona se interpretan como UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: str) -> datetime:
    """
    Parsea un string ISO8601 a datetime UTC.

    Raises:
        ValueError: si el string no es una fecha valida
    """
    text = str(value).strip()
    if not text:
        raise ValueError("Fecha vacia")
    return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))


def to_epoch(value: Any) -> int:
    """
    Convierte un valor de fecha a epoch-seconds.

    Acepta enteros/floats (ya epoch), datetime o strings ISO8601.

    Raises:
        ValueError: si el valor no se puede interpretar como fecha
    """
    if isinstance(value, bool):
        raise ValueError(f"Valor de fecha invalido: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return int(ensure_utc(value).timestamp())
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
        return int(parse_iso_datetime(stripped).timestamp())
    raise ValueError(f"Valor de fecha invalido: {value!r}")


def to_epoch_or_default(value: Any, default: int = 0) -> int:
    """Igual que to_epoch pero retorna default si el valor falta o es invalido."""
    if value is None or value == "":
        return default
    try:
        return to_epoch(value)
    except ValueError:
        return default


def epoch_now() -> int:
    """Epoch-seconds actual."""
    return int(utc_now().timestamp())


def epoch_to_datetime(value: Optional[int]) -> Optional[datetime]:
    """Convierte epoch-seconds a datetime UTC (None si no hay valor)."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
