"""
Interfaz de la cola de importacion diferida.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class QueueItem:
    """Item reclamado de la cola."""

    item_id: int
    payload: Dict[str, Any]
    attempts: int = 0


class IImportQueue(ABC):
    """Cola de unidades de trabajo independientes (un producto por item)."""

    @abstractmethod
    def create_item(self, payload: Dict[str, Any]) -> int:
        """
        Encola un item.

        Returns:
            int: Id del item creado
        """
        pass

    @abstractmethod
    def claim_next(self) -> Optional[QueueItem]:
        """
        Reclama el siguiente item pendiente.

        Returns:
            Optional[QueueItem]: Item reclamado o None si la cola esta vacia
        """
        pass

    @abstractmethod
    def mark_done(self, item_id: int) -> None:
        """Marca un item como procesado."""
        pass

    @abstractmethod
    def mark_failed(self, item_id: int, error: str) -> None:
        """Marca un item como fallido guardando el error."""
        pass

    @abstractmethod
    def count_pending(self) -> int:
        """Cantidad de items pendientes."""
        pass
