"""
Interfaz de almacenamiento clave-valor.
Lo usan el almacen de mapeos, el de opciones y el estado del sync.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IKeyValueBackend(ABC):
    """Almacen clave-valor con valores JSON."""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Obtiene el valor de una clave exacta.

        Returns:
            Optional[Dict[str, Any]]: Valor o None si no existe
        """
        pass

    @abstractmethod
    def get_by_prefix(self, prefix: str) -> Dict[str, Dict[str, Any]]:
        """
        Obtiene todas las claves que comienzan con un prefijo.

        Returns:
            Dict[str, Dict[str, Any]]: clave -> valor, ordenado por clave
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any]) -> None:
        """Crea o reemplaza el valor de una clave."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Elimina una clave exacta.

        Returns:
            bool: True si existia
        """
        pass

    @abstractmethod
    def clear(self) -> int:
        """
        Elimina todas las claves.

        Returns:
            int: Cantidad de claves eliminadas
        """
        pass
