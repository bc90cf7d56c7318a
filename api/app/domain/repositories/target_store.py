"""
Interfaz del almacen destino.
Define el contrato de campos y registros genericos que consume el motor.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from app.domain.entities.content import FieldDefinition, TargetEntity


class ITargetStore(ABC):
    """
    Interfaz del almacen de contenido destino.
    Cada operacion confirma por si misma (sin transaccion entre campos).
    """

    @abstractmethod
    def list_fields(self, entity_type: str, bundle: str) -> Dict[str, FieldDefinition]:
        """
        Lista los campos definidos en un bundle.

        Args:
            entity_type: Tipo de entidad
            bundle: Bundle

        Returns:
            Dict[str, FieldDefinition]: Definiciones indexadas por field_name
        """
        pass

    @abstractmethod
    def get_field(self, entity_type: str, bundle: str, field_name: str) -> Optional[FieldDefinition]:
        """
        Obtiene la definicion de un campo.

        Returns:
            Optional[FieldDefinition]: Definicion o None si no existe
        """
        pass

    @abstractmethod
    def create_field(self, definition: FieldDefinition) -> FieldDefinition:
        """
        Crea un campo en el bundle.

        Args:
            definition: Definicion completa del campo

        Returns:
            FieldDefinition: Definicion persistida
        """
        pass

    @abstractmethod
    def update_field(self, definition: FieldDefinition) -> FieldDefinition:
        """
        Actualiza etiqueta/settings/displays de un campo existente.
        El nombre de maquina nunca cambia.
        """
        pass

    @abstractmethod
    def delete_field(self, entity_type: str, bundle: str, field_name: str) -> bool:
        """
        Elimina un campo del bundle.

        Returns:
            bool: True si existia y se elimino
        """
        pass

    @abstractmethod
    def create_entity(self, entity_type: str, bundle: str, values: Dict[str, Any]) -> TargetEntity:
        """
        Crea y persiste un registro.

        Returns:
            TargetEntity: Registro con id asignado
        """
        pass

    @abstractmethod
    def load_entity(self, entity_type: str, entity_id: int) -> Optional[TargetEntity]:
        """Carga un registro por id."""
        pass

    @abstractmethod
    def save_entity(self, entity: TargetEntity) -> TargetEntity:
        """Persiste los valores actuales de un registro existente."""
        pass

    @abstractmethod
    def query_entities(
        self,
        entity_type: str,
        field_name: str,
        values: Sequence[Any],
        bundle: Optional[str] = None,
    ) -> List[int]:
        """
        Busca registros cuyo campo sea igual a alguno de los valores.

        Args:
            entity_type: Tipo de entidad
            field_name: Campo a comparar
            values: Valores aceptados (igualdad / IN)
            bundle: Restringe a un bundle si se indica

        Returns:
            List[int]: Ids en orden ascendente
        """
        pass
