"""
Tipos puros del catalogo de Salsify.

Se mantienen libres de I/O para poder testearlos facilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

from app.shared.constants.salsify_constants import FEED_PRODUCTS

# Payload aplanado del canal: {"products": [...], "attributes": [...], ...}
RawFeed = Dict[str, Any]


@dataclass
class RemoteValue:
    """Opcion de un atributo enumerado."""

    value_id: str
    name: str
    updated_at: int = 0


@dataclass
class RemoteField:
    """
    Atributo remoto normalizado.

    updated_at ya incluye el maximo de los updated_at de sus opciones,
    de modo que editar una opcion dispara la resincronizacion del campo.
    """

    id: str
    system_id: str
    name: str
    data_type: str
    created_at: int = 0
    updated_at: int = 0
    values: Dict[str, RemoteValue] = field(default_factory=dict)
    entity_types: Tuple[str, ...] = ()

    @property
    def is_product_field(self) -> bool:
        """Sin entity_types declarados se asume que aplica a productos."""
        return not self.entity_types or FEED_PRODUCTS in self.entity_types

    def option_labels(self) -> Dict[str, str]:
        return {value_id: value.name for value_id, value in self.values.items()}


@dataclass
class FieldCatalog:
    """
    Catalogo de campos de una corrida.

    - fields: field_id -> RemoteField (incluye el campo sintetico de identidad)
    - products: registros de producto tal como vienen del feed
    - digital_assets: asset_id -> asset
    - container_field_ids: atributos cuyo scope no incluye products
    """

    fields: Dict[str, RemoteField] = field(default_factory=dict)
    products: list = field(default_factory=list)
    digital_assets: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    container_field_ids: Set[str] = field(default_factory=set)

    def get(self, field_id: str) -> Optional[RemoteField]:
        return self.fields.get(field_id)

    def product_fields(self) -> Dict[str, RemoteField]:
        """Campos aplicables a productos (excluye los propios de contenedores)."""
        return {
            field_id: remote
            for field_id, remote in self.fields.items()
            if field_id not in self.container_field_ids and remote.is_product_field
        }
