"""
Registro de hooks de extension.

Cada punto de extension tiene un nombre fijo. Un hook recibe el valor
actual y un contexto y retorna el valor de reemplazo (o el mismo valor).
Los hooks de un punto se ejecutan por peso ascendente y, a igual peso,
por orden de registro.

Uso:
    hooks = HookRegistry()
    hooks.register(PROCESS_FIELD, lambda value, ctx: value.strip())
    value = hooks.alter(PROCESS_FIELD, value, context)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Iterable, Union

from loguru import logger

# Puntos de extension
ENTITY_TYPE_OPTIONS = "salsify_entity_type_options"
RECORD_TITLE = "salsify_process_node_title"
PROCESS_FIELD = "salsify_process_field"
ENTITY_PRESAVE = "salsify_entity_presave"
FIELD_MAPPING_ALTER = "salsify_field_mapping_alter"


def process_field_hook_name(field_kind: str) -> str:
    """Nombre del hook especifico por tipo de campo, p.ej. salsify_process_field_string."""
    return f"{PROCESS_FIELD}_{field_kind}"


AlterCallback = Callable[[Any, dict], Any]


@dataclass
class HookSpec:
    """
    Attributes:
        name: punto de extension
        callback: funcion (value, context) -> value
        weight: orden de ejecucion (menor primero)
        label: nombre legible para logs
    """

    name: str
    callback: AlterCallback
    weight: int = 0
    label: str = ""


class HookRegistry:
    def __init__(self) -> None:
        self._hooks: dict[str, list[HookSpec]] = {}

    def register(
        self,
        name: str,
        callback: AlterCallback,
        *,
        weight: int = 0,
        label: str = "",
    ) -> HookSpec:
        spec = HookSpec(
            name=name,
            callback=callback,
            weight=weight,
            label=label or getattr(callback, "__name__", "hook"),
        )
        specs = self._hooks.setdefault(name, [])
        specs.append(spec)
        # sort estable: conserva orden de registro a igual peso
        specs.sort(key=lambda s: s.weight)
        logger.debug(f"Hook registrado: {name} -> {spec.label} (peso {weight})")
        return spec

    def unregister(self, spec: HookSpec) -> None:
        specs = self._hooks.get(spec.name, [])
        if spec in specs:
            specs.remove(spec)

    def has(self, name: str) -> bool:
        return bool(self._hooks.get(name))

    def alter(self, names: Union[str, Iterable[str]], value: Any, context: dict | None = None) -> Any:
        """
        Ejecuta los hooks de uno o varios puntos en orden, encadenando el valor.
        """
        context = context if context is not None else {}
        for name in [names] if isinstance(names, str) else list(names):
            for spec in self._hooks.get(name, []):
                value = spec.callback(value, context)
        return value
