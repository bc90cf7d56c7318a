"""
Configuración de fixtures para pytest.

- Almacen destino: SQLite en memoria (StaticPool, una sola conexion)
- Almacenes clave-valor: backend en memoria con el mismo contrato que Postgres
- Builders de feeds de Salsify
"""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, Iterable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.domain.repositories.key_value_backend import IKeyValueBackend
from app.infrastructure.database.session import Base
from app.infrastructure.external.salsify_sync.field_catalog import build_catalog
from app.infrastructure.external.salsify_sync.hooks import HookRegistry
from app.infrastructure.external.salsify_sync.mapping_store import (
    FieldMappingStore,
    FieldOptionsStore,
    SyncStateStore,
)
from app.infrastructure.repositories.content_store_repository import SqlTargetStore


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite://"


class InMemoryKeyValueBackend(IKeyValueBackend):
    """Backend clave-valor en memoria; cuenta escrituras para tests de idempotencia."""

    def __init__(self) -> None:
        self.data: Dict[str, Dict[str, Any]] = {}
        self.writes = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self.data.get(key)
        return dict(value) if value is not None else None

    def get_by_prefix(self, prefix: str) -> Dict[str, Dict[str, Any]]:
        return {k: dict(v) for k, v in sorted(self.data.items()) if k.startswith(prefix)}

    def set(self, key: str, value: Dict[str, Any]) -> None:
        self.writes += 1
        self.data[key] = dict(value)

    def delete(self, key: str) -> bool:
        self.writes += 1
        return self.data.pop(key, None) is not None

    def clear(self) -> int:
        self.writes += 1
        count = len(self.data)
        self.data.clear()
        return count


@pytest.fixture(scope="function")
def session_factory():
    """
    Fixture que proporciona una session factory sobre SQLite en memoria.
    Crea las tablas para cada test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    factory = sessionmaker(bind=engine, class_=Session, expire_on_commit=False, autoflush=False)
    yield factory

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def target_store(session_factory) -> SqlTargetStore:
    return SqlTargetStore(session_factory)


@pytest.fixture
def stores() -> SimpleNamespace:
    """Almacenes de configuracion sobre backends en memoria que comparten hooks."""
    hooks = HookRegistry()
    mapping_backend = InMemoryKeyValueBackend()
    options_backend = InMemoryKeyValueBackend()
    state_backend = InMemoryKeyValueBackend()
    return SimpleNamespace(
        hooks=hooks,
        mapping_backend=mapping_backend,
        options_backend=options_backend,
        state_backend=state_backend,
        mappings=FieldMappingStore(mapping_backend, hooks=hooks),
        options=FieldOptionsStore(options_backend),
        state=SyncStateStore(state_backend),
    )


def attribute(
    attr_id: str,
    data_type: str = "string",
    *,
    name: Optional[str] = None,
    updated_at: str = "2024-01-01T00:00:00Z",
    entity_types: Iterable[str] = ("products",),
    system_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "salsify:id": attr_id,
        "salsify:system_id": system_id or f"s-{attr_id}",
        "salsify:name": name or attr_id,
        "salsify:data_type": data_type,
        "salsify:created_at": "2023-12-01T00:00:00Z",
        "salsify:updated_at": updated_at,
        "salsify:entity_types": list(entity_types),
    }


def attribute_value(
    value_id: str,
    attr_id: str,
    *,
    name: Optional[str] = None,
    updated_at: str = "2024-01-01T00:00:00Z",
) -> Dict[str, Any]:
    return {
        "salsify:id": value_id,
        "salsify:attribute_id": attr_id,
        "salsify:name": name or value_id,
        "salsify:updated_at": updated_at,
    }


def product(product_id: str, updated_at: Any = "2024-01-01T00:00:00Z", **values: Any) -> Dict[str, Any]:
    record = {
        "salsify:id": product_id,
        "salsify:created_at": "2023-12-01T00:00:00Z",
        "salsify:updated_at": updated_at,
    }
    record.update(values)
    return record


def make_feed(
    attributes: Iterable[Dict[str, Any]] = (),
    values: Iterable[Dict[str, Any]] = (),
    products: Iterable[Dict[str, Any]] = (),
    digital_assets: Optional[Iterable[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    feed: Dict[str, Any] = {
        "attributes": list(attributes),
        "attribute_values": list(values),
        "products": list(products),
    }
    if digital_assets is not None:
        feed["digital_assets"] = list(digital_assets)
    return feed


@pytest.fixture
def feed_builder() -> SimpleNamespace:
    """Builders de feeds crudos y catalogos."""
    return SimpleNamespace(
        attribute=attribute,
        value=attribute_value,
        product=product,
        feed=make_feed,
        catalog=lambda *args, **kwargs: build_catalog(make_feed(*args, **kwargs)),
    )
