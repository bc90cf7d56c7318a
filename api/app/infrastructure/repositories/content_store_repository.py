"""
Repositorio del almacen de contenido destino (SQLAlchemy, sync).

Implementa ITargetStore: definiciones de campo por bundle y registros
genericos con valores JSON. Cada operacion abre su sesion y confirma al
terminar, de modo que cada cambio de campo es independiente.
"""
import copy
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from app.domain.entities.content import FieldDefinition, TargetEntity
from app.domain.repositories.target_store import ITargetStore
from app.infrastructure.database.models import (
    ContentEntityModel,
    ContentFieldIndexModel,
    ContentFieldModel,
)
from app.shared.constants.salsify_constants import FieldKind
from app.shared.exceptions.domain import EntityNotFoundException, ValidationException

# Valores guardados en columnas propias del registro
BASE_FIELDS = ("title", "status", "created", "changed")

_INDEX_VALUE_MAX = 255


def _index_values(value: Any) -> Iterable[str]:
    """Valores escalares indexables de un campo (listas se expanden)."""
    items = value if isinstance(value, list) else [value]
    for item in items:
        if isinstance(item, dict):
            item = item.get("target_id", item.get("value"))
        if item is None or isinstance(item, (dict, list)):
            continue
        yield str(item)[:_INDEX_VALUE_MAX]


class SqlTargetStore(ITargetStore):
    """
    Almacen destino sobre content_fields / content_entities / content_field_index.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Campos
    # ------------------------------------------------------------------

    def list_fields(self, entity_type: str, bundle: str) -> Dict[str, FieldDefinition]:
        with self._session_factory() as session:
            rows = session.execute(
                select(ContentFieldModel)
                .where(
                    ContentFieldModel.entity_type == entity_type,
                    ContentFieldModel.bundle == bundle,
                )
                .order_by(ContentFieldModel.field_name)
            ).scalars().all()
            return {row.field_name: self._to_definition(row) for row in rows}

    def get_field(self, entity_type: str, bundle: str, field_name: str) -> Optional[FieldDefinition]:
        with self._session_factory() as session:
            row = self._get_field_row(session, entity_type, bundle, field_name)
            return self._to_definition(row) if row else None

    def create_field(self, definition: FieldDefinition) -> FieldDefinition:
        with self._session_factory() as session:
            existing = self._get_field_row(
                session, definition.entity_type, definition.bundle, definition.field_name
            )
            if existing:
                raise ValidationException(
                    f"El campo {definition.field_name} ya existe en {definition.entity_type}.{definition.bundle}",
                    field=definition.field_name,
                )

            row = ContentFieldModel(
                entity_type=definition.entity_type,
                bundle=definition.bundle,
                field_name=definition.field_name,
                kind=FieldKind(definition.kind).value,
                label=definition.label,
                cardinality=definition.cardinality,
                settings=copy.deepcopy(definition.settings),
                displays=copy.deepcopy(definition.displays),
            )
            session.add(row)
            session.commit()
            logger.info(
                f"Campo creado: {definition.entity_type}.{definition.bundle}.{definition.field_name} ({row.kind})"
            )
            return self._to_definition(row)

    def update_field(self, definition: FieldDefinition) -> FieldDefinition:
        with self._session_factory() as session:
            row = self._get_field_row(
                session, definition.entity_type, definition.bundle, definition.field_name
            )
            if row is None:
                raise EntityNotFoundException("Campo", definition.field_name)

            row.label = definition.label
            row.cardinality = definition.cardinality
            row.settings = copy.deepcopy(definition.settings)
            row.displays = copy.deepcopy(definition.displays)
            session.commit()
            return self._to_definition(row)

    def delete_field(self, entity_type: str, bundle: str, field_name: str) -> bool:
        with self._session_factory() as session:
            row = self._get_field_row(session, entity_type, bundle, field_name)
            if row is None:
                return False

            session.delete(row)

            # Purga de datos del campo en los registros del bundle
            session.execute(
                delete(ContentFieldIndexModel).where(
                    ContentFieldIndexModel.entity_type == entity_type,
                    ContentFieldIndexModel.bundle == bundle,
                    ContentFieldIndexModel.field_name == field_name,
                )
            )
            entities = session.execute(
                select(ContentEntityModel).where(
                    ContentEntityModel.entity_type == entity_type,
                    ContentEntityModel.bundle == bundle,
                )
            ).scalars().all()
            for entity in entities:
                values = dict(entity.field_values or {})
                if field_name in values:
                    values.pop(field_name)
                    entity.field_values = values

            session.commit()
            logger.info(f"Campo eliminado: {entity_type}.{bundle}.{field_name}")
            return True

    # ------------------------------------------------------------------
    # Registros
    # ------------------------------------------------------------------

    def create_entity(self, entity_type: str, bundle: str, values: Dict[str, Any]) -> TargetEntity:
        with self._session_factory() as session:
            row = ContentEntityModel(entity_type=entity_type, bundle=bundle)
            self._apply_values(row, values)
            session.add(row)
            session.flush()
            self._write_index(session, row)
            session.commit()
            return self._to_entity(row)

    def load_entity(self, entity_type: str, entity_id: int) -> Optional[TargetEntity]:
        with self._session_factory() as session:
            row = session.get(ContentEntityModel, entity_id)
            if row is None or row.entity_type != entity_type:
                return None
            return self._to_entity(row)

    def save_entity(self, entity: TargetEntity) -> TargetEntity:
        if entity.id is None:
            raise ValidationException("No se puede guardar un registro sin id", field="id")

        with self._session_factory() as session:
            row = session.get(ContentEntityModel, entity.id)
            if row is None or row.entity_type != entity.entity_type:
                raise EntityNotFoundException(entity.entity_type, entity.id)

            self._apply_values(row, entity.values)
            self._write_index(session, row)
            session.commit()
            return self._to_entity(row)

    def query_entities(
        self,
        entity_type: str,
        field_name: str,
        values: Sequence[Any],
        bundle: Optional[str] = None,
    ) -> List[int]:
        wanted = [str(v)[:_INDEX_VALUE_MAX] for v in values if v is not None]
        if not wanted:
            return []

        with self._session_factory() as session:
            query = (
                select(ContentFieldIndexModel.entity_id)
                .where(
                    ContentFieldIndexModel.entity_type == entity_type,
                    ContentFieldIndexModel.field_name == field_name,
                    ContentFieldIndexModel.value.in_(wanted),
                )
                .distinct()
                .order_by(ContentFieldIndexModel.entity_id)
            )
            if bundle:
                query = query.where(ContentFieldIndexModel.bundle == bundle)
            return list(session.execute(query).scalars().all())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _get_field_row(
        session: Session, entity_type: str, bundle: str, field_name: str
    ) -> Optional[ContentFieldModel]:
        return session.execute(
            select(ContentFieldModel).where(
                ContentFieldModel.entity_type == entity_type,
                ContentFieldModel.bundle == bundle,
                ContentFieldModel.field_name == field_name,
            )
        ).scalar_one_or_none()

    @staticmethod
    def _apply_values(row: ContentEntityModel, values: Dict[str, Any]) -> None:
        field_values = {k: copy.deepcopy(v) for k, v in values.items() if k not in BASE_FIELDS}
        if "title" in values:
            row.title = str(values["title"] or "")[:255]
        if "status" in values:
            row.status = bool(values["status"])
        if "created" in values:
            row.created = values["created"]
        if "changed" in values:
            row.changed = values["changed"]
        row.field_values = field_values

    @staticmethod
    def _write_index(session: Session, row: ContentEntityModel) -> None:
        session.execute(
            delete(ContentFieldIndexModel).where(ContentFieldIndexModel.entity_id == row.id)
        )
        for field_name, value in (row.field_values or {}).items():
            for indexed in _index_values(value):
                session.add(
                    ContentFieldIndexModel(
                        entity_id=row.id,
                        entity_type=row.entity_type,
                        bundle=row.bundle,
                        field_name=field_name,
                        value=indexed,
                    )
                )

    @staticmethod
    def _to_definition(row: ContentFieldModel) -> FieldDefinition:
        return FieldDefinition(
            entity_type=row.entity_type,
            bundle=row.bundle,
            field_name=row.field_name,
            kind=FieldKind(row.kind),
            label=row.label or "",
            cardinality=row.cardinality,
            settings=copy.deepcopy(row.settings or {}),
            displays=copy.deepcopy(row.displays or {}),
        )

    @staticmethod
    def _to_entity(row: ContentEntityModel) -> TargetEntity:
        values = copy.deepcopy(row.field_values or {})
        values.update({
            "title": row.title,
            "status": row.status,
            "created": row.created,
            "changed": row.changed,
        })
        return TargetEntity(
            entity_type=row.entity_type,
            bundle=row.bundle,
            id=row.id,
            values=values,
        )
