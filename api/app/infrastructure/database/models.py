"""
Modelos de base de datos (ORM) del almacen de contenido destino.
"""
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base


class ContentFieldModel(Base):
    """
    Definicion de campo de un bundle.
    Guarda tipo, cardinalidad, settings y componentes de display.
    """

    __tablename__ = "content_fields"
    __table_args__ = (
        UniqueConstraint("entity_type", "bundle", "field_name", name="uq_content_fields_scope_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(64), nullable=False, index=True)
    bundle = Column(String(128), nullable=False, index=True)
    field_name = Column(String(64), nullable=False)
    kind = Column(String(32), nullable=False)
    label = Column(String(255), nullable=False, default="")
    cardinality = Column(Integer, nullable=False, default=1)
    settings = Column(JSON, nullable=False, default=dict)
    displays = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<ContentField({self.entity_type}.{self.bundle}.{self.field_name}, kind={self.kind})>"


class ContentEntityModel(Base):
    """
    Registro generico de contenido (producto, termino, media).
    Los valores de campo viven en field_values (JSON).
    """

    __tablename__ = "content_entities"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(64), nullable=False, index=True)
    bundle = Column(String(128), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="")
    status = Column(Boolean, nullable=False, default=True)
    created = Column(BigInteger, nullable=True)
    changed = Column(BigInteger, nullable=True)
    field_values = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<ContentEntity(id={self.id}, {self.entity_type}.{self.bundle}, title={self.title})>"


class ContentFieldIndexModel(Base):
    """
    Indice de valores escalares por campo para consultas por igualdad.
    Se reescribe completo en cada guardado del registro.
    """

    __tablename__ = "content_field_index"
    __table_args__ = (
        Index("ix_content_field_index_lookup", "entity_type", "field_name", "value"),
    )

    id = Column(Integer, primary_key=True)
    entity_id = Column(
        Integer,
        ForeignKey("content_entities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entity_type = Column(String(64), nullable=False)
    bundle = Column(String(128), nullable=False)
    field_name = Column(String(64), nullable=False)
    value = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<ContentFieldIndex(entity_id={self.entity_id}, {self.field_name}={self.value})>"
