from __future__ import annotations

import pytest

from app.domain.entities.content import FieldDefinition, TargetEntity
from app.shared.constants.salsify_constants import SYNC_ID_FIELD, FieldKind
from app.shared.exceptions.domain import EntityNotFoundException, ValidationException


def _field(field_name: str = "salsifysync_brand", kind: FieldKind = FieldKind.STRING, **kwargs) -> FieldDefinition:
    return FieldDefinition(entity_type="node", bundle="product", field_name=field_name, kind=kind, **kwargs)


class TestFields:
    def test_create_get_and_list(self, target_store) -> None:
        target_store.create_field(_field(label="Brand", settings={"max_length": 255}))
        target_store.create_field(_field("salsifysync_color", FieldKind.LIST_STRING, cardinality=-1))

        brand = target_store.get_field("node", "product", "salsifysync_brand")
        assert brand.label == "Brand"
        assert brand.max_length == 255
        assert list(target_store.list_fields("node", "product")) == ["salsifysync_brand", "salsifysync_color"]
        assert target_store.list_fields("node", "other") == {}

    def test_duplicate_field_is_rejected(self, target_store) -> None:
        target_store.create_field(_field())
        with pytest.raises(ValidationException):
            target_store.create_field(_field())

    def test_update_keeps_machine_name(self, target_store) -> None:
        target_store.create_field(_field(label="Brand"))

        updated = target_store.update_field(_field(label="Marca", displays={"form.default": {"region": "content"}}))

        assert updated.field_name == "salsifysync_brand"
        assert updated.label == "Marca"
        assert target_store.get_field("node", "product", "salsifysync_brand").displays["form.default"]["region"] == "content"

    def test_update_missing_field_raises(self, target_store) -> None:
        with pytest.raises(EntityNotFoundException):
            target_store.update_field(_field())

    def test_delete_purges_values_and_index(self, target_store) -> None:
        target_store.create_field(_field())
        entity = target_store.create_entity("node", "product", {"title": "P1", "salsifysync_brand": "Acme"})

        assert target_store.delete_field("node", "product", "salsifysync_brand")

        assert target_store.get_field("node", "product", "salsifysync_brand") is None
        assert "salsifysync_brand" not in target_store.load_entity("node", entity.id).values
        assert target_store.query_entities("node", "salsifysync_brand", ["Acme"]) == []
        assert target_store.delete_field("node", "product", "salsifysync_brand") is False


class TestEntities:
    def test_create_and_load(self, target_store) -> None:
        entity = target_store.create_entity(
            "node", "product",
            {"title": "P1", "status": True, "created": 10, "changed": 20, SYNC_ID_FIELD: "P1"},
        )

        loaded = target_store.load_entity("node", entity.id)
        assert loaded.title == "P1"
        assert loaded.sync_id == "P1"
        assert loaded.get("changed") == 20
        assert target_store.load_entity("media", entity.id) is None

    def test_query_by_scalar_and_list_values(self, target_store) -> None:
        first = target_store.create_entity("node", "product", {SYNC_ID_FIELD: "P1", "tags": ["a", "b"]})
        second = target_store.create_entity("node", "product", {SYNC_ID_FIELD: "P2", "tags": ["b"]})
        target_store.create_entity("node", "kit", {SYNC_ID_FIELD: "P1"})

        assert target_store.query_entities("node", SYNC_ID_FIELD, ["P1"], bundle="product") == [first.id]
        assert target_store.query_entities("node", "tags", ["b"]) == [first.id, second.id]
        assert len(target_store.query_entities("node", SYNC_ID_FIELD, ["P1"])) == 2
        assert target_store.query_entities("node", SYNC_ID_FIELD, []) == []

    def test_references_are_indexed_by_target_id(self, target_store) -> None:
        entity = target_store.create_entity("node", "product", {"field_color": [{"target_id": 7}]})
        assert target_store.query_entities("node", "field_color", [7]) == [entity.id]

    def test_save_reindexes(self, target_store) -> None:
        entity = target_store.create_entity("node", "product", {SYNC_ID_FIELD: "P1", "salsifysync_brand": "Old"})
        entity.set("salsifysync_brand", "New")

        target_store.save_entity(entity)

        assert target_store.query_entities("node", "salsifysync_brand", ["Old"]) == []
        assert target_store.query_entities("node", "salsifysync_brand", ["New"]) == [entity.id]

    def test_save_without_id_or_missing_row(self, target_store) -> None:
        with pytest.raises(ValidationException):
            target_store.save_entity(TargetEntity(entity_type="node", bundle="product"))
        with pytest.raises(EntityNotFoundException):
            target_store.save_entity(TargetEntity(entity_type="node", bundle="product", id=999))
