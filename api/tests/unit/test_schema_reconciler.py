"""
Tests de reconciliacion de esquema remoto -> campos locales.

Cubre:
- creacion inicial (escenario A) y re-ejecucion sin cambios (escenario B)
- idempotencia: segunda corrida identica sin create/update/delete
- cascada de eliminacion cuando un campo desaparece del feed
- colisiones de nombre de maquina
- adopcion de campos huerfanos y guardas de prefijo
- fallo de un campo sin cortar el resto
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from app.application.services.schema_reconciler import SchemaReconciler
from app.domain.entities.content import FieldDefinition
from app.domain.entities.field_mapping import FieldMapping
from app.shared.constants.salsify_constants import (
    HIGH_WATER_MARK_FIELD,
    MACHINE_NAME_MAX_LENGTH,
    SALSIFY_ID,
    SERIALIZED_DATA_FIELD,
    SYNC_ID_FIELD,
    FieldKind,
    MappingMethod,
)
from app.shared.utils.datetime_utils import to_epoch

T0 = "2024-01-01T00:00:00Z"
T1 = "2024-03-01T00:00:00Z"
SCOPE = {"entity_type": "node", "bundle": "product"}


@pytest.fixture
def spy_store(target_store) -> MagicMock:
    return MagicMock(wraps=target_store)


@pytest.fixture
def reconciler(stores, spy_store) -> SchemaReconciler:
    return SchemaReconciler(
        mapping_store=stores.mappings,
        options_store=stores.options,
        target_store=spy_store,
    )


def _dynamic(stores, key_by: str = "salsify_id"):
    return stores.mappings.get_mappings(method=MappingMethod.DYNAMIC, key_by=key_by, **SCOPE)


def _mutations(spy: MagicMock) -> int:
    return spy.create_field.call_count + spy.update_field.call_count + spy.delete_field.call_count


class TestScenarios:
    def test_scenario_a_creates_boolean_field_and_mapping(self, feed_builder, reconciler, stores, target_store) -> None:
        catalog = feed_builder.catalog(attributes=[feed_builder.attribute("A1", "boolean", updated_at=T0)])

        result = reconciler.reconcile(catalog, **SCOPE)

        assert result.ok
        fields = target_store.list_fields("node", "product")
        booleans = [f for f in fields.values() if f.kind == FieldKind.BOOLEAN]
        assert [f.field_name for f in booleans] == ["salsifysync_a1"]

        mapping = _dynamic(stores)["A1"]
        assert mapping.field_name == "salsifysync_a1"
        assert mapping.changed == to_epoch(T0)
        assert mapping.salsify_data_type == "boolean"

    def test_scenario_b_rerun_unchanged_does_not_update(self, feed_builder, reconciler, stores, spy_store) -> None:
        catalog = feed_builder.catalog(attributes=[feed_builder.attribute("A1", "boolean", updated_at=T0)])
        reconciler.reconcile(catalog, **SCOPE)
        spy_store.reset_mock()

        result = reconciler.reconcile(catalog, **SCOPE)

        assert result.updated == []
        spy_store.update_field.assert_not_called()
        assert _dynamic(stores)["A1"].changed == to_epoch(T0)

    def test_sync_id_field_is_created_hidden(self, feed_builder, reconciler, target_store) -> None:
        reconciler.reconcile(feed_builder.catalog(attributes=[]), **SCOPE)

        sync_field = target_store.get_field("node", "product", SYNC_ID_FIELD)
        assert sync_field is not None
        assert sync_field.displays["view.default"]["region"] == "hidden"


class TestIdempotence:
    def test_identical_feed_twice_has_no_mutations(self, feed_builder, reconciler, stores, spy_store) -> None:
        catalog = feed_builder.catalog(
            attributes=[
                feed_builder.attribute("Brand"),
                feed_builder.attribute("Color", "enumerated"),
                feed_builder.attribute("Launch Date", "date"),
            ],
            values=[feed_builder.value("red", "Color", name="Red")],
        )
        reconciler.reconcile(catalog, **SCOPE)
        spy_store.reset_mock()
        writes_before = stores.mapping_backend.writes + stores.options_backend.writes

        result = reconciler.reconcile(catalog, **SCOPE)

        assert result.changes == 0
        assert _mutations(spy_store) == 0
        assert stores.mapping_backend.writes + stores.options_backend.writes == writes_before

    def test_changed_field_updates_label_options_and_mapping(self, feed_builder, reconciler, stores, target_store) -> None:
        reconciler.reconcile(
            feed_builder.catalog(
                attributes=[feed_builder.attribute("Color", "enumerated", name="Color", updated_at=T0)],
                values=[feed_builder.value("red", "Color", name="Red", updated_at=T0)],
            ),
            **SCOPE,
        )

        result = reconciler.reconcile(
            feed_builder.catalog(
                attributes=[feed_builder.attribute("Color", "enumerated", name="Colour", updated_at=T0)],
                values=[feed_builder.value("red", "Color", name="Rouge", updated_at=T1)],
            ),
            **SCOPE,
        )

        assert result.updated == ["salsifysync_color"]
        assert target_store.get_field("node", "product", "salsifysync_color").label == "Colour"
        assert stores.options.get_options("s-Color") == {"red": "Rouge"}
        assert _dynamic(stores)["Color"].changed == to_epoch(T1)

    def test_mapped_field_missing_locally_is_recreated(self, feed_builder, reconciler, stores, target_store) -> None:
        reconciler.reconcile(feed_builder.catalog(attributes=[feed_builder.attribute("Brand", updated_at=T0)]), **SCOPE)
        target_store.delete_field("node", "product", "salsifysync_brand")

        reconciler.reconcile(feed_builder.catalog(attributes=[feed_builder.attribute("Brand", updated_at=T1)]), **SCOPE)

        assert target_store.get_field("node", "product", "salsifysync_brand") is not None


class TestDeletion:
    def test_removed_remote_field_cascades_once(self, feed_builder, reconciler, stores, spy_store) -> None:
        reconciler.reconcile(
            feed_builder.catalog(
                attributes=[feed_builder.attribute("Brand"), feed_builder.attribute("Color", "enumerated")],
                values=[feed_builder.value("red", "Color")],
            ),
            **SCOPE,
        )
        spy_store.reset_mock()

        result = reconciler.reconcile(feed_builder.catalog(attributes=[feed_builder.attribute("Brand")]), **SCOPE)

        assert result.deleted == ["salsifysync_color"]
        spy_store.delete_field.assert_called_once_with("node", "product", "salsifysync_color")
        assert "Color" not in _dynamic(stores)
        assert stores.options.get_options("s-Color") == {}

    def test_prune_disabled_keeps_fields(self, feed_builder, reconciler, stores) -> None:
        reconciler.reconcile(feed_builder.catalog(attributes=[feed_builder.attribute("Brand")]), **SCOPE)

        result = reconciler.reconcile(feed_builder.catalog(attributes=[]), prune=False, **SCOPE)

        assert result.deleted == []
        assert "Brand" in _dynamic(stores)

    def test_non_engine_field_is_never_deleted(self, feed_builder, reconciler, stores, target_store, spy_store) -> None:
        target_store.create_field(
            FieldDefinition(entity_type="node", bundle="product", field_name="field_brand", kind=FieldKind.STRING)
        )
        stores.mappings.create_mapping(
            FieldMapping(method=MappingMethod.DYNAMIC, salsify_id="Brand", field_name="field_brand", **SCOPE)
        )

        result = reconciler.reconcile(feed_builder.catalog(attributes=[]), **SCOPE)

        assert result.deleted == ["field_brand"]
        spy_store.delete_field.assert_not_called()
        assert target_store.get_field("node", "product", "field_brand") is not None

    def test_remove_dynamic_fields(self, feed_builder, reconciler, stores, target_store) -> None:
        reconciler.reconcile(feed_builder.catalog(attributes=[feed_builder.attribute("Brand")]), **SCOPE)

        result = reconciler.remove_dynamic_fields(**SCOPE)

        assert set(result.deleted) == {"salsifysync_brand", SYNC_ID_FIELD}
        assert _dynamic(stores) == {}
        assert target_store.get_field("node", "product", "salsifysync_brand") is None


class TestNaming:
    def test_colliding_remote_ids_get_distinct_names(self, feed_builder, reconciler, stores) -> None:
        catalog = feed_builder.catalog(
            attributes=[feed_builder.attribute("Model Number"), feed_builder.attribute("Model-Number")]
        )

        reconciler.reconcile(catalog, **SCOPE)

        mappings = _dynamic(stores)
        first = mappings["Model Number"].field_name
        second = mappings["Model-Number"].field_name
        assert first == "salsifysync_model_number"
        assert second == "salsifysync_model_number_0"
        assert len(first) <= MACHINE_NAME_MAX_LENGTH and len(second) <= MACHINE_NAME_MAX_LENGTH

    def test_reserved_field_names_are_never_assigned(self, feed_builder, reconciler, stores) -> None:
        catalog = feed_builder.catalog(
            attributes=[
                feed_builder.attribute("Data"),
                feed_builder.attribute("data"),
            ]
        )

        reconciler.reconcile(catalog, **SCOPE)

        mappings = _dynamic(stores)
        assert mappings["Data"].field_name == f"{SERIALIZED_DATA_FIELD}_0"
        assert mappings["data"].field_name == f"{SERIALIZED_DATA_FIELD}_1"
        assert mappings[SALSIFY_ID].field_name == SYNC_ID_FIELD

    def test_existing_site_field_is_not_taken(self, feed_builder, reconciler, stores, target_store) -> None:
        target_store.create_field(
            FieldDefinition(entity_type="node", bundle="product", field_name="salsifysync_brand", kind=FieldKind.STRING)
        )
        stores.mappings.create_mapping(
            FieldMapping(method=MappingMethod.MANUAL, salsify_id="Other", field_name="salsifysync_brand", **SCOPE)
        )

        reconciler.reconcile(feed_builder.catalog(attributes=[feed_builder.attribute("Brand")]), **SCOPE)

        assert _dynamic(stores)["Brand"].field_name == "salsifysync_brand_0"

    def test_orphan_engine_field_is_adopted(self, feed_builder, reconciler, stores, target_store, spy_store) -> None:
        target_store.create_field(
            FieldDefinition(entity_type="node", bundle="product", field_name="salsifysync_brand", kind=FieldKind.STRING)
        )

        result = reconciler.reconcile(feed_builder.catalog(attributes=[feed_builder.attribute("Brand")]), **SCOPE)

        assert result.adopted == ["salsifysync_brand"]
        assert _dynamic(stores)["Brand"].field_name == "salsifysync_brand"
        created = [c.args[0].field_name for c in spy_store.create_field.call_args_list]
        assert "salsifysync_brand" not in created


class TestManualAndErrors:
    def test_manual_mapping_is_not_created_dynamically(self, feed_builder, reconciler, stores) -> None:
        stores.mappings.create_mapping(
            FieldMapping(
                method=MappingMethod.MANUAL, salsify_id="Color", field_name="field_color",
                field_id="s-Color", salsify_data_type="enumerated", **SCOPE,
            )
        )
        catalog = feed_builder.catalog(
            attributes=[feed_builder.attribute("Color", "enumerated", updated_at=T1)],
            values=[feed_builder.value("red", "Color", name="Red")],
        )

        reconciler.reconcile(catalog, **SCOPE)

        assert "Color" not in _dynamic(stores)
        assert stores.options.get_options("s-Color") == {"red": "Red"}

    def test_failure_on_one_field_does_not_stop_others(
        self, feed_builder, reconciler, spy_store, stores, target_store
    ) -> None:
        original = target_store.create_field

        def failing_create(definition):
            if definition.field_name == "salsifysync_broken":
                raise RuntimeError("disk full")
            return original(definition)

        spy_store.create_field.side_effect = failing_create
        catalog = feed_builder.catalog(
            attributes=[feed_builder.attribute("Broken"), feed_builder.attribute("Brand")]
        )

        result = reconciler.reconcile(catalog, **SCOPE)

        assert not result.ok
        assert result.errors[0].field_name == "salsifysync_broken"
        assert result.errors[0].operation == "create"
        assert "Brand" in _dynamic(stores)
        assert "Broken" not in _dynamic(stores)

    def test_manual_options_failure_does_not_stop_others(
        self, feed_builder, reconciler, stores, monkeypatch
    ) -> None:
        stores.mappings.create_mapping(
            FieldMapping(
                method=MappingMethod.MANUAL, salsify_id="Color", field_name="field_color",
                field_id="s-Color", salsify_data_type="enumerated", **SCOPE,
            )
        )

        def failing_set(key, value):
            raise RuntimeError("db down")

        monkeypatch.setattr(stores.options_backend, "set", failing_set)
        catalog = feed_builder.catalog(
            attributes=[
                feed_builder.attribute("Color", "enumerated", updated_at=T1),
                feed_builder.attribute("Brand"),
            ],
            values=[feed_builder.value("red", "Color", name="Red")],
        )

        result = reconciler.reconcile(catalog, **SCOPE)

        assert not result.ok
        assert result.errors[0].operation == "update"
        assert result.errors[0].field_name == "field_color"
        assert "Brand" in _dynamic(stores)

    def test_field_ids_restricts_reconciliation(self, feed_builder, reconciler, stores) -> None:
        catalog = feed_builder.catalog(attributes=[feed_builder.attribute("Brand")])

        reconciler.reconcile(catalog, field_ids=[SALSIFY_ID], prune=False, **SCOPE)

        assert set(_dynamic(stores)) == {SALSIFY_ID}


def test_ensure_reserved_fields(reconciler, target_store) -> None:
    created = reconciler.ensure_reserved_fields(serialized=True, **SCOPE)
    again = reconciler.ensure_reserved_fields(serialized=True, **SCOPE)

    assert created == [HIGH_WATER_MARK_FIELD, SERIALIZED_DATA_FIELD]
    assert again == []
    assert target_store.get_field("node", "product", HIGH_WATER_MARK_FIELD).kind == FieldKind.INTEGER
