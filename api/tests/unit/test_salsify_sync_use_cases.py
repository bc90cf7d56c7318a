"""
Tests de los casos de uso de sincronizacion.

El fetcher se reemplaza con un MagicMock; el resto corre sobre los
almacenes en memoria y el almacen destino SQLite.
"""
from __future__ import annotations

from contextlib import nullcontext
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from app.application.use_cases.salsify_sync_use_cases import (
    SalsifySyncConfig,
    SalsifySyncUseCases,
)
from app.domain.entities.content import FieldDefinition
from app.domain.repositories.import_queue import IImportQueue, QueueItem
from app.infrastructure.external.salsify_sync.hooks import ENTITY_TYPE_OPTIONS
from app.shared.constants.salsify_constants import (
    MSG_DATA_SHAPE_ERROR,
    MSG_IMPORT_COMPLETE,
    MSG_IMPORT_QUEUED,
    MSG_NO_BUNDLE,
    MSG_NO_PRODUCT_DATA,
    MSG_RUN_IN_PROGRESS,
    MSG_TRANSPORT_ERROR,
    SERIALIZED_DATA_FIELD,
    SYNC_ID_FIELD,
    FieldKind,
    MappingMethod,
    RunStatus,
)
from app.shared.exceptions.domain import EntityNotFoundException, ValidationException
from app.shared.exceptions.salsify import SyncInProgressError, TransportError


class FakeQueue(IImportQueue):
    def __init__(self) -> None:
        self.items: Dict[int, Dict[str, Any]] = {}
        self.status: Dict[int, str] = {}
        self.errors: Dict[int, str] = {}

    def create_item(self, payload: Dict[str, Any]) -> int:
        item_id = len(self.items) + 1
        self.items[item_id] = payload
        self.status[item_id] = "queued"
        return item_id

    def claim_next(self) -> Optional[QueueItem]:
        for item_id, status in self.status.items():
            if status == "queued":
                self.status[item_id] = "running"
                return QueueItem(item_id=item_id, payload=self.items[item_id], attempts=1)
        return None

    def mark_done(self, item_id: int) -> None:
        self.status[item_id] = "done"

    def mark_failed(self, item_id: int, error: str) -> None:
        self.status[item_id] = "failed"
        self.errors[item_id] = error

    def count_pending(self) -> int:
        return sum(1 for status in self.status.values() if status == "queued")


@pytest.fixture
def feed(feed_builder) -> Dict[str, Any]:
    return feed_builder.feed(
        attributes=[
            feed_builder.attribute("Brand"),
            feed_builder.attribute("Color", "enumerated"),
            feed_builder.attribute("Active", "boolean"),
        ],
        values=[feed_builder.value("red", "Color", name="Red")],
        products=[
            feed_builder.product("P1", Brand="Acme", Color="red"),
            feed_builder.product("P2", Brand="Globex"),
        ],
    )


@pytest.fixture
def make_use_cases(stores, target_store, feed):
    def factory(
        raw_feed: Any = None,
        *,
        fetch_error: Optional[Exception] = None,
        queue: Optional[IImportQueue] = None,
        run_lock=None,
        **config: Any,
    ) -> SalsifySyncUseCases:
        fetcher = MagicMock()
        if fetch_error is not None:
            fetcher.fetch_channel.side_effect = fetch_error
        else:
            fetcher.fetch_channel.return_value = feed if raw_feed is None else raw_feed

        values = dict(
            product_feed_url="https://salsify.test/channel",
            access_token="token",
            entity_type="node",
            bundle="product",
        )
        values.update(config)
        return SalsifySyncUseCases(
            config=SalsifySyncConfig(**values),
            fetcher=fetcher,
            mapping_store=stores.mappings,
            options_store=stores.options,
            state_store=stores.state,
            target_store=target_store,
            queue=queue,
            hooks=stores.hooks,
            run_lock=run_lock,
        )

    return factory


def _busy_lock():
    return nullcontext(False)


class TestImportProductData:
    def test_full_run_creates_fields_and_products(self, make_use_cases, target_store) -> None:
        use_cases = make_use_cases()

        result = use_cases.import_product_data()

        assert result.status == RunStatus.STATUS
        assert result.message == MSG_IMPORT_COMPLETE
        assert result.records.created == 2
        assert result.fields["created"] >= 3
        assert "salsifysync_brand" in target_store.list_fields("node", "product")
        assert len(target_store.query_entities("node", SYNC_ID_FIELD, ["P1", "P2"], bundle="product")) == 2

    def test_second_run_skips_unchanged_products(self, make_use_cases) -> None:
        use_cases = make_use_cases()
        use_cases.import_product_data()

        result = use_cases.import_product_data()

        assert result.records.skipped == 2
        assert result.records.created == 0
        assert result.fields["created"] == 0

    def test_force_update_rewrites_products(self, make_use_cases) -> None:
        use_cases = make_use_cases()
        use_cases.import_product_data()

        result = use_cases.import_product_data(force_update=True)

        assert result.records.updated == 2

    def test_missing_bundle(self, make_use_cases) -> None:
        use_cases = make_use_cases(bundle="")

        result = use_cases.import_product_data()

        assert result.status == RunStatus.ERROR
        assert result.message == MSG_NO_BUNDLE
        use_cases._fetcher.fetch_channel.assert_not_called()

    def test_transport_error_aborts_before_any_change(self, make_use_cases, stores, target_store) -> None:
        use_cases = make_use_cases(fetch_error=TransportError("HTTP 500"))

        result = use_cases.import_product_data()

        assert result.as_dict()["status"] == "error"
        assert result.message == MSG_TRANSPORT_ERROR
        assert stores.mapping_backend.writes == 0
        assert target_store.list_fields("node", "product") == {}

    def test_unexpected_payload_shape(self, make_use_cases) -> None:
        result = make_use_cases(raw_feed={"products": []}).import_product_data()
        assert result.message == MSG_DATA_SHAPE_ERROR

    def test_feed_without_products_still_reconciles_fields(self, make_use_cases, feed, target_store) -> None:
        result = make_use_cases(raw_feed={**feed, "products": []}).import_product_data()

        assert result.status == RunStatus.ERROR
        assert result.message == MSG_NO_PRODUCT_DATA
        assert result.fields["created"] >= 3
        assert target_store.get_field("node", "product", "salsifysync_brand") is not None

    def test_bad_record_does_not_stop_the_batch(self, make_use_cases, feed, feed_builder) -> None:
        products = [{"Brand": "No id"}, feed_builder.product("P3", Brand="Initech")]
        use_cases = make_use_cases(raw_feed={**feed, "products": products})

        result = use_cases.import_product_data()

        assert result.status == RunStatus.STATUS
        assert result.records.failed == 1
        assert result.records.created == 1

    def test_busy_lock_skips_the_run(self, make_use_cases, stores) -> None:
        result = make_use_cases(run_lock=_busy_lock).import_product_data()

        assert result.message == MSG_RUN_IN_PROGRESS
        assert stores.mapping_backend.writes == 0

    def test_deferred_run_enqueues_and_worker_imports(self, make_use_cases, target_store) -> None:
        queue = FakeQueue()
        use_cases = make_use_cases(queue=queue, process_immediately=False)

        result = use_cases.import_product_data()

        assert result.message == MSG_IMPORT_QUEUED
        assert result.records.queued == 2
        assert queue.count_pending() == 2
        assert target_store.query_entities("node", SYNC_ID_FIELD, ["P1"], bundle="product") == []

        stats = use_cases.process_queue()

        assert stats.created == 2
        assert set(queue.status.values()) == {"done"}

    def test_worker_marks_failed_items(self, make_use_cases) -> None:
        queue = FakeQueue()
        queue.create_item({"record": {"Brand": "No id"}, "force_update": False})
        use_cases = make_use_cases(queue=queue)
        use_cases.import_product_fields()

        stats = use_cases.process_queue(max_items=5)

        assert stats.failed == 1
        assert queue.status[1] == "failed"
        assert "salsify:id" in queue.errors[1]

    def test_enqueue_without_queue_raises(self, make_use_cases) -> None:
        with pytest.raises(RuntimeError):
            make_use_cases().enqueue_records([{"salsify:id": "P1"}])

    def test_manual_import_method_serializes_unmapped_data(self, make_use_cases, target_store) -> None:
        use_cases = make_use_cases(import_method="manual")

        result = use_cases.import_product_data()

        fields = target_store.list_fields("node", "product")
        assert SERIALIZED_DATA_FIELD in fields
        assert "salsifysync_brand" not in fields
        assert result.records.created == 2
        entity_id = target_store.query_entities("node", SYNC_ID_FIELD, ["P1"], bundle="product")[0]
        assert "Acme" in target_store.load_entity("node", entity_id).get(SERIALIZED_DATA_FIELD)


class TestImportProductFields:
    def test_busy_lock_raises(self, make_use_cases) -> None:
        with pytest.raises(SyncInProgressError):
            make_use_cases(run_lock=_busy_lock).import_product_fields()

    def test_scope_change_migrates_dynamic_fields(self, make_use_cases, stores, target_store) -> None:
        make_use_cases().import_product_fields()

        make_use_cases(bundle="item").import_product_fields()

        assert stores.state.get_scope() == ("node", "item")
        assert "salsifysync_brand" in target_store.list_fields("node", "item")
        assert "salsifysync_brand" not in target_store.list_fields("node", "product")
        assert stores.mappings.get_mappings(entity_type="node", bundle="product") == {}


class TestManualMappings:
    @pytest.fixture
    def use_cases(self, make_use_cases, target_store) -> SalsifySyncUseCases:
        use_cases = make_use_cases()
        use_cases.import_product_fields()
        target_store.create_field(
            FieldDefinition(entity_type="node", bundle="product", field_name="field_brand", kind=FieldKind.STRING)
        )
        target_store.create_field(
            FieldDefinition(
                entity_type="node", bundle="product", field_name="field_color",
                kind=FieldKind.LIST_STRING, cardinality=-1,
            )
        )
        return use_cases

    def test_manual_mapping_replaces_dynamic_one(self, use_cases, target_store) -> None:
        mapping = use_cases.set_manual_mapping(salsify_id="Brand", field_name="field_brand")

        assert mapping.method == MappingMethod.MANUAL
        mappings = {m.field_name: m for m in use_cases.list_mappings()}
        assert "salsifysync_brand" not in mappings
        assert mappings["field_brand"].salsify_id == "Brand"
        assert target_store.get_field("node", "product", "salsifysync_brand") is None

    def test_remapping_moves_the_manual_mapping(self, use_cases, target_store) -> None:
        target_store.create_field(
            FieldDefinition(entity_type="node", bundle="product", field_name="field_label", kind=FieldKind.STRING)
        )
        use_cases.set_manual_mapping(salsify_id="Brand", field_name="field_brand")
        use_cases.set_manual_mapping(salsify_id="Brand", field_name="field_label")

        manual = [m.field_name for m in use_cases.list_mappings(MappingMethod.MANUAL)]
        assert manual == ["field_label"]
        assert target_store.get_field("node", "product", "field_brand") is not None

    def test_enumerated_mapping_stores_options(self, use_cases, stores) -> None:
        use_cases.set_manual_mapping(salsify_id="Color", field_name="field_color")
        assert use_cases.allowed_values_for("field_color") == {"red": "Red"}

    def test_incompatible_types_are_rejected(self, use_cases) -> None:
        with pytest.raises(ValidationException):
            use_cases.set_manual_mapping(salsify_id="Active", field_name="field_brand")

    def test_unknown_sides_are_not_found(self, use_cases) -> None:
        with pytest.raises(EntityNotFoundException):
            use_cases.set_manual_mapping(salsify_id="Missing", field_name="field_brand")
        with pytest.raises(EntityNotFoundException):
            use_cases.set_manual_mapping(salsify_id="Brand", field_name="field_missing")

    def test_delete_manual_mapping(self, use_cases) -> None:
        use_cases.set_manual_mapping(salsify_id="Brand", field_name="field_brand")

        assert use_cases.delete_manual_mapping("field_brand")
        with pytest.raises(EntityNotFoundException):
            use_cases.delete_manual_mapping("field_brand")

    def test_allowed_values_of_dynamic_field(self, use_cases) -> None:
        assert use_cases.allowed_values_for("salsifysync_color") == {"red": "Red"}
        with pytest.raises(EntityNotFoundException):
            use_cases.allowed_values_for("field_unknown")


class TestUninstallAndOptions:
    def test_uninstall_keeps_fields_by_default(self, make_use_cases, target_store) -> None:
        use_cases = make_use_cases()
        use_cases.import_product_fields()

        result = use_cases.uninstall()

        assert result.changes == 0
        assert "salsifysync_brand" in target_store.list_fields("node", "product")

    def test_uninstall_removes_dynamic_fields(self, make_use_cases, stores, target_store) -> None:
        use_cases = make_use_cases(keep_fields_on_uninstall=False)
        use_cases.import_product_fields()

        use_cases.uninstall()

        assert stores.mappings.get_mappings(entity_type="node", bundle="product", method=MappingMethod.DYNAMIC) == {}
        assert "salsifysync_brand" not in target_store.list_fields("node", "product")
        assert stores.options_backend.data == {}

    def test_entity_type_options_are_alterable(self, make_use_cases, stores) -> None:
        def add_commerce(options: Dict[str, str], context) -> Dict[str, str]:
            options["commerce_product"] = "Commerce product"
            return options

        stores.hooks.register(ENTITY_TYPE_OPTIONS, add_commerce)
        options: List[str] = list(make_use_cases().entity_type_options())

        assert "node" in options
        assert "commerce_product" in options
