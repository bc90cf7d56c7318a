from __future__ import annotations

import pytest

from app.application.services.field_definitions import (
    build_field_definition,
    default_displays,
    derive_machine_name,
    field_kind_for,
    is_compatible,
    unique_machine_name,
)
from app.infrastructure.external.salsify_sync.types import RemoteField, RemoteValue
from app.shared.constants.salsify_constants import MACHINE_NAME_MAX_LENGTH, FieldKind


class TestDeriveMachineName:
    def test_custom_attribute_gets_custom_prefix(self) -> None:
        assert derive_machine_name("Model Number") == "salsifysync_model_number"

    def test_system_attribute_gets_reserved_prefix(self) -> None:
        assert derive_machine_name("salsify:id") == "salsify_salsifyid"

    def test_hyphens_and_symbols(self) -> None:
        assert derive_machine_name("Net-Weight (kg)") == "salsifysync_net_weight_kg"

    def test_long_names_are_truncated(self) -> None:
        name = derive_machine_name("A very long attribute name that never ends")
        assert len(name) == MACHINE_NAME_MAX_LENGTH
        assert name.startswith("salsifysync_a_very_long")


class TestUniqueMachineName:
    def test_free_candidate_is_kept(self) -> None:
        assert unique_machine_name("salsifysync_brand", {"title"}) == "salsifysync_brand"

    def test_collisions_get_numeric_suffix(self) -> None:
        used = {"salsifysync_brand", "salsifysync_brand_0"}
        assert unique_machine_name("salsifysync_brand", used) == "salsifysync_brand_1"

    def test_truncated_collisions_stay_within_limit_and_distinct(self) -> None:
        ids = [f"Extremely Long Shared Prefix Attribute {i}" for i in range(12)]
        used: set[str] = set()
        names = []
        for attr_id in ids:
            name = unique_machine_name(derive_machine_name(attr_id), used)
            used.add(name)
            names.append(name)

        assert len(set(names)) == len(ids)
        assert all(len(name) <= MACHINE_NAME_MAX_LENGTH for name in names)


@pytest.mark.parametrize(
    "data_type, kind, cardinality",
    [
        ("enumerated", FieldKind.LIST_STRING, -1),
        ("date", FieldKind.DATETIME, 1),
        ("boolean", FieldKind.BOOLEAN, 1),
        ("rich_text", FieldKind.TEXT_LONG, 1),
        ("html", FieldKind.STRING_LONG, 1),
        ("link", FieldKind.LINK, 1),
        ("digital_asset", FieldKind.STRING, 1),
        ("number", FieldKind.STRING, 1),
        ("string", FieldKind.STRING, 1),
    ],
)
def test_field_kind_table(data_type: str, kind: FieldKind, cardinality: int) -> None:
    got_kind, got_cardinality, _ = field_kind_for(data_type)
    assert (got_kind, got_cardinality) == (kind, cardinality)


def test_digital_asset_with_media_is_multi_reference() -> None:
    kind, cardinality, settings = field_kind_for("digital_asset", process_media_assets=True)
    assert kind == FieldKind.ENTITY_REFERENCE
    assert cardinality == -1
    assert settings["target_type"] == "media"


def test_string_fields_default_to_255() -> None:
    _, _, settings = field_kind_for("string")
    assert settings == {"max_length": 255}


def test_build_field_definition_for_enumerated() -> None:
    remote = RemoteField(
        id="Color",
        system_id="s-color",
        name="Color",
        data_type="enumerated",
        values={"red": RemoteValue("red", "Red")},
    )
    definition = build_field_definition(
        remote, entity_type="node", bundle="product", field_name="salsifysync_color"
    )

    assert definition.kind == FieldKind.LIST_STRING
    assert definition.label == "Color"
    assert definition.settings["system_id"] == "s-color"
    assert definition.displays["form.default"]["type"] == "options_buttons"
    assert definition.displays["view.default"]["region"] == "content"


def test_reserved_fields_are_hidden() -> None:
    displays = default_displays("salsify_salsifyid", FieldKind.STRING)
    assert {component["region"] for component in displays.values()} == {"hidden"}
    assert set(displays) == {"view.default", "view.teaser", "form.default"}


def test_manual_mapping_compatibility() -> None:
    assert is_compatible("enumerated", FieldKind.LIST_STRING)
    assert is_compatible("boolean", FieldKind.BOOLEAN)
    assert not is_compatible("boolean", FieldKind.STRING)
    assert not is_compatible("string", FieldKind.BOOLEAN)
