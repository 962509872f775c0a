# -*- coding: utf-8 -*-
"""Tests for RecordConverter."""

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest

from lineage_context.exceptions import ConversionError
from lineage_context.models import (
    Classification,
    EntityDetail,
    InstanceStatus,
    Relationship,
    WarningAction,
)
from lineage_context.record_converter import RecordConverter
from lineage_context.relationship_handlers import handler_for


class Colour(Enum):
    RED = "red"


class Unprintable:
    def __str__(self):
        raise RuntimeError("no text")


class BrokenMapping(Mapping):
    """A mapping whose iteration fails."""

    def __getitem__(self, key):
        raise KeyError(key)

    def __iter__(self):
        raise RuntimeError("iteration failed")

    def __len__(self):
        return 1


class SilentBrokenMapping(BrokenMapping):
    """A failing mapping that also has no string form."""

    def __str__(self):
        raise RuntimeError("no text")

    __repr__ = __str__


@pytest.fixture
def converter():
    return RecordConverter()


class TestMapProperties:
    """Tests for property bag flattening."""

    def test_primitives_verbatim(self, converter):
        """Primitive values pass through without warnings."""
        mapped = converter.map_properties(
            {"s": "x", "i": 3, "f": 1.5, "b": True, "n": None}, "guid-1"
        )

        assert mapped == {"s": "x", "i": 3, "f": 1.5, "b": True, "n": None}
        assert converter.warnings == []

    def test_non_finite_floats(self, converter):
        """NaN and infinities become strings."""
        mapped = converter.map_properties(
            {"nan": math.nan, "pos": math.inf, "neg": -math.inf}, "guid-1"
        )

        assert mapped == {"nan": "NaN", "pos": "Infinity", "neg": "-Infinity"}
        assert len(converter.warnings) == 3

    def test_coerced_values(self, converter):
        """Non-primitive values are canonicalised with coerced warnings."""
        mapped = converter.map_properties(
            {
                "when": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
                "day": date(2024, 1, 2),
                "amount": Decimal("1.10"),
                "id": UUID("12345678-1234-5678-1234-567812345678"),
                "raw": b"\x01\xff",
                "colour": Colour.RED,
                "tags": ["b", "a"],
                "meta": {"z": 1, "a": 2},
            },
            "guid-1",
        )

        assert mapped["when"] == "2024-01-02T03:04:05+00:00"
        assert mapped["day"] == "2024-01-02"
        assert mapped["amount"] == "1.10"
        assert mapped["id"] == "12345678-1234-5678-1234-567812345678"
        assert mapped["raw"] == "01ff"
        assert mapped["colour"] == "red"
        assert mapped["tags"] == '["b", "a"]'
        assert mapped["meta"] == '{"a": 2, "z": 1}'
        assert len(converter.warnings) == 8
        assert all(w.action is WarningAction.COERCED for w in converter.warnings)
        assert all(w.item_type == "property" for w in converter.warnings)
        assert all(w.owner_guid == "guid-1" for w in converter.warnings)

    def test_set_is_sorted(self, converter):
        """Sets serialise in a stable order."""
        mapped = converter.map_properties({"s": {"b", "a"}}, "guid-1")

        assert mapped["s"] == '["a", "b"]'

    def test_unprintable_value_skipped(self, converter):
        """A value with no string form is dropped, the rest kept."""
        mapped = converter.map_properties({"bad": Unprintable(), "good": "ok"}, "guid-1")

        assert mapped == {"good": "ok"}
        assert len(converter.warnings) == 1
        warning = converter.warnings[0]
        assert warning.action is WarningAction.SKIPPED
        assert warning.item_name == "bad"

    def test_unreadable_nested_mapping_coerced(self, converter):
        """A nested mapping that cannot be iterated falls back to its string form."""
        value = BrokenMapping()

        mapped = converter.map_properties({"nested": value, "good": "ok"}, "guid-1")

        assert mapped == {"nested": str(value), "good": "ok"}
        assert [w.action for w in converter.warnings] == [WarningAction.COERCED]

    def test_unreadable_unprintable_value_skipped(self, converter):
        """A value failing every representation is dropped, the rest kept."""
        mapped = converter.map_properties(
            {"bad": SilentBrokenMapping(), "good": "ok"}, "guid-1"
        )

        assert mapped == {"good": "ok"}
        (warning,) = converter.warnings
        assert warning.action is WarningAction.SKIPPED
        assert warning.item_name == "bad"

    def test_unprintable_key_skipped(self, converter):
        """A key with no string form is dropped under a positional name."""
        mapped = converter.map_properties({Unprintable(): 1, "good": "ok"}, "guid-1")

        assert mapped == {"good": "ok"}
        (warning,) = converter.warnings
        assert warning.action is WarningAction.SKIPPED
        assert warning.item_name == "<key 0>"

    def test_unreadable_bag_raises(self, converter):
        """A bag whose entries cannot be read fails the record."""
        with pytest.raises(ConversionError, match="RuntimeError"):
            converter.map_properties(BrokenMapping(), "guid-1", "Retention")

    def test_none_bag(self, converter):
        """A missing bag maps to an empty mapping."""
        assert converter.map_properties(None) == {}

    def test_non_mapping_bag_raises(self, converter):
        """A bag that is not a mapping fails the record."""
        with pytest.raises(ConversionError):
            converter.map_properties(["not", "a", "mapping"], "guid-1", "Retention")


class TestToVertex:
    """Tests for entity and classification conversion."""

    def test_entity_fields_copied(self, converter, make_entity, audit_time):
        """Scalar and audit fields are copied verbatim."""
        entity = make_entity(properties={"name": "orders"}, updated_by="admin")

        vertex = converter.to_vertex(entity)

        assert vertex.guid == "guid-1"
        assert vertex.type_def_name == "RelationalTable"
        assert vertex.version == 3
        assert vertex.created_by == "loader"
        assert vertex.updated_by == "admin"
        assert vertex.create_time == audit_time
        assert vertex.status is InstanceStatus.ACTIVE
        assert vertex.properties == {"name": "orders"}

    def test_mapping_record(self, converter):
        """Plain mappings are accepted as records."""
        vertex = converter.to_vertex({"guid": 7, "type_def_name": "File", "version": "2"})

        assert vertex.guid == "7"
        assert vertex.version == 2

    def test_missing_guid_raises(self, converter):
        """An entity without guid cannot be converted."""
        with pytest.raises(ConversionError):
            converter.to_vertex(EntityDetail(type_def_name="File"))

    def test_missing_type_raises(self, converter):
        """An entity without type name cannot be converted."""
        with pytest.raises(ConversionError):
            converter.to_vertex(EntityDetail(guid="guid-1"))

    def test_bad_version_raises(self, converter):
        """An unusable version fails the record."""
        with pytest.raises(ConversionError) as exc_info:
            converter.to_vertex({"guid": "g", "type_def_name": "File", "version": "v2"})

        assert exc_info.value.context["cause_type"] == "ValueError"

    def test_bad_status_raises(self, converter):
        """An unknown status fails the record."""
        with pytest.raises(ConversionError):
            converter.to_vertex({"guid": "g", "type_def_name": "File", "status": "GONE"})

    def test_classification_vertex(self, converter, make_classification):
        """Classifications take the supplied guid and their type name."""
        classification = make_classification("Confidentiality", {"level": 3})

        vertex = converter.classification_to_vertex(classification, "c-guid", "guid-1")

        assert vertex.guid == "c-guid"
        assert vertex.type_def_name == "Confidentiality"
        assert vertex.created_by == "steward"
        assert vertex.properties == {"level": 3}

    def test_classification_with_bad_bag(self, converter):
        """A classification whose bag is not a mapping raises."""
        classification = Classification.model_construct(
            name="Retention", type_def_name="Retention", properties=["x"]
        )

        with pytest.raises(ConversionError):
            converter.classification_to_vertex(classification, "c-guid", "guid-1")

    def test_endpoint_vertex(self):
        """Endpoint stubs carry guid and type only."""
        vertex = RecordConverter.endpoint_vertex("g", "")

        assert vertex.guid == "g"
        assert vertex.type_def_name == "Unknown"
        assert vertex.properties == {}


class TestRelationshipToEdge:
    """Tests for relationship conversion."""

    def test_end1_is_source(self, converter):
        """Default handlers run end 1 -> end 2."""
        rel = Relationship(
            guid="r1", type_def_name="DataFlow",
            end1_guid="a", end1_type_name="Process",
            end2_guid="b", end2_type_name="RelationalTable",
            properties={"formula": "x + 1"},
        )

        edge = converter.relationship_to_edge(rel, handler_for("DataFlow"))

        assert edge.relationship_guid == "r1"
        assert edge.relationship_type == "DataFlow"
        assert edge.label == "data-flows-to"
        assert edge.from_guid == "a"
        assert edge.from_vertex.type_def_name == "Process"
        assert edge.to_guid == "b"
        assert edge.properties == {"formula": "x + 1"}

    def test_edge_runs_end1_to_end2(self, converter):
        """Every handler keeps the record orientation; only the label varies."""
        rel = Relationship(guid="r1", type_def_name="Certification", end1_guid="a", end2_guid="b")

        edge = converter.relationship_to_edge(rel, handler_for("Certification"))

        assert edge.from_guid == "a"
        assert edge.to_guid == "b"
        assert edge.label == "certified-by"

    def test_supplied_endpoint_vertex_used(self, converter):
        """A supplied vertex replaces the endpoint stub."""
        rel = Relationship(guid="r1", type_def_name="DataFlow", end1_guid="a", end2_guid="b")
        full = converter.to_vertex({"guid": "a", "type_def_name": "Process", "version": 4})

        edge = converter.relationship_to_edge(rel, handler_for("DataFlow"), end1=full)

        assert edge.from_vertex.version == 4

    @pytest.mark.parametrize(
        "fields",
        [
            {"guid": None, "type_def_name": "DataFlow", "end1_guid": "a", "end2_guid": "b"},
            {"guid": "r1", "type_def_name": "", "end1_guid": "a", "end2_guid": "b"},
            {"guid": "r1", "type_def_name": "DataFlow", "end1_guid": None, "end2_guid": "b"},
        ],
    )
    def test_incomplete_relationship_raises(self, converter, fields):
        """Missing guid, type or endpoint fails the relationship."""
        with pytest.raises(ConversionError):
            converter.relationship_to_edge(Relationship(**fields), handler_for("DataFlow"))


class TestWarnings:
    """Tests for warning bookkeeping."""

    def test_warn_records_and_logs(self, converter, caplog):
        """warn() stores the warning and logs it at WARNING."""
        with caplog.at_level("WARNING", logger="lineage_context.record_converter"):
            warning = converter.warn(
                "classification", "Retention", WarningAction.SKIPPED, "bad", "guid-1"
            )

        assert converter.warnings == [warning]
        assert "Retention" in caplog.text
