# -*- coding: utf-8 -*-
"""Tests for GraphAssembler relationship context builds."""

import pytest

from lineage_context.exceptions import InvalidInputError
from lineage_context.graph_assembler import GraphAssembler
from lineage_context.models import (
    ContextStatus,
    InstanceStatus,
    NoContextReason,
    WarningAction,
)


@pytest.fixture
def assembler():
    return GraphAssembler()


class TestRelationshipContext:
    """Tests for build_relationship_context."""

    def test_edges_per_relationship(self, assembler, make_entity, make_relationship):
        """Each active relationship touching the entity becomes one edge."""
        relationships = [
            make_relationship("r1", "DataFlow", "proc-1", "guid-1", end1_type_name="Process"),
            make_relationship("r2", "DataFlow", "guid-1", "tbl-2"),
            make_relationship("r3", "SemanticAssignment", "guid-1", "term-1", end2_type_name="GlossaryTerm"),
        ]

        result = assembler.build_relationship_context("user-1", make_entity(), relationships)

        assert result.status is ContextStatus.BUILT
        assert set(result.neighbors) == {"DataFlow", "SemanticAssignment"}
        assert len(result.neighbors["DataFlow"]) == 2
        assert result.edge_count == 3
        assert result.vertex_count == 4
        assert result.outcomes == []

    def test_entity_vertex_is_converted_record(self, assembler, make_entity, make_relationship, audit_time):
        """The entity end uses the full converted entity."""
        rel = make_relationship("r1", "DataFlow", "proc-1", "guid-1", end1_type_name="Process")

        result = assembler.build_relationship_context("user-1", make_entity(), [rel])

        (edge,) = result.neighbors["DataFlow"]
        assert edge.from_vertex.type_def_name == "Process"
        assert edge.to_vertex.guid == "guid-1"
        assert edge.to_vertex.create_time == audit_time
        assert edge.label == "data-flows-to"

    def test_edge_keeps_record_orientation(self, assembler, make_entity, make_relationship):
        """Certification edges run from end 1 to end 2 like every other type."""
        rel = make_relationship("r1", "Certification", "guid-1", "cert-1", end2_type_name="CertificationType")

        result = assembler.build_relationship_context("user-1", make_entity(), [rel])

        (edge,) = result.neighbors["Certification"]
        assert edge.from_guid == "guid-1"
        assert edge.to_guid == "cert-1"
        assert edge.label == "certified-by"

    def test_unknown_type_generic_label(self, assembler, make_entity, make_relationship):
        """Unknown relationship types use a generic label."""
        rel = make_relationship("r1", "ResourceList", "guid-1", "res-1")

        (edge,) = assembler.build_relationship_context(
            "user-1", make_entity(), [rel]
        ).neighbors["ResourceList"]

        assert edge.label == "resource-list"

    def test_duplicate_relationship_guid(self, assembler, make_entity, make_relationship):
        """A repeated relationship guid yields one edge."""
        rel = make_relationship("r1", "DataFlow", "guid-1", "tbl-2")

        result = assembler.build_relationship_context("user-1", make_entity(), [rel, rel])

        assert result.edge_count == 1

    def test_lineage_only(self, assembler, make_entity, make_relationship):
        """lineage_only keeps lineage-relevant relationship types."""
        relationships = [
            make_relationship("r1", "DataFlow", "guid-1", "tbl-2"),
            make_relationship("r2", "SemanticAssignment", "guid-1", "term-1"),
        ]

        result = assembler.build_relationship_context(
            "user-1", make_entity(), relationships, lineage_only=True
        )

        assert set(result.neighbors) == {"DataFlow"}
        assert result.warnings == []


class TestSkippedRelationships:
    """Tests for relationships skipped with warnings."""

    def test_inactive_relationship(self, assembler, make_entity, make_relationship):
        """Non-ACTIVE relationships are skipped."""
        rel = make_relationship("r1", "DataFlow", "guid-1", "tbl-2", status=InstanceStatus.DELETED)

        result = assembler.build_relationship_context("user-1", make_entity(), [rel])

        assert result.status is ContextStatus.BUILT
        assert result.neighbors == {}
        (warning,) = result.warnings
        assert warning.item_type == "relationship"
        assert warning.item_name == "r1"
        assert warning.action is WarningAction.SKIPPED

    def test_unrelated_relationship(self, assembler, make_entity, make_relationship):
        """Relationships not touching the entity are skipped."""
        rel = make_relationship("r1", "DataFlow", "a", "b")

        result = assembler.build_relationship_context("user-1", make_entity(), [rel])

        assert result.neighbors == {}
        assert "does not touch" in result.warnings[0].reason

    @pytest.mark.parametrize(
        "guid, end1, end2",
        [(None, "guid-1", "b"), ("r1", "guid-1", None), ("r1", "", "guid-1")],
    )
    def test_incomplete_relationship(self, assembler, make_entity, make_relationship, guid, end1, end2):
        """Relationships without guid or endpoints are skipped."""
        rel = make_relationship(guid, "DataFlow", end1, end2)

        result = assembler.build_relationship_context("user-1", make_entity(), [rel])

        assert result.neighbors == {}
        assert result.warnings[0].reason == "missing relationship guid or endpoint"

    def test_missing_type_name(self, assembler, make_entity, make_relationship):
        """A relationship with no type name fails conversion and is skipped."""
        rel = make_relationship("r1", "", "guid-1", "b")

        result = assembler.build_relationship_context("user-1", make_entity(), [rel])

        assert result.neighbors == {}
        assert result.warnings[0].action is WarningAction.SKIPPED

    def test_good_relationships_survive(self, assembler, make_entity, make_relationship):
        """Skipped relationships do not affect the others."""
        relationships = [
            make_relationship("r1", "DataFlow", "a", "b"),
            make_relationship("r2", "DataFlow", "guid-1", "b"),
        ]

        result = assembler.build_relationship_context("user-1", make_entity(), relationships)

        assert result.edge_count == 1
        assert len(result.warnings) == 1


class TestRelationshipNoContext:
    """Tests for relationship builds with no context."""

    def test_inactive_entity(self, assembler, make_entity, make_relationship):
        """Inactive entities have no relationship context."""
        rel = make_relationship("r1", "DataFlow", "guid-1", "b")

        result = assembler.build_relationship_context(
            "user-1", make_entity(status=InstanceStatus.DEPRECATED), [rel]
        )

        assert result.status is ContextStatus.NO_CONTEXT
        assert result.no_context_reason is NoContextReason.INACTIVE_ENTITY
        assert result.neighbors is None

    def test_no_relationships(self, assembler, make_entity):
        """An empty relationship list has no context."""
        result = assembler.build_relationship_context("user-1", make_entity(), [])

        assert result.no_context_reason is NoContextReason.NO_RELATIONSHIPS
        assert result.neighbors is None

    def test_blank_user_rejected(self, assembler, make_entity):
        """Blank caller ids are rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            assembler.build_relationship_context(" ", make_entity(), [])

        assert exc_info.value.context["method_name"] == "build_relationship_context"
