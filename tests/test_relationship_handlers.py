# -*- coding: utf-8 -*-
"""Tests for the relationship handler table."""

import pytest

from lineage_context.relationship_handlers import (
    RELATIONSHIP_HANDLERS,
    RelationshipHandler,
    handler_for,
)


class TestHandlerTable:
    """Tests for RELATIONSHIP_HANDLERS and handler_for."""

    def test_known_lineage_type(self):
        """DataFlow is lineage relevant."""
        handler = handler_for("DataFlow")

        assert handler.label == "data-flows-to"
        assert handler.lineage_relevant is True

    def test_governance_type_not_lineage(self):
        """Governance relationships are context, not lineage."""
        handler = handler_for("SemanticAssignment")

        assert handler.lineage_relevant is False

    def test_governance_labels_read_end1_to_end2(self):
        """Certification and License labels read from the certified asset."""
        assert handler_for("Certification").label == "certified-by"
        assert handler_for("License").label == "licensed-by"

    @pytest.mark.parametrize(
        "type_name, label",
        [
            ("ResourceList", "resource-list"),
            ("SupplementaryProperties", "supplementary-properties"),
            ("Foo", "foo"),
        ],
    )
    def test_generic_fallback(self, type_name, label):
        """Unknown types get a kebab-case label."""
        handler = handler_for(type_name)

        assert handler == RelationshipHandler(type_name=type_name, label=label)

    def test_table_is_read_only(self):
        """The table cannot be modified."""
        with pytest.raises(TypeError):
            RELATIONSHIP_HANDLERS["DataFlow"] = handler_for("Foo")

    def test_handlers_keyed_by_own_type(self):
        """Every entry is keyed by its own type name."""
        for type_name, handler in RELATIONSHIP_HANDLERS.items():
            assert handler.type_name == type_name
