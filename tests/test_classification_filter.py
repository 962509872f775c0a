# -*- coding: utf-8 -*-
"""Tests for ClassificationFilter."""

from lineage_context.classification_filter import (
    ClassificationFilter,
    has_lineage_classification,
)


class TestHasLineageClassification:
    """Tests for the allow-list check."""

    def test_no_classifications(self, make_entity):
        """An entity with no classifications never qualifies."""
        assert ClassificationFilter().has_lineage_classification(make_entity()) is False

    def test_allow_listed_classification(self, make_entity, make_classification):
        """One allow-listed classification is enough."""
        entity = make_entity(
            classifications=[make_classification("OwnerType"), make_classification("Confidentiality")]
        )

        assert ClassificationFilter().has_lineage_classification(entity) is True

    def test_only_unlisted_classifications(self, make_entity, make_classification):
        """Classifications outside the allow-list do not qualify."""
        entity = make_entity(classifications=[make_classification("OwnerType")])

        assert ClassificationFilter().has_lineage_classification(entity) is False

    def test_explicit_allow_list(self, make_entity, make_classification):
        """An explicit allow-list replaces the configured one."""
        entity = make_entity(classifications=[make_classification("OwnerType")])

        assert ClassificationFilter({"OwnerType"}).has_lineage_classification(entity) is True

    def test_follows_config_changes(self, configure, make_entity, make_classification):
        """The default filter reads the active configuration."""
        entity = make_entity(classifications=[make_classification("Retention")])
        classification_filter = ClassificationFilter()
        assert classification_filter.has_lineage_classification(entity) is False

        configure(lineage_classifications={"Retention"})

        assert classification_filter.has_lineage_classification(entity) is True

    def test_module_level_helper(self, make_entity, make_classification):
        """The module helper uses the configured allow-list."""
        entity = make_entity(classifications=[make_classification("SubjectArea")])

        assert has_lineage_classification(entity) is True


class TestQualifyingClassifications:
    """Tests for qualifying_classifications."""

    def test_input_order_kept(self, make_entity, make_classification):
        """Allow-listed classifications are returned in input order."""
        entity = make_entity(
            classifications=[
                make_classification("Memento"),
                make_classification("OwnerType"),
                make_classification("Confidentiality"),
            ]
        )

        names = [c.name for c in ClassificationFilter().qualifying_classifications(entity)]

        assert names == ["Memento", "Confidentiality"]
