"""
Unit tests for the record and facet key models.
"""

from datetime import date

import pytest

from cost_drilldown.storage.models import DIMENSIONS, CostRecord, Dimension, FacetKey


class TestDimension:
    """Test hierarchy ordering of dimensions."""

    def test_dimensions_are_ordered_outermost_first(self):
        assert [d.value for d in DIMENSIONS] == [
            "subscription", "category", "subcategory", "meter", "resource"
        ]
        assert Dimension.SUBSCRIPTION.level == 0
        assert Dimension.RESOURCE.level == 4

    def test_child_dimension(self):
        assert Dimension.CATEGORY.child == Dimension.SUBCATEGORY
        assert Dimension.RESOURCE.child is None

    def test_parse_is_case_insensitive(self):
        assert Dimension.parse(" Meter ") == Dimension.METER

    def test_parse_unknown_dimension_raises_error(self):
        with pytest.raises(ValueError, match="must be one of"):
            Dimension.parse("region")


class TestFacetKey:
    """Test ancestor-qualified facet identity."""

    def test_same_value_under_different_ancestor_is_distinct(self):
        storage_a = FacetKey(Dimension.CATEGORY, "Storage", ("Sub-A",))
        storage_b = FacetKey(Dimension.CATEGORY, "Storage", ("Sub-B",))
        assert storage_a != storage_b
        assert len({storage_a, storage_b}) == 2

    def test_ancestor_count_must_match_dimension(self):
        with pytest.raises(ValueError, match="needs 1 ancestors"):
            FacetKey(Dimension.CATEGORY, "Storage")

    def test_empty_value_raises_error(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            FacetKey(Dimension.SUBSCRIPTION, "")

    def test_from_path(self):
        key = FacetKey.from_path(("Sub-A", "Storage", "Blob"))
        assert key.dimension == Dimension.SUBCATEGORY
        assert key.value == "Blob"
        assert key.context == ("Sub-A", "Storage")

    def test_from_path_too_long_raises_error(self):
        with pytest.raises(ValueError):
            FacetKey.from_path(("a", "b", "c", "d", "e", "f"))

    def test_child_extends_path(self):
        key = FacetKey(Dimension.SUBSCRIPTION, "Sub-A").child("Storage")
        assert key == FacetKey(Dimension.CATEGORY, "Storage", ("Sub-A",))
        assert str(key) == "Sub-A/Storage"

    def test_resource_has_no_children(self):
        key = FacetKey.from_path(("s", "c", "sc", "m", "r"))
        with pytest.raises(ValueError):
            key.child("x")

    def test_for_record(self, make_record):
        record = make_record(date(2024, 1, 1), "Sub-A", "Storage", "Blob", "LRS", "acct1", 1.0)
        key = FacetKey.for_record(Dimension.METER, record)
        assert key == FacetKey(Dimension.METER, "LRS", ("Sub-A", "Storage", "Blob"))

    def test_for_record_without_context_raises_error(self, make_record):
        record = make_record(date(2024, 1, 1), "Sub-A", None, "Blob", "LRS", "acct1", 1.0)
        with pytest.raises(ValueError, match="no meter context"):
            FacetKey.for_record(Dimension.METER, record)


class TestCostRecord:
    """Test record helpers."""

    def test_cost_in_currency(self):
        record = CostRecord(
            date=date(2024, 1, 1), subscription="s", category="c", subcategory="sc",
            meter="m", resource="r", cost_local=9.0, cost_usd=10.0, currency="EUR"
        )
        assert record.cost_in("usd") == 10.0
        assert record.cost_in("local") == 9.0

    def test_record_is_immutable(self, make_record):
        record = make_record(date(2024, 1, 1), "s", "c", "sc", "m", "r", 1.0)
        with pytest.raises(Exception):
            record.cost_usd = 2.0
