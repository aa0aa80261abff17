"""
Unit Tests for the Filter Engine

Tests the search, category and warranty predicates, their AND combination
and the signature short-circuit.
"""

import pytest
from datetime import date

from warranty_tracker.compute.warranty import WarrantyMemo
from warranty_tracker.filters import FilterEngine
from warranty_tracker.models import FilterCriteria, Product


@pytest.fixture
def products():
    return [
        Product(id="phone", name="Phone", brand="Pixel", model="8 Pro", category="Electronics",
                purchase_date="2024-01-15", warranty_period=12),
        Product(id="espresso", name="Espresso Machine", brand="Breville", model="Barista Express",
                category="Kitchen", purchase_date="2024-06-01", warranty_period=24),
        Product(id="lamp", name="Desk Lamp", brand="IKEA", category="Furniture",
                purchase_date="2022-03-15", warranty_period=24),
    ]


@pytest.fixture
def engine():
    memo = WarrantyMemo(lambda: date(2025, 1, 10))
    return FilterEngine(memo.status_for)


class TestPredicates:
    """Tests for individual predicates."""

    def test_category_exact_match(self, engine, products):
        """Test that one of three products matches category Electronics."""
        result = engine.apply(products, FilterCriteria(category="Electronics"))

        assert len(result) == 1
        assert result[0].id == "phone"

    def test_category_is_case_sensitive(self, engine, products):
        result = engine.apply(products, FilterCriteria(category="electronics"))
        assert result == []

    def test_category_is_compared_verbatim(self, engine):
        """Test that a category stored with surrounding spaces is still selectable."""
        padded = Product(id="padded", name="Toaster", category=" Kitchen ")

        assert [p.id for p in engine.apply([padded], FilterCriteria(category=" Kitchen "))] == ["padded"]
        assert engine.apply([padded], FilterCriteria(category="Kitchen")) == []

    def test_whitespace_only_category_is_an_active_filter(self):
        assert FilterCriteria(category=" ").active is True

    def test_search_is_case_insensitive_on_brand(self, engine, products):
        result = engine.apply(products, FilterCriteria(search_term="  PIXEL "))
        assert [p.id for p in result] == ["phone"]

    def test_search_matches_model(self, engine, products):
        result = engine.apply(products, FilterCriteria(search_term="barista"))
        assert [p.id for p in result] == ["espresso"]

    def test_search_matches_category(self, engine, products):
        result = engine.apply(products, FilterCriteria(search_term="kitch"))
        assert [p.id for p in result] == ["espresso"]

    def test_search_does_not_match_notes_or_store(self, engine):
        product = Product(id="x", name="Kettle", store="Phone Shop", notes="phone")
        assert engine.apply([product], FilterCriteria(search_term="phone")) == []

    def test_warranty_status_filter(self, engine, products):
        """Test filtering on derived warranty status."""
        expiring = engine.apply(products, FilterCriteria(warranty_status="expiring"))
        expired = engine.apply(products, FilterCriteria(warranty_status="expired"))
        valid = engine.apply(products, FilterCriteria(warranty_status="valid"))

        assert [p.id for p in expiring] == ["phone"]
        assert [p.id for p in expired] == ["lamp"]
        assert [p.id for p in valid] == ["espresso"]

    def test_predicates_are_and_combined(self, engine, products):
        criteria = FilterCriteria(search_term="e", category="Kitchen", warranty_status="valid")
        assert [p.id for p in engine.apply(products, criteria)] == ["espresso"]

        criteria = FilterCriteria(search_term="lamp", category="Kitchen")
        assert engine.apply(products, criteria) == []

    def test_empty_criteria_match_all_in_input_order(self, engine, products):
        result = engine.apply(products, FilterCriteria())
        assert [p.id for p in result] == ["phone", "espresso", "lamp"]

    def test_result_preserves_input_order(self, engine, products):
        result = engine.apply(list(reversed(products)), FilterCriteria(search_term="e"))
        assert [p.id for p in result] == ["lamp", "espresso", "phone"]


class TestShortCircuit:
    """Tests for signature caching."""

    def test_same_criteria_and_version_skip_recompute(self, engine, products):
        """Test that an unchanged signature returns the cached subset."""
        criteria = FilterCriteria(category="Electronics")

        first = engine.apply(products, criteria, version=1)
        second = engine.apply(products, criteria, version=1)

        assert first == second
        assert engine.recomputations == 1

    def test_version_change_recomputes(self, engine, products):
        criteria = FilterCriteria(category="Electronics")
        engine.apply(products, criteria, version=1)

        result = engine.apply(products[1:], criteria, version=2)

        assert result == []
        assert engine.recomputations == 2

    def test_without_version_always_recomputes(self, engine, products):
        criteria = FilterCriteria(category="Electronics")
        engine.apply(products, criteria)
        engine.apply(products, criteria)

        assert engine.recomputations == 2

    def test_invalidate_drops_cached_subset(self, engine, products):
        criteria = FilterCriteria(category="Electronics")
        engine.apply(products, criteria, version=1)
        engine.invalidate()

        engine.apply(products, criteria, version=1)

        assert engine.recomputations == 2
        assert engine.last_signature == criteria.signature()

    def test_returned_list_does_not_alias_cache(self, engine, products):
        criteria = FilterCriteria(search_term="e")
        first = engine.apply(products, criteria, version=1)
        first.clear()

        assert len(engine.apply(products, criteria, version=1)) == 3

    def test_signature_normalizes_search_but_keeps_category_verbatim(self):
        a = FilterCriteria(search_term=" Phone ", category="Electronics")
        b = FilterCriteria(search_term="phone", category="Electronics")
        c = FilterCriteria(search_term="phone", category="electronics")
        d = FilterCriteria(search_term="phone", category=" Electronics")

        assert a.signature() == b.signature()
        assert b.signature() != c.signature()
        assert b.signature() != d.signature()

    def test_signature_is_unambiguous(self):
        a = FilterCriteria(search_term="a_b", category="c")
        b = FilterCriteria(search_term="a", category="b_c")
        assert a.signature() != b.signature()
