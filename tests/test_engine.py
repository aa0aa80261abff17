"""
Scenario Tests for the Product Engine

Tests the user-level operations end to end:
1. Add / update / delete with validation and duplicate detection
2. Filtering, including debounced search
3. Import / export, including rejected documents
4. Scheduled sweeps, throttled scrolling and teardown
5. Degradation when persistence, rendering or listeners fail
"""

import json
import pytest
from datetime import datetime, timezone

from warranty_tracker.config import RenderConfig, TrackerConfig
from warranty_tracker.engine import ProductEngine
from warranty_tracker.errors import PersistenceError
from warranty_tracker.models import NotificationLevel, WarrantyState
from warranty_tracker.scheduling import ManualScheduler
from warranty_tracker.store import InMemoryAdapter


NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)

PHONE = {"name": "Phone", "brand": "Pixel", "model": "8 Pro", "category": "Electronics",
         "purchaseDate": "2024-01-15", "warrantyPeriod": 12, "price": 2999}
LAPTOP = {"name": "Laptop", "brand": "Lenovo", "category": "Computers",
          "purchaseDate": "2024-06-01", "warrantyPeriod": 24}
LAMP = {"name": "Desk Lamp", "category": "Furniture", "purchaseDate": "2022-03-15", "warrantyPeriod": 24}


class FailingAdapter(InMemoryAdapter):
    def write(self, key, value):
        raise PersistenceError("quota exceeded")


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def engine(scheduler, notifications):
    engine = ProductEngine(adapter=InMemoryAdapter(), scheduler=scheduler, clock=lambda: NOW)
    engine.start()
    engine.subscribe(notifications.append)
    yield engine
    engine.teardown()


def seed(engine, *items):
    return [engine.add_product(item)["data"]["id"] for item in items]


class TestAddProduct:
    """Tests for adding products."""

    def test_phone_expiring_in_five_days(self, engine):
        """Test that a 12-month phone bought 2024-01-15 is expiring on 2025-01-10."""
        result = engine.add_product(PHONE)

        assert result["status"] == "ok"
        status = engine.warranty_status(result["data"]["id"])
        assert status.status == WarrantyState.EXPIRING
        assert status.days_remaining == 5
        assert engine.last_render.items[0].badge.text == "Expiring Soon"

    def test_zero_warranty_is_unknown(self, engine):
        result = engine.add_product(dict(PHONE, warrantyPeriod=0))

        status = engine.warranty_status(result["data"]["id"])
        assert status.status == WarrantyState.UNKNOWN
        assert status.expiry_date is None

    def test_newest_first(self, engine):
        seed(engine, PHONE, LAPTOP)
        assert [p.name for p in engine.products()] == ["Laptop", "Phone"]

    def test_snake_case_input_is_accepted(self, engine):
        result = engine.add_product({"name": "Kettle", "purchase_date": "2024-10-01", "warranty_period": 6})
        assert result["data"]["purchaseDate"] == "2024-10-01"

    def test_validation_failure_reports_every_field(self, engine, notifications):
        result = engine.add_product({"name": " ", "purchaseDate": "2025-02-01", "warrantyPeriod": 121, "price": -1})

        assert result["status"] == "error"
        assert result["error_code"] == "VALIDATION_FAILED"
        assert {e["field"] for e in result["errors"]} == {"name", "purchase_date", "warranty_period", "price"}
        assert engine.products() == []
        assert notifications[-1].level == NotificationLevel.ERROR

    @pytest.mark.parametrize("price", ["nan", "inf", "-Infinity"])
    def test_non_finite_price_is_rejected(self, engine, price):
        result = engine.add_product({"name": "X", "purchaseDate": "2024-01-01", "price": price})

        assert result["error_code"] == "VALIDATION_FAILED"
        assert [e["field"] for e in result["errors"]] == ["price"]
        assert engine.products() == []

    def test_type_error_is_a_field_error(self, engine):
        result = engine.add_product({"name": "Phone", "purchaseDate": "2024-01-15", "warrantyPeriod": "twelve"})

        assert result["error_code"] == "VALIDATION_FAILED"
        assert result["errors"][0]["field"] == "warranty_period"

    def test_duplicate_warning_still_adds(self, engine, notifications):
        seed(engine, PHONE)
        result = engine.add_product(dict(PHONE, name="phone "))

        assert result["status"] == "ok"
        assert len(result["warnings"]) == 1
        assert len(engine.products()) == 2
        assert any(n.level == NotificationLevel.WARNING for n in notifications)

    def test_success_notification(self, engine, notifications):
        seed(engine, PHONE)
        assert notifications[-1].message == "Product added successfully!"
        assert notifications[-1].level == NotificationLevel.SUCCESS


class TestUpdateAndDelete:
    """Tests for editing and removing products."""

    def test_update_rerenders_new_content(self, engine):
        """Test that an edited product never shows its previous card."""
        (product_id,) = seed(engine, PHONE)

        result = engine.update_product(product_id, {"name": "Smartphone"})

        assert result["status"] == "ok"
        assert engine.last_render.items[0].title == "Smartphone"
        assert engine.get_product(product_id).brand == "Pixel"

    def test_update_recomputes_warranty(self, engine):
        (product_id,) = seed(engine, PHONE)

        engine.update_product(product_id, {"warrantyPeriod": 24})

        assert engine.warranty_status(product_id).status == WarrantyState.VALID
        assert engine.last_render.items[0].badge.status == "valid"

    def test_update_validates_merged_fields(self, engine):
        (product_id,) = seed(engine, PHONE)

        result = engine.update_product(product_id, {"warrantyPeriod": 500})

        assert result["error_code"] == "VALIDATION_FAILED"
        assert engine.get_product(product_id).warranty_period == 12

    def test_update_unknown_product(self, engine):
        result = engine.update_product("missing", {"name": "x"})
        assert result["error_code"] == "PRODUCT_NOT_FOUND"

    def test_delete(self, engine):
        phone_id, _ = seed(engine, PHONE, LAPTOP)

        result = engine.delete_product(phone_id)

        assert result["status"] == "ok"
        assert [card.title for card in engine.last_render.items] == ["Laptop"]
        assert engine.warranty_status(phone_id) is None

    def test_delete_unknown_product(self, engine):
        result = engine.delete_product("missing")

        assert result["status"] == "error"
        assert result["error_code"] == "PRODUCT_NOT_FOUND"

    def test_clear_all(self, engine):
        seed(engine, PHONE, LAPTOP)

        engine.clear_all()

        assert engine.products() == []
        assert engine.last_render.empty is True


class TestFiltering:
    """Tests for filters and search."""

    def test_category_filter(self, engine):
        """Test that filtering by Electronics shows one of three products."""
        seed(engine, PHONE, LAPTOP, LAMP)

        result = engine.filter_category("Electronics")

        assert [card.title for card in result.items] == ["Phone"]
        assert engine.collection_stats().summary == "Displayed: 1 / Total: 3 products"

    def test_warranty_filter(self, engine):
        seed(engine, PHONE, LAPTOP, LAMP)

        result = engine.filter_warranty("expired")

        assert [card.title for card in result.items] == ["Desk Lamp"]

    def test_reset_filters(self, engine):
        seed(engine, PHONE, LAPTOP, LAMP)
        engine.filter_category("Electronics")

        result = engine.reset_filters()

        assert len(result.items) == 3
        assert engine.collection_stats().summary == "Total: 3 products"

    def test_no_matches(self, engine):
        seed(engine, PHONE)
        assert engine.search("toaster").empty is True

    def test_new_product_appears_under_active_filter(self, engine):
        seed(engine, PHONE)
        engine.filter_category("Electronics")

        seed(engine, dict(PHONE, name="Tablet"))

        assert [card.title for card in engine.last_render.items] == ["Tablet", "Phone"]

    def test_debounced_search_applies_last_term(self, engine, scheduler):
        seed(engine, PHONE, LAPTOP)

        engine.type_search("La")
        scheduler.advance(0.1)
        engine.type_search("Pho")

        assert engine.criteria.search_term == ""

        scheduler.advance(0.5)

        assert engine.criteria.search_term == "Pho"
        assert [card.title for card in engine.last_render.items] == ["Phone"]

    def test_filter_timing_recorded(self, engine):
        seed(engine, PHONE)
        engine.search("phone")

        assert "filterProducts" in [s.operation for s in engine.monitor.samples]

    def test_collection_stats_by_status(self, engine):
        seed(engine, PHONE, LAPTOP, LAMP)
        stats = engine.collection_stats()

        assert stats.by_status == {"unknown": 0, "valid": 1, "expiring": 1, "expired": 1}


class TestImportExport:
    """Tests for data transfer."""

    def test_export_then_import_round_trip(self, engine):
        seed(engine, PHONE, LAPTOP)
        ids = [p.id for p in engine.products()]
        exported = engine.export_data()
        content = exported["data"].content

        engine.clear_all()
        result = engine.import_data(content)

        assert result["data"]["count"] == 2
        assert [p.id for p in engine.products()] == ids

    def test_import_invalid_document_changes_nothing(self, engine, notifications):
        """Test that importing {} reports an error and keeps the collection."""
        seed(engine, PHONE)
        version = engine.store.version

        result = engine.import_data("{}")

        assert result["status"] == "error"
        assert result["error_code"] == "INVALID_IMPORT"
        assert [p.name for p in engine.products()] == ["Phone"]
        assert engine.store.version == version
        assert notifications[-1].level == NotificationLevel.ERROR

    def test_import_replaces_collection(self, engine, notifications):
        seed(engine, PHONE)

        engine.import_data(json.dumps({"products": [LAPTOP, LAMP]}))

        assert [p.name for p in engine.products()] == ["Laptop", "Desk Lamp"]
        assert notifications[-1].message == "Successfully imported 2 products!"

    def test_import_sparse_entry(self, engine):
        """Test that an entry without a name is imported rather than rejected."""
        result = engine.import_data({"products": [{"id": "a", "brand": "Acme"}], "version": "1.0"})

        assert result["status"] == "ok"
        assert result["data"]["count"] == 1
        assert engine.get_product("a").brand == "Acme"
        assert engine.last_render.items[0].product_id == "a"

    def test_export_to_directory(self, engine, tmp_path):
        seed(engine, PHONE)

        result = engine.export_data(str(tmp_path))

        assert (tmp_path / "product_data_2025-01-10.json").exists()
        assert result["data"].product_count == 1

    def test_import_missing_file(self, engine, tmp_path):
        result = engine.import_file(str(tmp_path / "nope.json"))
        assert result["error_code"] == "FILE_NOT_FOUND"


class TestScheduling:
    """Tests for timers owned by the engine."""

    def test_routine_sweep_clears_warranty_memo(self, engine, scheduler):
        seed(engine, PHONE)
        assert len(engine.memo) == 1

        scheduler.advance(360)

        assert len(engine.memo) == 0

    def test_teardown_releases_all_timers(self, engine, scheduler):
        engine.type_search("pho")
        assert scheduler.pending == 2

        engine.teardown()

        assert scheduler.pending == 0
        assert engine.sweeper.running is False

    def test_throttled_scroll_moves_window(self, scheduler):
        config = TrackerConfig(render=RenderConfig(virtualization_enabled=True))
        engine = ProductEngine(config, InMemoryAdapter(), scheduler, clock=lambda: NOW)
        with engine:
            engine.import_data({"products": [dict(LAPTOP, name=f"Item {i}") for i in range(60)]})
            assert (engine.last_render.window_start, engine.last_render.window_end) == (0, 8)

            engine.scroll_to(3000)
            assert (engine.last_render.window_start, engine.last_render.window_end) == (5, 18)

            engine.scroll_to(600)
            assert engine.last_render.window_start == 5

            scheduler.advance(0.1)
            assert (engine.last_render.window_start, engine.last_render.window_end) == (0, 10)


class TestRobustness:
    """Tests for degradation paths."""

    def test_start_loads_and_times_initialization(self, scheduler):
        adapter = InMemoryAdapter()
        first = ProductEngine(adapter=adapter, scheduler=scheduler, clock=lambda: NOW)
        first.start()
        first.add_product(PHONE)
        first.teardown()

        second = ProductEngine(adapter=adapter, scheduler=scheduler, clock=lambda: NOW)
        second.start()

        assert [p.name for p in second.products()] == ["Phone"]
        assert [s.operation for s in second.monitor.samples] == ["renderProducts", "initialization"]
        assert second.performance_stats().sample_count == 2
        second.teardown()

    def test_save_failure_keeps_working_in_memory(self, scheduler):
        engine = ProductEngine(adapter=FailingAdapter(), scheduler=scheduler, clock=lambda: NOW)
        engine.start()

        result = engine.add_product(PHONE)

        assert result["status"] == "ok"
        assert len(engine.products()) == 1
        assert engine.store.last_sync_error is not None
        engine.teardown()

    def test_render_failure_does_not_abort_add(self, scheduler):
        def broken(product, warranty):
            raise RuntimeError("template missing")

        engine = ProductEngine(adapter=InMemoryAdapter(), scheduler=scheduler, clock=lambda: NOW,
                               card_builder=broken)
        engine.start()

        result = engine.add_product(PHONE)

        assert result["status"] == "ok"
        assert engine.last_render.ok is False
        assert len(engine.products()) == 1
        engine.teardown()

    def test_listener_failure_is_contained(self, engine):
        def bad_listener(_):
            raise RuntimeError("ui gone")

        engine.subscribe(bad_listener)
        engine.on_render(bad_listener)

        assert engine.add_product(PHONE)["status"] == "ok"

    def test_unsubscribe(self, engine):
        received = []
        unsubscribe = engine.subscribe(received.append)
        unsubscribe()

        seed(engine, PHONE)

        assert received == []
