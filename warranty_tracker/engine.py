"""
Product Engine

The explicitly constructed owner of the warranty tracker's state. It wires
the store, warranty memo, filter engine, render cache, render pipeline and
performance monitor together and exposes the user-level operations:

1. Mutations: add, update, delete, import, clear
2. Filtering: debounced search, category and warranty status filters
3. Rendering: full re-render after every mutation or filter change
4. Scheduling: periodic cache sweeps and throttled scroll handling

Every operation returns an envelope, ``{"status": "ok", "data": ...}`` or
``{"status": "error", "error_code": ..., "message": ...}``, and emits a
notification. No error from a lower component escapes an operation.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake

from warranty_tracker.cache.render_cache import CacheSweeper, RenderCache
from warranty_tracker.compute.warranty import WarrantyMemo
from warranty_tracker.config import TrackerConfig
from warranty_tracker.errors import (
    FieldError,
    ImportFormatError,
    ProductNotFoundError,
    ValidationError,
    WarrantyTrackerError,
)
from warranty_tracker.filters.engine import FilterEngine
from warranty_tracker.models.product import Product, ProductDraft, WarrantyState, WarrantyStatus, local_now
from warranty_tracker.models.state import (
    CollectionStats,
    FilterCriteria,
    Notification,
    NotificationLevel,
    PerformanceStats,
)
from warranty_tracker.models.view import RenderResult, Viewport
from warranty_tracker.monitoring.performance import PerformanceMonitor
from warranty_tracker.render.cards import build_card
from warranty_tracker.render.pipeline import CardBuilder, RenderPipeline
from warranty_tracker.scheduling.scheduler import Debouncer, ManualScheduler, Scheduler, Throttler
from warranty_tracker.store.persistence import InMemoryAdapter, PersistenceAdapter
from warranty_tracker.store.product_store import ProductStore
from warranty_tracker.store.transfer import (
    ImportPayload,
    build_export,
    parse_import,
    read_import_file,
    write_export,
)
from warranty_tracker.store.validation import validate_draft


logger = logging.getLogger(__name__)

NotificationListener = Callable[[Notification], None]
RenderListener = Callable[[RenderResult], None]


def _ok(data: Any = None, **extra: Any) -> Dict[str, Any]:
    result = {"status": "ok", "data": data}
    result.update(extra)
    return result


def _error(error_code: str, message: str, **extra: Any) -> Dict[str, Any]:
    result = {"status": "error", "error_code": error_code, "message": message}
    result.update(extra)
    return result


def _field_errors(error: PydanticValidationError) -> List[FieldError]:
    errors = []
    for detail in error.errors():
        loc = detail.get("loc") or ("__root__",)
        errors.append(FieldError(to_snake(str(loc[0])), detail.get("msg", "Invalid value")))
    return errors


class ProductEngine:
    """
    Owner of the product collection and its derived views.

    Construct it, call ``start()`` to load and begin sweeping, and call
    ``teardown()`` (or use it as a context manager) to release timers and
    listeners.
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        adapter: Optional[PersistenceAdapter] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], datetime] = local_now,
        card_builder: CardBuilder = build_card
    ):
        self.config = config or TrackerConfig()
        self.scheduler = scheduler or ManualScheduler()
        self._clock = clock

        self.store = ProductStore(adapter or InMemoryAdapter(), clock=clock)
        self.memo = WarrantyMemo(self.today, self.config.warranty.expiring_window_days)
        self.cache = RenderCache()
        self.sweeper = CacheSweeper(self.cache, self.scheduler, self.config.cache, on_routine_sweep=self.memo.clear)
        self.filter_engine = FilterEngine(self.memo.status_for)
        self.monitor = PerformanceMonitor(self.config.monitor, cache_size=lambda: self.cache.size)
        self.pipeline = RenderPipeline(
            self.filter_engine,
            self.cache,
            self.memo.status_for,
            self.monitor,
            self.config.render,
            card_builder=card_builder
        )

        self.criteria = FilterCriteria()
        self.viewport = Viewport(height=self.config.render.viewport_height)
        self.last_render: Optional[RenderResult] = None

        self._search = Debouncer(
            self.scheduler, self.config.filters.search_debounce_ms / 1000.0, self.search
        )
        self._scroll = Throttler(
            self.scheduler, self.config.render.scroll_throttle_ms / 1000.0, self._apply_scroll
        )
        self._notification_listeners: List[NotificationListener] = []
        self._render_listeners: List[RenderListener] = []
        self.started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> "ProductEngine":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.teardown()

    def start(self) -> RenderResult:
        """Load stored products, render, and begin periodic cache sweeps."""
        with self.monitor.timed("initialization"):
            self.store.load()
            result = self.render()
        self.sweeper.start()
        self.started = True
        logger.info(f"Product engine started - products={len(self.store)}")
        return result

    def teardown(self) -> None:
        """Stop the sweep timer, drop pending deferred calls and listeners."""
        self.sweeper.stop()
        self._search.cancel()
        self._scroll.cancel()
        self._notification_listeners.clear()
        self._render_listeners.clear()
        self.started = False
        logger.info("Product engine torn down")

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Receive notifications. Returns a callable that unsubscribes."""
        self._notification_listeners.append(listener)
        return lambda: self._discard(self._notification_listeners, listener)

    def on_render(self, listener: RenderListener) -> Callable[[], None]:
        """Receive every render result. Returns a callable that unsubscribes."""
        self._render_listeners.append(listener)
        return lambda: self._discard(self._render_listeners, listener)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def today(self) -> date:
        return self._clock().date()

    def products(self) -> List[Product]:
        return list(self.store.all())

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.store.get(product_id)

    def warranty_status(self, product_id: str) -> Optional[WarrantyStatus]:
        product = self.store.get(product_id)
        if product is None:
            return None
        return self.memo.status_for(product)

    def visible_products(self) -> List[Product]:
        return self.pipeline.visible_products(self.store.all(), self.criteria, self.store.version)

    def collection_stats(self) -> CollectionStats:
        products = self.store.all()
        by_status = {state.value: 0 for state in WarrantyState}
        for product in products:
            by_status[self.memo.status_for(product).status.value] += 1
        return CollectionStats(
            total=len(products),
            displayed=len(self.visible_products()),
            by_status=by_status
        )

    def performance_stats(self) -> Optional[PerformanceStats]:
        return self.monitor.stats()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_product(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate and add a new product."""
        try:
            fields = self._validated_fields(data)
            warnings = []
            if self.store.find_duplicate(fields) is not None:
                warnings.append("Similar product detected, please confirm if this is a duplicate")
                self._notify(warnings[-1], NotificationLevel.WARNING)

            product = self.store.create(fields)
            self.filter_engine.invalidate()
            self.render()
            self._notify("Product added successfully!", NotificationLevel.SUCCESS)
            return _ok(product.to_dict(), warnings=warnings)
        except ValidationError as e:
            return self._validation_failed(e)
        except Exception as e:
            return self._failed("add product", e)

    def update_product(self, product_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply edited fields to an existing product."""
        try:
            current = self.store.get(product_id)
            if current is None:
                raise ProductNotFoundError(product_id)

            merged = dict(current.model_dump())
            merged.update(self._draft(data).model_dump(exclude_unset=True))
            fields = self._validated_fields(merged)

            product = self.store.update(product_id, fields)
            self._invalidate_all()
            self.render()
            self._notify("Product updated successfully!", NotificationLevel.SUCCESS)
            return _ok(product.to_dict())
        except ValidationError as e:
            return self._validation_failed(e)
        except Exception as e:
            return self._failed("update product", e)

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        try:
            removed = self.store.delete(product_id)
            self.memo.discard(product_id)
            self._invalidate_all()
            self.render()
            self._notify("Product deleted successfully!", NotificationLevel.SUCCESS)
            return _ok({"id": removed.id})
        except Exception as e:
            return self._failed("delete product", e)

    def clear_all(self) -> Dict[str, Any]:
        try:
            self.store.clear()
            self.memo.clear()
            self._invalidate_all()
            self.render()
            self._notify("All data has been cleared", NotificationLevel.SUCCESS)
            return _ok({"count": 0})
        except Exception as e:
            return self._failed("clear data", e)

    def import_data(self, payload: ImportPayload) -> Dict[str, Any]:
        """Replace the collection with the products of an import document."""
        try:
            products = parse_import(payload, self._clock())
        except ImportFormatError as e:
            logger.error(f"Failed to parse import file - error={str(e)}")
            self._notify(str(e), NotificationLevel.ERROR)
            return _error(e.error_code, str(e))

        try:
            self.store.replace_all(products)
            self.memo.clear()
            self._invalidate_all()
            self.render()
            count = len(self.store)
            self._notify(f"Successfully imported {count} products!", NotificationLevel.SUCCESS)
            return _ok({"count": count})
        except Exception as e:
            return self._failed("import data", e)

    def import_file(self, path: str) -> Dict[str, Any]:
        try:
            content = read_import_file(path)
        except (OSError, UnicodeDecodeError) as e:
            return self._failed("import data", e)
        if content is None:
            message = f"Import file not found: {path}"
            self._notify(message, NotificationLevel.ERROR)
            return _error("FILE_NOT_FOUND", message)
        return self.import_data(content)

    def export_data(self, directory: Optional[str] = None) -> Dict[str, Any]:
        """Serialize the collection; write it into ``directory`` when given."""
        try:
            artifact = build_export(self.store.all(), self._clock())
            if directory:
                artifact = write_export(artifact, directory)
            self._notify("Data exported successfully!", NotificationLevel.SUCCESS)
            return _ok(artifact)
        except Exception as e:
            return self._failed("export data", e)

    # ------------------------------------------------------------------
    # Filtering, rendering and scrolling
    # ------------------------------------------------------------------

    def type_search(self, term: str) -> None:
        """Debounced search: only the last term typed within the quiet period applies."""
        self._search.trigger(term)

    def flush_search(self) -> None:
        self._search.flush()

    def search(self, term: str) -> RenderResult:
        self.criteria = self.criteria.model_copy(update={"search_term": term})
        return self.apply_filters()

    def filter_category(self, category: str) -> RenderResult:
        self.criteria = self.criteria.model_copy(update={"category": category})
        return self.apply_filters()

    def filter_warranty(self, status: str) -> RenderResult:
        self.criteria = self.criteria.model_copy(update={"warranty_status": status})
        return self.apply_filters()

    def reset_filters(self) -> RenderResult:
        self.criteria = FilterCriteria()
        self.filter_engine.invalidate()
        return self.render()

    def apply_filters(self) -> RenderResult:
        """Recompute the visible set for the current criteria, then re-render."""
        if self.criteria.active:
            try:
                with self.monitor.timed("filterProducts"):
                    self.visible_products()
            except Exception as e:
                logger.error(f"Failed to filter products - error={str(e)}", exc_info=True)
        return self.render()

    def scroll_to(self, offset: int) -> None:
        """Throttled scroll handler; re-renders the virtualization window."""
        self._scroll.trigger(offset)

    def render(self) -> RenderResult:
        result = self.pipeline.render(self.store.all(), self.criteria, self.store.version, self.viewport)
        self.last_render = result
        for listener in list(self._render_listeners):
            try:
                listener(result)
            except Exception as e:
                logger.error(f"Render listener failed - error={str(e)}", exc_info=True)
        return result

    def sweep(self) -> None:
        """Run one sweep tick now."""
        self.sweeper.tick()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_scroll(self, offset: int) -> None:
        self.viewport = self.viewport.model_copy(update={"scroll_offset": max(0, int(offset))})
        self.render()

    def _draft(self, data: Mapping[str, Any]) -> ProductDraft:
        try:
            return ProductDraft.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ValidationError(_field_errors(e)) from e

    def _validated_fields(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        draft = self._draft(data)
        errors = validate_draft(draft, self.today(), self.config.warranty.max_warranty_months)
        if errors:
            raise ValidationError(errors)
        return draft.editable_fields()

    def _invalidate_all(self) -> None:
        self.cache.clear()
        self.filter_engine.invalidate()

    def _validation_failed(self, error: ValidationError) -> Dict[str, Any]:
        logger.info(f"Validation failed - fields={[e.field for e in error.errors]}")
        self._notify("Product information validation failed, please check the form.", NotificationLevel.ERROR)
        return _error(
            error.error_code,
            str(error),
            errors=[{"field": e.field, "message": e.message} for e in error.errors]
        )

    def _failed(self, action: str, error: Exception) -> Dict[str, Any]:
        if isinstance(error, WarrantyTrackerError):
            logger.error(f"Failed to {action} - error={str(error)}")
            code = error.error_code
        else:
            logger.error(f"Failed to {action} - error={str(error)}", exc_info=True)
            code = "OPERATION_FAILED"
        message = f"Failed to {action}: {error}"
        self._notify(message, NotificationLevel.ERROR)
        return _error(code, message)

    def _notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        notification = Notification(message=message, level=level)
        for listener in list(self._notification_listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed - error={str(e)}", exc_info=True)

    @staticmethod
    def _discard(listeners: list, listener: Any) -> None:
        if listener in listeners:
            listeners.remove(listener)
