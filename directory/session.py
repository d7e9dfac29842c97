"""Per-page directory session: dataset, legend toggles, filters and selection"""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from config import Config
from models import FilterCriteria, LocationRecord, RenderedDataset, VisibilityState
from directory.filter_pipeline import FilterPipeline, to_rendered_dataset
from directory.engine import MapEngine
from directory.interaction import InteractionResolver
from directory.location_card import build_card, reveal_coordinates
from directory.map_style import setup_map_layers
from directory.marker_bitmaps import register_marker_images
from directory.tracking import TrackingAdapter

logger = logging.getLogger(__name__)


class Debouncer:
    """Last-write-wins delayed call; a new schedule cancels the pending one.

    The timer never runs the call itself. When the delay elapses it only
    marks the call as due (and pokes `on_due`, if given, so the host loop can
    wake up); the owning thread runs it through `drain()` or `flush()`.
    """

    def __init__(self, delay_ms: int, on_due: Optional[Callable[[], None]] = None):
        self.delay = delay_ms / 1000.0
        self.on_due = on_due
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[Callable[[], None]] = None
        self._due = False
        self._lock = threading.Lock()

    def schedule(self, fn: Callable[[], None]) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = fn
            self._due = False
            self._timer = threading.Timer(self.delay, self._mark_due)
            self._timer.daemon = True
            self._timer.start()

    def _mark_due(self) -> None:
        with self._lock:
            if self._pending is None:
                return
            self._due = True
            self._timer = None
        if self.on_due is not None:
            try:
                self.on_due()
            except Exception as e:
                logger.warning(f"Debounce wake-up hook failed: {e}")

    def _take(self, only_due: bool) -> Optional[Callable[[], None]]:
        with self._lock:
            if only_due and not self._due:
                return None
            if self._timer is not None:
                self._timer.cancel()
            fn, self._pending, self._timer, self._due = self._pending, None, None, False
        return fn

    def drain(self) -> bool:
        """Run the pending call if its delay has elapsed; True when it ran"""
        fn = self._take(only_due=True)
        if fn is None:
            return False
        fn()
        return True

    def flush(self) -> None:
        """Run the pending call now, on the calling thread"""
        fn = self._take(only_due=False)
        if fn is not None:
            fn()

    def cancel(self) -> None:
        self._take(only_due=False)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def due(self) -> bool:
        return self._due


class DirectorySession:
    """Owns the loaded records and all interactive state for one map view"""

    def __init__(self, records: Iterable[LocationRecord], engine: Optional[MapEngine] = None,
                 tracking: Optional[TrackingAdapter] = None, config=Config,
                 on_search_due: Optional[Callable[[], None]] = None):
        self.records: List[LocationRecord] = list(records)
        self._by_code: Dict[int, LocationRecord] = {r.code: r for r in self.records}
        self.engine = engine
        self.config = config
        self.tracking = tracking

        self.visibility = VisibilityState()
        self.criteria = FilterCriteria()
        self.dataset = to_rendered_dataset(self.records)
        self.active_record: Optional[LocationRecord] = None
        self.revealed: Optional[Dict] = None
        self.tooltip = None
        self.user_position = None

        self.pipeline = FilterPipeline(engine, config)
        self.resolver = InteractionResolver(self, engine, tracking, config=config)
        self.debouncer = Debouncer(config.SEARCH_DEBOUNCE_MS, on_due=on_search_due)

    # --- setup ----------------------------------------------------------

    def setup_map(self) -> None:
        """Register images, source and layers; initial load is the identity filter"""
        if self.engine is None:
            raise RuntimeError("setup_map needs a map engine")
        register_marker_images(self.engine)
        setup_map_layers(self.engine, self.dataset, self.config)
        self.pipeline.publish_count(self.dataset)

    def locate_user(self, locator) -> None:
        """Best effort; a failure leaves the position unknown"""
        try:
            self.user_position = locator.current_position()
        except Exception as e:
            logger.info(f"Geolocation unavailable: {e}")
            self.user_position = None

    # --- records --------------------------------------------------------

    def find_record(self, code) -> Optional[LocationRecord]:
        try:
            return self._by_code.get(int(code))
        except (TypeError, ValueError):
            return None

    # --- filtering ------------------------------------------------------

    def apply_filters(self) -> RenderedDataset:
        # Evaluates the current criteria, so any pending search is subsumed
        self.debouncer.cancel()
        self.dataset = self.pipeline.run(self.records, self.visibility, self.criteria)
        return self.dataset

    def set_search_text(self, text: str) -> None:
        """Debounced: only the last text within the window is evaluated"""
        self.criteria = FilterCriteria(
            search_text=text or '',
            disciplines=self.criteria.disciplines,
            services=self.criteria.services,
            certifications=self.criteria.certifications,
        )
        self.debouncer.schedule(self.apply_filters)

    def drain(self) -> bool:
        """Run a search whose debounce delay has elapsed; call from the owning thread"""
        return self.debouncer.drain()

    def set_facets(self, disciplines=None, services=None, certifications=None) -> RenderedDataset:
        self.criteria = FilterCriteria(
            search_text=self.criteria.search_text,
            disciplines=frozenset(disciplines if disciplines is not None else self.criteria.disciplines),
            services=frozenset(services if services is not None else self.criteria.services),
            certifications=frozenset(certifications if certifications is not None else self.criteria.certifications),
        )
        return self.apply_filters()

    def toggle_schools(self) -> bool:
        if not self.visibility.toggle_schools():
            return False
        self.apply_filters()
        return True

    def toggle_instructors(self) -> bool:
        if not self.visibility.toggle_instructors():
            return False
        self.apply_filters()
        return True

    def reset_filters(self) -> RenderedDataset:
        self.debouncer.cancel()
        self.criteria = FilterCriteria()
        self.visibility.reset()
        return self.apply_filters()

    # --- selection ------------------------------------------------------

    def click(self, point):
        return self.resolver.click(point)

    def hover(self, point):
        return self.resolver.hover(point)

    def leave(self) -> None:
        self.resolver.leave()

    def open_card(self, record: LocationRecord) -> Dict:
        self.active_record = record
        self.revealed = None
        return build_card(record)

    def reveal_coordinates(self) -> Optional[Dict]:
        if self.active_record is None:
            return None
        if self.tracking is not None:
            self.tracking.track_coord_click(self.active_record)
        self.revealed = reveal_coordinates(self.active_record)
        return self.revealed

    def close_card(self) -> None:
        self.active_record = None
        self.revealed = None
        self.resolver.leave()
