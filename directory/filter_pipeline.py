"""Visibility, search and facet filtering of the directory dataset"""

import json
import logging
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from config import Config
from models import FilterCriteria, LocationRecord, RenderedDataset, VisibilityState
from directory.relevance import RelevanceScorer, normalize_text
from utils.metrics import metrics_collector

logger = logging.getLogger(__name__)


def location_to_feature(record: LocationRecord) -> Dict:
    """GeoJSON feature with every property the layers and the card need"""
    lng, lat = record.position
    return {
        'type': 'Feature',
        'geometry': {'type': 'Point', 'coordinates': [lng, lat]},
        'properties': {
            'code': record.code,
            'name': record.name or '',
            'ecole': 1 if record.is_school else 0,
            'adresse': record.address or '',
            'cp': record.postal_code or '',
            'city': record.city or '',
            'tel': record.phone or '',
            'email': record.email or '',
            'site_internet': record.website or '',
            # Engine expressions can't hold sets; arrays travel as JSON strings
            'discipline': json.dumps(sorted(record.disciplines), ensure_ascii=False),
            'prestation': json.dumps(sorted(record.services), ensure_ascii=False),
            'test_mcf': json.dumps(sorted(record.certifications), ensure_ascii=False),
            'code_ohme_id': record.code_ohme_id or '',
        },
    }


def to_rendered_dataset(records: Iterable[LocationRecord]) -> RenderedDataset:
    return RenderedDataset(features=[location_to_feature(r) for r in records])


def _facet_match(selected: FrozenSet[str], values: FrozenSet[str]) -> bool:
    # Empty selection means no constraint; otherwise any shared value passes
    return not selected or not selected.isdisjoint(values)


def record_passes(record: LocationRecord, visibility: VisibilityState,
                  criteria: FilterCriteria, scorer: Optional[RelevanceScorer] = None,
                  normalized_term: Optional[str] = None) -> bool:
    """Combined predicate, cheapest check first"""
    if not visibility.allows(record):
        return False

    term = normalized_term if normalized_term is not None else normalize_text(criteria.search_text)
    if len(term) >= Config.MIN_SEARCH_LENGTH:
        scorer = scorer or RelevanceScorer()
        if scorer.score(record, term) == 0:
            return False

    if not _facet_match(criteria.disciplines, record.disciplines):
        return False
    if not _facet_match(criteria.services, record.services):
        return False
    if not _facet_match(criteria.certifications, record.certifications):
        return False
    return True


def apply_filters(all_records: Iterable[LocationRecord], visibility: VisibilityState,
                  criteria: FilterCriteria, scorer: Optional[RelevanceScorer] = None) -> RenderedDataset:
    scorer = scorer or RelevanceScorer()
    term = normalize_text(criteria.search_text)
    passed = [r for r in all_records if record_passes(r, visibility, criteria, scorer, term)]
    return to_rendered_dataset(passed)


class FilterPipeline:
    """Runs apply_filters and pushes the result to the engine and the result counter"""

    def __init__(self, engine=None, config=Config, on_count: Optional[Callable[[int, str], None]] = None):
        self.engine = engine
        self.config = config
        self.scorer = RelevanceScorer()
        self._count_listeners: List[Callable[[int, str], None]] = []
        if on_count:
            self._count_listeners.append(on_count)

    def add_count_listener(self, listener: Callable[[int, str], None]):
        self._count_listeners.append(listener)

    @metrics_collector.track_filter('interactive')
    def run(self, all_records: Iterable[LocationRecord], visibility: VisibilityState,
            criteria: FilterCriteria) -> RenderedDataset:
        dataset = apply_filters(all_records, visibility, criteria, self.scorer)
        self.push(dataset)
        return dataset

    def push(self, dataset: RenderedDataset) -> None:
        """Replace the engine source wholesale and publish the count"""
        source_id = self.config.SOURCE_ID
        if self.engine is not None and self.engine.has_source(source_id):
            self.engine.set_source_data(source_id, dataset.to_geojson())
        else:
            logger.debug("Map source not ready; dataset not pushed")
        self.publish_count(dataset)

    def publish_count(self, dataset: RenderedDataset) -> None:
        for listener in self._count_listeners:
            try:
                listener(dataset.count, dataset.result_label)
            except Exception as e:
                logger.warning(f"Result count listener failed: {e}")
