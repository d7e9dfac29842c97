"""Priority-ordered hit-testing for clicks and hovers on overlapping symbols

Clusters beat schools, schools beat instructors. The same order drives the
click outcome and the hover tooltip, so a school pin sitting on top of an
instructor pin always wins both.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from config import Config
from models import ClusterAggregate, LocationRecord
from directory.map_style import CLUSTERS_LAYER, CLUSTER_COUNT_LAYER, ECOLE_LAYER, MONITEUR_LAYER
from utils.metrics import metrics_collector

logger = logging.getLogger(__name__)


# --- outcomes ---------------------------------------------------------------

@dataclass(frozen=True)
class ClusterExpanded:
    cluster_id: Any
    center: Tuple[float, float]
    zoom: Optional[float]


@dataclass(frozen=True)
class RecordSelected:
    record: LocationRecord
    layer: str


@dataclass(frozen=True)
class SelectionCleared:
    pass


@dataclass(frozen=True)
class TooltipShown:
    text: str
    position: Tuple[float, float]


@dataclass(frozen=True)
class NoOp:
    reason: str = ''


# --- layers -----------------------------------------------------------------

class HitLayer:
    kind = ''
    layer_ids: Sequence[str] = ()

    def hit(self, engine, point) -> Optional[Dict]:
        features = engine.query_rendered_features(point, list(self.layer_ids))
        return features[0] if features else None


class ClusterLayer(HitLayer):
    kind = 'cluster'
    # The count label sits on the bubble and shares its cluster feature
    layer_ids = (CLUSTERS_LAYER, CLUSTER_COUNT_LAYER)


class SchoolLayer(HitLayer):
    kind = 'ecole'
    layer_ids = (ECOLE_LAYER,)


class InstructorLayer(HitLayer):
    kind = 'moniteur'
    layer_ids = (MONITEUR_LAYER,)


DEFAULT_LAYERS = (ClusterLayer(), SchoolLayer(), InstructorLayer())


def _coordinates(feature: Dict) -> Tuple[float, float]:
    lng, lat = feature['geometry']['coordinates'][:2]
    return lng, lat


def cluster_breakdown(properties: Dict) -> str:
    aggregate = ClusterAggregate(
        ecole_count=int(properties.get('ecoleCount') or 0),
        moniteur_count=int(properties.get('moniteurCount') or 0),
    )
    return aggregate.describe()


class InteractionResolver:
    """Turns a screen point into at most one outcome.

    `session` supplies record lookup and the card/tooltip state; the resolver
    keeps no state of its own between events.
    """

    def __init__(self, session, engine, tracking=None, layers: Sequence[HitLayer] = DEFAULT_LAYERS, config=Config):
        self.session = session
        self.engine = engine
        self.tracking = tracking
        self.layers = tuple(layers)
        self.config = config

    def _first_hit(self, point) -> Tuple[Optional[HitLayer], Optional[Dict]]:
        for layer in self.layers:
            feature = layer.hit(self.engine, point)
            if feature is not None:
                return layer, feature
        return None, None

    # --- click ----------------------------------------------------------

    def click(self, point):
        layer, feature = self._first_hit(point)
        if layer is None:
            self.session.close_card()
            outcome = SelectionCleared()
        elif layer.kind == ClusterLayer.kind:
            outcome = self._expand_cluster(feature)
        else:
            outcome = self._select_record(layer, feature)
        metrics_collector.record_interaction('click', type(outcome).__name__)
        return outcome

    def _expand_cluster(self, feature: Dict):
        cluster_id = feature['properties'].get('cluster_id')
        center = _coordinates(feature)
        try:
            zoom = self.engine.get_cluster_expansion_zoom(cluster_id)
        except Exception as e:
            logger.warning(f"Cluster expansion zoom failed for {cluster_id}: {e}")
            return ClusterExpanded(cluster_id, center, None)
        self.engine.ease_to(center, zoom)
        return ClusterExpanded(cluster_id, center, zoom)

    def _select_record(self, layer: HitLayer, feature: Dict):
        code = feature['properties'].get('code')
        record = self.session.find_record(code)
        if record is None:
            # Hit consumed; lower layers are not consulted
            logger.warning(f"No location for code {code} on layer {layer.kind}")
            return NoOp('unresolved')

        self.session.open_card(record)
        if self.tracking is not None:
            self.tracking.track_pin_click(record)
        zoom = max(self.engine.get_zoom(), self.config.FLY_ZOOM)
        self.engine.ease_to(_coordinates(feature), zoom)
        return RecordSelected(record, layer.kind)

    # --- hover ----------------------------------------------------------

    def hover(self, point):
        layer, feature = self._first_hit(point)
        if layer is None:
            self.leave()
            return NoOp('nothing hovered')

        if layer.kind == ClusterLayer.kind:
            text = cluster_breakdown(feature['properties'])
        else:
            text = feature['properties'].get('name') or ''

        if not text:
            self.leave()
            return NoOp('empty tooltip')

        position = _coordinates(feature)
        self.show_tooltip(position, text)
        metrics_collector.record_interaction('hover', layer.kind)
        return TooltipShown(text, position)

    def show_tooltip(self, position, text: str) -> None:
        # Only one tooltip at a time
        self.leave()
        self.session.tooltip = self.engine.show_tooltip(position, text)

    def leave(self) -> None:
        if self.session.tooltip is not None:
            self.engine.remove_tooltip(self.session.tooltip)
            self.session.tooltip = None
