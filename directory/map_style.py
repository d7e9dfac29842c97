"""Map engine source/layer declarations and the cluster badge rule"""

import logging
from typing import Dict, Iterable, List, Optional

from config import Config
from models import ClusterAggregate, RenderedDataset
from directory.marker_bitmaps import cluster_image_key

logger = logging.getLogger(__name__)

CLUSTERS_LAYER = 'clusters'
CLUSTER_COUNT_LAYER = 'cluster-count'
MONITEUR_LAYER = 'moniteur-points'
ECOLE_LAYER = 'ecole-points'


def cluster_tier(point_count: int, config=Config) -> str:
    """sm below the first threshold; each threshold value belongs to the upper tier"""
    tiers = [name for name, _ in config.CLUSTER_TIERS]
    for name, threshold in zip(tiers, config.CLUSTER_TIER_THRESHOLDS):
        if point_count < threshold:
            return name
    return tiers[-1]


def cluster_palette(ecole_count: int) -> str:
    # Any school in the cluster wins the color, whatever the ratio
    return 'gold' if ecole_count >= 1 else 'blue'


def cluster_badge_key(point_count: int, ecole_count: int, config=Config) -> str:
    return cluster_image_key(cluster_palette(ecole_count), cluster_tier(point_count, config))


def aggregate_cluster(features: Iterable[Dict]) -> ClusterAggregate:
    """Reference implementation of the per-cluster reduction declared to the engine"""
    ecoles = 0
    moniteurs = 0
    for feature in features:
        if feature['properties'].get('ecole') == 1:
            ecoles += 1
        else:
            moniteurs += 1
    return ClusterAggregate(ecole_count=ecoles, moniteur_count=moniteurs)


def cluster_properties() -> Dict:
    return {
        'ecoleCount': ['+', ['case', ['==', ['get', 'ecole'], 1], 1, 0]],
        'moniteurCount': ['+', ['case', ['==', ['get', 'ecole'], 0], 1, 0]],
    }


def build_source_spec(dataset: Optional[RenderedDataset] = None, config=Config) -> Dict:
    dataset = dataset or RenderedDataset()
    return {
        'type': 'geojson',
        'data': dataset.to_geojson(),
        'cluster': True,
        'clusterMaxZoom': config.CLUSTER_MAX_ZOOM,
        'clusterRadius': config.CLUSTER_RADIUS,
        'clusterProperties': cluster_properties(),
    }


def _has_school():
    return ['>=', ['get', 'ecoleCount'], 1]


def _cluster_icon_expression(config=Config) -> List:
    """step expression over point_count; each step picks gold or blue"""
    tiers = [name for name, _ in config.CLUSTER_TIERS]

    def case(tier):
        return ['case', _has_school(), cluster_image_key('gold', tier), cluster_image_key('blue', tier)]

    expression = ['step', ['get', 'point_count'], case(tiers[0])]
    for threshold, tier in zip(config.CLUSTER_TIER_THRESHOLDS, tiers[1:]):
        expression.extend([threshold, case(tier)])
    return expression


def build_layer_specs(config=Config) -> List[Dict]:
    """Layers in insertion order; schools keep priority over instructors via sort key"""
    source = config.SOURCE_ID
    thresholds = config.CLUSTER_TIER_THRESHOLDS
    return [
        {
            'id': CLUSTERS_LAYER,
            'type': 'symbol',
            'source': source,
            'filter': ['has', 'point_count'],
            'layout': {
                'icon-image': _cluster_icon_expression(config),
                'icon-allow-overlap': True,
                'icon-size': 1,
            },
        },
        {
            'id': CLUSTER_COUNT_LAYER,
            'type': 'symbol',
            'source': source,
            'filter': ['has', 'point_count'],
            'layout': {
                'text-field': '{point_count_abbreviated}',
                'text-font': ['DIN Pro Bold', 'Arial Unicode MS Bold'],
                'text-size': ['step', ['get', 'point_count'],
                              13, thresholds[0], 14, thresholds[1], 16, thresholds[2], 18],
                'text-allow-overlap': True,
                'text-offset': [0, 0.05],
            },
            'paint': {
                'text-color': ['case', _has_school(), '#3a2800', '#fff'],
                'text-halo-color': ['case', _has_school(), 'rgba(255,215,0,0.4)', 'rgba(0,0,0,0.2)'],
                'text-halo-width': 1,
            },
        },
        {
            'id': MONITEUR_LAYER,
            'type': 'symbol',
            'source': source,
            'filter': ['all', ['!', ['has', 'point_count']], ['==', ['get', 'ecole'], 0]],
            'layout': {
                'icon-image': 'icon-moniteur',
                'icon-size': 1,
                'icon-allow-overlap': True,
                'icon-anchor': 'bottom',
                'symbol-sort-key': 1,
            },
        },
        {
            'id': ECOLE_LAYER,
            'type': 'symbol',
            'source': source,
            'filter': ['all', ['!', ['has', 'point_count']], ['==', ['get', 'ecole'], 1]],
            'layout': {
                'icon-image': 'icon-ecole',
                'icon-size': 1,
                'icon-allow-overlap': True,
                'icon-anchor': 'bottom',
                'symbol-sort-key': 0,
                'symbol-z-order': 'source',
            },
        },
    ]


def setup_map_layers(engine, dataset: RenderedDataset, config=Config) -> None:
    """Declare the clustered source and its layers to the engine"""
    engine.add_source(config.SOURCE_ID, build_source_spec(dataset, config))
    for layer in build_layer_specs(config):
        engine.add_layer(layer)
    logger.info(f"Map layers ready with {dataset.count} features")
