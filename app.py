# -*- coding: utf-8 -*-
"""Flask web application serving the MCF directory map data"""
import os
import logging
from typing import Dict, List, Optional

from flask import Flask, Response, jsonify, request
from pydantic import ValidationError

# Local imports
from config import Config
from config_validator import validate_filter_query
from models import FilterCriteria, LocationRecord, VisibilityState
from data_collection.feed_client import FeedClient
from data_processing.location_cleaner import LocationCleaner
from directory.filter_pipeline import apply_filters
from directory.location_card import build_card, reveal_coordinates
from directory.map_style import build_layer_specs, build_source_spec
from directory.marker_bitmaps import build_marker_images
from directory.tracking import TrackingAdapter
from utils.cache import cache
from utils.color_scheme import MarkerColorScheme
from utils.geographic_validator import GeographicValidator
from utils.metrics import get_metrics, metrics_collector

# --- App Setup ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_records(config_class=Config, feed_client: Optional[FeedClient] = None) -> List[LocationRecord]:
    """Fetch the feed once and normalize it into the immutable dataset"""
    raw = (feed_client or FeedClient()).fetch()
    cleaner = LocationCleaner(GeographicValidator(config_class.BOUNDS))
    return cleaner.clean_location_data(raw, show=config_class.SHOW)


def _filter_params(args) -> Dict:
    params = {
        'q': args.get('q', ''),
        'discipline': args.getlist('discipline'),
        'prestation': args.getlist('prestation'),
        'test_mcf': args.getlist('test_mcf'),
    }
    for key in ('schools', 'instructors'):
        if key in args:
            params[key] = args.get(key)
    return params


@metrics_collector.track_filter('http')
def _run_filters(records, visibility, criteria):
    return apply_filters(records, visibility, criteria)


def create_app(config_class=Config, records: Optional[List[LocationRecord]] = None,
               feed_client: Optional[FeedClient] = None,
               tracking: Optional[TrackingAdapter] = None):
    """Create and configure the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.json.ensure_ascii = False

    cache.init_app(app)

    if records is None:
        records = load_records(config_class, feed_client)
    records = list(records)
    by_code = {r.code: r for r in records}
    tracking = tracking or TrackingAdapter(config=config_class)
    logger.info(f"Directory app ready with {len(records)} locations")

    @cache.memoize('marker_images')
    def marker_registry():
        return build_marker_images(config_class)

    @app.route('/api/locations', methods=['GET'])
    def get_locations():
        """Filtered dataset as GeoJSON plus the result counter label"""
        try:
            params = validate_filter_query(_filter_params(request.args))
        except ValidationError as e:
            return jsonify({'error': 'Invalid filter parameters',
                            'details': [err['msg'] for err in e.errors()]}), 400

        visibility = VisibilityState(schools_visible=params['schools'],
                                     instructors_visible=params['instructors'])
        criteria = FilterCriteria(
            search_text=params['q'],
            disciplines=frozenset(params['discipline']),
            services=frozenset(params['prestation']),
            certifications=frozenset(params['test_mcf']),
        )
        dataset = _run_filters(records, visibility, criteria)
        return jsonify({
            'count': dataset.count,
            'label': dataset.result_label,
            'active_filters': criteria.active_facet_count,
            'data': dataset.to_geojson(),
        })

    @app.route('/api/locations/<int:code>', methods=['GET'])
    def get_location(code: int):
        record = by_code.get(code)
        if record is None:
            return jsonify({'error': 'Location not found'}), 404
        card = build_card(record)
        card['position'] = list(record.position)
        return jsonify(card)

    @app.route('/api/locations/<int:code>/contact', methods=['GET'])
    def get_location_contact(code: int):
        """Contact details behind 'Voir les coordonnées'; reported as coord_click and to the parent frame"""
        record = by_code.get(code)
        if record is None:
            return jsonify({'error': 'Location not found'}), 404
        tracking.track_coord_click(record)
        return jsonify(reveal_coordinates(record))

    @app.route('/api/filters', methods=['GET'])
    def get_filters():
        return jsonify({'groups': config_class.FILTER_GROUPS})

    @app.route('/api/map/style', methods=['GET'])
    def get_map_style():
        """Source and layer declarations; the source starts empty and is filled from /api/locations"""
        return jsonify({
            'source_id': config_class.SOURCE_ID,
            'source': build_source_spec(config=config_class),
            'layers': build_layer_specs(config_class),
            'colors': MarkerColorScheme().export_color_scheme(),
            'bounds': config_class.BOUNDS,
            'init_zoom': config_class.INIT_ZOOM,
            'fly_zoom': config_class.FLY_ZOOM,
            'search_debounce_ms': config_class.SEARCH_DEBOUNCE_MS,
        })

    @app.route('/api/markers', methods=['GET'])
    def list_markers():
        images = marker_registry()
        return jsonify({
            key: {'width': img.width, 'height': img.height, 'digest': img.digest()}
            for key, img in images.items()
        })

    @app.route('/api/markers/<key>', methods=['GET'])
    def get_marker(key: str):
        """Raw RGBA pixels, row-major; dimensions in the response headers"""
        image = marker_registry().get(key)
        if image is None:
            return jsonify({'error': f'Unknown marker image {key}'}), 404
        return Response(
            image.data,
            mimetype='application/octet-stream',
            headers={
                'X-Image-Width': str(image.width),
                'X-Image-Height': str(image.height),
                'ETag': image.digest(),
            }
        )

    # Metrics and health endpoints
    @app.route('/metrics')
    def metrics():
        return get_metrics()

    @app.route('/healthz', methods=['GET'])
    def healthz():
        return jsonify({'status': 'ok'}), 200

    @app.route('/readyz', methods=['GET'])
    def readyz():
        try:
            cache.set('ready_check', 'ok', timeout=10)
            cache.get('ready_check')
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            metrics_collector.record_error(e, 'readyz')
            return jsonify({'status': 'not_ready', 'error': str(e)}), 503
        return jsonify({'status': 'ready', 'locations': len(records)}), 200

    # Add security headers and UTF-8 encoding to all responses
    @app.after_request
    def add_security_headers(response):
        content_type = response.content_type or ''
        if ('text/' in content_type or 'application/json' in content_type) and 'charset' not in content_type:
            response.content_type = content_type + '; charset=utf-8'

        response.headers['X-Content-Type-Options'] = 'nosniff'
        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        # The map is embedded by the parent site only
        response.headers['Content-Security-Policy'] = (
            f"default-src 'self'; frame-ancestors 'self' {config_class.PARENT_ORIGIN};"
        )
        return response

    return app


if __name__ == '__main__':
    flask_app = create_app()
    debug_mode = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    flask_app.run(debug=debug_mode, port=int(os.environ.get('PORT', '5001')), use_reloader=False)
