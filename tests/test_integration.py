import os
import pytest

os.environ.setdefault('USE_SIMPLE_CACHE', 'true')

from app import create_app, load_records
from utils.cache import cache


class StaticFeed:
    def __init__(self, entries):
        self.entries = entries

    def fetch(self):
        return self.entries


@pytest.fixture
def app(sample_records, tracking):
    app = create_app(records=sample_records, tracking=tracking)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def test_metrics_endpoint(client):
    client.get('/api/locations')
    resp = client.get('/metrics')
    assert resp.status_code == 200
    assert b'directory_filter_applications_total' in resp.data


def test_locations_identity(client):
    resp = client.get('/api/locations')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['count'] == 4
    assert body['label'] == '4 résultat(s)'
    assert body['data']['type'] == 'FeatureCollection'


def test_locations_filters(client):
    body = client.get('/api/locations?q=lyon&instructors=false').get_json()
    assert [f['properties']['code'] for f in body['data']['features']] == [1]

    body = client.get('/api/locations?discipline=VTT&discipline=BMX').get_json()
    assert [f['properties']['code'] for f in body['data']['features']] == [1, 2, 3]
    assert body['active_filters'] == 2


def test_hiding_both_categories_is_rejected(client):
    resp = client.get('/api/locations?schools=false&instructors=false')
    assert resp.status_code == 400
    assert 'error' in resp.get_json()


def test_location_card(client):
    body = client.get('/api/locations/1').get_json()
    assert body['type_label'] == 'École MCF'
    assert body['position'] == [4.8357, 45.764]
    assert client.get('/api/locations/999').status_code == 404


def test_contact_reveal_is_tracked(client, sender, parent):
    body = client.get('/api/locations/3/contact').get_json()
    assert body['email'] == 'jean@dupont.fr'
    assert sender.payloads[-1]['event_type'] == 'coord_click'
    assert sender.payloads[-1]['code_mcf'] == 3
    message, origin = parent.messages[-1]
    assert message['type'] == 'MCF_MONITEUR_SELECTED'
    assert message['payload']['moniteur_id'] == 'ohme-3'
    assert origin == 'https://www.moniteurcycliste.com'


def test_filters_and_style(client):
    groups = client.get('/api/filters').get_json()['groups']
    assert [g['id'] for g in groups] == ['discipline', 'prestation', 'test_mcf']

    style = client.get('/api/map/style').get_json()
    assert style['source']['cluster'] is True
    assert [l['id'] for l in style['layers']] == ['clusters', 'cluster-count', 'moniteur-points', 'ecole-points']


def test_marker_images(client):
    markers = client.get('/api/markers').get_json()
    assert len(markers) == 10
    assert markers['icon-ecole']['width'] == 40 and markers['icon-ecole']['height'] == 50

    resp = client.get('/api/markers/icon-ecole')
    assert resp.status_code == 200
    assert resp.mimetype == 'application/octet-stream'
    assert len(resp.data) == 40 * 50 * 4
    assert resp.headers['ETag'].strip('"') == markers['icon-ecole']['digest']
    assert client.get('/api/markers/icon-unknown').status_code == 404


def test_health_endpoints(client):
    assert client.get('/healthz').status_code == 200
    ready = client.get('/readyz')
    assert ready.status_code == 200
    assert ready.get_json()['locations'] == 4


def test_embedding_headers(client):
    resp = client.get('/healthz')
    assert 'frame-ancestors' in resp.headers['Content-Security-Policy']
    assert 'https://www.moniteurcycliste.com' in resp.headers['Content-Security-Policy']
    assert resp.headers['X-Content-Type-Options'] == 'nosniff'


def test_load_records_from_feed(raw_feed):
    records = load_records(feed_client=StaticFeed(raw_feed))
    assert [r.code for r in records] == [1, 2, 3, 4]


def test_marker_registry_is_cached(app, client):
    client.get('/api/markers')
    assert cache.backend == 'SimpleCache'
    with app.app_context():
        assert 'icon-ecole' in cache.get('marker_images')
