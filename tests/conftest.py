import itertools

import pytest

from config import Config
from models import LocationRecord
from directory.tracking import SENT_BEACON, TrackingAdapter


class FakeMapEngine:
    """In-memory stand-in for the browser map engine"""

    def __init__(self, zoom=6.0):
        self.images = {}
        self.sources = {}
        self.layers = []
        self.data_pushes = []
        self.eases = []
        self.zoom = zoom
        self.hits = {}
        self.expansion_zooms = {}
        self.expansion_error = None
        self.open_tooltips = {}
        self._handles = itertools.count(1)

    # registration
    def add_image(self, key, image):
        self.images[key] = image

    def add_source(self, source_id, spec):
        self.sources[source_id] = spec

    def add_layer(self, spec):
        self.layers.append(spec)

    def has_source(self, source_id):
        return source_id in self.sources

    def set_source_data(self, source_id, geojson):
        self.sources[source_id]['data'] = geojson
        self.data_pushes.append(geojson)

    # hit-testing
    def place(self, point, layer_id, feature):
        self.hits.setdefault(point, {}).setdefault(layer_id, []).append(feature)

    def query_rendered_features(self, point, layers):
        at_point = self.hits.get(point, {})
        found = []
        for layer_id in layers:
            found.extend(at_point.get(layer_id, []))
        return found

    def get_cluster_expansion_zoom(self, cluster_id):
        if self.expansion_error is not None:
            raise self.expansion_error
        return self.expansion_zooms.get(cluster_id, 10)

    # camera
    def ease_to(self, center, zoom):
        self.eases.append((tuple(center), zoom))

    def get_zoom(self):
        return self.zoom

    # tooltips
    def show_tooltip(self, position, text):
        handle = next(self._handles)
        self.open_tooltips[handle] = (tuple(position), text)
        return handle

    def remove_tooltip(self, handle):
        self.open_tooltips.pop(handle, None)


class RecordingSender:
    def __init__(self, outcome=SENT_BEACON):
        self.outcome = outcome
        self.payloads = []

    def send(self, payload):
        self.payloads.append(payload)
        return self.outcome


class RecordingParent:
    def __init__(self):
        self.messages = []

    def post_message(self, message, target_origin):
        self.messages.append((message, target_origin))


class QuietConfig(Config):
    # Long enough that the timer never fires on its own during a test
    SEARCH_DEBOUNCE_MS = 60000


@pytest.fixture
def quiet_config():
    return QuietConfig


@pytest.fixture
def fake_engine():
    return FakeMapEngine()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def parent():
    return RecordingParent()


@pytest.fixture
def tracking(sender, parent):
    return TrackingAdapter(sender=sender, parent=parent)


@pytest.fixture
def sample_records():
    return [
        LocationRecord(
            code=1, code_ohme_id='ohme-1', name='École Vélo Lyon', is_school=True,
            position=(4.8357, 45.7640), address='12 rue de la République',
            postal_code='69002', city='Lyon', phone='04 78 00 00 00',
            email='contact@ecole-velo-lyon.fr',
            website='https://www.ecole-velo-lyon.fr - https://shop.ecole-velo-lyon.fr',
            disciplines=frozenset({'VTT', 'Route'}), services=frozenset({'Stage'}),
            certifications=frozenset({'Bikers'}),
        ),
        LocationRecord(
            code=2, name='Bike School Paris', is_school=True, position=(2.3522, 48.8566),
            postal_code='75011', city='Paris', disciplines=frozenset({'BMX'}),
            services=frozenset({'Cours particuliers'}),
        ),
        LocationRecord(
            code=3, code_ohme_id='ohme-3', name='Jean Dupont', is_school=False,
            position=(6.1294, 45.8992), city='Annecy', email='jean@dupont.fr',
            disciplines=frozenset({'VTT'}), services=frozenset({'Stage', 'Randonnée/Balade'}),
            certifications=frozenset({'Loupiot-Biclou'}),
        ),
        LocationRecord(
            code=4, name='Marie Martin', is_school=False, position=(4.8500, 45.7500),
            city='Lyon', disciplines=frozenset({'Gravel'}),
        ),
    ]


@pytest.fixture
def raw_feed():
    return [
        {'code': 10, 'name': 'Jean Dupont', 'ecole': False, 'code_ohme_id': 'ohme-3',
         'city': 'Annecy', 'discipline': ['VTT'], 'prestation': ['Stage'],
         'test_mcf': [], 'position': '6.1294,45.8992'},
        {'code': 11, 'name': 'École Vélo Lyon', 'ecole': True, 'code_ohme_id': 'ohme-1',
         'adresse': '12 rue de la République', 'cp': 69002, 'city': 'Lyon',
         'discipline': ['VTT', 'Route'], 'prestation': ['Stage'], 'test_mcf': ['Bikers'],
         'position': '4.8357,45.7640'},
        {'code': 12, 'name': 'New York Cycling', 'ecole': True, 'position': '-73.9857,40.7484'},
        {'code': 13, 'name': 'Broken Coords', 'ecole': False, 'position': 'abc,def'},
        {'code': 14, 'name': 'No Position', 'ecole': False},
        {'code': 15, 'name': 'Marie Martin', 'ecole': 'true', 'code_ohme_id': None,
         'city': 'Lyon', 'discipline': None, 'position': '4.85,45.75'},
        {'code': 16, 'name': 'Bike School Paris', 'ecole': True, 'code_ohme_id': 4242,
         'city': 'Paris', 'discipline': ['BMX'], 'position': '2.3522,48.8566'},
        'not a record',
    ]
