"""Configuration settings for the MCF cycling directory map"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Config:
    # Data feed
    # FEED_URL wins over FEED_PATH when both are set
    FEED_URL = os.getenv('MCF_FEED_URL')
    FEED_PATH = os.getenv('MCF_FEED_PATH', 'jsonmap.json')
    FEED_TIMEOUT = int(os.getenv('MCF_FEED_TIMEOUT', '30'))

    # Bornes France métropolitaine (inclusive)
    BOUNDS = {
        'min_lng': _env_float('MCF_BOUNDS_MIN_LNG', -5.5),
        'max_lng': _env_float('MCF_BOUNDS_MAX_LNG', 10.0),
        'min_lat': _env_float('MCF_BOUNDS_MIN_LAT', 41.0),
        'max_lat': _env_float('MCF_BOUNDS_MAX_LAT', 51.5),
    }
    COORDINATE_DELIMITER = ','

    # Viewport
    INIT_ZOOM = 6
    FLY_ZOOM = 12
    FIT_BOUNDS_PADDING = 30

    # Colors
    COLOR_ECOLE = '#D4AF37'
    COLOR_ECOLE_DARK = '#B8960C'
    COLOR_MONITEUR = '#00A0E1'
    COLOR_MONITEUR_DARK = '#0077b6'
    COLOR_TEXT_ECOLE = '#3a3a3a'

    # Marker pin sizes (px, circle diameter; the tail adds 10px of height)
    ECOLE_MARKER_SIZE = 40
    MONITEUR_MARKER_SIZE = 28

    # Cluster badges: tier suffix -> diameter, ordered by point-count threshold
    CLUSTER_TIERS = [
        ('sm', 40),
        ('md', 48),
        ('lg', 60),
        ('xl', 76),
    ]
    # Lower bound (inclusive) of point_count for md, lg, xl
    CLUSTER_TIER_THRESHOLDS = [20, 50, 100]
    CLUSTER_PALETTES = {
        'gold': {
            'stops': ['#FFD700', '#DAA520', '#B8860B'],
            'border': '#8B6914',
            'border_width': 1.5,
        },
        'blue': {
            'stops': ['#33C1FF', '#00A0E1', '#0077b6'],
            'border': '#FFFFFF',
            'border_width': 2.5,
        },
    }

    # Map engine source
    SOURCE_ID = 'locations'
    CLUSTER_MAX_ZOOM = 13
    CLUSTER_RADIUS = 55

    # Search
    SEARCH_DEBOUNCE_MS = int(os.getenv('MCF_SEARCH_DEBOUNCE_MS', '250'))
    MIN_SEARCH_LENGTH = 2
    RELEVANCE_WEIGHTS = {
        'name': 3,
        'address': 2,
        'city': 2,
        'phone': 1,
        'email': 1,
    }

    # Tracking + postMessage
    TRACKING_PROXY_URL = os.getenv(
        'MCF_TRACKING_PROXY_URL', 'https://mcf-tracking.workers.dev/track'
    )
    TRACKING_ENABLED = os.getenv('MCF_TRACKING_ENABLED', 'true').lower() == 'true'
    TRACKING_TIMEOUT = int(os.getenv('MCF_TRACKING_TIMEOUT', '10'))
    TRACKING_FAILURE_THRESHOLD = 5
    TRACKING_RECOVERY_TIMEOUT = 60
    PARENT_ORIGIN = os.getenv('MCF_PARENT_ORIGIN', 'https://www.moniteurcycliste.com')
    PARENT_MESSAGE_TYPE = 'MCF_MONITEUR_SELECTED'
    CONTACT_URL = os.getenv(
        'MCF_CONTACT_URL', 'https://www.moniteurcycliste.com/contactcarto'
    )

    # One-time load restriction, 'ecole' or 'moniteur'; anything else shows both
    SHOW = os.getenv('MCF_SHOW')

    # Facet groups shown in the filters panel (label -> icon class)
    FILTER_GROUPS = [
        {
            'title': 'Disciplines', 'id': 'discipline',
            'data': {
                'BMX': 'fas fa-bicycle', 'FatBike': 'fa-solid fa-motorcycle',
                'Gravel': 'fas fa-road', 'Mobilité/Remise en selle': 'fa-solid fa-vest-patches',
                'Route': 'fas fa-route', 'Trial': 'fa-solid fa-person-biking-mountain',
                'VTT': 'fas fa-biking', 'VTT Descente': 'fas fa-biking',
                'VTT Enduro': 'fas fa-biking', 'VTT Electrique': 'fas fa-biking',
            },
        },
        {
            'title': 'Type de Prestation', 'id': 'prestation',
            'data': {
                'Cours particuliers': 'fas fa-chalkboard-teacher', 'Format Club': 'fas fa-users',
                'Formation': 'fas fa-book', 'Randonnée/Balade': 'fas fa-hiking',
                'Stage': 'fas fa-calendar-alt', 'Séminaire': 'fas fa-briefcase',
                'Voyage à vélo': 'fa-solid fa-plane',
            },
        },
        {
            'title': 'Tests MCF', 'id': 'test_mcf',
            'data': {
                'Loupiot-Biclou': 'fa-solid fa-child',
                'Bikers': 'fa-solid fa-person-biking',
                'Rocket-Gachette': 'fa-solid fa-rocket',
            },
        },
    ]
