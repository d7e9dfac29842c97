"""Geographic data validation utilities for the MCF directory map"""

import logging
import math
import re
from typing import Dict, Optional, Tuple
from shapely.geometry import Point, box

from config import Config
from config_validator import validate_bounds

logger = logging.getLogger(__name__)

Position = Tuple[float, float]

# Plain decimal token: sign, digits, optional fraction and exponent
DECIMAL_RE = re.compile(r'\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*', re.ASCII)


class GeographicValidator:
    """Coordinate parsing and bounding-box containment for location records"""

    def __init__(self, bounds: Optional[Dict[str, float]] = None, delimiter: str = None):
        self.bounds = validate_bounds(bounds or Config.BOUNDS)
        self.delimiter = delimiter or Config.COORDINATE_DELIMITER
        # shapely box covers() includes the boundary
        self._area = box(
            self.bounds['min_lng'], self.bounds['min_lat'],
            self.bounds['max_lng'], self.bounds['max_lat'],
        )

    def parse_coordinates(self, raw) -> Optional[Position]:
        """Parse 'lng,lat' into a (lng, lat) pair, or None when invalid"""
        if not isinstance(raw, str):
            return None
        parts = raw.split(self.delimiter)
        if len(parts) != 2:
            return None
        if not all(DECIMAL_RE.fullmatch(part) for part in parts):
            return None
        lng, lat = float(parts[0]), float(parts[1])
        if not (math.isfinite(lng) and math.isfinite(lat)):
            return None
        return lng, lat

    def in_bounds(self, lng: float, lat: float) -> bool:
        try:
            if not (math.isfinite(lng) and math.isfinite(lat)):
                return False
        except TypeError:
            return False
        return self._area.covers(Point(lng, lat))

    def validate_position(self, raw) -> Dict:
        """Coordinate validation with detailed feedback"""
        result = {
            'valid': False,
            'errors': [],
            'position': None,
        }

        position = self.parse_coordinates(raw)
        if position is None:
            result['errors'].append(f"Invalid coordinate format: {raw!r}")
            return result

        lng, lat = position
        if not self.in_bounds(lng, lat):
            result['errors'].append(f"Position {lng}, {lat} outside bounds")
            return result

        result['position'] = position
        result['valid'] = True
        return result


_default_validator = None


def _validator() -> GeographicValidator:
    global _default_validator
    if _default_validator is None:
        _default_validator = GeographicValidator()
    return _default_validator


def parse_coordinates(raw) -> Optional[Position]:
    return _validator().parse_coordinates(raw)


def in_bounds(lng: float, lat: float) -> bool:
    return _validator().in_bounds(lng, lat)
