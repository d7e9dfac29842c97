"""Text-match relevance scoring for directory search"""

import unicodedata
from typing import Dict, Optional

from config import Config
from models import LocationRecord

# record attribute -> points
DEFAULT_WEIGHTS = {
    'name': 3,
    'address': 2,
    'city': 2,
    'phone': 1,
    'email': 1,
}


def normalize_text(text: Optional[str]) -> str:
    """Lower-case and strip diacritics ('Écoles' -> 'ecoles')"""
    if not text:
        return ''
    decomposed = unicodedata.normalize('NFD', text.lower())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


class RelevanceScorer:
    def __init__(self, weights: Optional[Dict[str, int]] = None):
        self.weights = dict(weights or getattr(Config, 'RELEVANCE_WEIGHTS', DEFAULT_WEIGHTS))

    def score(self, record: LocationRecord, term: str) -> int:
        needle = normalize_text(term)
        total = 0
        for attr, points in self.weights.items():
            value = getattr(record, attr, '')
            # Absent fields never match, not even the empty term
            if value and needle in normalize_text(value):
                total += points
        return total


_scorer = RelevanceScorer(DEFAULT_WEIGHTS)


def score(record: LocationRecord, term: str) -> int:
    return _scorer.score(record, term)
