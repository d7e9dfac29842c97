#!/usr/bin/env python3
"""Normalization of raw feed entries into the immutable directory dataset"""

import pandas as pd
import logging
from typing import Dict, List, Optional
from pydantic import ValidationError

from config_validator import RawLocation
from models import ECOLE, MONITEUR, LocationRecord
from utils.geographic_validator import GeographicValidator
from utils.metrics import metrics_collector

logger = logging.getLogger(__name__)

SHOW_VALUES = (ECOLE, MONITEUR)


def normalize_show_param(value: Optional[str]) -> Optional[str]:
    """Only 'ecole' and 'moniteur' restrict the load; anything else is ignored"""
    if value in SHOW_VALUES:
        return value
    return None


class LocationCleaner:
    """Validate, restrict and rank feed records; codes are assigned here once"""

    def __init__(self, validator: Optional[GeographicValidator] = None):
        self.validator = validator or GeographicValidator()

    def clean_location_data(self, raw: List[Dict], show: Optional[str] = None) -> List[LocationRecord]:
        logger.info(f"Starting location cleaning for {len(raw)} raw records")
        show = normalize_show_param(show)

        # 1. Shape validation
        rows = []
        for entry in raw:
            try:
                rows.append(RawLocation(**entry).model_dump())
            except (ValidationError, TypeError) as e:
                logger.debug(f"  Skipping malformed entry: {e}")
        malformed = len(raw) - len(rows)
        metrics_collector.record_dropped('malformed', malformed)

        if not rows:
            logger.info("Location cleaning complete: 0 locations remain")
            return []

        df = pd.DataFrame(rows)

        # 2. One-time ?show= restriction
        if show == ECOLE:
            df = df[df['ecole']]
        elif show == MONITEUR:
            df = df[~df['ecole']]
        restricted = len(rows) - len(df)
        if restricted > 0:
            logger.info(f"  show={show} excluded {restricted} locations")

        # 3. Coordinates: unparsable or outside the bounds are dropped
        coords = df['position'].map(self.validator.parse_coordinates)
        invalid = coords.isna()
        if invalid.sum() > 0:
            logger.info(f"  Dropping {invalid.sum()} locations with invalid coordinates")
            metrics_collector.record_dropped('invalid_coordinates', int(invalid.sum()))
        df = df[~invalid].copy()
        coords = coords[~invalid]

        inside = coords.map(lambda c: self.validator.in_bounds(c[0], c[1])).astype(bool)
        outside = int((~inside).sum())
        if outside > 0:
            logger.info(f"  Dropping {outside} locations outside bounds")
            metrics_collector.record_dropped('out_of_bounds', outside)
        df = df[inside].copy()
        df['coords'] = coords[inside]

        # 4. Schools first, original order kept within each category
        df = df.sort_values('ecole', ascending=False, kind='stable')
        df['code'] = range(1, len(df) + 1)

        records = [self._to_record(row) for row in df.to_dict('records')]

        ecoles = sum(1 for r in records if r.is_school)
        logger.info(f"Location cleaning complete: {len(records)} locations "
                    f"({ecoles} écoles, {len(raw) - len(records)} filtrées)")
        return records

    def _to_record(self, row: Dict) -> LocationRecord:
        ohme_id = row.get('code_ohme_id')
        return LocationRecord(
            code=int(row['code']),
            code_ohme_id=ohme_id if isinstance(ohme_id, str) else '',
            name=row['name'],
            is_school=bool(row['ecole']),
            address=row['adresse'],
            postal_code=row['cp'],
            city=row['city'],
            phone=row['tel'],
            email=row['email'],
            website=row['site_internet'],
            disciplines=frozenset(row['discipline']),
            services=frozenset(row['prestation']),
            certifications=frozenset(row['test_mcf']),
            position=tuple(row['coords']),
        )
