"""Data models for the MCF cycling directory map"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

ECOLE = 'ecole'
MONITEUR = 'moniteur'


@dataclass(frozen=True)
class LocationRecord:
    """One provider on the map: a school (école) or an independent instructor."""
    code: int
    name: str
    is_school: bool
    position: Tuple[float, float]  # (lng, lat)
    code_ohme_id: str = ''
    address: str = ''
    postal_code: str = ''
    city: str = ''
    phone: str = ''
    email: str = ''
    website: str = ''
    disciplines: FrozenSet[str] = frozenset()
    services: FrozenSet[str] = frozenset()
    certifications: FrozenSet[str] = frozenset()

    @property
    def category(self) -> str:
        return ECOLE if self.is_school else MONITEUR

    @property
    def display_name(self) -> str:
        return (self.name or '').strip()

    @property
    def external_id(self) -> Optional[str]:
        return self.code_ohme_id or None


@dataclass
class VisibilityState:
    """Legend toggle state. At least one category stays visible."""
    schools_visible: bool = True
    instructors_visible: bool = True

    def toggle_schools(self) -> bool:
        # Can't turn off the last visible category
        if self.schools_visible and not self.instructors_visible:
            return False
        self.schools_visible = not self.schools_visible
        return True

    def toggle_instructors(self) -> bool:
        if self.instructors_visible and not self.schools_visible:
            return False
        self.instructors_visible = not self.instructors_visible
        return True

    def reset(self):
        self.schools_visible = True
        self.instructors_visible = True

    def allows(self, record: LocationRecord) -> bool:
        if record.is_school:
            return self.schools_visible
        return self.instructors_visible


@dataclass(frozen=True)
class FilterCriteria:
    search_text: str = ''
    disciplines: FrozenSet[str] = frozenset()
    services: FrozenSet[str] = frozenset()
    certifications: FrozenSet[str] = frozenset()

    @property
    def active_facet_count(self) -> int:
        return len(self.disciplines) + len(self.services) + len(self.certifications)

    def facet_counts(self) -> Dict[str, int]:
        return {
            'discipline': len(self.disciplines),
            'prestation': len(self.services),
            'test_mcf': len(self.certifications),
        }


@dataclass
class RenderedDataset:
    """Filtered subset of the directory as a GeoJSON FeatureCollection."""
    features: List[Dict] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.features)

    @property
    def codes(self) -> List[int]:
        return [f['properties']['code'] for f in self.features]

    @property
    def result_label(self) -> str:
        if self.count == 0:
            return 'Aucun résultat'
        return f'{self.count} résultat(s)'

    def to_geojson(self) -> Dict:
        return {'type': 'FeatureCollection', 'features': self.features}


@dataclass(frozen=True)
class ClusterAggregate:
    ecole_count: int
    moniteur_count: int

    @property
    def point_count(self) -> int:
        return self.ecole_count + self.moniteur_count

    def describe(self) -> str:
        """Hover breakdown, e.g. '2 écoles, 1 moniteur'."""
        parts = []
        if self.ecole_count > 0:
            parts.append(f"{self.ecole_count} école{'s' if self.ecole_count > 1 else ''}")
        if self.moniteur_count > 0:
            parts.append(f"{self.moniteur_count} moniteur{'s' if self.moniteur_count > 1 else ''}")
        return ', '.join(parts)
