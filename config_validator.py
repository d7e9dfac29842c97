"""Configuration and request validation using Pydantic (v2)"""
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator


class BoundsSettings(BaseModel):
    min_lng: float = Field(ge=-180, le=180)
    max_lng: float = Field(ge=-180, le=180)
    min_lat: float = Field(ge=-90, le=90)
    max_lat: float = Field(ge=-90, le=90)

    @model_validator(mode='after')
    def _validate_ordering(self):
        if self.min_lng > self.max_lng:
            raise ValueError('min_lng cannot be greater than max_lng')
        if self.min_lat > self.max_lat:
            raise ValueError('min_lat cannot be greater than max_lat')
        return self


class RawLocation(BaseModel):
    """One entry of the JSON feed, before coordinate validation."""
    name: str = ''
    ecole: bool = False
    code_ohme_id: Optional[str] = None
    adresse: str = ''
    cp: str = ''
    city: str = ''
    tel: str = ''
    email: str = ''
    site_internet: str = ''
    discipline: List[str] = Field(default_factory=list)
    prestation: List[str] = Field(default_factory=list)
    test_mcf: List[str] = Field(default_factory=list)
    position: str = ''

    @field_validator('name', 'adresse', 'cp', 'city', 'tel', 'email', 'site_internet', 'position', mode='before')
    @classmethod
    def _none_to_empty(cls, v: Any):
        if v is None:
            return ''
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('code_ohme_id', mode='before')
    @classmethod
    def _stringify_id(cls, v: Any):
        if v is None or v == '':
            return None
        return str(v)

    @field_validator('ecole', mode='before')
    @classmethod
    def _strict_school_flag(cls, v: Any):
        # Only a literal true marks a school
        return v is True

    @field_validator('discipline', 'prestation', 'test_mcf', mode='before')
    @classmethod
    def _listify(cls, v: Any):
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v else []
        return [str(item) for item in v if item is not None]


class FilterQuery(BaseModel):
    q: str = Field(default='', max_length=200)
    discipline: List[str] = Field(default_factory=list)
    prestation: List[str] = Field(default_factory=list)
    test_mcf: List[str] = Field(default_factory=list)
    schools: bool = True
    instructors: bool = True

    @model_validator(mode='after')
    def _never_hide_both(self):
        if not self.schools and not self.instructors:
            raise ValueError('schools and instructors cannot both be hidden')
        return self


class TrackingPayload(BaseModel):
    event_type: str = Field(pattern=r'^(pin_click|coord_click)$')
    code_ohme_id: str = Field(min_length=1)
    code_mcf: int = Field(ge=1)
    nom_complet: str
    type_structure: str = Field(pattern=r'^(ecole|moniteur)$')
    timestamp: str


def validate_bounds(bounds: Dict[str, Any]) -> Dict[str, float]:
    """Validate a bounding box mapping"""
    return BoundsSettings(**(bounds or {})).model_dump()


def validate_filter_query(params: Dict[str, Union[str, List[str]]]) -> Dict[str, Any]:
    """Validate and normalize filter request parameters"""
    model = FilterQuery(**(params or {}))
    return model.model_dump()
