"""Pydantic value objects shared by the detector, the geospatial analyzer and
the aggregator.

Everything here is frozen: facilities are borrowed read-only by the analysis
functions, and every result is a fresh, independently-owned object.
Anomaly / cold-spot records serialize with camelCase aliases for the wire;
the top-level response keeps snake_case keys.
"""

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

AnomalyType = Literal[
    "equipment_mismatch",
    "procedure_overload",
    "specialty_gap",
    "suspicious_claim",
    "incomplete_data",
]

Severity = Literal["low", "medium", "high", "critical"]

# Ordinal used for ranking: low < medium < high < critical
SEVERITY_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2, "critical": 3}

NO_FACILITY_FOUND = "None found"


class _WireModel(BaseModel):
    """Frozen model that accepts snake_case and dumps camelCase with by_alias."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Facility(BaseModel):
    """A healthcare provider record as handed over by the ingestion layer.

    Free-text fields are conventionally comma-separated lists. None means
    "unknown", never "zero"; analysis code reads it as an empty string.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = Field(min_length=1)
    region: str | None = None
    specialties: str | None = None
    procedures: str | None = None
    equipment: str | None = None
    capability: str | None = None
    phone: str | None = None
    website: str | None = None
    source_url: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("facility name must not be blank")
        return v

    def text(self, field: str) -> str:
        """Return a free-text field as a string, treating None as ''."""
        return getattr(self, field) or ""

    @property
    def citation_tag(self) -> str:
        """Short id used by the LLM layer to cite this facility: FAC-xxxxxxxx."""
        return f"FAC-{self.id[:8]}"


class RegionCoordinate(BaseModel):
    """Approximate centroid of a region or city."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    name: str


class FacilityAnomaly(_WireModel):
    facility_id: str
    facility_name: str
    region: str = "Unknown"
    type: AnomalyType
    severity: Severity
    description: str
    details: str


class AnomalySummary(_WireModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)


class DetectionResult(_WireModel):
    anomalies: list[FacilityAnomaly] = Field(default_factory=list)
    summary: AnomalySummary = Field(default_factory=AnomalySummary)


class FacilityWithDistance(_WireModel):
    id: str
    name: str
    region: str
    distance_km: float
    lat: float
    lng: float


class ColdSpot(_WireModel):
    """A known region with no facility offering the capability of interest.

    nearest_facility_distance is float('inf') when no capable facility
    resolves to a coordinate anywhere. On the wire (mode="json") that
    distance is null.
    """

    region: str
    lat: float
    lng: float
    nearest_facility_distance: float
    nearest_facility_name: str = NO_FACILITY_FOUND

    @field_serializer("nearest_facility_distance", when_used="json")
    def _distance_for_wire(self, value: float) -> float | None:
        # JSON has no Infinity; unreachable goes out as null
        return value if math.isfinite(value) else None

    @property
    def is_unreachable(self) -> bool:
        return math.isinf(self.nearest_facility_distance)


class AnalysisResponse(BaseModel):
    """Response contract consumed by the chat / voice orchestration layer."""

    model_config = ConfigDict(frozen=True)

    answer: str = ""
    facilities_analyzed: int = 0
    anomalies_detected: int = 0
    anomalies: list[FacilityAnomaly] = Field(default_factory=list)
    anomaly_summary: AnomalySummary = Field(default_factory=AnomalySummary)
    citations: list[dict] = Field(default_factory=list)
    cold_spots: list[str] = Field(default_factory=list)
    cold_spot_details: list[ColdSpot] = Field(default_factory=list)
    regional_summary: dict[str, int] = Field(default_factory=dict)
    regional_specialties: dict[str, list[str]] = Field(default_factory=dict)
    nearby_facilities: list[dict] = Field(default_factory=list)

    def to_wire(self) -> dict:
        """JSON-ready dict: snake_case top level, camelCase nested records."""
        return self.model_dump(mode="json", by_alias=True)
