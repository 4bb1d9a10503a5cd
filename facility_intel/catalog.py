"""Capability-requirement catalog — static rule tables and region centroids.

Pure data, built once at import and read-only afterwards:
  - SPECIALTY_EQUIPMENT: specialty/condition term → equipment terms
  - PROCEDURE_EQUIPMENT: named procedure → equipment terms
  - REGION_COORDINATES: Ghana region / city alias → approximate centroid
  - SUSPICIOUS_PHRASES: promotional wording that signals capability inflation

Any single equipment term satisfies a requirement. Matching elsewhere is
substring-based and case-insensitive, so every key and term here is
lower-case. Declaration order matters: it decides which alias wins a
fuzzy location lookup and which rule fires first.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from facility_intel.models import RegionCoordinate

# ── Specialty → required equipment ───────────────────────────────────────────
SPECIALTY_EQUIPMENT: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "cardiac": ("ecg", "echo", "defibrillator", "cardiac monitor", "cath lab"),
    "cardiology": ("ecg", "echo", "defibrillator", "cardiac monitor"),
    "surgery": ("operating room", "anesthesia", "ventilator", "surgical instruments"),
    "cardiac surgery": ("cath lab", "bypass machine", "operating room", "icu"),
    "orthopedic": ("x-ray", "ct scan", "operating room", "cast equipment"),
    "radiology": ("x-ray", "ct scan", "mri", "ultrasound"),
    "oncology": ("chemotherapy", "radiation", "ct scan", "biopsy"),
    "dialysis": ("dialysis machine", "hemodialysis"),
    "icu": ("ventilator", "cardiac monitor", "defibrillator", "infusion pump"),
    "emergency": ("defibrillator", "ventilator", "trauma equipment"),
    "ophthalmology": ("slit lamp", "ophthalmoscope", "laser", "operating microscope"),
    "neurology": ("eeg", "mri", "ct scan"),
    "neurosurgery": ("mri", "ct scan", "operating room", "microscope"),
})

# ── Procedure → required equipment ───────────────────────────────────────────
PROCEDURE_EQUIPMENT: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "open heart surgery": ("cath lab", "bypass machine", "icu", "ventilator"),
    "angioplasty": ("cath lab", "fluoroscopy"),
    "mri scan": ("mri",),
    "ct scan": ("ct scan", "ct"),
    "dialysis": ("dialysis machine",),
    "chemotherapy": ("infusion pump", "oncology unit"),
    "cataract surgery": ("operating microscope", "phaco machine"),
    "laparoscopy": ("laparoscope", "operating room"),
    "endoscopy": ("endoscope",),
    "colonoscopy": ("colonoscope",),
})

# ── Static geocoding lookup ──────────────────────────────────────────────────
# Region centroids and the major city inside each; cities share the centroid
# of their region where the two are effectively the same point.
REGION_COORDINATES: Mapping[str, RegionCoordinate] = MappingProxyType({
    "greater accra": RegionCoordinate(lat=5.6037, lng=-0.1870, name="Greater Accra"),
    "accra": RegionCoordinate(lat=5.6037, lng=-0.1870, name="Accra"),
    "ashanti": RegionCoordinate(lat=6.6885, lng=-1.6244, name="Ashanti Region"),
    "kumasi": RegionCoordinate(lat=6.6885, lng=-1.6244, name="Kumasi"),
    "northern": RegionCoordinate(lat=9.4034, lng=-0.8424, name="Northern Region"),
    "tamale": RegionCoordinate(lat=9.4034, lng=-0.8424, name="Tamale"),
    "volta": RegionCoordinate(lat=6.6018, lng=0.4703, name="Volta Region"),
    "eastern": RegionCoordinate(lat=6.6500, lng=-0.4500, name="Eastern Region"),
    "western": RegionCoordinate(lat=5.0088, lng=-1.9796, name="Western Region"),
    "takoradi": RegionCoordinate(lat=4.8845, lng=-1.7554, name="Takoradi"),
    "central": RegionCoordinate(lat=5.5500, lng=-1.0500, name="Central Region"),
    "cape coast": RegionCoordinate(lat=5.1315, lng=-1.2795, name="Cape Coast"),
    "upper east": RegionCoordinate(lat=10.7548, lng=-0.8508, name="Upper East Region"),
    "bolgatanga": RegionCoordinate(lat=10.7548, lng=-0.8508, name="Bolgatanga"),
    "upper west": RegionCoordinate(lat=10.3524, lng=-2.2831, name="Upper West Region"),
    "bono": RegionCoordinate(lat=7.3349, lng=-2.3123, name="Bono Region"),
    "bono east": RegionCoordinate(lat=7.7500, lng=-1.0500, name="Bono East Region"),
    "ahafo": RegionCoordinate(lat=7.0833, lng=-2.3333, name="Ahafo Region"),
    "savannah": RegionCoordinate(lat=9.0000, lng=-1.5000, name="Savannah Region"),
    "north east": RegionCoordinate(lat=10.5000, lng=0.0000, name="North East Region"),
    "oti": RegionCoordinate(lat=7.8000, lng=0.2000, name="Oti Region"),
    "western north": RegionCoordinate(lat=6.2000, lng=-2.5000, name="Western North Region"),
})

# Capability inflation: broad promotional claims with no supporting data
SUSPICIOUS_PHRASES = (
    "world-class",
    "world class",
    "state-of-the-art",
    "state of the art",
    "cutting-edge",
    "best-in-class",
    "fully equipped",
    "advanced diagnostics",
)


@dataclass(frozen=True)
class CapabilityCatalog:
    """Bundle of rule tables injected into the detector and the analyzer."""

    specialty_equipment: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: SPECIALTY_EQUIPMENT
    )
    procedure_equipment: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: PROCEDURE_EQUIPMENT
    )
    region_coordinates: Mapping[str, RegionCoordinate] = field(
        default_factory=lambda: REGION_COORDINATES
    )
    suspicious_phrases: tuple[str, ...] = SUSPICIOUS_PHRASES


DEFAULT_CATALOG = CapabilityCatalog()
