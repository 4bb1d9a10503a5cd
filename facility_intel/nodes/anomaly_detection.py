"""Anomaly Detection node — rule-based facility verification.

Cross-references each facility's claimed specialties, procedures and
capabilities against its reported equipment, using the static rule tables in
facility_intel.catalog. All rules are deterministic; nothing here calls a
model or touches I/O.

Detectors run in a fixed order and their output is deduplicated by
(facility_id, type), first occurrence wins:
  1. equipment_mismatch  — claims a specialty/procedure, lists equipment,
                           but none of the required terms
  2. procedure_overload / specialty_gap — breadth without infrastructure
  3. incomplete_data     — two or more core fields empty
  4. suspicious_claim    — promotional capability wording, almost no equipment
"""

import logging
from collections import Counter
from typing import Sequence

import mlflow

from facility_intel.catalog import DEFAULT_CATALOG, CapabilityCatalog
from facility_intel.models import (
    SEVERITY_RANK,
    AnomalySummary,
    DetectionResult,
    Facility,
    FacilityAnomaly,
)
from facility_intel.state import AnalysisState

logger = logging.getLogger(__name__)

# Breadth thresholds
MAX_PROCEDURES = 10
MIN_EQUIPMENT_FOR_PROCEDURES = 3
MAX_SPECIALTIES = 5
MIN_EQUIPMENT_FOR_SPECIALTIES = 2
MIN_EQUIPMENT_FOR_CLAIMS = 2

# Fields checked for completeness, in reporting order
COMPLETENESS_FIELDS = ("specialties", "procedures", "equipment", "region")


def count_items(text: str | None) -> int:
    """Count comma-separated, non-blank items in a free-text list field."""
    return sum(1 for item in (text or "").split(",") if item.strip())


def _anomaly(facility: Facility, **fields) -> FacilityAnomaly:
    return FacilityAnomaly(
        facility_id=facility.id,
        facility_name=facility.name,
        region=facility.region or "Unknown",
        **fields,
    )


def _has_any(text: str, terms: Sequence[str]) -> bool:
    return any(term in text for term in terms)


def detect_equipment_mismatches(
    facilities: Sequence[Facility],
    catalog: CapabilityCatalog = DEFAULT_CATALOG,
) -> list[FacilityAnomaly]:
    """Flag facilities claiming a specialty or procedure without its equipment.

    A facility with an empty equipment field is never flagged here; that is a
    completeness problem, reported by detect_incomplete_data.
    """
    anomalies = []
    for f in facilities:
        specialties = f.text("specialties").lower()
        procedures = f.text("procedures").lower()
        equipment = f.text("equipment").lower()
        if not equipment.strip():
            continue
        found = f.equipment or "none listed"

        for specialty, required in catalog.specialty_equipment.items():
            if specialty not in specialties and specialty not in procedures:
                continue
            if _has_any(equipment, required):
                continue
            critical = "surgery" in specialty or "cardiac" in specialty
            anomalies.append(_anomaly(
                f,
                type="equipment_mismatch",
                severity="critical" if critical else "high",
                description=f"Claims {specialty} but lacks required equipment",
                details=f"Expected: {', '.join(required)}. Found: {found}",
            ))

        for procedure, required in catalog.procedure_equipment.items():
            if procedure not in procedures or _has_any(equipment, required):
                continue
            anomalies.append(_anomaly(
                f,
                type="equipment_mismatch",
                severity="high",
                description=f"Claims {procedure} procedure but lacks equipment",
                details=f"Expected: {', '.join(required)}. Found: {found}",
            ))
    return anomalies


def detect_procedure_overload(facilities: Sequence[Facility]) -> list[FacilityAnomaly]:
    """Flag unusually high procedure or specialty breadth for the equipment listed."""
    anomalies = []
    for f in facilities:
        procedures = count_items(f.procedures)
        specialties = count_items(f.specialties)
        equipment = count_items(f.equipment)

        if procedures > MAX_PROCEDURES and equipment < MIN_EQUIPMENT_FOR_PROCEDURES:
            ratio = procedures / max(equipment, 1)
            anomalies.append(_anomaly(
                f,
                type="procedure_overload",
                severity="high",
                description=f"Claims {procedures} procedures but only {equipment} equipment items",
                details=f"Procedure-to-equipment ratio is unusually high ({ratio:.1f}:1)",
            ))

        if specialties > MAX_SPECIALTIES and equipment < MIN_EQUIPMENT_FOR_SPECIALTIES:
            anomalies.append(_anomaly(
                f,
                type="specialty_gap",
                severity="medium",
                description=f"Claims {specialties} specialties but only {equipment} equipment items",
                details="Specialty depth appears unsupported by infrastructure",
            ))
    return anomalies


def detect_incomplete_data(facilities: Sequence[Facility]) -> list[FacilityAnomaly]:
    """Flag facilities missing two or more of specialties/procedures/equipment/region."""
    anomalies = []
    for f in facilities:
        missing = [name for name in COMPLETENESS_FIELDS if not f.text(name).strip()]
        if len(missing) < 2:
            continue
        anomalies.append(_anomaly(
            f,
            type="incomplete_data",
            severity="high" if len(missing) >= 3 else "medium",
            description=f"Missing {len(missing)} critical data fields",
            details=f"Missing: {', '.join(missing)}",
        ))
    return anomalies


def detect_suspicious_claims(
    facilities: Sequence[Facility],
    catalog: CapabilityCatalog = DEFAULT_CATALOG,
) -> list[FacilityAnomaly]:
    """Flag promotional capability claims ("world-class") with almost no equipment."""
    anomalies = []
    for f in facilities:
        capability = f.text("capability").lower()
        phrase = next((p for p in catalog.suspicious_phrases if p in capability), None)
        if phrase is None:
            continue
        equipment = count_items(f.equipment)
        if equipment >= MIN_EQUIPMENT_FOR_CLAIMS:
            continue
        anomalies.append(_anomaly(
            f,
            type="suspicious_claim",
            severity="low",
            description=f"Describes itself as '{phrase}' with {equipment} equipment items",
            details="Capability wording is not backed by listed equipment",
        ))
    return anomalies


def deduplicate_anomalies(anomalies: Sequence[FacilityAnomaly]) -> list[FacilityAnomaly]:
    """Keep the first anomaly per (facility_id, type), preserving order."""
    seen: set[tuple[str, str]] = set()
    unique = []
    for a in anomalies:
        key = (a.facility_id, a.type)
        if key in seen:
            continue
        seen.add(key)
        unique.append(a)
    return unique


def summarize_anomalies(anomalies: Sequence[FacilityAnomaly]) -> AnomalySummary:
    """Count anomalies by severity and by type."""
    by_severity = Counter(a.severity for a in anomalies)
    return AnomalySummary(
        total=len(anomalies),
        critical=by_severity["critical"],
        high=by_severity["high"],
        medium=by_severity["medium"],
        low=by_severity["low"],
        by_type=dict(Counter(a.type for a in anomalies)),
    )


def rank_anomalies(
    anomalies: Sequence[FacilityAnomaly],
    limit: int | None = None,
) -> list[FacilityAnomaly]:
    """Most severe first (stable within a severity), optionally capped."""
    ranked = sorted(anomalies, key=lambda a: -SEVERITY_RANK[a.severity])
    return ranked if limit is None else ranked[:limit]


def detect_anomalies(
    facilities: Sequence[Facility],
    catalog: CapabilityCatalog = DEFAULT_CATALOG,
) -> DetectionResult:
    """Run every detector, deduplicate, and summarize.

    Args:
        facilities: Facility records to scan (never mutated).
        catalog: Rule tables; defaults to the built-in catalog.

    Returns:
        DetectionResult with the deduplicated anomalies and their summary.
    """
    found = [
        *detect_equipment_mismatches(facilities, catalog),
        *detect_procedure_overload(facilities),
        *detect_incomplete_data(facilities),
        *detect_suspicious_claims(facilities, catalog),
    ]
    anomalies = deduplicate_anomalies(found)
    return DetectionResult(anomalies=anomalies, summary=summarize_anomalies(anomalies))


@mlflow.trace(name="anomaly_detection_node", span_type="TOOL")
def anomaly_detection_node(state: AnalysisState) -> dict:
    """Anomaly node — runs the rule-based detector over the state's facilities."""
    facilities = state["facilities"]
    result = detect_anomalies(facilities, state.get("catalog") or DEFAULT_CATALOG)
    logger.info(
        "Detected %d anomalies across %d facilities (%d critical)",
        result.summary.total, len(facilities), result.summary.critical,
    )
    return {
        "anomaly_result": result,
        "citations": [
            {
                "source": "anomaly_detection",
                "facilities_analyzed": len(facilities),
                "anomalies": result.summary.total,
            }
        ],
    }
