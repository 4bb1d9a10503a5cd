"""Synthesis node — merges detector and geospatial output into the response
contract consumed by the chat / voice layer.

No analysis happens here: this module only counts, caps, orders and
formats. The "top N anomalies" display policy lives here, not in the
detector. The LLM call itself is an external collaborator; this module
renders the citation context it is fed with (format_prompt_context) and
resolves the [FAC-xxxxxxxx] tags in its answer back to facilities
(cited_facilities).
"""

import logging
import re
from collections import Counter
from typing import Sequence

import mlflow

from facility_intel import config
from facility_intel.models import (
    AnalysisResponse,
    ColdSpot,
    DetectionResult,
    Facility,
    FacilityWithDistance,
)
from facility_intel.nodes.anomaly_detection import rank_anomalies
from facility_intel.nodes.geospatial import estimate_travel_time
from facility_intel.state import AnalysisState

logger = logging.getLogger(__name__)

_CITATION_RE = re.compile(r"\[FAC-([^\]\s]+)\]", re.IGNORECASE)

# Facility fields exposed in a citation
_CITATION_FIELDS = (
    "id", "name", "region", "specialties", "equipment", "procedures",
    "phone", "website", "source_url", "capability",
)


def regional_summary(facilities: Sequence[Facility]) -> dict[str, int]:
    """Facility count per region string (unset → 'Unknown'), largest first."""
    counts = Counter(f.region or "Unknown" for f in facilities)
    return dict(sorted(counts.items(), key=lambda x: -x[1]))


def regional_specialties(facilities: Sequence[Facility], limit: int = 5) -> dict[str, list[str]]:
    """Up to `limit` distinct lower-cased specialties per region, first seen first."""
    by_region: dict[str, list[str]] = {}
    for f in facilities:
        specs = by_region.setdefault(f.region or "Unknown", [])
        for s in f.text("specialties").split(","):
            s = s.strip().lower()
            if s and s not in specs:
                specs.append(s)
    return {region: specs[:limit] for region, specs in by_region.items()}


def cited_facilities(answer: str, facilities: Sequence[Facility]) -> list[dict]:
    """Resolve [FAC-xxxxxxxx] tags in an answer to full facility details."""
    tags = {m.lower() for m in _CITATION_RE.findall(answer or "")}
    if not tags:
        return []
    return [
        {field: getattr(f, field) for field in _CITATION_FIELDS}
        for f in facilities
        if f.id[:8].lower() in tags
    ]


def _nearby_with_travel_time(nearby: Sequence[FacilityWithDistance]) -> list[dict]:
    return [
        {**n.model_dump(by_alias=True), "travelTime": estimate_travel_time(n.distance_km)}
        for n in nearby
    ]


def build_response(
    facilities: Sequence[Facility],
    detection: DetectionResult,
    cold_spots: Sequence[ColdSpot],
    answer: str = "",
    anomaly_limit: int | None = None,
    nearby: Sequence[FacilityWithDistance] | None = None,
) -> AnalysisResponse:
    """Shape detector + analyzer output into the chat response contract.

    Args:
        facilities: The facility collection that was analyzed.
        detection: Output of detect_anomalies for the same collection.
        cold_spots: Output of identify_cold_spots for the capability of interest.
        answer: LLM answer text, if one was produced; its citation tags
            populate `citations`.
        anomaly_limit: How many anomalies to carry (most severe first);
            defaults to ANOMALY_DISPLAY_LIMIT.
        nearby: Optional radius-search hits.

    Returns:
        AnalysisResponse ready for to_wire().
    """
    if anomaly_limit is None:
        anomaly_limit = config.ANOMALY_DISPLAY_LIMIT

    return AnalysisResponse(
        answer=answer or "",
        facilities_analyzed=len(facilities),
        anomalies_detected=len(detection.anomalies),
        anomalies=rank_anomalies(detection.anomalies, anomaly_limit),
        anomaly_summary=detection.summary,
        citations=cited_facilities(answer, facilities),
        cold_spots=[c.region for c in cold_spots],
        cold_spot_details=list(cold_spots),
        regional_summary=regional_summary(facilities),
        regional_specialties=regional_specialties(facilities),
        nearby_facilities=_nearby_with_travel_time(nearby or []),
    )


def format_prompt_context(
    response: AnalysisResponse,
    facilities: Sequence[Facility],
    limit: int | None = None,
) -> str:
    """Render the facility database, regional summary, anomalies and cold
    spots as the citation context appended to the LLM system prompt.
    """
    if not facilities:
        return (
            "Note: No healthcare facility data has been uploaded yet. "
            "Please upload a dataset first for detailed analysis."
        )
    if limit is None:
        limit = config.PROMPT_FACILITY_LIMIT
    shown = list(facilities)[:limit]

    parts = [f"HEALTHCARE FACILITY DATABASE ({len(facilities)} facilities):"]

    section = "FACILITY DETAILS:\n"
    if len(shown) < len(facilities):
        section = f"FACILITY DETAILS (first {len(shown)} of {len(facilities)}):\n"
    section += "\n\n".join(
        f"[{f.citation_tag}] {f.name}\n"
        f"   Region: {f.region or 'Not specified'}\n"
        f"   Specialties: {f.specialties or 'None listed'}\n"
        f"   Procedures: {f.procedures or 'None listed'}\n"
        f"   Equipment: {f.equipment or 'None listed'}\n"
        f"   Capability: {f.capability or 'Not specified'}"
        for f in shown
    )
    parts.append(section)

    section = "REGIONAL SUMMARY:\n"
    for region, count in response.regional_summary.items():
        specs = ", ".join(response.regional_specialties.get(region, [])) or "none listed"
        section += f"- {region}: {count} facilities (specialties: {specs})\n"
    parts.append(section.rstrip())

    section = f"DETECTED ANOMALIES ({response.anomalies_detected} issues):\n"
    for a in response.anomalies:
        section += f"- [FAC-{a.facility_id[:8]}] {a.facility_name}: {a.description} ({a.severity})\n"
    parts.append(section.rstrip())

    section = "COLD SPOTS:\n"
    if response.cold_spot_details:
        for c in response.cold_spot_details:
            if c.is_unreachable:
                section += f"- {c.region}: no capable facility found anywhere\n"
                continue
            section += (
                f"- {c.region}: nearest {c.nearest_facility_name}, "
                f"{c.nearest_facility_distance} km "
                f"(~{estimate_travel_time(c.nearest_facility_distance)})\n"
            )
    else:
        section += "All known regions have some coverage\n"
    parts.append(section.rstrip())

    return "\n\n".join(parts)


@mlflow.trace(name="synthesis_node", span_type="CHAIN")
def synthesis_node(state: AnalysisState) -> dict:
    """Synthesis node — merges the ANOMALY and GEO results into the response."""
    geo = state.get("geo_result") or {}
    response = build_response(
        state["facilities"],
        state.get("anomaly_result") or DetectionResult(),
        geo.get("cold_spots", []),
        answer=state.get("answer", ""),
        nearby=geo.get("nearby"),
    )
    logger.info(
        "Response: %d facilities, %d anomalies, %d cold spots, %d citations",
        response.facilities_analyzed, response.anomalies_detected,
        len(response.cold_spots), len(response.citations),
    )
    return {
        "response": response,
        "citations": [{"node": "synthesis", "cold_spots": response.cold_spots}],
    }
