"""Synthesis tests — response shaping, citations and prompt context.

Usage: pytest tests/test_synthesis.py -v
"""

import math

from facility_intel.models import ColdSpot, DetectionResult, Facility, FacilityWithDistance
from facility_intel.nodes.anomaly_detection import detect_anomalies
from facility_intel.nodes.synthesis import (
    build_response,
    cited_facilities,
    format_prompt_context,
    regional_specialties,
    regional_summary,
    synthesis_node,
)


def _facility(id, region="Accra", **fields):
    return Facility(id=id, name=f"Facility {id}", region=region, **fields)


class TestRegionalSummary:
    """Per-region counts and specialties."""

    def test_counts_largest_first(self):
        facilities = [_facility("1"), _facility("2", "Kumasi"), _facility("3"), _facility("4", None)]
        summary = regional_summary(facilities)
        assert summary == {"Accra": 2, "Kumasi": 1, "Unknown": 1}
        assert next(iter(summary)) == "Accra"

    def test_regional_specialties_distinct_and_capped(self):
        facilities = [
            _facility("1", specialties="Cardiology, Pediatrics"),
            _facility("2", specialties="pediatrics, a, b, c, d"),
        ]
        specs = regional_specialties(facilities)
        assert specs["Accra"] == ["cardiology", "pediatrics", "a", "b", "c"]


class TestCitations:
    """[FAC-xxxxxxxx] tags resolved back to facilities."""

    def test_tags_resolve_case_insensitively(self):
        facilities = [
            _facility("3f2b9c1e-0000-4a4a-8b8b-123456789abc", phone="+233 30 000"),
            _facility("ABCDEF12-rest"),
            _facility("zzzzzzzz-not-cited"),
        ]
        answer = "See [FAC-3f2b9c1e] and [fac-abcdef12] for cardiac care."
        cited = cited_facilities(answer, facilities)
        assert [c["id"] for c in cited] == ["3f2b9c1e-0000-4a4a-8b8b-123456789abc", "ABCDEF12-rest"]
        assert cited[0]["phone"] == "+233 30 000"
        assert set(cited[0]) >= {"name", "region", "specialties", "equipment", "source_url"}

    def test_no_tags(self):
        assert cited_facilities("No citations here.", [_facility("f1")]) == []
        assert cited_facilities("", [_facility("f1")]) == []


class TestBuildResponse:
    """Response contract assembly."""

    def _facilities(self):
        mismatched = [
            _facility(f"h{i:02d}", specialties="radiology", equipment="stethoscope")
            for i in range(25)
        ]
        critical = _facility("c1", specialties="cardiac", equipment="stethoscope")
        return [*mismatched, critical]

    def test_caps_anomalies_by_severity(self):
        facilities = self._facilities()
        response = build_response(facilities, detect_anomalies(facilities), [])
        assert response.facilities_analyzed == 26
        assert response.anomalies_detected == 26
        assert len(response.anomalies) == 20
        assert response.anomalies[0].facility_id == "c1"
        assert response.anomalies[0].severity == "critical"
        assert response.anomaly_summary.total == 26

    def test_explicit_limit(self):
        facilities = self._facilities()
        response = build_response(facilities, detect_anomalies(facilities), [], anomaly_limit=3)
        assert len(response.anomalies) == 3

    def test_cold_spot_names_in_order(self):
        spots = [
            ColdSpot(region="tamale", lat=9.4, lng=-0.8, nearest_facility_distance=math.inf),
            ColdSpot(region="kumasi", lat=6.7, lng=-1.6, nearest_facility_distance=math.inf),
        ]
        response = build_response([], DetectionResult(), spots)
        assert response.cold_spots == ["tamale", "kumasi"]
        assert response.cold_spot_details == spots

    def test_nearby_gets_travel_time(self):
        nearby = [FacilityWithDistance(id="a1", name="A", region="Accra", distance_km=20, lat=5.6, lng=-0.2)]
        response = build_response([], DetectionResult(), [], nearby=nearby)
        [hit] = response.nearby_facilities
        assert hit["distanceKm"] == 20
        assert hit["travelTime"] == "30 minutes"

    def test_wire_keys(self):
        facilities = [_facility("f1", specialties="radiology", equipment="stethoscope")]
        response = build_response(facilities, detect_anomalies(facilities), [], answer="Try [FAC-f1].")
        wire = response.to_wire()
        assert {
            "answer", "facilities_analyzed", "anomalies_detected",
            "citations", "cold_spots", "regional_summary",
        } <= set(wire)
        assert wire["anomalies"][0]["facilityId"] == "f1"
        assert wire["anomaly_summary"]["byType"] == {"equipment_mismatch": 1}
        assert [c["id"] for c in wire["citations"]] == ["f1"]


class TestPromptContext:
    """Citation context rendered for the LLM system prompt."""

    def test_empty_dataset_note(self):
        text = format_prompt_context(build_response([], DetectionResult(), []), [])
        assert "No healthcare facility data has been uploaded yet" in text

    def test_sections(self):
        facilities = [_facility("f1", specialties="cardiac", equipment="stethoscope")]
        spots = [ColdSpot(region="tamale", lat=9.4, lng=-0.8, nearest_facility_distance=math.inf)]
        response = build_response(facilities, detect_anomalies(facilities), spots)
        text = format_prompt_context(response, facilities)
        assert text.startswith("HEALTHCARE FACILITY DATABASE (1 facilities):")
        assert "[FAC-f1] Facility f1" in text
        assert "Procedures: None listed" in text
        assert "- Accra: 1 facilities (specialties: cardiac)" in text
        assert "DETECTED ANOMALIES (1 issues):" in text
        assert "- tamale: no capable facility found anywhere" in text

    def test_reachable_cold_spot_line(self):
        spots = [ColdSpot(region="kumasi", lat=6.7, lng=-1.6,
                          nearest_facility_distance=100.0, nearest_facility_name="Korle Bu")]
        facilities = [_facility("f1")]
        response = build_response(facilities, DetectionResult(), spots)
        text = format_prompt_context(response, facilities)
        assert "- kumasi: nearest Korle Bu, 100.0 km (~2.5 hours)" in text

    def test_facility_limit(self):
        facilities = [_facility("f1"), _facility("f2")]
        response = build_response(facilities, detect_anomalies(facilities), [])
        text = format_prompt_context(response, facilities, limit=1)
        assert text.startswith("HEALTHCARE FACILITY DATABASE (2 facilities):")
        assert "FACILITY DETAILS (first 1 of 2):" in text
        assert "[FAC-f2]" not in text.split("REGIONAL SUMMARY")[0]

    def test_full_coverage_line(self):
        facilities = [_facility("f1")]
        response = build_response(facilities, DetectionResult(), [])
        assert "All known regions have some coverage" in format_prompt_context(response, facilities)


def test_synthesis_node_tolerates_missing_results():
    """Synthesis must still produce a response when a branch left nothing."""
    state = {"facilities": [_facility("f1")], "citations": []}
    result = synthesis_node(state)
    assert result["response"].facilities_analyzed == 1
    assert result["response"].anomalies == []
    assert result["citations"][0]["node"] == "synthesis"
