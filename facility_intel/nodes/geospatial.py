"""Geospatial node — Haversine distance, radius search, cold-spot detection.

All math runs locally. Facility locations come from the free-text region
field resolved against the static region→centroid table in
facility_intel.catalog; this is a lookup, not a geocoder, and travel time is
a fixed-speed estimate, not routing.

Unresolvable locations are never an error: they are skipped (radius search,
nearest-facility search) or excluded (cold spots).
"""

import hashlib
import logging
import math
from typing import Iterable, Mapping, Sequence

import mlflow

from facility_intel import config
from facility_intel.catalog import DEFAULT_CATALOG, REGION_COORDINATES, CapabilityCatalog
from facility_intel.models import (
    NO_FACILITY_FOUND,
    ColdSpot,
    Facility,
    FacilityWithDistance,
    RegionCoordinate,
)
from facility_intel.state import AnalysisState

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate great-circle distance between two points in kilometers."""
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def resolve_location(
    text: str | None,
    regions: Mapping[str, RegionCoordinate] = REGION_COORDINATES,
) -> RegionCoordinate | None:
    """Resolve a free-text location to a region centroid.

    Exact (case-insensitive, trimmed) key match first; otherwise the first key
    in table order that is contained in the text or contains it. Blank input
    never resolves.
    """
    normalized = (text or "").lower().strip()
    if not normalized:
        return None
    if normalized in regions:
        return regions[normalized]
    for key, coords in regions.items():
        if key in normalized or normalized in key:
            return coords
    logger.debug("Could not resolve location %r", text)
    return None


def facility_jitter(facility_id: str, max_offset: float | None = None) -> tuple[float, float]:
    """Deterministic (lat, lng) offset for a facility, each within ±max_offset.

    Spreads facilities that share a region centroid so they don't collapse
    onto one point. Derived from a SHA-256 of the id, so it is identical
    across runs and processes.
    """
    if max_offset is None:
        max_offset = config.JITTER_DEGREES
    digest = hashlib.sha256(facility_id.encode("utf-8")).digest()
    lat_unit = int.from_bytes(digest[:4], "big") / 0xFFFFFFFF
    lng_unit = int.from_bytes(digest[4:8], "big") / 0xFFFFFFFF
    return (lat_unit * 2 - 1) * max_offset, (lng_unit * 2 - 1) * max_offset


def find_facilities_within_radius(
    facilities: Sequence[Facility],
    center_lat: float,
    center_lng: float,
    radius_km: float,
    catalog: CapabilityCatalog = DEFAULT_CATALOG,
) -> list[FacilityWithDistance]:
    """Find facilities within a given radius of a center point.

    Returns:
        Hits sorted by ascending distance, distance rounded to 0.1 km, with
        the jittered position each distance was measured to.
    """
    results = []
    for f in facilities:
        coords = resolve_location(f.region, catalog.region_coordinates)
        if coords is None:
            continue
        dlat, dlng = facility_jitter(f.id)
        lat, lng = coords.lat + dlat, coords.lng + dlng
        dist = haversine_km(center_lat, center_lng, lat, lng)
        if dist <= radius_km:
            results.append(FacilityWithDistance(
                id=f.id,
                name=f.name,
                region=f.region or "Unknown",
                distance_km=round(dist, 1),
                lat=lat,
                lng=lng,
            ))
    return sorted(results, key=lambda x: x.distance_km)


def identify_cold_spots(
    facilities_with_capability: Sequence[Facility],
    all_known_regions: Iterable[str],
    catalog: CapabilityCatalog = DEFAULT_CATALOG,
) -> list[ColdSpot]:
    """Identify known regions with no facility offering the capability.

    Coverage is an exact case-insensitive match on the facility's region
    field; coordinates are resolved with the tolerant lookup. Regions that do
    not resolve are left out.

    Returns:
        Cold spots sorted by distance to the nearest capable facility,
        furthest first. With no resolvable capable facility the distance is
        float('inf').
    """
    regions = catalog.region_coordinates
    covered = {
        f.region.lower().strip() for f in facilities_with_capability if f.region
    }
    located = []
    for f in facilities_with_capability:
        coords = resolve_location(f.region, regions)
        if coords is not None:
            located.append((f, coords))

    cold_spots = []
    for region in all_known_regions:
        if region.lower().strip() in covered:
            continue
        coords = resolve_location(region, regions)
        if coords is None:
            continue

        nearest_distance = math.inf
        nearest_name = NO_FACILITY_FOUND
        for f, fc in located:
            dist = haversine_km(coords.lat, coords.lng, fc.lat, fc.lng)
            if dist < nearest_distance:
                nearest_distance = dist
                nearest_name = f.name

        cold_spots.append(ColdSpot(
            region=region,
            lat=coords.lat,
            lng=coords.lng,
            nearest_facility_distance=round(nearest_distance, 1),
            nearest_facility_name=nearest_name,
        ))

    return sorted(cold_spots, key=lambda c: c.nearest_facility_distance, reverse=True)


def facilities_with_capability(
    facilities: Sequence[Facility],
    terms: Iterable[str],
) -> list[Facility]:
    """Facilities whose specialties mention any of the terms (case-insensitive)."""
    terms = [t.lower() for t in terms if t]
    return [
        f for f in facilities
        if any(t in f.text("specialties").lower() for t in terms)
    ]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def estimate_travel_time(distance_km: float, speed_kmh: float | None = None) -> str:
    """Rough travel time at a fixed average road speed.

    Halves round up (4.5 minutes → "5 minutes"); hours keep one decimal and
    drop a trailing ".0".
    """
    if not math.isfinite(distance_km):
        return "unreachable"
    hours = distance_km / (speed_kmh or config.AVERAGE_SPEED_KMH)
    if hours < 1:
        return f"{_round_half_up(hours * 60)} minutes"
    if hours < 24:
        return f"{_round_half_up(hours * 10) / 10:g} hours"
    return f"{_round_half_up(hours / 24)} days"


@mlflow.trace(name="geospatial_node", span_type="TOOL")
def geospatial_node(state: AnalysisState) -> dict:
    """Geospatial node — cold spots for the capability of interest, plus an
    optional radius search when the state carries a center and a radius.
    """
    facilities = state["facilities"]
    catalog = state.get("catalog") or DEFAULT_CATALOG
    terms = state.get("capability_terms") or list(config.COLD_SPOT_CAPABILITY_TERMS)
    known_regions = state.get("known_regions") or list(catalog.region_coordinates)

    capable = facilities_with_capability(facilities, terms)
    cold_spots = identify_cold_spots(capable, known_regions, catalog)
    result = {
        "capability_terms": terms,
        "capable_facilities": len(capable),
        "cold_spots": cold_spots,
        "nearby": [],
    }

    center = state.get("center_location")
    radius_km = state.get("radius_km")
    if center and radius_km is not None:
        coords = resolve_location(center, catalog.region_coordinates)
        if coords:
            nearby = find_facilities_within_radius(
                facilities, coords.lat, coords.lng, float(radius_km), catalog
            )
            result["center"] = {"location": center, "lat": coords.lat, "lng": coords.lng}
            result["radius_km"] = radius_km
            result["nearby"] = nearby
            logger.info("Found %d facilities within %skm of %s", len(nearby), radius_km, center)
        else:
            logger.warning("Could not geocode center location %r; skipping radius search", center)

    logger.info(
        "Cold spots for %s: %d of %d regions (%d capable facilities)",
        "/".join(terms), len(cold_spots), len(known_regions), len(capable),
    )
    return {
        "geo_result": result,
        "citations": [
            {"source": "geospatial", "cold_spots": len(cold_spots), "note": "local computation"}
        ],
    }
