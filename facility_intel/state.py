"""LangGraph state schema — shared state passed between the analysis nodes.

Ref: https://langchain-ai.github.io/langgraph/concepts/low_level/#state
"""

import operator
from typing import Annotated, TypedDict

from facility_intel.catalog import CapabilityCatalog
from facility_intel.models import AnalysisResponse, DetectionResult, Facility


class AnalysisState(TypedDict, total=False):
    """Shared state passed between all LangGraph nodes."""

    facilities: list[Facility]
    """Facility records to analyze (read-only for every node)."""

    catalog: CapabilityCatalog
    """Rule tables and region centroids; DEFAULT_CATALOG when absent."""

    capability_terms: list[str]
    """Terms identifying the capability of interest, e.g. ["cardiac", "cardio"]."""

    known_regions: list[str]
    """Regions checked for coverage by the cold-spot search."""

    center_location: str | None
    """Optional free-text location for a radius search."""

    radius_km: float | None
    """Radius for the optional radius search."""

    answer: str
    """Text produced by the external LLM layer; used to resolve citations."""

    anomaly_result: DetectionResult | None
    """DetectionResult from the Anomaly Detection node."""

    geo_result: dict | None
    """Cold spots and optional radius-search hits from the Geospatial node."""

    response: AnalysisResponse | None
    """AnalysisResponse assembled by the synthesis node."""

    citations: Annotated[list, operator.add]
    """Audit trail — each node appends its source info for MLflow tracing.

    Uses operator.add reducer so the parallel ANOMALY and GEO nodes can each
    append their citations without triggering INVALID_CONCURRENT_GRAPH_UPDATE.
    Ref: https://langchain-ai.github.io/langgraph/concepts/low_level/#reducers
    """
