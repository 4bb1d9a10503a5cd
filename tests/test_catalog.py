"""Catalog tests — rule tables and region centroids.

Usage: pytest tests/test_catalog.py -v
"""

import pytest

from facility_intel.catalog import (
    DEFAULT_CATALOG,
    PROCEDURE_EQUIPMENT,
    REGION_COORDINATES,
    SPECIALTY_EQUIPMENT,
    CapabilityCatalog,
)
from facility_intel.nodes.geospatial import resolve_location

# Ghana's 16 administrative regions
GHANA_REGIONS = (
    "Greater Accra", "Ashanti", "Western", "Central", "Eastern",
    "Volta", "Northern", "Upper East", "Upper West", "Bono",
    "Bono East", "Ahafo", "Savannah", "North East", "Oti", "Western North",
)


class TestRuleTables:
    """Specialty / procedure requirement tables."""

    def test_keys_and_terms_lower_case(self):
        for table in (SPECIALTY_EQUIPMENT, PROCEDURE_EQUIPMENT):
            for key, terms in table.items():
                assert key == key.lower()
                assert terms, f"{key} has no equipment terms"
                assert all(t == t.lower() for t in terms)

    def test_core_rules_present(self):
        for key in ("cardiac", "cardiology", "surgery", "cardiac surgery", "radiology", "dialysis", "icu"):
            assert key in SPECIALTY_EQUIPMENT
        for key in ("open heart surgery", "angioplasty", "mri scan", "endoscopy", "colonoscopy"):
            assert key in PROCEDURE_EQUIPMENT

    def test_read_only(self):
        with pytest.raises(TypeError):
            SPECIALTY_EQUIPMENT["new"] = ("thing",)
        with pytest.raises(TypeError):
            REGION_COORDINATES["mars"] = REGION_COORDINATES["accra"]

    def test_default_catalog_uses_module_tables(self):
        assert DEFAULT_CATALOG.specialty_equipment is SPECIALTY_EQUIPMENT
        assert DEFAULT_CATALOG.region_coordinates is REGION_COORDINATES

    def test_custom_catalog(self):
        catalog = CapabilityCatalog(specialty_equipment={"pediatrics": ("incubator",)})
        assert "cardiac" not in catalog.specialty_equipment
        assert catalog.procedure_equipment is PROCEDURE_EQUIPMENT


class TestRegions:
    """Region centroid lookup table."""

    def test_sixteen_regions(self):
        assert len(GHANA_REGIONS) == len(set(GHANA_REGIONS)) == 16

    @pytest.mark.parametrize("region", GHANA_REGIONS)
    def test_every_region_resolves(self, region):
        assert resolve_location(region) is not None

    def test_coordinates_inside_ghana(self):
        for key, coord in REGION_COORDINATES.items():
            assert 4.5 <= coord.lat <= 11.5, key
            assert -3.5 <= coord.lng <= 1.5, key

    def test_cities_share_region_centroid(self):
        assert REGION_COORDINATES["accra"].lat == REGION_COORDINATES["greater accra"].lat
        assert REGION_COORDINATES["kumasi"].lng == REGION_COORDINATES["ashanti"].lng
