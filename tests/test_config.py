"""Config tests — environment parsing and defaults.

These verify the library works with an empty .env.

Usage: pytest tests/test_config.py -v
"""

import pytest

from facility_intel import config


def test_defaults_loaded():
    """Every setting has a usable default."""
    assert config.ANOMALY_DISPLAY_LIMIT > 0
    assert config.PROMPT_FACILITY_LIMIT > 0
    assert config.AVERAGE_SPEED_KMH > 0
    assert 0 < config.JITTER_DEGREES < 1
    assert config.COLD_SPOT_CAPABILITY_TERMS, "COLD_SPOT_CAPABILITY_TERMS is empty"


def test_tracing_disabled_for_tests():
    """conftest.py switches tracing off before config is imported."""
    assert config.MLFLOW_TRACING_ENABLED is False


@pytest.mark.parametrize("raw,expected", [
    ("true", True), ("1", True), ("YES", True), (" on ", True),
    ("false", False), ("0", False), ("off", False),
    ("", True), ("   ", True),
])
def test_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv("FACILITY_TEST_FLAG", raw)
    assert config._env_bool("FACILITY_TEST_FLAG", True) is expected


def test_env_bool_unset(monkeypatch):
    monkeypatch.delenv("FACILITY_TEST_FLAG", raising=False)
    assert config._env_bool("FACILITY_TEST_FLAG", False) is False


def test_env_terms(monkeypatch):
    monkeypatch.setenv("FACILITY_TEST_TERMS", " Dialysis, ,HEMODIALYSIS ")
    assert config._env_terms("FACILITY_TEST_TERMS", "x") == ("dialysis", "hemodialysis")
    monkeypatch.delenv("FACILITY_TEST_TERMS")
    assert config._env_terms("FACILITY_TEST_TERMS", "cardiac,cardio") == ("cardiac", "cardio")
