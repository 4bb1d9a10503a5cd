"""Runtime configuration — loads .env and sets up MLflow tracing.

Provides:
  - Display / heuristic constants used by the aggregator and geospatial code
  - MLflow tracking + tracing setup (best-effort, local fallback)

Every value has a default, so the library works with an empty .env. The
detection rules themselves live in facility_intel.catalog, not here.

Ref: https://pypi.org/project/python-dotenv/
"""

import logging
import os

import mlflow
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_terms(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name) or default
    return tuple(t.strip().lower() for t in raw.split(",") if t.strip())


# ── Aggregator / display ─────────────────────────────────────────────────────
# How many anomalies the response carries (highest severity first)
ANOMALY_DISPLAY_LIMIT = int(os.getenv("ANOMALY_DISPLAY_LIMIT", "20"))

# How many facilities are rendered into the LLM citation context
PROMPT_FACILITY_LIMIT = int(os.getenv("PROMPT_FACILITY_LIMIT", "200"))

# Capability whose cold spots are reported by default ("cardiac care")
COLD_SPOT_CAPABILITY_TERMS = _env_terms("COLD_SPOT_CAPABILITY_TERMS", "cardiac,cardio")

# ── Geospatial heuristics ────────────────────────────────────────────────────
# Average road speed in Ghana, accounting for road conditions
AVERAGE_SPEED_KMH = float(os.getenv("AVERAGE_SPEED_KMH", "40"))

# Max per-facility offset (degrees) applied around a shared region centroid
JITTER_DEGREES = float(os.getenv("JITTER_DEGREES", "0.1"))

# ── MLflow setup (best-effort) ──────────────────────────────────────────────
MLFLOW_TRACKING_URI = os.getenv("MLFLOW_TRACKING_URI", "")
MLFLOW_EXPERIMENT_NAME = os.getenv("MLFLOW_EXPERIMENT_NAME", "facility-intelligence")
MLFLOW_TRACING_ENABLED = _env_bool("MLFLOW_TRACING_ENABLED", True)

if MLFLOW_TRACING_ENABLED:
    # Point MLflow at the configured server if there is one; otherwise keep
    # traces in a local directory so import never crashes.
    if MLFLOW_TRACKING_URI:
        try:
            mlflow.set_tracking_uri(MLFLOW_TRACKING_URI)
            mlflow.set_experiment(MLFLOW_EXPERIMENT_NAME)
        except Exception as e:
            logger.warning("MLflow setup failed (will use local tracking): %s", e)
            mlflow.set_tracking_uri("mlruns")
    else:
        logger.info("MLFLOW_TRACKING_URI not set — MLflow will use local tracking.")
        mlflow.set_tracking_uri("mlruns")
else:
    mlflow.tracing.disable()
