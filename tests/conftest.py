"""Shared pytest setup — keep MLflow tracing off for the local test run."""

import os

os.environ["MLFLOW_TRACING_ENABLED"] = "false"

import facility_intel.config  # noqa: E402,F401  (applies the tracing switch)
