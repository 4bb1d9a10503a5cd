"""Facility records at the ingestion boundary.

Turns already-parsed tabular data (a pandas DataFrame, or a list of dicts
from a database / API) into validated Facility models. Reading files and
parsing CSV text belong to the caller.

Usage:
    from facility_intel.data_loader import facilities_from_dataframe
    facilities = facilities_from_dataframe(pd.read_csv(path))
"""

import logging
import uuid
from typing import Iterable

import pandas as pd
from pydantic import ValidationError

from facility_intel.models import Facility

logger = logging.getLogger(__name__)

# ── Column normalization (same aliases as the dataset upload form) ───────────
COLUMN_ALIASES = {
    "facility_name": "name",
    "hospital_name": "name",
    "specialty": "specialties",
    "procedure": "procedures",
    "capabilities": "capability",
    "location": "region",
    "area": "region",
    "url": "website",
    "telephone": "phone",
    "contact": "phone",
    "source": "source_url",
}

_ID_NAMESPACE = uuid.UUID("6f1c1a52-4f5e-4d0b-9a43-2f61a3b0c9d7")


def _safe(val) -> str | None:
    """Return a trimmed string, or None for NaN / blank values."""
    if val is None:
        return None
    if not isinstance(val, (list, dict)) and pd.isna(val):
        return None
    text = str(val).strip()
    return text or None


def _derive_id(position: int, name: str) -> str:
    """Stable id for rows that arrive without one."""
    return str(uuid.uuid5(_ID_NAMESPACE, f"{position}:{name}"))


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case / trim column names and map known aliases to Facility fields."""
    renamed = {c: str(c).strip().lower() for c in df.columns}
    df = df.rename(columns=renamed)
    aliases = {c: COLUMN_ALIASES[c] for c in df.columns if c in COLUMN_ALIASES}
    # Never let an alias clobber a column that already has the canonical name
    aliases = {c: target for c, target in aliases.items() if target not in df.columns}
    df = df.rename(columns=aliases)
    return df.loc[:, ~df.columns.duplicated()]


def facilities_from_dataframe(df: pd.DataFrame) -> list[Facility]:
    """Convert a facility DataFrame into Facility models.

    Rows without a name are dropped; rows that still fail validation are
    logged and skipped.
    """
    df = normalize_columns(df)
    fields = [name for name in Facility.model_fields if name in df.columns]

    facilities = []
    skipped = 0
    for position, (_, row) in enumerate(df.iterrows()):
        record = {name: _safe(row.get(name)) for name in fields}
        if not record.get("name"):
            skipped += 1
            continue
        if not record.get("id"):
            record["id"] = _derive_id(position, record["name"])
        try:
            facilities.append(Facility(**record))
        except ValidationError as e:
            skipped += 1
            logger.warning("Skipping facility row %d: %s", position, e)

    if skipped:
        logger.info("Loaded %d facilities (%d rows skipped)", len(facilities), skipped)
    return facilities


def facilities_from_records(records: Iterable[dict]) -> list[Facility]:
    """Convert dict records (e.g. a database response) into Facility models."""
    records = list(records)
    if not records:
        return []
    return facilities_from_dataframe(pd.DataFrame.from_records(records))
