"""Covariate table schema and cache constants."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

# Environmental covariates attached to every raw record
COVARIATE_COLUMNS: tuple[str, ...] = ("SST", "PAR_atDepth", "fetch", "logSlope")

# Join keys, in order; ``location`` is always used, the others when both sides have them
JOIN_KEYS: tuple[str, ...] = ("location", "depth", "grid_id")

# Column names produced by the grid extraction step
LEGACY_NAMES: dict[str, str] = {
    "sstDay_mn": "SST",
    "PAR_surface": "PAR",
    "KD_mn": "KD",
}

CACHE_PATH = Path("reference/covariates.csv")
CACHE_TTL = timedelta(days=90)
