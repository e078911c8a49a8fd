"""Load the covariate table, caching a normalized copy in the reference tier."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from kelper.datasources.covariates.models import CACHE_PATH, CACHE_TTL, LEGACY_NAMES
from kelper.errors import SchemaMismatch

if TYPE_CHECKING:
    from pathlib import Path

    from kelper.store import DataStore


def normalize_covariates(frame: pd.DataFrame) -> pd.DataFrame:
    """Rename legacy grid columns and derive ``logSlope`` from ``slope``.

    Raises:
        SchemaMismatch: If the table has no ``location`` column.
    """
    if "location" not in frame.columns:
        raise SchemaMismatch("covariates", ["location"])

    frame = frame.rename(columns=LEGACY_NAMES)
    if "logSlope" not in frame.columns and "slope" in frame.columns:
        frame = frame.assign(logSlope=np.log(frame["slope"]))
    return frame


class CovariateStore:
    """Covariate table with a freshness-checked cache in the data store.

    The cached copy is reused while it is fresh and was built from the same
    source file (path and modification time).
    """

    def __init__(self, store: DataStore, source_path: Path) -> None:
        self.store = store
        self.source_path = source_path
        self._table: pd.DataFrame | None = None

    def _cache_matches_source(self) -> bool:
        meta = self.store.read_meta(CACHE_PATH)
        return meta.get("source") == str(self.source_path) and meta.get(
            "source_mtime"
        ) == self._source_mtime()

    def _source_mtime(self) -> float | None:
        return self.source_path.stat().st_mtime if self.source_path.exists() else None

    def load(self) -> pd.DataFrame:
        """Return the normalized covariate table, reading the cache when fresh.

        Raises:
            FileNotFoundError: If there is no fresh cache and the source is missing.
        """
        if self._table is not None:
            return self._table

        if self.store.is_fresh(CACHE_PATH) and self._cache_matches_source():
            cached = self.store.read_frame(CACHE_PATH)
            if cached is not None:
                self._table = cached
                return cached

        if not self.source_path.exists():
            msg = f"Covariate table not found: {self.source_path}"
            raise FileNotFoundError(msg)

        table = normalize_covariates(pd.read_csv(self.source_path))
        self.store.write_frame(
            CACHE_PATH,
            table,
            source=str(self.source_path),
            valid_until=datetime.now(UTC) + CACHE_TTL,
            source_mtime=self._source_mtime(),
        )
        self._table = table
        return table
