"""Tiered data store with freshness-aware caching.

Manages read/write of pipeline files organized into tiers:
  - reference/: Slow-changing inputs, 90-day TTL (cached covariate table)
  - derived/: Run outputs, always recomputed (datasets, scaling stats, fits)

JSON files are wrapped in a metadata envelope with ``valid_until`` so callers
can skip rebuilding inputs that are still fresh.

Tables (CSV) and fitted models (netCDF) use a sidecar ``.meta.json`` pattern
via ``write_frame()`` / ``write_artifact()``. The data file stays in its
native format and freshness metadata lives alongside it.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from collections.abc import Callable


class DataStore:
    """Manages read/write of cached data files with TTL."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.reference = base_dir / "reference"
        self.derived = base_dir / "derived"

    def write(
        self,
        path: Path,
        data: Any,
        source: str,
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Write data wrapped in a metadata envelope.

        Args:
            path: Relative path under base_dir (e.g. ``derived/scaling.json``).
            data: JSON-compatible payload to store under the ``data`` key.
            source: Producer identifier (e.g. ``"kelper.standardize"``).
            valid_until: Expiry timestamp. None means derived/no-cache.
            **params: Extra metadata fields (seed, variant, etc.).

        Returns:
            Absolute path of the written file.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        envelope = {"meta": _build_meta(source, valid_until, params), "data": data}
        with full.open("w") as f:
            json.dump(envelope, f, indent=2, default=str)

        return full

    def write_frame(
        self,
        path: Path,
        frame: pd.DataFrame,
        source: str,
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Store a table as CSV with sidecar metadata.

        Args:
            path: Relative destination path (e.g. ``derived/prepared/stipe_weight.csv``).
            frame: Table to write (index is not written).
            source: Producer identifier.
            valid_until: Expiry timestamp.
            **params: Extra metadata fields.

        Returns:
            Absolute path of the stored file.
        """
        return self.write_artifact(
            path,
            lambda full: frame.to_csv(full, index=False),
            source=source,
            valid_until=valid_until,
            rows=len(frame),
            **params,
        )

    def read_frame(self, path: Path) -> pd.DataFrame | None:
        """Read a CSV table from the store, or None if missing."""
        full = self._resolve(path)
        if not full.exists():
            return None
        return pd.read_csv(full)

    def write_artifact(
        self,
        path: Path,
        save: Callable[[Path], object],
        source: str,
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Store a non-JSON file written by ``save`` with sidecar metadata.

        ``save`` receives the absolute destination path. Use for fitted models
        (netCDF) and other binary formats.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        save(full)

        meta_path = full.with_suffix(full.suffix + ".meta.json")
        with meta_path.open("w") as f:
            json.dump({"meta": _build_meta(source, valid_until, params)}, f, indent=2, default=str)

        return full

    def _resolve(self, path: Path) -> Path:
        full = self.base / path if not path.is_absolute() else path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return full

    def _read_meta(self, full: Path) -> dict[str, Any]:
        """Read metadata from either a JSON envelope or a sidecar .meta.json."""
        sidecar = full.with_suffix(full.suffix + ".meta.json")
        if sidecar.exists():
            with sidecar.open() as f:
                result: dict[str, Any] = json.load(f)
            return result.get("meta", {})

        # Fall back to embedded metadata in JSON files
        if full.suffix == ".json" and full.exists():
            with full.open() as f:
                envelope: dict[str, Any] = json.load(f)
            return envelope.get("meta", {})

        return {}

    def read_meta(self, path: Path) -> dict[str, Any]:
        """Return stored metadata for ``path`` (empty if none)."""
        return self._read_meta(self._resolve(path))

    def is_fresh(self, path: Path) -> bool:
        """Check if a file exists and hasn't expired.

        Works with both JSON envelopes and sidecar .meta.json files.
        Returns False if the file is missing, has no ``valid_until``, or
        the expiry time has passed.
        """
        full = self._resolve(path)
        if not full.exists():
            return False

        meta = self._read_meta(full)
        valid_until = meta.get("valid_until")
        if valid_until is None:
            return False

        expiry = datetime.fromisoformat(valid_until)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return datetime.now(UTC) < expiry


def _build_meta(source: str, valid_until: datetime | None, params: dict[str, Any]) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "source": source,
        "written_at": datetime.now(UTC).isoformat(),
    }
    if valid_until is not None:
        meta["valid_until"] = valid_until.isoformat()
    if params:
        meta.update(params)
    return meta
