"""Z-score standardization with recorded center and scale.

``standardize`` returns the scaled frame and the statistics needed to undo
it, so fitted coefficients can be read back on the original scale::

    scaled, stats = standardize(prepared, spec)
    restored = unstandardize(scaled, stats)   # equals prepared (within float tolerance)

Key columns and the raw count response are never scaled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from kelper.datasources.measurements import KEY_COLUMNS

if TYPE_CHECKING:
    from kelper.regression.registry import ModelSpec


@dataclass(frozen=True)
class ScaleEntry:
    """Center (mean) and scale (sample standard deviation) of one column."""

    center: float
    scale: float

    def to_dict(self) -> dict[str, float]:
        return {"center": self.center, "scale": self.scale}


def scaled_columns(frame: pd.DataFrame, spec: ModelSpec) -> list[str]:
    """Numeric columns that get standardized, in frame order."""
    excluded = {*KEY_COLUMNS, *spec.raw_response_columns}
    return [
        col
        for col in frame.columns
        if col not in excluded and pd.api.types.is_numeric_dtype(frame[col])
    ]


def standardize(
    prepared: pd.DataFrame,
    spec: ModelSpec,
) -> tuple[pd.DataFrame, dict[str, ScaleEntry]]:
    """Center and scale every numeric non-key column.

    A column with zero (or undefined) spread standardizes to 0 and records a
    scale of 0.0.

    Args:
        prepared: Complete-case table from ``prepare_dataset``.
        spec: The relationship's model spec (decides the raw response).

    Returns:
        ``(standardized, stats)`` keyed by column name.
    """
    scaled = prepared.copy()
    stats: dict[str, ScaleEntry] = {}
    for col in scaled_columns(prepared, spec):
        values = prepared[col].astype(float)
        center = float(values.mean())
        scale = float(values.std(ddof=1))
        # A single row has no sample spread; record it like a constant column
        if not (np.isfinite(scale) and scale > 0):
            scale = 0.0
        stats[col] = ScaleEntry(center=center, scale=scale)
        scaled[col] = (values - center) / scale if scale > 0 else 0.0

    # Count responses stay exact integers
    for col in spec.raw_response_columns:
        scaled[col] = prepared[col]
    return scaled, stats


def unstandardize(frame: pd.DataFrame, stats: dict[str, ScaleEntry]) -> pd.DataFrame:
    """Invert ``standardize`` for the columns in ``stats``."""
    restored = frame.copy()
    for col, entry in stats.items():
        if col not in restored.columns:
            continue
        scale = entry.scale if np.isfinite(entry.scale) and entry.scale > 0 else 0.0
        restored[col] = restored[col] * scale + entry.center
    return restored
