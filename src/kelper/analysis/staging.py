"""Canopy staging for the stem-density relationship.

Individuals are staged within each ``(location, PAR_atDepth)`` group: the top
third of the group's stipe-length range is canopy, the rest subcanopy::

    top33 = stipeMin + 2/3 * (stipeMax - stipeMin)
    stage = "canopy" if lengthStipe >= top33 else "subcanopy"

Per-depth density tables already report densities by stage; they are reshaped
to one row per stage so both sources can be stacked.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from kelper.errors import require_columns

CANOPY = "canopy"
SUBCANOPY = "subcanopy"
RECRUITS = "recruits"

STAGE_GROUP_COLUMNS: tuple[str, ...] = ("location", "PAR_atDepth")

# Columns identifying one density record after staging
DENSITY_GROUP_COLUMNS: tuple[str, ...] = (
    "location",
    "reference",
    "id",
    "habitat",
    "SST",
    "PAR_atDepth",
    "fetch",
    "logSlope",
    "stage",
)

# Per-depth table density columns -> stage label
DEPTH_STAGE_COLUMNS: dict[str, str] = {
    "NperSqM": CANOPY,
    "N_subcanopy": SUBCANOPY,
    "N_recruits": RECRUITS,
}

DEPTH_ID_COLUMNS: tuple[str, ...] = (
    "location",
    "reference",
    "id",
    "SST",
    "PAR_atDepth",
    "fetch",
    "logSlope",
)


def classify_stages(frame: pd.DataFrame) -> pd.DataFrame:
    """Add ``stipeMin``, ``stipeMax``, ``top33`` and ``stage`` per individual.

    A missing length anywhere in a group leaves the whole group without a stage.
    """
    require_columns(frame, [*STAGE_GROUP_COLUMNS, "lengthStipe"], "length_density")

    grouped = frame.groupby(list(STAGE_GROUP_COLUMNS), dropna=False)["lengthStipe"]
    stipe_min = grouped.transform(lambda s: s.min(skipna=False))
    stipe_max = grouped.transform(lambda s: s.max(skipna=False))
    top33 = (stipe_max - stipe_min) * 2 / 3 + stipe_min

    length = frame["lengthStipe"]
    stage = pd.Series(np.where(length >= top33, CANOPY, SUBCANOPY), index=frame.index)
    stage = stage.where(length.notna() & top33.notna())

    return frame.assign(stipeMin=stipe_min, stipeMax=stipe_max, top33=top33, stage=stage)


def sum_stage_density(staged: pd.DataFrame) -> pd.DataFrame:
    """Sum ``NperSqM`` per density record and stage (missing values propagate)."""
    require_columns(staged, [*DENSITY_GROUP_COLUMNS, "NperSqM"], "length_density")
    return (
        staged.groupby(list(DENSITY_GROUP_COLUMNS), dropna=False)["NperSqM"]
        .agg(lambda s: s.sum(skipna=False))
        .reset_index()
    )


def melt_depth_stages(frame: pd.DataFrame) -> pd.DataFrame:
    """Reshape the per-depth table to one row per (record, stage)."""
    require_columns(frame, [*DEPTH_STAGE_COLUMNS, *DEPTH_ID_COLUMNS], "depth_density")
    wide = frame[[*DEPTH_STAGE_COLUMNS, *DEPTH_ID_COLUMNS]].rename(columns=DEPTH_STAGE_COLUMNS)
    return wide.melt(
        id_vars=list(DEPTH_ID_COLUMNS),
        value_vars=list(DEPTH_STAGE_COLUMNS.values()),
        var_name="stage",
        value_name="NperSqM",
    )
