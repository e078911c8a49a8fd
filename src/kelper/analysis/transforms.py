"""Per-relationship transforms as a hamilton DAG.

Every public function here is a hamilton node. Parameter names are the
inputs a node depends on: raw dataset names (already joined with
covariates), other nodes, or the run parameters ``seed`` and
``subsample_size``. Node names match ``RelationshipKey`` values, so a
relationship is prepared with::

    dr.execute(final_vars=["stipe_weight"], inputs={...})

``frond_area`` and ``frond_weight`` read the same ``frond_subsample`` node;
the driver computes it once and passes it to both as an override.

Helpers that are not nodes start with an underscore or live in ``staging``.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from kelper.analysis.staging import (
    CANOPY,
    DEPTH_ID_COLUMNS,
    classify_stages,
    melt_depth_stages,
    sum_stage_density,
)
from kelper.errors import require_columns

# Groups within which the frond subsample is capped
FROND_GROUP_COLUMNS: tuple[str, ...] = ("reference", "location", "depth")

CM2_PER_M2 = 10_000


def _log(values: pd.Series) -> pd.Series:
    """Natural log, with non-positive values treated as missing."""
    return np.log(values.where(values > 0))


# =============================================================================
# Stipe allometry
# =============================================================================


def stipe_weight(length_weight_stipe: pd.DataFrame) -> pd.DataFrame:
    """Stipe weight vs stipe length, log-log."""
    require_columns(
        length_weight_stipe, ["weightStipe", "lengthStipe", "PAR_atDepth"], "length_weight_stipe"
    )
    return length_weight_stipe.assign(
        logWtStipe=_log(length_weight_stipe["weightStipe"]),
        logLenStipe=_log(length_weight_stipe["lengthStipe"]),
        lPAR_atDepth=_log(length_weight_stipe["PAR_atDepth"]),
    )


def stipe_frond_weight(length_weight_frond: pd.DataFrame) -> pd.DataFrame:
    """Frond weight vs stipe length, log-log."""
    require_columns(
        length_weight_frond, ["weightFrond", "lengthStipe", "PAR_atDepth"], "length_weight_frond"
    )
    return length_weight_frond.assign(
        logLenStipe=_log(length_weight_frond["lengthStipe"]),
        logWtFrond=_log(length_weight_frond["weightFrond"]),
        lPAR_atDepth=_log(length_weight_frond["PAR_atDepth"]),
    )


# =============================================================================
# Frond weight / area
# =============================================================================


def frond_subsample(
    weight_area_frond: pd.DataFrame,
    seed: int,
    subsample_size: int,
) -> pd.DataFrame:
    """Random subsample of at most ``subsample_size`` fronds per study, location and depth.

    Some studies report hundreds of fronds from one site; capping each group
    keeps them from dominating the fit. Rows are shuffled with a generator
    seeded from ``seed``, so the same seed always selects the same rows.
    Rows with a missing grouping value form their own group.
    """
    require_columns(
        weight_area_frond,
        [*FROND_GROUP_COLUMNS, "weightFrond", "areaFrond", "PAR_atDepth"],
        "weight_area_frond",
    )
    shuffled = weight_area_frond.sample(frac=1, random_state=np.random.default_rng(seed))
    subsample = (
        shuffled.groupby(list(FROND_GROUP_COLUMNS), dropna=False, sort=False)
        .head(subsample_size)
        .reset_index(drop=True)
    )
    return subsample.assign(
        logWtFrond=_log(subsample["weightFrond"]),
        logAreaFrond=_log(subsample["areaFrond"] / CM2_PER_M2),
        lPAR_atDepth=_log(subsample["PAR_atDepth"]),
    )


def frond_area(frond_subsample: pd.DataFrame) -> pd.DataFrame:
    """Frond area from frond weight. Same rows as ``frond_weight``."""
    return frond_subsample


def frond_weight(frond_subsample: pd.DataFrame) -> pd.DataFrame:
    """Frond weight from frond area. Same rows as ``frond_area``."""
    return frond_subsample


# =============================================================================
# Canopy structure
# =============================================================================


def canopy_height(depth_max_stipe: pd.DataFrame) -> pd.DataFrame:
    """Maximum stipe length by depth.

    Fitted without a random intercept, so every row shares one location.
    """
    require_columns(depth_max_stipe, ["maxStipeLen", "PAR_atDepth"], "depth_max_stipe")
    return depth_max_stipe.assign(
        location="a",
        lPAR_atDepth=_log(depth_max_stipe["PAR_atDepth"]),
    )


def frond_area_index(depth_fai: pd.DataFrame) -> pd.DataFrame:
    require_columns(depth_fai, ["FAI", "PAR_atDepth"], "depth_fai")
    return depth_fai.assign(lPAR_atDepth=_log(depth_fai["PAR_atDepth"]))


# =============================================================================
# Stem density
# =============================================================================


def canopy_stage_density(length_density: pd.DataFrame) -> pd.DataFrame:
    """Stage individuals by stipe length and sum their density per stage."""
    return sum_stage_density(classify_stages(length_density))


def depth_stage_density(depth_density: pd.DataFrame) -> pd.DataFrame:
    """Per-depth densities, one row per stage. Empty when there are none."""
    if depth_density.empty:
        return pd.DataFrame(columns=[*DEPTH_ID_COLUMNS, "stage", "NperSqM"])
    return melt_depth_stages(depth_density)


def canopy_density(
    canopy_stage_density: pd.DataFrame,
    depth_stage_density: pd.DataFrame,
) -> pd.DataFrame:
    """Canopy stems per square metre, as integer counts.

    Densities are rounded half to even to get counts for the count model.
    """
    frames = [f for f in (canopy_stage_density, depth_stage_density) if not f.empty]
    stacked = pd.concat(frames, ignore_index=True, sort=False)
    stacked = stacked.assign(
        N=stacked["NperSqM"].astype(float).round().astype("Int64"),
        lPAR_atDepth=_log(stacked["PAR_atDepth"].astype(float)),
    )
    return stacked[stacked["stage"] == CANOPY].reset_index(drop=True)
