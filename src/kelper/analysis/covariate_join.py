"""Attach environmental covariates to raw measurement tables.

Left join on ``location`` (plus ``depth`` / ``grid_id`` when both tables
carry them). Unmatched rows keep missing covariates and are dropped later by
the completeness filter.
"""

from __future__ import annotations

import pandas as pd

from kelper.datasources.covariates.models import COVARIATE_COLUMNS, JOIN_KEYS
from kelper.errors import AmbiguousCovariateJoin, SchemaMismatch

_SUFFIX = "_covariate"


def join_keys(table: pd.DataFrame, covariates: pd.DataFrame) -> list[str]:
    """Join keys shared by both tables (``location`` always first)."""
    return ["location", *(k for k in JOIN_KEYS[1:] if k in table.columns and k in covariates.columns)]


def join_covariates(
    table: pd.DataFrame,
    covariates: pd.DataFrame,
    columns: tuple[str, ...] = COVARIATE_COLUMNS,
    name: str = "table",
) -> pd.DataFrame:
    """Left-join covariate columns onto a raw table.

    Covariates already present in ``table`` win; only their missing values
    are filled from the covariate table.

    Args:
        table: Raw measurement table with a ``location`` column.
        covariates: Covariate table keyed by location (+ depth/grid_id).
        columns: Covariate columns to attach.
        name: Table name used in error messages.

    Returns:
        New table with the same rows, in the same order, plus covariates.

    Raises:
        SchemaMismatch: If either table lacks ``location``.
        AmbiguousCovariateJoin: If the join keys are not unique in ``covariates``.
    """
    if "location" not in table.columns:
        raise SchemaMismatch(name, ["location"])
    if "location" not in covariates.columns:
        raise SchemaMismatch("covariates", ["location"])

    keys = join_keys(table, covariates)
    duplicates = int(covariates.duplicated(subset=keys).sum())
    if duplicates:
        raise AmbiguousCovariateJoin(keys, duplicates)

    available = [c for c in columns if c in covariates.columns]
    lookup = covariates[[*keys, *available]].astype({"location": "string"})
    left = table.astype({"location": "string"})

    merged = left.merge(lookup, on=keys, how="left", suffixes=("", _SUFFIX), validate="many_to_one")
    for col in available:
        joined = f"{col}{_SUFFIX}"
        if joined in merged.columns:
            merged[col] = merged[col].fillna(merged[joined])
            merged = merged.drop(columns=joined)
    return merged
