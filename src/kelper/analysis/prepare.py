"""Run the transform DAG per relationship and reduce to model-ready tables.

Each relationship is prepared independently: a missing raw table or a
schema problem in one relationship is recorded and the rest carry on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pandas as pd
from hamilton import base, driver

from kelper.analysis import transforms
from kelper.analysis.covariate_join import join_covariates
from kelper.config import DEFAULT_SUBSAMPLE_SIZE
from kelper.datasources.measurements import KEY_COLUMNS, require_sources
from kelper.errors import require_columns
from kelper.regression.registry import REGISTRY
from kelper.schemas import FormulaVariant, RelationshipKey

if TYPE_CHECKING:
    from collections.abc import Iterable

    from kelper.regression.registry import ModelSpec
    from kelper.schemas import RawDataset

# Node shared by relationships that are projections of one table
SHARED_NODES: dict[RelationshipKey, str] = {
    RelationshipKey.FROND_AREA: "frond_subsample",
    RelationshipKey.FROND_WEIGHT: "frond_subsample",
}


def build_driver() -> driver.Driver:
    """Hamilton driver over the transform nodes."""
    return driver.Driver({}, transforms, adapter=base.SimplePythonGraphAdapter())


def prepare_dataset(
    table: pd.DataFrame,
    spec: ModelSpec,
    variant: FormulaVariant = FormulaVariant.BEST,
) -> tuple[pd.DataFrame, int]:
    """Select the formula columns and drop incomplete rows.

    Args:
        table: Transformed table for one relationship.
        spec: The relationship's model spec.
        variant: Formula set whose variables are kept.

    Returns:
        ``(prepared, dropped)``: complete rows only, and how many were removed.

    Raises:
        SchemaMismatch: If a formula variable is absent from ``table``.
    """
    columns = list(dict.fromkeys([*spec.columns(variant), *KEY_COLUMNS, *spec.raw_response_columns]))
    require_columns(table, columns, spec.key.value)

    selected = table[columns]
    prepared = selected.dropna().reset_index(drop=True)
    for col in spec.raw_response_columns:
        prepared[col] = prepared[col].astype("int64")
    return prepared, len(selected) - len(prepared)


@dataclass
class PreparedTables:
    """Outcome of preparing every relationship."""

    prepared: dict[RelationshipKey, pd.DataFrame] = field(default_factory=dict)
    dropped: dict[RelationshipKey, int] = field(default_factory=dict)
    failures: dict[RelationshipKey, Exception] = field(default_factory=dict)
    seed: int = 1


def _joined_sources(
    key: RelationshipKey,
    raw_tables: dict[RawDataset, pd.DataFrame],
    covariates: pd.DataFrame,
) -> dict[str, pd.DataFrame]:
    sources = require_sources(key, raw_tables)
    return {
        dataset.value: join_covariates(table, covariates, name=dataset.value)
        for dataset, table in sources.items()
    }


def transform_relationships(
    raw_tables: dict[RawDataset, pd.DataFrame],
    covariates: pd.DataFrame,
    registry: dict[RelationshipKey, ModelSpec] = REGISTRY,
    keys: Iterable[RelationshipKey] | None = None,
    seed: int = 1,
    subsample_size: int = DEFAULT_SUBSAMPLE_SIZE,
    variant: FormulaVariant = FormulaVariant.BEST,
) -> PreparedTables:
    """Join covariates, run each relationship's node, and prepare its table.

    Args:
        raw_tables: Compiled raw tables keyed by dataset.
        covariates: Normalized covariate table.
        registry: Model specs to prepare.
        keys: Subset of relationships (default: all in ``registry``).
        seed: Seed for the frond subsample.
        subsample_size: Per-group cap for the frond subsample.
        variant: Formula set driving column selection.

    Returns:
        Prepared tables, dropped-row counts, and per-relationship failures.
    """
    dr = build_driver()
    result = PreparedTables(seed=seed)
    shared: dict[str, pd.DataFrame] = {}
    params = {"seed": seed, "subsample_size": subsample_size}

    for key in keys if keys is not None else registry:
        try:
            inputs = {**_joined_sources(key, raw_tables, covariates), **params}
            overrides: dict[str, pd.DataFrame] = {}
            shared_node = SHARED_NODES.get(key)
            if shared_node is not None:
                if shared_node not in shared:
                    shared[shared_node] = dr.execute(final_vars=[shared_node], inputs=inputs)[
                        shared_node
                    ]
                overrides[shared_node] = shared[shared_node]

            table = dr.execute(final_vars=[key.value], inputs=inputs, overrides=overrides)[
                key.value
            ]
            prepared, dropped = prepare_dataset(table, registry[key], variant)
        except Exception as e:
            result.failures[key] = e
            continue

        result.prepared[key] = prepared
        result.dropped[key] = dropped

    return result
