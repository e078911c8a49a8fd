"""Covariate joins, per-relationship transforms, and standardization.

Each module turns raw tables into model-ready tables. This is the domain
logic layer.

Dependency rule: analysis/ imports datasource *models* and regression
*specs* only. It never reads files, writes to the store, or samples.

Modules:
  - covariate_join: raw table + covariate table -> table with SST/PAR/fetch/slope
  - transforms: hamilton DAG, one node per relationship (log transforms,
    frond subsample, canopy staging)
  - staging: canopy/subcanopy classification and stage reshaping helpers
  - prepare: runs the DAG per relationship, selects formula columns,
    drops incomplete rows
  - standardize: z-transform predictors, record center/scale

Adding a relationship transform
-------------------------------
1. Add a node function to ``transforms.py`` named after the relationship
   key; its parameters name the raw datasets (or other nodes) it needs.

2. Rules:
   - Pure pandas; return a new frame, never mutate inputs.
   - Check input columns with ``require_columns`` (raises SchemaMismatch).

3. Register the relationship's formulas in ``regression/registry.py``.
"""

from kelper.analysis.covariate_join import join_covariates, join_keys
from kelper.analysis.prepare import PreparedTables, prepare_dataset, transform_relationships
from kelper.analysis.standardize import ScaleEntry, standardize, unstandardize

__all__ = [
    "PreparedTables",
    "ScaleEntry",
    "join_covariates",
    "join_keys",
    "prepare_dataset",
    "standardize",
    "transform_relationships",
    "unstandardize",
]
