"""
Prefect flow that builds model-ready datasets.

Compiles the raw measurement tables, attaches covariates, runs the
per-relationship transforms, standardizes, and writes the prepared and
scaled tables plus their scaling statistics to ``derived/``.

Run locally:
    python -m kelper.flows.prepare
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from prefect import flow, task

from kelper.analysis import PreparedTables, ScaleEntry, standardize, transform_relationships
from kelper.config import PipelineConfig
from kelper.datasources.covariates import CovariateStore
from kelper.datasources.measurements import compile_datasets
from kelper.regression.registry import REGISTRY
from kelper.regression.serialization import scaling_to_dict
from kelper.store import DataStore

if TYPE_CHECKING:
    import pandas as pd

    from kelper.schemas import FormulaVariant, RawDataset, RelationshipKey

# Relative paths within the store
PREPARED_DIR = Path("derived/prepared")
SCALED_DIR = Path("derived/scaled")
SCALING_PATH = Path("derived/scaling.json")


@dataclass
class PreparedRun:
    """Everything the fit flow needs from the prepare flow."""

    tables: PreparedTables
    scaled: dict[RelationshipKey, pd.DataFrame] = field(default_factory=dict)
    stats: dict[RelationshipKey, dict[str, ScaleEntry]] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)


def get_store(config: PipelineConfig) -> DataStore:
    """Data store rooted at the run's data directory."""
    return DataStore(config.data_dir)


@task(name="load-covariates")
def load_covariates(store: DataStore, covariate_path: Path) -> pd.DataFrame:
    """Load the covariate table, reusing the reference-tier cache when fresh."""
    return CovariateStore(store, covariate_path).load()


@task(name="compile-datasets")
def compile_raw(raw_dir: Path, supplementary_path: Path | None) -> dict[RawDataset, pd.DataFrame]:
    """Merge per-study files into one table per raw dataset."""
    return compile_datasets(raw_dir, supplementary_path)


@task(name="transform-datasets")
def transform_datasets(
    raw_tables: dict[RawDataset, pd.DataFrame],
    covariates: pd.DataFrame,
    seed: int,
    subsample_size: int,
    variant: FormulaVariant,
) -> PreparedTables:
    """Join covariates and run every relationship's transform."""
    return transform_relationships(
        raw_tables,
        covariates,
        seed=seed,
        subsample_size=subsample_size,
        variant=variant,
    )


@task(name="standardize-datasets")
def standardize_datasets(
    prepared: dict[RelationshipKey, pd.DataFrame],
) -> tuple[dict[RelationshipKey, pd.DataFrame], dict[RelationshipKey, dict[str, ScaleEntry]]]:
    """Z-score each prepared table; keep the center/scale per column."""
    scaled: dict[RelationshipKey, pd.DataFrame] = {}
    stats: dict[RelationshipKey, dict[str, ScaleEntry]] = {}
    for key, table in prepared.items():
        scaled[key], stats[key] = standardize(table, REGISTRY[key])
    return scaled, stats


@task(name="save-datasets")
def save_datasets(
    store: DataStore,
    prepared: dict[RelationshipKey, pd.DataFrame],
    scaled: dict[RelationshipKey, pd.DataFrame],
    stats: dict[RelationshipKey, dict[str, ScaleEntry]],
    seed: int,
) -> dict[str, str]:
    """Write prepared and scaled tables plus scaling stats to ``derived/``.

    Returns:
        Output name -> absolute path, e.g. ``{"prepared/stipe_weight": "..."}``.
    """
    outputs: dict[str, str] = {}
    for key, table in prepared.items():
        path = store.write_frame(
            PREPARED_DIR / f"{key.value}.csv", table, source="kelper.prepare", seed=seed
        )
        outputs[f"prepared/{key.value}"] = str(path)
    for key, table in scaled.items():
        path = store.write_frame(
            SCALED_DIR / f"{key.value}.csv", table, source="kelper.standardize", seed=seed
        )
        outputs[f"scaled/{key.value}"] = str(path)

    path = store.write(SCALING_PATH, scaling_to_dict(stats), source="kelper.standardize", seed=seed)
    outputs["scaling"] = str(path)
    return outputs


@flow(name="prepare-datasets", log_prints=True)
def prepare_all(config: PipelineConfig | None = None) -> PreparedRun:
    """
    Build and save the model-ready dataset for every relationship.

    A relationship whose raw data is missing or malformed is reported and
    skipped; the others are still prepared.
    """
    config = config or PipelineConfig()
    store = get_store(config)

    print(f"Loading covariates from {config.covariate_path}...")
    covariates = load_covariates(store, config.covariate_path)
    print(f"Loaded {len(covariates)} covariate rows")

    print(f"Compiling raw datasets from {config.raw_dir}...")
    raw_tables = compile_raw(config.raw_dir, config.supplementary_path)
    for dataset, table in raw_tables.items():
        print(f"  {dataset.value}: {len(table)} rows")

    print(f"Transforming datasets (seed={config.seed})...")
    tables = transform_datasets(
        raw_tables,
        covariates,
        config.seed,
        config.subsample_size,
        config.selection_variant,
    )
    for key, table in tables.prepared.items():
        print(f"  {key.value}: {len(table)} rows ({tables.dropped[key]} incomplete dropped)")
    for key, exc in tables.failures.items():
        print(f"  {key.value}: FAILED ({type(exc).__name__}: {exc})")

    scaled, stats = standardize_datasets(tables.prepared)
    outputs = save_datasets(store, tables.prepared, scaled, stats, config.seed)
    print(f"Saved {len(tables.prepared)} datasets to {store.derived}")

    return PreparedRun(tables=tables, scaled=scaled, stats=stats, outputs=outputs)


if __name__ == "__main__":
    prepare_all()
