"""
Prefect flow that runs the whole pipeline: prepare datasets, fit models.

Each relationship is fitted in its own task call; a failed fit is recorded in
the run report and the remaining relationships still run. Writes, under
``derived/``:

    fits/<key>.nc        posterior (arviz netCDF) per completed fit
    formulas.json        fitted formulas per relationship
    manifest.json        run report (status, failures, seed, outputs)

Run locally:
    python -m kelper.flows.fit
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from prefect import flow, task

from kelper.config import PipelineConfig, get_settings
from kelper.flows.prepare import get_store, prepare_all
from kelper.regression.fitter import FittedModel, fit_relationship
from kelper.regression.registry import REGISTRY, get_spec
from kelper.regression.serialization import fit_summary, formulas_to_dict
from kelper.schemas import FitStatus, RunReport, Stage

if TYPE_CHECKING:
    import pandas as pd

    from kelper.regression.engine import InferenceEngine
    from kelper.regression.registry import ModelSpec
    from kelper.schemas import FormulaVariant
    from kelper.store import DataStore

FITS_DIR = Path("derived/fits")
FORMULAS_PATH = Path("derived/formulas.json")
MANIFEST_PATH = Path("derived/manifest.json")


def build_engine(config: PipelineConfig) -> InferenceEngine:
    """PyMC engine configured from the run's sampler options."""
    from kelper.regression.engine import PyMCEngine

    return PyMCEngine(
        draws=config.draws,
        tune=config.tune,
        chains=config.chains,
        target_accept=config.target_accept,
        seed=config.seed,
        max_rhat=config.max_rhat,
        max_divergences=config.max_divergences,
    )


@task(name="fit-regression")
def fit_regression(
    spec: ModelSpec,
    data: pd.DataFrame,
    engine: InferenceEngine,
    cores: int,
    variant: FormulaVariant,
) -> FittedModel:
    """Fit one relationship's regression."""
    return fit_relationship(spec, data, engine, cores, variant)


@task(name="save-fit")
def save_fit(store: DataStore, fit: FittedModel, seed: int) -> Path:
    """Write a posterior as netCDF with its formulas and priors in the sidecar."""
    return store.write_artifact(
        FITS_DIR / f"{fit.key.value}.nc",
        lambda full: fit.posterior.to_netcdf(str(full)),
        source="kelper.fit",
        seed=seed,
        **fit_summary(fit),
    )


@task(name="save-manifest")
def save_manifest(store: DataStore, report: RunReport) -> Path:
    """Write the run report."""
    return store.write(
        MANIFEST_PATH,
        report.model_dump(mode="json"),
        source="kelper.fit",
        seed=report.seed,
    )


@flow(name="fit-regressions", log_prints=True)
def run_pipeline(config: PipelineConfig | None = None) -> RunReport:
    """
    Prepare every dataset and fit every relationship.

    Returns the run report; relationships are either completed or failed,
    with the failure's kind, message and stage.
    """
    config = config or PipelineConfig()
    settings = get_settings()
    store = get_store(config)
    report = RunReport(
        seed=config.seed,
        workers=settings.workers,
        variant=config.selection_variant,
    )

    run = prepare_all(config)
    report.outputs.update(run.outputs)
    report.dropped_rows.update(run.tables.dropped)
    for key, exc in run.tables.failures.items():
        report.record_failure(key, exc, Stage.PREPARE)

    engine = build_engine(config)
    for key, data in run.scaled.items():
        print(f"Fitting {key.value} ({len(data)} rows, {settings.workers} workers)...")
        try:
            fit = fit_regression(
                get_spec(key), data, engine, settings.workers, config.selection_variant
            )
            path = save_fit(store, fit, config.seed)
        except Exception as e:
            print(f"  {key.value}: FAILED ({type(e).__name__}: {e})")
            report.record_failure(key, e, Stage.FIT)
            continue
        report.status[key] = FitStatus.COMPLETED
        report.outputs[f"fits/{key.value}"] = str(path)
        print(f"  {key.value}: saved to {path}")

    formulas_path = store.write(
        FORMULAS_PATH,
        formulas_to_dict(REGISTRY, config.selection_variant),
        source="kelper.registry",
        variant=config.selection_variant.value,
    )
    report.outputs["formulas"] = str(formulas_path)

    manifest_path = save_manifest(store, report)
    print(
        f"Run complete: {len(report.completed)} completed, {len(report.failed)} failed. "
        f"Manifest: {manifest_path}"
    )
    return report


if __name__ == "__main__":
    run_pipeline()
