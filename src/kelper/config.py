"""Run configuration.

Two layers:
  - ``Settings``: environment-bound (``KELPER_WORKERS`` only). The worker count
    is handed to the sampler and nothing else.
  - ``PipelineConfig``: explicit run parameters (paths, seed, sampler options).
    Passed into flows as a value, never read from the environment.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from kelper.schemas import FormulaVariant

DEFAULT_WORKERS = 4

# Max rows kept per (reference, location, depth) group in the frond subsample
DEFAULT_SUBSAMPLE_SIZE = 20


class Settings(BaseSettings):
    """Environment settings."""

    model_config = SettingsConfigDict(env_prefix="KELPER_", extra="ignore")

    workers: int = Field(default=DEFAULT_WORKERS, ge=1, description="Sampler worker count")


@lru_cache
def get_settings() -> Settings:
    """Return the cached environment settings."""
    return Settings()


class PipelineConfig(BaseModel):
    """Parameters for one pipeline run.

    Attributes:
        data_dir: Base directory of the tiered store.
        raw_dir: Directory with one subdirectory of per-study CSVs per dataset.
        supplementary_path: Spreadsheet with one sheet per dataset (optional).
        covariate_path: Extracted covariate table (CSV).
        seed: Seed for the frond subsample and the sampler.
        subsample_size: Per-group cap for the frond subsample.
        selection_variant: Which formula set drives column selection.
        draws: Posterior draws per chain.
        tune: Tuning steps per chain.
        chains: Number of chains.
        target_accept: NUTS target acceptance rate.
        max_rhat: R-hat above which a fit is reported as non-convergent.
        max_divergences: Divergent transitions tolerated before failing a fit.
    """

    model_config = {"frozen": True}

    data_dir: Path = Path("data")
    raw_dir: Path = Path("data/raw/digitized")
    supplementary_path: Path | None = None
    covariate_path: Path = Path("data/covariates.csv")
    seed: int = 1
    subsample_size: int = Field(default=DEFAULT_SUBSAMPLE_SIZE, ge=1)
    selection_variant: FormulaVariant = FormulaVariant.BEST

    draws: int = Field(default=1000, ge=1)
    tune: int = Field(default=1000, ge=0)
    chains: int = Field(default=4, ge=1)
    target_accept: float = Field(default=0.8, gt=0, lt=1)
    max_rhat: float = Field(default=1.05, gt=1)
    max_divergences: int = Field(default=0, ge=0)
