"""
Domain enums and run-report models.

Enums name the relationships, raw datasets, formula variants and likelihood
families; pydantic models describe the per-run report persisted as
``derived/manifest.json``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# =============================================================================
# Keys
# =============================================================================


class RelationshipKey(StrEnum):
    """The seven fitted relationships. Values double as transform node names."""

    STIPE_WEIGHT = "stipe_weight"
    STIPE_FROND_WEIGHT = "stipe_frond_weight"
    FROND_AREA = "frond_area"
    FROND_WEIGHT = "frond_weight"
    CANOPY_HEIGHT = "canopy_height"
    FROND_AREA_INDEX = "frond_area_index"
    CANOPY_DENSITY = "canopy_density"


class RawDataset(StrEnum):
    """Raw measurement tables. Values are directory and sheet names."""

    LENGTH_WEIGHT_STIPE = "length_weight_stipe"
    LENGTH_WEIGHT_FROND = "length_weight_frond"
    WEIGHT_AREA_FROND = "weight_area_frond"
    DEPTH_MAX_STIPE = "depth_max_stipe"
    DEPTH_FAI = "depth_fai"
    LENGTH_DENSITY = "length_density"
    DEPTH_DENSITY = "depth_density"


class FormulaVariant(StrEnum):
    """Exploratory (full) or final (best) formula set."""

    FULL = "full"
    BEST = "best"


class Family(StrEnum):
    """Likelihood families."""

    GAUSSIAN = "gaussian"
    ZERO_INFLATED_NEGBINOMIAL = "zero_inflated_negbinomial"


# =============================================================================
# Run report
# =============================================================================


class FitStatus(StrEnum):
    """Outcome of one relationship's pipeline."""

    COMPLETED = "completed"
    FAILED = "failed"


class Stage(StrEnum):
    """Pipeline stage where a failure happened."""

    PREPARE = "prepare"
    FIT = "fit"


class Failure(BaseModel):
    """A recorded per-relationship failure."""

    error: str = Field(..., description="Exception class name, e.g. MissingSourceData")
    message: str
    stage: Stage


class RunReport(BaseModel):
    """Outcome of a pipeline run, keyed by relationship."""

    seed: int
    workers: int
    variant: FormulaVariant = FormulaVariant.BEST
    started_at: datetime = Field(default_factory=datetime.now)
    status: dict[RelationshipKey, FitStatus] = Field(default_factory=dict)
    failures: dict[RelationshipKey, Failure] = Field(default_factory=dict)
    dropped_rows: dict[RelationshipKey, int] = Field(default_factory=dict)
    outputs: dict[str, str] = Field(default_factory=dict)

    def record_failure(self, key: RelationshipKey, exc: BaseException, stage: Stage) -> None:
        """Mark ``key`` failed with the given exception."""
        self.status[key] = FitStatus.FAILED
        self.failures[key] = Failure(error=type(exc).__name__, message=str(exc), stage=stage)

    @property
    def completed(self) -> list[RelationshipKey]:
        return [k for k, s in self.status.items() if s == FitStatus.COMPLETED]

    @property
    def failed(self) -> list[RelationshipKey]:
        return [k for k, s in self.status.items() if s == FitStatus.FAILED]
