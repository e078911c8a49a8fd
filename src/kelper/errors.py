"""Pipeline exceptions.

Each error is scoped to one relationship or dataset; flows catch them per
relationship and record them in the run report instead of aborting the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    import pandas as pd


class KelperError(Exception):
    """Base class for pipeline errors."""


class MissingSourceData(KelperError):
    """A relationship's raw table is empty or unreadable."""

    def __init__(self, relationship: str, dataset: str) -> None:
        self.relationship = relationship
        self.dataset = dataset
        super().__init__(f"{relationship}: no rows in raw dataset '{dataset}'")


class AmbiguousCovariateJoin(KelperError):
    """Covariate join keys are not unique in the covariate table."""

    def __init__(self, keys: list[str], duplicates: int) -> None:
        self.keys = keys
        self.duplicates = duplicates
        super().__init__(
            f"Covariate table has {duplicates} duplicated rows for join keys {keys}"
        )


class SchemaMismatch(KelperError):
    """A transform references columns absent from its input table."""

    def __init__(self, table: str, missing: list[str]) -> None:
        self.table = table
        self.missing = missing
        super().__init__(f"{table}: missing columns {missing}")


class NonConvergentFit(KelperError):
    """The sampler finished but the posterior did not converge."""

    def __init__(self, relationship: str, max_rhat: float, divergences: int) -> None:
        self.relationship = relationship
        self.max_rhat = max_rhat
        self.divergences = divergences
        super().__init__(
            f"{relationship}: did not converge (max R-hat {max_rhat:.3f}, "
            f"{divergences} divergent transitions)"
        )


def require_columns(frame: pd.DataFrame, columns: Iterable[str], table: str) -> None:
    """Raise SchemaMismatch listing any of ``columns`` absent from ``frame``."""
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise SchemaMismatch(table, missing)
