"""Design matrices from structured formulas (no intercept column).

Interaction columns are element-wise products of their (standardized)
variables, matching R's model.matrix for numeric predictors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from kelper.errors import require_columns

if TYPE_CHECKING:
    from kelper.regression.formula import Formula


@dataclass
class DesignMatrices:
    """Fixed-effect matrix plus random-intercept group indices."""

    X: np.ndarray
    columns: list[str]
    group_idx: np.ndarray | None = None
    groups: list[str] = field(default_factory=list)


def build_design(formula: Formula, data: pd.DataFrame) -> DesignMatrices:
    """Build the fixed-effect matrix and group index for ``formula``.

    Raises:
        SchemaMismatch: If ``data`` lacks a referenced predictor or group.
    """
    require_columns(data, [*formula.predictors, *filter(None, [formula.group])], "design")

    n = len(data)
    columns: list[str] = []
    blocks: list[np.ndarray] = []
    for term in formula.terms:
        values = np.ones(n)
        for name in term:
            values = values * data[name].to_numpy(dtype=float)
        blocks.append(values)
        columns.append(":".join(term))
    X = np.column_stack(blocks) if blocks else np.empty((n, 0))

    if formula.group is None:
        return DesignMatrices(X=X, columns=columns)

    codes, uniques = pd.factorize(data[formula.group], sort=True)
    return DesignMatrices(
        X=X,
        columns=columns,
        group_idx=codes,
        groups=[str(u) for u in uniques],
    )


def response_vector(formula: Formula, data: pd.DataFrame) -> np.ndarray:
    """The response column as a float (or int, for counts) array."""
    if formula.response is None:
        msg = f"Formula has no response: {formula}"
        raise ValueError(msg)
    require_columns(data, [formula.response], "design")
    return data[formula.response].to_numpy()
