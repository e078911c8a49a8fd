"""Fit one relationship's regression through an inference engine.

Failures propagate to the caller; ``flows.fit`` records them per
relationship so the other fits still run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from kelper.regression.priors import DEFAULT_PRIORS, PriorEntry, select_priors
from kelper.schemas import Family, FormulaVariant, RelationshipKey

if TYPE_CHECKING:
    import pandas as pd

    from kelper.regression.engine import InferenceEngine
    from kelper.regression.formula import Formula
    from kelper.regression.registry import ModelSpec


@dataclass(frozen=True)
class FittedModel:
    """Posterior of one relationship with the formulas and priors that produced it."""

    key: RelationshipKey
    formulas: tuple[Formula, ...]
    priors: tuple[PriorEntry, ...]
    family: Family
    posterior: Any


def fit_relationship(
    spec: ModelSpec,
    data: pd.DataFrame,
    engine: InferenceEngine,
    cores: int,
    variant: FormulaVariant = FormulaVariant.BEST,
    priors: tuple[PriorEntry, ...] = DEFAULT_PRIORS,
) -> FittedModel:
    """Fit one relationship on its standardized table.

    Args:
        spec: Model spec (formulas and family).
        data: Standardized table for the relationship.
        engine: Inference engine doing the sampling.
        cores: Sampler worker count.
        variant: Formula set to fit.
        priors: Candidate priors; the model's subset is picked by ``select_priors``.

    Returns:
        The fitted model.
    """
    formulas = spec.formulas(variant)
    chosen = select_priors(spec, variant, priors)
    posterior = engine.fit(formulas, data, chosen, spec.family, cores, name=spec.key.value)
    return FittedModel(
        key=spec.key,
        formulas=formulas,
        priors=chosen,
        family=spec.family,
        posterior=posterior,
    )
