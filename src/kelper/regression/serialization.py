"""JSON-ready dicts for formulas, priors and scaling statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kelper.analysis.standardize import ScaleEntry
    from kelper.regression.fitter import FittedModel
    from kelper.regression.priors import PriorEntry
    from kelper.regression.registry import ModelSpec
    from kelper.schemas import FormulaVariant, RelationshipKey


def formulas_to_dict(
    specs: dict[RelationshipKey, ModelSpec],
    variant: FormulaVariant,
) -> dict[str, list[str]]:
    """Rendered formulas per relationship, conditional formula first."""
    return {key.value: [str(f) for f in spec.formulas(variant)] for key, spec in specs.items()}


def priors_to_list(priors: tuple[PriorEntry, ...]) -> list[dict[str, object]]:
    return [p.to_dict() for p in priors]


def scaling_to_dict(
    stats: dict[RelationshipKey, dict[str, ScaleEntry]],
) -> dict[str, dict[str, dict[str, float]]]:
    """``{key: {column: {center, scale}}}``."""
    return {
        key.value: {col: entry.to_dict() for col, entry in entries.items()}
        for key, entries in stats.items()
    }


def fit_summary(fit: FittedModel) -> dict[str, Any]:
    """Formulas, family and priors of a fitted model (stored next to its posterior)."""
    return {
        "key": fit.key.value,
        "family": fit.family.value,
        "formulas": [str(f) for f in fit.formulas],
        "priors": priors_to_list(fit.priors),
    }
