"""Model specifications, one per relationship.

Each relationship has an exploratory (full) and a final (best) formula set;
``best`` is what gets fitted. The stem-density model is zero-inflated and
carries a second formula for the zero-inflation probability.

The transformer selects exactly the columns these formulas reference (see
``ModelSpec.columns``), so editing a formula here changes the prepared
dataset too.
"""

from __future__ import annotations

from dataclasses import dataclass

from kelper.regression.formula import Formula
from kelper.schemas import Family, FormulaVariant, RelationshipKey


@dataclass(frozen=True)
class ModelSpec:
    """Formulas and likelihood family for one relationship."""

    key: RelationshipKey
    full: Formula
    best: Formula
    family: Family = Family.GAUSSIAN
    full_zi: Formula | None = None
    best_zi: Formula | None = None

    def formulas(self, variant: FormulaVariant = FormulaVariant.BEST) -> tuple[Formula, ...]:
        """Conditional formula, followed by the zero-inflation formula if any."""
        if variant == FormulaVariant.FULL:
            main, zi = self.full, self.full_zi
        else:
            main, zi = self.best, self.best_zi
        return (main, zi) if zi is not None else (main,)

    def columns(self, variant: FormulaVariant = FormulaVariant.BEST) -> list[str]:
        """Distinct columns referenced by the variant's formulas."""
        names: dict[str, None] = {}
        for formula in self.formulas(variant):
            names.update(dict.fromkeys(formula.variables))
        return list(names)

    def has_random_intercept(self, variant: FormulaVariant = FormulaVariant.BEST) -> bool:
        return any(f.has_random_intercept for f in self.formulas(variant))

    @property
    def response(self) -> str:
        if self.best.response is None:
            msg = f"{self.key.value}: best formula has no response"
            raise ValueError(msg)
        return self.best.response

    @property
    def raw_response_columns(self) -> tuple[str, ...]:
        """Response columns kept on their original scale (count models)."""
        return () if self.family == Family.GAUSSIAN else (self.response,)


def _spec(
    key: RelationshipKey,
    full: str | tuple[str, str],
    best: str | tuple[str, str],
    family: Family = Family.GAUSSIAN,
) -> ModelSpec:
    if isinstance(full, tuple) and isinstance(best, tuple):
        return ModelSpec(
            key=key,
            full=Formula.parse(full[0]),
            best=Formula.parse(best[0]),
            family=family,
            full_zi=Formula.parse(full[1]),
            best_zi=Formula.parse(best[1]),
        )
    if not isinstance(full, str) or not isinstance(best, str):
        msg = f"{key.value}: full and best must both carry a zero-inflation formula or neither"
        raise ValueError(msg)
    return ModelSpec(key=key, full=Formula.parse(full), best=Formula.parse(best), family=family)


_DENSITY_FULL = "PAR_atDepth * lPAR_atDepth * SST * fetch * logSlope + (1 | location)"
# cor(logSlope, fetch) = 0.96; fetch is kept (lower correlation with SST)
_DENSITY_BEST = "PAR_atDepth + SST + fetch + PAR_atDepth:fetch + PAR_atDepth:SST + (1 | location)"

REGISTRY: dict[RelationshipKey, ModelSpec] = {
    spec.key: spec
    for spec in (
        _spec(
            RelationshipKey.STIPE_WEIGHT,
            "logWtStipe ~ logLenStipe * PAR_atDepth * lPAR_atDepth * SST * fetch + (1 | location)",
            # stipes are stouter where waves are stronger
            "logWtStipe ~ logLenStipe * fetch + (1 | location)",
        ),
        _spec(
            RelationshipKey.STIPE_FROND_WEIGHT,
            "logWtFrond ~ logLenStipe * PAR_atDepth * lPAR_atDepth * SST * fetch + (1 | location)",
            "logWtFrond ~ logLenStipe + lPAR_atDepth + lPAR_atDepth:logLenStipe"
            " + SST + SST:lPAR_atDepth + (1 | location)",
        ),
        _spec(
            RelationshipKey.FROND_AREA,
            "logAreaFrond ~ logWtFrond * PAR_atDepth * lPAR_atDepth * fetch + SST",
            # deeper water, thinner fronds
            "logAreaFrond ~ logWtFrond * PAR_atDepth",
        ),
        _spec(
            RelationshipKey.FROND_WEIGHT,
            "logWtFrond ~ logAreaFrond * PAR_atDepth * lPAR_atDepth * fetch + SST",
            "logWtFrond ~ logAreaFrond * PAR_atDepth",
        ),
        _spec(
            RelationshipKey.CANOPY_HEIGHT,
            "maxStipeLen ~ SST * PAR_atDepth * lPAR_atDepth * fetch",
            "maxStipeLen ~ SST",
        ),
        _spec(
            RelationshipKey.FROND_AREA_INDEX,
            "FAI ~ PAR_atDepth * lPAR_atDepth * SST * fetch",
            "FAI ~ PAR_atDepth + fetch",
        ),
        _spec(
            RelationshipKey.CANOPY_DENSITY,
            (f"N ~ {_DENSITY_FULL}", f"~ {_DENSITY_FULL}"),
            (f"N ~ {_DENSITY_BEST}", f"~ {_DENSITY_BEST}"),
            family=Family.ZERO_INFLATED_NEGBINOMIAL,
        ),
    )
}


def get_spec(key: RelationshipKey | str) -> ModelSpec:
    """Look up the spec for a relationship key (or its string value)."""
    return REGISTRY[RelationshipKey(key)]
