"""Prior specifications.

The default set mirrors the brms priors used for every relationship::

    b         ~ normal(0, 10)     fixed-effect coefficients
    Intercept ~ normal(0, 10)
    sigma     ~ cauchy(0, 2)      residual scale (Gaussian only)
    sd        ~ cauchy(0, 2)      random-intercept scale

Which entries a model gets depends on its family and on whether its formulas
contain a random intercept.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from kelper.schemas import Family, FormulaVariant

if TYPE_CHECKING:
    from kelper.regression.registry import ModelSpec


class PriorClass(StrEnum):
    """Parameter classes a prior can target."""

    B = "b"
    INTERCEPT = "Intercept"
    SIGMA = "sigma"
    SD = "sd"


@dataclass(frozen=True)
class PriorEntry:
    """One prior: distribution name, its parameters, and the class it targets."""

    distribution: str
    params: tuple[float, ...]
    param_class: PriorClass

    def __str__(self) -> str:
        args = ", ".join(f"{p:g}" for p in self.params)
        return f"{self.distribution}({args})"

    def to_dict(self) -> dict[str, object]:
        return {"prior": str(self), "class": self.param_class.value}


DEFAULT_PRIORS: tuple[PriorEntry, ...] = (
    PriorEntry("normal", (0, 10), PriorClass.B),
    PriorEntry("normal", (0, 10), PriorClass.INTERCEPT),
    PriorEntry("cauchy", (0, 2), PriorClass.SIGMA),
    PriorEntry("cauchy", (0, 2), PriorClass.SD),
)


def select_priors(
    spec: ModelSpec,
    variant: FormulaVariant = FormulaVariant.BEST,
    priors: tuple[PriorEntry, ...] = DEFAULT_PRIORS,
) -> tuple[PriorEntry, ...]:
    """Pick the prior entries a model uses.

    - Non-Gaussian families have no residual scale: ``sigma`` is dropped.
    - Formulas without a random intercept have no group scale: ``sd`` is dropped.
      This is read from the formulas themselves, not from a flag.
    """
    dropped: set[PriorClass] = set()
    if spec.family != Family.GAUSSIAN:
        dropped.add(PriorClass.SIGMA)
    if not spec.has_random_intercept(variant):
        dropped.add(PriorClass.SD)
    return tuple(p for p in priors if p.param_class not in dropped)
