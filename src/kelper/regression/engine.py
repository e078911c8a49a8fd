"""Inference engines.

An engine turns formulas, data, priors and a family into a posterior. The
pipeline only talks to the ``InferenceEngine`` protocol, so tests can swap
in a fake that records its calls instead of sampling.

``PyMCEngine`` builds a PyMC model per fit:

    Intercept + X @ b + sd * z[group]      linear predictor (non-centered)
    y ~ Normal(mu, sigma)                  Gaussian family, identity link
    y ~ ZINB(psi = 1 - invlogit(zi_eta),   zero-inflated negative binomial,
             mu = exp(eta), alpha)         log link for the mean

Zero-inflation parameters carry a ``zi_`` prefix. The zero-inflation
intercept gets a logistic(0, 1) prior and the NB shape a gamma(0.01, 0.01)
prior, as brms does by default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import arviz as az
import numpy as np
import pymc as pm

from kelper.errors import NonConvergentFit
from kelper.regression.design import build_design, response_vector
from kelper.regression.priors import PriorClass, PriorEntry
from kelper.schemas import Family

if TYPE_CHECKING:
    import pandas as pd

    from kelper.regression.design import DesignMatrices
    from kelper.regression.formula import Formula

ZI_INTERCEPT_PRIOR = PriorEntry("logistic", (0, 1), PriorClass.INTERCEPT)
SHAPE_PRIOR = (0.01, 0.01)

# Priors on scale parameters are truncated at zero
_SCALE_CLASSES = frozenset({PriorClass.SIGMA, PriorClass.SD})


class InferenceEngine(Protocol):
    """Fits one regression and returns its posterior."""

    def fit(
        self,
        formulas: tuple[Formula, ...],
        data: pd.DataFrame,
        priors: tuple[PriorEntry, ...],
        family: Family,
        cores: int,
        name: str = "model",
    ) -> Any: ...


def _prior(name: str, entry: PriorEntry, dims: str | None = None) -> Any:
    """Create the PyMC variable for one prior entry."""
    p = entry.params
    match entry.distribution:
        case "normal":
            return pm.Normal(name, mu=p[0], sigma=p[1], dims=dims)
        case "cauchy" if entry.param_class in _SCALE_CLASSES:
            return pm.HalfCauchy(name, beta=p[1], dims=dims)
        case "cauchy":
            return pm.Cauchy(name, alpha=p[0], beta=p[1], dims=dims)
        case "student_t" if entry.param_class in _SCALE_CLASSES:
            return pm.HalfStudentT(name, nu=p[0], sigma=p[2], dims=dims)
        case "student_t":
            return pm.StudentT(name, nu=p[0], mu=p[1], sigma=p[2], dims=dims)
        case "logistic":
            return pm.Logistic(name, mu=p[0], s=p[1], dims=dims)
        case _:
            msg = f"Unsupported prior distribution: {entry.distribution}"
            raise ValueError(msg)


def _by_class(priors: tuple[PriorEntry, ...]) -> dict[PriorClass, PriorEntry]:
    return {p.param_class: p for p in priors}


def _coords(prefix: str, formula: Formula, design: DesignMatrices) -> dict[str, list[str]]:
    coords: dict[str, list[str]] = {}
    if design.columns:
        coords[f"{prefix}coef"] = design.columns
    if formula.group is not None:
        coords[f"{prefix}{formula.group}"] = design.groups
    return coords


def _linear_predictor(
    prefix: str,
    formula: Formula,
    design: DesignMatrices,
    priors: dict[PriorClass, PriorEntry],
    intercept_prior: PriorEntry,
) -> Any:
    """Intercept + fixed effects + random intercept, inside the active model."""
    eta = _prior(f"{prefix}Intercept", intercept_prior)

    if design.columns:
        b = _prior(f"{prefix}b", priors[PriorClass.B], dims=f"{prefix}coef")
        eta = eta + pm.math.dot(design.X, b)

    if formula.group is not None:
        sd_prior = priors.get(PriorClass.SD)
        if sd_prior is None:
            msg = f"Formula has a random intercept but no 'sd' prior: {formula}"
            raise ValueError(msg)
        group_dim = f"{prefix}{formula.group}"
        sd = _prior(f"{prefix}sd_{formula.group}", sd_prior)
        z = pm.Normal(f"{prefix}z_{formula.group}", mu=0, sigma=1, dims=group_dim)
        effect = pm.Deterministic(f"{prefix}r_{formula.group}", sd * z, dims=group_dim)
        eta = eta + effect[design.group_idx]

    return eta


@dataclass
class PyMCEngine:
    """NUTS sampling with PyMC, checked for convergence with arviz.

    Attributes:
        draws: Posterior draws per chain.
        tune: Tuning steps per chain.
        chains: Number of chains.
        target_accept: NUTS target acceptance rate.
        seed: Sampler random seed.
        max_rhat: Largest acceptable R-hat over all parameters.
        max_divergences: Divergent transitions tolerated.
    """

    draws: int = 1000
    tune: int = 1000
    chains: int = 4
    target_accept: float = 0.8
    seed: int = 1
    max_rhat: float = 1.05
    max_divergences: int = 0

    def build_model(
        self,
        formulas: tuple[Formula, ...],
        data: pd.DataFrame,
        priors: tuple[PriorEntry, ...],
        family: Family,
    ) -> pm.Model:
        """Build (without sampling) the PyMC model for one regression.

        Raises:
            ValueError: On an unsupported family or prior, or a missing prior
                for a parameter the formulas need.
        """
        main = formulas[0]
        by_class = _by_class(priors)
        if PriorClass.INTERCEPT not in by_class or PriorClass.B not in by_class:
            msg = "Priors for 'Intercept' and 'b' are required"
            raise ValueError(msg)

        prefixes = ["", *("zi_" for _ in formulas[1:])]
        designs = [build_design(f, data) for f in formulas]
        coords: dict[str, list[str]] = {}
        for prefix, formula, design in zip(prefixes, formulas, designs, strict=True):
            coords.update(_coords(prefix, formula, design))

        y = response_vector(main, data)

        with pm.Model(coords=coords) as model:
            eta = _linear_predictor("", main, designs[0], by_class, by_class[PriorClass.INTERCEPT])

            if family == Family.GAUSSIAN:
                sigma_prior = by_class.get(PriorClass.SIGMA)
                if sigma_prior is None:
                    msg = "Gaussian family needs a 'sigma' prior"
                    raise ValueError(msg)
                sigma = _prior("sigma", sigma_prior)
                pm.Normal("y", mu=eta, sigma=sigma, observed=y.astype(float))

            elif family == Family.ZERO_INFLATED_NEGBINOMIAL:
                if len(formulas) < 2:
                    msg = "Zero-inflated family needs a zero-inflation formula"
                    raise ValueError(msg)
                zi_eta = _linear_predictor(
                    "zi_", formulas[1], designs[1], by_class, ZI_INTERCEPT_PRIOR
                )
                shape = pm.Gamma("shape", alpha=SHAPE_PRIOR[0], beta=SHAPE_PRIOR[1])
                pm.ZeroInflatedNegativeBinomial(
                    "y",
                    psi=1 - pm.math.invlogit(zi_eta),
                    mu=pm.math.exp(eta),
                    alpha=shape,
                    observed=y.astype(np.int64),
                )

            else:
                msg = f"Unsupported family: {family}"
                raise ValueError(msg)

        return model

    def fit(
        self,
        formulas: tuple[Formula, ...],
        data: pd.DataFrame,
        priors: tuple[PriorEntry, ...],
        family: Family,
        cores: int,
        name: str = "model",
    ) -> az.InferenceData:
        """Sample the posterior and check convergence.

        Raises:
            NonConvergentFit: If R-hat or the divergence count is over its limit.
        """
        model = self.build_model(formulas, data, priors, family)
        with model:
            idata = pm.sample(
                draws=self.draws,
                tune=self.tune,
                chains=self.chains,
                cores=cores,
                target_accept=self.target_accept,
                random_seed=self.seed,
                progressbar=False,
                return_inferencedata=True,
            )
        self.check_convergence(idata, name)
        return idata

    def check_convergence(self, idata: az.InferenceData, name: str) -> None:
        """Raise NonConvergentFit when the posterior fails the R-hat or divergence limits.

        R-hat needs at least two chains; with one chain only divergences count.
        """
        divergences = int(idata.sample_stats["diverging"].sum())
        max_rhat = float("nan")
        if idata.posterior.sizes.get("chain", 1) >= 2:
            rhat = az.rhat(idata)
            values = [float(rhat[v].max()) for v in rhat.data_vars]
            max_rhat = float(np.nanmax(values)) if values else float("nan")

        if divergences > self.max_divergences or max_rhat > self.max_rhat:
            raise NonConvergentFit(name, max_rhat, divergences)
