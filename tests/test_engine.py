"""Tests for the PyMC engine: model structure and convergence checks (no sampling)."""

from __future__ import annotations

import arviz as az
import numpy as np
import pandas as pd
import pytest

from kelper.errors import NonConvergentFit, SchemaMismatch
from kelper.regression.design import build_design
from kelper.regression.engine import PyMCEngine
from kelper.regression.formula import Formula
from kelper.regression.priors import DEFAULT_PRIORS, PriorClass, select_priors
from kelper.regression.registry import REGISTRY
from kelper.schemas import Family, RelationshipKey


@pytest.fixture
def scaled() -> pd.DataFrame:
    rng = np.random.default_rng(0)
    n = 12
    return pd.DataFrame(
        {
            "logWtStipe": rng.normal(size=n),
            "logLenStipe": rng.normal(size=n),
            "fetch": rng.normal(size=n),
            "PAR_atDepth": rng.normal(size=n),
            "SST": rng.normal(size=n),
            "N": rng.integers(0, 5, size=n),
            "location": ["a", "b", "c"] * 4,
        }
    )


class TestBuildDesign:
    """Test design matrices."""

    def test_interaction_is_product(self, scaled: pd.DataFrame) -> None:
        design = build_design(Formula.parse("y ~ logLenStipe * fetch + (1 | location)"), scaled)
        assert design.columns == ["logLenStipe", "fetch", "logLenStipe:fetch"]
        np.testing.assert_allclose(
            design.X[:, 2], scaled["logLenStipe"].to_numpy() * scaled["fetch"].to_numpy()
        )
        assert design.groups == ["a", "b", "c"]
        assert design.group_idx.tolist() == [0, 1, 2] * 4

    def test_missing_column(self, scaled: pd.DataFrame) -> None:
        with pytest.raises(SchemaMismatch):
            build_design(Formula.parse("y ~ nope"), scaled)


class TestBuildModel:
    """Test the PyMC model built for each family."""

    def test_gaussian_with_random_intercept(self, scaled: pd.DataFrame) -> None:
        spec = REGISTRY[RelationshipKey.STIPE_WEIGHT]
        model = PyMCEngine().build_model(
            spec.formulas(), scaled, select_priors(spec), spec.family
        )
        names = set(model.named_vars)
        assert {"Intercept", "b", "sigma", "sd_location", "z_location", "y"} <= names
        assert model.coords["coef"] == ("logLenStipe", "fetch", "logLenStipe:fetch")

    def test_gaussian_without_group_has_no_sd(self, scaled: pd.DataFrame) -> None:
        spec = REGISTRY[RelationshipKey.CANOPY_HEIGHT]
        data = scaled.rename(columns={"logWtStipe": "maxStipeLen"})
        model = PyMCEngine().build_model(
            spec.formulas(), data, select_priors(spec), spec.family
        )
        assert not any(name.startswith("sd_") for name in model.named_vars)

    def test_zero_inflated_negative_binomial(self, scaled: pd.DataFrame) -> None:
        spec = REGISTRY[RelationshipKey.CANOPY_DENSITY]
        model = PyMCEngine().build_model(
            spec.formulas(), scaled, select_priors(spec), spec.family
        )
        names = set(model.named_vars)
        assert {"Intercept", "b", "zi_Intercept", "zi_b", "shape", "y"} <= names
        assert {"sd_location", "zi_sd_location"} <= names
        assert "sigma" not in names

    def test_random_intercept_without_sd_prior(self, scaled: pd.DataFrame) -> None:
        spec = REGISTRY[RelationshipKey.STIPE_WEIGHT]
        priors = tuple(p for p in DEFAULT_PRIORS if p.param_class != PriorClass.SD)
        with pytest.raises(ValueError, match="sd"):
            PyMCEngine().build_model(spec.formulas(), scaled, priors, Family.GAUSSIAN)


def inference_data(chains: int, diverging: int = 0, stuck: bool = False) -> az.InferenceData:
    """Posterior with two parameters; ``stuck`` gives chains disjoint values."""
    rng = np.random.default_rng(1)
    draws = 200
    b = rng.normal(size=(chains, draws))
    if stuck:
        b = b + np.arange(chains)[:, None] * 10
    flags = np.zeros((chains, draws), dtype=bool)
    flags.flat[:diverging] = True
    return az.from_dict(
        posterior={"b": b, "Intercept": rng.normal(size=(chains, draws))},
        sample_stats={"diverging": flags},
    )


class TestCheckConvergence:
    """Test R-hat and divergence limits."""

    def test_converged(self) -> None:
        PyMCEngine().check_convergence(inference_data(chains=4), "stipe_weight")

    def test_divergences_fail(self) -> None:
        with pytest.raises(NonConvergentFit) as exc_info:
            PyMCEngine().check_convergence(inference_data(chains=4, diverging=3), "frond_area")
        assert exc_info.value.divergences == 3
        assert exc_info.value.relationship == "frond_area"

    def test_divergences_within_limit(self) -> None:
        engine = PyMCEngine(max_divergences=5)
        engine.check_convergence(inference_data(chains=4, diverging=3), "frond_area")

    def test_high_rhat_fails(self) -> None:
        with pytest.raises(NonConvergentFit) as exc_info:
            PyMCEngine().check_convergence(inference_data(chains=4, stuck=True), "fai")
        assert exc_info.value.max_rhat > 1.05

    def test_single_chain_skips_rhat(self) -> None:
        PyMCEngine().check_convergence(inference_data(chains=1), "fai")
