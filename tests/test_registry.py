"""Tests for the model registry and prior selection."""

from __future__ import annotations

import pytest

from kelper.regression.formula import Formula
from kelper.regression.priors import DEFAULT_PRIORS, PriorClass, select_priors
from kelper.regression.registry import REGISTRY, ModelSpec, _spec, get_spec
from kelper.schemas import Family, FormulaVariant, RelationshipKey


class TestRegistry:
    """Test the static model registry."""

    def test_every_relationship_registered(self) -> None:
        assert set(REGISTRY) == set(RelationshipKey)

    def test_get_spec_accepts_string(self) -> None:
        assert get_spec("canopy_height").best == Formula.parse("maxStipeLen ~ SST")

    def test_get_spec_unknown_key(self) -> None:
        with pytest.raises(ValueError):
            get_spec("nope")

    def test_only_density_is_zero_inflated(self) -> None:
        families = {k: s.family for k, s in REGISTRY.items()}
        assert families.pop(RelationshipKey.CANOPY_DENSITY) == Family.ZERO_INFLATED_NEGBINOMIAL
        assert set(families.values()) == {Family.GAUSSIAN}

    def test_density_has_two_formulas(self) -> None:
        spec = REGISTRY[RelationshipKey.CANOPY_DENSITY]
        main, zi = spec.formulas()
        assert main.response == "N"
        assert zi.response is None
        assert zi.terms == main.terms

    def test_best_columns_for_stipe_weight(self) -> None:
        spec = REGISTRY[RelationshipKey.STIPE_WEIGHT]
        assert spec.columns() == ["logWtStipe", "logLenStipe", "fetch", "location"]

    def test_full_columns_are_superset_of_best(self) -> None:
        for spec in REGISTRY.values():
            assert set(spec.columns(FormulaVariant.BEST)) <= set(spec.columns(FormulaVariant.FULL))

    def test_raw_response_only_for_counts(self) -> None:
        assert REGISTRY[RelationshipKey.CANOPY_DENSITY].raw_response_columns == ("N",)
        assert REGISTRY[RelationshipKey.FROND_AREA].raw_response_columns == ()

    def test_response_required(self) -> None:
        spec = ModelSpec(
            key=RelationshipKey.FROND_AREA,
            full=Formula.parse("~ x"),
            best=Formula.parse("~ x"),
        )
        with pytest.raises(ValueError, match="no response"):
            _ = spec.response

    def test_zero_inflation_formula_on_one_side_only(self) -> None:
        with pytest.raises(ValueError, match="zero-inflation"):
            _spec(RelationshipKey.CANOPY_DENSITY, ("N ~ x", "~ x"), "N ~ x")


class TestSelectPriors:
    """Test choosing priors from formula contents."""

    def test_gaussian_with_random_intercept_keeps_all(self) -> None:
        priors = select_priors(REGISTRY[RelationshipKey.STIPE_WEIGHT])
        assert priors == DEFAULT_PRIORS

    def test_no_random_intercept_drops_sd(self) -> None:
        priors = select_priors(REGISTRY[RelationshipKey.CANOPY_HEIGHT])
        classes = [p.param_class for p in priors]
        assert PriorClass.SD not in classes
        assert classes == [PriorClass.B, PriorClass.INTERCEPT, PriorClass.SIGMA]

    def test_zero_inflated_drops_sigma(self) -> None:
        priors = select_priors(REGISTRY[RelationshipKey.CANOPY_DENSITY])
        classes = {p.param_class for p in priors}
        assert classes == {PriorClass.B, PriorClass.INTERCEPT, PriorClass.SD}

    def test_decided_by_formula_not_key(self) -> None:
        spec = ModelSpec(
            key=RelationshipKey.CANOPY_HEIGHT,
            full=Formula.parse("maxStipeLen ~ SST + (1 | location)"),
            best=Formula.parse("maxStipeLen ~ SST + (1 | location)"),
        )
        classes = {p.param_class for p in select_priors(spec)}
        assert PriorClass.SD in classes

    def test_prior_renders_like_brms(self) -> None:
        assert [str(p) for p in DEFAULT_PRIORS] == [
            "normal(0, 10)",
            "normal(0, 10)",
            "cauchy(0, 2)",
            "cauchy(0, 2)",
        ]
        assert DEFAULT_PRIORS[2].to_dict() == {"prior": "cauchy(0, 2)", "class": "sigma"}
