"""Shared fixtures: a small covariate table, one raw table per dataset, and a fake engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
import pytest

from kelper.errors import NonConvergentFit
from kelper.schemas import RawDataset

if TYPE_CHECKING:
    from kelper.regression.formula import Formula
    from kelper.regression.priors import PriorEntry
    from kelper.schemas import Family


def with_keys(frame: pd.DataFrame, reference: str) -> pd.DataFrame:
    """Add ``reference`` and generated ``id`` columns."""
    return frame.assign(
        reference=reference,
        id=[f"{reference}-{i + 1}" for i in range(len(frame))],
    )


@pytest.fixture
def site_covariates() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "location": ["north", "south", "west"],
            "SST": [9.0, 12.0, 10.5],
            "PAR_atDepth": [20.0, 35.0, 27.0],
            "fetch": [1.5, 3.0, 2.2],
            "logSlope": [-1.0, -2.0, -1.4],
        }
    )


@pytest.fixture
def raw_tables() -> dict[RawDataset, pd.DataFrame]:
    """Compiled raw tables, covering every relationship."""
    rng = np.random.default_rng(0)
    locations = ["north", "south", "west"] * 4

    stipe = with_keys(
        pd.DataFrame(
            {
                "location": locations,
                "lengthStipe": rng.uniform(20, 120, 12),
                "weightStipe": rng.uniform(10, 400, 12),
            }
        ),
        "Kain1963",
    )
    stipe.loc[3, "weightStipe"] = np.nan

    frond = with_keys(
        pd.DataFrame(
            {
                "location": locations,
                "lengthStipe": rng.uniform(20, 120, 12),
                "weightFrond": rng.uniform(5, 200, 12),
            }
        ),
        "Sjotun1993",
    )

    big = pd.DataFrame(
        {
            "location": "north",
            "depth": 5,
            "weightFrond": rng.uniform(5, 200, 30),
            "areaFrond": rng.uniform(100, 3000, 30),
        }
    )
    small = pd.DataFrame(
        {
            "location": "south",
            "depth": 10,
            "weightFrond": rng.uniform(5, 200, 4),
            "areaFrond": rng.uniform(100, 3000, 4),
        }
    )
    weight_area = pd.concat(
        [with_keys(big, "Pedersen2012"), with_keys(small, "Smale2020")], ignore_index=True
    )

    max_stipe = with_keys(
        pd.DataFrame(
            {
                "location": ["north", "south", "west", "north"],
                "depth": [2, 4, 6, 8],
                "maxStipeLen": [140.0, 120.0, 95.0, 60.0],
            }
        ),
        "Kain1971",
    )

    fai = with_keys(
        pd.DataFrame(
            {
                "location": ["north", "south", "west", "west"],
                "depth": [2, 4, 6, 8],
                "FAI": [3.1, 2.4, 1.8, 0.9],
            }
        ),
        "Kain1971",
    )

    length_density = with_keys(
        pd.DataFrame(
            {
                "location": ["north"] * 5 + ["south"] * 5 + ["west"] * 5,
                "habitat": "forest",
                "lengthStipe": [2.0, 4.0, 6.0, 8.0, 10.0] * 3,
                "NperSqM": [1.0, 2.0, 0.0, 2.5, 3.5] * 3,
            }
        ),
        "Christie2003",
    )

    depth_density = with_keys(
        pd.DataFrame(
            {
                "location": ["north", "south"],
                "depth": [3, 9],
                "NperSqM": [7.4, 0.0],
                "N_subcanopy": [12.0, 4.0],
                "N_recruits": [30.0, 8.0],
            }
        ),
        "Kain1977",
    )

    return {
        RawDataset.LENGTH_WEIGHT_STIPE: stipe,
        RawDataset.LENGTH_WEIGHT_FROND: frond,
        RawDataset.WEIGHT_AREA_FROND: weight_area,
        RawDataset.DEPTH_MAX_STIPE: max_stipe,
        RawDataset.DEPTH_FAI: fai,
        RawDataset.LENGTH_DENSITY: length_density,
        RawDataset.DEPTH_DENSITY: depth_density,
    }



@dataclass
class FakePosterior:
    """Stands in for an arviz InferenceData."""

    name: str

    def to_netcdf(self, path: str) -> str:
        with open(path, "w") as f:
            f.write(self.name)
        return path


@dataclass
class FakeEngine:
    """Records fit calls instead of sampling; fails for the names in ``fail``."""

    fail: set[str] = field(default_factory=set)
    calls: list[dict[str, Any]] = field(default_factory=list)

    def fit(
        self,
        formulas: tuple[Formula, ...],
        data: pd.DataFrame,
        priors: tuple[PriorEntry, ...],
        family: Family,
        cores: int,
        name: str = "model",
    ) -> FakePosterior:
        self.calls.append(
            {
                "formulas": formulas,
                "data": data,
                "priors": priors,
                "family": family,
                "cores": cores,
                "name": name,
            }
        )
        if name in self.fail:
            raise NonConvergentFit(name, 1.3, 12)
        return FakePosterior(name)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()
