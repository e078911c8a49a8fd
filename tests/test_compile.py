"""Tests for compiling per-study measurement files."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pandas as pd
import pytest

from kelper.datasources.measurements import (
    compile_datasets,
    empty_table,
    read_study_files,
    read_supplementary,
    require_sources,
)
from kelper.errors import MissingSourceData
from kelper.schemas import RawDataset, RelationshipKey

if TYPE_CHECKING:
    from pathlib import Path


def write_study(raw_dir: Path, dataset: str, reference: str, frame: pd.DataFrame) -> None:
    """Write one study's CSV under ``raw_dir/<dataset>/``."""
    folder = raw_dir / dataset
    folder.mkdir(parents=True, exist_ok=True)
    frame.to_csv(folder / f"{reference}.csv", index=False)


class TestReadStudyFiles:
    """Test reading one dataset directory."""

    def test_tags_reference_from_file_name(self, tmp_path: Path) -> None:
        write_study(
            tmp_path, "depth_fai", "Kain1963", pd.DataFrame({"location": ["a"], "FAI": [2.0]})
        )
        frames = read_study_files(tmp_path / "depth_fai")
        assert len(frames) == 1
        assert frames[0]["reference"].tolist() == ["Kain1963"]

    def test_reference_column_wins(self, tmp_path: Path) -> None:
        frame = pd.DataFrame({"location": ["a", "b"], "reference": ["Other", None], "FAI": [1, 2]})
        write_study(tmp_path, "depth_fai", "File", frame)
        result = read_study_files(tmp_path / "depth_fai")[0]
        assert result["reference"].tolist() == ["Other", "File"]

    def test_generates_missing_ids(self, tmp_path: Path) -> None:
        frame = pd.DataFrame({"location": ["a", "a", "b"], "FAI": [1, 2, 3]})
        write_study(tmp_path, "depth_fai", "S1", frame)
        result = read_study_files(tmp_path / "depth_fai")[0]
        assert result["id"].tolist() == ["S1-1", "S1-2", "S1-3"]

    def test_keeps_existing_ids(self, tmp_path: Path) -> None:
        frame = pd.DataFrame({"location": ["a", "a"], "id": ["x", None], "FAI": [1, 2]})
        write_study(tmp_path, "depth_fai", "S1", frame)
        result = read_study_files(tmp_path / "depth_fai")[0]
        assert result["id"].tolist() == ["x", "S1-2"]

    def test_numeric_ids_with_gaps_stay_integers(self, tmp_path: Path) -> None:
        frame = pd.DataFrame({"location": ["a", "a", "a"], "id": [1, None, 12], "FAI": [1, 2, 3]})
        write_study(tmp_path, "depth_fai", "S1", frame)
        result = read_study_files(tmp_path / "depth_fai")[0]
        assert result["id"].tolist() == ["1", "S1-2", "12"]

    def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        assert read_study_files(tmp_path / "nothing") == []


class TestCompileDatasets:
    """Test merging study files into one table per dataset."""

    def test_concatenates_on_union_of_columns(self, tmp_path: Path) -> None:
        write_study(
            tmp_path,
            "length_weight_stipe",
            "A",
            pd.DataFrame({"location": ["x"], "lengthStipe": [50.0], "weightStipe": [30.0]}),
        )
        write_study(
            tmp_path,
            "length_weight_stipe",
            "B",
            pd.DataFrame(
                {"location": ["y"], "lengthStipe": [80.0], "weightStipe": [60.0], "SST": [11.0]}
            ),
        )

        tables = compile_datasets(tmp_path)

        table = tables[RawDataset.LENGTH_WEIGHT_STIPE]
        assert len(table) == 2
        assert table["reference"].tolist() == ["A", "B"]
        assert pd.isna(table.loc[0, "SST"])
        assert table.loc[1, "SST"] == 11.0

    def test_datasets_without_rows_are_absent(self, tmp_path: Path) -> None:
        write_study(
            tmp_path, "depth_fai", "A", pd.DataFrame({"location": ["x"], "FAI": [1.0]})
        )
        tables = compile_datasets(tmp_path)
        assert set(tables) == {RawDataset.DEPTH_FAI}

    def test_adds_supplementary_sheets(self, tmp_path: Path) -> None:
        raw_dir = tmp_path / "raw"
        write_study(raw_dir, "depth_fai", "A", pd.DataFrame({"location": ["x"], "FAI": [1.0]}))
        supplementary = tmp_path / "extra.xlsx"
        with pd.ExcelWriter(supplementary) as writer:
            pd.DataFrame({"location": ["y"], "FAI": [3.0]}).to_excel(
                writer, sheet_name="depth_fai", index=False
            )
            pd.DataFrame({"note": ["ignored"]}).to_excel(writer, sheet_name="README", index=False)

        tables = compile_datasets(raw_dir, supplementary)

        table = tables[RawDataset.DEPTH_FAI]
        assert table["reference"].tolist() == ["A", "extra"]
        assert table["FAI"].tolist() == [1.0, 3.0]

    def test_missing_supplementary_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_supplementary(tmp_path / "missing.xlsx")


class TestRequireSources:
    """Test selecting the raw tables a relationship needs."""

    def test_missing_required_dataset(self) -> None:
        with pytest.raises(MissingSourceData) as exc_info:
            require_sources(RelationshipKey.STIPE_WEIGHT, {})
        assert exc_info.value.relationship == "stipe_weight"
        assert exc_info.value.dataset == "length_weight_stipe"

    def test_empty_required_dataset(self) -> None:
        tables = {RawDataset.DEPTH_FAI: empty_table(RawDataset.DEPTH_FAI)}
        with pytest.raises(MissingSourceData):
            require_sources(RelationshipKey.FROND_AREA_INDEX, tables)

    def test_optional_dataset_filled_with_empty_table(self) -> None:
        length_density = pd.DataFrame(
            {"location": ["a"], "reference": ["r"], "id": ["r-1"], "lengthStipe": [10.0]}
        )
        sources = require_sources(
            RelationshipKey.CANOPY_DENSITY, {RawDataset.LENGTH_DENSITY: length_density}
        )
        depth = sources[RawDataset.DEPTH_DENSITY]
        assert depth.empty
        assert {"location", "depth", "N_subcanopy", "N_recruits"} <= set(depth.columns)
