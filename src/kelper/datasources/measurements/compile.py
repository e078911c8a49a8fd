"""Compile per-study measurement files into one table per raw dataset.

Layout::

    raw_dir/
    ├── length_weight_stipe/
    │   ├── Kain1963.csv        # file stem = source study (``reference``)
    │   └── Smith2021.csv
    └── depth_fai/
        └── ...

A supplementary spreadsheet may add rows: one sheet per dataset name.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

from kelper.datasources.measurements.models import KEY_COLUMNS, RAW_SCHEMAS, RELATIONSHIP_SOURCES
from kelper.errors import MissingSourceData
from kelper.schemas import RawDataset

if TYPE_CHECKING:
    from kelper.schemas import RelationshipKey


def _tag_reference(frame: pd.DataFrame, reference: str) -> pd.DataFrame:
    """Fill the ``reference`` column with ``reference`` where it is missing."""
    frame = frame.copy()
    if "reference" in frame.columns:
        frame["reference"] = frame["reference"].fillna(reference).astype(str)
    else:
        frame["reference"] = reference
    return frame


def _assign_ids(frame: pd.DataFrame) -> pd.DataFrame:
    """Give rows without an ``id`` a generated ``<reference>-<n>`` id."""
    frame = frame.copy()
    generated = frame["reference"] + "-" + (frame.groupby("reference").cumcount() + 1).astype(str)
    if "id" in frame.columns:
        ids = frame["id"]
        # Integer ids with gaps are read as float; keep them as "1", not "1.0"
        if pd.api.types.is_float_dtype(ids) and (ids.dropna() % 1 == 0).all():
            ids = ids.astype("Int64")
        frame["id"] = ids.astype("string").fillna(generated).astype(str)
    else:
        frame["id"] = generated
    return frame


def read_study_files(dataset_dir: Path) -> list[pd.DataFrame]:
    """Read every ``*.csv`` in a dataset directory, tagged with its study.

    Args:
        dataset_dir: Directory of per-study CSV files for one dataset.

    Returns:
        One frame per file, sorted by file name. Empty if the directory is missing.
    """
    if not dataset_dir.is_dir():
        return []
    frames: list[pd.DataFrame] = []
    for csv_path in sorted(dataset_dir.glob("*.csv")):
        frame = pd.read_csv(csv_path)
        frames.append(_assign_ids(_tag_reference(frame, csv_path.stem)))
    return frames


def read_supplementary(path: Path) -> dict[RawDataset, pd.DataFrame]:
    """Read the supplementary spreadsheet, one sheet per dataset.

    Sheets whose name is not a dataset are ignored. Rows without a
    ``reference`` are tagged with the spreadsheet's file stem.

    Raises:
        FileNotFoundError: If the spreadsheet doesn't exist.
    """
    if not path.exists():
        msg = f"Supplementary spreadsheet not found: {path}"
        raise FileNotFoundError(msg)

    sheets: dict[str, pd.DataFrame] = pd.read_excel(path, sheet_name=None)
    known = {d.value: d for d in RawDataset}
    result: dict[RawDataset, pd.DataFrame] = {}
    for name, frame in sheets.items():
        dataset = known.get(name.strip())
        if dataset is None or frame.empty:
            continue
        result[dataset] = _assign_ids(_tag_reference(frame, path.stem))
    return result


def compile_datasets(
    raw_dir: Path,
    supplementary_path: Path | None = None,
) -> dict[RawDataset, pd.DataFrame]:
    """Merge per-study files (and the supplementary sheets) per raw dataset.

    Files for one dataset are concatenated on the union of their columns;
    columns a study doesn't report are left missing.

    Args:
        raw_dir: Directory with one subdirectory per dataset.
        supplementary_path: Optional spreadsheet with extra rows.

    Returns:
        Mapping of dataset -> compiled table, for datasets with at least one row.
    """
    supplementary = read_supplementary(supplementary_path) if supplementary_path else {}

    tables: dict[RawDataset, pd.DataFrame] = {}
    for dataset in RawDataset:
        frames = read_study_files(raw_dir / dataset.value)
        if dataset in supplementary:
            frames.append(supplementary[dataset])
        frames = [f for f in frames if not f.empty]
        if not frames:
            continue
        tables[dataset] = pd.concat(frames, ignore_index=True, sort=False)
    return tables


def empty_table(dataset: RawDataset) -> pd.DataFrame:
    """A zero-row table with the dataset's key and measurement columns."""
    return pd.DataFrame(columns=[*KEY_COLUMNS, *RAW_SCHEMAS[dataset]])


def require_sources(
    key: RelationshipKey,
    tables: dict[RawDataset, pd.DataFrame],
) -> dict[RawDataset, pd.DataFrame]:
    """Pick the raw tables a relationship needs.

    Optional datasets that are missing are replaced by an empty table so the
    transform can still run.

    Raises:
        MissingSourceData: If a required dataset has no rows.
    """
    required, optional = RELATIONSHIP_SOURCES[key]
    sources: dict[RawDataset, pd.DataFrame] = {}
    for dataset in required:
        table = tables.get(dataset)
        if table is None or table.empty:
            raise MissingSourceData(key.value, dataset.value)
        sources[dataset] = table
    for dataset in optional:
        table = tables.get(dataset)
        sources[dataset] = table if table is not None and not table.empty else empty_table(dataset)
    return sources
