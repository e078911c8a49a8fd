"""Per-study morphometric measurement tables.

Public API:
  - models: KEY_COLUMNS, RAW_SCHEMAS, RELATIONSHIP_SOURCES
  - compile: compile_datasets, read_study_files, read_supplementary,
             require_sources, empty_table
"""

from kelper.datasources.measurements.compile import (
    compile_datasets,
    empty_table,
    read_study_files,
    read_supplementary,
    require_sources,
)
from kelper.datasources.measurements.models import KEY_COLUMNS, RAW_SCHEMAS, RELATIONSHIP_SOURCES

__all__ = [
    "KEY_COLUMNS",
    "RAW_SCHEMAS",
    "RELATIONSHIP_SOURCES",
    "compile_datasets",
    "empty_table",
    "read_study_files",
    "read_supplementary",
    "require_sources",
]
