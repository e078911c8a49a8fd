"""Raw pipeline inputs.

Each subdirectory is one input source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── models.py         # Column schemas and constants
    └── {feature}.py      # Loading functions (one per concept)

Sources:
  - measurements: per-study morphometric tables + supplementary spreadsheet
  - covariates: extracted environmental covariate table (cached in the store)

Adding a new raw dataset
------------------------
1. Add a member to ``kelper.schemas.RawDataset``; its value is the directory
   name under ``raw_dir`` and the sheet name in the supplementary spreadsheet.

2. Declare its measurement columns in ``measurements/models.py``
   (``RAW_SCHEMAS``) and wire it to a relationship in ``RELATIONSHIP_SOURCES``.

3. Add a transform node that consumes it (see ``analysis/transforms.py``).

4. Add tests in ``tests/test_{name}.py``.
"""
