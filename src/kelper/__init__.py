"""Kelper - regression parameterization for a kelp population model.

Architecture::

    datasources/   Raw inputs (per-study measurement tables, covariate table)
    store.py       Tiered cache (reference → derived) with TTL metadata
    analysis/      Covariate joins, per-relationship transforms, standardizing
    regression/    Formulas, model registry, priors, inference engine, fitter
    flows/         Prefect orchestration (prepare builds datasets, fit runs models)

Data flow: datasources → analysis (join → transform → standardize)
→ regression (fit) → store (derived/)

Extension points (each package docstring has a step-by-step guide):
  - New raw dataset:   datasources/__init__.py
  - New relationship:  regression/__init__.py
"""

__version__ = "0.1.0"

from kelper.config import PipelineConfig, Settings
from kelper.schemas import RelationshipKey, RunReport

__all__ = ["PipelineConfig", "RelationshipKey", "RunReport", "Settings", "__version__"]
