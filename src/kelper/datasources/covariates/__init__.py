"""Environmental covariates keyed by location (and optionally depth / grid cell).

Public API:
  - models: COVARIATE_COLUMNS, JOIN_KEYS, CACHE_PATH, CACHE_TTL
  - store: CovariateStore, normalize_covariates
"""

from kelper.datasources.covariates.models import (
    CACHE_PATH,
    CACHE_TTL,
    COVARIATE_COLUMNS,
    JOIN_KEYS,
)
from kelper.datasources.covariates.store import CovariateStore, normalize_covariates

__all__ = [
    "CACHE_PATH",
    "CACHE_TTL",
    "COVARIATE_COLUMNS",
    "JOIN_KEYS",
    "CovariateStore",
    "normalize_covariates",
]
