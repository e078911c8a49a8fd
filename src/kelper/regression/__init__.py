"""Regression formulas, model specs, priors, and fitting.

Modules:
  - formula: brms-style formula parsing into ``Formula`` values
  - registry: ``REGISTRY`` of model specs (full + best formulas, family)
  - priors: ``PriorEntry``, ``DEFAULT_PRIORS``, ``select_priors``
  - design: fixed-effect matrices and group indices from formulas
  - engine: ``InferenceEngine`` protocol and the PyMC implementation
  - fitter: ``fit_relationship`` and the ``FittedModel`` it returns
  - serialization: JSON-ready dicts for formulas, priors and scaling stats

``engine`` imports PyMC; import it directly (``kelper.regression.engine``)
rather than through this package.

Adding a relationship
---------------------
1. Add a member to ``RelationshipKey`` in ``schemas.py``.

2. Register its formulas in ``registry.py``::

       _spec(
           RelationshipKey.MY_KEY,
           "y ~ x * PAR_atDepth * SST + (1 | location)",   # full
           "y ~ x + SST + (1 | location)",                 # best
       )

3. Declare its raw datasets in ``datasources/measurements/models.py``
   (``RELATIONSHIP_SOURCES``).

4. Add a node named after the key to ``analysis/transforms.py`` that derives
   every variable the formulas use.

5. Add tests in ``tests/test_transforms.py`` and ``tests/test_registry.py``.
"""

from kelper.regression.fitter import FittedModel, fit_relationship
from kelper.regression.formula import Formula
from kelper.regression.priors import DEFAULT_PRIORS, PriorClass, PriorEntry, select_priors
from kelper.regression.registry import REGISTRY, ModelSpec, get_spec

__all__ = [
    "DEFAULT_PRIORS",
    "REGISTRY",
    "FittedModel",
    "Formula",
    "ModelSpec",
    "PriorClass",
    "PriorEntry",
    "fit_relationship",
    "get_spec",
    "select_priors",
]
