"""
Prefect flows for the regression pipeline.

Flows:
- prepare: Compile raw tables, join covariates, transform, standardize
- fit: Run prepare, then fit every relationship and write the run manifest

Usage (local):
    python -m kelper.flows.prepare
    python -m kelper.flows.fit

Usage (CLI):
    kelper run
"""
