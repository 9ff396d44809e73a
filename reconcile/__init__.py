"""Project records reconciliation: identity, dedup, key migration and KPI totals."""
