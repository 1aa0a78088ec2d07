"""Weekly insurance KPI aggregation and annual target version management."""
