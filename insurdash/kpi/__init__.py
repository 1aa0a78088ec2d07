"""KPI computation.

- engine.py: aggregation, absolute and increment KPIs (loss ratio, contribution margin, achievement)
- trend.py: weekly KPI series over period buckets
"""
