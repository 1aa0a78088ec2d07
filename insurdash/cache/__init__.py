"""KPI result memoization.

- fingerprint.py: canonical SHA-256 keys over filters, mode, target and revisions
- store.py: ResultCache with hit/miss counters
"""
