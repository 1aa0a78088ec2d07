"""Policy records: immutable record model, label normalization, filter predicate.

- model.py: InsuranceRecord, normalize_text
- filters.py: FilterState and apply_filters
"""
