"""Exports: CSV writers and Markdown reports.

- writers.py: KPI trend and goal metric CSV emitters with fixed schemas
- reports.py: target import report and KPI summary Markdown
"""
