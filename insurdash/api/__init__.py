"""Service surface.

- session.py: DashboardSession, the single owner of records, filters, targets and cache
- server.py: Flask HTTP endpoints over one session
- cli.py: goal CSV validation / baseline export
"""
