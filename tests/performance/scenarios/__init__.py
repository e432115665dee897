"""
Locust scenario user classes.

- :mod:`.mixed` - browsing and editing perftest definitions
- :mod:`.report_viewer` - dashboards polling sampled metric reports

Both build on the abstract users in :mod:`.base`.
"""
