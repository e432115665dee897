"""
Routes package for the Performance Test Service.

- api: REST API endpoints for test records and metric reports
"""
