"""
API test package for the Performance Test Service.

Tests use the Flask test client and cover CRUD, status transitions,
tenant isolation, input validation and the report endpoint.
"""
