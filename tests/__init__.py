"""
Test suite for the Performance Test Service.

This package contains:
- unit/: sampler, locator, cache, filter, store and model tests
- integration/: REST API tests through the Flask test client
- performance/: Locust scenarios against a running service
"""
