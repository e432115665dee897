"""
Performance testing package (Locust-based).

Contains Locust user classes, helper utilities, and a CI threshold
checker for the perftest API.  Virtual users authenticate with RS256
tokens minted from the private key named by ``PERF_JWT_PRIVATE_KEY_PATH``
so no separate identity service is needed.

Key Concepts Demonstrated:
- Weighted task distribution to model realistic read/write ratios
- Report sampling under load against real metric logs
- Per-endpoint latency gates on top of the aggregate error budget
"""
