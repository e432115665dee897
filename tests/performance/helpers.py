"""
Helper utilities for Locust performance scenarios.

Provides token minting, collision-free virtual user ids and randomised
perftest payload factories shared by every scenario module.
"""

from __future__ import annotations

import itertools
import os
import random
import string
import time
from pathlib import Path
from typing import Any

from shared.test_helpers import auth_headers, create_test_token

PRIVATE_KEY_ENV = "PERF_JWT_PRIVATE_KEY_PATH"

# Millisecond offset keeps ids from back-to-back runs apart.
_user_ids = itertools.count(int(time.time() * 1000) % 1_000_000_000)


def safe_json(response: Any) -> dict[str, Any]:
    """Return response JSON as a dict, or ``{}`` if parsing fails."""
    try:
        data = response.json()
    except ValueError:
        return {}

    if isinstance(data, dict):
        return data
    return {}


def load_private_key() -> str | None:
    """Read the signing key named by ``PERF_JWT_PRIVATE_KEY_PATH``, if any."""
    key_path = os.environ.get(PRIVATE_KEY_ENV)
    if not key_path:
        return None
    path = Path(key_path)
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8")


def mint_user_headers(private_key: str, *, role: str = "U") -> tuple[int, dict[str, str]]:
    """
    Mint a token for a fresh virtual user.

    Returns:
        A ``(user_id, headers)`` tuple.  Every call yields a new user id
        so each virtual user owns a disjoint set of tests.
    """
    user_id = next(_user_ids)
    token = create_test_token(
        user_id=user_id,
        username=f"perf_{user_id}",
        role=role,
        private_key=private_key,
    )
    return user_id, auth_headers(token)


def _suffix(length: int = 5) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def random_perf_test_payload() -> dict[str, Any]:
    """Build a valid create payload with small randomised variance."""
    return {
        "test_name": f"Perf scenario {_suffix()}",
        "description": "Created by Locust performance test",
        "agent_count": random.randint(1, 4),
        "vuser_per_agent": random.choice([10, 50, 100, 250]),
        "duration_seconds": random.randint(60, 3600),
        "run_count": random.randint(1, 3),
        "target_hosts": "app.internal",
        "script_name": random.choice(["login.py", "search.py", "checkout.py"]),
    }


def random_perf_test_update_payload() -> dict[str, Any]:
    """Build a single-field update so the merge path sees partial payloads."""
    base = random_perf_test_payload()
    candidates: list[dict[str, Any]] = [
        {"test_name": base["test_name"]},
        {"description": f"Updated {_suffix()}"},
        {"agent_count": base["agent_count"]},
        {"duration_seconds": base["duration_seconds"]},
    ]
    return random.choice(candidates)


def synthetic_metric_lines(count: int) -> list[str]:
    """Return ``count`` plausible TPS samples, one per line."""
    return [f"{random.uniform(50, 500):.2f}" for _ in range(count)]
