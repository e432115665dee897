"""
Settings for the perftest service.

Everything that differs between a developer laptop, the test run and a
deployment (database, JWT verification key, where metric logs live, the
report time limit) is read from the environment here.  ``get_config``
picks the class named by ``FLASK_ENV``.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _load_key(raw_env_var: str, path_env_var: str) -> str:
    """Return the PEM text held in *raw_env_var*, else the file named by *path_env_var*."""
    raw_key = os.environ.get(raw_env_var, "").strip()
    if raw_key:
        return raw_key

    key_path = os.environ.get(path_env_var, "").strip()
    if key_path:
        try:
            return Path(key_path).read_text(encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(
                f"Unable to read JWT key file at '{key_path}' from {path_env_var}."
            ) from exc

    raise RuntimeError(
        f"Missing JWT key configuration: set {raw_env_var} or {path_env_var}."
    )


def _has_key_source(raw_env_var: str, path_env_var: str) -> bool:
    """True when either the inline or the path variable is set."""
    return bool(
        os.environ.get(raw_env_var, "").strip()
        or os.environ.get(path_env_var, "").strip()
    )


def load_public_key(*, testing: bool) -> str:
    """Public key used to verify bearer tokens; ``TEST_*`` variables win under test."""
    if testing and _has_key_source("TEST_JWT_PUBLIC_KEY", "TEST_JWT_PUBLIC_KEY_PATH"):
        return _load_key("TEST_JWT_PUBLIC_KEY", "TEST_JWT_PUBLIC_KEY_PATH")
    return _load_key("JWT_PUBLIC_KEY", "JWT_PUBLIC_KEY_PATH")


class Config:
    """
    Defaults shared by every environment.

    Attributes:
        PERFTEST_HOME: Root of the per-test folders; metric logs are read
            from ``<home>/perftest/<id>/report``.
        REPORT_SAMPLE_TIMEOUT_SECONDS: A report request that takes longer
            is answered with 504.
        CACHE_TYPE / CACHE_DEFAULT_TIMEOUT: Flask-Caching backend holding
            test snapshots and the running list.
        DEFAULT_PAGE_SIZE / MAX_PAGE_SIZE: Listing page size when none is
            given, and the cap on a requested one.
    """

    SECRET_KEY: str = os.environ.get("SECRET_KEY", "perftest-dev-only-secret")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'perftests.db'}",
    )

    # Leeway applied to exp/iat; tokens come from a separate identity provider.
    JWT_CLOCK_SKEW_SECONDS: int = int(os.environ.get("JWT_CLOCK_SKEW_SECONDS", "30"))

    PERFTEST_HOME: str = os.environ.get(
        "PERFTEST_HOME", str(BASE_DIR / "instance" / "home")
    )
    REPORT_SAMPLE_TIMEOUT_SECONDS: float = float(
        os.environ.get("REPORT_SAMPLE_TIMEOUT_SECONDS", "30")
    )

    CACHE_TYPE: str = os.environ.get("CACHE_TYPE", "SimpleCache")
    CACHE_DEFAULT_TIMEOUT: int = int(os.environ.get("CACHE_DEFAULT_TIMEOUT", "300"))

    DEFAULT_PAGE_SIZE: int = int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE: int = int(os.environ.get("MAX_PAGE_SIZE", "100"))


class DevelopmentConfig(Config):
    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Separate SQLite file and home directory, and an in-process cache."""

    DEBUG: bool = True
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'test_perftests.db'}?check_same_thread=False",
    )
    SQLALCHEMY_ENGINE_OPTIONS: dict = {"pool_pre_ping": True}
    PERFTEST_HOME: str = os.environ.get(
        "TEST_PERFTEST_HOME", str(BASE_DIR / "instance" / "test_home")
    )
    CACHE_TYPE: str = "SimpleCache"


class ProductionConfig(Config):
    """Expects the key, database URL and home directory from the environment."""

    DEBUG: bool = False
    TESTING: bool = False


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """Config class for *env*, or for ``FLASK_ENV`` when *env* is ``None``."""
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
